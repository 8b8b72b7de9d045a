"""Shared-secret login for the moderation and article dashboards."""

import logging
import secrets

from errors import AppError, AuthError

logger = logging.getLogger(__name__)


def check_shared_secret(supplied: str | None, configured: str | None, rejection: str) -> None:
    """Compare a supplied secret with the configured one.

    Args:
        supplied: Value sent by the caller.
        configured: Value from configuration, or None if unset.
        rejection: Error message for a mismatch.

    Raises:
        AppError: If no secret is configured (reported as a 500).
        AuthError: If the values differ.
    """
    if not configured:
        logger.error("Admin login attempted but no secret is configured")
        raise AppError("Admin key not configured", status_code=500)
    if not supplied or not secrets.compare_digest(supplied.encode("utf-8"), configured.encode("utf-8")):
        raise AuthError(rejection)
