"""
Application configuration with Docker secrets support.

Secrets are read using the _read_secret() pattern:
  1. Direct env var (e.g., LLM_API_KEY)
  2. File-based env var (e.g., LLM_API_KEY_FILE → reads file path)
  3. Raises ValueError if neither is set
"""

import os
import logging

logger = logging.getLogger(__name__)


def _read_secret(env_var: str, file_env_var: str | None = None) -> str:
    """Read a secret from env var or Docker secrets file.

    Args:
        env_var: Direct environment variable name (e.g., ADMIN_KEY)
        file_env_var: File path env var name (e.g., ADMIN_KEY_FILE).
                      If None, defaults to env_var + '_FILE'.

    Returns:
        The secret value.

    Raises:
        ValueError: If neither source provides a value.
    """
    if file_env_var is None:
        file_env_var = f"{env_var}_FILE"

    value = os.environ.get(env_var)
    if value:
        return value

    file_path = os.environ.get(file_env_var)
    if file_path:
        try:
            with open(file_path, "r") as f:
                value = f.read().strip()
            if value:
                return value
        except FileNotFoundError:
            logger.error(f"Secret file not found: {file_path} (from {file_env_var})")
        except PermissionError:
            logger.error(f"Permission denied reading: {file_path} (from {file_env_var})")

    raise ValueError(
        f"Secret not configured. Set {env_var} env var or {file_env_var} pointing to a file."
    )


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Application settings loaded from environment and Docker secrets."""

    def __init__(self):
        # Database
        self.database_url = self._build_database_url()
        self.redis_url = os.environ.get("REDIS_URL", "redis://redis:6379/0")

        # Secrets (loaded lazily on first access via properties)
        self._llm_api_key: str | None = None
        self._app_secret_key: str | None = None

        # Public config
        self.public_base_url = os.environ.get("PUBLIC_BASE_URL") or None
        self.cors_origins = [
            o.strip() for o in os.environ.get("CORS_ORIGINS", "").split(",") if o.strip()
        ]
        self.debug = _env_bool("DEBUG")
        self.query_timeout_seconds = float(os.environ.get("QUERY_TIMEOUT_SECONDS", "10"))

        # Article generator
        self.llm_model = os.environ.get("LLM_MODEL", "grok-3")
        self.llm_base_url = os.environ.get("LLM_BASE_URL", "https://api.x.ai/v1")
        self.topic_count = int(os.environ.get("TOPIC_COUNT", "20"))
        self.articles_dir = os.environ.get("ARTICLES_DIR", "generated-articles")

    def _build_database_url(self) -> str:
        """Build async database URL with password from secrets."""
        base_url = os.environ.get(
            "DATABASE_URL", "postgresql+asyncpg://imagehost@postgres:5432/imagehost"
        )
        try:
            password = _read_secret("POSTGRES_PASSWORD")
            # Insert password into URL: postgresql+asyncpg://user@host → user:pass@host
            if "://" in base_url and "@" in base_url:
                scheme_user, rest = base_url.split("@", 1)
                if ":" not in scheme_user.split("://")[1]:
                    base_url = f"{scheme_user}:{password}@{rest}"
        except ValueError:
            logger.warning("POSTGRES_PASSWORD not set, using DATABASE_URL as-is")
        return base_url

    @property
    def llm_api_key(self) -> str:
        if self._llm_api_key is None:
            self._llm_api_key = _read_secret("LLM_API_KEY")
        return self._llm_api_key

    @property
    def app_secret_key(self) -> str:
        if self._app_secret_key is None:
            self._app_secret_key = _read_secret("APP_SECRET_KEY")
        return self._app_secret_key

    @property
    def admin_key(self) -> str | None:
        """Moderation dashboard secret; None when not configured.

        Read on every access so rotating the secret needs no restart.
        """
        try:
            return _read_secret("ADMIN_KEY")
        except ValueError:
            return None

    @property
    def articles_admin_key(self) -> str | None:
        """Article dashboard secret; None when not configured."""
        try:
            return _read_secret("ARTICLES_ADMIN_KEY")
        except ValueError:
            return None


settings = Settings()
