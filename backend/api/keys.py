"""API key application endpoint."""

import logging
import re

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from auth.api_keys import create_api_key
from errors import ValidationError
from models import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["api-keys"])

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class ApplyKeyRequest(BaseModel):
    name: str | None = None
    email: str | None = None
    company: str | None = None
    website: str | None = None
    useCase: str | None = None


class ApplyKeyResponse(BaseModel):
    success: bool = True
    apiKey: str
    message: str = "API key generated successfully! You can now use it to upload images."


def _optional(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


def _client_ip(request: Request) -> str | None:
    return (
        request.headers.get("x-forwarded-for")
        or request.headers.get("x-real-ip")
        or (request.client.host if request.client else None)
    )


@router.post("/apply-key", response_model=ApplyKeyResponse)
async def apply_key(
    body: ApplyKeyRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Issue an API key to an applicant."""
    name = _optional(body.name)
    email = _optional(body.email)
    use_case = _optional(body.useCase)
    if not name or not email or not use_case:
        raise ValidationError("Missing required fields: name, email, and useCase are required")
    if not EMAIL_RE.match(email):
        raise ValidationError("Invalid email format")

    record = await create_api_key(
        db,
        name=name,
        email=email.lower(),
        use_case=use_case,
        company=_optional(body.company),
        website=_optional(body.website),
        user_agent=request.headers.get("user-agent"),
        ip=_client_ip(request),
    )
    return ApplyKeyResponse(apiKey=record.key)
