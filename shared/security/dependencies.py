import secrets
import warnings

from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader

from shared.config import settings

INTERNAL_API_KEY_HEADER = "X-Internal-API-Key"

if not settings.INTERNAL_API_KEY:
    warnings.warn(
        "INTERNAL_API_KEY is not set. Using an insecure default. "
        "Set this env var in production!",
        stacklevel=2,
    )

INTERNAL_API_KEY: str = settings.INTERNAL_API_KEY or "insecure-default-change-me"

# Sent on every call to the user directory and product catalog
INTERNAL_API_HEADERS = {INTERNAL_API_KEY_HEADER: INTERNAL_API_KEY}

# Defines the expected internal service header
api_key_header = APIKeyHeader(name=INTERNAL_API_KEY_HEADER, auto_error=False)


def verify_api_key(provided_key: str | None) -> bool:
    """Constant-time comparison against the configured internal key."""
    if not provided_key:
        return False
    return secrets.compare_digest(str(provided_key), str(INTERNAL_API_KEY))


async def verify_internal_api_key(api_key: str = Depends(api_key_header)) -> bool:
    """Dependency guarding admin and service-to-service routes."""
    if not verify_api_key(api_key):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Invalid or missing {INTERNAL_API_KEY_HEADER} header"
        )
    return True
