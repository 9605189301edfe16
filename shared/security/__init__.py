from .dependencies import (
    INTERNAL_API_HEADERS,
    verify_api_key,
    verify_internal_api_key,
)
from .rate_limiter import limiter, client_key

__all__ = [
    "INTERNAL_API_HEADERS",
    "verify_api_key",
    "verify_internal_api_key",
    "limiter",
    "client_key",
]
