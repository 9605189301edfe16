from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request

from shared.config import settings


def client_key(request: Request) -> str:
    """
    Key function for SlowAPI.
    Internal callers are bucketed by their API key.
    Falls back to the client's IP address otherwise.
    """
    api_key = request.headers.get("X-Internal-API-Key")
    if api_key:
        return f"key:{api_key[:8]}"
    return f"ip:{get_remote_address(request)}"

limiter = Limiter(key_func=client_key, enabled=settings.RATE_LIMIT_ENABLED)
