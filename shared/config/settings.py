import os
from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# Remote collaborators
USER_SERVICE_URL = os.getenv("USER_SERVICE_URL", "http://localhost:3003")
PRODUCT_SERVICE_URL = os.getenv("PRODUCT_SERVICE_URL", "http://localhost:3005")
REMOTE_TIMEOUT_SECONDS = float(os.getenv("REMOTE_TIMEOUT_SECONDS", "5.0"))

# Service-to-service auth
INTERNAL_API_KEY = os.getenv("INTERNAL_API_KEY", "")

# Order lifecycle
ENFORCE_STATUS_TRANSITIONS = _flag("ENFORCE_STATUS_TRANSITIONS", "false")

# Rate limiting
RATE_LIMIT_ENABLED = _flag("RATE_LIMIT_ENABLED", "true")
CREATE_ORDER_RATE_LIMIT = os.getenv("CREATE_ORDER_RATE_LIMIT", "30/minute")

# Observability
TRACING_ENABLED = _flag("TRACING_ENABLED", "true")
OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT", "http://localhost:4317")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
