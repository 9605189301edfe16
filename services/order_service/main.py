from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text

from shared.config.database import engine, Base
from shared.observability import setup_observability
from shared.security import limiter
from .exceptions import OrderError
from .models import Order, OrderItem # Import to register with Base
from .router import admin_router, public_router, router

order_app = FastAPI(title="Order Service", version="1.0.0")

# --- OBSERVABILITY BOOTSTRAP ---
setup_observability(order_app, "order_service")

# --- SECURITY SETUP ---
order_app.state.limiter = limiter
order_app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

order_app.include_router(public_router)
order_app.include_router(router)
order_app.include_router(admin_router)


@order_app.exception_handler(OrderError)
async def order_error_handler(request: Request, exc: OrderError):
    body = {"detail": exc.message}
    if exc.order_id is not None:
        body["orderId"] = exc.order_id
    return JSONResponse(status_code=exc.status_code, content=body)


@order_app.on_event("startup")
async def startup_event():
    async with engine.begin() as conn:
        await conn.execute(text("CREATE SCHEMA IF NOT EXISTS order_schema"))
        await conn.run_sync(Base.metadata.create_all)
