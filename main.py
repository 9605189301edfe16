# Entry point: uvicorn main:app
from services.order_service.main import order_app

app = order_app
