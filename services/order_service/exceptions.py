"""
Error taxonomy of the order service.

Every error raised out of order creation or the order CRUD operations is an
``OrderError``; ``main.py`` renders it as ``{"detail": message}`` with the
error's status code.
"""
from fastapi import status


class OrderError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        # Set when the failure happened after the order was committed
        self.order_id: int | None = None


class InvalidInput(OrderError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(OrderError):
    status_code = status.HTTP_404_NOT_FOUND


class ServiceUnavailable(OrderError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class Internal(OrderError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class RemoteServiceError(OrderError):
    """A remote dependency explicitly rejected the request; keeps its status."""


# --- Raised by the remote clients, classified by the orchestrator ---

class RemoteCallRejected(Exception):
    def __init__(self, dependency: str, status_code: int, message: str):
        super().__init__(message)
        self.dependency = dependency
        self.status_code = status_code
        self.message = message


class RemoteTransportFailure(Exception):
    def __init__(self, dependency: str, reason: str):
        super().__init__(f"{dependency}: {reason}")
        self.dependency = dependency
        self.reason = reason
