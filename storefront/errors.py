from typing import Optional

from fastapi import status


class StorefrontError(Exception):
    """Base class for errors that map onto an HTTP response.

    ``message`` is the human readable summary; ``cause`` (when set) is the
    underlying exception and is reported back as the ``error`` field.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, *, cause: Optional[BaseException] = None):
        self.message = message or self.default_message
        self.cause = cause
        super().__init__(self.message)

    @property
    def error(self) -> Optional[str]:
        return str(self.cause) if self.cause is not None else None


class InvalidInput(StorefrontError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class Unauthorized(StorefrontError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid or expired token"


class NotFound(StorefrontError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Conflict(StorefrontError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class InsufficientStock(StorefrontError):
    default_message = "Insufficient stock"

    def __init__(self, product_id: int, message: Optional[str] = None):
        self.product_id = product_id
        super().__init__(message or f"Insufficient stock for product ID {product_id}")


class OperationFailed(StorefrontError):
    default_message = "Operation failed"
