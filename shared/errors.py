"""
Checkout error taxonomy.

Only the pre-commit gates raise these to the caller. Everything downstream of
a committed order is logged and swallowed by the fan-out dispatcher.
"""
import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = structlog.get_logger(__name__)


class CheckoutError(Exception):
    kind = "internal_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, **extra):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message, **self.extra}


class ValidationError(CheckoutError):
    kind = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(CheckoutError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class InsufficientStockError(CheckoutError):
    kind = "insufficient_stock"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, product_id: str, available: int, requested: int):
        super().__init__(
            "Insufficient stock",
            product_id=product_id,
            available=available,
            requested=requested,
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class CustomerBlockedError(CheckoutError):
    kind = "customer_blocked"
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "This customer has been blocked from placing orders. Please contact support for assistance."):
        super().__init__(message, code="CUSTOMER_BLOCKED")


class InternalError(CheckoutError):
    pass


async def checkout_error_handler(request: Request, exc: CheckoutError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error", path=request.url.path, error=str(exc), exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=InternalError("Failed to process request").to_dict(),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CheckoutError, checkout_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
