from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from shared.config.database import engine, Base
from shared.errors import ValidationError, register_error_handlers
from shared.observability import setup_observability
from shared.security import limiter

# IMPORTANT: import models so they register with Base
from shared.config import tenant as tenant_models
from services.product_service import models as product_models
from services.order_service import models as order_models
from services.blocklist_service import models as blocklist_models
from services.affiliate_service import models as affiliate_models
from services.auth_service import models as auth_models
from services.notification_service import models as notification_models
from services.email_service import models as email_models

from services.affiliate_service.router import router as affiliate_router
from services.auth_service.router import router as auth_router
from services.blocklist_service.router import router as blocklist_router
from services.email_service.router import router as email_router
from services.notification_service.router import router as notification_router
from services.orchestrator.router import router as checkout_router
from services.orchestrator.task_queue import BackgroundTaskQueue
from services.order_service.router import router as order_router
from services.product_service.router import router as product_router

app = FastAPI(
    title="Storefront Checkout",
    version="1.0.0"
)

# --- OBSERVABILITY BOOTSTRAP ---
setup_observability(app, "storefront_checkout")

# --- SECURITY SETUP ---
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# --- ERROR MAPPING ---
register_error_handlers(app)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # malformed bodies are client errors like any other intake failure
    error = ValidationError("Invalid request body", details=jsonable_errors(exc))
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error.to_dict())


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [{"loc": list(err.get("loc", ())), "msg": err.get("msg")} for err in exc.errors()]


# Checkout routes first: POST /orders/place must not be shadowed by /orders/{order_id}
app.include_router(checkout_router)
app.include_router(order_router)
app.include_router(product_router)
app.include_router(blocklist_router)
app.include_router(affiliate_router)
app.include_router(auth_router)
app.include_router(notification_router)
app.include_router(email_router)

app.state.task_queue = BackgroundTaskQueue()


@app.get("/health")
async def health_check():
    return {"service": "storefront_checkout", "status": "running"}


@app.on_event("startup")
async def startup_event():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@app.on_event("shutdown")
async def shutdown_event():
    # drain pending fan-out jobs before the process exits
    await app.state.task_queue.stop()
