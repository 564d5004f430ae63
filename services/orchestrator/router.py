import time

import structlog
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.config.settings import CHECKOUT_RATE_LIMIT
from shared.config.tenant import TenantContext, get_tenant
from shared.errors import CheckoutError
from shared.observability import ecomm_checkout_duration_seconds, ecomm_checkout_total
from shared.security import limiter
from services.order_service.schemas import CheckoutRequest, OrderResponse, PlaceOrderRequest
from .checkout_saga import build_checkout_saga
from .dependencies import get_fanout_dispatcher
from .fanout import FanoutDispatcher

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/orders", tags=["Checkout"])


async def run_checkout(
    checkout: CheckoutRequest,
    tenant: TenantContext,
    db: AsyncSession,
    fanout: FanoutDispatcher,
) -> OrderResponse:
    start_time = time.time()
    ctx = {"db": db, "tenant": tenant, "request": checkout}
    try:
        await build_checkout_saga().execute(ctx)
    except CheckoutError as e:
        ecomm_checkout_total.labels(status="failed" if e.status_code >= 500 else "rejected").inc()
        raise
    except Exception:
        ecomm_checkout_total.labels(status="failed").inc()
        raise
    finally:
        ecomm_checkout_duration_seconds.observe(time.time() - start_time)

    ecomm_checkout_total.labels(status="success").inc()
    order = OrderResponse.model_validate(ctx["order"])
    await fanout.dispatch(tenant, order.model_dump(mode="json"), ctx["brand"], ctx.get("attribution"))
    return order


@router.post("/place", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(CHECKOUT_RATE_LIMIT)
async def place_order(
    request: Request,  # slowapi reads the client key from here
    payload: PlaceOrderRequest,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
    fanout: FanoutDispatcher = Depends(get_fanout_dispatcher),
):
    """Public single-product checkout, no authentication."""
    return await run_checkout(payload.to_checkout(), tenant, db, fanout)


@router.post("/", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(CHECKOUT_RATE_LIMIT)
async def checkout(
    request: Request,
    payload: CheckoutRequest,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
    fanout: FanoutDispatcher = Depends(get_fanout_dispatcher),
):
    """Public multi-line cart checkout."""
    return await run_checkout(payload, tenant, db, fanout)
