"""
Post-commit fan-out for a placed order.

The realtime order push runs inline and is best-effort. Every other branch is a
job on the BackgroundTaskQueue, so a slow or failing collaborator never touches
the checkout response and gets retried with backoff. A job raises only on
failures worth retrying.
"""
import asyncio
from datetime import datetime

import structlog

from shared.config.settings import FRAUD_CHECK_TIMEOUT
from shared.config.tenant import TenantContext
from services.affiliate_service.commission import Attribution
from services.affiliate_service.service import CommissionService
from services.auth_service.repository import UserRepository
from services.email_service.service import NO_FROM_ERROR, NO_PROVIDER_ERROR, send_email_event
from services.fraud_service.client import FraudCheckClient
from services.fraud_service.service import enrich_order
from services.notification_service.realtime import RealtimePort, tenant_room
from services.notification_service.service import (
    NotificationService,
    new_order_notification,
    notification_fields,
    push_notification,
)
from services.tracking_service.conversions import ConversionTracker
from .task_queue import BackgroundTaskQueue

logger = structlog.get_logger(__name__)

FINAL_EMAIL_ERRORS = {NO_PROVIDER_ERROR, NO_FROM_ERROR}


class EmailDeliveryError(Exception):
    pass


def order_items_summary(order: dict) -> str:
    return ", ".join(f"{item['name']} x{item.get('quantity') or 1}" for item in order.get("items") or [])


class FanoutDispatcher:
    def __init__(
        self,
        queue: BackgroundTaskQueue,
        publisher: RealtimePort,
        session_factory,
        email_sender=send_email_event,
        fraud_client: FraudCheckClient | None = None,
        tracker: ConversionTracker | None = None,
    ):
        self.queue = queue
        self.publisher = publisher
        self.session_factory = session_factory
        self.email_sender = email_sender
        self.fraud_client = fraud_client or FraudCheckClient()
        self.tracker = tracker or ConversionTracker()

    async def dispatch(self, tenant: TenantContext, order: dict, brand: dict, attribution: Attribution | None = None):
        """`order` is the JSON-mode dump of the committed order."""
        tenant_id = tenant.tenant_id
        log = logger.bind(tenant_id=tenant_id, order_id=order["id"])

        try:
            await self.publisher.publish(tenant_room(tenant_id), "new-order", order)
        except Exception as e:
            log.error("Realtime order push failed", error=str(e))

        self.queue.enqueue("notify_staff", lambda: self.notify_staff(tenant_id, order))

        customer = order.get("customer") or {}
        if customer.get("email"):
            self.queue.enqueue(
                "order_confirmation_email",
                lambda: self.send_email(tenant_id, "order_confirmation", [customer["email"]], order, brand),
            )
        else:
            log.warning("No customer email provided, skipping order confirmation email")

        if attribution:
            self.queue.enqueue("record_commission", lambda: self.record_commission(tenant_id, order, attribution))

        if order["payment_method"] == "cod":
            self.queue.enqueue("conversion_tracking", lambda: self.track_conversion(order, brand, tenant.client_ip))

        if customer.get("phone"):
            self.queue.enqueue("fraud_enrichment", lambda: self.enrich_fraud(tenant_id, order["id"], customer["phone"]))

    async def notify_staff(self, tenant_id: str, order: dict):
        async with self.session_factory() as db:
            recipients = await UserRepository.list_order_recipients(db, tenant_id)
        if not recipients:
            logger.info("No staff to notify", tenant_id=tenant_id, order_id=order["id"])
            return

        created_at = datetime.fromisoformat(order["created_at"])
        for user in recipients:
            notification = new_order_notification(tenant_id, user.id, order, created_at)
            await push_notification(self.publisher, notification)
            fields = notification_fields(notification)
            self.queue.enqueue("persist_notification", lambda fields=fields: self.persist_notification(fields))

        admin_emails = [user.email for user in recipients if user.email]
        if admin_emails:
            self.queue.enqueue(
                "admin_alert_email",
                lambda: self.send_email(tenant_id, "admin_new_order_alert", admin_emails, order, None),
            )

    async def persist_notification(self, fields: dict):
        async with self.session_factory() as db:
            await NotificationService.save(db, fields)

    async def send_email(self, tenant_id: str, event: str, to: list[str], order: dict, brand: dict | None):
        customer = order.get("customer") or {}
        variables = {
            "orderId": order["custom_order_id"],
            "customerName": customer.get("full_name") or "Customer",
            "orderTotal": f"{order['total']:.2f}",
            "orderDate": order["created_at"],
            "paymentMethod": order["payment_method"],
            "orderItems": order_items_summary(order),
            "trackingLink": "",
        }
        async with self.session_factory() as db:
            result = await self.email_sender(db, tenant_id, event, to, variables)

        if result.ok:
            logger.info("Order email sent", order_id=order["id"], email_event=event, provider=result.provider)
            return
        if result.error in FINAL_EMAIL_ERRORS:
            logger.error("Order email not sent", order_id=order["id"], email_event=event, error=result.error)
            return
        raise EmailDeliveryError(result.error or "email delivery failed")

    async def record_commission(self, tenant_id: str, order: dict, attribution: Attribution):
        async with self.session_factory() as db:
            await CommissionService.record_commission(
                db,
                tenant_id,
                order_id=order["id"],
                affiliate_id=attribution.affiliate_id,
                level=attribution.level,
                order_total=order["total"],
                commission_percentage=attribution.percentage,
                commission_amount=attribution.amount,
            )

    async def track_conversion(self, order: dict, brand: dict, client_ip: str | None):
        await self.tracker.track_purchase(
            brand.get("meta_pixel_id"),
            brand.get("meta_capi_token"),
            order,
            brand.get("currency") or "USD",
            client_ip,
        )

    async def enrich_fraud(self, tenant_id: str, order_id: str, phone: str):
        async with self.session_factory() as db:
            await asyncio.wait_for(enrich_order(db, self.fraud_client, tenant_id, order_id, phone), timeout=FRAUD_CHECK_TIMEOUT)
