import os
import tempfile

# Configuration is read at import time, so the environment goes first
_DB_DIR = tempfile.mkdtemp(prefix="storefront-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/test.db"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret"
os.environ["INTERNAL_API_KEY"] = "test-internal-key"
os.environ["ENCRYPTION_KEY"] = "test-encryption-key"
os.environ["DEFAULT_TENANT_ID"] = ""

import httpx
import pytest

from main import app
from shared.config.database import AsyncSessionLocal, Base, engine
from shared.config.tenant import BrandConfig
from shared.security import issue_staff_token, limiter
from services.auth_service.models import User
from services.email_service.types import EmailSendResult
from services.fraud_service.client import FraudCheckClient
from services.notification_service.realtime import RealtimePort
from services.orchestrator import dependencies as checkout_deps
from services.orchestrator.task_queue import BackgroundTaskQueue
from services.product_service.models import Product
from services.tracking_service.conversions import ConversionTracker

TENANT = "store-a"
OTHER_TENANT = "store-b"
INTERNAL_HEADERS = {"X-Internal-API-Key": "test-internal-key"}

limiter.enabled = False


class FakePublisher(RealtimePort):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.events = []

    async def publish(self, room: str, event: str, data: dict) -> None:
        if self.fail:
            raise ConnectionError("socket server down")
        self.events.append((room, event, data))


class FakeEmailSender:
    def __init__(self, results=None):
        self.calls = []
        self.results = list(results or [])

    async def __call__(self, db, tenant_id, event, to, variables=None):
        self.calls.append({"tenant_id": tenant_id, "event": event, "to": to, "variables": variables})
        if self.results:
            return self.results.pop(0)
        return EmailSendResult(ok=True, provider="fake", message_id="msg-1")


class RecordingHandler:
    """httpx.MockTransport handler that records requests and replays a canned response."""

    def __init__(self, status_code: int = 200, json=None):
        self.status_code = status_code
        self.json = json if json is not None else {}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.json)


@pytest.fixture(autouse=True)
async def database():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


@pytest.fixture
async def session():
    async with AsyncSessionLocal() as db:
        yield db


@pytest.fixture
async def task_queue():
    queue = BackgroundTaskQueue(workers=2, base_delay=0.01)
    yield queue
    await queue.stop()


@pytest.fixture
def publisher():
    return FakePublisher()


@pytest.fixture
def email_sender():
    return FakeEmailSender()


@pytest.fixture
def fraud_handler():
    return RecordingHandler(json={"success": False})


@pytest.fixture
def capi_handler():
    return RecordingHandler(json={"events_received": 1})


@pytest.fixture
async def client(task_queue, publisher, email_sender, fraud_handler, capi_handler):
    fraud_http = httpx.AsyncClient(transport=httpx.MockTransport(fraud_handler))
    capi_http = httpx.AsyncClient(transport=httpx.MockTransport(capi_handler))
    app.dependency_overrides[checkout_deps.get_task_queue] = lambda: task_queue
    app.dependency_overrides[checkout_deps.get_realtime_publisher] = lambda: publisher
    app.dependency_overrides[checkout_deps.get_email_sender] = lambda: email_sender
    app.dependency_overrides[checkout_deps.get_fraud_client] = lambda: FraudCheckClient(
        url="http://fraud.test/api/fraud-check", client=fraud_http
    )
    app.dependency_overrides[checkout_deps.get_conversion_tracker] = lambda: ConversionTracker(
        graph_url="http://graph.test", client=capi_http
    )

    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://test", headers={"X-Tenant-ID": TENANT}) as ac:
        yield ac

    app.dependency_overrides.clear()
    await fraud_http.aclose()
    await capi_http.aclose()


async def add_product(db, tenant_id=TENANT, **overrides) -> Product:
    fields = {
        "tenant_id": tenant_id,
        "slug": "classic-tee",
        "name": "Classic Tee",
        "price": 500.0,
        "stock": 3,
        "images": ["https://cdn.test/tee.png"],
    }
    fields.update(overrides)
    product = Product(**fields)
    db.add(product)
    await db.commit()
    await db.refresh(product)
    return product


async def add_staff(db, tenant_id=TENANT, email="owner@store.test", role="merchant") -> User:
    user = User(tenant_id=tenant_id, email=email, full_name="Store Owner", hashed_password="x", role=role)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def add_brand(db, tenant_id=TENANT, **overrides) -> BrandConfig:
    fields = {"tenant_id": tenant_id, "brand_name": "Acme", "contact_email": "hello@acme.test", "currency": "USD"}
    fields.update(overrides)
    brand = BrandConfig(**fields)
    db.add(brand)
    await db.commit()
    return brand


def staff_headers(user: User) -> dict:
    token = issue_staff_token(user.id, user.tenant_id, user.role)
    return {"Authorization": f"Bearer {token}"}


def customer(**overrides) -> dict:
    fields = {
        "full_name": "Jane Doe",
        "phone": "+8801712345678",
        "email": "jane@example.test",
        "address_line1": "12 Market Road",
        "city": "Dhaka",
        "postal_code": "1207",
    }
    fields.update(overrides)
    return fields
