# tests/conftest.py
import os

os.environ.setdefault("AUTH_JWT_SECRET", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SWEEPER_ENABLED", "false")

import time
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlmodel import Session, SQLModel, create_engine

from app.core.deps import get_order_service
from app.database import get_session
from app.main import app
from app.models.order import Order
from app.repositories.order_repo import OrderRepository
from app.repositories.payment_setting_repo import PaymentSettingRepository
from app.schemas.order import OrderCreate
from app.services.expiry_sweeper import ExpirySweeper
from app.services.notification_service import NotificationService
from app.services.order_service import OrderService
from app.services.payment_setting_service import PaymentSettingService

ADMIN_PHONE = "6280000000000"
CUSTOMER_PHONE = "081234567890"


class ManualClock:
    """Clock that only moves when a test says so."""

    def __init__(self, start: datetime):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


class TickingClock:
    """Clock that moves forward by `step` every time it is read."""

    def __init__(self, start: datetime, step: timedelta):
        self.current = start
        self.step = step

    def now(self) -> datetime:
        current = self.current
        self.current = current + self.step
        return current


class RecordingGateway:
    """Collects (phone, message) pairs instead of calling WhatsApp."""

    def __init__(self):
        self.sent: list[tuple[str, str]] = []
        self.fail_for: set[str] = set()

    def send(self, phone: str, message: str) -> bool:
        self.sent.append((phone, message))
        return phone not in self.fail_for

    def messages_to(self, phone: str) -> list[str]:
        return [message for to, message in self.sent if to == phone]

    def count(self, marker: str) -> int:
        return sum(1 for _, message in self.sent if marker in message)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(datetime(2026, 10, 19, 10, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def gateway() -> RecordingGateway:
    return RecordingGateway()


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'orders.db'}",
        connect_args={"check_same_thread": False},
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def order_service(clock, gateway) -> OrderService:
    notifier = NotificationService(
        gateway,
        admin_phone=ADMIN_PHONE,
        store_name="ZOGAMING",
        processing_timeout_minutes=30,
    )
    return OrderService(
        OrderRepository(),
        PaymentSettingService(PaymentSettingRepository()),
        notifier,
        clock=clock,
        payment_window_minutes=15,
        processing_timeout_minutes=30,
        order_number_prefix="ZG",
    )


@pytest.fixture
def sweeper(order_service) -> ExpirySweeper:
    return ExpirySweeper(order_service.order_repo, order_service)


@pytest.fixture
def make_order(order_service, session):
    def _make(**overrides) -> Order:
        data = {
            "customer_name": "Budi",
            "customer_email": "budi@example.com",
            "customer_phone": CUSTOMER_PHONE,
            "product_id": "prod-ml-001",
            "product_name": "Mobile Legends Mythic Account",
            "product_price": 150000,
            "quantity": 1,
        }
        data.update(overrides)
        return order_service.create_order(session, OrderCreate(**data))

    return _make


@pytest.fixture
def client(engine, order_service):
    def _get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_order_service] = lambda: order_service
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_token(role: str, sub: str = "user-1") -> str:
    claims = {"sub": sub, "role": role, "exp": int(time.time()) + 3600}
    return jwt.encode(claims, os.environ["AUTH_JWT_SECRET"], algorithm="HS256")


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token('admin', sub='admin-1')}"}


@pytest.fixture
def user_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token('user')}"}
