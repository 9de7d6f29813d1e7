# app/schemas/order.py
import uuid
from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from app.schemas.payment_setting import PaymentSettingRead
from app.services.order_lifecycle import OrderStatus, PaymentMethod, PaymentStatus


class OrderCreate(SQLModel):
    """
    Checkout payload.

    Customer provides:
      - customer_name, customer_email, customer_phone (WhatsApp)
      - the product snapshot shown on the checkout page
      - quantity (defaults to 1)

    Backend derives:
      - order_number
      - status = 'PENDING', payment_status = 'WAITING'
      - total_amount = product_price * quantity
      - payment_expiry = now + payment window
    """

    model_config = ConfigDict(extra="forbid")

    customer_name: str
    customer_email: str
    customer_phone: str
    product_id: str
    product_name: str
    product_price: int = Field(gt=0)
    quantity: int = Field(default=1, ge=1)

    @field_validator(
        "customer_name", "customer_email", "customer_phone", "product_id", "product_name"
    )
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @field_validator("customer_email")
    @classmethod
    def looks_like_email(cls, v: str) -> str:
        if "@" not in v:
            raise ValueError("invalid email address")
        return v.lower()

    @field_validator("customer_phone")
    @classmethod
    def has_digits(cls, v: str) -> str:
        digits = "".join(ch for ch in v if ch.isdigit())
        if len(digits) < 8:
            raise ValueError("phone number is too short")
        return v


class OrderRead(SQLModel):
    """
    Customer-facing view of an order.

    account_email / account_password are None until the order is
    COMPLETED, whatever the row holds.
    """

    id: uuid.UUID
    order_number: str
    customer_name: str
    customer_email: str
    customer_phone: str
    product_id: str
    product_name: str
    product_price: int
    quantity: int
    total_amount: int
    status: OrderStatus
    payment_status: PaymentStatus
    payment_method: PaymentMethod | None
    payment_expiry: datetime
    paid_at: datetime | None
    delivered_at: datetime | None
    account_email: str | None = None
    account_password: str | None = None
    created_at: datetime


class OrderAdminRead(OrderRead):
    """
    Admin view: adds escalation tracking and the last state change.
    """

    refund_escalated_at: datetime | None
    updated_at: datetime


class PaymentMethodSelect(SQLModel):
    model_config = ConfigDict(extra="forbid")

    payment_method: PaymentMethod


class OrderDeliver(SQLModel):
    """
    Admin payload to hand over the purchased account.
    """

    model_config = ConfigDict(extra="forbid")

    account_email: str
    account_password: str

    @field_validator("account_email", "account_password")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v


class SweepResult(SQLModel):
    """
    Outcome of one expiry sweep.

    checked   : orders examined by both scans
    expired   : order numbers moved to CANCELLED/EXPIRED by this run
    escalated : order numbers that got a refund escalation in this run
    failed    : order numbers whose processing raised
    """

    checked: int = 0
    expired: list[str] = []
    escalated: list[str] = []
    failed: list[str] = []


class OrderPaymentPage(SQLModel):
    """
    Everything the payment page needs: the order plus the enabled
    payment methods to choose from.
    """

    order: OrderRead
    payment_methods: list[PaymentSettingRead]
