# app/models/order.py
import uuid
from datetime import datetime

from sqlmodel import SQLModel, Field

from app.core.clock import system_clock
from app.models.types import UTCDateTime


class Order(SQLModel, table=True):
    """
    A single purchase of a digital game account.

    Customer and product fields are snapshots taken at checkout and are
    never re-read from a profile or the catalog afterwards.

    Lifecycle columns (status, payment_status, paid_at, delivered_at,
    refund_escalated_at, account_*) are written only by the transition
    methods of OrderService / ExpirySweeper through
    OrderRepository.conditional_update.

    All timestamps are timezone-aware UTC (see UTCDateTime).
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_number: str = Field(
        unique=True,
        index=True,
        description="Human-readable order number, e.g. ZG-20261019-7KQ2XM",
    )

    # Customer snapshot
    customer_name: str = Field(description="Customer name at checkout")
    customer_email: str = Field(description="Customer email at checkout")
    customer_phone: str = Field(description="WhatsApp number at checkout")

    # Product snapshot
    product_id: str = Field(index=True, description="Catalog product reference")
    product_name: str = Field(description="Product name at checkout")
    product_price: int = Field(ge=0, description="Unit price in Rupiah")
    quantity: int = Field(default=1, gt=0, description="Quantity ordered (>=1)")

    # product_price * quantity, computed once at checkout
    total_amount: int = Field(ge=0, description="Order total in Rupiah")

    # PENDING | PROCESSING | COMPLETED | CANCELLED
    status: str = Field(
        default="PENDING",
        index=True,
        description="Order status lifecycle",
    )

    # WAITING | PENDING | SUCCESS | EXPIRED
    payment_status: str = Field(
        default="WAITING",
        index=True,
        description="Payment status lifecycle",
    )

    # qris | va | gopay
    payment_method: str | None = Field(default=None)

    payment_expiry: datetime = Field(
        sa_type=UTCDateTime,
        index=True,
        description="Deadline for the customer to pay",
    )
    paid_at: datetime | None = Field(
        sa_type=UTCDateTime,
        default=None,
        index=True,
        description="When the customer reported payment",
    )
    delivered_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    refund_escalated_at: datetime | None = Field(
        sa_type=UTCDateTime,
        default=None,
        description="When the processing-timeout refund notice was sent",
    )

    # Delivery payload, only set on COMPLETED
    account_email: str | None = Field(default=None)
    account_password: str | None = Field(default=None)

    created_at: datetime = Field(
        sa_type=UTCDateTime,
        default_factory=system_clock.now,
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        sa_type=UTCDateTime,
        default_factory=system_clock.now,
        description="Last state change (UTC)",
    )
