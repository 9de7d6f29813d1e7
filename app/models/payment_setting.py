# app/models/payment_setting.py
import uuid

from sqlmodel import SQLModel, Field


class PaymentSetting(SQLModel, table=True):
    """
    A manual payment method offered on the payment page.

    Only methods with enabled=True can be selected for an order.
    Method-specific fields are optional and only meaningful for
    their own method (qris_image for qris, va_number for va, ...).
    """

    __tablename__ = "payment_settings"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    # qris | va | gopay
    method: str = Field(unique=True, index=True)
    label: str
    enabled: bool = Field(default=True)
    instructions: str | None = Field(default=None)

    qris_image: str | None = Field(default=None)
    bank_name: str | None = Field(default=None)
    va_number: str | None = Field(default=None)
    account_name: str | None = Field(default=None)
    gopay_number: str | None = Field(default=None)
    gopay_name: str | None = Field(default=None)
