# app/schemas/payment_setting.py
import uuid

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel

from app.services.order_lifecycle import PaymentMethod


class PaymentSettingRead(SQLModel):
    """
    Payment method as shown on the payment page.
    """

    id: uuid.UUID
    method: PaymentMethod
    label: str
    enabled: bool
    instructions: str | None
    qris_image: str | None
    bank_name: str | None
    va_number: str | None
    account_name: str | None
    gopay_number: str | None
    gopay_name: str | None


class PaymentSettingUpsert(SQLModel):
    """
    Admin payload for one payment method. Missing optional fields are
    cleared, matching a full replace of the method's details.
    """

    model_config = ConfigDict(extra="forbid")

    method: PaymentMethod
    label: str
    enabled: bool = True
    instructions: str | None = None
    qris_image: str | None = None
    bank_name: str | None = None
    va_number: str | None = None
    account_name: str | None = None
    gopay_number: str | None = None
    gopay_name: str | None = None

    @field_validator("label")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @field_validator(
        "instructions",
        "qris_image",
        "bank_name",
        "va_number",
        "account_name",
        "gopay_number",
        "gopay_name",
    )
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class PaymentSettingsUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    settings: list[PaymentSettingUpsert]
