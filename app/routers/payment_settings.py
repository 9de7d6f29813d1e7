# app/routers/payment_settings.py
from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.auth import require_admin
from app.core.deps import get_payment_setting_service
from app.database import get_session
from app.schemas.payment_setting import PaymentSettingRead, PaymentSettingsUpdate
from app.services.payment_setting_service import PaymentSettingService

router = APIRouter(prefix="/payment-settings", tags=["Payment settings"])


@router.get(
    "",
    response_model=list[PaymentSettingRead],
)
def list_payment_settings(
    session: Session = Depends(get_session),
    service: PaymentSettingService = Depends(get_payment_setting_service),
):
    """
    All payment methods, enabled or not. Defaults are created on first call.
    """
    return [PaymentSettingRead.model_validate(s) for s in service.list_settings(session)]


@router.put(
    "",
    response_model=list[PaymentSettingRead],
    dependencies=[Depends(require_admin)],
)
def update_payment_settings(
    payload: PaymentSettingsUpdate,
    session: Session = Depends(get_session),
    service: PaymentSettingService = Depends(get_payment_setting_service),
):
    """
    Upsert payment methods by `method` (admin only).
    """
    settings = service.update_settings(session, payload)
    return [PaymentSettingRead.model_validate(s) for s in settings]
