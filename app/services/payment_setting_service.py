# app/services/payment_setting_service.py
import logging

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from app.models.payment_setting import PaymentSetting
from app.repositories.payment_setting_repo import PaymentSettingRepository
from app.schemas.payment_setting import PaymentSettingsUpdate

logger = logging.getLogger(__name__)

# Seeded the first time the settings are listed
DEFAULT_PAYMENT_SETTINGS: list[dict[str, str]] = [
    {"method": "qris", "label": "QRIS", "instructions": "Scan the QR code to pay"},
    {"method": "va", "label": "Virtual Account (VA)", "instructions": "Transfer to the Virtual Account number"},
    {"method": "gopay", "label": "GoPay", "instructions": "Transfer to the GoPay number"},
]


class PaymentSettingService:
    """
    Business logic for the manual payment methods.

    Responsibilities:
      - seed defaults on first use
      - admin upsert of method details
      - answer "can this method be selected?" for the order lifecycle
    """

    def __init__(self, repo: PaymentSettingRepository):
        self.repo = repo

    def list_settings(self, session: Session) -> list[PaymentSetting]:
        settings = self.repo.list_all(session)
        if settings:
            return settings

        logger.info("No payment settings found, seeding defaults")
        try:
            for default in DEFAULT_PAYMENT_SETTINGS:
                self.repo.save(session, PaymentSetting(enabled=True, **default))
            session.commit()
        except IntegrityError:
            # Another request seeded them first
            session.rollback()
            logger.info("Payment settings were seeded concurrently")
        return self.repo.list_all(session)

    def list_enabled(self, session: Session) -> list[PaymentSetting]:
        return [s for s in self.list_settings(session) if s.enabled]

    def is_enabled(self, session: Session, method: str) -> bool:
        return any(s.method == method for s in self.list_enabled(session))

    def update_settings(
        self,
        session: Session,
        payload: PaymentSettingsUpdate,
    ) -> list[PaymentSetting]:
        """
        Upsert each submitted method by its `method` key (admin only).
        """
        for item in payload.settings:
            setting = self.repo.get_by_method(session, item.method)
            if setting is None:
                setting = PaymentSetting(method=item.method, label=item.label)
            for field, value in item.model_dump().items():
                setattr(setting, field, value)
            self.repo.save(session, setting)

        session.commit()
        return self.repo.list_all(session)
