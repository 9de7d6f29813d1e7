# app/repositories/payment_setting_repo.py
from sqlmodel import Session, select

from app.models.payment_setting import PaymentSetting


class PaymentSettingRepository:
    """
    Data access layer for PaymentSetting.

    Responsibilities:
      - Pure DB operations (queries + upsert)
      - No FastAPI, no HTTP, no business logic
    """

    def list_all(self, session: Session) -> list[PaymentSetting]:
        stmt = select(PaymentSetting).order_by(PaymentSetting.method)
        return session.exec(stmt).all()

    def get_by_method(self, session: Session, method: str) -> PaymentSetting | None:
        stmt = select(PaymentSetting).where(PaymentSetting.method == method)
        return session.exec(stmt).first()

    def save(self, session: Session, setting: PaymentSetting) -> PaymentSetting:
        """Insert or update a setting without committing."""
        session.add(setting)
        session.flush()
        session.refresh(setting)
        return setting
