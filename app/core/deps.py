# app/core/deps.py
from functools import lru_cache

from fastapi import Depends

from app.core.clock import system_clock
from app.core.config import get_settings
from app.core.whatsapp_client import WhatsAppGateway
from app.repositories.order_repo import OrderRepository
from app.repositories.payment_setting_repo import PaymentSettingRepository
from app.services.expiry_sweeper import ExpirySweeper
from app.services.notification_service import NotificationService
from app.services.order_service import OrderService
from app.services.payment_setting_service import PaymentSettingService

settings = get_settings()


@lru_cache
def get_payment_setting_service() -> PaymentSettingService:
    return PaymentSettingService(PaymentSettingRepository())


@lru_cache
def get_notification_service() -> NotificationService:
    gateway = WhatsAppGateway(
        api_url=settings.FONNTE_API_URL,
        token=settings.FONNTE_API_TOKEN,
        country_code=settings.FONNTE_COUNTRY_CODE,
        timeout=settings.NOTIFY_TIMEOUT_SECONDS,
    )
    return NotificationService(
        gateway,
        admin_phone=settings.ADMIN_WHATSAPP,
        store_name=settings.STORE_NAME,
        processing_timeout_minutes=settings.PROCESSING_TIMEOUT_MINUTES,
    )


@lru_cache
def get_order_service() -> OrderService:
    """
    Shared OrderService wired from settings.

    Routers depend on this function so tests can swap in a service with
    a manual clock and a recording gateway via app.dependency_overrides.
    """
    return OrderService(
        OrderRepository(),
        get_payment_setting_service(),
        get_notification_service(),
        clock=system_clock,
        payment_window_minutes=settings.PAYMENT_WINDOW_MINUTES,
        processing_timeout_minutes=settings.PROCESSING_TIMEOUT_MINUTES,
        order_number_prefix=settings.ORDER_NUMBER_PREFIX,
    )


def get_expiry_sweeper(
    order_service: OrderService = Depends(get_order_service),
) -> ExpirySweeper:
    return ExpirySweeper(order_service.order_repo, order_service)
