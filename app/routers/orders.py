# app/routers/orders.py
from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.auth import require_admin
from app.core.deps import get_order_service, get_payment_setting_service
from app.database import get_session
from app.schemas.order import (
    OrderAdminRead,
    OrderCreate,
    OrderDeliver,
    OrderPaymentPage,
    OrderRead,
    PaymentMethodSelect,
)
from app.schemas.payment_setting import PaymentSettingRead
from app.services.order_service import OrderService
from app.services.payment_setting_service import PaymentSettingService

router = APIRouter(prefix="/orders", tags=["Orders"])


# -------- Customer-facing endpoints --------


@router.post(
    "/checkout",
    response_model=OrderRead,
)
def checkout(
    payload: OrderCreate,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    """
    Create a PENDING order and open its payment window.
    """
    order = service.create_order(session, payload)
    return service.build_customer_view(order)


# -------- Admin endpoints --------
# Declared before "/{id_or_number}" so "/admin/..." is not read as an order id.


@router.get(
    "",
    response_model=list[OrderAdminRead],
    dependencies=[Depends(require_admin)],
)
def list_all_orders(
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
    skip: int = 0,
    limit: int = 50,
):
    """
    List all orders (admin only), newest first.
    """
    orders = service.list_all_orders(session, skip, limit)
    return [service.build_admin_view(order) for order in orders]


@router.get(
    "/admin/{id_or_number}",
    response_model=OrderAdminRead,
    dependencies=[Depends(require_admin)],
)
def get_order_admin(
    id_or_number: str,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    """
    Get any order including delivered credentials (admin only).
    """
    order = service.read_order(session, id_or_number)
    return service.build_admin_view(order)


@router.post(
    "/{id_or_number}/deliver",
    response_model=OrderAdminRead,
    dependencies=[Depends(require_admin)],
)
def deliver_order(
    id_or_number: str,
    payload: OrderDeliver,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    """
    Hand over the purchased account (admin only).

      PROCESSING -> COMPLETED

    The customer receives the credentials on WhatsApp.
    """
    order = service.deliver(
        session,
        id_or_number,
        payload.account_email,
        payload.account_password,
    )
    return service.build_admin_view(order)


# -------- Customer-facing endpoints by order --------


@router.get(
    "/{id_or_number}",
    response_model=OrderRead,
)
def get_order(
    id_or_number: str,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    """
    Order status, polled by the status page.

    An unpaid order past its deadline is cancelled before it is returned.
    """
    order = service.read_order(session, id_or_number)
    return service.build_customer_view(order)


@router.get(
    "/{id_or_number}/payment",
    response_model=OrderPaymentPage,
)
def get_payment_page(
    id_or_number: str,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
    payment_settings: PaymentSettingService = Depends(get_payment_setting_service),
):
    """
    Order plus the payment methods currently enabled.
    """
    order = service.read_order(session, id_or_number)
    methods = payment_settings.list_enabled(session)
    return OrderPaymentPage(
        order=service.build_customer_view(order),
        payment_methods=[PaymentSettingRead.model_validate(m) for m in methods],
    )


@router.post(
    "/{id_or_number}/payment-method",
    response_model=OrderRead,
)
def select_payment_method(
    id_or_number: str,
    payload: PaymentMethodSelect,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    """
    Record the chosen payment method (order must still be PENDING).
    """
    order = service.select_payment_method(session, id_or_number, payload.payment_method)
    return service.build_customer_view(order)


@router.post(
    "/{id_or_number}/confirm-payment",
    response_model=OrderRead,
)
def confirm_payment(
    id_or_number: str,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    """
    Customer reports the transfer as done.

      PENDING -> PROCESSING (awaiting admin verification)
    """
    order = service.confirm_payment(session, id_or_number)
    return service.build_customer_view(order)
