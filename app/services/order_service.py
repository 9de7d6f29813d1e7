# app/services/order_service.py
import logging
import secrets
import string
from datetime import datetime, timedelta
from typing import Any, Sequence

from fastapi import HTTPException, status
from sqlmodel import Session

from app.core.clock import Clock, system_clock
from app.models.order import Order
from app.repositories.order_repo import OrderRepository
from app.schemas.order import OrderAdminRead, OrderCreate, OrderRead
from app.services.errors import InvalidTransition, OrderNotFound
from app.services.notification_service import NotificationService
from app.services.order_lifecycle import (
    CANCELLED,
    COMPLETED,
    CONFIRM_PAYMENT,
    DELIVER,
    ESCALATE_REFUND,
    EXPIRE,
    PAYMENT_EXPIRED,
    PAYMENT_WAITING,
    PENDING,
    SELECT_PAYMENT_METHOD,
    Transition,
    assert_valid_state,
    is_payment_expired,
    is_processing_stuck,
)
from app.services.payment_setting_service import PaymentSettingService

logger = logging.getLogger(__name__)

ORDER_NUMBER_ALPHABET = string.ascii_uppercase + string.digits
ORDER_NUMBER_SUFFIX_LENGTH = 6


class OrderService:
    """
    Business logic for the order/payment lifecycle.

    Responsibilities:
      - Create orders at checkout with a payment deadline
      - Customer transitions: select payment method, confirm payment
      - Admin transition: deliver account credentials
      - Lazy expiry on every read
      - Expire / escalate transitions used by ExpirySweeper

    Every state change goes through _apply(), a single conditional
    UPDATE against the status observed on the row. Notifications are
    sent only by the caller that actually changed the row, after the
    commit, so concurrent readers, the sweeper and retries never notify
    twice for the same transition.
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        payment_settings: PaymentSettingService,
        notifier: NotificationService,
        clock: Clock = system_clock,
        payment_window_minutes: int = 15,
        processing_timeout_minutes: int = 30,
        order_number_prefix: str = "ZG",
    ):
        self.order_repo = order_repo
        self.payment_settings = payment_settings
        self.notifier = notifier
        self.clock = clock
        self.payment_window = timedelta(minutes=payment_window_minutes)
        self.processing_timeout = timedelta(minutes=processing_timeout_minutes)
        self.order_number_prefix = order_number_prefix

    # -------- Customer-facing operations --------

    def create_order(self, session: Session, payload: OrderCreate) -> Order:
        """
        Checkout: snapshot customer + product and open the payment window.
        """
        now = self.clock.now()
        order = Order(
            order_number=self._generate_order_number(now),
            customer_name=payload.customer_name,
            customer_email=payload.customer_email,
            customer_phone=payload.customer_phone,
            product_id=payload.product_id,
            product_name=payload.product_name,
            product_price=payload.product_price,
            quantity=payload.quantity,
            total_amount=payload.product_price * payload.quantity,
            status=PENDING,
            payment_status=PAYMENT_WAITING,
            payment_expiry=now + self.payment_window,
            created_at=now,
            updated_at=now,
        )
        order = self.order_repo.create_order(session, order)
        session.commit()
        session.refresh(order)

        logger.info(
            "Order %s created, payment due by %s",
            order.order_number,
            order.payment_expiry.isoformat(),
        )
        return order

    def read_order(self, session: Session, id_or_number: str) -> Order:
        """
        Load an order by id or order number, expiring it first if its
        payment window has already closed.

        Raises:
            OrderNotFound: if nothing matches.
        """
        order = self.order_repo.get_by_id_or_number(session, id_or_number)
        if order is None:
            raise OrderNotFound(id_or_number)

        self.expire_if_due(session, order)
        return order

    def select_payment_method(
        self,
        session: Session,
        id_or_number: str,
        method: str,
    ) -> Order:
        """
        Record the customer's chosen payment method on a PENDING order.

        Re-selecting is allowed while the order is still PENDING.
        """
        order = self.read_order(session, id_or_number)
        self._ensure_not_expired(order, SELECT_PAYMENT_METHOD)
        if not SELECT_PAYMENT_METHOD.accepts(order):
            raise InvalidTransition(SELECT_PAYMENT_METHOD.event, order.status)

        if not self.payment_settings.is_enabled(session, method):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Payment method '{method}' is not available",
            )

        if order.payment_method == method:
            return order

        changed = self._apply(
            session,
            order,
            SELECT_PAYMENT_METHOD,
            expected={"payment_method": order.payment_method},
            values={"payment_method": method},
            conditions=self._payment_window_open(self.clock.now()),
        )
        if not changed:
            if order.status == PENDING and order.payment_method == method:
                return order
            self._reject_lost_write(session, order, SELECT_PAYMENT_METHOD)
        return order

    def confirm_payment(self, session: Session, id_or_number: str) -> Order:
        """
        Customer reports "I have paid".

        PENDING -> PROCESSING, payment_status -> PENDING, paid_at = now.
        Calling it again on a PROCESSING order is a no-op.
        """
        order = self.read_order(session, id_or_number)
        if CONFIRM_PAYMENT.reached_by(order):
            return order

        self._ensure_not_expired(order, CONFIRM_PAYMENT)
        if not CONFIRM_PAYMENT.accepts(order):
            raise InvalidTransition(CONFIRM_PAYMENT.event, order.status)
        if not order.payment_method:
            raise InvalidTransition(
                CONFIRM_PAYMENT.event,
                order.status,
                reason="Select a payment method first",
            )

        now = self.clock.now()
        changed = self._apply(
            session,
            order,
            CONFIRM_PAYMENT,
            values={"paid_at": now},
            conditions=self._payment_window_open(now),
        )
        if not changed:
            if CONFIRM_PAYMENT.reached_by(order):
                return order
            self._reject_lost_write(session, order, CONFIRM_PAYMENT)

        logger.info("Order %s marked as paid via %s", order.order_number, order.payment_method)
        self.notifier.notify_admin_payment(order)
        self.notifier.notify_customer_processing(order)
        return order

    # -------- Admin operations --------

    def list_all_orders(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        """
        List all orders (admin only), newest first, with lazy expiry.
        """
        orders = self.order_repo.list_all(session, skip, limit)
        for order in orders:
            self.expire_if_due(session, order)
        return orders

    def deliver(
        self,
        session: Session,
        id_or_number: str,
        account_email: str,
        account_password: str,
    ) -> Order:
        """
        Admin verified the payment and hands over the account.

        PROCESSING -> COMPLETED, payment_status -> SUCCESS, delivered_at = now.
        Repeating the same delivery is a no-op; delivering different
        credentials to a COMPLETED order is rejected.
        """
        order = self.read_order(session, id_or_number)
        if self._delivered_with(order, account_email, account_password):
            return order

        if not DELIVER.accepts(order):
            raise InvalidTransition(DELIVER.event, order.status)

        changed = self._apply(
            session,
            order,
            DELIVER,
            expected={"account_email": None},
            values={
                "account_email": account_email,
                "account_password": account_password,
                "delivered_at": self.clock.now(),
            },
        )
        if not changed:
            if self._delivered_with(order, account_email, account_password):
                return order
            raise InvalidTransition(DELIVER.event, order.status)

        logger.info("Order %s delivered", order.order_number)
        self.notifier.notify_customer_delivery(order)
        return order

    # -------- Time-based transitions --------

    def expire_if_due(self, session: Session, order: Order) -> bool:
        """
        Cancel an unpaid order whose payment window has closed.

        Returns:
            True if this call performed the transition (and notified),
            False if the order was not due or someone else expired it.
        """
        if not is_payment_expired(order, self.clock.now()):
            return False

        changed = self._apply(session, order, EXPIRE)
        if changed:
            logger.info("Order %s expired and cancelled", order.order_number)
            self.notifier.notify_customer_cancelled(order)
        return changed

    def processing_cutoff(self, now: datetime) -> datetime:
        return now - self.processing_timeout

    def escalate_refund(self, session: Session, order: Order) -> bool:
        """
        Send the refund notice for a paid order nobody delivered in time.

        The order stays PROCESSING; refund_escalated_at records that the
        notice went out so later sweeps skip it.
        """
        now = self.clock.now()
        if not is_processing_stuck(order, self.processing_cutoff(now)):
            return False

        changed = self._apply(
            session,
            order,
            ESCALATE_REFUND,
            expected={"account_email": None, "refund_escalated_at": None},
            values={"refund_escalated_at": now},
        )
        if changed:
            logger.warning(
                "Order %s not delivered within %s, refund escalated",
                order.order_number,
                self.processing_timeout,
            )
            self.notifier.notify_customer_refund(order)
        return changed

    # -------- Views --------

    def build_customer_view(self, order: Order) -> OrderRead:
        """
        Customer DTO; credentials stay hidden until COMPLETED.
        """
        view = OrderRead.model_validate(order)
        if order.status != COMPLETED:
            view.account_email = None
            view.account_password = None
        return view

    def build_admin_view(self, order: Order) -> OrderAdminRead:
        return OrderAdminRead.model_validate(order)

    # -------- Helpers --------

    def _apply(
        self,
        session: Session,
        order: Order,
        transition: Transition,
        expected: dict[str, Any] | None = None,
        values: dict[str, Any] | None = None,
        conditions: Sequence[Any] = (),
    ) -> bool:
        """
        Conditionally write `transition` against the state observed on
        `order`, commit, and reload `order` with whatever is now stored.

        `conditions` are extra SQL guards checked by the same UPDATE.

        Returns:
            True if this call changed the row.
        """
        target_status = transition.to_status
        target_payment_status = transition.target_payment_status(order)
        assert_valid_state(target_status, target_payment_status)

        guard = {"status": order.status, "payment_status": order.payment_status}
        guard.update(expected or {})

        changes = {
            "status": target_status,
            "payment_status": target_payment_status,
            "updated_at": self.clock.now(),
        }
        changes.update(values or {})

        changed = self.order_repo.conditional_update(
            session, order.id, guard, changes, conditions
        )
        session.commit()
        session.refresh(order)

        if not changed:
            logger.info(
                "Order %s: %s lost a concurrent update, now %s/%s",
                order.order_number,
                transition.event,
                order.status,
                order.payment_status,
            )
        return changed

    def _ensure_not_expired(self, order: Order, transition: Transition) -> None:
        if order.status == CANCELLED and order.payment_status == PAYMENT_EXPIRED:
            raise InvalidTransition(
                transition.event,
                order.status,
                reason="Payment window has expired",
            )

    @staticmethod
    def _payment_window_open(now: datetime) -> list[Any]:
        # Evaluated by the UPDATE itself, not at read time
        return [Order.payment_expiry >= now]

    def _reject_lost_write(
        self,
        session: Session,
        order: Order,
        transition: Transition,
    ) -> None:
        """
        Raise for a customer write that matched no row. If the payment
        window closed in the meantime the order is expired first.
        """
        self.expire_if_due(session, order)
        self._ensure_not_expired(order, transition)
        raise InvalidTransition(transition.event, order.status)

    @staticmethod
    def _delivered_with(order: Order, account_email: str, account_password: str) -> bool:
        return (
            DELIVER.reached_by(order)
            and order.account_email == account_email
            and order.account_password == account_password
        )

    def _generate_order_number(self, now: datetime) -> str:
        suffix = "".join(
            secrets.choice(ORDER_NUMBER_ALPHABET)
            for _ in range(ORDER_NUMBER_SUFFIX_LENGTH)
        )
        return f"{self.order_number_prefix}-{now:%Y%m%d}-{suffix}"

