# app/services/order_lifecycle.py
"""
Order lifecycle contract shared by OrderService and ExpirySweeper.

State machine:

  PENDING/WAITING ──select method──▶ PENDING/WAITING (method recorded)
  PENDING/WAITING ──confirm paid───▶ PROCESSING/PENDING   notify admin
  PROCESSING/PENDING ──deliver─────▶ COMPLETED/SUCCESS    notify customer
  PENDING/{WAITING,PENDING} ─expire▶ CANCELLED/EXPIRED    notify customer
  PROCESSING/PENDING ──escalate────▶ PROCESSING/PENDING   notify customer (once)

COMPLETED and CANCELLED are terminal.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from app.models.order import Order

OrderStatus = Literal["PENDING", "PROCESSING", "COMPLETED", "CANCELLED"]
PaymentStatus = Literal["WAITING", "PENDING", "SUCCESS", "EXPIRED"]
PaymentMethod = Literal["qris", "va", "gopay"]

PENDING = "PENDING"
PROCESSING = "PROCESSING"
COMPLETED = "COMPLETED"
CANCELLED = "CANCELLED"

PAYMENT_WAITING = "WAITING"
PAYMENT_PENDING = "PENDING"
PAYMENT_SUCCESS = "SUCCESS"
PAYMENT_EXPIRED = "EXPIRED"

TERMINAL_STATUSES = frozenset({COMPLETED, CANCELLED})

# The only (status, payment_status) pairs an order may be written with
VALID_STATE_COMBINATIONS: dict[str, frozenset[str]] = {
    PENDING: frozenset({PAYMENT_WAITING, PAYMENT_PENDING}),
    PROCESSING: frozenset({PAYMENT_PENDING}),
    COMPLETED: frozenset({PAYMENT_SUCCESS}),
    CANCELLED: frozenset({PAYMENT_EXPIRED}),
}

EXPIRABLE_PAYMENT_STATUSES = frozenset({PAYMENT_WAITING, PAYMENT_PENDING})


@dataclass(frozen=True)
class Transition:
    """
    One edge of the state machine.

    from_payment_statuses lists every payment_status the guard accepts;
    the conditional write pins the exact value observed on the row.
    """

    event: str
    from_status: str
    from_payment_statuses: frozenset[str]
    to_status: str
    to_payment_status: str | None = None  # None = unchanged

    def __post_init__(self) -> None:
        for observed in self.from_payment_statuses:
            assert_valid_state(self.from_status, observed)
            target = self.to_payment_status or observed
            assert_valid_state(self.to_status, target)

    def accepts(self, order: Order) -> bool:
        return (
            order.status == self.from_status
            and order.payment_status in self.from_payment_statuses
        )

    def target_payment_status(self, order: Order) -> str:
        return self.to_payment_status or order.payment_status

    def reached_by(self, order: Order) -> bool:
        """True if the order already sits in this transition's end state."""
        if order.status != self.to_status:
            return False
        if self.to_payment_status is None:
            return True
        return order.payment_status == self.to_payment_status


def assert_valid_state(status: str, payment_status: str) -> None:
    allowed = VALID_STATE_COMBINATIONS.get(status)
    if allowed is None or payment_status not in allowed:
        raise ValueError(f"Invalid order state: {status}/{payment_status}")


SELECT_PAYMENT_METHOD = Transition(
    event="select_payment_method",
    from_status=PENDING,
    from_payment_statuses=EXPIRABLE_PAYMENT_STATUSES,
    to_status=PENDING,
)

CONFIRM_PAYMENT = Transition(
    event="confirm_payment",
    from_status=PENDING,
    from_payment_statuses=EXPIRABLE_PAYMENT_STATUSES,
    to_status=PROCESSING,
    to_payment_status=PAYMENT_PENDING,
)

DELIVER = Transition(
    event="deliver",
    from_status=PROCESSING,
    from_payment_statuses=frozenset({PAYMENT_PENDING}),
    to_status=COMPLETED,
    to_payment_status=PAYMENT_SUCCESS,
)

EXPIRE = Transition(
    event="expire",
    from_status=PENDING,
    from_payment_statuses=EXPIRABLE_PAYMENT_STATUSES,
    to_status=CANCELLED,
    to_payment_status=PAYMENT_EXPIRED,
)

ESCALATE_REFUND = Transition(
    event="escalate_refund",
    from_status=PROCESSING,
    from_payment_statuses=frozenset({PAYMENT_PENDING}),
    to_status=PROCESSING,
)


def is_payment_expired(order: Order, now: datetime) -> bool:
    """
    True if an unpaid order is past its payment window.

    Only PENDING orders expire; once the customer has confirmed payment
    the processing timeout applies instead.
    """
    return (
        EXPIRE.accepts(order)
        and order.payment_expiry is not None
        and order.payment_expiry < now
    )


def is_processing_stuck(order: Order, cutoff: datetime) -> bool:
    """True if a paid order has waited past the cutoff without delivery."""
    return (
        ESCALATE_REFUND.accepts(order)
        and order.account_email is None
        and order.refund_escalated_at is None
        and order.paid_at is not None
        and order.paid_at < cutoff
    )
