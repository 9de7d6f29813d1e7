# app/repositories/order_repo.py
import uuid
from datetime import datetime
from typing import Any, Sequence

from sqlalchemy import or_, update
from sqlmodel import Session, select

from app.models.order import Order
from app.services.order_lifecycle import (
    EXPIRABLE_PAYMENT_STATUSES,
    PAYMENT_PENDING,
    PENDING,
    PROCESSING,
)


class OrderRepository:
    """
    Data access layer for orders.

    NOTE:
      - create_order does not commit; checkout commits in the service.
      - conditional_update is the only way lifecycle columns change.
        It flushes a single UPDATE guarded by the expected prior values
        and reports whether the row matched. The caller commits.
    """

    # ---- Reads ----

    def get_by_id(self, session: Session, order_id: uuid.UUID) -> Order | None:
        return session.get(Order, order_id)

    def get_by_id_or_number(self, session: Session, id_or_number: str) -> Order | None:
        """
        Look an order up by UUID or by its human-readable order number.
        """
        conditions = [Order.order_number == id_or_number]
        try:
            conditions.append(Order.id == uuid.UUID(id_or_number))
        except ValueError:
            pass
        stmt = select(Order).where(or_(*conditions))
        return session.exec(stmt).first()

    def list_all(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        stmt = select(Order).order_by(Order.created_at.desc()).offset(skip).limit(limit)
        return session.exec(stmt).all()

    def list_expired_pending(self, session: Session, now: datetime) -> list[Order]:
        """
        Unpaid orders whose payment window closed before `now`.
        """
        stmt = (
            select(Order)
            .where(Order.status == PENDING)
            .where(Order.payment_status.in_(sorted(EXPIRABLE_PAYMENT_STATUSES)))
            .where(Order.payment_expiry < now)
            .order_by(Order.payment_expiry)
        )
        return session.exec(stmt).all()

    def list_stuck_processing(self, session: Session, cutoff: datetime) -> list[Order]:
        """
        Paid orders still waiting for delivery since before `cutoff`
        that have not been escalated yet.
        """
        stmt = (
            select(Order)
            .where(Order.status == PROCESSING)
            .where(Order.payment_status == PAYMENT_PENDING)
            .where(Order.account_email.is_(None))
            .where(Order.refund_escalated_at.is_(None))
            .where(Order.paid_at < cutoff)
            .order_by(Order.paid_at)
        )
        return session.exec(stmt).all()

    # ---- Writes ----

    def create_order(self, session: Session, order: Order) -> Order:
        """
        Insert an Order without committing, but ensure id is populated.
        """
        session.add(order)
        session.flush()
        session.refresh(order)
        return order

    def conditional_update(
        self,
        session: Session,
        order_id: uuid.UUID,
        expected: dict[str, Any],
        values: dict[str, Any],
        conditions: Sequence[Any] = (),
    ) -> bool:
        """
        UPDATE orders SET <values> WHERE id = :id AND <expected> AND <conditions>.

        `expected` maps column names to the values observed when the row
        was read; a None value is matched with IS NULL. `conditions` are
        extra SQL expressions, e.g. `Order.payment_expiry >= now`.

        Returns:
            True if exactly one row changed, False if the row no longer
            matches (another writer got there first, or a condition
            no longer holds).
        """
        stmt = update(Order).where(Order.id == order_id)
        for column, value in expected.items():
            attr = getattr(Order, column)
            stmt = stmt.where(attr.is_(None) if value is None else attr == value)
        for condition in conditions:
            stmt = stmt.where(condition)
        stmt = stmt.values(**values).execution_options(synchronize_session=False)

        result = session.exec(stmt)
        return result.rowcount == 1
