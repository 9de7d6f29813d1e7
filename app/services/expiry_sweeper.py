# app/services/expiry_sweeper.py
import logging
import threading
from typing import Callable

from sqlmodel import Session

from app.repositories.order_repo import OrderRepository
from app.schemas.order import SweepResult
from app.services.order_service import OrderService

logger = logging.getLogger(__name__)


class ExpirySweeper:
    """
    Batch job that pushes overdue orders through the time-based transitions.

    Two independent scans per run:
      1. PENDING orders past payment_expiry      -> CANCELLED/EXPIRED + notice
      2. PROCESSING orders past the timeout      -> refund notice (once)

    Each order is handled on its own: an error on one is logged, rolled
    back and recorded in `failed`, and the scan moves on. The transitions
    themselves are conditional writes, so a sweep can overlap with lazy
    expiry on reads or with another sweep without double notification.
    """

    def __init__(self, order_repo: OrderRepository, order_service: OrderService):
        self.order_repo = order_repo
        self.order_service = order_service

    def run(self, session: Session) -> SweepResult:
        now = self.order_service.clock.now()
        result = SweepResult()

        expired = self.order_repo.list_expired_pending(session, now)
        result.checked += len(expired)
        for order in expired:
            order_number = order.order_number
            try:
                if self.order_service.expire_if_due(session, order):
                    result.expired.append(order_number)
            except Exception:
                session.rollback()
                logger.exception("Sweep: failed to expire order %s", order_number)
                result.failed.append(order_number)

        cutoff = self.order_service.processing_cutoff(now)
        stuck = self.order_repo.list_stuck_processing(session, cutoff)
        result.checked += len(stuck)
        for order in stuck:
            order_number = order.order_number
            try:
                if self.order_service.escalate_refund(session, order):
                    result.escalated.append(f"{order_number} (processing timeout)")
            except Exception:
                session.rollback()
                logger.exception("Sweep: failed to escalate order %s", order_number)
                result.failed.append(order_number)

        if result.expired or result.escalated or result.failed:
            logger.info(
                "Sweep done: checked=%d expired=%d escalated=%d failed=%d",
                result.checked,
                len(result.expired),
                len(result.escalated),
                len(result.failed),
            )
        return result


class ExpirySweeperThread:
    """
    Runs ExpirySweeper on a fixed interval in a daemon thread.

    Each run opens a fresh session from `session_factory`. stop() wakes
    the thread immediately instead of waiting out the interval.
    """

    def __init__(
        self,
        sweeper: ExpirySweeper,
        session_factory: Callable[[], Session],
        interval_seconds: float = 300.0,
    ) -> None:
        self.sweeper = sweeper
        self.session_factory = session_factory
        self.interval_seconds = interval_seconds
        self._stop_event = threading.Event()
        self._thread = threading.Thread(target=self._run, name="ExpirySweeper", daemon=True)

    def start(self) -> None:
        logger.info("Expiry sweeper started (every %ss)", self.interval_seconds)
        self._thread.start()

    def stop(self, join: bool = True, timeout: float | None = 10.0) -> None:
        self._stop_event.set()
        if join and self._thread.is_alive():
            self._thread.join(timeout)
        logger.info("Expiry sweeper stopped")

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def run_once(self) -> SweepResult | None:
        try:
            with self.session_factory() as session:
                return self.sweeper.run(session)
        except Exception:
            # Keep the thread alive; the next tick retries.
            logger.exception("Expiry sweep run failed")
            return None

    def _run(self) -> None:
        while not self._stop_event.is_set():
            self.run_once()
            self._stop_event.wait(self.interval_seconds)
