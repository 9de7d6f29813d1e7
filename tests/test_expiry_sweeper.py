# tests/test_expiry_sweeper.py
from sqlmodel import Session

from app.services.expiry_sweeper import ExpirySweeperThread
from tests.conftest import CUSTOMER_PHONE


def _pay(order_service, session, order, method="va"):
    order_service.select_payment_method(session, order.order_number, method)
    return order_service.confirm_payment(session, order.order_number)


def test_scenario_a_unpaid_order_is_cancelled_once(
    sweeper, order_service, session, make_order, clock, gateway
):
    order = make_order()
    clock.advance(minutes=16)

    result = sweeper.run(session)

    assert result.expired == [order.order_number]
    assert result.failed == []
    session.refresh(order)
    assert order.status == "CANCELLED"
    assert order.payment_status == "EXPIRED"
    cancelled = [m for m in gateway.messages_to(CUSTOMER_PHONE) if "ORDER CANCELLED" in m]
    assert len(cancelled) == 1
    assert order.order_number in cancelled[0]


def test_sweep_leaves_orders_inside_window_alone(sweeper, session, make_order, clock, gateway):
    order = make_order()
    clock.advance(minutes=10)

    result = sweeper.run(session)

    assert result.checked == 0
    assert result.expired == []
    session.refresh(order)
    assert order.status == "PENDING"
    assert gateway.sent == []


def test_scenario_c_stuck_processing_escalates_without_cancelling(
    sweeper, order_service, session, make_order, clock, gateway
):
    order = make_order()
    _pay(order_service, session, order)
    clock.advance(minutes=31)

    result = sweeper.run(session)

    assert result.escalated == [f"{order.order_number} (processing timeout)"]
    session.refresh(order)
    assert order.status == "PROCESSING"
    assert order.payment_status == "PENDING"
    assert order.refund_escalated_at == clock.now()
    assert gateway.count("REFUND IN PROGRESS") == 1


def test_processing_within_timeout_is_not_escalated(
    sweeper, order_service, session, make_order, clock, gateway
):
    order = make_order()
    _pay(order_service, session, order)
    clock.advance(minutes=29)

    result = sweeper.run(session)

    assert result.escalated == []
    assert gateway.count("REFUND IN PROGRESS") == 0


def test_escalated_order_can_still_be_delivered(
    sweeper, order_service, session, make_order, clock
):
    order = make_order()
    _pay(order_service, session, order)
    clock.advance(minutes=45)
    sweeper.run(session)

    order = order_service.deliver(session, order.order_number, "late@x.com", "pw")

    assert order.status == "COMPLETED"
    assert order.payment_status == "SUCCESS"


def test_two_sweeps_in_a_row_do_not_renotify(
    sweeper, order_service, session, make_order, clock, gateway
):
    unpaid = make_order()
    paid = make_order(customer_phone="089999999999")
    _pay(order_service, session, paid)
    clock.advance(minutes=40)

    first = sweeper.run(session)
    sent_after_first = list(gateway.sent)
    second = sweeper.run(session)

    assert first.expired == [unpaid.order_number]
    assert len(first.escalated) == 1
    assert second.expired == []
    assert second.escalated == []
    assert gateway.sent == sent_after_first

    session.refresh(unpaid)
    session.refresh(paid)
    assert (unpaid.status, unpaid.payment_status) == ("CANCELLED", "EXPIRED")
    assert (paid.status, paid.payment_status) == ("PROCESSING", "PENDING")


def test_sweep_and_lazy_read_converge_without_double_notice(
    engine, sweeper, order_service, make_order, clock, gateway
):
    order = make_order()
    clock.advance(minutes=16)

    with Session(engine) as reader, Session(engine) as sweep_session:
        stale = order_service.order_repo.get_by_id_or_number(reader, order.order_number)
        assert stale.status == "PENDING"

        result = sweeper.run(sweep_session)
        seen = order_service.read_order(reader, order.order_number)

    assert result.expired == [order.order_number]
    assert (seen.status, seen.payment_status) == ("CANCELLED", "EXPIRED")
    assert gateway.count("ORDER CANCELLED") == 1


def test_notification_failure_still_commits_expiry(
    sweeper, session, make_order, clock, gateway
):
    failing = make_order(customer_phone="081111111111")
    ok = make_order(customer_phone="082222222222")
    gateway.fail_for = {"081111111111"}
    clock.advance(minutes=16)

    result = sweeper.run(session)

    assert sorted(result.expired) == sorted([failing.order_number, ok.order_number])
    session.refresh(failing)
    assert failing.status == "CANCELLED"


def test_error_on_one_order_does_not_abort_batch(
    sweeper, order_service, session, make_order, clock, gateway, monkeypatch
):
    bad = make_order()
    good = make_order()
    clock.advance(minutes=16)

    original = order_service.expire_if_due

    def flaky(session, order):
        if order.order_number == bad.order_number:
            raise RuntimeError("store unavailable")
        return original(session, order)

    monkeypatch.setattr(order_service, "expire_if_due", flaky)

    result = sweeper.run(session)

    assert result.failed == [bad.order_number]
    assert result.expired == [good.order_number]
    session.refresh(good)
    session.refresh(bad)
    assert good.status == "CANCELLED"
    assert bad.status == "PENDING"

    # Next run picks the failed order up again
    monkeypatch.setattr(order_service, "expire_if_due", original)
    retry = sweeper.run(session)
    assert retry.expired == [bad.order_number]
    assert gateway.count("ORDER CANCELLED") == 2


def test_sweeper_thread_runs_and_stops(engine, sweeper, make_order, clock, gateway):
    order = make_order()
    clock.advance(minutes=16)

    thread = ExpirySweeperThread(
        sweeper,
        session_factory=lambda: Session(engine),
        interval_seconds=3600,
    )
    result = thread.run_once()

    assert result is not None
    assert result.expired == [order.order_number]

    thread.start()
    assert thread.is_alive()
    thread.stop(join=True)
    assert not thread.is_alive()
    assert gateway.count("ORDER CANCELLED") == 1


def test_sweeper_thread_survives_run_failure(sweeper):
    def broken_factory():
        raise RuntimeError("no database")

    thread = ExpirySweeperThread(sweeper, session_factory=broken_factory, interval_seconds=3600)

    assert thread.run_once() is None
