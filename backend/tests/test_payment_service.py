"""
Lifecycle engine tests: creation rules, simulate/webhook transitions, expiry sweep.
"""
from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest

from upi_tracker.exceptions import (
    AlreadyFinalizedError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from upi_tracker.models.payment import PaymentStatus
from upi_tracker.schemas.schemas import PaymentCreate
from upi_tracker.services.payment_service import LifecycleConfig, PaymentService, compute_expires_at
from upi_tracker.services.payment_store import PaymentStore


def _create(service, **overrides):
    data = {"upi_id": "merchant@okbank", "amount": 100}
    data.update(overrides)
    return service.create_payment(PaymentCreate(**data))


# ──────────────── create ────────────────

def test_create_rejects_two_char_upi_id(service):
    with pytest.raises(ValidationError, match="at least 3 characters"):
        _create(service, upi_id="ab")


def test_create_rejects_upi_id_that_is_short_after_trim(service):
    with pytest.raises(ValidationError):
        _create(service, upi_id="  ab  ")


def test_create_accepts_three_char_upi_id(service):
    assert _create(service, upi_id="abc").upi_id == "abc"


@pytest.mark.parametrize("amount", [0, -5, "abc", None, float("inf"), float("nan"), "Infinity"])
def test_create_rejects_invalid_amounts(service, amount):
    with pytest.raises(ValidationError, match="positive number"):
        _create(service, amount=amount)


def test_create_accepts_smallest_amount(service):
    assert _create(service, amount=0.01).amount == pytest.approx(0.01)


@pytest.mark.parametrize("amount", ["2.675", 2.675, "1.005"])
def test_stored_amount_matches_qr_amount(service, store, amount):
    view = _create(service, amount=amount)
    stored = store.get_payment(view.id).amount

    am = view.upi_intent_url.split("&am=", 1)[1].split("&", 1)[0]
    assert am == f"{stored:.2f}"
    assert view.amount == pytest.approx(float(am))


def test_half_paisa_rounds_up(service):
    view = _create(service, amount="2.675")
    assert view.amount == pytest.approx(2.68)
    assert "&am=2.68&" in view.upi_intent_url


@pytest.mark.parametrize("amount", ["0.001", 0.004, "0.0049"])
def test_amount_that_rounds_to_zero_is_rejected(amount):
    store = MagicMock(spec=PaymentStore)

    with pytest.raises(ValidationError, match="positive number"):
        PaymentService(store).create_payment(PaymentCreate(upi_id="a@b", amount=amount))
    store.insert_payment.assert_not_called()


def test_create_persists_pending_record_with_single_log(service, store):
    view = _create(
        service,
        upi_id=" merchant@okbank ",
        amount="250.5",
        payer_name=" Asha ",
        note=" Rent ",
        metadata={"order": "A1"},
    )

    assert view.status is PaymentStatus.PENDING
    assert view.upi_id == "merchant@okbank"
    assert view.payer_name == "Asha"
    assert view.note == "Rent"
    assert view.amount == pytest.approx(250.5)
    assert view.transaction_ref != view.id
    assert view.upi_intent_url == (
        "upi://pay?pa=merchant%40okbank&am=250.50&cu=INR&tn=Rent"
        f"&tr={view.transaction_ref}&pn=Asha"
    )
    assert view.metadata == {"order": "A1", "upi_intent_url": view.upi_intent_url}
    assert view.qr_code_data_url.startswith("data:image/png;base64,")
    assert view.completed_at is None

    logs = store.list_logs(view.id)
    assert len(logs) == 1
    assert logs[0].status == PaymentStatus.PENDING.value
    assert logs[0].message == "Payment created"


def test_blank_note_and_payer_name_are_dropped(service):
    # Blank text counts as absent, so a blank note gets the default "UPI Payment"
    # instead of an empty tn= field.
    view = _create(service, note="   ", payer_name="")
    assert view.note is None
    assert view.payer_name is None
    assert "tn=UPI+Payment" in view.upi_intent_url
    assert "pn=" not in view.upi_intent_url


def test_expires_at_is_created_at_plus_window(service):
    view = _create(service)
    assert view.expires_at - view.created_at == timedelta(minutes=15)


def test_expires_at_follows_configured_window(store, clock):
    service = PaymentService(store, LifecycleConfig(expiry_minutes=30), clock=clock)
    view = _create(service)
    assert view.expires_at - view.created_at == timedelta(minutes=30)


def test_create_failure_logs_nothing():
    store = MagicMock(spec=PaymentStore)
    store.insert_payment.side_effect = PersistenceError("Failed to create payment request.")

    with pytest.raises(PersistenceError):
        PaymentService(store).create_payment(PaymentCreate(upi_id="abc", amount=1))
    store.append_log.assert_not_called()


def test_compute_expires_at_is_pure():
    created = datetime(2026, 3, 1, 8, 30)
    assert compute_expires_at(created, 15) == compute_expires_at(created, 15)
    assert compute_expires_at(created, 15) == datetime(2026, 3, 1, 8, 45)


# ──────────────── simulate ────────────────

def test_simulate_success_once_then_already_finalized(service):
    payment = _create(service)

    updated = service.simulate_transition(payment.id, PaymentStatus.SUCCESS)
    assert updated.status is PaymentStatus.SUCCESS
    assert updated.completed_at is not None

    with pytest.raises(AlreadyFinalizedError):
        service.simulate_transition(payment.id, PaymentStatus.FAILED)


def test_simulate_accepts_lowercase_status(service, store):
    payment = _create(service)
    updated = service.simulate_transition(payment.id, "success")

    assert updated.status is PaymentStatus.SUCCESS
    assert store.list_logs(payment.id)[0].message == "Simulated SUCCESS webhook"


@pytest.mark.parametrize("status", ["REFUNDED", "EXPIRED", "PENDING"])
def test_simulate_rejects_other_statuses_before_touching_store(status):
    store = MagicMock(spec=PaymentStore)

    with pytest.raises(ValidationError):
        PaymentService(store).simulate_transition("some-id", status)
    assert store.method_calls == []


def test_simulate_unknown_payment(service):
    with pytest.raises(NotFoundError):
        service.simulate_transition("missing", PaymentStatus.SUCCESS)


def test_simulate_failed_records_reason(service, store):
    payment = _create(service)
    updated = service.simulate_transition(payment.id, PaymentStatus.FAILED, "Insufficient funds")

    assert updated.status is PaymentStatus.FAILED
    assert updated.failure_reason == "Insufficient funds"
    assert [(log.status, log.message) for log in store.list_logs(payment.id)] == [
        ("FAILED", "Insufficient funds"),
        ("PENDING", "Payment created"),
    ]


def test_simulate_loses_race_to_sweep(service, store, clock, monkeypatch):
    payment = _create(service)
    real_update = store.update_payment

    def expire_first(payment_id, fields, expected_status=None):
        real_update(payment_id, {"status": PaymentStatus.EXPIRED, "updated_at": clock()})
        return real_update(payment_id, fields, expected_status=expected_status)

    monkeypatch.setattr(store, "update_payment", expire_first)

    with pytest.raises(AlreadyFinalizedError):
        service.simulate_transition(payment.id, PaymentStatus.SUCCESS)
    assert store.get_status(payment.id) is PaymentStatus.EXPIRED
    assert len(store.list_logs(payment.id)) == 1


# ──────────────── update_status (webhook path) ────────────────

def test_update_status_unknown_returns_none(service):
    assert service.update_status("missing", PaymentStatus.SUCCESS) is None


def test_update_status_forces_finalized_payment(service, store):
    payment = _create(service)
    service.simulate_transition(payment.id, PaymentStatus.SUCCESS)

    updated = service.update_status(payment.id, PaymentStatus.FAILED)

    assert updated.status is PaymentStatus.FAILED
    assert updated.failure_reason is None
    assert store.list_logs(payment.id)[0].message == "Status updated to FAILED"


def test_update_status_rejects_unknown_status(service):
    payment = _create(service)
    with pytest.raises(ValidationError, match="Invalid status"):
        service.update_status(payment.id, "REFUNDED")


def test_log_failure_does_not_undo_status_change(service, store, monkeypatch):
    payment = _create(service)
    monkeypatch.setattr(
        store, "append_log", MagicMock(side_effect=PersistenceError("Failed to insert payment status log."))
    )

    updated = service.update_status(payment.id, PaymentStatus.SUCCESS, "Bank confirmed")

    assert updated.status is PaymentStatus.SUCCESS
    assert store.get_status(payment.id) is PaymentStatus.SUCCESS


def test_get_status(service):
    payment = _create(service)
    assert service.get_status(payment.id) is PaymentStatus.PENDING
    assert service.get_status("missing") is None


# ──────────────── sweep ────────────────

def test_sweep_expires_stale_pending_once(service, store, clock):
    old_a = _create(service)
    old_b = _create(service)
    clock.advance(minutes=10)
    fresh = _create(service)
    clock.advance(minutes=6)

    assert service.sweep_expired(15) == 2
    assert service.sweep_expired(15) == 0

    for payment_id in (old_a.id, old_b.id):
        assert store.get_status(payment_id) is PaymentStatus.EXPIRED
        logs = store.list_logs(payment_id)
        assert [log.status for log in logs] == ["EXPIRED", "PENDING"]
        assert logs[0].message == "Payment expired"
    assert store.get_status(fresh.id) is PaymentStatus.PENDING


def test_sweep_includes_payment_exactly_at_deadline(service, store, clock):
    payment = _create(service)
    clock.advance(minutes=15)

    assert service.sweep_expired() == 1
    assert store.get_status(payment.id) is PaymentStatus.EXPIRED


def test_sweep_leaves_finalized_payments_alone(service, store, clock):
    payment = _create(service)
    service.simulate_transition(payment.id, PaymentStatus.SUCCESS)
    clock.advance(minutes=30)

    assert service.sweep_expired() == 0
    assert store.get_status(payment.id) is PaymentStatus.SUCCESS


def test_sweep_honours_explicit_window(service, clock):
    _create(service)
    clock.advance(minutes=6)

    assert service.sweep_expired(15) == 0
    assert service.sweep_expired(5) == 1


def test_simulate_after_expiry_is_rejected(service, clock):
    payment = _create(service)
    clock.advance(minutes=20)
    service.sweep_expired()

    with pytest.raises(AlreadyFinalizedError):
        service.simulate_transition(payment.id, PaymentStatus.SUCCESS)


def test_sweep_swallows_store_failure():
    store = MagicMock(spec=PaymentStore)
    store.find_pending_created_before.side_effect = PersistenceError("Failed to query pending payments.")

    assert PaymentService(store).sweep_expired(15) == 0
    store.update_payment.assert_not_called()
