from __future__ import annotations

import asyncio
from datetime import date

import pytest

from counter_pos.age_gate import AgeVerificationGate, GateState, IdScanOutcome, compute_age
from counter_pos.exceptions import AgeVerificationError, ValidationError
from counter_pos.models_cart import SaleMode

TODAY = date(2026, 10, 19)


@pytest.fixture
def added():
    return []


@pytest.fixture
def gate(added) -> AgeVerificationGate:
    return AgeVerificationGate(
        scanner_delay_seconds=0.0,
        on_verified=added.append,
        today=lambda: TODAY,
    )


def test_compute_age_counts_whole_years() -> None:
    assert compute_age(date(2005, 10, 19), TODAY) == 21
    assert compute_age(date(2005, 10, 20), TODAY) == 20
    assert compute_age(date(2005, 11, 1), TODAY) == 20


def test_unrestricted_or_return_mode_skips_gate(gate, product_factory) -> None:
    assert gate.request(product_factory("p-1")) is None
    assert gate.request(product_factory("p-2", is_age_restricted=True), SaleMode.RETURN) is None
    assert gate.state == GateState.IDLE


def test_birth_date_of_adult_verifies_and_releases_request(gate, added, product_factory) -> None:
    request = gate.request(product_factory("p-wine", is_age_restricted=True))
    assert gate.state == GateState.AWAITING_VERIFICATION

    outcome = gate.verify_birth_date(1990, 5, 1)

    assert outcome.verified is True
    assert added == [request]
    assert gate.state == GateState.IDLE
    assert gate.pending is None


def test_underage_birth_date_rejects_without_release(gate, added, product_factory) -> None:
    gate.request(product_factory("p-wine", is_age_restricted=True))

    outcome = gate.verify_birth_date(2010, 1, 1)

    assert outcome.state == GateState.REJECTED
    assert outcome.age == 16
    assert added == []
    assert gate.state == GateState.IDLE


def test_invalid_birth_date_keeps_request_pending(gate, product_factory) -> None:
    gate.request(product_factory("p-wine", is_age_restricted=True))

    with pytest.raises(AgeVerificationError):
        gate.verify_birth_date(1990, 2, 30)
    with pytest.raises(AgeVerificationError):
        gate.verify_birth_date(2030, 1, 1)

    assert gate.state == GateState.AWAITING_VERIFICATION


@pytest.mark.parametrize("scan", [IdScanOutcome.UNDERAGE, IdScanOutcome.EXPIRED, IdScanOutcome.FAKE])
def test_failed_id_scan_rejects(gate, added, product_factory, scan) -> None:
    gate.request(product_factory("p-wine", is_age_restricted=True))

    outcome = gate.verify_id_scan(scan)

    assert outcome.state == GateState.REJECTED
    assert added == []


def test_valid_id_scan_verifies(gate, added, product_factory) -> None:
    gate.request(product_factory("p-wine", is_age_restricted=True))

    assert gate.verify_id_scan("valid").verified is True
    assert len(added) == 1


def test_scanner_always_verifies_after_delay(gate, added, product_factory) -> None:
    gate.request(product_factory("p-wine", is_age_restricted=True))

    outcome = asyncio.run(gate.verify_with_scanner())

    assert outcome.verified is True
    assert len(added) == 1


def test_scanning_disabled_rejects_scan_methods(added, product_factory) -> None:
    gate = AgeVerificationGate(id_scanning_enabled=False, on_verified=added.append, today=lambda: TODAY)
    gate.request(product_factory("p-wine", is_age_restricted=True))

    with pytest.raises(ValidationError):
        gate.verify_id_scan("valid")
    assert gate.verify_birth_date(1980, 1, 1).verified is True


def test_cancel_discards_pending_request(gate, added, product_factory) -> None:
    gate.request(product_factory("p-wine", is_age_restricted=True))

    outcome = gate.cancel()

    assert outcome.state == GateState.CANCELLED
    assert added == []
    assert gate.state == GateState.IDLE
    assert gate.pending is None


def test_only_one_pending_request(gate, product_factory) -> None:
    gate.request(product_factory("p-wine", is_age_restricted=True))

    with pytest.raises(ValidationError):
        gate.request(product_factory("p-beer", is_age_restricted=True))


def test_verification_without_request_is_rejected(gate) -> None:
    with pytest.raises(ValidationError):
        gate.verify_birth_date(1990, 1, 1)
