from __future__ import annotations

from bonkwatch.events import ItemRef
from bonkwatch.pending import (
    PendingLedger,
    PendingMicrowave,
    PendingMoai,
    microwave_expired,
    wall_clock_expired,
)


def test_wall_clock_expiry_is_inclusive() -> None:
    moai = PendingMoai(id="m", created_at=1_000)

    assert wall_clock_expired(moai, now_ms=600_999) is False
    assert wall_clock_expired(moai, now_ms=601_000) is True
    assert wall_clock_expired(moai, now_ms=1_500, timeout_ms=500) is True


def test_microwave_expiry_prefers_run_time() -> None:
    burned = ItemRef(id=5)
    with_run_time = PendingMicrowave(id="w", burned_item=burned, rarity="common", created_at=0, created_at_run_time=10.0)
    without_run_time = PendingMicrowave(id="w2", burned_item=burned, rarity="common", created_at=0)

    # Run time has barely moved even though a lot of wall time passed.
    assert microwave_expired(with_run_time, now_ms=500_000, run_time=20.0) is False
    assert microwave_expired(with_run_time, now_ms=0, run_time=70.5) is True
    assert microwave_expired(without_run_time, now_ms=60_000, run_time=20.0) is False
    assert microwave_expired(without_run_time, now_ms=60_001, run_time=20.0) is True


def test_ledger_counts() -> None:
    ledger = PendingLedger(moai=(PendingMoai(id="a", created_at=0), PendingMoai(id="b", created_at=0)))

    assert len(ledger) == 2
    assert ledger.counts()["moai"] == 2
    assert ledger.counts()["chest"] == 0


def test_microwave_from_rewound_run_clock_is_expired() -> None:
    pending = PendingMicrowave(id="w", burned_item=ItemRef(id=5), rarity="common", created_at=0, created_at_run_time=500.0)

    assert microwave_expired(pending, now_ms=1_000, run_time=3.0) is True
