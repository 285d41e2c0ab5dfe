from __future__ import annotations

from bonkwatch.baseline import BaselineGuard, is_discontinuity
from bonkwatch.snapshot import Snapshot, SnapshotMeta


def _snap(*, elapsed: float | None = 10.0, started_at: int | None = 1, last_updated: int | None = None) -> Snapshot:
    return Snapshot(meta=SnapshotMeta(time_elapsed=elapsed, pause_time=0.0, started_at=started_at, last_updated=last_updated))


def test_discontinuity_rules() -> None:
    base = _snap(elapsed=50.0, started_at=1, last_updated=100_000)

    assert is_discontinuity(None, base) is True
    assert is_discontinuity(base, _snap(elapsed=51.0, started_at=2, last_updated=101_000)) is True
    assert is_discontinuity(base, _snap(elapsed=49.0, started_at=1, last_updated=101_000)) is True
    assert is_discontinuity(base, _snap(elapsed=0.0, started_at=1, last_updated=101_000)) is True
    assert is_discontinuity(base, _snap(elapsed=60.0, started_at=1, last_updated=115_001)) is True
    assert is_discontinuity(base, _snap(elapsed=60.0, started_at=1, last_updated=115_000)) is False
    assert is_discontinuity(base, _snap(elapsed=51.0, started_at=None, last_updated=None)) is False


def test_guard_seeds_then_waits_for_cooldown() -> None:
    guard = BaselineGuard()
    first = _snap(elapsed=10.0)
    second = _snap(elapsed=11.0)
    third = _snap(elapsed=12.0)
    fourth = _snap(elapsed=13.0)

    assert guard.admit(first, now_ms=0) is None
    assert guard.restarted is True
    assert guard.phase(now_ms=0) == "seeding"
    assert guard.admit(second, now_ms=4_999) is None
    assert guard.baseline is second
    assert guard.restarted is False
    assert guard.admit(third, now_ms=5_000) is second
    assert guard.phase(now_ms=5_000) == "armed"
    assert guard.admit(fourth, now_ms=5_100) is third


def test_guard_reseeds_on_new_run() -> None:
    guard = BaselineGuard(cooldown_ms=0)
    guard.admit(_snap(elapsed=100.0), now_ms=0)
    assert guard.admit(_snap(elapsed=101.0), now_ms=10) is not None

    assert guard.admit(_snap(elapsed=1.0, started_at=2), now_ms=20) is None
    assert guard.admit(_snap(elapsed=2.0, started_at=2), now_ms=30) is not None

    guard.reset()
    assert guard.baseline is None
    assert guard.phase(now_ms=40) == "seeding"
