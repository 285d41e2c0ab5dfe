from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, TypeAlias

from .snapshot import Snapshot

BASELINE_COOLDOWN_MS = 5000
MAX_FEED_GAP_MS = 15000

BaselinePhase: TypeAlias = Literal["seeding", "armed"]


def is_discontinuity(prev: Snapshot | None, curr: Snapshot, *, max_feed_gap_ms: int = MAX_FEED_GAP_MS) -> bool:
    """True when `curr` cannot be diffed against `prev`: new run, rewound clock, or a feed gap."""
    if prev is None:
        return True
    before = prev.meta
    after = curr.meta
    if before.started_at and after.started_at and before.started_at != after.started_at:
        return True
    if before.time_elapsed is not None and after.time_elapsed is not None:
        if float(after.time_elapsed) < float(before.time_elapsed):
            return True
        if before.time_elapsed and after.time_elapsed == 0:
            return True
    if before.last_updated and after.last_updated:
        if int(after.last_updated) - int(before.last_updated) > int(max_feed_gap_ms):
            return True
    return False


@dataclass(slots=True)
class BaselineGuard:
    """Holds one player's diff baseline and suppresses diffs around run restarts.

    After a discontinuity the new snapshot becomes the baseline and a wall-clock cooldown
    starts; snapshots arriving during the cooldown only refresh the baseline.
    """

    cooldown_ms: int = BASELINE_COOLDOWN_MS
    max_feed_gap_ms: int = MAX_FEED_GAP_MS
    _baseline: Snapshot | None = None
    _cooldown_until_ms: int | None = None
    _restarted: bool = False

    @property
    def baseline(self) -> Snapshot | None:
        return self._baseline

    @property
    def restarted(self) -> bool:
        """True when the last admitted snapshot broke continuity and re-seeded the baseline."""
        return self._restarted

    def phase(self, *, now_ms: int) -> BaselinePhase:
        if self._baseline is None:
            return "seeding"
        if self._cooldown_until_ms is not None and int(now_ms) < int(self._cooldown_until_ms):
            return "seeding"
        return "armed"

    def admit(self, snapshot: Snapshot, *, now_ms: int) -> Snapshot | None:
        """Store `snapshot` as the new baseline; return the old one only when diffing is allowed."""
        prev = self._baseline
        self._baseline = snapshot
        self._restarted = is_discontinuity(prev, snapshot, max_feed_gap_ms=self.max_feed_gap_ms)
        if self._restarted:
            self._cooldown_until_ms = int(now_ms) + int(self.cooldown_ms)
            return None
        if self._cooldown_until_ms is not None:
            if int(now_ms) < int(self._cooldown_until_ms):
                return None
            self._cooldown_until_ms = None
        return prev

    def reset(self) -> None:
        self._baseline = None
        self._cooldown_until_ms = None
        self._restarted = False


__all__ = [
    "BASELINE_COOLDOWN_MS",
    "MAX_FEED_GAP_MS",
    "BaselineGuard",
    "BaselinePhase",
    "is_discontinuity",
]
