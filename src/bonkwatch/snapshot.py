from __future__ import annotations

import math
from dataclasses import dataclass, field

from .game_data import ItemId, Rarity


@dataclass(frozen=True, slots=True)
class WeaponEntry:
    id: ItemId
    level: int = 0


@dataclass(frozen=True, slots=True)
class TomeEntry:
    id: ItemId
    level: int = 0


@dataclass(frozen=True, slots=True)
class ItemEntry:
    id: ItemId
    rarity: Rarity | str = "common"
    count: int = 1


@dataclass(frozen=True, slots=True)
class ShrineCounters:
    moai: int = 0
    charge_normal: int = 0
    charge_golden: int = 0


@dataclass(frozen=True, slots=True)
class ChestCounters:
    normal: int = 0
    free: int = 0
    corrupt: int = 0


@dataclass(frozen=True, slots=True)
class ShadyGuyCounters:
    common: int = 0
    rare: int = 0
    epic: int = 0
    legendary: int = 0

    def count(self, rarity: str) -> int:
        return int(getattr(self, rarity, 0))


@dataclass(frozen=True, slots=True)
class CombatCounters:
    shrines: ShrineCounters = field(default_factory=ShrineCounters)
    chests: ChestCounters = field(default_factory=ChestCounters)
    shady_guys: ShadyGuyCounters = field(default_factory=ShadyGuyCounters)


@dataclass(frozen=True, slots=True)
class Equipment:
    weapons: tuple[WeaponEntry, ...] = ()
    tomes: tuple[TomeEntry, ...] = ()
    items: tuple[ItemEntry, ...] = ()


@dataclass(frozen=True, slots=True)
class SnapshotMeta:
    time_elapsed: float | None = None
    pause_time: float | None = None
    is_paused: bool | None = None
    started_at: int | None = None
    last_updated: int | None = None
    character_id: int | None = None
    level: int = 0


@dataclass(frozen=True, slots=True)
class Snapshot:
    """One player's full state at one feed tick.

    `stats` is a plain dict for cheap construction; nothing in the package writes to it
    after the snapshot is built.
    """

    stats: dict[str, float] = field(default_factory=dict)
    equipment: Equipment = field(default_factory=Equipment)
    combat: CombatCounters = field(default_factory=CombatCounters)
    meta: SnapshotMeta = field(default_factory=SnapshotMeta)

    @property
    def run_time_seconds(self) -> float | None:
        """In-run time (`time_elapsed - pause_time`), or None when either side is unknown."""
        return run_time_seconds(self)


def run_time_seconds(snapshot: Snapshot | None) -> float | None:
    if snapshot is None:
        return None
    elapsed = snapshot.meta.time_elapsed
    paused = snapshot.meta.pause_time
    if elapsed is None or paused is None:
        return None
    actual = float(elapsed) - float(paused)
    if not math.isfinite(actual):
        return None
    return max(0.0, actual)


def has_tome(snapshot: Snapshot, tome_id: ItemId) -> bool:
    return any(tome.id == tome_id for tome in snapshot.equipment.tomes)


__all__ = [
    "ChestCounters",
    "CombatCounters",
    "Equipment",
    "ItemEntry",
    "ShadyGuyCounters",
    "ShrineCounters",
    "Snapshot",
    "SnapshotMeta",
    "TomeEntry",
    "WeaponEntry",
    "has_tome",
    "run_time_seconds",
]
