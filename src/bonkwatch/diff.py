from __future__ import annotations

from collections.abc import Collection, Iterable
from dataclasses import dataclass, field
from typing import TypeVar

from .game_data import (
    ALWAYS_DISABLED_STATS,
    IGNORED_STATS,
    RARITIES,
    ItemId,
    StatUnit,
    normalize_rarity,
    stat_spec,
)
from .snapshot import ItemEntry, Snapshot, TomeEntry, WeaponEntry

_LeveledT = TypeVar("_LeveledT", TomeEntry, WeaponEntry)


@dataclass(frozen=True, slots=True)
class StatChange:
    stat: str
    prev: float
    curr: float
    delta: float
    display_delta: float
    unit: StatUnit
    label: str


@dataclass(frozen=True, slots=True)
class ItemCountChange:
    item: ItemEntry
    count_delta: int


@dataclass(frozen=True, slots=True)
class LevelUp:
    id: ItemId
    level: int
    prev_level: int


@dataclass(frozen=True, slots=True)
class ItemDelta:
    added: tuple[ItemEntry, ...] = ()
    removed: tuple[ItemEntry, ...] = ()
    changed: tuple[ItemCountChange, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.added or self.removed or self.changed)


@dataclass(frozen=True, slots=True)
class LeveledDelta:
    added: tuple[ItemId, ...] = ()
    removed: tuple[ItemId, ...] = ()
    leveled_up: tuple[LevelUp, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.added or self.removed or self.leveled_up)


@dataclass(frozen=True, slots=True)
class CounterDeltas:
    """Per-tick counter increases; counters only grow within a run, so drops clamp to 0."""

    moai: int = 0
    charge_normal: int = 0
    charge_golden: int = 0
    chest_normal: int = 0
    chest_free: int = 0
    chest_corrupt: int = 0
    shady_guys: dict[str, int] = field(default_factory=dict)
    level: int = 0

    @property
    def total_chests(self) -> int:
        return int(self.chest_normal + self.chest_free + self.chest_corrupt)

    @property
    def shrine_charged(self) -> bool:
        return self.charge_normal > 0 or self.charge_golden > 0


@dataclass(frozen=True, slots=True)
class SnapshotDelta:
    has_changes: bool
    stats: dict[str, StatChange] = field(default_factory=dict)
    items: ItemDelta = field(default_factory=ItemDelta)
    tomes: LeveledDelta = field(default_factory=LeveledDelta)
    weapons: LeveledDelta = field(default_factory=LeveledDelta)
    counters: CounterDeltas = field(default_factory=CounterDeltas)


def _increase(prev: int, curr: int) -> int:
    return max(0, int(curr) - int(prev))


def display_delta(prev: float, curr: float, unit: StatUnit) -> float:
    delta = curr - prev
    if unit != "percent":
        return delta
    if prev == 0:
        return 0.0 if curr == 0 else curr * 100.0
    return delta / prev * 100.0


def diff_stats(
    prev: dict[str, float],
    curr: dict[str, float],
    *,
    ignore_stat_key: str | None = None,
    allowed_stat_keys: Collection[str] | None = None,
) -> dict[str, StatChange]:
    out: dict[str, StatChange] = {}
    for key in dict.fromkeys([*prev, *curr]):
        if key in IGNORED_STATS or key in ALWAYS_DISABLED_STATS:
            continue
        if ignore_stat_key is not None and key == ignore_stat_key:
            continue
        if allowed_stat_keys is not None and key not in allowed_stat_keys:
            continue
        prev_val = float(prev.get(key, 0.0))
        curr_val = float(curr.get(key, 0.0))
        if prev_val == curr_val:
            continue
        spec = stat_spec(key)
        out[key] = StatChange(
            stat=key,
            prev=prev_val,
            curr=curr_val,
            delta=curr_val - prev_val,
            display_delta=display_delta(prev_val, curr_val, spec.unit),
            unit=spec.unit,
            label=spec.label,
        )
    return out


def _item_map(items: Iterable[ItemEntry]) -> dict[tuple[ItemId, str], ItemEntry]:
    out: dict[tuple[ItemId, str], ItemEntry] = {}
    for item in items:
        rarity = normalize_rarity(item.rarity)
        out[(item.id, rarity)] = ItemEntry(id=item.id, rarity=rarity, count=int(item.count or 1))
    return out


def diff_items(prev: Iterable[ItemEntry], curr: Iterable[ItemEntry]) -> ItemDelta:
    prev_map = _item_map(prev)
    curr_map = _item_map(curr)
    added: list[ItemEntry] = []
    changed: list[ItemCountChange] = []
    for key, item in curr_map.items():
        before = prev_map.get(key)
        if before is None:
            added.append(item)
        elif before.count != item.count:
            changed.append(ItemCountChange(item=item, count_delta=int(item.count - before.count)))
    removed = [item for key, item in prev_map.items() if key not in curr_map]
    return ItemDelta(added=tuple(added), removed=tuple(removed), changed=tuple(changed))


def diff_leveled(prev: Iterable[_LeveledT], curr: Iterable[_LeveledT]) -> LeveledDelta:
    prev_map = {entry.id: entry for entry in prev}
    curr_map = {entry.id: entry for entry in curr}
    added: list[ItemId] = []
    leveled_up: list[LevelUp] = []
    for entry_id, entry in curr_map.items():
        before = prev_map.get(entry_id)
        if before is None:
            added.append(entry_id)
        elif int(before.level) < int(entry.level):
            leveled_up.append(LevelUp(id=entry_id, level=int(entry.level), prev_level=int(before.level)))
    removed = [entry_id for entry_id in prev_map if entry_id not in curr_map]
    return LeveledDelta(added=tuple(added), removed=tuple(removed), leveled_up=tuple(leveled_up))


def diff_counters(prev: Snapshot, curr: Snapshot) -> CounterDeltas:
    prev_combat = prev.combat
    curr_combat = curr.combat
    return CounterDeltas(
        moai=_increase(prev_combat.shrines.moai, curr_combat.shrines.moai),
        charge_normal=_increase(prev_combat.shrines.charge_normal, curr_combat.shrines.charge_normal),
        charge_golden=_increase(prev_combat.shrines.charge_golden, curr_combat.shrines.charge_golden),
        chest_normal=_increase(prev_combat.chests.normal, curr_combat.chests.normal),
        chest_free=_increase(prev_combat.chests.free, curr_combat.chests.free),
        chest_corrupt=_increase(prev_combat.chests.corrupt, curr_combat.chests.corrupt),
        shady_guys={
            rarity: _increase(prev_combat.shady_guys.count(rarity), curr_combat.shady_guys.count(rarity))
            for rarity in RARITIES
        },
        level=_increase(prev.meta.level, curr.meta.level),
    )


def compute_delta(
    prev: Snapshot,
    curr: Snapshot,
    *,
    ignore_stat_key: str | None = None,
    allowed_stat_keys: Collection[str] | None = None,
) -> SnapshotDelta:
    """Diff two snapshots of the same player. Neither input is modified."""
    if prev == curr:
        return SnapshotDelta(has_changes=False)
    return SnapshotDelta(
        has_changes=True,
        stats=diff_stats(
            prev.stats,
            curr.stats,
            ignore_stat_key=ignore_stat_key,
            allowed_stat_keys=allowed_stat_keys,
        ),
        items=diff_items(prev.equipment.items, curr.equipment.items),
        tomes=diff_leveled(prev.equipment.tomes, curr.equipment.tomes),
        weapons=diff_leveled(prev.equipment.weapons, curr.equipment.weapons),
        counters=diff_counters(prev, curr),
    )


__all__ = [
    "CounterDeltas",
    "ItemCountChange",
    "ItemDelta",
    "LevelUp",
    "LeveledDelta",
    "SnapshotDelta",
    "StatChange",
    "compute_delta",
    "diff_counters",
    "diff_items",
    "diff_leveled",
    "diff_stats",
    "display_delta",
]
