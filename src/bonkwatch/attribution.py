"""Attribute snapshot deltas to the in-game interactions that caused them.

The feed never says "a chest was opened"; it only shows counters ticking up and
items/stats appearing. Each tick we turn counter increases into pending causes,
then pair causes with effects using fixed, deterministic rules:

- chests, moai: oldest pending cause takes the oldest gained item
- shrines: oldest pending shrine takes the next unattributed stat change
- level ups: stat changes go to tomes first, then to the Chaos Tome
- shady guys: oldest pending encounter takes the oldest unexplained item
- microwaves: a burned item is replicated by a gained item of the same rarity

Causes with no effect yet stay in the ledger for later ticks until they expire.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from .debug_log import interaction_debug_log
from .diff import SnapshotDelta, StatChange
from .events import (
    INTERACTION_TYPES,
    InteractionEvent,
    InteractionKind,
    ItemRef,
    chest_icon,
    microwave_icon,
    shady_icon,
)
from .game_data import RARITIES, GameData, normalize_rarity
from .pending import (
    PendingChest,
    PendingLedger,
    PendingMicrowave,
    PendingMoai,
    PendingShady,
    PendingShrine,
    PhantomItem,
    microwave_expired,
    wall_clock_expired,
)
from .snapshot import ItemEntry, Snapshot, has_tome, run_time_seconds


@dataclass(frozen=True, slots=True)
class AttributionResult:
    events: tuple[InteractionEvent, ...] = ()
    ledger: PendingLedger = field(default_factory=PendingLedger)


@dataclass(slots=True)
class _TickAttribution:
    prev: Snapshot
    curr: Snapshot
    delta: SnapshotDelta
    game_data: GameData
    now_ms: int
    tick_index: int
    trace: bool
    player: str = ""
    run_time: float | None = None
    prev_run_time: float | None = None
    auto_leveling: bool = False
    events: list[InteractionEvent] = field(default_factory=list)
    attributed_stats: set[str] = field(default_factory=set)
    added_pool: list[ItemRef] = field(default_factory=list)
    removed_pool: list[ItemRef] = field(default_factory=list)
    offered_stats: list[StatChange] = field(default_factory=list)

    def log(self, label: str, **fields: object) -> None:
        if self.trace:
            interaction_debug_log(label, player=self.player or None, tick=int(self.tick_index), **fields)

    def item_ref(self, item: ItemEntry) -> ItemRef:
        rarity = normalize_rarity(item.rarity)
        return ItemRef(id=item.id, rarity=rarity, count=1, local=self.game_data.local_item(item.id))

    def build_pools(self) -> None:
        items = self.delta.items
        for item in items.added:
            self.added_pool.extend(self.item_ref(item) for _ in range(max(0, int(item.count or 1))))
        for change in items.changed:
            if change.count_delta > 0:
                self.added_pool.extend(self.item_ref(change.item) for _ in range(change.count_delta))
            elif change.count_delta < 0:
                self.removed_pool.extend(self.item_ref(change.item) for _ in range(-change.count_delta))
        for item in items.removed:
            self.removed_pool.extend(self.item_ref(item) for _ in range(max(0, int(item.count or 1))))

    def emit(
        self,
        *,
        event_id: str,
        kind: InteractionKind,
        timestamp: int | None = None,
        **fields: object,
    ) -> InteractionEvent:
        event = InteractionEvent(
            id=event_id,
            kind=kind,
            timestamp=int(self.now_ms if timestamp is None else timestamp),
            **fields,  # type: ignore[arg-type]
        )
        self.events.append(event)
        return event

    def take_next_stat(self) -> StatChange | None:
        while self.offered_stats:
            change = self.offered_stats.pop(0)
            if change.stat in self.attributed_stats:
                continue
            self.attributed_stats.add(change.stat)
            return change
        return None

    def emit_bare_stat(self, change: StatChange, event_id: str) -> None:
        self.attributed_stats.add(change.stat)
        self.emit(event_id=event_id, kind="statChange", stat_change=change, no_source=True)

    # -- enqueue --------------------------------------------------------------------------------

    def enqueue_moai(self, queue: list[PendingMoai]) -> None:
        for idx in range(self.delta.counters.moai):
            queue.append(PendingMoai(id=f"moai-pending-{self.tick_index}-{idx}", created_at=self.now_ms))

    def enqueue_shrines(self, queue: list[PendingShrine]) -> None:
        counters = self.delta.counters
        for idx in range(counters.charge_golden):
            queue.append(
                PendingShrine(id=f"golden-shrine-pending-{self.tick_index}-{idx}", tier="golden", created_at=self.now_ms)
            )
        for idx in range(counters.charge_normal):
            queue.append(PendingShrine(id=f"shrine-pending-{self.tick_index}-{idx}", tier="normal", created_at=self.now_ms))

    def enqueue_chests(self, queue: list[PendingChest]) -> None:
        counters = self.delta.counters
        # Corrupt chests hand out items exactly like normal ones.
        for idx in range(counters.chest_normal + counters.chest_corrupt):
            queue.append(
                PendingChest(
                    id=f"chest-pending-{self.tick_index}-normal-{idx}",
                    chest_type="normal",
                    created_at=self.now_ms,
                    created_at_run_time=self.run_time,
                )
            )
        for idx in range(counters.chest_free):
            queue.append(
                PendingChest(
                    id=f"chest-pending-{self.tick_index}-free-{idx}",
                    chest_type="free",
                    created_at=self.now_ms,
                    created_at_run_time=self.run_time,
                )
            )

    def enqueue_shady(self, queue: list[PendingShady]) -> None:
        counts = self.delta.counters.shady_guys
        for rarity in RARITIES:
            for idx in range(int(counts.get(rarity, 0))):
                queue.append(
                    PendingShady(id=f"shady-pending-{self.tick_index}-{rarity}-{idx}", rarity=rarity, created_at=self.now_ms)
                )

    def enqueue_microwaves(self, queue: list[PendingMicrowave]) -> None:
        for idx, burned in enumerate(self.removed_pool):
            queue.append(
                PendingMicrowave(
                    id=f"microwave-pending-{self.tick_index}-{idx}",
                    burned_item=burned,
                    rarity=burned.rarity,
                    created_at=self.now_ms,
                    created_at_run_time=self.run_time,
                )
            )

    # -- resolve --------------------------------------------------------------------------------

    def chest_banished(self, pending: PendingChest) -> bool:
        # Opening a chest pauses the run. Run time moving again with no item means the
        # player banished the offer.
        created = pending.created_at_run_time
        if created is None or self.run_time is None:
            return False
        if self.run_time < created:
            # Run clock went backwards: the chest was opened in an earlier run.
            return True
        if self.prev_run_time is None:
            return False
        return self.run_time > created and self.run_time > self.prev_run_time

    def resolve_chests(self, queue: Iterable[PendingChest]) -> list[PendingChest]:
        remaining: list[PendingChest] = []
        for pending in queue:
            if self.added_pool:
                gained = self.added_pool.pop(0)
                self.log("chest_resolved", pending=pending.id, chest_type=pending.chest_type, item=gained)
                self.emit(
                    event_id=f"chest-{pending.id}",
                    kind="chest",
                    timestamp=pending.created_at,
                    chest_type=pending.chest_type,
                    gained_item=gained,
                    source_icon=chest_icon(pending.chest_type),
                )
                continue
            if self.chest_banished(pending):
                self.log(
                    "chest_banished",
                    pending=pending.id,
                    created_at_run_time=pending.created_at_run_time,
                    prev_run_time=self.prev_run_time,
                    run_time=self.run_time,
                )
                continue
            if wall_clock_expired(pending, now_ms=self.now_ms):
                self.log("chest_timeout", pending=pending.id, age_ms=int(self.now_ms - pending.created_at))
                continue
            self.log("chest_pending", pending=pending.id, run_time=self.run_time, prev_run_time=self.prev_run_time)
            remaining.append(pending)
        return remaining

    def resolve_moai(self, queue: Iterable[PendingMoai]) -> list[PendingMoai]:
        remaining: list[PendingMoai] = []
        for pending in queue:
            if self.added_pool:
                gained = self.added_pool.pop(0)
                self.emit(
                    event_id=f"moai-{pending.id}",
                    kind="moai",
                    timestamp=pending.created_at,
                    gained_item=gained,
                    source_icon=INTERACTION_TYPES["moai"].icon,
                )
                continue
            if wall_clock_expired(pending, now_ms=self.now_ms):
                self.log("moai_timeout", pending=pending.id)
                continue
            remaining.append(pending)
        return remaining

    def resolve_shrines(self, queue: Iterable[PendingShrine]) -> list[PendingShrine]:
        remaining: list[PendingShrine] = []
        for pending in queue:
            if wall_clock_expired(pending, now_ms=self.now_ms):
                self.log("shrine_timeout", pending=pending.id)
                continue
            picked = self.take_next_stat()
            if picked is None:
                remaining.append(pending)
                continue
            kind: InteractionKind = "goldenShrine" if pending.tier == "golden" else "shrine"
            self.emit(
                event_id=f"shrine-{pending.id}",
                kind=kind,
                timestamp=pending.created_at,
                stat_change=picked,
                source_icon=INTERACTION_TYPES[kind].icon,
                no_source=self.auto_leveling,
            )
        return remaining

    def resolve_level_up(self) -> None:
        tome_stats: dict[str, float] = {}
        for tome in self.curr.equipment.tomes:
            for stat, value in self.game_data.tome_stats(tome.id).items():
                tome_stats[stat] = tome_stats.get(stat, 0.0) + float(value)

        chaos_id = self.game_data.chaos_tome_id
        chaos_equipped = has_tome(self.curr, chaos_id)
        chaos_leveled = any(level_up.id == chaos_id for level_up in self.delta.tomes.leveled_up)

        remaining = [change for change in self.delta.stats.values() if change.stat not in self.attributed_stats]
        for idx, change in enumerate(remaining):
            if tome_stats.get(change.stat):
                self.emit_bare_stat(change, f"levelup-stat-{self.tick_index}-{idx}")
                continue
            if chaos_equipped and chaos_leveled:
                self.attributed_stats.add(change.stat)
                self.emit(
                    event_id=f"chaos-{self.tick_index}-{idx}",
                    kind="chaosTome",
                    stat_change=change,
                    source_icon=INTERACTION_TYPES["chaosTome"].icon,
                    no_source=self.auto_leveling,
                )
                continue
            self.emit_bare_stat(change, f"levelup-stat-{self.tick_index}-{idx}")

    def resolve_shady(
        self,
        shady: list[PendingShady],
        phantoms: list[PhantomItem],
    ) -> tuple[list[PendingShady], list[PhantomItem]]:
        shady = [pending for pending in shady if not wall_clock_expired(pending, now_ms=self.now_ms)]
        phantoms = [phantom for phantom in phantoms if not wall_clock_expired(phantom, now_ms=self.now_ms)]
        while shady and (phantoms or self.added_pool):
            pending = shady.pop(0)
            gained = phantoms.pop(0).item if phantoms else self.added_pool.pop(0)
            self.emit(
                event_id=f"shady-{pending.id}",
                kind="shadyGuy",
                timestamp=pending.created_at,
                shady_rarity=pending.rarity,
                gained_item=gained,
                source_icon=shady_icon(pending.rarity),
            )
        return shady, phantoms

    def resolve_microwaves(
        self,
        queue: list[PendingMicrowave],
        phantoms: list[PhantomItem],
    ) -> list[PendingMicrowave]:
        active: list[PendingMicrowave] = []
        for pending in queue:
            if microwave_expired(pending, now_ms=self.now_ms, run_time=self.run_time):
                self.log(
                    "microwave_expired",
                    pending=pending.id,
                    rarity=pending.rarity,
                    created_at=pending.created_at,
                    created_at_run_time=pending.created_at_run_time,
                )
                continue
            active.append(pending)

        for idx, gained in enumerate(self.added_pool):
            paired = next((pending for pending in active if pending.rarity == gained.rarity), None)
            if paired is None:
                phantoms.append(PhantomItem(id=f"phantom-{self.tick_index}-{idx}", item=gained, created_at=self.now_ms))
                continue
            active.remove(paired)
            self.emit(
                event_id=f"microwave-{paired.id}",
                kind="microwave",
                timestamp=paired.created_at,
                microwave_rarity=paired.rarity,
                burned_item=paired.burned_item,
                replicated_item=gained,
                source_icon=microwave_icon(paired.rarity),
            )
        self.added_pool.clear()
        return active


def attribute(
    prev: Snapshot,
    curr: Snapshot,
    delta: SnapshotDelta,
    ledger: PendingLedger,
    *,
    now_ms: int,
    tick_index: int = 0,
    game_data: GameData | None = None,
    trace: bool = False,
    player: str = "",
) -> AttributionResult:
    """Turn one tick's delta into events, returning them with the updated ledger.

    Pure apart from optional debug tracing: neither snapshot nor `ledger` is modified.
    """
    if not delta.has_changes:
        return AttributionResult(events=(), ledger=ledger)

    counters = delta.counters
    level_rose = counters.level > 0
    tick = _TickAttribution(
        prev=prev,
        curr=curr,
        delta=delta,
        game_data=game_data if game_data is not None else GameData(),
        now_ms=int(now_ms),
        tick_index=int(tick_index),
        trace=bool(trace),
        player=str(player),
        run_time=run_time_seconds(curr),
        prev_run_time=run_time_seconds(prev),
        auto_leveling=level_rose and curr.meta.is_paused is False and len(delta.stats) > 1,
    )
    tick.build_pools()
    tick.log(
        "snapshot_deltas",
        level=counters.level,
        moai=counters.moai,
        charge_normal=counters.charge_normal,
        charge_golden=counters.charge_golden,
        chests=counters.total_chests,
        shady=sum(counters.shady_guys.values()),
        run_time=tick.run_time,
        prev_run_time=tick.prev_run_time,
        stats=len(delta.stats),
        added=len(tick.added_pool),
        removed=len(tick.removed_pool),
    )

    # Stat changes only count as interactions when something could explain them.
    if level_rose or counters.shrine_charged or ledger.shrines:
        tick.offered_stats = list(delta.stats.values())

    moai = list(ledger.moai)
    shrines = list(ledger.shrines)
    chests = list(ledger.chests)
    shady = list(ledger.shady)
    microwaves = list(ledger.microwaves)
    phantoms = list(ledger.phantoms)

    tick.enqueue_moai(moai)
    # A level-up landing on the same tick as a shrine charge makes the stats unassignable.
    ambiguous_shrine_tick = level_rose and counters.shrine_charged
    if not ambiguous_shrine_tick:
        tick.enqueue_shrines(shrines)
    tick.enqueue_chests(chests)

    if ambiguous_shrine_tick:
        for idx, change in enumerate(tick.offered_stats):
            tick.emit_bare_stat(change, f"stat-only-{tick.tick_index}-{idx}")
        tick.offered_stats.clear()

    chests = tick.resolve_chests(chests)
    moai = tick.resolve_moai(moai)
    shrines = tick.resolve_shrines(shrines)

    if level_rose:
        tick.resolve_level_up()

    tick.enqueue_shady(shady)
    shady, phantoms = tick.resolve_shady(shady, phantoms)

    tick.enqueue_microwaves(microwaves)
    microwaves = tick.resolve_microwaves(microwaves, phantoms)

    leftovers = [change for change in tick.offered_stats if change.stat not in tick.attributed_stats]
    for idx, change in enumerate(leftovers):
        tick.emit_bare_stat(change, f"stat-unattributed-{tick.tick_index}-{idx}")

    updated = PendingLedger(
        chests=tuple(chests),
        moai=tuple(moai),
        shrines=tuple(shrines),
        shady=tuple(shady),
        microwaves=tuple(microwaves),
        phantoms=tuple(phantoms),
    )
    tick.log("pending_queues", **updated.counts())
    if tick.events:
        tick.log("attributed", events=",".join(f"{event.kind}:{event.id}" for event in tick.events))
    return AttributionResult(events=tuple(tick.events), ledger=updated)


__all__ = [
    "AttributionResult",
    "attribute",
]
