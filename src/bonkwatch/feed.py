from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import msgspec

from .game_data import normalize_numeric_id, normalize_rarity
from .snapshot import (
    ChestCounters,
    CombatCounters,
    Equipment,
    ItemEntry,
    ShadyGuyCounters,
    ShrineCounters,
    Snapshot,
    SnapshotMeta,
    TomeEntry,
    WeaponEntry,
)

# Counter maps arrive as `{name: count}`; some relays send a bare `0` for an empty map.
CounterMap = dict[str, float | None] | float | None


class FeedDecodeError(ValueError):
    pass


class CharacterPayload(msgspec.Struct, rename="camel"):
    id: int | str | None = None
    level: float | None = None
    stats: dict[str, float | None] | None = None


class LeveledPayload(msgspec.Struct, rename="camel"):
    id: int | str | None = None
    level: float | None = None


class ItemPayload(msgspec.Struct, rename="camel"):
    id: int | str | None = None
    rarity: int | str | None = None
    count: float | None = None


class EquipmentPayload(msgspec.Struct, rename="camel"):
    weapons: list[LeveledPayload] | None = None
    tomes: list[LeveledPayload] | None = None
    items: list[ItemPayload] | None = None


class CombatPayload(msgspec.Struct, rename="camel"):
    shrines: CounterMap = None
    chests: CounterMap = None
    shady_guys: CounterMap = None


class PlayerStatePayload(msgspec.Struct, rename="camel"):
    """Relay-shaped player state; unknown fields are ignored."""

    time_elapsed: float | None = None
    pause_time: float | None = None
    is_paused: bool | None = None
    started_at: float | None = None
    last_updated: float | None = None
    character: CharacterPayload | None = None
    equipment: EquipmentPayload | None = None
    combat: CombatPayload | None = None


_PAYLOAD_DECODER = msgspec.json.Decoder(type=PlayerStatePayload)


def _count(value: object) -> int:
    if value is None:
        return 0
    try:
        return max(0, int(value))
    except (TypeError, ValueError, OverflowError):
        return 0


def _counter(counters: CounterMap, key: str) -> int:
    if not isinstance(counters, dict):
        return 0
    return _count(counters.get(key))


def _optional_int(value: float | None) -> int | None:
    if value is None:
        return None
    return int(value)


def _stats(character: CharacterPayload | None) -> dict[str, float]:
    if character is None or not character.stats:
        return {}
    return {str(key): float(value) for key, value in character.stats.items() if value is not None}


def _leveled(rows: list[LeveledPayload] | None, entry_type: type[WeaponEntry] | type[TomeEntry]) -> tuple[Any, ...]:
    out = []
    for row in rows or ():
        entry_id = normalize_numeric_id(row.id)
        if entry_id is None:
            continue
        out.append(entry_type(id=entry_id, level=_count(row.level)))
    return tuple(out)


def _items(rows: list[ItemPayload] | None) -> tuple[ItemEntry, ...]:
    out: list[ItemEntry] = []
    for row in rows or ():
        item_id = normalize_numeric_id(row.id)
        if item_id is None:
            continue
        count = _count(row.count) if row.count is not None else 1
        out.append(ItemEntry(id=item_id, rarity=normalize_rarity(row.rarity), count=count or 1))
    return tuple(out)


def snapshot_from_payload(payload: PlayerStatePayload) -> Snapshot:
    character = payload.character
    equipment = payload.equipment or EquipmentPayload()
    combat = payload.combat or CombatPayload()
    character_id = normalize_numeric_id(character.id) if character is not None else None
    return Snapshot(
        stats=_stats(character),
        equipment=Equipment(
            weapons=_leveled(equipment.weapons, WeaponEntry),
            tomes=_leveled(equipment.tomes, TomeEntry),
            items=_items(equipment.items),
        ),
        combat=CombatCounters(
            shrines=ShrineCounters(
                moai=_counter(combat.shrines, "moai"),
                charge_normal=_counter(combat.shrines, "charge_normal"),
                charge_golden=_counter(combat.shrines, "charge_golden"),
            ),
            chests=ChestCounters(
                normal=_counter(combat.chests, "normal"),
                free=_counter(combat.chests, "free"),
                corrupt=_counter(combat.chests, "corrupt"),
            ),
            shady_guys=ShadyGuyCounters(
                common=_counter(combat.shady_guys, "common"),
                rare=_counter(combat.shady_guys, "rare"),
                epic=_counter(combat.shady_guys, "epic"),
                legendary=_counter(combat.shady_guys, "legendary"),
            ),
        ),
        meta=SnapshotMeta(
            time_elapsed=payload.time_elapsed,
            pause_time=payload.pause_time,
            is_paused=payload.is_paused,
            started_at=_optional_int(payload.started_at),
            last_updated=_optional_int(payload.last_updated),
            character_id=character_id if isinstance(character_id, int) else None,
            level=_count(character.level) if character is not None else 0,
        ),
    )


def snapshot_from_player_state(state: Mapping[str, Any]) -> Snapshot:
    """Build a Snapshot from a decoded relay player-state object."""
    try:
        payload = msgspec.convert(state, type=PlayerStatePayload, strict=False)
    except msgspec.ValidationError as exc:
        raise FeedDecodeError(f"invalid player state: {exc}") from exc
    return snapshot_from_payload(payload)


def decode_player_state(blob: bytes | str) -> Snapshot:
    try:
        payload = _PAYLOAD_DECODER.decode(blob)
    except msgspec.DecodeError as exc:
        raise FeedDecodeError(f"invalid player state: {exc}") from exc
    return snapshot_from_payload(payload)


__all__ = [
    "FeedDecodeError",
    "PlayerStatePayload",
    "decode_player_state",
    "snapshot_from_payload",
    "snapshot_from_player_state",
]
