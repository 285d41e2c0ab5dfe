from __future__ import annotations

import json

import pytest

from bonkwatch.feed import FeedDecodeError, decode_player_state, snapshot_from_player_state
from bonkwatch.snapshot import ItemEntry, TomeEntry


def _relay_state() -> dict[str, object]:
    return {
        "timeElapsed": 321.5,
        "pauseTime": 20.0,
        "isPaused": False,
        "startedAt": 1_700_000_000_000,
        "lastUpdated": 1_700_000_321_500,
        "character": {"id": 4, "level": 12, "stats": {"Armor": 0.25, "CritChance": None}},
        "equipment": {
            "weapons": [{"id": 1, "level": 3}],
            "tomes": [{"id": "24", "level": 2}],
            "items": [
                {"id": 7, "rarity": "Rare", "count": 2},
                {"id": 9, "rarity": 4},
                {"id": None, "rarity": "epic"},
            ],
        },
        "combat": {
            "shrines": {"moai": 1, "charge_normal": 4, "charge_golden": 1},
            "chests": {"normal": 6, "free": 2, "corrupt": 1},
            "shadyGuys": {"rare": 1, "legendary": 1},
            "kills": 999,
        },
        "extraField": "ignored",
    }


def test_snapshot_from_player_state_maps_relay_fields() -> None:
    snap = snapshot_from_player_state(_relay_state())

    assert snap.stats == {"Armor": 0.25}
    assert snap.equipment.tomes == (TomeEntry(id=24, level=2),)
    assert snap.equipment.items == (
        ItemEntry(id=7, rarity="rare", count=2),
        ItemEntry(id=9, rarity="legendary", count=1),
    )
    assert snap.combat.chests.normal == 6
    assert snap.combat.chests.corrupt == 1
    assert snap.combat.shrines.charge_normal == 4
    assert snap.combat.shady_guys.count("rare") == 1
    assert snap.combat.shady_guys.count("epic") == 0
    assert snap.meta.level == 12
    assert snap.meta.character_id == 4
    assert snap.meta.started_at == 1_700_000_000_000
    assert snap.run_time_seconds == pytest.approx(301.5)


def test_missing_sections_default_to_zero() -> None:
    snap = snapshot_from_player_state({"combat": {"shrines": 0, "chests": None}})

    assert snap.stats == {}
    assert snap.equipment.items == ()
    assert snap.combat.chests.normal == 0
    assert snap.combat.shrines.moai == 0
    assert snap.meta.level == 0
    assert snap.run_time_seconds is None


def test_decode_player_state_from_json_bytes() -> None:
    snap = decode_player_state(json.dumps(_relay_state()).encode("utf-8"))

    assert snap.combat.shrines.moai == 1
    assert snap.meta.is_paused is False


def test_decode_player_state_rejects_malformed_json() -> None:
    with pytest.raises(FeedDecodeError):
        decode_player_state(b"{not json")


def test_snapshot_from_player_state_rejects_wrong_shape() -> None:
    with pytest.raises(FeedDecodeError):
        snapshot_from_player_state({"equipment": {"items": "not a list"}})
