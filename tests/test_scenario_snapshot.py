from __future__ import annotations

from typing import Any

from syrupy import SnapshotAssertion

from bonkwatch.engine import InteractionHub
from bonkwatch.events import describe_event


def _state(
    elapsed: float,
    *,
    level: int = 1,
    stats: dict[str, float] | None = None,
    items: list[dict[str, Any]] | None = None,
    chaos_level: int = 1,
    chests: int = 0,
    golden: int = 0,
    legendary_shady: int = 0,
) -> dict[str, Any]:
    return {
        "timeElapsed": elapsed,
        "pauseTime": 0.0,
        "isPaused": False,
        "startedAt": 1_700_000_000_000,
        "character": {"id": 99, "level": level, "stats": {"Armor": 0.1, "CritChance": 0.1, **(stats or {})}},
        "equipment": {
            "tomes": [{"id": 24, "level": chaos_level}],
            "items": items if items is not None else [{"id": 5, "rarity": "common"}],
        },
        "combat": {
            "shrines": {"moai": 0, "charge_normal": 0, "charge_golden": golden},
            "chests": {"normal": chests, "free": 0, "corrupt": 0},
            "shadyGuys": {"legendary": legendary_shady},
        },
    }


def test_recorded_run_event_summaries(snapshot: SnapshotAssertion) -> None:
    with_chest = [{"id": 5, "rarity": "common"}, {"id": 7, "rarity": "rare"}]
    microwaved = [{"id": 7, "rarity": "rare"}, {"id": 6, "rarity": "common"}]
    with_shady = [*microwaved, {"id": 9, "rarity": "legendary"}]
    feed = [
        (0, _state(10.0)),
        (6_000, _state(11.0)),
        (7_000, _state(12.0, chests=1, items=with_chest)),
        (8_000, _state(13.0, chests=1, items=with_chest, golden=1, stats={"CritChance": 0.2})),
        (9_000, _state(14.0, chests=1, items=microwaved, golden=1, stats={"CritChance": 0.2})),
        (
            10_000,
            _state(15.0, level=2, chaos_level=2, chests=1, items=microwaved, golden=1, stats={"CritChance": 0.2, "Armor": 0.15}),
        ),
        (
            11_000,
            _state(
                16.0,
                level=2,
                chaos_level=2,
                chests=1,
                items=with_shady,
                golden=1,
                legendary_shady=1,
                stats={"CritChance": 0.2, "Armor": 0.15},
            ),
        ),
    ]

    hub = InteractionHub()
    summaries: list[str] = []
    for now_ms, state in feed:
        summaries.extend(describe_event(event) for event in hub.process_state_update(1, state, now_ms=now_ms))

    assert summaries == snapshot
