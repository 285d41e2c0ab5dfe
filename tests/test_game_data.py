from __future__ import annotations

import json
from pathlib import Path

import pytest

from bonkwatch.game_data import (
    GameDataError,
    game_data_from_image_map,
    load_game_data,
    normalize_rarity,
    stat_spec,
)


def test_normalize_rarity() -> None:
    assert normalize_rarity(None) == "common"
    assert normalize_rarity(3) == "epic"
    assert normalize_rarity("4") == "legendary"
    assert normalize_rarity(" Rare ") == "rare"


def test_stat_spec_falls_back_for_unknown_keys() -> None:
    assert stat_spec("CritChance").unit == "percent"
    assert stat_spec("AirborneDamage").label == "AirborneDamage"
    assert stat_spec("AirborneDamage").unit == "number"


def test_game_data_from_image_map_indexes_items_and_tomes(tmp_path: Path) -> None:
    image_map = {
        "items": [
            {"ingameId": 7, "name": "Battery", "imageSrc": "/Game Icons/Items/Battery.png"},
            {"ingameId": "8", "name": "Clover"},
            {"name": "No id"},
        ],
        "tomes": [{"ingameId": 3, "name": "Armor Tome", "stats": {"Armor": 0.05}}],
        "heroes": [],
    }
    path = tmp_path / "image_map.json"
    path.write_text(json.dumps(image_map), encoding="utf-8")

    data = load_game_data(path)

    battery = data.local_item(7)
    assert battery is not None and battery.name == "Battery"
    clover = data.local_item(8)
    assert clover is not None and clover.name == "Clover"
    assert data.local_item(99) is None
    assert data.tome_stats(3) == {"Armor": 0.05}
    assert data.tome_stats(4) == {}
    assert data.hero_passive_stat(0) == "Luck"
    assert data.hero_passive_stat(None) is None


def test_game_data_errors() -> None:
    with pytest.raises(GameDataError):
        game_data_from_image_map(b"[")
    with pytest.raises(GameDataError, match="cannot read"):
        load_game_data(Path("/nonexistent/image_map.json"))
