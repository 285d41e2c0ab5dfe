from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, TypeAlias

import msgspec

ItemId: TypeAlias = int | str
Rarity: TypeAlias = Literal["common", "rare", "epic", "legendary"]
StatUnit: TypeAlias = Literal["number", "percent"]

RARITIES: tuple[Rarity, ...] = ("common", "rare", "epic", "legendary")

CHAOS_TOME_ID = 24

_RARITY_BY_CODE: dict[int, Rarity] = {
    1: "common",
    2: "rare",
    3: "epic",
    4: "legendary",
}


class GameDataError(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class StatSpec:
    label: str
    unit: StatUnit


STAT_CONFIG: dict[str, StatSpec] = {
    "MaxHealth": StatSpec("Max HP", "number"),
    "HealthRegen": StatSpec("HP Regen", "number"),
    "Overheal": StatSpec("Overheal", "percent"),
    "Shield": StatSpec("Shield", "number"),
    "Thorns": StatSpec("Thorns", "number"),
    "Armor": StatSpec("Armor", "percent"),
    "Evasion": StatSpec("Evasion", "percent"),
    "Lifesteal": StatSpec("Lifesteal", "percent"),
    "DamageMultiplier": StatSpec("Damage", "percent"),
    "AttackSpeed": StatSpec("Attack Speed", "percent"),
    "CritChance": StatSpec("Crit Chance", "percent"),
    "CritDamage": StatSpec("Crit Damage", "percent"),
    "Projectiles": StatSpec("Projectile Count", "number"),
    "ProjectileBounces": StatSpec("Projectile Bounces", "number"),
    "SizeMultiplier": StatSpec("Size", "percent"),
    "DurationMultiplier": StatSpec("Duration", "percent"),
    "ProjectileSpeedMultiplier": StatSpec("Projectile Speed", "percent"),
    "MoveSpeedMultiplier": StatSpec("Movement Speed", "percent"),
    "KnockbackMultiplier": StatSpec("Knockback", "percent"),
    "EliteDamageMultiplier": StatSpec("Damage to Elites", "percent"),
    "ExtraJumps": StatSpec("Extra Jumps", "number"),
    "JumpHeight": StatSpec("Jump Height", "percent"),
    "Luck": StatSpec("Luck", "percent"),
    "Difficulty": StatSpec("Difficulty", "percent"),
    "PickupRange": StatSpec("Pickup Range", "percent"),
    "XpIncreaseMultiplier": StatSpec("XP Gain", "percent"),
    "GoldIncreaseMultiplier": StatSpec("Gold Gain", "percent"),
    "EliteSpawnIncrease": StatSpec("Elite Spawn Increase", "percent"),
    "PowerupBoostMultiplier": StatSpec("Powerup Multiplier", "percent"),
    "PowerupChance": StatSpec("Powerup Drop Chance", "percent"),
}

# Stats the feed reports reliably; anything else is opt-in behind `show_unreliable_stats`.
STAT_KEYS: frozenset[str] = frozenset(STAT_CONFIG)

# Never diffed: max HP moves with every heal-over-time tick.
IGNORED_STATS: frozenset[str] = frozenset({"MaxHealth"})
ALWAYS_DISABLED_STATS: frozenset[str] = frozenset({"DamageMultiplier", "HealthRegen", "Luck"})

# Hero-intrinsic passives scale on their own and would read as phantom stat gains.
HERO_PASSIVE_STAT_KEY_BY_HERO_ID: dict[int, str] = {
    0: "Luck",  # Fox
    1: "MoveSpeedMultiplier",  # Calcium
    2: "Armor",  # Sir Oofie
    3: "CritChance",  # CL4NK
    4: "AttackSpeed",  # Megachad
    5: "DamageMultiplier",  # Ogre
    6: "GoldIncreaseMultiplier",  # Robinette
    7: "Thorns",  # Athena
    8: "AirborneDamage",  # Birdo
    9: "CritDamage",  # Bush
    10: "AttackSpeed",  # Bandit
    11: "MaxHealth",  # Monke
    12: "SizeMultiplier",  # Noelle
    13: "PickupRange",  # Tony McZoom
    15: "XpIncreaseMultiplier",  # Spaceman
    16: "Evasion",  # Ninja
    17: "Lifesteal",  # Vlad
    19: "Difficulty",  # Sir Chadwell
}


def normalize_rarity(value: object) -> str:
    """Map numeric (1..4) or textual rarities onto lowercase names; unknown input becomes `common`."""
    if value is None or isinstance(value, bool):
        return "common"
    if isinstance(value, (int, float)):
        return _RARITY_BY_CODE.get(int(value), "common")
    text = str(value).strip()
    try:
        code = int(text)
    except ValueError:
        return text.lower() or "common"
    return _RARITY_BY_CODE.get(code, text.lower())


def normalize_numeric_id(value: object) -> ItemId | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        return text


def stat_spec(key: str) -> StatSpec:
    spec = STAT_CONFIG.get(key)
    if spec is None:
        return StatSpec(label=key, unit="number")
    return spec


class LocalAsset(msgspec.Struct, rename="camel"):
    ingame_id: int | str | None = None
    name: str = ""
    image_src: str = ""
    stats: dict[str, float] = msgspec.field(default_factory=dict)


class _ImageMap(msgspec.Struct):
    heroes: list[LocalAsset] = msgspec.field(default_factory=list)
    weapons: list[LocalAsset] = msgspec.field(default_factory=list)
    tomes: list[LocalAsset] = msgspec.field(default_factory=list)
    items: list[LocalAsset] = msgspec.field(default_factory=list)


AssetLookup: TypeAlias = Callable[[ItemId], LocalAsset | None]


@dataclass(frozen=True, slots=True)
class GameData:
    """Read-only game-data collaborator: display lookups plus attribution tables.

    Both lookups are optional; without them events carry no display metadata and
    no tome explains a level-up stat gain.
    """

    get_local_item_by_id: AssetLookup | None = None
    get_local_tome_by_id: AssetLookup | None = None
    hero_passive_stats: Mapping[int, str] = field(default_factory=lambda: dict(HERO_PASSIVE_STAT_KEY_BY_HERO_ID))
    chaos_tome_id: int = CHAOS_TOME_ID

    def local_item(self, item_id: ItemId) -> LocalAsset | None:
        lookup = self.get_local_item_by_id
        if lookup is None:
            return None
        return lookup(item_id)

    def local_tome(self, tome_id: ItemId) -> LocalAsset | None:
        lookup = self.get_local_tome_by_id
        if lookup is None:
            return None
        return lookup(tome_id)

    def tome_stats(self, tome_id: ItemId) -> Mapping[str, float]:
        tome = self.local_tome(tome_id)
        if tome is None:
            return {}
        return tome.stats

    def hero_passive_stat(self, character_id: int | None) -> str | None:
        if character_id is None:
            return None
        return self.hero_passive_stats.get(int(character_id))


def _index_assets(assets: list[LocalAsset]) -> dict[ItemId, LocalAsset]:
    out: dict[ItemId, LocalAsset] = {}
    for asset in assets:
        key = normalize_numeric_id(asset.ingame_id)
        if key is None:
            continue
        out.setdefault(key, asset)
    return out


def game_data_from_image_map(data: bytes | str) -> GameData:
    try:
        image_map = msgspec.json.decode(data, type=_ImageMap)
    except msgspec.DecodeError as exc:
        raise GameDataError(f"invalid image map: {exc}") from exc
    items = _index_assets(image_map.items)
    tomes = _index_assets(image_map.tomes)
    return GameData(
        get_local_item_by_id=lambda item_id: items.get(item_id),
        get_local_tome_by_id=lambda tome_id: tomes.get(tome_id),
    )


def load_game_data(path: Path) -> GameData:
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        raise GameDataError(f"cannot read image map {path}: {exc}") from exc
    return game_data_from_image_map(data)


__all__ = [
    "ALWAYS_DISABLED_STATS",
    "CHAOS_TOME_ID",
    "GameData",
    "GameDataError",
    "HERO_PASSIVE_STAT_KEY_BY_HERO_ID",
    "IGNORED_STATS",
    "ItemId",
    "LocalAsset",
    "RARITIES",
    "Rarity",
    "STAT_CONFIG",
    "STAT_KEYS",
    "StatSpec",
    "StatUnit",
    "game_data_from_image_map",
    "load_game_data",
    "normalize_numeric_id",
    "normalize_rarity",
    "stat_spec",
]
