from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, TypeAlias

from .diff import StatChange
from .game_data import ItemId, LocalAsset

InteractionKind: TypeAlias = Literal[
    "chest",
    "moai",
    "shrine",
    "goldenShrine",
    "shadyGuy",
    "microwave",
    "chaosTome",
    "levelup",
    "other",
    "statChange",
]
ChestType: TypeAlias = Literal["normal", "free"]

_INTERFACE_ICONS = "/Game Icons/Interface"


@dataclass(frozen=True, slots=True)
class InteractionType:
    id: InteractionKind
    label: str
    icon: str


INTERACTION_TYPES: dict[InteractionKind, InteractionType] = {
    "chest": InteractionType("chest", "Chests", f"{_INTERFACE_ICONS}/normal_chest.png"),
    "moai": InteractionType("moai", "Moai", f"{_INTERFACE_ICONS}/moai.png"),
    "shrine": InteractionType("shrine", "Shrines", f"{_INTERFACE_ICONS}/charge_normal.png"),
    "goldenShrine": InteractionType("goldenShrine", "Golden Shrines", f"{_INTERFACE_ICONS}/charge_golden.png"),
    "shadyGuy": InteractionType("shadyGuy", "Shady Guy", f"{_INTERFACE_ICONS}/rare_shady.png"),
    "microwave": InteractionType("microwave", "Microwave", f"{_INTERFACE_ICONS}/rare_micro.png"),
    "chaosTome": InteractionType("chaosTome", "Chaos Tome", "/Game Icons/Tomes/ChaosTome.png"),
    "levelup": InteractionType("levelup", "Level Up", f"{_INTERFACE_ICONS}/arrow.png"),
    "other": InteractionType("other", "Other", f"{_INTERFACE_ICONS}/gold.png"),
    "statChange": InteractionType("statChange", "Stat Change", ""),
}
INTERACTION_KINDS: tuple[InteractionKind, ...] = tuple(INTERACTION_TYPES)


def chest_icon(chest_type: str) -> str:
    if chest_type == "free":
        return f"{_INTERFACE_ICONS}/free_chest.png"
    return f"{_INTERFACE_ICONS}/normal_chest.png"


def shady_icon(rarity: str) -> str:
    return f"{_INTERFACE_ICONS}/{rarity}_shady.png"


def microwave_icon(rarity: str) -> str:
    return f"{_INTERFACE_ICONS}/{rarity}_micro.png"


@dataclass(frozen=True, slots=True)
class ItemRef:
    """An item as it appears on an event, with optional display metadata."""

    id: ItemId
    rarity: str = "common"
    count: int = 1
    local: LocalAsset | None = None

    @property
    def name(self) -> str:
        if self.local is not None and self.local.name:
            return self.local.name
        return f"Item {self.id}"


@dataclass(frozen=True, slots=True)
class InteractionEvent:
    id: str
    kind: InteractionKind
    timestamp: int
    count: int = 1
    stat_change: StatChange | None = None
    gained_item: ItemRef | None = None
    burned_item: ItemRef | None = None
    replicated_item: ItemRef | None = None
    source_icon: str | None = None
    no_source: bool = False
    chest_type: ChestType | None = None
    shady_rarity: str | None = None
    microwave_rarity: str | None = None

    @property
    def type(self) -> InteractionType:
        return INTERACTION_TYPES[self.kind]

    @property
    def items(self) -> tuple[ItemRef, ...]:
        return tuple(item for item in (self.gained_item, self.burned_item, self.replicated_item) if item is not None)


def format_number(value: float) -> str:
    sign = "+" if value > 0 else ""
    if abs(value) >= 1_000_000:
        return f"{sign}{value / 1_000_000:.2f}M"
    if abs(value) >= 1_000:
        return f"{sign}{value / 1_000:.2f}K"
    if float(value).is_integer():
        return f"{sign}{int(value)}"
    return f"{sign}{value:.2f}"


def format_stat_delta(value: float, unit: str) -> str:
    if unit == "percent":
        sign = "+" if value > 0 else ""
        rounded = f"{value:.0f}" if abs(value) >= 1000 else f"{value:.2f}"
        return f"{sign}{rounded}%"
    return format_number(value)


def _item_text(item: ItemRef | None) -> str:
    if item is None:
        return "?"
    return f"{item.name} ({item.rarity})"


def describe_event(event: InteractionEvent) -> str:
    """One-line human summary of an event, used by the CLI."""
    label = event.type.label
    stat = event.stat_change
    stat_text = ""
    if stat is not None:
        stat_text = f"{stat.label} {format_stat_delta(stat.display_delta, stat.unit)}"

    match event.kind:
        case "chest":
            return f"{label} [{event.chest_type or 'normal'}]: +{_item_text(event.gained_item)}"
        case "moai":
            return f"{label}: +{_item_text(event.gained_item)}"
        case "shadyGuy":
            return f"{label} [{event.shady_rarity or 'rare'}]: +{_item_text(event.gained_item)}"
        case "microwave":
            return (
                f"{label} [{event.microwave_rarity or 'common'}]: "
                f"{_item_text(event.burned_item)} -> {_item_text(event.replicated_item)}"
            )
        case "shrine" | "goldenShrine" | "chaosTome" | "levelup":
            return f"{label}: {stat_text}" if stat_text else label
        case "statChange":
            return stat_text or label
        case "other":
            return f"{label}: +{_item_text(event.gained_item)}" if event.gained_item is not None else label
    return label


__all__ = [
    "ChestType",
    "INTERACTION_KINDS",
    "INTERACTION_TYPES",
    "InteractionEvent",
    "InteractionKind",
    "InteractionType",
    "ItemRef",
    "chest_icon",
    "describe_event",
    "format_number",
    "format_stat_delta",
    "microwave_icon",
    "shady_icon",
]
