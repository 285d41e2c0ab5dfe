from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, TypeAlias

from .events import ChestType, ItemRef

# Generic safety net for causes whose effect never shows up in the feed.
PENDING_SOURCE_TIMEOUT_MS = 10 * 60 * 1000
# Microwave trades resolve almost immediately; anything older is a stale burn.
MICROWAVE_PENDING_TIMEOUT_MS = 60 * 1000
MICROWAVE_PENDING_TIMEOUT_SECONDS = 60.0

ShrineTier: TypeAlias = Literal["normal", "golden"]


@dataclass(frozen=True, slots=True)
class PendingChest:
    id: str
    chest_type: ChestType
    created_at: int
    created_at_run_time: float | None = None


@dataclass(frozen=True, slots=True)
class PendingMoai:
    id: str
    created_at: int


@dataclass(frozen=True, slots=True)
class PendingShrine:
    id: str
    tier: ShrineTier
    created_at: int


@dataclass(frozen=True, slots=True)
class PendingShady:
    id: str
    rarity: str
    created_at: int


@dataclass(frozen=True, slots=True)
class PendingMicrowave:
    id: str
    burned_item: ItemRef
    rarity: str
    created_at: int
    created_at_run_time: float | None = None


@dataclass(frozen=True, slots=True)
class PhantomItem:
    """An item gain nothing explained yet; a later shady guy may still claim it."""

    id: str
    item: ItemRef
    created_at: int


PendingSource: TypeAlias = PendingChest | PendingMoai | PendingShrine | PendingShady | PendingMicrowave | PhantomItem


def wall_clock_expired(source: PendingSource, *, now_ms: int, timeout_ms: int = PENDING_SOURCE_TIMEOUT_MS) -> bool:
    return int(now_ms) - int(source.created_at) >= int(timeout_ms)


def microwave_expired(pending: PendingMicrowave, *, now_ms: int, run_time: float | None) -> bool:
    """Run-time based expiry when both ends have run time, wall clock otherwise."""
    if pending.created_at_run_time is not None and run_time is not None:
        elapsed = float(run_time) - float(pending.created_at_run_time)
        # A rewound run clock means the burn belongs to an earlier run.
        return elapsed < 0.0 or elapsed > MICROWAVE_PENDING_TIMEOUT_SECONDS
    return (int(now_ms) - int(pending.created_at)) > MICROWAVE_PENDING_TIMEOUT_MS


@dataclass(frozen=True, slots=True)
class PendingLedger:
    """Unresolved causes per kind, oldest first. Updates return a new ledger."""

    chests: tuple[PendingChest, ...] = ()
    moai: tuple[PendingMoai, ...] = ()
    shrines: tuple[PendingShrine, ...] = ()
    shady: tuple[PendingShady, ...] = ()
    microwaves: tuple[PendingMicrowave, ...] = ()
    phantoms: tuple[PhantomItem, ...] = ()

    def __len__(self) -> int:
        return (
            len(self.chests)
            + len(self.moai)
            + len(self.shrines)
            + len(self.shady)
            + len(self.microwaves)
            + len(self.phantoms)
        )

    def counts(self) -> dict[str, int]:
        return {
            "chest": len(self.chests),
            "moai": len(self.moai),
            "shrine": len(self.shrines),
            "shadyGuy": len(self.shady),
            "microwave": len(self.microwaves),
            "phantom": len(self.phantoms),
        }


__all__ = [
    "MICROWAVE_PENDING_TIMEOUT_MS",
    "MICROWAVE_PENDING_TIMEOUT_SECONDS",
    "PENDING_SOURCE_TIMEOUT_MS",
    "PendingChest",
    "PendingLedger",
    "PendingMicrowave",
    "PendingMoai",
    "PendingShady",
    "PendingShrine",
    "PendingSource",
    "PhantomItem",
    "ShrineTier",
    "microwave_expired",
    "wall_clock_expired",
]
