from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .attribution import attribute
from .baseline import BaselineGuard
from .debug_log import close_interaction_debug_log, init_interaction_debug_log, interaction_debug_log
from .diff import StatChange, compute_delta
from .events import INTERACTION_KINDS, InteractionEvent, InteractionKind, ItemRef, chest_icon, microwave_icon, shady_icon
from .feed import FeedDecodeError, snapshot_from_player_state
from .game_data import GameData, stat_spec
from .pending import PendingLedger
from .scheduler import EventBoard
from .settings import DisplaySettings, InteractionSettings
from .snapshot import Snapshot

PLAYER_KEYS = ("player1", "player2")

Clock = Callable[[], int]


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


def normalize_player_key(player_id: int | str) -> str:
    """Map relay player ids (`1`, `"2"`) to board keys; other keys pass through."""
    text = str(player_id).strip()
    if text in ("1", "2"):
        return f"player{text}"
    return text


@dataclass(slots=True)
class PlayerInteractionEngine:
    """Per-player pipeline: baseline guard, diff, attribution, filter, queue."""

    player: str
    settings: InteractionSettings
    game_data: GameData = field(default_factory=GameData)
    guard: BaselineGuard = field(default_factory=BaselineGuard)
    board: EventBoard = field(default_factory=EventBoard)
    ledger: PendingLedger = field(default_factory=PendingLedger)
    _tick_index: int = 0

    @property
    def tick_index(self) -> int:
        return int(self._tick_index)

    def ingest(self, snapshot: Snapshot, *, now_ms: int) -> list[InteractionEvent]:
        trace = bool(self.settings.display.debug_logging)
        self.settings.observe_stat_keys(snapshot.stats)
        prev = self.guard.admit(snapshot, now_ms=now_ms)
        if prev is None:
            restarted = self.guard.restarted
            if restarted:
                # Causes recorded before a restart can never resolve against the new run.
                self.ledger = PendingLedger()
            if trace:
                interaction_debug_log(
                    "baseline",
                    player=self.player,
                    tick=self._tick_index,
                    phase=self.guard.phase(now_ms=now_ms),
                    restarted=restarted,
                )
            return []

        self._tick_index += 1
        delta = compute_delta(
            prev,
            snapshot,
            ignore_stat_key=self.game_data.hero_passive_stat(snapshot.meta.character_id),
            allowed_stat_keys=self.settings.allowed_stat_keys(),
        )
        result = attribute(
            prev,
            snapshot,
            delta,
            self.ledger,
            now_ms=now_ms,
            tick_index=self._tick_index,
            game_data=self.game_data,
            trace=trace,
            player=self.player,
        )
        self.ledger = result.ledger
        # Disabled kinds still consumed their pending sources above.
        enabled = [event for event in result.events if self.settings.is_enabled(event.kind)]
        self.board.enqueue(enabled)
        return enabled

    def pump(self, *, now_ms: int) -> list[InteractionEvent]:
        return self.board.pump(now_ms=now_ms, max_visible=self.settings.display.max_visible)

    def tick(self, *, now_ms: int) -> list[InteractionEvent]:
        return self.board.tick(now_ms=now_ms, duration_ms=self.settings.display.duration)

    def clear(self) -> None:
        self.board.clear()
        self.ledger = PendingLedger()
        self.guard.reset()


def _debug_stat(stat: str, amount: float) -> StatChange:
    spec = stat_spec(stat)
    return StatChange(
        stat=stat,
        prev=0.0,
        curr=float(amount),
        delta=float(amount),
        display_delta=float(amount),
        unit=spec.unit,
        label=spec.label,
    )


def _debug_event_fields(kind: InteractionKind) -> dict[str, Any]:
    match kind:
        case "chest":
            return {"chest_type": "normal", "gained_item": ItemRef(id=1, rarity="common"), "source_icon": chest_icon("normal")}
        case "moai":
            return {"gained_item": ItemRef(id=3, rarity="epic")}
        case "shrine":
            return {"stat_change": _debug_stat("MaxHealth", 10), "no_source": True}
        case "goldenShrine":
            return {"stat_change": _debug_stat("CritChance", 5), "no_source": True}
        case "shadyGuy":
            return {"shady_rarity": "rare", "gained_item": ItemRef(id=4, rarity="rare"), "source_icon": shady_icon("rare")}
        case "microwave":
            return {
                "microwave_rarity": "common",
                "burned_item": ItemRef(id=5, rarity="common"),
                "replicated_item": ItemRef(id=6, rarity="common"),
                "source_icon": microwave_icon("common"),
            }
        case "chaosTome":
            return {"stat_change": _debug_stat("Luck", 10), "no_source": True}
        case "levelup":
            return {"stat_change": _debug_stat("DamageMultiplier", 10), "no_source": True}
        case "statChange":
            return {"stat_change": _debug_stat("Armor", 5), "no_source": True}
    return {}


class InteractionHub:
    """Owns one engine per player plus the shared settings and game data."""

    def __init__(
        self,
        settings: InteractionSettings | None = None,
        *,
        game_data: GameData | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.settings = settings if settings is not None else InteractionSettings()
        self.game_data = game_data if game_data is not None else GameData()
        self._clock: Clock = clock if clock is not None else wall_clock_ms
        self._engines: dict[str, PlayerInteractionEngine] = {}
        self._debug_log_path: Path | None = None
        self._debug_seq = 0
        for key in PLAYER_KEYS:
            self.engine(key)

    def _now(self, now_ms: int | None) -> int:
        return int(self._clock() if now_ms is None else now_ms)

    def engine(self, player_id: int | str) -> PlayerInteractionEngine:
        key = normalize_player_key(player_id)
        engine = self._engines.get(key)
        if engine is None:
            engine = PlayerInteractionEngine(player=key, settings=self.settings, game_data=self.game_data)
            self._engines[key] = engine
        return engine

    @property
    def players(self) -> tuple[str, ...]:
        return tuple(self._engines)

    # -- feed -----------------------------------------------------------------------------------

    def process_state_update(
        self,
        player_id: int | str,
        state: Snapshot | Mapping[str, Any],
        *,
        now_ms: int | None = None,
    ) -> list[InteractionEvent]:
        """Ingest one relay update; malformed payloads are traced and produce no events."""
        engine = self.engine(player_id)
        if isinstance(state, Snapshot):
            snapshot = state
        else:
            try:
                snapshot = snapshot_from_player_state(state)
            except FeedDecodeError as exc:
                interaction_debug_log("feed_error", player=engine.player, error=exc)
                return []
        return engine.ingest(snapshot, now_ms=self._now(now_ms))

    # -- display --------------------------------------------------------------------------------

    def pop_event(self, player_id: int | str, *, now_ms: int | None = None) -> InteractionEvent | None:
        return self.engine(player_id).board.pop(
            now_ms=self._now(now_ms),
            max_visible=self.settings.display.max_visible,
        )

    def pump_events(self, player_id: int | str, *, now_ms: int | None = None) -> list[InteractionEvent]:
        return self.engine(player_id).pump(now_ms=self._now(now_ms))

    def dismiss_event(self, player_id: int | str, event_id: str) -> InteractionEvent | None:
        return self.engine(player_id).board.dismiss(event_id)

    def tick(self, now_ms: int | None = None) -> dict[str, list[InteractionEvent]]:
        """Expire on-screen events whose display time has passed, per player."""
        now = self._now(now_ms)
        return {key: engine.tick(now_ms=now) for key, engine in self._engines.items()}

    def clear_events(self, player_id: int | str | None = None) -> None:
        if player_id is None:
            for engine in self._engines.values():
                engine.clear()
            return
        self.engine(player_id).clear()

    def fire_debug_event(
        self,
        player_id: int | str,
        kind: str,
        *,
        now_ms: int | None = None,
    ) -> InteractionEvent | None:
        """Queue a canned event of `kind`, bypassing attribution and filters."""
        if kind not in INTERACTION_KINDS:
            return None
        now = self._now(now_ms)
        self._debug_seq += 1
        event = InteractionEvent(
            id=f"debug-{kind}-{now}-{self._debug_seq}",
            kind=kind,  # type: ignore[arg-type]
            timestamp=now,
            **_debug_event_fields(kind),  # type: ignore[arg-type]
        )
        self.engine(player_id).board.enqueue([event])
        return event

    # -- controls -------------------------------------------------------------------------------

    def toggle_interaction(self, kind: str) -> bool:
        return self.settings.toggle_interaction(kind)

    def set_all_interactions(self, enabled: bool) -> None:
        self.settings.set_all_interactions(enabled)

    def update_display_settings(self, **changes: object) -> DisplaySettings:
        return self.settings.update_display_settings(**changes)

    def toggle_stat_visibility(self, stat_key: str) -> bool:
        return self.settings.toggle_stat_visibility(stat_key)

    def set_show_unreliable_stats(self, enabled: bool) -> None:
        self.settings.set_show_unreliable_stats(enabled)

    # -- read access ----------------------------------------------------------------------------

    def event_queue(self, player_id: int | str) -> tuple[InteractionEvent, ...]:
        return self.engine(player_id).board.event_queue

    def active_events(self, player_id: int | str) -> tuple[InteractionEvent, ...]:
        return self.engine(player_id).board.active_events

    def event_history(self, player_id: int | str) -> tuple[InteractionEvent, ...]:
        return self.engine(player_id).board.history

    def pending_counts(self, player_id: int | str) -> dict[str, int]:
        return self.engine(player_id).ledger.counts()

    def debug_summary(self, player_id: int | str, *, now_ms: int | None = None) -> dict[str, object]:
        engine = self.engine(player_id)
        return {
            "player": engine.player,
            "phase": engine.guard.phase(now_ms=self._now(now_ms)),
            "ticks": engine.tick_index,
            "pending": engine.ledger.counts(),
            "queued": len(engine.board.event_queue),
            "active": len(engine.board.active_events),
            "history": len(engine.board.history),
        }

    # -- tracing --------------------------------------------------------------------------------

    def start_debug_log(self, base_dir: Path, *, source: str = "hub") -> Path:
        self.settings.update_display_settings(debug_logging=True)
        self._debug_log_path = init_interaction_debug_log(base_dir=Path(base_dir), source=source)
        return self._debug_log_path

    def close(self) -> None:
        if self._debug_log_path is not None:
            close_interaction_debug_log()
            self._debug_log_path = None


__all__ = [
    "PLAYER_KEYS",
    "InteractionHub",
    "PlayerInteractionEngine",
    "normalize_player_key",
    "wall_clock_ms",
]
