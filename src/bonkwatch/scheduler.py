from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass, field

from .events import InteractionEvent

MAX_EVENT_HISTORY = 50
DEFAULT_EVENT_DURATION_MS = 5000
DEFAULT_MAX_VISIBLE = 3


@dataclass(frozen=True, slots=True)
class ActiveEvent:
    event: InteractionEvent
    activated_at_ms: int

    def expires_at_ms(self, duration_ms: int) -> int:
        return int(self.activated_at_ms) + int(duration_ms)


@dataclass(slots=True)
class EventBoard:
    """One player's waiting queue, on-screen events and bounded history.

    Display timers are activation timestamps checked by `tick`; the board owns no
    real timers, so dropping it leaves nothing behind.
    """

    history_limit: int = MAX_EVENT_HISTORY
    _queue: deque[InteractionEvent] = field(default_factory=deque)
    _active: list[ActiveEvent] = field(default_factory=list)
    _history: deque[InteractionEvent] = field(default_factory=deque)

    @property
    def event_queue(self) -> tuple[InteractionEvent, ...]:
        return tuple(self._queue)

    @property
    def active_events(self) -> tuple[InteractionEvent, ...]:
        return tuple(active.event for active in self._active)

    @property
    def history(self) -> tuple[InteractionEvent, ...]:
        """Events that left the screen, newest first."""
        return tuple(self._history)

    def enqueue(self, events: Iterable[InteractionEvent]) -> None:
        self._queue.extend(events)

    def pop(self, *, now_ms: int, max_visible: int = DEFAULT_MAX_VISIBLE) -> InteractionEvent | None:
        if not self._queue or len(self._active) >= int(max_visible):
            return None
        event = self._queue.popleft()
        self._active.append(ActiveEvent(event=event, activated_at_ms=int(now_ms)))
        return event

    def pump(self, *, now_ms: int, max_visible: int = DEFAULT_MAX_VISIBLE) -> list[InteractionEvent]:
        shown: list[InteractionEvent] = []
        while (event := self.pop(now_ms=now_ms, max_visible=max_visible)) is not None:
            shown.append(event)
        return shown

    def _retire(self, event: InteractionEvent) -> None:
        self._history.appendleft(event)
        while len(self._history) > int(self.history_limit):
            self._history.pop()

    def tick(self, *, now_ms: int, duration_ms: int = DEFAULT_EVENT_DURATION_MS) -> list[InteractionEvent]:
        expired: list[InteractionEvent] = []
        still_active: list[ActiveEvent] = []
        for active in self._active:
            if active.expires_at_ms(duration_ms) <= int(now_ms):
                expired.append(active.event)
                self._retire(active.event)
            else:
                still_active.append(active)
        self._active = still_active
        return expired

    def dismiss(self, event_id: str) -> InteractionEvent | None:
        for idx, active in enumerate(self._active):
            if active.event.id == event_id:
                del self._active[idx]
                self._retire(active.event)
                return active.event
        return None

    def clear(self) -> None:
        self._queue.clear()
        self._active.clear()
        self._history.clear()


__all__ = [
    "DEFAULT_EVENT_DURATION_MS",
    "DEFAULT_MAX_VISIBLE",
    "MAX_EVENT_HISTORY",
    "ActiveEvent",
    "EventBoard",
]
