from __future__ import annotations

import datetime as dt
import os
from pathlib import Path
from threading import Lock

from .diff import StatChange
from .events import ItemRef

_TRACE_LOCK = Lock()
_TRACE_PATH: Path | None = None

# Rendered ahead of the sorted remainder so one player's ticks line up when grepped.
_LEADING_FIELDS = ("player", "tick")


def _format_value(value: object) -> str:
    match value:
        case None:
            return "-"
        case bool():
            return str(value)
        case float():
            return f"{value:g}"
        case ItemRef(id=item_id, rarity=rarity, count=count):
            text = f"{item_id}:{rarity}"
            return text if int(count) == 1 else f"{text}x{count}"
        case StatChange(stat=stat, delta=delta):
            return f"{stat}{delta:+g}"
        case list() | tuple():
            return ",".join(_format_value(item) for item in value) or "[]"
    return str(value).replace("\n", "\\n")


def _format_fields(fields: dict[str, object]) -> str:
    keys = [key for key in _LEADING_FIELDS if key in fields]
    keys.extend(sorted(key for key in fields if key not in _LEADING_FIELDS))
    return " ".join(f"{key}={_format_value(fields[key])}" for key in keys)


def interaction_debug_log_path() -> Path | None:
    with _TRACE_LOCK:
        return _TRACE_PATH


def init_interaction_debug_log(*, base_dir: Path, source: str, **fields: object) -> Path:
    """Start tracing attribution decisions to a fresh log file under `base_dir/logs`."""
    source_name = str(source).strip().lower() or "unknown"
    timestamp = dt.datetime.now(dt.timezone.utc).strftime("%Y%m%dT%H%M%S.%fZ")
    path = base_dir / "logs" / f"interactions-{source_name}-pid{os.getpid()}-{timestamp}.log"
    path.parent.mkdir(parents=True, exist_ok=True)

    with _TRACE_LOCK:
        global _TRACE_PATH
        _TRACE_PATH = path

    interaction_debug_log("init", source=source_name, pid=int(os.getpid()), **fields)
    return path


def interaction_debug_log(event: str, **fields: object) -> None:
    timestamp = dt.datetime.now(dt.timezone.utc).isoformat(timespec="milliseconds")
    payload = _format_fields(fields)
    line = f"{timestamp} event={str(event).strip()}"
    if payload:
        line += f" {payload}"
    line += "\n"

    with _TRACE_LOCK:
        path = _TRACE_PATH
        if path is None:
            return
        with path.open("a", encoding="utf-8") as handle:
            handle.write(line)


def close_interaction_debug_log() -> None:
    with _TRACE_LOCK:
        global _TRACE_PATH
        _TRACE_PATH = None


__all__ = [
    "close_interaction_debug_log",
    "init_interaction_debug_log",
    "interaction_debug_log",
    "interaction_debug_log_path",
]
