"""Recorded relay feeds: one JSON object per line, optionally gzipped.

Each line looks like `{"player": 1, "receivedAt": 1700000000000, "state": {...}}`
where `state` is the relay player-state object. `receivedAt` falls back to the
state's `lastUpdated`, then to one second after the previous line.
"""

from __future__ import annotations

import gzip
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import msgspec

from .feed import PlayerStatePayload, snapshot_from_payload
from .snapshot import Snapshot

_GZIP_MAGIC = b"\x1f\x8b"
_FALLBACK_STEP_MS = 1000


class SnapshotLogError(ValueError):
    pass


class SnapshotLogLine(msgspec.Struct, rename="camel"):
    state: PlayerStatePayload
    player: int | str = 1
    received_at: int | None = None


@dataclass(frozen=True, slots=True)
class RecordedUpdate:
    line_no: int
    player: int | str
    received_at: int
    snapshot: Snapshot


_LINE_DECODER = msgspec.json.Decoder(SnapshotLogLine)


def _is_gzip(data: bytes) -> bool:
    return data.startswith(_GZIP_MAGIC)


def iter_snapshot_log(data: bytes) -> Iterator[RecordedUpdate]:
    if _is_gzip(data):
        try:
            data = gzip.decompress(data)
        except (OSError, EOFError) as exc:
            raise SnapshotLogError(f"corrupt gzip stream: {exc}") from exc
    last_ms: int | None = None
    for line_no, raw in enumerate(data.splitlines(), start=1):
        if not raw.strip():
            continue
        try:
            line = _LINE_DECODER.decode(raw)
        except msgspec.DecodeError as exc:
            raise SnapshotLogError(f"line {line_no}: {exc}") from exc
        received_at = line.received_at
        if received_at is None and line.state.last_updated is not None:
            received_at = int(line.state.last_updated)
        if received_at is None:
            received_at = 0 if last_ms is None else last_ms + _FALLBACK_STEP_MS
        last_ms = int(received_at)
        yield RecordedUpdate(
            line_no=line_no,
            player=line.player,
            received_at=int(received_at),
            snapshot=snapshot_from_payload(line.state),
        )


def load_snapshot_log(path: Path) -> list[RecordedUpdate]:
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise SnapshotLogError(f"cannot read snapshot log {path}: {exc}") from exc
    try:
        return list(iter_snapshot_log(data))
    except SnapshotLogError as exc:
        raise SnapshotLogError(f"{path}: {exc}") from exc


def encode_snapshot_log_line(player: int | str, state: Mapping[str, Any], *, received_at: int | None = None) -> bytes:
    row: dict[str, Any] = {"player": player}
    if received_at is not None:
        row["receivedAt"] = int(received_at)
    row["state"] = dict(state)
    return msgspec.json.encode(row) + b"\n"


def append_snapshot_log(path: Path, player: int | str, state: Mapping[str, Any], *, received_at: int | None = None) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("ab") as handle:
        handle.write(encode_snapshot_log_line(player, state, received_at=received_at))


__all__ = [
    "RecordedUpdate",
    "SnapshotLogError",
    "SnapshotLogLine",
    "append_snapshot_log",
    "encode_snapshot_log_line",
    "iter_snapshot_log",
    "load_snapshot_log",
]
