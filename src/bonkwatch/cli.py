from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import msgspec
import typer

from .diff import SnapshotDelta, compute_delta
from .engine import InteractionHub
from .events import INTERACTION_KINDS, InteractionEvent, describe_event, format_stat_delta
from .feed import FeedDecodeError, decode_player_state
from .game_data import GameData, GameDataError, load_game_data
from .recording import SnapshotLogError, load_snapshot_log
from .snapshot import Snapshot
from .settings import (
    DisplaySettings,
    InteractionSettings,
    SettingsError,
    default_settings_path,
    load_settings,
    save_settings,
    settings_to_json,
)

app = typer.Typer(add_completion=False)
settings_app = typer.Typer(add_completion=False)
app.add_typer(settings_app, name="settings")


def _fail(message: str) -> typer.Exit:
    typer.echo(message, err=True)
    return typer.Exit(code=1)


def _load_settings_or_exit(path: Path | None) -> InteractionSettings:
    try:
        return load_settings(path)
    except SettingsError as exc:
        raise _fail(str(exc)) from exc


def _load_game_data_or_exit(path: Path | None) -> GameData:
    if path is None:
        return GameData()
    try:
        return load_game_data(path)
    except GameDataError as exc:
        raise _fail(str(exc)) from exc


def _event_to_dict(event: InteractionEvent, *, player: str, received_at: int) -> dict[str, Any]:
    row = msgspec.to_builtins(event)
    row["player"] = player
    row["received_at"] = int(received_at)
    row["summary"] = describe_event(event)
    return row


@app.command("replay")
def cmd_replay(
    log_file: Path = typer.Argument(..., help="snapshot log (.jsonl or .jsonl.gz)"),
    game_data_file: Path | None = typer.Option(None, "--game-data", help="image_map.json with item/tome data"),
    settings_file: Path | None = typer.Option(None, "--settings", help="settings file (default: user config dir)"),
    debug_log_dir: Path | None = typer.Option(None, "--debug-log", help="write an attribution trace under DIR/logs"),
    as_json: bool = typer.Option(False, "--json", help="print JSON"),
) -> None:
    """Run a recorded feed through the interaction engine and print the events."""
    try:
        updates = load_snapshot_log(log_file)
    except SnapshotLogError as exc:
        raise _fail(str(exc)) from exc
    settings = _load_settings_or_exit(settings_file)
    hub = InteractionHub(settings, game_data=_load_game_data_or_exit(game_data_file))
    if debug_log_dir is not None:
        path = hub.start_debug_log(debug_log_dir, source="replay")
        typer.echo(f"debug log: {path}", err=True)

    rows: list[dict[str, Any]] = []
    total = 0
    try:
        for update in updates:
            events = hub.process_state_update(update.player, update.snapshot, now_ms=update.received_at)
            total += len(events)
            for event in events:
                player = hub.engine(update.player).player
                if as_json:
                    rows.append(_event_to_dict(event, player=player, received_at=update.received_at))
                else:
                    typer.echo(f"{update.received_at} {player} {describe_event(event)}")
    finally:
        hub.close()

    if as_json:
        typer.echo(json.dumps(rows, indent=2, sort_keys=True))
        return
    pending = {player: sum(hub.pending_counts(player).values()) for player in hub.players}
    pending_text = " ".join(f"{player}={count}" for player, count in pending.items())
    typer.echo(f"{total} events from {len(updates)} updates; pending {pending_text}")


def _read_snapshot(path: Path) -> Snapshot:
    try:
        return decode_player_state(Path(path).read_bytes())
    except OSError as exc:
        raise _fail(f"cannot read {path}: {exc}") from exc
    except FeedDecodeError as exc:
        raise _fail(f"{path}: {exc}") from exc


def _delta_lines(delta: SnapshotDelta) -> list[str]:
    lines: list[str] = []
    for change in delta.stats.values():
        lines.append(f"stat {change.stat} {change.prev:g} -> {change.curr:g} ({format_stat_delta(change.display_delta, change.unit)})")
    for item in delta.items.added:
        lines.append(f"item + {item.id} {item.rarity} x{item.count}")
    for item in delta.items.removed:
        lines.append(f"item - {item.id} {item.rarity} x{item.count}")
    for change in delta.items.changed:
        lines.append(f"item ~ {change.item.id} {change.item.rarity} {change.count_delta:+d}")
    for label, leveled in (("tome", delta.tomes), ("weapon", delta.weapons)):
        for entry_id in leveled.added:
            lines.append(f"{label} + {entry_id}")
        for entry_id in leveled.removed:
            lines.append(f"{label} - {entry_id}")
        for level_up in leveled.leveled_up:
            lines.append(f"{label} ^ {level_up.id} {level_up.prev_level} -> {level_up.level}")
    counters = msgspec.to_builtins(delta.counters)
    shady = counters.pop("shady_guys")
    for name, value in counters.items():
        if value:
            lines.append(f"counter {name} +{value}")
    for rarity, value in shady.items():
        if value:
            lines.append(f"counter shady_{rarity} +{value}")
    return lines


@app.command("diff")
def cmd_diff(
    prev_file: Path = typer.Argument(..., help="earlier player-state JSON"),
    curr_file: Path = typer.Argument(..., help="later player-state JSON"),
    as_json: bool = typer.Option(False, "--json", help="print JSON"),
) -> None:
    """Show what changed between two player-state snapshots."""
    delta = compute_delta(_read_snapshot(prev_file), _read_snapshot(curr_file))
    if as_json:
        typer.echo(json.dumps(msgspec.to_builtins(delta), indent=2, sort_keys=True))
        return
    if not delta.has_changes:
        typer.echo("no changes")
        return
    for line in _delta_lines(delta):
        typer.echo(line)


@settings_app.command("path")
def cmd_settings_path(settings_file: Path | None = typer.Option(None, "--file", help="settings file (default: user config dir)")) -> None:
    """Print where settings are stored."""
    typer.echo(str(settings_file if settings_file is not None else default_settings_path()))


@settings_app.command("show")
def cmd_settings_show(settings_file: Path | None = typer.Option(None, "--file", help="settings file (default: user config dir)")) -> None:
    """Print the effective settings as JSON."""
    settings = _load_settings_or_exit(settings_file)
    typer.echo(settings_to_json(settings).decode("utf-8").rstrip("\n"))


@settings_app.command("toggle")
def cmd_settings_toggle(
    kind: str = typer.Argument(..., help=f"interaction kind ({', '.join(INTERACTION_KINDS)})"),
    settings_file: Path | None = typer.Option(None, "--file", help="settings file (default: user config dir)"),
) -> None:
    """Enable or disable one interaction kind."""
    settings = _load_settings_or_exit(settings_file)
    try:
        enabled = settings.toggle_interaction(kind)
    except ValueError as exc:
        raise _fail(str(exc)) from exc
    save_settings(settings, settings_file)
    typer.echo(f"{kind}: {'on' if enabled else 'off'}")


@settings_app.command("stat")
def cmd_settings_stat(
    stat_key: str = typer.Argument(..., help="stat key, e.g. CritChance"),
    settings_file: Path | None = typer.Option(None, "--file", help="settings file (default: user config dir)"),
) -> None:
    """Show or hide stat changes for one stat."""
    settings = _load_settings_or_exit(settings_file)
    visible = settings.toggle_stat_visibility(stat_key)
    save_settings(settings, settings_file)
    typer.echo(f"{stat_key}: {'shown' if visible else 'hidden'}")


@settings_app.command("set")
def cmd_settings_set(
    name: str = typer.Argument(..., help="display setting, e.g. max_visible"),
    value: str = typer.Argument(..., help="new value"),
    settings_file: Path | None = typer.Option(None, "--file", help="settings file (default: user config dir)"),
) -> None:
    """Change one display setting."""
    field_types = {field.name: field.type for field in msgspec.structs.fields(DisplaySettings)}
    if name not in field_types:
        raise _fail(f"unknown display setting {name!r}. Available: {', '.join(field_types)}")
    try:
        parsed = msgspec.convert(value, type=field_types[name], strict=False)
    except msgspec.ValidationError as exc:
        raise _fail(f"invalid value for {name}: {exc}") from exc
    settings = _load_settings_or_exit(settings_file)
    try:
        settings.update_display_settings(**{name: parsed})
    except SettingsError as exc:
        raise _fail(str(exc)) from exc
    save_settings(settings, settings_file)
    typer.echo(f"{name}={parsed}")


@settings_app.command("unreliable")
def cmd_settings_unreliable(
    state: str = typer.Argument(..., help="on|off: show stats the game reports inconsistently"),
    settings_file: Path | None = typer.Option(None, "--file", help="settings file (default: user config dir)"),
) -> None:
    """Turn the unreliable-stats master switch on or off."""
    choice = state.strip().lower()
    if choice not in ("on", "off"):
        raise typer.BadParameter("expected on or off", param_hint="STATE")
    settings = _load_settings_or_exit(settings_file)
    settings.set_show_unreliable_stats(choice == "on")
    save_settings(settings, settings_file)
    typer.echo(f"show_unreliable_stats={choice}")


@settings_app.command("reset")
def cmd_settings_reset(settings_file: Path | None = typer.Option(None, "--file", help="settings file (default: user config dir)")) -> None:
    """Restore default settings."""
    path = save_settings(InteractionSettings(), settings_file)
    typer.echo(f"reset {path}")


def main(argv: list[str] | None = None) -> None:
    app(prog_name="bonkwatch", args=argv)


if __name__ == "__main__":
    main()
