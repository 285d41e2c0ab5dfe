from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from typer.testing import CliRunner

from bonkwatch.cli import app
from bonkwatch.recording import encode_snapshot_log_line


def _state(elapsed: float, normal_chests: int, items: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "timeElapsed": elapsed,
        "pauseTime": 0.0,
        "character": {"id": 99, "level": 1, "stats": {}},
        "equipment": {"items": items},
        "combat": {"chests": {"normal": normal_chests}},
    }


def _write_log(path: Path) -> Path:
    lines = [
        encode_snapshot_log_line(1, _state(10.0, 0, []), received_at=0),
        encode_snapshot_log_line(1, _state(11.0, 0, []), received_at=6_000),
        encode_snapshot_log_line(1, _state(12.0, 1, [{"id": 8, "rarity": "epic"}]), received_at=7_000),
    ]
    path.write_bytes(b"".join(lines))
    return path


def test_replay_prints_events(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("BONKWATCH_CONFIG_DIR", str(tmp_path / "config"))
    log = _write_log(tmp_path / "feed.jsonl")

    result = CliRunner().invoke(app, ["replay", str(log)])

    assert result.exit_code == 0, result.output
    assert "7000 player1 Chests [normal]: +Item 8 (epic)" in result.output
    assert "1 events from 3 updates; pending player1=0 player2=0" in result.output


def test_replay_json_output(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("BONKWATCH_CONFIG_DIR", str(tmp_path / "config"))
    log = _write_log(tmp_path / "feed.jsonl")

    result = CliRunner().invoke(app, ["replay", str(log), "--json"])

    assert result.exit_code == 0, result.output
    rows = json.loads(result.output)
    assert len(rows) == 1
    assert rows[0]["kind"] == "chest"
    assert rows[0]["player"] == "player1"
    assert rows[0]["gained_item"]["id"] == 8


def test_replay_honours_disabled_kinds(tmp_path: Path) -> None:
    settings_file = tmp_path / "settings.json"
    runner = CliRunner()
    toggled = runner.invoke(app, ["settings", "toggle", "chest", "--file", str(settings_file)])
    assert toggled.exit_code == 0, toggled.output
    assert "chest: off" in toggled.output

    result = runner.invoke(app, ["replay", str(_write_log(tmp_path / "feed.jsonl")), "--settings", str(settings_file)])

    assert result.exit_code == 0, result.output
    assert "Chests" not in result.output
    assert "0 events from 3 updates" in result.output


def test_replay_reports_bad_log(tmp_path: Path) -> None:
    log = tmp_path / "feed.jsonl"
    log.write_text("not json\n", encoding="utf-8")

    result = CliRunner().invoke(app, ["replay", str(log)])

    assert result.exit_code == 1
    assert "line 1" in result.output


def test_diff_command(tmp_path: Path) -> None:
    prev = tmp_path / "prev.json"
    curr = tmp_path / "curr.json"
    prev.write_text(json.dumps({"character": {"stats": {"Armor": 0.1}}, "combat": {"chests": {"normal": 2}}}), encoding="utf-8")
    curr.write_text(
        json.dumps(
            {
                "character": {"stats": {"Armor": 0.2}},
                "equipment": {"items": [{"id": 7, "rarity": "rare"}]},
                "combat": {"chests": {"normal": 3}},
            }
        ),
        encoding="utf-8",
    )

    result = CliRunner().invoke(app, ["diff", str(prev), str(curr)])

    assert result.exit_code == 0, result.output
    assert "stat Armor 0.1 -> 0.2 (+100.00%)" in result.output
    assert "item + 7 rare x1" in result.output
    assert "counter chest_normal +1" in result.output


def test_diff_command_without_changes(tmp_path: Path) -> None:
    snap = tmp_path / "snap.json"
    snap.write_text("{}", encoding="utf-8")

    result = CliRunner().invoke(app, ["diff", str(snap), str(snap)])

    assert result.exit_code == 0, result.output
    assert result.output.strip() == "no changes"


def test_settings_commands_roundtrip(tmp_path: Path) -> None:
    settings_file = tmp_path / "settings.json"
    runner = CliRunner()

    result = runner.invoke(app, ["settings", "set", "max_visible", "5", "--file", str(settings_file)])
    assert result.exit_code == 0, result.output
    result = runner.invoke(app, ["settings", "stat", "Armor", "--file", str(settings_file)])
    assert "Armor: hidden" in result.output
    result = runner.invoke(app, ["settings", "unreliable", "on", "--file", str(settings_file)])
    assert result.exit_code == 0, result.output

    shown = runner.invoke(app, ["settings", "show", "--file", str(settings_file)])
    payload = json.loads(shown.output)
    assert payload["displaySettings"]["maxVisible"] == 5
    assert payload["statVisibility"]["Armor"] is False
    assert payload["showUnreliableStats"] is True

    reset = runner.invoke(app, ["settings", "reset", "--file", str(settings_file)])
    assert reset.exit_code == 0, reset.output
    shown = runner.invoke(app, ["settings", "show", "--file", str(settings_file)])
    assert json.loads(shown.output)["displaySettings"]["maxVisible"] == 3


def test_settings_rejects_bad_values(tmp_path: Path) -> None:
    settings_file = tmp_path / "settings.json"
    runner = CliRunner()

    result = runner.invoke(app, ["settings", "set", "max_visible", "0", "--file", str(settings_file)])
    assert result.exit_code == 1
    assert "max_visible" in result.output

    result = runner.invoke(app, ["settings", "toggle", "dragon", "--file", str(settings_file)])
    assert result.exit_code == 1
    assert "unknown interaction kind" in result.output
    assert not settings_file.exists()
