from __future__ import annotations

from pathlib import Path

from bonkwatch.debug_log import (
    close_interaction_debug_log,
    init_interaction_debug_log,
    interaction_debug_log,
    interaction_debug_log_path,
)
from bonkwatch.engine import InteractionHub


def test_interaction_debug_log_writes_events_to_file(tmp_path: Path) -> None:
    close_interaction_debug_log()
    log_path = init_interaction_debug_log(base_dir=tmp_path, source="Overlay", players=2)
    interaction_debug_log("chest_pending", pending="chest-pending-1-normal-0", run_time=12.5)

    assert interaction_debug_log_path() == log_path
    assert log_path.parent == tmp_path / "logs"
    text = log_path.read_text(encoding="utf-8")
    assert "event=init" in text
    assert "source=overlay" in text
    assert "players=2" in text
    assert "event=chest_pending" in text
    assert "run_time=12.5" in text

    close_interaction_debug_log()
    assert interaction_debug_log_path() is None


def test_hub_traces_attribution_decisions(tmp_path: Path) -> None:
    close_interaction_debug_log()
    hub = InteractionHub()
    log_path = hub.start_debug_log(tmp_path, source="test")
    base = {"timeElapsed": 10.0, "pauseTime": 0.0, "combat": {"chests": {"normal": 0}}}
    hub.process_state_update(1, base, now_ms=0)
    hub.process_state_update(1, {**base, "timeElapsed": 11.0}, now_ms=6_000)
    hub.process_state_update(1, {**base, "timeElapsed": 12.0, "combat": {"chests": {"normal": 1}}}, now_ms=7_000)
    hub.close()

    text = log_path.read_text(encoding="utf-8")
    assert "event=baseline" in text
    assert "event=snapshot_deltas" in text
    assert "event=chest_pending" in text
    assert "event=pending_queues" in text
    assert interaction_debug_log_path() is None


def test_trace_lines_lead_with_player_and_tick(tmp_path: Path) -> None:
    close_interaction_debug_log()
    hub = InteractionHub()
    log_path = hub.start_debug_log(tmp_path, source="test")
    base = {"timeElapsed": 10.0, "pauseTime": 0.0, "combat": {"chests": {"normal": 0}}}
    hub.process_state_update(2, base, now_ms=0)
    hub.process_state_update(2, {**base, "timeElapsed": 11.0}, now_ms=6_000)
    opened = {
        **base,
        "timeElapsed": 12.0,
        "combat": {"chests": {"normal": 1}},
        "equipment": {"items": [{"id": 7, "rarity": "rare"}]},
    }
    hub.process_state_update(2, opened, now_ms=7_000)
    hub.close()

    resolved = [line for line in log_path.read_text(encoding="utf-8").splitlines() if "event=chest_resolved" in line]
    assert len(resolved) == 1
    assert " event=chest_resolved player=player2 tick=2 " in resolved[0]
    assert "item=7:rare" in resolved[0]
