"""Tests for HUD state store and formatting."""

import json
import threading

import pytest

from vibe.hud import (
    ContextUsage,
    HudState,
    HudStore,
    format_focused,
    format_full,
    format_minimal,
)


@pytest.fixture
def store(tmp_path):
    return HudStore(tmp_path / "hud" / "state.json")


class TestLoadSave:
    def test_missing_file_gives_default(self, store):
        state = store.load()
        assert state.mode == "idle"
        assert state.agents == []
        assert state.context.total == 200000

    def test_corrupt_file_gives_default(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text("{not json")
        assert store.load().mode == "idle"

    def test_round_trip_through_update(self, store):
        with store.update() as state:
            state.start("ultrawork", "login-feature")
            state.set_phase(2, 5, "Implementing core")
            state.add_agent("explore-1", "haiku")

        loaded = store.load()
        assert loaded.mode == "ultrawork"
        assert loaded.feature == "login-feature"
        assert loaded.phase.current == 2
        assert loaded.agents[0].name == "explore-1"
        assert loaded.last_update is not None

    def test_save_leaves_no_temp_files(self, store):
        store.save(HudState())
        assert [p.name for p in store.path.parent.glob("*.json")] == ["state.json"]

    def test_failed_mutation_does_not_save(self, store):
        with pytest.raises(KeyError):
            with store.update() as state:
                state.mode = "spec"
                state.set_value("nonsense", 1)
        assert not store.path.exists()

    def test_reads_legacy_camel_case_keys(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text(
            json.dumps(
                {
                    "mode": "review",
                    "agents": [{"name": "a", "model": "opus", "startTime": 5}],
                    "lastUpdate": "2025-01-01T00:00:00Z",
                }
            )
        )
        state = store.load()
        assert state.agents[0].start_time == 5
        assert state.last_update == "2025-01-01T00:00:00Z"

    def test_concurrent_updates_do_not_lose_writes(self, store):
        def add(i):
            with store.update() as state:
                state.add_agent(f"agent-{i}")

        threads = [threading.Thread(target=add, args=(i,)) for i in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(store.load().agents) == 10

    def test_reset(self, store):
        with store.update() as state:
            state.start("spec")
        store.reset()
        assert store.load().mode == "idle"


class TestMutations:
    def test_remove_and_clear_agents(self):
        state = HudState()
        state.add_agent("a")
        state.add_agent("b")
        state.remove_agent("a")
        assert [a.name for a in state.agents] == ["b"]
        state.clear_agents()
        assert state.agents == []

    def test_set_value_dotted(self):
        state = HudState()
        state.set_value("phase.current", 3)
        assert state.phase.current == 3

    @pytest.mark.parametrize("key", ["phase.bogus", "mode.upper", "agents.name"])
    def test_set_value_unknown_key(self, key):
        with pytest.raises(KeyError):
            HudState().set_value(key, 1)

    @pytest.mark.parametrize("key", ["phase", "context", "agents"])
    def test_set_value_rejects_composite_fields(self, key, store):
        with pytest.raises(KeyError):
            with store.update() as state:
                state.set_value(key, 3)

        assert not store.path.exists()
        assert store.load().phase.total == 0

    def test_scalar_where_section_expected_loads_defaults(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text(
            json.dumps({"mode": "review", "phase": 3, "context": "full", "agents": 7})
        )
        state = store.load()

        assert state.mode == "review"
        assert state.phase.total == 0
        assert state.context.used == 0
        assert state.agents == []


class TestFormatting:
    def test_context_health_thresholds(self):
        assert ContextUsage(10, 100).health == "good"
        assert ContextUsage(70, 100).health == "warning"
        assert ContextUsage(95, 100).health == "critical"

    def test_minimal(self):
        state = HudState(mode="ultrawork")
        state.set_phase(1, 3)
        assert format_minimal(state) == "🚀 ultrawork [1/3]"

    def test_focused_includes_feature_and_context(self):
        state = HudState(mode="spec", feature="login")
        state.set_context(50000)
        text = format_focused(state)
        assert text.startswith("📝 spec: login | ")
        assert "CTX: 25%" in text

    def test_full_lists_agents_and_progress(self):
        state = HudState(mode="implementing")
        state.set_phase(1, 2, "Core")
        state.add_agent("explore-1", "haiku")
        text = format_full(state)
        assert "Phase:   1/2 Core" in text
        assert "50%" in text
        assert "Agents:  explore-1(haiku)" in text
