"""
Tests for the change monitor.

What we test
------------
1. First successful tick emits; identical tick emits nothing.
2. Timer moves beyond epsilon emit; sub-epsilon noise does not.
3. Errors emit only on the Polling -> PollingEmpty transition.
4. A missing client is silent and resets the snapshot.
5. The loop ticks immediately, survives failures and stops on its event.
6. A stop that times out never lets a restart run a second poller.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from unittest.mock import MagicMock

import pytest

from draftlink.client import SessionClient
from draftlink.draft import DraftState, parse_draft_session
from draftlink.errors import CredentialNotFound, HttpStatusFailure, ParseFailure, TransportFailure
from draftlink.monitor import ChangeMonitor, timer_changed


# ── Helpers ───────────────────────────────────────────────────────────────────

class _Recorder:
    def __init__(self):
        self.events: list[tuple[str, object]] = []

    def __call__(self, event_type, data):
        self.events.append((event_type, data))

    def of(self, event_type):
        return [d for t, d in self.events if t == event_type]


@pytest.fixture
def state(sample_session) -> DraftState:
    return parse_draft_session(sample_session)


@pytest.fixture
def client() -> MagicMock:
    return MagicMock(spec=SessionClient)


@pytest.fixture
def recorder() -> _Recorder:
    return _Recorder()


# ── Change detection ──────────────────────────────────────────────────────────

class TestChangeDetection:
    def test_first_state_is_emitted(self, client, recorder, state):
        client.draft_state.return_value = state
        monitor = ChangeMonitor(client, recorder)

        assert monitor.tick() is True
        assert recorder.of(ChangeMonitor.EVENT_STATE_CHANGED) == [state]
        assert monitor.has_snapshot

    def test_identical_state_is_not_re_emitted(self, client, recorder, state):
        client.draft_state.side_effect = [state, parse_draft_session(_copy_of(state))]
        monitor = ChangeMonitor(client, recorder)

        monitor.tick()
        assert monitor.tick() is False
        assert len(recorder.events) == 1

    def test_small_timer_change_emits_once(self, client, recorder, state):
        client.draft_state.side_effect = [state, replace(state, timer=state.timer - 0.02)]
        monitor = ChangeMonitor(client, recorder)

        monitor.tick()
        monitor.tick()
        assert len(recorder.of(ChangeMonitor.EVENT_STATE_CHANGED)) == 2

    def test_phase_change_emits(self, client, recorder, state):
        client.draft_state.side_effect = [state, replace(state, phase="FINALIZATION")]
        monitor = ChangeMonitor(client, recorder)

        monitor.tick()
        monitor.tick()
        assert recorder.of(ChangeMonitor.EVENT_STATE_CHANGED)[-1].phase == "FINALIZATION"

    @pytest.mark.parametrize("current,previous,expected", [
        (27.0, 27.0, False),
        (27.0, 27.005, False),
        (27.0, 27.02, True),
        (None, None, False),
        (1.0, None, True),
        (None, 1.0, True),
    ])
    def test_timer_changed(self, current, previous, expected):
        assert timer_changed(current, previous) is expected


def _copy_of(state: DraftState) -> dict:
    """Rebuild a raw session equivalent to the given state (for a fresh parse)."""
    return {
        "gameId": state.game_id,
        "timer": {"adjustedTimeLeftInPhase": state.timer, "phase": state.phase},
        "myTeam": [
            {"cellId": c.cell_id, "championId": c.champion_id or 0,
             "championPickIntent": c.selected_champion_id or 0,
             "assignedPosition": c.assigned_position or "",
             "spell1Id": c.spell1_id, "spell2Id": c.spell2_id}
            for c in state.ally_team.cells
        ],
        "theirTeam": [
            {"cellId": c.cell_id, "championId": c.champion_id or 0,
             "assignedPosition": c.assigned_position or ""}
            for c in state.enemy_team.cells
        ],
        "actions": [[
            {"id": a.id, "actorCellId": a.actor_cell_id, "championId": a.champion_id,
             "completed": a.completed, "isInProgress": a.is_in_progress, "type": a.type}
            for a in state.actions
        ]],
    }


# ── Errors ────────────────────────────────────────────────────────────────────

class TestErrors:
    def test_error_without_snapshot_is_silent(self, client, recorder):
        client.draft_state.side_effect = HttpStatusFailure(404)
        monitor = ChangeMonitor(client, recorder)

        monitor.tick()
        monitor.tick()
        assert recorder.events == []

    def test_error_after_snapshot_emits_once(self, client, recorder, state):
        client.draft_state.side_effect = [
            state,
            TransportFailure("refused"),
            TransportFailure("refused"),
        ]
        monitor = ChangeMonitor(client, recorder)

        monitor.tick()
        monitor.tick()
        monitor.tick()
        errors = recorder.of(ChangeMonitor.EVENT_ERROR)
        assert errors == ["refused"]
        assert not monitor.has_snapshot

    def test_parse_failure_after_snapshot_emits(self, client, recorder, state):
        client.draft_state.side_effect = [state, ParseFailure("bad")]
        monitor = ChangeMonitor(client, recorder)
        monitor.tick()
        monitor.tick()
        assert recorder.of(ChangeMonitor.EVENT_ERROR) == ["bad"]

    def test_client_closed_is_silent(self, client, recorder, state):
        client.draft_state.side_effect = [state, CredentialNotFound()]
        monitor = ChangeMonitor(client, recorder)

        monitor.tick()
        monitor.tick()
        assert recorder.of(ChangeMonitor.EVENT_ERROR) == []
        assert not monitor.has_snapshot

    def test_recovery_re_emits_same_state(self, client, recorder, state):
        client.draft_state.side_effect = [state, TransportFailure("x"), state]
        monitor = ChangeMonitor(client, recorder)

        monitor.tick()
        monitor.tick()
        monitor.tick()
        assert len(recorder.of(ChangeMonitor.EVENT_STATE_CHANGED)) == 2

    def test_failing_listener_does_not_break_tick(self, client, state):
        listener = MagicMock(side_effect=RuntimeError("ui gone"))
        client.draft_state.return_value = state
        monitor = ChangeMonitor(client, listener)

        assert monitor.tick() is True
        assert monitor.has_snapshot


# ── Loop lifecycle ────────────────────────────────────────────────────────────

class TestLoop:
    def test_first_tick_is_immediate_and_stop_is_honoured(self, client, recorder, state):
        stop = threading.Event()

        def fetch():
            stop.set()
            return state

        client.draft_state.side_effect = fetch
        monitor = ChangeMonitor(client, recorder, interval=60)

        monitor.run(stop)
        assert client.draft_state.call_count == 1
        assert len(recorder.events) == 1

    def test_loop_survives_unexpected_errors(self, client, recorder, state):
        stop = threading.Event()
        calls = {"n": 0}

        def fetch():
            calls["n"] += 1
            if calls["n"] == 1:
                raise RuntimeError("boom")
            stop.set()
            return state

        client.draft_state.side_effect = fetch
        ChangeMonitor(client, recorder, interval=0.001).run(stop)
        assert calls["n"] == 2
        assert len(recorder.of(ChangeMonitor.EVENT_STATE_CHANGED)) == 1

    def test_start_and_stop_thread(self, client, recorder, state):
        ticked = threading.Event()

        def fetch():
            ticked.set()
            return state

        client.draft_state.side_effect = fetch
        monitor = ChangeMonitor(client, recorder, interval=0.01)

        monitor.start()
        assert ticked.wait(2)
        assert monitor.is_running
        monitor.stop(timeout=2)
        assert not monitor.is_running

    def test_restart_after_timed_out_stop_keeps_a_single_poller(self, client, recorder, state):
        entered = threading.Event()
        release = threading.Event()

        def slow_fetch():
            entered.set()
            release.wait(2)
            return state

        client.draft_state.side_effect = slow_fetch
        monitor = ChangeMonitor(client, recorder, interval=0.01)

        monitor.start()
        assert entered.wait(2)
        first_thread = monitor._thread

        monitor.stop(timeout=0.01)
        assert monitor.is_running

        monitor.start()
        assert monitor._thread is first_thread
        pollers = [t for t in threading.enumerate() if t.name == "draft-monitor"]
        assert len(pollers) == 1

        release.set()
        monitor.stop(timeout=2)
        assert not monitor.is_running
        assert not first_thread.is_alive()

    def test_each_run_gets_its_own_stop_signal(self, client, recorder, state):
        client.draft_state.return_value = state
        monitor = ChangeMonitor(client, recorder, interval=0.01)

        monitor.start()
        first_signal = monitor._stop_event
        monitor.stop(timeout=2)

        monitor.start()
        assert monitor._stop_event is not first_signal
        assert first_signal.is_set()
        monitor.stop(timeout=2)
        assert not monitor.is_running
