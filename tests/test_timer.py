"""Unit tests for TimerEngine: pure work/break countdown, no I/O dependencies."""

import pytest

from focusdesk.timer import (
    TickResult,
    TimerEngine,
    TimerEvent,
    TimerMode,
    format_countdown,
)


# ---- Helpers ----

def advance(engine: TimerEngine, seconds: int) -> TickResult:
    """Tick `seconds` times, returning the last result."""
    result = TickResult()
    for _ in range(seconds):
        result = engine.tick()
    return result


def collect_results(engine: TimerEngine, seconds: int) -> list[TickResult]:
    """Tick and keep every result that carried an event."""
    results = []
    for _ in range(seconds):
        result = engine.tick()
        if result.events:
            results.append(result)
    return results


# ---- format_countdown ----

class TestFormatCountdown:
    def test_zero(self):
        assert format_countdown(0) == "00:00"

    def test_full_work_period(self):
        assert format_countdown(25 * 60) == "25:00"

    def test_seconds_padded(self):
        assert format_countdown(61) == "01:01"

    def test_negative_clamped(self):
        assert format_countdown(-5) == "00:00"


# ---- Initial state ----

class TestInitialState:
    def test_defaults(self):
        engine = TimerEngine()
        assert engine.mode == TimerMode.WORK
        assert not engine.running
        assert engine.remaining_seconds == 1500
        assert engine.completed_sessions == 0
        assert engine.progress == 0

    def test_out_of_range_durations(self):
        with pytest.raises(ValueError):
            TimerEngine(work_minutes=0)
        with pytest.raises(ValueError):
            TimerEngine(break_minutes=31)


# ---- start / pause ----

class TestStartPause:
    def test_start_then_start_again_is_noop(self):
        engine = TimerEngine()
        assert engine.start() is True
        assert engine.start() is False
        assert engine.running

    def test_pause_when_paused_is_noop(self):
        engine = TimerEngine()
        assert engine.pause() is False
        engine.start()
        assert engine.pause() is True
        assert not engine.running

    def test_tick_while_paused_does_nothing(self):
        engine = TimerEngine()
        result = advance(engine, 10)
        assert result.events == []
        assert engine.remaining_seconds == 1500

    def test_pause_keeps_remaining(self):
        engine = TimerEngine()
        engine.start()
        advance(engine, 90)
        engine.pause()
        advance(engine, 30)
        assert engine.remaining_seconds == 1410


# ---- Full cycles ----

class TestCycles:
    def test_work_then_break(self):
        """25/5: one work completion after 1500 ticks, one break completion after 300 more."""
        engine = TimerEngine(work_minutes=25, break_minutes=5)
        engine.start()
        results = collect_results(engine, 1500)
        assert len(results) == 1
        assert results[0].events == [TimerEvent.CYCLE_COMPLETE]
        assert results[0].finished_mode == TimerMode.WORK
        assert engine.mode == TimerMode.BREAK
        assert engine.remaining_seconds == 300
        assert engine.completed_sessions == 1
        assert not engine.running

        engine.start()
        results = collect_results(engine, 300)
        assert len(results) == 1
        assert results[0].finished_mode == TimerMode.BREAK
        assert engine.mode == TimerMode.WORK
        assert engine.remaining_seconds == 1500
        assert engine.completed_sessions == 1

    def test_no_event_one_second_early(self):
        engine = TimerEngine(work_minutes=1)
        engine.start()
        assert collect_results(engine, 59) == []
        assert engine.remaining_seconds == 1
        assert engine.tick().cycle_complete

    def test_stops_after_completion(self):
        engine = TimerEngine(work_minutes=1, break_minutes=1)
        engine.start()
        advance(engine, 60)
        advance(engine, 60)
        assert engine.mode == TimerMode.BREAK
        assert engine.remaining_seconds == 60

    def test_sessions_count_only_work(self):
        engine = TimerEngine(work_minutes=1, break_minutes=1)
        for _ in range(3):
            engine.start()
            advance(engine, 60)  # work
            engine.start()
            advance(engine, 60)  # break
        assert engine.completed_sessions == 3

    def test_progress_halfway(self):
        engine = TimerEngine(work_minutes=2)
        engine.start()
        advance(engine, 60)
        assert engine.progress == 50


# ---- reset / switch_mode ----

class TestResetAndSwitch:
    def test_reset_restores_active_mode_duration(self):
        engine = TimerEngine()
        engine.start()
        advance(engine, 100)
        engine.reset()
        assert not engine.running
        assert engine.remaining_seconds == 1500

    def test_reset_in_break_uses_break_duration(self):
        engine = TimerEngine(break_minutes=10)
        engine.switch_mode(TimerMode.BREAK)
        engine.start()
        advance(engine, 5)
        engine.reset()
        assert engine.remaining_seconds == 600

    def test_switch_mode_from_running(self):
        engine = TimerEngine()
        engine.start()
        advance(engine, 10)
        engine.switch_mode(TimerMode.BREAK)
        assert engine.mode == TimerMode.BREAK
        assert not engine.running
        assert engine.remaining_seconds == 300

    def test_switch_mode_accepts_value(self):
        engine = TimerEngine()
        engine.switch_mode("break")
        assert engine.mode == TimerMode.BREAK

    def test_switch_does_not_count_session(self):
        engine = TimerEngine()
        engine.switch_mode(TimerMode.BREAK)
        assert engine.completed_sessions == 0


# ---- set_durations ----

class TestSetDurations:
    def test_stopped_active_mode_resets_now(self):
        engine = TimerEngine()
        engine.set_durations(work_minutes=50)
        assert engine.remaining_seconds == 3000

    def test_stopped_other_mode_leaves_remaining(self):
        engine = TimerEngine()
        engine.start()
        advance(engine, 10)
        engine.pause()
        engine.set_durations(break_minutes=15)
        assert engine.remaining_seconds == 1490
        assert engine.break_minutes == 15

    def test_running_change_waits_for_reset(self):
        engine = TimerEngine()
        engine.start()
        advance(engine, 10)
        engine.set_durations(work_minutes=30)
        assert engine.remaining_seconds == 1490
        engine.reset()
        assert engine.remaining_seconds == 1800

    def test_running_change_applies_on_completion(self):
        engine = TimerEngine(work_minutes=1)
        engine.start()
        engine.set_durations(break_minutes=2)
        advance(engine, 60)
        assert engine.remaining_seconds == 120

    def test_invalid_values_change_nothing(self):
        engine = TimerEngine()
        with pytest.raises(ValueError):
            engine.set_durations(work_minutes=45, break_minutes=0)
        assert engine.work_minutes == 25
        with pytest.raises(ValueError):
            engine.set_durations(work_minutes=61)
        with pytest.raises(ValueError):
            engine.set_durations(work_minutes=True)


# ---- Serialization ----

def test_export_dict():
    engine = TimerEngine()
    engine.start()
    advance(engine, 5)
    assert engine.to_export_dict() == {
        "mode": "work",
        "isRunning": True,
        "remainingSeconds": 1495,
        "display": "24:55",
        "progress": round(5 / 1500 * 100, 2),
        "completedSessions": 0,
        "workMinutes": 25,
        "breakMinutes": 5,
    }
