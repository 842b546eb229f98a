"""Tests for the accrual engine — buffering, whole-unit emission, pause/stop/flush."""

import pytest
from pathlib import Path

from attention.earning.accrual import AccrualEngine
from attention.models.progress import AccrualConfig, AccrualState
from attention.policy.resolver import AttentionPolicy
from attention.scheduling import VirtualScheduler


CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"


@pytest.fixture
def config() -> AccrualConfig:
    return AttentionPolicy.from_config_dir(CONFIG_DIR).accrual_config()


@pytest.fixture
def scheduler() -> VirtualScheduler:
    return VirtualScheduler()


@pytest.fixture
def emitted() -> list[float]:
    return []


@pytest.fixture
def engine(config, scheduler, emitted) -> AccrualEngine:
    return AccrualEngine(emitted.append, scheduler, config)


def _play(engine: AccrualEngine, scheduler: VirtualScheduler, seconds: float) -> None:
    """Start, sit through the buffer, then earn for `seconds`."""
    engine.start()
    scheduler.advance(0.8)
    scheduler.advance(seconds)


class TestBuffering:
    def test_starts_idle(self, engine) -> None:
        assert engine.state == AccrualState.IDLE
        assert not engine.is_earning

    def test_no_earning_during_buffer(self, engine, scheduler) -> None:
        engine.start()
        scheduler.advance(0.79)
        assert engine.state == AccrualState.BUFFERING
        assert engine.accumulated == 0.0

    def test_earning_after_buffer(self, engine, scheduler) -> None:
        engine.start()
        scheduler.advance(0.81)
        assert engine.state == AccrualState.EARNING

    def test_start_is_idempotent(self, engine, scheduler) -> None:
        engine.start()
        engine.start()
        assert scheduler.pending == 1
        scheduler.advance(1.0)
        engine.start()
        assert scheduler.pending == 1

    def test_swipe_past_earns_nothing(self, engine, scheduler, emitted) -> None:
        engine.start()
        scheduler.advance(0.5)
        engine.stop()
        scheduler.advance(10.0)
        assert emitted == []
        assert engine.accumulated == 0.0


class TestEmission:
    def test_one_second_stays_below_threshold(self, engine, scheduler, emitted) -> None:
        _play(engine, scheduler, 1.0)
        assert emitted == []
        assert 0.4 < engine.accumulated < 0.55

    def test_emits_exactly_one_unit(self, engine, scheduler, emitted) -> None:
        _play(engine, scheduler, 2.5)
        assert emitted == [1]
        assert 0.15 < engine.accumulated < 0.3

    def test_unit_emitted_on_exact_tick_boundary(self, engine, scheduler, emitted) -> None:
        _play(engine, scheduler, 2.0)
        assert emitted == [1]
        assert engine.accumulated < 1e-6

    def test_only_whole_units_emitted(self, engine, scheduler, emitted) -> None:
        _play(engine, scheduler, 30.0)
        assert all(isinstance(amount, int) for amount in emitted)
        assert sum(emitted) + engine.accumulated == pytest.approx(15.0, abs=0.06)

    def test_pending_is_floor_of_accumulator(self, engine, scheduler) -> None:
        _play(engine, scheduler, 1.0)
        assert engine.pending == 0

    def test_slow_playback_bonus(self, engine, scheduler, emitted) -> None:
        engine.playback_speed = 0.75
        _play(engine, scheduler, 20.0)
        assert sum(emitted) + engine.accumulated == pytest.approx(10.5, abs=0.06)

    def test_fast_playback_penalty(self, engine, scheduler, emitted) -> None:
        engine.playback_speed = 1.5
        _play(engine, scheduler, 10.0)
        assert sum(emitted) + engine.accumulated == pytest.approx(4.0, abs=0.06)

    def test_speed_change_applies_to_next_tick(self, engine, scheduler, emitted) -> None:
        _play(engine, scheduler, 10.0)
        before = sum(emitted) + engine.accumulated
        engine.playback_speed = 1.5
        scheduler.advance(10.0)
        after = sum(emitted) + engine.accumulated
        assert after - before == pytest.approx(4.0, abs=0.06)


class TestSpeedModifier:
    @pytest.mark.parametrize("speed, modifier", [
        (0.75, 1.05),
        (1.0, 1.0),
        (1.25, 0.9),
        (1.5, 0.8),
        (0.1, 1.05),
        (1.1, 1.0),
        (3.0, 0.8),
    ])
    def test_nearest_configured_speed(self, engine, speed, modifier) -> None:
        engine.playback_speed = speed
        assert engine.speed_modifier() == modifier

    def test_tie_goes_to_slower_speed(self, engine) -> None:
        engine.playback_speed = 1.125
        assert engine.speed_modifier() == 1.0

    def test_empty_table_means_no_modifier(self, scheduler) -> None:
        engine = AccrualEngine(lambda _: None, scheduler, AccrualConfig(speed_modifiers={}))
        engine.playback_speed = 2.0
        assert engine.speed_modifier() == 1.0

    def test_speed_indicator(self, engine) -> None:
        engine.playback_speed = 1.25
        indicator = engine.speed_indicator()
        assert indicator.speed == 1.25
        assert indicator.modifier == 0.9
        assert indicator.is_modified

    def test_speed_indicator_at_normal_speed(self, engine) -> None:
        assert not engine.speed_indicator().is_modified


class TestPauseAndStop:
    def test_pause_keeps_partial_progress(self, engine, scheduler) -> None:
        _play(engine, scheduler, 1.0)
        partial = engine.accumulated
        engine.pause()
        scheduler.advance(30.0)
        assert engine.state == AccrualState.PAUSED
        assert engine.accumulated == partial
        assert scheduler.pending == 0

    def test_resume_after_pause_rebuffers(self, engine, scheduler, emitted) -> None:
        _play(engine, scheduler, 1.0)
        engine.pause()
        engine.start()
        assert engine.state == AccrualState.BUFFERING
        scheduler.advance(0.8)
        scheduler.advance(1.5)
        assert emitted == [1]

    def test_pause_during_buffer_cancels_buffer(self, engine, scheduler) -> None:
        engine.start()
        scheduler.advance(0.5)
        engine.pause()
        scheduler.advance(5.0)
        assert engine.state == AccrualState.PAUSED
        assert engine.accumulated == 0.0

    def test_pause_when_idle_stays_idle(self, engine) -> None:
        engine.pause()
        assert engine.state == AccrualState.IDLE

    def test_stop_discards_progress(self, engine, scheduler, emitted) -> None:
        _play(engine, scheduler, 1.5)
        engine.stop()
        assert engine.state == AccrualState.STOPPED
        assert engine.accumulated == 0.0
        assert engine.pending == 0
        scheduler.advance(10.0)
        assert emitted == []

    def test_stop_between_ticks_prevents_next_tick(self, engine, scheduler, emitted) -> None:
        _play(engine, scheduler, 1.95)
        engine.stop()
        scheduler.advance(0.1)
        assert emitted == []

    def test_close_cancels_all_timers(self, engine, scheduler) -> None:
        engine.start()
        engine.close()
        engine.close()
        assert scheduler.pending == 0

    def test_context_manager_closes(self, config, scheduler) -> None:
        with AccrualEngine(lambda _: None, scheduler, config) as engine:
            engine.start()
            scheduler.advance(1.0)
        assert scheduler.pending == 0


class TestFlush:
    def test_flush_emits_fractional_remainder(self, engine, scheduler, emitted) -> None:
        _play(engine, scheduler, 1.4)
        remainder = engine.accumulated
        assert 0.6 < remainder < 0.75
        flushed = engine.flush()
        assert flushed == pytest.approx(remainder)
        assert emitted == [flushed]
        assert engine.accumulated == 0.0

    def test_flush_whole_units_only(self, scheduler, emitted) -> None:
        config = AccrualConfig(flush_fractional=False)
        engine = AccrualEngine(emitted.append, scheduler, config)
        _play(engine, scheduler, 1.4)
        assert engine.flush() == 0.0
        assert emitted == []
        assert engine.accumulated == 0.0

    def test_flush_with_nothing_accrued(self, engine, emitted) -> None:
        assert engine.flush() == 0.0
        assert emitted == []

    def test_flush_keeps_earning(self, engine, scheduler, emitted) -> None:
        _play(engine, scheduler, 1.0)
        engine.flush()
        assert engine.state == AccrualState.EARNING
        scheduler.advance(2.5)
        assert emitted[-1] == 1
