"""Tests for cycle orchestration, the host loop and the CLI entry point."""

from __future__ import annotations

import json
import logging
from datetime import timedelta

import numpy as np

from alphagate.config import Settings
from alphagate.contracts import ExecutionType, SystemConfig
from alphagate.governance.auto_tuner import TunerState, initialize_tuner_state
from alphagate.main import JsonLogFormatter, main, run_simulation
from alphagate.pipeline import TradingLoop, run_cycle


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, anthropic_api_key="", **overrides)


class TestRunCycle:
    def test_entry_sets_last_action_time(self, make_snapshot, now):
        outcome = run_cycle(
            [make_snapshot()], SystemConfig(), (), None, initialize_tuner_state(now), now=now,
        )
        assert [log.kind for log in outcome.logs] == [ExecutionType.ENTRY]
        assert len(outcome.portfolio) == 1
        assert outcome.last_action_time == now
        assert outcome.assets[0].momentum_score == 91

    def test_rejection_keeps_last_action_time(self, make_snapshot, now):
        earlier = now - timedelta(seconds=10)
        outcome = run_cycle(
            [make_snapshot()], SystemConfig(), (), earlier, initialize_tuner_state(now), now=now,
        )
        assert [log.kind for log in outcome.logs] == [ExecutionType.REJECTED]
        assert outcome.last_action_time == earlier
        assert outcome.health.metric.error_rate == 100.0

    def test_exit_outcome_feeds_tuner(self, make_snapshot, make_position, now):
        held = make_position("asset-0", entry_price=1.0)
        batch = [make_snapshot(volatility_index=90, price=1.2)]
        outcome = run_cycle(batch, SystemConfig(), (held,), None, initialize_tuner_state(now), now=now)

        assert outcome.logs[0].kind is ExecutionType.EXIT
        assert outcome.closed[0].is_win
        assert outcome.tuner_state.rolling_accuracy == (1,)
        assert outcome.tuner_state.signals_processed_in_window == 1
        assert outcome.portfolio == ()

    def test_tuning_result_applied_to_config(self, now):
        state = TunerState(
            window_start_time=now, signals_processed_in_window=50, rolling_accuracy=(0,) * 50,
        )
        outcome = run_cycle([], SystemConfig(), (), None, state, now=now, latency_ms=3.0)
        assert outcome.tuning.adjusted
        assert outcome.config.scoring.min_liquidity == 55_000.0
        assert outcome.tuner_state.adjustments_today == 1
        assert outcome.health.metric.latency_ms == 3.0

    def test_inputs_untouched(self, make_snapshot, now):
        config = SystemConfig()
        portfolio = ()
        run_cycle([make_snapshot()], config, portfolio, None, initialize_tuner_state(now), now=now)
        assert config == SystemConfig()
        assert portfolio == ()


class TestTradingLoop:
    def test_step_applies_writes(self, make_snapshot, now):
        loop = TradingLoop(settings=_settings(), now=now)
        outcome = loop.step([make_snapshot()], now)
        assert loop.portfolio == outcome.portfolio
        assert loop.last_action_time == now
        assert loop.logs[0].kind is ExecutionType.ENTRY
        assert loop.cycles == 1
        assert len(loop.metrics) == 1
        assert loop.exposure_usd == 714.0

    def test_rings_are_bounded_and_newest_first(self, make_snapshot, now):
        loop = TradingLoop(settings=_settings(execution_log_capacity=5), now=now)
        # Unstable high scorer: rejected and logged every cycle
        batch = [make_snapshot(volatility_index=90)]
        clock = now
        for _ in range(8):
            loop.step(batch, clock)
            clock += timedelta(seconds=2)

        assert len(loop.logs) == 5
        assert loop.logs[0].timestamp == clock - timedelta(seconds=2)
        assert all(log.kind is ExecutionType.REJECTED for log in loop.logs)
        assert len(loop.metrics) == 8

    def test_record_outcome(self, now):
        loop = TradingLoop(settings=_settings(), now=now)
        loop.record_outcome(True)
        loop.record_outcome(False)
        assert loop.tuner_state.rolling_accuracy == (1, 0)

    def test_unrealized_pnl_tracks_price(self, make_snapshot, now):
        loop = TradingLoop(settings=_settings(), now=now)
        loop.step([make_snapshot()], now)
        loop.step([make_snapshot(price=1.1)], now + timedelta(seconds=2))
        assert abs(loop.unrealized_pnl - 71.4) < 1e-6

    def test_loaded_loop_fills_to_capacity(self, make_snapshot, now):
        settings = _settings()
        loop = TradingLoop(settings=settings, now=now)
        rng = np.random.default_rng(11)
        clock = now
        entries = exits = peak = 0

        for _ in range(150):
            batch = [
                make_snapshot(asset_id=f"asset-{i}", symbol=f"SYM{i}", volatility_index=90)
                if rng.random() < 0.2
                else make_snapshot(asset_id=f"asset-{i}", symbol=f"SYM{i}")
                for i in range(6)
            ]
            outcome = loop.step(batch, clock)
            entries += sum(1 for log in outcome.logs if log.kind is ExecutionType.ENTRY)
            exits += sum(1 for log in outcome.logs if log.kind is ExecutionType.EXIT)

            assert len(loop.portfolio) <= settings.max_open_positions
            assert len({p.asset_id for p in loop.portfolio}) == len(loop.portfolio)
            peak = max(peak, len(loop.portfolio))
            clock += timedelta(seconds=61)

        assert entries > settings.max_open_positions
        assert exits > 0
        assert peak == settings.max_open_positions


class TestEntryPoint:
    def test_run_simulation(self):
        loop = run_simulation(40, seed=1, settings=_settings())
        assert loop.cycles == 40
        assert len(loop.portfolio) <= 3
        assert len(loop.assets) == 10

    def test_simulated_clock_follows_tick_setting(self, monkeypatch):
        pauses = []
        monkeypatch.setattr("alphagate.main.time.sleep", pauses.append)
        loop = run_simulation(3, seed=1, pause_seconds=0.25, settings=_settings(tick_seconds=5.0))

        stamps = [m.timestamp for m in loop.metrics]
        assert [b - a for a, b in zip(stamps, stamps[1:])] == [timedelta(seconds=5)] * 2
        assert pauses == [0.25] * 3

    def test_no_pause_by_default(self, monkeypatch):
        pauses = []
        monkeypatch.setattr("alphagate.main.time.sleep", pauses.append)
        run_simulation(3, seed=1, settings=_settings())
        assert pauses == []

    def test_main_runs_with_validation(self, monkeypatch):
        monkeypatch.setattr("alphagate.main.configure_logging", lambda *a, **k: None)
        monkeypatch.setattr("alphagate.main.get_settings", lambda: _settings())
        main(["--ticks", "5", "--seed", "3", "--pause-seconds", "0", "--validate", "60", "--narrate"])

    def test_json_log_formatter(self):
        record = logging.LogRecord("alphagate.test", logging.INFO, __file__, 1, "hello %s", ("x",), None)
        payload = json.loads(JsonLogFormatter().format(record))
        assert payload["message"] == "hello x"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "alphagate.test"
