"""Cycle orchestration: one tick of the full pipeline, plus the host loop that owns state.

Per cycle (strict order, no interleaving across cycles):
  score → classify + explain → mark-to-market → exits → entries
  → realized outcomes into the tuner window → health → auto-tune

run_cycle is a pure composition: it returns every new value and touches
none of its inputs. TradingLoop is the single writer that applies a
cycle's results before the next cycle may start.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from itertools import chain

from alphagate.config import Settings, get_settings
from alphagate.contracts import (
    AssetSnapshot,
    ClassifiedAsset,
    ExecutionLogEntry,
    OptimizationEvent,
    Position,
    SystemAlert,
    SystemConfig,
    SystemMetric,
    utc_now,
)
from alphagate.governance.auto_tuner import (
    TunerState,
    TuningResult,
    ingest_signal_outcome,
    initialize_tuner_state,
    run_conservative_optimization,
)
from alphagate.governance.health_monitor import HealthReport, monitor_system_health
from alphagate.portfolio.execution import (
    ClosedTrade,
    process_execution_cycle,
    refresh_unrealized_pnl,
)
from alphagate.signals.classifier import classify_batch
from alphagate.signals.scoring import score_batch

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CycleOutcome:
    assets: tuple[ClassifiedAsset, ...]  # sorted by momentum score, descending
    portfolio: tuple[Position, ...]
    logs: tuple[ExecutionLogEntry, ...]  # this cycle only, in decision order
    closed: tuple[ClosedTrade, ...]
    last_action_time: datetime | None
    health: HealthReport
    tuning: TuningResult

    @property
    def config(self) -> SystemConfig:
        return self.tuning.config

    @property
    def tuner_state(self) -> TunerState:
        return self.tuning.state


def run_cycle(
    batch: Sequence[AssetSnapshot],
    config: SystemConfig,
    portfolio: Sequence[Position],
    last_action_time: datetime | None,
    tuner_state: TunerState,
    recent_logs: Iterable[ExecutionLogEntry] = (),
    now: datetime | None = None,
    latency_ms: float | None = None,
) -> CycleOutcome:
    """Run one full cycle over the latest batch. `recent_logs` is newest first."""
    now = now or utc_now()
    started = time.perf_counter()

    scored = score_batch(batch, config.scoring)
    assets = classify_batch(scored, now)
    marked = refresh_unrealized_pnl(portfolio, assets)
    execution = process_execution_cycle(assets, marked, last_action_time, config.risk, now)

    for trade in execution.closed:
        tuner_state = ingest_signal_outcome(tuner_state, trade.is_win)

    if execution.acted:
        last_action_time = now

    if latency_ms is None:
        latency_ms = (time.perf_counter() - started) * 1000

    # Health sees the post-execution log; the tuner sees this cycle's health
    health = monitor_system_health(
        chain(reversed(execution.logs), recent_logs), latency_ms, tuner_state, now
    )
    tuning = run_conservative_optimization(config, health.metric, tuner_state, now)

    return CycleOutcome(
        assets=tuple(assets),
        portfolio=execution.portfolio,
        logs=execution.logs,
        closed=execution.closed,
        last_action_time=last_action_time,
        health=health,
        tuning=tuning,
    )


class TradingLoop:
    """Host-side owner of config, portfolio, tuner state and the bounded history rings."""

    def __init__(
        self,
        config: SystemConfig | None = None,
        settings: Settings | None = None,
        now: datetime | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.config = config or SystemConfig.from_settings(settings)
        self.portfolio: tuple[Position, ...] = ()
        self.last_action_time: datetime | None = None
        self.tuner_state = initialize_tuner_state(now)
        self.assets: tuple[ClassifiedAsset, ...] = ()
        self.cycles = 0

        # Newest first, like the execution monitor reads it
        self.logs: deque[ExecutionLogEntry] = deque(maxlen=settings.execution_log_capacity)
        self.metrics: deque[SystemMetric] = deque(maxlen=settings.metric_history_capacity)
        self.alerts: deque[SystemAlert] = deque(maxlen=settings.alert_history_capacity)
        self.optimizations: deque[OptimizationEvent] = deque(
            maxlen=settings.optimization_history_capacity
        )

    def step(self, batch: Sequence[AssetSnapshot], now: datetime | None = None) -> CycleOutcome:
        """Run one cycle and apply all of its writes before returning."""
        outcome = run_cycle(
            batch,
            self.config,
            self.portfolio,
            self.last_action_time,
            self.tuner_state,
            self.logs,
            now,
        )

        self.assets = outcome.assets
        self.portfolio = outcome.portfolio
        self.last_action_time = outcome.last_action_time
        self.tuner_state = outcome.tuner_state
        self.config = outcome.config
        for entry in outcome.logs:
            self.logs.appendleft(entry)
        self.metrics.append(outcome.health.metric)
        self.alerts.extend(outcome.health.alerts)
        if outcome.tuning.event is not None:
            self.optimizations.append(outcome.tuning.event)
        self.cycles += 1

        return outcome

    def record_outcome(self, is_win: bool) -> None:
        """Feed an externally realized trade result into the tuner window."""
        self.tuner_state = ingest_signal_outcome(self.tuner_state, is_win)

    @property
    def exposure_usd(self) -> float:
        return sum(p.size_usd for p in self.portfolio)

    @property
    def unrealized_pnl(self) -> float:
        return sum(p.unrealized_pnl for p in self.portfolio)
