"""Synthetic validation harness: calibration checks for classifier and tuner.

Not a backtest: outcomes are drawn from a biased coin per (state, confidence),
not replayed from history. Win probability starts at 40% and is shifted:
  +20% MOMENTUM, +10% ACCUMULATION, +20% HIGH confidence, -30% UNSTABLE

Outcome magnitudes come from disjoint ranges:
  WIN      +2% .. +17%
  NEUTRAL  -0.75% .. +0.75%  (10% chop band above the win draw)
  LOSS     -12% .. -2%
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta

import numpy as np
import pandas as pd

from alphagate.contracts import (
    InsightType,
    MarketState,
    OptimizationEvent,
    SignalConfidence,
    SimulationTrade,
    SystemConfig,
    TradeOutcome,
    ValidationInsight,
    ValidationMetric,
    utc_now,
)
from alphagate.governance.auto_tuner import (
    TunerState,
    ingest_signal_outcome,
    run_conservative_optimization,
)
from alphagate.governance.health_monitor import monitor_system_health

logger = logging.getLogger(__name__)

BASE_WIN_PROBABILITY = 0.40
STATE_WIN_ADJUSTMENT: dict[MarketState, float] = {
    MarketState.MOMENTUM: 0.20,
    MarketState.ACCUMULATION: 0.10,
    MarketState.UNSTABLE: -0.30,
}
CONFIDENCE_WIN_ADJUSTMENT: dict[SignalConfidence, float] = {
    SignalConfidence.HIGH: 0.20,
}
NEUTRAL_DRAW_THRESHOLD = 0.9

TRADE_SPACING = timedelta(hours=1)
REPLAY_SPACING = timedelta(minutes=10)  # 144 outcomes per tuner window
HOLDING_TIME = timedelta(minutes=30)
SYNTHETIC_ENTRY_PRICE = 100.0

UNSTABLE_ACCURACY_FLOOR = 30.0
HIGH_CONFIDENCE_TARGET = 70.0
NOISE_RATIO_CEILING = 40.0


def win_probability(state: MarketState, confidence: SignalConfidence) -> float:
    return (
        BASE_WIN_PROBABILITY
        + STATE_WIN_ADJUSTMENT.get(state, 0.0)
        + CONFIDENCE_WIN_ADJUSTMENT.get(confidence, 0.0)
    )


def _draw_outcome(rng: np.random.Generator, p_win: float) -> tuple[TradeOutcome, float]:
    u = rng.random()
    if u < p_win:
        return TradeOutcome.WIN, float(rng.uniform(2.0, 17.0))
    if u > NEUTRAL_DRAW_THRESHOLD:
        return TradeOutcome.NEUTRAL, float(rng.uniform(-0.75, 0.75))
    return TradeOutcome.LOSS, float(-rng.uniform(2.0, 12.0))


def generate_synthetic_history(
    count: int = 100,
    rng: np.random.Generator | int | None = None,
    now: datetime | None = None,
) -> list[SimulationTrade]:
    """Generate `count` synthetic trades, newest first, one per hour back from `now`."""
    rng = np.random.default_rng(rng)
    now = now or utc_now()
    states = list(MarketState)
    confidences = list(SignalConfidence)

    trades: list[SimulationTrade] = []
    for i in range(count):
        state = states[rng.integers(len(states))]
        confidence = confidences[rng.integers(len(confidences))]
        outcome, pct = _draw_outcome(rng, win_probability(state, confidence))
        entry_time = now - i * TRADE_SPACING
        trades.append(SimulationTrade(
            id=f"sim-{i}",
            symbol=f"MOCK-{int(rng.integers(999))}",
            entry_time=entry_time,
            exit_time=entry_time + HOLDING_TIME,
            entry_price=SYNTHETIC_ENTRY_PRICE,
            exit_price=SYNTHETIC_ENTRY_PRICE * (1 + pct / 100),
            market_state=state,
            confidence=confidence,
            outcome=outcome,
            percent_change=pct,
        ))
    return trades


def trades_to_frame(trades: Sequence[SimulationTrade]) -> pd.DataFrame:
    return pd.DataFrame({
        "state": [t.market_state.value for t in trades],
        "confidence": [t.confidence.value for t in trades],
        "is_win": [t.outcome is TradeOutcome.WIN for t in trades],
        "is_neutral": [t.outcome is TradeOutcome.NEUTRAL for t in trades],
        "percent_change": [t.percent_change for t in trades],
    })


def _group_metrics(df: pd.DataFrame, column: str, order: list[str], label: str) -> list[ValidationMetric]:
    if df.empty:
        return []
    grouped = df.groupby(column).agg(
        total=("is_win", "size"),
        wins=("is_win", "sum"),
        neutrals=("is_neutral", "sum"),
        avg_return=("percent_change", "mean"),
    )
    metrics = []
    for value in order:
        if value not in grouped.index:
            continue
        row = grouped.loc[value]
        total = int(row["total"])
        metrics.append(ValidationMetric(
            category=f"{label}: {value}",
            dimension=column,
            value=value,
            total_signals=total,
            accuracy=float(row["wins"]) / total * 100,
            avg_return=float(row["avg_return"]),
            noise_ratio=float(row["neutrals"]) / total * 100,
        ))
    return metrics


def analyze_validation_metrics(trades: Sequence[SimulationTrade]) -> list[ValidationMetric]:
    """Accuracy / average return / noise ratio per state, then per confidence."""
    df = trades_to_frame(trades)
    return (
        _group_metrics(df, "state", [s.value for s in MarketState], "State")
        + _group_metrics(df, "confidence", [c.value for c in SignalConfidence], "Conf")
    )


def _find(metrics: Sequence[ValidationMetric], dimension: str, value: str) -> ValidationMetric | None:
    return next((m for m in metrics if m.dimension == dimension and m.value == value), None)


def generate_insights(metrics: Sequence[ValidationMetric]) -> list[ValidationInsight]:
    """Fixed-rule qualitative read-out of the aggregated metrics."""
    insights: list[ValidationInsight] = []

    unstable = _find(metrics, "state", MarketState.UNSTABLE.value)
    if unstable is not None and unstable.accuracy < UNSTABLE_ACCURACY_FLOOR:
        insights.append(ValidationInsight(
            type=InsightType.WARNING,
            message=f"UNSTABLE state accuracy is critically low (<{UNSTABLE_ACCURACY_FLOOR:.0f}%).",
            actionable_item="Suggestion: Increase Volatility Penalty in Scoring Engine.",
        ))

    high = _find(metrics, "confidence", SignalConfidence.HIGH.value)
    if high is not None:
        if high.accuracy > HIGH_CONFIDENCE_TARGET:
            insights.append(ValidationInsight(
                type=InsightType.SUCCESS,
                message=(
                    "High Confidence signals are validating correctly "
                    f"(>{HIGH_CONFIDENCE_TARGET:.0f}% accuracy)."
                ),
                actionable_item="System is robust. Consider increasing position size.",
            ))
        else:
            insights.append(ValidationInsight(
                type=InsightType.RECOMMENDATION,
                message=f"High Confidence accuracy is only {high.accuracy:.1f}%.",
                actionable_item="Suggestion: Tighten volume spike thresholds in Decision Engine.",
            ))

    noisy = next((m for m in metrics if m.noise_ratio > NOISE_RATIO_CEILING), None)
    if noisy is not None:
        insights.append(ValidationInsight(
            type=InsightType.RECOMMENDATION,
            message=(
                f"{noisy.category} has high noise ratio "
                f"(>{NOISE_RATIO_CEILING:.0f}% neutral)."
            ),
            actionable_item="Suggestion: Increase minimum liquidity filter to reduce chop.",
        ))

    return insights


@dataclass
class ValidationReport:
    trades: list[SimulationTrade]
    metrics: list[ValidationMetric]
    insights: list[ValidationInsight]


def run_validation(
    count: int = 100,
    rng: np.random.Generator | int | None = None,
    now: datetime | None = None,
) -> ValidationReport:
    trades = generate_synthetic_history(count, rng, now)
    metrics = analyze_validation_metrics(trades)
    insights = generate_insights(metrics)
    logger.info(
        "Validation: %d synthetic trades, %d categories, %d insights",
        len(trades), len(metrics), len(insights),
    )
    return ValidationReport(trades=trades, metrics=metrics, insights=insights)


@dataclass
class TunerReplay:
    config: SystemConfig
    state: TunerState
    events: list[OptimizationEvent] = field(default_factory=list)


def replay_tuner(
    trades: Sequence[SimulationTrade],
    config: SystemConfig,
    state: TunerState,
    start: datetime,
    spacing: timedelta = REPLAY_SPACING,
) -> TunerReplay:
    """Feed synthetic outcomes through health + tuner on a simulated clock.

    Trades are replayed oldest first, one per `spacing`; the tuner runs once
    after each outcome, as the host loop would once per cycle.
    """
    events: list[OptimizationEvent] = []
    ordered = sorted(trades, key=lambda t: t.entry_time)
    for i, trade in enumerate(ordered):
        now = start + i * spacing
        state = ingest_signal_outcome(state, trade.outcome is TradeOutcome.WIN)
        report = monitor_system_health([], 0.0, state, now)
        result = run_conservative_optimization(config, report.metric, state, now)
        config, state = result.config, result.state
        if result.event is not None:
            events.append(result.event)
    return TunerReplay(config=config, state=state, events=events)
