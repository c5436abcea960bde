"""Offline validation layer: synthetic outcomes for calibration."""

from alphagate.backtest.validation_harness import (
    ValidationReport,
    analyze_validation_metrics,
    generate_insights,
    generate_synthetic_history,
    replay_tuner,
    run_validation,
)

__all__ = [
    "ValidationReport",
    "analyze_validation_metrics",
    "generate_insights",
    "generate_synthetic_history",
    "replay_tuner",
    "run_validation",
]
