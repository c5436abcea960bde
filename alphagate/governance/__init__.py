"""Governance layer: health monitoring and conservative auto-tuning."""

from alphagate.governance.auto_tuner import (
    TunerState,
    TuningResult,
    ingest_signal_outcome,
    initialize_tuner_state,
    run_conservative_optimization,
)
from alphagate.governance.health_monitor import HealthReport, monitor_system_health

__all__ = [
    "HealthReport",
    "TunerState",
    "TuningResult",
    "ingest_signal_outcome",
    "initialize_tuner_state",
    "monitor_system_health",
    "run_conservative_optimization",
]
