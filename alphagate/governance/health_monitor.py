"""System health metrics derived from the execution log and tuner window.

  - error rate: % of REJECTED entries among the 50 most recent log entries
  - signal accuracy: % wins among the 50 most recent realized outcomes

Stateless: everything comes from the arguments.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from itertools import islice

from alphagate.contracts import (
    AlertSeverity,
    ExecutionLogEntry,
    ExecutionType,
    SystemAlert,
    SystemMetric,
    new_id,
    utc_now,
)
from alphagate.governance.auto_tuner import MAX_ADJUSTMENTS_PER_DAY, TunerState

logger = logging.getLogger(__name__)

LOG_WINDOW = 50
ACCURACY_WINDOW = 50
ACTIVE_MODULES = 5
OPTIMIZER_MODULE = "OPTIMIZER"


@dataclass(frozen=True)
class HealthReport:
    metric: SystemMetric
    alerts: tuple[SystemAlert, ...] = field(default_factory=tuple)


def compute_error_rate(logs: Iterable[ExecutionLogEntry], window: int = LOG_WINDOW) -> float:
    """Rejected / total over the newest `window` entries (logs are newest first)."""
    recent = list(islice(logs, window))
    rejections = sum(1 for log in recent if log.kind is ExecutionType.REJECTED)
    return rejections / (len(recent) or 1) * 100


def compute_signal_accuracy(rolling_accuracy: tuple[int, ...], window: int = ACCURACY_WINDOW) -> float:
    recent = rolling_accuracy[-window:]
    if not recent:
        return 0.0
    return sum(1 for x in recent if x == 1) / len(recent) * 100


def monitor_system_health(
    logs: Iterable[ExecutionLogEntry],
    latency_ms: float,
    tuner_state: TunerState,
    now: datetime | None = None,
) -> HealthReport:
    now = now or utc_now()
    metric = SystemMetric(
        timestamp=now,
        latency_ms=latency_ms,
        error_rate=compute_error_rate(logs),
        signal_accuracy=compute_signal_accuracy(tuner_state.rolling_accuracy),
        active_modules=ACTIVE_MODULES,
    )

    alerts: list[SystemAlert] = []
    if tuner_state.adjustments_today >= MAX_ADJUSTMENTS_PER_DAY:
        alerts.append(SystemAlert(
            id=new_id("alert"),
            timestamp=now,
            severity=AlertSeverity.INFO,
            module=OPTIMIZER_MODULE,
            message="Daily optimization limit reached. Tuning frozen.",
        ))

    logger.debug(
        "Health: latency=%.1fms error_rate=%.1f%% accuracy=%.1f%% alerts=%d",
        metric.latency_ms, metric.error_rate, metric.signal_accuracy, len(alerts),
    )
    return HealthReport(metric=metric, alerts=tuple(alerts))
