"""Auto tuner: conservative, rate-limited feedback on scoring/risk config.

Closes the loop between realized signal accuracy and configuration, but
prefers stability over reactivity:
  1. Daily budget resets once the 24h window has elapsed
  2. At most MAX_ADJUSTMENTS_PER_DAY adjustments per window (fail-closed)
  3. At least MIN_SIGNALS_PER_WINDOW realized outcomes before acting
  4. One bounded step on one parameter per invocation
     - accuracy < 65%: raise min_liquidity by 5k (cap 200k), then lower the
       volatility kill switch by 2 (floor 50)
     - accuracy > 85% with more than 50 signals: lower cooldown by 15s (floor 30)
  5. After acting the signal window restarts so the new config is observed
     before it is tuned again

TunerState is a value: every function returns a new state and never
mutates the one it was given.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, replace
from datetime import datetime, timedelta

from alphagate.contracts import (
    OptimizationEvent,
    SystemConfig,
    SystemMetric,
    TargetModule,
    new_id,
    utc_now,
)

logger = logging.getLogger(__name__)

# Guardrails
WINDOW_DURATION = timedelta(hours=24)
MAX_ADJUSTMENTS_PER_DAY = 2
MIN_SIGNALS_PER_WINDOW = 50
ROLLING_ACCURACY_CAPACITY = 100

MIN_ACCURACY_TARGET = 65.0   # tighten below this %
MAX_ACCURACY_CEILING = 85.0  # loosen above this %

STEP_LIQUIDITY = 5_000.0
MAX_MIN_LIQUIDITY = 200_000.0
STEP_VOLATILITY = 2.0
MIN_VOLATILITY_KILL_SWITCH = 50.0
STEP_COOLDOWN = 15.0
MIN_COOLDOWN_SECONDS = 30.0


@dataclass(frozen=True)
class TunerState:
    """Rate-limit bookkeeping and rolling outcome window, owned by the host loop."""

    window_start_time: datetime
    last_adjustment_time: datetime | None = None
    adjustments_today: int = 0
    signals_processed_in_window: int = 0
    rolling_accuracy: tuple[int, ...] = ()  # 1 = win, 0 = loss


@dataclass(frozen=True)
class TuningResult:
    config: SystemConfig
    event: OptimizationEvent | None
    state: TunerState

    @property
    def adjusted(self) -> bool:
        return self.event is not None


def initialize_tuner_state(now: datetime | None = None) -> TunerState:
    return TunerState(window_start_time=now or utc_now())


def ingest_signal_outcome(state: TunerState, is_win: bool) -> TunerState:
    """Record one realized trade outcome."""
    window = deque(state.rolling_accuracy, maxlen=ROLLING_ACCURACY_CAPACITY)
    window.append(1 if is_win else 0)
    return replace(
        state,
        rolling_accuracy=tuple(window),
        signals_processed_in_window=state.signals_processed_in_window + 1,
    )


def _tighten(config: SystemConfig, accuracy: float) -> tuple[SystemConfig, TargetModule, str, float, float, str] | None:
    """Prefer the liquidity filter; fall back to volatility tolerance once capped."""
    min_liq = config.scoring.min_liquidity
    if min_liq < MAX_MIN_LIQUIDITY:
        new = min(min_liq + STEP_LIQUIDITY, MAX_MIN_LIQUIDITY)
        scoring = config.scoring.model_copy(update={"min_liquidity": new})
        return (
            config.model_copy(update={"scoring": scoring}),
            TargetModule.SCORING, "min_liquidity", min_liq, new,
            f"Accuracy ({accuracy:.1f}%) below target. Tightening liquidity filter.",
        )

    kill_switch = config.risk.volatility_kill_switch
    if kill_switch > MIN_VOLATILITY_KILL_SWITCH:
        new = max(MIN_VOLATILITY_KILL_SWITCH, kill_switch - STEP_VOLATILITY)
        risk = config.risk.model_copy(update={"volatility_kill_switch": new})
        return (
            config.model_copy(update={"risk": risk}),
            TargetModule.RISK, "volatility_kill_switch", kill_switch, new,
            f"Accuracy ({accuracy:.1f}%) low with liquidity filter at cap. "
            "Reducing volatility tolerance.",
        )
    return None


def _loosen(config: SystemConfig, accuracy: float) -> tuple[SystemConfig, TargetModule, str, float, float, str] | None:
    cooldown = config.risk.cooldown_seconds
    if cooldown <= MIN_COOLDOWN_SECONDS:
        return None
    new = max(MIN_COOLDOWN_SECONDS, cooldown - STEP_COOLDOWN)
    risk = config.risk.model_copy(update={"cooldown_seconds": new})
    return (
        config.model_copy(update={"risk": risk}),
        TargetModule.RISK, "cooldown_seconds", cooldown, new,
        f"Accuracy high ({accuracy:.1f}%). Reducing cooldown to capture more flow.",
    )


def run_conservative_optimization(
    config: SystemConfig,
    metric: SystemMetric,
    state: TunerState,
    now: datetime | None = None,
) -> TuningResult:
    """Apply at most one bounded configuration step. Any unmet precondition is a no-op."""
    now = now or utc_now()

    # --- 1. Daily budget reset ---
    if now - state.window_start_time > WINDOW_DURATION:
        state = replace(
            state,
            adjustments_today=0,
            window_start_time=now,
            signals_processed_in_window=0,
        )

    # --- 2. Hard stop ---
    if state.adjustments_today >= MAX_ADJUSTMENTS_PER_DAY:
        return TuningResult(config=config, event=None, state=state)

    # --- 3. Minimum sample size ---
    if state.signals_processed_in_window < MIN_SIGNALS_PER_WINDOW:
        return TuningResult(config=config, event=None, state=state)

    # --- 4. One step ---
    accuracy = metric.signal_accuracy
    step = None
    if accuracy < MIN_ACCURACY_TARGET:
        step = _tighten(config, accuracy)
    elif (
        accuracy > MAX_ACCURACY_CEILING
        # Strictly more samples than the tightening gate
        and state.signals_processed_in_window > MIN_SIGNALS_PER_WINDOW
    ):
        step = _loosen(config, accuracy)

    if step is None:
        return TuningResult(config=config, event=None, state=state)

    new_config, module, parameter, old_value, new_value, reason = step
    event = OptimizationEvent(
        id=new_id("opt"),
        timestamp=now,
        target_module=module,
        parameter=parameter,
        old_value=old_value,
        new_value=new_value,
        reason=reason,
    )
    state = replace(
        state,
        adjustments_today=state.adjustments_today + 1,
        signals_processed_in_window=0,
        last_adjustment_time=now,
    )
    logger.info(
        "Auto-tune APPLIED: %s.%s (%g → %g): %s [%d/%d today]",
        module.value, parameter, old_value, new_value, reason,
        state.adjustments_today, MAX_ADJUSTMENTS_PER_DAY,
    )
    return TuningResult(config=new_config, event=event, state=state)
