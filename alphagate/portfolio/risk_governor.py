"""Risk Governor: ordered gates every simulated entry/exit must pass.

Entry gates (applied in order, first failure wins):
  1. Volatility kill switch: asset volatility above the configured ceiling
  2. Portfolio saturation: open positions already at the maximum
  3. Global cooldown: last committed action too recent (not per-asset)
  4. Duplicate: asset already held (no pyramiding)
  5. Confidence: only HIGH confidence signals may enter
  6. State: only MOMENTUM or ACCUMULATION may enter

Approved entries are sized inversely to volatility, with volatility floored
at 25 so near-zero readings cannot oversize a position.

Exit: full size when state degrades to OVEREXTENDED/UNSTABLE, or on the
emergency volatility stop (> 95). Otherwise hold.

Pure math, no I/O: rejections are returned, never raised.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from alphagate.contracts import (
    ClassifiedAsset,
    MarketState,
    Position,
    RiskConfig,
    SignalConfidence,
    utc_now,
)

BASELINE_VOLATILITY = 50.0
SIZING_VOLATILITY_FLOOR = 25.0
EMERGENCY_VOLATILITY_STOP = 95.0

ENTRY_STATES = frozenset({MarketState.MOMENTUM, MarketState.ACCUMULATION})
EXIT_STATES = frozenset({MarketState.OVEREXTENDED, MarketState.UNSTABLE})


@dataclass(frozen=True)
class RiskDecision:
    """Verdict of one governor check."""

    allowed: bool
    size_usd: float
    reason: str


def _deny(reason: str) -> RiskDecision:
    return RiskDecision(allowed=False, size_usd=0.0, reason=f"Risk Governor: {reason}")


def inverse_volatility_size(volatility_index: float, base_size: float) -> int:
    """Higher volatility = smaller size. Volatility 50 gets the base size."""
    scalar = BASELINE_VOLATILITY / max(volatility_index, SIZING_VOLATILITY_FLOOR)
    return math.floor(base_size * scalar)


def evaluate_entry(
    asset: ClassifiedAsset,
    positions: Sequence[Position],
    last_action_time: datetime | None,
    config: RiskConfig,
    now: datetime | None = None,
) -> RiskDecision:
    """Run the entry gates for one candidate against the current portfolio."""
    now = now or utc_now()

    # --- 1. Global kill switch ---
    if asset.volatility_index > config.volatility_kill_switch:
        return _deny(
            f"Volatility exceeds safety threshold ({config.volatility_kill_switch:g})"
        )

    # --- 2. Portfolio saturation ---
    if len(positions) >= config.max_open_positions:
        return _deny(
            f"Max open positions reached: portfolio saturated "
            f"({len(positions)}/{config.max_open_positions})"
        )

    # --- 3. Global cooldown ---
    if last_action_time is not None:
        elapsed = (now - last_action_time).total_seconds()
        if elapsed < config.cooldown_seconds:
            return _deny(
                f"Global execution cooldown active "
                f"({elapsed:.0f}s of {config.cooldown_seconds:g}s)"
            )

    # --- 4. Duplicate ---
    if any(p.asset_id == asset.asset_id for p in positions):
        return _deny("Position already exists")

    # --- 5. Confidence gate: HIGH only ---
    if asset.confidence is not SignalConfidence.HIGH:
        return _deny(f"Signal confidence insufficient ({asset.confidence.value})")

    # --- 6. State gate ---
    if asset.state not in ENTRY_STATES:
        return _deny(f"State {asset.state.value} not suitable for entry")

    size = inverse_volatility_size(asset.volatility_index, config.base_position_size)
    return RiskDecision(
        allowed=True,
        size_usd=float(size),
        reason=(
            f"Approved: High Conf + Valid State. "
            f"Vol Adj: {size / config.base_position_size:.2f}x"
        ),
    )


def evaluate_exit(asset: ClassifiedAsset, position: Position) -> RiskDecision:
    """Decide whether a held position must be closed this cycle."""
    if asset.state in EXIT_STATES:
        return RiskDecision(
            allowed=True,
            size_usd=position.size_usd,
            reason=f"Exit: Market State degraded to {asset.state.value}",
        )
    if asset.volatility_index > EMERGENCY_VOLATILITY_STOP:
        return RiskDecision(
            allowed=True,
            size_usd=position.size_usd,
            reason="Exit: Emergency volatility stop",
        )
    return RiskDecision(allowed=False, size_usd=0.0, reason="Hold")
