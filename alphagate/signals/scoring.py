"""Alpha score: liquidity-gated weighted composite of four sub-scores (0-100).

Sub-scores:
  - volume: 24h turnover relative to market cap, capped at 1x
  - momentum: m5*4 + h1*2 + h24, offset by +50 and clamped (recent action weighs more)
  - liquidity: liquidity/market cap, 20% of cap scores 100
  - volatility: peaks at volatility 70, loses 2 points per unit of distance

Assets below the minimum liquidity score 0 regardless of everything else.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable

from alphagate.contracts import AssetSnapshot, ScoredAsset, ScoringConfig

logger = logging.getLogger(__name__)

MOMENTUM_OFFSET = 50.0
LIQUIDITY_RATIO_MULTIPLIER = 500.0  # 20% liquidity/mcap -> 100
OPTIMAL_VOLATILITY = 70.0
VOLATILITY_DISTANCE_PENALTY = 2.0

DEFAULT_SCORING = ScoringConfig()


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return min(max(value, low), high)


def volume_subscore(snapshot: AssetSnapshot) -> float:
    if snapshot.market_cap <= 0:
        return 0.0
    return min(snapshot.volume_24h / snapshot.market_cap, 1.0) * 100


def momentum_subscore(snapshot: AssetSnapshot) -> float:
    pc = snapshot.price_change
    raw = pc.m5 * 4 + pc.h1 * 2 + pc.h24
    return _clamp(raw + MOMENTUM_OFFSET)


def liquidity_subscore(snapshot: AssetSnapshot) -> float:
    if snapshot.market_cap <= 0:
        return 0.0
    return min(snapshot.liquidity / snapshot.market_cap * LIQUIDITY_RATIO_MULTIPLIER, 100.0)


def volatility_subscore(snapshot: AssetSnapshot) -> float:
    distance = abs(snapshot.volatility_index - OPTIMAL_VOLATILITY)
    return max(100.0 - distance * VOLATILITY_DISTANCE_PENALTY, 0.0)


def score_snapshot(snapshot: AssetSnapshot, config: ScoringConfig = DEFAULT_SCORING) -> int:
    """Compute the integer momentum score in [0, 100] for one snapshot."""
    # Rug-risk filter short-circuits every other term
    if snapshot.liquidity < config.min_liquidity:
        return 0

    total = (
        volume_subscore(snapshot) * config.volume_weight
        + momentum_subscore(snapshot) * config.momentum_weight
        + liquidity_subscore(snapshot) * config.liquidity_weight
        + volatility_subscore(snapshot) * config.volatility_weight
    )
    # Weights are not renormalized; the clamp keeps misconfigured weights in range
    return int(_clamp(math.floor(total)))


def score_asset(snapshot: AssetSnapshot, config: ScoringConfig = DEFAULT_SCORING) -> ScoredAsset:
    return ScoredAsset(snapshot=snapshot, momentum_score=score_snapshot(snapshot, config))


def score_batch(
    snapshots: Iterable[AssetSnapshot],
    config: ScoringConfig = DEFAULT_SCORING,
) -> list[ScoredAsset]:
    """Score every snapshot and sort by score descending (stable for ties)."""
    scored = [score_asset(s, config) for s in snapshots]
    scored.sort(key=lambda a: a.momentum_score, reverse=True)
    logger.debug(
        "Scored %d assets (min_liquidity=%.0f), top=%s",
        len(scored), config.min_liquidity,
        scored[0].symbol if scored else None,
    )
    return scored
