"""Market state classifier: ordered rule cascade, first match wins.

Order:
  1. UNSTABLE      volatility > 85 or liquidity < 80k (safety precedes opportunity)
  2. OVEREXTENDED  h1 > 15% with volume spike < 0.8x (rally without volume)
  3. MOMENTUM      volume spike > 2.5x and m5 > 2% (volume-confirmed breakout)
  4. ACCUMULATION  volume spike > 1.5x and |m5| < 0.5% (turnover, suppressed price)
  5. DORMANT       volume spike < 0.5x and volatility < 20
  6. fallback      MOMENTUM if score > 40, else DORMANT

The fallback labels any score above 40 without volume/price corroboration
as MOMENTUM and tags it with SCORE_FALLBACK_TRIGGER.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from alphagate.contracts import (
    AssetSnapshot,
    Classification,
    ClassifiedAsset,
    MarketState,
    ScoredAsset,
    SignalConfidence,
    utc_now,
)
from alphagate.signals.explainability import explain_classification

logger = logging.getLogger(__name__)

VOLATILITY_MAX = 85.0
VOLATILITY_MIN = 20.0
LIQUIDITY_DANGER = 80_000.0
OVEREXTENDED_H1 = 15.0
OVEREXTENDED_SPIKE_MAX = 0.8
MOMENTUM_SPIKE = 2.5
MOMENTUM_M5 = 2.0
ACCUMULATION_SPIKE = 1.5
FLAT_PRICE_M5 = 0.5
DORMANT_SPIKE_MAX = 0.5
FALLBACK_SCORE = 40

HIGH_CONFIDENCE_SCORE = 80
MEDIUM_CONFIDENCE_SCORE = 50

SCORE_FALLBACK_TRIGGER = "Score-based activity"
DEFAULT_TRIGGER = "Low activity detected"


def determine_confidence(state: MarketState, score: int) -> SignalConfidence:
    """UNSTABLE is always LOW; otherwise confidence follows score strength."""
    if state is MarketState.UNSTABLE:
        return SignalConfidence.LOW
    if score > HIGH_CONFIDENCE_SCORE:
        return SignalConfidence.HIGH
    if score > MEDIUM_CONFIDENCE_SCORE:
        return SignalConfidence.MEDIUM
    return SignalConfidence.LOW


def _match_state(snapshot: AssetSnapshot, score: int) -> tuple[MarketState, str]:
    vol = snapshot.volatility_index
    spike = snapshot.volume_spike_factor
    pc = snapshot.price_change

    if vol > VOLATILITY_MAX or snapshot.liquidity < LIQUIDITY_DANGER:
        trigger = "Extreme Volatility" if vol > VOLATILITY_MAX else "Liquidity Crunch"
        return MarketState.UNSTABLE, trigger
    if pc.h1 > OVEREXTENDED_H1 and spike < OVEREXTENDED_SPIKE_MAX:
        return MarketState.OVEREXTENDED, "Price/Volume Divergence"
    if spike > MOMENTUM_SPIKE and pc.m5 > MOMENTUM_M5:
        return MarketState.MOMENTUM, "Volume-backed Breakout"
    if spike > ACCUMULATION_SPIKE and abs(pc.m5) < FLAT_PRICE_M5:
        return MarketState.ACCUMULATION, "High Vol / Low Price Delta"
    if spike < DORMANT_SPIKE_MAX and vol < VOLATILITY_MIN:
        return MarketState.DORMANT, "Inactive"
    if score > FALLBACK_SCORE:
        return MarketState.MOMENTUM, SCORE_FALLBACK_TRIGGER
    return MarketState.DORMANT, DEFAULT_TRIGGER


def classify_market_state(
    snapshot: AssetSnapshot,
    score: int,
    now: datetime | None = None,
) -> Classification:
    """Map a scored snapshot to exactly one MarketState with confidence and trigger."""
    state, trigger = _match_state(snapshot, score)
    return Classification(
        state=state,
        confidence=determine_confidence(state, score),
        trigger=trigger,
        transitioned_at=now or utc_now(),
    )


def classify_asset(scored: ScoredAsset, now: datetime | None = None) -> ClassifiedAsset:
    """Classify and attach the deterministic explanation."""
    classification = classify_market_state(scored.snapshot, scored.momentum_score, now)
    explanation = explain_classification(scored, classification)
    logger.debug(
        "%s: %s/%s (%s, score=%d)",
        scored.symbol, classification.state.value, classification.confidence.value,
        classification.trigger, scored.momentum_score,
    )
    return ClassifiedAsset(
        snapshot=scored.snapshot,
        momentum_score=scored.momentum_score,
        classification=classification,
        explanation=explanation,
    )


def classify_batch(
    scored: Iterable[ScoredAsset],
    now: datetime | None = None,
) -> list[ClassifiedAsset]:
    """Classify a scored batch, preserving input order. One timestamp per batch."""
    now = now or utc_now()
    return [classify_asset(s, now) for s in scored]
