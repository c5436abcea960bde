"""Deterministic explanations for classifications (no LLM, no randomness).

Same (asset, classification) in, byte-identical explanation out. Text is
built from fixed templates in a fixed order.
"""

from __future__ import annotations

from alphagate.contracts import (
    Classification,
    Explanation,
    MarketState,
    ScoredAsset,
    SignalConfidence,
)

MAX_SUPPORTING_SIGNALS = 3
MAX_RISK_FACTORS = 2

SUMMARY_TEMPLATES: dict[MarketState, str] = {
    MarketState.MOMENTUM: (
        "Asset classified as MOMENTUM due to confluence of volume spike ({spike:.1f}x) "
        "and positive price action. System detects breakout behavior."
    ),
    MarketState.ACCUMULATION: (
        "Asset classified as ACCUMULATION. High turnover without price markup "
        "suggests smart money entry before expansion."
    ),
    MarketState.DORMANT: (
        "Asset is DORMANT. Metrics are below activation thresholds. "
        "No significant catalyst detected."
    ),
    MarketState.OVEREXTENDED: (
        "Asset is OVEREXTENDED. Rally appears exhausted relative to volume flow. "
        "Reversal risk is elevated."
    ),
    MarketState.UNSTABLE: (
        "Asset is UNSTABLE. Volatility or liquidity metrics violated safety baselines."
    ),
}


def _supporting_signals(asset: ScoredAsset, state: MarketState) -> list[str]:
    snap = asset.snapshot
    signals: list[str] = []
    if snap.volume_spike_factor > 2.0:
        signals.append(
            f"Abnormal Volume: {snap.volume_spike_factor:.1f}x above average "
            "indicates institutional or viral interest."
        )
    if snap.liquidity > 100_000:
        signals.append(
            f"Deep Liquidity: ${snap.liquidity / 1000:.0f}k depth supports larger entries."
        )
    if asset.momentum_score > 80:
        signals.append(
            f"Strong Momentum: Scoring {asset.momentum_score}/100 "
            "based on multi-timeframe price action."
        )
    if state is MarketState.ACCUMULATION:
        signals.append(
            "Price Suppression: Volume is rising while price remains stable "
            "(Accumulation pattern)."
        )
    return signals


def _risk_factors(asset: ScoredAsset, state: MarketState) -> list[str]:
    snap = asset.snapshot
    risks: list[str] = []
    if snap.volatility_index > 80:
        risks.append("Extreme Volatility: Asset is prone to >5% candle swings.")
    if snap.liquidity < 50_000:
        risks.append("Thin Orderbook: High slippage risk on exit.")
    if state is MarketState.OVEREXTENDED:
        risks.append("Trend Exhaustion: Price extended beyond volume support.")
    if state is MarketState.UNSTABLE:
        risks.append("Metric Divergence: Signals are conflicting or erratic.")
    return risks


def _confidence_rationale(confidence: SignalConfidence, risks: list[str]) -> str:
    if confidence is SignalConfidence.HIGH:
        return (
            "Confidence HIGH: All primary indicators (Vol, Liq, Score) align positively "
            "with no critical risk flags."
        )
    if confidence is SignalConfidence.MEDIUM:
        offset = risks[0].split(":")[0] if risks else "lower scoring factor"
        return f"Confidence MEDIUM: Primary signal is valid, but offset by {offset}."
    return (
        "Confidence LOW: Signal is weak or significant risk factors are present. "
        "Filtering advised."
    )


def explain_classification(asset: ScoredAsset, classification: Classification) -> Explanation:
    """Build the human-readable rationale for one classification."""
    state = classification.state
    signals = _supporting_signals(asset, state)
    risks = _risk_factors(asset, state)
    summary = SUMMARY_TEMPLATES[state].format(spike=asset.snapshot.volume_spike_factor)

    return Explanation(
        summary=summary,
        supporting_signals=tuple(signals[:MAX_SUPPORTING_SIGNALS]),
        risk_factors=tuple(risks[:MAX_RISK_FACTORS]),
        confidence_rationale=_confidence_rationale(classification.confidence, risks),
    )
