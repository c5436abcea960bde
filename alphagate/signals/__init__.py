"""Signal layer: scoring, state classification and explanations."""

from alphagate.signals.classifier import classify_asset, classify_batch, classify_market_state
from alphagate.signals.explainability import explain_classification
from alphagate.signals.scoring import score_asset, score_batch, score_snapshot

__all__ = [
    "classify_asset",
    "classify_batch",
    "classify_market_state",
    "explain_classification",
    "score_asset",
    "score_batch",
    "score_snapshot",
]
