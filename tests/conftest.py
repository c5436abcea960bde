"""Shared test fixtures."""

from __future__ import annotations

from datetime import datetime, timezone

import numpy as np
import pytest

from alphagate.contracts import (
    AssetSnapshot,
    Classification,
    ClassifiedAsset,
    MarketState,
    Position,
    PriceChange,
    ScoredAsset,
    SignalConfidence,
)
from alphagate.signals.explainability import explain_classification

FIXED_NOW = datetime(2025, 6, 2, 12, 0, tzinfo=timezone.utc)


def _snapshot(**overrides) -> AssetSnapshot:
    """A liquid, volume-backed breakout: scores 91, classifies MOMENTUM/HIGH."""
    defaults = dict(
        asset_id="asset-0",
        symbol="PEPE",
        price=1.0,
        market_cap=1_000_000.0,
        volume_24h=900_000.0,
        liquidity=200_000.0,
        price_change=PriceChange(m5=3.0, h1=5.0, h24=10.0),
        volatility_index=70.0,
        volume_spike_factor=3.0,
        tags=("High Vol",),
    )
    if any(k in overrides for k in ("m5", "h1", "h24")):
        pc = defaults["price_change"]
        defaults["price_change"] = PriceChange(
            m5=overrides.pop("m5", pc.m5),
            h1=overrides.pop("h1", pc.h1),
            h24=overrides.pop("h24", pc.h24),
        )
    defaults.update(overrides)
    return AssetSnapshot(**defaults)


def _classified(
    state: MarketState = MarketState.MOMENTUM,
    confidence: SignalConfidence = SignalConfidence.HIGH,
    score: int = 90,
    trigger: str = "Volume-backed Breakout",
    now: datetime = FIXED_NOW,
    **snapshot_overrides,
) -> ClassifiedAsset:
    """A ClassifiedAsset with a hand-picked classification (bypasses the cascade)."""
    snapshot = _snapshot(**snapshot_overrides)
    classification = Classification(
        state=state, confidence=confidence, trigger=trigger, transitioned_at=now,
    )
    scored = ScoredAsset(snapshot=snapshot, momentum_score=score)
    return ClassifiedAsset(
        snapshot=snapshot,
        momentum_score=score,
        classification=classification,
        explanation=explain_classification(scored, classification),
    )


def _position(asset_id: str = "asset-0", **overrides) -> Position:
    defaults = dict(
        asset_id=asset_id,
        symbol=asset_id.upper(),
        entry_price=1.0,
        size_usd=1_000.0,
        entry_time=FIXED_NOW,
        unrealized_pnl=0.0,
    )
    defaults.update(overrides)
    return Position(**defaults)


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def make_snapshot():
    return _snapshot


@pytest.fixture
def make_classified():
    return _classified


@pytest.fixture
def make_position():
    return _position


@pytest.fixture
def random_snapshots() -> list[AssetSnapshot]:
    """300 snapshots spanning extreme and degenerate values."""
    rng = np.random.default_rng(42)
    snapshots = []
    for i in range(300):
        market_cap = float(rng.choice([0.0, rng.uniform(1e3, 1e9)]))
        snapshots.append(AssetSnapshot(
            asset_id=f"rand-{i}",
            symbol=f"R{i}",
            price=rng.uniform(0, 10),
            market_cap=market_cap,
            volume_24h=rng.uniform(0, 2e9),
            liquidity=rng.uniform(0, 5e8),
            price_change=PriceChange(
                m5=rng.uniform(-80, 80),
                h1=rng.uniform(-200, 200),
                h24=rng.uniform(-500, 500),
            ),
            volatility_index=rng.uniform(-20, 140),
            volume_spike_factor=rng.uniform(-1, 10),
        ))
    return snapshots
