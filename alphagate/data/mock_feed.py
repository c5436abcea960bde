"""Synthetic market feed for demos and tests.

Stands in for the ingestion layer: a fixed ten-asset universe of
low-cap meme tokens with randomized metrics and a small price drift per
tick. Randomness always comes from an explicit numpy Generator so a run
can be reproduced from its seed.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from alphagate.contracts import AssetSnapshot, PriceChange

SYMBOLS = ("PEPE", "WIF", "BONK", "TURBO", "MOG", "SPX", "POPCAT", "BRETT", "GIGACHAD", "APU")

SPIKE_PROBABILITY = 0.2
TICK_PRICE_MOVE = 0.02  # +/- 2% per tick
DEFAULT_MOVE_PROBABILITY = 0.4


def _snapshot(index: int, symbol: str, rng: np.random.Generator) -> AssetSnapshot:
    base_price = 0.00001 * (index + 1) + rng.uniform(-0.000001, 0.000001)
    market_cap = rng.uniform(5_000_000, 500_000_000)
    liquidity = market_cap * rng.uniform(0.05, 0.15)

    spike = rng.random() < SPIKE_PROBABILITY
    volume_multiplier = rng.uniform(2, 5) if spike else rng.uniform(0.5, 1.2)

    return AssetSnapshot(
        asset_id=f"asset-{index}",
        symbol=symbol,
        name=f"{symbol} Protocol",
        price=base_price,
        market_cap=market_cap,
        volume_24h=market_cap * 0.1 * volume_multiplier,
        liquidity=liquidity,
        price_change=PriceChange(
            m5=rng.uniform(-2, 3),
            h1=rng.uniform(-5, 8),
            h24=rng.uniform(-15, 25),
        ),
        volatility_index=rng.uniform(40, 95),
        volume_spike_factor=volume_multiplier,
        tags=("High Vol", "Trending") if spike else ("Stable",),
    )


def generate_market_snapshot(rng: np.random.Generator | int | None = None) -> list[AssetSnapshot]:
    rng = np.random.default_rng(rng)
    return [_snapshot(i, sym, rng) for i, sym in enumerate(SYMBOLS)]


def drift_snapshot(snapshot: AssetSnapshot, rng: np.random.Generator) -> AssetSnapshot:
    """Move price by up to +/-2% and carry the move into the 5m change."""
    change = rng.uniform(-TICK_PRICE_MOVE, TICK_PRICE_MOVE)
    price_change = snapshot.price_change.model_copy(
        update={"m5": snapshot.price_change.m5 + change * 100}
    )
    return snapshot.model_copy(update={
        "price": snapshot.price * (1 + change),
        "price_change": price_change,
    })


def advance_market(
    batch: Sequence[AssetSnapshot],
    rng: np.random.Generator,
    move_probability: float = DEFAULT_MOVE_PROBABILITY,
) -> list[AssetSnapshot]:
    """Drift a random subset of the batch for the next tick."""
    return [
        drift_snapshot(s, rng) if rng.random() < move_probability else s
        for s in batch
    ]
