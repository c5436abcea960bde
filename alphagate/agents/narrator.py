"""Narrative commentary: optional, best-effort, never affects decisions.

Any missing credential, timeout or provider error degrades to a placeholder
string (overview) or None (per-asset report). Callers never see an exception.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Sequence

from alphagate.agents.llm_router import call_llm
from alphagate.config import Settings, get_settings
from alphagate.contracts import AnalysisReport, ClassifiedAsset, RiskLevel, ScoredAsset, utc_now

logger = logging.getLogger(__name__)

AI_UNAVAILABLE = "AI Service Unavailable"
MARKET_ANALYSIS_UNAVAILABLE = "Market analysis unavailable."
OVERVIEW_BASKET_SIZE = 5

OVERVIEW_SYSTEM_PROMPT = (
    "You are a senior quantitative crypto analyst. Be technical and concise. "
    "Never give financial advice and never say buy or sell."
)

ANALYSIS_SYSTEM_PROMPT = (
    "Role: Senior Quantitative Crypto Analyst.\n"
    "Constraints:\n"
    "- Do NOT give financial advice.\n"
    "- Do NOT say \"buy\" or \"sell\".\n"
    "- Focus on volume anomalies, liquidity depth relative to market cap, and volatility.\n"
    "- Be technical and concise.\n"
    "Output: a JSON object {\"risk_level\": \"LOW|MEDIUM|HIGH|CRITICAL\", "
    "\"summary\": str, \"key_factors\": [str]}."
)


def _overview_basket(assets: Sequence[ScoredAsset | ClassifiedAsset]) -> list[dict]:
    top = sorted(assets, key=lambda a: a.momentum_score, reverse=True)[:OVERVIEW_BASKET_SIZE]
    return [
        {
            "s": a.symbol,
            "score": a.momentum_score,
            "vol": round(a.snapshot.volume_spike_factor, 2),
        }
        for a in top
    ]


async def generate_market_overview(
    assets: Sequence[ScoredAsset | ClassifiedAsset],
    settings: Settings | None = None,
    timeout: float | None = None,
) -> str:
    """Two-sentence read on the current top-scored basket, or a placeholder."""
    settings = settings or get_settings()
    if not settings.has_narrative_credentials():
        logger.warning("Narrative model %s has no API key configured", settings.narrative_model)
        return AI_UNAVAILABLE

    user_prompt = (
        f"Analyze this basket of top momentum tokens: {json.dumps(_overview_basket(assets))}.\n"
        "Summarize the current market sector rotation or sentiment in 2 sentences. "
        "Technical tone."
    )
    try:
        result = await asyncio.wait_for(
            call_llm(
                settings.narrative_model, OVERVIEW_SYSTEM_PROMPT, user_prompt,
                settings=settings,
            ),
            timeout=timeout if timeout is not None else settings.narrative_timeout_seconds,
        )
    except Exception as e:
        logger.warning("Market overview failed (%s): %s", type(e).__name__, e)
        return MARKET_ANALYSIS_UNAVAILABLE

    text = (result.get("raw") or "").strip()
    return text or MARKET_ANALYSIS_UNAVAILABLE


async def analyze_asset(
    asset: ClassifiedAsset,
    settings: Settings | None = None,
    timeout: float | None = None,
) -> AnalysisReport | None:
    """Structured risk commentary for one asset, or None on any failure."""
    settings = settings or get_settings()
    if not settings.has_narrative_credentials():
        return None

    user_prompt = (
        f"Analyze the following market data for token {asset.symbol}.\n"
        f"Data: {asset.snapshot.model_dump_json()}"
    )
    try:
        result = await asyncio.wait_for(
            call_llm(
                settings.narrative_model, ANALYSIS_SYSTEM_PROMPT, user_prompt,
                json_output=True, settings=settings,
            ),
            timeout=timeout if timeout is not None else settings.narrative_timeout_seconds,
        )
        data = result.get("content")
        if not isinstance(data, dict):
            logger.warning("Asset analysis for %s returned non-JSON output", asset.symbol)
            return None
        return AnalysisReport(
            asset_id=asset.asset_id,
            timestamp=utc_now(),
            risk_level=RiskLevel(str(data.get("risk_level", "")).upper()),
            summary=str(data.get("summary", "")),
            key_factors=[str(f) for f in data.get("key_factors", [])],
        )
    except Exception as e:
        logger.warning("Asset analysis for %s failed (%s): %s", asset.symbol, type(e).__name__, e)
        return None
