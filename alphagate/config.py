"""Central configuration: loads .env and exposes typed settings."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

# Resolve project root (parent of alphagate/)
PROJECT_ROOT = Path(__file__).resolve().parent.parent
ENV_PATH = PROJECT_ROOT / ".env"

WEIGHT_SUM_TOLERANCE = 0.01


class Settings(BaseSettings):
    # --- Scoring weights (expected to sum to 1, never renormalized) ---
    volume_weight: float = Field(default=0.35, ge=0.0)
    momentum_weight: float = Field(default=0.30, ge=0.0)
    liquidity_weight: float = Field(default=0.20, ge=0.0)
    volatility_weight: float = Field(default=0.15, ge=0.0)
    min_liquidity: float = Field(default=50_000.0, ge=0.0)  # USD rug-risk filter

    # --- Risk policy ---
    max_open_positions: int = Field(default=3, ge=1)
    base_position_size: float = Field(default=1_000.0, gt=0.0)  # USD
    max_portfolio_risk: float = Field(default=5_000.0, ge=0.0)  # USD exposure limit
    cooldown_seconds: float = Field(default=60.0, ge=0.0)
    volatility_kill_switch: float = Field(default=90.0, ge=0.0, le=100.0)

    # --- Host loop ---
    tick_seconds: float = 2.0
    execution_log_capacity: int = 100
    metric_history_capacity: int = 50
    alert_history_capacity: int = 20
    optimization_history_capacity: int = 200

    # --- Narrative collaborator (optional, never affects decisions) ---
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    narrative_model: str = "claude-haiku-4-5-20251001"
    narrative_timeout_seconds: float = 10.0

    # --- Logging ---
    log_format: str = "text"  # "text" or "json"

    @model_validator(mode="after")
    def _warn_on_weight_sum(self) -> "Settings":
        """Warn when scoring weights drift away from 1.0."""
        total = (
            self.volume_weight + self.momentum_weight
            + self.liquidity_weight + self.volatility_weight
        )
        if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
            logger.warning(
                "Scoring weights sum to %.3f, not 1.0: scores are not renormalized "
                "and will be clamped to [0, 100]",
                total,
            )
        return self

    def has_narrative_credentials(self) -> bool:
        """True when the configured narrative model has an API key to call with."""
        if self.narrative_model.startswith("claude"):
            return bool(self.anthropic_api_key)
        return bool(self.openai_api_key)

    model_config = {
        "env_file": str(ENV_PATH),
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


# Singleton
_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
