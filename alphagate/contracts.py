"""Data contracts: typed, immutable records passed between pipeline stages.

Every stage takes these values as input and returns new ones; nothing in
the core mutates a contract in place. Unknown fields are forbidden and
numeric inputs are sanitized at the ingestion boundary.
"""

from __future__ import annotations

import math
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from alphagate.config import Settings, get_settings


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def neutral_number(value: Any) -> float:
    """Coerce a possibly-missing upstream number to a finite float (0.0 if unusable)."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


class StrictModel(BaseModel):
    """Base for all contract models: unknown fields are forbidden, values are frozen."""

    model_config = ConfigDict(extra="forbid", frozen=True)


# ── Enumerations ───────────────────────────────────────────────────────────

class MarketState(str, Enum):
    DORMANT = "DORMANT"            # low activity
    ACCUMULATION = "ACCUMULATION"  # high volume, flat price
    MOMENTUM = "MOMENTUM"          # volume-backed breakout
    OVEREXTENDED = "OVEREXTENDED"  # price ran ahead of volume
    UNSTABLE = "UNSTABLE"          # volatility or liquidity breach


class SignalConfidence(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class ExecutionType(str, Enum):
    ENTRY = "ENTRY"
    EXIT = "EXIT"
    REJECTED = "REJECTED"


class AlertSeverity(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


class TargetModule(str, Enum):
    SCORING = "SCORING"
    RISK = "RISK"
    DECISION = "DECISION"


class TradeOutcome(str, Enum):
    WIN = "WIN"
    LOSS = "LOSS"
    NEUTRAL = "NEUTRAL"  # |move| < 1%


class InsightType(str, Enum):
    WARNING = "WARNING"
    RECOMMENDATION = "RECOMMENDATION"
    SUCCESS = "SUCCESS"


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


# ── Market data ────────────────────────────────────────────────────────────

class PriceChange(StrictModel):
    """Percent price change over three look-back windows."""

    m5: float = 0.0
    h1: float = 0.0
    h24: float = 0.0

    @field_validator("m5", "h1", "h24", mode="before")
    @classmethod
    def _sanitize(cls, value: Any) -> float:
        return neutral_number(value)


class AssetSnapshot(StrictModel):
    """One asset as delivered by ingestion for a single tick."""

    asset_id: str
    symbol: str
    name: str = ""
    price: float = 0.0
    market_cap: float = 0.0
    volume_24h: float = 0.0
    liquidity: float = 0.0
    price_change: PriceChange = Field(default_factory=PriceChange)
    volatility_index: float = 0.0  # 0-100
    volume_spike_factor: float = 0.0  # current volume / average volume
    tags: tuple[str, ...] = ()

    @field_validator("price", "market_cap", "volume_24h", "liquidity", mode="before")
    @classmethod
    def _sanitize(cls, value: Any) -> float:
        return neutral_number(value)

    @field_validator("volatility_index", mode="before")
    @classmethod
    def _clamp_volatility(cls, value: Any) -> float:
        return min(max(neutral_number(value), 0.0), 100.0)

    @field_validator("volume_spike_factor", mode="before")
    @classmethod
    def _floor_spike(cls, value: Any) -> float:
        return max(neutral_number(value), 0.0)

    @field_validator("price_change", mode="before")
    @classmethod
    def _default_price_change(cls, value: Any) -> Any:
        return PriceChange() if value is None else value


class ScoredAsset(StrictModel):
    """A snapshot together with its 0-100 momentum score."""

    snapshot: AssetSnapshot
    momentum_score: int = Field(ge=0, le=100)

    @property
    def asset_id(self) -> str:
        return self.snapshot.asset_id

    @property
    def symbol(self) -> str:
        return self.snapshot.symbol


# ── Decision layer ─────────────────────────────────────────────────────────

class Classification(StrictModel):
    state: MarketState
    confidence: SignalConfidence
    trigger: str
    transitioned_at: datetime


class Explanation(StrictModel):
    summary: str
    supporting_signals: tuple[str, ...] = Field(default=(), max_length=3)
    risk_factors: tuple[str, ...] = Field(default=(), max_length=2)
    confidence_rationale: str


class ClassifiedAsset(StrictModel):
    """Combined view consumed by risk, execution and presentation."""

    snapshot: AssetSnapshot
    momentum_score: int = Field(ge=0, le=100)
    classification: Classification
    explanation: Explanation

    @property
    def asset_id(self) -> str:
        return self.snapshot.asset_id

    @property
    def symbol(self) -> str:
        return self.snapshot.symbol

    @property
    def price(self) -> float:
        return self.snapshot.price

    @property
    def volatility_index(self) -> float:
        return self.snapshot.volatility_index

    @property
    def state(self) -> MarketState:
        return self.classification.state

    @property
    def confidence(self) -> SignalConfidence:
        return self.classification.confidence


# ── Portfolio & execution ──────────────────────────────────────────────────

class Position(StrictModel):
    asset_id: str
    symbol: str
    entry_price: float
    size_usd: float
    entry_time: datetime
    unrealized_pnl: float = 0.0


class ExecutionLogEntry(StrictModel):
    id: str = Field(default_factory=lambda: new_id("exec"))
    timestamp: datetime
    symbol: str
    kind: ExecutionType
    size_usd: float = 0.0
    reason: str
    risk_check_note: str


# ── Configuration ──────────────────────────────────────────────────────────

class ScoringConfig(StrictModel):
    volume_weight: float = Field(default=0.35, ge=0.0)
    momentum_weight: float = Field(default=0.30, ge=0.0)
    liquidity_weight: float = Field(default=0.20, ge=0.0)
    volatility_weight: float = Field(default=0.15, ge=0.0)
    min_liquidity: float = Field(default=50_000.0, ge=0.0)


class RiskConfig(StrictModel):
    max_open_positions: int = Field(default=3, ge=1)
    base_position_size: float = Field(default=1_000.0, gt=0.0)
    max_portfolio_risk: float = Field(default=5_000.0, ge=0.0)
    cooldown_seconds: float = Field(default=60.0, ge=0.0)
    volatility_kill_switch: float = Field(default=90.0, ge=0.0, le=100.0)


class SystemConfig(StrictModel):
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    risk: RiskConfig = Field(default_factory=RiskConfig)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> SystemConfig:
        """Build the runtime config from environment-backed settings."""
        settings = settings or get_settings()
        return cls(
            scoring=ScoringConfig(
                volume_weight=settings.volume_weight,
                momentum_weight=settings.momentum_weight,
                liquidity_weight=settings.liquidity_weight,
                volatility_weight=settings.volatility_weight,
                min_liquidity=settings.min_liquidity,
            ),
            risk=RiskConfig(
                max_open_positions=settings.max_open_positions,
                base_position_size=settings.base_position_size,
                max_portfolio_risk=settings.max_portfolio_risk,
                cooldown_seconds=settings.cooldown_seconds,
                volatility_kill_switch=settings.volatility_kill_switch,
            ),
        )


# ── Observability ──────────────────────────────────────────────────────────

class SystemMetric(StrictModel):
    timestamp: datetime
    latency_ms: float
    error_rate: float  # % of rejected executions in the recent log window
    signal_accuracy: float  # 0-100 %
    active_modules: int = 5


class SystemAlert(StrictModel):
    id: str = Field(default_factory=lambda: new_id("alert"))
    timestamp: datetime
    severity: AlertSeverity
    module: str
    message: str


class OptimizationEvent(StrictModel):
    id: str = Field(default_factory=lambda: new_id("opt"))
    timestamp: datetime
    target_module: TargetModule
    parameter: str
    old_value: float
    new_value: float
    reason: str


# ── Validation harness ─────────────────────────────────────────────────────

class SimulationTrade(StrictModel):
    id: str
    symbol: str
    entry_time: datetime
    exit_time: datetime
    entry_price: float
    exit_price: float
    market_state: MarketState
    confidence: SignalConfidence
    outcome: TradeOutcome
    percent_change: float


class ValidationMetric(StrictModel):
    category: str  # e.g. "State: MOMENTUM" or "Conf: HIGH"
    dimension: str  # "state" or "confidence"
    value: str
    total_signals: int
    accuracy: float  # % of WIN outcomes
    avg_return: float  # mean % change
    noise_ratio: float  # % of NEUTRAL outcomes


class ValidationInsight(StrictModel):
    type: InsightType
    message: str
    actionable_item: str | None = None


# ── Narrative collaborator ─────────────────────────────────────────────────

class AnalysisReport(StrictModel):
    asset_id: str
    timestamp: datetime
    risk_level: RiskLevel
    summary: str
    key_factors: list[str] = Field(default_factory=list)
