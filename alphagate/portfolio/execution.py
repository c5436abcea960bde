"""Execution cycle: applies the Risk Governor to a classified batch.

One cycle:
  1. Exits first: every held position whose asset is in the batch is checked
     with evaluate_exit. Risk reduction always precedes new exposure.
  2. Entries: unheld assets ranked by score (stable for ties) are checked
     with evaluate_entry against the post-exit portfolio. The first approval
     is committed and the scan stops, so at most one entry per cycle.
     Rejections are logged only for candidates scoring above 80.

Inputs are never mutated; the new portfolio and log entries are returned.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

from alphagate.contracts import (
    ClassifiedAsset,
    ExecutionLogEntry,
    ExecutionType,
    Position,
    RiskConfig,
    new_id,
    utc_now,
)
from alphagate.portfolio.risk_governor import evaluate_entry, evaluate_exit

logger = logging.getLogger(__name__)

REJECTION_LOG_MIN_SCORE = 80
EXIT_RISK_NOTE = "PASS: Exit condition met"


@dataclass(frozen=True)
class ClosedTrade:
    """A position closed this cycle together with its realized result."""

    position: Position
    exit_price: float

    @property
    def pnl_pct(self) -> float:
        if self.position.entry_price <= 0:
            return 0.0
        return (self.exit_price - self.position.entry_price) / self.position.entry_price * 100

    @property
    def is_win(self) -> bool:
        return self.pnl_pct > 0


@dataclass(frozen=True)
class ExecutionResult:
    portfolio: tuple[Position, ...]
    logs: tuple[ExecutionLogEntry, ...]
    closed: tuple[ClosedTrade, ...] = field(default_factory=tuple)

    @property
    def acted(self) -> bool:
        """True if an ENTRY or EXIT was committed (rejections don't count)."""
        return any(log.kind is not ExecutionType.REJECTED for log in self.logs)


def process_execution_cycle(
    assets: Sequence[ClassifiedAsset],
    positions: Sequence[Position],
    last_action_time: datetime | None,
    config: RiskConfig,
    now: datetime | None = None,
) -> ExecutionResult:
    """Run the exit pass then the entry pass for one tick."""
    now = now or utc_now()
    by_id = {a.asset_id: a for a in assets}
    logs: list[ExecutionLogEntry] = []
    closed: list[ClosedTrade] = []
    portfolio: list[Position] = []

    # --- 1. Exits ---
    for position in positions:
        live = by_id.get(position.asset_id)
        if live is None:
            # Absent this tick: not reconsidered
            portfolio.append(position)
            continue

        decision = evaluate_exit(live, position)
        if not decision.allowed:
            portfolio.append(position)
            continue

        logs.append(ExecutionLogEntry(
            id=new_id("exec"),
            timestamp=now,
            symbol=position.symbol,
            kind=ExecutionType.EXIT,
            size_usd=position.size_usd,
            reason=decision.reason,
            risk_check_note=EXIT_RISK_NOTE,
        ))
        closed.append(ClosedTrade(position=position, exit_price=live.price))
        logger.info(
            "EXIT %s $%.0f @ %.8g: %s", position.symbol, position.size_usd, live.price,
            decision.reason,
        )

    # --- 2. Entries (best signal first, at most one) ---
    held = {p.asset_id for p in portfolio}
    candidates = sorted(
        (a for a in assets if a.asset_id not in held),
        key=lambda a: a.momentum_score,
        reverse=True,
    )

    for candidate in candidates:
        decision = evaluate_entry(candidate, portfolio, last_action_time, config, now)

        if decision.allowed:
            logs.append(ExecutionLogEntry(
                id=new_id("exec"),
                timestamp=now,
                symbol=candidate.symbol,
                kind=ExecutionType.ENTRY,
                size_usd=decision.size_usd,
                reason=candidate.classification.trigger,
                risk_check_note=decision.reason,
            ))
            portfolio.append(Position(
                asset_id=candidate.asset_id,
                symbol=candidate.symbol,
                entry_price=candidate.price,
                size_usd=decision.size_usd,
                entry_time=now,
                unrealized_pnl=0.0,
            ))
            logger.info(
                "ENTRY %s $%.0f @ %.8g: %s", candidate.symbol, decision.size_usd,
                candidate.price, decision.reason,
            )
            break

        logger.debug("Rejected %s: %s", candidate.symbol, decision.reason)
        if candidate.momentum_score > REJECTION_LOG_MIN_SCORE:
            logs.append(ExecutionLogEntry(
                id=new_id("rej"),
                timestamp=now,
                symbol=candidate.symbol,
                kind=ExecutionType.REJECTED,
                size_usd=0.0,
                reason=candidate.classification.trigger,
                risk_check_note=decision.reason,
            ))

    return ExecutionResult(
        portfolio=tuple(portfolio),
        logs=tuple(logs),
        closed=tuple(closed),
    )


def refresh_unrealized_pnl(
    positions: Sequence[Position],
    assets: Sequence[ClassifiedAsset],
) -> tuple[Position, ...]:
    """Mark every held position to the latest price; absent assets stay stale."""
    prices = {a.asset_id: a.price for a in assets}
    refreshed = []
    for pos in positions:
        price = prices.get(pos.asset_id)
        if price is None or pos.entry_price <= 0:
            refreshed.append(pos)
            continue
        pnl = pos.size_usd * (price - pos.entry_price) / pos.entry_price
        refreshed.append(pos.model_copy(update={"unrealized_pnl": pnl}))
    return tuple(refreshed)
