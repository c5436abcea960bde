"""Portfolio layer: risk gates, execution cycle and mark-to-market."""

from alphagate.portfolio.execution import (
    ClosedTrade,
    ExecutionResult,
    process_execution_cycle,
    refresh_unrealized_pnl,
)
from alphagate.portfolio.risk_governor import RiskDecision, evaluate_entry, evaluate_exit

__all__ = [
    "ClosedTrade",
    "ExecutionResult",
    "RiskDecision",
    "evaluate_entry",
    "evaluate_exit",
    "process_execution_cycle",
    "refresh_unrealized_pnl",
]
