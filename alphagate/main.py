"""Main entry point: runs the trading loop over the synthetic feed.

Usage:
    python -m alphagate.main --ticks 50 --seed 7
    python -m alphagate.main --ticks 0 --validate 500
    python -m alphagate.main --ticks 20 --narrate
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import time
from datetime import timedelta

import numpy as np

from alphagate.agents.narrator import generate_market_overview
from alphagate.backtest.validation_harness import run_validation
from alphagate.config import Settings, get_settings
from alphagate.contracts import utc_now
from alphagate.data.mock_feed import advance_market, generate_market_snapshot
from alphagate.pipeline import TradingLoop

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"

logger = logging.getLogger(__name__)


class JsonLogFormatter(logging.Formatter):
    """One JSON object per line, for log drains."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record),
            "logger": record.name,
            "level": record.levelname,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging(settings: Settings, level: int = logging.INFO) -> None:
    if settings.log_format == "json":
        handler = logging.StreamHandler()
        handler.setFormatter(JsonLogFormatter())
        logging.basicConfig(level=level, handlers=[handler], force=True)
    else:
        logging.basicConfig(level=level, format=LOG_FORMAT, force=True)


def run_simulation(
    ticks: int,
    seed: int | None = None,
    pause_seconds: float = 0.0,
    settings: Settings | None = None,
) -> TradingLoop:
    """Drive the loop over the synthetic feed on a simulated clock.

    The clock advances by `settings.tick_seconds` per cycle; `pause_seconds`
    is only a wall-clock sleep between cycles.
    """
    settings = settings or get_settings()
    rng = np.random.default_rng(seed)
    clock = utc_now()
    loop = TradingLoop(settings=settings, now=clock)
    batch = generate_market_snapshot(rng)
    step = timedelta(seconds=settings.tick_seconds)

    for _ in range(ticks):
        outcome = loop.step(batch, now=clock)
        if outcome.tuning.event is not None:
            ev = outcome.tuning.event
            logger.info("Config updated: %s %g → %g", ev.parameter, ev.old_value, ev.new_value)
        if pause_seconds > 0:
            time.sleep(pause_seconds)
        clock += step
        batch = advance_market(batch, rng)

    logger.info(
        "Simulation finished: %d cycles, %d open positions ($%.0f exposure, PnL $%.2f), "
        "%d log entries, %d optimizations",
        loop.cycles, len(loop.portfolio), loop.exposure_usd, loop.unrealized_pnl,
        len(loop.logs), len(loop.optimizations),
    )
    return loop


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Run the alphagate signal/risk/tuning loop")
    parser.add_argument("--ticks", type=int, default=30, help="Number of cycles to run")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the synthetic feed")
    parser.add_argument(
        "--pause-seconds", type=float, default=0.0,
        help="Wall-clock pause between cycles (0 = as fast as possible); "
             "the simulated clock always advances by TICK_SECONDS",
    )
    parser.add_argument(
        "--validate", type=int, default=0, metavar="N",
        help="Also run the validation harness over N synthetic trades",
    )
    parser.add_argument(
        "--narrate", action="store_true",
        help="Request a best-effort narrative overview of the final batch",
    )
    parser.add_argument("--verbose", action="store_true", help="DEBUG logging")
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings, logging.DEBUG if args.verbose else logging.INFO)

    loop = run_simulation(args.ticks, seed=args.seed, pause_seconds=args.pause_seconds, settings=settings)

    for asset in loop.assets[:5]:
        logger.info(
            "%-8s score=%3d %-12s %-6s %s",
            asset.symbol, asset.momentum_score, asset.state.value,
            asset.confidence.value, asset.explanation.summary,
        )

    if args.narrate and loop.assets:
        overview = asyncio.run(generate_market_overview(loop.assets, settings=settings))
        logger.info("Narrative: %s", overview)

    if args.validate > 0:
        report = run_validation(args.validate, rng=args.seed)
        for metric in report.metrics:
            logger.info(
                "%-22s n=%4d acc=%5.1f%% avg=%+6.2f%% noise=%5.1f%%",
                metric.category, metric.total_signals, metric.accuracy,
                metric.avg_return, metric.noise_ratio,
            )
        for insight in report.insights:
            logger.info("[%s] %s %s", insight.type.value, insight.message, insight.actionable_item or "")


if __name__ == "__main__":
    main()
