"""
The four request-scoped operations exposed to a request layer.

Each takes a validated value object and returns a result object or raises a
ModusError subclass. Nothing is shared between calls apart from the
collaborators passed in, and the only side effect is the price fetch.
"""

import logging
from datetime import date
from typing import Optional

from src.core.models import (
    KellyResult,
    OptionSpec,
    Portfolio,
    ReturnSeries,
    SimulationResult,
    ValuationResult,
)
from src.data.base import IPriceFetcher
from src.options.black_scholes import BlackScholesEngine
from src.options.kelly import KellySizer
from src.options.monte_carlo import MonteCarloEngine, SeedLike
from src.returns.aggregator import PortfolioAggregator
from src.returns.engine import PortfolioReturnEngine

logger = logging.getLogger(__name__)


def compute_portfolio_returns(
    portfolio: Portfolio,
    fetcher: IPriceFetcher,
    aggregator: Optional[PortfolioAggregator] = None,
    as_of: Optional[date] = None
) -> ReturnSeries:
    """Cumulative percent return series of a portfolio"""
    logger.info(f"Computing returns for {len(portfolio)} lots ({', '.join(portfolio.tickers)})")
    engine = PortfolioReturnEngine(fetcher=fetcher, aggregator=aggregator, as_of=as_of)
    return engine.compute(portfolio)


def compute_analytic_value(spec: OptionSpec) -> ValuationResult:
    """Black-Scholes value"""
    return BlackScholesEngine().value(spec)


def compute_kelly_sizing(spec: OptionSpec) -> KellyResult:
    """Experimental Kelly fraction; spec.market_price is required"""
    return KellySizer().size(spec)


def compute_monte_carlo_value(
    spec: OptionSpec,
    path_count: Optional[int] = None,
    seed: SeedLike = None,
    engine: Optional[MonteCarloEngine] = None
) -> SimulationResult:
    """Monte Carlo value and standard error"""
    engine = engine or MonteCarloEngine()
    return engine.value(spec, path_count=path_count, seed=seed)
