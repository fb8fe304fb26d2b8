"""Option valuation and bet sizing"""

from src.options.black_scholes import BlackScholesEngine
from src.options.kelly import KellySizer
from src.options.monte_carlo import MonteCarloEngine

__all__ = ['BlackScholesEngine', 'KellySizer', 'MonteCarloEngine']
