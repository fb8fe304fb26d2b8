"""Portfolio return computation"""

from src.returns.aggregator import PortfolioAggregator
from src.returns.engine import PortfolioReturnEngine
from src.returns.lot_calculator import LotReturnCalculator

__all__ = ['LotReturnCalculator', 'PortfolioAggregator', 'PortfolioReturnEngine']
