"""Portfolio return engine: orchestrates fetch -> per-lot returns -> aggregation

The engine is the only place in the return path that talks to the price
source. Each ticker is fetched once over the widest range any of its lots
needs; every lot is then valued from that series.

Example usage:
    price_db = PriceDB.load('cache/closes.csv')
    engine = PortfolioReturnEngine(fetcher=price_db)
    portfolio = Portfolio((
        Lot('ITX.MC', date(2020, 1, 1), 31.7, 30, date(2020, 12, 14), 27.02),
        Lot('MSFT', date(2020, 9, 21), 198.3, 15),
    ))
    returns = engine.compute(portfolio)
    print(returns.to_series().tail())
"""

import logging
from datetime import date
from typing import Dict, List, Optional, Tuple

from src.core.models import Lot, Portfolio, PricePoint, ReturnSeries
from src.data.base import IPriceFetcher, check_series_contract
from src.returns.aggregator import PortfolioAggregator
from src.returns.lot_calculator import LotReturnCalculator

logger = logging.getLogger(__name__)


class PortfolioReturnEngine:
    """
    Compute the amount-independent return series of a portfolio.

    Args:
        fetcher: Price source implementing IPriceFetcher
        calculator: Lot return calculator (default LotReturnCalculator())
        aggregator: Portfolio aggregator (default PortfolioAggregator())
        as_of: Valuation date used as the fetch horizon for open lots
            (default: today at call time)
    """

    def __init__(
        self,
        fetcher: IPriceFetcher,
        calculator: Optional[LotReturnCalculator] = None,
        aggregator: Optional[PortfolioAggregator] = None,
        as_of: Optional[date] = None
    ):
        self.fetcher = fetcher
        self.calculator = calculator or LotReturnCalculator()
        self.aggregator = aggregator or PortfolioAggregator()
        self.as_of = as_of

    def _fetch_ranges(self, portfolio: Portfolio, as_of: date) -> Dict[str, Tuple[date, date]]:
        """Widest [start, end] range per ticker across its lots"""
        ranges: Dict[str, Tuple[date, date]] = {}
        for lot in portfolio:
            end = lot.sell_date if lot.sell_date is not None else as_of
            if lot.ticker in ranges:
                start0, end0 = ranges[lot.ticker]
                ranges[lot.ticker] = (min(start0, lot.buy_date), max(end0, end))
            else:
                ranges[lot.ticker] = (lot.buy_date, end)
        return ranges

    def fetch_prices(self, portfolio: Portfolio) -> Dict[str, List[PricePoint]]:
        """
        Fetch one price series per distinct ticker.

        Raises:
            FetchError: Propagated unchanged from the fetcher
        """
        as_of = self.as_of or date.today()
        prices = {}
        for ticker, (start, end) in self._fetch_ranges(portfolio, as_of).items():
            logger.info(f"Fetching {ticker} from {start} to {end}")
            series = list(self.fetcher.fetch(ticker, start, end))
            check_series_contract(ticker, series)
            prices[ticker] = series
        return prices

    def lot_returns(self, portfolio: Portfolio) -> List[Tuple[Lot, ReturnSeries]]:
        """Per-lot ratio series, in portfolio order"""
        prices = self.fetch_prices(portfolio)
        return [(lot, self.calculator.calculate(lot, prices[lot.ticker])) for lot in portfolio]

    def compute(self, portfolio: Portfolio) -> ReturnSeries:
        """
        Portfolio return series as cumulative percent since inception.

        Raises:
            FetchError: Price source failure
            MissingPriceData: A lot's buy or end date has no close
            NoActiveLots: Calendar alignment left a date empty
        """
        per_lot = self.lot_returns(portfolio)
        return self.aggregator.aggregate(
            [series for _, series in per_lot],
            [lot.invested_capital for lot, _ in per_lot],
            labels=[lot.ticker for lot, _ in per_lot]
        )
