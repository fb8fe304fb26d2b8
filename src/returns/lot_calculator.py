"""
Lot return calculator: one lot + its price series -> daily return ratios.

Each day's value is the ratio of that day's price to the lot's buy price, so
the series is independent of the amount invested. quantity is not used here;
it only weights the lot later in the portfolio aggregator.

Pricing rules over [buy_date, effective_end_date]:
- first quote on or after buy_date: exactly 1.0 (the position is entered at
  buy_price; a lot bought on a holiday or weekend starts at the next session)
- days in between: close / buy_price
- sell_date: sell_price / buy_price (the realised exit, not the close). This
  wins over the baseline when the sell date is the first session held.
- open lot: effective_end_date is the last date in the series and its close
  is used (mark-to-market)

A lot with no quote at all inside its interval, or a closed lot with no
close on its sell date, is surfaced as MissingPriceData, never interpolated.

Example:
    >>> calculator = LotReturnCalculator()
    >>> lot = Lot('MSFT', date(2020, 9, 21), 198.3, quantity=15)
    >>> series = calculator.calculate(lot, price_points)
    >>> series.points[0]
    (datetime.date(2020, 9, 21), 1.0)
"""

import logging
from datetime import date
from typing import Sequence

from src.core.errors import MissingPriceData
from src.core.models import Lot, PricePoint, ReturnSeries, ReturnUnit
from src.data.base import check_series_contract

logger = logging.getLogger(__name__)


class LotReturnCalculator:
    """Pure function object: Lot + PricePoint series -> ReturnSeries (ratio)."""

    def effective_end_date(self, lot: Lot, series: Sequence[PricePoint]) -> date:
        """
        Last date the lot contributes: sell_date, or the last series date for
        an open lot.

        Raises:
            MissingPriceData: If an open lot's series is empty
        """
        if lot.sell_date is not None:
            return lot.sell_date
        if not series:
            raise MissingPriceData(lot.ticker, lot.buy_date, "empty price series for open lot")
        return series[-1].date

    def calculate(self, lot: Lot, series: Sequence[PricePoint]) -> ReturnSeries:
        """
        Compute the lot's daily return ratios.

        Args:
            lot: Lot to value
            series: Ascending PricePoint series covering at least
                [buy_date, effective_end_date]; points outside are ignored

        Returns:
            ReturnSeries in RATIO unit, first point (first session >= buy_date, 1.0)

        Raises:
            MissingPriceData: If no close exists in [buy_date, effective end]
                or at the sell date
            FetchError: If the series is not strictly ascending
        """
        check_series_contract(lot.ticker, series)
        end_date = self.effective_end_date(lot, series)

        window = [p for p in series if lot.buy_date <= p.date <= end_date]
        if not window:
            raise MissingPriceData(lot.ticker, lot.buy_date, "no quote on or after buy date")
        if window[-1].date != end_date:
            raise MissingPriceData(lot.ticker, end_date, "sell date" if lot.sell_date else "valuation date")
        if window[0].date != lot.buy_date:
            logger.debug(f"{lot.ticker}: no session on {lot.buy_date}, baseline at {window[0].date}")

        points = []
        for i, point in enumerate(window):
            if point.date == lot.sell_date:
                ratio = lot.sell_price / lot.buy_price
            elif i == 0:
                ratio = 1.0
            else:
                ratio = point.price / lot.buy_price
            points.append((point.date, ratio))

        logger.debug(
            f"{lot.ticker}: {len(points)} daily returns {lot.buy_date} -> {end_date}, "
            f"final ratio {points[-1][1]:.4f}"
        )
        return ReturnSeries(tuple(points), ReturnUnit.RATIO)
