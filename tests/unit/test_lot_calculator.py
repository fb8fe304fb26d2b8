"""
Unit tests for LotReturnCalculator.

Test Coverage:
- Ratio rules: buy date baseline, daily close ratio, realised sell price
- Open lots marked to market at the last series date
- Baseline at the first session on or after buy_date
- Missing sell/end closes and empty intervals raise MissingPriceData
- Series contract enforcement
"""

from datetime import date

import pytest

from src.core.errors import FetchError, MissingPriceData
from src.core.models import Lot, PricePoint, ReturnUnit
from src.returns.lot_calculator import LotReturnCalculator

from tests.helpers import make_series


@pytest.fixture
def calculator():
    return LotReturnCalculator()


@pytest.fixture
def week_series():
    """Five closes, 2020-01-06 (Mon) .. 2020-01-10 (Fri)"""
    return make_series({
        date(2020, 1, 6): 100.0,
        date(2020, 1, 7): 102.0,
        date(2020, 1, 8): 99.0,
        date(2020, 1, 9): 105.0,
        date(2020, 1, 10): 110.0,
    })


class TestLotReturnsHappyPath:

    def test_open_lot_marks_to_last_date(self, calculator, week_series):
        """
        Open lot bought at 98 on Monday.

        Monday is exactly 1.0 (entry at buy price, not the close), later days
        are close / 98, and the series ends at the last available date.
        """
        lot = Lot('ABC', date(2020, 1, 6), 98.0, quantity=10)

        series = calculator.calculate(lot, week_series)

        assert series.unit is ReturnUnit.RATIO
        assert series.dates == [date(2020, 1, d) for d in range(6, 11)]
        assert series.values[0] == 1.0
        assert series.values[1] == pytest.approx(102.0 / 98.0)
        assert series.values[-1] == pytest.approx(110.0 / 98.0)
        assert calculator.effective_end_date(lot, week_series) == date(2020, 1, 10)

    def test_closed_lot_uses_sell_price_and_stops(self, calculator, week_series):
        """No ratio after the sell date; the sell date uses the realised price"""
        lot = Lot('ABC', date(2020, 1, 6), 100.0, 5, sell_date=date(2020, 1, 8), sell_price=101.5)

        series = calculator.calculate(lot, week_series)

        assert series.dates == [date(2020, 1, 6), date(2020, 1, 7), date(2020, 1, 8)]
        assert series.values == pytest.approx([1.0, 1.02, 1.015])

    def test_points_before_buy_date_ignored(self, calculator, week_series):
        lot = Lot('ABC', date(2020, 1, 8), 99.0, 1)

        series = calculator.calculate(lot, week_series)

        assert series.first_date == date(2020, 1, 8)
        assert series.values[0] == 1.0
        assert len(series) == 3

    def test_quantity_does_not_change_ratios(self, calculator, week_series):
        small = Lot('ABC', date(2020, 1, 6), 98.0, 1)
        large = Lot('ABC', date(2020, 1, 6), 98.0, 10_000)

        assert calculator.calculate(small, week_series).values == \
            calculator.calculate(large, week_series).values

    def test_buy_on_last_available_date_gives_single_point(self, calculator, week_series):
        """Open lot bought on the last series date: one point at breakeven"""
        lot = Lot('ABC', date(2020, 1, 10), 111.0, 3)

        series = calculator.calculate(lot, week_series)

        assert series.points == ((date(2020, 1, 10), 1.0),)

    def test_buy_on_non_trading_day_starts_at_next_session(self, calculator):
        """
        New Year holiday purchase: no close on 2020-01-01.

        The baseline moves to the first session (Jan 2), the sell date still
        uses the realised price.
        """
        prices = make_series({
            date(2020, 1, 2): 31.9,
            date(2020, 1, 3): 31.5,
            date(2020, 12, 14): 27.3,
        })
        lot = Lot('ITX.MC', date(2020, 1, 1), 31.7, 30, sell_date=date(2020, 12, 14), sell_price=27.02)

        series = calculator.calculate(lot, prices)

        assert series.dates == [date(2020, 1, 2), date(2020, 1, 3), date(2020, 12, 14)]
        assert series.values == pytest.approx([1.0, 31.5 / 31.7, 27.02 / 31.7])

    def test_weekend_buy_on_open_lot(self, calculator, week_series):
        lot = Lot('ABC', date(2020, 1, 4), 98.0, 1)

        series = calculator.calculate(lot, week_series)

        assert series.first_date == date(2020, 1, 6)
        assert series.values[0] == 1.0
        assert series.values[1] == pytest.approx(102.0 / 98.0)

    def test_sell_on_first_session_keeps_realised_price(self, calculator, week_series):
        lot = Lot('ABC', date(2020, 1, 4), 98.0, 1, sell_date=date(2020, 1, 6), sell_price=99.0)

        series = calculator.calculate(lot, week_series)

        assert series.dates == [date(2020, 1, 6)]
        assert series.values == pytest.approx([99.0 / 98.0])


class TestLotReturnsMissingData:

    def test_no_quote_on_or_after_buy_date(self, calculator, week_series):
        """Open lot bought after the last available close"""
        lot = Lot('ABC', date(2020, 1, 11), 98.0, 1)

        with pytest.raises(MissingPriceData) as exc_info:
            calculator.calculate(lot, week_series)

        assert exc_info.value.missing_date == date(2020, 1, 11)
        assert exc_info.value.ticker == 'ABC'

    def test_no_quote_inside_closed_lot_interval(self, calculator, week_series):
        lot = Lot('ABC', date(2020, 1, 11), 98.0, 1, sell_date=date(2020, 1, 12), sell_price=99.0)

        with pytest.raises(MissingPriceData):
            calculator.calculate(lot, week_series)

    def test_missing_sell_date(self, calculator, week_series):
        lot = Lot('ABC', date(2020, 1, 6), 98.0, 1, sell_date=date(2020, 1, 11), sell_price=120.0)

        with pytest.raises(MissingPriceData) as exc_info:
            calculator.calculate(lot, week_series)

        assert exc_info.value.missing_date == date(2020, 1, 11)

    def test_gap_at_sell_date(self, calculator):
        series = make_series({date(2020, 1, 6): 100.0, date(2020, 1, 8): 101.0})
        lot = Lot('ABC', date(2020, 1, 6), 100.0, 1, sell_date=date(2020, 1, 7), sell_price=100.5)

        with pytest.raises(MissingPriceData):
            calculator.calculate(lot, series)

    def test_empty_series_for_open_lot(self, calculator):
        lot = Lot('ABC', date(2020, 1, 6), 100.0, 1)

        with pytest.raises(MissingPriceData):
            calculator.calculate(lot, [])

    def test_unordered_series_is_fetch_error(self, calculator):
        series = [PricePoint(date(2020, 1, 7), 101.0), PricePoint(date(2020, 1, 6), 100.0)]
        lot = Lot('ABC', date(2020, 1, 6), 100.0, 1)

        with pytest.raises(FetchError, match="ascending"):
            calculator.calculate(lot, series)
