"""
Portfolio aggregator: capital-weighted combination of per-lot return series.

Given each lot's ratio series and its invested capital, produces one series
indexed by the union of all lot dates:

    value(d) = (sum_i w_i * r_i(d) / sum_i w_i - 1) * 100     over lots i active on d

where w_i = buy_price * quantity (fixed at entry, never rebalanced for
gains) and r_i(d) is the lot's ratio to its buy price. The output is the
cumulative percentage change since inception, so 0.0 means breakeven.

Calendar alignment:
- A lot is active on d when d lies in its half-open interval
  [first_date, last_date + 1 day). Intervals are resolved with searchsorted
  against the union calendar, one slice per lot, instead of scanning every
  day for every lot.
- Lots not yet bought or already sold on d have zero weight that day.
- An active lot with no quote of its own on d (its exchange was closed while
  another lot's traded) cannot be resolved and raises MissingPriceData.
- strict_calendar=False is an opt-in relaxation: the lot keeps its weight
  and its last quoted ratio is carried over the closed day (a flat day for
  that lot). The basket is never re-averaged without it.

Properties:
- Single-lot portfolio: output == lot ratios scaled to percent
- N equal-capital lots: output == arithmetic mean of their ratios, in percent
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from src.core.errors import InvalidParameter, MissingPriceData, NoActiveLots
from src.core.models import ReturnSeries, ReturnUnit

logger = logging.getLogger(__name__)


def weighted_percent(
    values: np.ndarray,
    active: np.ndarray,
    weights: np.ndarray,
    calendar: pd.DatetimeIndex
) -> np.ndarray:
    """
    Capital-weighted average ratio per date, as cumulative percent.

    Args:
        values: (dates x lots) ratios, NaN where a lot has no value
        active: (dates x lots) mask of lots contributing on each date
        weights: Capital per lot
        calendar: Dates labelling the rows

    Raises:
        NoActiveLots: If a row has no contributing lot
    """
    weight_sum = active.astype(float) @ weights
    empty = np.flatnonzero(weight_sum == 0)
    if empty.size:
        raise NoActiveLots(calendar[empty[0]].date())

    weighted = np.where(active, values, 0.0) @ weights
    return (weighted / weight_sum - 1.0) * 100.0


@dataclass
class PortfolioAggregator:
    """
    Combine lot ratio series into a portfolio percentage series.

    Attributes:
        strict_calendar: Raise MissingPriceData when an active lot has no
            quote on a portfolio date (default). False carries the lot's
            last ratio forward over that date instead.
    """
    strict_calendar: bool = True

    def aggregate(
        self,
        lot_series: Sequence[ReturnSeries],
        capitals: Sequence[float],
        labels: Optional[Sequence[str]] = None
    ) -> ReturnSeries:
        """
        Aggregate lot series into one portfolio ReturnSeries (PERCENT unit).

        Args:
            lot_series: One RATIO series per lot
            capitals: Invested capital per lot, same order as lot_series
            labels: Optional lot names (tickers) for error messages

        Returns:
            Portfolio ReturnSeries over the union of lot dates

        Raises:
            InvalidParameter: If inputs are empty, misaligned or not ratio series
            MissingPriceData: An active lot lacks a quote (strict_calendar)
            NoActiveLots: If a date has no contributing lot
        """
        if not lot_series:
            raise InvalidParameter("At least one lot series is required")
        if len(capitals) != len(lot_series):
            raise InvalidParameter(
                f"Got {len(lot_series)} series but {len(capitals)} capital weights"
            )
        labels = list(labels) if labels is not None else [f"lot_{i}" for i in range(len(lot_series))]
        for label, series in zip(labels, lot_series):
            if series.unit is not ReturnUnit.RATIO:
                raise InvalidParameter(f"{label}: expected a ratio series, got {series.unit.value}")
            if len(series) == 0:
                raise InvalidParameter(f"{label}: empty return series")

        weights = np.asarray(capitals, dtype=float)
        if not np.all(np.isfinite(weights)) or np.any(weights <= 0):
            raise InvalidParameter(f"Capital weights must be positive, got {list(capitals)}")

        # === ALIGN ON UNION CALENDAR ===
        frame = pd.concat(
            [s.to_series().rename(i) for i, s in enumerate(lot_series)],
            axis=1,
            sort=True
        )
        calendar = frame.index
        values = frame.to_numpy(dtype=float)
        quoted = ~np.isnan(values)

        # === ACTIVE INTERVALS ===
        active = np.zeros(values.shape, dtype=bool)
        for i, series in enumerate(lot_series):
            start = calendar.searchsorted(pd.Timestamp(series.first_date), side='left')
            stop = calendar.searchsorted(pd.Timestamp(series.last_date + timedelta(days=1)), side='left')
            active[start:stop, i] = True

        # === CLOSED-EXCHANGE DAYS ===
        closed = active & ~quoted
        if closed.any():
            row, col = np.argwhere(closed)[0]
            if self.strict_calendar:
                raise MissingPriceData(labels[col], calendar[row].date(), "active lot has no quote")
            logger.warning(
                f"{int(closed.sum())} lot-days without a quote carried at the previous ratio "
                f"(first: {labels[col]} on {calendar[row].date()})"
            )
            # every active interval opens on a quoted date, so the fill is never NaN
            values = np.where(closed, frame.ffill().to_numpy(dtype=float), values)

        # === WEIGHTED AVERAGE ===
        percent = weighted_percent(values, active, weights, calendar)

        logger.info(
            f"Aggregated {len(lot_series)} lots over {len(calendar)} dates "
            f"({calendar[0].date()} to {calendar[-1].date()})"
        )
        return ReturnSeries(
            tuple(zip((ts.date() for ts in calendar), percent.tolist())),
            ReturnUnit.PERCENT
        )
