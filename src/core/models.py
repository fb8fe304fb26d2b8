"""
Core data models for portfolio returns and option valuation.

This module defines immutable data structures for:
- PricePoint: Single split-adjusted close for one date
- Lot: One buy (and optional sell) transaction of a security
- Portfolio: Ordered collection of lots as supplied by the caller
- ReturnSeries: Chronological (date, value) series for a lot or a portfolio
- OptionSpec: Parameters of a European call/put
- ValuationResult / SimulationResult / KellyResult: engine outputs

All models are frozen and validated on construction, so an instance that
exists is always in-domain. Validation failures raise InvalidParameter.
"""

import math
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Iterator, Optional, Tuple

import pandas as pd

from src.core.errors import InvalidParameter


def _finite_float(name: str, value) -> float:
    """Coerce a numeric field to float, rejecting bools, NaN and infinities."""
    if isinstance(value, bool):
        raise InvalidParameter(f"{name} must be a number, got {value!r}")
    try:
        result = float(value)
    except (TypeError, ValueError):
        raise InvalidParameter(f"{name} must be a number, got {value!r}") from None
    if not math.isfinite(result):
        raise InvalidParameter(f"{name} must be finite, got {value!r}")
    return result


class OptionForm(Enum):
    """European option payoff type"""
    CALL = "Call"
    PUT = "Put"


class ReturnUnit(Enum):
    """How values in a ReturnSeries are expressed"""
    RATIO = "ratio"       # 1.0 = breakeven
    PERCENT = "percent"   # 0.0 = breakeven


@dataclass(frozen=True)
class PricePoint:
    """Split-adjusted closing price of a security on one calendar date."""
    date: date
    price: float

    def __post_init__(self):
        if not isinstance(self.date, date):
            raise InvalidParameter(f"PricePoint.date must be a date, got {self.date!r}")
        price = _finite_float('price', self.price)
        if price <= 0:
            raise InvalidParameter(f"price must be > 0, got {price}")
        object.__setattr__(self, 'price', price)


@dataclass(frozen=True)
class Lot:
    """
    One buy and optional sell of a security.

    Prices are split-adjusted and expressed in the same currency as the price
    series. An open lot (no sell) is marked to market at the last available
    price of its series.

    quantity only weights the lot inside a portfolio; it never enters the
    lot's own return ratio.
    """
    ticker: str                          # Security identifier
    buy_date: date                       # Entry date
    buy_price: float                     # Entry price
    quantity: int                        # Number of shares
    sell_date: Optional[date] = None     # Exit date (None while open)
    sell_price: Optional[float] = None   # Exit price, required iff sell_date set

    def __post_init__(self):
        """Validate lot fields"""
        if not isinstance(self.ticker, str) or not self.ticker.strip():
            raise InvalidParameter(f"ticker must be a non-empty string, got {self.ticker!r}")
        if not isinstance(self.buy_date, date):
            raise InvalidParameter(f"buy_date must be a date, got {self.buy_date!r}")

        buy_price = _finite_float('buy_price', self.buy_price)
        if buy_price <= 0:
            raise InvalidParameter(f"buy_price must be > 0, got {buy_price}")
        object.__setattr__(self, 'buy_price', buy_price)

        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int) or self.quantity < 1:
            raise InvalidParameter(f"quantity must be a positive integer, got {self.quantity!r}")

        if (self.sell_date is None) != (self.sell_price is None):
            raise InvalidParameter(
                f"{self.ticker}: sell_date and sell_price must be given together"
            )
        if self.sell_date is not None:
            if not isinstance(self.sell_date, date):
                raise InvalidParameter(f"sell_date must be a date, got {self.sell_date!r}")
            if self.sell_date <= self.buy_date:
                raise InvalidParameter(
                    f"{self.ticker}: sell_date {self.sell_date} must be after buy_date {self.buy_date}"
                )
            sell_price = _finite_float('sell_price', self.sell_price)
            if sell_price <= 0:
                raise InvalidParameter(f"sell_price must be > 0, got {sell_price}")
            object.__setattr__(self, 'sell_price', sell_price)

    @property
    def is_open(self) -> bool:
        """True if the lot has not been sold"""
        return self.sell_date is None

    @property
    def invested_capital(self) -> float:
        """Capital committed at entry (buy_price * quantity)"""
        return self.buy_price * self.quantity


@dataclass(frozen=True)
class Portfolio:
    """Lots in caller order. Order does not affect any computation."""
    lots: Tuple[Lot, ...]

    def __post_init__(self):
        lots = tuple(self.lots)
        if not lots:
            raise InvalidParameter("Portfolio must contain at least one lot")
        for lot in lots:
            if not isinstance(lot, Lot):
                raise InvalidParameter(f"Portfolio entries must be Lot, got {type(lot).__name__}")
        object.__setattr__(self, 'lots', lots)

    def __len__(self) -> int:
        return len(self.lots)

    def __iter__(self) -> Iterator[Lot]:
        return iter(self.lots)

    @property
    def tickers(self) -> list[str]:
        """Distinct tickers in first-seen order"""
        return list(dict.fromkeys(lot.ticker for lot in self.lots))


@dataclass(frozen=True)
class ReturnSeries:
    """
    Chronological return series.

    A lot series holds ratios to the buy price (1.0 = breakeven). A portfolio
    series holds cumulative percentage change since inception (0.0 =
    breakeven). Dates are strictly ascending.
    """
    points: Tuple[Tuple[date, float], ...]
    unit: ReturnUnit = ReturnUnit.RATIO

    def __post_init__(self):
        points = tuple((d, float(v)) for d, v in self.points)
        for (prev, _), (curr, _) in zip(points, points[1:]):
            if curr <= prev:
                raise InvalidParameter(f"ReturnSeries dates must be strictly ascending ({prev} -> {curr})")
        object.__setattr__(self, 'points', points)

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self):
        return iter(self.points)

    @property
    def dates(self) -> list[date]:
        return [d for d, _ in self.points]

    @property
    def values(self) -> list[float]:
        return [v for _, v in self.points]

    @property
    def first_date(self) -> date:
        return self.points[0][0]

    @property
    def last_date(self) -> date:
        return self.points[-1][0]

    def value_on(self, on: date) -> Optional[float]:
        """Value on a date, or None if the date is not in the series"""
        for d, v in self.points:
            if d == on:
                return v
        return None

    def to_series(self) -> pd.Series:
        """Convert to a float Series indexed by Timestamp"""
        index = pd.DatetimeIndex([pd.Timestamp(d) for d in self.dates], name='date')
        return pd.Series(self.values, index=index, dtype=float, name=self.unit.value)

    def to_dict(self) -> dict[str, float]:
        """ISO date -> value, in chronological order"""
        return {d.isoformat(): v for d, v in self.points}


@dataclass(frozen=True)
class OptionSpec:
    """
    European option parameters.

    maturity, volatility and risk_free_rate share a caller-defined time base
    (e.g. years with annualised rates). No unit conversion is performed.
    """
    form: OptionForm
    underlying: float
    strike: float
    maturity: float
    volatility: float
    risk_free_rate: float
    market_price: Optional[float] = None

    def __post_init__(self):
        """Validate option parameters"""
        if not isinstance(self.form, OptionForm):
            raise InvalidParameter(f"form must be an OptionForm, got {self.form!r}")
        for name in ('underlying', 'strike', 'maturity', 'volatility', 'risk_free_rate'):
            object.__setattr__(self, name, _finite_float(name, getattr(self, name)))
        if self.underlying <= 0:
            raise InvalidParameter(f"underlying must be > 0, got {self.underlying}")
        if self.strike <= 0:
            raise InvalidParameter(f"strike must be > 0, got {self.strike}")
        if self.maturity <= 0:
            raise InvalidParameter(f"maturity must be > 0, got {self.maturity}")
        if self.volatility < 0:
            raise InvalidParameter(f"volatility must be >= 0, got {self.volatility}")
        if self.market_price is not None:
            object.__setattr__(self, 'market_price', _finite_float('market_price', self.market_price))

    @property
    def discount_factor(self) -> float:
        """Continuously compounded discount factor e^(-rT)"""
        return math.exp(-self.risk_free_rate * self.maturity)

    @property
    def is_call(self) -> bool:
        return self.form is OptionForm.CALL


@dataclass(frozen=True)
class ValuationResult:
    """Analytic option value"""
    theoretical_price: float


@dataclass(frozen=True)
class SimulationResult:
    """Monte Carlo option value with its sampling precision"""
    theoretical_price: float
    standard_error: float
    path_count: int


@dataclass(frozen=True)
class KellyResult:
    """
    Kelly sizing under the binary-outcome approximation.

    optimal_fraction is signed: positive means allocate that share of the
    bankroll to buying the option, negative means the option is overpriced.
    """
    optimal_fraction: float
    edge: float
    win_probability: float
    odds: float
