"""
Boundary conversion between JSON-shaped dicts and value objects.

Requests are validated here, once, before any domain logic runs. Shapes:

Portfolio:
    {"portfolio": [
        {"ticker": "MSFT",
         "buy": {"date": {"year": 2020, "month": 9, "day": 21}, "price": 198.3},
         "sell": null,
         "quantity": 15}
    ]}

Dates may also be ISO strings ("2020-09-21").

Option:
    {"form": "Call", "underlying": 15, "strike": 18, "maturity": 1,
     "volatility": 0.35, "rfr": 0.03, "market_price": 1.13}

"risk_free_rate" is accepted as an alias of "rfr".
"""

from datetime import date, datetime
from typing import Any, Dict, Mapping

from dateutil import parser as date_parser

from src.core.errors import InvalidParameter
from src.core.models import (
    KellyResult,
    Lot,
    OptionForm,
    OptionSpec,
    Portfolio,
    ReturnSeries,
    SimulationResult,
    ValuationResult,
)


def parse_date(value: Any) -> date:
    """Accept a date, an ISO string, or a {year, month, day} mapping"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, Mapping):
        try:
            return date(int(value['year']), int(value['month']), int(value['day']))
        except KeyError as exc:
            raise InvalidParameter(f"date object missing {exc.args[0]!r}: {dict(value)}") from None
        except (TypeError, ValueError) as exc:
            raise InvalidParameter(f"invalid date {dict(value)}: {exc}") from None
    if isinstance(value, str):
        try:
            return date_parser.isoparse(value).date()
        except ValueError as exc:
            raise InvalidParameter(f"invalid ISO date {value!r}: {exc}") from None
    raise InvalidParameter(f"cannot interpret {value!r} as a date")


def _transaction(raw: Any, what: str) -> tuple[date, Any]:
    if not isinstance(raw, Mapping) or 'date' not in raw or 'price' not in raw:
        raise InvalidParameter(f"{what} must be an object with 'date' and 'price'")
    return parse_date(raw['date']), raw['price']


def lot_from_dict(raw: Mapping[str, Any]) -> Lot:
    """Build a Lot from its JSON form"""
    if not isinstance(raw, Mapping):
        raise InvalidParameter(f"lot must be an object, got {type(raw).__name__}")
    for key in ('ticker', 'buy', 'quantity'):
        if key not in raw:
            raise InvalidParameter(f"lot missing {key!r}")

    buy_date, buy_price = _transaction(raw['buy'], 'buy')
    sell_date = sell_price = None
    if raw.get('sell') is not None:
        sell_date, sell_price = _transaction(raw['sell'], 'sell')

    return Lot(
        ticker=raw['ticker'],
        buy_date=buy_date,
        buy_price=buy_price,
        quantity=raw['quantity'],
        sell_date=sell_date,
        sell_price=sell_price
    )


def portfolio_from_dict(raw: Mapping[str, Any]) -> Portfolio:
    """Build a Portfolio from {"portfolio": [lot, ...]}"""
    if not isinstance(raw, Mapping) or not isinstance(raw.get('portfolio'), list):
        raise InvalidParameter("request must be an object with a 'portfolio' list")
    return Portfolio(tuple(lot_from_dict(item) for item in raw['portfolio']))


def option_from_dict(raw: Mapping[str, Any]) -> OptionSpec:
    """Build an OptionSpec from its JSON form"""
    if not isinstance(raw, Mapping):
        raise InvalidParameter(f"option must be an object, got {type(raw).__name__}")

    form_raw = raw.get('form')
    forms = {f.value.lower(): f for f in OptionForm}
    if not isinstance(form_raw, str) or form_raw.lower() not in forms:
        raise InvalidParameter(f"form must be 'Call' or 'Put', got {form_raw!r}")

    rate = raw.get('rfr', raw.get('risk_free_rate'))
    missing = [k for k in ('underlying', 'strike', 'maturity', 'volatility') if k not in raw]
    if rate is None:
        missing.append('rfr')
    if missing:
        raise InvalidParameter(f"option missing fields: {missing}")

    return OptionSpec(
        form=forms[form_raw.lower()],
        underlying=raw['underlying'],
        strike=raw['strike'],
        maturity=raw['maturity'],
        volatility=raw['volatility'],
        risk_free_rate=rate,
        market_price=raw.get('market_price')
    )


def result_to_dict(result) -> Dict[str, Any]:
    """Serialise an engine result to a JSON-ready dict"""
    if isinstance(result, ReturnSeries):
        return result.to_dict()
    if isinstance(result, SimulationResult):
        return {
            'price': result.theoretical_price,
            'standard_error': result.standard_error,
            'path_count': result.path_count
        }
    if isinstance(result, ValuationResult):
        return {'price': result.theoretical_price}
    if isinstance(result, KellyResult):
        return {
            'kelly_fraction': result.optimal_fraction,
            'edge': result.edge,
            'win_probability': result.win_probability,
            'odds': result.odds
        }
    raise TypeError(f"Unsupported result type: {type(result).__name__}")
