"""
Shared pytest fixtures for unit tests.

This module provides reusable test fixtures including:
- Deterministic synthetic price histories (ITX.MC, MSFT)
- The two-lot scenario portfolio (one closed lot, one open lot)
- Standard option specs
"""

import sys
from pathlib import Path
from datetime import date

import pandas as pd
import pytest

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.core.models import Lot, OptionForm, OptionSpec, Portfolio
from src.data.price_db import PriceDB

from tests.helpers import make_price_frame


# =============================================================================
# Price Fixtures
# =============================================================================

@pytest.fixture
def scenario_price_frame() -> pd.DataFrame:
    """
    ITX.MC closes 2020-01-01..2020-12-31 and MSFT closes 2020-09-01..2021-03-31.

    Synthetic, deterministic and gap-free on business days.
    """
    return pd.concat([
        make_price_frame('ITX.MC', '2020-01-01', '2020-12-31', 31.0, 28.0),
        make_price_frame('MSFT', '2020-09-01', '2021-03-31', 200.0, 235.0),
    ], ignore_index=True)


@pytest.fixture
def scenario_price_db(scenario_price_frame) -> PriceDB:
    """PriceDB over the scenario closes"""
    return PriceDB(scenario_price_frame)


# =============================================================================
# Portfolio Fixtures
# =============================================================================

@pytest.fixture
def itx_closed_lot() -> Lot:
    """ITX.MC bought 2020-01-01 @31.7, sold 2020-12-14 @27.02, 30 shares"""
    return Lot(
        ticker='ITX.MC',
        buy_date=date(2020, 1, 1),
        buy_price=31.7,
        quantity=30,
        sell_date=date(2020, 12, 14),
        sell_price=27.02
    )


@pytest.fixture
def msft_open_lot() -> Lot:
    """MSFT bought 2020-09-21 @198.3, 15 shares, still held"""
    return Lot(ticker='MSFT', buy_date=date(2020, 9, 21), buy_price=198.3, quantity=15)


@pytest.fixture
def scenario_portfolio(itx_closed_lot, msft_open_lot) -> Portfolio:
    return Portfolio((itx_closed_lot, msft_open_lot))


@pytest.fixture
def scenario_as_of() -> date:
    """Valuation horizon for the open MSFT lot"""
    return date(2021, 3, 31)


# =============================================================================
# Option Fixtures
# =============================================================================

@pytest.fixture
def call_spec() -> OptionSpec:
    """OTM call: S=15, K=18, T=1, sigma=0.35, r=0.03"""
    return OptionSpec(
        form=OptionForm.CALL,
        underlying=15.0,
        strike=18.0,
        maturity=1.0,
        volatility=0.35,
        risk_free_rate=0.03
    )


@pytest.fixture
def put_spec(call_spec) -> OptionSpec:
    """Put with the same parameters as call_spec"""
    return OptionSpec(
        form=OptionForm.PUT,
        underlying=call_spec.underlying,
        strike=call_spec.strike,
        maturity=call_spec.maturity,
        volatility=call_spec.volatility,
        risk_free_rate=call_spec.risk_free_rate
    )
