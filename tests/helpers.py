"""Helpers for building synthetic price data in tests."""

from typing import List

import numpy as np
import pandas as pd

from src.core.models import PricePoint


def make_price_frame(ticker: str, start: str, end: str, first: float, last: float) -> pd.DataFrame:
    """
    Business-day closes rising linearly from first to last.

    Returns:
        DataFrame with columns [date, ticker, close]
    """
    dates = pd.bdate_range(start, end)
    return pd.DataFrame({
        'date': dates,
        'ticker': ticker,
        'close': np.linspace(first, last, len(dates)),
    })


def make_series(prices: dict) -> List[PricePoint]:
    """{date: price} -> ascending PricePoint list"""
    return [PricePoint(d, p) for d, p in sorted(prices.items())]
