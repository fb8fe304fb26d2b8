"""
Yahoo Finance price fetcher implementing IPriceFetcher.

Daily closes come from the yfinance library. With auto_adjust=False the
'Close' column is split-adjusted but not dividend-adjusted, which is what the
return engine expects.

WARNING: Yahoo Finance is an unofficial API and may rate limit or change
without notice. Failures surface as FetchError; nothing is retried here.

Usage:
    >>> fetcher = YahooPriceFetcher()
    >>> series = fetcher.fetch('MSFT', date(2020, 9, 21), date(2020, 12, 31))
"""

from datetime import date, timedelta
from typing import List
import logging
import time

import pandas as pd
import yfinance as yf

from src.core.errors import FetchError, InvalidParameter
from src.core.models import PricePoint
from src.data.base import check_series_contract

logger = logging.getLogger(__name__)


class YahooPriceFetcher:
    """Fetch split-adjusted daily closes from Yahoo Finance."""

    def __init__(self, rate_limit_delay: float = 0.2):
        """
        Args:
            rate_limit_delay: Minimum seconds between consecutive requests
        """
        self.rate_limit_delay = rate_limit_delay
        self._last_request_time = 0.0

    def _rate_limit(self):
        """Enforce spacing between requests."""
        elapsed = time.time() - self._last_request_time
        if elapsed < self.rate_limit_delay:
            time.sleep(self.rate_limit_delay - elapsed)
        self._last_request_time = time.time()

    def fetch(self, ticker: str, start_date: date, end_date: date) -> List[PricePoint]:
        """
        Fetch daily closes for ticker over [start_date, end_date].

        Raises:
            FetchError: On provider failure or a malformed response
        """
        self._rate_limit()

        try:
            # yfinance treats end as exclusive
            df = yf.Ticker(ticker).history(
                start=start_date.isoformat(),
                end=(end_date + timedelta(days=1)).isoformat(),
                interval='1d',
                auto_adjust=False,
                actions=False,
            )
        except Exception as exc:
            raise FetchError(ticker, f"Yahoo Finance request failed: {exc}") from exc

        if df is None or df.empty:
            logger.warning(f"No data from Yahoo Finance for {ticker} ({start_date} to {end_date})")
            return []
        if 'Close' not in df.columns:
            raise FetchError(ticker, f"response has no Close column (columns: {list(df.columns)})")

        closes = df['Close'].dropna()
        index = pd.to_datetime(closes.index)
        if index.tz is not None:
            index = index.tz_localize(None)

        try:
            series = [PricePoint(ts.date(), close) for ts, close in zip(index, closes.values)]
        except InvalidParameter as exc:
            raise FetchError(ticker, str(exc)) from exc

        check_series_contract(ticker, series)

        logger.debug(f"Fetched {len(series)} closes for {ticker} from Yahoo Finance")
        return series
