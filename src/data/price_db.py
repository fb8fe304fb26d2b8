"""
File-backed daily price database implementing IPriceFetcher.

Loads split-adjusted closes for many tickers into memory once and serves
fast range queries. Used by the CLI when prices come from a local export and
by tests as a deterministic price source.

Usage:
    >>> price_db = PriceDB.load('cache/closes.parquet')
    >>>
    >>> # Single close
    >>> close = price_db.get_close('MSFT', date(2020, 9, 21))
    >>>
    >>> # Range as PricePoint list (IPriceFetcher contract)
    >>> series = price_db.fetch('MSFT', date(2020, 9, 21), date(2020, 12, 31))
"""

from typing import Optional, List
from datetime import date
import logging

import pandas as pd

from src.core.errors import FetchError, InvalidParameter
from src.core.models import PricePoint


logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ('date', 'ticker', 'close')


class PriceDB:
    """
    In-memory price database with (date, ticker) multi-index.

    Input frame columns: date, ticker, close. Duplicate (date, ticker) rows
    are rejected because the fetcher contract requires unique dates.
    """

    def __init__(self, df: pd.DataFrame):
        """
        Initialize database from DataFrame.

        Args:
            df: DataFrame with columns [date, ticker, close]
        """
        missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            raise InvalidParameter(f"Price frame missing columns: {missing}")

        df = df.loc[:, list(REQUIRED_COLUMNS)].copy()
        if not pd.api.types.is_datetime64_any_dtype(df['date']):
            df['date'] = pd.to_datetime(df['date'])
        df['date'] = df['date'].dt.normalize()

        duplicated = df.duplicated(subset=['date', 'ticker'])
        if duplicated.any():
            first = df.loc[duplicated].iloc[0]
            raise InvalidParameter(
                f"Duplicate price rows, e.g. {first['ticker']} on {first['date'].date()}"
            )

        self.df = df.set_index(['date', 'ticker']).sort_index()

        self.tickers = sorted(df['ticker'].unique())
        self.total_records = len(df)
        if self.total_records:
            self.date_range = (df['date'].min().date(), df['date'].max().date())
        else:
            self.date_range = (None, None)

        logger.info(
            f"Loaded price database: {len(self.tickers)} tickers, "
            f"{self.total_records:,} records, range {self.date_range[0]} to {self.date_range[1]}"
        )

    @classmethod
    def load(cls, file_path: str) -> 'PriceDB':
        """
        Load price database from CSV or Parquet file.

        Args:
            file_path: Path to prices file (.csv or .parquet)

        Returns:
            PriceDB instance
        """
        logger.info(f"Loading prices from {file_path}...")

        if file_path.endswith('.parquet'):
            df = pd.read_parquet(file_path)
        elif file_path.endswith('.csv'):
            df = pd.read_csv(file_path, parse_dates=['date'])
        else:
            raise InvalidParameter(f"Unsupported price file format: {file_path}")

        return cls(df)

    def get_close(self, ticker: str, trade_date: date) -> Optional[float]:
        """
        Get close for ticker on given date.

        Returns:
            Close price, or None if not found
        """
        try:
            return float(self.df.loc[(pd.Timestamp(trade_date), ticker), 'close'])
        except KeyError:
            return None

    def get_daily_closes(self, ticker: str, start_date: date, end_date: date) -> pd.Series:
        """
        Get daily closes for ticker over [start_date, end_date].

        Returns:
            Series with date index, empty if ticker or range has no data
        """
        try:
            ticker_data = self.df.xs(ticker, level='ticker')
        except KeyError:
            return pd.Series(dtype=float)

        mask = (ticker_data.index >= pd.Timestamp(start_date)) & (ticker_data.index <= pd.Timestamp(end_date))
        return ticker_data.loc[mask, 'close']

    def fetch(self, ticker: str, start_date: date, end_date: date) -> List[PricePoint]:
        """
        IPriceFetcher implementation.

        Raises:
            FetchError: If ticker is unknown or a stored close is not a valid price
        """
        if ticker not in self.tickers:
            raise FetchError(ticker, "ticker not in price database")

        closes = self.get_daily_closes(ticker, start_date, end_date)
        try:
            series = [PricePoint(ts.date(), close) for ts, close in closes.items()]
        except InvalidParameter as exc:
            raise FetchError(ticker, str(exc)) from exc

        logger.debug(f"{ticker}: {len(series)} closes from {start_date} to {end_date}")
        return series

    def get_ticker_availability(self, ticker: str) -> tuple[Optional[date], Optional[date], int]:
        """
        Get availability statistics for a ticker.

        Returns:
            Tuple of (first_date, last_date, num_observations)
        """
        try:
            ticker_data = self.df.xs(ticker, level='ticker')
        except KeyError:
            return None, None, 0
        return ticker_data.index.min().date(), ticker_data.index.max().date(), len(ticker_data)
