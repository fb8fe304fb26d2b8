"""Price data sources"""

from src.data.base import IPriceFetcher
from src.data.price_db import PriceDB

__all__ = ['IPriceFetcher', 'PriceDB']
