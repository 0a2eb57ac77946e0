"""
Data Provider Adapters

Each history adapter implements the ProviderAdapter interface for a specific
data source. YahooQuoteAdapter only serves live quotes.
"""

from .alphavantage_adapter import AlphaVantageAdapter
from .finnhub_adapter import FinnhubAdapter
from .twelvedata_adapter import TwelveDataAdapter
from .massive_adapter import MassiveAdapter
from .yahoo_adapter import YahooQuoteAdapter

__all__ = [
    "AlphaVantageAdapter",
    "FinnhubAdapter",
    "TwelveDataAdapter",
    "MassiveAdapter",
    "YahooQuoteAdapter",
]
