# journal/trades/__init__.py
"""Trade processing module for the trading journal."""

from .parser import TradeParser, PositionsParser
from .processor import TradeProcessor
from .models import Fill, RoundTrip, Side, Direction, AccountType
from .database import TradeStore, SupabaseClient, open_store
from .plugin import TradePlugin, IngestResult

__all__ = [
    'TradeParser', 'PositionsParser', 'TradeProcessor',
    'Fill', 'RoundTrip', 'Side', 'Direction', 'AccountType',
    'TradeStore', 'SupabaseClient', 'open_store',
    'TradePlugin', 'IngestResult',
]
