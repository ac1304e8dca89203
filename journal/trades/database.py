# journal/trades/database.py
"""
Persistence for fills, round trips and daily summaries.
SQLite for the local journal, Supabase when configured.
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from ..analytics.daily import DailySummary
from ..analytics.stats import GroupStat, stats_by_account_type, stats_by_setup, stats_by_time_of_day
from ..exceptions import StorageError
from .models import DATE_FORMAT, Fill, RoundTrip, parse_date

logger = logging.getLogger(__name__)

# Numeric suffix of a trade ID (2026-02-10-AAPL-10 -> 10)
TRADE_NUMBER_SQL = "CAST(substr(id, length(rtrim(id, '0123456789')) + 1) AS INTEGER)"
TRADE_ORDER_SQL = f"entry_time, symbol, {TRADE_NUMBER_SQL}"

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS fills (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    date TEXT NOT NULL,
    time TEXT NOT NULL,
    symbol TEXT NOT NULL,
    side TEXT NOT NULL,
    price REAL NOT NULL,
    qty INTEGER NOT NULL,
    route TEXT,
    account TEXT NOT NULL,
    liq_type TEXT,
    ecn_fee REAL DEFAULT 0,
    pnl REAL DEFAULT 0,
    created_at TEXT DEFAULT (datetime('now')),
    UNIQUE(date, time, symbol, side, price, qty, account)
);

CREATE TABLE IF NOT EXISTS trades (
    id TEXT PRIMARY KEY,
    date TEXT NOT NULL,
    symbol TEXT NOT NULL,
    direction TEXT NOT NULL,
    entry_price REAL NOT NULL,
    exit_price REAL NOT NULL,
    total_shares INTEGER NOT NULL,
    gross_pnl REAL NOT NULL,
    fees REAL DEFAULT 0,
    net_pnl REAL NOT NULL,
    fill_count INTEGER NOT NULL,
    entry_time TEXT NOT NULL,
    exit_time TEXT NOT NULL,
    duration_minutes INTEGER DEFAULT 0,
    accounts TEXT NOT NULL,
    account_type TEXT NOT NULL,
    setup TEXT,
    notes TEXT,
    chart TEXT,
    created_at TEXT DEFAULT (datetime('now')),
    updated_at TEXT DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_trades_date ON trades(date);
CREATE INDEX IF NOT EXISTS idx_trades_symbol ON trades(symbol);
CREATE INDEX IF NOT EXISTS idx_trades_setup ON trades(setup);
CREATE INDEX IF NOT EXISTS idx_trades_account_type ON trades(account_type);

CREATE TABLE IF NOT EXISTS daily_summaries (
    date TEXT PRIMARY KEY,
    source TEXT,
    total_pnl REAL NOT NULL,
    total_fees REAL DEFAULT 0,
    total_net_pnl REAL NOT NULL,
    total_trades INTEGER NOT NULL,
    winners INTEGER DEFAULT 0,
    losers INTEGER DEFAULT 0,
    breakeven INTEGER DEFAULT 0,
    win_rate REAL DEFAULT 0,
    symbols TEXT NOT NULL,
    by_account TEXT NOT NULL,
    created_at TEXT DEFAULT (datetime('now'))
);
"""

TRADE_COLUMNS = [
    'id', 'date', 'symbol', 'direction', 'entry_price', 'exit_price', 'total_shares',
    'gross_pnl', 'fees', 'net_pnl', 'fill_count', 'entry_time', 'exit_time',
    'duration_minutes', 'accounts', 'account_type', 'setup', 'notes', 'chart',
]
ANNOTATION_COLUMNS = ('setup', 'notes', 'chart')
SUMMARY_COLUMNS = [
    'date', 'source', 'total_pnl', 'total_fees', 'total_net_pnl', 'total_trades',
    'winners', 'losers', 'breakeven', 'win_rate', 'symbols', 'by_account',
]


def _day(value: date) -> str:
    return value.strftime(DATE_FORMAT)


def _json_list(value: Any) -> list:
    if isinstance(value, list):
        return value
    if not value:
        return []
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return []


def _json_dict(value: Any) -> dict:
    if isinstance(value, dict):
        return value
    if not value:
        return {}
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return {}


def row_to_trade(row: Dict[str, Any]) -> RoundTrip:
    data = dict(row)
    data['accounts'] = _json_list(data.get('accounts'))
    return RoundTrip.from_dict(data)


def trade_number(trade_id: str) -> int:
    suffix = trade_id.rsplit('-', 1)[-1]
    return int(suffix) if suffix.isdigit() else 0


def trade_order_key(trip: RoundTrip):
    """Date, entry time, symbol, then the per-symbol trade number."""
    return trip.trade_date, trip.entry_time, trip.symbol, trade_number(trip.id)


def row_to_summary(row: Dict[str, Any]) -> DailySummary:
    data = dict(row)
    data['symbols'] = _json_list(data.get('symbols'))
    data['by_account'] = _json_dict(data.get('by_account'))
    return DailySummary.from_dict(data)


class _StatsQueries:
    """Grouping queries shared by every store; the statistics engine does the math."""

    def get_trades_by_date_range(self, start: date, end: date) -> List[RoundTrip]:
        raise NotImplementedError

    def get_all_trades(self) -> List[RoundTrip]:
        raise NotImplementedError

    def _trades_between(self, start: Optional[date], end: Optional[date]) -> List[RoundTrip]:
        if start and end:
            return self.get_trades_by_date_range(start, end)
        return self.get_all_trades()

    def stats_by_setup(self, start: Optional[date] = None, end: Optional[date] = None) -> List[GroupStat]:
        return stats_by_setup(self._trades_between(start, end))

    def stats_by_time_of_day(self, start: Optional[date] = None, end: Optional[date] = None) -> List[GroupStat]:
        return stats_by_time_of_day(self._trades_between(start, end))

    def stats_by_account_type(self, start: Optional[date] = None, end: Optional[date] = None) -> List[GroupStat]:
        return stats_by_account_type(self._trades_between(start, end))


class TradeStore(_StatsQueries):
    """
    [CLASS SUMMARY]
    Purpose: SQLite storage for the trade journal
    Responsibilities:
        - Upsert fills by natural key, round trips by trade ID, summaries by date
        - Keep setup/notes/chart annotations when a day is re-ingested
        - Date, range and symbol queries plus the grouped statistics
    Usage:
        with TradeStore(config.sqlite_path) as store:
            store.upsert_trades(trade_date, round_trips)
    """

    provider = 'sqlite'

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self.conn = sqlite3.connect(str(self.db_path))
            self.conn.row_factory = sqlite3.Row
            self.conn.execute("PRAGMA journal_mode=WAL")
            self.conn.executescript(SCHEMA_SQL)
        except (sqlite3.Error, OSError) as e:
            raise StorageError(f"Cannot open database {self.db_path}: {e}",
                               provider=self.provider, operation='open')

    def close(self):
        self.conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @contextmanager
    def _transaction(self, operation: str):
        try:
            with self.conn:
                yield self.conn
        except sqlite3.Error as e:
            raise StorageError(f"Database {operation} failed: {e}",
                               provider=self.provider, operation=operation)

    def _query(self, sql: str, params: Iterable[Any] = ()) -> List[sqlite3.Row]:
        try:
            return self.conn.execute(sql, tuple(params)).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Database query failed: {e}", provider=self.provider, operation='query')

    # --- Writes ---

    def upsert_fills(self, trade_date: date, fills: Iterable[Fill]) -> int:
        sql = """
            INSERT OR REPLACE INTO fills
                (date, time, symbol, side, price, qty, route, account, liq_type, ecn_fee, pnl)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """
        rows = []
        for fill in fills:
            f = fill.to_dict()
            rows.append((_day(trade_date), f['time'], f['symbol'], f['side'], f['price'], f['qty'],
                         f['route'], f['account'], f['liq_type'], f['ecn_fee'], f['pnl']))

        with self._transaction('upsert_fills') as conn:
            conn.executemany(sql, rows)
        return len(rows)

    def upsert_trades(self, trade_date: date, trades: Iterable[RoundTrip]) -> int:
        placeholders = ', '.join('?' for _ in TRADE_COLUMNS)
        updates = ', '.join(
            f"{c} = COALESCE(excluded.{c}, trades.{c})" if c in ANNOTATION_COLUMNS else f"{c} = excluded.{c}"
            for c in TRADE_COLUMNS if c != 'id'
        )
        sql = f"""
            INSERT INTO trades ({', '.join(TRADE_COLUMNS)}) VALUES ({placeholders})
            ON CONFLICT(id) DO UPDATE SET {updates}, updated_at = datetime('now')
        """
        rows = []
        for trade in trades:
            data = trade.to_dict()
            data['date'] = _day(trade_date)
            data['accounts'] = json.dumps(data['accounts'])
            rows.append(tuple(data[c] for c in TRADE_COLUMNS))

        with self._transaction('upsert_trades') as conn:
            conn.executemany(sql, rows)
        return len(rows)

    def upsert_daily_summary(self, trade_date: date, source: str, summary: DailySummary):
        data = summary.to_dict()
        data['date'] = _day(trade_date)
        data['source'] = source
        data['symbols'] = json.dumps(data['symbols'])
        data['by_account'] = json.dumps(data['by_account'])

        sql = f"""
            INSERT OR REPLACE INTO daily_summaries ({', '.join(SUMMARY_COLUMNS)})
            VALUES ({', '.join('?' for _ in SUMMARY_COLUMNS)})
        """
        with self._transaction('upsert_daily_summary') as conn:
            conn.execute(sql, tuple(data[c] for c in SUMMARY_COLUMNS))

    def annotate_trade(self, trade_id: str, setup: Optional[str] = None,
                       notes: Optional[str] = None, chart: Optional[str] = None) -> bool:
        """Attach annotations to a stored trade. False when the ID is unknown."""
        changes = {k: v for k, v in (('setup', setup), ('notes', notes), ('chart', chart)) if v is not None}
        if not changes:
            return bool(self._query("SELECT 1 FROM trades WHERE id = ?", (trade_id,)))

        assignments = ', '.join(f"{k} = ?" for k in changes)
        with self._transaction('annotate_trade') as conn:
            cursor = conn.execute(
                f"UPDATE trades SET {assignments}, updated_at = datetime('now') WHERE id = ?",
                (*changes.values(), trade_id),
            )
        return cursor.rowcount > 0

    # --- Reads ---

    def get_trades_by_date(self, trade_date: date) -> List[RoundTrip]:
        rows = self._query("SELECT * FROM trades WHERE date = ? ORDER BY " + TRADE_ORDER_SQL, (_day(trade_date),))
        return [row_to_trade(r) for r in rows]

    def get_trades_by_date_range(self, start: date, end: date) -> List[RoundTrip]:
        rows = self._query(
            "SELECT * FROM trades WHERE date BETWEEN ? AND ? ORDER BY date, " + TRADE_ORDER_SQL,
            (_day(start), _day(end)),
        )
        return [row_to_trade(r) for r in rows]

    def get_trades_by_symbol(self, symbol: str, limit: Optional[int] = None) -> List[RoundTrip]:
        sql = f"SELECT * FROM trades WHERE symbol = ? ORDER BY date DESC, entry_time DESC, {TRADE_NUMBER_SQL} DESC"
        params: List[Any] = [symbol.upper()]
        if limit:
            sql += " LIMIT ?"
            params.append(limit)
        return [row_to_trade(r) for r in self._query(sql, params)]

    def get_all_trades(self) -> List[RoundTrip]:
        return [row_to_trade(r) for r in self._query("SELECT * FROM trades ORDER BY date, " + TRADE_ORDER_SQL)]

    def get_daily_summary(self, trade_date: date) -> Optional[DailySummary]:
        rows = self._query("SELECT * FROM daily_summaries WHERE date = ?", (_day(trade_date),))
        return row_to_summary(rows[0]) if rows else None

    def get_daily_source(self, trade_date: date) -> Optional[str]:
        rows = self._query("SELECT source FROM daily_summaries WHERE date = ?", (_day(trade_date),))
        return rows[0]['source'] if rows else None

    def get_daily_summaries(self, start: date, end: date) -> Dict[date, DailySummary]:
        rows = self._query(
            "SELECT * FROM daily_summaries WHERE date BETWEEN ? AND ? ORDER BY date",
            (_day(start), _day(end)),
        )
        return {parse_date(r['date']): row_to_summary(r) for r in rows}

    def get_dates(self) -> List[date]:
        return [parse_date(r['date']) for r in self._query("SELECT DISTINCT date FROM trades ORDER BY date")]

    def get_counts(self) -> Dict[str, int]:
        """Row counts per table for diagnostics."""
        return {
            table: self._query(f"SELECT COUNT(*) AS n FROM {table}")[0]['n']
            for table in ('fills', 'trades', 'daily_summaries')
        }


def get_supabase_client():
    """Import supabase only when the provider is used."""
    try:
        from supabase import create_client
        return create_client
    except ImportError:
        return None


class SupabaseClient(_StatsQueries):
    """Journal storage backed by Supabase tables."""

    provider = 'supabase'
    fills_table = 'journal_fills'
    trades_table = 'journal_trades'
    summaries_table = 'journal_daily_summaries'

    def __init__(self, url: Optional[str] = None, key: Optional[str] = None, client=None):
        """Initialize Supabase client; an existing client can be injected."""
        if client is not None:
            self.client = client
            return

        if not url or not key:
            raise StorageError("Supabase URL and key must be provided", provider=self.provider, operation='open')

        create_client = get_supabase_client()
        if not create_client:
            raise StorageError("Supabase package not installed. Run: pip install supabase",
                               provider=self.provider, operation='open')
        try:
            self.client = create_client(url, key)
        except Exception as e:
            raise StorageError(f"Cannot connect to Supabase: {e}", provider=self.provider, operation='open')

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _execute(self, query, operation: str) -> List[Dict[str, Any]]:
        try:
            result = query.execute()
        except Exception as e:
            raise StorageError(f"Supabase {operation} failed: {e}", provider=self.provider, operation=operation)
        return result.data or []

    # --- Writes ---

    def upsert_fills(self, trade_date: date, fills: Iterable[Fill]) -> int:
        rows = [dict(f.to_dict(), date=_day(trade_date)) for f in fills]
        if not rows:
            return 0
        self._execute(
            self.client.table(self.fills_table).upsert(
                rows, on_conflict='date,time,symbol,side,price,qty,account'),
            'upsert_fills',
        )
        return len(rows)

    def upsert_trades(self, trade_date: date, trades: Iterable[RoundTrip]) -> int:
        rows = [dict(t.to_dict(), date=_day(trade_date)) for t in trades]
        if not rows:
            return 0

        # Upsert overwrites whole rows, so carry stored annotations forward
        existing = self._execute(
            self.client.table(self.trades_table).select('id,setup,notes,chart').in_('id', [r['id'] for r in rows]),
            'select_annotations',
        )
        stored = {r['id']: r for r in existing}
        for row in rows:
            for column in ANNOTATION_COLUMNS:
                if row.get(column) is None and stored.get(row['id'], {}).get(column) is not None:
                    row[column] = stored[row['id']][column]

        self._execute(self.client.table(self.trades_table).upsert(rows, on_conflict='id'), 'upsert_trades')
        return len(rows)

    def upsert_daily_summary(self, trade_date: date, source: str, summary: DailySummary):
        row = dict(summary.to_dict(), date=_day(trade_date), source=source)
        self._execute(self.client.table(self.summaries_table).upsert(row, on_conflict='date'),
                      'upsert_daily_summary')

    def annotate_trade(self, trade_id: str, setup: Optional[str] = None,
                       notes: Optional[str] = None, chart: Optional[str] = None) -> bool:
        changes = {k: v for k, v in (('setup', setup), ('notes', notes), ('chart', chart)) if v is not None}
        table = self.client.table(self.trades_table)
        if not changes:
            return bool(self._execute(table.select('id').eq('id', trade_id), 'annotate_trade'))
        return bool(self._execute(table.update(changes).eq('id', trade_id), 'annotate_trade'))

    # --- Reads ---

    def get_trades_by_date(self, trade_date: date) -> List[RoundTrip]:
        query = self.client.table(self.trades_table).select('*').eq('date', _day(trade_date)).order('entry_time')
        return sorted((row_to_trade(r) for r in self._execute(query, 'get_trades_by_date')), key=trade_order_key)

    def get_trades_by_date_range(self, start: date, end: date) -> List[RoundTrip]:
        query = (self.client.table(self.trades_table).select('*')
                 .gte('date', _day(start)).lte('date', _day(end))
                 .order('date').order('entry_time'))
        rows = self._execute(query, 'get_trades_by_date_range')
        return sorted((row_to_trade(r) for r in rows), key=trade_order_key)

    def get_trades_by_symbol(self, symbol: str, limit: Optional[int] = None) -> List[RoundTrip]:
        query = (self.client.table(self.trades_table).select('*').eq('symbol', symbol.upper())
                 .order('date', desc=True).order('entry_time', desc=True))
        if limit:
            query = query.limit(limit)
        rows = self._execute(query, 'get_trades_by_symbol')
        return sorted((row_to_trade(r) for r in rows), key=trade_order_key, reverse=True)

    def get_all_trades(self) -> List[RoundTrip]:
        query = self.client.table(self.trades_table).select('*').order('date').order('entry_time')
        return sorted((row_to_trade(r) for r in self._execute(query, 'get_all_trades')), key=trade_order_key)

    def get_daily_summary(self, trade_date: date) -> Optional[DailySummary]:
        rows = self._execute(
            self.client.table(self.summaries_table).select('*').eq('date', _day(trade_date)),
            'get_daily_summary',
        )
        return row_to_summary(rows[0]) if rows else None

    def get_daily_source(self, trade_date: date) -> Optional[str]:
        rows = self._execute(
            self.client.table(self.summaries_table).select('source').eq('date', _day(trade_date)),
            'get_daily_source',
        )
        return rows[0].get('source') if rows else None

    def get_daily_summaries(self, start: date, end: date) -> Dict[date, DailySummary]:
        query = (self.client.table(self.summaries_table).select('*')
                 .gte('date', _day(start)).lte('date', _day(end)).order('date'))
        return {parse_date(r['date']): row_to_summary(r) for r in self._execute(query, 'get_daily_summaries')}

    def get_dates(self) -> List[date]:
        rows = self._execute(self.client.table(self.trades_table).select('date').order('date'), 'get_dates')
        return sorted({parse_date(r['date']) for r in rows})


def open_store(config):
    """
    Store for the configured provider, or None when persistence is off.

    Raises:
        StorageError: the backend cannot be opened
    """
    if config.db_provider == 'none':
        return None
    if config.db_provider == 'supabase':
        return SupabaseClient(config.supabase_url, config.supabase_key)
    return TradeStore(config.sqlite_path)
