# journal/trades/plugin.py
"""Main plugin interface for trade processing."""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..analytics import stats as trade_stats
from ..config import JournalConfig, get_config
from ..exceptions import SourceNotFoundError, StorageError, TradeLogError
from ..reporting.daily_log import DailyLog, daily_log_path, load_logs_in_range, read_daily_log, write_daily_log
from .database import open_store
from .models import DATE_FORMAT, Direction, Fill, ReconciliationWarning, RoundTrip
from .parser import PositionsParser, TradeParser
from .processor import TradeProcessor, build_manual_round_trip

logger = logging.getLogger(__name__)

STATUS_OK = 'ok'
STATUS_EMPTY = 'empty'

GROUPINGS = {
    'setup': trade_stats.stats_by_setup,
    'time': trade_stats.stats_by_time_of_day,
    'account': trade_stats.stats_by_account_type,
}


@dataclass(frozen=True)
class DaySource:
    """Where one day's broker exports live."""
    directory: Path
    trades_csv: Path
    positions_csv: Optional[Path] = None


@dataclass
class IngestResult:
    status: str
    fills: List[Fill] = field(default_factory=list)
    round_trips: List[RoundTrip] = field(default_factory=list)
    daily_log: Optional[DailyLog] = None
    warnings: List[ReconciliationWarning] = field(default_factory=list)
    output_path: Optional[Path] = None
    saved: bool = False
    storage_error: Optional[str] = None


@dataclass
class MigrationResult:
    days: int = 0
    trades: int = 0
    skipped: List[str] = field(default_factory=list)


class TradePlugin:
    """
    [CLASS SUMMARY]
    Purpose: Orchestrates ingest, storage and retrieval of daily trade logs
    Responsibilities:
        - Locate a day's exports and reconstruct round trips
        - Cross-check against the positions report
        - Write the YAML daily log and upsert into the store
        - Load days and periods from the store, falling back to YAML logs
    Usage:
        plugin = TradePlugin()
        result = plugin.ingest(date(2026, 2, 10))
    """

    def __init__(self, config: Optional[JournalConfig] = None, store=None):
        """Initialize the trade plugin; a store can be injected for testing."""
        self.config = config or get_config()
        self.parser = TradeParser()
        self.positions_parser = PositionsParser()
        self.processor = TradeProcessor(self.config.training_account_prefix)
        self._store = store
        self._store_checked = store is not None
        self.storage_error: Optional[str] = None

    @property
    def store(self):
        """The configured store, opened on first use. None when disabled or unreachable."""
        if not self._store_checked:
            self._store_checked = True
            try:
                self._store = open_store(self.config)
            except StorageError as e:
                logger.warning(f"Storage unavailable, continuing without it: {e}")
                self.storage_error = str(e)
        return self._store

    def close(self):
        if self._store is not None:
            self._store.close()

    # --- Ingest ---

    def locate_day(self, trade_date: date, source_override: Optional[Path] = None) -> DaySource:
        """
        Resolve the folder and exports for a trading day.

        Raises:
            SourceNotFoundError: folder or trades CSV is missing
        """
        day = trade_date.strftime(DATE_FORMAT)
        if source_override:
            directory = Path(source_override)
        else:
            directory = self.config.trade_review_path / f"{trade_date:%Y}" / f"{trade_date:%m}" / day

        if not directory.is_dir():
            raise SourceNotFoundError(directory, f"Source directory not found: {directory}")

        trades_csv = directory / f"trades-{day}.csv"
        if not trades_csv.is_file():
            raise SourceNotFoundError(trades_csv, f"Trades CSV not found: {trades_csv}")

        positions_csv = directory / f"positions-{day}.csv"
        return DaySource(directory, trades_csv, positions_csv if positions_csv.is_file() else None)

    def process_file(self, file_path: Path, trade_date: date,
                     source_dir: Optional[Path] = None) -> Tuple[List[Fill], List[RoundTrip]]:
        """
        Process a broker trades file and return its fills and round trips.

        Args:
            file_path: Path to the trades CSV
            trade_date: The date when these trades occurred
            source_dir: Folder searched for chart screenshots
        """
        fills = self.parser.parse_csv(file_path)
        round_trips = self.processor.process_fills(fills, trade_date, source_dir)
        return fills, round_trips

    def reconcile(self, positions_path: Path, computed_total: Decimal) -> Optional[ReconciliationWarning]:
        """Compare computed P&L with the positions report's Summary row."""
        reported = self.positions_parser.summary_realized_pnl(Path(positions_path))
        if reported is None:
            logger.debug(f"No Summary row in {positions_path}, skipping reconciliation")
            return None

        tolerance = self.config.reconciliation_tolerance
        if abs(reported - computed_total) <= tolerance:
            return None

        warning = ReconciliationWarning(reported_pnl=reported, computed_pnl=computed_total, tolerance=tolerance)
        logger.warning(warning.message)
        return warning

    def ingest(self, trade_date: date, source_override: Optional[Path] = None,
               dry_run: bool = False) -> IngestResult:
        """
        Parse, reconstruct, reconcile and persist one trading day.

        Args:
            trade_date: Day to ingest
            source_override: Folder holding the exports instead of the Trade_Review layout
            dry_run: Build everything but write nothing

        Returns:
            IngestResult; status 'empty' when the CSV held no valid fills

        Raises:
            SourceNotFoundError: folder or trades CSV is missing
        """
        source = self.locate_day(trade_date, source_override)
        fills, round_trips = self.process_file(source.trades_csv, trade_date, source.directory)

        if not fills:
            logger.info(f"No valid fills in {source.trades_csv}")
            return IngestResult(status=STATUS_EMPTY)

        round_trips = self._carry_annotations(trade_date, round_trips)
        daily_log = DailyLog.build(trade_date, str(source.directory), round_trips)
        result = IngestResult(status=STATUS_OK, fills=fills, round_trips=round_trips, daily_log=daily_log)

        if source.positions_csv:
            warning = self.reconcile(source.positions_csv, daily_log.summary.total_net_pnl)
            if warning:
                result.warnings.append(warning)

        if dry_run:
            return result

        result.output_path = write_daily_log(self.config.trade_log_dir, daily_log)
        result.saved, result.storage_error = self._save_day(daily_log, fills)
        return result

    def _carry_annotations(self, trade_date: date, round_trips: List[RoundTrip]) -> List[RoundTrip]:
        """Keep setup/notes from an earlier log of the same day when IDs match."""
        path = daily_log_path(self.config.trade_log_dir, trade_date)
        if not path.exists():
            return round_trips
        try:
            previous = {t.id: t for t in read_daily_log(path).trades}
        except TradeLogError as e:
            logger.warning(f"Ignoring unreadable daily log {path}: {e}")
            return round_trips

        carried = []
        for trip in round_trips:
            old = previous.get(trip.id)
            if old is not None:
                trip = trip.with_annotations(setup=trip.setup or old.setup, notes=trip.notes or old.notes)
            carried.append(trip)
        return carried

    def _save_day(self, daily_log: DailyLog, fills: Optional[List[Fill]] = None) -> Tuple[bool, Optional[str]]:
        store = self.store
        if store is None:
            return False, self.storage_error

        try:
            if fills:
                store.upsert_fills(daily_log.date, fills)
            store.upsert_trades(daily_log.date, daily_log.trades)
            store.upsert_daily_summary(daily_log.date, daily_log.source, daily_log.summary)
        except StorageError as e:
            logger.warning(f"Could not save {daily_log.date} to {store.provider}: {e}")
            return False, str(e)
        return True, None

    # --- Retrieval ---

    def load_day(self, trade_date: date) -> Optional[DailyLog]:
        """
        A day's log from the store when it has trades for it, else from YAML.

        Raises:
            TradeLogError: the YAML fallback exists but cannot be read
        """
        store = self.store
        if store is not None:
            try:
                trades = store.get_trades_by_date(trade_date)
                if trades:
                    summary = store.get_daily_summary(trade_date)
                    source = store.get_daily_source(trade_date) or 'database'
                    if summary is None:
                        return DailyLog.build(trade_date, source, trades)
                    return DailyLog(date=trade_date, source=source, summary=summary, trades=trades)
            except StorageError as e:
                logger.warning(f"Store read failed, falling back to YAML: {e}")

        path = daily_log_path(self.config.trade_log_dir, trade_date)
        return read_daily_log(path) if path.exists() else None

    def load_trades(self, start: date, end: date, symbol: Optional[str] = None) -> List[RoundTrip]:
        """Round trips in a date range, from the store or else the YAML logs."""
        trades = None
        store = self.store
        if store is not None:
            try:
                trades = store.get_trades_by_date_range(start, end)
            except StorageError as e:
                logger.warning(f"Store read failed, falling back to YAML: {e}")

        if trades is None:
            trades = [t for log in load_logs_in_range(self.config.trade_log_dir, start, end) for t in log.trades]

        if symbol:
            trades = [t for t in trades if t.symbol == symbol.upper()]
        return trades

    def period_stats(self, start: date, end: date, symbol: Optional[str] = None) -> trade_stats.PeriodStats:
        return trade_stats.period_stats(self.load_trades(start, end, symbol))

    def group_stats(self, grouping: str, start: date, end: date,
                    symbol: Optional[str] = None) -> List[trade_stats.GroupStat]:
        """
        Grouped statistics ('setup', 'time' or 'account') for a period.

        Unfiltered periods are answered by the store; a symbol filter or a missing
        store runs the same grouping over the loaded round trips.
        """
        if grouping not in GROUPINGS:
            raise ValueError(f"Unknown grouping '{grouping}'")

        store = self.store
        if store is not None and not symbol:
            query = {
                'setup': store.stats_by_setup,
                'time': store.stats_by_time_of_day,
                'account': store.stats_by_account_type,
            }[grouping]
            try:
                return query(start, end)
            except StorageError as e:
                logger.warning(f"Store stats failed, falling back to YAML: {e}")

        return GROUPINGS[grouping](self.load_trades(start, end, symbol))

    # --- Manual entry and annotation ---

    def log_manual_trade(self, symbol: str, direction: Direction, entry_price: Decimal,
                         exit_price: Decimal, shares: int, trade_date: Optional[date] = None,
                         entry_time: Optional[time] = None, setup: Optional[str] = None,
                         notes: Optional[str] = None) -> Tuple[RoundTrip, Path]:
        """Append a hand-entered round trip to a day's log and the store."""
        now = datetime.now()
        trade_date = trade_date or now.date()
        entry_time = entry_time or now.time().replace(microsecond=0)

        existing = self.load_day(trade_date)
        trades = list(existing.trades) if existing else []
        source = existing.source if existing else 'manual'

        sequence = sum(1 for t in trades if t.symbol == symbol.upper()) + 1
        trip = build_manual_round_trip(symbol, direction, entry_price, exit_price, shares,
                                       trade_date, entry_time, sequence, setup=setup, notes=notes)

        daily_log = DailyLog.build(trade_date, source, trades + [trip])
        path = write_daily_log(self.config.trade_log_dir, daily_log)
        self._save_day(daily_log)
        logger.info(f"Logged manual trade {trip.id}")
        return trip, path

    def tag_trade(self, trade_id: str, setup: Optional[str] = None, notes: Optional[str] = None) -> bool:
        """
        Annotate a stored round trip in both the store and its YAML log.

        Returns:
            True if the trade was found in either place

        Raises:
            TradeLogError: the day's YAML log exists but cannot be read
        """
        found = False

        store = self.store
        if store is not None:
            try:
                found = store.annotate_trade(trade_id, setup=setup, notes=notes)
            except StorageError as e:
                logger.warning(f"Could not annotate {trade_id} in store: {e}")

        try:
            trade_date = datetime.strptime(trade_id[:10], DATE_FORMAT).date()
        except ValueError:
            return found

        path = daily_log_path(self.config.trade_log_dir, trade_date)
        if path.exists():
            daily_log = read_daily_log(path)
            if any(t.id == trade_id for t in daily_log.trades):
                daily_log.trades = [t.with_annotations(setup=setup, notes=notes) if t.id == trade_id else t
                                    for t in daily_log.trades]
                write_daily_log(self.config.trade_log_dir, daily_log)
                found = True
        return found

    # --- Migration ---

    def migrate(self) -> MigrationResult:
        """
        Load every YAML daily log into the store.

        Raises:
            StorageError: no store is configured or a write fails
        """
        store = self.store
        if store is None:
            raise StorageError(self.storage_error or "Database not configured", operation='migrate')

        result = MigrationResult()
        log_dir = self.config.trade_log_dir
        if not log_dir.is_dir():
            return result

        for path in sorted(log_dir.glob('*.yaml')):
            try:
                daily_log = read_daily_log(path)
            except TradeLogError as e:
                logger.warning(f"Skipping {path.name}: {e}")
                result.skipped.append(path.name)
                continue

            store.upsert_trades(daily_log.date, daily_log.trades)
            store.upsert_daily_summary(daily_log.date, daily_log.source, daily_log.summary)
            result.days += 1
            result.trades += len(daily_log.trades)

        logger.info(f"Migrated {result.days} day(s), {result.trades} trade(s)")
        return result

    def export_day(self, trade_date: date) -> Optional[Tuple[DailyLog, Path]]:
        """
        Write a day's stored round trips back out as a YAML log.

        Raises:
            StorageError: no store is configured or the read fails
        """
        store = self.store
        if store is None:
            raise StorageError(self.storage_error or "Database not configured", operation='export')

        trades = store.get_trades_by_date(trade_date)
        if not trades:
            return None

        summary = store.get_daily_summary(trade_date)
        source = store.get_daily_source(trade_date) or 'database-export'
        if summary is None:
            daily_log = DailyLog.build(trade_date, source, trades)
        else:
            daily_log = DailyLog(date=trade_date, source=source, summary=summary, trades=trades)
        return daily_log, write_daily_log(self.config.trade_log_dir, daily_log)

    def stored_days(self) -> Dict[str, int]:
        """Row counts, for the CLI's diagnostics."""
        store = self.store
        if store is None or not hasattr(store, 'get_counts'):
            return {}
        return store.get_counts()
