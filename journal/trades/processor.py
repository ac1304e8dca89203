# journal/trades/processor.py
"""Reconstruct a day's fills into round-trip trades."""

import logging
from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import date, time
from decimal import Decimal, ROUND_HALF_UP
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from ..config import DEFAULT_TRAINING_PREFIX
from .classifier import classify_accounts
from .models import (
    AccountType, Direction, Fill, RoundTrip, ZERO,
    DATE_FORMAT, round2, seconds_of_day,
)

logger = logging.getLogger(__name__)

CHART_EXTENSIONS = ('.jpg', '.jpeg', '.png')

# (symbol, account)
GroupKey = Tuple[str, str]
# Position of a fill in the time-sorted day, used for stable tie-breaking
Sequenced = Tuple[int, Fill]


def find_chart_file(symbol: str, source_dir: Optional[Path]) -> Optional[str]:
    """Best-effort lookup of a chart screenshot named after the symbol."""
    if source_dir is None:
        return None
    try:
        names = sorted(p.name for p in Path(source_dir).iterdir() if p.is_file())
    except OSError:
        return None

    prefix = symbol.lower()
    for name in names:
        lowered = name.lower()
        if lowered.startswith(prefix) and lowered.endswith(CHART_EXTENSIONS):
            return name
    return None


def weighted_average(fills: Iterable[Fill]) -> Tuple[Decimal, int]:
    """Unrounded quantity-weighted price and the total quantity."""
    notional = ZERO
    quantity = 0
    for fill in fills:
        notional += fill.notional
        quantity += fill.quantity
    if quantity == 0:
        return ZERO, 0
    return notional / quantity, quantity


def duration_minutes(entry_time: time, exit_time: time) -> int:
    seconds = seconds_of_day(exit_time) - seconds_of_day(entry_time)
    minutes = (Decimal(seconds) / 60).quantize(Decimal('1'), rounding=ROUND_HALF_UP)
    return max(int(minutes), 0)


@dataclass
class _OpenPosition:
    """Running position for one (symbol, account) group."""
    quantity: int = 0
    fills: List[Sequenced] = field(default_factory=list)

    def add(self, item: Sequenced) -> bool:
        """Append a fill; True when the position is flat again."""
        self.fills.append(item)
        self.quantity += item[1].signed_quantity
        return self.quantity == 0


class TradeProcessor:
    """Process fills into round trips with per-trade economics."""

    def __init__(self, training_prefix: str = DEFAULT_TRAINING_PREFIX):
        self.training_prefix = training_prefix

    def process_fills(self, fills: Iterable[Fill], trade_date: date,
                      source_dir: Optional[Path] = None) -> List[RoundTrip]:
        """
        Group a day's fills into round trips ordered by entry time.

        Args:
            fills: The day's fills in any order
            trade_date: Trading day, used in trade IDs
            source_dir: Folder searched for chart screenshots

        Returns:
            Round trips across all symbols, sorted by entry time
        """
        ordered = self._sort_fills(fills)
        if not ordered:
            return []

        account_groups = self._group_by_account(ordered)
        symbol_trips = self._split_round_trips(account_groups, trade_date, source_dir)
        numbered = self._assign_ids(symbol_trips, trade_date)

        numbered.sort(key=lambda item: (item[1].entry_time, item[0]))
        round_trips = [trip for _, trip in numbered]

        logger.info(f"Reconstructed {len(round_trips)} round trip(s) from {len(ordered)} fill(s) "
                    f"for {trade_date.strftime(DATE_FORMAT)}")
        return round_trips

    def _sort_fills(self, fills: Iterable[Fill]) -> List[Sequenced]:
        # Exports are usually newest-first; sorted() keeps input order on ties
        by_time = sorted(fills, key=lambda f: f.time)
        return list(enumerate(by_time))

    def _group_by_account(self, ordered: List[Sequenced]) -> Dict[GroupKey, List[Sequenced]]:
        """First pass: per (symbol, account) so position arithmetic is per physical account."""
        groups: Dict[GroupKey, List[Sequenced]] = defaultdict(list)
        for item in ordered:
            fill = item[1]
            groups[(fill.symbol, fill.account)].append(item)
        return groups

    def _split_round_trips(self, groups: Dict[GroupKey, List[Sequenced]], trade_date: date,
                           source_dir: Optional[Path]) -> Dict[str, List[Tuple[int, RoundTrip]]]:
        """Walk each group's running position and cut a round trip whenever it is flat."""
        symbol_trips: Dict[str, List[Tuple[int, RoundTrip]]] = defaultdict(list)
        charts: Dict[str, Optional[str]] = {}

        for (symbol, account), items in groups.items():
            if symbol not in charts:
                charts[symbol] = find_chart_file(symbol, source_dir)

            position = _OpenPosition()
            for item in items:
                if position.add(item):
                    symbol_trips[symbol].append(self._build(position.fills, trade_date, charts[symbol]))
                    position = _OpenPosition()

            if position.fills:
                logger.debug(f"{symbol}/{account} still open at end of day: {position.quantity} shares")
                symbol_trips[symbol].append(self._build(position.fills, trade_date, charts[symbol]))

        return symbol_trips

    def _assign_ids(self, symbol_trips: Dict[str, List[Tuple[int, RoundTrip]]],
                    trade_date: date) -> List[Tuple[int, RoundTrip]]:
        """Second pass: number each symbol's round trips by entry time across accounts."""
        day = trade_date.strftime(DATE_FORMAT)
        numbered = []
        for symbol, trips in symbol_trips.items():
            trips.sort(key=lambda item: (item[1].entry_time, item[0]))
            for index, (seq, trip) in enumerate(trips, 1):
                numbered.append((seq, replace(trip, id=f"{day}-{symbol}-{index}")))
        return numbered

    def _build(self, items: List[Sequenced], trade_date: date,
               chart: Optional[str]) -> Tuple[int, RoundTrip]:
        """Derive economics for one buffer of fills."""
        first_seq, first = items[0]
        fills = [fill for _, fill in items]

        opens_long = first.side.is_buy
        direction = Direction.LONG if opens_long else Direction.SHORT
        entry_fills = [f for f in fills if f.side.is_buy == opens_long]
        exit_fills = [f for f in fills if f.side.is_buy != opens_long]

        entry_price, entry_qty = weighted_average(entry_fills)
        exit_price, exit_qty = weighted_average(exit_fills)

        # Feed P&L already includes fees, so net is gross
        gross_pnl = round2(sum((f.reported_pnl for f in fills), ZERO))
        fees = round2(sum((abs(f.fee) for f in fills), ZERO))

        accounts = tuple(dict.fromkeys(f.account for f in fills))
        entry_time = fills[0].time
        exit_time = fills[-1].time

        trip = RoundTrip(
            id='',
            trade_date=trade_date,
            symbol=first.symbol,
            direction=direction,
            entry_price=round2(entry_price),
            exit_price=round2(exit_price),
            total_shares=max(entry_qty, exit_qty),
            gross_pnl=gross_pnl,
            fees=fees,
            net_pnl=gross_pnl,
            fill_count=len(fills),
            entry_time=entry_time,
            exit_time=exit_time,
            duration_minutes=duration_minutes(entry_time, exit_time),
            accounts=accounts,
            account_type=classify_accounts(accounts, self.training_prefix),
            chart=chart,
        )
        return first_seq, trip


def build_manual_round_trip(symbol: str, direction: Direction, entry_price: Decimal,
                            exit_price: Decimal, shares: int, trade_date: date,
                            entry_time: time, sequence: int,
                            setup: Optional[str] = None,
                            notes: Optional[str] = None) -> RoundTrip:
    """
    Round trip typed in by hand when no broker export exists.

    P&L is computed from prices since there is no feed P&L to aggregate.
    """
    symbol = symbol.upper()
    move = exit_price - entry_price if direction is Direction.LONG else entry_price - exit_price
    pnl = round2(move * shares)

    return RoundTrip(
        id=f"{trade_date.strftime(DATE_FORMAT)}-{symbol}-{sequence}",
        trade_date=trade_date,
        symbol=symbol,
        direction=direction,
        entry_price=round2(entry_price),
        exit_price=round2(exit_price),
        total_shares=shares,
        gross_pnl=pnl,
        fees=ZERO,
        net_pnl=pnl,
        fill_count=0,
        entry_time=entry_time,
        exit_time=entry_time,
        duration_minutes=0,
        accounts=('manual',),
        account_type=AccountType.LIVE,
        setup=setup,
        notes=notes,
    )
