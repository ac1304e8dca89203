# journal/analytics/stats.py
"""
Module: Trade Statistics
Purpose: Grouped performance statistics over any collection of round trips
Features: By setup tag, by entry-time bucket, by account type, period headline stats
"""

from dataclasses import dataclass, field
from datetime import time
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional

import numpy as np
import pandas as pd

from ..trades.models import RoundTrip, ZERO, round2, seconds_of_day
from .daily import AccountSummary, account_breakdown, win_rate

UNTAGGED = '(untagged)'

# Entry times before the first bound land in the opening window,
# entries at or after 15:30 land in the last one.
BUCKET_BOUNDS = ['10:00', '10:30', '11:00', '11:30', '12:00', '13:00', '14:00', '15:00', '15:30']
BUCKET_LABELS = [
    '09:30-10:00', '10:00-10:30', '10:30-11:00', '11:00-11:30', '11:30-12:00',
    '12:00-13:00', '13:00-14:00', '14:00-15:00', '15:00-15:30', '15:30-16:00',
]
_BOUND_SECONDS = np.array([int(b[:2]) * 3600 + int(b[3:]) * 60 for b in BUCKET_BOUNDS])

STAT_COLUMNS = ['date', 'symbol', 'setup', 'account_type', 'entry_seconds', 'pnl_cents', 'fee_cents']


@dataclass(frozen=True)
class GroupStat:
    """One row of a grouped statistics table."""
    key: str
    trade_count: int
    total_pnl: Decimal
    avg_pnl: Decimal
    winners: int
    losers: int
    win_rate: Decimal


@dataclass(frozen=True)
class SymbolStat:
    symbol: str
    trade_count: int
    total_pnl: Decimal


@dataclass(frozen=True)
class PeriodStats:
    """Headline figures over a (usually multi-day) set of round trips."""
    days_traded: int
    total_trades: int
    total_pnl: Decimal
    total_fees: Decimal
    winners: int
    losers: int
    win_rate: Decimal
    avg_win: Decimal
    avg_loss: Decimal
    profit_factor: Optional[Decimal]
    by_symbol: List[SymbolStat] = field(default_factory=list)
    by_account: AccountSummary = field(default_factory=AccountSummary)


def _cents(value: Decimal) -> int:
    return int((value * 100).to_integral_value(rounding=ROUND_HALF_UP))


def _from_cents(cents) -> Decimal:
    return round2(Decimal(int(cents)) / 100)


def time_bucket(entry_time: time) -> str:
    """Label of the time-of-day window an entry falls in."""
    index = int(np.searchsorted(_BOUND_SECONDS, seconds_of_day(entry_time), side='right'))
    return BUCKET_LABELS[index]


def trades_frame(round_trips: Iterable[RoundTrip]) -> pd.DataFrame:
    """
    Flatten round trips into a DataFrame.

    Money is held as integer cents so sums over many trades stay exact.
    """
    records = [{
        'date': t.trade_date,
        'symbol': t.symbol,
        'setup': t.setup or UNTAGGED,
        'account_type': t.account_type.value,
        'entry_seconds': seconds_of_day(t.entry_time),
        'pnl_cents': _cents(t.net_pnl),
        'fee_cents': _cents(t.fees),
    } for t in round_trips]

    df = pd.DataFrame.from_records(records, columns=STAT_COLUMNS)
    return df.astype({'entry_seconds': 'int64', 'pnl_cents': 'int64', 'fee_cents': 'int64'})


def _group_stats(df: pd.DataFrame, key: str, by_key: bool = False) -> List[GroupStat]:
    if df.empty:
        return []

    grouped = df.assign(
        is_winner=(df['pnl_cents'] > 0).astype('int64'),
        is_loser=(df['pnl_cents'] < 0).astype('int64'),
    ).groupby(key, sort=False).agg(
        trade_count=('pnl_cents', 'size'),
        pnl_cents=('pnl_cents', 'sum'),
        winners=('is_winner', 'sum'),
        losers=('is_loser', 'sum'),
    ).reset_index()

    if by_key:
        grouped = grouped.sort_values(key, kind='mergesort')
    else:
        grouped = grouped.sort_values(['pnl_cents', key], ascending=[False, True], kind='mergesort')

    rows = []
    for record in grouped.itertuples(index=False):
        count = int(record.trade_count)
        total = Decimal(int(record.pnl_cents))
        rows.append(GroupStat(
            key=str(getattr(record, key)),
            trade_count=count,
            total_pnl=round2(total / 100),
            avg_pnl=round2(total / count / 100),
            winners=int(record.winners),
            losers=int(record.losers),
            win_rate=win_rate(int(record.winners), count),
        ))
    return rows


def stats_by_setup(round_trips: Iterable[RoundTrip]) -> List[GroupStat]:
    """Per setup tag, best total P&L first. Untagged trades share one row."""
    return _group_stats(trades_frame(round_trips), 'setup')


def stats_by_time_of_day(round_trips: Iterable[RoundTrip]) -> List[GroupStat]:
    """Per entry-time window, in session order."""
    df = trades_frame(round_trips)
    if df.empty:
        return []
    indexes = np.searchsorted(_BOUND_SECONDS, df['entry_seconds'].to_numpy(), side='right')
    df['bucket'] = np.array(BUCKET_LABELS)[indexes]
    return _group_stats(df, 'bucket', by_key=True)


def stats_by_account_type(round_trips: Iterable[RoundTrip]) -> List[GroupStat]:
    """Per live/training/mixed, best total P&L first."""
    return _group_stats(trades_frame(round_trips), 'account_type')


def period_stats(round_trips: Iterable[RoundTrip]) -> PeriodStats:
    """
    Headline statistics for a period.

    Profit factor is gross wins over gross losses, None when nothing lost.
    """
    trades = list(round_trips)
    df = trades_frame(trades)

    wins = df.loc[df['pnl_cents'] > 0, 'pnl_cents']
    losses = df.loc[df['pnl_cents'] < 0, 'pnl_cents']
    win_cents = int(wins.sum())
    loss_cents = int(losses.sum())

    profit_factor = None
    if loss_cents != 0:
        profit_factor = round2(Decimal(win_cents) / Decimal(abs(loss_cents)))

    by_symbol = []
    if not df.empty:
        symbols = df.groupby('symbol', sort=False).agg(
            trade_count=('pnl_cents', 'size'),
            pnl_cents=('pnl_cents', 'sum'),
        ).reset_index().sort_values(['pnl_cents', 'symbol'], ascending=[False, True], kind='mergesort')
        by_symbol = [SymbolStat(symbol=r.symbol, trade_count=int(r.trade_count),
                                total_pnl=_from_cents(r.pnl_cents))
                     for r in symbols.itertuples(index=False)]

    return PeriodStats(
        days_traded=int(df['date'].nunique()),
        total_trades=len(trades),
        total_pnl=_from_cents(df['pnl_cents'].sum()),
        total_fees=_from_cents(df['fee_cents'].sum()),
        winners=len(wins),
        losers=len(losses),
        win_rate=win_rate(len(wins), len(trades)),
        avg_win=round2(Decimal(win_cents) / len(wins) / 100) if len(wins) else round2(ZERO),
        avg_loss=round2(Decimal(loss_cents) / len(losses) / 100) if len(losses) else round2(ZERO),
        profit_factor=profit_factor,
        by_symbol=by_symbol,
        by_account=account_breakdown(trades),
    )
