# journal/analytics/daily.py
"""Fold one day's round trips into a DailySummary."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Sequence

from ..trades.models import AccountType, RoundTrip, ZERO, round2

# Mixed trades put real money at risk, so their P&L and win rate are
# reported under live. Their count is still shown on its own.
LIVE_RISK_ACCOUNT_TYPES = (AccountType.LIVE, AccountType.MIXED)


def win_rate(winners: int, total: int) -> Decimal:
    """Percentage of winners, 0 when there are no trades."""
    if total == 0:
        return round2(0)
    return round2(Decimal(winners) / Decimal(total) * 100)


@dataclass(frozen=True)
class AccountBreakdown:
    trades: int = 0
    pnl: Decimal = ZERO
    winners: int = 0
    losers: int = 0
    win_rate: Decimal = ZERO

    @classmethod
    def from_trades(cls, trades: Sequence[RoundTrip]) -> 'AccountBreakdown':
        winners = sum(1 for t in trades if t.is_winner)
        return cls(
            trades=len(trades),
            pnl=round2(sum((t.net_pnl for t in trades), ZERO)),
            winners=winners,
            losers=sum(1 for t in trades if t.is_loser),
            win_rate=win_rate(winners, len(trades)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'trades': self.trades,
            'pnl': float(self.pnl),
            'winners': self.winners,
            'losers': self.losers,
            'win_rate': float(self.win_rate),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AccountBreakdown':
        return cls(
            trades=int(data.get('trades', 0)),
            pnl=round2(data.get('pnl', 0)),
            winners=int(data.get('winners', 0)),
            losers=int(data.get('losers', 0)),
            win_rate=round2(data.get('win_rate', 0)),
        )


@dataclass(frozen=True)
class AccountSummary:
    """Live (including mixed) vs training, plus the mixed count on its own."""
    live: AccountBreakdown = field(default_factory=AccountBreakdown)
    training: AccountBreakdown = field(default_factory=AccountBreakdown)
    mixed_trades: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'live': self.live.to_dict(),
            'training': self.training.to_dict(),
            'mixed_trades': self.mixed_trades,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AccountSummary':
        data = data or {}
        return cls(
            live=AccountBreakdown.from_dict(data.get('live') or {}),
            training=AccountBreakdown.from_dict(data.get('training') or {}),
            mixed_trades=int(data.get('mixed_trades', 0)),
        )


def account_breakdown(round_trips: Iterable[RoundTrip]) -> AccountSummary:
    trades = list(round_trips)
    live = [t for t in trades if t.account_type in LIVE_RISK_ACCOUNT_TYPES]
    training = [t for t in trades if t.account_type is AccountType.TRAINING]
    return AccountSummary(
        live=AccountBreakdown.from_trades(live),
        training=AccountBreakdown.from_trades(training),
        mixed_trades=sum(1 for t in trades if t.account_type is AccountType.MIXED),
    )


@dataclass(frozen=True)
class DailySummary:
    total_pnl: Decimal
    total_fees: Decimal
    total_net_pnl: Decimal
    total_trades: int
    winners: int
    losers: int
    breakeven: int
    win_rate: Decimal
    symbols: List[str]
    by_account: AccountSummary

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_pnl': float(self.total_pnl),
            'total_fees': float(self.total_fees),
            'total_net_pnl': float(self.total_net_pnl),
            'total_trades': self.total_trades,
            'winners': self.winners,
            'losers': self.losers,
            'breakeven': self.breakeven,
            'win_rate': float(self.win_rate),
            'symbols': list(self.symbols),
            'by_account': self.by_account.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DailySummary':
        return cls(
            total_pnl=round2(data.get('total_pnl', 0)),
            total_fees=round2(data.get('total_fees', 0)),
            total_net_pnl=round2(data.get('total_net_pnl', 0)),
            total_trades=int(data.get('total_trades', 0)),
            winners=int(data.get('winners', 0)),
            losers=int(data.get('losers', 0)),
            breakeven=int(data.get('breakeven', 0)),
            win_rate=round2(data.get('win_rate', 0)),
            symbols=list(data.get('symbols') or []),
            by_account=AccountSummary.from_dict(data.get('by_account') or {}),
        )


def summarize_day(round_trips: Iterable[RoundTrip]) -> DailySummary:
    """
    Totals, win/loss counts and the account breakdown for one day.

    An empty day gives zero totals and a 0 win rate.
    """
    trades = list(round_trips)
    total_pnl = sum((t.gross_pnl for t in trades), ZERO)
    winners = sum(1 for t in trades if t.is_winner)
    losers = sum(1 for t in trades if t.is_loser)

    return DailySummary(
        total_pnl=total_pnl,
        total_fees=sum((t.fees for t in trades), ZERO),
        total_net_pnl=round2(total_pnl),
        total_trades=len(trades),
        winners=winners,
        losers=losers,
        breakeven=len(trades) - winners - losers,
        win_rate=win_rate(winners, len(trades)),
        symbols=list(dict.fromkeys(t.symbol for t in trades)),
        by_account=account_breakdown(trades),
    )
