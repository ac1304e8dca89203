# journal/trades/models.py
"""Data models for fills and round-trip trades."""

from dataclasses import dataclass, field, replace
from datetime import date, datetime, time
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

TIME_FORMAT = '%H:%M:%S'
DATE_FORMAT = '%Y-%m-%d'

CENT = Decimal('0.01')
ZERO = Decimal('0')

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    """Convert to Decimal without picking up binary float noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(str(value))


def round2(value: Number) -> Decimal:
    """Round half-up to cents."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def parse_time(value: Union[str, time]) -> time:
    """Parse HH:MM:SS (or HH:MM) wall-clock time."""
    if isinstance(value, time):
        return value
    text = str(value).strip()
    for fmt in (TIME_FORMAT, '%H:%M'):
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"Unrecognised time: {value!r}")


def format_time(value: time) -> str:
    return value.strftime(TIME_FORMAT)


def seconds_of_day(value: time) -> int:
    return value.hour * 3600 + value.minute * 60 + value.second


def parse_date(value: Union[str, date]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(str(value).strip(), DATE_FORMAT).date()


class Side(Enum):
    """Execution side as reported by the broker (B / S / SS)."""
    BUY = 'B'
    SELL = 'S'
    SELL_SHORT = 'SS'

    @classmethod
    def from_code(cls, code: str) -> 'Side':
        return cls(code.strip().upper())

    @property
    def sign(self) -> int:
        # Sell and SellShort both reduce position
        return 1 if self is Side.BUY else -1

    @property
    def is_buy(self) -> bool:
        return self is Side.BUY


class Direction(Enum):
    LONG = 'long'
    SHORT = 'short'


class AccountType(Enum):
    LIVE = 'live'
    TRAINING = 'training'
    MIXED = 'mixed'


@dataclass(frozen=True)
class Fill:
    """Represents a single execution/fill."""
    time: time
    symbol: str
    side: Side
    price: Decimal
    quantity: int
    route: str = ''
    account: str = ''
    liquidity_type: str = ''
    fee: Decimal = ZERO
    reported_pnl: Decimal = ZERO

    @property
    def signed_quantity(self) -> int:
        """Position change caused by this fill."""
        return self.side.sign * self.quantity

    @property
    def notional(self) -> Decimal:
        """Calculate the value of this execution."""
        return self.price * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            'time': format_time(self.time),
            'symbol': self.symbol,
            'side': self.side.value,
            'price': float(self.price),
            'qty': self.quantity,
            'route': self.route,
            'account': self.account,
            'liq_type': self.liquidity_type,
            'ecn_fee': float(self.fee),
            'pnl': float(self.reported_pnl),
        }


@dataclass(frozen=True)
class RoundTrip:
    """Represents a flat-to-flat trade (or a position still open at day end)."""
    id: str
    trade_date: date
    symbol: str
    direction: Direction
    entry_price: Decimal
    exit_price: Decimal
    total_shares: int
    gross_pnl: Decimal
    fees: Decimal
    net_pnl: Decimal
    fill_count: int
    entry_time: time
    exit_time: time
    duration_minutes: int
    accounts: Tuple[str, ...] = field(default_factory=tuple)
    account_type: AccountType = AccountType.LIVE
    setup: Optional[str] = None
    notes: Optional[str] = None
    chart: Optional[str] = None

    @property
    def is_winner(self) -> bool:
        return self.net_pnl > 0

    @property
    def is_loser(self) -> bool:
        return self.net_pnl < 0

    def with_annotations(self, setup: Optional[str] = None, notes: Optional[str] = None,
                         chart: Optional[str] = None) -> 'RoundTrip':
        """Return a copy with any supplied annotation replaced."""
        changes = {}
        if setup is not None:
            changes['setup'] = setup
        if notes is not None:
            changes['notes'] = notes
        if chart is not None:
            changes['chart'] = chart
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert round trip to a plain dictionary for YAML/JSON and database storage."""
        return {
            'id': self.id,
            'date': self.trade_date.strftime(DATE_FORMAT),
            'symbol': self.symbol,
            'direction': self.direction.value,
            'entry_price': float(self.entry_price),
            'exit_price': float(self.exit_price),
            'total_shares': self.total_shares,
            'gross_pnl': float(self.gross_pnl),
            'fees': float(self.fees),
            'net_pnl': float(self.net_pnl),
            'fill_count': self.fill_count,
            'entry_time': format_time(self.entry_time),
            'exit_time': format_time(self.exit_time),
            'duration_minutes': self.duration_minutes,
            'accounts': list(self.accounts),
            'account_type': self.account_type.value,
            'setup': self.setup,
            'notes': self.notes,
            'chart': self.chart,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RoundTrip':
        trade_id = data['id']
        trade_date = data.get('date') or trade_id[:10]
        return cls(
            id=trade_id,
            trade_date=parse_date(trade_date),
            symbol=data['symbol'],
            direction=Direction(data['direction']),
            entry_price=round2(data.get('entry_price', 0)),
            exit_price=round2(data.get('exit_price', 0)),
            total_shares=int(data.get('total_shares', 0)),
            gross_pnl=round2(data.get('gross_pnl', data.get('net_pnl', 0))),
            fees=round2(data.get('fees', 0)),
            net_pnl=round2(data.get('net_pnl', 0)),
            fill_count=int(data.get('fill_count', 0)),
            entry_time=parse_time(data['entry_time']),
            exit_time=parse_time(data['exit_time']),
            duration_minutes=int(data.get('duration_minutes', 0)),
            accounts=tuple(data.get('accounts') or ()),
            account_type=AccountType(data.get('account_type', AccountType.LIVE.value)),
            setup=data.get('setup'),
            notes=data.get('notes'),
            chart=data.get('chart'),
        )


@dataclass(frozen=True)
class PositionRow:
    """One row of the broker's end-of-day positions report."""
    symbol: str
    account: str = ''
    type: str = ''
    shares: int = 0
    avg_cost: Decimal = ZERO
    realized: Decimal = ZERO
    unrealized: Decimal = ZERO


@dataclass(frozen=True)
class ReconciliationWarning:
    """Computed day P&L disagrees with the broker's reported realized total."""
    reported_pnl: Decimal
    computed_pnl: Decimal
    tolerance: Decimal

    @property
    def difference(self) -> Decimal:
        return round2(abs(self.reported_pnl - self.computed_pnl))

    @property
    def message(self) -> str:
        return (f"P&L discrepancy: positions summary=${self.reported_pnl:.2f}, "
                f"computed=${self.computed_pnl:.2f} (diff=${self.difference:.2f})")
