# journal/tests/conftest.py
"""Shared fixtures: fill/round-trip factories, isolated config and day folders."""

from datetime import date
from decimal import Decimal

import pytest

from journal.config import JournalConfig
from journal.trades.database import TradeStore
from journal.trades.models import AccountType, Direction, Fill, RoundTrip, Side, parse_time

TRADE_DATE = date(2026, 2, 10)
TRADES_HEADER = "Time,Symbol,Side,Price,Qty,Route,Account,LiqType,ECNFee,P / L,"
POSITIONS_HEADER = "Symbol,Account,Type,Shares,Avgcost,Realized,Unrealized"


@pytest.fixture
def make_fill():
    """Build a Fill from plain strings."""
    def _make(at, symbol, side, price, qty, account='A1', fee='0', pnl='0'):
        return Fill(
            time=parse_time(at),
            symbol=symbol,
            side=Side(side),
            price=Decimal(price),
            quantity=qty,
            account=account,
            fee=Decimal(fee),
            reported_pnl=Decimal(pnl),
        )
    return _make


@pytest.fixture
def make_trip():
    """Build a RoundTrip with only the fields a test cares about."""
    def _make(symbol='AAPL', net='0', entry='09:35:00', trade_date=TRADE_DATE, number=1,
              account_type=AccountType.LIVE, setup=None, fees='0', accounts=('A1',)):
        pnl = Decimal(net)
        return RoundTrip(
            id=f"{trade_date.isoformat()}-{symbol}-{number}",
            trade_date=trade_date,
            symbol=symbol,
            direction=Direction.LONG,
            entry_price=Decimal('10.00'),
            exit_price=Decimal('11.00'),
            total_shares=100,
            gross_pnl=pnl,
            fees=Decimal(fees),
            net_pnl=pnl,
            fill_count=2,
            entry_time=parse_time(entry),
            exit_time=parse_time(entry),
            duration_minutes=0,
            accounts=tuple(accounts),
            account_type=account_type,
            setup=setup,
        )
    return _make


@pytest.fixture
def config_factory(tmp_path):
    """JournalConfig rooted in tmp_path; keyword arguments override settings."""
    def _make(**overrides):
        settings = {
            'data_dir': tmp_path / 'data',
            'trade_review_path': tmp_path / 'Trade_Review',
            'training_account_prefix': 'TR',
            'db_provider': 'sqlite',
            'sqlite_path': tmp_path / 'data' / 'trades.db',
            'reconciliation_tolerance': '0.50',
            'log_level': 'INFO',
        }
        settings.update(overrides)
        return JournalConfig(settings)
    return _make


@pytest.fixture
def config(config_factory):
    return config_factory()


@pytest.fixture
def store(tmp_path):
    with TradeStore(tmp_path / 'store.db') as trade_store:
        yield trade_store


@pytest.fixture
def write_day(config):
    """Create the Trade_Review folder for a day with its CSV exports."""
    def _write(rows, trade_date=TRADE_DATE, positions=None):
        day = trade_date.isoformat()
        folder = config.trade_review_path / f"{trade_date:%Y}" / f"{trade_date:%m}" / day
        folder.mkdir(parents=True, exist_ok=True)
        lines = [TRADES_HEADER] + [row + ',' for row in rows]
        (folder / f"trades-{day}.csv").write_text("\n".join(lines) + "\n", encoding='utf-8')
        if positions is not None:
            (folder / f"positions-{day}.csv").write_text(
                "\n".join([POSITIONS_HEADER] + positions) + "\n", encoding='utf-8')
        return folder
    return _write


@pytest.fixture
def trade_date():
    return TRADE_DATE


@pytest.fixture
def sample_rows():
    """One long AAPL and one short TSLA round trip, newest first as exported."""
    return [
        "10:05:00,TSLA,B,199.00,50,ARCA,A1,Remove,-0.30,49.70",
        "09:45:00,AAPL,S,152.50,100,ARCA,A1,Add,-0.50,249.50",
        "09:50:00,TSLA,SS,200.00,50,ARCA,A1,Add,-0.30,0.00",
        "09:30:00,AAPL,B,150.00,100,ARCA,A1,Add,-0.50,0.00",
    ]
