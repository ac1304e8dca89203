# journal/tests/test_stats.py
"""
Module: Statistics Engine Tests
Purpose: Grouped stats by setup, time bucket and account type; period headline figures
"""

from datetime import date, time
from decimal import Decimal

import pytest

from journal.analytics.stats import (
    BUCKET_LABELS, UNTAGGED, period_stats, stats_by_account_type, stats_by_setup,
    stats_by_time_of_day, time_bucket, trades_frame,
)
from journal.trades.models import AccountType


class TestTimeBucket:
    """Test entry-time window assignment"""

    @pytest.mark.parametrize("entry, label", [
        (time(9, 30), '09:30-10:00'),
        (time(9, 59, 59), '09:30-10:00'),
        (time(10, 0), '10:00-10:30'),
        (time(11, 45), '11:30-12:00'),
        (time(12, 30), '12:00-13:00'),
        (time(15, 29, 59), '15:00-15:30'),
        (time(15, 30), '15:30-16:00'),
    ])
    def test_buckets(self, entry, label):
        assert time_bucket(entry) == label

    def test_outside_regular_hours_clamps(self):
        assert time_bucket(time(8, 0)) == BUCKET_LABELS[0]
        assert time_bucket(time(16, 30)) == BUCKET_LABELS[-1]


class TestGroupedStats:
    """Test grouping queries"""

    @pytest.fixture
    def trips(self, make_trip):
        return [
            make_trip('AAPL', '100.00', entry='09:35:00', setup='ORB', number=1),
            make_trip('AAPL', '-50.00', entry='10:15:00', setup='ORB', number=2),
            make_trip('TSLA', '30.00', entry='09:40:00', setup='VWAP', account_type=AccountType.TRAINING),
            make_trip('MSFT', '-20.00', entry='14:10:00'),
        ]

    def test_by_setup(self, trips):
        stats = stats_by_setup(trips)

        assert [s.key for s in stats] == ['ORB', 'VWAP', UNTAGGED]
        orb = stats[0]
        assert orb.trade_count == 2
        assert orb.total_pnl == Decimal('50.00')
        assert orb.avg_pnl == Decimal('25.00')
        assert (orb.winners, orb.losers) == (1, 1)
        assert orb.win_rate == Decimal('50.00')

    def test_by_time_of_day_in_session_order(self, trips):
        stats = stats_by_time_of_day(trips)

        assert [s.key for s in stats] == ['09:30-10:00', '10:00-10:30', '14:00-15:00']
        assert stats[0].trade_count == 2
        assert stats[0].total_pnl == Decimal('130.00')

    def test_by_account_type(self, trips):
        stats = stats_by_account_type(trips)

        # Equal totals fall back to key order
        assert [s.key for s in stats] == ['live', 'training']
        assert stats[0].trade_count == 3
        assert stats[0].total_pnl == Decimal('30.00')
        assert stats[1].total_pnl == Decimal('30.00')

    def test_counts_add_up(self, trips):
        for grouping in (stats_by_setup, stats_by_time_of_day, stats_by_account_type):
            assert sum(s.trade_count for s in grouping(trips)) == len(trips)

    def test_empty(self):
        assert stats_by_setup([]) == []
        assert stats_by_time_of_day([]) == []
        assert stats_by_account_type([]) == []

    def test_sums_are_exact(self, make_trip):
        trips = [make_trip('AAPL', '0.10', number=1), make_trip('AAPL', '0.20', number=2)]
        assert stats_by_setup(trips)[0].total_pnl == Decimal('0.30')

    def test_trades_frame_columns(self, trips):
        df = trades_frame(trips)
        assert len(df) == 4
        assert df['pnl_cents'].tolist() == [10000, -5000, 3000, -2000]


class TestPeriodStats:
    """Test headline statistics over a period"""

    def test_period(self, make_trip):
        stats = period_stats([
            make_trip('AAPL', '100.00', trade_date=date(2026, 2, 9), fees='1.00'),
            make_trip('AAPL', '-50.00', trade_date=date(2026, 2, 10), fees='0.50', number=1),
            make_trip('TSLA', '30.00', trade_date=date(2026, 2, 10), fees='0.25', number=1),
        ])

        assert stats.days_traded == 2
        assert stats.total_trades == 3
        assert stats.total_pnl == Decimal('80.00')
        assert stats.total_fees == Decimal('1.75')
        assert (stats.winners, stats.losers) == (2, 1)
        assert stats.win_rate == Decimal('66.67')
        assert stats.avg_win == Decimal('65.00')
        assert stats.avg_loss == Decimal('-50.00')
        assert stats.profit_factor == Decimal('2.60')
        assert [(s.symbol, s.trade_count, s.total_pnl) for s in stats.by_symbol] == [
            ('AAPL', 2, Decimal('50.00')),
            ('TSLA', 1, Decimal('30.00')),
        ]

    def test_no_losers_has_no_profit_factor(self, make_trip):
        stats = period_stats([make_trip('AAPL', '10.00')])
        assert stats.profit_factor is None
        assert stats.avg_loss == Decimal('0.00')

    def test_empty_period(self):
        stats = period_stats([])
        assert stats.total_trades == 0
        assert stats.days_traded == 0
        assert stats.total_pnl == Decimal('0.00')
        assert stats.win_rate == Decimal('0.00')
        assert stats.by_symbol == []
