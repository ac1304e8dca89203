# journal/tests/test_processor.py
"""
Module: Round-Trip Reconstruction Tests
Purpose: Fills to round trips - grouping, VWAP, P&L conservation, IDs and ordering
"""

from datetime import time
from decimal import Decimal

import pytest

from journal.trades.models import AccountType, Direction, round2
from journal.trades.processor import (
    TradeProcessor, build_manual_round_trip, duration_minutes, find_chart_file,
)


class TestTradeProcessor:
    """Test reconstruction of a day's fills"""

    @pytest.fixture
    def processor(self):
        return TradeProcessor(training_prefix='TR')

    def test_simple_long_round_trip(self, processor, make_fill, trade_date):
        fills = [
            make_fill('09:30:00', 'AAPL', 'B', '150.00', 100, fee='0.50'),
            make_fill('09:45:00', 'AAPL', 'S', '152.50', 100, fee='0.50', pnl='250.00'),
        ]
        trips = processor.process_fills(fills, trade_date)

        assert len(trips) == 1
        trip = trips[0]
        assert trip.id == '2026-02-10-AAPL-1'
        assert trip.direction is Direction.LONG
        assert trip.entry_price == Decimal('150.00')
        assert trip.exit_price == Decimal('152.50')
        assert trip.total_shares == 100
        assert trip.gross_pnl == Decimal('250.00')
        assert trip.net_pnl == Decimal('250.00')
        assert trip.fees == Decimal('1.00')
        assert trip.fill_count == 2
        assert trip.duration_minutes == 15
        assert trip.accounts == ('A1',)
        assert trip.account_type is AccountType.LIVE

    def test_short_round_trip(self, processor, make_fill, trade_date):
        fills = [
            make_fill('09:50:00', 'TSLA', 'SS', '200.00', 50),
            make_fill('10:05:00', 'TSLA', 'B', '199.00', 50, pnl='50.00'),
        ]
        trip = processor.process_fills(fills, trade_date)[0]

        assert trip.direction is Direction.SHORT
        assert trip.entry_price == Decimal('200.00')
        assert trip.exit_price == Decimal('199.00')
        assert trip.net_pnl == Decimal('50.00')

    def test_scaling_uses_weighted_average(self, processor, make_fill, trade_date):
        fills = [
            make_fill('09:30:00', 'AAPL', 'B', '10.00', 100),
            make_fill('09:31:00', 'AAPL', 'B', '11.00', 300),
            make_fill('09:40:00', 'AAPL', 'S', '12.00', 150),
            make_fill('09:41:00', 'AAPL', 'S', '12.40', 250),
        ]
        trip = processor.process_fills(fills, trade_date)[0]

        # (10*100 + 11*300) / 400 = 10.75 ; (12*150 + 12.4*250) / 400 = 12.25
        assert trip.entry_price == Decimal('10.75')
        assert trip.exit_price == Decimal('12.25')
        assert trip.total_shares == 400
        assert trip.fill_count == 4

    def test_accounts_are_kept_apart(self, processor, make_fill, trade_date):
        fills = [
            make_fill('09:31:00', 'AAPL', 'B', '10.00', 100, account='A1'),
            make_fill('09:32:00', 'AAPL', 'B', '10.00', 50, account='TR1'),
            make_fill('09:40:00', 'AAPL', 'S', '11.00', 100, account='A1', pnl='100.00'),
            make_fill('09:41:00', 'AAPL', 'S', '10.50', 50, account='TR1', pnl='25.00'),
        ]
        trips = processor.process_fills(fills, trade_date)

        assert [t.id for t in trips] == ['2026-02-10-AAPL-1', '2026-02-10-AAPL-2']
        assert [t.account_type for t in trips] == [AccountType.LIVE, AccountType.TRAINING]
        assert [t.total_shares for t in trips] == [100, 50]

    def test_consecutive_round_trips_in_one_account(self, processor, make_fill, trade_date):
        fills = [
            make_fill('09:30:00', 'AAPL', 'B', '10.00', 100),
            make_fill('09:35:00', 'AAPL', 'S', '10.50', 100, pnl='50.00'),
            make_fill('10:00:00', 'AAPL', 'SS', '11.00', 40),
            make_fill('10:10:00', 'AAPL', 'B', '10.80', 40, pnl='8.00'),
        ]
        trips = processor.process_fills(fills, trade_date)

        assert [t.id for t in trips] == ['2026-02-10-AAPL-1', '2026-02-10-AAPL-2']
        assert [t.direction for t in trips] == [Direction.LONG, Direction.SHORT]

    def test_unmatched_fill_is_an_open_round_trip(self, processor, make_fill, trade_date):
        trips = processor.process_fills([make_fill('15:55:00', 'AAPL', 'B', '150.00', 100)], trade_date)

        assert len(trips) == 1
        trip = trips[0]
        assert trip.total_shares == 100
        assert trip.exit_price == Decimal('0.00')
        assert trip.fill_count == 1
        assert trip.duration_minutes == 0

    def test_open_remainder_after_closed_round_trip(self, processor, make_fill, trade_date):
        fills = [
            make_fill('09:30:00', 'AAPL', 'B', '10.00', 100),
            make_fill('09:35:00', 'AAPL', 'S', '10.50', 100, pnl='50.00'),
            make_fill('15:00:00', 'AAPL', 'B', '11.00', 20),
        ]
        trips = processor.process_fills(fills, trade_date)
        assert [t.fill_count for t in trips] == [2, 1]

    def test_open_round_trip_uses_configured_prefix(self, make_fill, trade_date):
        processor = TradeProcessor(training_prefix='SIM')
        trips = processor.process_fills([make_fill('15:55:00', 'AAPL', 'B', '150.00', 100, account='SIM7')],
                                        trade_date)
        assert trips[0].account_type is AccountType.TRAINING

    def test_sorted_by_entry_time_across_symbols(self, processor, make_fill, trade_date):
        fills = [
            make_fill('10:05:00', 'TSLA', 'B', '199.00', 50, pnl='50.00'),
            make_fill('09:45:00', 'AAPL', 'S', '152.50', 100, pnl='250.00'),
            make_fill('09:50:00', 'TSLA', 'SS', '200.00', 50),
            make_fill('09:30:00', 'AAPL', 'B', '150.00', 100),
        ]
        trips = processor.process_fills(fills, trade_date)
        assert [t.id for t in trips] == ['2026-02-10-AAPL-1', '2026-02-10-TSLA-1']

    def test_ties_keep_input_order(self, processor, make_fill, trade_date):
        fills = [
            make_fill('09:30:00', 'AAPL', 'B', '10.00', 100),
            make_fill('09:30:00', 'AAPL', 'S', '10.00', 100),
        ]
        trip = processor.process_fills(fills, trade_date)[0]
        assert trip.direction is Direction.LONG
        assert trip.fill_count == 2

    def test_reconstruction_is_deterministic(self, processor, make_fill, trade_date):
        fills = [
            make_fill('09:30:00', 'AAPL', 'B', '150.00', 100),
            make_fill('09:45:00', 'AAPL', 'S', '152.50', 100, pnl='250.00'),
            make_fill('09:50:00', 'TSLA', 'SS', '200.00', 50, account='TR1'),
            make_fill('10:05:00', 'TSLA', 'B', '199.00', 50, account='TR1', pnl='50.00'),
        ]
        first = processor.process_fills(fills, trade_date)
        again = processor.process_fills(list(reversed(fills)), trade_date)
        assert first == again

    def test_pnl_is_conserved(self, processor, make_fill, trade_date):
        fills = [
            make_fill('09:30:00', 'AAPL', 'B', '150.00', 100, pnl='-0.33'),
            make_fill('09:45:00', 'AAPL', 'S', '152.50', 60, pnl='150.10'),
            make_fill('09:46:00', 'AAPL', 'S', '152.60', 40, pnl='100.07'),
            make_fill('09:50:00', 'TSLA', 'SS', '200.00', 50, pnl='0.01'),
            make_fill('10:05:00', 'TSLA', 'B', '201.00', 50, pnl='-50.02'),
            make_fill('11:00:00', 'MSFT', 'B', '400.00', 10, pnl='0.00'),
        ]
        trips = processor.process_fills(fills, trade_date)

        total = sum((t.net_pnl for t in trips), Decimal('0'))
        assert total == round2(sum((f.reported_pnl for f in fills), Decimal('0')))
        assert total == Decimal('199.83')

    def test_positions_close_flat(self, processor, make_fill, trade_date):
        fills = [
            make_fill('09:30:00', 'AAPL', 'B', '10.00', 100),
            make_fill('09:31:00', 'AAPL', 'S', '10.10', 60),
            make_fill('09:32:00', 'AAPL', 'S', '10.20', 40),
            make_fill('09:33:00', 'AAPL', 'SS', '10.30', 30),
            make_fill('09:34:00', 'AAPL', 'B', '10.00', 30),
        ]
        trips = processor.process_fills(fills, trade_date)
        assert [t.fill_count for t in trips] == [3, 2]

    def test_empty_input(self, processor, trade_date):
        assert processor.process_fills([], trade_date) == []

    def test_chart_lookup(self, processor, make_fill, trade_date, tmp_path):
        (tmp_path / 'notes.txt').write_text('x')
        (tmp_path / 'AAPL_0930.png').write_bytes(b'')
        fills = [
            make_fill('09:30:00', 'AAPL', 'B', '150.00', 100),
            make_fill('09:45:00', 'AAPL', 'S', '152.50', 100, pnl='250.00'),
        ]
        trip = processor.process_fills(fills, trade_date, source_dir=tmp_path)[0]
        assert trip.chart == 'AAPL_0930.png'


class TestHelpers:
    """Test duration, chart and manual round trip helpers"""

    def test_duration_rounds_half_up(self):
        assert duration_minutes(time(9, 30), time(9, 30, 30)) == 1
        assert duration_minutes(time(9, 30), time(9, 30, 29)) == 0

    def test_duration_never_negative(self):
        assert duration_minutes(time(10, 0), time(9, 0)) == 0

    def test_find_chart_missing_folder(self, tmp_path):
        assert find_chart_file('AAPL', tmp_path / 'missing') is None
        assert find_chart_file('AAPL', None) is None

    def test_find_chart_is_case_insensitive(self, tmp_path):
        (tmp_path / 'aapl-entry.JPG').write_bytes(b'')
        assert find_chart_file('AAPL', tmp_path) == 'aapl-entry.JPG'

    def test_manual_short_round_trip(self, trade_date):
        trip = build_manual_round_trip('tsla', Direction.SHORT, Decimal('20.00'), Decimal('19.00'), 100,
                                       trade_date, time(10, 0), sequence=2, setup='ORB')
        assert trip.id == '2026-02-10-TSLA-2'
        assert trip.net_pnl == Decimal('100.00')
        assert trip.accounts == ('manual',)
        assert trip.account_type is AccountType.LIVE
        assert trip.fill_count == 0
        assert trip.setup == 'ORB'
