# journal/tests/test_parser.py
"""
Module: Parser Tests
Purpose: Broker CSV rows become Fills; malformed rows are skipped, not fatal
"""

from datetime import time
from decimal import Decimal

import pytest

from journal.trades.models import Side
from journal.trades.parser import PositionsParser, TradeParser

HEADER = "Time,Symbol,Side,Price,Qty,Route,Account,LiqType,ECNFee,P / L,"


def csv_text(*rows):
    return "\n".join([HEADER] + [r + "," for r in rows]) + "\n"


class TestTradeParser:
    """Test trades CSV parsing"""

    @pytest.fixture
    def parser(self):
        return TradeParser()

    def test_parses_valid_row(self, parser):
        fills = parser.parse_text(csv_text("09:30:00,AAPL,B,150.00,100,ARCA,A1,Add,-1.00,0.00"))

        assert len(fills) == 1
        fill = fills[0]
        assert fill.time == time(9, 30)
        assert fill.symbol == "AAPL"
        assert fill.side is Side.BUY
        assert fill.price == Decimal("150.00")
        assert fill.quantity == 100
        assert fill.route == "ARCA"
        assert fill.account == "A1"
        assert fill.liquidity_type == "Add"
        assert fill.fee == Decimal("1.00")
        assert fill.reported_pnl == Decimal("0.00")

    def test_all_sides(self, parser):
        fills = parser.parse_text(csv_text(
            "09:30:00,AAPL,B,150,100,,A1,,0,0",
            "09:31:00,AAPL,S,151,100,,A1,,0,100",
            "09:32:00,AAPL,SS,151,100,,A1,,0,0",
        ))
        assert [f.side for f in fills] == [Side.BUY, Side.SELL, Side.SELL_SHORT]
        assert [f.signed_quantity for f in fills] == [100, -100, -100]

    @pytest.mark.parametrize("row", [
        ",AAPL,B,150.00,100,ARCA,A1,Add,0,0",         # no time
        "09:30:00,,B,150.00,100,ARCA,A1,Add,0,0",     # no symbol
        "09:30:00,AAPL,,150.00,100,ARCA,A1,Add,0,0",  # no side
        "09:30:00,AAPL,X,150.00,100,ARCA,A1,Add,0,0",  # unknown side
        "09:30:00,AAPL,B,abc,100,ARCA,A1,Add,0,0",
        "09:30:00,AAPL,B,0,100,ARCA,A1,Add,0,0",
        "09:30:00,AAPL,B,150.00,0,ARCA,A1,Add,0,0",
        "09:30:00,AAPL,B,150.00,-5,ARCA,A1,Add,0,0",
        "09:30:00,AAPL,B,150.00,ten,ARCA,A1,Add,0,0",
        "noon,AAPL,B,150.00,100,ARCA,A1,Add,0,0",
    ])
    def test_malformed_rows_are_skipped(self, parser, row):
        fills = parser.parse_text(csv_text(row, "09:45:00,MSFT,S,400.00,10,ARCA,A1,Add,0,5.00"))
        assert [f.symbol for f in fills] == ["MSFT"]

    def test_unparseable_fee_and_pnl_default_to_zero(self, parser):
        fills = parser.parse_text(csv_text("09:30:00,AAPL,B,150.00,100,ARCA,A1,Add,n/a,"))
        assert fills[0].fee == Decimal("0")
        assert fills[0].reported_pnl == Decimal("0")

    def test_file_order_is_kept(self, parser):
        fills = parser.parse_text(csv_text(
            "09:45:00,AAPL,S,152.50,100,ARCA,A1,Add,0,250",
            "09:30:00,AAPL,B,150.00,100,ARCA,A1,Add,0,0",
        ))
        assert [f.time for f in fills] == [time(9, 45), time(9, 30)]

    def test_parse_csv_handles_bom(self, parser, tmp_path):
        path = tmp_path / "trades.csv"
        path.write_text(csv_text("09:30:00,AAPL,B,150.00,100,ARCA,A1,Add,0,0"), encoding="utf-8-sig")
        assert len(parser.parse_csv(path)) == 1

    def test_header_only(self, parser):
        assert parser.parse_text(HEADER + "\n") == []


class TestPositionsParser:
    """Test the positions report used for reconciliation"""

    REPORT = "\n".join([
        "Symbol,Account,Type,Shares,Avgcost,Realized,Unrealized",
        "AAPL,A1,Margin,0,150.00,249.50,0",
        "TSLA,A1,Margin,0,200.00,49.70,0",
        "Summary,,,,,299.20,0",
    ])

    @pytest.fixture
    def parser(self):
        return PositionsParser()

    def test_summary_realized_pnl(self, parser):
        assert parser.summary_realized_pnl(self.REPORT) == Decimal("299.20")

    def test_missing_summary_row(self, parser):
        report = "\n".join(self.REPORT.splitlines()[:-1])
        assert parser.summary_realized_pnl(report) is None

    def test_summary_from_file(self, parser, tmp_path):
        path = tmp_path / "positions.csv"
        path.write_text(self.REPORT, encoding="utf-8")
        assert parser.summary_realized_pnl(path) == Decimal("299.20")

    def test_rows_skip_summary(self, parser, tmp_path):
        path = tmp_path / "positions.csv"
        path.write_text(self.REPORT, encoding="utf-8")
        rows = parser.parse_csv(path)
        assert [r.symbol for r in rows] == ["AAPL", "TSLA"]
        assert rows[0].realized == Decimal("249.50")
        assert rows[0].avg_cost == Decimal("150.00")
