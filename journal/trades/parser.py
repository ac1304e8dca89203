# journal/trades/parser.py
"""Parse DAS Trader-style broker exports into canonical fills."""

import csv
import io
import logging
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from .models import Fill, PositionRow, Side, ZERO, parse_time

logger = logging.getLogger(__name__)

# Header: Time,Symbol,Side,Price,Qty,Route,Account,LiqType,ECNFee,P / L,
# Each line carries a trailing comma and the P&L column name has spaces.
PNL_COLUMN = 'P / L'
SUMMARY_SYMBOL = 'Summary'


def _clean(value: Optional[str]) -> str:
    return value.strip() if value else ''


def _decimal(value: Optional[str]) -> Optional[Decimal]:
    text = _clean(value).replace('$', '').replace(',', '')
    if not text:
        return None
    try:
        result = Decimal(text)
    except InvalidOperation:
        return None
    return result if result.is_finite() else None


def _integer(value: Optional[str]) -> Optional[int]:
    number = _decimal(value)
    if number is None or number != number.to_integral_value():
        return None
    return int(number)


class TradeParser:
    """Parse trade executions from broker CSV files."""

    def parse_csv(self, file_path: Path) -> List[Fill]:
        """
        Parse a trades CSV file and return its fills in file order.

        Args:
            file_path: Path to the CSV file
        """
        with open(file_path, 'r', encoding='utf-8-sig', newline='') as file:
            return self.parse_rows(csv.DictReader(file))

    def parse_text(self, content: str) -> List[Fill]:
        return self.parse_rows(csv.DictReader(io.StringIO(content)))

    def parse_rows(self, rows: Iterable[Dict[str, str]]) -> List[Fill]:
        """Normalize raw rows, dropping any that fail validation."""
        fills = []
        skipped = 0

        for row in rows:
            fill = self._parse_row(row)
            if fill is None:
                skipped += 1
                continue
            fills.append(fill)

        if skipped:
            logger.debug(f"Skipped {skipped} malformed row(s)")
        return fills

    def _parse_row(self, row: Dict[str, str]) -> Optional[Fill]:
        """Parse a single row into a Fill, or None if it is malformed."""
        row = {_clean(k): v for k, v in row.items() if k is not None}

        time_text = _clean(row.get('Time'))
        symbol = _clean(row.get('Symbol'))
        side_code = _clean(row.get('Side'))
        price = _decimal(row.get('Price'))
        quantity = _integer(row.get('Qty'))

        if not time_text or not symbol or not side_code:
            logger.debug(f"Missing time/symbol/side, row: {row}")
            return None
        if price is None or price <= 0 or quantity is None or quantity <= 0:
            logger.debug(f"Bad price/quantity, row: {row}")
            return None

        try:
            side = Side.from_code(side_code)
            fill_time = parse_time(time_text)
        except ValueError as e:
            logger.debug(f"Error parsing row: {e}, Row: {row}")
            return None

        fee = _decimal(row.get('ECNFee')) or ZERO
        pnl = _decimal(row.get(PNL_COLUMN)) or ZERO

        return Fill(
            time=fill_time,
            symbol=symbol,
            side=side,
            price=price,
            quantity=quantity,
            route=_clean(row.get('Route')),
            account=_clean(row.get('Account')),
            liquidity_type=_clean(row.get('LiqType')),
            fee=abs(fee),
            reported_pnl=pnl,
        )


class PositionsParser:
    """Parse the end-of-day positions report used to cross-check P&L."""

    def parse_csv(self, file_path: Path) -> List[PositionRow]:
        with open(file_path, 'r', encoding='utf-8-sig', newline='') as file:
            return self.parse_rows(csv.DictReader(file))

    def parse_rows(self, rows: Iterable[Dict[str, str]]) -> List[PositionRow]:
        positions = []
        for row in rows:
            symbol = _clean(row.get('Symbol'))
            if not symbol or symbol == SUMMARY_SYMBOL:
                continue
            positions.append(PositionRow(
                symbol=symbol,
                account=_clean(row.get('Account')),
                type=_clean(row.get('Type')),
                shares=_integer(row.get('Shares')) or 0,
                avg_cost=_decimal(row.get('Avgcost')) or ZERO,
                realized=_decimal(row.get('Realized')) or ZERO,
                unrealized=_decimal(row.get('Unrealized')) or ZERO,
            ))
        return positions

    def summary_realized_pnl(self, source: Union[Path, str]) -> Optional[Decimal]:
        """
        Realized P&L from the report's Summary row.

        Args:
            source: Path to the positions CSV, or its text content

        Returns:
            The realized total, or None when the report has no Summary row
        """
        if isinstance(source, Path):
            with open(source, 'r', encoding='utf-8-sig', newline='') as file:
                rows = list(csv.DictReader(file))
        else:
            rows = list(csv.DictReader(io.StringIO(source)))

        for row in rows:
            if _clean(row.get('Symbol')) == SUMMARY_SYMBOL:
                return _decimal(row.get('Realized')) or ZERO
        return None
