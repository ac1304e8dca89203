# journal/reporting/daily_log.py
"""Daily trade log documents (YAML on disk, JSON for dry runs)."""

import json
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Dict, List

import yaml

from ..analytics.daily import DailySummary, summarize_day
from ..exceptions import TradeLogError
from ..trades.models import DATE_FORMAT, RoundTrip, parse_date

logger = logging.getLogger(__name__)


@dataclass
class DailyLog:
    """One trading day: where it came from, its summary and its round trips."""
    date: date
    source: str
    summary: DailySummary
    trades: List[RoundTrip] = field(default_factory=list)

    @classmethod
    def build(cls, trade_date: date, source: str, trades: List[RoundTrip]) -> 'DailyLog':
        return cls(date=trade_date, source=source, summary=summarize_day(trades), trades=list(trades))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'date': self.date.strftime(DATE_FORMAT),
            'source': self.source,
            'summary': self.summary.to_dict(),
            'trades': [t.to_dict() for t in self.trades],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DailyLog':
        if not data or 'date' not in data or 'trades' not in data:
            raise ValueError("Daily log needs 'date' and 'trades'")

        trade_date = parse_date(data['date'])
        trades = []
        for item in data.get('trades') or []:
            item = dict(item)
            item.setdefault('date', trade_date.strftime(DATE_FORMAT))
            trades.append(RoundTrip.from_dict(item))

        # Summaries are derived data; rebuild when missing
        if data.get('summary'):
            summary = DailySummary.from_dict(data['summary'])
        else:
            summary = summarize_day(trades)

        return cls(date=trade_date, source=data.get('source') or '', summary=summary, trades=trades)


def daily_log_to_yaml(log: DailyLog) -> str:
    return yaml.safe_dump(log.to_dict(), sort_keys=False, allow_unicode=True)


def daily_log_to_json(log: DailyLog) -> str:
    return json.dumps(log.to_dict(), indent=2)


def daily_log_path(trade_log_dir: Path, trade_date: date) -> Path:
    return Path(trade_log_dir) / f"{trade_date.strftime(DATE_FORMAT)}.yaml"


def write_daily_log(trade_log_dir: Path, log: DailyLog) -> Path:
    """Write the log as YAML, replacing any earlier file for the same date."""
    path = daily_log_path(trade_log_dir, log.date)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        f.write(daily_log_to_yaml(log))
    logger.debug(f"Daily log written to {path}")
    return path


def read_daily_log(path: Path) -> DailyLog:
    """
    Load one YAML daily log.

    Raises:
        TradeLogError: the file is not valid YAML or not a daily log
    """
    with open(path, 'r', encoding='utf-8') as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise TradeLogError(path, f"invalid YAML ({e})")
    if not isinstance(data, dict):
        raise TradeLogError(path, "expected a mapping with 'date' and 'trades'")
    try:
        return DailyLog.from_dict(data)
    except (ValueError, KeyError, TypeError) as e:
        raise TradeLogError(path, str(e))


def load_logs_in_range(trade_log_dir: Path, start: date, end: date) -> List[DailyLog]:
    """
    Every daily log between two dates inclusive; days without a file are skipped.

    Raises:
        TradeLogError: a log in the range cannot be read
    """
    logs = []
    current = start
    while current <= end:
        path = daily_log_path(trade_log_dir, current)
        if path.exists():
            logs.append(read_daily_log(path))
        current += timedelta(days=1)
    return logs
