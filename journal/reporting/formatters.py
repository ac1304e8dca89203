# journal/reporting/formatters.py
"""
Module: Text Formatters
Purpose: Render round trips, daily summaries and statistics as console text
"""

from decimal import Decimal
from typing import List, Sequence

from ..analytics.daily import AccountSummary
from ..analytics.stats import GroupStat, PeriodStats
from ..trades.models import AccountType, RoundTrip, format_time
from .daily_log import DailyLog

ACCOUNT_TAGS = {
    AccountType.LIVE: 'LIVE',
    AccountType.TRAINING: 'TRAIN',
    AccountType.MIXED: 'MIX',
}

REFLECTION_QUESTIONS = [
    "What was your best trade today and why?",
    "What was your worst trade today and why?",
    "Did you follow your playbook on every trade?",
    "What is the one thing you will improve tomorrow?",
    "Did you honor your stops and risk rules?",
    "Rate your discipline today (1-10):",
]


def money(value: Decimal, signed: bool = False) -> str:
    """$12.50, or +$12.50 / $-3.00 when signed."""
    sign = '+' if signed and value >= 0 else ''
    return f"{sign}${value:.2f}"


def format_account_summary(by_account: AccountSummary) -> List[str]:
    live, training = by_account.live, by_account.training
    if live.trades == 0 and training.trades == 0:
        return []

    lines = ["", "  By account:"]
    if live.trades > 0:
        mixed = f", {by_account.mixed_trades} mixed" if by_account.mixed_trades else ""
        lines.append(f"    LIVE:      {live.trades} trades{mixed}  {money(live.pnl, True)}  "
                     f"({live.win_rate:.0f}% win rate)")
    if training.trades > 0:
        lines.append(f"    TRAINING:  {training.trades} trades  {money(training.pnl, True)}  "
                     f"({training.win_rate:.0f}% win rate)")
    return lines


def format_summary(log: DailyLog) -> str:
    s = log.summary
    lines = [
        f"  Date:          {log.date.isoformat()}",
        f"  Source:        {log.source}",
        f"  Symbols:       {', '.join(s.symbols)}",
        f"  Total trades:  {s.total_trades}",
        f"  Total P&L:     {money(s.total_net_pnl)}",
        f"  Total fees:    {money(s.total_fees)}",
        f"  Win rate:      {s.win_rate:.1f}% ({s.winners}W / {s.losers}L / {s.breakeven}BE)",
    ]
    lines.extend(format_account_summary(s.by_account))
    return "\n".join(lines)


def format_trades(trades: Sequence[RoundTrip]) -> str:
    rule = "  " + "-" * 100
    header = "  " + "".join([
        "ID".ljust(22), "Acct".ljust(6), "Side".ljust(6), "Shares".ljust(8),
        "Entry".ljust(10), "Exit".ljust(10), "P&L".ljust(12), "Time".ljust(19), "Setup",
    ])
    lines = ["  Trades:", rule, header, rule]

    for t in trades:
        lines.append("  " + "".join([
            t.id.ljust(22),
            ACCOUNT_TAGS[t.account_type].ljust(6),
            t.direction.value.ljust(6),
            str(t.total_shares).ljust(8),
            f"{t.entry_price:.2f}".ljust(10),
            f"{t.exit_price:.2f}".ljust(10),
            money(t.net_pnl, True).ljust(12),
            f"{format_time(t.entry_time)}-{format_time(t.exit_time)}".ljust(19),
            t.setup or "",
        ]))
    lines.append(rule)
    return "\n".join(lines)


def format_group_stats(stats: Sequence[GroupStat], title: str, key_label: str,
                       key_width: int = 22, upper_keys: bool = False) -> str:
    width = key_width + 48
    rule = "  " + "-" * width
    lines = [
        f"=== {title} ===",
        "",
        "  " + "".join([key_label.ljust(key_width), "Trades".ljust(8), "P&L".ljust(12),
                        "Avg P&L".ljust(12), "Win%".ljust(8), "W/L"]),
        rule,
    ]
    for s in stats:
        lines.append("  " + "".join([
            (s.key.upper() if upper_keys else s.key).ljust(key_width),
            str(s.trade_count).ljust(8),
            money(s.total_pnl, True).ljust(12),
            money(s.avg_pnl, True).ljust(12),
            f"{s.win_rate:.0f}%".ljust(8),
            f"{s.winners}/{s.losers}",
        ]))
    lines.append(rule)
    return "\n".join(lines)


def format_period_stats(stats: PeriodStats, period_label: str, symbol: str = None) -> str:
    profit_factor = "N/A (no losers)" if stats.profit_factor is None else f"{stats.profit_factor:.2f}"
    lines = [f"=== {period_label} Stats ===", ""]
    if symbol:
        lines.append(f"  Symbol:         {symbol.upper()}")
    lines.extend([
        f"  Days traded:    {stats.days_traded}",
        f"  Total trades:   {stats.total_trades}",
        f"  Total P&L:      {money(stats.total_pnl)}",
        f"  Total fees:     {money(stats.total_fees)}",
        f"  Win rate:       {stats.win_rate:.1f}%",
        f"  Winners:        {stats.winners}",
        f"  Losers:         {stats.losers}",
        f"  Avg win:        {money(stats.avg_win)}",
        f"  Avg loss:       {money(stats.avg_loss)}",
        f"  Profit factor:  {profit_factor}",
    ])
    lines.extend(format_account_summary(stats.by_account))

    lines.extend(["", "  Per-symbol breakdown:"])
    for row in stats.by_symbol:
        lines.append(f"    {row.symbol.ljust(8)} {row.trade_count} trades  {money(row.total_pnl, True)}")
    return "\n".join(lines)


def format_review(log: DailyLog, setup_stats: Sequence[GroupStat]) -> str:
    """End-of-day review: summary, best/worst trade, setups, trades, reflection prompts."""
    lines = [f"=== Session Review: {log.date.isoformat()} ===", "", format_summary(log)]

    ranked = sorted(log.trades, key=lambda t: t.net_pnl, reverse=True)
    if ranked:
        best, worst = ranked[0], ranked[-1]
        lines.extend([
            "",
            f"  Best trade:  {best.id} ({best.symbol}) {money(best.net_pnl, True)}",
            f"  Worst trade: {worst.id} ({worst.symbol}) {money(worst.net_pnl, True)}",
        ])

    lines.extend(["", "  Setup breakdown:"])
    for s in setup_stats:
        lines.append(f"    {s.key.ljust(20)} {s.trade_count} trades  {money(s.total_pnl, True)}")

    lines.extend(["", format_trades(log.trades), "", "  === Reflection Questions ==="])
    for number, question in enumerate(REFLECTION_QUESTIONS, 1):
        lines.append(f"  {number}. {question}")
    return "\n".join(lines)
