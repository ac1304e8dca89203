# journal/trades/classifier.py
"""Classify a round trip by the accounts it touched."""

from typing import Iterable

from .models import AccountType


def classify_accounts(accounts: Iterable[str], training_prefix: str) -> AccountType:
    """
    Live, training or mixed, by the training account prefix.

    Args:
        accounts: Accounts touched by the round trip (duplicates allowed)
        training_prefix: Prefix that marks simulated accounts, e.g. 'TR'
    """
    distinct = set(accounts)
    has_training = any(a.startswith(training_prefix) for a in distinct)
    has_live = any(not a.startswith(training_prefix) for a in distinct)

    if has_training and has_live:
        return AccountType.MIXED
    if has_training:
        return AccountType.TRAINING
    return AccountType.LIVE
