"""Holder concentration from raw token account balances."""

from collections import defaultdict
from collections.abc import Iterable

from sniper_bot.analysis.models import HolderDistribution


def analyze_holder_distribution(holders: Iterable[tuple[str, int]]) -> HolderDistribution:
    """Collapse (address, balance) pairs by address and measure the top share.

    Zero-balance accounts are not holders. With no holders the top share is
    reported as 0; callers treat that case as worst-case concentration.
    """
    balances: dict[str, int] = defaultdict(int)
    for address, amount in holders:
        if amount > 0:
            balances[address] += amount

    if not balances:
        return HolderDistribution(unique_holders=0, max_holder_percentage=0.0)

    total = sum(balances.values())
    top = max(balances.values())
    pct = min(top / total * 100, 100.0)
    return HolderDistribution(unique_holders=len(balances), max_holder_percentage=pct)
