from datetime import datetime, timedelta, timezone


def is_within_window(block_time: int | None, now: datetime, hours: int = 24) -> bool:
    """True if a unix ``block_time`` falls inside the trailing window."""
    if not block_time:
        return False
    ts = datetime.fromtimestamp(block_time, tz=timezone.utc)
    return ts > now - timedelta(hours=hours)


def _ui_amount(balance: dict) -> float:
    ui = balance.get("uiTokenAmount") or {}
    amount = ui.get("uiAmount")
    if amount is None:
        try:
            amount = float(ui.get("uiAmountString") or 0)
        except (TypeError, ValueError):
            amount = 0.0
    return float(amount)


def volume_from_transaction(tx: dict | None, mint: str) -> float:
    """Sum of absolute per-account balance changes of ``mint`` in one transaction.

    Pre/post snapshots are matched by account index; an account that only
    appears on one side counts from/to zero.
    """
    if not tx:
        return 0.0
    meta = tx.get("meta") or {}
    pre = meta.get("preTokenBalances")
    post = meta.get("postTokenBalances")
    if pre is None or post is None:
        return 0.0

    before = {b["accountIndex"]: _ui_amount(b) for b in pre if b.get("mint") == mint}
    after = {b["accountIndex"]: _ui_amount(b) for b in post if b.get("mint") == mint}

    return sum(
        abs(after.get(idx, 0.0) - before.get(idx, 0.0))
        for idx in before.keys() | after.keys()
    )
