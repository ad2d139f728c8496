"""Heuristic scan of raw account/program bytes for risky capabilities.

This is a substring search over the lower-cased bytes, not decompilation.
False positives and negatives are expected.
"""

from sniper_bot.analysis.models import ContractFlags, RiskLevel

MINT_PATTERNS = (b"mintto", b"mint_to")
MAX_SUPPLY_PATTERNS = (b"maxsupply", b"max_supply", b"supplycap", b"supply_cap")
PAUSE_PATTERNS = (b"pause", b"freeze", b"suspend")
BLACKLIST_PATTERNS = (b"blacklist", b"blocklist", b"denylist", b"excludeaccount")
OWNERSHIP_PATTERNS = (
    b"transferownership",
    b"transfer_ownership",
    b"setauthority",
    b"set_authority",
)


def _contains_any(data: bytes, patterns: tuple[bytes, ...]) -> bool:
    return any(p in data for p in patterns)


def scan_contract(data: bytes) -> ContractFlags:
    lowered = data.lower()
    has_mint = _contains_any(lowered, MINT_PATTERNS)
    has_guard = _contains_any(lowered, MAX_SUPPLY_PATTERNS)
    return ContractFlags(
        has_unlimited_mint=has_mint and not has_guard,
        has_pausable_trading=_contains_any(lowered, PAUSE_PATTERNS),
        has_blacklist=_contains_any(lowered, BLACKLIST_PATTERNS),
        has_ownership_transfer=_contains_any(lowered, OWNERSHIP_PATTERNS),
    )


def risk_level_for(flags: ContractFlags) -> RiskLevel:
    """0 flags -> LOW, 1-2 -> MEDIUM, 3+ -> HIGH."""
    n = flags.count
    if n == 0:
        return RiskLevel.LOW
    if n <= 2:
        return RiskLevel.MEDIUM
    return RiskLevel.HIGH


def mint_authority(mint_data: bytes) -> bytes | None:
    """Mint authority pubkey bytes from an SPL mint account, if set.

    Mint layout starts with COption<Pubkey>: u32 tag at [0:4], key at [4:36].
    """
    if len(mint_data) < 36:
        return None
    if int.from_bytes(mint_data[0:4], "little") != 1:
        return None
    return mint_data[4:36]
