import base58

BASE58_ALPHABET = set("123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz")


def is_valid_address(address: object) -> bool:
    """True if ``address`` looks like a Solana public key (32 bytes, base58)."""
    if not isinstance(address, str):
        return False
    if not (32 <= len(address) <= 44):
        return False
    if not all(c in BASE58_ALPHABET for c in address):
        return False
    try:
        return len(base58.b58decode(address)) == 32
    except ValueError:
        return False


def short(address: str) -> str:
    """Truncated form used in log lines."""
    return f"{address[:8]}..." if len(address) > 8 else address
