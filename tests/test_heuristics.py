from datetime import timedelta

import pytest

from sniper_bot.analysis.contract import mint_authority, risk_level_for, scan_contract
from sniper_bot.analysis.holders import analyze_holder_distribution
from sniper_bot.analysis.models import ContractFlags, RiskLevel
from sniper_bot.analysis.volume import is_within_window, volume_from_transaction
from sniper_bot.utils.address import is_valid_address, short
from tests.fakes import NOW, new_address, swap_tx


# --- holders ---

def test_holders_collapse_by_address():
    dist = analyze_holder_distribution([("a", 30), ("b", 50), ("a", 20)])
    assert dist.unique_holders == 2
    assert dist.max_holder_percentage == pytest.approx(50.0)


def test_zero_balances_are_not_holders():
    dist = analyze_holder_distribution([("a", 100), ("b", 0), ("c", 0)])
    assert dist.unique_holders == 1
    assert dist.max_holder_percentage == pytest.approx(100.0)


def test_no_holders():
    dist = analyze_holder_distribution([])
    assert dist.unique_holders == 0
    assert dist.max_holder_percentage == 0.0


def test_even_distribution():
    dist = analyze_holder_distribution([(str(i), 10) for i in range(5)])
    assert dist.unique_holders == 5
    assert dist.max_holder_percentage == pytest.approx(20.0)


# --- contract ---

def test_clean_bytes_have_no_flags():
    flags = scan_contract(b"\x00" * 82 + b"transfer approve")
    assert flags == ContractFlags()
    assert risk_level_for(flags) is RiskLevel.LOW


def test_mint_without_cap_is_unlimited():
    assert scan_contract(b"fn MintTo(amount)").has_unlimited_mint


def test_mint_with_cap_is_not_unlimited():
    assert not scan_contract(b"fn mintTo(amount) { require(amount <= maxSupply) }").has_unlimited_mint


@pytest.mark.parametrize("word", [b"Pause", b"FREEZE", b"suspend"])
def test_pause_patterns(word):
    assert scan_contract(b"ix_" + word).has_pausable_trading


@pytest.mark.parametrize("word", [b"blacklist", b"BlockList", b"excludeAccount"])
def test_blacklist_patterns(word):
    assert scan_contract(word).has_blacklist


def test_ownership_transfer_pattern():
    assert scan_contract(b"transferOwnership").has_ownership_transfer


@pytest.mark.parametrize(
    "flags, level",
    [
        (ContractFlags(), RiskLevel.LOW),
        (ContractFlags(has_blacklist=True), RiskLevel.MEDIUM),
        (ContractFlags(has_blacklist=True, has_pausable_trading=True), RiskLevel.MEDIUM),
        (ContractFlags(has_blacklist=True, has_pausable_trading=True, has_unlimited_mint=True), RiskLevel.HIGH),
        (ContractFlags.worst_case(), RiskLevel.HIGH),
    ],
)
def test_risk_level_by_flag_count(flags, level):
    assert risk_level_for(flags) is level


def test_mint_authority_present():
    key = bytes(range(32))
    data = (1).to_bytes(4, "little") + key + bytes(46)
    assert mint_authority(data) == key


def test_mint_authority_absent():
    assert mint_authority(bytes(82)) is None
    assert mint_authority(b"\x01\x00") is None


# --- volume ---

def test_window_includes_recent_and_excludes_old():
    now_ts = int(NOW.timestamp())
    assert is_within_window(now_ts - 3600, NOW)
    assert not is_within_window(now_ts - int(timedelta(hours=25).total_seconds()), NOW)
    assert not is_within_window(None, NOW)


def test_volume_sums_absolute_changes():
    mint = new_address()
    tx = swap_tx(mint, 100.0, 40.0)
    assert volume_from_transaction(tx, mint) == pytest.approx(60.0)


def test_volume_ignores_other_mints():
    mint = new_address()
    tx = swap_tx(new_address(), 0.0, 500.0)
    assert volume_from_transaction(tx, mint) == 0.0


def test_volume_matches_accounts_by_index():
    mint = new_address()
    tx = {
        "meta": {
            "preTokenBalances": [
                {"accountIndex": 1, "mint": mint, "uiTokenAmount": {"uiAmount": 10.0}},
                {"accountIndex": 2, "mint": mint, "uiTokenAmount": {"uiAmount": 5.0}},
            ],
            "postTokenBalances": [
                {"accountIndex": 2, "mint": mint, "uiTokenAmount": {"uiAmount": 15.0}},
                {"accountIndex": 3, "mint": mint, "uiTokenAmount": {"uiAmountString": "2.5"}},
            ],
        }
    }
    # idx1: 10 -> 0, idx2: 5 -> 15, idx3: 0 -> 2.5
    assert volume_from_transaction(tx, mint) == pytest.approx(22.5)


def test_volume_missing_meta():
    assert volume_from_transaction(None, "x") == 0.0
    assert volume_from_transaction({"meta": None}, "x") == 0.0


# --- addresses ---

def test_valid_address():
    assert is_valid_address(new_address())
    assert is_valid_address("EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v")


@pytest.mark.parametrize("value", ["", "abc", "0" * 44, "O" * 40, None, 42, "1" * 45])
def test_invalid_address(value):
    assert not is_valid_address(value)


def test_short():
    assert short("EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v") == "EPjFWdd5..."
