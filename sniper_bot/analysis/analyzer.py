"""Token risk analyzer: holder spread, contract heuristics and 24h volume.

Every network read goes through the shared throttle and is retried with
backoff. A step that still fails degrades to its most conservative value
instead of aborting the evaluation.
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import TypeVar

import base58
import httpx

from sniper_bot.analysis.contract import mint_authority, risk_level_for, scan_contract
from sniper_bot.analysis.holders import analyze_holder_distribution
from sniper_bot.analysis.models import (
    ContractFlags,
    HolderDistribution,
    RiskLevel,
    Token,
    TokenAnalysis,
)
from sniper_bot.analysis.volume import is_within_window, volume_from_transaction
from sniper_bot.chain.solana_rpc import SolanaRpcClient
from sniper_bot.config import settings
from sniper_bot.errors import PersistenceError, SniperError
from sniper_bot.storage.base import Persistence
from sniper_bot.utils.address import is_valid_address, short
from sniper_bot.utils.retry import retry
from sniper_bot.utils.throttle import RequestThrottle

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Failures a step swallows and degrades on
_STEP_ERRORS = (SniperError, httpx.HTTPError, ValueError, KeyError, TypeError)


class TokenRiskAnalyzer:
    def __init__(
        self,
        rpc: SolanaRpcClient,
        throttle: RequestThrottle | None = None,
        persistence: Persistence | None = None,
        *,
        holder_min: int | None = None,
        concentration_max_pct: float | None = None,
        volume_min: float | None = None,
        volume_window_hours: int | None = None,
        signature_limit: int | None = None,
        max_attempts: int | None = None,
        base_delay: float | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._rpc = rpc
        self._throttle = throttle or RequestThrottle(settings.rpc_min_interval_seconds)
        self._persistence = persistence
        self.holder_min = holder_min if holder_min is not None else settings.holder_min
        self.concentration_max_pct = (
            concentration_max_pct if concentration_max_pct is not None
            else settings.concentration_max_pct
        )
        self.volume_min = volume_min if volume_min is not None else settings.volume_min
        self.volume_window_hours = volume_window_hours or settings.volume_window_hours
        self.signature_limit = signature_limit or settings.volume_signature_limit
        self._max_attempts = max_attempts or settings.retry_max_attempts
        self._base_delay = base_delay if base_delay is not None else settings.retry_base_delay_seconds
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def _fetch(self, call: Callable[[], Awaitable[T]]) -> T:
        async def attempt() -> T:
            await self._throttle.await_window()
            return await call()

        return await retry(attempt, self._max_attempts, self._base_delay)

    # --- steps ---

    async def holder_distribution(self, mint: str) -> HolderDistribution:
        try:
            holders = await self._fetch(lambda: self._rpc.get_token_holders(mint))
        except _STEP_ERRORS as exc:
            logger.warning("Holder fetch failed for %s: %s", short(mint), exc)
            holders = []
        return analyze_holder_distribution(holders)

    async def contract_flags(self, mint: str) -> ContractFlags:
        try:
            mint_data = await self._fetch(lambda: self._rpc.get_account_info(mint))
            if mint_data is None:
                raise ValueError("mint account not found")

            data = mint_data
            authority = mint_authority(mint_data)
            if authority is not None:
                authority_address = base58.b58encode(authority).decode()
                authority_data = await self._fetch(
                    lambda: self._rpc.get_account_info(authority_address)
                )
                if authority_data:
                    data += authority_data
        except _STEP_ERRORS as exc:
            logger.warning("Contract fetch failed for %s: %s", short(mint), exc)
            return ContractFlags.worst_case()
        return scan_contract(data)

    async def volume_24h(self, mint: str) -> float:
        now = self._clock()
        try:
            signatures = await self._fetch(
                lambda: self._rpc.get_signatures_for_address(mint, self.signature_limit)
            )
        except _STEP_ERRORS as exc:
            logger.warning("Signature fetch failed for %s: %s", short(mint), exc)
            return 0.0

        recent = [
            s.get("signature") for s in signatures
            if s.get("signature")
            and is_within_window(s.get("blockTime"), now, self.volume_window_hours)
        ]

        volume = 0.0
        skipped = 0
        for sig in recent:
            try:
                tx = await self._fetch(lambda sig=sig: self._rpc.get_transaction(sig))
                volume += volume_from_transaction(tx, mint)
            except _STEP_ERRORS as exc:
                logger.debug("Skipping tx %s: %s", sig[:12], exc)
                skipped += 1

        if skipped:
            logger.info("Volume for %s: skipped %d/%d txs", short(mint), skipped, len(recent))
        return volume

    # --- verdict ---

    def _details(self, dist: HolderDistribution, flags: ContractFlags, volume: float) -> list[str]:
        details = []
        if dist.unique_holders < self.holder_min:
            details.append(f"Only {dist.unique_holders} holders")
        if dist.max_holder_percentage > self.concentration_max_pct:
            details.append(f"Max holder owns {dist.max_holder_percentage:.2f}%")
        if flags.has_unlimited_mint:
            details.append("Unlimited mint function detected")
        if flags.has_pausable_trading:
            details.append("Pausable trading function detected")
        if flags.has_blacklist:
            details.append("Blacklist function detected")
        if flags.has_ownership_transfer:
            details.append("Ownership transfer function detected")
        if volume < self.volume_min:
            details.append(f"Low 24h volume: ${volume:.2f}")
        return details

    def verdict(
        self, mint: str, dist: HolderDistribution, flags: ContractFlags, volume: float,
    ) -> TokenAnalysis:
        risk_level = risk_level_for(flags)
        if dist.unique_holders == 0:
            risk_level = RiskLevel.HIGH

        is_safe = (
            dist.unique_holders >= self.holder_min
            and dist.max_holder_percentage <= self.concentration_max_pct
            and not flags.has_unlimited_mint
            and not flags.has_pausable_trading
            and not flags.has_blacklist
            and volume >= self.volume_min
            and risk_level is RiskLevel.LOW
        )

        return TokenAnalysis(
            token_address=mint,
            total_holders=dist.unique_holders,
            max_holder_percentage=dist.max_holder_percentage,
            has_unlimited_mint=flags.has_unlimited_mint,
            has_pausable_trading=flags.has_pausable_trading,
            has_blacklist=flags.has_blacklist,
            has_ownership_transfer=flags.has_ownership_transfer,
            volume_24h=volume,
            risk_level=risk_level,
            is_safe=is_safe,
            details=self._details(dist, flags, volume),
        )

    def worst_case(self, mint: str, reason: str) -> TokenAnalysis:
        flags = ContractFlags.worst_case()
        return TokenAnalysis(
            token_address=mint,
            has_unlimited_mint=flags.has_unlimited_mint,
            has_pausable_trading=flags.has_pausable_trading,
            has_blacklist=flags.has_blacklist,
            has_ownership_transfer=flags.has_ownership_transfer,
            risk_level=RiskLevel.HIGH,
            is_safe=False,
            details=[reason],
        )

    async def evaluate(self, token: Token) -> TokenAnalysis:
        mint = token.address
        if not is_valid_address(mint):
            logger.warning("Invalid token address %r, using worst-case verdict", mint)
            analysis = self.worst_case(str(mint), "Invalid token address")
        else:
            dist = await self.holder_distribution(mint)
            flags = await self.contract_flags(mint)
            volume = await self.volume_24h(mint)
            analysis = self.verdict(mint, dist, flags, volume)

        logger.info(
            "Analysis %s: safe=%s risk=%s holders=%d top=%.2f%% vol=%.2f",
            short(analysis.token_address),
            analysis.is_safe,
            analysis.risk_level.value,
            analysis.total_holders,
            analysis.max_holder_percentage,
            analysis.volume_24h,
        )

        if self._persistence is not None:
            try:
                if not await self._persistence.record_analysis(analysis):
                    logger.warning("Analysis for %s not persisted", short(mint))
            except PersistenceError as exc:
                logger.error("Persisting analysis for %s failed: %s", short(mint), exc)
            except Exception:
                logger.exception("Persisting analysis for %s failed", short(mint))

        return analysis
