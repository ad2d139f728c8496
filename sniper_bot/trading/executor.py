"""Trade executor: quote -> route -> sign -> submit -> confirm.

Each attempt starts from a fresh quote. Transient failures before submission
retry the whole attempt after a fixed delay. Once a transaction has been
submitted it is never resubmitted: a lost confirmation becomes a failed
trade rather than a second purchase.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from sniper_bot.config import settings
from sniper_bot.errors import (
    NoRouteFound,
    NotInitialized,
    SniperError,
    TransactionFailed,
    TransientNetworkError,
)
from sniper_bot.storage.base import Persistence
from sniper_bot.trading.gateway import SwapGateway
from sniper_bot.trading.models import PurchaseState, Route, TradeConfig
from sniper_bot.utils.address import is_valid_address, short
from sniper_bot.utils.single_flight import SingleFlight
from sniper_bot.utils.throttle import RequestThrottle
from sniper_bot.wallet.key_manager import SigningKeyManager

logger = logging.getLogger(__name__)

# States from which the attempt can no longer be abandoned
COMMITTED_STATES = frozenset({PurchaseState.SIGNED, PurchaseState.SUBMITTED})


@dataclass
class PurchaseAttempt:
    """Progress of one ``execute_purchase`` call, visible to the caller."""

    token_address: str
    state: PurchaseState = PurchaseState.IDLE
    attempts: int = 0
    route: Route | None = None
    signature: str | None = None
    history: list[PurchaseState] = field(default_factory=list)

    def advance(self, state: PurchaseState) -> None:
        self.state = state
        self.history.append(state)

    @property
    def committed(self) -> bool:
        return self.state in COMMITTED_STATES


class TradeExecutor:
    def __init__(
        self,
        gateway: SwapGateway,
        key_manager: SigningKeyManager,
        persistence: Persistence | None = None,
        throttle: RequestThrottle | None = None,
        *,
        reference_mint: str | None = None,
        reference_decimals: int | None = None,
        slippage_bps: int | None = None,
        max_retries: int | None = None,
        retry_delay: float | None = None,
        commitment: str | None = None,
        status_checks: int | None = None,
        status_interval: float | None = None,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self._gateway = gateway
        self._keys = key_manager
        self._persistence = persistence
        self._throttle = throttle or RequestThrottle(settings.aggregator_min_interval_seconds)
        self.reference_mint = reference_mint or settings.reference_mint
        self.reference_decimals = (
            reference_decimals if reference_decimals is not None else settings.reference_decimals
        )
        self.slippage_bps = slippage_bps if slippage_bps is not None else settings.slippage_bps
        self.max_retries = max_retries or settings.trade_max_retries
        self.retry_delay = retry_delay if retry_delay is not None else settings.trade_retry_delay_seconds
        self.commitment = commitment or settings.rpc_commitment
        self.status_checks = max(1, status_checks or settings.send_status_checks)
        self.status_interval = (
            status_interval if status_interval is not None else settings.send_status_interval_seconds
        )
        self._sleep = sleep

        self._session = SingleFlight(self._setup, name="trade-executor")
        self._config: TradeConfig | None = None

    # --- session ---

    async def _setup(self) -> None:
        await self._gateway.prepare()
        if self._persistence is not None:
            self._config = await self._persistence.get_active_config()
            if self._config:
                logger.info(
                    "Trade config loaded: max_trade_amount=%s active=%s",
                    self._config.max_trade_amount, self._config.is_active,
                )

    async def initialize(self, force: bool = False) -> None:
        await self._session.ensure(force=force)

    def release(self) -> None:
        self._session.reset()
        self._config = None

    @property
    def config(self) -> TradeConfig | None:
        return self._config

    @property
    def is_ready(self) -> bool:
        """Both the session and a signing key must be present."""
        return self._session.is_ready and self._keys.has_key

    # --- purchase ---

    def _to_units(self, amount: float) -> int:
        return int(round(amount * 10 ** self.reference_decimals))

    async def execute_purchase(
        self,
        token_address: str,
        amount: float,
        attempt: PurchaseAttempt | None = None,
    ) -> str:
        """Buy ``token_address`` with ``amount`` of the reference asset.

        Returns the transaction signature. Not idempotent: callers gate on
        existing trade records before calling.
        """
        if not self.is_ready:
            raise NotInitialized("Trade executor session or signing key not ready")
        if not is_valid_address(token_address):
            raise ValueError(f"Invalid token address: {token_address!r}")
        if amount <= 0:
            raise ValueError("amount must be > 0")

        if self._config and amount > self._config.max_trade_amount:
            logger.warning(
                "Capping purchase of %s from %s to max_trade_amount %s",
                short(token_address), amount, self._config.max_trade_amount,
            )
            amount = self._config.max_trade_amount

        units = self._to_units(amount)
        if units <= 0:
            raise ValueError(f"amount {amount} is below the smallest unit")

        attempt = attempt or PurchaseAttempt(token_address)
        last_exc: TransientNetworkError | None = None

        for i in range(self.max_retries):
            if i > 0:
                logger.warning(
                    "Purchase of %s failed (%s), retry %d/%d in %.1fs",
                    short(token_address), last_exc, i, self.max_retries - 1, self.retry_delay,
                )
                await self._sleep(self.retry_delay)
            attempt.attempts += 1
            try:
                signature = await self._attempt(token_address, units, attempt)
            except TransientNetworkError as exc:
                last_exc = exc
                continue
            except SniperError:
                attempt.advance(PurchaseState.FAILED)
                raise

            logger.info(
                "Purchase confirmed: %s for %s units -> %s",
                short(token_address), units, signature,
            )
            return signature

        attempt.advance(PurchaseState.FAILED)
        assert last_exc is not None
        raise last_exc

    async def _attempt(self, token_address: str, units: int, attempt: PurchaseAttempt) -> str:
        attempt.advance(PurchaseState.QUOTE_REQUESTED)
        await self._throttle.await_window()
        quote = await self._gateway.fetch_quote(
            self.reference_mint, token_address, units, self.slippage_bps,
        )
        if not quote.routes:
            raise NoRouteFound(f"No routes found for {token_address}")

        route = quote.routes[0]
        attempt.route = route
        attempt.advance(PurchaseState.ROUTE_SELECTED)
        logger.info(
            "Selected route for %s: in=%d out=%d impact=%.4f%% %s",
            short(token_address), route.in_amount, route.out_amount,
            route.price_impact_pct, route.label,
        )

        public_key = self._keys.get_public_key()
        await self._throttle.await_window()
        unsigned = await self._gateway.build_swap(route, public_key)
        signed, signature = self._keys.sign_transaction(unsigned)
        attempt.signature = signature
        attempt.advance(PurchaseState.SIGNED)

        # Submission is irrevocable; let it finish even if the caller is cancelled
        return await asyncio.shield(self._submit_and_confirm(signed, signature, attempt))

    async def _submit_and_confirm(
        self, signed: bytes, signature: str, attempt: PurchaseAttempt,
    ) -> str:
        try:
            tx_id = await self._gateway.submit_transaction(signed)
        except TransientNetworkError as send_exc:
            # The send may have landed even though the response was lost
            status = await self._await_landing(signature, send_exc)
            if status is None:
                raise
            tx_id = signature
        attempt.advance(PurchaseState.SUBMITTED)

        try:
            await self._gateway.confirm_transaction(tx_id, self.commitment)
        except TransientNetworkError as exc:
            raise TransactionFailed(f"{tx_id} submitted but not confirmed: {exc}") from exc

        attempt.advance(PurchaseState.CONFIRMED)
        return tx_id

    async def _await_landing(self, signature: str, send_exc: Exception) -> dict | None:
        """Poll a signature whose send failed. None means it never showed up."""
        for check in range(self.status_checks):
            if check > 0:
                await self._sleep(self.status_interval)
            try:
                status = await self._gateway.signature_status(signature)
            except TransientNetworkError as exc:
                raise TransactionFailed(f"{signature} send outcome unknown: {exc}") from send_exc
            if status is not None:
                return status
        logger.warning(
            "Signature %s not seen after %d checks, re-quoting", signature[:12], self.status_checks,
        )
        return None
