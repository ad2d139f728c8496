"""Periodic discovery -> analysis -> purchase pipeline."""

import asyncio
import logging
from dataclasses import dataclass

from sniper_bot.analysis.analyzer import TokenRiskAnalyzer
from sniper_bot.analysis.models import Token
from sniper_bot.chain.listings import ListingSource
from sniper_bot.config import settings
from sniper_bot.delivery.base import DeliveryChannel, NullDelivery
from sniper_bot.errors import SniperError
from sniper_bot.storage.base import Persistence
from sniper_bot.trading.executor import PurchaseAttempt, TradeExecutor
from sniper_bot.trading.models import TradeRecord
from sniper_bot.utils.address import short

logger = logging.getLogger(__name__)


@dataclass
class _PendingPurchase:
    task: asyncio.Task
    attempt: PurchaseAttempt
    trade: TradeRecord
    settlement: asyncio.Task | None = None


class MonitorLoop:
    def __init__(
        self,
        listing_source: ListingSource,
        analyzer: TokenRiskAnalyzer,
        executor: TradeExecutor,
        persistence: Persistence,
        delivery: DeliveryChannel | None = None,
        *,
        interval: float | None = None,
        purchase_amount: float | None = None,
        trading_enabled: bool | None = None,
    ) -> None:
        self._listings = listing_source
        self._analyzer = analyzer
        self._executor = executor
        self._persistence = persistence
        self._delivery = delivery or NullDelivery()
        self.interval = interval if interval is not None else settings.poll_interval_seconds
        self.purchase_amount = (
            purchase_amount if purchase_amount is not None else settings.purchase_amount
        )
        self.trading_enabled = (
            trading_enabled if trading_enabled is not None else settings.trading_enabled
        )

        self._task: asyncio.Task | None = None
        self._seen: set[str] = set()
        self._purchases: dict[str, _PendingPurchase] = {}

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run(), name="monitor-loop")
        logger.info("Monitor loop started (every %ss)", self.interval)

    async def stop(self) -> None:
        """Stop ticking. Purchases already signed are allowed to finish."""
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        for pending in list(self._purchases.values()):
            if pending.attempt.committed:
                logger.info(
                    "Waiting for submitted purchase of %s", short(pending.trade.token_address)
                )
            elif pending.settlement is None:
                pending.task.cancel()
            await self._settlement(pending)

        self._executor.release()
        logger.info("Monitor loop stopped")

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time()
        while True:
            try:
                await self.tick()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Error in monitor tick")

            deadline += self.interval
            now = loop.time()
            while deadline <= now:
                # Overran one or more intervals: skip them rather than burst
                deadline += self.interval
            await asyncio.sleep(deadline - now)

    async def tick(self) -> int:
        """One discovery pass. Returns how many new tokens were analyzed."""
        listings = await self._listings.fetch_new_listings()
        processed = 0
        for token in listings:
            if token.address in self._seen:
                continue
            self._seen.add(token.address)
            try:
                if await self._handle_token(token):
                    processed += 1
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Error processing token %s", short(token.address))
        return processed

    async def _handle_token(self, token: Token) -> bool:
        if await self._persistence.token_exists(token.address):
            logger.debug("Token %s already known", short(token.address))
            return False

        stored = await self._persistence.add_token(token) or token
        logger.info("New token: %s (%s)", stored.symbol or "?", short(stored.address))
        await self._delivery.send_new_token(stored)

        analysis = await self._analyzer.evaluate(stored)
        await self._delivery.send_analysis(stored, analysis)

        if analysis.is_safe:
            await self._maybe_purchase(stored.address)
        return True

    async def _maybe_purchase(self, token_address: str) -> TradeRecord | None:
        if not self.trading_enabled:
            logger.info("Trading disabled, not buying %s", short(token_address))
            return None
        if token_address in self._purchases:
            return None

        try:
            await self._executor.initialize()
        except SniperError as exc:
            logger.error("Trade executor unavailable: %s", exc)
            return None

        amount = self.purchase_amount
        config = self._executor.config
        if config is not None:
            if not config.is_active:
                logger.info("Trading config inactive, not buying %s", short(token_address))
                return None
            amount = min(amount, config.max_trade_amount)

        if await self._persistence.trade_exists_for_token(token_address):
            logger.info("Trade already recorded for %s", short(token_address))
            return None

        trade = TradeRecord(token_address=token_address, amount=amount)
        trade = await self._persistence.add_trade(trade) or trade

        attempt = PurchaseAttempt(token_address)
        task = asyncio.create_task(
            self._executor.execute_purchase(token_address, amount, attempt),
            name=f"purchase-{token_address[:8]}",
        )
        pending = _PendingPurchase(task=task, attempt=attempt, trade=trade)
        self._purchases[token_address] = pending

        # asyncio.wait never cancels the task: a cancelled tick leaves the
        # purchase running for stop() to settle
        await asyncio.wait([task])
        return await asyncio.shield(self._settlement(pending))

    def _settlement(self, pending: _PendingPurchase) -> asyncio.Task:
        # Settles once. The entry stays in _purchases until the record is written
        if pending.settlement is None:
            pending.settlement = asyncio.create_task(
                self._settle(pending), name=f"settle-{pending.trade.token_address[:8]}"
            )
        return pending.settlement

    async def _settle(self, pending: _PendingPurchase) -> TradeRecord:
        trade = pending.trade
        try:
            try:
                signature = await pending.task
            except asyncio.CancelledError:
                trade.fail("Cancelled before submission")
            except Exception as exc:
                logger.error("Purchase of %s failed: %s", short(trade.token_address), exc)
                trade.fail(str(exc) or type(exc).__name__)
            else:
                trade.complete(signature)

            if not await self._persistence.update_trade(trade):
                logger.warning("Trade update for %s not persisted", short(trade.token_address))
            await self._delivery.send_trade(trade)
        finally:
            self._purchases.pop(trade.token_address, None)
        return trade
