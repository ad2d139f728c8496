import asyncio
import logging

from sniper_bot.analysis.analyzer import TokenRiskAnalyzer
from sniper_bot.chain.listings import ListingSource
from sniper_bot.chain.solana_rpc import SolanaRpcClient
from sniper_bot.config import settings
from sniper_bot.delivery.base import DeliveryChannel
from sniper_bot.delivery.telegram_bot import TelegramDelivery
from sniper_bot.monitor.monitor_loop import MonitorLoop
from sniper_bot.storage.database import init_db, make_engine, make_sessionmaker
from sniper_bot.storage.sql_persistence import SqlPersistence
from sniper_bot.trading.executor import TradeExecutor
from sniper_bot.trading.gateway import DryRunSwapGateway, JupiterSwapGateway, SwapGateway
from sniper_bot.utils.address import short
from sniper_bot.utils.logging import setup_logging
from sniper_bot.utils.retry import retry
from sniper_bot.utils.throttle import RequestThrottle
from sniper_bot.wallet.key_manager import SigningKeyManager
from sniper_bot.wallet.secret_store import create_secret_store

logger = logging.getLogger(__name__)


async def main() -> None:
    setup_logging(settings.log_level)
    logger.info("Starting sniper bot (dry_run=%s, trading=%s)", settings.dry_run, settings.trading_enabled)

    engine = make_engine()
    await init_db(engine)
    persistence = SqlPersistence(make_sessionmaker(engine))
    logger.info("Database initialized")

    # No key, no bot: ConfigurationMissing propagates and ends the process
    keys = SigningKeyManager()
    store = create_secret_store()
    public_key = await retry(
        lambda: keys.load_from_secret_store(store, settings.wallet_secret_name),
        settings.retry_max_attempts,
        settings.retry_base_delay_seconds,
    )
    logger.info("Signing key loaded for wallet %s", short(public_key))
    await persistence.set_wallet_address(public_key)

    rpc = SolanaRpcClient()
    rpc_throttle = RequestThrottle(settings.rpc_min_interval_seconds)

    gateway: SwapGateway
    if settings.dry_run:
        gateway = DryRunSwapGateway()
        logger.warning("DRY RUN: swaps are built and signed but never sent")
    else:
        gateway = JupiterSwapGateway(rpc)

    analyzer = TokenRiskAnalyzer(rpc, rpc_throttle, persistence)
    executor = TradeExecutor(gateway, keys, persistence)
    listings = ListingSource()

    delivery: DeliveryChannel | None = None
    if settings.telegram_bot_token and settings.telegram_chat_id:
        delivery = TelegramDelivery()
        logger.info("Telegram delivery enabled")
    else:
        logger.warning("Telegram not configured, events will only be stored in DB")

    monitor = MonitorLoop(listings, analyzer, executor, persistence, delivery)
    monitor.start()
    try:
        # Runs until cancelled (Ctrl-C)
        while monitor.is_running:
            await asyncio.sleep(1)
    finally:
        await monitor.stop()
        keys.clear()
        if isinstance(gateway, JupiterSwapGateway):
            await gateway.aclose()
        await listings.aclose()
        await rpc.aclose()
        await engine.dispose()
        logger.info("Shut down")


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
