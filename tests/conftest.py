import base58
import pytest
from solders.keypair import Keypair

from sniper_bot.analysis.analyzer import TokenRiskAnalyzer
from sniper_bot.storage.database import init_db, make_engine, make_sessionmaker
from sniper_bot.storage.sql_persistence import SqlPersistence
from sniper_bot.trading.executor import TradeExecutor
from sniper_bot.trading.gateway import DryRunSwapGateway
from sniper_bot.utils.throttle import RequestThrottle
from sniper_bot.wallet.key_manager import SigningKeyManager
from tests.fakes import NOW, FakePersistence, FakeRpc, no_sleep


@pytest.fixture
def keypair() -> Keypair:
    return Keypair()


@pytest.fixture
def encoded_key(keypair) -> str:
    return base58.b58encode(bytes(keypair)).decode()


@pytest.fixture
def key_manager(encoded_key) -> SigningKeyManager:
    km = SigningKeyManager()
    km.set_key(encoded_key)
    return km


@pytest.fixture
def rpc() -> FakeRpc:
    return FakeRpc()


@pytest.fixture
def persistence() -> FakePersistence:
    return FakePersistence()


@pytest.fixture
def analyzer(rpc, persistence) -> TokenRiskAnalyzer:
    return TokenRiskAnalyzer(
        rpc,
        RequestThrottle(0),
        persistence,
        holder_min=100,
        concentration_max_pct=20.0,
        volume_min=2000.0,
        volume_window_hours=24,
        signature_limit=1000,
        max_attempts=3,
        base_delay=0,
        clock=lambda: NOW,
    )


@pytest.fixture
def gateway() -> DryRunSwapGateway:
    return DryRunSwapGateway()


@pytest.fixture
def executor(gateway, key_manager, persistence) -> TradeExecutor:
    return TradeExecutor(
        gateway,
        key_manager,
        persistence,
        RequestThrottle(0),
        reference_mint="EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
        reference_decimals=6,
        slippage_bps=100,
        max_retries=3,
        retry_delay=0,
        commitment="confirmed",
        sleep=no_sleep,
    )


@pytest.fixture
async def session_factory():
    engine = make_engine("sqlite+aiosqlite://")
    await init_db(engine)
    yield make_sessionmaker(engine)
    await engine.dispose()


@pytest.fixture
def sql_persistence(session_factory) -> SqlPersistence:
    return SqlPersistence(session_factory)
