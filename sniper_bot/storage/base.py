from abc import ABC, abstractmethod

from sniper_bot.analysis.models import Token, TokenAnalysis
from sniper_bot.trading.models import TradeConfig, TradeRecord


class Persistence(ABC):
    """What the core needs from the datastore.

    Writes are best effort: implementations log failures and return
    None/False instead of raising.
    """

    @abstractmethod
    async def add_token(self, token: Token) -> Token | None:
        ...

    @abstractmethod
    async def token_exists(self, address: str) -> bool:
        ...

    @abstractmethod
    async def record_analysis(self, analysis: TokenAnalysis) -> bool:
        ...

    @abstractmethod
    async def add_trade(self, trade: TradeRecord) -> TradeRecord | None:
        ...

    @abstractmethod
    async def update_trade(self, trade: TradeRecord) -> bool:
        ...

    @abstractmethod
    async def trade_exists_for_token(self, token_address: str) -> bool:
        ...

    @abstractmethod
    async def get_active_config(self) -> TradeConfig | None:
        ...

    async def set_wallet_address(self, wallet_address: str) -> bool:
        """Record which wallet the active config trades from."""
        return False
