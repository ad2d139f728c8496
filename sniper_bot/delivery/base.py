from abc import ABC, abstractmethod

from sniper_bot.analysis.models import Token, TokenAnalysis
from sniper_bot.trading.models import TradeRecord


class DeliveryChannel(ABC):
    @abstractmethod
    async def send_text(self, text: str) -> None:
        ...

    @abstractmethod
    async def send_new_token(self, token: Token) -> None:
        """Announce a newly observed token."""
        ...

    @abstractmethod
    async def send_analysis(self, token: Token, analysis: TokenAnalysis) -> None:
        ...

    @abstractmethod
    async def send_trade(self, trade: TradeRecord) -> None:
        ...


class NullDelivery(DeliveryChannel):
    """Used when no notification channel is configured."""

    async def send_text(self, text: str) -> None:
        return None

    async def send_new_token(self, token: Token) -> None:
        return None

    async def send_analysis(self, token: Token, analysis: TokenAnalysis) -> None:
        return None

    async def send_trade(self, trade: TradeRecord) -> None:
        return None
