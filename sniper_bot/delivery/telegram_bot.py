import logging

import telegram

from sniper_bot.analysis.models import Token, TokenAnalysis
from sniper_bot.config import settings
from sniper_bot.delivery.base import DeliveryChannel
from sniper_bot.trading.models import TradeRecord, TradeStatus

logger = logging.getLogger(__name__)


def format_new_token(token: Token) -> str:
    return (
        f"🆕 <b>New token</b> {token.symbol or '?'} ({token.name or 'unnamed'})\n"
        f"CA: <code>{token.address}</code>"
    )


def format_analysis(token: Token, analysis: TokenAnalysis) -> str:
    verdict = "✅ SAFE" if analysis.is_safe else "⛔ UNSAFE"
    lines = [
        f"{verdict} <b>{token.symbol or token.address[:8]}</b> (risk: {analysis.risk_level.value})",
        f"Holders: {analysis.total_holders} | Top holder: {analysis.max_holder_percentage:.2f}%",
        f"24h volume: ${analysis.volume_24h:,.2f}",
    ]
    lines.extend(f"• {d}" for d in analysis.details)
    return "\n".join(lines)


def format_trade(trade: TradeRecord) -> str:
    if trade.status is TradeStatus.COMPLETED:
        return (
            f"💰 <b>BUY confirmed</b>\n"
            f"CA: <code>{trade.token_address}</code>\n"
            f"Amount: {trade.amount}\n"
            f"Tx: <code>{trade.transaction_id}</code>"
        )
    return (
        f"❌ <b>BUY {trade.status.value}</b>\n"
        f"CA: <code>{trade.token_address}</code>\n"
        f"Error: {trade.error or 'unknown'}"
    )


class TelegramDelivery(DeliveryChannel):
    """Push notifications to one chat."""

    def __init__(self, bot: telegram.Bot | None = None, chat_id: str | None = None) -> None:
        self._bot = bot or telegram.Bot(token=settings.telegram_bot_token)
        self._chat_id = chat_id or settings.telegram_chat_id

    async def send_text(self, text: str, parse_mode: str = "HTML") -> None:
        try:
            # Telegram has a 4096 char limit
            for i in range(0, len(text), 4000):
                await self._bot.send_message(
                    chat_id=self._chat_id,
                    text=text[i : i + 4000],
                    parse_mode=parse_mode,
                )
        except telegram.error.TelegramError as exc:
            logger.error("Telegram delivery failed: %s", exc)

    async def send_new_token(self, token: Token) -> None:
        await self.send_text(format_new_token(token))

    async def send_analysis(self, token: Token, analysis: TokenAnalysis) -> None:
        await self.send_text(format_analysis(token, analysis))

    async def send_trade(self, trade: TradeRecord) -> None:
        await self.send_text(format_trade(trade))
