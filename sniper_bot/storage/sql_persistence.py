"""SQLAlchemy-backed implementation of the core's persistence interface."""

import json
import logging
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sniper_bot.analysis.models import Token, TokenAnalysis
from sniper_bot.storage import repository
from sniper_bot.storage.base import Persistence
from sniper_bot.storage.models import MonitoredToken, TokenAnalysisRow, TradeRow
from sniper_bot.trading.models import TradeConfig, TradeRecord
from sniper_bot.utils.address import short

logger = logging.getLogger(__name__)


def _naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def _aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


class SqlPersistence(Persistence):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._sessions = session_factory

    async def add_token(self, token: Token) -> Token | None:
        row = MonitoredToken(
            address=token.address,
            name=token.name,
            symbol=token.symbol,
            created_at=_naive_utc(token.created_at),
        )
        try:
            async with self._sessions() as session:
                row = await repository.save_token(session, row)
        except SQLAlchemyError as exc:
            logger.error("Error adding token %s: %s", short(token.address), exc)
            return None
        return token.model_copy(update={"id": row.id, "created_at": _aware(row.created_at)})

    async def token_exists(self, address: str) -> bool:
        try:
            async with self._sessions() as session:
                return await repository.token_exists(session, address)
        except SQLAlchemyError as exc:
            logger.error("Error checking token %s: %s", short(address), exc)
            return False

    async def record_analysis(self, analysis: TokenAnalysis) -> bool:
        row = TokenAnalysisRow(
            token_address=analysis.token_address,
            total_holders=analysis.total_holders,
            max_holder_percentage=analysis.max_holder_percentage,
            has_unlimited_mint=analysis.has_unlimited_mint,
            has_pausable_trading=analysis.has_pausable_trading,
            has_blacklist=analysis.has_blacklist,
            has_ownership_transfer=analysis.has_ownership_transfer,
            volume_24h=analysis.volume_24h,
            risk_level=analysis.risk_level.value,
            is_safe=analysis.is_safe,
            details=json.dumps(analysis.details),
            checked_at=_naive_utc(analysis.checked_at),
        )
        try:
            async with self._sessions() as session:
                await repository.save_analysis(session, row)
        except SQLAlchemyError as exc:
            logger.error("Error storing token analysis: %s", exc)
            return False
        return True

    async def add_trade(self, trade: TradeRecord) -> TradeRecord | None:
        row = TradeRow(
            token_address=trade.token_address,
            amount=trade.amount,
            price=trade.price,
            status=trade.status.value,
            transaction_hash=trade.transaction_id,
            error=trade.error,
            created_at=_naive_utc(trade.created_at),
        )
        try:
            async with self._sessions() as session:
                row = await repository.save_trade(session, row)
        except SQLAlchemyError as exc:
            logger.error("Error adding trade: %s", exc)
            return None
        return trade.model_copy(update={"id": row.id})

    async def update_trade(self, trade: TradeRecord) -> bool:
        if trade.id is None:
            return (await self.add_trade(trade)) is not None
        try:
            async with self._sessions() as session:
                row = await repository.get_trade(session, trade.id)
                if row is None:
                    logger.error("Trade %s not found for update", trade.id)
                    return False
                row.status = trade.status.value
                row.transaction_hash = trade.transaction_id
                row.price = trade.price
                row.error = trade.error
                await session.commit()
        except SQLAlchemyError as exc:
            logger.error("Error updating trade %s: %s", trade.id, exc)
            return False
        return True

    async def trade_exists_for_token(self, token_address: str) -> bool:
        try:
            async with self._sessions() as session:
                return await repository.trade_exists_for_token(session, token_address)
        except SQLAlchemyError as exc:
            # Unknown means "assume traded" so a token is never bought twice
            logger.error("Error checking trades for %s: %s", short(token_address), exc)
            return True

    async def get_active_config(self) -> TradeConfig | None:
        try:
            async with self._sessions() as session:
                row = await repository.get_active_config(session)
        except SQLAlchemyError as exc:
            logger.error("Error fetching trade config: %s", exc)
            return None
        if row is None:
            return None
        return TradeConfig(
            id=row.id,
            max_trade_amount=row.max_trade_amount,
            min_liquidity=row.min_liquidity,
            is_active=row.is_active,
            wallet_address=row.wallet_address,
        )

    async def set_wallet_address(self, wallet_address: str) -> bool:
        try:
            async with self._sessions() as session:
                return await repository.update_wallet_address(session, wallet_address)
        except SQLAlchemyError as exc:
            logger.error("Error updating wallet address: %s", exc)
            return False

