import json

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sniper_bot.storage.models import (
    MonitoredToken,
    TokenAnalysisRow,
    TradeRow,
    TradingConfigRow,
)


async def save_token(session: AsyncSession, token: MonitoredToken) -> MonitoredToken:
    session.add(token)
    await session.commit()
    await session.refresh(token)
    return token


async def token_exists(session: AsyncSession, address: str) -> bool:
    stmt = select(MonitoredToken.id).where(MonitoredToken.address == address).limit(1)
    result = await session.execute(stmt)
    return result.scalar_one_or_none() is not None


async def save_analysis(session: AsyncSession, row: TokenAnalysisRow) -> TokenAnalysisRow:
    session.add(row)
    await session.commit()
    await session.refresh(row)
    return row


async def get_analyses_for_token(
    session: AsyncSession, token_address: str, limit: int = 10
) -> list[TokenAnalysisRow]:
    stmt = (
        select(TokenAnalysisRow)
        .where(TokenAnalysisRow.token_address == token_address)
        .order_by(TokenAnalysisRow.checked_at.desc())
        .limit(limit)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


def analysis_details(row: TokenAnalysisRow) -> list[str]:
    return json.loads(row.details or "[]")


async def save_trade(session: AsyncSession, trade: TradeRow) -> TradeRow:
    session.add(trade)
    await session.commit()
    await session.refresh(trade)
    return trade


async def get_trade(session: AsyncSession, trade_id: int) -> TradeRow | None:
    return await session.get(TradeRow, trade_id)


async def trade_exists_for_token(session: AsyncSession, token_address: str) -> bool:
    stmt = select(TradeRow.id).where(TradeRow.token_address == token_address).limit(1)
    result = await session.execute(stmt)
    return result.scalar_one_or_none() is not None


async def get_active_config(session: AsyncSession) -> TradingConfigRow | None:
    stmt = (
        select(TradingConfigRow)
        .where(TradingConfigRow.is_active.is_(True))
        .order_by(TradingConfigRow.updated_at.desc())
        .limit(1)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def update_wallet_address(session: AsyncSession, wallet_address: str) -> bool:
    row = await get_active_config(session)
    if row is None:
        return False
    row.wallet_address = wallet_address
    await session.commit()
    return True
