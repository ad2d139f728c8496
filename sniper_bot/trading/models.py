"""Pydantic models for the trading module."""

import enum
from datetime import datetime, timezone

from pydantic import BaseModel, Field


class TradeStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class PurchaseState(enum.Enum):
    IDLE = "idle"
    QUOTE_REQUESTED = "quote_requested"
    ROUTE_SELECTED = "route_selected"
    SIGNED = "signed"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class Route(BaseModel):
    """One ranked route from the aggregator, kept raw for the swap request."""

    in_amount: int
    out_amount: int
    price_impact_pct: float = 0.0
    label: str = ""
    raw: dict = Field(default_factory=dict)


class Quote(BaseModel):
    input_mint: str
    output_mint: str
    amount: int  # smallest unit of input_mint
    slippage_bps: int
    routes: list[Route] = Field(default_factory=list)


class TradeConfig(BaseModel):
    """Active trading config row. Read once per session."""

    id: int | None = None
    max_trade_amount: float
    min_liquidity: float = 0.0
    is_active: bool = True
    wallet_address: str | None = None


class TradeRecord(BaseModel):
    id: int | None = None
    token_address: str
    amount: float = Field(gt=0)
    price: float | None = None
    status: TradeStatus = TradeStatus.PENDING
    transaction_id: str | None = None
    error: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def complete(self, transaction_id: str, price: float | None = None) -> None:
        self._transition(TradeStatus.COMPLETED)
        self.transaction_id = transaction_id
        self.price = price

    def fail(self, error: str) -> None:
        self._transition(TradeStatus.FAILED)
        self.error = error[:500]

    def _transition(self, status: TradeStatus) -> None:
        if self.status is not TradeStatus.PENDING:
            raise ValueError(f"Trade already {self.status.value}")
        self.status = status
