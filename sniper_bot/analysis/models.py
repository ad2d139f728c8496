"""Pydantic models for token observation and risk analysis."""

import enum
from datetime import datetime, timezone

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Token(BaseModel):
    """A newly listed token. Identity is the mint address."""

    address: str
    name: str = ""
    symbol: str = ""
    created_at: datetime = Field(default_factory=_utcnow)
    id: int | None = None  # assigned by the datastore


class RiskLevel(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class HolderDistribution(BaseModel):
    unique_holders: int = 0
    max_holder_percentage: float = Field(default=0.0, ge=0.0, le=100.0)


class ContractFlags(BaseModel):
    has_unlimited_mint: bool = False
    has_pausable_trading: bool = False
    has_blacklist: bool = False
    has_ownership_transfer: bool = False

    @classmethod
    def worst_case(cls) -> "ContractFlags":
        return cls(
            has_unlimited_mint=True,
            has_pausable_trading=True,
            has_blacklist=True,
            has_ownership_transfer=True,
        )

    @property
    def count(self) -> int:
        return sum((
            self.has_unlimited_mint,
            self.has_pausable_trading,
            self.has_blacklist,
            self.has_ownership_transfer,
        ))


class TokenAnalysis(BaseModel):
    token_address: str
    total_holders: int = Field(default=0, ge=0)
    max_holder_percentage: float = Field(default=0.0, ge=0.0, le=100.0)
    has_unlimited_mint: bool = False
    has_pausable_trading: bool = False
    has_blacklist: bool = False
    has_ownership_transfer: bool = False
    volume_24h: float = Field(default=0.0, ge=0.0)
    risk_level: RiskLevel = RiskLevel.HIGH
    is_safe: bool = False
    details: list[str] = Field(default_factory=list)
    checked_at: datetime = Field(default_factory=_utcnow)

    @property
    def is_rug_pull(self) -> bool:
        return not self.is_safe
