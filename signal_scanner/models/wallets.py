"""
SQLModel schemas for discovered wallets.
TrackedWallet holds the running per-wallet totals; WalletTokenHistory is the
append-only audit trail of first (wallet, token) discoveries.
"""

from datetime import datetime
from typing import List, Optional
from sqlmodel import SQLModel, Field, Column, Index, UniqueConstraint
from sqlalchemy import JSON, DateTime, TypeDecorator
from sqlalchemy.dialects.postgresql import JSONB

from signal_scanner.utils.utcnow import ensure_utc, utcnow


# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
TagsType = JSON().with_variant(JSONB(), "postgresql")


class UTCDateTime(TypeDecorator):
    """TIMESTAMP WITH TIME ZONE that always binds and loads aware UTC datetimes.

    SQLite keeps no offset, so loaded values are re-tagged as UTC.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return ensure_utc(value)

    def process_result_value(self, value, dialect):
        return ensure_utc(value)


def utc_column(nullable: bool = False) -> Column:
    return Column(UTCDateTime(timezone=True), nullable=nullable)


class TrackedWallet(SQLModel, table=True):
    """Tracked wallets table - cumulative performance across all scans."""

    __tablename__ = "tracked_wallets"
    __table_args__ = (
        Index("idx_tracked_wallets_total_pnl_usd", "total_pnl_usd"),
        Index("idx_tracked_wallets_pnl_percent", "pnl_percent"),
        Index("idx_tracked_wallets_appearances", "appearances"),
        Index("idx_tracked_wallets_updated_at", "updated_at"),
    )

    # Primary key
    address: str = Field(primary_key=True, max_length=44, description="Wallet address")

    # Cumulative totals
    total_pnl: int = Field(default=0, description="Sum of realized profit percent across tokens")
    total_pnl_usd: float = Field(default=0.0, description="Sum of realized profit in USD across tokens")
    total_volume_usd: float = Field(default=0.0, description="Sum of traded volume in USD across tokens")
    total_trades: int = Field(default=0, description="Sum of buys and sells across tokens")
    appearances: int = Field(default=0, description="Distinct tokens the wallet was profitably sighted on")
    winning_tokens: int = Field(default=0, description="Tokens with positive qualifying profit")

    # Derived fields
    pnl_percent: int = Field(default=0, description="Average profit percent per token")
    avg_return: int = Field(default=0, description="Average profit percent per winning token")
    win_rate: float = Field(default=0.0, description="Derived win rate, capped")
    tags: List[str] = Field(default_factory=list, sa_column=Column(TagsType), description="Derived category labels")

    # Timestamps
    last_trade_at: Optional[datetime] = Field(
        default=None, sa_column=utc_column(nullable=True), description="Most recent contributing scan"
    )
    created_at: datetime = Field(
        default_factory=utcnow, sa_column=utc_column(), description="When wallet was first discovered"
    )
    updated_at: datetime = Field(
        default_factory=utcnow, sa_column=utc_column(), description="When totals were last merged"
    )


class WalletTokenHistory(SQLModel, table=True):
    """Wallet token history table - one row per first-ever (wallet, token) discovery."""

    __tablename__ = "wallet_token_history"
    __table_args__ = (
        UniqueConstraint("wallet_address", "token_address", name="uq_wallet_token_history_pair"),
        Index("idx_wallet_token_history_wallet", "wallet_address"),
        Index("idx_wallet_token_history_discovered_at", "discovered_at"),
    )

    id: Optional[int] = Field(default=None, primary_key=True, description="Auto-increment ID")

    wallet_address: str = Field(max_length=44, description="Wallet address")
    token_address: str = Field(max_length=44, description="Token mint address")
    token_symbol: Optional[str] = Field(default=None, max_length=50, description="Token symbol")

    # Snapshot at discovery
    pnl_at_discovery: int = Field(description="Realized profit percent, rounded")
    pnl_usd_at_discovery: float = Field(description="Realized profit in USD, 2 decimals")
    trades_at_discovery: int = Field(description="Buys plus sells")
    volume_usd: float = Field(default=0.0, description="Traded volume in USD, 2 decimals")

    discovered_at: datetime = Field(
        default_factory=utcnow, sa_column=utc_column(), description="When the pair was first discovered"
    )
