"""
Transient types that live only for the duration of one scan run.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from signal_scanner.utils.utcnow import utcnow


@dataclass(frozen=True)
class Sighting:
    """One qualifying (wallet, token) profitable-trade observation."""
    wallet_address: str
    token_address: str
    token_symbol: Optional[str]
    profit_usd: float
    profit_percent: float
    volume_usd: float
    buys: int
    sells: int
    last_trade_at: Optional[datetime] = None

    @property
    def pair(self):
        return (self.wallet_address, self.token_address)

    @property
    def trades(self) -> int:
        return self.buys + self.sells


@dataclass
class WalletPartial:
    """Per-wallet fold of the new sightings from one scan."""
    pnl_usd: float = 0.0
    pnl_percent: float = 0.0
    trades: int = 0
    token_count: int = 0
    volume_usd: float = 0.0

    def __add__(self, other: "WalletPartial") -> "WalletPartial":
        return WalletPartial(
            pnl_usd=self.pnl_usd + other.pnl_usd,
            pnl_percent=self.pnl_percent + other.pnl_percent,
            trades=self.trades + other.trades,
            token_count=self.token_count + other.token_count,
            volume_usd=self.volume_usd + other.volume_usd,
        )


@dataclass
class ScanResult:
    """Outcome of one wallet scan run. Callers must check `success`."""
    success: bool
    message: str
    tokens_scanned: int = 0
    new_findings: int = 0
    wallets_updated: int = 0
    timestamp: datetime = field(default_factory=utcnow)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the keys the dashboard reads."""
        result = {
            "success": self.success,
            "message": self.message,
            "tokensScanned": self.tokens_scanned,
            "newFindings": self.new_findings,
            "walletsUpdated": self.wallets_updated,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.error:
            result["error"] = self.error
        return result
