"""
Storage collaborator for the wallet discovery pipeline.

WalletStore is the interface the scanner depends on. SQLWalletStore backs it
with the tracked_wallets and wallet_token_history tables and runs one scan's
writes as a single read-modify-write transaction:

    lock_wallets (pg_advisory_xact_lock) -> find_known_pairs ->
    insert_history (savepoint) -> get_wallet_aggregates (SELECT ... FOR UPDATE)
    -> upsert_wallet_aggregates (COMMIT)

The per-wallet advisory locks are held until the transaction ends, so a second
scan touching the same wallet waits before it reads the known pairs and sees the
first scan's history and totals. A failed aggregate upsert rolls back the
history rows of the same scan.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple
from sqlalchemy import func, text
from sqlmodel import Session, select

from signal_scanner.database.operations import DatabaseOperations
from signal_scanner.models.wallets import TrackedWallet, WalletTokenHistory

logger = logging.getLogger(__name__)


WalletTokenPair = Tuple[str, str]

SORTABLE_WALLET_COLUMNS = {
    "pnl_percent",
    "total_pnl",
    "total_pnl_usd",
    "total_volume_usd",
    "win_rate",
    "total_trades",
    "appearances",
    "winning_tokens",
    "avg_return",
    "last_trade_at",
    "updated_at",
}


class WalletStore(ABC):
    """Persistence operations the wallet scanner needs."""

    def lock_wallets(self, wallet_addresses: Iterable[str]):
        """Serialize concurrent scans on the given wallets until the scan ends."""

    @abstractmethod
    def find_known_pairs(self, wallet_addresses: Iterable[str]) -> Set[WalletTokenPair]:
        """Return the recorded (wallet, token) pairs for the given wallets."""

    @abstractmethod
    def insert_history(self, entries: List[Dict[str, Any]]) -> int:
        """Stage history rows; duplicates of recorded pairs are ignored."""

    @abstractmethod
    def get_wallet_aggregates(self, wallet_addresses: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        """Return existing aggregate rows keyed by address."""

    @abstractmethod
    def upsert_wallet_aggregates(self, rows: List[Dict[str, Any]]) -> int:
        """Upsert aggregate rows keyed by address and commit the scan."""

    def rollback(self):
        """Abandon any staged writes."""


class SQLWalletStore(WalletStore):
    """WalletStore backed by a SQLModel session."""

    def __init__(self, session: Session, batch_size: int = 1000):
        """Initialize with database session.

        Args:
            session: SQLModel Session instance
            batch_size: Maximum addresses per IN clause and rows per statement
        """
        self.session = session
        self.batch_size = batch_size
        self.operations = DatabaseOperations(session)

    def _chunks(self, values: Iterable[str]):
        values = sorted(set(values))
        for start_idx in range(0, len(values), self.batch_size):
            yield values[start_idx:start_idx + self.batch_size]

    def lock_wallets(self, wallet_addresses: Iterable[str]):
        dialect_name = self.session.get_bind().dialect.name
        if dialect_name != "postgresql":
            # SQLite serializes writers on the database file
            logger.debug(f"No per-wallet locks on {dialect_name}")
            return

        # Same acquisition order in every scan
        addresses = sorted(set(wallet_addresses))
        for address in addresses:
            self.session.execute(
                text("SELECT pg_advisory_xact_lock(hashtext(:address))"),
                {"address": address}
            )
        logger.debug(f"Locked {len(addresses)} wallets for this scan")

    def find_known_pairs(self, wallet_addresses: Iterable[str]) -> Set[WalletTokenPair]:
        pairs: Set[WalletTokenPair] = set()
        for chunk in self._chunks(wallet_addresses):
            query = select(WalletTokenHistory.wallet_address, WalletTokenHistory.token_address).where(
                WalletTokenHistory.wallet_address.in_(chunk)
            )
            pairs.update((wallet, token) for wallet, token in self.session.exec(query).all())

        logger.debug(f"Found {len(pairs)} known wallet/token pairs")
        return pairs

    def insert_history(self, entries: List[Dict[str, Any]]) -> int:
        if not entries:
            return 0

        # Savepoint: a failed history insert must not poison the aggregate merge
        with self.session.begin_nested():
            result = self.operations.insert_ignore_duplicates(
                records=entries,
                model_class=WalletTokenHistory,
                conflict_columns=["wallet_address", "token_address"],
                batch_size=self.batch_size
            )
        return result["records_inserted"]

    def get_wallet_aggregates(self, wallet_addresses: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        aggregates: Dict[str, Dict[str, Any]] = {}
        for chunk in self._chunks(wallet_addresses):
            query = (
                select(TrackedWallet)
                .where(TrackedWallet.address.in_(chunk))
                .with_for_update()
            )
            for wallet in self.session.exec(query).all():
                aggregates[wallet.address] = wallet.model_dump()
        return aggregates

    def upsert_wallet_aggregates(self, rows: List[Dict[str, Any]]) -> int:
        if not rows:
            self.session.commit()
            return 0

        update_columns = [col for col in rows[0].keys() if col not in ("address", "created_at")]
        result = self.operations.upsert_records(
            records=rows,
            model_class=TrackedWallet,
            conflict_columns=["address"],
            update_columns=update_columns,
            batch_size=self.batch_size,
            commit=True
        )
        return result["records_processed"]

    def rollback(self):
        self.session.rollback()

    # Read operations used by the dashboard routes

    def list_wallets(self, limit: int = 20, offset: int = 0, sort_by: str = "pnl_percent") -> Dict[str, Any]:
        """Page through tracked wallets, best first.

        Args:
            limit: Page size
            offset: Number of wallets to skip
            sort_by: Column to sort by, descending

        Returns:
            Dictionary with the wallets page and the total wallet count
        """
        if sort_by not in SORTABLE_WALLET_COLUMNS:
            raise ValueError(f"Cannot sort wallets by {sort_by!r}")

        sort_column = getattr(TrackedWallet, sort_by)
        query = (
            select(TrackedWallet)
            .order_by(sort_column.desc(), TrackedWallet.address)
            .offset(offset)
            .limit(limit)
        )
        wallets = [wallet.model_dump() for wallet in self.session.exec(query).all()]
        total = self.session.exec(select(func.count()).select_from(TrackedWallet)).one()

        return {
            "wallets": wallets,
            "total": total,
            "limit": limit,
            "offset": offset
        }

    def get_wallet_details(self, address: str) -> Optional[Dict[str, Any]]:
        """Get one wallet with its token discovery history, newest first."""
        wallet = self.session.get(TrackedWallet, address)
        if wallet is None:
            return None

        history_query = (
            select(WalletTokenHistory)
            .where(WalletTokenHistory.wallet_address == address)
            .order_by(WalletTokenHistory.discovered_at.desc(), WalletTokenHistory.id.desc())
        )
        history = [entry.model_dump() for entry in self.session.exec(history_query).all()]

        return {
            "wallet": wallet.model_dump(),
            "token_history": history,
            "total_tokens": len(history)
        }

    def get_last_update(self) -> Optional[datetime]:
        """Timestamp of the most recent aggregate merge."""
        return self.session.exec(select(func.max(TrackedWallet.updated_at))).one()
