"""
Wallet scan task - discover profitable wallets from trending tokens.
Wires settings, the Codex client and the SQL wallet store into the scanner.
"""

import logging
from typing import Dict, Any, Optional

from signal_scanner.config.settings import Settings, get_settings
from signal_scanner.database.connection import get_db_session
from signal_scanner.database.wallet_store import SQLWalletStore, WalletStore
from signal_scanner.discovery.scanner import WalletDiscoveryScanner
from signal_scanner.models.scan import ScanResult
from signal_scanner.services.market_data import MarketDataProvider
from signal_scanner.tasks.common import TaskBase, get_codex_client

logger = logging.getLogger(__name__)


class WalletScanTask(TaskBase):
    """Wallet scan task implementation."""

    def __init__(
        self,
        context: Dict[str, Any],
        settings: Optional[Settings] = None,
        provider: Optional[MarketDataProvider] = None
    ):
        super().__init__("wallet_scan", context)
        self.settings = settings or get_settings()
        self.provider = provider if provider is not None else get_codex_client(self.settings)

    def run_with_store(self, store: WalletStore) -> Dict[str, Any]:
        """Run one scan against the given store and return the result payload."""
        scanner = WalletDiscoveryScanner(self.provider, store, settings=self.settings)
        result = scanner.run_scan()

        if result.success:
            self.logger.info(f"Run {self.run_id}: {result.message}")
        else:
            self.logger.error(f"Run {self.run_id}: {result.message} ({result.error})")

        return result.to_dict()

    def execute(self) -> Dict[str, Any]:
        """Execute the wallet scan task."""
        self.logger.info(
            f"Starting wallet scan with config: TOKENS_TO_SCAN={self.settings.scanner.tokens_to_scan}, "
            f"TRADERS_PER_TOKEN={self.settings.scanner.traders_per_token}"
        )

        try:
            with get_db_session() as session:
                store = SQLWalletStore(session, batch_size=self.settings.database.default_batch_size)
                return self.run_with_store(store)
        except Exception as e:
            self.logger.error(f"Wallet scan task failed: {e}")
            return ScanResult(success=False, message="Wallet scan failed", error=str(e)).to_dict()


def get_scan_status(store: SQLWalletStore) -> Dict[str, Any]:
    """Report whether the scanner database is reachable and when it last merged."""
    try:
        last_update = store.get_last_update()
    except Exception as e:
        logger.error(f"Scan status check failed: {e}")
        return {"status": "error", "message": "Database not configured"}

    return {
        "status": "ready",
        "last_scan": last_update.isoformat() if last_update else None,
    }


def process_wallet_scan(**context) -> Dict[str, Any]:
    """Main entry point for the wallet scan task."""
    task = WalletScanTask(context)
    return task.execute()


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    print(f"Wallet scan: {process_wallet_scan()}")
