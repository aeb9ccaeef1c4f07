"""
Common utilities and base class for scanner tasks.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from signal_scanner.config.settings import Settings, get_settings
from signal_scanner.services.codex_client import CodexAPIClient
from signal_scanner.utils.utcnow import utcnow

logger = logging.getLogger(__name__)


def get_codex_client(settings: Optional[Settings] = None) -> Optional[CodexAPIClient]:
    """
    Get initialized Codex API client with consistent configuration.

    Returns:
        Configured CodexAPIClient, or None when no API key is configured
    """
    settings = settings or get_settings()
    api_key = settings.get_codex_api_key()
    if not api_key:
        logger.error("CODEX_API_KEY must be set in Airflow Variables or environment variables")
        return None

    return CodexAPIClient(
        api_key,
        network_id=settings.api.network_id,
        base_url=settings.api.codex_base_url,
        timeout_seconds=settings.api.timeout_seconds,
        max_retries=settings.api.max_retries
    )


class TaskBase(ABC):
    """Base class for scanner tasks with common functionality."""

    def __init__(self, task_name: str, context: Dict[str, Any]):
        """
        Initialize base task.

        Args:
            task_name: Name of the task for logging
            context: Airflow context dictionary
        """
        self.task_name = task_name
        self.context = context
        self.run_id = context.get('run_id', utcnow().strftime("%Y%m%d_%H%M%S"))
        self.logger = logging.getLogger(f"{__name__}.{task_name}")

    @abstractmethod
    def execute(self) -> Dict[str, Any]:
        """Execute the task. Must be implemented by subclasses."""
        pass
