"""
Settings and configuration management for the SIGNAL wallet scanner.
Loads configuration from YAML files and environment variables.
"""

import os
import yaml
import logging
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


SOLANA_NETWORK_ID = 1399811149

DEFAULT_EXCLUDED_TOKENS = [
    # Native / Wrapped
    "So11111111111111111111111111111111111111112",   # Wrapped SOL
    # Stablecoins
    "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",  # USDC
    "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB",  # USDT
    "2b1kV6DkPAnxd5ixfnxCpjxmKwqjjaYmCZfHsFu24GXo",  # PYUSD
    # Liquid staking tokens
    "mSoLzYCxHdYgdzU16g5QSh3i5K3z3KZK7ytfqcJm7So",   # mSOL
    "J1toso1uCk3RLmjorhTtrVwY9HJ7X8V9yYac6Y7kGCPn",  # jitoSOL
    "bSo13r4TkiE4KumL71LsHTPpL2euBYLFx6h9HP3piy1",   # bSOL
    "7dHbWXmci3dT8UFYWYZweBLXgycu7Y3iL6trKn1Y7ARj",  # stSOL
    "5oVNBeEEQvYi1cX3ir8Dx5n1P7pdxydbGF2X4TxVusJm",  # INF
    # Bridged assets
    "7vfCXTUXx5WJV5JADk17DUJ4ksgau7utNKj4b963voxs",  # wETH
    "3NZ9JMVBmGAqocybic2c7LQCJScmgsAZ6vQqTDzcqmJh",  # wBTC
    # Large caps, too big for insider signals
    "27G8MtK7VnTknkBAMA1biGBHjEJRfKwrPoSmHdMkiT5c",  # JLP
    "4k3Dyjzvzp8eMZWUXbBCjEvwSkkk59S5iCNLY3QrkX6R",  # RAY
    "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN",   # JUP
    "orcaEKTdK7LKz57vaAYr9QeNsVEPfiu6QeMU1kektZE",   # ORCA
    "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263",  # BONK
    "EKpQGSJtjMFqKZ9KQanSqYXRcF8fBopzLHYxdM65zcjm",  # WIF
    "HZ1JovNiVvGrGNiiYvEozEVgZ58xaU3RKwX8eACQBCt3",  # PYTH
    "jtojtomepa8beP8AuQc6eXt5FriJwfFMwQx2v2f9mCL",   # JTO
]


@dataclass
class DatabaseConfig:
    """Database configuration settings."""
    pool_size: int = 10
    max_overflow: int = 20
    pool_recycle_hours: int = 1
    connection_timeout_seconds: int = 30
    default_batch_size: int = 1000


@dataclass
class APIConfig:
    """API configuration settings."""
    codex_base_url: str = "https://graph.codex.io/graphql"
    network_id: int = SOLANA_NETWORK_ID
    timeout_seconds: int = 30
    max_retries: int = 3


@dataclass
class ScannerConfig:
    """Wallet scan batch configuration."""
    tokens_to_scan: int = 100
    traders_per_token: int = 25
    api_delay_seconds: float = 0.1
    min_total_trades: int = 1
    trading_period: str = "WEEK"


@dataclass
class TrendingTokensConfig:
    """Trending token ranking filters, one window per ranking strategy."""
    gainers_limit: int = 100
    gainers_min_volume_24h: float = 50000
    gainers_min_liquidity: float = 10000
    gainers_min_price_change_24h: float = 0.2
    volume_limit: int = 100
    volume_min_volume_24h: float = 100000
    volume_min_liquidity: float = 50000
    excluded_tokens: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDED_TOKENS))


@dataclass
class SightingFilterConfig:
    """Thresholds a top trader must clear to count as a sighting."""
    min_profit_usd: float = 0.0
    min_profit_percent: float = 5.0


@dataclass
class TagConfig:
    """Tag derivation thresholds."""
    consistent_min_appearances: int = 5
    multi_winner_min_appearances: int = 3
    whale_min_pnl_usd: float = 10000
    high_pnl_min_pnl_usd: float = 1000
    ten_x_min_pnl_percent: float = 500
    active_min_trades: int = 30
    smart_money_min_appearances: int = 2
    smart_money_min_pnl_usd: float = 500


@dataclass
class WinRateConfig:
    """Derived win rate: min(cap, base + winning_tokens * per_token)."""
    base: float = 50
    per_token: float = 5
    cap: float = 95


class Settings:
    """Main settings class that loads and manages all configuration."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize settings.

        Args:
            config_path: Path to YAML configuration file. If None, uses default path.
        """
        self.config_path = config_path or self._get_default_config_path()
        self.config_data: Dict[str, Any] = {}
        self.load_config()

        self.database = self._load_database_config()
        self.api = self._load_api_config()
        self.scanner = self._load_scanner_config()
        self.trending_tokens = self._load_trending_tokens_config()
        self.sighting_filters = self._load_sighting_filter_config()
        self.tags = self._load_tag_config()
        self.win_rate = self._load_win_rate_config()

    def _get_default_config_path(self) -> str:
        """Get default configuration file path."""
        env_path = os.getenv('SIGNAL_CONFIG_PATH')
        if env_path:
            return env_path

        possible_paths = [
            "/opt/airflow/config/scanner_config.yaml",  # Docker path
            "config/scanner_config.yaml",               # Relative path
            os.path.join(os.path.dirname(__file__), "..", "..", "config", "scanner_config.yaml")
        ]

        for path in possible_paths:
            if os.path.exists(path):
                return path

        return possible_paths[0]

    def load_config(self):
        """Load configuration from YAML file."""
        try:
            if os.path.exists(self.config_path):
                with open(self.config_path, 'r') as file:
                    self.config_data = yaml.safe_load(file) or {}
                logger.debug(f"Loaded configuration from {self.config_path}")
            else:
                logger.warning(f"Configuration file not found at {self.config_path}, using defaults")
                self.config_data = {}
        except Exception as e:
            logger.error(f"Failed to load configuration from {self.config_path}: {e}")
            self.config_data = {}

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key.

        Args:
            key: Configuration key (supports dot notation like 'scanner.tokens_to_scan')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        env_key = key.upper().replace('.', '_')
        env_value = os.getenv(env_key)
        if env_value is not None:
            if isinstance(default, bool):
                return env_value.lower() in ('true', '1', 'yes', 'on')
            elif isinstance(default, int):
                try:
                    return int(env_value)
                except ValueError:
                    pass
            elif isinstance(default, float):
                try:
                    return float(env_value)
                except ValueError:
                    pass
            return env_value

        keys = key.split('.')
        value = self.config_data

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def _load_database_config(self) -> DatabaseConfig:
        """Load database configuration."""
        defaults = DatabaseConfig()
        return DatabaseConfig(
            pool_size=self.get('database.pool_size', defaults.pool_size),
            max_overflow=self.get('database.max_overflow', defaults.max_overflow),
            pool_recycle_hours=self.get('database.pool_recycle_hours', defaults.pool_recycle_hours),
            connection_timeout_seconds=self.get(
                'database.connection_timeout_seconds', defaults.connection_timeout_seconds
            ),
            default_batch_size=self.get('database.default_batch_size', defaults.default_batch_size)
        )

    def _load_api_config(self) -> APIConfig:
        """Load API configuration."""
        defaults = APIConfig()
        return APIConfig(
            codex_base_url=self.get('api.codex.base_url', defaults.codex_base_url),
            network_id=self.get('api.codex.network_id', defaults.network_id),
            timeout_seconds=self.get('api.codex.timeout_seconds', defaults.timeout_seconds),
            max_retries=self.get('api.codex.max_retries', defaults.max_retries)
        )

    def _load_scanner_config(self) -> ScannerConfig:
        """Load scanner configuration."""
        defaults = ScannerConfig()
        return ScannerConfig(
            tokens_to_scan=self.get('scanner.tokens_to_scan', defaults.tokens_to_scan),
            traders_per_token=self.get('scanner.traders_per_token', defaults.traders_per_token),
            api_delay_seconds=self.get('scanner.api_delay_seconds', defaults.api_delay_seconds),
            min_total_trades=self.get('scanner.min_total_trades', defaults.min_total_trades),
            trading_period=self.get('scanner.trading_period', defaults.trading_period)
        )

    def _load_trending_tokens_config(self) -> TrendingTokensConfig:
        """Load trending tokens configuration."""
        defaults = TrendingTokensConfig()
        return TrendingTokensConfig(
            gainers_limit=self.get('trending_tokens.gainers.limit', defaults.gainers_limit),
            gainers_min_volume_24h=self.get(
                'trending_tokens.gainers.min_volume_24h', defaults.gainers_min_volume_24h
            ),
            gainers_min_liquidity=self.get(
                'trending_tokens.gainers.min_liquidity', defaults.gainers_min_liquidity
            ),
            gainers_min_price_change_24h=self.get(
                'trending_tokens.gainers.min_price_change_24h', defaults.gainers_min_price_change_24h
            ),
            volume_limit=self.get('trending_tokens.volume.limit', defaults.volume_limit),
            volume_min_volume_24h=self.get(
                'trending_tokens.volume.min_volume_24h', defaults.volume_min_volume_24h
            ),
            volume_min_liquidity=self.get(
                'trending_tokens.volume.min_liquidity', defaults.volume_min_liquidity
            ),
            excluded_tokens=(self.config_data.get('trending_tokens') or {}).get(
                'excluded_tokens', defaults.excluded_tokens
            )
        )

    def _load_sighting_filter_config(self) -> SightingFilterConfig:
        """Load sighting qualification thresholds."""
        defaults = SightingFilterConfig()
        return SightingFilterConfig(
            min_profit_usd=self.get('sighting_filters.min_profit_usd', defaults.min_profit_usd),
            min_profit_percent=self.get('sighting_filters.min_profit_percent', defaults.min_profit_percent)
        )

    def _load_tag_config(self) -> TagConfig:
        """Load tag derivation thresholds."""
        config = self.config_data.get('tags') or {}
        defaults = TagConfig()
        return TagConfig(**{
            name: config.get(name, getattr(defaults, name))
            for name in defaults.__dataclass_fields__
        })

    def _load_win_rate_config(self) -> WinRateConfig:
        """Load win rate derivation parameters."""
        config = self.config_data.get('win_rate') or {}
        return WinRateConfig(
            base=config.get('base', 50),
            per_token=config.get('per_token', 5),
            cap=config.get('cap', 95)
        )

    # Environment-specific getters

    def get_database_url(self) -> str:
        """Get database URL from environment variables."""
        url = os.getenv('DATABASE_URL')
        if url:
            return url

        user = os.getenv('POSTGRES_USER', 'signal')
        password = os.getenv('POSTGRES_PASSWORD', 'signal_password')
        host = os.getenv('POSTGRES_HOST', 'localhost')
        port = os.getenv('POSTGRES_PORT', '5432')
        database = os.getenv('POSTGRES_DB', 'signal')

        return f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{database}"

    def get_codex_api_key(self) -> Optional[str]:
        """Get the Codex API key from Airflow Variables or environment variables."""
        try:
            from airflow.models import Variable
            api_key = Variable.get("CODEX_API_KEY", default_var=None)
            if api_key:
                return api_key
        except ImportError:
            # Not in Airflow environment, fall back to environment variables
            pass
        except Exception as e:
            logger.debug(f"Airflow variable lookup failed, using environment: {e}")

        return os.getenv('CODEX_API_KEY')


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance.

    Returns:
        Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings(config_path: Optional[str] = None) -> Settings:
    """Reload settings from configuration file."""
    global _settings
    _settings = Settings(config_path)
    logger.info("Settings reloaded")
    return _settings
