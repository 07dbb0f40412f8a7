"""
Configuration Management for Watchtower Bots
Environment-based configuration with validation and feature flags

Features:
- Environment-based config (dev/staging/prod)
- Per-bot monitored addresses and thresholds
- Feature flags to enable/disable bots
- Fail-fast validation at startup
"""

import os
import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional
from enum import Enum

from web3 import Web3

from .errors import ConfigurationError

logger = logging.getLogger("Config")


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


# Known token profiles for the large transfer bot: symbol, address, decimals
TOKEN_PROFILES: Dict[str, Dict] = {
    "usdc": {
        "symbol": "USDC",
        "address": "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
        "decimals": 6,
    },
    "usdt": {
        "symbol": "USDT",
        "address": "0xdAC17F958D2ee523a2206206994597C13D831ec7",
        "decimals": 6,
    },
}


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}", setting=name)


def _env_decimal(name: str, default: str) -> Decimal:
    raw = os.environ.get(name) or default
    try:
        return Decimal(raw)
    except InvalidOperation:
        raise ConfigurationError(f"{name} must be a decimal number, got {raw!r}", setting=name)


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return raw.lower() in ("1", "true", "yes", "on")


def _require_address(value: str, setting: str) -> None:
    if not value:
        raise ConfigurationError(f"{setting} is not set", setting=setting)
    if not Web3.is_address(value):
        raise ConfigurationError(f"{setting} is not a valid address: {value!r}", setting=setting)


@dataclass
class BlockchainConfig:
    """Blockchain / RPC configuration"""
    rpc_url: str = "https://eth.llamarpc.com"
    chain_id: int = 1
    request_timeout: int = 30
    max_attempts: int = 3
    poll_interval: int = 12  # seconds, roughly one mainnet slot


@dataclass
class MonitoringConfig:
    """Logging and alert delivery configuration"""
    log_level: str = "INFO"

    # Alerting
    alert_webhook_url: Optional[str] = None


@dataclass
class LargeTransferConfig:
    """Large ERC-20 transfer bot"""
    token_symbol: str = TOKEN_PROFILES["usdc"]["symbol"]
    token_address: str = TOKEN_PROFILES["usdc"]["address"]
    token_decimals: int = TOKEN_PROFILES["usdc"]["decimals"]
    threshold: Decimal = Decimal("10000")

    def validate(self):
        _require_address(self.token_address, "LARGE_TRANSFER_TOKEN_ADDRESS")
        if not 0 <= self.token_decimals <= 255:
            raise ConfigurationError("token decimals must be within 0..255", setting="LARGE_TRANSFER_DECIMALS")


@dataclass
class MinimumBalanceConfig:
    """Minimum account balance bot"""
    account: str = ""
    min_balance: int = 500000000000000000  # 0.5 eth in wei
    report_window: int = 60 * 60 * 4  # 4 hours

    def validate(self):
        _require_address(self.account, "MONITORED_ACCOUNT")
        if self.min_balance < 0:
            raise ConfigurationError("MIN_ACCOUNT_BALANCE must not be negative", setting="MIN_ACCOUNT_BALANCE")


@dataclass
class FlashLoanConfig:
    """Flash loan with losses bot"""
    lending_protocol_address: str = "0x7d2768de32b0b80b7a3454c06bdac94a69ddc7a9"  # Aave V2 lending pool
    target_address: str = "0xacd43e627e64355f1861cec6d3a6688b31a6f952"  # Yearn Dai vault
    balance_diff_threshold: int = 200000000000000000000  # 200 eth

    def validate(self):
        _require_address(self.lending_protocol_address, "FLASH_LOAN_PROTOCOL")
        _require_address(self.target_address, "FLASH_LOAN_TARGET")


@dataclass
class ProtocolMonitorConfig:
    """Lido protocol monitoring bot"""
    lido_address: str = "0xae7ab96520de3a18e5e111b5eaab095312d7fe84"
    deposit_executor_address: str = "0xf82ac5937a20dc862f9bc0668779031e06000f17"
    min_executor_balance: Decimal = Decimal("2")  # ETH
    report_window: int = 60 * 60 * 4  # 4 hours

    def validate(self):
        _require_address(self.lido_address, "LIDO_ADDRESS")
        _require_address(self.deposit_executor_address, "LIDO_DEPOSIT_EXECUTOR_ADDRESS")


@dataclass
class FeatureFlags:
    """Which bots the runner dispatches to"""
    enable_large_transfer: bool = True
    enable_minimum_balance: bool = True
    enable_flash_loan: bool = True
    enable_protocol_monitor: bool = True

    def is_enabled(self, feature: str) -> bool:
        return getattr(self, f"enable_{feature}", False)


@dataclass
class WatchtowerConfig:
    """Main application configuration"""
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = True

    # Component configs
    blockchain: BlockchainConfig = field(default_factory=BlockchainConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)
    large_transfer: LargeTransferConfig = field(default_factory=LargeTransferConfig)
    minimum_balance: MinimumBalanceConfig = field(default_factory=MinimumBalanceConfig)
    flash_loan: FlashLoanConfig = field(default_factory=FlashLoanConfig)
    protocol_monitor: ProtocolMonitorConfig = field(default_factory=ProtocolMonitorConfig)
    features: FeatureFlags = field(default_factory=FeatureFlags)

    @classmethod
    def from_env(cls) -> "WatchtowerConfig":
        """Create configuration from environment variables"""
        env = os.environ.get("WATCHTOWER_ENV", "development").lower()

        config = cls(
            environment=Environment(env) if env in [e.value for e in Environment] else Environment.DEVELOPMENT,
            debug=os.environ.get("DEBUG", "true").lower() == "true",
        )

        config.blockchain = BlockchainConfig(
            rpc_url=os.environ.get("ETH_RPC_URL", BlockchainConfig.rpc_url),
            chain_id=_env_int("CHAIN_ID", 1),
            request_timeout=_env_int("RPC_TIMEOUT", 30),
            max_attempts=_env_int("RPC_MAX_ATTEMPTS", 3),
            poll_interval=_env_int("POLL_INTERVAL", 12),
        )

        config.monitoring = MonitoringConfig(
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
            alert_webhook_url=os.environ.get("ALERT_WEBHOOK_URL") or None,
        )

        token_key = os.environ.get("LARGE_TRANSFER_TOKEN", "usdc").lower()
        if token_key not in TOKEN_PROFILES:
            raise ConfigurationError(
                f"Unknown LARGE_TRANSFER_TOKEN {token_key!r}, expected one of {sorted(TOKEN_PROFILES)}",
                setting="LARGE_TRANSFER_TOKEN",
            )
        profile = TOKEN_PROFILES[token_key]
        config.large_transfer = LargeTransferConfig(
            token_symbol=profile["symbol"],
            token_address=profile["address"],
            token_decimals=profile["decimals"],
            threshold=_env_decimal("LARGE_TRANSFER_THRESHOLD", "10000"),
        )

        config.minimum_balance = MinimumBalanceConfig(
            account=os.environ.get("MONITORED_ACCOUNT", ""),
            min_balance=_env_int("MIN_ACCOUNT_BALANCE", MinimumBalanceConfig.min_balance),
            report_window=_env_int("BALANCE_REPORT_WINDOW", MinimumBalanceConfig.report_window),
        )

        config.flash_loan = FlashLoanConfig(
            target_address=os.environ.get("FLASH_LOAN_TARGET", FlashLoanConfig.target_address),
            balance_diff_threshold=_env_int("FLASH_LOAN_THRESHOLD", FlashLoanConfig.balance_diff_threshold),
        )

        config.features = FeatureFlags(
            enable_large_transfer=_env_flag("ENABLE_LARGE_TRANSFER", True),
            enable_minimum_balance=_env_flag("ENABLE_MINIMUM_BALANCE", True),
            enable_flash_loan=_env_flag("ENABLE_FLASH_LOAN", True),
            enable_protocol_monitor=_env_flag("ENABLE_PROTOCOL_MONITOR", True),
        )

        if config.environment == Environment.PRODUCTION:
            config.debug = False
            config.monitoring.log_level = "WARNING"

        return config

    def validate(self) -> "WatchtowerConfig":
        """Validate every enabled bot's settings. Raises ConfigurationError."""
        if not self.blockchain.rpc_url:
            raise ConfigurationError("ETH_RPC_URL is not set", setting="ETH_RPC_URL")
        if self.blockchain.max_attempts < 1:
            raise ConfigurationError("RPC_MAX_ATTEMPTS must be at least 1", setting="RPC_MAX_ATTEMPTS")

        bots = {
            "large_transfer": self.large_transfer,
            "minimum_balance": self.minimum_balance,
            "flash_loan": self.flash_loan,
            "protocol_monitor": self.protocol_monitor,
        }
        for name, bot_config in bots.items():
            if self.features.is_enabled(name):
                bot_config.validate()

        return self

    def to_dict(self) -> Dict:
        """Convert to dictionary (hiding secrets)"""
        def sanitize(obj):
            if isinstance(obj, dict):
                return {
                    k: sanitize(v) for k, v in obj.items()
                    if "secret" not in k.lower() and "url" not in k.lower()
                }
            elif hasattr(obj, '__dataclass_fields__'):
                return sanitize({k: getattr(obj, k) for k in obj.__dataclass_fields__})
            elif isinstance(obj, Enum):
                return obj.value
            elif isinstance(obj, Decimal):
                return str(obj)
            else:
                return obj

        return sanitize(self)


# ============================================
# GLOBAL INSTANCE
# ============================================

config = WatchtowerConfig.from_env()


def get_config() -> WatchtowerConfig:
    """Get the global configuration"""
    return config


def reload_config() -> WatchtowerConfig:
    """Reload configuration from environment"""
    global config
    config = WatchtowerConfig.from_env()
    logger.info("Configuration reloaded")
    return config
