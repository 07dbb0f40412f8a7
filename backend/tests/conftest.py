"""
Pytest Configuration for Watchtower Bot Tests

Run all tests: python -m pytest backend/tests/ -v
Run unit tests only: python -m pytest backend/tests/ -v -m "not integration"
"""

import pytest
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from models import LogEntry, TransactionContext
from services.reporter import MonitorState


# =============================================================================
# FIXTURES - Shared across all test files
# =============================================================================

@pytest.fixture
def test_addresses():
    """Standard mainnet addresses (lowercase, as bots store them)"""
    return {
        "USDC": "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48",
        "USDT": "0xdac17f958d2ee523a2206206994597c13d831ec7",
        "AAVE_V2": "0x7d2768de32b0b80b7a3454c06bdac94a69ddc7a9",
        "YEARN_DAI": "0xacd43e627e64355f1861cec6d3a6688b31a6f952",
        "LIDO": "0xae7ab96520de3a18e5e111b5eaab095312d7fe84",
        "LIDO_EXECUTOR": "0xf82ac5937a20dc862f9bc0668779031e06000f17",
        "alice": "0x1111111111111111111111111111111111111111",
        "bob": "0x2222222222222222222222222222222222222222",
    }


@pytest.fixture
def make_tx():
    """Build a TransactionContext; log emitters are always involved"""
    def _make_tx(logs=(), addresses=(), block_number=100, tx_hash="0xfeed", timestamp=1_700_000_000):
        return TransactionContext.build(
            hash=tx_hash,
            block_number=block_number,
            addresses=addresses,
            logs=logs,
            timestamp=timestamp,
        )
    return _make_tx


@pytest.fixture
def make_log():
    def _make_log(address, event_name, args=None, log_index=0, topic=None):
        return LogEntry(address=address, event_name=event_name, args=args or {}, topic=topic, log_index=log_index)
    return _make_log


@pytest.fixture
def mock_provider():
    """Chain data provider double: every capability is an AsyncMock"""
    provider = MagicMock()
    provider.get_balance = AsyncMock()
    provider.call_contract = AsyncMock()
    provider.get_block_context = AsyncMock()
    provider.get_block_transactions = AsyncMock(return_value=[])
    provider.get_transaction_context = AsyncMock()
    provider.get_latest_block_number = AsyncMock()
    return provider


@pytest.fixture
def monitor_state():
    return MonitorState()


# =============================================================================
# MARKERS
# =============================================================================

def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (use a real RPC)"
    )
