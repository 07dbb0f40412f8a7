# infrastructure/rpc.py
"""
RPC access for Watchtower bots.
One HTTP Web3 instance per process, checked against the configured chain at startup.
"""
import logging
from typing import Optional

from web3 import Web3

from .config import get_config
from .errors import ConfigurationError

logger = logging.getLogger("RPC")


def get_web3(rpc_url: Optional[str] = None, timeout: Optional[int] = None) -> Web3:
    """Web3 over HTTP; falls back to ETH_RPC_URL / RPC_TIMEOUT."""
    settings = get_config().blockchain
    url = rpc_url or settings.rpc_url
    return Web3(Web3.HTTPProvider(url, request_kwargs={"timeout": timeout or settings.request_timeout}))


def verify_chain(w3: Web3, expected_chain_id: int) -> int:
    """Refuse to watch the wrong network: the node's chain id must match CHAIN_ID."""
    try:
        chain_id = w3.eth.chain_id
    except Exception as e:
        raise ConfigurationError(f"Cannot reach RPC endpoint: {e}", setting="ETH_RPC_URL") from e

    if chain_id != expected_chain_id:
        raise ConfigurationError(
            f"RPC endpoint serves chain {chain_id}, expected {expected_chain_id}",
            setting="CHAIN_ID",
        )
    logger.info(f"Connected to chain {chain_id}")
    return chain_id
