"""
Chain data sources for Watchtower bots
"""

from .chain_provider import ChainDataProvider, Web3ChainProvider, create_provider

__all__ = ["ChainDataProvider", "Web3ChainProvider", "create_provider"]
