"""
Watchtower Bots
Per-transaction and per-block monitors that emit findings
"""

import logging
from typing import List

from infrastructure.config import WatchtowerConfig
from data_sources.chain_provider import ChainDataProvider
from models import EventSignature
from services.reporter import MonitorState

from .base import BaseBot
from .large_transfer import LargeTransferBot
from .minimum_balance import MinimumBalanceBot
from .flash_loan_loss import FlashLoanLossBot
from .protocol_monitor import ProtocolMonitorBot

logger = logging.getLogger("Bots")


def build_bots(config: WatchtowerConfig, provider: ChainDataProvider, state: MonitorState) -> List[BaseBot]:
    """Instantiate every enabled bot. Raises ConfigurationError on bad settings."""
    config.validate()

    bots: List[BaseBot] = []
    if config.features.is_enabled("large_transfer"):
        bots.append(LargeTransferBot(config.large_transfer))
    if config.features.is_enabled("minimum_balance"):
        bots.append(MinimumBalanceBot(config.minimum_balance, provider, state))
    if config.features.is_enabled("flash_loan"):
        bots.append(FlashLoanLossBot(config.flash_loan, provider))
    if config.features.is_enabled("protocol_monitor"):
        bots.append(ProtocolMonitorBot(config.protocol_monitor, provider, state))

    logger.info(f"Enabled bots: {', '.join(b.name for b in bots) or 'none'}")
    return bots


def collect_signatures(bots: List[BaseBot]) -> List[EventSignature]:
    signatures = {}
    for bot in bots:
        for signature in bot.signatures:
            signatures.setdefault(signature.topic, signature)
    return list(signatures.values())


__all__ = [
    "BaseBot",
    "LargeTransferBot",
    "MinimumBalanceBot",
    "FlashLoanLossBot",
    "ProtocolMonitorBot",
    "build_bots",
    "collect_signatures",
]
