"""
Flash Loan with Losses Bot

Reports a transaction that (1) touches both the lending protocol and the
target, (2) takes a flash loan from the lending protocol and (3) leaves the
target with at least `balance_diff_threshold` less than the block before.
"""

import asyncio
import json
import logging
from typing import List

from infrastructure.config import FlashLoanConfig
from data_sources.chain_provider import ChainDataProvider
from models import Finding, FindingSeverity, FindingType, TransactionContext, parse_event_signature
from services.thresholds import to_raw_int

from .base import BaseBot
from .constants import FLASH_LOAN_EVENT, VAULT_ABI

logger = logging.getLogger("FlashLoanLossBot")

ALERT_ID = "FORTA-5"


class FlashLoanLossBot(BaseBot):
    name = "flash-loan-loss"

    def __init__(self, config: FlashLoanConfig, provider: ChainDataProvider):
        config.validate()
        self.lending_protocol = config.lending_protocol_address.lower()
        self.target = config.target_address.lower()
        self.threshold = config.balance_diff_threshold
        self.provider = provider
        self.flash_loan_event = parse_event_signature(FLASH_LOAN_EVENT)

    @property
    def signatures(self):
        return [self.flash_loan_event]

    async def handle_transaction(self, tx: TransactionContext) -> List[Finding]:
        # 1. Check for target address and lending protocol involvement
        if not (tx.involves(self.lending_protocol) and tx.involves(self.target)):
            return []

        # 2. Check for flash loan
        loans = tx.filter_log(self.flash_loan_event, self.lending_protocol)
        if not loans:
            return []

        # 3. Check for loss of funds; a failed lookup propagates
        current, previous = await asyncio.gather(
            self._balance_at(tx.block_number),
            self._balance_at(tx.block_number - 1),
        )
        balance_diff = current - previous
        if -balance_diff < self.threshold:
            return []

        logger.warning(f"⚠️ Flash loan loss of {balance_diff} on {self.target} in {tx.hash}")
        return [Finding(
            name="Flash Loan with Loss",
            description=f"Flash Loan with loss of {balance_diff} detected for {self.target}",
            alert_id=ALERT_ID,
            protocol="aave",
            severity=FindingSeverity.HIGH,
            type=FindingType.SUSPICIOUS,
            metadata={
                "protocolAddress": self.target,
                "balanceDiff": str(balance_diff),
                "loans": json.dumps([loan.to_dict() for loan in loans]),
            },
        )]

    async def _balance_at(self, block_number: int) -> int:
        raw = await self.provider.call_contract(self.target, VAULT_ABI, "balance", block_number=block_number)
        return to_raw_int(raw)
