"""
Large Transfer Bot - flags ERC-20 transfers above a normalized threshold

Defaults watch USDC (6 decimals) and alert on more than 10,000 tokens.
"""

import logging
from typing import List

from infrastructure.config import LargeTransferConfig
from models import (
    Finding,
    FindingSeverity,
    FindingType,
    TransactionContext,
    display_value,
    parse_event_signature,
)
from services.thresholds import Comparison, evaluate_threshold, format_amount

from .base import BaseBot
from .constants import ERC20_TRANSFER_EVENT

logger = logging.getLogger("LargeTransferBot")

ALERT_ID = "FORTA-1"


class LargeTransferBot(BaseBot):
    name = "large-transfer"

    def __init__(self, config: LargeTransferConfig):
        config.validate()
        self.symbol = config.token_symbol
        self.token_address = config.token_address.lower()
        self.decimals = config.token_decimals
        self.threshold = config.threshold
        self.transfer_event = parse_event_signature(ERC20_TRANSFER_EVENT)

    @property
    def signatures(self):
        return [self.transfer_event]

    async def handle_transaction(self, tx: TransactionContext) -> List[Finding]:
        findings = []

        for transfer in tx.filter_log(self.transfer_event, self.token_address):
            result = evaluate_threshold(
                transfer.args["value"],
                self.decimals,
                self.threshold,
                Comparison.ABOVE,
            )
            if not result.matched:
                continue

            findings.append(Finding(
                name=f"High {self.symbol} Transfer",
                description=f"High amount of {self.symbol} transferred: {format_amount(result.normalized)}",
                alert_id=ALERT_ID,
                severity=FindingSeverity.LOW,
                type=FindingType.INFO,
                metadata={
                    "to": display_value(transfer.args["to"]),
                    "from": display_value(transfer.args["from"]),
                },
            ))

        if findings:
            logger.info(f"{len(findings)} large {self.symbol} transfer(s) in {tx.hash}")
        return findings
