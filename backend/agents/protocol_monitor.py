"""
Protocol Monitor Bot - Lido

Blocks:
- total pooled ether growth (running total kept in MonitorState)
- deposit executor balance below the minimum, reported once per window
Transactions:
- Submitted (ETH staked) events
- the events-of-notice table (stop/resume, withdrawal credentials, EL rewards)
"""

import asyncio
import logging
from decimal import Decimal
from typing import Dict, List

from infrastructure.config import ProtocolMonitorConfig
from data_sources.chain_provider import ChainDataProvider
from models import (
    BlockContext,
    Finding,
    FindingSeverity,
    FindingType,
    TransactionContext,
    display_value,
    parse_event_signature,
)
from services.event_matcher import EventMatcher
from services.reporter import MonitorState, RateLimitedReporter
from services.thresholds import format_amount, normalize_amount, to_raw_int

from .base import BaseBot
from .constants import ETH_DECIMALS, LIDO_ABI, SUBMITTED_EVENT, eth_amount, lido_events_of_notice

logger = logging.getLogger("ProtocolMonitorBot")

TOTAL_POOLED_ETHER_KEY = "lido:total-pooled-ether"


class ProtocolMonitorBot(BaseBot):
    name = "protocol-monitor"

    def __init__(self, config: ProtocolMonitorConfig, provider: ChainDataProvider, state: MonitorState):
        config.validate()
        self.lido_address = config.lido_address.lower()
        self.executor_address = config.deposit_executor_address.lower()
        self.min_executor_balance = Decimal(config.min_executor_balance)
        self.provider = provider
        self.state = state
        self.matcher = EventMatcher(lido_events_of_notice(self.lido_address))
        self.submitted_event = parse_event_signature(SUBMITTED_EVENT)
        self.executor_reporter = RateLimitedReporter(
            state,
            f"lido:deposit-executor-balance:{self.executor_address}",
            config.report_window,
        )

    @property
    def signatures(self):
        return [self.submitted_event] + self.matcher.signatures

    async def initialize(self, block_number: int) -> Dict[str, str]:
        logger.info(f"[{self.name}] initializing at block {block_number}")
        total_pooled_ether = await self._get_total_pooled_ether(block_number)
        self.state.set_value(TOTAL_POOLED_ETHER_KEY, total_pooled_ether)
        return {"totalPooledEther": str(total_pooled_ether)}

    # ===========================================
    # BLOCKS
    # ===========================================

    async def handle_block(self, block: BlockContext) -> List[Finding]:
        # Both reads complete before any MonitorState write
        new_total, raw_balance = await asyncio.gather(
            self._get_total_pooled_ether(block.block_number),
            self._get_executor_balance(block.block_number),
        )
        balance = normalize_amount(raw_balance, ETH_DECIMALS)

        findings = self._check_total_pooled_ether(new_total)
        findings.extend(self._check_deposit_executor_balance(raw_balance, balance, block.timestamp))
        return findings

    def _check_total_pooled_ether(self, new_total: int) -> List[Finding]:
        previous = self.state.compare_and_set(TOTAL_POOLED_ETHER_KEY, new_total, lambda old, new: new > old)
        if previous is None:
            return []

        return [Finding(
            name="Total pooled ETH increased",
            description=(
                f"Total pooled Ether increased from "
                f"{eth_amount(previous)} ETH to {eth_amount(new_total)} ETH"
            ),
            alert_id="TOTAL-POOLED-ETH-INCREASED",
            severity=FindingSeverity.INFO,
            type=FindingType.INFO,
            metadata={
                "prevTotalPooledEther": str(previous),
                "newTotalPooledEther": str(new_total),
            },
        )]

    def _check_deposit_executor_balance(self, raw_balance: int, balance: Decimal, timestamp: int) -> List[Finding]:
        healthy = balance >= self.min_executor_balance

        finding = self.executor_reporter.check(
            healthy,
            timestamp,
            lambda: Finding(
                name="Low deposit executor balance",
                description=(
                    f"Balance of deposit executor is {format_amount(balance, 4)}. "
                    f"This is extremely low!"
                ),
                alert_id="LOW-DEPOSIT-EXECUTOR-BALANCE",
                severity=FindingSeverity.HIGH,
                type=FindingType.SUSPICIOUS,
                metadata={"balance": str(raw_balance)},
            ),
        )
        return [finding] if finding else []

    async def _get_executor_balance(self, block_number: int) -> int:
        return to_raw_int(await self.provider.get_balance(self.executor_address, block_number))

    async def _get_total_pooled_ether(self, block_number: int) -> int:
        raw = await self.provider.call_contract(
            self.lido_address,
            LIDO_ABI,
            "getTotalPooledEther",
            block_number=block_number,
        )
        return to_raw_int(raw)

    # ===========================================
    # TRANSACTIONS
    # ===========================================

    async def handle_transaction(self, tx: TransactionContext) -> List[Finding]:
        findings = self._handle_submit_events(tx)
        findings.extend(self.matcher.findings(tx))
        return findings

    def _handle_submit_events(self, tx: TransactionContext) -> List[Finding]:
        if not tx.involves(self.lido_address):
            return []

        findings = []
        for event in tx.filter_log(self.submitted_event, self.lido_address):
            amount = to_raw_int(event.args["amount"])
            sender = display_value(event.args["sender"])
            findings.append(Finding(
                name="ETH staked",
                description=f"{eth_amount(amount)} ETH staked by {sender}",
                alert_id="ETH-STAKED",
                severity=FindingSeverity.INFO,
                type=FindingType.INFO,
                metadata={
                    "amount": str(amount),
                    "sender": sender,
                },
            ))
        return findings
