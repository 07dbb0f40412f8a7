"""
Minimum Account Balance Bot

Every block: look up the monitored account's balance. Below the minimum is
unhealthy and gets reported at most once per report window; climbing back
above the minimum re-arms the alert.
"""

import logging
from typing import List

from infrastructure.config import MinimumBalanceConfig
from data_sources.chain_provider import ChainDataProvider
from models import BlockContext, Finding, FindingSeverity, FindingType
from services.reporter import MonitorState, RateLimitedReporter
from services.thresholds import to_raw_int

from .base import BaseBot

logger = logging.getLogger("MinimumBalanceBot")

ALERT_ID = "FORTA-6"


class MinimumBalanceBot(BaseBot):
    name = "minimum-balance"

    def __init__(self, config: MinimumBalanceConfig, provider: ChainDataProvider, state: MonitorState):
        # An unset account must stop the process, not silently no-op
        config.validate()
        self.account = config.account.lower()
        self.min_balance = config.min_balance
        self.provider = provider
        self.reporter = RateLimitedReporter(state, f"minimum-balance:{self.account}", config.report_window)

    async def handle_block(self, block: BlockContext) -> List[Finding]:
        balance = to_raw_int(await self.provider.get_balance(self.account, block.block_number))
        healthy = balance >= self.min_balance

        finding = self.reporter.check(healthy, block.timestamp, lambda: self._low_balance_finding(balance))
        return [finding] if finding else []

    def _low_balance_finding(self, balance: int) -> Finding:
        return Finding(
            name="Minimum Account Balance",
            description=f"Account balance ({balance}) below threshold ({self.min_balance})",
            alert_id=ALERT_ID,
            severity=FindingSeverity.INFO,
            type=FindingType.SUSPICIOUS,
            metadata={
                "account": self.account,
                "balance": str(balance),
            },
        )
