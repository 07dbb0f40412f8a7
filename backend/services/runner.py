"""
Bot Runner
Feeds blocks and transactions to every bot and delivers their findings.

Each (bot, transaction) and (bot, block) pair is one unit of work. A unit
that raises is tracked, logged and reported to Sentry; the next unit runs
as normal and MonitorState is left as the failed unit found it.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Sequence

from infrastructure.errors import ErrorTracker, ProviderError, error_tracker
from models import BlockContext, Finding, TransactionContext
from sentry_config import capture_blockchain_breadcrumb, capture_unit_failure

from .emitter import FindingEmitter

logger = logging.getLogger("BotRunner")


class BotRunner:
    def __init__(
        self,
        bots: Sequence,
        provider,
        emitter: FindingEmitter,
        tracker: Optional[ErrorTracker] = None,
    ):
        self.bots = list(bots)
        self.provider = provider
        self.emitter = emitter
        self.tracker = tracker or error_tracker

        self._stats = {
            "blocks": 0,
            "transactions": 0,
            "findings": 0,
            "undelivered_findings": 0,
            "failed_units": 0,
        }

    async def initialize(self, block_number: int) -> Dict[str, Dict[str, str]]:
        """Run every bot's initialize hook; a failure here aborts startup"""
        results = {}
        for bot in self.bots:
            results[bot.name] = await bot.initialize(block_number)
        return results

    # ===========================================
    # UNITS OF WORK
    # ===========================================

    async def _run_unit(self, unit: str, handler, context) -> List[Finding]:
        try:
            return await handler(context)
        except Exception as e:
            self._stats["failed_units"] += 1
            self.tracker.track(e, unit)
            capture_unit_failure(e, unit)
            return []

    async def handle_transaction(self, tx: TransactionContext) -> List[Finding]:
        findings = []
        for bot in self.bots:
            findings.extend(await self._run_unit(f"{bot.name}:tx:{tx.hash}", bot.handle_transaction, tx))
        self._stats["transactions"] += 1
        return findings

    async def handle_block(self, block: BlockContext) -> List[Finding]:
        findings = []
        for bot in self.bots:
            findings.extend(await self._run_unit(f"{bot.name}:block:{block.block_number}", bot.handle_block, block))
        self._stats["blocks"] += 1
        return findings

    async def _deliver(self, findings: List[Finding], source: str):
        if not findings:
            return
        try:
            await self.emitter.emit(findings, source=source)
        except Exception as e:
            self._stats["failed_units"] += 1
            self._stats["undelivered_findings"] += len(findings)
            self.tracker.track(e, f"emit:{source}")
            capture_unit_failure(e, f"emit:{source}")
            return
        self._stats["findings"] += len(findings)

    # ===========================================
    # BLOCK PROCESSING
    # ===========================================

    async def process_block(self, block_number: int) -> List[Finding]:
        """Every transaction of the block, then the block itself"""
        capture_blockchain_breadcrumb("process_block", details={"block_number": block_number})
        try:
            block = await self.provider.get_block_context(block_number)
            tx_hashes = await self.provider.get_block_transactions(block_number)
        except Exception as e:
            self._stats["failed_units"] += 1
            self.tracker.track(e, f"block:{block_number}")
            capture_unit_failure(e, f"block:{block_number}")
            return []

        all_findings = []
        for tx_hash in tx_hashes:
            try:
                tx = await self.provider.get_transaction_context(tx_hash, block)
            except Exception as e:
                self._stats["failed_units"] += 1
                self.tracker.track(e, f"tx:{tx_hash}")
                capture_unit_failure(e, f"tx:{tx_hash}")
                continue

            findings = await self.handle_transaction(tx)
            await self._deliver(findings, source=tx.hash)
            all_findings.extend(findings)

        findings = await self.handle_block(block)
        await self._deliver(findings, source=f"block:{block_number}")
        all_findings.extend(findings)

        logger.info(f"Block {block_number}: {len(tx_hashes)} tx, {len(all_findings)} finding(s)")
        return all_findings

    async def run(
        self,
        from_block: int,
        to_block: Optional[int] = None,
        follow: bool = False,
        poll_interval: float = 12,
    ):
        """
        Process [from_block, to_block]. With follow=True keep polling for
        new blocks after reaching the head.
        """
        next_block = from_block
        while True:
            try:
                head = to_block if to_block is not None else await self.provider.get_latest_block_number()
            except ProviderError as e:
                if not follow:
                    raise
                self.tracker.track(e, "head")
                await asyncio.sleep(poll_interval)
                continue

            while next_block <= head:
                await self.process_block(next_block)
                next_block += 1

            if not follow or to_block is not None:
                return
            await asyncio.sleep(poll_interval)

    def get_stats(self) -> Dict:
        return {
            **self._stats,
            "bots": [b.name for b in self.bots],
            "errors": self.tracker.get_stats()["error_counts"],
            "failures_by_scope": self.tracker.get_stats()["scope_counts"],
        }
