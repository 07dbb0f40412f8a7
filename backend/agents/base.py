"""
Base class for Watchtower bots.

A bot may handle transactions, blocks, or both. Anything it needs from the
chain comes in through its constructor (provider, MonitorState), never from
module globals.
"""

from typing import Dict, List

from models import BlockContext, EventSignature, Finding, TransactionContext


class BaseBot:
    name = "bot"

    @property
    def signatures(self) -> List[EventSignature]:
        """Event signatures this bot reads from transaction logs"""
        return []

    async def initialize(self, block_number: int) -> Dict[str, str]:
        return {}

    async def handle_transaction(self, tx: TransactionContext) -> List[Finding]:
        return []

    async def handle_block(self, block: BlockContext) -> List[Finding]:
        return []

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
