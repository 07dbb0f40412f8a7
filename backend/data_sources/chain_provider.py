"""
Chain Data Provider
Balance lookups, contract calls and decoded transaction contexts over web3.py

Bots only see the ChainDataProvider interface; Web3ChainProvider is the
production implementation. web3.py's HTTP provider is blocking, so every
RPC call runs in the default executor and is retried on transport errors.
Any failure surfaces as ProviderError for the current unit of work.
"""

import asyncio
import functools
import logging
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from eth_abi.exceptions import DecodingError
from web3 import Web3
from web3.exceptions import Web3Exception

from infrastructure.errors import ProviderError, retry
from models import BlockContext, EventSignature, LogEntry, TransactionContext

logger = logging.getLogger("ChainProvider")


class ChainDataProvider(Protocol):
    """Capabilities bots are allowed to use"""

    async def get_balance(self, address: str, block_number: int) -> int:
        ...

    async def call_contract(
        self,
        address: str,
        abi: List[Dict],
        function_name: str,
        args: Sequence[Any] = (),
        block_number: Optional[int] = None,
    ) -> Any:
        ...


class Web3ChainProvider:
    """
    web3.py-backed provider.

    Usage:
        provider = Web3ChainProvider(get_web3(), signatures=matcher.signatures)
        tx = await provider.get_transaction_context("0xabc...")
        balance = await provider.get_balance(account, tx.block_number)
    """

    def __init__(
        self,
        w3: Web3,
        signatures: Sequence[EventSignature] = (),
        max_attempts: int = 3,
        retry_delay: float = 1.0,
    ):
        self.w3 = w3
        self._signatures: Dict[str, EventSignature] = {}
        self._events: Dict[str, Any] = {}
        self.register_signatures(signatures)

        # Transport failures (requests' ConnectionError/Timeout are OSErrors)
        # are retried; JSON-RPC error responses are not.
        self._call = retry(
            max_attempts=max_attempts,
            delay=retry_delay,
            exceptions=(OSError, asyncio.TimeoutError),
        )(self._run_in_executor)

    def register_signatures(self, signatures: Sequence[EventSignature]):
        """Event signatures whose logs get decoded into LogEntry objects"""
        for signature in signatures:
            self._signatures.setdefault(signature.topic, signature)

    # ===========================================
    # EXECUTION
    # ===========================================

    async def _run_in_executor(self, fn: Callable, *args, **kwargs) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(fn, *args, **kwargs))

    async def _execute(self, operation: str, fn: Callable, *args, block_number: Optional[int] = None, **kwargs) -> Any:
        try:
            return await self._call(fn, *args, **kwargs)
        except Exception as e:
            logger.warning(f"{operation} failed at block {block_number}: {e}")
            raise ProviderError(operation, f"{operation} failed: {e}", block_number, e) from e

    # ===========================================
    # STATE QUERIES
    # ===========================================

    async def get_balance(self, address: str, block_number: int) -> int:
        """Native balance (wei) of `address` at the end of `block_number`"""
        return await self._execute(
            "get_balance",
            self.w3.eth.get_balance,
            Web3.to_checksum_address(address),
            block_identifier=block_number,
            block_number=block_number,
        )

    async def call_contract(
        self,
        address: str,
        abi: List[Dict],
        function_name: str,
        args: Sequence[Any] = (),
        block_number: Optional[int] = None,
    ) -> Any:
        """Read-only contract call, pinned to `block_number` when given"""
        contract = self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)
        function = getattr(contract.functions, function_name)(*args)
        block_identifier = block_number if block_number is not None else "latest"
        return await self._execute(
            f"call:{function_name}",
            function.call,
            block_identifier=block_identifier,
            block_number=block_number,
        )

    async def get_latest_block_number(self) -> int:
        return await self._execute("block_number", lambda: self.w3.eth.block_number)

    # ===========================================
    # CONTEXTS
    # ===========================================

    async def get_block_context(self, block_number: int) -> BlockContext:
        block = await self._execute("get_block", self.w3.eth.get_block, block_number, block_number=block_number)
        return BlockContext(
            block_number=block["number"],
            timestamp=block["timestamp"],
            block_hash=Web3.to_hex(block["hash"]) if block.get("hash") else None,
        )

    async def get_block_transactions(self, block_number: int) -> List[str]:
        block = await self._execute("get_block", self.w3.eth.get_block, block_number, block_number=block_number)
        return [Web3.to_hex(tx_hash) for tx_hash in block["transactions"]]

    async def get_transaction_context(
        self,
        tx_hash: str,
        block: Optional[BlockContext] = None,
    ) -> TransactionContext:
        tx = await self._execute("get_transaction", self.w3.eth.get_transaction, tx_hash)
        receipt = await self._execute("get_transaction_receipt", self.w3.eth.get_transaction_receipt, tx_hash)

        block_number = receipt["blockNumber"]
        if block is None or block.block_number != block_number:
            block = await self.get_block_context(block_number)

        logs = []
        for raw_log in receipt["logs"]:
            entry = self.decode_log(raw_log)
            if entry is not None:
                logs.append(entry)

        addresses = [tx.get("from"), tx.get("to"), receipt.get("contractAddress")]
        addresses += [raw_log["address"] for raw_log in receipt["logs"]]

        return TransactionContext.build(
            hash=Web3.to_hex(receipt["transactionHash"]),
            block_number=block_number,
            addresses=[a for a in addresses if a],
            logs=logs,
            timestamp=block.timestamp,
        )

    def decode_log(self, raw_log: Dict) -> Optional[LogEntry]:
        """Decode a receipt log against the registered signatures"""
        topics = raw_log.get("topics") or []
        if not topics:
            return None

        topic = Web3.to_hex(topics[0])
        signature = self._signatures.get(topic)
        if signature is None:
            return None

        try:
            decoded = self._event_for(signature).process_log(raw_log)
        except (Web3Exception, DecodingError) as e:
            # Same topic with different indexing (e.g. ERC-721 Transfer) or truncated data
            logger.debug(f"Skipping undecodable {signature.name} log: {e}")
            return None

        return LogEntry(
            address=raw_log["address"],
            event_name=signature.name,
            args=dict(decoded["args"]),
            topic=topic,
            log_index=raw_log.get("logIndex", 0),
        )

    def _event_for(self, signature: EventSignature):
        if signature.topic not in self._events:
            contract = self.w3.eth.contract(abi=[signature.to_abi()])
            self._events[signature.topic] = getattr(contract.events, signature.name)()
        return self._events[signature.topic]


def create_provider(w3: Web3, signatures: Sequence[EventSignature] = (), max_attempts: int = 3) -> Web3ChainProvider:
    provider = Web3ChainProvider(w3, signatures=signatures, max_attempts=max_attempts)
    logger.info(f"Chain provider ready ({len(signatures)} event signature(s) decoded)")
    return provider
