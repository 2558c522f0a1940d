"""JSON-RPC network access for bid submission.

BidNetwork is the seam the submitter depends on. Web3Network talks to a
real node; tests provide an in-memory implementation.
"""

import asyncio
import re
from abc import ABC, abstractmethod
from typing import Any, Optional

import structlog
from eth_utils import to_hex
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import TransactionNotFound, Web3Exception, Web3RPCError

from .exceptions import SubmissionRejected
from .models import TransactionReceipt

logger = structlog.get_logger()

# Failures while polling for a receipt. The transaction is already out, so
# these mean "no answer yet" and the caller's timeout bounds the retries.
RECEIPT_POLL_ERRORS = (Web3Exception, ValueError, OSError, asyncio.TimeoutError)

# Node messages that describe a sequencing condition rather than a
# problem with the transaction itself.
TRANSIENT_REJECTION_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"nonce too low",
        r"nonce too high",
        r"replacement transaction underpriced",
        r"already known",
        r"known transaction",
        r"transaction underpriced",
        r"txpool is full",
    )
]


def classify_rejection(reason: str) -> bool:
    """Return True if ``reason`` looks transient (e.g. a nonce conflict)."""
    return any(p.search(reason or "") for p in TRANSIENT_REJECTION_PATTERNS)


def rejection_reason(error: Exception) -> str:
    """Pull the node's message out of a JSON-RPC error."""
    response = getattr(error, "rpc_response", None)
    if isinstance(response, dict):
        err = response.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])

    if error.args and isinstance(error.args[0], dict):
        message = error.args[0].get("message")
        if message:
            return str(message)

    message = getattr(error, "message", None)
    return str(message or error)


class BidNetwork(ABC):
    """Abstract network operations needed to submit and confirm a bid."""

    @abstractmethod
    async def get_transaction_count(self, address: str) -> int:
        """Next nonce for ``address``, counting pending transactions."""
        ...

    @abstractmethod
    async def get_gas_price(self) -> int:
        ...

    @abstractmethod
    async def get_chain_id(self) -> int:
        ...

    @abstractmethod
    async def send_raw_transaction(self, raw_transaction: bytes) -> str:
        """Broadcast a signed transaction and return its hash.

        Raises:
            SubmissionRejected: if the node refuses the transaction
        """
        ...

    @abstractmethod
    async def wait_for_receipt(self, transaction_hash: str) -> TransactionReceipt:
        """Block until the transaction is mined.

        Does not time out on its own; callers bound it.
        """
        ...

    async def close(self) -> None:
        """Release network resources."""
        return None


class Web3Network(BidNetwork):
    """BidNetwork backed by web3.py's async HTTP provider."""

    def __init__(
        self,
        rpc_url: str,
        poll_interval: float = 1.0,
        confirmations: int = 1,
        request_timeout: float = 30.0,
        w3: Optional[AsyncWeb3] = None,
    ):
        self.rpc_url = rpc_url
        self.poll_interval = poll_interval
        self.confirmations = confirmations
        self.w3 = w3 or AsyncWeb3(
            AsyncHTTPProvider(rpc_url, request_kwargs={"timeout": request_timeout})
        )

    async def get_transaction_count(self, address: str) -> int:
        return await self.w3.eth.get_transaction_count(address, "pending")

    async def get_gas_price(self) -> int:
        return await self.w3.eth.gas_price

    async def get_chain_id(self) -> int:
        return await self.w3.eth.chain_id

    async def send_raw_transaction(self, raw_transaction: bytes) -> str:
        try:
            tx_hash = await self.w3.eth.send_raw_transaction(raw_transaction)
        except (Web3RPCError, ValueError) as e:
            reason = rejection_reason(e)
            raise SubmissionRejected(reason, transient=classify_rejection(reason)) from e
        return to_hex(tx_hash)

    async def wait_for_receipt(self, transaction_hash: str) -> TransactionReceipt:
        while True:
            try:
                raw = await self.w3.eth.get_transaction_receipt(transaction_hash)
            except TransactionNotFound:
                raw = None
            except RECEIPT_POLL_ERRORS as e:
                logger.warning("receipt_poll_failed", tx_hash=transaction_hash[:12], error=str(e))
                raw = None

            if raw is not None and raw.get("blockNumber") is not None:
                receipt = _to_receipt(raw)
                await self._wait_for_depth(receipt.block_number)
                return receipt

            await asyncio.sleep(self.poll_interval)

    async def _wait_for_depth(self, block_number: int) -> None:
        if self.confirmations <= 1:
            return
        while True:
            try:
                head = await self.w3.eth.block_number
            except RECEIPT_POLL_ERRORS as e:
                logger.warning("block_number_poll_failed", error=str(e))
            else:
                if head - block_number + 1 >= self.confirmations:
                    return
            await asyncio.sleep(self.poll_interval)

    async def close(self) -> None:
        disconnect = getattr(self.w3.provider, "disconnect", None)
        if disconnect is not None:
            await disconnect()


def _to_receipt(raw: Any) -> TransactionReceipt:
    return TransactionReceipt(
        transaction_hash=to_hex(raw["transactionHash"]),
        block_number=raw["blockNumber"],
        status=raw.get("status", 1),
        gas_used=raw.get("gasUsed"),
    )
