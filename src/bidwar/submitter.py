"""Bid transaction construction, submission and confirmation.

Flow for one bid:
1. Validate the amount (no network traffic on failure)
2. Under the account's lock: assign a nonce, build, sign and broadcast
3. Outside the lock: wait for the receipt, bounded by the configured timeout

Only step 2 is serialized per account, so two bids from the same account
get distinct nonces while their confirmation waits overlap.
"""

import asyncio
from typing import Optional

import structlog
from eth_utils import function_signature_to_4byte_selector, to_checksum_address, to_hex

from .accounts import Account
from .chain import BidNetwork
from .exceptions import ConfirmationTimeout, InvalidAmount, SubmissionRejected
from .models import BidStatus, SubmittedTransaction

logger = structlog.get_logger()

MAX_UINT256 = 2**256 - 1
MAX_UINT256_DIGITS = len(str(MAX_UINT256))


def parse_amount(value) -> int:
    """Parse a bid amount in wei.

    Accepts non-negative ints and decimal-integer strings up to MAX_UINT256.

    Raises:
        InvalidAmount: for anything else
    """
    if isinstance(value, bool):
        raise InvalidAmount(value, "must be an integer number of wei")

    if isinstance(value, int):
        amount = value
    elif isinstance(value, str):
        text = value.strip()
        digits = text[1:] if text[:1] in ("-", "+") else text
        if not digits.isdigit() or not digits.isascii():
            raise InvalidAmount(value, "must be an integer number of wei")
        significant = digits.lstrip("0") or "0"
        # Longer than MAX_UINT256; also keeps int() under its digit limit
        if len(significant) > MAX_UINT256_DIGITS:
            raise InvalidAmount(value, "exceeds the maximum transferable value")
        amount = -int(significant) if text[:1] == "-" else int(significant)
    else:
        raise InvalidAmount(value, "must be an integer number of wei")

    if amount < 0:
        raise InvalidAmount(value, "must not be negative")
    if amount > MAX_UINT256:
        raise InvalidAmount(value, "exceeds the maximum transferable value")
    return amount


class BidSubmitter:
    """Submits bids to one fixed contract with a fixed gas ceiling."""

    def __init__(
        self,
        network: BidNetwork,
        contract_address: str,
        gas_limit: int,
        confirmation_timeout: float,
        bid_function_signature: str = "bid()",
    ):
        self.network = network
        self.contract_address = to_checksum_address(contract_address)
        self.gas_limit = gas_limit
        self.confirmation_timeout = confirmation_timeout
        self.bid_function_signature = bid_function_signature
        self._call_data = to_hex(function_signature_to_4byte_selector(bid_function_signature))

        self._chain_id: Optional[int] = None
        self._locks: dict[str, asyncio.Lock] = {}
        self._next_nonces: dict[str, int] = {}

    def _lock_for(self, account: Account) -> asyncio.Lock:
        lock = self._locks.get(account.address)
        if lock is None:
            lock = self._locks[account.address] = asyncio.Lock()
        return lock

    async def _get_chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = await self.network.get_chain_id()
        return self._chain_id

    async def _assign_nonce(self, account: Account) -> int:
        """Next nonce for the account. Caller must hold the account's lock."""
        network_nonce = await self.network.get_transaction_count(account.address)
        tracked = self._next_nonces.get(account.address, 0)
        return max(network_nonce, tracked)

    def _forget_nonce(self, account: Account) -> None:
        """Drop the tracked nonce so the next bid re-reads it from the network.

        A transaction that never confirms may have left the mempool; keeping
        its successor nonce would leave every later bid behind a gap.
        """
        self._next_nonces.pop(account.address, None)

    def build_transaction(
        self,
        account: Account,
        amount: int,
        nonce: int,
        gas_price: int,
        chain_id: int,
    ) -> dict:
        """Unsigned legacy transaction calling the bid function with ``amount`` attached."""
        return {
            "from": account.address,
            "to": self.contract_address,
            "value": amount,
            "gas": self.gas_limit,
            "gasPrice": gas_price,
            "nonce": nonce,
            "chainId": chain_id,
            "data": self._call_data,
        }

    async def submit_bid(
        self,
        account: Account,
        amount,
        bid_id: Optional[str] = None,
    ) -> SubmittedTransaction:
        """Submit one bid and wait for it to be mined.

        Args:
            account: Resolved signing account
            amount: Value in wei (int or decimal string)
            bid_id: Correlation id for log lines

        Returns:
            SubmittedTransaction with ``confirmed=True``

        Raises:
            InvalidAmount: before any network call
            SubmissionRejected: node refused the transaction, or it reverted
            ConfirmationTimeout: no receipt within the timeout, or the wait
                failed after broadcast
        """
        value = parse_amount(amount)
        log = logger.bind(bid_id=bid_id, account=account.address[:10] + "...")

        async with self._lock_for(account):
            nonce = await self._assign_nonce(account)
            gas_price = await self.network.get_gas_price()
            chain_id = await self._get_chain_id()

            tx = self.build_transaction(account, value, nonce, gas_price, chain_id)
            tx.pop("from")
            signed = account.sign_transaction(tx)
            log.info(
                "bid_constructed",
                status=BidStatus.CONSTRUCTED.value,
                nonce=nonce,
                value=value,
                gas=self.gas_limit,
            )

            broadcast = False
            try:
                tx_hash = await self.network.send_raw_transaction(signed.raw_transaction)
                broadcast = True
            finally:
                if broadcast:
                    self._next_nonces[account.address] = nonce + 1
                else:
                    self._forget_nonce(account)

        tx_hash = tx_hash or to_hex(signed.hash)
        log.info("bid_submitted", status=BidStatus.SUBMITTED.value, tx_hash=tx_hash, nonce=nonce)

        try:
            receipt = await asyncio.wait_for(
                self.network.wait_for_receipt(tx_hash),
                timeout=self.confirmation_timeout,
            )
        except asyncio.TimeoutError:
            self._forget_nonce(account)
            raise ConfirmationTimeout(tx_hash, self.confirmation_timeout) from None
        except Exception as e:
            # Broadcast succeeded, so the outcome is unknown rather than rejected
            log.warning("receipt_wait_failed", tx_hash=tx_hash, error=str(e))
            self._forget_nonce(account)
            raise ConfirmationTimeout(tx_hash, self.confirmation_timeout) from e

        if not receipt.succeeded:
            raise SubmissionRejected(
                "execution reverted",
                transient=False,
                transaction_id=tx_hash,
            )

        return SubmittedTransaction(
            transaction_id=tx_hash,
            confirmed=True,
            account_address=account.address,
            block_number=receipt.block_number,
            gas_used=receipt.gas_used,
        )
