"""Shared pytest fixtures for bidding service tests."""

import asyncio
from collections import defaultdict
from typing import Optional

import pytest
import rlp
from eth_account import Account as EthAccount
from eth_utils import keccak, to_hex

from bidwar.accounts import AccountResolver
from bidwar.chain import BidNetwork, classify_rejection
from bidwar.exceptions import SubmissionRejected
from bidwar.models import TransactionReceipt
from bidwar.submitter import BidSubmitter

# Well-known development keys; never funded on a public network.
KEY_1 = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
KEY_2 = "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d"
KEY_3 = "0x5de4111afa1a4b94908f83103eb1f1706367c2e68ca870fc3fb9a804cdab365a"

ADDRESS_1 = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
ADDRESS_2 = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
ADDRESS_3 = "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"

ACCOUNT_KEYS = {"1": KEY_1, "2": KEY_2, "3": KEY_3}

CONTRACT = "0x1d370423be52f9424b11163162f78f2e912c4907"
CHAIN_ID = 49797


class FakeNetwork(BidNetwork):
    """In-memory node.

    Tracks a pending nonce per sender and refuses reused nonces the way a
    real node does, so internal races surface as "nonce too low".
    """

    def __init__(self, latency: float = 0.0, gas_price: int = 1_000_000_000):
        self.latency = latency
        self.gas_price = gas_price
        self.calls: list[str] = []
        self.sent: list[dict] = []
        self.pending_nonces: dict[str, int] = defaultdict(int)
        self.reject_with: Optional[str] = None
        self.revert = False
        self.withhold_receipts = False
        self.receipt_error: Optional[Exception] = None
        self.receipt_gates: dict[str, asyncio.Event] = {}
        self._senders: dict[str, str] = {}
        self._block = 100
        self.closed = False

    async def _tick(self):
        await asyncio.sleep(self.latency)

    async def get_transaction_count(self, address: str) -> int:
        self.calls.append("get_transaction_count")
        await self._tick()
        return self.pending_nonces[address]

    async def get_gas_price(self) -> int:
        self.calls.append("get_gas_price")
        await self._tick()
        return self.gas_price

    async def get_chain_id(self) -> int:
        self.calls.append("get_chain_id")
        return CHAIN_ID

    async def send_raw_transaction(self, raw_transaction: bytes) -> str:
        self.calls.append("send_raw_transaction")
        await self._tick()

        if self.reject_with:
            raise SubmissionRejected(
                self.reject_with,
                transient=classify_rejection(self.reject_with),
            )

        sender = EthAccount.recover_transaction(raw_transaction)
        fields = rlp.decode(raw_transaction)
        nonce = int.from_bytes(fields[0], "big")
        value = int.from_bytes(fields[4], "big")

        if nonce < self.pending_nonces[sender]:
            raise SubmissionRejected("nonce too low", transient=True)
        self.pending_nonces[sender] = nonce + 1

        tx_hash = to_hex(keccak(raw_transaction))
        self._senders[tx_hash] = sender
        self.sent.append({
            "hash": tx_hash,
            "sender": sender,
            "nonce": nonce,
            "value": value,
            "to": to_hex(fields[3]),
            "gas": int.from_bytes(fields[2], "big"),
            "data": to_hex(fields[5]),
        })
        return tx_hash

    async def wait_for_receipt(self, transaction_hash: str) -> TransactionReceipt:
        self.calls.append("wait_for_receipt")
        if self.receipt_error is not None:
            raise self.receipt_error
        if self.withhold_receipts:
            await asyncio.Event().wait()

        gate = self.receipt_gates.get(self._senders.get(transaction_hash))
        if gate is not None:
            await gate.wait()

        await self._tick()
        self._block += 1
        return TransactionReceipt(
            transaction_hash=transaction_hash,
            block_number=self._block,
            status=0 if self.revert else 1,
            gas_used=45_000,
        )

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def network() -> FakeNetwork:
    return FakeNetwork()


@pytest.fixture
def resolver() -> AccountResolver:
    return AccountResolver.from_keys(ACCOUNT_KEYS)


@pytest.fixture
def submitter(network: FakeNetwork) -> BidSubmitter:
    return BidSubmitter(
        network=network,
        contract_address=CONTRACT,
        gas_limit=1_000_000,
        confirmation_timeout=2.0,
    )


@pytest.fixture
def env(monkeypatch: pytest.MonkeyPatch, tmp_path):
    """Clean environment with a valid contract and three legacy keys."""
    monkeypatch.chdir(tmp_path)
    for name in ("ACCOUNT_KEYS", "RPC_URL", "GAS_LIMIT", "CONFIRMATION_TIMEOUT_SECONDS"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CONTRACT_ADDRESS", CONTRACT)
    for identifier, key in ACCOUNT_KEYS.items():
        monkeypatch.setenv(f"PRIVATE_KEY_{identifier}", key)
    return monkeypatch
