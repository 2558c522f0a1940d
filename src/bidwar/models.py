"""Pydantic models for bid requests and their outcomes."""

from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field


# ============================================================
# Enums
# ============================================================

class BidStatus(str, Enum):
    RECEIVED = "received"
    RESOLVED = "resolved"  # Identifier mapped to an account
    CONSTRUCTED = "constructed"  # Transaction built and signed
    SUBMITTED = "submitted"  # Broadcast accepted by the node
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    TIMED_OUT = "timed_out"


# ============================================================
# Bid Models
# ============================================================

class BidRequest(BaseModel):
    """Caller intent: bid ``amount`` wei from the account for ``identifier``.

    ``userNumber`` is accepted for compatibility with existing clients.
    Both fields are taken as sent: the resolver turns a non-string
    identifier into UnknownIdentifier and parse_amount turns floats,
    negatives and oversized values into InvalidAmount.
    """
    model_config = ConfigDict(populate_by_name=True)

    identifier: Any = Field(alias="userNumber")
    amount: Any

class TransactionReceipt(BaseModel):
    """The parts of a mined receipt the submitter looks at."""
    transaction_hash: str
    block_number: int
    status: int
    gas_used: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return self.status == 1

class SubmittedTransaction(BaseModel):
    """A bid transaction that made it into a block."""
    model_config = ConfigDict(frozen=True)

    transaction_id: str
    confirmed: bool
    account_address: Optional[str] = None
    block_number: Optional[int] = None
    gas_used: Optional[int] = None
