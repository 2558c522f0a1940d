"""Error classifications for the bid path.

Request-time errors derive from BidError and carry a stable ``code`` so
the HTTP layer can map them without inspecting messages.
"""

from typing import Optional


class BidwarError(Exception):
    """Base class for all service errors."""


class ConfigurationError(BidwarError):
    """Startup configuration is missing or malformed."""


class BidError(BidwarError):
    """A single bid request ended in a classified failure."""

    code = "bid_error"


class UnknownIdentifier(BidError):
    code = "unknown_identifier"

    def __init__(self, identifier):
        self.identifier = identifier
        super().__init__(f"Unknown identifier: {identifier!r}")


class InvalidAmount(BidError):
    code = "invalid_amount"

    def __init__(self, amount, reason: str):
        self.amount = amount
        self.reason = reason
        super().__init__(f"Invalid amount {amount!r}: {reason}")


class SubmissionRejected(BidError):
    """The network refused the transaction.

    ``transient`` reports whether the node's reason looks like a sequencing
    condition that could succeed on a later attempt. It is informational;
    nothing here retries.
    """

    code = "submission_rejected"

    def __init__(
        self,
        reason: str,
        transient: bool = False,
        transaction_id: Optional[str] = None,
    ):
        self.reason = reason
        self.transient = transient
        self.transaction_id = transaction_id
        super().__init__(f"Submission rejected: {reason}")


class ConfirmationTimeout(BidError):
    """Broadcast succeeded but no receipt arrived in time. Outcome unknown."""

    code = "confirmation_timeout"

    def __init__(self, transaction_id: str, timeout: float):
        self.transaction_id = transaction_id
        self.timeout = timeout
        super().__init__(
            f"Transaction {transaction_id} not confirmed within {timeout}s"
        )
