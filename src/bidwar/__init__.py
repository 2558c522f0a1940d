"""Bidding War - submit auction bids from a pool of managed accounts.

Example usage:
    from bidwar import BidService, load_settings

    service = BidService.from_settings(load_settings())
    result = await service.place_bid("1", 500000000000000000)
    print(result.transaction_id)
"""

from .accounts import Account, AccountResolver
from .config import Settings, load_settings
from .exceptions import (
    BidError,
    ConfigurationError,
    ConfirmationTimeout,
    InvalidAmount,
    SubmissionRejected,
    UnknownIdentifier,
)
from .models import BidRequest, BidStatus, SubmittedTransaction
from .service import BidService
from .submitter import BidSubmitter, parse_amount

__version__ = "0.1.0"
__all__ = [
    "Account",
    "AccountResolver",
    "BidError",
    "BidRequest",
    "BidService",
    "BidStatus",
    "BidSubmitter",
    "ConfigurationError",
    "ConfirmationTimeout",
    "InvalidAmount",
    "Settings",
    "SubmissionRejected",
    "SubmittedTransaction",
    "UnknownIdentifier",
    "load_settings",
    "parse_amount",
]
