"""The bid operation invoked by the HTTP and CLI layers."""

import uuid
from typing import Optional

import structlog

from .accounts import AccountResolver
from .chain import BidNetwork, Web3Network
from .config import Settings, get_settings
from .exceptions import ConfirmationTimeout, InvalidAmount, SubmissionRejected, UnknownIdentifier
from .models import BidStatus, SubmittedTransaction
from .submitter import BidSubmitter

logger = structlog.get_logger()


class BidService:
    """Resolve an identifier to an account and submit its bid."""

    def __init__(self, resolver: AccountResolver, submitter: BidSubmitter):
        self.resolver = resolver
        self.submitter = submitter

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        network: Optional[BidNetwork] = None,
    ) -> "BidService":
        """Build the service from validated settings.

        Raises:
            ConfigurationError: if a signing key cannot be loaded
        """
        resolver = AccountResolver.from_keys(settings.account_keys)
        network = network or Web3Network(
            settings.rpc_url,
            poll_interval=settings.poll_interval_seconds,
            confirmations=settings.confirmations,
            request_timeout=settings.rpc_timeout_seconds,
        )
        submitter = BidSubmitter(
            network=network,
            contract_address=settings.contract_address,
            gas_limit=settings.gas_limit,
            confirmation_timeout=settings.confirmation_timeout_seconds,
            bid_function_signature=settings.bid_function_signature,
        )
        return cls(resolver, submitter)

    async def place_bid(self, identifier: str, amount) -> SubmittedTransaction:
        """Place one bid on behalf of the account behind ``identifier``.

        Each call runs the lifecycle once:
        received -> resolved -> constructed -> submitted -> confirmed,
        ending early in rejected or timed_out. Nothing is retried.
        """
        bid_id = f"bid_{uuid.uuid4().hex[:8]}"
        log = logger.bind(bid_id=bid_id)

        log.info("bid_received", status=BidStatus.RECEIVED.value, identifier=identifier)

        try:
            account = self.resolver.resolve(identifier)
        except UnknownIdentifier:
            log.warning("unknown_identifier", identifier=identifier)
            raise

        log.info(
            "bid_resolved",
            status=BidStatus.RESOLVED.value,
            account=account.address[:10] + "...",
        )

        try:
            result = await self.submitter.submit_bid(account, amount, bid_id=bid_id)
        except InvalidAmount as e:
            log.warning("invalid_amount", amount=str(amount), reason=e.reason)
            raise
        except SubmissionRejected as e:
            log.error(
                "bid_rejected",
                status=BidStatus.REJECTED.value,
                reason=e.reason,
                transient=e.transient,
                tx_hash=e.transaction_id,
            )
            raise
        except ConfirmationTimeout as e:
            log.warning(
                "bid_timed_out",
                status=BidStatus.TIMED_OUT.value,
                tx_hash=e.transaction_id,
                timeout=e.timeout,
            )
            raise

        log.info(
            "bid_confirmed",
            status=BidStatus.CONFIRMED.value,
            tx_hash=result.transaction_id,
            block=result.block_number,
        )
        return result

    async def close(self) -> None:
        await self.submitter.network.close()


# Singleton service instance
_service: Optional[BidService] = None


def get_bid_service() -> BidService:
    """Get bid service singleton built from environment settings."""
    global _service
    if _service is None:
        _service = BidService.from_settings(get_settings())
    return _service


def set_bid_service(service: Optional[BidService]) -> None:
    """Replace the singleton (None to reset)."""
    global _service
    _service = service
