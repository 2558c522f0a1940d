"""Static pool of signing accounts, selected by caller identifier."""

from dataclasses import dataclass, field
from typing import Mapping

import structlog
from eth_account import Account as EthAccount
from eth_account.signers.local import LocalAccount

from .exceptions import ConfigurationError, UnknownIdentifier

logger = structlog.get_logger()


@dataclass(frozen=True)
class Account:
    """A pre-provisioned signer. Key material stays inside ``signer``."""
    identifier: str
    address: str
    signer: LocalAccount = field(repr=False, compare=False)

    def sign_transaction(self, tx: dict):
        return self.signer.sign_transaction(tx)


class AccountResolver:
    """Exact-match lookup from identifier to Account.

    The mapping is fixed at construction; there is no way to add or remove
    accounts afterwards.
    """

    def __init__(self, accounts: Mapping[str, Account]):
        if not accounts:
            raise ConfigurationError("Account pool is empty")
        self._accounts = dict(accounts)

    @classmethod
    def from_keys(cls, keys: Mapping[str, str]) -> "AccountResolver":
        """Load every private key in ``keys`` (identifier -> hex key).

        Raises:
            ConfigurationError: if any key cannot be loaded
        """
        accounts = {}
        for identifier, private_key in keys.items():
            try:
                signer = EthAccount.from_key(private_key)
            except Exception as e:
                # The key itself must never end up in the message
                raise ConfigurationError(
                    f"Invalid private key for account {identifier!r}: {type(e).__name__}"
                ) from None
            accounts[identifier] = Account(
                identifier=identifier,
                address=signer.address,
                signer=signer,
            )

        resolver = cls(accounts)
        logger.info(
            "account_pool_loaded",
            identifiers=resolver.identifiers,
        )
        return resolver

    @property
    def identifiers(self) -> list[str]:
        return sorted(self._accounts)

    def addresses(self) -> dict[str, str]:
        return {
            identifier: account.address
            for identifier, account in sorted(self._accounts.items())
        }

    def __len__(self) -> int:
        return len(self._accounts)

    def resolve(self, identifier) -> Account:
        """Return the account configured for ``identifier``.

        Raises:
            UnknownIdentifier: for anything not configured, including
                non-string input
        """
        if not isinstance(identifier, str):
            raise UnknownIdentifier(identifier)
        try:
            return self._accounts[identifier]
        except KeyError:
            raise UnknownIdentifier(identifier) from None
