"""
Account resolution: public key to address, address to sequence and account number.
"""
import logging
import threading
import weakref
from typing import Any, Dict

from .address import AddressScheme, derive_address
from .exceptions import GRPC_NOT_FOUND, AccountNotFound, LcdResponseError, TransportFailure
from .models import AccountIdentity
from .transport import LcdTransport

logger = logging.getLogger(__name__)

ACCOUNTS_PATH = "/cosmos/auth/v1beta1/accounts/{address}"

# One lock per signing address, shared by every client in the process.
# Entries disappear once no caller holds a reference to the lock.
_address_locks: "weakref.WeakValueDictionary[str, AddressLock]" = weakref.WeakValueDictionary()
_address_locks_guard = threading.RLock()


class AddressLock:
    """Non-reentrant lock for one signing address."""

    __slots__ = ("address", "_lock", "__weakref__")

    def __init__(self, address: str):
        self.address = address
        self._lock = threading.Lock()

    def acquire(self, blocking: bool = True, timeout: float = -1) -> bool:
        return self._lock.acquire(blocking, timeout)

    def release(self) -> None:
        self._lock.release()

    def locked(self) -> bool:
        return self._lock.locked()

    def __enter__(self) -> "AddressLock":
        self._lock.acquire()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self._lock.release()


def address_lock(address: str) -> AddressLock:
    """
    Get the lock serialising sequence acquisition for an address.

    Hold it from fetching the sequence until the broadcast returns, so two
    transactions from one account are never signed for the same sequence.
    """
    with _address_locks_guard:
        lock = _address_locks.get(address)
        if lock is None:
            lock = AddressLock(address)
            _address_locks[address] = lock
        return lock


def _base_account(account: Dict[str, Any]) -> Dict[str, Any]:
    """Unwrap module and vesting accounts down to the BaseAccount fields."""
    current = account
    for _ in range(4):
        if "sequence" in current or "account_number" in current:
            return current
        if "base_account" in current:
            current = current["base_account"]
        elif "base_vesting_account" in current:
            current = current["base_vesting_account"]
        else:
            break
    return current


class AccountResolver:
    """
    Maps a public key to the on-chain identity needed for signing.

    Args:
        transport: Gateway transport
        prefix: Bech32 address prefix
        scheme: Address derivation scheme
    """

    def __init__(
        self,
        transport: LcdTransport,
        prefix: str = "secret",
        scheme: AddressScheme = AddressScheme.BECH32
    ):
        self.transport = transport
        self.prefix = prefix
        self.scheme = scheme

    def derive_address(self, public_key: bytes) -> str:
        """
        Derive the account address of a compressed public key.

        Raises:
            InvalidKeyMaterial: If the key is not a 33-byte compressed point
        """
        return derive_address(public_key, prefix=self.prefix, scheme=self.scheme)

    def fetch_account_identity(self, address: str) -> AccountIdentity:
        """
        Fetch the current sequence and account number of an address.

        Returns:
            AccountIdentity for the address

        Raises:
            AccountNotFound: If the chain does not know the account or the
                response lacks sequence/account_number
            TransportFailure: If the gateway cannot be reached
        """
        try:
            data = self.transport.get(ACCOUNTS_PATH.format(address=address))
        except LcdResponseError as e:
            if e.status_code == 404 or e.error_code == GRPC_NOT_FOUND:
                raise AccountNotFound(f"Account {address} not found", address=address) from e
            raise

        account = data.get("account")
        if not isinstance(account, dict):
            raise AccountNotFound(f"Account {address} not found in response", address=address)

        base = _base_account(account)
        if "sequence" not in base or "account_number" not in base:
            raise AccountNotFound(
                f"Account {address} response has no sequence or account number",
                address=address,
            )

        try:
            identity = AccountIdentity(
                address=base.get("address") or address,
                account_number=int(base["account_number"]),
                sequence=int(base["sequence"]),
            )
        except (TypeError, ValueError) as e:
            raise TransportFailure(f"Malformed account response for {address}: {e}") from e

        logger.debug(
            f"Account {address}: number={identity.account_number} sequence={identity.sequence}"
        )
        return identity

    def resolve(self, public_key: bytes) -> AccountIdentity:
        """Derive the address of a public key and fetch its identity."""
        return self.fetch_account_identity(self.derive_address(public_key))
