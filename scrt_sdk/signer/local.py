"""
Software signer backed by an in-memory secp256k1 key.
"""
import logging
from typing import Optional

from ..address import AddressScheme, derive_address
from ..crypto import (
    KeyLike, compressed_public_key, decode_private_key, load_private_key, sign_digest_input
)
from ..exceptions import SigningFailure

logger = logging.getLogger(__name__)


class LocalSigner:
    """
    Single-use handle around a raw private key.

    The key is validated on construction. Use it as a context manager, or
    call release(), to wipe the secret as soon as signing is done.

    Args:
        private_key: 32-byte secp256k1 secret as hex (with or without 0x) or bytes

    Raises:
        InvalidKeyMaterial: If the key is malformed
    """

    def __init__(self, private_key: KeyLike):
        self._secret: Optional[bytearray] = bytearray(decode_private_key(private_key))
        self.public_key = compressed_public_key(load_private_key(bytes(self._secret)))

    @property
    def released(self) -> bool:
        return self._secret is None

    def address(self, prefix: str = "secret", scheme: AddressScheme = AddressScheme.BECH32) -> str:
        return derive_address(self.public_key, prefix=prefix, scheme=scheme)

    def sign(self, sign_doc: bytes) -> bytes:
        """
        Sign SignDoc bytes.

        Raises:
            SigningFailure: If the handle has been released
        """
        if self._secret is None:
            raise SigningFailure("Signer has been released")
        key = load_private_key(bytes(self._secret))
        return sign_digest_input(key, sign_doc)

    def release(self) -> None:
        """Zero and drop the private key."""
        if self._secret is not None:
            for i in range(len(self._secret)):
                self._secret[i] = 0
            self._secret = None
            logger.debug("Local signer key released")

    def __enter__(self) -> "LocalSigner":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def __repr__(self) -> str:
        state = "released" if self.released else "active"
        return f"LocalSigner(public_key={self.public_key.hex()}, {state})"
