"""
Signer that delegates to an external key holder.
"""
import logging
from typing import Callable

from ..crypto import SIGNATURE_LENGTH, check_public_key
from ..exceptions import SigningFailure

logger = logging.getLogger(__name__)


class ExternalSigner:
    """
    Adapter for keys held outside the process (hardware wallet, remote KMS).

    Args:
        public_key: 33-byte compressed public key of the external key
        sign_fn: Callable receiving SignDoc bytes and returning a 64-byte
            r||s signature over their SHA-256 digest
    """

    def __init__(self, public_key: bytes, sign_fn: Callable[[bytes], bytes]):
        self.public_key = check_public_key(public_key)
        self._sign_fn = sign_fn

    def sign(self, sign_doc: bytes) -> bytes:
        """
        Ask the external key holder for a signature.

        Raises:
            SigningFailure: If the callable fails or returns a malformed signature
        """
        try:
            signature = self._sign_fn(sign_doc)
        except SigningFailure:
            raise
        except Exception as e:
            logger.error(f"External signer failed: {e}")
            raise SigningFailure(f"External signer failed: {str(e)}") from e

        if not isinstance(signature, (bytes, bytearray)) or len(signature) != SIGNATURE_LENGTH:
            raise SigningFailure(
                f"External signer must return {SIGNATURE_LENGTH} signature bytes"
            )
        return bytes(signature)
