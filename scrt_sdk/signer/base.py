"""
Signer protocol.
"""
from typing import Protocol, runtime_checkable


@runtime_checkable
class Signer(Protocol):
    """Protocol for transaction signers"""
    public_key: bytes

    def sign(self, sign_doc: bytes) -> bytes:
        """Sign SignDoc bytes and return a 64-byte r||s signature"""
        ...
