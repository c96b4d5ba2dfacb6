"""
Signer capability for transaction signing.

The pipeline only needs a public key and a way to sign bytes, so key
custody stays outside of it: LocalSigner holds a software key, while
ExternalSigner delegates to a hardware wallet, remote KMS or any callable.
"""
from .base import Signer
from .local import LocalSigner
from .external import ExternalSigner

__all__ = ["Signer", "LocalSigner", "ExternalSigner"]
