"""
Exceptions for the Secret Network SDK.
"""
from typing import Any, Dict, Optional


# Cosmos SDK "sdk" codespace error codes the client inspects
ERR_WRONG_SEQUENCE = 32
GRPC_NOT_FOUND = 5


class ScrtError(Exception):
    """Base exception for all SDK errors."""

    retryable = False

    def to_dict(self) -> Dict[str, Any]:
        """
        Structured form of the error, used for per-item batch reporting.

        Returns:
            Dictionary with the error message and its type
        """
        return {"error": str(self), "type": type(self).__name__}


class InvalidKeyMaterial(ScrtError):
    """Raised when a public or private key has the wrong length or encoding."""
    pass


class AccountNotFound(ScrtError):
    """Raised when the chain has no account for an address."""

    retryable = True

    def __init__(self, message: str, address: Optional[str] = None):
        self.address = address
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["address"] = self.address
        return data


class SigningFailure(ScrtError):
    """Raised when a signature cannot be produced."""
    pass


class ConflictingTimeout(ScrtError):
    """Raised when an IBC transfer carries both a height and a timestamp timeout."""
    pass


class MissingTimeout(ScrtError):
    """Raised when an IBC transfer carries neither a height nor a timestamp timeout."""
    pass


class InvalidFee(ScrtError):
    """Raised when fee terms are missing or malformed."""
    pass


class TxStateError(ScrtError):
    """Raised on an illegal transition of a pending transaction."""
    pass


class TransportFailure(ScrtError):
    """Raised when a request to the gateway cannot be completed."""

    retryable = True


class LcdResponseError(ScrtError):
    """Raised when the gateway answers with a non-2xx status."""

    def __init__(
        self,
        message: str,
        status_code: int,
        error_code: Optional[int] = None,
        body: Optional[Any] = None
    ):
        self.status_code = status_code
        self.error_code = error_code
        self.body = body
        super().__init__(message)

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return self.status_code >= 500

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["status_code"] = self.status_code
        data["code"] = self.error_code
        return data


class BroadcastFailure(ScrtError):
    """
    Raised when the network saw a transaction but rejected it.

    Attributes:
        code: Non-zero ABCI result code
        log: Raw log returned by the node
        codespace: Module that produced the code
        txhash: Hash of the rejected transaction, when known
        response: The full broadcast response
    """

    def __init__(
        self,
        code: int,
        log: str = "",
        codespace: str = "",
        txhash: str = "",
        response: Optional[Dict[str, Any]] = None
    ):
        self.code = code
        self.log = log
        self.codespace = codespace
        self.txhash = txhash
        self.response = response or {}
        super().__init__(f"Broadcast rejected with code {code} ({codespace or 'unknown'}): {log}")

    @property
    def is_sequence_mismatch(self) -> bool:
        """True when the node rejected the transaction for a stale sequence."""
        if self.code == ERR_WRONG_SEQUENCE and self.codespace in ("", "sdk"):
            return True
        return "account sequence mismatch" in self.log

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return self.is_sequence_mismatch

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "code": self.code,
            "log": self.log,
            "codespace": self.codespace,
            "txhash": self.txhash,
        })
        return data
