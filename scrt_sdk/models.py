"""
Data models for the Secret Network SDK.
"""
import base64
import re
from decimal import Decimal, InvalidOperation, ROUND_CEILING
from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, Field, field_validator

from .exceptions import InvalidFee

PUBKEY_TYPE_URL = "/cosmos.crypto.secp256k1.PubKey"

_GAS_PRICE_RE = re.compile(r"^\s*(\d+(?:\.\d+)?|\.\d+)\s*(?![eE][+-]?\d)([a-zA-Z][a-zA-Z0-9/:._-]{1,127})\s*$")


class BroadcastMode(str, Enum):
    """Broadcast modes of the cosmos tx service."""
    SYNC = "BROADCAST_MODE_SYNC"
    ASYNC = "BROADCAST_MODE_ASYNC"
    BLOCK = "BROADCAST_MODE_BLOCK"

    @classmethod
    def parse(cls, value: Any) -> "BroadcastMode":
        """Accept a member, its value, or a short name like "sync"."""
        if isinstance(value, cls):
            return value
        text = str(value).upper()
        if not text.startswith("BROADCAST_MODE_"):
            text = "BROADCAST_MODE_" + text
        try:
            return cls(text)
        except ValueError:
            raise ValueError(f"Unknown broadcast mode '{value}'") from None


class SignMode(str, Enum):
    DIRECT = "SIGN_MODE_DIRECT"


class Coin(BaseModel):
    """An amount of one denomination, amount as an integer string."""
    denom: str
    amount: str

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_is_integer(cls, value: Any) -> str:
        text = str(value)
        if not text.isdigit():
            raise ValueError(f"Coin amount must be a non-negative integer, got '{value}'")
        return text

    class Config:
        frozen = True


class GasPrice(BaseModel):
    """Gas price parsed from strings like "0.25uscrt"."""
    amount: Decimal
    denom: str

    @classmethod
    def parse(cls, value: str) -> "GasPrice":
        """
        Parse a "<decimal><denom>" string.

        Raises:
            InvalidFee: If the string is malformed
        """
        match = _GAS_PRICE_RE.match(value or "")
        if not match:
            raise InvalidFee(f"Invalid gas price '{value}', expected e.g. '0.25uscrt'")
        try:
            amount = Decimal(match.group(1))
        except InvalidOperation:
            raise InvalidFee(f"Invalid gas price amount in '{value}'") from None
        return cls(amount=amount, denom=match.group(2))

    def fee_for(self, gas_limit: int) -> Coin:
        """Fee amount for a gas limit, rounded up to a whole unit."""
        total = (self.amount * gas_limit).to_integral_value(rounding=ROUND_CEILING)
        return Coin(denom=self.denom, amount=str(int(total)))

    def __str__(self) -> str:
        return f"{self.amount}{self.denom}"


class Fee(BaseModel):
    amount: List[Coin]
    gas_limit: str
    payer: str = ""
    granter: str = ""


class PubKey(BaseModel):
    type_url: str = Field(PUBKEY_TYPE_URL, alias="@type")
    key: str

    @classmethod
    def from_bytes(cls, public_key: bytes) -> "PubKey":
        return cls(key=base64.b64encode(public_key).decode("ascii"))

    def to_bytes(self) -> bytes:
        return base64.b64decode(self.key)

    class Config:
        populate_by_name = True


class ModeInfo(BaseModel):
    single: Dict[str, SignMode] = Field(default_factory=lambda: {"mode": SignMode.DIRECT})


class SignerInfo(BaseModel):
    public_key: PubKey
    mode_info: ModeInfo = Field(default_factory=ModeInfo)
    sequence: str


class AuthInfo(BaseModel):
    """Signer metadata and fee terms of a transaction."""
    signer_infos: List[SignerInfo] = Field(default_factory=list)
    fee: Fee


class SignedTx(BaseModel):
    """
    Signed transaction envelope (TxRaw).

    body_bytes and auth_info_bytes are base64 of the exact bytes covered by
    the signature; signatures holds one base64 signature per signer.
    """
    body_bytes: str
    auth_info_bytes: str
    signatures: List[str]

    class Config:
        frozen = True


class AccountIdentity(BaseModel):
    """On-chain identity of a signer at one point in time."""
    address: str
    account_number: int
    sequence: int

    class Config:
        frozen = True


class TxResponse(BaseModel):
    """Subset of a tx_response the SDK inspects; the raw JSON is kept as-is."""
    txhash: str = ""
    code: int = 0
    codespace: str = ""
    raw_log: str = ""
    height: str = "0"
    gas_wanted: str = "0"
    gas_used: str = "0"

    @field_validator("code", mode="before")
    @classmethod
    def _code_defaults_to_zero(cls, value: Any) -> int:
        return int(value or 0)

    class Config:
        extra = "allow"
        coerce_numbers_to_str = True

    @property
    def succeeded(self) -> bool:
        return self.code == 0
