"""
Transaction construction, SignDoc serialisation and envelope assembly.

Every serialised form (body bytes, auth info bytes, SignDoc, tx bytes) is
canonical JSON: keys sorted, no insignificant whitespace, UTF-8. Equal
inputs therefore always produce identical bytes.
"""
import base64
import hashlib
import json
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, Field

from .crypto import check_public_key, sign, verify
from .exceptions import InvalidFee, SigningFailure, TxStateError
from .messages import Message, MsgTransfer
from .models import (
    AccountIdentity, AuthInfo, BroadcastMode, Coin, Fee, GasPrice, PubKey,
    SignedTx, SignerInfo, TxResponse
)

logger = logging.getLogger(__name__)

__all__ = [
    "TxBody", "TxState", "PendingTx", "canonical_json", "make_fee",
    "build_unsigned_tx", "encode_body", "encode_auth_info", "compute_sign_doc",
    "sign", "verify", "assemble_envelope", "unsigned_envelope", "encode_tx",
    "decode_tx", "tx_hash",
]


class TxBody(BaseModel):
    """Unsigned transaction body; message order is preserved as given."""
    messages: List[Message]
    memo: str = ""
    timeout_height: str = "0"
    extension_options: List[Dict[str, Any]] = Field(default_factory=list)
    non_critical_extension_options: List[Dict[str, Any]] = Field(default_factory=list)


class TxState(str, Enum):
    BUILT = "built"
    SIGN_DOC_COMPUTED = "sign_doc_computed"
    SIGNED = "signed"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


def canonical_json(value: Any) -> bytes:
    """Serialise a JSON-compatible value to canonical bytes."""
    return json.dumps(
        value, sort_keys=True, separators=(",", ":"), ensure_ascii=False
    ).encode("utf-8")


def _dump(model: BaseModel) -> Dict[str, Any]:
    return model.model_dump(by_alias=True, mode="json", exclude_none=True)


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def make_fee(
    gas_limit: int,
    gas_price: Union[str, GasPrice, None] = None,
    amount: Optional[Sequence[Union[Coin, Dict[str, Any]]]] = None,
    payer: str = "",
    granter: str = ""
) -> Fee:
    """
    Build fee terms.

    Either an explicit amount or a gas price must be supplied; with a gas
    price the amount is ceil(price * gas_limit).

    Raises:
        InvalidFee: If gas_limit is not positive or no fee amount can be determined
    """
    if isinstance(gas_limit, bool) or not isinstance(gas_limit, int) or gas_limit <= 0:
        raise InvalidFee(f"gas_limit must be a positive integer, got {gas_limit!r}")

    if amount is not None:
        coins = [c if isinstance(c, Coin) else Coin(**c) for c in amount]
    elif gas_price is not None:
        price = gas_price if isinstance(gas_price, GasPrice) else GasPrice.parse(gas_price)
        coins = [price.fee_for(gas_limit)]
    else:
        raise InvalidFee("Either a fee amount or a gas price must be supplied")

    return Fee(amount=coins, gas_limit=str(gas_limit), payer=payer, granter=granter)


def build_unsigned_tx(
    messages: Sequence[Union[Message, Dict[str, Any]]],
    fee: Fee,
    memo: str = "",
    public_key: Optional[bytes] = None,
    sequence: Optional[int] = None,
    timeout_height: int = 0
) -> Tuple[TxBody, AuthInfo]:
    """
    Build an unsigned transaction body and its auth info.

    Args:
        messages: Messages in execution order
        fee: Fee terms
        memo: Transaction memo
        public_key: Signer's compressed public key
        sequence: Signer's account sequence; required with public_key
        timeout_height: Block height after which the tx is invalid, 0 for none

    Returns:
        Tuple of (TxBody, AuthInfo)

    Raises:
        ValueError: If there are no messages or the signer data is incomplete
        ConflictingTimeout: If an IBC transfer sets both timeout kinds
        MissingTimeout: If an IBC transfer sets neither timeout kind
    """
    if not messages:
        raise ValueError("A transaction needs at least one message")

    body = TxBody(messages=list(messages), memo=memo, timeout_height=str(timeout_height))
    for msg in body.messages:
        if isinstance(msg, MsgTransfer):
            msg.check_timeouts()

    signer_infos: List[SignerInfo] = []
    if public_key is not None:
        if sequence is None or sequence < 0:
            raise ValueError("A non-negative sequence is required with a signer public key")
        signer_infos.append(SignerInfo(
            public_key=PubKey.from_bytes(check_public_key(public_key)),
            sequence=str(sequence),
        ))

    return body, AuthInfo(signer_infos=signer_infos, fee=fee)


def encode_body(body: TxBody) -> bytes:
    return canonical_json(_dump(body))


def encode_auth_info(auth_info: AuthInfo) -> bytes:
    return canonical_json(_dump(auth_info))


def compute_sign_doc(
    body: TxBody,
    auth_info: AuthInfo,
    chain_id: str,
    account_number: int
) -> bytes:
    """
    Serialise the bytes a signer commits to.

    Returns:
        Canonical JSON of body bytes, auth info bytes, chain id and account number
    """
    if not chain_id:
        raise ValueError("chain_id must not be empty")
    if account_number < 0:
        raise ValueError("account_number must not be negative")
    return canonical_json({
        "account_number": str(account_number),
        "auth_info_bytes": _b64(encode_auth_info(auth_info)),
        "body_bytes": _b64(encode_body(body)),
        "chain_id": chain_id,
    })


def assemble_envelope(
    body: TxBody,
    auth_info: AuthInfo,
    signature: bytes,
    public_key: bytes
) -> SignedTx:
    """
    Attach a signature to a transaction.

    Raises:
        SigningFailure: If the signature is empty or auth_info does not name
            exactly this one signer
    """
    if not signature:
        raise SigningFailure("Cannot assemble a transaction without a signature")
    if len(auth_info.signer_infos) != 1:
        raise SigningFailure(
            f"Exactly one signer is supported, auth info has {len(auth_info.signer_infos)}"
        )
    if auth_info.signer_infos[0].public_key.to_bytes() != check_public_key(public_key):
        raise SigningFailure("Signature public key does not match the signer in auth info")

    return SignedTx(
        body_bytes=_b64(encode_body(body)),
        auth_info_bytes=_b64(encode_auth_info(auth_info)),
        signatures=[_b64(signature)],
    )


def unsigned_envelope(body: TxBody, auth_info: AuthInfo) -> SignedTx:
    """Envelope with an empty signature slot, accepted by the simulate endpoint."""
    return SignedTx(
        body_bytes=_b64(encode_body(body)),
        auth_info_bytes=_b64(encode_auth_info(auth_info)),
        signatures=[""],
    )


def encode_tx(envelope: SignedTx) -> str:
    """Encode a signed envelope as base64 tx_bytes for the broadcast endpoint."""
    return _b64(canonical_json(envelope.model_dump()))


def decode_tx(tx_bytes: str) -> SignedTx:
    return SignedTx.model_validate(json.loads(base64.b64decode(tx_bytes)))


def tx_hash(envelope: SignedTx) -> str:
    """Upper-case hex SHA-256 of the tx bytes, as nodes report it."""
    raw = base64.b64decode(encode_tx(envelope))
    return hashlib.sha256(raw).hexdigest().upper()


class PendingTx:
    """
    A transaction moving through Built -> SignDocComputed -> Signed ->
    Submitted -> Confirmed | Rejected.

    Each step checks the current state and raises TxStateError when called
    out of order.
    """

    def __init__(self, body: TxBody, auth_info: AuthInfo):
        self.body = body
        self.auth_info = auth_info
        self.state = TxState.BUILT
        self.sign_doc: Optional[bytes] = None
        self.signature: Optional[bytes] = None
        self.envelope: Optional[SignedTx] = None
        self.response: Optional[Dict[str, Any]] = None

    @classmethod
    def build(
        cls,
        messages: Sequence[Union[Message, Dict[str, Any]]],
        fee: Fee,
        identity: AccountIdentity,
        public_key: bytes,
        memo: str = ""
    ) -> "PendingTx":
        body, auth_info = build_unsigned_tx(
            messages, fee, memo=memo, public_key=public_key, sequence=identity.sequence
        )
        return cls(body, auth_info)

    def _expect(self, *states: TxState) -> None:
        if self.state not in states:
            expected = " or ".join(s.value for s in states)
            raise TxStateError(f"Transaction is {self.state.value}, expected {expected}")

    def compute_sign_doc(self, chain_id: str, identity: AccountIdentity) -> bytes:
        self._expect(TxState.BUILT)
        if not self.auth_info.signer_infos:
            raise TxStateError("Transaction has no signer info")
        signed_sequence = int(self.auth_info.signer_infos[0].sequence)
        if signed_sequence != identity.sequence:
            raise TxStateError(
                f"Transaction was built for sequence {signed_sequence}, "
                f"account is at {identity.sequence}"
            )
        self.sign_doc = compute_sign_doc(self.body, self.auth_info, chain_id, identity.account_number)
        self.state = TxState.SIGN_DOC_COMPUTED
        return self.sign_doc

    def sign(self, signer: Any) -> SignedTx:
        """Sign with a Signer and assemble the envelope."""
        self._expect(TxState.SIGN_DOC_COMPUTED)
        if self.sign_doc is None:
            raise TxStateError("Transaction has no SignDoc")
        signature = signer.sign(self.sign_doc)
        self.envelope = assemble_envelope(self.body, self.auth_info, signature, signer.public_key)
        self.signature = signature
        self.state = TxState.SIGNED
        return self.envelope

    def mark_submitted(self) -> None:
        self._expect(TxState.SIGNED)
        if not self.signature:
            raise TxStateError("Cannot submit an unsigned transaction")
        self.state = TxState.SUBMITTED

    def record_result(self, response: Dict[str, Any], mode: BroadcastMode) -> TxState:
        """
        Record the broadcast acknowledgement.

        A non-zero code rejects the transaction. Only BLOCK mode proves
        inclusion, so only BLOCK mode with code 0 confirms it.
        """
        self._expect(TxState.SUBMITTED)
        self.response = response
        tx_response = TxResponse.model_validate(response.get("tx_response") or {})
        if not tx_response.succeeded:
            self.state = TxState.REJECTED
        elif mode is BroadcastMode.BLOCK:
            self.state = TxState.CONFIRMED
        return self.state
