"""
Transaction messages.

Each message kind is its own model tagged by its protobuf type URL, so a
transaction body only ever holds one of a closed set of variants.
"""
import base64
import binascii
import json
import time
from typing import Annotated, Any, Dict, List, Literal, Optional, Sequence, Union

from pydantic import BaseModel, Field

from .exceptions import ConflictingTimeout, MissingTimeout
from .models import Coin

EXECUTE_CONTRACT_TYPE = "/secret.compute.v1beta1.MsgExecuteContract"
INSTANTIATE_CONTRACT_TYPE = "/secret.compute.v1beta1.MsgInstantiateContract"
BANK_SEND_TYPE = "/cosmos.bank.v1beta1.MsgSend"
STORE_CODE_TYPE = "/secret.compute.v1beta1.MsgStoreCode"
IBC_TRANSFER_TYPE = "/ibc.applications.transfer.v1.MsgTransfer"
UPDATE_CLIENT_TYPE = "/ibc.core.client.v1.MsgUpdateClient"

# Default relative IBC timeout: ten minutes, in nanoseconds
DEFAULT_IBC_TIMEOUT_NS = 600 * 1_000_000_000


def encode_contract_msg(msg: Union[Dict[str, Any], str, bytes]) -> str:
    """
    Encode a contract message as base64 of its JSON.

    Dicts are serialised with sorted keys so equal messages encode equally.
    """
    if isinstance(msg, dict):
        raw = json.dumps(msg, sort_keys=True, separators=(",", ":")).encode("utf-8")
    elif isinstance(msg, str):
        raw = msg.encode("utf-8")
    elif isinstance(msg, bytes):
        raw = msg
    else:
        raise TypeError(f"Contract message must be a dict, str or bytes, got {type(msg).__name__}")
    return base64.b64encode(raw).decode("ascii")


def _coins(funds: Optional[Sequence[Union[Coin, Dict[str, Any]]]]) -> List[Coin]:
    return [c if isinstance(c, Coin) else Coin(**c) for c in (funds or [])]


class _Msg(BaseModel):
    class Config:
        populate_by_name = True
        frozen = True


class MsgExecuteContract(_Msg):
    type_url: Literal["/secret.compute.v1beta1.MsgExecuteContract"] = Field(
        EXECUTE_CONTRACT_TYPE, alias="@type"
    )
    sender: str
    contract: str
    msg: str
    sent_funds: List[Coin] = Field(default_factory=list)


class MsgInstantiateContract(_Msg):
    type_url: Literal["/secret.compute.v1beta1.MsgInstantiateContract"] = Field(
        INSTANTIATE_CONTRACT_TYPE, alias="@type"
    )
    sender: str
    code_id: str
    label: str
    init_msg: str
    init_funds: List[Coin] = Field(default_factory=list)
    code_hash: str = ""


class MsgStoreCode(_Msg):
    type_url: Literal["/secret.compute.v1beta1.MsgStoreCode"] = Field(STORE_CODE_TYPE, alias="@type")
    sender: str
    wasm_byte_code: str
    source: str = ""
    builder: str = ""


class MsgSend(_Msg):
    type_url: Literal["/cosmos.bank.v1beta1.MsgSend"] = Field(BANK_SEND_TYPE, alias="@type")
    from_address: str
    to_address: str
    amount: List[Coin]


class Height(BaseModel):
    revision_number: str = "0"
    revision_height: str = "0"

    @property
    def is_set(self) -> bool:
        return int(self.revision_height) > 0


class MsgTransfer(_Msg):
    type_url: Literal["/ibc.applications.transfer.v1.MsgTransfer"] = Field(
        IBC_TRANSFER_TYPE, alias="@type"
    )
    source_port: str = "transfer"
    source_channel: str
    token: Coin
    sender: str
    receiver: str
    timeout_height: Optional[Height] = None
    timeout_timestamp: str = "0"
    memo: str = ""

    def check_timeouts(self) -> None:
        """
        Ensure exactly one kind of timeout is set.

        Raises:
            ValueError: If the timestamp is negative
            ConflictingTimeout: If both a height and a timestamp are given
            MissingTimeout: If neither is given
        """
        timestamp = int(self.timeout_timestamp)
        if timestamp < 0:
            raise ValueError("timeout_timestamp must not be negative")
        height_set = self.timeout_height is not None and self.timeout_height.is_set
        if height_set and timestamp > 0:
            raise ConflictingTimeout(
                "IBC transfer cannot set both timeout_height and timeout_timestamp"
            )
        if not height_set and timestamp == 0:
            raise MissingTimeout(
                "IBC transfer needs a timeout_height or a timeout_timestamp"
            )


class MsgUpdateClient(_Msg):
    type_url: Literal["/ibc.core.client.v1.MsgUpdateClient"] = Field(UPDATE_CLIENT_TYPE, alias="@type")
    client_id: str
    header: Dict[str, Any]
    signer: str


Message = Annotated[
    Union[
        MsgExecuteContract, MsgInstantiateContract, MsgStoreCode, MsgSend, MsgTransfer,
        MsgUpdateClient,
    ],
    Field(discriminator="type_url"),
]


def execute_contract_msg(
    sender: str,
    contract: str,
    msg: Union[Dict[str, Any], str, bytes],
    funds: Optional[Sequence[Union[Coin, Dict[str, Any]]]] = None
) -> MsgExecuteContract:
    return MsgExecuteContract(
        sender=sender,
        contract=contract,
        msg=encode_contract_msg(msg),
        sent_funds=_coins(funds),
    )


def instantiate_contract_msg(
    sender: str,
    code_id: Union[int, str],
    label: str,
    init_msg: Union[Dict[str, Any], str, bytes],
    funds: Optional[Sequence[Union[Coin, Dict[str, Any]]]] = None,
    code_hash: str = ""
) -> MsgInstantiateContract:
    if not label:
        raise ValueError("Contract label must not be empty")
    return MsgInstantiateContract(
        sender=sender,
        code_id=str(code_id),
        label=label,
        init_msg=encode_contract_msg(init_msg),
        init_funds=_coins(funds),
        code_hash=code_hash,
    )


def send_msg(
    from_address: str,
    to_address: str,
    amount: Sequence[Union[Coin, Dict[str, Any]]]
) -> MsgSend:
    coins = _coins(amount)
    if not coins:
        raise ValueError("Send amount must contain at least one coin")
    return MsgSend(from_address=from_address, to_address=to_address, amount=coins)


def ibc_transfer_msg(
    sender: str,
    receiver: str,
    token: Union[Coin, Dict[str, Any]],
    source_channel: str,
    source_port: str = "transfer",
    timeout_height: Union[int, Height, Dict[str, Any], None] = 0,
    timeout_timestamp: Optional[int] = None,
    revision_number: int = 0,
    memo: str = "",
    now_ns: Optional[int] = None
) -> MsgTransfer:
    """
    Build an IBC token transfer.

    A timeout is either a block height on the destination chain or an
    absolute timestamp in nanoseconds, never both. With a zero height and
    no timestamp the transfer times out ten minutes from now.

    Args:
        sender: Sending address on this chain
        receiver: Receiving address on the destination chain
        token: Coin to transfer
        source_channel: Channel id, e.g. "channel-0"
        source_port: Port id
        timeout_height: Destination block height (int or Height), 0 for none
        timeout_timestamp: Absolute timeout in nanoseconds since the epoch
        revision_number: Revision used when timeout_height is an int
        memo: IBC packet memo
        now_ns: Current time override, for tests

    Raises:
        ValueError: If a timeout is negative
        ConflictingTimeout: If a height and a timestamp are both supplied
    """
    if isinstance(timeout_height, dict):
        timeout_height = Height(**timeout_height)
    if isinstance(timeout_height, Height):
        height: Optional[Height] = timeout_height if timeout_height.is_set else None
    elif timeout_height:
        if timeout_height < 0:
            raise ValueError("timeout_height must not be negative")
        height = Height(revision_number=str(revision_number), revision_height=str(timeout_height))
    else:
        height = None

    if timeout_timestamp is not None and timeout_timestamp < 0:
        raise ValueError("timeout_timestamp must not be negative")
    if height is not None and timeout_timestamp:
        raise ConflictingTimeout(
            "IBC transfer cannot set both timeout_height and timeout_timestamp"
        )
    if height is None and not timeout_timestamp:
        now = now_ns if now_ns is not None else time.time_ns()
        timeout_timestamp = now + DEFAULT_IBC_TIMEOUT_NS

    return MsgTransfer(
        source_port=source_port,
        source_channel=source_channel,
        token=token if isinstance(token, Coin) else Coin(**token),
        sender=sender,
        receiver=receiver,
        timeout_height=height,
        timeout_timestamp=str(timeout_timestamp or 0),
        memo=memo,
    )


def store_code_msg(
    sender: str,
    wasm_byte_code: Union[bytes, str],
    source: str = "",
    builder: str = ""
) -> MsgStoreCode:
    """
    Build a contract code upload.

    Raw bytes are base64 encoded; a str is taken to be base64 already.
    """
    if isinstance(wasm_byte_code, bytes):
        encoded = base64.b64encode(wasm_byte_code).decode("ascii")
    else:
        try:
            base64.b64decode(wasm_byte_code, validate=True)
        except binascii.Error as e:
            raise ValueError(f"wasm_byte_code is not valid base64: {e}") from e
        encoded = wasm_byte_code
    if not encoded:
        raise ValueError("wasm_byte_code must not be empty")
    return MsgStoreCode(sender=sender, wasm_byte_code=encoded, source=source, builder=builder)


def update_client_msg(signer: str, client_id: str, header: Dict[str, Any]) -> MsgUpdateClient:
    if not client_id:
        raise ValueError("client_id must not be empty")
    if not isinstance(header, dict) or "@type" not in header:
        raise ValueError("header must be a JSON Any object with an '@type' field")
    return MsgUpdateClient(client_id=client_id, header=header, signer=signer)
