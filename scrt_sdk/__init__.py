"""
Secret Network SDK - sign and broadcast Cosmos transactions over the LCD gateway.
"""
from .version import __version__
from .client import SecretClient
from .config import ChainConfig, NetworkConfig
from .address import AddressScheme, derive_address, is_valid_address
from .models import AccountIdentity, BroadcastMode, Coin, Fee, GasPrice, SignedTx, TxResponse
from .messages import (
    MsgExecuteContract, MsgInstantiateContract, MsgSend, MsgStoreCode, MsgTransfer, MsgUpdateClient,
    execute_contract_msg, ibc_transfer_msg, instantiate_contract_msg, send_msg, store_code_msg,
    update_client_msg
)
from .signer import ExternalSigner, LocalSigner, Signer
from .tx import PendingTx, TxState, build_unsigned_tx, compute_sign_doc, make_fee
from .batch import run_batch
from .exceptions import (
    ScrtError, InvalidKeyMaterial, AccountNotFound, SigningFailure, ConflictingTimeout,
    MissingTimeout, InvalidFee, TxStateError, TransportFailure, LcdResponseError, BroadcastFailure
)

__all__ = [
    "SecretClient",
    "ChainConfig",
    "NetworkConfig",
    "AddressScheme",
    "derive_address",
    "is_valid_address",
    "AccountIdentity",
    "BroadcastMode",
    "Coin",
    "Fee",
    "GasPrice",
    "SignedTx",
    "TxResponse",
    "MsgExecuteContract",
    "MsgInstantiateContract",
    "MsgSend",
    "MsgTransfer",
    "MsgStoreCode",
    "MsgUpdateClient",
    "execute_contract_msg",
    "ibc_transfer_msg",
    "instantiate_contract_msg",
    "send_msg",
    "store_code_msg",
    "update_client_msg",
    "Signer",
    "LocalSigner",
    "ExternalSigner",
    "PendingTx",
    "TxState",
    "build_unsigned_tx",
    "compute_sign_doc",
    "make_fee",
    "run_batch",
    "ScrtError",
    "InvalidKeyMaterial",
    "AccountNotFound",
    "SigningFailure",
    "ConflictingTimeout",
    "MissingTimeout",
    "InvalidFee",
    "TxStateError",
    "TransportFailure",
    "LcdResponseError",
    "BroadcastFailure",
    "__version__",
]
