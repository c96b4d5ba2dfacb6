"""
SecretClient - Main client for the Secret Network REST gateway.
"""
import base64
import json
import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Union

import requests

from .accounts import AccountResolver, address_lock
from .config import ChainConfig
from .exceptions import BroadcastFailure, LcdResponseError, SigningFailure
from .messages import (
    Message, execute_contract_msg, ibc_transfer_msg, instantiate_contract_msg, send_msg,
    store_code_msg, update_client_msg
)
from .models import AccountIdentity, BroadcastMode, Coin, GasPrice, SignedTx, TxResponse
from .signer import LocalSigner, Signer
from .transport import LcdTransport
from .tx import (
    PendingTx, TxState, build_unsigned_tx, encode_tx, make_fee, unsigned_envelope
)

BROADCAST_PATH = "/cosmos/tx/v1beta1/txs"
SIMULATE_PATH = "/cosmos/tx/v1beta1/simulate"

Messages = Union[Sequence[Message], Callable[[str], Sequence[Message]]]
SignerLike = Union[Signer, str, bytes]
FundsLike = Optional[Sequence[Union[Coin, Dict[str, Any]]]]


def _pagination(
    offset: Optional[int] = None,
    limit: Optional[int] = None,
    key: Optional[str] = None
) -> Dict[str, Any]:
    params: Dict[str, Any] = {}
    if offset is not None:
        params["pagination.offset"] = offset
    if limit is not None:
        params["pagination.limit"] = limit
    if key:
        params["pagination.key"] = key
    return params


class SecretClient:
    """
    Client for the Secret Network LCD REST gateway.

    This client handles:
    1. Building, signing and broadcasting transactions
    2. Contract, token, IBC, transaction and account queries

    Every operation returns the gateway's JSON response unmodified.
    Broadcasts are never retried; retry policy belongs to the caller.
    """

    def __init__(
        self,
        config: ChainConfig,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the SecretClient

        Args:
            config: Chain connection settings
            session: Optional pre-configured requests session
            logger: Optional logger instance to use for debug/info logging
        """
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.transport = LcdTransport(config, session=session, logger=self.logger)
        self.accounts = AccountResolver(
            self.transport,
            prefix=config.bech32_prefix,
            scheme=config.address_scheme,
        )

    @classmethod
    def from_network(
        cls,
        network: str = "mainnet",
        base_url: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
        **overrides: Any
    ) -> "SecretClient":
        """
        Create a client from the packaged network table.

        Args:
            network: Network name ("mainnet" or "testnet")
            base_url: Optional LCD URL override
            logger: Optional logger
            **overrides: Other ChainConfig fields

        Returns:
            Configured SecretClient
        """
        return cls(ChainConfig.from_network(network, base_url=base_url, **overrides), logger=logger)

    def close(self) -> None:
        self.transport.close()

    def __enter__(self) -> "SecretClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Account resolution
    # ------------------------------------------------------------------

    def derive_address(self, public_key: bytes) -> str:
        return self.accounts.derive_address(public_key)

    def fetch_account_identity(self, address: str) -> AccountIdentity:
        return self.accounts.fetch_account_identity(address)

    # ------------------------------------------------------------------
    # Submission pipeline
    # ------------------------------------------------------------------

    def submit(
        self,
        envelope: Union[SignedTx, str],
        mode: Union[BroadcastMode, str] = BroadcastMode.SYNC
    ) -> Dict[str, Any]:
        """
        Broadcast a signed transaction.

        SYNC returns once the node has checked the transaction into its
        mempool, ASYNC as soon as it is received, BLOCK after inclusion.
        After an ASYNC submit the hash may legitimately be unknown to
        get_tx for a while.

        Args:
            envelope: Signed envelope or base64 tx bytes
            mode: Broadcast mode

        Returns:
            Raw broadcast response

        Raises:
            BroadcastFailure: If the node reports a non-zero result code
            TransportFailure: If the request cannot be completed
        """
        mode = BroadcastMode.parse(mode)
        tx_bytes = encode_tx(envelope) if isinstance(envelope, SignedTx) else envelope
        if not tx_bytes:
            raise SigningFailure("Cannot broadcast empty tx bytes")

        response = self.transport.post(BROADCAST_PATH, {"tx_bytes": tx_bytes, "mode": mode.value})

        tx_response = TxResponse.model_validate(response.get("tx_response") or {})
        if not tx_response.succeeded:
            self.logger.error(
                f"Transaction {tx_response.txhash} rejected with code {tx_response.code}: "
                f"{tx_response.raw_log}"
            )
            raise BroadcastFailure(
                code=tx_response.code,
                log=tx_response.raw_log,
                codespace=tx_response.codespace,
                txhash=tx_response.txhash,
                response=response,
            )

        self.logger.info(f"Transaction sent ({mode.name}): {tx_response.txhash}")
        return response

    def broadcast_tx_bytes(
        self,
        tx_bytes: str,
        mode: Union[BroadcastMode, str] = BroadcastMode.SYNC
    ) -> Dict[str, Any]:
        """Broadcast externally signed base64 tx bytes."""
        return self.submit(tx_bytes, mode)

    def simulate(
        self,
        envelope: Union[SignedTx, str, None] = None,
        tx: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Simulate a transaction without broadcasting it.

        Args:
            envelope: Envelope or base64 tx bytes; the signature is not checked
            tx: Alternatively, a JSON transaction

        Returns:
            Raw simulation response (gas_info, result)
        """
        if envelope is not None:
            tx_bytes = encode_tx(envelope) if isinstance(envelope, SignedTx) else envelope
            body: Dict[str, Any] = {"tx_bytes": tx_bytes}
        elif tx is not None:
            body = {"tx": tx}
        else:
            raise ValueError("Either envelope or tx must be provided")
        return self.transport.post(SIMULATE_PATH, body)

    def estimate_gas(
        self,
        messages: Sequence[Message],
        public_key: bytes,
        gas_price: Union[str, GasPrice, None] = None,
        memo: str = ""
    ) -> Dict[str, Any]:
        """
        Simulate messages for a signer to learn their gas usage.

        The signer's current sequence is fetched so the simulation matches
        what a real broadcast would execute.
        """
        identity = self.accounts.resolve(public_key)
        fee = make_fee(1, gas_price=gas_price or GasPrice.parse(f"0{self.config.fee_denom}"))
        body, auth_info = build_unsigned_tx(
            messages, fee, memo=memo, public_key=public_key, sequence=identity.sequence
        )
        return self.simulate(unsigned_envelope(body, auth_info))

    @contextmanager
    def _signer_scope(self, signer: SignerLike) -> Iterator[Signer]:
        # Raw keys get a single-use handle, wiped when the scope ends
        if isinstance(signer, (str, bytes, bytearray)):
            local = LocalSigner(signer)
            try:
                yield local
            finally:
                local.release()
        else:
            yield signer

    def sign_and_broadcast(
        self,
        messages: Messages,
        signer: SignerLike,
        gas_limit: int,
        gas_price: Union[str, GasPrice, None] = None,
        fee_amount: FundsLike = None,
        memo: str = "",
        mode: Union[BroadcastMode, str] = BroadcastMode.SYNC
    ) -> Dict[str, Any]:
        """
        Resolve the signer's account, build, sign and broadcast a transaction.

        The sequence fetch and the broadcast run under the signer address's
        lock, so concurrent calls for one account never reuse a sequence.

        Args:
            messages: Messages, or a callable building them from the signer address
            signer: Signer, or a raw private key (hex or bytes) used once
            gas_limit: Gas limit
            gas_price: Gas price such as "0.25uscrt"; required without fee_amount
            fee_amount: Explicit fee coins
            memo: Transaction memo
            mode: Broadcast mode

        Returns:
            Raw broadcast response

        Raises:
            InvalidKeyMaterial: If a raw private key is malformed
            InvalidFee: If no fee can be determined
            AccountNotFound: If the signer has no account on chain
            SigningFailure: If signing fails
            BroadcastFailure: If the node rejects the transaction
            TransportFailure: If the gateway cannot be reached
        """
        mode = BroadcastMode.parse(mode)
        fee = make_fee(gas_limit, gas_price=gas_price, amount=fee_amount)

        with self._signer_scope(signer) as active:
            address = self.accounts.derive_address(active.public_key)
            msgs = list(messages(address) if callable(messages) else messages)

            with address_lock(address):
                identity = self.accounts.fetch_account_identity(address)
                pending = PendingTx.build(msgs, fee, identity, active.public_key, memo=memo)
                pending.compute_sign_doc(self.config.chain_id, identity)
                envelope = pending.sign(active)
                if active is not signer:
                    active.release()

                pending.mark_submitted()
                self.logger.debug(
                    f"Submitting tx for {address} at sequence {identity.sequence}"
                )
                try:
                    response = self.submit(envelope, mode)
                except BroadcastFailure as e:
                    pending.record_result(e.response or {"tx_response": {"code": e.code}}, mode)
                    if e.is_sequence_mismatch:
                        self.logger.warning(
                            f"Sequence mismatch for {address}; re-fetch the account before retrying"
                        )
                    raise

                state = pending.record_result(response, mode)
                if state is TxState.CONFIRMED:
                    self.logger.info(f"Transaction from {address} included in a block")
                return response

    def execute_contract(
        self,
        contract: str,
        msg: Union[Dict[str, Any], str],
        signer: SignerLike,
        gas_limit: int,
        gas_price: Union[str, GasPrice, None] = None,
        fee_amount: FundsLike = None,
        funds: FundsLike = None,
        memo: str = "",
        mode: Union[BroadcastMode, str] = BroadcastMode.SYNC
    ) -> Dict[str, Any]:
        """Execute a contract message (SNIP-20/721 builders produce msg)."""
        return self.sign_and_broadcast(
            lambda sender: [execute_contract_msg(sender, contract, msg, funds)],
            signer, gas_limit, gas_price=gas_price, fee_amount=fee_amount, memo=memo, mode=mode,
        )

    def instantiate_contract(
        self,
        code_id: Union[int, str],
        label: str,
        init_msg: Union[Dict[str, Any], str],
        signer: SignerLike,
        gas_limit: int,
        gas_price: Union[str, GasPrice, None] = None,
        fee_amount: FundsLike = None,
        funds: FundsLike = None,
        code_hash: str = "",
        memo: str = "",
        mode: Union[BroadcastMode, str] = BroadcastMode.SYNC
    ) -> Dict[str, Any]:
        return self.sign_and_broadcast(
            lambda sender: [instantiate_contract_msg(sender, code_id, label, init_msg, funds, code_hash)],
            signer, gas_limit, gas_price=gas_price, fee_amount=fee_amount, memo=memo, mode=mode,
        )

    def send_tokens(
        self,
        to_address: str,
        amount: Sequence[Union[Coin, Dict[str, Any]]],
        signer: SignerLike,
        gas_limit: int,
        gas_price: Union[str, GasPrice, None] = None,
        fee_amount: FundsLike = None,
        memo: str = "",
        mode: Union[BroadcastMode, str] = BroadcastMode.SYNC
    ) -> Dict[str, Any]:
        return self.sign_and_broadcast(
            lambda sender: [send_msg(sender, to_address, amount)],
            signer, gas_limit, gas_price=gas_price, fee_amount=fee_amount, memo=memo, mode=mode,
        )

    def ibc_transfer(
        self,
        receiver: str,
        token: Union[Coin, Dict[str, Any]],
        source_channel: str,
        signer: SignerLike,
        gas_limit: int,
        gas_price: Union[str, GasPrice, None] = None,
        fee_amount: FundsLike = None,
        source_port: str = "transfer",
        timeout_height: int = 0,
        timeout_timestamp: Optional[int] = None,
        memo: str = "",
        mode: Union[BroadcastMode, str] = BroadcastMode.SYNC
    ) -> Dict[str, Any]:
        """
        Transfer tokens over IBC.

        Raises:
            ConflictingTimeout: If both timeout_height and timeout_timestamp are set
        """
        return self.sign_and_broadcast(
            lambda sender: [ibc_transfer_msg(
                sender, receiver, token, source_channel,
                source_port=source_port,
                timeout_height=timeout_height,
                timeout_timestamp=timeout_timestamp,
            )],
            signer, gas_limit, gas_price=gas_price, fee_amount=fee_amount, memo=memo, mode=mode,
        )

    def store_code(
        self,
        wasm_byte_code: Union[bytes, str],
        signer: SignerLike,
        gas_limit: int,
        gas_price: Union[str, GasPrice, None] = None,
        fee_amount: FundsLike = None,
        source: str = "",
        builder: str = "",
        memo: str = "",
        mode: Union[BroadcastMode, str] = BroadcastMode.SYNC
    ) -> Dict[str, Any]:
        """Upload contract code; bytes are base64 encoded, a str must already be base64."""
        return self.sign_and_broadcast(
            lambda sender: [store_code_msg(sender, wasm_byte_code, source, builder)],
            signer, gas_limit, gas_price=gas_price, fee_amount=fee_amount, memo=memo, mode=mode,
        )

    def update_client(
        self,
        client_id: str,
        header: Dict[str, Any],
        signer: SignerLike,
        gas_limit: int,
        gas_price: Union[str, GasPrice, None] = None,
        fee_amount: FundsLike = None,
        memo: str = "",
        mode: Union[BroadcastMode, str] = BroadcastMode.SYNC
    ) -> Dict[str, Any]:
        """
        Submit a light client header to an IBC client.

        Args:
            client_id: Client identifier, e.g. "07-tendermint-0"
            header: Header as a JSON Any object carrying an "@type" field
        """
        return self.sign_and_broadcast(
            lambda sender: [update_client_msg(sender, client_id, header)],
            signer, gas_limit, gas_price=gas_price, fee_amount=fee_amount, memo=memo, mode=mode,
        )

    # ------------------------------------------------------------------
    # Contract queries
    # ------------------------------------------------------------------

    def get_contract(self, contract: str) -> Dict[str, Any]:
        return self.transport.get(f"/compute/v1beta1/contracts/{contract}")

    def query_contract(self, contract: str, query: Dict[str, Any]) -> Dict[str, Any]:
        """
        Run a smart query against a contract.

        Args:
            contract: Contract address
            query: Query message; SNIP queries carry a viewing key inside it
        """
        encoded = base64.b64encode(
            json.dumps(query, sort_keys=True, separators=(",", ":")).encode("utf-8")
        ).decode("ascii")
        return self.transport.post(f"/compute/v1beta1/contracts/{contract}/query", {"query": encoded})

    def list_codes(
        self,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
        key: Optional[str] = None
    ) -> Dict[str, Any]:
        return self.transport.get("/compute/v1beta1/codes", params=_pagination(offset, limit, key))

    def get_code(self, code_id: Union[int, str]) -> Dict[str, Any]:
        return self.transport.get(f"/compute/v1beta1/codes/{code_id}")

    def list_contracts_by_code(self, code_id: Union[int, str]) -> Dict[str, Any]:
        return self.transport.get(f"/compute/v1beta1/contracts/by-code/{code_id}")

    # ------------------------------------------------------------------
    # Transaction and block queries
    # ------------------------------------------------------------------

    def get_tx(self, tx_hash: str) -> Dict[str, Any]:
        return self.transport.get(f"{BROADCAST_PATH}/{tx_hash}")

    def find_tx(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        """
        Look up a transaction, returning None while it is not indexed yet.
        """
        try:
            return self.get_tx(tx_hash)
        except LcdResponseError as e:
            if e.status_code == 404:
                self.logger.debug(f"Transaction {tx_hash} not found yet")
                return None
            raise

    def search_txs(
        self,
        events: Union[str, Sequence[str]],
        order_by: Optional[str] = None,
        page_size: Optional[int] = None,
        page_key: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Search transactions by event, e.g. "message.sender='secret1...'".
        """
        params: Dict[str, Any] = {"events": [events] if isinstance(events, str) else list(events)}
        if order_by:
            params["order_by"] = order_by
        params.update(_pagination(limit=page_size, key=page_key))
        return self.transport.get(BROADCAST_PATH, params=params)

    def get_block(self, height: Union[int, str] = "latest") -> Dict[str, Any]:
        return self.transport.get(f"/cosmos/base/tendermint/v1beta1/blocks/{height}")

    # ------------------------------------------------------------------
    # Account queries
    # ------------------------------------------------------------------

    def get_account(self, address: str) -> Dict[str, Any]:
        return self.transport.get(f"/cosmos/auth/v1beta1/accounts/{address}")

    def get_balance(self, address: str, denom: Optional[str] = None) -> Dict[str, Any]:
        """All balances of an address, or the balance of one denomination."""
        if denom:
            return self.transport.get(
                f"/cosmos/bank/v1beta1/balances/{address}/by_denom", params={"denom": denom}
            )
        return self.transport.get(f"/cosmos/bank/v1beta1/balances/{address}")

    def get_delegations(self, delegator: str) -> Dict[str, Any]:
        return self.transport.get(f"/cosmos/staking/v1beta1/delegations/{delegator}")

    def get_unbonding_delegations(self, delegator: str) -> Dict[str, Any]:
        return self.transport.get(f"/cosmos/staking/v1beta1/delegators/{delegator}/unbonding_delegations")

    def get_rewards(self, delegator: str) -> Dict[str, Any]:
        return self.transport.get(f"/cosmos/distribution/v1beta1/delegators/{delegator}/rewards")

    # ------------------------------------------------------------------
    # IBC queries
    # ------------------------------------------------------------------

    def list_channels(self, offset: Optional[int] = None, limit: Optional[int] = None) -> Dict[str, Any]:
        return self.transport.get("/ibc/core/channel/v1/channels", params=_pagination(offset, limit))

    def get_channel(self, channel_id: str, port_id: str = "transfer") -> Dict[str, Any]:
        return self.transport.get(f"/ibc/core/channel/v1/channels/{channel_id}/ports/{port_id}")

    def list_connections(self, offset: Optional[int] = None, limit: Optional[int] = None) -> Dict[str, Any]:
        return self.transport.get("/ibc/core/connection/v1/connections", params=_pagination(offset, limit))

    def get_connection(self, connection_id: str) -> Dict[str, Any]:
        return self.transport.get(f"/ibc/core/connection/v1/connections/{connection_id}")

    def list_client_states(self) -> Dict[str, Any]:
        return self.transport.get("/ibc/core/client/v1/client_states")

    def list_denom_traces(self) -> Dict[str, Any]:
        return self.transport.get("/ibc/applications/transfer/v1/denom_traces")

    def get_balances_for(self, addresses: List[str]) -> Dict[str, Dict[str, Any]]:
        """Balances for several addresses, keyed by address."""
        return {address: self.get_balance(address) for address in addresses}
