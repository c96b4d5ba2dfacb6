"""
Tests for SecretClient submission pipeline.
"""
import base64
import threading
import time

import pytest
import requests
from unittest.mock import patch

from scrt_sdk.client import BROADCAST_PATH, SecretClient
from scrt_sdk.exceptions import (
    AccountNotFound, BroadcastFailure, ConflictingTimeout, InvalidFee, InvalidKeyMaterial, LcdResponseError,
    SigningFailure, TransportFailure
)
from scrt_sdk.messages import execute_contract_msg
from scrt_sdk.models import BroadcastMode
from scrt_sdk.signer import ExternalSigner, LocalSigner
from scrt_sdk.crypto import sign
from scrt_sdk.tx import canonical_json, verify

from test_helpers import (
    TEST_LCD_URL, TEST_CHAIN_ID, TEST_CONTRACT, TEST_ACCOUNT_NUMBER, TEST_SEQUENCE,
    account_response, broadcast_response, decode_envelope
)

BROADCAST_URL = f"{TEST_LCD_URL}{BROADCAST_PATH}"


def accounts_url(address):
    return f"{TEST_LCD_URL}/cosmos/auth/v1beta1/accounts/{address}"


@pytest.fixture
def funded(requests_mock, sender):
    """Gateway knows the test account."""
    requests_mock.get(accounts_url(sender), json=account_response(sender))
    return requests_mock


def test_from_network():
    client = SecretClient.from_network("testnet")
    assert client.config.chain_id == "pulsar-3"
    assert client.transport.base_url == "https://lcd.pulsar.scrttestnet.com"


def test_derive_address(client, public_key, sender):
    assert client.derive_address(public_key) == sender


class TestSubmit:
    """Broadcasting signed transactions."""

    def test_success_returns_raw_response(self, client, requests_mock):
        raw = broadcast_response(txhash="ABC123")
        requests_mock.post(BROADCAST_URL, json=raw)

        result = client.submit("dHhieXRlcw==")

        assert result == raw
        assert requests_mock.last_request.json() == {
            "tx_bytes": "dHhieXRlcw==",
            "mode": "BROADCAST_MODE_SYNC",
        }

    def test_async_mode_and_pending_lookup(self, client, requests_mock):
        requests_mock.post(BROADCAST_URL, json=broadcast_response(txhash="ABC123"))
        requests_mock.get(
            f"{BROADCAST_URL}/ABC123",
            status_code=404,
            json={"code": 5, "message": "tx not found: ABC123"},
        )

        result = client.submit("dHhieXRlcw==", mode="async")

        assert requests_mock.request_history[0].json()["mode"] == "BROADCAST_MODE_ASYNC"
        assert result["tx_response"]["txhash"] == "ABC123"
        # Not yet indexed is not an error
        assert client.find_tx("ABC123") is None

    def test_non_zero_code_raises_broadcast_failure(self, client, requests_mock):
        requests_mock.post(BROADCAST_URL, json=broadcast_response(
            code=32,
            codespace="sdk",
            raw_log="account sequence mismatch, expected 8, got 7: incorrect account sequence",
        ))

        with pytest.raises(BroadcastFailure) as exc_info:
            client.submit("dHhieXRlcw==")

        error = exc_info.value
        assert error.code == 32
        assert error.is_sequence_mismatch
        assert error.retryable
        assert error.to_dict()["code"] == 32

    def test_other_rejection_is_not_sequence_mismatch(self, client, requests_mock):
        requests_mock.post(BROADCAST_URL, json=broadcast_response(
            code=5, codespace="sdk", raw_log="insufficient funds"
        ))
        with pytest.raises(BroadcastFailure) as exc_info:
            client.submit("dHhieXRlcw==")
        assert not exc_info.value.is_sequence_mismatch
        assert not exc_info.value.retryable

    def test_string_code_is_a_rejection(self, client, requests_mock):
        raw = broadcast_response(codespace="sdk", raw_log="account sequence mismatch")
        raw["tx_response"]["code"] = "32"
        requests_mock.post(BROADCAST_URL, json=raw)

        with pytest.raises(BroadcastFailure) as exc_info:
            client.submit("dHhieXRlcw==")
        assert exc_info.value.code == 32
        assert exc_info.value.is_sequence_mismatch

    def test_null_code_is_success(self, client, requests_mock):
        raw = broadcast_response(txhash="ABC123")
        raw["tx_response"]["code"] = None
        requests_mock.post(BROADCAST_URL, json=raw)
        assert client.submit("dHhieXRlcw==") == raw

    def test_connection_error(self, client, requests_mock):
        requests_mock.post(BROADCAST_URL, exc=requests.exceptions.ConnectionError("refused"))
        with pytest.raises(TransportFailure):
            client.submit("dHhieXRlcw==")

    def test_timeout(self, client, requests_mock):
        requests_mock.post(BROADCAST_URL, exc=requests.exceptions.ConnectTimeout("slow"))
        with pytest.raises(TransportFailure):
            client.submit("dHhieXRlcw==")

    def test_server_error_is_not_retried(self, client, requests_mock):
        requests_mock.post(BROADCAST_URL, status_code=503, text="unavailable")
        with pytest.raises(LcdResponseError):
            client.submit("dHhieXRlcw==")
        assert requests_mock.call_count == 1

    def test_empty_tx_bytes(self, client):
        with pytest.raises(SigningFailure):
            client.submit("")

    def test_broadcast_tx_bytes(self, client, requests_mock):
        requests_mock.post(BROADCAST_URL, json=broadcast_response())
        client.broadcast_tx_bytes("dHhieXRlcw==", mode=BroadcastMode.BLOCK)
        assert requests_mock.last_request.json()["mode"] == "BROADCAST_MODE_BLOCK"

    def test_unknown_mode(self, client):
        with pytest.raises(ValueError):
            client.submit("dHhieXRlcw==", mode="eventually")


class TestSignAndBroadcast:
    """End-to-end signing pipeline."""

    def test_execute_contract(self, client, funded, private_key, public_key, sender):
        funded.post(BROADCAST_URL, json=broadcast_response(txhash="FEED"))

        result = client.execute_contract(
            TEST_CONTRACT, {"increment": {}}, private_key,
            gas_limit=200000, gas_price="0.1uscrt",
        )

        assert result["tx_response"]["txhash"] == "FEED"
        tx_bytes = funded.last_request.json()["tx_bytes"]
        body = decode_envelope(tx_bytes, "body")
        auth_info = decode_envelope(tx_bytes, "auth_info")
        assert body["messages"][0]["sender"] == sender
        assert body["messages"][0]["contract"] == TEST_CONTRACT
        assert auth_info["signer_infos"][0]["sequence"] == str(TEST_SEQUENCE)
        assert auth_info["fee"]["amount"] == [{"denom": "uscrt", "amount": "20000"}]
        assert auth_info["fee"]["gas_limit"] == "200000"

    def test_signature_covers_chain_and_account(self, client, funded, private_key, public_key):
        funded.post(BROADCAST_URL, json=broadcast_response())

        client.send_tokens(
            "secret1recipient", [{"denom": "uscrt", "amount": "10"}], private_key,
            gas_limit=100000, fee_amount=[{"denom": "uscrt", "amount": "2500"}],
        )

        envelope = decode_envelope(funded.last_request.json()["tx_bytes"])
        sign_doc = canonical_json({
            "account_number": str(TEST_ACCOUNT_NUMBER),
            "auth_info_bytes": envelope.auth_info_bytes,
            "body_bytes": envelope.body_bytes,
            "chain_id": TEST_CHAIN_ID,
        })
        assert verify(sign_doc, base64.b64decode(envelope.signatures[0]), public_key)

    def test_messages_preserve_order(self, client, funded, private_key, sender):
        funded.post(BROADCAST_URL, json=broadcast_response())
        msgs = [execute_contract_msg(sender, TEST_CONTRACT, {"step": i}) for i in range(3)]

        client.sign_and_broadcast(msgs, private_key, gas_limit=300000, gas_price="0.1uscrt")

        body = decode_envelope(funded.last_request.json()["tx_bytes"], "body")
        decoded = [base64.b64decode(m["msg"]) for m in body["messages"]]
        assert decoded == [b'{"step":0}', b'{"step":1}', b'{"step":2}']

    def test_raw_key_is_released_after_use(self, client, funded, private_key):
        funded.post(BROADCAST_URL, json=broadcast_response())
        with patch.object(LocalSigner, "release", autospec=True) as mock_release:
            client.execute_contract(
                TEST_CONTRACT, {}, private_key, gas_limit=1000, gas_price="0.1uscrt"
            )
        assert mock_release.called

    def test_caller_owned_signer_is_not_released(self, client, funded, private_key):
        funded.post(BROADCAST_URL, json=broadcast_response())
        signer = LocalSigner(private_key)
        client.execute_contract(TEST_CONTRACT, {}, signer, gas_limit=1000, gas_price="0.1uscrt")
        assert not signer.released

    def test_external_signer(self, client, funded, public_key, private_key):
        funded.post(BROADCAST_URL, json=broadcast_response())
        signer = ExternalSigner(public_key, lambda doc: sign(doc, private_key))
        client.execute_contract(TEST_CONTRACT, {}, signer, gas_limit=1000, gas_price="0.1uscrt")
        assert funded.call_count == 2

    def test_missing_fee_fails_before_network(self, client, requests_mock, private_key):
        with pytest.raises(InvalidFee):
            client.execute_contract(TEST_CONTRACT, {}, private_key, gas_limit=1000)
        assert requests_mock.call_count == 0

    def test_bad_key_fails_before_network(self, client, requests_mock):
        with pytest.raises(InvalidKeyMaterial):
            client.execute_contract(TEST_CONTRACT, {}, "0x1234", gas_limit=1000, gas_price="0.1uscrt")
        assert requests_mock.call_count == 0

    def test_unknown_account_stops_pipeline(self, client, requests_mock, private_key, sender):
        requests_mock.get(accounts_url(sender), status_code=404, json={"code": 5, "message": "not found"})
        requests_mock.post(BROADCAST_URL, json=broadcast_response())

        with pytest.raises(AccountNotFound):
            client.execute_contract(TEST_CONTRACT, {}, private_key, gas_limit=1000, gas_price="0.1uscrt")
        assert not any(r.method == "POST" for r in requests_mock.request_history)

    def test_sequence_mismatch_is_reported_not_retried(self, client, funded, private_key):
        funded.post(BROADCAST_URL, json=broadcast_response(
            code=32, codespace="sdk", raw_log="account sequence mismatch, expected 8, got 7"
        ))

        with pytest.raises(BroadcastFailure) as exc_info:
            client.execute_contract(TEST_CONTRACT, {}, private_key, gas_limit=1000, gas_price="0.1uscrt")

        assert exc_info.value.is_sequence_mismatch
        assert sum(1 for r in funded.request_history if r.method == "POST") == 1

    def test_ibc_transfer_conflicting_timeouts(self, client, funded, private_key):
        with pytest.raises(ConflictingTimeout):
            client.ibc_transfer(
                "cosmos1dest", {"denom": "uscrt", "amount": "1"}, "channel-0", private_key,
                gas_limit=1000, gas_price="0.1uscrt",
                timeout_height=100, timeout_timestamp=5,
            )
        assert not any(r.method == "POST" for r in funded.request_history)

    def test_ibc_transfer(self, client, funded, private_key):
        funded.post(BROADCAST_URL, json=broadcast_response())
        client.ibc_transfer(
            "cosmos1dest", {"denom": "uscrt", "amount": "1"}, "channel-0", private_key,
            gas_limit=1000, gas_price="0.1uscrt", timeout_height=100,
        )
        msg = decode_envelope(funded.last_request.json()["tx_bytes"], "body")["messages"][0]
        assert msg["@type"] == "/ibc.applications.transfer.v1.MsgTransfer"
        assert msg["timeout_height"]["revision_height"] == "100"
        assert msg["timeout_timestamp"] == "0"

    def test_instantiate_contract(self, client, funded, private_key):
        funded.post(BROADCAST_URL, json=broadcast_response())
        client.instantiate_contract(
            7, "my-token", {"name": "Token"}, private_key, gas_limit=1000, gas_price="0.1uscrt"
        )
        msg = decode_envelope(funded.last_request.json()["tx_bytes"], "body")["messages"][0]
        assert msg["code_id"] == "7"
        assert msg["label"] == "my-token"

    def test_store_code(self, client, funded, private_key):
        funded.post(BROADCAST_URL, json=broadcast_response())
        client.store_code(b"\x00asm\x01\x00\x00\x00", private_key, gas_limit=2_000_000, gas_price="0.1uscrt")
        msg = decode_envelope(funded.last_request.json()["tx_bytes"], "body")["messages"][0]
        assert msg["@type"] == "/secret.compute.v1beta1.MsgStoreCode"
        assert base64.b64decode(msg["wasm_byte_code"]) == b"\x00asm\x01\x00\x00\x00"
        assert msg["source"] == ""
        assert msg["builder"] == ""

    def test_update_client(self, client, funded, private_key, sender):
        funded.post(BROADCAST_URL, json=broadcast_response())
        header = {"@type": "/ibc.lightclients.tendermint.v1.Header", "trusted_height": {"revision_height": "9"}}
        client.update_client("07-tendermint-0", header, private_key, gas_limit=300_000, gas_price="0.1uscrt")
        msg = decode_envelope(funded.last_request.json()["tx_bytes"], "body")["messages"][0]
        assert msg["@type"] == "/ibc.core.client.v1.MsgUpdateClient"
        assert msg["client_id"] == "07-tendermint-0"
        assert msg["header"] == header
        assert msg["signer"] == sender


class TestConcurrency:
    """Submissions from one address never share a sequence."""

    def test_same_address_is_serialized(self, client, requests_mock, private_key, sender):
        state = {"sequence": 0}
        signed_sequences = []
        guard = threading.Lock()

        def account_callback(request, context):
            current = state["sequence"]
            # Widen the window between reading and using the sequence
            time.sleep(0.05)
            return account_response(sender, sequence=current)

        def broadcast_callback(request, context):
            auth_info = decode_envelope(request.json()["tx_bytes"], "auth_info")
            sequence = int(auth_info["signer_infos"][0]["sequence"])
            with guard:
                signed_sequences.append(sequence)
                if sequence == state["sequence"]:
                    state["sequence"] += 1
                    return broadcast_response()
            return broadcast_response(code=32, codespace="sdk", raw_log="account sequence mismatch")

        requests_mock.get(accounts_url(sender), json=account_callback)
        requests_mock.post(BROADCAST_URL, json=broadcast_callback)

        errors = []

        def worker():
            try:
                client.execute_contract(TEST_CONTRACT, {}, private_key, gas_limit=1000, gas_price="0.1uscrt")
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(3)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert sorted(signed_sequences) == [0, 1, 2]
        assert state["sequence"] == 3
