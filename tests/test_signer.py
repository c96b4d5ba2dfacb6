"""
Tests for the signer implementations.
"""
import pytest
from unittest.mock import MagicMock

from scrt_sdk.address import AddressScheme
from scrt_sdk.crypto import sign, verify
from scrt_sdk.exceptions import InvalidKeyMaterial, SigningFailure
from scrt_sdk.signer import ExternalSigner, LocalSigner, Signer

from test_helpers import TEST_ACCOUNT_HASH, TEST_PRIV_KEY


def test_local_signer_public_key(public_key):
    assert LocalSigner(TEST_PRIV_KEY).public_key == public_key


def test_local_signer_address(sender):
    signer = LocalSigner(TEST_PRIV_KEY)
    assert signer.address() == sender
    assert signer.address(scheme=AddressScheme.LEGACY_HEX) == "secret" + TEST_ACCOUNT_HASH


def test_local_signer_signs(public_key):
    signer = LocalSigner(TEST_PRIV_KEY)
    signature = signer.sign(b"payload")
    assert verify(b"payload", signature, public_key)


def test_local_signer_release():
    signer = LocalSigner(TEST_PRIV_KEY)
    secret = signer._secret
    signer.release()
    assert signer.released
    assert secret == bytearray(32)
    with pytest.raises(SigningFailure):
        signer.sign(b"payload")
    # Releasing twice is harmless
    signer.release()


def test_local_signer_context_manager():
    with LocalSigner(TEST_PRIV_KEY) as signer:
        assert not signer.released
    assert signer.released


def test_local_signer_repr_hides_secret():
    signer = LocalSigner(TEST_PRIV_KEY)
    text = repr(signer)
    assert "active" in text
    assert TEST_PRIV_KEY[2:] not in text


def test_local_signer_rejects_bad_key():
    with pytest.raises(InvalidKeyMaterial):
        LocalSigner("0xdeadbeef")


def test_signers_satisfy_protocol(public_key):
    assert isinstance(LocalSigner(TEST_PRIV_KEY), Signer)
    assert isinstance(ExternalSigner(public_key, lambda doc: b"\x01" * 64), Signer)


def test_external_signer_delegates(public_key):
    sign_fn = MagicMock(side_effect=lambda doc: sign(doc, TEST_PRIV_KEY))
    signer = ExternalSigner(public_key, sign_fn)
    signature = signer.sign(b"payload")
    sign_fn.assert_called_once_with(b"payload")
    assert verify(b"payload", signature, public_key)


def test_external_signer_wraps_errors(public_key):
    def failing(doc):
        raise RuntimeError("device unplugged")

    signer = ExternalSigner(public_key, failing)
    with pytest.raises(SigningFailure) as exc_info:
        signer.sign(b"payload")
    assert "device unplugged" in str(exc_info.value)


def test_external_signer_checks_signature_length(public_key):
    signer = ExternalSigner(public_key, lambda doc: b"\x01" * 65)
    with pytest.raises(SigningFailure):
        signer.sign(b"payload")


def test_external_signer_validates_public_key():
    with pytest.raises(InvalidKeyMaterial):
        ExternalSigner(b"\x05" * 33, lambda doc: b"")
