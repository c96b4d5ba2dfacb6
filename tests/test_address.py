"""
Tests for address derivation and the bech32 codec.
"""
import pytest

from scrt_sdk.address import (
    AddressScheme, address_from_hash, bech32_decode, bech32_encode, derive_address,
    is_valid_address, public_key_hash
)
from scrt_sdk.crypto import compressed_public_key
from scrt_sdk.exceptions import InvalidKeyMaterial

from test_helpers import TEST_ACCOUNT_HASH, TEST_PRIV_KEY, TEST_PUBKEY_HEX

# BIP-173 test vector whose data part is every bech32 character in order
BIP173_VECTOR = "abcdef1qpzry9x8gf2tvdw0s3jn54khce6mua7lmqqqxw"
BIP173_PAYLOAD = bytes.fromhex("00443214c74254b635cf84653a56d7c675be77df")


def test_public_key_of_known_private_key():
    """Private key 1 maps to the compressed generator point."""
    assert compressed_public_key(TEST_PRIV_KEY).hex() == TEST_PUBKEY_HEX


def test_public_key_hash_golden_value(public_key):
    assert public_key_hash(public_key).hex() == TEST_ACCOUNT_HASH


def test_bech32_known_vector():
    hrp, payload = bech32_decode(BIP173_VECTOR)
    assert hrp == "abcdef"
    assert payload == BIP173_PAYLOAD
    assert bech32_encode("abcdef", BIP173_PAYLOAD) == BIP173_VECTOR


def test_bech32_rejects_bad_checksum():
    corrupted = BIP173_VECTOR[:-1] + ("q" if BIP173_VECTOR[-1] != "q" else "p")
    with pytest.raises(ValueError):
        bech32_decode(corrupted)


def test_bech32_rejects_mixed_case():
    with pytest.raises(ValueError):
        bech32_decode("Abcdef1qpzry9x8gf2tvdw0s3jn54khce6mua7lmqqqxw")


def test_derive_address_bech32(public_key):
    address = derive_address(public_key)
    assert address.startswith("secret1")
    assert bech32_decode(address) == ("secret", bytes.fromhex(TEST_ACCOUNT_HASH))
    assert address == address_from_hash(bytes.fromhex(TEST_ACCOUNT_HASH))


def test_derive_address_known_value(public_key):
    # Public key of secp256k1 scalar 1; same hash160 as the BIP-173 P2WPKH vector
    assert derive_address(public_key) == "secret1w508d6qejxtdg4y5r3zarvary0c5xw7kccrnjy"


def test_derive_address_is_deterministic(public_key):
    assert derive_address(public_key) == derive_address(bytes(public_key))


def test_derive_address_custom_prefix(public_key):
    assert derive_address(public_key, prefix="cosmos").startswith("cosmos1")


def test_derive_address_legacy_hex(public_key):
    address = derive_address(public_key, scheme=AddressScheme.LEGACY_HEX)
    assert address == "secret" + TEST_ACCOUNT_HASH


def test_legacy_scheme_accepts_string_value(public_key):
    assert derive_address(public_key, scheme="legacy_hex") == "secret" + TEST_ACCOUNT_HASH


@pytest.mark.parametrize("bad_key", [
    b"",
    b"\x02" * 32,
    b"\x02" * 34,
    b"\x04" + b"\x01" * 32,
])
def test_derive_address_rejects_bad_public_key(bad_key):
    with pytest.raises(InvalidKeyMaterial):
        derive_address(bad_key)


def test_derive_address_rejects_non_bytes():
    with pytest.raises(InvalidKeyMaterial):
        derive_address(TEST_PUBKEY_HEX)


def test_is_valid_address(sender):
    assert is_valid_address(sender)
    assert is_valid_address(sender, prefix="secret")
    assert not is_valid_address(sender, prefix="cosmos")
    assert not is_valid_address("secret1notanaddress")
    assert not is_valid_address("")


def test_is_valid_address_rejects_wrong_payload_length():
    assert not is_valid_address(bech32_encode("secret", b"\x01" * 10))


def test_address_from_hash_length():
    with pytest.raises(InvalidKeyMaterial):
        address_from_hash(b"\x00" * 19)
