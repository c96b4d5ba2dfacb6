"""
secp256k1 key handling and signing.
"""
import hashlib
import logging
from typing import Union

from Crypto.Hash import RIPEMD160
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import (
    decode_dss_signature, encode_dss_signature
)
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from .exceptions import InvalidKeyMaterial, SigningFailure

logger = logging.getLogger(__name__)

# Order of the SECP256K1 elliptic curve (N value)
SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

# Valid private scalars are 1..N-1
SECP256K1_MIN = 1
SECP256K1_MAX = SECP256K1_N - 1

PRIVATE_KEY_LENGTH = 32
COMPRESSED_PUBKEY_LENGTH = 33
SIGNATURE_LENGTH = 64

# Digest applied to the SignDoc before ECDSA
SIGNING_HASH = hashes.SHA256

KeyLike = Union[str, bytes, bytearray]


def decode_private_key(private_key: KeyLike) -> bytes:
    """
    Normalise a private key given as hex (with or without 0x) or raw bytes.

    Raises:
        InvalidKeyMaterial: If the key is not 32 bytes or not valid hex
    """
    if isinstance(private_key, str):
        value = private_key[2:] if private_key.startswith("0x") else private_key
        try:
            raw = bytes.fromhex(value)
        except ValueError:
            raise InvalidKeyMaterial("Private key is not a valid hex string")
    elif isinstance(private_key, (bytes, bytearray)):
        raw = bytes(private_key)
    else:
        raise InvalidKeyMaterial(f"Unsupported private key type: {type(private_key).__name__}")

    if len(raw) != PRIVATE_KEY_LENGTH:
        raise InvalidKeyMaterial(
            f"Private key must be {PRIVATE_KEY_LENGTH} bytes, got {len(raw)}"
        )
    return raw


def load_private_key(private_key: KeyLike) -> ec.EllipticCurvePrivateKey:
    """
    Build a secp256k1 private key object.

    Raises:
        InvalidKeyMaterial: If the key is malformed or outside the curve order
    """
    raw = decode_private_key(private_key)
    scalar = int.from_bytes(raw, byteorder="big")
    if not SECP256K1_MIN <= scalar <= SECP256K1_MAX:
        raise InvalidKeyMaterial("Private key is not a valid secp256k1 scalar")
    return ec.derive_private_key(scalar, ec.SECP256K1())


def compressed_public_key(private_key: Union[KeyLike, ec.EllipticCurvePrivateKey]) -> bytes:
    """
    Get the 33-byte compressed public key for a private key.
    """
    if not isinstance(private_key, ec.EllipticCurvePrivateKey):
        private_key = load_private_key(private_key)
    return private_key.public_key().public_bytes(
        Encoding.X962, PublicFormat.CompressedPoint
    )


def check_public_key(public_key: bytes) -> bytes:
    """
    Validate a compressed secp256k1 public key.

    Returns:
        The key as bytes

    Raises:
        InvalidKeyMaterial: If the key is not a 33-byte compressed point
    """
    if not isinstance(public_key, (bytes, bytearray)):
        raise InvalidKeyMaterial(f"Public key must be bytes, got {type(public_key).__name__}")
    if len(public_key) != COMPRESSED_PUBKEY_LENGTH or public_key[0] not in (0x02, 0x03):
        raise InvalidKeyMaterial(
            f"Public key must be a {COMPRESSED_PUBKEY_LENGTH}-byte compressed point"
        )
    return bytes(public_key)


def sign_digest_input(key: ec.EllipticCurvePrivateKey, sign_doc: bytes) -> bytes:
    """
    Sign SHA-256(sign_doc) and return the 64-byte low-S r||s form.
    """
    der = key.sign(sign_doc, ec.ECDSA(SIGNING_HASH()))
    r, s = decode_dss_signature(der)
    # Cosmos rejects high-S signatures
    if s > SECP256K1_N // 2:
        s = SECP256K1_N - s
    return r.to_bytes(32, byteorder="big") + s.to_bytes(32, byteorder="big")


def sign(sign_doc: bytes, private_key: KeyLike) -> bytes:
    """
    Sign a SignDoc with a raw private key.

    Args:
        sign_doc: Canonical bytes to sign
        private_key: 32-byte secp256k1 secret, as hex or bytes

    Returns:
        64-byte signature (r || s)

    Raises:
        SigningFailure: If the private key is malformed
    """
    try:
        key = load_private_key(private_key)
    except InvalidKeyMaterial as e:
        raise SigningFailure(f"Cannot sign with this key: {e}") from e
    return sign_digest_input(key, sign_doc)


def verify(sign_doc: bytes, signature: bytes, public_key: bytes) -> bool:
    """
    Check a 64-byte r||s signature over SHA-256(sign_doc).

    Raises:
        InvalidKeyMaterial: If the public key is not a valid curve point
    """
    check_public_key(public_key)
    if len(signature) != SIGNATURE_LENGTH:
        return False
    try:
        point = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256K1(), bytes(public_key))
    except ValueError as e:
        raise InvalidKeyMaterial(f"Public key is not on secp256k1: {e}") from e

    r = int.from_bytes(signature[:32], byteorder="big")
    s = int.from_bytes(signature[32:], byteorder="big")
    if not (0 < r < SECP256K1_N and 0 < s < SECP256K1_N):
        return False
    try:
        point.verify(encode_dss_signature(r, s), sign_doc, ec.ECDSA(SIGNING_HASH()))
        return True
    except InvalidSignature:
        return False


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def ripemd160(data: bytes) -> bytes:
    # hashlib only offers ripemd160 when OpenSSL's legacy provider is loaded
    return RIPEMD160.new(data).digest()
