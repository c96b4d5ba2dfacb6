"""
Address derivation for Secret Network accounts.

An account address is RIPEMD-160(SHA-256(compressed public key)), encoded
as bech32 with the network prefix (BIP-173).
"""
import logging
from enum import Enum
from typing import List, Optional, Tuple

from .crypto import check_public_key, ripemd160, sha256
from .exceptions import InvalidKeyMaterial

logger = logging.getLogger(__name__)

ADDRESS_LENGTH = 20

_BECH32_CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
_BECH32_REV = {c: i for i, c in enumerate(_BECH32_CHARSET)}
_BECH32_GENERATOR = (0x3B6A57B2, 0x26508E6D, 0x1EA119FA, 0x3D4233DD, 0x2A1462B3)
# BIP-173 caps the total length at 90 characters
_BECH32_MAX_LENGTH = 90


class AddressScheme(str, Enum):
    """
    Address derivation schemes.

    BECH32 is what the network uses. LEGACY_HEX reproduces an older
    prefix + hex(hash160) form that no node accepts; it exists only to
    reproduce addresses recorded by earlier tooling.
    """
    BECH32 = "bech32"
    LEGACY_HEX = "legacy_hex"


def _polymod(values: List[int]) -> int:
    chk = 1
    for value in values:
        top = chk >> 25
        chk = ((chk & 0x1FFFFFF) << 5) ^ value
        for i, gen in enumerate(_BECH32_GENERATOR):
            if (top >> i) & 1:
                chk ^= gen
    return chk


def _hrp_expand(hrp: str) -> List[int]:
    return [ord(c) >> 5 for c in hrp] + [0] + [ord(c) & 31 for c in hrp]


def _create_checksum(hrp: str, data: List[int]) -> List[int]:
    polymod = _polymod(_hrp_expand(hrp) + data + [0] * 6) ^ 1
    return [(polymod >> 5 * (5 - i)) & 31 for i in range(6)]


def convertbits(data: bytes, frombits: int, tobits: int, pad: bool = True) -> List[int]:
    """
    Regroup a sequence of frombits-wide values into tobits-wide values.

    Raises:
        ValueError: If the input holds out-of-range values or bad padding
    """
    acc = 0
    bits = 0
    ret: List[int] = []
    maxv = (1 << tobits) - 1
    max_acc = (1 << (frombits + tobits - 1)) - 1
    for value in data:
        if value < 0 or value >> frombits:
            raise ValueError("Value out of range for conversion")
        acc = ((acc << frombits) | value) & max_acc
        bits += frombits
        while bits >= tobits:
            bits -= tobits
            ret.append((acc >> bits) & maxv)
    if pad:
        if bits:
            ret.append((acc << (tobits - bits)) & maxv)
    elif bits >= frombits or ((acc << (tobits - bits)) & maxv):
        raise ValueError("Invalid padding in conversion")
    return ret


def bech32_encode(hrp: str, payload: bytes) -> str:
    """Encode bytes as a bech32 string with the given human-readable part."""
    if not hrp or hrp.lower() != hrp:
        raise ValueError(f"Invalid bech32 prefix '{hrp}'")
    data = convertbits(payload, 8, 5)
    combined = data + _create_checksum(hrp, data)
    return hrp + "1" + "".join(_BECH32_CHARSET[d] for d in combined)


def bech32_decode(address: str) -> Tuple[str, bytes]:
    """
    Decode a bech32 string.

    Returns:
        Tuple of (prefix, payload bytes)

    Raises:
        ValueError: If the string is not valid bech32
    """
    if address.lower() != address and address.upper() != address:
        raise ValueError("Mixed-case bech32 string")
    address = address.lower()
    pos = address.rfind("1")
    if pos < 1 or pos + 7 > len(address) or len(address) > _BECH32_MAX_LENGTH:
        raise ValueError("Invalid bech32 separator position or length")

    hrp = address[:pos]
    try:
        data = [_BECH32_REV[c] for c in address[pos + 1:]]
    except KeyError as e:
        raise ValueError(f"Invalid bech32 character {e}") from None
    if _polymod(_hrp_expand(hrp) + data) != 1:
        raise ValueError("Invalid bech32 checksum")
    return hrp, bytes(convertbits(bytes(data[:-6]), 5, 8, pad=False))


def public_key_hash(public_key: bytes) -> bytes:
    """RIPEMD-160(SHA-256(public_key)), the 20-byte account identifier."""
    return ripemd160(sha256(check_public_key(public_key)))


def derive_address(
    public_key: bytes,
    prefix: str = "secret",
    scheme: AddressScheme = AddressScheme.BECH32
) -> str:
    """
    Derive the account address for a compressed secp256k1 public key.

    Args:
        public_key: 33-byte compressed public key
        prefix: Network address prefix
        scheme: Address encoding

    Returns:
        Account address string

    Raises:
        InvalidKeyMaterial: If the public key is not a 33-byte compressed point
    """
    key_hash = public_key_hash(public_key)
    if AddressScheme(scheme) is AddressScheme.LEGACY_HEX:
        return prefix + key_hash.hex()
    return bech32_encode(prefix, key_hash)


def is_valid_address(address: str, prefix: Optional[str] = None) -> bool:
    """
    Check that a string is a well-formed bech32 account address.

    Contract addresses (32 bytes) are accepted as well as 20-byte accounts.
    """
    try:
        hrp, payload = bech32_decode(address)
    except (ValueError, AttributeError):
        return False
    if prefix is not None and hrp != prefix:
        return False
    return len(payload) in (ADDRESS_LENGTH, 32)


def address_from_hash(key_hash: bytes, prefix: str = "secret") -> str:
    """Encode an existing 20-byte hash as an address."""
    if len(key_hash) != ADDRESS_LENGTH:
        raise InvalidKeyMaterial(f"Address hash must be {ADDRESS_LENGTH} bytes")
    return bech32_encode(prefix, key_hash)
