"""
Cryptographic primitives for GAQ.

This module provides:
- Hashing functions (SHA-256, Keccak-256)
- Key generation for account identities (secp256k1)
- Address derivation (Ethereum-style) for accounts and contracts

Design Notes:
-------------
Identities on the simulated chain are 20-byte addresses. Accounts derive
theirs from a secp256k1 public key, contracts from their creator address and
a nonce, both through Keccak-256 so addresses look and behave like EVM ones.
"""

import secrets
from dataclasses import dataclass

from Crypto.Hash import keccak
from py_ecc.secp256k1 import secp256k1


# =============================================================================
# Constants
# =============================================================================

# secp256k1 curve order (number of points on the curve)
SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

ADDRESS_SIZE = 20
ZERO_ADDRESS = bytes(ADDRESS_SIZE)


# =============================================================================
# Hashing
# =============================================================================


def keccak256(data: bytes) -> bytes:
    """
    Compute Keccak-256 hash (Ethereum-style).

    Used for: address derivation, compatibility with EVM conventions.
    """
    k = keccak.new(digest_bits=256)
    k.update(data)
    return k.digest()


# =============================================================================
# Key Generation
# =============================================================================


@dataclass
class KeyPair:
    """
    An ECDSA keypair on secp256k1.

    Attributes:
        private_key: 32-byte secret key (integer in [1, order-1])
        public_key: 64-byte uncompressed public key (x || y coordinates)
    """
    private_key: bytes  # 32 bytes
    public_key: bytes   # 64 bytes (uncompressed, no 0x04 prefix)

    @property
    def address(self) -> bytes:
        """20-byte account address of this keypair."""
        return address_from_public_key(self.public_key)

    @property
    def address_hex(self) -> str:
        return bytes_to_hex(self.address)


def generate_keypair() -> KeyPair:
    """
    Generate a new random keypair.

    Uses cryptographically secure random number generator.
    """
    private_key_int = secrets.randbelow(SECP256K1_ORDER - 1) + 1
    private_key = private_key_int.to_bytes(32, byteorder="big")
    return KeyPair(private_key=private_key, public_key=private_key_to_public_key(private_key))


def private_key_to_public_key(private_key: bytes) -> bytes:
    """
    Derive public key from private key.

    Args:
        private_key: 32-byte private key

    Returns:
        64-byte uncompressed public key
    """
    if len(private_key) != 32:
        raise ValueError("Private key must be 32 bytes")

    # P = k * G, returned as an (x, y) tuple of integers
    public_key_point = secp256k1.privtopub(private_key)
    x_bytes = public_key_point[0].to_bytes(32, byteorder="big")
    y_bytes = public_key_point[1].to_bytes(32, byteorder="big")
    return x_bytes + y_bytes


# =============================================================================
# Addresses
# =============================================================================


def address_from_public_key(public_key: bytes) -> bytes:
    """
    Derive address from public key (Ethereum-style).

    address = keccak256(public_key)[-20:]
    """
    if len(public_key) != 64:
        raise ValueError("Public key must be 64 bytes")
    return keccak256(public_key)[-ADDRESS_SIZE:]


def contract_address(creator: bytes, nonce: int) -> bytes:
    """
    Derive the address of a contract deployed by `creator`.

    address = keccak256(creator || nonce)[-20:]

    Not RLP-encoded like CREATE, but deterministic per (creator, nonce) so
    two deployments never collide.
    """
    if len(creator) != ADDRESS_SIZE:
        raise ValueError(f"Creator must be {ADDRESS_SIZE} bytes, got {len(creator)}")
    return keccak256(creator + nonce.to_bytes(8, byteorder="big"))[-ADDRESS_SIZE:]


# =============================================================================
# Utility Functions
# =============================================================================


def bytes_to_hex(data: bytes) -> str:
    """Convert bytes to hex string with 0x prefix."""
    return "0x" + data.hex()


def hex_to_bytes(hex_str: str) -> bytes:
    """Convert hex string (with or without 0x prefix) to bytes."""
    if hex_str.startswith("0x") or hex_str.startswith("0X"):
        hex_str = hex_str[2:]
    return bytes.fromhex(hex_str)


def is_valid_address(address: str) -> bool:
    """Check if string is a valid address format."""
    if not address.startswith("0x"):
        return False
    if len(address) != 42:  # 0x + 40 hex chars
        return False
    try:
        int(address, 16)
        return True
    except ValueError:
        return False


def short_hex(data: bytes, length: int = 10) -> str:
    """Abbreviated hex form for log lines."""
    return bytes_to_hex(data)[:length]
