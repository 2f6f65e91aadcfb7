"""
keys.py – Secret key decoding and public identity derivation.

Pacifica agent keys are Solana-style Ed25519 keypairs exported as Base58
text (Bitcoin alphabet, no ``0OIl``).  Two decoded shapes are accepted:

  32 bytes  seed only          → public key derived with Ed25519 keygen
  64 bytes  seed + public key  → trailing 32 bytes are the public key

Wallet-scheme secrets are hex secp256k1 private keys (``0x`` optional);
their public identity is the checksummed EVM address.

Every failure raises KeyFormatError so a bad secret is caught at client
construction, before any network call.
"""

from __future__ import annotations

import binascii

import base58
import nacl.signing
from eth_account import Account

from .exceptions import KeyFormatError

ED25519_SEED_LEN    = 32
ED25519_KEYPAIR_LEN = 64
WALLET_KEY_LEN      = 32

# Order of the secp256k1 group; valid private scalars are 1 .. n-1
_SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


# ---------------------------------------------------------------------------
# Base58
# ---------------------------------------------------------------------------

def b58encode(data: bytes) -> str:
    """Encode bytes with the Bitcoin/Solana alphabet; leading zero bytes become ``1``."""
    return base58.b58encode(bytes(data)).decode("ascii")


def b58decode(text: str) -> bytes:
    """Decode Base58 text; each leading ``1`` becomes a leading zero byte."""
    try:
        return base58.b58decode(text)
    except ValueError as exc:
        raise KeyFormatError(f"invalid Base58 text: {exc}") from exc


# ---------------------------------------------------------------------------
# Ed25519 (agent keypair)
# ---------------------------------------------------------------------------

def decode_ed25519_secret(secret: str) -> bytes:
    """Decode a Base58 agent secret into 32- or 64-byte key material."""
    secret = (secret or "").strip()
    if not secret:
        raise KeyFormatError("Ed25519 secret is empty")
    key = b58decode(secret)
    if len(key) not in (ED25519_SEED_LEN, ED25519_KEYPAIR_LEN):
        raise KeyFormatError(
            f"invalid Ed25519 key length: {len(key)} bytes "
            f"(expected {ED25519_SEED_LEN} or {ED25519_KEYPAIR_LEN})"
        )
    return key


def ed25519_public_key(key_material: bytes) -> bytes:
    """Return the 32-byte public key for 32- or 64-byte key material."""
    if len(key_material) == ED25519_KEYPAIR_LEN:
        return bytes(key_material[ED25519_SEED_LEN:])
    if len(key_material) == ED25519_SEED_LEN:
        return bytes(nacl.signing.SigningKey(bytes(key_material)).verify_key)
    raise KeyFormatError(f"invalid Ed25519 key length: {len(key_material)} bytes")


# ---------------------------------------------------------------------------
# secp256k1 (wallet)
# ---------------------------------------------------------------------------

def decode_wallet_secret(secret: str) -> bytes:
    """Decode a hex wallet private key and check it is a valid secp256k1 scalar."""
    text = (secret or "").strip()
    hex_body = text[2:] if text[:2].lower() == "0x" else text
    try:
        key = binascii.unhexlify(hex_body)
    except (binascii.Error, ValueError) as exc:
        raise KeyFormatError("wallet secret is not valid hex") from exc
    if len(key) != WALLET_KEY_LEN:
        raise KeyFormatError(
            f"invalid wallet key length: {len(key)} bytes (expected {WALLET_KEY_LEN})"
        )
    if not 0 < int.from_bytes(key, "big") < _SECP256K1_N:
        raise KeyFormatError("wallet secret is outside the secp256k1 scalar range")
    try:
        Account.from_key(key)
    except ValueError as exc:
        raise KeyFormatError(f"wallet secret is not a valid private key: {exc}") from exc
    return key


def wallet_address(secret: str) -> str:
    """Checksummed address controlled by a hex wallet secret."""
    return Account.from_key(decode_wallet_secret(secret)).address
