"""
signing.py – Request signing for Pacifica.

Two interchangeable signing schemes are supported.  One is chosen when the
client is constructed and used for every request it signs; schemes are
never mixed within a client.

Ed25519 (SigningScheme.ED25519)
-------------------------------
1. Build the canonical message (canonical.py): type, timestamp,
   expiry_window and the payload under ``data``, keys sorted recursively.
2. Sign its UTF-8 bytes with the agent's Ed25519 key (pynacl).
3. Base58-encode the 64-byte signature.

Wallet (SigningScheme.WALLET)
-----------------------------
1. Merge the metadata into the payload at top level and JSON-stringify it
   compactly, without key sorting. Non-ASCII text is written as-is;
   Decimal values are written as quoted strings; non-finite floats and
   strings that do not encode as UTF-8 raise RequestValidationError.
2. Sign with EIP-191 personal-message signing (eth_account).
3. Return the 65-byte r‖s‖v signature as ``0x``-prefixed hex.

Both are deterministic for identical inputs: Ed25519 by construction,
eth_account through RFC 6979 nonces.

Usage
-----
    signer  = make_signer(secret, SigningScheme.ED25519)
    message = signer.build_message(OperationKind.CANCEL_ORDER, payload, ts, 5000)
    sig     = signer.sign(message)
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any, Protocol, Union, runtime_checkable

import nacl.exceptions
import nacl.signing
from eth_account import Account
from eth_account.messages import encode_defunct

from .canonical import build_message
from .exceptions import KeyFormatError, RequestValidationError
from .keys import (
    b58decode,
    b58encode,
    decode_ed25519_secret,
    decode_wallet_secret,
    ed25519_public_key,
    ED25519_KEYPAIR_LEN,
    ED25519_SEED_LEN,
)
from .types import OperationKind, SigningScheme

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Capability interface
# ---------------------------------------------------------------------------

@runtime_checkable
class Signer(Protocol):
    """What the envelope assembler needs from a signing scheme."""

    scheme: SigningScheme

    @property
    def public_identity(self) -> str: ...

    def build_message(
        self,
        operation: OperationKind,
        payload: Mapping[str, Any],
        timestamp: int,
        expiry_window: int,
    ) -> str: ...

    def sign(self, message: str) -> str: ...

    def verify(self, message: str, signature: str) -> bool: ...


# ---------------------------------------------------------------------------
# Ed25519 agent keypair
# ---------------------------------------------------------------------------

class Ed25519Signer:
    """
    Signs canonical messages with a Solana-style Ed25519 agent key.

    Parameters
    ----------
    key_material : 32-byte seed or 64-byte seed+public key
    """

    scheme = SigningScheme.ED25519

    def __init__(self, key_material: bytes) -> None:
        key_material = bytes(key_material)
        if len(key_material) not in (ED25519_SEED_LEN, ED25519_KEYPAIR_LEN):
            raise KeyFormatError(
                f"invalid Ed25519 key length: {len(key_material)} bytes "
                f"(expected {ED25519_SEED_LEN} or {ED25519_KEYPAIR_LEN})"
            )
        self._signing_key = nacl.signing.SigningKey(key_material[:ED25519_SEED_LEN])
        self._public_key  = ed25519_public_key(key_material)

    @classmethod
    def from_secret(cls, secret: str) -> "Ed25519Signer":
        """Build from a Base58 agent secret."""
        return cls(decode_ed25519_secret(secret))

    def __repr__(self) -> str:
        return f"Ed25519Signer(public_identity={self.public_identity!r})"

    @property
    def public_key(self) -> bytes:
        return self._public_key

    @property
    def public_identity(self) -> str:
        """Base58 public key."""
        return b58encode(self._public_key)

    def build_message(
        self,
        operation: OperationKind,
        payload: Mapping[str, Any],
        timestamp: int,
        expiry_window: int,
    ) -> str:
        return build_message(operation, payload, timestamp, expiry_window)

    def sign(self, message: str) -> str:
        signed = self._signing_key.sign(message.encode("utf-8"))
        return b58encode(signed.signature)

    def verify(self, message: str, signature: str) -> bool:
        """Check a Base58 signature against this signer's own key."""
        try:
            self._signing_key.verify_key.verify(message.encode("utf-8"), b58decode(signature))
        except (nacl.exceptions.BadSignatureError, KeyFormatError, ValueError):
            return False
        return True


# ---------------------------------------------------------------------------
# EVM wallet
# ---------------------------------------------------------------------------

class WalletSigner:
    """
    Signs wrapped messages with an EVM wallet key (EIP-191 personal_sign).

    Parameters
    ----------
    secret : hex private key (with or without ``0x``)
    """

    scheme = SigningScheme.WALLET

    def __init__(self, secret: str) -> None:
        key = decode_wallet_secret(secret)
        self._account = Account.from_key(key)

    @classmethod
    def from_secret(cls, secret: str) -> "WalletSigner":
        return cls(secret)

    def __repr__(self) -> str:
        return f"WalletSigner(public_identity={self.public_identity!r})"

    @property
    def public_identity(self) -> str:
        """Checksummed wallet address."""
        return self._account.address

    def build_message(
        self,
        operation: OperationKind,
        payload: Mapping[str, Any],
        timestamp: int,
        expiry_window: int,
    ) -> str:
        wrapped = {
            **payload,
            "type":          OperationKind(operation).value,
            "timestamp":     int(timestamp),
            "expiry_window": int(expiry_window),
        }
        try:
            message = json.dumps(
                wrapped, separators=(",", ":"), ensure_ascii=False, allow_nan=False, default=_json_default,
            )
            message.encode("utf-8")
        except ValueError as exc:
            raise RequestValidationError(f"cannot encode wallet message: {exc}") from exc
        return message

    def sign(self, message: str) -> str:
        signed = self._account.sign_message(encode_defunct(text=message))
        return "0x" + bytes(signed.signature).hex()

    def verify(self, message: str, signature: str) -> bool:
        """Check that ``signature`` recovers to this wallet's address."""
        try:
            recovered = Account.recover_message(encode_defunct(text=message), signature=signature)
        except ValueError:
            return False
        return recovered.lower() == self._account.address.lower()


def _json_default(value: Any) -> Any:
    # Decimals and non-str enums reach here when payloads are built from models
    if isinstance(value, Enum):
        return value.value
    return str(value)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

def make_signer(secret: str, scheme: Union[SigningScheme, str] = SigningScheme.ED25519) -> Signer:
    """
    Decode ``secret`` for ``scheme`` and return the matching signer.

    Raises KeyFormatError for malformed secrets, before any network I/O.
    """
    scheme = SigningScheme(scheme)
    if scheme is SigningScheme.ED25519:
        signer: Signer = Ed25519Signer.from_secret(secret)
    else:
        signer = WalletSigner.from_secret(secret)
    logger.debug("Created %s signer for %s", scheme.value, signer.public_identity)
    return signer
