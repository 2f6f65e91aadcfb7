"""
envelope.py – Signed request body assembly.

A signed Pacifica request body looks like:

    {
      "account":       "<trading account>",
      "signature":     "<scheme-encoded signature>",
      "timestamp":     1716200000000,
      "expiry_window": 5000,
      "agent_wallet":  "<agent signer identity>",
      ...payload fields...
    }

The signature covers type, timestamp, expiry_window and the payload only.
account and agent_wallet are attached after signing.  The timestamp is read
once per signing attempt and the same value goes into both the signed
message and the body; the venue rejects the request if they disagree.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from typing import Any, Callable

from .exceptions import RequestValidationError
from .signing import Signer
from .types import OperationKind

logger = logging.getLogger(__name__)

# Validity window attached to every signed request, in milliseconds
EXPIRY_WINDOW_MS = 5000

# Callable with no args returning the current Unix time in milliseconds
TimestampProvider = Callable[[], int]

_ENVELOPE_KEYS = ("account", "signature", "timestamp", "expiry_window", "agent_wallet")


def _reject_reserved_keys(payload: Mapping[str, Any]) -> None:
    clashes = sorted(k for k in payload if k in _ENVELOPE_KEYS)
    if clashes:
        raise RequestValidationError(f"payload keys shadow envelope fields: {', '.join(clashes)}")


def now_ms() -> int:
    """Default timestamp provider: current Unix time in ms."""
    return int(time.time() * 1000)


def assemble_envelope(
    payload: Mapping[str, Any],
    *,
    account: str,
    agent_wallet: str,
    signature: str,
    timestamp: int,
    expiry_window: int = EXPIRY_WINDOW_MS,
) -> dict[str, Any]:
    """
    Merge identity, signature and validity metadata with the payload.

    Raises RequestValidationError if a payload key would shadow an
    envelope field.
    """
    _reject_reserved_keys(payload)
    return {
        "account":       account,
        "signature":     signature,
        "timestamp":     timestamp,
        "expiry_window": expiry_window,
        "agent_wallet":  agent_wallet,
        **payload,
    }


def sign_payload(
    signer: Signer,
    payload: Mapping[str, Any],
    operation: OperationKind,
    *,
    account: str,
    agent_wallet: str,
    clock: TimestampProvider = now_ms,
) -> dict[str, Any]:
    """
    Sign ``payload`` for ``operation`` and return the wire body.

    Parameters
    ----------
    signer       : signing scheme bound to the agent key
    payload      : request fields (not mutated)
    operation    : fixed OperationKind of the calling endpoint
    account      : trading account address
    agent_wallet : agent signer identity
    clock        : timestamp source, read exactly once
    """
    operation = OperationKind(operation)
    _reject_reserved_keys(payload)
    timestamp = int(clock())
    message   = signer.build_message(operation, payload, timestamp, EXPIRY_WINDOW_MS)
    signature = signer.sign(message)
    logger.debug("Signed %s at %d with %s", operation.value, timestamp, signer.scheme.value)
    return assemble_envelope(
        payload,
        account=account,
        agent_wallet=agent_wallet,
        signature=signature,
        timestamp=timestamp,
    )
