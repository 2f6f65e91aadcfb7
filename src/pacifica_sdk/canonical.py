"""
canonical.py – Deterministic message encoding for Ed25519 request signing.

Pacifica verifies a signature against its own re-encoding of the request,
so the bytes we sign must match that encoding exactly.  The message is

    {"data": <payload>, "expiry_window": <ms>, "timestamp": <ms>, "type": <kind>}

with every mapping's keys sorted ascending at every depth, arrays kept in
their original order, and no insignificant whitespace.

Two payloads with the same keys and values encode to the same string no
matter what order the keys were inserted in.

Supported value variants
------------------------
    None               → null
    bool               → true / false
    int                → plain decimal
    float              → integral values without ".0", others in plain
                         decimal (exponent forms are expanded)
    Decimal            → plain decimal, written scale preserved
    str                → JSON string, non-ASCII left unescaped
    Enum               → its value
    Mapping            → object, keys must be str
    list / tuple       → array

Anything else raises RequestValidationError rather than falling back to
str() or repr().
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from decimal import Decimal
from enum import Enum
from typing import Any, Union

from .exceptions import RequestValidationError
from .types import OperationKind


def _encode_number(value: Union[int, float, Decimal]) -> str:
    if isinstance(value, int):
        return str(value)

    if isinstance(value, float):
        if not math.isfinite(value):
            raise RequestValidationError(f"cannot encode non-finite number {value!r}")
        if value.is_integer():
            return str(int(value))
        text = repr(value)
        if "e" in text or "E" in text:
            text = format(Decimal(text), "f")
        return text

    if not value.is_finite():
        raise RequestValidationError(f"cannot encode non-finite number {value!r}")
    return format(value, "f")


def _encode_string(value: str) -> str:
    try:
        value.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise RequestValidationError(f"string is not encodable as UTF-8: {value!r}") from exc
    return json.dumps(value, ensure_ascii=False)


def _encode_key(key: Any) -> str:
    if isinstance(key, Enum):
        key = key.value
    if not isinstance(key, str):
        raise RequestValidationError(f"mapping keys must be strings, got {type(key).__name__}")
    return key


def _encode(value: Any) -> str:
    # Enum first: str/int-mixin enums would otherwise match the scalar branches.
    if isinstance(value, Enum):
        return _encode(value.value)
    if value is None:
        return "null"
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, Decimal)):
        return _encode_number(value)
    if isinstance(value, str):
        return _encode_string(value)
    if isinstance(value, Mapping):
        items = sorted(((_encode_key(k), v) for k, v in value.items()), key=lambda kv: kv[0])
        return "{" + ",".join(f"{_encode_string(k)}:{_encode(v)}" for k, v in items) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_encode(item) for item in value) + "]"
    raise RequestValidationError(f"cannot encode value of type {type(value).__name__}")


def canonical_json(value: Any) -> str:
    """Encode a JSON-like tree with recursively sorted keys and compact separators."""
    return _encode(value)


def build_message(
    operation: OperationKind,
    payload: Mapping[str, Any],
    timestamp: int,
    expiry_window: int,
) -> str:
    """
    Build the exact string that is signed for an Ed25519 request.

    Parameters
    ----------
    operation     : why the payload is being signed (``type`` field)
    payload       : request fields, nested arbitrarily (``data`` field)
    timestamp     : signing time in Unix milliseconds
    expiry_window : validity window in milliseconds
    """
    return canonical_json({
        "type":          OperationKind(operation).value,
        "timestamp":     int(timestamp),
        "expiry_window": int(expiry_window),
        "data":          payload,
    })
