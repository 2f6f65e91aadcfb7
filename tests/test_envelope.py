"""
tests/test_envelope.py – Unit tests for signed request body assembly.

Verifies that:
  1. The body carries account / agent_wallet / signature / timestamp /
     expiry_window plus every payload field.
  2. The clock is read once and the same timestamp is signed and sent.
  3. expiry_window is 5000 for every operation kind.
  4. Payload keys that would shadow envelope fields are rejected.
  5. PacificaAuth binds identity + network and signs through sign_payload.
"""

from __future__ import annotations

import itertools

import pytest

from pacifica_sdk.auth import PacificaAuth
from pacifica_sdk.envelope import EXPIRY_WINDOW_MS, assemble_envelope, sign_payload
from pacifica_sdk.exceptions import RequestValidationError
from pacifica_sdk.keys import b58encode
from pacifica_sdk.signing import Ed25519Signer, WalletSigner
from pacifica_sdk.types import OperationKind, PacificaNetwork, SigningScheme

TEST_SECRET      = b58encode(bytes(range(1, 33)))
TEST_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
ACCOUNT          = "AccountAddress1111111111111111111111111111"


class _CountingClock:
    """Returns increasing timestamps and counts how often it was read."""

    def __init__(self, start: int = 1716200000000) -> None:
        self._values = itertools.count(start)
        self.calls   = 0

    def __call__(self) -> int:
        self.calls += 1
        return next(self._values)


class TestAssembleEnvelope:
    def test_fields(self) -> None:
        body = assemble_envelope(
            {"symbol": "BTC"},
            account=ACCOUNT,
            agent_wallet="agent",
            signature="sig",
            timestamp=1,
        )
        assert body == {
            "account":       ACCOUNT,
            "signature":     "sig",
            "timestamp":     1,
            "expiry_window": EXPIRY_WINDOW_MS,
            "agent_wallet":  "agent",
            "symbol":        "BTC",
        }

    @pytest.mark.parametrize("key", ["account", "signature", "timestamp", "expiry_window", "agent_wallet"])
    def test_reserved_keys_rejected(self, key: str) -> None:
        with pytest.raises(RequestValidationError, match=key):
            assemble_envelope({key: "x"}, account=ACCOUNT, agent_wallet="a", signature="s", timestamp=1)


class TestSignPayload:
    def test_timestamp_signed_and_sent_match(self) -> None:
        signer = Ed25519Signer.from_secret(TEST_SECRET)
        clock  = _CountingClock()
        payload = {"symbol": "BTC", "order_id": 42}
        body = sign_payload(signer, payload, OperationKind.CANCEL_ORDER,
                            account=ACCOUNT, agent_wallet=signer.public_identity, clock=clock)

        assert clock.calls == 1
        message = signer.build_message(OperationKind.CANCEL_ORDER, payload, body["timestamp"], body["expiry_window"])
        assert signer.verify(message, body["signature"])

    def test_payload_not_mutated(self) -> None:
        signer  = Ed25519Signer.from_secret(TEST_SECRET)
        payload = {"symbol": "BTC"}
        sign_payload(signer, payload, OperationKind.CANCEL_ALL_ORDERS, account=ACCOUNT, agent_wallet="a")
        assert payload == {"symbol": "BTC"}

    @pytest.mark.parametrize("operation", list(OperationKind))
    def test_expiry_window_is_5000_for_every_kind(self, operation: OperationKind) -> None:
        signer = Ed25519Signer.from_secret(TEST_SECRET)
        body = sign_payload(signer, {"symbol": "BTC"}, operation, account=ACCOUNT, agent_wallet="a")
        assert body["expiry_window"] == 5000

    def test_reserved_key_rejected_before_clock_read(self) -> None:
        signer = Ed25519Signer.from_secret(TEST_SECRET)
        clock  = _CountingClock()
        with pytest.raises(RequestValidationError):
            sign_payload(signer, {"timestamp": 5}, OperationKind.WITHDRAW,
                         account=ACCOUNT, agent_wallet="a", clock=clock)
        assert clock.calls == 0

    def test_wallet_scheme(self) -> None:
        signer = WalletSigner(TEST_PRIVATE_KEY)
        body = sign_payload(signer, {"amount": "10"}, OperationKind.WITHDRAW,
                            account=ACCOUNT, agent_wallet=signer.public_identity, clock=lambda: 99)
        assert body["timestamp"] == 99
        assert body["signature"].startswith("0x")
        message = signer.build_message(OperationKind.WITHDRAW, {"amount": "10"}, 99, 5000)
        assert signer.verify(message, body["signature"])

    def test_successive_requests_get_fresh_timestamps(self) -> None:
        signer = Ed25519Signer.from_secret(TEST_SECRET)
        clock  = _CountingClock()
        first  = sign_payload(signer, {"symbol": "BTC"}, OperationKind.CANCEL_ORDER, account=ACCOUNT, agent_wallet="a", clock=clock)
        second = sign_payload(signer, {"symbol": "BTC"}, OperationKind.CANCEL_ORDER, account=ACCOUNT, agent_wallet="a", clock=clock)
        assert second["timestamp"] > first["timestamp"]
        assert second["signature"] != first["signature"]


class TestPacificaAuth:
    def test_agent_wallet_defaults_to_signer_identity(self) -> None:
        auth = PacificaAuth.from_secret(TEST_SECRET, ACCOUNT)
        assert auth.agent_wallet == auth.public_identity

    def test_explicit_agent_wallet_kept(self) -> None:
        auth = PacificaAuth.from_secret(TEST_SECRET, ACCOUNT, agent_wallet="AgentX")
        body = auth.sign_request({"symbol": "BTC"}, OperationKind.CANCEL_ALL_ORDERS)
        assert body["agent_wallet"] == "AgentX"
        assert body["account"] == ACCOUNT

    def test_base_urls(self) -> None:
        assert PacificaAuth.from_secret(TEST_SECRET, ACCOUNT).base_url == "https://api.pacifica.fi"
        testnet = PacificaAuth.from_secret(TEST_SECRET, ACCOUNT, network="testnet")
        assert testnet.network is PacificaNetwork.TESTNET
        assert testnet.base_url == "https://test-api.pacifica.fi"

    def test_rest_url_override_strips_slash(self) -> None:
        auth = PacificaAuth.from_secret(TEST_SECRET, ACCOUNT, rest_url="http://localhost:8080/")
        assert auth.base_url == "http://localhost:8080"

    def test_account_required(self) -> None:
        with pytest.raises(RequestValidationError):
            PacificaAuth.from_secret(TEST_SECRET, "  ")

    def test_wallet_scheme(self) -> None:
        auth = PacificaAuth.from_secret(TEST_PRIVATE_KEY, ACCOUNT, scheme=SigningScheme.WALLET)
        assert auth.scheme is SigningScheme.WALLET
        assert auth.agent_wallet == "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

    def test_injected_clock_used(self) -> None:
        auth = PacificaAuth.from_secret(TEST_SECRET, ACCOUNT, clock=lambda: 1234)
        assert auth.sign_request({"symbol": "BTC"}, OperationKind.CANCEL_ALL_ORDERS)["timestamp"] == 1234
