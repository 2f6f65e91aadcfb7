"""
auth.py – Credentials and environment for Pacifica requests.

Pacifica authenticates every mutating request by signature; there is no
session or cookie.  Three identity inputs are involved:

  account       the trading account (main wallet address)
  agent_wallet  the delegated signer identity authorised for the account
  secret        the agent's private key – the only confidential input

PacificaAuth binds them to a signer and a network so the REST clients can
sign payloads without seeing the key material.

Usage
-----
    from pacifica_sdk import PacificaAuth, PacificaNetwork, SigningScheme

    auth = PacificaAuth.from_secret(
        secret="<base58 agent key>",
        account="<account address>",
        network=PacificaNetwork.TESTNET,
    )
    body = auth.sign_request({"symbol": "BTC", "order_id": 42}, OperationKind.CANCEL_ORDER)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

from .envelope import TimestampProvider, now_ms, sign_payload
from .exceptions import RequestValidationError
from .signing import Signer, make_signer
from .types import OperationKind, PacificaNetwork, SigningScheme

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Environment base URLs
# ---------------------------------------------------------------------------

_ENDPOINTS: dict[str, dict[str, str]] = {
    "mainnet": {
        "rest": "https://api.pacifica.fi",
    },
    "testnet": {
        "rest": "https://test-api.pacifica.fi",
    },
}


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

@dataclass
class PacificaAuth:
    """
    Identity + signer bound to one Pacifica network.

    Parameters
    ----------
    signer       : Signer chosen for this client (Ed25519 or wallet)
    account      : trading account address, sent as ``account``
    agent_wallet : agent signer identity, sent as ``agent_wallet``;
                   defaults to the signer's public identity
    network      : PacificaNetwork.MAINNET / PacificaNetwork.TESTNET,
                   or the equivalent strings
    rest_url     : optional base URL override (proxies, local mocks)
    clock        : millisecond timestamp source used when signing

    Thread safety
    -------------
    Nothing here is mutated after construction, so one instance can sign
    concurrent requests.
    """

    signer:       Signer
    account:      str
    agent_wallet: Optional[str]                  = None
    network:      Union[PacificaNetwork, str]    = PacificaNetwork.MAINNET
    rest_url:     Optional[str]                  = None
    clock:        TimestampProvider              = field(default=now_ms, repr=False)

    def __post_init__(self) -> None:
        if not self.account or not self.account.strip():
            raise RequestValidationError("account address is required")
        self.network = PacificaNetwork(self.network)
        if not self.agent_wallet:
            self.agent_wallet = self.signer.public_identity
        logger.info(
            "Pacifica auth ready: network=%s scheme=%s signer=%s",
            self.network.value, self.signer.scheme.value, self.signer.public_identity,
        )

    @classmethod
    def from_secret(
        cls,
        secret: str,
        account: str,
        agent_wallet: Optional[str] = None,
        network: Union[PacificaNetwork, str] = PacificaNetwork.MAINNET,
        scheme: Union[SigningScheme, str] = SigningScheme.ED25519,
        **kwargs: Any,
    ) -> "PacificaAuth":
        """Decode ``secret`` for ``scheme`` and build the auth object. Raises KeyFormatError."""
        return cls(
            signer=make_signer(secret, scheme),
            account=account,
            agent_wallet=agent_wallet,
            network=network,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # URL properties
    # ------------------------------------------------------------------

    @property
    def base_url(self) -> str:
        if self.rest_url:
            return self.rest_url.rstrip("/")
        return _ENDPOINTS[PacificaNetwork(self.network).value]["rest"]

    # ------------------------------------------------------------------
    # Signing
    # ------------------------------------------------------------------

    @property
    def scheme(self) -> SigningScheme:
        return self.signer.scheme

    @property
    def public_identity(self) -> str:
        return self.signer.public_identity

    def sign_request(self, payload: Mapping[str, Any], operation: OperationKind) -> dict[str, Any]:
        """Return the signed wire body for ``payload`` under ``operation``."""
        assert self.agent_wallet is not None
        return sign_payload(
            self.signer,
            payload,
            operation,
            account=self.account,
            agent_wallet=self.agent_wallet,
            clock=self.clock,
        )
