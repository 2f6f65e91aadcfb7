"""
client.py – Unified PacificaClient façade.

Single entry point that decodes the agent key once and wires a shared
PacificaAuth into both the sync and the async REST clients.

Usage
-----
    from pacifica_sdk import PacificaClient, PacificaNetwork, Side

    with PacificaClient(secret="...", account="...", network=PacificaNetwork.TESTNET) as client:
        print(client.rest.get_account_info())
        client.rest.create_market_order("BTC", Side.BID, amount="0.01")

    async with PacificaClient.from_env() as client:
        positions = await client.aio.get_positions()
"""

from __future__ import annotations

import os
from typing import Mapping, Optional, Union

from .auth import PacificaAuth
from .exceptions import RequestValidationError
from .rest import AsyncPacificaRestClient, PacificaRestClient
from .types import PacificaNetwork, SigningScheme

# Environment variables read by PacificaClient.from_env()
ENV_PRIVATE_KEY    = "PACIFICA_PRIVATE_KEY"
ENV_ACCOUNT        = "PACIFICA_ACCOUNT"
ENV_AGENT_WALLET   = "PACIFICA_AGENT_WALLET"
ENV_NETWORK        = "PACIFICA_NETWORK"
ENV_SIGNING_SCHEME = "PACIFICA_SIGNING_SCHEME"
ENV_TIMEOUT        = "PACIFICA_TIMEOUT"
ENV_BASE_URL       = "PACIFICA_BASE_URL"


class PacificaClient:
    """
    Unified façade for the Pacifica SDK.

    The secret is decoded here, so a malformed key raises KeyFormatError
    from the constructor before any request is attempted.

    Parameters
    ----------
    secret       : agent private key (Base58 for ED25519, hex for WALLET)
    account      : trading account address
    agent_wallet : agent signer identity; defaults to the signer's own
    network      : PacificaNetwork.MAINNET / PacificaNetwork.TESTNET
    scheme       : SigningScheme.ED25519 / SigningScheme.WALLET
    timeout      : HTTP timeout in seconds for every request
    base_url     : optional REST base URL override
    """

    def __init__(
        self,
        secret: str,
        account: str,
        agent_wallet: Optional[str] = None,
        network: Union[PacificaNetwork, str] = PacificaNetwork.MAINNET,
        scheme: Union[SigningScheme, str] = SigningScheme.ED25519,
        *,
        timeout: float = 10.0,
        base_url: Optional[str] = None,
    ) -> None:
        self._auth = PacificaAuth.from_secret(
            secret,
            account,
            agent_wallet=agent_wallet,
            network=network,
            scheme=scheme,
            rest_url=base_url,
        )
        self.rest = PacificaRestClient(auth=self._auth, timeout=timeout)
        self.aio  = AsyncPacificaRestClient(auth=self._auth, timeout=timeout)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PacificaClient":
        """
        Build a client from PACIFICA_* environment variables.

        PACIFICA_PRIVATE_KEY and PACIFICA_ACCOUNT are required; the network
        defaults to mainnet, the scheme to ed25519 and the timeout to 10s.
        """
        env = os.environ if environ is None else environ

        missing = [name for name in (ENV_PRIVATE_KEY, ENV_ACCOUNT) if not env.get(name)]
        if missing:
            raise RequestValidationError(f"missing environment variables: {', '.join(missing)}")

        try:
            timeout = float(env.get(ENV_TIMEOUT) or 10.0)
        except ValueError as exc:
            raise RequestValidationError(f"{ENV_TIMEOUT} must be a number") from exc

        return cls(
            secret=env[ENV_PRIVATE_KEY],
            account=env[ENV_ACCOUNT],
            agent_wallet=env.get(ENV_AGENT_WALLET) or None,
            network=(env.get(ENV_NETWORK) or PacificaNetwork.MAINNET.value).lower(),
            scheme=(env.get(ENV_SIGNING_SCHEME) or SigningScheme.ED25519.value).lower(),
            timeout=timeout,
            base_url=env.get(ENV_BASE_URL) or None,
        )

    @property
    def auth(self) -> PacificaAuth:
        return self._auth

    @property
    def account(self) -> str:
        return self._auth.account

    @property
    def network(self) -> PacificaNetwork:
        return PacificaNetwork(self._auth.network)

    def __repr__(self) -> str:
        return (
            f"PacificaClient(account={self._auth.account!r}, "
            f"network={self.network.value!r}, scheme={self._auth.scheme.value!r})"
        )

    # ------------------------------------------------------------------
    # Context managers
    # ------------------------------------------------------------------

    def __enter__(self) -> "PacificaClient":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    async def __aenter__(self) -> "PacificaClient":
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()

    def close(self) -> None:
        """Close the sync HTTP session."""
        self.rest.close()

    async def aclose(self) -> None:
        """Close both the async and the sync HTTP sessions."""
        await self.aio.close()
        self.rest.close()
