"""
tests/test_async_rest.py – Unit tests for AsyncPacificaRestClient.

Runs offline against a fake aiohttp session.  The async client shares its
request builders with the sync one, so these tests focus on the transport
path and on the composite operations that await more than one call.
"""

from __future__ import annotations

import asyncio
import itertools
import json
from typing import Any

import aiohttp
import pytest

from pacifica_sdk.auth import PacificaAuth
from pacifica_sdk.exceptions import DomainNotFoundError, TransportError, VenueError
from pacifica_sdk.keys import b58encode
from pacifica_sdk.rest import AsyncPacificaRestClient
from pacifica_sdk.types import OperationKind, Side

TEST_SECRET = b58encode(bytes(range(1, 33)))
ACCOUNT     = "AccountAddress1111111111111111111111111111"

_ENVELOPE_KEYS = {"account", "signature", "timestamp", "expiry_window", "agent_wallet"}


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class _FakeAioResponse:
    def __init__(self, status: int, text: str) -> None:
        self.status = status
        self._text  = text

    async def text(self) -> str:
        return self._text

    async def __aenter__(self) -> "_FakeAioResponse":
        return self

    async def __aexit__(self, *_: Any) -> None:
        return None


class _FakeAioSession:
    def __init__(self, *responses: Any) -> None:
        self._responses = list(responses)
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    def request(self, method: str, url: str, **kwargs: Any) -> Any:
        self.calls.append({"method": method, "url": url, **kwargs})
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def close(self) -> None:
        self.closed = True


def _ok(data: Any = None) -> _FakeAioResponse:
    return _FakeAioResponse(200, json.dumps({"success": True, "data": data}))


def _client(*responses: Any, timeout: float = 10.0) -> tuple[AsyncPacificaRestClient, _FakeAioSession]:
    session = _FakeAioSession(*responses)
    auth    = PacificaAuth.from_secret(TEST_SECRET, ACCOUNT, clock=itertools.count(1716200000000).__next__)
    return AsyncPacificaRestClient(auth, timeout=timeout, session=session), session


def _verify(client: AsyncPacificaRestClient, body: dict[str, Any], operation: OperationKind) -> bool:
    payload = {k: v for k, v in body.items() if k not in _ENVELOPE_KEYS}
    signer  = client.auth.signer
    message = signer.build_message(operation, payload, body["timestamp"], body["expiry_window"])
    return signer.verify(message, body["signature"])


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestAsyncQueries:
    @pytest.mark.asyncio
    async def test_get_prices(self) -> None:
        client, session = _client(_ok([{"symbol": "BTC", "mark": "50000"}]))
        prices = await client.get_prices()
        assert prices[0].mark == "50000"
        assert session.calls[0]["url"] == "https://api.pacifica.fi/api/v1/info/prices"

    @pytest.mark.asyncio
    async def test_timeout_is_client_timeout(self) -> None:
        client, session = _client(_ok([]), timeout=3.0)
        await client.get_market_info()
        timeout = session.calls[0]["timeout"]
        assert isinstance(timeout, aiohttp.ClientTimeout)
        assert timeout.total == 3.0

    @pytest.mark.asyncio
    async def test_positions_query_uses_account(self) -> None:
        client, session = _client(_ok([]))
        assert await client.get_positions() == []
        assert session.calls[0]["params"] == {"account": ACCOUNT}


class TestAsyncOrders:
    @pytest.mark.asyncio
    async def test_limit_order_signed(self) -> None:
        client, session = _client(_ok({"order_id": 11}))
        result = await client.create_limit_order("BTC", Side.BID, price="50000", amount="0.01")
        body = session.calls[0]["json"]
        assert result.order_id == 11
        assert body["tif"] == "GTC"
        assert _verify(client, body, OperationKind.CREATE_ORDER)

    @pytest.mark.asyncio
    async def test_batch(self) -> None:
        client, session = _client(_ok({"results": [{"success": True}, {"success": True}]}))
        await client.batch_orders([
            {"type": "create_market", "symbol": "BTC", "side": "bid", "amount": "0.1"},
            {"type": "cancel", "symbol": "BTC", "client_order_id": "c-1"},
        ])
        actions = session.calls[0]["json"]["actions"]
        assert [a["type"] for a in actions] == ["Create", "Cancel"]
        assert _verify(client, actions[0]["data"], OperationKind.CREATE_MARKET_ORDER)
        assert _verify(client, actions[1]["data"], OperationKind.CANCEL_ORDER)

    @pytest.mark.asyncio
    async def test_close_short_position(self) -> None:
        position = {"symbol": "ETH", "side": "short", "amount": "3", "entry_price": "3000"}
        client, session = _client(_ok([position]), _ok({"order_id": 5}))
        await client.close_position("eth")
        body = session.calls[1]["json"]
        assert body["side"] == "bid"
        assert body["reduce_only"] is True
        assert body["amount"] == "3"

    @pytest.mark.asyncio
    async def test_close_without_position(self) -> None:
        client, session = _client(_ok([]))
        with pytest.raises(DomainNotFoundError):
            await client.close_position("ETH")
        assert len(session.calls) == 1

    @pytest.mark.asyncio
    async def test_multi_tpsl_continues_after_failure(self) -> None:
        client, _ = _client(
            _FakeAioResponse(500, "boom"),
            _ok({"stop_order_id": 2}),
        )
        result = await client.create_multi_tpsl(
            "BTC", "long",
            take_profits=[{"price": "60000", "amount": "0.1"}],
            stop_loss={"price": "45000", "amount": "0.1"},
        )
        assert [o.success for o in result.orders] == [False, True]
        assert "500" in (result.orders[0].error or "")


class TestAsyncErrors:
    @pytest.mark.asyncio
    async def test_venue_error(self) -> None:
        client, _ = _client(_FakeAioResponse(200, json.dumps({"success": False, "error": "Order not found", "code": 5})))
        with pytest.raises(VenueError, match="Order not found"):
            await client.cancel_order("BTC", order_id=1)

    @pytest.mark.asyncio
    async def test_http_error(self) -> None:
        client, _ = _client(_FakeAioResponse(429, "rate limited"))
        with pytest.raises(TransportError) as exc_info:
            await client.get_prices()
        assert exc_info.value.status_code == 429

    @pytest.mark.asyncio
    async def test_body_not_an_envelope(self) -> None:
        client, _ = _client(_FakeAioResponse(200, json.dumps({"order_id": 7})))
        with pytest.raises(TransportError) as exc_info:
            await client.create_market_order("BTC", Side.BID, amount="1")
        assert exc_info.value.status_code == 200
        assert exc_info.value.body == '{"order_id": 7}'

    @pytest.mark.asyncio
    async def test_network_error(self) -> None:
        client, _ = _client(aiohttp.ClientConnectionError("refused"))
        with pytest.raises(TransportError) as exc_info:
            await client.get_prices()
        assert exc_info.value.status_code == 0

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        client, _ = _client(asyncio.TimeoutError())
        with pytest.raises(TransportError, match="TimeoutError"):
            await client.get_prices()

    @pytest.mark.asyncio
    async def test_context_manager_closes_session(self) -> None:
        client, session = _client()
        async with client:
            pass
        assert session.closed is True
