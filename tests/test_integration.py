"""
tests/test_integration.py – Integration smoke tests against Pacifica testnet.

These tests make real network calls and require valid credentials.
They are skipped automatically when the credentials below are not set.

HOW TO RUN
----------
    export PACIFICA_PRIVATE_KEY="<base58 agent key>"
    export PACIFICA_ACCOUNT="<account address>"
    export PACIFICA_NETWORK="testnet"
    export PACIFICA_INTEGRATION_SYMBOL="BTC"      # optional

    pytest tests/test_integration.py -v

WHAT THESE TESTS VERIFY
-----------------------
  1. Prices       – public endpoint lists the test symbol
  2. Orderbook    – both sides of the book are populated
  3. Account      – the signed-in account can be read
  4. Sign + submit – a far-from-market ALO order is accepted
  5. Cancel       – the same order can be cancelled by id

Each test is independent: failures in earlier tests don't cascade.
"""

from __future__ import annotations

import os
import uuid
from decimal import Decimal
from typing import Iterator

import pytest

from pacifica_sdk import PacificaClient, Side, TimeInForce

# ---------------------------------------------------------------------------
# Credentials: read from environment, skip entire module if absent
# ---------------------------------------------------------------------------

_CREDS_PRESENT = bool(os.environ.get("PACIFICA_PRIVATE_KEY") and os.environ.get("PACIFICA_ACCOUNT"))

SYMBOL = os.environ.get("PACIFICA_INTEGRATION_SYMBOL", "BTC")

pytestmark = pytest.mark.skipif(not _CREDS_PRESENT, reason="Pacifica credentials not set in environment")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="module")
def client() -> Iterator[PacificaClient]:
    """Single PacificaClient shared across all integration tests."""
    with PacificaClient.from_env() as c:
        yield c


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

def test_prices(client: PacificaClient) -> None:
    price = client.rest.get_symbol_price(SYMBOL)
    assert Decimal(price.mark) > 0


def test_orderbook(client: PacificaClient) -> None:
    book = client.rest.get_orderbook(SYMBOL)
    assert book.bids, "Orderbook has no bids"
    assert book.asks, "Orderbook has no asks"
    assert Decimal(book.asks[0].price) > Decimal(book.bids[0].price)


def test_account_info(client: PacificaClient) -> None:
    info = client.rest.get_account_info()
    assert Decimal(info.account_equity) >= 0


def test_submit_and_cancel(client: PacificaClient) -> None:
    """Rest an ALO bid at half the mark price, then cancel it."""
    markets = {m.symbol: m for m in client.rest.get_market_info()}
    market  = markets[SYMBOL]
    mark    = Decimal(client.rest.get_symbol_price(SYMBOL).mark)

    tick   = Decimal(market.tick_size)
    price  = (mark / 2 // tick) * tick
    lot    = Decimal(market.lot_size)
    amount = ((Decimal(market.min_order_size) / price) // lot + 1) * lot

    client_order_id = str(uuid.uuid4())
    result = client.rest.create_limit_order(
        SYMBOL, Side.BID,
        price=str(price),
        amount=str(amount),
        tif=TimeInForce.ALO,
        client_order_id=client_order_id,
    )
    assert result.order_id, "create_limit_order returned no order_id"

    open_ids = [o.order_id for o in client.rest.get_open_orders()]
    assert result.order_id in open_ids

    cancel = client.rest.cancel_order(SYMBOL, order_id=result.order_id)
    assert cancel.success
