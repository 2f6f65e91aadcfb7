"""
examples/quickstart.py – End-to-end demo of the Pacifica SDK.

Walks through the signed-request pipeline:
  1. Decode the agent key and bind it to an account
  2. Fetch live market data (prices, orderbook)
  3. Rest a far-from-market limit order (Ed25519-signed)
  4. Batch a second order and a cancel in one call
  5. Cancel everything left on the symbol
  6. Repeat the reads with the async client

HOW TO RUN
----------
    export PACIFICA_PRIVATE_KEY="<base58 agent key>"
    export PACIFICA_ACCOUNT="<account address>"
    export PACIFICA_NETWORK="testnet"
    python examples/quickstart.py

    Set PACIFICA_NETWORK=mainnet to go live.
"""

from __future__ import annotations

import asyncio
import logging
import os
from decimal import Decimal

from pacifica_sdk import (
    BatchAction,
    BatchActionType,
    PacificaClient,
    PacificaError,
    Side,
    TimeInForce,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s – %(message)s",
)
logger = logging.getLogger("quickstart")

SYMBOL = os.environ.get("PACIFICA_SYMBOL", "BTC")


# ---------------------------------------------------------------------------
# Part 1 – sync REST: market data + order management
# ---------------------------------------------------------------------------

def rest_demo(client: PacificaClient) -> None:
    logger.info("=== REST demo ===")
    rest = client.rest

    mark = Decimal(rest.get_symbol_price(SYMBOL).mark)
    book = rest.get_orderbook(SYMBOL)
    if book.bids and book.asks:
        logger.info("%s mark=%s  best bid=%s  best ask=%s", SYMBOL, mark, book.bids[0].price, book.asks[0].price)

    market = next(m for m in rest.get_market_info() if m.symbol == SYMBOL)
    tick   = Decimal(market.tick_size)
    lot    = Decimal(market.lot_size)
    price  = (mark / 2 // tick) * tick          # far below market – will rest, not fill
    amount = ((Decimal(market.min_order_size) / price) // lot + 1) * lot

    order = rest.create_limit_order(SYMBOL, Side.BID, price=str(price), amount=str(amount), tif=TimeInForce.ALO)
    logger.info("Resting bid placed: order_id=%s", order.order_id)

    batch = rest.batch_orders([
        BatchAction(type=BatchActionType.CREATE_LIMIT, symbol=SYMBOL, side=Side.BID,
                    price=str(price - tick), amount=str(amount), tif=TimeInForce.ALO),
        BatchAction(type=BatchActionType.CANCEL, symbol=SYMBOL, order_id=order.order_id),
    ])
    for i, outcome in enumerate(batch.results):
        logger.info("Batch action %d: success=%s order_id=%s error=%s", i, outcome.success, outcome.order_id, outcome.error)

    rest.cancel_all_orders(symbols=[SYMBOL])
    logger.info("Open orders after cancel-all: %d", len(rest.get_open_orders()))


# ---------------------------------------------------------------------------
# Part 2 – async REST
# ---------------------------------------------------------------------------

async def async_demo(client: PacificaClient) -> None:
    logger.info("=== async demo ===")
    info, positions = await asyncio.gather(client.aio.get_account_info(), client.aio.get_positions())
    logger.info("Equity=%s  available=%s", info.account_equity, info.available_to_spend)
    for position in positions:
        logger.info("  %s %s %s @ %s", position.symbol, position.side.value, position.amount, position.entry_price)


async def main() -> None:
    async with PacificaClient.from_env() as client:
        logger.info("Client ready: %r", client)
        try:
            rest_demo(client)
            await async_demo(client)
        except PacificaError as exc:
            logger.error("Pacifica call failed: %s", exc)
            raise


if __name__ == "__main__":
    asyncio.run(main())
