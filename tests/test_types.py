"""
tests/test_types.py – Unit tests for Pydantic model validation.

Verifies:
  1. Intent models reject malformed prices / sizes / symbols.
  2. Enum coercion from raw strings.
  3. Response envelopes and aliased market-data models deserialise.
  4. Derived properties (closing side, is_open, TP/SL tallies).
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from pacifica_sdk.types import (
    BatchAction,
    CancelIntent,
    Candle,
    OrderIntent,
    OrderResult,
    PacificaResponse,
    PaginatedResponse,
    Position,
    PositionSide,
    Side,
    StopOrderIntent,
    TimeInForce,
    TpSlLeg,
    TpSlOutcome,
    MultiTpSlResult,
    TpSlTarget,
)


# ---------------------------------------------------------------------------
# Intents
# ---------------------------------------------------------------------------

class TestOrderIntent:
    def test_valid_limit(self) -> None:
        intent = OrderIntent(symbol=" BTC ", side="bid", amount="0.01", price="50000", tif="IOC")
        assert intent.symbol == "BTC"
        assert intent.side is Side.BID
        assert intent.tif is TimeInForce.IOC

    def test_symbol_case_preserved(self) -> None:
        assert OrderIntent(symbol="kBONK", side="ask", amount="1").symbol == "kBONK"

    @pytest.mark.parametrize("amount", ["0", "-1", "", "abc", "NaN", "sNaN", "Infinity", "-Infinity"])
    def test_bad_amount(self, amount: str) -> None:
        with pytest.raises(ValidationError):
            OrderIntent(symbol="BTC", side="bid", amount=amount)

    def test_amount_normalised(self) -> None:
        assert OrderIntent(symbol="BTC", side="bid", amount=" 1e3 ").amount == "1000"
        assert OrderIntent(symbol="BTC", side="bid", amount="0.010").amount == "0.010"

    def test_bad_side(self) -> None:
        with pytest.raises(ValidationError):
            OrderIntent(symbol="BTC", side="buy", amount="1")

    def test_empty_symbol(self) -> None:
        with pytest.raises(ValidationError):
            OrderIntent(symbol="  ", side="bid", amount="1")

    def test_nested_tp_leg(self) -> None:
        intent = OrderIntent(symbol="BTC", side="bid", amount="1", take_profit={"stop_price": "60000"})
        assert intent.take_profit == TpSlLeg(stop_price="60000")


class TestStopOrderIntent:
    def test_valid(self) -> None:
        intent = StopOrderIntent(symbol="BTC", side="ask", amount="1", stop_price="45000", limit_price="44900")
        assert intent.limit_price == "44900"

    def test_bad_stop_price(self) -> None:
        with pytest.raises(ValidationError, match="stop_price"):
            StopOrderIntent(symbol="BTC", side="ask", amount="1", stop_price="0")

    def test_non_finite_stop_price(self) -> None:
        with pytest.raises(ValidationError, match="stop_price"):
            StopOrderIntent(symbol="BTC", side="ask", amount="1", stop_price="Infinity")

    def test_nan_leg_price(self) -> None:
        with pytest.raises(ValidationError):
            TpSlLeg(stop_price="sNaN")


class TestCancelIntent:
    def test_order_id(self) -> None:
        assert CancelIntent(symbol="BTC", order_id=5).order_id == 5

    def test_client_order_id(self) -> None:
        assert CancelIntent(symbol="BTC", client_order_id="abc").client_order_id == "abc"

    def test_requires_identifier(self) -> None:
        with pytest.raises(ValidationError):
            CancelIntent(symbol="BTC")


class TestBatchAction:
    def test_market_to_intent_defaults_slippage(self) -> None:
        intent = BatchAction(type="create_market", symbol="BTC", side="bid", amount="1", price="99").to_intent()
        assert isinstance(intent, OrderIntent)
        assert intent.price is None
        assert intent.slippage_percent == "0.5"

    def test_limit_to_intent(self) -> None:
        intent = BatchAction(type="create_limit", symbol="BTC", side="ask", amount="1", price="100").to_intent()
        assert intent.price == "100"
        assert intent.tif is TimeInForce.GTC

    def test_cancel_to_intent(self) -> None:
        intent = BatchAction(type="cancel", symbol="BTC", order_id=3).to_intent()
        assert isinstance(intent, CancelIntent)

    def test_create_requires_side_and_amount(self) -> None:
        with pytest.raises(ValidationError, match="side, amount"):
            BatchAction(type="create_market", symbol="BTC")


class TestTpSlTarget:
    def test_valid(self) -> None:
        assert TpSlTarget(price="1", amount="2").limit_price is None

    def test_rejects_zero_amount(self) -> None:
        with pytest.raises(ValidationError):
            TpSlTarget(price="1", amount="0")

    def test_rejects_nan_price(self) -> None:
        with pytest.raises(ValidationError):
            TpSlTarget(price="NaN", amount="1")


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class TestEnvelopes:
    def test_generic_data(self) -> None:
        resp = PacificaResponse[OrderResult].model_validate({"success": True, "data": {"order_id": 9}})
        assert resp.data is not None
        assert resp.data.order_id == 9

    def test_failure_envelope(self) -> None:
        resp = PacificaResponse.model_validate({"success": False, "error": "nope", "code": 4})
        assert resp.success is False
        assert resp.code == 4

    def test_paginated_cursor_as_string(self) -> None:
        page = PaginatedResponse[list[OrderResult]].model_validate(
            {"success": True, "data": [], "next_cursor": 42, "has_more": True}
        )
        assert page.next_cursor == "42"


class TestModels:
    def test_candle_aliases(self) -> None:
        candle = Candle.model_validate({
            "t": 1, "T": 2, "s": "BTC", "i": "1m",
            "o": "1", "c": "2", "h": "3", "l": "0.5", "v": "10", "n": 4,
        })
        assert candle.close_time == 2
        assert candle.low == "0.5"

    def test_position_closing_side(self) -> None:
        assert PositionSide.LONG.closing_side is Side.ASK
        assert PositionSide.SHORT.closing_side is Side.BID

    def test_position_is_open(self) -> None:
        pos = Position(symbol="BTC", side="long", amount="0.000", entry_price="1")
        assert pos.is_open is False
        assert Position(symbol="BTC", side="short", amount="1", entry_price="1").is_open is True

    def test_multi_tpsl_tallies(self) -> None:
        result = MultiTpSlResult(
            symbol="BTC",
            position_side="long",
            order_side="ask",
            orders=[
                TpSlOutcome(label="TP1", success=True, stop_order_id=1),
                TpSlOutcome(label="SL", success=False, error="rejected"),
            ],
        )
        assert (result.total, result.successful, result.failed) == (2, 1, 1)

    def test_position_side_from_order_side(self) -> None:
        assert Position(symbol="BTC", side="bid", amount="1", entry_price="1").side is PositionSide.LONG
        assert Position(symbol="BTC", side="ASK", amount="1", entry_price="1").side is PositionSide.SHORT
