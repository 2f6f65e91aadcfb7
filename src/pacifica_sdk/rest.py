"""
rest.py – REST clients (sync and async) for Pacifica.

Both clients expose the same methods and share the request builders in
this module, so a call produces identical wire bodies whichever client
sends it.

  Market data      public GET, no signing
  Account queries  GET with the ``account`` query parameter
  Mutations        POST, body signed through PacificaAuth before sending
  Batch            POST of individually signed sub-actions, outer body unsigned

Every call is a single HTTP attempt with an explicit timeout.  Errors
surface immediately:

  non-2xx / network failure / unreadable body  → TransportError
  2xx envelope with success=false              → VenueError

Usage – sync
------------
    from pacifica_sdk import PacificaAuth, PacificaRestClient, Side

    auth   = PacificaAuth.from_secret(secret, account="...")
    client = PacificaRestClient(auth)

    book  = client.get_orderbook("BTC")
    order = client.create_limit_order("BTC", Side.BID, price="50000", amount="0.01")

Usage – async
-------------
    async with AsyncPacificaRestClient(auth) as client:
        book  = await client.get_orderbook("BTC")
        order = await client.create_market_order("BTC", Side.ASK, amount="0.01")
"""

from __future__ import annotations

import asyncio
import json as _json
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Callable, Optional, Union

import requests
from pydantic import ValidationError

from .auth import PacificaAuth
from .exceptions import (
    DomainNotFoundError,
    PacificaError,
    RequestValidationError,
    TransportError,
    VenueError,
)
from .types import (
    AccountFundingEntry,
    AccountInfo,
    BalanceHistoryEntry,
    BatchAction,
    BatchActionType,
    BatchResult,
    CancelIntent,
    Candle,
    EquityHistoryEntry,
    ErrorCode,
    FundingHistory,
    MarginMode,
    MarketInfo,
    MultiTpSlResult,
    OpenOrder,
    OperationKind,
    OrderHistoryEntry,
    OrderIntent,
    OrderResult,
    Orderbook,
    PacificaResponse,
    PaginatedResponse,
    Position,
    PositionSide,
    PriceInfo,
    RecentTrade,
    Side,
    StopOrderIntent,
    StopOrderResult,
    Subaccount,
    SubaccountResult,
    TimeInForce,
    TpSlLeg,
    TpSlOutcome,
    TpSlTarget,
    TradeHistoryEntry,
    WithdrawalResult,
)

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT_S = 10.0
_DEFAULT_SLIPPAGE  = "0.5"

MAX_BATCH_ACTIONS = 10

TpSlInput     = Union[TpSlLeg, Mapping[str, Any]]
TargetInput   = Union[TpSlTarget, Mapping[str, Any]]
BatchInput    = Union[BatchAction, Mapping[str, Any]]


# ---------------------------------------------------------------------------
# Request description (shared by sync and async clients)
# ---------------------------------------------------------------------------

@dataclass
class _Request:
    """
    One HTTP call, fully described before it is sent.

    operation : when set, ``body`` is signed under this kind right before
                sending; when None the body goes out verbatim
    parse     : turns the decoded JSON envelope into the return value
    """
    method:    str
    path:      str
    parse:     Callable[[Any], Any]
    params:    Optional[dict[str, str]]     = None
    body:      Optional[dict[str, Any]]     = None
    operation: Optional[OperationKind]      = None


def _clean_params(params: Mapping[str, Any]) -> dict[str, str]:
    """Drop None / empty values and stringify the rest for the query string."""
    cleaned: dict[str, str] = {}
    for key, value in params.items():
        if value is None or value == "":
            continue
        if isinstance(value, Enum):
            value = value.value
        if isinstance(value, bool):
            cleaned[key] = "true" if value else "false"
        else:
            cleaned[key] = str(value)
    return cleaned


def _error_code(code: Any) -> Optional[int]:
    if code is None:
        return None
    try:
        return ErrorCode(int(code))
    except (TypeError, ValueError):
        return code


def _raise_for_venue_error(raw: Any, path: str) -> None:
    if isinstance(raw, Mapping) and raw.get("success") is False:
        raise VenueError(raw.get("error"), _error_code(raw.get("code")), path=path)


def _parse_envelope(req: _Request, status: int, text: str, raw: Any) -> Any:
    """Check the venue outcome, then parse. A 2xx body that is not an envelope is a transport failure."""
    _raise_for_venue_error(raw, req.path)
    try:
        return req.parse(raw)
    except ValidationError as exc:
        raise TransportError(status, text, method=req.method, path=req.path) from exc


# ---------------------------------------------------------------------------
# Response parsers
# ---------------------------------------------------------------------------

def _ack(raw: Any) -> PacificaResponse:
    return PacificaResponse.model_validate(raw)


def _list_of(model: type) -> Callable[[Any], list]:
    envelope = PacificaResponse[list[model]]  # type: ignore[valid-type]
    return lambda raw: envelope.model_validate(raw).data or []


def _page_of(model: type) -> Callable[[Any], PaginatedResponse]:
    envelope = PaginatedResponse[list[model]]  # type: ignore[valid-type]
    return envelope.model_validate


def _result_of(model: type) -> Callable[[Any], Any]:
    """For mutation results: a missing ``data`` yields an empty result model."""
    envelope = PacificaResponse[model]  # type: ignore[valid-type]
    return lambda raw: envelope.model_validate(raw).data or model()


def _required(model: type, what: str) -> Callable[[Any], Any]:
    """For lookups: a missing ``data`` means the object does not exist."""
    envelope = PacificaResponse[model]  # type: ignore[valid-type]

    def parse(raw: Any) -> Any:
        data = envelope.model_validate(raw).data
        if data is None:
            raise DomainNotFoundError(f"{what} not found")
        return data

    return parse


# ---------------------------------------------------------------------------
# Payload helpers
# ---------------------------------------------------------------------------

def _coerce_leg(leg: Optional[TpSlInput]) -> Optional[TpSlLeg]:
    if leg is None or isinstance(leg, TpSlLeg):
        return leg
    return TpSlLeg.model_validate(leg)


def _order_payload(intent: OrderIntent, *, market: bool) -> dict[str, Any]:
    """Serialise an OrderIntent to the body of a market or limit create."""
    payload: dict[str, Any] = {"symbol": intent.symbol, "side": intent.side.value, "amount": intent.amount}
    if market:
        payload["slippage_percent"] = intent.slippage_percent
    else:
        if intent.price is None:
            raise RequestValidationError("limit orders require a price")
        payload["price"] = intent.price
        payload["tif"]   = intent.tif.value
    payload["reduce_only"] = intent.reduce_only

    if intent.client_order_id:
        payload["client_order_id"] = intent.client_order_id
    if intent.take_profit is not None:
        payload["take_profit"] = intent.take_profit.to_payload()
    if intent.stop_loss is not None:
        payload["stop_loss"] = intent.stop_loss.to_payload()
    return payload


def _stop_order_payload(intent: StopOrderIntent) -> dict[str, Any]:
    """Stop parameters are nested under ``stop_order``; stop orders carry no tif."""
    stop_order: dict[str, Any] = {"stop_price": intent.stop_price, "amount": intent.amount}
    if intent.limit_price is not None:
        stop_order["limit_price"] = intent.limit_price
    else:
        stop_order["slippage_percent"] = intent.slippage_percent
    if intent.client_order_id:
        stop_order["client_order_id"] = intent.client_order_id

    return {
        "symbol":      intent.symbol,
        "side":        intent.side.value,
        "reduce_only": intent.reduce_only,
        "stop_order":  stop_order,
    }


def _cancel_payload(intent: CancelIntent) -> dict[str, Any]:
    payload: dict[str, Any] = {"symbol": intent.symbol}
    if intent.order_id is not None:
        payload["order_id"] = intent.order_id
    if intent.client_order_id:
        payload["client_order_id"] = intent.client_order_id
    return payload


def _cancel_all_payload(symbols: Optional[Sequence[str]], exclude_reduce_only: bool) -> dict[str, Any]:
    """No symbols → all_symbols=true and no list; otherwise the explicit list."""
    symbols = [s.strip() for s in (symbols or []) if s and s.strip()]
    payload: dict[str, Any] = {
        "all_symbols":         not symbols,
        "exclude_reduce_only": exclude_reduce_only,
    }
    if symbols:
        payload["symbols"] = symbols
    return payload


def _positive_decimal(value: Any, field: str) -> str:
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        number = None
    if number is None or not number.is_finite() or number <= 0:
        raise RequestValidationError(f"{field} must be a positive decimal, got {value!r}")
    return format(number, "f")


def _history_params(
    account: str,
    *,
    symbol: Optional[str] = None,
    start_time: Optional[int] = None,
    end_time: Optional[int] = None,
    limit: Optional[int] = 100,
    cursor: Optional[Union[int, str]] = None,
) -> dict[str, str]:
    return _clean_params({
        "account":    account,
        "symbol":     symbol,
        "start_time": start_time,
        "end_time":   end_time,
        "limit":      limit,
        "cursor":     cursor,
    })


# ---------------------------------------------------------------------------
# Request builders – market data
# ---------------------------------------------------------------------------

def _market_info_request() -> _Request:
    return _Request("GET", "/api/v1/info", _list_of(MarketInfo))


def _prices_request() -> _Request:
    return _Request("GET", "/api/v1/info/prices", _list_of(PriceInfo))


def _orderbook_request(symbol: str, agg_level: int) -> _Request:
    params = _clean_params({"symbol": symbol, "agg_level": agg_level})
    return _Request("GET", "/api/v1/book", _required(Orderbook, f"Orderbook for {symbol}"), params=params)


def _candles_request(symbol: str, interval: str, start_time: int, end_time: Optional[int]) -> _Request:
    params = _clean_params({
        "symbol":     symbol,
        "interval":   interval,
        "start_time": start_time,
        "end_time":   end_time or None,
    })
    return _Request("GET", "/api/v1/kline", _list_of(Candle), params=params)


def _recent_trades_request(symbol: str) -> _Request:
    return _Request("GET", "/api/v1/trades", _list_of(RecentTrade), params=_clean_params({"symbol": symbol}))


def _funding_history_request(symbol: str, limit: int, cursor: Optional[str]) -> _Request:
    params = _clean_params({"symbol": symbol, "limit": limit, "cursor": cursor})
    return _Request("GET", "/api/v1/funding_rate/history", _page_of(FundingHistory), params=params)


def _find_price(prices: list[PriceInfo], symbol: str) -> PriceInfo:
    wanted = symbol.strip().upper()
    for price in prices:
        if price.symbol.upper() == wanted:
            return price
    raise DomainNotFoundError(f"Symbol {symbol} not found")


# ---------------------------------------------------------------------------
# Request builders – account queries
# ---------------------------------------------------------------------------

def _account_request(path: str, parse: Callable[[Any], Any], account: str) -> _Request:
    return _Request("GET", path, parse, params=_clean_params({"account": account}))


def _positions_filter(include_zero: bool) -> Callable[[Any], list[Position]]:
    parse = _list_of(Position)
    if include_zero:
        return parse
    return lambda raw: [p for p in parse(raw) if p.is_open]


def _find_open_position(positions: list[Position], symbol: str) -> Position:
    wanted = symbol.strip().upper()
    for position in positions:
        if position.symbol.upper() == wanted and position.is_open:
            return position
    raise DomainNotFoundError(f"No open position found for {symbol}")


def _close_position_intent(position: Position, slippage_percent: str) -> OrderIntent:
    """Reduce-only market order on the opposite side, for the recorded amount."""
    return OrderIntent(
        symbol=position.symbol,
        side=position.side.closing_side,
        amount=position.amount.lstrip("-"),
        slippage_percent=slippage_percent,
        reduce_only=True,
    )


# ---------------------------------------------------------------------------
# Request builders – signed mutations
# ---------------------------------------------------------------------------

def _create_market_request(intent: OrderIntent) -> _Request:
    return _Request(
        "POST", "/api/v1/orders/create_market", _result_of(OrderResult),
        body=_order_payload(intent, market=True),
        operation=OperationKind.CREATE_MARKET_ORDER,
    )


def _create_limit_request(intent: OrderIntent) -> _Request:
    return _Request(
        "POST", "/api/v1/orders/create", _result_of(OrderResult),
        body=_order_payload(intent, market=False),
        operation=OperationKind.CREATE_ORDER,
    )


def _create_stop_request(intent: StopOrderIntent) -> _Request:
    return _Request(
        "POST", "/api/v1/orders/stop/create", _result_of(StopOrderResult),
        body=_stop_order_payload(intent),
        operation=OperationKind.CREATE_STOP_ORDER,
    )


def _position_tpsl_request(symbol: str, take_profit: Optional[TpSlInput], stop_loss: Optional[TpSlInput]) -> _Request:
    tp = _coerce_leg(take_profit)
    sl = _coerce_leg(stop_loss)
    if tp is None and sl is None:
        raise RequestValidationError("set_position_tpsl requires take_profit or stop_loss")
    payload: dict[str, Any] = {"symbol": symbol}
    if tp is not None:
        payload["take_profit"] = tp.to_payload()
    if sl is not None:
        payload["stop_loss"] = sl.to_payload()
    return _Request("POST", "/api/v1/orders/tp_sl", _ack, body=payload, operation=OperationKind.SET_TP_SL)


def _cancel_request(intent: CancelIntent) -> _Request:
    return _Request(
        "POST", "/api/v1/orders/cancel", _ack,
        body=_cancel_payload(intent),
        operation=OperationKind.CANCEL_ORDER,
    )


def _cancel_stop_request(symbol: str, stop_order_id: Optional[int], client_order_id: Optional[str]) -> _Request:
    if stop_order_id is None and not client_order_id:
        raise RequestValidationError("cancel_stop_order requires stop_order_id or client_order_id")
    payload: dict[str, Any] = {"symbol": symbol}
    if stop_order_id is not None:
        payload["stop_order_id"] = stop_order_id
    if client_order_id:
        payload["client_order_id"] = client_order_id
    return _Request("POST", "/api/v1/orders/stop/cancel", _ack, body=payload, operation=OperationKind.CANCEL_STOP_ORDER)


def _cancel_all_request(symbols: Optional[Sequence[str]], exclude_reduce_only: bool) -> _Request:
    return _Request(
        "POST", "/api/v1/orders/cancel_all", _ack,
        body=_cancel_all_payload(symbols, exclude_reduce_only),
        operation=OperationKind.CANCEL_ALL_ORDERS,
    )


def _leverage_request(symbol: str, leverage: int) -> _Request:
    if isinstance(leverage, bool) or not isinstance(leverage, int) or leverage <= 0:
        raise RequestValidationError(f"leverage must be a positive integer, got {leverage!r}")
    return _Request(
        "POST", "/api/v1/account/leverage", _ack,
        body={"symbol": symbol, "leverage": leverage},
        operation=OperationKind.UPDATE_LEVERAGE,
    )


def _margin_mode_request(symbol: str, margin_mode: Union[MarginMode, str]) -> _Request:
    try:
        mode = MarginMode(margin_mode)
    except ValueError as exc:
        raise RequestValidationError(f"unknown margin mode {margin_mode!r}") from exc
    return _Request(
        "POST", "/api/v1/account/margin_mode", _ack,
        body={"symbol": symbol, "margin_mode": mode.value},
        operation=OperationKind.UPDATE_MARGIN_MODE,
    )


def _withdraw_request(amount: str) -> _Request:
    return _Request(
        "POST", "/api/v1/account/withdraw", _result_of(WithdrawalResult),
        body={"amount": _positive_decimal(amount, "amount")},
        operation=OperationKind.WITHDRAW,
    )


def _create_subaccount_request(name: str) -> _Request:
    if not name or not name.strip():
        raise RequestValidationError("subaccount name is required")
    return _Request(
        "POST", "/api/v1/subaccounts/create", _result_of(SubaccountResult),
        body={"name": name.strip()},
        operation=OperationKind.CREATE_SUBACCOUNT,
    )


def _transfer_request(from_account: str, to_account: str, amount: str) -> _Request:
    if not from_account or not to_account:
        raise RequestValidationError("transfer requires from_account and to_account")
    return _Request(
        "POST", "/api/v1/subaccounts/transfer", _ack,
        body={
            "from_account": from_account,
            "to_account":   to_account,
            "amount":       _positive_decimal(amount, "amount"),
        },
        operation=OperationKind.TRANSFER,
    )


def _batch_request(auth: PacificaAuth, actions: Sequence[BatchInput]) -> _Request:
    """
    Sign each action on its own and wrap them for /orders/batch.

    Each sub-action gets its own timestamp and signature; the outer body is
    sent unsigned.
    """
    actions = list(actions)
    if not actions:
        raise RequestValidationError("batch requires at least one action")
    if len(actions) > MAX_BATCH_ACTIONS:
        raise RequestValidationError(f"batch accepts at most {MAX_BATCH_ACTIONS} actions, got {len(actions)}")

    parsed = [a if isinstance(a, BatchAction) else BatchAction.model_validate(a) for a in actions]
    entries: list[dict[str, Any]] = []
    for action in parsed:
        intent = action.to_intent()
        if action.type is BatchActionType.CANCEL:
            data = auth.sign_request(_cancel_payload(intent), OperationKind.CANCEL_ORDER)
            entries.append({"type": "Cancel", "data": data})
        elif action.type is BatchActionType.CREATE_LIMIT:
            data = auth.sign_request(_order_payload(intent, market=False), OperationKind.CREATE_ORDER)
            entries.append({"type": "Create", "data": data})
        else:
            data = auth.sign_request(_order_payload(intent, market=True), OperationKind.CREATE_MARKET_ORDER)
            entries.append({"type": "Create", "data": data})

    return _Request("POST", "/api/v1/orders/batch", _result_of(BatchResult), body={"actions": entries})


def _multi_tpsl_plan(
    symbol: str,
    position_side: Union[PositionSide, str],
    take_profits: Sequence[TargetInput],
    stop_loss: Optional[TargetInput],
    slippage_percent: str,
) -> tuple[Side, list[tuple[str, StopOrderIntent]]]:
    """Expand TP/SL targets into labelled reduce-only stop orders on the closing side."""
    side    = PositionSide(position_side).closing_side
    targets = [(f"TP{i}", t) for i, t in enumerate(take_profits, start=1)]
    if stop_loss is not None:
        targets.append(("SL", stop_loss))
    if not targets:
        raise RequestValidationError("create_multi_tpsl requires at least one take profit or stop loss")

    plan: list[tuple[str, StopOrderIntent]] = []
    for label, raw in targets:
        target = raw if isinstance(raw, TpSlTarget) else TpSlTarget.model_validate(raw)
        plan.append((label, StopOrderIntent(
            symbol=symbol,
            side=side,
            amount=target.amount,
            stop_price=target.price,
            limit_price=target.limit_price,
            slippage_percent=slippage_percent,
            reduce_only=True,
        )))
    return side, plan


def _record_leg(label: str, result: Optional[StopOrderResult], error: Optional[Exception]) -> TpSlOutcome:
    if error is not None:
        logger.warning("%s leg failed: %s", label, error)
        return TpSlOutcome(label=label, success=False, error=str(error))
    assert result is not None
    return TpSlOutcome(label=label, success=True, stop_order_id=result.stop_order_id)


# ---------------------------------------------------------------------------
# Synchronous client
# ---------------------------------------------------------------------------

class PacificaRestClient:
    """
    Synchronous REST client for Pacifica.

    Parameters
    ----------
    auth    : PacificaAuth (identity, signer, network)
    timeout : HTTP timeout in seconds, applied to every call
    session : optional requests.Session; one is created (and owned) if omitted
    """

    def __init__(
        self,
        auth: PacificaAuth,
        timeout: float = _DEFAULT_TIMEOUT_S,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._auth         = auth
        self._timeout      = timeout
        self._owns_session = session is None
        self._session      = session if session is not None else requests.Session()

    def __enter__(self) -> "PacificaRestClient":
        return self

    def __exit__(self, *_: Any) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    @property
    def auth(self) -> PacificaAuth:
        return self._auth

    # ------------------------------------------------------------------
    # Internal request helpers
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, str]] = None,
        json: Optional[dict] = None,
    ) -> tuple[int, str, Any]:
        """Send one HTTP request. Returns status, body text and decoded JSON. No retries."""
        url = self._auth.base_url + path
        logger.debug("%s %s  params=%s  body=%s", method.upper(), url, params, json)
        try:
            resp = self._session.request(method, url, params=params, json=json, timeout=self._timeout)
        except requests.RequestException as exc:
            raise TransportError(0, str(exc), method=method, path=path) from exc

        if not 200 <= resp.status_code < 300:
            raise TransportError(resp.status_code, resp.text, method=method, path=path)
        try:
            return resp.status_code, resp.text, resp.json()
        except ValueError as exc:
            raise TransportError(resp.status_code, resp.text, method=method, path=path) from exc

    def _execute(self, req: _Request) -> Any:
        body = req.body
        if req.operation is not None:
            body = self._auth.sign_request(body or {}, req.operation)
        status, text, raw = self._request(req.method, req.path, params=req.params, json=body)
        return _parse_envelope(req, status, text, raw)

    # ------------------------------------------------------------------
    # Market data (public)
    # ------------------------------------------------------------------

    def get_market_info(self) -> list[MarketInfo]:
        """Trading parameters for every market."""
        return self._execute(_market_info_request())

    def get_prices(self) -> list[PriceInfo]:
        return self._execute(_prices_request())

    def get_symbol_price(self, symbol: str) -> PriceInfo:
        """Price info for one symbol (case-insensitive). Raises DomainNotFoundError."""
        return _find_price(self.get_prices(), symbol)

    def get_orderbook(self, symbol: str, agg_level: int = 1) -> Orderbook:
        return self._execute(_orderbook_request(symbol, agg_level))

    def get_candles(
        self,
        symbol: str,
        interval: str,
        start_time: int,
        end_time: Optional[int] = None,
    ) -> list[Candle]:
        return self._execute(_candles_request(symbol, interval, start_time, end_time))

    def get_recent_trades(self, symbol: str) -> list[RecentTrade]:
        return self._execute(_recent_trades_request(symbol))

    def get_funding_history(
        self,
        symbol: str,
        limit: int = 100,
        cursor: Optional[str] = None,
    ) -> PaginatedResponse:
        return self._execute(_funding_history_request(symbol, limit, cursor))

    # ------------------------------------------------------------------
    # Account queries
    # ------------------------------------------------------------------

    def get_account_info(self) -> AccountInfo:
        return self._execute(_account_request("/api/v1/account", _required(AccountInfo, "Account"), self._auth.account))

    def get_positions(self, include_zero: bool = False) -> list[Position]:
        """Open positions; zero-amount entries are dropped unless include_zero."""
        return self._execute(_account_request("/api/v1/positions", _positions_filter(include_zero), self._auth.account))

    def get_trade_history(
        self,
        symbol: Optional[str] = None,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
        limit: int = 100,
        cursor: Optional[Union[int, str]] = None,
    ) -> PaginatedResponse:
        params = _history_params(self._auth.account, symbol=symbol, start_time=start_time,
                                 end_time=end_time, limit=limit, cursor=cursor)
        return self._execute(_Request("GET", "/api/v1/trades/history", _page_of(TradeHistoryEntry), params=params))

    def get_open_orders(self) -> list[OpenOrder]:
        return self._execute(_account_request("/api/v1/orders", _list_of(OpenOrder), self._auth.account))

    def get_order_history(
        self,
        symbol: Optional[str] = None,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
        limit: int = 100,
        cursor: Optional[Union[int, str]] = None,
    ) -> PaginatedResponse:
        params = _history_params(self._auth.account, symbol=symbol, start_time=start_time,
                                 end_time=end_time, limit=limit, cursor=cursor)
        return self._execute(_Request("GET", "/api/v1/orders/history", _page_of(OrderHistoryEntry), params=params))

    def get_order(self, order_id: int) -> OrderHistoryEntry:
        """Fetch one order by exchange id. Raises DomainNotFoundError."""
        parse = _required(OrderHistoryEntry, f"Order {order_id}")
        return self._execute(_account_request(f"/api/v1/orders/{int(order_id)}", parse, self._auth.account))

    def get_equity_history(
        self,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
        limit: int = 100,
    ) -> PaginatedResponse:
        params = _history_params(self._auth.account, start_time=start_time, end_time=end_time, limit=limit)
        return self._execute(_Request("GET", "/api/v1/account/equity_history", _page_of(EquityHistoryEntry), params=params))

    def get_balance_history(
        self,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
        limit: int = 100,
    ) -> PaginatedResponse:
        params = _history_params(self._auth.account, start_time=start_time, end_time=end_time, limit=limit)
        return self._execute(_Request("GET", "/api/v1/account/balance_history", _page_of(BalanceHistoryEntry), params=params))

    def get_account_funding(
        self,
        symbol: Optional[str] = None,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
        limit: int = 100,
    ) -> PaginatedResponse:
        params = _history_params(self._auth.account, symbol=symbol, start_time=start_time,
                                 end_time=end_time, limit=limit)
        return self._execute(_Request("GET", "/api/v1/account/funding", _page_of(AccountFundingEntry), params=params))

    def list_subaccounts(self) -> list[Subaccount]:
        return self._execute(_account_request("/api/v1/subaccounts", _list_of(Subaccount), self._auth.account))

    # ------------------------------------------------------------------
    # Orders (signed)
    # ------------------------------------------------------------------

    def create_market_order(
        self,
        symbol: str,
        side: Union[Side, str],
        amount: str,
        slippage_percent: str = _DEFAULT_SLIPPAGE,
        reduce_only: bool = False,
        client_order_id: Optional[str] = None,
        take_profit: Optional[TpSlInput] = None,
        stop_loss: Optional[TpSlInput] = None,
    ) -> OrderResult:
        intent = OrderIntent(
            symbol=symbol, side=side, amount=amount, slippage_percent=slippage_percent,
            reduce_only=reduce_only, client_order_id=client_order_id,
            take_profit=_coerce_leg(take_profit), stop_loss=_coerce_leg(stop_loss),
        )
        return self._execute(_create_market_request(intent))

    def create_limit_order(
        self,
        symbol: str,
        side: Union[Side, str],
        price: str,
        amount: str,
        tif: Union[TimeInForce, str] = TimeInForce.GTC,
        reduce_only: bool = False,
        client_order_id: Optional[str] = None,
        take_profit: Optional[TpSlInput] = None,
        stop_loss: Optional[TpSlInput] = None,
    ) -> OrderResult:
        intent = OrderIntent(
            symbol=symbol, side=side, price=price, amount=amount, tif=tif,
            reduce_only=reduce_only, client_order_id=client_order_id,
            take_profit=_coerce_leg(take_profit), stop_loss=_coerce_leg(stop_loss),
        )
        return self._execute(_create_limit_request(intent))

    def create_stop_market_order(
        self,
        symbol: str,
        side: Union[Side, str],
        amount: str,
        stop_price: str,
        slippage_percent: str = _DEFAULT_SLIPPAGE,
        reduce_only: bool = False,
        client_order_id: Optional[str] = None,
    ) -> StopOrderResult:
        intent = StopOrderIntent(
            symbol=symbol, side=side, amount=amount, stop_price=stop_price,
            slippage_percent=slippage_percent, reduce_only=reduce_only,
            client_order_id=client_order_id,
        )
        return self._execute(_create_stop_request(intent))

    def create_stop_limit_order(
        self,
        symbol: str,
        side: Union[Side, str],
        amount: str,
        stop_price: str,
        limit_price: str,
        reduce_only: bool = False,
        client_order_id: Optional[str] = None,
    ) -> StopOrderResult:
        intent = StopOrderIntent(
            symbol=symbol, side=side, amount=amount, stop_price=stop_price,
            limit_price=limit_price, reduce_only=reduce_only,
            client_order_id=client_order_id,
        )
        return self._execute(_create_stop_request(intent))

    def set_position_tpsl(
        self,
        symbol: str,
        take_profit: Optional[TpSlInput] = None,
        stop_loss: Optional[TpSlInput] = None,
    ) -> PacificaResponse:
        """Attach take-profit and/or stop-loss triggers to an existing position."""
        return self._execute(_position_tpsl_request(symbol, take_profit, stop_loss))

    def create_multi_tpsl(
        self,
        symbol: str,
        position_side: Union[PositionSide, str],
        take_profits: Sequence[TargetInput] = (),
        stop_loss: Optional[TargetInput] = None,
        slippage_percent: str = _DEFAULT_SLIPPAGE,
    ) -> MultiTpSlResult:
        """
        Place one reduce-only stop order per take-profit target plus one for
        the stop loss.  Legs are submitted one by one; a failed leg is
        recorded in the result and the remaining legs are still attempted.
        """
        side, plan = _multi_tpsl_plan(symbol, position_side, take_profits, stop_loss, slippage_percent)
        outcomes = []
        for label, intent in plan:
            try:
                outcomes.append(_record_leg(label, self._execute(_create_stop_request(intent)), None))
            except PacificaError as exc:
                outcomes.append(_record_leg(label, None, exc))
        return MultiTpSlResult(symbol=symbol, position_side=position_side, order_side=side, orders=outcomes)

    def cancel_order(
        self,
        symbol: str,
        order_id: Optional[int] = None,
        client_order_id: Optional[str] = None,
    ) -> PacificaResponse:
        intent = CancelIntent(symbol=symbol, order_id=order_id, client_order_id=client_order_id)
        return self._execute(_cancel_request(intent))

    def cancel_stop_order(
        self,
        symbol: str,
        stop_order_id: Optional[int] = None,
        client_order_id: Optional[str] = None,
    ) -> PacificaResponse:
        return self._execute(_cancel_stop_request(symbol, stop_order_id, client_order_id))

    def cancel_all_orders(
        self,
        symbols: Optional[Sequence[str]] = None,
        exclude_reduce_only: bool = False,
    ) -> PacificaResponse:
        """Cancel every open order, or only those on ``symbols`` when given."""
        return self._execute(_cancel_all_request(symbols, exclude_reduce_only))

    def batch_orders(self, actions: Sequence[BatchInput]) -> BatchResult:
        """Submit up to 10 limit/market/cancel actions, each signed separately, in one call."""
        return self._execute(_batch_request(self._auth, actions))

    # ------------------------------------------------------------------
    # Positions & account (signed)
    # ------------------------------------------------------------------

    def update_leverage(self, symbol: str, leverage: int) -> PacificaResponse:
        return self._execute(_leverage_request(symbol, leverage))

    def update_margin_mode(self, symbol: str, margin_mode: Union[MarginMode, str]) -> PacificaResponse:
        return self._execute(_margin_mode_request(symbol, margin_mode))

    def close_position(self, symbol: str, slippage_percent: str = _DEFAULT_SLIPPAGE) -> OrderResult:
        """
        Close a position with a reduce-only market order.

        Reads positions, then submits the opposite-side order for the
        recorded amount.  The two calls are not atomic: the position can
        change between the read and the order.
        """
        position = _find_open_position(self.get_positions(), symbol)
        return self._execute(_create_market_request(_close_position_intent(position, slippage_percent)))

    def request_withdrawal(self, amount: str) -> WithdrawalResult:
        return self._execute(_withdraw_request(amount))

    def create_subaccount(self, name: str) -> SubaccountResult:
        return self._execute(_create_subaccount_request(name))

    def transfer_funds(self, from_account: str, to_account: str, amount: str) -> PacificaResponse:
        return self._execute(_transfer_request(from_account, to_account, amount))


# ---------------------------------------------------------------------------
# Async client
# ---------------------------------------------------------------------------

class AsyncPacificaRestClient:
    """
    Async REST client for Pacifica (aiohttp-based).

    Same surface as PacificaRestClient; every method is a coroutine.

    Usage
    -----
        async with AsyncPacificaRestClient(auth) as client:
            prices = await client.get_prices()
    """

    def __init__(self, auth: PacificaAuth, timeout: float = _DEFAULT_TIMEOUT_S, session: Any = None) -> None:
        self._auth    = auth
        self._timeout = timeout
        self._session: Any = session   # aiohttp.ClientSession, created on first use

    async def __aenter__(self) -> "AsyncPacificaRestClient":
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    @property
    def auth(self) -> PacificaAuth:
        return self._auth

    # ------------------------------------------------------------------
    # Internal async request helpers
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, str]] = None,
        json: Optional[dict] = None,
    ) -> tuple[int, str, Any]:
        import aiohttp

        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()

        url = self._auth.base_url + path
        logger.debug("%s %s  params=%s  body=%s", method.upper(), url, params, json)
        try:
            async with self._session.request(
                method, url,
                params=params,
                json=json,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as resp:
                status = resp.status
                text   = await resp.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise TransportError(0, str(exc) or type(exc).__name__, method=method, path=path) from exc

        if not 200 <= status < 300:
            raise TransportError(status, text, method=method, path=path)
        try:
            return status, text, _json.loads(text)
        except ValueError as exc:
            raise TransportError(status, text, method=method, path=path) from exc

    async def _execute(self, req: _Request) -> Any:
        body = req.body
        if req.operation is not None:
            body = self._auth.sign_request(body or {}, req.operation)
        status, text, raw = await self._request(req.method, req.path, params=req.params, json=body)
        return _parse_envelope(req, status, text, raw)

    # ------------------------------------------------------------------
    # Market data (public)
    # ------------------------------------------------------------------

    async def get_market_info(self) -> list[MarketInfo]:
        return await self._execute(_market_info_request())

    async def get_prices(self) -> list[PriceInfo]:
        return await self._execute(_prices_request())

    async def get_symbol_price(self, symbol: str) -> PriceInfo:
        return _find_price(await self.get_prices(), symbol)

    async def get_orderbook(self, symbol: str, agg_level: int = 1) -> Orderbook:
        return await self._execute(_orderbook_request(symbol, agg_level))

    async def get_candles(
        self,
        symbol: str,
        interval: str,
        start_time: int,
        end_time: Optional[int] = None,
    ) -> list[Candle]:
        return await self._execute(_candles_request(symbol, interval, start_time, end_time))

    async def get_recent_trades(self, symbol: str) -> list[RecentTrade]:
        return await self._execute(_recent_trades_request(symbol))

    async def get_funding_history(
        self,
        symbol: str,
        limit: int = 100,
        cursor: Optional[str] = None,
    ) -> PaginatedResponse:
        return await self._execute(_funding_history_request(symbol, limit, cursor))

    # ------------------------------------------------------------------
    # Account queries
    # ------------------------------------------------------------------

    async def get_account_info(self) -> AccountInfo:
        return await self._execute(_account_request("/api/v1/account", _required(AccountInfo, "Account"), self._auth.account))

    async def get_positions(self, include_zero: bool = False) -> list[Position]:
        return await self._execute(_account_request("/api/v1/positions", _positions_filter(include_zero), self._auth.account))

    async def get_trade_history(
        self,
        symbol: Optional[str] = None,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
        limit: int = 100,
        cursor: Optional[Union[int, str]] = None,
    ) -> PaginatedResponse:
        params = _history_params(self._auth.account, symbol=symbol, start_time=start_time,
                                 end_time=end_time, limit=limit, cursor=cursor)
        return await self._execute(_Request("GET", "/api/v1/trades/history", _page_of(TradeHistoryEntry), params=params))

    async def get_open_orders(self) -> list[OpenOrder]:
        return await self._execute(_account_request("/api/v1/orders", _list_of(OpenOrder), self._auth.account))

    async def get_order_history(
        self,
        symbol: Optional[str] = None,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
        limit: int = 100,
        cursor: Optional[Union[int, str]] = None,
    ) -> PaginatedResponse:
        params = _history_params(self._auth.account, symbol=symbol, start_time=start_time,
                                 end_time=end_time, limit=limit, cursor=cursor)
        return await self._execute(_Request("GET", "/api/v1/orders/history", _page_of(OrderHistoryEntry), params=params))

    async def get_order(self, order_id: int) -> OrderHistoryEntry:
        parse = _required(OrderHistoryEntry, f"Order {order_id}")
        return await self._execute(_account_request(f"/api/v1/orders/{int(order_id)}", parse, self._auth.account))

    async def get_equity_history(
        self,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
        limit: int = 100,
    ) -> PaginatedResponse:
        params = _history_params(self._auth.account, start_time=start_time, end_time=end_time, limit=limit)
        return await self._execute(_Request("GET", "/api/v1/account/equity_history", _page_of(EquityHistoryEntry), params=params))

    async def get_balance_history(
        self,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
        limit: int = 100,
    ) -> PaginatedResponse:
        params = _history_params(self._auth.account, start_time=start_time, end_time=end_time, limit=limit)
        return await self._execute(_Request("GET", "/api/v1/account/balance_history", _page_of(BalanceHistoryEntry), params=params))

    async def get_account_funding(
        self,
        symbol: Optional[str] = None,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
        limit: int = 100,
    ) -> PaginatedResponse:
        params = _history_params(self._auth.account, symbol=symbol, start_time=start_time,
                                 end_time=end_time, limit=limit)
        return await self._execute(_Request("GET", "/api/v1/account/funding", _page_of(AccountFundingEntry), params=params))

    async def list_subaccounts(self) -> list[Subaccount]:
        return await self._execute(_account_request("/api/v1/subaccounts", _list_of(Subaccount), self._auth.account))

    # ------------------------------------------------------------------
    # Orders (signed)
    # ------------------------------------------------------------------

    async def create_market_order(
        self,
        symbol: str,
        side: Union[Side, str],
        amount: str,
        slippage_percent: str = _DEFAULT_SLIPPAGE,
        reduce_only: bool = False,
        client_order_id: Optional[str] = None,
        take_profit: Optional[TpSlInput] = None,
        stop_loss: Optional[TpSlInput] = None,
    ) -> OrderResult:
        intent = OrderIntent(
            symbol=symbol, side=side, amount=amount, slippage_percent=slippage_percent,
            reduce_only=reduce_only, client_order_id=client_order_id,
            take_profit=_coerce_leg(take_profit), stop_loss=_coerce_leg(stop_loss),
        )
        return await self._execute(_create_market_request(intent))

    async def create_limit_order(
        self,
        symbol: str,
        side: Union[Side, str],
        price: str,
        amount: str,
        tif: Union[TimeInForce, str] = TimeInForce.GTC,
        reduce_only: bool = False,
        client_order_id: Optional[str] = None,
        take_profit: Optional[TpSlInput] = None,
        stop_loss: Optional[TpSlInput] = None,
    ) -> OrderResult:
        intent = OrderIntent(
            symbol=symbol, side=side, price=price, amount=amount, tif=tif,
            reduce_only=reduce_only, client_order_id=client_order_id,
            take_profit=_coerce_leg(take_profit), stop_loss=_coerce_leg(stop_loss),
        )
        return await self._execute(_create_limit_request(intent))

    async def create_stop_market_order(
        self,
        symbol: str,
        side: Union[Side, str],
        amount: str,
        stop_price: str,
        slippage_percent: str = _DEFAULT_SLIPPAGE,
        reduce_only: bool = False,
        client_order_id: Optional[str] = None,
    ) -> StopOrderResult:
        intent = StopOrderIntent(
            symbol=symbol, side=side, amount=amount, stop_price=stop_price,
            slippage_percent=slippage_percent, reduce_only=reduce_only,
            client_order_id=client_order_id,
        )
        return await self._execute(_create_stop_request(intent))

    async def create_stop_limit_order(
        self,
        symbol: str,
        side: Union[Side, str],
        amount: str,
        stop_price: str,
        limit_price: str,
        reduce_only: bool = False,
        client_order_id: Optional[str] = None,
    ) -> StopOrderResult:
        intent = StopOrderIntent(
            symbol=symbol, side=side, amount=amount, stop_price=stop_price,
            limit_price=limit_price, reduce_only=reduce_only,
            client_order_id=client_order_id,
        )
        return await self._execute(_create_stop_request(intent))

    async def set_position_tpsl(
        self,
        symbol: str,
        take_profit: Optional[TpSlInput] = None,
        stop_loss: Optional[TpSlInput] = None,
    ) -> PacificaResponse:
        return await self._execute(_position_tpsl_request(symbol, take_profit, stop_loss))

    async def create_multi_tpsl(
        self,
        symbol: str,
        position_side: Union[PositionSide, str],
        take_profits: Sequence[TargetInput] = (),
        stop_loss: Optional[TargetInput] = None,
        slippage_percent: str = _DEFAULT_SLIPPAGE,
    ) -> MultiTpSlResult:
        side, plan = _multi_tpsl_plan(symbol, position_side, take_profits, stop_loss, slippage_percent)
        outcomes = []
        for label, intent in plan:
            try:
                outcomes.append(_record_leg(label, await self._execute(_create_stop_request(intent)), None))
            except PacificaError as exc:
                outcomes.append(_record_leg(label, None, exc))
        return MultiTpSlResult(symbol=symbol, position_side=position_side, order_side=side, orders=outcomes)

    async def cancel_order(
        self,
        symbol: str,
        order_id: Optional[int] = None,
        client_order_id: Optional[str] = None,
    ) -> PacificaResponse:
        intent = CancelIntent(symbol=symbol, order_id=order_id, client_order_id=client_order_id)
        return await self._execute(_cancel_request(intent))

    async def cancel_stop_order(
        self,
        symbol: str,
        stop_order_id: Optional[int] = None,
        client_order_id: Optional[str] = None,
    ) -> PacificaResponse:
        return await self._execute(_cancel_stop_request(symbol, stop_order_id, client_order_id))

    async def cancel_all_orders(
        self,
        symbols: Optional[Sequence[str]] = None,
        exclude_reduce_only: bool = False,
    ) -> PacificaResponse:
        return await self._execute(_cancel_all_request(symbols, exclude_reduce_only))

    async def batch_orders(self, actions: Sequence[BatchInput]) -> BatchResult:
        return await self._execute(_batch_request(self._auth, actions))

    # ------------------------------------------------------------------
    # Positions & account (signed)
    # ------------------------------------------------------------------

    async def update_leverage(self, symbol: str, leverage: int) -> PacificaResponse:
        return await self._execute(_leverage_request(symbol, leverage))

    async def update_margin_mode(self, symbol: str, margin_mode: Union[MarginMode, str]) -> PacificaResponse:
        return await self._execute(_margin_mode_request(symbol, margin_mode))

    async def close_position(self, symbol: str, slippage_percent: str = _DEFAULT_SLIPPAGE) -> OrderResult:
        """Read-then-order like PacificaRestClient.close_position; not atomic."""
        position = _find_open_position(await self.get_positions(), symbol)
        return await self._execute(_create_market_request(_close_position_intent(position, slippage_percent)))

    async def request_withdrawal(self, amount: str) -> WithdrawalResult:
        return await self._execute(_withdraw_request(amount))

    async def create_subaccount(self, name: str) -> SubaccountResult:
        return await self._execute(_create_subaccount_request(name))

    async def transfer_funds(self, from_account: str, to_account: str, amount: str) -> PacificaResponse:
        return await self._execute(_transfer_request(from_account, to_account, amount))
