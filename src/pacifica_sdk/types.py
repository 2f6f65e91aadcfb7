"""
types.py – Pydantic v2 models for the Pacifica REST API schema.

Maps to Pacifica's JSON API as documented at
https://docs.pacifica.fi/api-documentation/api

Monetary values (price, amount, fee, funding) travel as strings in
Pacifica's API to preserve precision; this SDK keeps that convention
and stores them as str – convert with Decimal for arithmetic.

Validation
----------
Intent models (OrderIntent, StopOrderIntent, CancelIntent, BatchAction)
are validated on construction, so a malformed order raises
pydantic.ValidationError before anything is signed or sent.

Deserialisation
---------------
Every response is wrapped in the same envelope:

    {"success": true, "data": ..., "error": null, "code": null}

Parse with the generic envelope models:

    resp = PacificaResponse[list[Position]].model_validate(raw)
    page = PaginatedResponse[list[OrderHistoryEntry]].model_validate(raw)
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from enum import Enum, IntEnum, unique
from typing import Any, Generic, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator


# ---------------------------------------------------------------------------
# Environment / configuration enums
# ---------------------------------------------------------------------------

@unique
class PacificaNetwork(str, Enum):
    """Pacifica deployment the client talks to."""
    MAINNET = "mainnet"
    TESTNET = "testnet"


@unique
class SigningScheme(str, Enum):
    """How request signatures are produced (fixed per client instance)."""
    ED25519 = "ed25519"   # Solana-style agent keypair, Base58 signature
    WALLET  = "wallet"    # EVM wallet personal_sign, hex signature


@unique
class OperationKind(str, Enum):
    """Why a message is being signed. Sent as the ``type`` field of the signed message."""
    CREATE_ORDER        = "create_order"
    CREATE_MARKET_ORDER = "create_market_order"
    CREATE_STOP_ORDER   = "create_stop_order"
    SET_TP_SL           = "set_tp_sl"
    CANCEL_ORDER        = "cancel_order"
    CANCEL_STOP_ORDER   = "cancel_stop_order"
    CANCEL_ALL_ORDERS   = "cancel_all_orders"
    UPDATE_LEVERAGE     = "update_leverage"
    UPDATE_MARGIN_MODE  = "update_margin_mode"
    WITHDRAW            = "withdraw"
    CREATE_SUBACCOUNT   = "create_subaccount"
    TRANSFER            = "transfer"


# ---------------------------------------------------------------------------
# Trading enums
# ---------------------------------------------------------------------------

@unique
class Side(str, Enum):
    BID = "bid"   # buy / long
    ASK = "ask"   # sell / short


@unique
class PositionSide(str, Enum):
    LONG  = "long"
    SHORT = "short"

    @property
    def closing_side(self) -> Side:
        """Order side that reduces a position on this side."""
        return Side.ASK if self is PositionSide.LONG else Side.BID


@unique
class TimeInForce(str, Enum):
    GTC = "GTC"   # good till cancelled
    IOC = "IOC"   # immediate or cancel
    ALO = "ALO"   # add liquidity only (post only)
    TOB = "TOB"   # top of book


@unique
class MarginMode(str, Enum):
    CROSS    = "cross"
    ISOLATED = "isolated"


@unique
class BatchActionType(str, Enum):
    CREATE_LIMIT  = "create_limit"
    CREATE_MARKET = "create_market"
    CANCEL        = "cancel"


@unique
class ErrorCode(IntEnum):
    """Business error codes carried in the ``code`` field of a failed envelope."""
    UNKNOWN                      = 0
    ACCOUNT_NOT_FOUND            = 1
    BOOK_NOT_FOUND               = 2
    INVALID_TICK_LEVEL           = 3
    INSUFFICIENT_BALANCE         = 4
    ORDER_NOT_FOUND              = 5
    OVER_WITHDRAWAL              = 6
    INVALID_LEVERAGE             = 7
    CANNOT_UPDATE_MARGIN         = 8
    POSITION_NOT_FOUND           = 9
    POSITION_TPSL_LIMIT_EXCEEDED = 10


# ---------------------------------------------------------------------------
# Shared validator helpers
# ---------------------------------------------------------------------------

def _validate_decimal_string(v: str, field: str = "value") -> str:
    """Reject empty strings, non-parseable decimals and NaN / Infinity."""
    if not v or not v.strip():
        raise ValueError(f"{field} must be a non-empty decimal string")
    try:
        value = Decimal(v)
    except InvalidOperation:
        raise ValueError(f"{field} '{v}' is not a valid decimal string")
    if not value.is_finite():
        raise ValueError(f"{field} must be finite, got '{v}'")
    return v


def _validate_positive_decimal(v: str, field: str) -> str:
    """Positive and finite; returned in plain notation (" 1e3 " -> "1000")."""
    v = _validate_decimal_string(v, field)
    value = Decimal(v)
    if value <= 0:
        raise ValueError(f"{field} must be positive, got '{v}'")
    return format(value, "f")


def _validate_symbol(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("symbol must be a non-empty string")
    return v


# ---------------------------------------------------------------------------
# Intents (caller input, consumed once per call)
# ---------------------------------------------------------------------------

class TpSlLeg(BaseModel):
    """
    Take-profit or stop-loss trigger.

    stop_price      : trigger price
    limit_price     : optional limit price; omitted → market execution
    client_order_id : optional client identifier for the triggered order
    """
    stop_price:      str
    limit_price:     Optional[str] = None
    client_order_id: Optional[str] = None

    @field_validator("stop_price")
    @classmethod
    def validate_stop_price(cls, v: str) -> str:
        return _validate_positive_decimal(v, "stop_price")

    @field_validator("limit_price")
    @classmethod
    def validate_limit_price(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _validate_positive_decimal(v, "limit_price")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class TpSlTarget(BaseModel):
    """
    One leg of a multi take-profit / stop-loss plan.

    price       : trigger price
    amount      : size to close when triggered
    limit_price : optional; present → stop-limit, absent → stop-market
    """
    price:       str
    amount:      str
    limit_price: Optional[str] = None

    @field_validator("price", "amount")
    @classmethod
    def validate_positive(cls, v: str, info: ValidationInfo) -> str:
        return _validate_positive_decimal(v, info.field_name)

    @field_validator("limit_price")
    @classmethod
    def validate_limit_price(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _validate_positive_decimal(v, "limit_price")


class OrderIntent(BaseModel):
    """
    A market or limit order.

    price is required for limit orders and ignored for market orders,
    which use slippage_percent as their worst-price bound instead.
    """
    symbol:           str
    side:             Side
    amount:           str
    price:            Optional[str]     = None
    tif:              TimeInForce       = TimeInForce.GTC
    slippage_percent: str               = "0.5"
    reduce_only:      bool              = False
    client_order_id:  Optional[str]     = None
    take_profit:      Optional[TpSlLeg] = None
    stop_loss:        Optional[TpSlLeg] = None

    @field_validator("symbol")
    @classmethod
    def validate_symbol(cls, v: str) -> str:
        return _validate_symbol(v)

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: str) -> str:
        return _validate_positive_decimal(v, "amount")

    @field_validator("price")
    @classmethod
    def validate_price(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _validate_positive_decimal(v, "price")

    @field_validator("slippage_percent")
    @classmethod
    def validate_slippage(cls, v: str) -> str:
        return _validate_positive_decimal(v, "slippage_percent")


class StopOrderIntent(BaseModel):
    """
    A stop-market (limit_price is None) or stop-limit order.

    Stop orders carry no time-in-force.
    """
    symbol:           str
    side:             Side
    amount:           str
    stop_price:       str
    limit_price:      Optional[str] = None
    slippage_percent: str           = "0.5"
    reduce_only:      bool          = False
    client_order_id:  Optional[str] = None

    @field_validator("symbol")
    @classmethod
    def validate_symbol(cls, v: str) -> str:
        return _validate_symbol(v)

    @field_validator("amount", "stop_price", "slippage_percent")
    @classmethod
    def validate_positive(cls, v: str, info: ValidationInfo) -> str:
        return _validate_positive_decimal(v, info.field_name)

    @field_validator("limit_price")
    @classmethod
    def validate_limit_price(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _validate_positive_decimal(v, "limit_price")


class CancelIntent(BaseModel):
    """Cancel one order by exchange order id or client order id."""
    symbol:          str
    order_id:        Optional[int] = None
    client_order_id: Optional[str] = None

    @field_validator("symbol")
    @classmethod
    def validate_symbol(cls, v: str) -> str:
        return _validate_symbol(v)

    @model_validator(mode="after")
    def require_identifier(self) -> "CancelIntent":
        if self.order_id is None and not self.client_order_id:
            raise ValueError("cancel requires order_id or client_order_id")
        return self


class BatchAction(BaseModel):
    """
    One entry of a batch submission.

    create_limit  : side, amount, price required
    create_market : side, amount required (slippage defaults to 0.5 %)
    cancel        : order_id or client_order_id required
    """
    type:             BatchActionType
    symbol:           str
    side:             Optional[Side]        = None
    amount:           Optional[str]         = None
    price:            Optional[str]         = None
    slippage_percent: Optional[str]         = None
    tif:              Optional[TimeInForce] = None
    reduce_only:      bool                  = False
    order_id:         Optional[int]         = None
    client_order_id:  Optional[str]         = None

    @model_validator(mode="after")
    def check_required_fields(self) -> "BatchAction":
        if self.type is BatchActionType.CANCEL:
            return self
        missing = [name for name in ("side", "amount") if getattr(self, name) is None]
        if self.type is BatchActionType.CREATE_LIMIT and self.price is None:
            missing.append("price")
        if missing:
            raise ValueError(f"{self.type.value} action requires {', '.join(missing)}")
        return self

    def to_intent(self) -> "OrderIntent | CancelIntent":
        """Convert to the intent model used by the single-order endpoints."""
        if self.type is BatchActionType.CANCEL:
            return CancelIntent(
                symbol=self.symbol,
                order_id=self.order_id,
                client_order_id=self.client_order_id,
            )
        return OrderIntent(
            symbol=self.symbol,
            side=self.side,
            amount=self.amount,
            price=self.price if self.type is BatchActionType.CREATE_LIMIT else None,
            tif=self.tif or TimeInForce.GTC,
            slippage_percent=self.slippage_percent or "0.5",
            reduce_only=self.reduce_only,
            client_order_id=self.client_order_id,
        )


# ---------------------------------------------------------------------------
# Response envelopes
# ---------------------------------------------------------------------------

DataT = TypeVar("DataT")


class PacificaResponse(BaseModel, Generic[DataT]):
    """Standard response envelope."""
    success: bool
    data:    Optional[DataT] = None
    error:   Optional[str]   = None
    code:    Optional[int]   = None


class PaginatedResponse(PacificaResponse[DataT], Generic[DataT]):
    """Envelope for cursor-paginated history endpoints."""
    next_cursor: Optional[str]  = None
    has_more:    Optional[bool] = None

    @field_validator("next_cursor", mode="before")
    @classmethod
    def cursor_to_str(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)


# ---------------------------------------------------------------------------
# Market data models
# ---------------------------------------------------------------------------

class MarketInfo(BaseModel):
    """Trading parameters of one perpetual market."""
    symbol:            str
    tick_size:         str
    lot_size:          str
    max_leverage:      int
    min_tick:          str  = "0"
    max_tick:          str  = "0"
    isolated_only:     bool = False
    min_order_size:    str  = "0"
    max_order_size:    str  = "0"
    funding_rate:      str  = "0"
    next_funding_rate: str  = "0"
    created_at:        Optional[Union[int, str]] = None


class PriceInfo(BaseModel):
    symbol:          str
    mark:            str
    mid:             str = "0"
    oracle:          str = "0"
    funding:         str = "0"
    next_funding:    str = "0"
    open_interest:   str = "0"
    volume_24h:      str = "0"
    yesterday_price: str = "0"
    timestamp:       int = 0

    @field_validator("mark")
    @classmethod
    def validate_mark(cls, v: str) -> str:
        return _validate_decimal_string(v, "mark")


class OrderbookLevel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    price:      str = Field(alias="p")
    amount:     str = Field(alias="a")
    num_orders: int = Field(default=0, alias="n")

    @field_validator("price", "amount")
    @classmethod
    def validate_decimal(cls, v: str) -> str:
        return _validate_decimal_string(v)


class Orderbook(BaseModel):
    """L2 snapshot: ``levels`` is ``[bids, asks]``."""
    model_config = ConfigDict(populate_by_name=True)

    symbol:    str                         = Field(alias="s")
    levels:    list[list[OrderbookLevel]]  = Field(default_factory=list, alias="l")
    timestamp: int                         = Field(default=0, alias="t")

    @property
    def bids(self) -> list[OrderbookLevel]:
        return self.levels[0] if self.levels else []

    @property
    def asks(self) -> list[OrderbookLevel]:
        return self.levels[1] if len(self.levels) > 1 else []


class Candle(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    open_time:  int = Field(alias="t")
    close_time: int = Field(alias="T")
    symbol:     str = Field(alias="s")
    interval:   str = Field(alias="i")
    open:       str = Field(alias="o")
    close:      str = Field(alias="c")
    high:       str = Field(alias="h")
    low:        str = Field(alias="l")
    volume:     str = Field(alias="v")
    num_trades: int = Field(default=0, alias="n")


class RecentTrade(BaseModel):
    event_type: str
    price:      str
    amount:     str
    side:       str
    cause:      str = "normal"
    created_at: int = 0


class FundingHistory(BaseModel):
    oracle_price:      str
    funding_rate:      str
    next_funding_rate: str = "0"
    bid_impact_price:  str = "0"
    ask_impact_price:  str = "0"
    created_at:        int = 0


# ---------------------------------------------------------------------------
# Account & position models
# ---------------------------------------------------------------------------

class AccountInfo(BaseModel):
    balance:                 str
    account_equity:          str
    fee_level:               int  = 0
    available_to_spend:      str  = "0"
    available_to_withdraw:   str  = "0"
    pending_balance:         str  = "0"
    total_margin_used:       str  = "0"
    cross_mmr:               str  = "0"
    positions_count:         int  = 0
    orders_count:            int  = 0
    stop_orders_count:       int  = 0
    updated_at:              int  = 0
    use_ltp_for_stop_orders: bool = False


class Position(BaseModel):
    """Open position on one symbol, as recorded by the venue."""
    symbol:      str
    side:        PositionSide
    amount:      str
    entry_price: str
    margin:      str  = "0"
    funding:     str  = "0"
    isolated:    bool = False
    created_at:  int  = 0
    updated_at:  int  = 0

    @field_validator("side", mode="before")
    @classmethod
    def normalise_side(cls, v: Any) -> Any:
        # Positions may also be reported with their order side: bid = long, ask = short
        if isinstance(v, str):
            return {"bid": "long", "ask": "short"}.get(v.lower(), v.lower())
        return v

    @field_validator("amount", "entry_price")
    @classmethod
    def validate_decimal(cls, v: str) -> str:
        return _validate_decimal_string(v)

    @property
    def is_open(self) -> bool:
        return Decimal(self.amount) != 0


class TradeHistoryEntry(BaseModel):
    history_id:      int
    order_id:        int
    symbol:          str
    amount:          str
    price:           str
    side:            str
    event_type:      str
    client_order_id: Optional[str] = None
    entry_price:     str = "0"
    fee:             str = "0"
    pnl:             str = "0"
    cause:           str = "normal"
    created_at:      int = 0


class Subaccount(BaseModel):
    id:         str
    name:       str
    created_at: int = 0


class EquityHistoryEntry(BaseModel):
    equity:    str
    timestamp: int


class BalanceHistoryEntry(BaseModel):
    balance:   str
    change:    str
    reason:    str
    timestamp: int


class AccountFundingEntry(BaseModel):
    symbol:          str
    funding_rate:    str
    funding_payment: str
    position_size:   str
    timestamp:       int


# ---------------------------------------------------------------------------
# Order models
# ---------------------------------------------------------------------------

class OpenOrder(BaseModel):
    order_id:             int
    symbol:               str
    side:                 str
    price:                str
    initial_amount:       str
    order_type:           str
    client_order_id:      Optional[str] = None
    filled_amount:        str           = "0"
    cancelled_amount:     str           = "0"
    stop_price:           Optional[str] = None
    stop_parent_order_id: Optional[int] = None
    reduce_only:          bool          = False
    created_at:           int           = 0
    updated_at:           int           = 0


class OrderHistoryEntry(OpenOrder):
    status: str = "open"


class OrderResult(BaseModel):
    order_id: Optional[int] = None


class StopOrderResult(BaseModel):
    stop_order_id: Optional[int] = None


class WithdrawalResult(BaseModel):
    withdrawal_id: Optional[str] = None
    amount:        Optional[str] = None
    status:        Optional[str] = None
    created_at:    int           = 0


class SubaccountResult(BaseModel):
    subaccount_id: Optional[str] = None


class BatchActionResult(BaseModel):
    success:  bool
    order_id: Optional[int] = None
    error:    Optional[str] = None


class BatchResult(BaseModel):
    results: list[BatchActionResult] = []


# ---------------------------------------------------------------------------
# Composite results (built client-side)
# ---------------------------------------------------------------------------

class TpSlOutcome(BaseModel):
    """Outcome of one leg of a multi TP/SL submission."""
    label:         str
    success:       bool
    stop_order_id: Optional[int] = None
    error:         Optional[str] = None


class MultiTpSlResult(BaseModel):
    symbol:        str
    position_side: PositionSide
    order_side:    Side
    orders:        list[TpSlOutcome] = []

    @property
    def total(self) -> int:
        return len(self.orders)

    @property
    def successful(self) -> int:
        return sum(1 for o in self.orders if o.success)

    @property
    def failed(self) -> int:
        return self.total - self.successful
