"""
Pacifica SDK – Python SDK for the Pacifica perpetual-futures venue.

Provides:
  - Unified façade                     (client.py    → PacificaClient)
  - Key decoding, Base58               (keys.py      → decode_ed25519_secret)
  - Canonical signing messages         (canonical.py → canonical_json)
  - Ed25519 / wallet request signing   (signing.py   → make_signer)
  - Signed request bodies              (envelope.py  → sign_payload)
  - Identity + network binding         (auth.py      → PacificaAuth)
  - Typed Pydantic v2 models           (types.py)
  - Synchronous REST client            (rest.py      → PacificaRestClient)
  - Async REST client                  (rest.py      → AsyncPacificaRestClient)

Quickstart
----------
    from pacifica_sdk import PacificaClient, PacificaNetwork, Side

    with PacificaClient(secret="...", account="...", network=PacificaNetwork.TESTNET) as client:
        book  = client.rest.get_orderbook("BTC")
        order = client.rest.create_limit_order("BTC", Side.BID, price="50000", amount="0.01")
"""

from .types import (
    # Environment
    PacificaNetwork,
    SigningScheme,
    OperationKind,
    # Enums
    Side,
    PositionSide,
    TimeInForce,
    MarginMode,
    BatchActionType,
    ErrorCode,
    # Intents
    TpSlLeg,
    TpSlTarget,
    OrderIntent,
    StopOrderIntent,
    CancelIntent,
    BatchAction,
    # Envelopes
    PacificaResponse,
    PaginatedResponse,
    # Market data
    MarketInfo,
    PriceInfo,
    OrderbookLevel,
    Orderbook,
    Candle,
    RecentTrade,
    FundingHistory,
    # Account
    AccountInfo,
    Position,
    TradeHistoryEntry,
    Subaccount,
    EquityHistoryEntry,
    BalanceHistoryEntry,
    AccountFundingEntry,
    # Orders
    OpenOrder,
    OrderHistoryEntry,
    OrderResult,
    StopOrderResult,
    WithdrawalResult,
    SubaccountResult,
    BatchActionResult,
    BatchResult,
    TpSlOutcome,
    MultiTpSlResult,
)
from .exceptions import (
    PacificaError,
    KeyFormatError,
    TransportError,
    VenueError,
    RequestValidationError,
    DomainNotFoundError,
)
from .keys import b58encode, b58decode, decode_ed25519_secret, decode_wallet_secret, wallet_address
from .canonical import canonical_json, build_message
from .signing import Signer, Ed25519Signer, WalletSigner, make_signer
from .envelope import EXPIRY_WINDOW_MS, TimestampProvider, assemble_envelope, sign_payload
from .auth import PacificaAuth
from .rest import PacificaRestClient, AsyncPacificaRestClient, MAX_BATCH_ACTIONS
from .client import PacificaClient

__all__ = [
    # Environment
    "PacificaNetwork",
    "SigningScheme",
    "OperationKind",
    # Enums
    "Side",
    "PositionSide",
    "TimeInForce",
    "MarginMode",
    "BatchActionType",
    "ErrorCode",
    # Intents
    "TpSlLeg",
    "TpSlTarget",
    "OrderIntent",
    "StopOrderIntent",
    "CancelIntent",
    "BatchAction",
    # Envelopes
    "PacificaResponse",
    "PaginatedResponse",
    # Market data
    "MarketInfo",
    "PriceInfo",
    "OrderbookLevel",
    "Orderbook",
    "Candle",
    "RecentTrade",
    "FundingHistory",
    # Account
    "AccountInfo",
    "Position",
    "TradeHistoryEntry",
    "Subaccount",
    "EquityHistoryEntry",
    "BalanceHistoryEntry",
    "AccountFundingEntry",
    # Orders
    "OpenOrder",
    "OrderHistoryEntry",
    "OrderResult",
    "StopOrderResult",
    "WithdrawalResult",
    "SubaccountResult",
    "BatchActionResult",
    "BatchResult",
    "TpSlOutcome",
    "MultiTpSlResult",
    # Errors
    "PacificaError",
    "KeyFormatError",
    "TransportError",
    "VenueError",
    "RequestValidationError",
    "DomainNotFoundError",
    # Keys
    "b58encode",
    "b58decode",
    "decode_ed25519_secret",
    "decode_wallet_secret",
    "wallet_address",
    # Signing
    "canonical_json",
    "build_message",
    "Signer",
    "Ed25519Signer",
    "WalletSigner",
    "make_signer",
    "EXPIRY_WINDOW_MS",
    "TimestampProvider",
    "assemble_envelope",
    "sign_payload",
    # Auth
    "PacificaAuth",
    # REST
    "PacificaRestClient",
    "AsyncPacificaRestClient",
    "MAX_BATCH_ACTIONS",
    # Unified façade
    "PacificaClient",
]

__version__ = "0.1.0"
