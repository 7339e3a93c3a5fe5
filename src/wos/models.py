"""Data returned by the Wallet of Satoshi API.

Amounts are bitcoin-denominated ``Decimal`` values; responses are decoded
with ``parse_float=Decimal`` so no float rounding creeps in.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, TypeVar

from wos.exceptions import WosError

T = TypeVar("T")

_ZERO = Decimal(0)

# What a malformed or wrongly shaped body raises while being decoded.
_MALFORMED = (ValueError, TypeError, AttributeError, ArithmeticError)


def loads(data: bytes | str) -> Any:
    """Decode a JSON response body, keeping numbers exact."""
    return json.loads(data, parse_float=Decimal, parse_int=Decimal)


def parse_response(operation: str, data: bytes | str, build: Callable[[Any], T]) -> T:
    """Decode a response body and build a model from the payload.

    Raises:
        WosError: If the body is not JSON, or its payload does not have the
            shape ``operation`` returns (wrong types, bad amounts or dates).
    """
    try:
        return build(loads(data))
    except _MALFORMED as e:
        raise WosError(f"invalid {operation} response: {e}") from e


def _amount(payload: dict, key: str) -> Decimal:
    value = payload.get(key)
    if value is None:
        return _ZERO
    return Decimal(str(value))


def _timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    # Python < 3.11 does not accept the trailing "Z".
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@dataclass(frozen=True)
class Addresses:
    """On-chain and lightning deposit addresses of a wallet."""

    on_chain: str
    lightning: str

    @classmethod
    def from_json(cls, payload: dict) -> Addresses:
        return cls(
            on_chain=payload.get("btcDepositAddress") or "",
            lightning=payload.get("lightningAddress") or "",
        )


@dataclass(frozen=True)
class Balance:
    """A wallet's balance at a point in time."""

    confirmed: Decimal
    unconfirmed: Decimal = _ZERO

    @property
    def total(self) -> Decimal:
        return self.confirmed + self.unconfirmed

    @classmethod
    def from_json(cls, payload: dict) -> Balance:
        # The "lightning" field is unreliable (it can go negative); "btc" is
        # the real confirmed balance.
        return cls(
            confirmed=_amount(payload, "btc"),
            unconfirmed=_amount(payload, "btcUnconfirmed"),
        )


@dataclass(frozen=True)
class FeeEstimate:
    """Fees for paying one specific address or invoice.

    Only valid for the destination it was requested for.
    """

    btc_fixed_fee: Decimal = _ZERO
    btc_miner_fee_per_kb: Decimal = _ZERO
    btc_send_commission_percent: Decimal = _ZERO
    btc_send_fee_warning_percent: Decimal = _ZERO
    lightning_fee: Decimal = _ZERO
    max_lightning_fee: Decimal = _ZERO
    is_wos_invoice: bool = False

    @classmethod
    def from_json(cls, payload: dict) -> FeeEstimate:
        return cls(
            btc_fixed_fee=_amount(payload, "btcFixedFee"),
            btc_miner_fee_per_kb=_amount(payload, "btcMinerFeePerKb"),
            btc_send_commission_percent=_amount(payload, "btcSendCommissionPercent"),
            btc_send_fee_warning_percent=_amount(payload, "btcSendFeeWarningPercent"),
            lightning_fee=_amount(payload, "lightningFee"),
            max_lightning_fee=_amount(payload, "sendMaxLightningFee"),
            is_wos_invoice=bool(payload.get("wosInvoice", False)),
        )


PAYMENT_STATUS_PAID = "PAID"
PAYMENT_STATUS_PENDING = "PENDING"

PAYMENT_TYPE_CREDIT = "CREDIT"
PAYMENT_TYPE_DEBIT = "DEBIT"

PAYMENT_CURRENCY_BITCOIN = "BTC"
PAYMENT_CURRENCY_LIGHTNING = "LIGHTNING"


@dataclass(frozen=True)
class Payment:
    """An on-chain or lightning payment, received or sent.

    ``address`` is the on-chain address paid, or the invoice / lightning
    address for lightning payments. ``txid`` holds the payment hash for
    lightning payments. ``status`` is usually PAID or PENDING but the
    service may report others.
    """

    id: str
    address: str
    amount: Decimal
    currency: str
    status: str
    type: str
    description: str = ""
    txid: str = ""
    time: datetime | None = None
    expires: datetime | None = None
    is_likely_spam: bool = False
    is_point_of_sale: bool = False

    @classmethod
    def from_json(cls, payload: dict) -> Payment:
        return cls(
            id=payload.get("id", ""),
            address=payload.get("address", ""),
            amount=_amount(payload, "amount"),
            currency=payload.get("currency", ""),
            status=payload.get("status", ""),
            type=payload.get("type", ""),
            description=payload.get("description") or "",
            txid=payload.get("transactionId") or "",
            time=_timestamp(payload.get("time")),
            expires=_timestamp(payload.get("expires")),
            is_likely_spam=bool(payload.get("isLikelySpam", False)),
            is_point_of_sale=bool(payload.get("isWosPos", False)),
        )


@dataclass(frozen=True)
class Invoice:
    """A BOLT11 invoice created by the wallet."""

    id: str
    bolt11: str
    amount: Decimal
    expires: datetime | None = None

    @classmethod
    def from_json(cls, payload: dict) -> Invoice:
        return cls(
            id=payload.get("id", ""),
            bolt11=payload.get("invoice", ""),
            amount=_amount(payload, "btcAmount"),
            expires=_timestamp(payload.get("expires")),
        )
