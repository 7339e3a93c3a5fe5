"""BOLT11 invoice amount decoding.

Extracts the amount from the human-readable part of a bech32-encoded
Lightning invoice. Only mainnet invoices are accepted.

BOLT11 format: ln{network}{amount}{multiplier}1{data}
Multipliers: m (milli = 0.001), u (micro = 0.000001),
             n (nano = 0.000000001), p (pico = 0.000000000001)

Amounts are decoded exactly in millisatoshis. The bitcoin-denominated
value is rounded to the nearest whole satoshi, so it is lossy for
invoices carrying sub-satoshi amounts.
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal

from wos.bech32 import bech32_decode_no_limit
from wos.config import (
    LIGHTNING_PREFIX,
    MAINNET_NETWORK,
    MAX_MSAT,
    MIN_PICO_AMOUNT,
    MSAT_PER_BTC,
    MSAT_PER_SAT,
)
from wos.exceptions import DecodeError, InvalidInvoiceError, NoAmountError

_FIRST_DIGIT_RE = re.compile(r"[0-9]")
_UNSIGNED_RE = re.compile(r"[0-9]+")

# Millisatoshis per unit of each multiplier (pico is handled separately).
_MSAT_MULTIPLIERS: dict[str, int] = {
    "n": 100,
    "u": 100_000,
    "m": 100_000_000,
}


class AmountDecodeError(ValueError):
    """The amount suffix of an invoice's human-readable part is malformed."""


def _parse_unsigned(num: str) -> int:
    if not _UNSIGNED_RE.fullmatch(num):
        raise AmountDecodeError(f"invalid number {num!r}")
    return int(num)


def decode_amount(amount: str) -> int:
    """Decode a BOLT11 amount suffix (e.g. ``"2500u"``) into millisatoshis.

    Args:
        amount: The amount-and-multiplier suffix of the human-readable part.

    Returns:
        The amount in millisatoshis.

    Raises:
        AmountDecodeError: If the suffix is empty, non-numeric, uses an
            unknown multiplier, or is not expressible in whole millisatoshis.
    """
    if not amount:
        raise AmountDecodeError("amount must be non-empty")

    last = amount[-1]
    if _FIRST_DIGIT_RE.fullmatch(last):
        # No multiplier means the amount is in BTC
        msat = _parse_unsigned(amount) * MSAT_PER_BTC
    else:
        num = amount[:-1]
        if not num:
            raise AmountDecodeError("number must be non-empty")
        magnitude = _parse_unsigned(num)

        if last == "p":
            if magnitude < MIN_PICO_AMOUNT:
                raise AmountDecodeError(f"minimum amount is {MIN_PICO_AMOUNT}p")
            if magnitude % 10 != 0:
                raise AmountDecodeError(
                    f"amount {magnitude} pBTC not expressible in msat"
                )
            msat = magnitude // 10
        elif last in _MSAT_MULTIPLIERS:
            msat = magnitude * _MSAT_MULTIPLIERS[last]
        else:
            raise AmountDecodeError(f"unknown multiplier {last!r}")

    if msat > MAX_MSAT:
        raise AmountDecodeError("amount exceeds total bitcoin supply")
    return msat


def _split_hrp(invoice: str) -> str:
    """Decode the invoice and return the amount suffix of its hrp."""
    try:
        hrp, _ = bech32_decode_no_limit(invoice.strip())
    except DecodeError as e:
        raise InvalidInvoiceError(str(e), invoice) from e

    if len(hrp) < 3 or not hrp.startswith(LIGHTNING_PREFIX):
        raise InvalidInvoiceError(invoice=invoice)

    prefix_len = len(LIGHTNING_PREFIX)
    match = _FIRST_DIGIT_RE.search(hrp, prefix_len)
    if match is None:
        raise NoAmountError(invoice)

    network = hrp[prefix_len:match.start()]
    if network.lower() != MAINNET_NETWORK:
        raise InvalidInvoiceError("invoice is not for bitcoin mainnet", invoice)

    return hrp[match.start():]


def parse_invoice_msat(invoice: str) -> int:
    """Return the exact amount of a mainnet BOLT11 invoice in millisatoshis.

    Raises:
        InvalidInvoiceError: If the invoice is malformed, not for mainnet,
            or carries an invalid amount.
        NoAmountError: If the invoice is a variable-amount invoice.
    """
    suffix = _split_hrp(invoice)
    try:
        return decode_amount(suffix)
    except AmountDecodeError as e:
        raise InvalidInvoiceError(f"invalid amount: {e}", invoice) from e


def msat_to_btc(msat: int) -> Decimal:
    """Convert millisatoshis to BTC, rounded half-up to the nearest satoshi."""
    sats = (Decimal(msat) / MSAT_PER_SAT).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return sats.scaleb(-8)


def parse_invoice_amount(invoice: str) -> Decimal:
    """Return the amount of a mainnet BOLT11 invoice in BTC.

    Sub-satoshi precision is lost; use parse_invoice_msat when it matters.
    """
    return msat_to_btc(parse_invoice_msat(invoice))
