"""Bech32 (BIP-173) decoding.

Lightning invoices are bech32 strings, but they routinely exceed the
90-character ceiling BIP-173 places on segwit addresses, so decoding
takes an explicit ``max_length`` and ``None`` turns the limit off.
"""

from __future__ import annotations

from collections.abc import Iterable

from wos.exceptions import DecodeError

CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
_CHARSET_INVERSE = {c: i for i, c in enumerate(CHARSET)}

BECH32_CONST = 1
BIP173_MAX_LENGTH = 90
CHECKSUM_LENGTH = 6

_GENERATOR = (0x3B6A57B2, 0x26508E6D, 0x1EA119FA, 0x3D4233DD, 0x2A1462B3)


def _polymod(values: Iterable[int]) -> int:
    chk = 1
    for value in values:
        top = chk >> 25
        chk = (chk & 0x1FFFFFF) << 5 ^ value
        for i in range(5):
            chk ^= _GENERATOR[i] if ((top >> i) & 1) else 0
    return chk


def _hrp_expand(hrp: str) -> list[int]:
    return [ord(x) >> 5 for x in hrp] + [0] + [ord(x) & 31 for x in hrp]


def _create_checksum(hrp: str, data: list[int]) -> list[int]:
    polymod = _polymod(_hrp_expand(hrp) + data + [0] * CHECKSUM_LENGTH) ^ BECH32_CONST
    return [(polymod >> 5 * (5 - i)) & 31 for i in range(CHECKSUM_LENGTH)]


def bech32_encode(hrp: str, data: Iterable[int]) -> str:
    """Encode an hrp and 5-bit data symbols as a bech32 string."""
    data = list(data)
    combined = data + _create_checksum(hrp, data)
    return hrp + "1" + "".join(CHARSET[d] for d in combined)


def bech32_decode(
    bech: str, max_length: int | None = BIP173_MAX_LENGTH
) -> tuple[str, list[int]]:
    """Validate a bech32 string and split it into hrp and data symbols.

    Args:
        bech: The bech32-encoded string.
        max_length: Maximum overall length, or None for no limit.

    Returns:
        ``(hrp, data)`` with the hrp lower-cased and the six checksum
        symbols stripped from ``data``.

    Raises:
        DecodeError: If the string is not valid bech32.
    """
    if max_length is not None and len(bech) > max_length:
        raise DecodeError(f"length {len(bech)} exceeds limit of {max_length}")
    if any(ord(x) < 33 or ord(x) > 126 for x in bech):
        raise DecodeError("invalid character")
    if bech.lower() != bech and bech.upper() != bech:
        raise DecodeError("mixed case")

    bech = bech.lower()
    pos = bech.rfind("1")
    if pos < 0:
        raise DecodeError("missing separator")
    if pos < 1:
        raise DecodeError("empty human-readable part")
    if pos + CHECKSUM_LENGTH + 1 > len(bech):
        raise DecodeError("data part too short")

    hrp = bech[:pos]
    try:
        data = [_CHARSET_INVERSE[x] for x in bech[pos + 1:]]
    except KeyError as e:
        raise DecodeError(f"invalid data character {e.args[0]!r}") from None

    if _polymod(_hrp_expand(hrp) + data) != BECH32_CONST:
        raise DecodeError("invalid checksum")

    return hrp, data[:-CHECKSUM_LENGTH]


def bech32_decode_no_limit(bech: str) -> tuple[str, list[int]]:
    """Decode a bech32 string of any length (e.g. a BOLT11 invoice)."""
    return bech32_decode(bech, max_length=None)
