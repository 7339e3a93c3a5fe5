"""Wallet of Satoshi client exceptions."""

from __future__ import annotations

from decimal import Decimal


class WosError(Exception):
    """Base exception for the wos client.

    ``partial`` is set by Reader.balance_and_fee() to the ``(balance, fees)``
    results that arrived before the failure.
    """

    partial: tuple | None = None


class DecodeError(WosError):
    """A bech32 string could not be decoded."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"bech32 decode failed: {reason}")


class InvalidInvoiceError(WosError):
    """Invoice is malformed, for the wrong network, or carries a bad amount."""

    def __init__(self, reason: str | None = None, invoice: str | None = None):
        self.reason = reason
        self.invoice = invoice
        message = "invalid invoice"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class NoAmountError(WosError):
    """Invoice does not specify an amount (variable-amount invoice)."""

    def __init__(self, invoice: str | None = None):
        self.invoice = invoice
        super().__init__("no amount specified in invoice")


class FixedAmountError(WosError):
    """A fixed-amount invoice was used where a variable-amount one is required."""

    def __init__(self, invoice: str | None = None):
        self.invoice = invoice
        super().__init__("invoice specifies a fixed amount")


class SigningRefusedError(WosError):
    """The signer declined to sign a request, or failed while signing."""

    def __init__(self, endpoint: str, reason: str):
        self.endpoint = endpoint
        self.reason = reason
        super().__init__(f"Signer refused {endpoint}: {reason}")


class TransportError(WosError):
    """HTTP request failed or returned a non-200 status."""

    def __init__(
        self,
        method: str,
        endpoint: str,
        reason: str,
        status_code: int | None = None,
    ):
        self.method = method
        self.endpoint = endpoint
        self.reason = reason
        self.status_code = status_code
        if status_code is None:
            message = f"{method} {endpoint} request failed: {reason}"
        else:
            message = f"{method} {endpoint}: received status {status_code}: {reason}"
        super().__init__(message)


class InsufficientFundsError(WosError):
    """Confirmed balance cannot cover the fees of a sweep.

    ``reason`` is one of ``"fee"``, ``"commission"`` or ``"lightning_fee"``.
    """

    def __init__(self, reason: str, available: Decimal, required: Decimal):
        self.reason = reason
        self.available = available
        self.required = required
        super().__init__(
            f"balance ({available:.8f}) insufficient for {reason.replace('_', ' ')} "
            f"({required:.8f})"
        )


class NoCredentialsError(WosError):
    """No credentials configured or found in the environment."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(
            message
            or "No credentials configured. Set WOS_API_TOKEN (and WOS_API_SECRET "
            "for write access) or add apiToken/apiSecret to ~/.wos/config.json"
        )
