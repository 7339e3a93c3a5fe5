"""Write access to a Wallet of Satoshi wallet.

A Wallet pairs a Reader (API token, read-only calls) with a Signer that
authenticates POST requests. To open one from a token and secret, use
Credentials.open_wallet(); to keep the secret elsewhere, pass your own
Signer to Wallet.open().
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import Any

import httpx
from loguru import logger

from wos.bolt11 import parse_invoice_amount
from wos.config import (
    API_SECRET_ENV,
    API_TOKEN_ENV,
    ENDPOINT_CREATE_INVOICE,
    ENDPOINT_PAYMENT,
    load_config,
    resolve_credential,
)
from wos.exceptions import (
    FixedAmountError,
    NoAmountError,
    NoCredentialsError,
    SigningRefusedError,
    TransportError,
)
from wos.models import (
    PAYMENT_CURRENCY_BITCOIN,
    PAYMENT_CURRENCY_LIGHTNING,
    Addresses,
    Balance,
    FeeEstimate,
    Invoice,
    Payment,
    parse_response,
)
from wos.reader import Reader, check_response
from wos.signer import Signer, SimpleSigner, build_auth_headers, generate_nonce
from wos.sweep import sweep_lightning_amount, sweep_on_chain_amount


def _encode_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def serialize_body(body: dict[str, Any]) -> str:
    """Serialize a request body compactly; this exact string is signed."""
    return json.dumps(body, separators=(",", ":"), default=_encode_default)


class Wallet:
    """A wallet that can create invoices and make payments.

    Usage:
        wallet = await Credentials(api_secret, api_token).open_wallet()
        invoice = await wallet.new_invoice(amount=Decimal("0.0001"))
    """

    def __init__(self, reader: Reader, signer: Signer, addresses: Addresses):
        self._reader = reader
        self._signer = signer
        self._addresses = addresses

    @classmethod
    async def open(cls, reader: Reader, signer: Signer) -> Wallet:
        """Open an existing wallet, fetching its current addresses.

        Raises:
            TransportError: If the addresses cannot be fetched.
            WosError: If the wallet's region is unsupported.
        """
        addresses = await reader.addresses()
        return cls(reader, signer, addresses)

    @property
    def reader(self) -> Reader:
        return self._reader

    @property
    def lightning_address(self) -> str:
        return self._addresses.lightning

    @property
    def on_chain_address(self) -> str:
        """On-chain deposit address fetched when the wallet was opened.

        This address may be reused; call addresses() for a fresh one.
        """
        return self._addresses.on_chain

    async def post_request(self, endpoint: str, body: dict[str, Any]) -> bytes:
        """POST a JSON body to an endpoint, signed by the wallet's Signer.

        A fresh nonce is generated for every call.

        Raises:
            SigningRefusedError: If the signer declines or fails.
            TransportError: On connection failure or a non-200 response.
        """
        body_str = serialize_body(body)
        nonce = generate_nonce()
        api_token = self._reader.api_token

        try:
            signature = await self._signer.sign_request(endpoint, nonce, api_token, body_str)
        except SigningRefusedError:
            raise
        except Exception as e:
            raise SigningRefusedError(endpoint, str(e)) from e

        headers = {"Content-Type": "application/json"}
        headers.update(build_auth_headers(api_token, nonce, signature))

        logger.debug(f"POST {endpoint}")
        async with self._reader.build_client() as client:
            try:
                resp = await client.post(endpoint, content=body_str.encode(), headers=headers)
            except httpx.HTTPError as e:
                raise TransportError("POST", endpoint, str(e)) from e

        check_response("POST", endpoint, resp)
        return resp.content

    async def addresses(self) -> Addresses:
        return await self._reader.addresses()

    async def balance(self) -> Balance:
        return await self._reader.balance()

    async def fee_estimate(self, address_or_invoice: str) -> FeeEstimate:
        return await self._reader.fee_estimate(address_or_invoice)

    async def list_payments(self) -> list[Payment]:
        return await self._reader.list_payments()

    async def new_invoice(
        self,
        amount: Decimal | None = None,
        description: str = "",
        expiry: timedelta | None = None,
    ) -> Invoice:
        """Create a BOLT11 invoice.

        Args:
            amount: BTC amount. If omitted, the payer chooses the amount.
            description: Shown to the payer. Omitted if empty.
            expiry: Time until the invoice can no longer be paid.
                    The service defaults to 24 hours.
        """
        amount = amount or Decimal(0)
        if amount < 0:
            raise ValueError(f"invalid invoice amount: {amount}")
        if expiry is not None and expiry < timedelta(0):
            raise ValueError(f"invalid invoice expiry time: {expiry}")

        body: dict[str, Any] = {"amount": amount}
        if description:
            body["description"] = description
        if expiry:
            body["expiry"] = int(expiry.total_seconds())

        data = await self.post_request(ENDPOINT_CREATE_INVOICE, body)
        return parse_response("NewInvoice", data, Invoice.from_json)

    async def _new_payment(
        self,
        operation: str,
        address: str,
        currency: str,
        amount: Decimal,
        description: str = "",
        send_max_lightning: bool = False,
        send_max_btc: bool = False,
    ) -> Payment:
        body: dict[str, Any] = {"address": address, "currency": currency}
        if amount:
            body["amount"] = amount
        if description:
            body["description"] = description
        if send_max_lightning:
            body["sendMaxLightning"] = True
        if send_max_btc:
            body["sendMaxBtc"] = True

        logger.debug(f"{operation}: paying {amount} {currency}")
        data = await self.post_request(ENDPOINT_PAYMENT, body)
        return parse_response(operation, data, Payment.from_json)

    async def pay_invoice(self, invoice: str, description: str = "") -> Payment:
        """Pay a fixed-amount lightning invoice.

        Raises:
            InvalidInvoiceError: If the invoice is not valid.
            NoAmountError: If the invoice has no amount; use
                pay_variable_invoice() instead.
        """
        amount = parse_invoice_amount(invoice)
        return await self._new_payment(
            "PayInvoice", invoice, PAYMENT_CURRENCY_LIGHTNING, amount, description
        )

    async def pay_variable_invoice(
        self, invoice: str, amount: Decimal, description: str = ""
    ) -> Payment:
        """Pay ``amount`` BTC to a variable-amount lightning invoice.

        Raises:
            InvalidInvoiceError: If the invoice is not valid.
            FixedAmountError: If the invoice specifies its own amount; use
                pay_invoice() instead.
        """
        try:
            parse_invoice_amount(invoice)
        except NoAmountError:
            pass
        else:
            raise FixedAmountError(invoice)

        return await self._new_payment(
            "PayVariableInvoice", invoice, PAYMENT_CURRENCY_LIGHTNING, amount, description
        )

    async def pay_on_chain(
        self, address: str, amount: Decimal, description: str = ""
    ) -> Payment:
        """Send ``amount`` BTC in an on-chain transaction to ``address``."""
        return await self._new_payment(
            "PayOnChain", address, PAYMENT_CURRENCY_BITCOIN, amount, description
        )

    async def sweep_lightning(self, invoice: str, description: str = "") -> Payment:
        """Send the whole confirmed balance to a variable-amount invoice.

        Raises:
            InvalidInvoiceError: If the invoice is not valid.
            FixedAmountError: If the invoice embeds a fixed amount.
            InsufficientFundsError: If the balance cannot cover the fee.
        """
        try:
            parse_invoice_amount(invoice)
        except NoAmountError:
            pass
        else:
            raise FixedAmountError(invoice)

        balance, fees = await self._reader.balance_and_fee(invoice)
        amount = sweep_lightning_amount(balance, fees)
        return await self._new_payment(
            "SweepLightning",
            invoice,
            PAYMENT_CURRENCY_LIGHTNING,
            amount,
            description,
            send_max_lightning=True,
        )

    async def sweep_on_chain(self, address: str, description: str = "") -> Payment:
        """Send the whole confirmed balance, net of fees, to an on-chain address.

        Raises:
            InsufficientFundsError: If the balance cannot cover the fixed fee
                and commission.
        """
        balance, fees = await self._reader.balance_and_fee(address)
        amount = sweep_on_chain_amount(balance, fees)
        return await self._new_payment(
            "SweepOnChain",
            address,
            PAYMENT_CURRENCY_BITCOIN,
            amount,
            description,
            send_max_btc=True,
        )


@dataclass(frozen=True)
class Credentials:
    """API token (read access) and API secret (write access) for a wallet."""

    api_secret: str
    api_token: str

    def __repr__(self) -> str:
        return "Credentials(api_secret=***, api_token=***)"

    @classmethod
    def from_env(cls) -> Credentials:
        """Load credentials from WOS_API_TOKEN / WOS_API_SECRET.

        Falls back to apiToken / apiSecret in ~/.wos/config.json.
        Placeholder values like "${WOS_API_TOKEN}" are ignored.

        Raises:
            NoCredentialsError: If no API token is found.
        """
        config = load_config()
        api_token = resolve_credential(API_TOKEN_ENV, "apiToken", config)
        if not api_token:
            raise NoCredentialsError()
        api_secret = resolve_credential(API_SECRET_ENV, "apiSecret", config)
        return cls(api_secret=api_secret, api_token=api_token)

    def reader(self, **kwargs: Any) -> Reader:
        """A read-only Reader for this wallet. kwargs go to Reader()."""
        return Reader(self.api_token, **kwargs)

    def simple_signer(self) -> SimpleSigner:
        """Signer keyed with the API secret.

        Raises:
            NoCredentialsError: If there is no API secret (read-only credentials).
        """
        if not self.api_secret:
            raise NoCredentialsError(
                "No API secret configured; write access needs WOS_API_SECRET "
                "or apiSecret in ~/.wos/config.json"
            )
        return SimpleSigner(self.api_secret)

    async def open_wallet(self, **kwargs: Any) -> Wallet:
        """Open the wallet, signing with the API secret. kwargs go to Reader()."""
        signer = self.simple_signer()
        return await Wallet.open(self.reader(**kwargs), signer)
