"""Read-only access to a Wallet of Satoshi wallet.

A Reader only needs the API token. It can fetch balances, addresses,
payment history and fee estimates, but cannot move funds.
"""

from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import Any, Callable, TypeVar

import httpx
from loguru import logger

from wos.bolt11 import parse_invoice_amount
from wos.config import (
    BASE_URL,
    DEFAULT_TIMEOUT,
    ENDPOINT_ACCOUNT,
    ENDPOINT_BALANCE,
    ENDPOINT_FEE_ESTIMATE,
    ENDPOINT_PAYMENT,
)
from wos.exceptions import InvalidInvoiceError, NoAmountError, TransportError, WosError
from wos.models import Addresses, Balance, FeeEstimate, Payment, parse_response

T = TypeVar("T")


def check_response(method: str, endpoint: str, resp: httpx.Response) -> None:
    """Raise TransportError unless the response status is 200.

    The error carries the API's JSON ``message`` when there is one,
    otherwise the raw body.
    """
    if resp.status_code == 200:
        return

    detail = resp.text
    try:
        message = resp.json().get("message")
    except (ValueError, AttributeError):
        message = None
    if message:
        detail = message
    raise TransportError(method, endpoint, detail, status_code=resp.status_code)


def _payments(payload: list) -> list[Payment]:
    return [Payment.from_json(p) for p in payload]


def _discard_outcome(task: asyncio.Task) -> None:
    """Retrieve a finished task's outcome so asyncio does not warn about it."""
    if not task.cancelled():
        task.exception()


def _result_or_none(task: asyncio.Task, done: set[asyncio.Task]) -> Any:
    if task in done and task.exception() is None:
        return task.result()
    return None


class Reader:
    """Read-only client bound to an API token.

    Args:
        api_token: The wallet's read-only access token.
        base_url: API base URL. Defaults to the public Wallet of Satoshi API.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (used by tests).
    """

    def __init__(
        self,
        api_token: str,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_token = api_token
        self._base_url = (base_url or BASE_URL).rstrip("/")
        self._timeout = timeout
        self._transport = transport

    @property
    def api_token(self) -> str:
        return self._api_token

    def build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers={"User-Agent": ""},
            timeout=self._timeout,
            transport=self._transport,
        )

    async def get_request(self, endpoint: str, params: dict[str, str] | None = None) -> bytes:
        """GET an endpoint authenticated with the API token.

        Raises:
            TransportError: On connection failure or a non-200 response.
        """
        logger.debug(f"GET {endpoint}")
        async with self.build_client() as client:
            try:
                resp = await client.get(
                    endpoint, params=params, headers={"Api-Token": self._api_token}
                )
            except httpx.HTTPError as e:
                raise TransportError("GET", endpoint, str(e)) from e

        check_response("GET", endpoint, resp)
        return resp.content

    async def _get(
        self, endpoint: str, operation: str, build: Callable[[Any], T], **kwargs: Any
    ) -> T:
        data = await self.get_request(endpoint, **kwargs)
        return parse_response(operation, data, build)

    async def addresses(self) -> Addresses:
        """Re-fetch the wallet's on-chain and lightning addresses."""
        addresses = await self._get(ENDPOINT_ACCOUNT, "Addresses", Addresses.from_json)
        if not addresses.on_chain:
            raise WosError("Addresses: unsupported region")
        return addresses

    async def balance(self) -> Balance:
        """Current confirmed and unconfirmed balances."""
        return await self._get(ENDPOINT_BALANCE, "Balance", Balance.from_json)

    async def fee_estimate(self, address_or_invoice: str) -> FeeEstimate:
        """Fetch fees for paying an on-chain address or lightning invoice.

        Fixed-amount mainnet invoices also send their amount so the service
        can quote the exact lightning fee.
        """
        params: dict[str, str] = {}
        if address_or_invoice:
            params["address"] = address_or_invoice
        try:
            amount = parse_invoice_amount(address_or_invoice)
        except (InvalidInvoiceError, NoAmountError):
            pass
        else:
            params["amount"] = format_amount(amount)

        return await self._get(
            ENDPOINT_FEE_ESTIMATE, "FeeEstimate", FeeEstimate.from_json, params=params
        )

    async def list_payments(self) -> list[Payment]:
        """The wallet's payment history, oldest first."""
        params = {"skip": "0", "reverse": "false"}
        return await self._get(ENDPOINT_PAYMENT, "ListPayments", _payments, params=params)

    async def balance_and_fee(self, address_or_invoice: str) -> tuple[Balance, FeeEstimate]:
        """Fetch the balance and a fee estimate concurrently.

        Both requests run at once. If either fails, the other is cancelled
        and the first error is raised; any later error is discarded. If the
        caller is cancelled, both requests are cancelled with it.

        The raised error's ``partial`` attribute holds ``(balance, fees)``,
        each None unless that request had already succeeded.
        """
        balance_task = asyncio.create_task(self.balance())
        fee_task = asyncio.create_task(self.fee_estimate(address_or_invoice))
        tasks = (balance_task, fee_task)

        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
                    task.add_done_callback(_discard_outcome)

        error: BaseException | None = None
        for task in done:
            exc = task.exception()
            if exc is not None and error is None:
                error = exc

        if error is not None:
            error.partial = (
                _result_or_none(balance_task, done),
                _result_or_none(fee_task, done),
            )
            pending = [t for t in tasks if t not in done]
            if pending:
                logger.warning(f"balance_and_fee failed, cancelled sibling request: {error}")
            raise error

        return balance_task.result(), fee_task.result()


def format_amount(amount: Decimal) -> str:
    """Format a BTC amount with 11 decimal places for query strings."""
    return f"{amount:.11f}"
