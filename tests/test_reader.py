"""Tests for the read-only Reader and concurrent balance/fee fetching."""

from __future__ import annotations

import asyncio
from decimal import Decimal

import httpx
import pytest

from wos.config import ENDPOINT_BALANCE, ENDPOINT_FEE_ESTIMATE
from wos.exceptions import TransportError, WosError
from wos.models import Balance, FeeEstimate
from wos.reader import Reader

from vectors import LNBC_25M, LNBC_NO_AMOUNT

TOKEN = "93b9c574-30a2-4bf5-81ba-f9feadb313a7"


class MockWosTransport(httpx.AsyncBaseTransport):
    """Mocks the read-only Wallet of Satoshi endpoints."""

    def __init__(self, on_chain: str = "bc1qdeposit"):
        self.on_chain = on_chain
        self.requests: list[httpx.Request] = []

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.headers.get("api-token") != TOKEN:
            return httpx.Response(401, json={"message": "bad token"})

        path = request.url.path
        if path == "/api/v1/wallet/account":
            return httpx.Response(
                200,
                json={
                    "btcDepositAddress": self.on_chain,
                    "lightningAddress": "dorsalpuma54@walletofsatoshi.com",
                },
            )
        if path == "/api/v1/wallet/balance":
            return httpx.Response(
                200, json={"btc": 0.5, "btcUnconfirmed": 0.25, "lightning": -0.1}
            )
        if path == "/api/v1/wallet/feeEstimate":
            return httpx.Response(
                200,
                json={
                    "btcFixedFee": 0.0001,
                    "btcMinerFeePerKb": 0.00002,
                    "btcSendCommissionPercent": 0.01,
                    "btcSendFeeWarningPercent": 0.05,
                    "lightningFee": 0.000001,
                    "sendMaxLightningFee": 0.00001,
                    "wosInvoice": False,
                },
            )
        if path == "/api/v1/wallet/payment":
            return httpx.Response(
                200,
                json=[
                    {
                        "id": "c1",
                        "address": "dorsalpuma54@walletofsatoshi.com",
                        "amount": 0.0001,
                        "currency": "LIGHTNING",
                        "status": "PAID",
                        "type": "CREDIT",
                        "description": "zap",
                        "time": "2024-03-01T12:00:00.000Z",
                        "transactionId": "ab" * 32,
                        "isLikelySpam": False,
                        "isWosPos": False,
                    }
                ],
            )
        return httpx.Response(404, text="not found")


def make_reader(transport: httpx.AsyncBaseTransport, token: str = TOKEN) -> Reader:
    return Reader(token, transport=transport)


class TestReaderRequests:
    def test_constructor_defaults(self):
        reader = Reader(TOKEN)
        assert reader.api_token == TOKEN
        assert reader._base_url == "https://www.livingroomofsatoshi.com"

    def test_custom_base_url(self):
        reader = Reader(TOKEN, base_url="https://wos.example/")
        assert reader._base_url == "https://wos.example"

    @pytest.mark.asyncio
    async def test_get_request_sends_token(self):
        transport = MockWosTransport()
        await make_reader(transport).get_request(ENDPOINT_BALANCE)

        request = transport.requests[0]
        assert request.method == "GET"
        assert request.headers["api-token"] == TOKEN
        assert request.headers["user-agent"] == ""
        assert str(request.url) == "https://www.livingroomofsatoshi.com/api/v1/wallet/balance"

    @pytest.mark.asyncio
    async def test_error_status_uses_json_message(self):
        reader = make_reader(MockWosTransport(), token="wrong")
        with pytest.raises(TransportError, match="bad token") as exc_info:
            await reader.balance()
        assert exc_info.value.status_code == 401
        assert exc_info.value.method == "GET"
        assert exc_info.value.endpoint == ENDPOINT_BALANCE

    @pytest.mark.asyncio
    async def test_error_status_falls_back_to_body(self):
        with pytest.raises(TransportError, match="not found") as exc_info:
            await make_reader(MockWosTransport()).get_request("/api/v1/unknown")
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_connection_error(self):
        class Unreachable(httpx.AsyncBaseTransport):
            async def handle_async_request(self, request):
                raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TransportError, match="request failed") as exc_info:
            await make_reader(Unreachable()).balance()
        assert exc_info.value.status_code is None
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


class TestReaderEndpoints:
    @pytest.mark.asyncio
    async def test_addresses(self):
        addresses = await make_reader(MockWosTransport()).addresses()
        assert addresses.on_chain == "bc1qdeposit"
        assert addresses.lightning == "dorsalpuma54@walletofsatoshi.com"

    @pytest.mark.asyncio
    async def test_addresses_unsupported_region(self):
        with pytest.raises(WosError, match="unsupported region"):
            await make_reader(MockWosTransport(on_chain="")).addresses()

    @pytest.mark.asyncio
    async def test_balance(self):
        balance = await make_reader(MockWosTransport()).balance()
        assert balance.confirmed == Decimal("0.5")
        assert balance.unconfirmed == Decimal("0.25")
        assert balance.total == Decimal("0.75")

    @pytest.mark.asyncio
    async def test_fee_estimate_for_address(self):
        transport = MockWosTransport()
        fees = await make_reader(transport).fee_estimate("bc1qdestination")

        params = transport.requests[0].url.params
        assert params["address"] == "bc1qdestination"
        assert "amount" not in params
        assert fees.btc_fixed_fee == Decimal("0.0001")
        assert fees.btc_send_commission_percent == Decimal("0.01")
        assert fees.max_lightning_fee == Decimal("0.00001")
        assert fees.is_wos_invoice is False

    @pytest.mark.asyncio
    async def test_fee_estimate_sends_invoice_amount(self):
        transport = MockWosTransport()
        await make_reader(transport).fee_estimate(LNBC_25M)

        params = transport.requests[0].url.params
        assert params["address"] == LNBC_25M
        assert params["amount"] == "0.02500000000"

    @pytest.mark.asyncio
    async def test_fee_estimate_variable_invoice_has_no_amount(self):
        transport = MockWosTransport()
        await make_reader(transport).fee_estimate(LNBC_NO_AMOUNT)
        assert "amount" not in transport.requests[0].url.params

    @pytest.mark.asyncio
    async def test_fee_estimate_empty_destination(self):
        transport = MockWosTransport()
        await make_reader(transport).fee_estimate("")
        assert transport.requests[0].url.params == httpx.QueryParams()

    @pytest.mark.asyncio
    async def test_list_payments(self):
        transport = MockWosTransport()
        payments = await make_reader(transport).list_payments()

        assert transport.requests[0].url.params["skip"] == "0"
        assert transport.requests[0].url.params["reverse"] == "false"
        assert len(payments) == 1
        payment = payments[0]
        assert payment.amount == Decimal("0.0001")
        assert payment.currency == "LIGHTNING"
        assert payment.status == "PAID"
        assert payment.type == "CREDIT"
        assert payment.txid == "ab" * 32
        assert payment.time is not None and payment.time.year == 2024


class StubReader(Reader):
    """Reader whose reads are scripted coroutines that record cancellation."""

    def __init__(self, balance_result=None, fee_result=None, balance_delay=0.0, fee_delay=0.0):
        super().__init__(TOKEN)
        self._balance_result = balance_result
        self._fee_result = fee_result
        self._balance_delay = balance_delay
        self._fee_delay = fee_delay
        self.balance_cancelled = asyncio.Event()
        self.fee_cancelled = asyncio.Event()
        self.fee_destinations: list[str] = []

    @staticmethod
    async def _run(result, delay, cancelled: asyncio.Event):
        try:
            await asyncio.sleep(delay)
        except asyncio.CancelledError:
            cancelled.set()
            raise
        if isinstance(result, BaseException):
            raise result
        return result

    async def balance(self):
        return await self._run(self._balance_result, self._balance_delay, self.balance_cancelled)

    async def fee_estimate(self, address_or_invoice):
        self.fee_destinations.append(address_or_invoice)
        return await self._run(self._fee_result, self._fee_delay, self.fee_cancelled)


BALANCE = Balance(confirmed=Decimal("1.0"))
FEES = FeeEstimate(btc_fixed_fee=Decimal("0.0001"))


class TestBalanceAndFee:
    @pytest.mark.asyncio
    async def test_both_succeed(self):
        reader = StubReader(BALANCE, FEES, balance_delay=0.01)
        balance, fees = await reader.balance_and_fee("bc1qdestination")
        assert balance == BALANCE
        assert fees == FEES
        assert reader.fee_destinations == ["bc1qdestination"]

    @pytest.mark.asyncio
    async def test_result_order_independent_of_completion_order(self):
        reader = StubReader(BALANCE, FEES, fee_delay=0.01)
        assert await reader.balance_and_fee("bc1q") == (BALANCE, FEES)

    @pytest.mark.asyncio
    async def test_balance_failure_cancels_fee_request(self):
        error = TransportError("GET", ENDPOINT_BALANCE, "boom", status_code=500)
        reader = StubReader(error, FEES, fee_delay=3600)

        with pytest.raises(TransportError) as exc_info:
            await reader.balance_and_fee("bc1q")
        assert exc_info.value is error
        assert exc_info.value.partial == (None, None)

        await asyncio.wait_for(reader.fee_cancelled.wait(), timeout=1)

    @pytest.mark.asyncio
    async def test_fee_failure_cancels_balance_request(self):
        error = TransportError("GET", ENDPOINT_FEE_ESTIMATE, "boom", status_code=500)
        reader = StubReader(BALANCE, error, balance_delay=3600)

        with pytest.raises(TransportError) as exc_info:
            await reader.balance_and_fee("bc1q")
        assert exc_info.value is error

        await asyncio.wait_for(reader.balance_cancelled.wait(), timeout=1)

    @pytest.mark.asyncio
    async def test_failure_after_other_succeeded(self):
        error = TransportError("GET", ENDPOINT_FEE_ESTIMATE, "late", status_code=503)
        reader = StubReader(BALANCE, error, fee_delay=0.01)

        with pytest.raises(TransportError, match="late") as exc_info:
            await reader.balance_and_fee("bc1q")
        assert not reader.balance_cancelled.is_set()
        assert exc_info.value.partial == (BALANCE, None)

    @pytest.mark.asyncio
    async def test_only_one_error_surfaces(self):
        balance_error = TransportError("GET", ENDPOINT_BALANCE, "a", status_code=500)
        fee_error = TransportError("GET", ENDPOINT_FEE_ESTIMATE, "b", status_code=500)
        reader = StubReader(balance_error, fee_error)

        with pytest.raises(TransportError) as exc_info:
            await reader.balance_and_fee("bc1q")
        assert exc_info.value in (balance_error, fee_error)

    @pytest.mark.asyncio
    async def test_caller_timeout_cancels_both(self):
        reader = StubReader(BALANCE, FEES, balance_delay=3600, fee_delay=3600)

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(reader.balance_and_fee("bc1q"), timeout=0.05)

        await asyncio.wait_for(reader.balance_cancelled.wait(), timeout=1)
        await asyncio.wait_for(reader.fee_cancelled.wait(), timeout=1)

    @pytest.mark.asyncio
    async def test_against_mock_api(self):
        balance, fees = await make_reader(MockWosTransport()).balance_and_fee("bc1q")
        assert balance.confirmed == Decimal("0.5")
        assert fees.btc_fixed_fee == Decimal("0.0001")


class StaticTransport(httpx.AsyncBaseTransport):
    """Answers every request with the same 200 body."""

    def __init__(self, body: bytes):
        self.body = body

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=self.body)


class TestMalformedResponses:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            b'{"btc": "abc"}',
            b'{"btc": true}',
            b'{"btc": {"value": 1}}',
            b"null",
            b"[1]",
            b"not json",
        ],
    )
    async def test_balance(self, body):
        with pytest.raises(WosError, match="invalid Balance response") as exc_info:
            await make_reader(StaticTransport(body)).balance()
        assert exc_info.value.__cause__ is not None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [b"null", b"[]", b'{"btcFixedFee": "free"}'])
    async def test_fee_estimate(self, body):
        with pytest.raises(WosError, match="invalid FeeEstimate response"):
            await make_reader(StaticTransport(body)).fee_estimate("bc1q")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [b"null", b'"text"'])
    async def test_addresses(self, body):
        with pytest.raises(WosError, match="invalid Addresses response"):
            await make_reader(StaticTransport(body)).addresses()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            b"null",
            b'{"id": "c1"}',
            b"[1]",
            b'[{"id": "c1", "amount": 0.1, "time": "yesterday"}]',
            b'[{"id": "c1", "amount": 0.1, "time": 1709294400}]',
        ],
    )
    async def test_list_payments(self, body):
        with pytest.raises(WosError, match="invalid ListPayments response"):
            await make_reader(StaticTransport(body)).list_payments()

    @pytest.mark.asyncio
    async def test_aggregator_raises_wos_error(self):
        reader = make_reader(StaticTransport(b'{"btc": "abc"}'))
        with pytest.raises(WosError, match="invalid"):
            await reader.balance_and_fee("bc1q")
