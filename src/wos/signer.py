"""Request signing for write access to a wallet.

Every POST to the API carries an HMAC-SHA256 signature over

    endpoint + nonce + api_token + request_body

concatenated with no delimiters, in exactly that order. The remote service
recomputes the same string, so the order is part of the wire format.

The secret may live elsewhere (a remote signing service, an HSM, a policy
engine that enforces spending limits), so signing is a pluggable Signer
with a single sign_request() method.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import secrets
from abc import ABC, abstractmethod

import httpx

from wos.config import DEFAULT_TIMEOUT, NONCE_SIZE
from wos.exceptions import SigningRefusedError


class Signer(ABC):
    """Abstract base for request signers."""

    @abstractmethod
    async def sign_request(
        self, endpoint: str, nonce: str, api_token: str, request_body: str
    ) -> bytes:
        """Return the HMAC-SHA256 of endpoint + nonce + api_token + request_body.

        A signer may inspect the request and decline to sign it.

        Raises:
            SigningRefusedError: If the signer will not sign the request.
        """


class SimpleSigner(Signer):
    """Signs every request with a static API secret, no validation."""

    def __init__(self, api_secret: str):
        self._api_secret = api_secret

    async def sign_request(
        self, endpoint: str, nonce: str, api_token: str, request_body: str
    ) -> bytes:
        return hmac_signature(self._api_secret, endpoint, nonce, api_token, request_body)


class RemoteSigner(Signer):
    """Delegates signing to a remote HTTP service holding the secret.

    POSTs ``{"endpoint", "nonce", "body"}`` as JSON and expects the raw
    signature bytes back. The API token is not sent; the remote service
    is assumed to know it already.
    """

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._url = url
        self._timeout = timeout
        self._transport = transport

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def sign_request(
        self, endpoint: str, nonce: str, api_token: str, request_body: str
    ) -> bytes:
        async with self._build_client() as client:
            try:
                resp = await client.post(
                    self._url,
                    json={"endpoint": endpoint, "nonce": nonce, "body": request_body},
                )
            except httpx.HTTPError as e:
                raise SigningRefusedError(endpoint, f"remote signer unreachable: {e}") from e

            if resp.status_code != 200:
                raise SigningRefusedError(
                    endpoint, f"remote signer returned {resp.status_code}: {resp.text}"
                )
            return resp.content


def hmac_signature(
    secret: str, endpoint: str, nonce: str, api_token: str, request_body: str
) -> bytes:
    """Compute the request HMAC-SHA256 with the given secret."""
    mac = hmac.new(secret.encode(), digestmod=hashlib.sha256)
    mac.update(endpoint.encode())
    mac.update(nonce.encode())
    mac.update(api_token.encode())
    mac.update(request_body.encode())
    return mac.digest()


def generate_nonce(size: int = NONCE_SIZE) -> str:
    """Return a fresh base64-encoded random nonce of ``size`` bytes."""
    if size < NONCE_SIZE:
        raise ValueError(f"nonce must be at least {NONCE_SIZE} bytes")
    return base64.b64encode(secrets.token_bytes(size)).decode()


def build_auth_headers(api_token: str, nonce: str, signature: bytes) -> dict[str, str]:
    """Headers authenticating a signed POST request."""
    return {
        "Api-Token": api_token,
        "Nonce": nonce,
        "Signature": signature.hex(),
    }
