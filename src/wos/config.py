"""Process-wide constants and credential resolution.

Credentials are resolved from environment variables first, then from
~/.wos/config.json. Nothing here is ever written back to disk.
"""

from __future__ import annotations

import json
import os
from pathlib import Path

# API URL for the Wallet of Satoshi service.
BASE_URL = "https://www.livingroomofsatoshi.com"

ENDPOINT_ACCOUNT = "/api/v1/wallet/account"
ENDPOINT_BALANCE = "/api/v1/wallet/balance"
ENDPOINT_FEE_ESTIMATE = "/api/v1/wallet/feeEstimate"
ENDPOINT_PAYMENT = "/api/v1/wallet/payment"
ENDPOINT_CREATE_INVOICE = "/api/v1/wallet/createInvoice"

DEFAULT_TIMEOUT = 60.0

# BOLT11 human-readable part: "ln" + network + optional amount.
LIGHTNING_PREFIX = "ln"
MAINNET_NETWORK = "bc"

# Smallest pico-BTC magnitude that maps to a whole millisatoshi.
MIN_PICO_AMOUNT = 10

MSAT_PER_SAT = 1_000
SATS_PER_BTC = 100_000_000
MSAT_PER_BTC = SATS_PER_BTC * MSAT_PER_SAT
MAX_MSAT = 21_000_000 * MSAT_PER_BTC

# Nonces are random bytes, base64-encoded for the Nonce header.
NONCE_SIZE = 16

API_TOKEN_ENV = "WOS_API_TOKEN"
API_SECRET_ENV = "WOS_API_SECRET"

_CONFIG_PATH = Path.home() / ".wos" / "config.json"


def _is_real_value(val: str | None) -> bool:
    """Check if an env var value is a real credential (not a placeholder)."""
    if not val:
        return False
    return not val.startswith("${")


def load_config(path: Path | None = None) -> dict:
    """Load ~/.wos/config.json if it exists."""
    path = path or _CONFIG_PATH
    try:
        if path.exists():
            return json.loads(path.read_text())
    except (json.JSONDecodeError, OSError):
        pass
    return {}


def resolve_credential(env_var: str, config_key: str, config: dict) -> str:
    """Resolve a credential: env var first (skip placeholders), then config file."""
    val = os.environ.get(env_var, "")
    if _is_real_value(val):
        return val
    return config.get(config_key, "")
