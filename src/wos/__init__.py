"""wos: async Python client for the Wallet of Satoshi API.

Wallet of Satoshi is a custodial Bitcoin Lightning wallet. Its REST API is
undocumented; this client follows how the official apps use it.

Usage:
    import wos

    # Read-only access needs just the API token
    reader = wos.Reader(api_token)
    balance, fees = await reader.balance_and_fee("lnbc10u1p...")

    # Write access signs requests with the API secret
    wallet = await wos.Credentials(api_secret, api_token).open_wallet()
    payment = await wallet.pay_invoice("lnbc10u1p...", "coffee")

    # Or keep the secret elsewhere behind your own Signer
    wallet = await wos.Wallet.open(reader, wos.RemoteSigner("https://signer.example/sign"))
"""

from wos.bolt11 import (
    AmountDecodeError,
    decode_amount,
    msat_to_btc,
    parse_invoice_amount,
    parse_invoice_msat,
)
from wos.exceptions import (
    DecodeError,
    FixedAmountError,
    InsufficientFundsError,
    InvalidInvoiceError,
    NoAmountError,
    NoCredentialsError,
    SigningRefusedError,
    TransportError,
    WosError,
)
from wos.models import Addresses, Balance, FeeEstimate, Invoice, Payment
from wos.reader import Reader
from wos.signer import RemoteSigner, Signer, SimpleSigner, generate_nonce
from wos.sweep import sweep_lightning_amount, sweep_on_chain_amount
from wos.wallet import Credentials, Wallet

__version__ = "0.1.0"

__all__ = [
    # Clients
    "Reader",
    "Wallet",
    "Credentials",
    # Signing
    "Signer",
    "SimpleSigner",
    "RemoteSigner",
    "generate_nonce",
    # Invoices
    "decode_amount",
    "parse_invoice_amount",
    "parse_invoice_msat",
    "msat_to_btc",
    "AmountDecodeError",
    # Sweeps
    "sweep_on_chain_amount",
    "sweep_lightning_amount",
    # Models
    "Addresses",
    "Balance",
    "FeeEstimate",
    "Invoice",
    "Payment",
    # Exceptions
    "WosError",
    "DecodeError",
    "InvalidInvoiceError",
    "NoAmountError",
    "FixedAmountError",
    "SigningRefusedError",
    "TransportError",
    "InsufficientFundsError",
    "NoCredentialsError",
]
