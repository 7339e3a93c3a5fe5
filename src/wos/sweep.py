"""Sweep amount calculation.

A sweep sends the whole confirmed balance minus fees. The balance and fee
estimate must come from the same Reader.balance_and_fee() call, made for
the destination being swept to; a stale or foreign estimate gives a
wrong amount.
"""

from __future__ import annotations

from decimal import Decimal

from wos.exceptions import InsufficientFundsError
from wos.models import Balance, FeeEstimate


def sweep_on_chain_amount(balance: Balance, fees: FeeEstimate) -> Decimal:
    """Largest amount payable on-chain from the confirmed balance.

    The commission is charged on the whole confirmed balance, not on
    what is left after the fixed fee, matching how the service bills it.

    Raises:
        InsufficientFundsError: If the balance cannot cover the fixed fee,
            or nothing is left after the commission.
    """
    available = balance.confirmed - fees.btc_fixed_fee
    if available < 0:
        raise InsufficientFundsError("fee", balance.confirmed, fees.btc_fixed_fee)

    commission = fees.btc_send_commission_percent * balance.confirmed
    amount = available - commission
    if amount <= 0:
        raise InsufficientFundsError("commission", available, commission)
    return amount


def sweep_lightning_amount(balance: Balance, fees: FeeEstimate) -> Decimal:
    """Largest amount payable over lightning from the confirmed balance.

    Raises:
        InsufficientFundsError: If the balance does not exceed the maximum
            lightning fee.
    """
    amount = balance.confirmed - fees.max_lightning_fee
    if amount <= 0:
        raise InsufficientFundsError("lightning_fee", balance.confirmed, fees.max_lightning_fee)
    return amount
