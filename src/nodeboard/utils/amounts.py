"""Token amount helpers (ether units <-> wei strings)."""

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

from web3 import Web3

_LEADING_NUMBER = re.compile(r"^\s*([-+]?\d+(?:\.\d+)?)")


def to_wei_string(amount: Union[int, float, str, Decimal]) -> str:
    """Convert a token amount in ether units to a wei string.

    Args:
        amount: Amount in whole tokens (e.g. 1.5)

    Returns:
        Decimal string of the wei amount, as the backend expects it

    Raises:
        ValueError: If the amount is not a positive number
    """
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {amount!r}")
    if value <= 0:
        raise ValueError(f"Amount must be positive: {amount!r}")
    return str(Web3.to_wei(value, "ether"))


def from_wei(value: Any) -> Decimal:
    """Convert a wei value (int or numeric string) to ether units."""
    if value in (None, ""):
        return Decimal(0)
    return Decimal(Web3.from_wei(int(Decimal(str(value))), "ether"))


def leading_number(value: Any) -> Optional[float]:
    """Parse the leading number of a report value such as ``"16.000000 ETH"``.

    Returns:
        The number, or None when the value does not start with one
    """
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = _LEADING_NUMBER.match(str(value))
    if match is None:
        return None
    return float(match.group(1))
