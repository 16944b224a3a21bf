"""
sim/valuation.py - Value Degradation Functions

A value chain maps (nominal value, excess time) -> realized value of an end
product. Excess time is the time beyond the minimal cycle time (the sum of
all norm efforts of the chain) it took the item to reach the output basket.
"""

from functools import partial
from typing import Callable, Optional

TimeValuationFct = Callable[[float, float], float]


def discounted(disc_rate: float, value: float, excess_time: float) -> float:
    """
    Reduce the value by disc_rate for every full time unit of excess time.

    discounted(0.1, 100, 1) -> 90
    discounted(0.15, 100, 3) -> 61.4125
    """
    while excess_time >= 1:
        value *= (1 - disc_rate)
        excess_time -= 1
    return value


def expired(expiry_time: float, value: float, excess_time: float) -> float:
    """
    Full value before expiry, worthless from expiry_time on.

    expired(3, 100, 2) -> 100
    expired(3, 100, 3) -> 0
    """
    return value if excess_time < expiry_time else 0


def net(value: float, excess_time: float) -> float:
    """No degradation."""
    return value


def value_degradation_fct(name: Optional[str], argument: float = 0) -> Optional[TimeValuationFct]:
    """
    Bind a degradation function by its configuration name.

    Returns:
        The bound function, or None if the name is unknown
    """
    if name == "discounted":
        return partial(discounted, argument)
    if name == "expired":
        return partial(expired, argument)
    if name == "net":
        return net
    return None
