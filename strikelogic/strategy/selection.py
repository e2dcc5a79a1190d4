"""
Strike selection helpers shared by the strategy recipes.

"Nth OTM / ITM" selection walks outward from the strike closest to the
current price:
- OTM call / ITM put: walk toward higher strikes, counting strikes > price
- OTM put / ITM call: walk toward lower strikes, counting strikes < price
"""

from typing import List, Optional

from strikelogic.core.models import OptionQuote, OptionType


def find_closest(
    option_chain: List[OptionQuote],
    target_strike: float,
    option_type: OptionType
) -> Optional[OptionQuote]:
    """
    Option of the given type whose strike is nearest to ``target_strike``.

    Ties keep the first contract encountered in chain order.
    Returns None if the chain has no contract of that type.
    """
    best = None
    min_diff = float('inf')

    for opt in option_chain:
        if opt.option_type is not option_type:
            continue
        diff = abs(opt.strike - target_strike)
        if diff < min_diff:
            min_diff = diff
            best = opt

    return best


def _sorted_with_anchor(
    option_chain: List[OptionQuote],
    current_price: float,
    option_type: OptionType
) -> tuple[List[OptionQuote], int]:
    """Chain sorted by strike and the index of the strike closest to price (-1 if none)"""
    sorted_chain = sorted(option_chain, key=lambda opt: opt.strike)

    anchor = -1
    min_diff = float('inf')
    for i, opt in enumerate(sorted_chain):
        if opt.option_type is not option_type:
            continue
        diff = abs(opt.strike - current_price)
        if diff < min_diff:
            min_diff = diff
            anchor = i

    return sorted_chain, anchor


def _walk(
    sorted_chain: List[OptionQuote],
    anchor: int,
    current_price: float,
    option_type: OptionType,
    steps: int,
    upward: bool
) -> Optional[OptionQuote]:
    if upward:
        indices = range(anchor, len(sorted_chain))
    else:
        indices = range(anchor, -1, -1)

    count = 0
    for i in indices:
        opt = sorted_chain[i]
        if opt.option_type is not option_type:
            continue
        beyond = opt.strike > current_price if upward else opt.strike < current_price
        if beyond:
            count += 1
            if count == steps:
                return opt

    return None


def find_otm(
    option_chain: List[OptionQuote],
    current_price: float,
    option_type: OptionType,
    steps: int = 1
) -> Optional[OptionQuote]:
    """
    The ``steps``-th out-of-the-money strike of the given type.

    Example:
        >>> # Spot 100, strikes 85..115 every 5
        >>> find_otm(chain, 100.0, OptionType.CALL, 1).strike
        105.0
        >>> find_otm(chain, 100.0, OptionType.PUT, 3).strike
        85.0
    """
    sorted_chain, anchor = _sorted_with_anchor(option_chain, current_price, option_type)
    if anchor == -1:
        return None

    upward = option_type is OptionType.CALL
    return _walk(sorted_chain, anchor, current_price, option_type, steps, upward)


def find_itm(
    option_chain: List[OptionQuote],
    current_price: float,
    option_type: OptionType,
    steps: int = 1
) -> Optional[OptionQuote]:
    """The ``steps``-th in-the-money strike of the given type."""
    sorted_chain, anchor = _sorted_with_anchor(option_chain, current_price, option_type)
    if anchor == -1:
        return None

    upward = option_type is OptionType.PUT
    return _walk(sorted_chain, anchor, current_price, option_type, steps, upward)
