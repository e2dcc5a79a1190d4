"""
Strategy builders: construct named multi-leg trades from an option chain.

The catalogue is a fixed, ordered tuple of recipes. Each recipe is a pure
function of (chain, current price, target price) that returns a Trade or
None when the chain lacks the strikes it needs.

Key Design Principle:
- Recipes only define trade STRUCTURE (which contracts, which side)
- Pricing analytics are attached afterwards by the metrics analyzer
- Chain must already be isolated to a single expiration
"""

import logging
import math
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import List, Optional, Protocol, Union

from strikelogic.analytics.metrics import SCAN_MULTIPLIER, SCAN_STEPS, analyze_trade
from strikelogic.core.errors import EmptyChainError, InvalidInputError
from strikelogic.core.models import Action, OptionQuote, OptionType, Sentiment, Trade, TradeLeg
from strikelogic.data.chain_loader import filter_chain_by_closest_expiry
from strikelogic.pricing.black_scholes import expiry_datetime
from strikelogic.strategy.selection import find_closest, find_itm, find_otm

logger = logging.getLogger(__name__)


CALL = OptionType.CALL
PUT = OptionType.PUT


class IRecipeBuilder(Protocol):
    """
    Protocol for recipe functions.

    Returns a Trade without metrics, or None if the recipe is infeasible
    for this chain.
    """

    def __call__(
        self,
        option_chain: List[OptionQuote],
        current_price: float,
        target_price: float
    ) -> Optional[Trade]:
        ...


@dataclass(frozen=True)
class StrategyRecipe:
    """One entry of the strategy catalogue"""
    name: str
    sentiment: Sentiment
    description: str
    build: IRecipeBuilder


def _buy(option: OptionQuote, quantity: int = 1) -> TradeLeg:
    return TradeLeg(action=Action.BUY, quantity=quantity, option=option)


def _sell(option: OptionQuote, quantity: int = 1) -> TradeLeg:
    return TradeLeg(action=Action.SELL, quantity=quantity, option=option)


def _atm_pair(option_chain, current_price):
    """
    ATM call and put at the SAME strike, or (None, None).

    If the nearest call and put strikes differ, the put is re-anchored
    to the call's strike.
    """
    call = find_closest(option_chain, current_price, CALL)
    put = find_closest(option_chain, current_price, PUT)
    if call is None or put is None:
        return None, None

    if call.strike != put.strike:
        put = find_closest(option_chain, call.strike, PUT)
    if put is None or put.strike != call.strike:
        return None, None

    return call, put


# =============================================================================
# Recipes
# =============================================================================

def build_long_call(option_chain, current_price, target_price):
    opt = find_closest(option_chain, target_price, CALL)
    if opt is None:
        return None
    return Trade(
        name="Long Call",
        sentiment=Sentiment.BULLISH,
        description=f"Buy 1 Call at Strike {opt.strike:.2f}",
        legs=(_buy(opt),),
    )


def build_long_put(option_chain, current_price, target_price):
    opt = find_closest(option_chain, target_price, PUT)
    if opt is None:
        return None
    return Trade(
        name="Long Put",
        sentiment=Sentiment.BEARISH,
        description=f"Buy 1 Put at Strike {opt.strike:.2f}",
        legs=(_buy(opt),),
    )


def build_covered_call(option_chain, current_price, target_price):
    call = find_otm(option_chain, current_price, CALL, 1)
    if call is None:
        return None
    stock = TradeLeg(action=Action.BUY, quantity=100, is_stock=True, stock_price=current_price)
    return Trade(
        name="Covered Call",
        sentiment=Sentiment.BULLISH,
        description=f"Buy 100 Shares + Sell 1 Call at Strike {call.strike:.2f}",
        legs=(stock, _sell(call)),
    )


def build_cash_secured_put(option_chain, current_price, target_price):
    put = find_otm(option_chain, current_price, PUT, 1)
    if put is None:
        return None
    return Trade(
        name="Cash-Secured Put",
        sentiment=Sentiment.BULLISH,
        description=f"Sell 1 Put at Strike {put.strike:.2f}",
        legs=(_sell(put),),
    )


def build_bull_call_spread(option_chain, current_price, target_price):
    buy_leg = find_itm(option_chain, current_price, CALL, 1)
    sell_leg = find_otm(option_chain, current_price, CALL, 1)
    if buy_leg is None or sell_leg is None:
        return None
    return Trade(
        name="Bull Call Spread",
        sentiment=Sentiment.BULLISH,
        description=f"Buy Call {buy_leg.strike:.2f}, Sell Call {sell_leg.strike:.2f}",
        legs=(_buy(buy_leg), _sell(sell_leg)),
    )


def build_bull_put_spread(option_chain, current_price, target_price):
    # Long wing sits three strikes out for a wider spread
    sell_leg = find_otm(option_chain, current_price, PUT, 1)
    buy_leg = find_otm(option_chain, current_price, PUT, 3)
    if sell_leg is None or buy_leg is None:
        return None
    return Trade(
        name="Bull Put Spread",
        sentiment=Sentiment.BULLISH,
        description=f"Sell Put {sell_leg.strike:.2f}, Buy Put {buy_leg.strike:.2f}",
        legs=(_sell(sell_leg), _buy(buy_leg)),
    )


def build_bear_call_spread(option_chain, current_price, target_price):
    sell_leg = find_itm(option_chain, current_price, CALL, 1)
    buy_leg = find_otm(option_chain, current_price, CALL, 1)
    if sell_leg is None or buy_leg is None:
        return None
    return Trade(
        name="Bear Call Spread",
        sentiment=Sentiment.BEARISH,
        description=f"Sell Call {sell_leg.strike:.2f}, Buy Call {buy_leg.strike:.2f}",
        legs=(_sell(sell_leg), _buy(buy_leg)),
    )


def build_bear_put_spread(option_chain, current_price, target_price):
    buy_leg = find_itm(option_chain, current_price, PUT, 1)
    sell_leg = find_otm(option_chain, current_price, PUT, 1)
    if buy_leg is None or sell_leg is None:
        return None
    return Trade(
        name="Bear Put Spread",
        sentiment=Sentiment.BEARISH,
        description=f"Buy Put {buy_leg.strike:.2f}, Sell Put {sell_leg.strike:.2f}",
        legs=(_buy(buy_leg), _sell(sell_leg)),
    )


def build_straddle(option_chain, current_price, target_price):
    call, put = _atm_pair(option_chain, current_price)
    if call is None:
        return None
    return Trade(
        name="Straddle",
        sentiment=Sentiment.NEUTRAL,
        description=f"Buy Call & Put at Strike {call.strike:.2f}",
        legs=(_buy(call), _buy(put)),
    )


def build_strangle(option_chain, current_price, target_price):
    call = find_otm(option_chain, current_price, CALL, 1)
    put = find_otm(option_chain, current_price, PUT, 1)
    if call is None or put is None:
        return None
    return Trade(
        name="Strangle",
        sentiment=Sentiment.NEUTRAL,
        description=f"Buy Call {call.strike:.2f}, Buy Put {put.strike:.2f}",
        legs=(_buy(call), _buy(put)),
    )


def build_iron_condor(option_chain, current_price, target_price):
    sell_put = find_otm(option_chain, current_price, PUT, 1)
    buy_put = find_otm(option_chain, current_price, PUT, 3)
    sell_call = find_otm(option_chain, current_price, CALL, 1)
    buy_call = find_otm(option_chain, current_price, CALL, 3)
    if None in (sell_put, buy_put, sell_call, buy_call):
        return None
    return Trade(
        name="Iron Condor",
        sentiment=Sentiment.NEUTRAL,
        description=(
            f"Sell Put {sell_put.strike:.2f}/Call {sell_call.strike:.2f}, "
            f"Buy Put {buy_put.strike:.2f}/Call {buy_call.strike:.2f}"
        ),
        legs=(_sell(sell_put), _buy(buy_put), _sell(sell_call), _buy(buy_call)),
    )


def build_iron_butterfly(option_chain, current_price, target_price):
    atm_call, atm_put = _atm_pair(option_chain, current_price)
    otm_call = find_otm(option_chain, current_price, CALL, 2)
    otm_put = find_otm(option_chain, current_price, PUT, 2)
    if atm_call is None or otm_call is None or otm_put is None:
        return None
    return Trade(
        name="Iron Butterfly",
        sentiment=Sentiment.NEUTRAL,
        description=(
            f"Sell ATM {atm_call.strike:.2f}, "
            f"Buy OTM Call {otm_call.strike:.2f}/Put {otm_put.strike:.2f}"
        ),
        legs=(_sell(atm_put), _sell(atm_call), _buy(otm_put), _buy(otm_call)),
    )


def build_call_broken_wing_butterfly(option_chain, current_price, target_price):
    # Wings are intentionally not equidistant from the body
    itm = find_itm(option_chain, current_price, CALL, 1)
    atm = find_closest(option_chain, current_price, CALL)
    otm = find_otm(option_chain, current_price, CALL, 2)
    if itm is None or atm is None or otm is None:
        return None
    return Trade(
        name="Call Broken Wing Butterfly",
        sentiment=Sentiment.BULLISH,
        description=f"Buy {itm.strike:.2f}, Sell 2x {atm.strike:.2f}, Buy {otm.strike:.2f}",
        legs=(_buy(itm), _sell(atm, 2), _buy(otm)),
    )


RECIPES: tuple[StrategyRecipe, ...] = (
    StrategyRecipe("Long Call", Sentiment.BULLISH,
                   "Buy 1 Call (Strike = Target Price)", build_long_call),
    StrategyRecipe("Long Put", Sentiment.BEARISH,
                   "Buy 1 Put (Strike = Target Price)", build_long_put),
    StrategyRecipe("Covered Call", Sentiment.BULLISH,
                   "Buy 100 Shares + Sell 1 OTM Call", build_covered_call),
    StrategyRecipe("Cash-Secured Put", Sentiment.BULLISH,
                   "Sell 1 OTM Put", build_cash_secured_put),
    StrategyRecipe("Bull Call Spread", Sentiment.BULLISH,
                   "Buy ITM Call + Sell OTM Call", build_bull_call_spread),
    StrategyRecipe("Bull Put Spread", Sentiment.BULLISH,
                   "Sell OTM Put + Buy Further OTM Put", build_bull_put_spread),
    StrategyRecipe("Bear Call Spread", Sentiment.BEARISH,
                   "Sell ITM Call + Buy OTM Call", build_bear_call_spread),
    StrategyRecipe("Bear Put Spread", Sentiment.BEARISH,
                   "Buy ITM Put + Sell OTM Put", build_bear_put_spread),
    StrategyRecipe("Straddle", Sentiment.NEUTRAL,
                   "Buy ATM Call + Buy ATM Put (Same Strike)", build_straddle),
    StrategyRecipe("Strangle", Sentiment.NEUTRAL,
                   "Buy OTM Call + Buy OTM Put (Different Strikes)", build_strangle),
    StrategyRecipe("Iron Condor", Sentiment.NEUTRAL,
                   "Sell OTM Put/Call + Buy Further OTM Put/Call", build_iron_condor),
    StrategyRecipe("Iron Butterfly", Sentiment.NEUTRAL,
                   "Sell ATM Put/Call + Buy OTM Put/Call", build_iron_butterfly),
    StrategyRecipe("Call Broken Wing Butterfly", Sentiment.BULLISH,
                   "Buy 1 ITM Call + Sell 2 ATM Calls + Buy 1 OTM Call",
                   build_call_broken_wing_butterfly),
)


SENTIMENT_ALIASES = {
    'very_bullish': Sentiment.BULLISH,
    'bullish': Sentiment.BULLISH,
    'directional': Sentiment.BULLISH,
    'very_bearish': Sentiment.BEARISH,
    'bearish': Sentiment.BEARISH,
    'neutral': Sentiment.NEUTRAL,
}


def normalize_sentiment(sentiment: Union[str, Sentiment, None]) -> Optional[Sentiment]:
    """
    Map a user sentiment string to a catalogue sentiment.

    Returns None (no filtering) for empty or unrecognised input.
    """
    if sentiment is None or isinstance(sentiment, Sentiment):
        return sentiment
    key = sentiment.strip().lower().replace(' ', '_').replace('-', '_')
    if not key:
        return None
    normalized = SENTIMENT_ALIASES.get(key)
    if normalized is None:
        logger.warning(f"Unrecognised sentiment '{sentiment}', not filtering strategies")
    return normalized


def expiry_label(expiry: date, as_of: datetime) -> str:
    """Human-readable expiry with days remaining, e.g. 'Jan 18 (30d)'"""
    seconds = (expiry_datetime(expiry) - as_of).total_seconds()
    days = math.ceil(seconds / 86400.0)
    return f"{expiry:%b %d} ({days}d)"


def _validate_chain(option_chain: List[OptionQuote], as_of: datetime) -> date:
    """Single expiry of the chain, checked to be today or later"""
    if not option_chain:
        raise EmptyChainError("Empty option chain, no strategies can be built")

    expiries = {opt.expiry for opt in option_chain}
    if len(expiries) > 1:
        raise InvalidInputError(
            f"Option chain contains multiple expiries: {sorted(expiries)}. "
            f"Pass target_date to isolate a single expiry"
        )

    expiry = next(iter(expiries))
    if expiry < as_of.date():
        raise InvalidInputError(f"Option chain expired on {expiry} (as of {as_of.date()})")
    return expiry


def build_strategy(
    name: str,
    option_chain: List[OptionQuote],
    current_price: float,
    target_price: Optional[float] = None,
    as_of: Optional[datetime] = None,
    scan_multiplier: float = SCAN_MULTIPLIER,
    scan_steps: int = SCAN_STEPS
) -> Optional[Trade]:
    """
    Build and analyse one catalogue strategy by name.

    Returns None if the recipe is infeasible for this chain.

    Raises:
        KeyError: If ``name`` is not in the catalogue
        EmptyChainError: If the chain is empty
    """
    recipes = {recipe.name.lower(): recipe for recipe in RECIPES}
    recipe = recipes.get(name.strip().lower())
    if recipe is None:
        raise KeyError(f"Unknown strategy '{name}'. Available: {[r.name for r in RECIPES]}")

    as_of = as_of or datetime.now()
    expiry = _validate_chain(option_chain, as_of)
    target = current_price if target_price is None else target_price

    trade = recipe.build(option_chain, current_price, target)
    if trade is None:
        return None
    return _finalize(trade, current_price, expiry, as_of, scan_multiplier, scan_steps)


def _finalize(
    trade: Trade,
    current_price: float,
    expiry: date,
    as_of: datetime,
    scan_multiplier: float = SCAN_MULTIPLIER,
    scan_steps: int = SCAN_STEPS
) -> Trade:
    trade = replace(
        trade,
        expiration_date=expiry,
        expiry_label=expiry_label(expiry, as_of),
    )
    return analyze_trade(trade, current_price, scan_multiplier, scan_steps)


def generate_all_strategies(
    option_chain: List[OptionQuote],
    current_price: float,
    target_price: Optional[float] = None,
    sentiment: Union[str, Sentiment, None] = None,
    target_date: Union[date, str, None] = None,
    as_of: Optional[datetime] = None,
    scan_multiplier: float = SCAN_MULTIPLIER,
    scan_steps: int = SCAN_STEPS
) -> List[Trade]:
    """
    Build every feasible catalogue strategy for one expiry.

    Steps:
    1. Isolate the expiry closest to ``target_date`` (if given)
    2. Validate the chain (non-empty, single expiry, not expired)
    3. Run each recipe matching the sentiment filter
    4. Analyse and annotate each feasible trade

    Args:
        option_chain: Option contracts (one expiry, or several with target_date)
        current_price: Current underlying price
        target_price: Strike target for single-leg recipes (defaults to current price)
        sentiment: Optional filter ('bullish', 'very_bearish', Sentiment.NEUTRAL, ...)
        target_date: Expiry to aim for when the chain has several
        as_of: Valuation time (defaults to now)
        scan_multiplier, scan_steps: Payoff scan settings for the analyzer

    Returns:
        Analysed trades in catalogue order

    Raises:
        EmptyChainError: If no contracts remain after expiry filtering
        InvalidInputError: If the chain is expired or still spans several expiries

    Example:
        >>> trades = generate_all_strategies(chain, 100.0, sentiment='neutral')
        >>> [t.name for t in trades]
        ['Straddle', 'Strangle', 'Iron Condor', 'Iron Butterfly']
    """
    as_of = as_of or datetime.now()

    if target_date is not None:
        option_chain = filter_chain_by_closest_expiry(option_chain, target_date)
        if not option_chain:
            raise EmptyChainError(f"No contracts found for date {target_date}")

    expiry = _validate_chain(option_chain, as_of)
    target = current_price if target_price is None else target_price
    wanted = normalize_sentiment(sentiment)

    trades = []
    for recipe in RECIPES:
        if wanted is not None and recipe.sentiment is not wanted:
            continue

        trade = recipe.build(option_chain, current_price, target)
        if trade is None:
            logger.debug(f"{recipe.name}: infeasible for this chain, skipped")
            continue

        trades.append(_finalize(
            trade, current_price, expiry, as_of, scan_multiplier, scan_steps
        ))

    logger.info(
        f"Built {len(trades)} strategies for expiry {expiry} "
        f"(price={current_price}, sentiment={wanted.value if wanted else 'any'})"
    )
    return trades
