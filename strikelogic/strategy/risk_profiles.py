"""
Risk-profile trade ideas built from a multi-expiry chain.

Three ideas, one per risk appetite:
- Low (The Landlord): poor man's covered call, deep ITM call ~180d out,
  short ~0.30 delta call ~30d out
- Medium (The Strategist): aggressive PMCC, ~0.70 delta ~90d out, short
  ~0.40 delta call ~14d out
- Degen (The Moonshot): single long call with the highest theoretical ROI
  if the underlying reaches the target price by the target date

Diagonal ideas are analysed with every leg settled at intrinsic value on
the latest expiry, so their payoff extremes ignore the long leg's
remaining time value.
"""

import logging
from datetime import date, datetime, timedelta
from enum import Enum
from typing import List, Optional, Union

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from strikelogic.analytics.metrics import analyze_trade
from strikelogic.core.errors import EmptyChainError
from strikelogic.core.models import (
    Action,
    OptionQuote,
    OptionType,
    RiskProfileIdea,
    Sentiment,
    Trade,
    TradeLeg,
)
from strikelogic.data.chain_loader import available_expiries
from strikelogic.pricing.black_scholes import DAYS_PER_YEAR, calculate_option_price, expiry_datetime

logger = logging.getLogger(__name__)


class RiskProfile(Enum):
    LOW = "Low (The Landlord)"
    MEDIUM = "Medium (The Strategist)"
    DEGEN = "Degen (The Moonshot)"


DEGEN_EXTRA_DAYS = 7
DEGEN_RISK_FREE_RATE = 0.05


def filter_chain_by_days(
    option_chain: List[OptionQuote],
    days: int,
    as_of: Optional[datetime] = None
) -> List[OptionQuote]:
    """Calls of the expiry closest to ``days`` calendar days after as_of"""
    as_of = as_of or datetime.now()
    target = as_of + timedelta(days=days)

    best_expiry = None
    min_diff = 10000.0
    for expiry in available_expiries(option_chain):
        diff = abs((expiry_datetime(expiry) - target).total_seconds()) / 86400.0
        if diff < min_diff:
            min_diff = diff
            best_expiry = expiry

    return [
        opt for opt in option_chain
        if opt.expiry == best_expiry and opt.option_type is OptionType.CALL
    ]


def find_closest_delta(option_chain: List[OptionQuote], target_delta: float) -> Optional[OptionQuote]:
    """Contract whose delta is nearest ``target_delta`` (must be within 1.0)"""
    best = None
    min_diff = 1.0
    for opt in option_chain:
        diff = abs(opt.delta - target_delta)
        if diff < min_diff:
            min_diff = diff
            best = opt
    return best


def _diagonal_idea(
    option_chain, current_price, as_of, profile, long_days, long_delta,
    short_days, short_delta, description, max_profit_note, roi_note
) -> Optional[RiskProfileIdea]:
    long_leg = find_closest_delta(filter_chain_by_days(option_chain, long_days, as_of), long_delta)
    short_leg = find_closest_delta(filter_chain_by_days(option_chain, short_days, as_of), short_delta)
    if long_leg is None or short_leg is None:
        logger.debug(f"{profile.value}: no suitable contracts, skipped")
        return None

    trade = Trade(
        name="Poor Man's Covered Call",
        sentiment=Sentiment.BULLISH,
        description=description,
        legs=(
            TradeLeg(action=Action.BUY, quantity=1, option=long_leg),
            TradeLeg(action=Action.SELL, quantity=1, option=short_leg),
        ),
        expiration_date=short_leg.expiry,
    )
    return RiskProfileIdea(
        risk_profile=profile.value,
        trade=analyze_trade(trade, current_price),
        max_profit_note=max_profit_note,
        roi_note=roi_note,
        metadata={'long_expiry': long_leg.expiry, 'short_expiry': short_leg.expiry},
    )


def _resolve_target_date(target_date: Union[date, str, None], as_of: datetime) -> datetime:
    """Target date as a datetime; one month out when missing or unparseable"""
    if isinstance(target_date, (date, datetime)):
        return expiry_datetime(target_date)
    if target_date:
        try:
            return date_parser.parse(target_date)
        except (ValueError, OverflowError):
            logger.warning(f"Could not parse target date '{target_date}', using one month out")
    return as_of + relativedelta(months=1)


def find_moonshot_call(
    option_chain: List[OptionQuote],
    target_price: float,
    target_date: Union[date, str, None],
    as_of: Optional[datetime] = None
) -> tuple[Optional[OptionQuote], float]:
    """
    Call with the highest theoretical ROI if price reaches ``target_price``.

    Candidates expire about a week after the target date. Each is priced
    at the target with the week of time left, and ROI is
    (theoretical price - ask) / ask.

    Returns:
        (best call or None, its ROI as a fraction)
    """
    as_of = as_of or datetime.now()
    target = _resolve_target_date(target_date, as_of)

    days_to_target = max((target - as_of).total_seconds() / 86400.0, 1.0)
    days_out = int(days_to_target) + DEGEN_EXTRA_DAYS
    time_remaining = (days_out - int(days_to_target)) / DAYS_PER_YEAR

    best = None
    max_roi = -1.0
    for opt in filter_chain_by_days(option_chain, days_out, as_of):
        cost = opt.ask
        if cost <= 0 or opt.implied_vol <= 0:
            continue

        theo = calculate_option_price(
            OptionType.CALL, target_price, opt.strike, time_remaining,
            DEGEN_RISK_FREE_RATE, opt.implied_vol
        ).price
        roi = (theo - cost) / cost

        if roi > max_roi:
            max_roi = roi
            best = opt

    return best, max_roi


def find_risk_profile_trades(
    option_chain: List[OptionQuote],
    current_price: float,
    target_price: float,
    target_date: Union[date, str, None] = None,
    as_of: Optional[datetime] = None
) -> List[RiskProfileIdea]:
    """
    Up to three trade ideas (Low, Medium, Degen) from a multi-expiry chain.

    Ideas whose contracts cannot be found are left out.

    Raises:
        EmptyChainError: If the chain is empty
    """
    if not option_chain:
        raise EmptyChainError("Empty option chain, no trade ideas can be built")
    as_of = as_of or datetime.now()

    ideas = []

    low = _diagonal_idea(
        option_chain, current_price, as_of, RiskProfile.LOW,
        long_days=180, long_delta=0.85, short_days=30, short_delta=0.30,
        description=(
            "Poor Man's Covered Call (PMCC). Buy deep ITM LEAPS and sell "
            "monthly calls against it for income."
        ),
        max_profit_note="Variable (Income Generation)",
        roi_note="~15-25% annualized",
    )
    if low is not None:
        ideas.append(low)

    medium = _diagonal_idea(
        option_chain, current_price, as_of, RiskProfile.MEDIUM,
        long_days=90, long_delta=0.70, short_days=14, short_delta=0.40,
        description="Aggressive PMCC. Higher delta short call for more premium, but capped upside.",
        max_profit_note="Capped at Short Strike",
        roi_note="~30-50% annualized",
    )
    if medium is not None:
        ideas.append(medium)

    best, roi = find_moonshot_call(option_chain, target_price, target_date, as_of)
    if best is not None:
        trade = Trade(
            name="Long Call",
            sentiment=Sentiment.BULLISH,
            description="Naked Call. Highest theoretical ROI if target hit.",
            legs=(TradeLeg(action=Action.BUY, quantity=1, option=best),),
            expiration_date=best.expiry,
        )
        ideas.append(RiskProfileIdea(
            risk_profile=RiskProfile.DEGEN.value,
            trade=analyze_trade(trade, current_price),
            max_profit_note="Unlimited",
            roi_note=f"{roi * 100:.0f}%",
            metadata={'theoretical_roi': roi},
        ))

    logger.info(f"Found {len(ideas)} risk-profile ideas (target={target_price})")
    return ideas
