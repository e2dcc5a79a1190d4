"""
Deterministic synthetic option chains for demos and tests.

Strikes run every 5 from round(0.8 x spot / 5) x 5 up to 1.2 x spot. Each
strike draws an IV in [0.20, 0.40] from a seeded generator and is priced
with Black-Scholes; bid/ask straddle the theoretical price with a 2% spread.
"""

import logging
from datetime import date, datetime, timedelta
from typing import List, Optional, Sequence

import numpy as np

from strikelogic.core.models import OptionQuote, OptionType
from strikelogic.pricing.black_scholes import DAYS_PER_YEAR, calculate_option_price

logger = logging.getLogger(__name__)


DEFAULT_EXPIRY_DAYS = (7, 14, 30, 60, 90, 180, 365)
STRIKE_STEP = 5.0
SPREAD_PCT = 0.02
IV_LOW = 0.20
IV_HIGH = 0.40


def _strike_grid(spot: float, step: float = STRIKE_STEP) -> np.ndarray:
    start = round(spot * 0.8 / step) * step
    end = spot * 1.2
    # Small epsilon keeps the upper bound inclusive despite float steps
    return np.arange(start, end + 1e-9, step)


def generate_synthetic_chain(
    ticker: str,
    spot: float,
    days_out: int,
    as_of: Optional[date] = None,
    risk_free_rate: float = 0.05,
    seed: int = 42,
    rng: Optional[np.random.Generator] = None
) -> List[OptionQuote]:
    """
    Synthetic calls and puts for a single expiry ``days_out`` days ahead.

    Args:
        ticker: Underlying symbol stored on every quote
        spot: Underlying price the chain is priced at
        days_out: Calendar days to expiry (must be positive)
        as_of: Snapshot date (defaults to today)
        risk_free_rate: Rate used for pricing
        seed: Seed for the IV draws (ignored if ``rng`` is given)
        rng: Shared generator, used when building several expiries

    Returns:
        Calls for every strike followed by puts for every strike
    """
    if days_out <= 0:
        raise ValueError(f"days_out must be positive, got {days_out}")
    if spot <= 0:
        raise ValueError(f"spot must be positive, got {spot}")

    as_of = as_of or date.today()
    if isinstance(as_of, datetime):
        as_of = as_of.date()
    rng = rng or np.random.default_rng(seed)

    expiry = as_of + timedelta(days=days_out)
    T = days_out / DAYS_PER_YEAR
    strikes = _strike_grid(spot)
    vols = IV_LOW + rng.random(len(strikes)) * (IV_HIGH - IV_LOW)

    calls, puts = [], []
    for strike, iv in zip(strikes, vols):
        strike = round(float(strike), 2)
        for option_type, bucket in ((OptionType.CALL, calls), (OptionType.PUT, puts)):
            quote = calculate_option_price(option_type, spot, strike, T, risk_free_rate, float(iv))
            spread = quote.price * SPREAD_PCT
            bid = max(quote.price - spread / 2, 0.0)
            ask = quote.price + spread / 2

            bucket.append(OptionQuote(
                strike=strike,
                expiry=expiry,
                option_type=option_type,
                bid=round(bid, 2),
                ask=round(ask, 2),
                last=round(quote.price, 2),
                implied_vol=round(float(iv), 2),
                delta=round(quote.delta, 3),
                gamma=round(quote.gamma, 3),
                theta=round(quote.theta, 3),
                vega=round(quote.vega, 3),
                underlying=ticker,
            ))

    return calls + puts


def generate_synthetic_multi_expiry_chain(
    ticker: str,
    spot: float,
    expiry_days: Sequence[int] = DEFAULT_EXPIRY_DAYS,
    as_of: Optional[date] = None,
    risk_free_rate: float = 0.05,
    seed: int = 42
) -> List[OptionQuote]:
    """Synthetic chain spanning several expiries (one shared generator)"""
    rng = np.random.default_rng(seed)

    chain = []
    for days in expiry_days:
        chain.extend(generate_synthetic_chain(
            ticker, spot, days,
            as_of=as_of, risk_free_rate=risk_free_rate, rng=rng,
        ))

    logger.info(
        f"Generated synthetic chain for {ticker}: {len(chain)} contracts "
        f"across {len(expiry_days)} expiries"
    )
    return chain
