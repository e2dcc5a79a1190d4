"""
Black-Scholes-Merton pricing for European options (no dividends).

Provides:
- calculate_option_price: price plus delta, gamma, daily theta and vega
- calculate_iv: Newton-Raphson implied volatility inversion
- calculate_pop: probability the underlying finishes beyond a break-even
- return_on_risk_debit / return_on_risk_credit helpers
- time_to_expiry: year fraction with the 0.001-year floor applied upstream

Unit conventions:
- T is in years, r and sigma are decimals (0.05 = 5%, 0.25 = 25%)
- theta is reported per calendar day (annual / 365)
- vega is reported per 1 vol point (raw / 100). The IV solver uses the
  RAW vega; do not unify the two scales, Newton steps depend on it.
"""

import logging
from datetime import date, datetime, time
from typing import NamedTuple, Union

import numpy as np
from scipy.special import erf

from strikelogic.core.errors import InvalidInputError
from strikelogic.core.models import OptionType

logger = logging.getLogger(__name__)


DAYS_PER_YEAR = 365.0
MIN_TIME_TO_EXPIRY = 0.001   # years (~8.76 hours)

IV_INITIAL_GUESS = 0.5
IV_TOLERANCE = 1e-5
IV_MAX_ITERATIONS = 100
IV_MIN = 1e-4
IV_MAX = 10.0


class OptionPrice(NamedTuple):
    """Theoretical price and greeks for one option"""
    price: float
    delta: float
    gamma: float
    theta: float    # per day
    vega: float     # per vol point


def norm_cdf(x):
    """Standard normal CDF via the error function"""
    return 0.5 * (1.0 + erf(x / np.sqrt(2.0)))


def norm_pdf(x):
    """Standard normal PDF"""
    return np.exp(-0.5 * x * x) / np.sqrt(2.0 * np.pi)


def _validate_inputs(S: float, K: float, T: float, sigma: float) -> None:
    if T <= 0:
        raise InvalidInputError(f"Time to expiry must be positive, got {T}")
    if sigma <= 0:
        raise InvalidInputError(f"Volatility must be positive, got {sigma}")
    if S <= 0 or K <= 0:
        raise InvalidInputError(f"Spot and strike must be positive, got S={S}, K={K}")


def _d1_d2(S: float, K: float, T: float, r: float, sigma: float) -> tuple[float, float]:
    sqrt_t = np.sqrt(T)
    d1 = (np.log(S / K) + (r + 0.5 * sigma * sigma) * T) / (sigma * sqrt_t)
    return d1, d1 - sigma * sqrt_t


def calculate_option_price(
    option_type: OptionType,
    S: float,
    K: float,
    T: float,
    r: float,
    sigma: float
) -> OptionPrice:
    """
    Black-Scholes price and greeks.

    Args:
        option_type: OptionType.CALL or OptionType.PUT
        S: Underlying price
        K: Strike price
        T: Time to expiry in years (caller applies MIN_TIME_TO_EXPIRY floor)
        r: Risk-free rate
        sigma: Volatility

    Returns:
        OptionPrice(price, delta, gamma, theta per day, vega per vol point)

    Raises:
        InvalidInputError: If T, sigma, S or K is not positive

    Example:
        >>> result = calculate_option_price(OptionType.CALL, 100, 100, 30 / 365, 0.05, 0.30)
        >>> round(result.price, 2)
        3.63
    """
    _validate_inputs(S, K, T, sigma)

    sqrt_t = np.sqrt(T)
    d1, d2 = _d1_d2(S, K, T, r, sigma)
    discount = np.exp(-r * T)
    pdf_d1 = norm_pdf(d1)

    # Shared by both types
    gamma = pdf_d1 / (S * sigma * sqrt_t)
    vega = S * pdf_d1 * sqrt_t / 100.0
    decay = -(S * pdf_d1 * sigma) / (2.0 * sqrt_t)

    if option_type is OptionType.CALL:
        price = S * norm_cdf(d1) - K * discount * norm_cdf(d2)
        delta = norm_cdf(d1)
        theta_annual = decay - r * K * discount * norm_cdf(d2)
    else:
        price = K * discount * norm_cdf(-d2) - S * norm_cdf(-d1)
        delta = norm_cdf(d1) - 1.0
        theta_annual = decay + r * K * discount * norm_cdf(-d2)

    return OptionPrice(
        price=float(price),
        delta=float(delta),
        gamma=float(gamma),
        theta=float(theta_annual / DAYS_PER_YEAR),
        vega=float(vega),
    )


def raw_vega(S: float, K: float, T: float, r: float, sigma: float) -> float:
    """Unscaled vega (dPrice/dSigma), used by the IV solver"""
    _validate_inputs(S, K, T, sigma)
    d1, _ = _d1_d2(S, K, T, r, sigma)
    return float(S * norm_pdf(d1) * np.sqrt(T))


def calculate_iv(
    market_price: float,
    option_type: OptionType,
    S: float,
    K: float,
    T: float,
    r: float,
    initial_guess: float = IV_INITIAL_GUESS,
    tolerance: float = IV_TOLERANCE,
    max_iterations: int = IV_MAX_ITERATIONS
) -> float:
    """
    Implied volatility by Newton-Raphson on sigma.

    Stops when the theoretical price is within ``tolerance`` of the market
    price, or when raw vega is exactly zero. After ``max_iterations`` the
    last estimate is returned; results are best-effort approximations.

    Sigma is clamped to [IV_MIN, IV_MAX] between iterations so a diverging
    step never feeds a non-positive volatility back into the pricer.
    """
    sigma = initial_guess

    for iteration in range(max_iterations):
        price = calculate_option_price(option_type, S, K, T, r, sigma).price
        diff = market_price - price

        if abs(diff) < tolerance:
            return sigma

        vega = raw_vega(S, K, T, r, sigma)
        if vega == 0:
            logger.debug(
                f"IV solver hit zero vega at sigma={sigma:.4f} after {iteration} iterations "
                f"(S={S}, K={K}, T={T:.4f})"
            )
            return sigma

        sigma = min(max(sigma + diff / vega, IV_MIN), IV_MAX)

    logger.debug(
        f"IV solver did not converge in {max_iterations} iterations; "
        f"returning sigma={sigma:.4f} (S={S}, K={K}, market={market_price})"
    )
    return sigma


def calculate_pop(break_even: float, S: float, T: float, sigma: float) -> float:
    """
    Probability the underlying finishes above ``break_even``.

    Risk-neutral, drift-free lognormal approximation:
        d = (ln(BE / S) - sigma^2 / 2 * T) / (sigma * sqrt(T))
        PoP = 1 - N(d)

    Returns 0 when T or sigma is not positive.
    """
    if T <= 0 or sigma <= 0:
        return 0.0
    if break_even <= 0:
        # Any positive terminal price is above a non-positive break-even
        return 1.0
    d = (np.log(break_even / S) - 0.5 * sigma * sigma * T) / (sigma * np.sqrt(T))
    return float(1.0 - norm_cdf(d))


def return_on_risk_debit(max_profit: float, net_debit: float) -> float:
    """Max profit as a percentage of debit paid (0 for non-debit trades)"""
    if net_debit <= 0:
        return 0.0
    return max_profit / net_debit * 100.0


def return_on_risk_credit(net_credit: float, max_risk: float) -> float:
    """Credit received as a percentage of capital at risk (0 when nothing is at risk)"""
    if max_risk <= 0:
        return 0.0
    return net_credit / max_risk * 100.0


def year_fraction(start: datetime, end: datetime) -> float:
    """Calendar time between two datetimes in years (may be negative)"""
    return (end - start).total_seconds() / 86400.0 / DAYS_PER_YEAR


def expiry_datetime(expiry: Union[date, datetime]) -> datetime:
    """Expiration date as a naive datetime at midnight"""
    if isinstance(expiry, datetime):
        return expiry
    return datetime.combine(expiry, time.min)


def time_to_expiry(
    expiry: Union[date, datetime],
    as_of: datetime,
    floor: float = MIN_TIME_TO_EXPIRY
) -> float:
    """
    Years from as_of until expiry, floored so the pricer never sees T <= 0.
    """
    return max(year_fraction(as_of, expiry_datetime(expiry)), floor)
