"""
Profit-matrix simulator: theoretical P&L of a trade over a (date x price) grid.

Each cell revalues every leg with Black-Scholes at the simulated date and
price, then subtracts the trade's entry cost. Legs whose expiry has passed
by the simulated date are worth their intrinsic value.

Degenerate inputs (no legs, zero elapsed time, no usable volatility) never
raise: the grid is always fully populated with time_slices x price_points
cells, ordered by date then by increasing price.
"""

import logging
from datetime import date, datetime, timedelta
from typing import List, Optional

import numpy as np
import pandas as pd

from strikelogic.analytics.metrics import calculate_net_debit
from strikelogic.core.models import MatrixPoint, Trade, TradeLeg
from strikelogic.pricing.black_scholes import (
    MIN_TIME_TO_EXPIRY,
    calculate_option_price,
    expiry_datetime,
    year_fraction,
)

logger = logging.getLogger(__name__)


RISK_FREE_RATE = 0.05
TIME_SLICES = 8
PRICE_POINTS = 21
PRICE_RANGE = 0.20
FALLBACK_DAYS = 30
MIN_TOTAL_DAYS = 0.01


def build_time_axis(
    trade: Trade,
    as_of: datetime,
    time_slices: int = TIME_SLICES,
    fallback_days: int = FALLBACK_DAYS
) -> List[datetime]:
    """
    Evenly spaced simulation dates from tomorrow until the latest leg expiry.

    Starts at as_of if tomorrow is already past expiry. The last date is
    the expiry itself; no date is later than expiry.
    """
    leg_expiry = trade.max_expiry
    if leg_expiry is None:
        expiry = as_of + timedelta(days=fallback_days)
    else:
        expiry = expiry_datetime(leg_expiry)

    start = as_of + timedelta(days=1)
    if start > expiry:
        start = as_of

    total_days = (expiry - start).total_seconds() / 86400.0
    if total_days <= 0:
        total_days = MIN_TOTAL_DAYS

    if time_slices == 1:
        return [expiry]

    step_days = total_days / (time_slices - 1)
    dates = []
    for i in range(time_slices):
        d = start + timedelta(days=i * step_days)
        if d > expiry or i == time_slices - 1:
            d = expiry
        dates.append(d)
    return dates


def build_price_axis(
    current_price: float,
    price_points: int = PRICE_POINTS,
    price_range: float = PRICE_RANGE
) -> np.ndarray:
    """Evenly spaced prices over [1 - range, 1 + range] x current price"""
    return np.linspace(
        current_price * (1.0 - price_range),
        current_price * (1.0 + price_range),
        price_points,
    )


def leg_value(
    leg: TradeLeg,
    price: float,
    sim_date: datetime,
    volatility: float,
    risk_free_rate: float = RISK_FREE_RATE
) -> float:
    """
    Signed total-dollar value of one leg at a simulated date and price.

    Falls back to intrinsic value when the leg has expired or when no
    positive volatility (leg IV or ambient) or price is available.
    """
    if leg.is_stock:
        return price * leg.units

    option = leg.option
    remaining = year_fraction(sim_date, expiry_datetime(option.expiry))
    sigma = option.implied_vol if option.implied_vol > 0 else volatility

    if remaining <= 0 or sigma <= 0 or price <= 0:
        per_share = float(option.intrinsic_value(price))
    else:
        remaining = max(remaining, MIN_TIME_TO_EXPIRY)
        per_share = calculate_option_price(
            option.option_type, price, option.strike, remaining, risk_free_rate, sigma
        ).price

    return per_share * leg.units


def z_score(price: float, current_price: float, volatility: float, elapsed_years: float) -> float:
    """Standardised distance of price from current, 0 when undefined"""
    denom = current_price * volatility * np.sqrt(max(elapsed_years, 0.0))
    if denom <= 0:
        return 0.0
    return float((price - current_price) / denom)


def calculate_profit_matrix(
    trade: Trade,
    current_price: float,
    volatility: float,
    as_of: Optional[datetime] = None,
    risk_free_rate: float = RISK_FREE_RATE,
    time_slices: int = TIME_SLICES,
    price_points: int = PRICE_POINTS,
    price_range: float = PRICE_RANGE,
    fallback_days: int = FALLBACK_DAYS
) -> List[MatrixPoint]:
    """
    Theoretical profit of ``trade`` over a grid of dates and prices.

    Args:
        trade: Trade to simulate (metrics not required)
        current_price: Current underlying price
        volatility: Ambient volatility for legs without an IV and for z-scores
        as_of: Simulation start time (defaults to now)
        risk_free_rate: Rate used for revaluation
        time_slices: Number of dates (8 by default)
        price_points: Number of prices per date (21 by default)
        price_range: Half-width of the price axis as a fraction of current price
        fallback_days: Horizon used when the trade has no option legs

    Returns:
        time_slices x price_points MatrixPoints, grouped by date with prices
        increasing. Price and profit are rounded to cents, z-score to 3 dp.

    Example:
        >>> grid = calculate_profit_matrix(trade, 100.0, 0.30)
        >>> len(grid)
        168
    """
    as_of = as_of or datetime.now()

    dates = build_time_axis(trade, as_of, time_slices, fallback_days)
    prices = build_price_axis(current_price, price_points, price_range)

    # Same total-dollar entry cost the metrics analyzer reports
    net_debit = calculate_net_debit(trade.legs)

    grid = []
    for sim_date in dates:
        elapsed = year_fraction(as_of, sim_date)

        for p in prices:
            price = float(p)
            exit_value = sum(
                leg_value(leg, price, sim_date, volatility, risk_free_rate)
                for leg in trade.legs
            )
            profit = exit_value - net_debit

            grid.append(MatrixPoint(
                date=sim_date.date(),
                price=round(price, 2),
                profit=round(float(profit), 2),
                z_score=round(z_score(price, current_price, volatility, elapsed), 3),
            ))

    logger.debug(
        f"{trade.name}: profit matrix {len(dates)}x{len(prices)} "
        f"from {dates[0].date()} to {dates[-1].date()}"
    )
    return grid


def profit_matrix_frame(points: List[MatrixPoint], value: str = 'profit') -> pd.DataFrame:
    """
    Pivot matrix points into a DataFrame (rows = dates, columns = prices).

    Dates that coincide after clamping to expiry collapse into one row.
    """
    if not points:
        return pd.DataFrame()

    df = pd.DataFrame([p.to_dict() for p in points])
    df['date'] = pd.to_datetime(df['date']).dt.date
    return df.pivot_table(index='date', columns='price', values=value, aggfunc='last')


def expiry_pnl_slice(points: List[MatrixPoint], expiry: date) -> List[MatrixPoint]:
    """Points simulated on the expiration date"""
    return [p for p in points if p.date == expiry]
