"""
Trade metrics: net debit, portfolio greeks and expiry payoff analysis.

Max profit, max risk and break-evens come from a discrete scan of the
expiry payoff over [0, 3 x current price]. Payoff at expiry is piecewise
linear per leg, so linear interpolation between scan points recovers the
zero crossings to within the scan resolution.

All amounts are total dollars (option legs x 100 x quantity).
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Dict, Optional, Sequence

import numpy as np

from strikelogic.core.models import Trade, TradeLeg, TradeMetrics
from strikelogic.pricing.black_scholes import (
    calculate_pop,
    return_on_risk_credit,
    return_on_risk_debit,
    time_to_expiry,
)

logger = logging.getLogger(__name__)


SCAN_MULTIPLIER = 3.0
SCAN_STEPS = 1000


def calculate_net_debit(legs: Sequence[TradeLeg]) -> float:
    """
    Total entry cost of the legs.

    Buys fill at ask, sells at bid, stock at stock_price. Positive result
    means money paid, negative means credit received.
    """
    return float(sum(leg.entry_amount for leg in legs))


def calculate_portfolio_greeks(legs: Sequence[TradeLeg]) -> Dict[str, float]:
    """
    Position greeks summed across legs.

    Stock legs add one delta per share and nothing else; option legs
    scale their greeks by quantity x 100, signed by side.
    """
    return {
        'delta': float(sum(leg.delta_exposure for leg in legs)),
        'gamma': float(sum(leg.gamma_exposure for leg in legs)),
        'theta': float(sum(leg.theta_exposure for leg in legs)),
        'vega': float(sum(leg.vega_exposure for leg in legs)),
    }


def calculate_pnl_at_expiry(trade: Trade, price, net_debit: Optional[float] = None):
    """
    P&L of the trade if the underlying is at ``price`` at expiration.

    Starts from -net_debit and adds each leg's signed expiry value.

    Args:
        trade: Trade to evaluate
        price: Underlying price (scalar or numpy array)
        net_debit: Entry cost in total dollars. Defaults to the trade's
                   metrics, or a fresh calculation from its legs.

    Returns:
        P&L in total dollars (same shape as ``price``)
    """
    if net_debit is None:
        net_debit = trade.net_debit if trade.metrics is not None else calculate_net_debit(trade.legs)

    pnl = -net_debit
    for leg in trade.legs:
        pnl = pnl + leg.value_at_expiry(price)
    return pnl


def find_break_evens(prices: np.ndarray, pnl: np.ndarray) -> tuple[float, ...]:
    """
    Zero crossings of a sampled payoff, linearly interpolated, rounded to cents.

    A crossing is any pair of adjacent samples where one side is negative
    and the other is not.
    """
    negative = pnl < 0
    crossings = np.nonzero(negative[:-1] != negative[1:])[0]

    break_evens = []
    for i in crossings:
        x1, x2 = prices[i], prices[i + 1]
        p1, p2 = pnl[i], pnl[i + 1]
        be = x1 - p1 * (x2 - x1) / (p2 - p1)
        break_evens.append(round(float(be), 2))

    return tuple(break_evens)


def scan_payoff(
    trade: Trade,
    current_price: float,
    net_debit: float,
    scan_multiplier: float = SCAN_MULTIPLIER,
    scan_steps: int = SCAN_STEPS
) -> Dict[str, object]:
    """
    Scan expiry P&L from 0 to ``scan_multiplier`` x current price.

    Returns:
        Dictionary with max_profit, max_risk (>= 0) and break_evens
    """
    prices = np.linspace(0.0, current_price * scan_multiplier, scan_steps + 1)
    pnl = np.asarray(calculate_pnl_at_expiry(trade, prices, net_debit), dtype=float)
    # A trade with no legs yields a scalar; give it one value per scan point
    pnl = np.broadcast_to(pnl, prices.shape)

    max_profit = float(pnl.max())
    max_risk = max(-float(pnl.min()), 0.0)

    return {
        'max_profit': max_profit,
        'max_risk': max_risk,
        'break_evens': find_break_evens(prices, pnl),
    }


def compute_metrics(
    trade: Trade,
    current_price: float,
    scan_multiplier: float = SCAN_MULTIPLIER,
    scan_steps: int = SCAN_STEPS
) -> TradeMetrics:
    """
    Full metrics for a trade at the given underlying price.

    Pure function: the trade is not modified. Use ``analyze_trade`` to get
    a Trade carrying the result.
    """
    net_debit = calculate_net_debit(trade.legs)
    greeks = calculate_portfolio_greeks(trade.legs)
    payoff = scan_payoff(trade, current_price, net_debit, scan_multiplier, scan_steps)

    if net_debit > 0:
        ror = return_on_risk_debit(payoff['max_profit'], net_debit)
    else:
        ror = return_on_risk_credit(-net_debit, payoff['max_risk'])

    return TradeMetrics(
        net_debit=net_debit,
        delta=greeks['delta'],
        gamma=greeks['gamma'],
        theta=greeks['theta'],
        vega=greeks['vega'],
        max_profit=payoff['max_profit'],
        max_risk=payoff['max_risk'],
        break_evens=payoff['break_evens'],
        return_on_risk=ror,
    )


def analyze_trade(
    trade: Trade,
    current_price: float,
    scan_multiplier: float = SCAN_MULTIPLIER,
    scan_steps: int = SCAN_STEPS
) -> Trade:
    """New Trade identical to ``trade`` but carrying freshly computed metrics"""
    metrics = compute_metrics(trade, current_price, scan_multiplier, scan_steps)
    logger.debug(
        f"{trade.name}: net_debit={metrics.net_debit:.2f} max_profit={metrics.max_profit:.2f} "
        f"max_risk={metrics.max_risk:.2f} break_evens={list(metrics.break_evens)}"
    )
    return replace(trade, metrics=metrics)


def break_even_probabilities(
    trade: Trade,
    current_price: float,
    volatility: float,
    as_of: Optional[datetime] = None
) -> Dict[float, float]:
    """
    Probability of finishing above each break-even at the trade's expiry.

    Requires analysed metrics; returns an empty dict for trades without
    break-evens or option legs.
    """
    if trade.metrics is None or not trade.break_evens:
        return {}

    expiry = trade.max_expiry
    if expiry is None:
        return {}

    as_of = as_of or datetime.now()
    years = time_to_expiry(expiry, as_of)
    return {
        be: calculate_pop(be, current_price, years, volatility)
        for be in trade.break_evens
    }
