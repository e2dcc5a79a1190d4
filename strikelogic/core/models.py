"""
Core data models for the option analytics engine.

This module defines immutable data structures for:
- OptionQuote: Single option contract pricing snapshot
- TradeLeg: One position unit (option contract or stock) within a trade
- TradeMetrics: Derived analytics for a trade (net debit, greeks, payoff extremes)
- Trade: Named multi-leg strategy (spread, condor, etc.)
- MatrixPoint: One cell of a time x price profit grid

Unit convention used everywhere downstream: money is expressed in TOTAL
DOLLARS. Option legs are scaled by quantity * 100 (contract multiplier),
stock legs by raw share quantity.
"""

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Optional, Sequence

import numpy as np


OPTION_MULTIPLIER = 100


class OptionType(Enum):
    """Call or put"""
    CALL = "Call"
    PUT = "Put"


class Action(Enum):
    """Side of a trade leg"""
    BUY = "Buy"
    SELL = "Sell"


class Sentiment(Enum):
    """Directional view a strategy expresses"""
    BULLISH = "Bullish"
    BEARISH = "Bearish"
    NEUTRAL = "Neutral"


@dataclass(frozen=True)
class OptionQuote:
    """
    Immutable snapshot of one option contract in a chain.

    Produced externally (chain snapshot) and consumed read-only by
    every component of the engine.
    """
    strike: float                        # Strike price
    expiry: date                         # Expiration date
    option_type: OptionType              # Call or put
    bid: float                           # Bid price (per share)
    ask: float                           # Ask price (per share)
    last: float = 0.0                    # Last traded price
    implied_vol: float = 0.0             # Implied volatility (0.25 = 25%)
    delta: float = 0.0
    gamma: float = 0.0
    theta: float = 0.0                   # Daily theta
    vega: float = 0.0                    # Per 1 vol point
    underlying: str = ""                 # Underlying ticker symbol

    def __post_init__(self):
        """Validate quote fields"""
        if self.strike <= 0:
            raise ValueError(f"Strike must be positive, got {self.strike}")

    @property
    def is_call(self) -> bool:
        return self.option_type is OptionType.CALL

    @property
    def mid(self) -> float:
        """Mid price between bid and ask"""
        return (self.bid + self.ask) / 2

    @property
    def spread(self) -> float:
        """Bid-ask spread"""
        return self.ask - self.bid

    @property
    def spread_pct(self) -> float:
        """Bid-ask spread as percentage of mid price"""
        if self.mid > 0:
            return self.spread / self.mid
        return 0.0

    def days_to_expiry(self, as_of: date) -> int:
        """Calendar days from as_of until expiration"""
        return (self.expiry - as_of).days

    def intrinsic_value(self, spot_price):
        """
        Per-share intrinsic value at expiration.

        Works on a scalar spot or a numpy array of spots.
        """
        if self.is_call:
            return np.maximum(spot_price - self.strike, 0.0)
        return np.maximum(self.strike - spot_price, 0.0)


@dataclass(frozen=True)
class TradeLeg:
    """
    A single position unit within a trade.

    Direction is carried by ``action``; ``quantity`` is always a positive
    contract (option) or share (stock) count.
    """
    action: Action
    quantity: int
    is_stock: bool = False
    stock_price: float = 0.0             # Entry price for stock legs
    option: Optional[OptionQuote] = None

    def __post_init__(self):
        """Validate leg fields"""
        if not isinstance(self.quantity, int) or self.quantity <= 0:
            raise ValueError(f"Quantity must be a positive integer, got {self.quantity}")
        if self.is_stock:
            if self.stock_price <= 0:
                raise ValueError(f"Stock leg requires a positive stock_price, got {self.stock_price}")
        elif self.option is None:
            raise ValueError("Option leg requires an OptionQuote")

    @property
    def is_long(self) -> bool:
        return self.action is Action.BUY

    @property
    def sign(self) -> int:
        """+1 for Buy, -1 for Sell"""
        return 1 if self.is_long else -1

    @property
    def multiplier(self) -> int:
        """Units per quantity: 100 for option contracts, 1 for shares"""
        return 1 if self.is_stock else OPTION_MULTIPLIER

    @property
    def units(self) -> int:
        """Signed position size in shares-equivalent"""
        return self.sign * self.quantity * self.multiplier

    @property
    def entry_price(self) -> float:
        """
        Per-unit fill price: ask when buying, bid when selling.

        Stock legs fill at stock_price regardless of side.
        """
        if self.is_stock:
            return self.stock_price
        return self.option.ask if self.is_long else self.option.bid

    @property
    def entry_amount(self) -> float:
        """Signed total-dollar cost (positive = paid, negative = received)"""
        return self.entry_price * self.units

    @property
    def delta_exposure(self) -> float:
        """Net delta for this leg (stock contributes one delta per share)"""
        if self.is_stock:
            return float(self.units)
        return self.option.delta * self.units

    @property
    def gamma_exposure(self) -> float:
        if self.is_stock:
            return 0.0
        return self.option.gamma * self.units

    @property
    def theta_exposure(self) -> float:
        if self.is_stock:
            return 0.0
        return self.option.theta * self.units

    @property
    def vega_exposure(self) -> float:
        if self.is_stock:
            return 0.0
        return self.option.vega * self.units

    def value_at_expiry(self, spot_price):
        """
        Signed total-dollar value of this leg at expiration.

        Stock legs are worth spot * shares, option legs their intrinsic
        value * 100 * quantity. Accepts a scalar or numpy array of spots.
        """
        if self.is_stock:
            return spot_price * self.units
        return self.option.intrinsic_value(spot_price) * self.units


@dataclass(frozen=True)
class TradeMetrics:
    """
    Derived analytics for a trade, all in total-dollar terms.

    Computed as a unit by the metrics analyzer so a Trade never carries
    a partially refreshed set of numbers.
    """
    net_debit: float                     # Positive = debit paid, negative = credit received
    delta: float
    gamma: float
    theta: float
    vega: float
    max_profit: float
    max_risk: float                      # Positive amount at risk, floored at 0
    break_evens: tuple[float, ...] = ()
    return_on_risk: float = 0.0          # Percent

    @property
    def is_credit(self) -> bool:
        return self.net_debit < 0

    @property
    def net_credit(self) -> float:
        return -self.net_debit if self.net_debit < 0 else 0.0


@dataclass(frozen=True)
class Trade:
    """
    Named multi-leg strategy built from a single-expiry option chain.

    Metrics are attached by ``analytics.metrics.analyze_trade`` which returns
    a fresh Trade; changing legs through ``with_legs`` drops them again.
    """
    name: str
    sentiment: Sentiment
    legs: tuple[TradeLeg, ...]
    description: str = ""
    expiration_date: Optional[date] = None
    expiry_label: str = ""
    metrics: Optional[TradeMetrics] = None

    def __post_init__(self):
        # Accept any sequence but store a tuple
        if not isinstance(self.legs, tuple):
            object.__setattr__(self, "legs", tuple(self.legs))

    def with_legs(self, legs: Sequence[TradeLeg]) -> "Trade":
        """New trade with different legs and no (now stale) metrics"""
        return replace(self, legs=tuple(legs), metrics=None)

    @property
    def option_legs(self) -> tuple[TradeLeg, ...]:
        return tuple(leg for leg in self.legs if not leg.is_stock)

    @property
    def num_legs(self) -> int:
        return len(self.legs)

    @property
    def max_expiry(self) -> Optional[date]:
        """Latest expiration across option legs (None for stock-only trades)"""
        expiries = [leg.option.expiry for leg in self.option_legs]
        return max(expiries) if expiries else None

    @property
    def net_debit(self) -> Optional[float]:
        return self.metrics.net_debit if self.metrics else None

    @property
    def max_profit(self) -> Optional[float]:
        return self.metrics.max_profit if self.metrics else None

    @property
    def max_risk(self) -> Optional[float]:
        return self.metrics.max_risk if self.metrics else None

    @property
    def break_evens(self) -> Optional[tuple[float, ...]]:
        return self.metrics.break_evens if self.metrics else None

    @property
    def delta(self) -> Optional[float]:
        return self.metrics.delta if self.metrics else None

    @property
    def gamma(self) -> Optional[float]:
        return self.metrics.gamma if self.metrics else None

    @property
    def theta(self) -> Optional[float]:
        return self.metrics.theta if self.metrics else None

    @property
    def vega(self) -> Optional[float]:
        return self.metrics.vega if self.metrics else None

    def to_dict(self) -> dict:
        """Plain-field representation (no references into chain data)"""
        legs = []
        for leg in self.legs:
            row = {
                'action': leg.action.value,
                'quantity': leg.quantity,
                'is_stock': leg.is_stock,
            }
            if leg.is_stock:
                row['stock_price'] = leg.stock_price
            else:
                row.update({
                    'type': leg.option.option_type.value,
                    'strike': leg.option.strike,
                    'expiry': leg.option.expiry.isoformat(),
                    'bid': leg.option.bid,
                    'ask': leg.option.ask,
                    'implied_vol': leg.option.implied_vol,
                })
            legs.append(row)

        result = {
            'name': self.name,
            'description': self.description,
            'sentiment': self.sentiment.value,
            'expiration_date': self.expiration_date.isoformat() if self.expiration_date else None,
            'expiry_label': self.expiry_label,
            'legs': legs,
        }
        if self.metrics is not None:
            result.update({
                'net_debit': self.metrics.net_debit,
                'max_profit': self.metrics.max_profit,
                'max_risk': self.metrics.max_risk,
                'break_evens': list(self.metrics.break_evens),
                'return_on_risk': self.metrics.return_on_risk,
                'delta': self.metrics.delta,
                'gamma': self.metrics.gamma,
                'theta': self.metrics.theta,
                'vega': self.metrics.vega,
            })
        return result


@dataclass(frozen=True)
class MatrixPoint:
    """One (date, price) cell of a profit matrix"""
    date: date
    price: float
    profit: float
    z_score: float

    def to_dict(self) -> dict:
        return {
            'date': self.date.isoformat(),
            'price': self.price,
            'profit': self.profit,
            'z_score': self.z_score,
        }


@dataclass(frozen=True)
class RiskProfileIdea:
    """
    A trade idea labelled with the risk appetite it suits.

    Wraps a fully analysed Trade plus the qualitative notes shown
    next to it (e.g. "Unlimited", "~15-25% annualized").
    """
    risk_profile: str
    trade: Trade
    max_profit_note: str = ""
    roi_note: str = ""
    metadata: dict = field(default_factory=dict)
