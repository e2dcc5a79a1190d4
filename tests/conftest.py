"""
Shared pytest fixtures for unit tests.

This module provides reusable test fixtures including:
- XYZ option chain (spot 100, strikes 85-115, expiry 2030-01-18) loaded from CSV
- Narrow and multi-expiry chains derived from it or generated synthetically
- Helper functions for creating single quotes and trades
"""

import sys
from pathlib import Path
from datetime import date, datetime, timedelta
from typing import List

import pytest

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from strikelogic.core.models import Action, OptionQuote, OptionType, Sentiment, Trade, TradeLeg
from strikelogic.data.chain_loader import load_option_chain
from strikelogic.data.synthetic import generate_synthetic_multi_expiry_chain

# Fixture directory
FIXTURES_DIR = Path(__file__).parent / "fixtures"

XYZ_EXPIRY = date(2030, 1, 18)
XYZ_AS_OF = datetime(2029, 12, 19, 10, 0)


# =============================================================================
# Helper Functions
# =============================================================================

def load_option_chain_from_csv(csv_filename: str) -> List[OptionQuote]:
    """
    Load option chain from CSV fixture file.

    Args:
        csv_filename: Name of CSV file in tests/fixtures/

    Returns:
        List of OptionQuote objects (file order)
    """
    return load_option_chain(FIXTURES_DIR / csv_filename)


def make_quote(
    strike: float,
    option_type: OptionType = OptionType.CALL,
    bid: float = 1.0,
    ask: float = 1.2,
    expiry: date = XYZ_EXPIRY,
    **kwargs
) -> OptionQuote:
    """Single quote with sensible defaults"""
    return OptionQuote(
        strike=strike,
        expiry=expiry,
        option_type=option_type,
        bid=bid,
        ask=ask,
        underlying="XYZ",
        **kwargs
    )


def find_quote(chain: List[OptionQuote], strike: float, option_type: OptionType) -> OptionQuote:
    """Exact quote lookup (fails the test if missing)"""
    for opt in chain:
        if opt.strike == strike and opt.option_type is option_type:
            return opt
    raise AssertionError(f"No {option_type.value} at {strike} in chain")


# =============================================================================
# Option Chain Fixtures
# =============================================================================

@pytest.fixture
def xyz_chain() -> List[OptionQuote]:
    """
    Well-formed single-expiry chain around spot 100.

    - Strikes 85/90/95/100/105/110/115, calls listed before puts
    - Expiry: 2030-01-18, all IVs 0.30
    - Call deltas 0.98 down to 0.02, put delta = call delta - 1

    Use for happy path testing of every recipe.
    """
    return load_option_chain_from_csv("xyz_chain_30d.csv")


@pytest.fixture
def xyz_narrow_chain(xyz_chain) -> List[OptionQuote]:
    """
    Same chain restricted to strikes 95/100/105.

    Only one strike on each side of spot, so recipes needing a second or
    third OTM strike are infeasible.
    """
    return [opt for opt in xyz_chain if opt.strike in (95.0, 100.0, 105.0)]


@pytest.fixture
def synthetic_as_of() -> datetime:
    """Snapshot time for the synthetic multi-expiry chain: 2030-01-02 00:00"""
    return datetime(2030, 1, 2)


@pytest.fixture
def synthetic_multi_chain(synthetic_as_of) -> List[OptionQuote]:
    """
    Deterministic synthetic chain, spot 100, expiries 7/14/30/60/90/180/365 days
    after 2030-01-02.
    """
    return generate_synthetic_multi_expiry_chain("XYZ", 100.0, as_of=synthetic_as_of.date(), seed=7)


# =============================================================================
# Shared Constants
# =============================================================================

@pytest.fixture
def spot_price() -> float:
    """Underlying price for the XYZ fixtures"""
    return 100.0


@pytest.fixture
def expiry_date() -> date:
    """Expiry of the XYZ single-expiry chain: 2030-01-18"""
    return XYZ_EXPIRY


@pytest.fixture
def as_of() -> datetime:
    """Valuation time for the XYZ chain: 2029-12-19 10:00 (29.6 days to expiry)"""
    return XYZ_AS_OF


# =============================================================================
# Trade Fixtures
# =============================================================================

@pytest.fixture
def reference_bull_call_spread() -> Trade:
    """
    Bull call spread: buy 95 call at ask 7.00, sell 105 call at bid 2.00.

    Net debit 500, max profit 500, max risk 500, break-even 100.
    """
    long_call = make_quote(95.0, bid=6.80, ask=7.00, implied_vol=0.30, delta=0.75)
    short_call = make_quote(105.0, bid=2.00, ask=2.20, implied_vol=0.30, delta=0.30)
    return Trade(
        name="Bull Call Spread",
        sentiment=Sentiment.BULLISH,
        legs=[
            TradeLeg(action=Action.BUY, quantity=1, option=long_call),
            TradeLeg(action=Action.SELL, quantity=1, option=short_call),
        ],
    )


@pytest.fixture
def future_expiry_trade(as_of) -> Trade:
    """Long 100 call expiring 45 days after the valuation time"""
    call = make_quote(100.0, bid=3.90, ask=4.10, implied_vol=0.25, expiry=(as_of + timedelta(days=45)).date())
    return Trade(
        name="Long Call",
        sentiment=Sentiment.BULLISH,
        legs=(TradeLeg(action=Action.BUY, quantity=1, option=call),),
    )


# =============================================================================
# Helper Fixtures
# =============================================================================

@pytest.fixture
def quote_factory():
    """make_quote helper for tests that build their own contracts"""
    return make_quote


@pytest.fixture
def quote_lookup():
    """find_quote helper: exact (strike, type) lookup in a chain"""
    return find_quote
