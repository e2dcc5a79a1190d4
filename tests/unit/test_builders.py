"""
Unit tests for strategy builders.

Test Coverage:
- Every catalogue recipe: leg structure on the XYZ chain (spot 100)
- Infeasible recipes on a narrow chain
- generate_all_strategies: sentiment filtering, expiry isolation, validation
- build_strategy lookup by name

Testing Philosophy:
- Recipes are PURE FUNCTIONS: deterministic, no side effects
- Validate strike selection thoroughly (business-critical)
"""

import logging
from datetime import datetime, timedelta

import pytest

from strikelogic.core.errors import EmptyChainError, InvalidInputError
from strikelogic.core.models import Action, OptionType, Sentiment
from strikelogic.strategy.builders import (
    RECIPES,
    build_strategy,
    expiry_label,
    generate_all_strategies,
    normalize_sentiment,
)

CALL = OptionType.CALL
PUT = OptionType.PUT
BUY = Action.BUY
SELL = Action.SELL


def leg_signature(trade):
    """(action, type or 'Stock', strike or price, quantity) per leg"""
    rows = []
    for leg in trade.legs:
        if leg.is_stock:
            rows.append((leg.action, 'Stock', leg.stock_price, leg.quantity))
        else:
            rows.append((leg.action, leg.option.option_type, leg.option.strike, leg.quantity))
    return rows


@pytest.fixture
def all_trades(xyz_chain, spot_price, as_of):
    """Every strategy for the XYZ chain, keyed by name"""
    trades = generate_all_strategies(xyz_chain, spot_price, as_of=as_of)
    return {t.name: t for t in trades}


# =============================================================================
# Catalogue
# =============================================================================

class TestCatalogue:

    def test_catalogue_order_and_size(self):
        names = [recipe.name for recipe in RECIPES]

        assert len(names) == 13
        assert names[0] == "Long Call"
        assert names[-1] == "Call Broken Wing Butterfly"
        assert len(set(names)) == 13

    def test_sentiment_counts(self):
        counts = {}
        for recipe in RECIPES:
            counts[recipe.sentiment] = counts.get(recipe.sentiment, 0) + 1

        assert counts == {Sentiment.BULLISH: 6, Sentiment.BEARISH: 3, Sentiment.NEUTRAL: 4}


# =============================================================================
# Recipe Structure
# =============================================================================

class TestRecipeLegs:
    """
    Given the XYZ chain and spot 100
    When all strategies are generated
    Then each recipe picks the expected strikes
    """

    def test_all_thirteen_built(self, all_trades):
        assert len(all_trades) == 13

    @pytest.mark.parametrize("name,expected", [
        ("Long Call", [(BUY, CALL, 100.0, 1)]),
        ("Long Put", [(BUY, PUT, 100.0, 1)]),
        ("Covered Call", [(BUY, 'Stock', 100.0, 100), (SELL, CALL, 105.0, 1)]),
        ("Cash-Secured Put", [(SELL, PUT, 95.0, 1)]),
        ("Bull Call Spread", [(BUY, CALL, 95.0, 1), (SELL, CALL, 105.0, 1)]),
        ("Bull Put Spread", [(SELL, PUT, 95.0, 1), (BUY, PUT, 85.0, 1)]),
        ("Bear Call Spread", [(SELL, CALL, 95.0, 1), (BUY, CALL, 105.0, 1)]),
        ("Bear Put Spread", [(BUY, PUT, 105.0, 1), (SELL, PUT, 95.0, 1)]),
        ("Straddle", [(BUY, CALL, 100.0, 1), (BUY, PUT, 100.0, 1)]),
        ("Strangle", [(BUY, CALL, 105.0, 1), (BUY, PUT, 95.0, 1)]),
        ("Iron Condor", [
            (SELL, PUT, 95.0, 1), (BUY, PUT, 85.0, 1), (SELL, CALL, 105.0, 1), (BUY, CALL, 115.0, 1),
        ]),
        ("Iron Butterfly", [
            (SELL, PUT, 100.0, 1), (SELL, CALL, 100.0, 1), (BUY, PUT, 90.0, 1), (BUY, CALL, 110.0, 1),
        ]),
        ("Call Broken Wing Butterfly", [
            (BUY, CALL, 95.0, 1), (SELL, CALL, 100.0, 2), (BUY, CALL, 110.0, 1),
        ]),
    ])
    def test_recipe_legs(self, all_trades, name, expected):
        assert leg_signature(all_trades[name]) == expected

    def test_target_price_moves_single_leg_strikes(self, xyz_chain, spot_price, as_of):
        trades = generate_all_strategies(xyz_chain, spot_price, target_price=110.0, as_of=as_of)
        by_name = {t.name: t for t in trades}

        assert by_name["Long Call"].legs[0].option.strike == 110.0
        assert by_name["Long Put"].legs[0].option.strike == 110.0
        # Spreads stay anchored on the current price
        assert by_name["Bull Call Spread"].legs[0].option.strike == 95.0

    def test_trades_are_analysed_and_annotated(self, all_trades, expiry_date):
        for trade in all_trades.values():
            assert trade.metrics is not None
            assert trade.expiration_date == expiry_date
            assert trade.expiry_label == "Jan 18 (30d)"
            assert trade.description

    def test_sentiments_match_catalogue(self, all_trades):
        for recipe in RECIPES:
            assert all_trades[recipe.name].sentiment is recipe.sentiment

    def test_input_chain_not_modified(self, xyz_chain, spot_price, as_of):
        before = list(xyz_chain)
        generate_all_strategies(xyz_chain, spot_price, as_of=as_of)
        assert xyz_chain == before


class TestInfeasibleRecipes:
    """Recipes that cannot find their strikes are omitted, not errors"""

    def test_narrow_chain_omits_wide_recipes(self, xyz_narrow_chain, spot_price, as_of):
        names = [t.name for t in generate_all_strategies(xyz_narrow_chain, spot_price, as_of=as_of)]

        assert len(names) == 9
        for missing in ["Bull Put Spread", "Iron Condor", "Iron Butterfly", "Call Broken Wing Butterfly"]:
            assert missing not in names

    def test_straddle_needs_matching_strikes(self, xyz_chain, spot_price, as_of):
        """No put at the ATM call strike means no straddle or iron butterfly"""
        chain = [opt for opt in xyz_chain if not (opt.option_type is PUT and opt.strike == 100.0)]

        names = [t.name for t in generate_all_strategies(chain, spot_price, as_of=as_of)]

        assert "Straddle" not in names
        assert "Iron Butterfly" not in names
        assert "Long Call" in names

    def test_calls_only_chain(self, xyz_chain, spot_price, as_of):
        calls = [opt for opt in xyz_chain if opt.option_type is CALL]

        names = {t.name for t in generate_all_strategies(calls, spot_price, as_of=as_of)}

        assert names == {"Long Call", "Covered Call", "Bull Call Spread", "Bear Call Spread",
                         "Call Broken Wing Butterfly"}


# =============================================================================
# Sentiment Filtering
# =============================================================================

class TestSentimentFilter:

    @pytest.mark.parametrize("sentiment,count", [
        ("bullish", 6), ("very_bullish", 6), ("directional", 6),
        ("bearish", 3), ("very_bearish", 3), ("neutral", 4),
        (Sentiment.NEUTRAL, 4), ("Very Bullish", 6),
    ])
    def test_filter_counts(self, xyz_chain, spot_price, as_of, sentiment, count):
        trades = generate_all_strategies(xyz_chain, spot_price, sentiment=sentiment, as_of=as_of)

        assert len(trades) == count

    def test_neutral_names_in_catalogue_order(self, xyz_chain, spot_price, as_of):
        trades = generate_all_strategies(xyz_chain, spot_price, sentiment='neutral', as_of=as_of)

        assert [t.name for t in trades] == ["Straddle", "Strangle", "Iron Condor", "Iron Butterfly"]

    def test_unknown_sentiment_does_not_filter(self, xyz_chain, spot_price, as_of, caplog):
        with caplog.at_level(logging.WARNING, logger='strikelogic.strategy.builders'):
            trades = generate_all_strategies(xyz_chain, spot_price, sentiment='sideways', as_of=as_of)

        assert len(trades) == 13
        assert "sideways" in caplog.text

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_empty_sentiment_means_no_filter(self, value):
        assert normalize_sentiment(value) is None


# =============================================================================
# Chain Validation and Expiry Handling
# =============================================================================

class TestChainValidation:

    def test_empty_chain_raises(self, spot_price, as_of):
        with pytest.raises(EmptyChainError):
            generate_all_strategies([], spot_price, as_of=as_of)

    def test_expired_chain_raises(self, xyz_chain, spot_price):
        with pytest.raises(InvalidInputError, match="expired"):
            generate_all_strategies(xyz_chain, spot_price, as_of=datetime(2030, 1, 19, 9, 30))

    def test_expiry_day_is_still_valid(self, xyz_chain, spot_price):
        trades = generate_all_strategies(xyz_chain, spot_price, as_of=datetime(2030, 1, 18, 9, 30))
        assert len(trades) == 13

    def test_multiple_expiries_without_target_raise(self, synthetic_multi_chain, synthetic_as_of):
        with pytest.raises(InvalidInputError, match="multiple expiries"):
            generate_all_strategies(synthetic_multi_chain, 100.0, as_of=synthetic_as_of)

    def test_target_date_isolates_closest_expiry(self, synthetic_multi_chain, synthetic_as_of):
        """Target 30 days out picks the 30-day expiry from 7/14/30/60/... days"""
        target = (synthetic_as_of + timedelta(days=28)).date().isoformat()

        trades = generate_all_strategies(synthetic_multi_chain, 100.0, target_date=target, as_of=synthetic_as_of)

        expected = (synthetic_as_of + timedelta(days=30)).date()
        assert len(trades) == 13
        assert {t.expiration_date for t in trades} == {expected}
        assert all(leg.option.expiry == expected for t in trades for leg in t.option_legs)

    def test_unmatched_target_date_raises_empty(self, xyz_chain, spot_price, as_of):
        with pytest.raises(EmptyChainError):
            generate_all_strategies(xyz_chain, spot_price, target_date="not-a-date", as_of=as_of)


class TestExpiryLabel:

    def test_partial_day_rounds_up(self, expiry_date, as_of):
        assert expiry_label(expiry_date, as_of) == "Jan 18 (30d)"

    def test_whole_days(self, expiry_date):
        assert expiry_label(expiry_date, datetime(2030, 1, 11)) == "Jan 18 (7d)"


# =============================================================================
# build_strategy
# =============================================================================

class TestBuildStrategy:

    def test_build_by_name(self, xyz_chain, spot_price, as_of):
        trade = build_strategy("iron condor", xyz_chain, spot_price, as_of=as_of)

        assert trade.name == "Iron Condor"
        assert trade.metrics is not None
        assert trade.expiry_label == "Jan 18 (30d)"

    def test_infeasible_returns_none(self, xyz_narrow_chain, spot_price, as_of):
        assert build_strategy("Iron Condor", xyz_narrow_chain, spot_price, as_of=as_of) is None

    def test_unknown_name_raises(self, xyz_chain, spot_price, as_of):
        with pytest.raises(KeyError, match="Unknown strategy"):
            build_strategy("Jade Lizard", xyz_chain, spot_price, as_of=as_of)
