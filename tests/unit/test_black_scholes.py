"""
Unit tests for the Black-Scholes pricing engine.

Test Coverage:
- calculate_option_price: reference value, put-call parity, greeks sanity
- calculate_iv: round-trip, zero vega, iteration cap
- calculate_pop, return-on-risk helpers, time helpers
"""

import math
from datetime import date, datetime

import pytest

from strikelogic.core.errors import InvalidInputError
from strikelogic.core.models import OptionType
from strikelogic.pricing.black_scholes import (
    MIN_TIME_TO_EXPIRY,
    calculate_iv,
    calculate_option_price,
    calculate_pop,
    expiry_datetime,
    norm_cdf,
    raw_vega,
    return_on_risk_credit,
    return_on_risk_debit,
    time_to_expiry,
    year_fraction,
)


PARITY_CASES = [
    # S, K, T, r, sigma
    (100.0, 100.0, 30 / 365, 0.05, 0.30),
    (100.0, 80.0, 0.5, 0.03, 0.20),
    (50.0, 65.0, 1.0, 0.05, 0.45),
    (250.0, 240.0, 0.01, 0.00, 0.15),
    (10.0, 10.5, 2.0, 0.08, 1.20),
]


# =============================================================================
# calculate_option_price Tests
# =============================================================================

class TestOptionPrice:
    """Prices and greeks from the closed form."""

    def test_reference_call_price(self):
        """
        Given S=K=100, T=30/365, r=5%, sigma=30%
        When the call is priced
        Then price ~3.63 and delta ~0.536 (closed-form values)
        """
        result = calculate_option_price(OptionType.CALL, 100.0, 100.0, 30 / 365, 0.05, 0.30)

        assert result.price == pytest.approx(3.63, abs=0.05)
        assert result.delta == pytest.approx(0.536, abs=0.01)

    @pytest.mark.parametrize("S,K,T,r,sigma", PARITY_CASES)
    def test_put_call_parity(self, S, K, T, r, sigma):
        """Call - Put = S - K * exp(-rT)"""
        call = calculate_option_price(OptionType.CALL, S, K, T, r, sigma)
        put = calculate_option_price(OptionType.PUT, S, K, T, r, sigma)

        assert call.price - put.price == pytest.approx(S - K * math.exp(-r * T), abs=1e-8)

    @pytest.mark.parametrize("S,K,T,r,sigma", PARITY_CASES)
    def test_greeks_sanity(self, S, K, T, r, sigma):
        """Call delta in (0,1), put delta in (-1,0), shared gamma, non-negative vega"""
        call = calculate_option_price(OptionType.CALL, S, K, T, r, sigma)
        put = calculate_option_price(OptionType.PUT, S, K, T, r, sigma)

        assert 0 < call.delta < 1
        assert -1 < put.delta < 0
        assert call.gamma == pytest.approx(put.gamma)
        assert call.vega >= 0
        assert put.vega >= 0
        assert call.vega == pytest.approx(put.vega)
        assert call.delta - put.delta == pytest.approx(1.0)

    def test_vega_is_per_vol_point(self):
        """Public vega is raw vega / 100"""
        public = calculate_option_price(OptionType.CALL, 100.0, 105.0, 0.25, 0.05, 0.25).vega
        raw = raw_vega(100.0, 105.0, 0.25, 0.05, 0.25)

        assert public == pytest.approx(raw / 100.0)

    def test_theta_is_daily_and_negative_for_long_call(self):
        """Daily theta is annual theta / 365 and decays a long ATM call"""
        # Arrange
        S, K, T, r, sigma = 100.0, 100.0, 0.25, 0.05, 0.30
        day = 1 / 365

        # Act
        theta = calculate_option_price(OptionType.CALL, S, K, T, r, sigma).theta
        tomorrow = calculate_option_price(OptionType.CALL, S, K, T - day, r, sigma).price
        today = calculate_option_price(OptionType.CALL, S, K, T, r, sigma).price

        # Assert - one day of decay is close to theta
        assert theta < 0
        assert tomorrow - today == pytest.approx(theta, rel=0.02)

    @pytest.mark.parametrize("kwargs", [
        {'T': 0.0}, {'T': -0.1}, {'sigma': 0.0}, {'sigma': -0.2}, {'S': 0.0}, {'K': -5.0},
    ])
    def test_invalid_inputs_raise(self, kwargs):
        """Non-positive T, sigma, S or K is a contract violation"""
        params = {'S': 100.0, 'K': 100.0, 'T': 0.1, 'r': 0.05, 'sigma': 0.3}
        params.update(kwargs)

        with pytest.raises(InvalidInputError):
            calculate_option_price(OptionType.CALL, **params)

    def test_invalid_input_is_value_error(self):
        with pytest.raises(ValueError):
            calculate_option_price(OptionType.PUT, 100.0, 100.0, 0.0, 0.05, 0.3)

    def test_norm_cdf_reference_points(self):
        assert norm_cdf(0.0) == pytest.approx(0.5)
        assert norm_cdf(1.96) == pytest.approx(0.975, abs=1e-3)
        assert norm_cdf(-1.96) == pytest.approx(0.025, abs=1e-3)


# =============================================================================
# calculate_iv Tests
# =============================================================================

class TestImpliedVolatility:
    """Newton-Raphson inversion."""

    @pytest.mark.parametrize("sigma", [0.05, 0.10, 0.30, 0.80, 1.50, 2.00])
    @pytest.mark.parametrize("option_type", [OptionType.CALL, OptionType.PUT])
    def test_round_trip(self, option_type, sigma):
        """
        Given a price generated at sigma
        When IV is solved from that price
        Then the original sigma is recovered within 1e-4
        """
        S, K, T, r = 100.0, 100.0, 0.5, 0.05
        price = calculate_option_price(option_type, S, K, T, r, sigma).price

        iv = calculate_iv(price, option_type, S, K, T, r)

        assert iv == pytest.approx(sigma, abs=1e-4)

    def test_round_trip_out_of_the_money(self):
        S, K, T, r, sigma = 100.0, 110.0, 0.25, 0.05, 0.35
        price = calculate_option_price(OptionType.CALL, S, K, T, r, sigma).price

        assert calculate_iv(price, OptionType.CALL, S, K, T, r) == pytest.approx(sigma, abs=1e-4)

    def test_zero_vega_returns_current_estimate(self):
        """
        Given a strike so far out of the money that vega underflows to zero
        When IV is solved
        Then the initial guess is returned instead of failing
        """
        iv = calculate_iv(1.0, OptionType.CALL, 100.0, 1000.0, 0.001, 0.05)

        assert iv == 0.5

    def test_iteration_cap_returns_best_estimate(self):
        """Exhausting the iteration cap returns the last estimate, not an error"""
        # Arrange
        target = 0.30
        price = calculate_option_price(OptionType.CALL, 100.0, 100.0, 0.5, 0.05, target).price

        # Act
        iv = calculate_iv(price, OptionType.CALL, 100.0, 100.0, 0.5, 0.05, max_iterations=1)

        # Assert - moved toward the answer but not necessarily converged
        assert iv != 0.5
        assert abs(iv - target) < abs(0.5 - target)

    def test_custom_initial_guess(self):
        price = calculate_option_price(OptionType.PUT, 100.0, 95.0, 0.5, 0.05, 0.4).price

        iv = calculate_iv(price, OptionType.PUT, 100.0, 95.0, 0.5, 0.05, initial_guess=0.2)

        assert iv == pytest.approx(0.4, abs=1e-4)


# =============================================================================
# Probability and Return Helpers
# =============================================================================

class TestProbabilityOfProfit:

    def test_break_even_at_spot_is_slightly_above_half(self):
        """Drift-free lognormal: median terminal price sits below spot"""
        pop = calculate_pop(100.0, 100.0, 0.25, 0.30)

        assert 0.5 < pop < 0.55

    def test_higher_break_even_is_less_likely(self):
        assert calculate_pop(110.0, 100.0, 0.25, 0.30) < calculate_pop(105.0, 100.0, 0.25, 0.30)

    @pytest.mark.parametrize("T,sigma", [(0.0, 0.3), (-1.0, 0.3), (0.25, 0.0), (0.25, -0.1)])
    def test_degenerate_inputs_return_zero(self, T, sigma):
        assert calculate_pop(100.0, 100.0, T, sigma) == 0.0

    def test_non_positive_break_even_is_certain(self):
        assert calculate_pop(0.0, 100.0, 0.25, 0.30) == 1.0


class TestReturnOnRisk:

    def test_debit(self):
        assert return_on_risk_debit(500.0, 500.0) == pytest.approx(100.0)

    def test_debit_with_no_debit(self):
        assert return_on_risk_debit(500.0, 0.0) == 0.0

    def test_credit(self):
        assert return_on_risk_credit(183.0, 817.0) == pytest.approx(183.0 / 817.0 * 100)

    def test_credit_with_nothing_at_risk(self):
        assert return_on_risk_credit(100.0, 0.0) == 0.0


class TestTimeHelpers:

    def test_expiry_datetime_is_midnight(self):
        assert expiry_datetime(date(2030, 1, 18)) == datetime(2030, 1, 18, 0, 0)

    def test_expiry_datetime_passes_datetimes_through(self):
        moment = datetime(2030, 1, 18, 16, 0)
        assert expiry_datetime(moment) is moment

    def test_year_fraction(self):
        assert year_fraction(datetime(2030, 1, 1), datetime(2031, 1, 1)) == pytest.approx(1.0)

    def test_time_to_expiry_floors_expired_contracts(self):
        """Past expiries never reach the pricer as T <= 0"""
        years = time_to_expiry(date(2030, 1, 18), datetime(2030, 2, 1))

        assert years == MIN_TIME_TO_EXPIRY

    def test_time_to_expiry(self):
        years = time_to_expiry(date(2030, 1, 31), datetime(2030, 1, 1))

        assert years == pytest.approx(30 / 365)
