"""Black-Scholes pricing"""

from strikelogic.pricing.black_scholes import calculate_iv, calculate_option_price, calculate_pop

__all__ = ['calculate_option_price', 'calculate_iv', 'calculate_pop']
