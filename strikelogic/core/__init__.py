"""Core data models and errors"""

from strikelogic.core.errors import EmptyChainError, InvalidInputError
from strikelogic.core.models import (
    Action,
    MatrixPoint,
    OptionQuote,
    OptionType,
    RiskProfileIdea,
    Sentiment,
    Trade,
    TradeLeg,
    TradeMetrics,
)

__all__ = [
    'Action', 'MatrixPoint', 'OptionQuote', 'OptionType', 'RiskProfileIdea',
    'Sentiment', 'Trade', 'TradeLeg', 'TradeMetrics',
    'EmptyChainError', 'InvalidInputError',
]
