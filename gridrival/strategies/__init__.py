"""Automated bidding strategies."""

from gridrival.strategies.base import BiddingStrategy
from gridrival.strategies.heuristics import (
    STRATEGIES,
    PortfolioStrategy,
    PriceMakerStrategy,
    PriceTakerStrategy,
    SRMCBidderStrategy,
    StrategicWithdrawalStrategy,
    get_strategy,
)

__all__ = [
    "BiddingStrategy",
    "STRATEGIES",
    "PortfolioStrategy",
    "PriceMakerStrategy",
    "PriceTakerStrategy",
    "SRMCBidderStrategy",
    "StrategicWithdrawalStrategy",
    "get_strategy",
]
