"""
Pluggable price feeds and strategies.

Usage:
    from assetprice.src.submodules import get_submodule_class, get_available_submodules

    # Get list of bundled submodules
    available = get_available_submodules()
    # ['PRICE.CHAINLINK', 'PRICE.HTTP', 'PRICE.SIMPLESTRATEGY']

    # Create and install a submodule
    strategy = get_submodule_class("PRICE.SIMPLESTRATEGY")()
    price.install_submodule(strategy, caller="admin")
"""

# Import base classes and utilities
from .base import (
    SUBMODULE_REGISTRY,
    PriceSubmodule,
    StrategyParamsInvalid,
    StrategyPriceCountInvalid,
    StrategySubmodule,
    Submodule,
    get_available_submodules,
    get_submodule_class,
    register_submodule,
)

# Import all submodule implementations to trigger registration
from .chainlink import ChainlinkFeedInvalid, ChainlinkPriceFeeds
from .http import HttpFeedError, HttpFeedHTTPError, HttpJsonPriceFeed
from .strategy import SimplePriceFeedStrategy

__all__ = [
    # Base classes
    "Submodule",
    "PriceSubmodule",
    "StrategySubmodule",
    "StrategyParamsInvalid",
    "StrategyPriceCountInvalid",
    # Registry functions
    "register_submodule",
    "get_submodule_class",
    "get_available_submodules",
    "SUBMODULE_REGISTRY",
    # Submodule implementations
    "ChainlinkFeedInvalid",
    "ChainlinkPriceFeeds",
    "HttpFeedError",
    "HttpFeedHTTPError",
    "HttpJsonPriceFeed",
    "SimplePriceFeedStrategy",
]
