"""
Asset Price Engine

This module provides aggregated, cached and averaged asset prices:
- Asset: Per-asset configuration, feed components and read variants
- ObservationBuffer: Ring buffer with a running sum for moving averages
- FeedAggregator: Multi-feed aggregation tolerating individual feed failures
- AssetRegistry: Validated registration and reconfiguration of assets
- ObservationStore: Periodic price storage and last/average reads
- PriceQueryService: Optimistically cached reads and cross-asset ratios
- PriceModule: Locked, permissioned facade over all of the above
- Keeper: Heartbeat loop storing observations
- submodules: Pluggable feeds and strategies
"""

from .Asset import Asset, Component, Variant
from .Authority import Authority, RolesAuthority
from .Clock import Clock, ManualClock, StepClock, SystemClock
from .EventLog import EventLog
from .FeedAggregator import CurrentPrice, FeedAggregator
from .Keeper import Keeper
from .ObservationBuffer import ObservationBuffer
from .PriceModule import PriceModule

__all__ = [
    "Asset",
    "Authority",
    "Clock",
    "Component",
    "CurrentPrice",
    "EventLog",
    "FeedAggregator",
    "Keeper",
    "ManualClock",
    "ObservationBuffer",
    "PriceModule",
    "RolesAuthority",
    "StepClock",
    "SystemClock",
    "Variant",
]
