"""Named error conditions raised by the price engine.

Every configuration or query violation has its own class so callers can
assert on the exact cause. Individual feed failures are never raised from
the engine: the aggregator records them as zero inputs instead.
"""

from __future__ import annotations


class PriceError(Exception):
    """Base exception for price engine errors."""

    pass


class AssetNotApproved(PriceError):
    """Raised when an asset is read or modified without being approved.

    :ivar asset: Address of the asset.
    """

    def __init__(self, asset: str):
        self.asset = asset
        super().__init__(f"Asset {asset} is not approved")


class AssetAlreadyApproved(PriceError):
    """Raised when registering an asset that is already approved."""

    def __init__(self, asset: str):
        self.asset = asset
        super().__init__(f"Asset {asset} is already approved")


class AssetNotContract(PriceError):
    """Raised when the asset address is invalid or has no deployed code."""

    def __init__(self, asset: str):
        self.asset = asset
        super().__init__(f"Asset {asset} is not a contract")


class PriceZero(PriceError):
    """Raised when the resolved price of an asset is zero."""

    def __init__(self, asset: str):
        self.asset = asset
        super().__init__(f"Price of {asset} resolved to zero")


class StrategyExecutionFailed(PriceError):
    """Raised when the strategy submodule call itself fails.

    :ivar asset: Address of the asset being priced.
    :ivar reason: Message of the underlying error.
    """

    def __init__(self, asset: str, reason: str):
        self.asset = asset
        self.reason = reason
        super().__init__(f"Strategy failed for {asset}: {reason}")


class SubmoduleNotInstalled(PriceError):
    """Raised when a feed or strategy keycode does not resolve."""

    def __init__(self, keycode: str):
        self.keycode = keycode
        super().__init__(f"Submodule {keycode} is not installed")


class MovingAverageNotStored(PriceError):
    """Raised when the moving average is read for an asset not storing one."""

    def __init__(self, asset: str):
        self.asset = asset
        super().__init__(f"Moving average is not stored for {asset}")


class MovingAverageStale(PriceError):
    """Raised when the stored moving average is older than its window.

    :ivar last_observation_time: Timestamp of the most recent observation.
    """

    def __init__(self, asset: str, last_observation_time: int):
        self.asset = asset
        self.last_observation_time = last_observation_time
        super().__init__(
            f"Moving average for {asset} is stale "
            f"(last observation at {last_observation_time})"
        )


class MaxAgeInvalid(PriceError):
    """Raised when a max age is non-positive or reaches before time zero."""

    def __init__(self, max_age: int):
        self.max_age = max_age
        super().__init__(f"Invalid max age: {max_age}")


class VariantInvalid(PriceError):
    """Raised when a price variant is not one of the known read paths."""

    def __init__(self, variant: object):
        self.variant = variant
        super().__init__(f"Invalid price variant: {variant!r}")


class NotPermitted(PriceError):
    """Raised when the authority refuses a mutating call.

    :ivar caller: Identifier of the caller.
    :ivar action: Name of the refused entry point.
    """

    def __init__(self, caller: str, action: str):
        self.caller = caller
        self.action = action
        super().__init__(f"Caller {caller!r} is not permitted to {action}")


class InvalidConfiguration(PriceError):
    """Base class for asset configuration errors.

    :ivar asset: Address of the asset being configured, if any.
    :ivar reason: Human-readable description of the violation.
    """

    def __init__(self, asset: str | None, reason: str):
        self.asset = asset
        self.reason = reason
        if asset is None:
            super().__init__(reason)
        else:
            super().__init__(f"Invalid configuration for {asset}: {reason}")


class PriceFeedInsufficient(InvalidConfiguration):
    """Raised when an asset is configured without any feed."""

    def __init__(self, asset: str):
        super().__init__(asset, "at least one price feed is required")


class DuplicatePriceFeed(InvalidConfiguration):
    """Raised when two feeds share the same target, selector and params.

    :ivar index: Position of the repeated feed in the submitted list.
    """

    def __init__(self, asset: str, index: int):
        self.index = index
        super().__init__(asset, f"duplicate price feed at index {index}")


class ComponentInvalid(InvalidConfiguration):
    """Raised when a component does not name a method its submodule exposes.

    Feeds must target a price submodule and strategies a strategy submodule,
    and the selector must be one of that submodule's selectors.

    :ivar component: String form of the rejected component.
    """

    def __init__(self, asset: str, component: str, reason: str):
        self.component = component
        super().__init__(asset, f"component {component} {reason}")


class StrategyInsufficient(InvalidConfiguration):
    """Raised when several price inputs exist but no strategy is set."""

    def __init__(self, asset: str, input_count: int):
        self.input_count = input_count
        super().__init__(
            asset, f"a strategy is required to combine {input_count} price inputs"
        )


class StoreMovingAverageRequired(InvalidConfiguration):
    """Raised when the moving average is used but not stored."""

    def __init__(self, asset: str):
        super().__init__(asset, "using the moving average requires storing it")


class MovingAverageDurationInvalid(InvalidConfiguration):
    """Raised when the duration is zero or not a multiple of the frequency."""

    def __init__(self, asset: str, duration: int, frequency: int):
        self.duration = duration
        self.frequency = frequency
        super().__init__(
            asset,
            f"moving average duration {duration}s must be a non-zero "
            f"multiple of the observation frequency {frequency}s",
        )


class InvalidObservationCount(InvalidConfiguration):
    """Raised when the seed observation count does not match the window."""

    def __init__(self, asset: str, given: int, expected: int):
        self.given = given
        self.expected = expected
        super().__init__(
            asset, f"expected {expected} observations, got {given}"
        )


class ObservationZero(InvalidConfiguration):
    """Raised when a seed observation is zero."""

    def __init__(self, asset: str, index: int):
        self.index = index
        super().__init__(asset, f"observation at index {index} is zero")


class LastObservationTimeInvalid(InvalidConfiguration):
    """Raised when the last observation time lies in the future."""

    def __init__(self, asset: str, last_observation_time: int, now: int):
        self.last_observation_time = last_observation_time
        self.now = now
        super().__init__(
            asset,
            f"last observation time {last_observation_time} is after {now}",
        )


class ObservationFrequencyInvalid(InvalidConfiguration):
    """Raised at construction when the observation frequency is not positive."""

    def __init__(self, frequency: int):
        self.frequency = frequency
        super().__init__(None, f"observation frequency must be positive, got {frequency}")


class DecimalsInvalid(InvalidConfiguration):
    """Raised at construction when the output decimals are out of range."""

    def __init__(self, decimals: int):
        self.decimals = decimals
        super().__init__(None, f"decimals must be between 0 and 38, got {decimals}")


class SubmoduleError(PriceError):
    """Base exception for submodule installation and execution errors."""

    pass


class SubmoduleAlreadyInstalled(SubmoduleError):
    """Raised when installing a keycode that is already present."""

    def __init__(self, keycode: str):
        self.keycode = keycode
        super().__init__(f"Submodule {keycode} is already installed")


class SubmoduleInvalid(SubmoduleError):
    """Raised when an object cannot be installed as a submodule."""

    pass
