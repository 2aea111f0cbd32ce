"""Submodule interfaces and the registry of bundled implementations.

Feeds and strategies are submodules: objects identified by a keycode and
invoked by method name (the selector of a :class:`~assetprice.src.Asset.Component`).

Feed methods have the signature::

    def get_something(self, asset: str, output_decimals: int, params: bytes) -> int

and return the asset price scaled to ``output_decimals``. Strategy methods
have the signature::

    def get_something(self, prices: list[int], params: bytes) -> int

and must tolerate zero entries, which mark failed feeds.

.. code-block:: python

    @register_submodule
    class MyFeed(PriceSubmodule):
        keycode = "PRICE.MYFEED"

        def get_price(self, asset: str, output_decimals: int, params: bytes) -> int:
            (value,) = decode(["uint256"], params)
            return value * 10**output_decimals
"""

from __future__ import annotations

import inspect
import logging
from abc import ABC
from typing import ClassVar

from ..errors import SubmoduleError

logger = logging.getLogger(__name__)


class Submodule(ABC):
    """Base class for every feed and strategy submodule.

    :cvar keycode: Unique identifier, conventionally "PRICE.<NAME>".
    :cvar VERSION: (major, minor) version of the implementation.
    """

    keycode: ClassVar[str] = ""
    VERSION: ClassVar[tuple[int, int]] = (1, 0)

    def selectors(self) -> list[str]:
        """Return the public method names callable through a component.

        Only plain ``get_*`` instance methods count; class and static methods
        such as client accessors are not selectors.
        """
        names: set[str] = set()
        for klass in type(self).__mro__:
            for name, attr in vars(klass).items():
                if name.startswith("get_") and inspect.isfunction(attr):
                    names.add(name)
        return sorted(names)

    def __repr__(self) -> str:
        major, minor = self.VERSION
        return f"{type(self).__name__}({self.keycode} v{major}.{minor})"


class PriceSubmodule(Submodule):
    """Base class for feeds that price an asset."""

    pass


class StrategySubmodule(Submodule):
    """Base class for strategies that reduce several prices to one."""

    pass


class StrategyParamsInvalid(SubmoduleError):
    """Raised when a strategy cannot decode or accept its params."""

    pass


class StrategyPriceCountInvalid(SubmoduleError):
    """Raised when a strategy receives fewer prices than it needs.

    :ivar count: Number of prices given.
    :ivar minimum: Number of prices required.
    """

    def __init__(self, count: int, minimum: int):
        self.count = count
        self.minimum = minimum
        super().__init__(f"Strategy needs at least {minimum} prices, got {count}")


# Registry of bundled submodules (populated by subclass imports)
SUBMODULE_REGISTRY: dict[str, type[Submodule]] = {}


def register_submodule(cls: type[Submodule]) -> type[Submodule]:
    """Decorator to register a submodule class in the global registry.

    :param cls: Submodule class to register.
    :returns: The registered class (unchanged).
    :raises ValueError: If the submodule has no keycode defined.
    """
    if not cls.keycode:
        raise ValueError(f"Submodule {cls.__name__} must define a 'keycode' class variable")
    SUBMODULE_REGISTRY[cls.keycode] = cls
    return cls


def get_submodule_class(keycode: str) -> type[Submodule]:
    """Look up a bundled submodule class by keycode.

    :param keycode: Keycode such as "PRICE.CHAINLINK".
    :returns: The registered class.
    :raises ValueError: If the keycode is unknown.
    """
    if keycode not in SUBMODULE_REGISTRY:
        available = ", ".join(sorted(SUBMODULE_REGISTRY.keys()))
        raise ValueError(f"Unknown submodule '{keycode}'. Available: {available}")
    return SUBMODULE_REGISTRY[keycode]


def get_available_submodules() -> list[str]:
    """Get list of bundled submodule keycodes.

    :returns: Sorted list of registered keycodes.
    """
    return sorted(SUBMODULE_REGISTRY.keys())
