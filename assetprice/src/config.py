"""Loading of submodule and asset configuration from JSON.

File format::

    {
      "submodules": {"PRICE.CHAINLINK": {}, "PRICE.SIMPLESTRATEGY": {}},
      "assets": [
        {
          "address": "0x...",
          "store_moving_average": true,
          "use_moving_average": false,
          "moving_average_duration": 86400,
          "last_observation_time": 1700000000,
          "observations": ["3000000000000000000000", "3010000000000000000000", "..."],
          "strategy": {"target": "PRICE.SIMPLESTRATEGY", "selector": "get_average_price"},
          "feeds": [
            {
              "target": "PRICE.CHAINLINK",
              "selector": "get_one_feed_price",
              "params": {"types": ["address", "uint48"], "values": ["0x...", 3600]}
            }
          ]
        }
      ]
    }

Component params are either a hex string or a ``{"types", "values"}``
object encoded with ``eth_abi``. Observations may be given as strings to
avoid JSON precision loss.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from eth_abi import encode

from .Asset import Component
from .Clock import Clock
from .submodules import (
    ChainlinkPriceFeeds,
    HttpJsonPriceFeed,
    Submodule,
    get_submodule_class,
)

if TYPE_CHECKING:
    from web3 import Web3

    from .PriceModule import PriceModule

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised when a configuration file is malformed."""

    pass


@dataclass
class AssetConfig:
    """Arguments of one ``add_asset`` call."""

    address: str
    feeds: list[Component]
    strategy: Component | None = None
    store_moving_average: bool = False
    use_moving_average: bool = False
    moving_average_duration: int = 0
    last_observation_time: int = 0
    observations: list[int] = field(default_factory=list)


@dataclass
class EngineConfig:
    """Parsed configuration file.

    :ivar submodules: Keycode to constructor options.
    :ivar assets: Assets to register, in order.
    """

    submodules: dict[str, dict[str, Any]]
    assets: list[AssetConfig]


def parse_params(raw: Any) -> bytes:
    """Turn a params entry into an ABI-encoded blob.

    :param raw: None, a hex string, or ``{"types": [...], "values": [...]}``.
    :returns: Encoded params.
    :raises ConfigError: If the entry cannot be encoded.

    .. code-block:: python

        >>> parse_params({"types": ["uint256"], "values": [100]}).hex()[-4:]
        '0064'
    """
    if raw is None:
        return b""
    if isinstance(raw, str):
        try:
            return bytes.fromhex(raw.removeprefix("0x"))
        except ValueError as e:
            raise ConfigError(f"Invalid hex params '{raw}': {e}") from e
    if isinstance(raw, dict):
        try:
            return encode(raw["types"], raw["values"])
        except Exception as e:
            raise ConfigError(f"Cannot encode params {raw}: {e}") from e
    raise ConfigError(f"Unsupported params entry: {raw!r}")


def parse_component(raw: dict[str, Any]) -> Component:
    try:
        return Component(
            target=raw["target"],
            selector=raw["selector"],
            params=parse_params(raw.get("params")),
        )
    except KeyError as e:
        raise ConfigError(f"Component is missing {e}: {raw}") from e


def parse_asset(raw: dict[str, Any]) -> AssetConfig:
    try:
        address = raw["address"]
        feeds = [parse_component(f) for f in raw["feeds"]]
    except KeyError as e:
        raise ConfigError(f"Asset is missing {e}: {raw}") from e

    strategy = raw.get("strategy")
    return AssetConfig(
        address=address,
        feeds=feeds,
        strategy=parse_component(strategy) if strategy else None,
        store_moving_average=bool(raw.get("store_moving_average", False)),
        use_moving_average=bool(raw.get("use_moving_average", False)),
        moving_average_duration=int(raw.get("moving_average_duration", 0)),
        last_observation_time=int(raw.get("last_observation_time", 0)),
        observations=[int(v) for v in raw.get("observations", [])],
    )


def load_config(path: str | Path) -> EngineConfig:
    """Read and parse a configuration file.

    :param path: Path to the JSON file.
    :raises ConfigError: If the file is not valid configuration.
    """
    try:
        with open(path, "r") as file:
            data = json.load(file)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read config {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must be a JSON object")

    return EngineConfig(
        submodules=dict(data.get("submodules", {})),
        assets=[parse_asset(a) for a in data.get("assets", [])],
    )


def build_submodule(
    keycode: str,
    options: dict[str, Any],
    *,
    w3: Web3 | None = None,
    clock: Clock | None = None,
    http_timeout: float | None = None,
) -> Submodule:
    """Instantiate a bundled submodule.

    :param keycode: Keycode of a registered submodule.
    :param options: Constructor options from the config file.
    :param w3: Web3 instance for on-chain feeds.
    :param clock: Clock for staleness checks.
    :param http_timeout: Default timeout for HTTP feeds.
    :raises ConfigError: If the keycode is unknown or requirements are missing.
    """
    try:
        cls = get_submodule_class(keycode)
    except ValueError as e:
        raise ConfigError(str(e)) from e

    if cls is ChainlinkPriceFeeds:
        if w3 is None:
            raise ConfigError(f"{keycode} requires an RPC connection")
        return ChainlinkPriceFeeds(w3, clock)
    if cls is HttpJsonPriceFeed:
        return HttpJsonPriceFeed(
            timeout=options.get("timeout", http_timeout),
            headers=options.get("headers"),
        )
    return cls(**options)


def apply_config(price: PriceModule, config: EngineConfig, *, caller: str, **kwargs: Any) -> None:
    """Install the configured submodules and register the configured assets.

    :param price: Engine to configure.
    :param config: Parsed configuration.
    :param caller: Caller permitted to install submodules and add assets.
    :param kwargs: Forwarded to :func:`build_submodule`.
    """
    for keycode, options in config.submodules.items():
        price.install_submodule(build_submodule(keycode, options or {}, **kwargs), caller=caller)

    for asset in config.assets:
        price.add_asset(
            asset.address,
            asset.store_moving_average,
            asset.use_moving_average,
            asset.moving_average_duration,
            asset.last_observation_time,
            asset.observations,
            asset.strategy,
            asset.feeds,
            caller=caller,
        )
    logger.info(
        f"Applied config: {len(config.submodules)} submodules, {len(config.assets)} assets"
    )
