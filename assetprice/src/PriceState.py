"""PriceState: Shared in-memory state of the price engine.

Holds the asset records, the registration order used for iteration, the
installed submodules and the global settings. The components operating on
it never hold state of their own.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .Asset import Asset
from .errors import AssetNotApproved, SubmoduleNotInstalled
from .submodules import Submodule


@dataclass
class PriceState:
    """State shared by the registry, aggregator, store and query service.

    :ivar decimals: Fixed-point decimals of every returned price.
    :ivar observation_frequency: Seconds between stored observations.
    :ivar assets: Asset records keyed by checksum address.
    :ivar asset_list: Approved asset addresses in iteration order.
    :ivar submodules: Installed submodules keyed by keycode.
    """

    decimals: int
    observation_frequency: int
    assets: dict[str, Asset] = field(default_factory=dict)
    asset_list: list[str] = field(default_factory=list)
    submodules: dict[str, Submodule] = field(default_factory=dict)

    def approved_asset(self, asset: str) -> Asset:
        """Return the record of an approved asset.

        :raises AssetNotApproved: If the asset is unknown or not approved.
        """
        record = self.assets.get(asset)
        if record is None or not record.approved:
            raise AssetNotApproved(asset)
        return record

    def get_submodule(self, keycode: str) -> Submodule:
        """Return an installed submodule.

        :raises SubmoduleNotInstalled: If nothing is installed under ``keycode``.
        """
        submodule = self.submodules.get(keycode)
        if submodule is None:
            raise SubmoduleNotInstalled(keycode)
        return submodule
