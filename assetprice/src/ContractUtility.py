"""ContractUtility: Web3 connection and address helpers."""

from __future__ import annotations

import logging
import os

from web3 import Web3

logger = logging.getLogger(__name__)

NETWORKS = {
    "mainnet": "https://eth.llamarpc.com",
    "sepolia": "https://rpc.sepolia.org",
    "localnet": "http://localhost:8545",
}


def to_address(value: str) -> str | None:
    """Normalize an address to its EIP-55 checksum form.

    :param value: Hex address in any case.
    :returns: Checksum address, or None if ``value`` is not an address.

    .. code-block:: python

        >>> to_address("0x5fbdb2315678afecb367f032d93f642f64180aa3")
        '0x5FbDB2315678afecb367f032d93F642f64180aa3'
        >>> to_address("not-an-address") is None
        True
    """
    if not isinstance(value, str) or not Web3.is_address(value):
        return None
    return Web3.to_checksum_address(value)


class ContractUtility:
    """Utility for the Web3 connection used by on-chain feeds.

    :ivar network: Network RPC URL.
    :ivar w3: Configured Web3 instance.
    """

    def __init__(self, network_name: str) -> None:
        """Initialize the contract utility.

        :param network_name: Name of a known network, or an RPC URL.
        """
        # RPC_URL env var overrides the default for the network
        self.network = os.environ.get("RPC_URL") or NETWORKS.get(network_name, network_name)
        self.w3 = Web3(Web3.HTTPProvider(self.network))
        logger.info(f"Connected web3 provider {self.network}")

    def has_code(self, address: str) -> bool:
        """Check whether a contract is deployed at ``address``.

        :param address: Checksum address.
        :returns: True if the account has non-empty code.
        """
        return len(self.w3.eth.get_code(address)) > 0
