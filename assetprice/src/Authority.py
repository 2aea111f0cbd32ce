"""Authority: Authorization collaborator guarding mutating entry points."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class Authority(ABC):
    """Decides whether a caller may invoke a mutating entry point."""

    @abstractmethod
    def is_permitted(self, caller: str, action: str) -> bool:
        """Check a caller against an action.

        :param caller: Identifier of the caller (e.g., a policy address).
        :param action: Name of the entry point (e.g., "store_price").
        :returns: True if the call is allowed.
        """
        pass


class RolesAuthority(Authority):
    """Authority backed by an explicit caller-to-actions table.

    .. code-block:: python

        >>> auth = RolesAuthority()
        >>> auth.grant("heart", "store_observations")
        >>> auth.is_permitted("heart", "store_observations")
        True
        >>> auth.is_permitted("heart", "add_asset")
        False
    """

    def __init__(self, permissions: dict[str, set[str]] | None = None) -> None:
        """Initialize the authority.

        :param permissions: Optional initial mapping of caller to actions.
        """
        self._permissions: dict[str, set[str]] = {
            caller: set(actions) for caller, actions in (permissions or {}).items()
        }

    def grant(self, caller: str, *actions: str) -> None:
        """Allow ``caller`` to invoke each of ``actions``."""
        self._permissions.setdefault(caller, set()).update(actions)
        logger.info(f"Granted {sorted(actions)} to {caller}")

    def revoke(self, caller: str, *actions: str) -> None:
        """Withdraw ``actions`` from ``caller``; unknown entries are ignored."""
        granted = self._permissions.get(caller)
        if granted is None:
            return
        granted.difference_update(actions)
        logger.info(f"Revoked {sorted(actions)} from {caller}")

    def is_permitted(self, caller: str, action: str) -> bool:
        return action in self._permissions.get(caller, ())
