"""Derived-state guards for the registry form."""

import logging
from dataclasses import dataclass
from typing import Hashable

logger = logging.getLogger(__name__)


class RunOnceGuard:
    """
    Remember the last executed key and skip repeats.

    Loads triggered by form changes go through this guard so unrelated
    changes don't re-issue the same store query. A newer key supersedes
    the previous one; there is no cancellation of an in-flight load.
    """

    def __init__(self):
        self._last_key: Hashable | None = None

    def should_run(self, key: Hashable) -> bool:
        """Return True and record the key if it differs from the last one."""
        if key == self._last_key:
            logger.debug(f"Skipping repeated run for key {key!r}")
            return False
        self._last_key = key
        return True

    def reset(self) -> None:
        self._last_key = None


@dataclass(frozen=True)
class RoleFlags:
    """Site group memberships of the current user."""

    proveedor: bool = False
    distribuidor: bool = False
    coordinador: bool = False

    @property
    def filters_by_empresa(self) -> bool:
        """Suppliers only see their own company's vehicles, unless they also hold a wider role."""
        return self.proveedor and not (self.distribuidor or self.coordinador)
