"""Once-per-process loading of the read-only reference catalogs.

The item and heroic-ability catalogs are fetched at most once. Loading is
an explicit state machine guarded by an asyncio lock, so concurrent callers
share a single fetch and a failed fetch can be retried later.
"""

from __future__ import annotations

import asyncio
from enum import StrEnum
from typing import TYPE_CHECKING

from dragonsheet.core.exceptions import PersistenceError
from dragonsheet.core.logging import get_logger


if TYPE_CHECKING:
    from dragonsheet.models.catalog import GameItem, HeroicAbility
    from dragonsheet.storage.gateway import PersistenceGateway

logger = get_logger(__name__)


class CatalogState(StrEnum):
    """Load state of the reference catalogs."""

    NOT_LOADED = "not_loaded"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


class ReferenceCatalog:
    """Items and heroic abilities, loaded on first use.

    Share one instance between stores to keep the load once per process.
    """

    def __init__(self, gateway: PersistenceGateway) -> None:
        self._gateway = gateway
        self._state = CatalogState.NOT_LOADED
        self._lock = asyncio.Lock()
        self._items: list[GameItem] = []
        self._abilities: list[HeroicAbility] = []
        self._error: str | None = None

    @property
    def state(self) -> CatalogState:
        return self._state

    @property
    def items(self) -> list[GameItem]:
        return list(self._items)

    @property
    def heroic_abilities(self) -> list[HeroicAbility]:
        return list(self._abilities)

    @property
    def error(self) -> str | None:
        return self._error

    async def ensure_loaded(self) -> bool:
        """Load the catalogs unless already loaded.

        Returns:
            True if the catalogs are available.
        """
        if self._state is CatalogState.LOADED:
            return True

        async with self._lock:
            if self._state is CatalogState.LOADED:
                return True

            self._state = CatalogState.LOADING
            try:
                items, abilities = await asyncio.gather(
                    self._gateway.list_items(),
                    self._gateway.list_heroic_abilities(),
                )
            except PersistenceError as exc:
                self._state = CatalogState.FAILED
                self._error = exc.message
                logger.error("Reference catalog load failed", error=exc.message)
                return False

            self._items = list(items)
            self._abilities = list(abilities)
            self._error = None
            self._state = CatalogState.LOADED
            logger.info(
                "Reference catalogs loaded",
                items=len(self._items),
                heroic_abilities=len(self._abilities),
            )
            return True


__all__ = [
    "CatalogState",
    "ReferenceCatalog",
]
