"""Tests for once-per-process reference catalog loading."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

from dragonsheet.core.exceptions import RemoteError
from dragonsheet.engine.catalog import CatalogState, ReferenceCatalog
from dragonsheet.models import GameItem, HeroicAbility
from dragonsheet.storage.memory import InMemoryGateway


class TestReferenceCatalog:
    """Tests for the catalog load state machine."""

    async def test_initial_state(self, gateway: InMemoryGateway) -> None:
        catalog = ReferenceCatalog(gateway)

        assert catalog.state is CatalogState.NOT_LOADED
        assert catalog.items == []

    async def test_loads_once(self, gateway: InMemoryGateway, item_catalog: list[GameItem]) -> None:
        gateway.list_items = AsyncMock(wraps=gateway.list_items)
        catalog = ReferenceCatalog(gateway)

        assert await catalog.ensure_loaded()
        assert await catalog.ensure_loaded()

        assert catalog.state is CatalogState.LOADED
        assert [item.name for item in catalog.items] == [item.name for item in item_catalog]
        assert [a.name for a in catalog.heroic_abilities] == ["Defensive", "Robust"]
        gateway.list_items.assert_awaited_once()

    async def test_concurrent_callers_share_one_fetch(self, gateway: InMemoryGateway) -> None:
        release = asyncio.Event()

        async def slow_items() -> list[GameItem]:
            await release.wait()
            return [GameItem(id="i1", name="Torch")]

        gateway.list_items = AsyncMock(side_effect=slow_items)
        catalog = ReferenceCatalog(gateway)

        first = asyncio.create_task(catalog.ensure_loaded())
        second = asyncio.create_task(catalog.ensure_loaded())
        await asyncio.sleep(0)
        assert catalog.state is CatalogState.LOADING
        release.set()

        assert await asyncio.gather(first, second) == [True, True]
        assert gateway.list_items.await_count == 1

    async def test_failure_then_retry(self, gateway: InMemoryGateway) -> None:
        gateway.list_heroic_abilities = AsyncMock(
            side_effect=[
                RemoteError("catalog offline", operation="list_heroic_abilities"),
                [HeroicAbility(id="a1", name="Robust")],
            ]
        )
        catalog = ReferenceCatalog(gateway)

        assert not await catalog.ensure_loaded()
        assert catalog.state is CatalogState.FAILED
        assert catalog.error == "catalog offline"

        assert await catalog.ensure_loaded()
        assert catalog.state is CatalogState.LOADED
        assert catalog.error is None
