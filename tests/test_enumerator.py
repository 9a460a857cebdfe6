"""Tests for catalog enumeration strategies."""
import pytest

from fakes import FakeCatalog, make_asset

from asset_migrator.errors import CatalogUnavailable
from asset_migrator.models import EnumerationFilters
from asset_migrator.orchestrator.enumerator import (
    CursorEnumerator,
    IdListEnumerator,
    build_enumerator,
    chunked,
)
from asset_migrator.services.catalog import VERIFICATION_FIELDS


def _pages(*sizes):
    pages = []
    n = 0
    for size in sizes:
        pages.append([make_asset(f"asset-{n + i}") for i in range(size)])
        n += size
    return pages


async def _collect(enumerator):
    return [batch async for batch in enumerator.batches()]


def test_chunked():
    assert chunked(list("abcde"), 2) == [["a", "b"], ["c", "d"], ["e"]]
    assert chunked([], 3) == []


class TestCursorEnumerator:
    @pytest.mark.asyncio
    async def test_three_pages_three_requests(self):
        catalog = FakeCatalog(_pages(2, 2, 1))
        enumerator = CursorEnumerator(catalog, EnumerationFilters(), page_size=2)

        batches = await _collect(enumerator)

        assert [len(b) for b in batches] == [2, 2, 1]
        assert [c["cursor"] for c in catalog.list_calls] == [None, "page-1", "page-2"]

    @pytest.mark.asyncio
    async def test_limit_stops_early(self):
        catalog = FakeCatalog(_pages(3, 3, 3))
        enumerator = CursorEnumerator(catalog, EnumerationFilters(), page_size=3, limit=4)

        batches = await _collect(enumerator)

        assert sum(len(b) for b in batches) == 4
        assert [c["page_size"] for c in catalog.list_calls] == [3, 1]

    @pytest.mark.asyncio
    async def test_passes_field_selector(self):
        catalog = FakeCatalog(_pages(1))
        enumerator = CursorEnumerator(catalog, EnumerationFilters(), fields=VERIFICATION_FIELDS)

        await _collect(enumerator)

        assert catalog.list_calls[0]["fields"] == VERIFICATION_FIELDS

    @pytest.mark.asyncio
    async def test_not_restartable(self):
        enumerator = CursorEnumerator(FakeCatalog(_pages(1)), EnumerationFilters())
        await _collect(enumerator)

        with pytest.raises(RuntimeError, match="already consumed"):
            await _collect(enumerator)

    @pytest.mark.asyncio
    async def test_catalog_error_after_first_page(self):
        catalog = FakeCatalog(_pages(2, 2), fail_on_page=1)
        enumerator = CursorEnumerator(catalog, EnumerationFilters(), page_size=2)
        seen = []

        with pytest.raises(CatalogUnavailable):
            async for batch in enumerator.batches():
                seen.append(batch)

        assert len(seen) == 1


class TestIdListEnumerator:
    @pytest.mark.asyncio
    async def test_250_ids_three_lookups(self):
        ids = [f"asset-{i}" for i in range(250)]
        catalog = FakeCatalog(_pages(250))
        enumerator = IdListEnumerator(catalog, EnumerationFilters(public_ids=tuple(ids)))

        batches = await _collect(enumerator)

        assert enumerator.lookup_count == 3
        assert [len(call) for call in catalog.lookup_calls] == [100, 100, 50]
        assert sum(len(b) for b in batches) == 250

    @pytest.mark.asyncio
    async def test_unknown_ids_are_dropped(self):
        catalog = FakeCatalog(_pages(2))
        filters = EnumerationFilters(public_ids=("asset-0", "ghost", "asset-0"))

        batches = await _collect(IdListEnumerator(catalog, filters))

        assert catalog.lookup_calls == [["asset-0", "ghost"]]
        assert [a.public_id for a in batches[0]] == ["asset-0"]


def test_build_enumerator_selects_strategy():
    catalog = FakeCatalog([])
    assert isinstance(build_enumerator(catalog, EnumerationFilters()), CursorEnumerator)
    assert isinstance(
        build_enumerator(catalog, EnumerationFilters(public_ids=("a",))),
        IdListEnumerator,
    )
