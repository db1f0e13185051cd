"""CatalogService: search, deletes, page clamping"""

import pytest

from item_catalog.config import settings
from item_catalog.core.event_types import EventTypes
from item_catalog.services.catalog_service import CatalogService, clamp_page
from item_catalog.services.ingest_service import Submitter

DUMP = (
    "a rusty dagger (poor)\nObject 'dagger rusty', Item type: weapon\nWeight: 3\n"
    "a shiny ring\nObject 'ring shiny', Item type: armor\nWeight: 1\n"
    "an old boot\nObject 'boot old', Item type: armor\nWeight: 2\n"
)


@pytest.fixture()
def service(store, provenance, bus) -> CatalogService:
    return CatalogService(store, provenance, bus)


@pytest.fixture()
def seeded(ingest):
    return ingest.ingest_raw(DUMP, Submitter(name="Alice", user_id="u-1"))


class TestClampPage:
    def test_defaults(self) -> None:
        assert clamp_page(None, None) == (settings.DEFAULT_PAGE_SIZE, 0)

    def test_caps_limit(self) -> None:
        assert clamp_page(10_000, 5) == (settings.MAX_PAGE_SIZE, 5)

    def test_negative_offset(self) -> None:
        assert clamp_page(10, -3) == (10, 0)


class TestSearch:
    def test_ordered_by_name(self, service, seeded) -> None:
        names = [r.name for r in service.search()]
        assert names == ["a rusty dagger", "a shiny ring", "an old boot"]

    def test_filters(self, service, seeded) -> None:
        assert [r.name for r in service.search(q="RING")] == ["a shiny ring"]
        assert len(service.search(item_type="Armor")) == 2
        assert service.search(flagged=True) == []
        assert len(service.search(user_id="u-1")) == 3
        assert service.search(user_id="u-2") == []

    def test_paging(self, service, seeded) -> None:
        assert [r.name for r in service.search(limit=1, offset=1)] == ["a shiny ring"]

    def test_contributors_filled(self, service, seeded) -> None:
        [record] = service.search(q="dagger")
        assert record.contributors == ["Alice"]
        assert record.submission_count == 1

    def test_get(self, service, seeded) -> None:
        item_id = seeded.outcomes[0].record.item_id
        assert service.get(item_id).name == "a rusty dagger"
        assert service.get("missing") is None


class TestDelete:
    def test_delete_one(self, service, seeded, bus) -> None:
        seen = []
        bus.subscribe(EventTypes.ITEM_DELETED, seen.append)
        item_id = seeded.outcomes[0].record.item_id
        assert service.delete(item_id) is True
        assert service.get(item_id) is None
        assert service.delete(item_id) is False
        assert len(seen) == 1

    def test_delete_all(self, service, seeded, bus) -> None:
        seen = []
        bus.subscribe(EventTypes.CATALOG_CLEARED, seen.append)
        assert service.delete_all() == 3
        assert service.search() == []
        assert seen[0].data["count"] == 3
