# tests/test_catalog_session.py

"""Tests for CatalogSession: loading, undo, save and reload."""

import unittest
from typing import Any
from unittest.mock import patch

from catalog_console.models.entity_id import PersistedId
from catalog_console.models.entity_state import EntityState
from catalog_console.services.catalog_session import CatalogSession
from catalog_console.services.errors import TransportError
from catalog_console.services.http_catalog_service import HttpCatalogService
from catalog_console.storage.memory_catalog import MemoryCatalogService

P1 = PersistedId("p1")
P2 = PersistedId("p2")
V1 = PersistedId("v1")
V2 = PersistedId("v2")


def _store() -> MemoryCatalogService:
    store = MemoryCatalogService()
    store.seed(
        [
            {
                "productId": "p1",
                "collectionId": "tea",
                "name": "Sencha",
                "fields": [],
                "imageUrls": [],
                "defaultVariantId": "v1",
            },
            {
                "productId": "p2",
                "collectionId": "tea",
                "name": "Assam",
                "fields": [],
                "imageUrls": [],
            },
            {
                "productId": "p3",
                "collectionId": "coffee",
                "name": "House Blend",
                "fields": [],
                "imageUrls": [],
            },
        ],
        [
            {
                "variantId": vid,
                "productId": "p1",
                "collectionId": "tea",
                "name": vid,
                "price": 100,
                "stock": 5,
                "relatedProductIds": [],
                "fields": [],
                "imageUrls": [],
            }
            for vid in ("v1", "v2")
        ],
    )
    return store


async def _session(store: MemoryCatalogService) -> CatalogSession:
    session = CatalogSession(store)
    result = await session.select_collections(["tea"])
    assert not result.errors
    store.calls.clear()
    return session


class TestDefaultService(unittest.TestCase):
    """Service selection from settings."""

    def test_offline_uses_sample_catalog(self) -> None:
        with patch(
            "catalog_console.services.catalog_session.Settings.CATALOG_API_URL",
            "",
        ):
            session = CatalogSession()
        self.assertIsInstance(session.service, MemoryCatalogService)
        self.assertTrue(session.service.products)

    def test_api_url_selects_http_client(self) -> None:
        with patch(
            "catalog_console.services.catalog_session.Settings.CATALOG_API_URL",
            "https://api.test",
        ):
            session = CatalogSession()
        self.assertIsInstance(session.service, HttpCatalogService)


class TestLoading(unittest.IsolatedAsyncioTestCase):
    """Selection loading and lazy variants."""

    async def test_select_loads_products_and_first_variants(self) -> None:
        store = _store()
        session = CatalogSession(store)
        result = await session.select_collections(["tea", " tea ", ""])
        self.assertEqual(result.errors, [])
        self.assertEqual(result.collection_ids, ["tea"])
        self.assertEqual(result.product_count, 2)
        self.assertEqual(session.buffer.selected_product_id, P1)
        self.assertEqual(len(session.buffer.variants_for(P1)), 2)

    async def test_select_product_loads_variants_once(self) -> None:
        store = _store()
        session = await _session(store)
        self.assertEqual(await session.select_product(P2), [])
        self.assertEqual(await session.select_product(P2), [])
        self.assertEqual(
            store.call_names(), ["get_variants_by_product_id"]
        )
        self.assertEqual(session.buffer.selected_product_id, P2)

    async def test_select_unknown_product(self) -> None:
        session = await _session(_store())
        errors = await session.select_product(PersistedId("nope"))
        self.assertEqual(len(errors), 1)

    async def test_failed_load_leaves_buffer_untouched(self) -> None:
        store = _store()
        session = await _session(store)
        session.buffer.set_product_field(P1, "name", "Local edit")

        async def broken(collection_id: str) -> list[dict[str, Any]]:
            raise TransportError("network down")

        with patch.object(store, "get_products_by_collection_id", broken):
            result = await session.select_collections(["coffee"])

        self.assertEqual(len(result.errors), 1)
        self.assertIn("network down", result.errors[0])
        self.assertEqual(session.buffer.selected_collections, ["tea"])
        self.assertEqual(session.buffer.get_product(P1).name, "Local edit")
        self.assertTrue(session.buffer.has_unsaved_changes)

    async def test_discard_drops_edits(self) -> None:
        store = _store()
        session = await _session(store)
        session.buffer.set_product_field(P1, "name", "Local edit")
        session.buffer.add_product()
        result = await session.discard()
        self.assertEqual(result.errors, [])
        self.assertFalse(session.buffer.has_unsaved_changes)
        self.assertEqual(session.buffer.get_product(P1).name, "Sencha")


class TestUndo(unittest.IsolatedAsyncioTestCase):
    """Undo restores cleanly: locally or with exactly one read."""

    async def test_plain_delete_is_restored_without_calls(self) -> None:
        store = _store()
        session = await _session(store)
        session.buffer.delete_product(P2)
        result = await session.undo_product(P2)
        self.assertEqual(result.remote_reads, 0)
        self.assertEqual(store.calls, [])
        self.assertIs(session.buffer.get_product(P2).state, EntityState.UNMODIFIED)

    async def test_edited_and_deleted_product_is_refetched(self) -> None:
        store = _store()
        session = await _session(store)
        session.buffer.set_product_field(P2, "name", "Changed")
        session.buffer.delete_product(P2)
        result = await session.undo_product(P2)
        self.assertEqual(result.errors, [])
        self.assertEqual(result.remote_reads, 1)
        self.assertEqual(store.call_names(), ["get_product_by_id"])
        product = session.buffer.get_product(P2)
        self.assertEqual(product.name, "Assam")
        self.assertIs(product.state, EntityState.UNMODIFIED)

    async def test_product_undo_leaves_variants_alone(self) -> None:
        store = _store()
        session = await _session(store)
        session.buffer.set_product_field(P1, "name", "Changed")
        session.buffer.set_variant_field(V2, "stock", 0)
        await session.undo_product(P1)
        self.assertIs(session.buffer.get_variant(V2).state, EntityState.MODIFIED)
        self.assertEqual(session.buffer.get_product(P1).name, "Sencha")

    async def test_undo_of_new_product_keeps_it(self) -> None:
        store = _store()
        session = await _session(store)
        product = session.buffer.add_product()
        result = await session.undo_product(product.product_id)
        self.assertEqual(len(result.errors), 1)
        self.assertEqual(result.remote_reads, 0)
        self.assertEqual(store.calls, [])
        self.assertIn(product, session.buffer.products)
        self.assertIs(product.state, EntityState.CREATED)

    async def test_undo_of_new_variant_keeps_it(self) -> None:
        store = _store()
        session = await _session(store)
        variant = session.buffer.add_variant(P1)
        result = await session.undo_variant(variant.variant_id)
        self.assertEqual(len(result.errors), 1)
        self.assertEqual(store.calls, [])
        self.assertIs(
            session.buffer.get_variant(variant.variant_id), variant
        )

    async def test_undo_of_remotely_deleted_product(self) -> None:
        store = _store()
        session = await _session(store)
        session.buffer.set_product_field(P2, "name", "Changed")
        del store.products["p2"]
        result = await session.undo_product(P2)
        self.assertEqual(len(result.errors), 1)
        self.assertEqual(session.buffer.get_product(P2).name, "Changed")

    async def test_variant_undo(self) -> None:
        store = _store()
        session = await _session(store)
        session.buffer.set_variant_field(V2, "price", 999)
        result = await session.undo_variant(V2)
        self.assertEqual(result.remote_reads, 1)
        self.assertEqual(store.call_names(), ["get_variant_by_id"])
        variant = session.buffer.get_variant(V2)
        self.assertEqual(variant.price, 100)
        self.assertIs(variant.state, EntityState.UNMODIFIED)

    async def test_variant_plain_delete_restored_locally(self) -> None:
        store = _store()
        session = await _session(store)
        session.buffer.delete_variant(V2)
        result = await session.undo_variant(V2)
        self.assertEqual(result.remote_reads, 0)
        self.assertEqual(store.calls, [])

    async def test_undo_read_failure_is_reported(self) -> None:
        store = _store()
        session = await _session(store)
        session.buffer.set_variant_field(V2, "price", 999)

        async def broken(variant_id: str) -> None:
            raise TransportError("timeout")

        with patch.object(store, "get_variant_by_id", broken):
            result = await session.undo_variant(V2)
        self.assertEqual(len(result.errors), 1)
        self.assertEqual(session.buffer.get_variant(V2).price, 999)


class TestSave(unittest.IsolatedAsyncioTestCase):
    """Save commits then reloads; failures keep the buffer dirty."""

    async def test_clean_save_issues_no_calls(self) -> None:
        store = _store()
        session = await _session(store)
        result = await session.save()
        self.assertTrue(result.committed)
        self.assertEqual(result.errors, [])
        self.assertEqual(store.calls, [])

    async def test_save_commits_and_reloads(self) -> None:
        store = _store()
        session = await _session(store)
        product = session.buffer.add_product()
        session.buffer.set_product_field(product.product_id, "name", "Matcha")
        variant = session.buffer.add_variant(product.product_id)
        session.buffer.set_default_variant(product.product_id, variant.variant_id)

        result = await session.save()

        self.assertEqual(result.errors, [])
        assert result.report is not None
        real_product = PersistedId(result.report.product_ids[product.product_id])
        real_variant = PersistedId(result.report.variant_ids[variant.variant_id])
        buffer = session.buffer
        self.assertFalse(buffer.has_unsaved_changes)
        self.assertEqual(buffer.selected_product_id, real_product)
        self.assertEqual(
            buffer.get_product(real_product).default_variant_id, real_variant
        )
        self.assertEqual(
            [v.variant_id for v in buffer.variants_for(real_product)],
            [real_variant],
        )

    async def test_failed_save_keeps_buffer_dirty(self) -> None:
        store = _store()
        session = await _session(store)
        session.buffer.set_product_field(P1, "name", "")
        session.buffer.set_variant_field(V2, "stock", 1)

        result = await session.save()

        self.assertFalse(result.committed)
        self.assertEqual(len(result.errors), 1)
        self.assertIn("update_products", result.errors[0])
        self.assertTrue(session.buffer.has_unsaved_changes)
        self.assertIs(session.buffer.get_product(P1).state, EntityState.MODIFIED)
        self.assertNotIn("get_products_by_collection_id", store.call_names())

    async def test_reload_failure_after_commit_is_reported(self) -> None:
        store = _store()
        session = await _session(store)
        session.buffer.set_variant_field(V2, "stock", 1)

        async def broken(collection_id: str) -> list[dict[str, Any]]:
            raise TransportError("gone")

        with patch.object(store, "get_products_by_collection_id", broken):
            result = await session.save()

        self.assertTrue(result.committed)
        self.assertEqual(store.variants["v2"]["stock"], 1)
        self.assertEqual(len(result.errors), 1)
        self.assertIn("reload failed", result.errors[0])


if __name__ == "__main__":
    unittest.main()
