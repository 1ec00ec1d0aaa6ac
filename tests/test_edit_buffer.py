# tests/test_edit_buffer.py

"""Tests for local edit-buffer mutations and dirty tracking."""

import unittest

from catalog_console.buffer.edit_buffer import EditBuffer
from catalog_console.models.entity_id import PersistedId, TemporaryId
from catalog_console.models.entity_state import (
    EntityState,
    InvalidTransitionError,
)
from catalog_console.models.product import Product
from catalog_console.models.variant import Variant
from catalog_console.services.errors import UnknownEntityError

P1 = PersistedId("p1")
P2 = PersistedId("p2")
V1 = PersistedId("v1")
V2 = PersistedId("v2")


def _make_product(pid: PersistedId, default: PersistedId | None = None) -> Product:
    return Product(
        product_id=pid,
        collection_id="tea",
        name=f"Product {pid}",
        default_variant_id=default,
    )


def _make_variant(vid: PersistedId, pid: PersistedId = P1) -> Variant:
    return Variant(
        variant_id=vid,
        product_id=pid,
        collection_id="tea",
        name=f"Variant {vid}",
        price=100,
        stock=1,
    )


def _loaded_buffer() -> EditBuffer:
    buffer = EditBuffer()
    buffer.selected_collections = ["tea"]
    buffer.load([_make_product(P1, default=V1), _make_product(P2)])
    buffer.set_variants(P1, [_make_variant(V1), _make_variant(V2)])
    return buffer


class TestLoad(unittest.TestCase):
    """Hydration and selection."""

    def test_load_selects_first_product(self) -> None:
        buffer = _loaded_buffer()
        self.assertEqual(buffer.selected_product_id, P1)
        self.assertFalse(buffer.has_unsaved_changes)

    def test_load_keeps_existing_selection(self) -> None:
        buffer = _loaded_buffer()
        buffer.selected_product_id = P2
        buffer.load([_make_product(P1), _make_product(P2)])
        self.assertEqual(buffer.selected_product_id, P2)

    def test_load_clears_variant_cache(self) -> None:
        buffer = _loaded_buffer()
        buffer.load([_make_product(P1)])
        self.assertFalse(buffer.has_variants_cached(P1))

    def test_unknown_ids_raise(self) -> None:
        buffer = _loaded_buffer()
        with self.assertRaises(UnknownEntityError):
            buffer.get_product(PersistedId("nope"))
        with self.assertRaises(UnknownEntityError):
            buffer.get_variant(PersistedId("nope"))


class TestFieldEdits(unittest.TestCase):
    """setField marks entities edited without touching anything else."""

    def test_product_edit_marks_modified(self) -> None:
        buffer = _loaded_buffer()
        buffer.set_product_field(P1, "name", "Renamed")
        product = buffer.get_product(P1)
        self.assertEqual(product.name, "Renamed")
        self.assertIs(product.state, EntityState.MODIFIED)
        self.assertEqual(buffer.dirty_products(), [product])
        self.assertTrue(buffer.has_unsaved_changes)

    def test_variant_edit_marks_modified(self) -> None:
        buffer = _loaded_buffer()
        buffer.set_variant_field(V2, "stock", 7)
        self.assertIs(buffer.get_variant(V2).state, EntityState.MODIFIED)
        self.assertEqual(buffer.get_variant(V2).stock, 7)

    def test_unknown_field_rejected(self) -> None:
        buffer = _loaded_buffer()
        with self.assertRaises(ValueError):
            buffer.set_product_field(P1, "product_id", "x")
        self.assertFalse(buffer.has_unsaved_changes)

    def test_integer_fields_validated(self) -> None:
        buffer = _loaded_buffer()
        for value in (-1, 1.5, "10", True, None):
            with self.subTest(value=value):
                with self.assertRaises(ValueError):
                    buffer.set_variant_field(V1, "price", value)
        self.assertIs(buffer.get_variant(V1).state, EntityState.UNMODIFIED)

    def test_maximum_in_order_may_be_cleared(self) -> None:
        buffer = _loaded_buffer()
        buffer.set_variant_field(V1, "maximum_in_order", None)
        self.assertIsNone(buffer.get_variant(V1).maximum_in_order)

    def test_edit_of_deleted_entity_raises(self) -> None:
        buffer = _loaded_buffer()
        buffer.delete_product(P2)
        with self.assertRaises(InvalidTransitionError):
            buffer.set_product_field(P2, "name", "x")


class TestDefaultVariant(unittest.TestCase):
    """Default-variant designation."""

    def test_set_default_marks_product_edited(self) -> None:
        buffer = _loaded_buffer()
        buffer.set_default_variant(P1, V2)
        product = buffer.get_product(P1)
        self.assertEqual(product.default_variant_id, V2)
        self.assertIs(product.state, EntityState.MODIFIED)

    def test_default_must_belong_to_product(self) -> None:
        buffer = _loaded_buffer()
        with self.assertRaises(ValueError):
            buffer.set_default_variant(P2, V1)

    def test_deleting_default_variant_clears_it(self) -> None:
        buffer = _loaded_buffer()
        buffer.delete_variant(V1)
        product = buffer.get_product(P1)
        self.assertIsNone(product.default_variant_id)
        self.assertIs(product.state, EntityState.MODIFIED)

    def test_deleted_variant_cannot_become_default(self) -> None:
        buffer = _loaded_buffer()
        buffer.delete_variant(V2)
        with self.assertRaises(ValueError):
            buffer.set_default_variant(P1, V2)


class TestAdd(unittest.TestCase):
    """New entities get temporary ids and the Created state."""

    def test_add_product(self) -> None:
        buffer = _loaded_buffer()
        product = buffer.add_product()
        self.assertIsInstance(product.product_id, TemporaryId)
        self.assertIs(product.state, EntityState.CREATED)
        self.assertEqual(product.collection_id, "tea")
        self.assertIs(buffer.products[0], product)
        self.assertEqual(buffer.selected_product_id, product.product_id)
        self.assertEqual(buffer.variants_for(product.product_id), [])

    def test_add_product_needs_single_collection(self) -> None:
        buffer = _loaded_buffer()
        buffer.selected_collections = ["tea", "coffee"]
        with self.assertRaises(ValueError):
            buffer.add_product()
        self.assertEqual(buffer.add_product("coffee").collection_id, "coffee")

    def test_add_variant_inherits_parent(self) -> None:
        buffer = _loaded_buffer()
        variant = buffer.add_variant(P1)
        self.assertIsInstance(variant.variant_id, TemporaryId)
        self.assertEqual(variant.product_id, P1)
        self.assertEqual(variant.collection_id, "tea")
        self.assertIs(buffer.variants_for(P1)[0], variant)

    def test_add_variant_under_new_product(self) -> None:
        buffer = _loaded_buffer()
        product = buffer.add_product()
        variant = buffer.add_variant(product.product_id)
        self.assertEqual(variant.product_id, product.product_id)

    def test_edit_of_new_entity_stays_created(self) -> None:
        buffer = _loaded_buffer()
        product = buffer.add_product()
        buffer.set_product_field(product.product_id, "name", "Matcha")
        self.assertIs(product.state, EntityState.CREATED)

    def test_add_variant_to_deleted_product_rejected(self) -> None:
        buffer = _loaded_buffer()
        buffer.delete_product(P1)
        with self.assertRaises(ValueError):
            buffer.add_variant(P1)


class TestDelete(unittest.TestCase):
    """Soft deletes, hard deletes and local restore."""

    def test_delete_persisted_product_is_soft(self) -> None:
        buffer = _loaded_buffer()
        buffer.selected_product_id = P2
        buffer.delete_product(P2)
        self.assertIs(buffer.get_product(P2).state, EntityState.DELETED)
        self.assertIsNone(buffer.selected_product_id)

    def test_delete_edited_product(self) -> None:
        buffer = _loaded_buffer()
        buffer.set_product_field(P2, "name", "x")
        buffer.delete_product(P2)
        self.assertIs(
            buffer.get_product(P2).state, EntityState.MODIFIED_THEN_DELETED
        )

    def test_delete_new_variant_removes_it(self) -> None:
        buffer = _loaded_buffer()
        variant = buffer.add_variant(P1)
        buffer.delete_variant(variant.variant_id)
        with self.assertRaises(UnknownEntityError):
            buffer.get_variant(variant.variant_id)
        self.assertFalse(buffer.has_unsaved_changes)

    def test_delete_new_product_removes_its_variants(self) -> None:
        buffer = _loaded_buffer()
        product = buffer.add_product()
        buffer.add_variant(product.product_id)
        buffer.delete_product(product.product_id)
        self.assertNotIn(product, buffer.products)
        self.assertFalse(buffer.has_variants_cached(product.product_id))
        self.assertFalse(buffer.has_unsaved_changes)
        self.assertIsNone(buffer.selected_product_id)

    def test_restore_plain_delete(self) -> None:
        buffer = _loaded_buffer()
        buffer.delete_variant(V2)
        buffer.restore_variant(V2)
        self.assertIs(buffer.get_variant(V2).state, EntityState.UNMODIFIED)


class TestSnapshot(unittest.TestCase):
    """Snapshots are isolated from later edits."""

    def test_snapshot_is_deep_copy(self) -> None:
        buffer = _loaded_buffer()
        buffer.set_product_field(P1, "name", "Before")
        snapshot = buffer.snapshot()
        buffer.set_product_field(P1, "name", "After")
        buffer.add_variant(P1)
        self.assertEqual(snapshot.products[0].name, "Before")
        self.assertEqual(len(snapshot.variants_by_product[P1]), 2)
        self.assertEqual(len(snapshot.all_variants()), 2)


if __name__ == "__main__":
    unittest.main()
