# catalog_console/buffer/edit_buffer.py

"""In-memory edit buffer for products and their variants.

Every mutation here is local: nothing in this module talks to the
catalog service.  Dirty state is tracked per entity through
:class:`~catalog_console.models.entity_state.EntityState`; the commit
engine later drains it against the remote store.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any

from catalog_console.config.settings import Settings
from catalog_console.models.entity_id import EntityId, TemporaryId
from catalog_console.models.entity_state import EntityState
from catalog_console.models.product import Product
from catalog_console.models.variant import Variant
from catalog_console.services.errors import UnknownEntityError

logger = logging.getLogger("catalog_console.buffer")


@dataclass
class BufferSnapshot:
    """Point-in-time deep copy of the buffer handed to the commit engine."""

    products: list[Product] = field(
        default_factory=lambda: list[Product]()
    )
    variants_by_product: dict[EntityId, list[Variant]] = field(
        default_factory=lambda: dict[EntityId, list[Variant]]()
    )

    def all_variants(self) -> list[Variant]:
        return [
            v
            for variants in self.variants_by_product.values()
            for v in variants
        ]


class EditBuffer:
    """Products and per-product variant lists with their dirty state."""

    def __init__(self) -> None:
        self.settings = Settings()
        self.products: list[Product] = []
        self.variants_by_product: dict[EntityId, list[Variant]] = {}
        self.selected_collections: list[str] = []
        self.selected_product_id: EntityId | None = None

    # ── Lookup ───────────────────────────────────────────

    def get_product(self, product_id: EntityId) -> Product:
        """Return the buffered product, or raise UnknownEntityError."""
        for product in self.products:
            if product.product_id == product_id:
                return product
        raise UnknownEntityError(f"Product {product_id} is not in the buffer")

    def get_variant(self, variant_id: EntityId) -> Variant:
        """Return the buffered variant from any product's list."""
        for variants in self.variants_by_product.values():
            for variant in variants:
                if variant.variant_id == variant_id:
                    return variant
        raise UnknownEntityError(f"Variant {variant_id} is not in the buffer")

    def variants_for(self, product_id: EntityId) -> list[Variant]:
        """Cached variants of a product; empty when not loaded yet."""
        return self.variants_by_product.get(product_id, [])

    def has_variants_cached(self, product_id: EntityId) -> bool:
        return product_id in self.variants_by_product

    @property
    def selected_product(self) -> Product | None:
        if self.selected_product_id is None:
            return None
        try:
            return self.get_product(self.selected_product_id)
        except UnknownEntityError:
            return None

    # ── Derived state ────────────────────────────────────

    def dirty_products(self) -> list[Product]:
        return [p for p in self.products if p.state.is_dirty]

    def dirty_variants(self) -> list[Variant]:
        return [
            v
            for variants in self.variants_by_product.values()
            for v in variants
            if v.state.is_dirty
        ]

    @property
    def has_unsaved_changes(self) -> bool:
        return bool(self.dirty_products() or self.dirty_variants())

    def snapshot(self) -> BufferSnapshot:
        """Deep copy of the current contents; later edits do not leak in."""
        return BufferSnapshot(
            products=copy.deepcopy(self.products),
            variants_by_product=copy.deepcopy(self.variants_by_product),
        )

    # ── Hydration ────────────────────────────────────────

    def load(self, products: list[Product]) -> None:
        """Replace all products with clean server copies.

        The variant cache is cleared; the previous product selection is
        kept when it is still present, otherwise the first product is
        selected.
        """
        self.products = list(products)
        self.variants_by_product = {}
        if self.selected_product is None:
            self.selected_product_id = (
                self.products[0].product_id if self.products else None
            )
        logger.info(
            "Buffer loaded with %d products for collections %s",
            len(self.products),
            self.selected_collections,
        )

    def set_variants(
        self, product_id: EntityId, variants: list[Variant],
    ) -> None:
        self.variants_by_product[product_id] = list(variants)

    def replace_product(self, product: Product) -> None:
        """Swap in a canonical copy of a product, leaving its variants alone."""
        for idx, existing in enumerate(self.products):
            if existing.product_id == product.product_id:
                self.products[idx] = product
                return
        raise UnknownEntityError(
            f"Product {product.product_id} is not in the buffer"
        )

    def replace_variant(self, variant: Variant) -> None:
        """Swap in a canonical copy of a variant, wherever it is listed."""
        for variants in self.variants_by_product.values():
            for idx, existing in enumerate(variants):
                if existing.variant_id == variant.variant_id:
                    variants[idx] = variant
                    return
        raise UnknownEntityError(
            f"Variant {variant.variant_id} is not in the buffer"
        )

    # ── Field edits ──────────────────────────────────────

    def set_product_field(
        self, product_id: EntityId, field_name: str, value: Any,
    ) -> None:
        product = self.get_product(product_id)
        if field_name not in Product.EDITABLE_FIELDS:
            msg = f"Product field '{field_name}' cannot be edited"
            raise ValueError(msg)
        product.state = product.state.on_edit()
        setattr(product, field_name, value)
        logger.debug("Product %s: %s edited", product_id, field_name)

    def set_variant_field(
        self, variant_id: EntityId, field_name: str, value: Any,
    ) -> None:
        variant = self.get_variant(variant_id)
        if field_name not in Variant.EDITABLE_FIELDS:
            msg = f"Variant field '{field_name}' cannot be edited"
            raise ValueError(msg)
        if field_name in Variant.INTEGER_FIELDS and value is not None:
            if not isinstance(value, int) or isinstance(value, bool):
                msg = f"Variant field '{field_name}' must be an integer"
                raise ValueError(msg)
            if value < 0:
                msg = f"Variant field '{field_name}' must not be negative"
                raise ValueError(msg)
        if field_name in ("price", "stock") and value is None:
            msg = f"Variant field '{field_name}' is required"
            raise ValueError(msg)
        variant.state = variant.state.on_edit()
        setattr(variant, field_name, value)
        logger.debug("Variant %s: %s edited", variant_id, field_name)

    def set_default_variant(
        self, product_id: EntityId, variant_id: EntityId | None,
    ) -> None:
        """Designate (or clear) a product's default variant."""
        product = self.get_product(product_id)
        if variant_id is not None:
            variant = self.get_variant(variant_id)
            if variant.product_id != product_id:
                msg = (
                    f"Variant {variant_id} does not belong to "
                    f"product {product_id}"
                )
                raise ValueError(msg)
            if variant.state.is_deleted:
                msg = f"Variant {variant_id} is marked for deletion"
                raise ValueError(msg)
        product.state = product.state.on_edit()
        product.default_variant_id = variant_id

    # ── Creation ─────────────────────────────────────────

    def add_product(self, collection_id: str | None = None) -> Product:
        """Insert a new product with a temporary id and select it.

        Without an explicit *collection_id*, exactly one collection must
        be selected.
        """
        if collection_id is None:
            if len(self.selected_collections) != 1:
                msg = "Select exactly one collection to add a product"
                raise ValueError(msg)
            collection_id = self.selected_collections[0]

        product = Product(
            product_id=TemporaryId.generate(),
            collection_id=collection_id,
            name=self.settings.NEW_PRODUCT_NAME,
            description="",
            state=EntityState.CREATED,
        )
        self.products.insert(0, product)
        self.variants_by_product[product.product_id] = []
        self.selected_product_id = product.product_id
        logger.info("Added product %s", product.product_id)
        return product

    def add_variant(self, product_id: EntityId) -> Variant:
        """Insert a new variant with a temporary id under *product_id*."""
        product = self.get_product(product_id)
        if product.state.is_deleted:
            msg = f"Product {product_id} is marked for deletion"
            raise ValueError(msg)

        variant = Variant(
            variant_id=TemporaryId.generate(),
            product_id=product.product_id,
            collection_id=product.collection_id,
            name=self.settings.NEW_VARIANT_NAME,
            state=EntityState.CREATED,
        )
        self.variants_by_product.setdefault(product_id, []).insert(0, variant)
        logger.info(
            "Added variant %s to product %s", variant.variant_id, product_id
        )
        return variant

    # ── Deletion & local undo ────────────────────────────

    def delete_product(self, product_id: EntityId) -> None:
        """Soft-delete a persisted product, or drop a new one entirely."""
        product = self.get_product(product_id)
        next_state = product.state.on_delete()
        if next_state is None:
            self.products.remove(product)
            self.variants_by_product.pop(product_id, None)
            logger.info("Discarded unsaved product %s", product_id)
        else:
            product.state = next_state
            logger.info("Marked product %s deleted", product_id)
        if self.selected_product_id == product_id:
            self.selected_product_id = None

    def delete_variant(self, variant_id: EntityId) -> None:
        """Soft-delete a persisted variant, or drop a new one entirely.

        A product whose default variant is deleted loses its default.
        """
        variant = self.get_variant(variant_id)
        next_state = variant.state.on_delete()
        if next_state is None:
            self.variants_by_product[variant.product_id].remove(variant)
            logger.info("Discarded unsaved variant %s", variant_id)
        else:
            variant.state = next_state
            logger.info("Marked variant %s deleted", variant_id)

        try:
            owner = self.get_product(variant.product_id)
        except UnknownEntityError:
            return
        if owner.default_variant_id == variant_id and not owner.state.is_deleted:
            owner.default_variant_id = None
            owner.state = owner.state.on_edit()

    def restore_product(self, product_id: EntityId) -> None:
        """Undo a plain delete of a product without a remote read."""
        product = self.get_product(product_id)
        product.state = product.state.on_restore()

    def restore_variant(self, variant_id: EntityId) -> None:
        """Undo a plain delete of a variant without a remote read."""
        variant = self.get_variant(variant_id)
        variant.state = variant.state.on_restore()
