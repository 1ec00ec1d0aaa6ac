# catalog_console/services/catalog_service.py

"""Abstract contract for the remote catalog store."""

from abc import ABC, abstractmethod
from typing import Any

Record = dict[str, Any]


class CatalogService(ABC):
    """Remote catalog store used by the loader, undo and the commit engine.

    Records are plain dicts with the wire's camelCase keys.  Write methods
    raise a :class:`~catalog_console.services.errors.CatalogServiceError`
    subclass on failure; single-entity reads return ``None`` when the
    entity does not exist.
    """

    # ── Products ─────────────────────────────────────────

    @abstractmethod
    async def create_product(self, product: Record) -> Record:
        """Create a product; the returned record carries its ``productId``."""

    @abstractmethod
    async def update_product(self, product_id: str, product: Record) -> Record:
        """Replace an existing product's fields."""

    @abstractmethod
    async def delete_product(self, product_id: str) -> None:
        """Delete a product together with its variants (capped)."""

    @abstractmethod
    async def update_default_variant(
        self, product_id: str, variant_id: str,
    ) -> None:
        """Point a product's ``defaultVariantId`` at one of its variants."""

    @abstractmethod
    async def get_product_by_id(self, product_id: str) -> Record | None:
        """Fetch a single product."""

    @abstractmethod
    async def get_products_by_collection_id(
        self, collection_id: str,
    ) -> list[Record]:
        """Fetch every product of a collection."""

    # ── Variants ─────────────────────────────────────────

    @abstractmethod
    async def create_variant(self, variant: Record) -> Record:
        """Create a variant; the returned record carries its ``variantId``."""

    @abstractmethod
    async def update_variant(self, variant_id: str, variant: Record) -> Record:
        """Replace an existing variant's fields."""

    @abstractmethod
    async def delete_variant(self, variant_id: str) -> None:
        """Delete a single variant."""

    @abstractmethod
    async def get_variant_by_id(self, variant_id: str) -> Record | None:
        """Fetch a single variant."""

    @abstractmethod
    async def get_variants_by_product_id(
        self, product_id: str,
    ) -> list[Record]:
        """Fetch every variant of a product."""
