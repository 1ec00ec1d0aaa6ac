# catalog_console/services/catalog_loader.py

"""Fetches canonical catalog state for the edit buffer."""

import asyncio
import logging

from catalog_console.config.settings import Settings
from catalog_console.models.entity_id import EntityId, PersistedId
from catalog_console.models.product import Product
from catalog_console.models.variant import Variant
from catalog_console.services.catalog_service import CatalogService, Record

logger = logging.getLogger("catalog_console.loader")


class CatalogLoader:
    """Reads products per collection and variants per product."""

    def __init__(self, service: CatalogService) -> None:
        self.service = service
        self.settings = Settings()

    async def load_for_selection(
        self, collection_ids: list[str],
    ) -> list[Product]:
        """Fetch the products of every selected collection.

        Collections are requested in batches of ``LOADER_BATCH_SIZE`` so
        a large selection does not flood the transport.  A product that
        shows up under more than one collection is kept once.  Any failed
        request propagates, so the caller can keep its previous state.
        """
        batch_size = max(1, self.settings.LOADER_BATCH_SIZE)
        seen: set[str] = set()
        products: list[Product] = []
        duplicates = 0

        for start in range(0, len(collection_ids), batch_size):
            batch = collection_ids[start:start + batch_size]
            results: list[list[Record]] = list(
                await asyncio.gather(
                    *(
                        self.service.get_products_by_collection_id(cid)
                        for cid in batch
                    )
                )
            )
            for records in results:
                for record in records:
                    product_id = record["productId"]
                    if product_id in seen:
                        duplicates += 1
                        continue
                    seen.add(product_id)
                    products.append(Product.from_record(record))

        if duplicates:
            logger.warning(
                "Dropped %d products listed under more than one collection",
                duplicates,
            )
        logger.info(
            "Loaded %d products from %d collections",
            len(products),
            len(collection_ids),
        )
        return products

    async def load_variants_for(self, product_id: EntityId) -> list[Variant]:
        """Fetch a product's variants; unsaved products have none remotely."""
        if not isinstance(product_id, PersistedId):
            return []
        records = await self.service.get_variants_by_product_id(
            product_id.value
        )
        logger.debug(
            "Loaded %d variants for product %s", len(records), product_id
        )
        return [Variant.from_record(r) for r in records]
