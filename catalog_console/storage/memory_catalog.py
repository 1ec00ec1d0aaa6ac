# catalog_console/storage/memory_catalog.py

"""In-process document store implementing the catalog service contract.

Mirrors the server-side rules of the storefront API closely enough for
offline use and for exercising the commit engine: server-assigned ids,
payload validation, the per-product variant cap, the cascading-delete
cap, and unique product names within a collection.
"""

import asyncio
import copy
import json
import logging
import uuid
from pathlib import Path
from typing import Any

from catalog_console.config.settings import Settings
from catalog_console.services.catalog_service import CatalogService, Record
from catalog_console.services.errors import (
    ConflictError,
    LimitExceededError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger("catalog_console.memory_store")


def _is_str_list(value: Any) -> bool:
    return isinstance(value, list) and all(
        isinstance(v, str) for v in value
    )


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_product(payload: Any) -> Record:
    """Check a product payload and return a normalised copy."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid product")
    if not isinstance(payload.get("name"), str) or not payload["name"].strip():
        raise ValidationError("Invalid product: name is required")
    if not isinstance(payload.get("collectionId"), str) or not payload["collectionId"]:
        raise ValidationError("collectionId is required")
    for key in ("description", "defaultVariantId"):
        if key in payload and payload[key] is not None and not isinstance(payload[key], str):
            raise ValidationError(f"Invalid product: {key} must be a string")
    if not isinstance(payload.get("fields"), list):
        raise ValidationError("Invalid product: fields must be a list")
    if not _is_str_list(payload.get("imageUrls")):
        raise ValidationError("Invalid product: imageUrls must be a list of strings")

    product: Record = {
        "name": payload["name"],
        "collectionId": payload["collectionId"],
        "fields": copy.deepcopy(payload["fields"]),
        "imageUrls": list(payload["imageUrls"]),
    }
    if payload.get("description") is not None:
        product["description"] = payload["description"]
    if payload.get("defaultVariantId"):
        product["defaultVariantId"] = payload["defaultVariantId"]
    return product


def validate_variant(payload: Any) -> Record:
    """Check a variant payload and return a normalised copy."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid variant")
    if not isinstance(payload.get("name"), str):
        raise ValidationError("Invalid variant: name is required")
    if not _is_int(payload.get("price")) or payload["price"] < 0:
        raise ValidationError("Invalid variant: price must be a non-negative integer")
    if not _is_int(payload.get("stock")) or payload["stock"] < 0:
        raise ValidationError("Invalid variant: stock must be a non-negative integer")
    maximum = payload.get("maximumInOrder")
    if maximum is not None and (not _is_int(maximum) or maximum < 1):
        raise ValidationError("Invalid variant: maximumInOrder must be a positive integer")
    if not _is_str_list(payload.get("relatedProductIds")):
        raise ValidationError("Invalid variant: relatedProductIds must be a list of strings")
    if not isinstance(payload.get("fields"), list):
        raise ValidationError("Invalid variant: fields must be a list")
    if not _is_str_list(payload.get("imageUrls")):
        raise ValidationError("Invalid variant: imageUrls must be a list of strings")
    for key in ("productId", "collectionId"):
        if not isinstance(payload.get(key), str) or not payload[key]:
            raise ValidationError(f"Invalid variant: {key} is required")

    variant: Record = {
        "name": payload["name"],
        "price": payload["price"],
        "stock": payload["stock"],
        "relatedProductIds": list(payload["relatedProductIds"]),
        "fields": copy.deepcopy(payload["fields"]),
        "imageUrls": list(payload["imageUrls"]),
        "productId": payload["productId"],
        "collectionId": payload["collectionId"],
    }
    if maximum is not None:
        variant["maximumInOrder"] = maximum
    return variant


class MemoryCatalogService(CatalogService):
    """Dict-backed catalog store.

    Every call is appended to :attr:`calls` as ``(method, args)`` so
    callers can verify exactly which remote operations were issued.
    """

    def __init__(self, latency: float = 0.0) -> None:
        self.settings = Settings()
        self.products: dict[str, Record] = {}
        self.variants: dict[str, Record] = {}
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.latency = latency

    # ── Seeding ──────────────────────────────────────────

    def seed(
        self,
        products: list[Record],
        variants: list[Record] | None = None,
    ) -> None:
        """Insert records as-is, keeping their ids."""
        for record in products:
            self.products[record["productId"]] = copy.deepcopy(record)
        for record in variants or []:
            self.variants[record["variantId"]] = copy.deepcopy(record)
        logger.debug(
            "Seeded %d products and %d variants",
            len(products),
            len(variants or []),
        )

    @classmethod
    def from_json_file(cls, path: Path) -> "MemoryCatalogService":
        """Build a store seeded from ``{"products": [...], "variants": [...]}``."""
        with open(path, encoding="utf-8") as f:
            data: dict[str, list[Record]] = json.load(f)
        store = cls()
        store.seed(data.get("products", []), data.get("variants", []))
        return store

    # ── Internals ────────────────────────────────────────

    async def _record_call(self, method: str, *args: Any) -> None:
        self.calls.append((method, args))
        # Yield so sibling operations in a gather genuinely interleave
        await asyncio.sleep(self.latency)

    def call_names(self) -> list[str]:
        """Names of every call issued so far, in order."""
        return [name for name, _ in self.calls]

    def _variants_of(self, product_id: str) -> list[Record]:
        return [
            v for v in self.variants.values()
            if v["productId"] == product_id
        ]

    def _check_unique_name(
        self,
        collection_id: str,
        name: str,
        exclude_id: str | None = None,
    ) -> None:
        wanted = name.strip().lower()
        for pid, existing in self.products.items():
            if pid == exclude_id:
                continue
            if (
                existing.get("collectionId") == collection_id
                and existing.get("name", "").strip().lower() == wanted
            ):
                raise ConflictError(
                    f'A product named "{name}" already exists in this collection.'
                )

    def _check_variant_cap(self, product_id: str) -> None:
        limit = self.settings.MAX_VARIANTS_PER_PRODUCT
        if len(self._variants_of(product_id)) >= limit:
            raise LimitExceededError(
                f"Variant limit reached for productId {product_id} (limit {limit})"
            )

    def _check_default_exists(self, product: Record) -> None:
        default_id = product.get("defaultVariantId")
        if default_id and default_id not in self.variants:
            raise ValidationError(f"Unknown defaultVariantId {default_id}")

    # ── Products ─────────────────────────────────────────

    async def create_product(self, product: Record) -> Record:
        await self._record_call("create_product", product)
        record = validate_product(product)
        self._check_default_exists(record)
        self._check_unique_name(record["collectionId"], record["name"])
        product_id = str(uuid.uuid4())
        stored = {"productId": product_id, **record}
        self.products[product_id] = stored
        logger.debug("Created product %s", product_id)
        return copy.deepcopy(stored)

    async def update_product(self, product_id: str, product: Record) -> Record:
        await self._record_call("update_product", product_id, product)
        record = validate_product(product)
        if product_id not in self.products:
            raise NotFoundError(f"Product {product_id} not found")
        self._check_default_exists(record)
        self._check_unique_name(
            record["collectionId"], record["name"], exclude_id=product_id
        )
        stored = {"productId": product_id, **record}
        self.products[product_id] = stored
        return copy.deepcopy(stored)

    async def delete_product(self, product_id: str) -> None:
        await self._record_call("delete_product", product_id)
        if product_id not in self.products:
            raise NotFoundError(f"Product {product_id} not found")
        owned = self._variants_of(product_id)
        limit = self.settings.CASCADE_DELETE_LIMIT
        if len(owned) > limit:
            raise LimitExceededError(
                f"Too many variants to delete atomically "
                f"({len(owned)} > limit {limit})"
            )
        for variant in owned:
            del self.variants[variant["variantId"]]
        del self.products[product_id]
        logger.debug(
            "Deleted product %s with %d variants", product_id, len(owned)
        )

    async def update_default_variant(
        self, product_id: str, variant_id: str,
    ) -> None:
        await self._record_call("update_default_variant", product_id, variant_id)
        product = self.products.get(product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        variant = self.variants.get(variant_id)
        if variant is None:
            raise NotFoundError(f"Variant {variant_id} not found")
        if variant["productId"] != product_id:
            raise ValidationError(
                f"Variant {variant_id} does not belong to product {product_id}"
            )
        product["defaultVariantId"] = variant_id

    async def get_product_by_id(self, product_id: str) -> Record | None:
        await self._record_call("get_product_by_id", product_id)
        record = self.products.get(product_id)
        return copy.deepcopy(record) if record is not None else None

    async def get_products_by_collection_id(
        self, collection_id: str,
    ) -> list[Record]:
        await self._record_call("get_products_by_collection_id", collection_id)
        return [
            copy.deepcopy(p) for p in self.products.values()
            if p.get("collectionId") == collection_id
        ]

    # ── Variants ─────────────────────────────────────────

    async def create_variant(self, variant: Record) -> Record:
        await self._record_call("create_variant", variant)
        record = validate_variant(variant)
        if record["productId"] not in self.products:
            raise ValidationError(f"Unknown productId {record['productId']}")
        self._check_variant_cap(record["productId"])
        variant_id = str(uuid.uuid4())
        stored = {"variantId": variant_id, **record}
        self.variants[variant_id] = stored
        return copy.deepcopy(stored)

    async def update_variant(self, variant_id: str, variant: Record) -> Record:
        await self._record_call("update_variant", variant_id, variant)
        record = validate_variant(variant)
        existing = self.variants.get(variant_id)
        if existing is None:
            raise NotFoundError(f"Variant {variant_id} not found")
        if record["productId"] not in self.products:
            raise ValidationError(f"Unknown productId {record['productId']}")
        if record["productId"] != existing["productId"]:
            self._check_variant_cap(record["productId"])
        stored = {"variantId": variant_id, **record}
        self.variants[variant_id] = stored
        return copy.deepcopy(stored)

    async def delete_variant(self, variant_id: str) -> None:
        await self._record_call("delete_variant", variant_id)
        variant = self.variants.pop(variant_id, None)
        if variant is None:
            raise NotFoundError(f"Variant {variant_id} not found")
        owner = self.products.get(variant["productId"])
        if owner is not None and owner.get("defaultVariantId") == variant_id:
            del owner["defaultVariantId"]

    async def get_variant_by_id(self, variant_id: str) -> Record | None:
        await self._record_call("get_variant_by_id", variant_id)
        record = self.variants.get(variant_id)
        return copy.deepcopy(record) if record is not None else None

    async def get_variants_by_product_id(
        self, product_id: str,
    ) -> list[Record]:
        await self._record_call("get_variants_by_product_id", product_id)
        return [copy.deepcopy(v) for v in self._variants_of(product_id)]
