# catalog_console/models/variant.py

"""Variant data model for the edit buffer."""

from dataclasses import dataclass, field
from typing import Any

from catalog_console.models.entity_id import EntityId, PersistedId
from catalog_console.models.entity_state import EntityState


@dataclass
class Variant:
    """A purchasable variant of a product.

    ``price`` is in minor currency units.
    """

    variant_id: EntityId
    product_id: EntityId
    collection_id: str
    name: str
    price: int = 0
    stock: int = 0
    maximum_in_order: int | None = None
    related_product_ids: list[str] = field(
        default_factory=lambda: list[str]()
    )
    fields: list[dict[str, Any]] = field(
        default_factory=lambda: list[dict[str, Any]]()
    )
    image_urls: list[str] = field(
        default_factory=lambda: list[str]()
    )
    state: EntityState = EntityState.UNMODIFIED

    EDITABLE_FIELDS = frozenset({
        "name",
        "price",
        "stock",
        "maximum_in_order",
        "related_product_ids",
        "fields",
        "image_urls",
    })
    INTEGER_FIELDS = frozenset({"price", "stock", "maximum_in_order"})

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Variant":
        """Hydrate a clean variant from a catalog service record."""
        return cls(
            variant_id=PersistedId(record["variantId"]),
            product_id=PersistedId(record["productId"]),
            collection_id=record.get("collectionId", ""),
            name=record.get("name", ""),
            price=int(record.get("price", 0)),
            stock=int(record.get("stock", 0)),
            maximum_in_order=record.get("maximumInOrder"),
            related_product_ids=list(
                record.get("relatedProductIds") or []
            ),
            fields=list(record.get("fields") or []),
            image_urls=list(record.get("imageUrls") or []),
        )

    def to_payload(self, product_id: str | None = None) -> dict[str, Any]:
        """Build the wire payload for create/update.

        *product_id* overrides the buffered parent id; it is required
        while the parent is still temporary.
        """
        if product_id is None:
            if not isinstance(self.product_id, PersistedId):
                msg = (
                    f"Variant {self.variant_id} still references "
                    f"unsaved product {self.product_id}"
                )
                raise ValueError(msg)
            product_id = self.product_id.value

        payload: dict[str, Any] = {
            "name": self.name,
            "price": self.price,
            "stock": self.stock,
            "relatedProductIds": list(self.related_product_ids),
            "fields": list(self.fields),
            "imageUrls": list(self.image_urls),
            "productId": product_id,
            "collectionId": self.collection_id,
        }
        if self.maximum_in_order is not None:
            payload["maximumInOrder"] = self.maximum_in_order
        return payload
