# catalog_console/models/product.py

"""Product data model for the edit buffer."""

from dataclasses import dataclass, field
from typing import Any

from catalog_console.models.entity_id import EntityId, PersistedId
from catalog_console.models.entity_state import EntityState


@dataclass
class Product:
    """A catalog product as held in the edit buffer."""

    product_id: EntityId
    collection_id: str
    name: str
    description: str | None = None
    fields: list[dict[str, Any]] = field(
        default_factory=lambda: list[dict[str, Any]]()
    )
    image_urls: list[str] = field(
        default_factory=lambda: list[str]()
    )
    default_variant_id: EntityId | None = None
    state: EntityState = EntityState.UNMODIFIED

    EDITABLE_FIELDS = frozenset({
        "collection_id",
        "name",
        "description",
        "fields",
        "image_urls",
    })

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Product":
        """Hydrate a clean product from a catalog service record."""
        default_id = record.get("defaultVariantId")
        return cls(
            product_id=PersistedId(record["productId"]),
            collection_id=record.get("collectionId", ""),
            name=record.get("name", ""),
            description=record.get("description"),
            fields=list(record.get("fields") or []),
            image_urls=list(record.get("imageUrls") or []),
            default_variant_id=(
                PersistedId(default_id) if default_id else None
            ),
        )

    def to_payload(self) -> dict[str, Any]:
        """Build the wire payload for create/update.

        A temporary ``default_variant_id`` is never emitted; the commit
        engine decides whether to resolve or defer it.
        """
        payload: dict[str, Any] = {
            "name": self.name,
            "collectionId": self.collection_id,
            "fields": list(self.fields),
            "imageUrls": list(self.image_urls),
        }
        if self.description is not None:
            payload["description"] = self.description
        if isinstance(self.default_variant_id, PersistedId):
            payload["defaultVariantId"] = self.default_variant_id.value
        return payload
