# catalog_console/models/entity_id.py

"""Identifiers for buffered catalog entities.

An entity is either still client-only (``TemporaryId``) or acknowledged by
the catalog service (``PersistedId``).  The two are distinct types, so a
server-assigned id can never be mistaken for a placeholder regardless of
what characters it contains.
"""

import uuid
from dataclasses import dataclass

from catalog_console.config.settings import Settings


@dataclass(frozen=True)
class TemporaryId:
    """Placeholder id for an entity the server has not seen yet."""

    token: str

    @classmethod
    def generate(cls) -> "TemporaryId":
        """Create a fresh, process-unique placeholder."""
        return cls(uuid.uuid4().hex)

    def __str__(self) -> str:
        return f"{Settings.TEMP_ID_PREFIX}{self.token}"


@dataclass(frozen=True)
class PersistedId:
    """Id assigned by the catalog service."""

    value: str

    def __post_init__(self) -> None:
        if not self.value:
            msg = "PersistedId requires a non-empty value"
            raise ValueError(msg)

    def __str__(self) -> str:
        return self.value


EntityId = TemporaryId | PersistedId


def is_temporary(entity_id: EntityId | None) -> bool:
    """Return True when *entity_id* is a client-only placeholder."""
    return isinstance(entity_id, TemporaryId)
