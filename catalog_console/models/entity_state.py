# catalog_console/models/entity_state.py

"""Dirty-state machine for buffered products and variants."""

from enum import Enum


class InvalidTransitionError(Exception):
    """Raised when an edit is attempted on an entity in the wrong state."""


class EntityState(Enum):
    """Lifecycle state of one buffered entity.

    ``MODIFIED_THEN_DELETED`` is kept apart from ``DELETED`` because undo
    treats them differently: a plain delete is restored locally, while an
    edited-then-deleted entity must be re-fetched.  A created entity that
    gets deleted is removed from the buffer outright, so it has no state.
    """

    UNMODIFIED = "unmodified"
    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    MODIFIED_THEN_DELETED = "modified_then_deleted"

    # ── Flag view ────────────────────────────────────────

    @property
    def is_new(self) -> bool:
        return self is EntityState.CREATED

    @property
    def is_edited(self) -> bool:
        return self in (
            EntityState.CREATED,
            EntityState.MODIFIED,
            EntityState.MODIFIED_THEN_DELETED,
        )

    @property
    def is_deleted(self) -> bool:
        return self in (
            EntityState.DELETED,
            EntityState.MODIFIED_THEN_DELETED,
        )

    @property
    def is_dirty(self) -> bool:
        return self is not EntityState.UNMODIFIED

    # ── Transitions ──────────────────────────────────────

    def on_edit(self) -> "EntityState":
        """State after a local field edit."""
        if self.is_deleted:
            msg = f"Cannot edit an entity in state {self.value}"
            raise InvalidTransitionError(msg)
        if self is EntityState.CREATED:
            return self
        return EntityState.MODIFIED

    def on_delete(self) -> "EntityState | None":
        """State after a delete; ``None`` means drop it from the buffer."""
        if self is EntityState.CREATED:
            return None
        if self is EntityState.UNMODIFIED:
            return EntityState.DELETED
        if self is EntityState.MODIFIED:
            return EntityState.MODIFIED_THEN_DELETED
        return self

    def on_restore(self) -> "EntityState":
        """State after the cheap, local undo of a plain delete."""
        if self is not EntityState.DELETED:
            msg = f"Only a plain delete can be restored locally, got {self.value}"
            raise InvalidTransitionError(msg)
        return EntityState.UNMODIFIED
