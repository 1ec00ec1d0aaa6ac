# catalog_console/services/errors.py

"""Exceptions raised by catalog services and the commit engine."""


class CatalogServiceError(Exception):
    """Base class for failures reported by a catalog service."""


class ValidationError(CatalogServiceError):
    """A payload was rejected as malformed or incomplete."""


class NotFoundError(CatalogServiceError):
    """A referenced product or variant does not exist remotely."""


class LimitExceededError(CatalogServiceError):
    """A variant-count or cascading-delete cap was hit."""


class ConflictError(CatalogServiceError):
    """The write clashes with existing state (e.g. a duplicate name)."""


class TransportError(CatalogServiceError):
    """Network, serialization or unexpected server failure."""


class UnknownEntityError(KeyError):
    """An id does not name any entity in the edit buffer."""


class CommitError(Exception):
    """A commit phase failed.

    Phases that completed before *phase* are not rolled back: whatever
    they created, updated or deleted remotely stays that way.
    """

    def __init__(self, phase: str, cause: BaseException) -> None:
        super().__init__(f"Commit failed during '{phase}': {cause}")
        self.phase = phase
        self.cause = cause
