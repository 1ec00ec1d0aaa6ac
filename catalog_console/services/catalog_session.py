# catalog_console/services/catalog_session.py

"""Ties the edit buffer, loader and commit engine into one editing session."""

import logging
from dataclasses import dataclass, field

from catalog_console.buffer.edit_buffer import EditBuffer
from catalog_console.config.settings import Settings
from catalog_console.models.entity_id import EntityId, PersistedId, TemporaryId
from catalog_console.models.entity_state import EntityState
from catalog_console.models.product import Product
from catalog_console.models.variant import Variant
from catalog_console.services.catalog_loader import CatalogLoader
from catalog_console.services.catalog_service import CatalogService
from catalog_console.services.commit_engine import CommitEngine, CommitReport
from catalog_console.services.errors import (
    CatalogServiceError,
    CommitError,
    UnknownEntityError,
)
from catalog_console.services.http_catalog_service import HttpCatalogService
from catalog_console.storage.memory_catalog import MemoryCatalogService

logger = logging.getLogger("catalog_console.session")


@dataclass
class LoadResult:
    """Outcome of loading (or reloading) a collection selection."""

    collection_ids: list[str] = field(
        default_factory=lambda: list[str]()
    )
    product_count: int = 0
    errors: list[str] = field(
        default_factory=lambda: list[str]()
    )


@dataclass
class UndoResult:
    """Outcome of undoing one product or variant."""

    entity_id: str
    remote_reads: int = 0
    errors: list[str] = field(
        default_factory=lambda: list[str]()
    )


@dataclass
class SaveResult:
    """Outcome of a save: the commit report, if the commit went through."""

    report: CommitReport | None = None
    errors: list[str] = field(
        default_factory=lambda: list[str]()
    )

    @property
    def committed(self) -> bool:
        return self.report is not None


def _default_service() -> CatalogService:
    """HTTP client when an API URL is configured, else the sample store."""
    settings = Settings()
    if settings.CATALOG_API_URL:
        logger.info("Using catalog API at %s", settings.CATALOG_API_URL)
        return HttpCatalogService()
    logger.info(
        "No CATALOG_API_URL configured, using sample catalog %s",
        settings.SAMPLE_CATALOG_PATH,
    )
    return MemoryCatalogService.from_json_file(settings.SAMPLE_CATALOG_PATH)


class CatalogSession:
    """One administrator's editing session over a collection selection.

    Buffer mutations go straight to :attr:`buffer`.  Everything that talks
    to the catalog service goes through this class, which never raises on
    remote failures: it logs them and hands back a result carrying
    ``errors``.
    """

    def __init__(self, service: CatalogService | None = None) -> None:
        self.service = service if service is not None else _default_service()
        self.buffer = EditBuffer()
        self.loader = CatalogLoader(self.service)
        self.engine = CommitEngine(self.service)

    async def close(self) -> None:
        if isinstance(self.service, HttpCatalogService):
            await self.service.close()

    # ── Loading ──────────────────────────────────────────

    async def select_collections(
        self, collection_ids: list[str],
    ) -> LoadResult:
        """Replace the buffer with the products of *collection_ids*.

        Products and the selected product's variants are fetched before
        the buffer is touched, so a failed load leaves it as it was.
        """
        ids = list(dict.fromkeys(c.strip() for c in collection_ids if c.strip()))
        result = LoadResult(collection_ids=ids)
        previous = self.buffer.selected_product_id

        try:
            products = await self.loader.load_for_selection(ids)
            loaded_ids = [p.product_id for p in products]
            if previous in loaded_ids:
                selected = previous
            else:
                selected = loaded_ids[0] if loaded_ids else None
            variants: list[Variant] = []
            if selected is not None:
                variants = await self.loader.load_variants_for(selected)
        except CatalogServiceError as exc:
            message = f"Could not load collections {', '.join(ids)}: {exc}"
            result.errors.append(message)
            logger.error(message, exc_info=exc)
            return result

        self.buffer.selected_collections = ids
        self.buffer.selected_product_id = selected
        self.buffer.load(products)
        if selected is not None:
            self.buffer.set_variants(selected, variants)
        result.product_count = len(products)
        return result

    async def reload(self) -> LoadResult:
        """Re-fetch the current selection, dropping every local flag."""
        return await self.select_collections(
            list(self.buffer.selected_collections)
        )

    async def discard(self) -> LoadResult:
        """Throw away all unsaved edits."""
        logger.info(
            "Discarding %d product and %d variant edits",
            len(self.buffer.dirty_products()),
            len(self.buffer.dirty_variants()),
        )
        return await self.reload()

    async def select_product(self, product_id: EntityId) -> list[str]:
        """Select a product, loading its variants on first selection.

        Returns the error messages, if any.
        """
        try:
            self.buffer.get_product(product_id)
        except UnknownEntityError as exc:
            return [str(exc)]
        self.buffer.selected_product_id = product_id
        if self.buffer.has_variants_cached(product_id):
            return []
        try:
            variants = await self.loader.load_variants_for(product_id)
        except CatalogServiceError as exc:
            message = f"Could not load variants of {product_id}: {exc}"
            logger.error(message, exc_info=exc)
            return [message]
        self.buffer.set_variants(product_id, variants)
        return []

    # ── Undo ─────────────────────────────────────────────

    async def undo_product(self, product_id: EntityId) -> UndoResult:
        """Revert one product to its server state.

        A plain delete is undone locally.  A new product has no server
        copy, so it is left in place and an error is returned; use
        ``delete_product`` to discard it.  Anything else is replaced by a
        fresh read; the product's buffered variants are left as they are.
        """
        result = UndoResult(entity_id=str(product_id))
        try:
            product = self.buffer.get_product(product_id)
        except UnknownEntityError as exc:
            result.errors.append(str(exc))
            return result

        if product.state is EntityState.DELETED:
            self.buffer.restore_product(product_id)
            logger.info("Restored product %s locally", product_id)
            return result
        if product.state.is_new:
            result.errors.append(
                f"Product {product_id} is not saved yet; delete it instead"
            )
            return result

        result.remote_reads = 1
        try:
            record = await self.service.get_product_by_id(str(product_id))
        except CatalogServiceError as exc:
            message = f"Could not undo product {product_id}: {exc}"
            result.errors.append(message)
            logger.error(message, exc_info=exc)
            return result
        if record is None:
            result.errors.append(f"Product {product_id} no longer exists")
            logger.warning("Undo: product %s is gone remotely", product_id)
            return result

        self.buffer.replace_product(Product.from_record(record))
        logger.info("Reverted product %s to server copy", product_id)
        return result

    async def undo_variant(self, variant_id: EntityId) -> UndoResult:
        """Revert one variant to its server state, mirroring undo_product."""
        result = UndoResult(entity_id=str(variant_id))
        try:
            variant = self.buffer.get_variant(variant_id)
        except UnknownEntityError as exc:
            result.errors.append(str(exc))
            return result

        if variant.state is EntityState.DELETED:
            self.buffer.restore_variant(variant_id)
            logger.info("Restored variant %s locally", variant_id)
            return result
        if variant.state.is_new:
            result.errors.append(
                f"Variant {variant_id} is not saved yet; delete it instead"
            )
            return result

        result.remote_reads = 1
        try:
            record = await self.service.get_variant_by_id(str(variant_id))
        except CatalogServiceError as exc:
            message = f"Could not undo variant {variant_id}: {exc}"
            result.errors.append(message)
            logger.error(message, exc_info=exc)
            return result
        if record is None:
            result.errors.append(f"Variant {variant_id} no longer exists")
            logger.warning("Undo: variant %s is gone remotely", variant_id)
            return result

        self.buffer.replace_variant(Variant.from_record(record))
        logger.info("Reverted variant %s to server copy", variant_id)
        return result

    # ── Save ─────────────────────────────────────────────

    async def save(self) -> SaveResult:
        """Commit every buffered change, then reload the selection.

        On a failed commit the buffer keeps its flags so the user can
        retry; the error is reported as a single message.
        """
        result = SaveResult()
        if not self.buffer.has_unsaved_changes:
            logger.info("Nothing to save")
            result.report = CommitReport()
            return result

        try:
            report = await self.engine.commit(self.buffer.snapshot())
        except CommitError as exc:
            result.errors.append(str(exc))
            logger.error("Save failed: %s", exc, exc_info=exc)
            return result
        result.report = report

        selected = self.buffer.selected_product_id
        if isinstance(selected, TemporaryId) and selected in report.product_ids:
            self.buffer.selected_product_id = PersistedId(
                report.product_ids[selected]
            )

        loaded = await self.reload()
        result.errors.extend(
            f"Saved, but reload failed: {err}" for err in loaded.errors
        )
        return result
