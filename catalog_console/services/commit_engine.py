# catalog_console/services/commit_engine.py

"""Reconciles a buffer snapshot against the remote catalog store.

A commit runs six phases strictly in order; the operations inside one
phase are issued concurrently and the next phase starts only once all
of them have succeeded:

1. delete   - deleted persisted variants, then deleted persisted products
2. create_products  - new products (temporary default variants deferred)
3. create_variants  - new variants, parent ids resolved through phase 2
4. update_products  - edited products, temporary defaults resolved via phase 3
5. update_variants  - edited variants, skipping those under a deleted product
   as phase 3 does, since the cascade removes them
6. resolve_defaults - default variants deferred in phase 2

The first failing operation aborts the commit with :class:`CommitError`.
Nothing is rolled back: entities already written in earlier phases stay
written, and the caller is expected to reload and let the user retry.
"""

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import Any

from catalog_console.buffer.edit_buffer import BufferSnapshot
from catalog_console.models.entity_id import EntityId, PersistedId, TemporaryId
from catalog_console.models.product import Product
from catalog_console.models.variant import Variant
from catalog_console.services.catalog_service import CatalogService
from catalog_console.services.errors import CommitError

logger = logging.getLogger("catalog_console.commit")

PHASES: tuple[str, ...] = (
    "delete",
    "create_products",
    "create_variants",
    "update_products",
    "update_variants",
    "resolve_defaults",
)


@dataclass
class CommitReport:
    """Outcome of a successful commit."""

    product_ids: dict[TemporaryId, str] = field(
        default_factory=lambda: dict[TemporaryId, str]()
    )
    variant_ids: dict[TemporaryId, str] = field(
        default_factory=lambda: dict[TemporaryId, str]()
    )
    operations: dict[str, int] = field(
        default_factory=lambda: {phase: 0 for phase in PHASES}
    )

    @property
    def total_operations(self) -> int:
        return sum(self.operations.values())


def _log_straggler(task: "asyncio.Task[Any]") -> None:
    """Retrieve the outcome of an operation left running after an abort."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Operation finished after abort with error: %s", exc)


class CommitEngine:
    """Drains the dirty entities of a buffer snapshot into the catalog."""

    def __init__(self, service: CatalogService) -> None:
        self.service = service

    # ── Phase runner ─────────────────────────────────────

    async def _run_phase(
        self,
        phase: str,
        operations: list[Awaitable[Any]],
        report: CommitReport,
    ) -> list[Any]:
        """Run *operations* concurrently; abort on the first failure.

        Returns the results in submission order.
        """
        if not operations:
            return []

        report.operations[phase] += len(operations)
        logger.info("Phase %s: %d operations", phase, len(operations))

        tasks = [asyncio.ensure_future(op) for op in operations]
        done, pending = await asyncio.wait(
            tasks, return_when=asyncio.FIRST_EXCEPTION
        )
        failures: list[BaseException] = []
        for task in tasks:
            if task in done:
                exc = task.exception()
                if exc is not None:
                    failures.append(exc)
        if not failures:
            return [task.result() for task in tasks]

        # Siblings still in flight are not cancelled; their outcome is logged
        for straggler in pending:
            straggler.add_done_callback(_log_straggler)
        for extra in failures[1:]:
            logger.warning("Additional failure in phase %s: %s", phase, extra)

        cause = failures[0]
        logger.error("Phase %s failed: %s", phase, cause, exc_info=cause)
        raise CommitError(phase, cause) from cause

    # ── Helpers ──────────────────────────────────────────

    @staticmethod
    def _index_products(snapshot: BufferSnapshot) -> dict[EntityId, Product]:
        return {p.product_id: p for p in snapshot.products}

    @staticmethod
    def _variant_payload(
        variant: Variant,
        product_id: str,
        parent: Product | None,
    ) -> dict[str, Any]:
        payload = variant.to_payload(product_id)
        if parent is not None:
            payload["collectionId"] = parent.collection_id
        return payload

    async def _create_product(
        self, temp_id: TemporaryId, payload: dict[str, Any],
    ) -> tuple[TemporaryId, str]:
        record = await self.service.create_product(payload)
        return temp_id, str(record["productId"])

    async def _create_variant(
        self, temp_id: TemporaryId, payload: dict[str, Any],
    ) -> tuple[TemporaryId, str]:
        record = await self.service.create_variant(payload)
        return temp_id, str(record["variantId"])

    # ── Commit ───────────────────────────────────────────

    async def commit(self, snapshot: BufferSnapshot) -> CommitReport:
        """Run all six phases against *snapshot*.

        Raises:
            CommitError: naming the phase whose operation failed first.
        """
        report = CommitReport()
        products_by_id = self._index_products(snapshot)
        variants = snapshot.all_variants()

        def parent_of(variant: Variant) -> Product | None:
            return products_by_id.get(variant.product_id)

        def parent_deleted(variant: Variant) -> bool:
            parent = parent_of(variant)
            return parent is not None and parent.state.is_deleted

        # 1. Delete: variants first so they never race the cascade
        await self._run_phase(
            "delete",
            [
                self.service.delete_variant(str(v.variant_id))
                for v in variants
                if v.state.is_deleted
                and isinstance(v.variant_id, PersistedId)
            ],
            report,
        )
        await self._run_phase(
            "delete",
            [
                self.service.delete_product(str(p.product_id))
                for p in snapshot.products
                if p.state.is_deleted
                and isinstance(p.product_id, PersistedId)
            ],
            report,
        )

        # 2. Create products, deferring temporary default variants
        deferred_defaults: list[tuple[TemporaryId, TemporaryId]] = []
        product_creates: list[tuple[TemporaryId, dict[str, Any]]] = []
        for product in snapshot.products:
            if not isinstance(product.product_id, TemporaryId):
                continue
            if product.state.is_deleted:
                continue
            if isinstance(product.default_variant_id, TemporaryId):
                deferred_defaults.append(
                    (product.product_id, product.default_variant_id)
                )
            product_creates.append((product.product_id, product.to_payload()))
        created_products = await self._run_phase(
            "create_products",
            [
                self._create_product(temp_id, payload)
                for temp_id, payload in product_creates
            ],
            report,
        )
        report.product_ids.update(dict(created_products))

        # 3. Create variants under every surviving product
        variant_creates: list[tuple[TemporaryId, dict[str, Any]]] = []
        for variant in variants:
            if not isinstance(variant.variant_id, TemporaryId):
                continue
            if variant.state.is_deleted or parent_deleted(variant):
                continue
            parent_id = variant.product_id
            if isinstance(parent_id, TemporaryId):
                real_parent = report.product_ids.get(parent_id)
                if real_parent is None:
                    cause = ValueError(
                        f"Variant {variant.variant_id} references unsaved "
                        f"product {parent_id}"
                    )
                    raise CommitError("create_variants", cause)
            else:
                real_parent = parent_id.value
            variant_creates.append((
                variant.variant_id,
                self._variant_payload(variant, real_parent, parent_of(variant)),
            ))
        created_variants = await self._run_phase(
            "create_variants",
            [
                self._create_variant(temp_id, payload)
                for temp_id, payload in variant_creates
            ],
            report,
        )
        report.variant_ids.update(dict(created_variants))

        # 4. Update edited persisted products
        product_updates: list[Awaitable[Any]] = []
        for product in snapshot.products:
            state = product.state
            if not state.is_edited or state.is_new or state.is_deleted:
                continue
            payload = product.to_payload()
            if isinstance(product.default_variant_id, TemporaryId):
                resolved = report.variant_ids.get(product.default_variant_id)
                if resolved is not None:
                    payload["defaultVariantId"] = resolved
                else:
                    logger.warning(
                        "Dropping unresolved default variant %s of product %s",
                        product.default_variant_id,
                        product.product_id,
                    )
            product_updates.append(
                self.service.update_product(str(product.product_id), payload)
            )
        await self._run_phase("update_products", product_updates, report)

        # 5. Update edited persisted variants
        await self._run_phase(
            "update_variants",
            [
                self.service.update_variant(
                    str(v.variant_id),
                    self._variant_payload(v, str(v.product_id), parent_of(v)),
                )
                for v in variants
                if v.state.is_edited
                and not v.state.is_new
                and not v.state.is_deleted
                and not parent_deleted(v)
            ],
            report,
        )

        # 6. Resolve default variants deferred in phase 2
        default_updates: list[Awaitable[Any]] = []
        for temp_product_id, temp_variant_id in deferred_defaults:
            real_variant = report.variant_ids.get(temp_variant_id)
            if real_variant is None:
                logger.warning(
                    "Default variant %s of new product %s was not created",
                    temp_variant_id,
                    temp_product_id,
                )
                continue
            default_updates.append(
                self.service.update_default_variant(
                    report.product_ids[temp_product_id], real_variant
                )
            )
        await self._run_phase("resolve_defaults", default_updates, report)

        logger.info(
            "Commit finished: %d operations (%s)",
            report.total_operations,
            ", ".join(
                f"{phase}={count}"
                for phase, count in report.operations.items()
                if count
            ),
        )
        return report
