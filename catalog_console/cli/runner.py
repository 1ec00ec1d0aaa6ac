# catalog_console/cli/runner.py

"""Headless CLI: list a collection selection or apply a scripted batch of edits."""

import json
import logging
import sys
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.table import Table

from catalog_console.buffer.edit_buffer import EditBuffer
from catalog_console.models.entity_id import EntityId, PersistedId, TemporaryId
from catalog_console.models.entity_state import InvalidTransitionError
from catalog_console.models.product import Product
from catalog_console.models.variant import Variant
from catalog_console.services.catalog_session import CatalogSession
from catalog_console.services.commit_engine import CommitReport
from catalog_console.services.errors import UnknownEntityError

logger = logging.getLogger("catalog_console.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)


class ScriptError(Exception):
    """An edit script operation is malformed or cannot be applied."""


def parse_collections(collection_csv: str | None) -> list[str]:
    """Split a comma-separated collection list.

    Raises ``SystemExit`` when no collection is given.
    """
    requested = [
        c.strip() for c in (collection_csv or "").split(",") if c.strip()
    ]
    if not requested:
        _err.print("[red]At least one collection id is required.[/red]")
        raise SystemExit(1)
    return requested


def _format_price(minor_units: int) -> str:
    return f"{minor_units / 100:,.2f}"


def _product_to_dict(
    product: Product, variants: list[Variant],
) -> dict[str, object]:
    return {
        "productId": str(product.product_id),
        "collectionId": product.collection_id,
        "name": product.name,
        "description": product.description,
        "defaultVariantId": (
            str(product.default_variant_id)
            if product.default_variant_id is not None
            else None
        ),
        "variants": [
            {
                "variantId": str(v.variant_id),
                "name": v.name,
                "price": v.price,
                "stock": v.stock,
                "maximumInOrder": v.maximum_in_order,
            }
            for v in variants
        ],
    }


def _print_catalog(buffer: EditBuffer) -> None:
    """Render one Rich table per product with its variants."""
    console = Console()
    for product in buffer.products:
        table = Table(
            title=f"{product.name}  [dim]{product.product_id}[/dim]",
            caption=f"collection {product.collection_id}",
            show_lines=False,
            title_style="bold cyan",
        )
        table.add_column("Default", justify="center", width=7)
        table.add_column("Variant ID", style="dim")
        table.add_column("Name", max_width=40)
        table.add_column("Price", justify="right", style="green")
        table.add_column("Stock", justify="right")
        table.add_column("Max/order", justify="right")

        for v in buffer.variants_for(product.product_id):
            table.add_row(
                "★" if v.variant_id == product.default_variant_id else "",
                str(v.variant_id),
                v.name,
                _format_price(v.price),
                str(v.stock),
                str(v.maximum_in_order) if v.maximum_in_order else "—",
            )
        console.print(table)


async def _load_everything(
    session: CatalogSession, collection_ids: list[str],
) -> list[str]:
    """Load the selection and every product's variants."""
    result = await session.select_collections(collection_ids)
    errors = list(result.errors)
    if errors:
        return errors
    for product in list(session.buffer.products):
        errors.extend(await session.select_product(product.product_id))
    return errors


async def cli_list(
    collection_csv: str | None,
    output_format: str,
    session: CatalogSession | None = None,
) -> int:
    """Print the products and variants of a selection (0=ok, 1=fail)."""
    collection_ids = parse_collections(collection_csv)
    session = session or CatalogSession()
    try:
        errors = await _load_everything(session, collection_ids)
    finally:
        await session.close()

    for error_msg in errors:
        _err.print(f"[red]Error: {error_msg}[/red]")
    if errors:
        return 1

    buffer = session.buffer
    _err.print(
        f"[green]✓ {len(buffer.products)} products"
        f" in {', '.join(collection_ids)}[/green]"
    )
    if output_format == "table":
        _print_catalog(buffer)
    else:
        json.dump(
            [
                _product_to_dict(p, buffer.variants_for(p.product_id))
                for p in buffer.products
            ],
            sys.stdout,
            ensure_ascii=False,
            indent=2,
        )
        sys.stdout.write("\n")
    return 0


# ── Edit scripts ─────────────────────────────────────────


def load_script(path: Path) -> list[dict[str, Any]]:
    """Read an edit script: a JSON list of operation objects."""
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise ScriptError(f"Cannot read edit script {path}: {exc}") from exc
    if not isinstance(data, list) or not all(
        isinstance(op, dict) for op in data
    ):
        raise ScriptError("An edit script must be a JSON list of objects")
    return data


class ScriptApplier:
    """Applies edit-script operations to a session's buffer.

    New entities are given a script-local ``ref`` so later operations
    can point at them before the server has assigned real ids.
    """

    def __init__(self, session: CatalogSession) -> None:
        self.session = session
        self.refs: dict[str, EntityId] = {}

    def _resolve(self, op: dict[str, Any], key: str) -> EntityId:
        token = op.get(key)
        if not isinstance(token, str) or not token:
            raise ScriptError(f"'{op.get('op')}' needs a '{key}' id or ref")
        return self.refs.get(token) or PersistedId(token)

    def _remember(self, op: dict[str, Any], entity_id: EntityId) -> None:
        ref = op.get("ref")
        if ref is not None:
            if ref in self.refs:
                raise ScriptError(f"ref '{ref}' is used twice")
            self.refs[str(ref)] = entity_id

    @staticmethod
    def _fields(op: dict[str, Any]) -> dict[str, Any]:
        fields = op.get("fields", {})
        if not isinstance(fields, dict):
            raise ScriptError("'fields' must be an object")
        return fields

    def apply(self, op: dict[str, Any]) -> None:
        """Apply one script operation to the buffer."""
        buffer = self.session.buffer
        kind = op.get("op")
        if kind == "add_product":
            product = buffer.add_product(op.get("collection"))
            self._remember(op, product.product_id)
            for name, value in self._fields(op).items():
                buffer.set_product_field(product.product_id, name, value)
        elif kind == "add_variant":
            variant = buffer.add_variant(self._resolve(op, "product"))
            self._remember(op, variant.variant_id)
            for name, value in self._fields(op).items():
                buffer.set_variant_field(variant.variant_id, name, value)
        elif kind == "set_product":
            product_id = self._resolve(op, "product")
            for name, value in self._fields(op).items():
                buffer.set_product_field(product_id, name, value)
        elif kind == "set_variant":
            variant_id = self._resolve(op, "variant")
            for name, value in self._fields(op).items():
                buffer.set_variant_field(variant_id, name, value)
        elif kind == "set_default":
            buffer.set_default_variant(
                self._resolve(op, "product"), self._resolve(op, "variant")
            )
        elif kind == "delete_product":
            buffer.delete_product(self._resolve(op, "product"))
        elif kind == "delete_variant":
            buffer.delete_variant(self._resolve(op, "variant"))
        else:
            raise ScriptError(f"Unknown operation '{kind}'")

    def created_ids(self, report: CommitReport) -> dict[str, str]:
        """Map each script ref to the id the server assigned."""
        created: dict[str, str] = {}
        for ref, entity_id in self.refs.items():
            if not isinstance(entity_id, TemporaryId):
                continue
            real = report.product_ids.get(entity_id) or report.variant_ids.get(
                entity_id
            )
            if real is not None:
                created[ref] = real
        return created


def _print_report(report: CommitReport, created: dict[str, str]) -> None:
    table = Table(
        title="Commit Summary",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("Phase", style="bold")
    table.add_column("Operations", justify="right")
    for phase, count in report.operations.items():
        table.add_row(phase, str(count) if count else "—")
    Console().print(table)

    if created:
        ids = Table(title="Created", title_style="bold green")
        ids.add_column("Ref", style="magenta")
        ids.add_column("ID", style="dim")
        for ref, real in created.items():
            ids.add_row(ref, real)
        Console().print(ids)


async def cli_apply(
    collection_csv: str | None,
    script_path: str,
    output_format: str,
    session: CatalogSession | None = None,
) -> int:
    """Apply an edit script to a selection and save it (0=ok, 1=fail)."""
    collection_ids = parse_collections(collection_csv)
    try:
        operations = load_script(Path(script_path))
    except ScriptError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 1

    session = session or CatalogSession()
    try:
        errors = await _load_everything(session, collection_ids)
        if errors:
            for error_msg in errors:
                _err.print(f"[red]Error: {error_msg}[/red]")
            return 1

        applier = ScriptApplier(session)
        for idx, op in enumerate(operations, 1):
            try:
                applier.apply(op)
            except (
                ScriptError,
                ValueError,
                InvalidTransitionError,
                UnknownEntityError,
            ) as exc:
                logger.error("Edit script operation %d failed: %s", idx, exc)
                _err.print(
                    f"[red]Operation {idx} ({op.get('op')}): {exc}[/red]"
                )
                _err.print("[yellow]Nothing was saved.[/yellow]")
                return 1

        _err.print(
            f"[bold]Saving[/bold] {len(operations)} scripted operations"
        )
        result = await session.save()
    finally:
        await session.close()

    for error_msg in result.errors:
        _err.print(f"[red]Error: {error_msg}[/red]")
    if result.report is None:
        return 1

    created = applier.created_ids(result.report)
    _err.print(
        f"[green]✓ {result.report.total_operations} remote operations[/green]"
    )
    if output_format == "table":
        _print_report(result.report, created)
    else:
        json.dump(
            {
                "operations": result.report.operations,
                "created": created,
            },
            sys.stdout,
            ensure_ascii=False,
            indent=2,
        )
        sys.stdout.write("\n")
    return 1 if result.errors else 0
