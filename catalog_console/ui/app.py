# catalog_console/ui/app.py

"""Terminal UI for editing a storefront catalog."""

import json
import logging
from typing import Any, cast

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.widgets import (
    Button,
    DataTable,
    Footer,
    Header,
    Input,
    Static,
)

from catalog_console.models.entity_id import EntityId
from catalog_console.models.entity_state import (
    EntityState,
    InvalidTransitionError,
)
from catalog_console.services.catalog_session import CatalogSession
from catalog_console.services.errors import UnknownEntityError

logger = logging.getLogger("catalog_console.ui")

STATE_LABELS: dict[EntityState, Text] = {
    EntityState.UNMODIFIED: Text(""),
    EntityState.CREATED: Text("new", style="bold green"),
    EntityState.MODIFIED: Text("edited", style="yellow"),
    EntityState.DELETED: Text("deleted", style="red"),
    EntityState.MODIFIED_THEN_DELETED: Text("edited+deleted", style="red"),
}


def parse_assignment(raw: str) -> tuple[str, Any]:
    """Split ``field=value``; the value is read as JSON when it parses."""
    name, sep, value = raw.partition("=")
    name = name.strip()
    if not sep or not name:
        msg = "Use field=value, e.g. price=1299 or name=Green Tea"
        raise ValueError(msg)
    value = value.strip()
    try:
        return name, json.loads(value)
    except json.JSONDecodeError:
        return name, value


class CatalogConsoleApp(App[object]):
    """Terminal UI for the catalog console."""

    CSS = """
    #load_bar { height: auto; }
    #collections_input { width: 1fr; }
    #tables { height: 1fr; }
    #products_table { width: 1fr; }
    #variants_table { width: 1fr; }
    #status { padding: 0 1; }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("a", "add_product", "Add Product"),
        Binding("v", "add_variant", "Add Variant"),
        Binding("d", "delete", "Delete"),
        Binding("u", "undo", "Undo"),
        Binding("f", "set_default", "Set Default"),
        Binding("s", "save", "Save"),
        Binding("x", "discard", "Discard"),
    ]

    def __init__(self, session: CatalogSession | None = None) -> None:
        super().__init__()
        self.session = session or CatalogSession()
        self.product_rows: list[EntityId] = []
        self.variant_rows: list[EntityId] = []
        self.active_table: str = "products_table"

    def compose(self) -> ComposeResult:
        """Build the widget tree for the TUI."""
        yield Header()
        yield Container(
            Static("🗂 Catalog Console", id="title"),

            # Collection selection
            Horizontal(
                Input(
                    placeholder="Collection IDs, comma separated...",
                    id="collections_input",
                ),
                Button("Load", variant="primary", id="load_btn"),
                id="load_bar",
            ),

            Static("No collections loaded", id="status"),
            Horizontal(
                cast(
                    DataTable[str | Text],
                    DataTable(
                        id="products_table",
                        zebra_stripes=True,
                        cursor_type="row",
                    ),
                ),
                cast(
                    DataTable[str | Text],
                    DataTable(
                        id="variants_table",
                        zebra_stripes=True,
                        cursor_type="row",
                    ),
                ),
                id="tables",
            ),
            Input(
                placeholder="field=value for the highlighted row",
                id="edit_input",
            ),
            id="main_container",
        )
        yield Footer()

    def _table(self, table_id: str) -> DataTable[str | Text]:
        return cast(
            DataTable[str | Text],
            self.query_one(f"#{table_id}", DataTable),
        )

    def on_mount(self) -> None:
        """Configure the table columns on startup."""
        self._table("products_table").add_columns(
            "State", "Name", "Collection", "Default Variant", "ID"
        )
        self._table("variants_table").add_columns(
            "State", "Default", "Name", "Price", "Stock", "Max/order", "ID"
        )

    # ── Rendering ────────────────────────────────────────

    def refresh_view(self) -> None:
        """Redraw both tables and the status line from the buffer."""
        buffer = self.session.buffer
        products = self._table("products_table")
        products.clear()
        self.product_rows = []
        for p in buffer.products:
            products.add_row(
                STATE_LABELS[p.state],
                p.name,
                p.collection_id,
                str(p.default_variant_id or ""),
                str(p.product_id),
            )
            self.product_rows.append(p.product_id)
        if buffer.selected_product_id in self.product_rows:
            products.move_cursor(
                row=self.product_rows.index(buffer.selected_product_id)
            )

        variants = self._table("variants_table")
        variants.clear()
        self.variant_rows = []
        selected = buffer.selected_product
        if selected is not None:
            for v in buffer.variants_for(selected.product_id):
                variants.add_row(
                    STATE_LABELS[v.state],
                    "★" if v.variant_id == selected.default_variant_id else "",
                    v.name,
                    f"{v.price / 100:,.2f}",
                    str(v.stock),
                    str(v.maximum_in_order or "—"),
                    str(v.variant_id),
                )
                self.variant_rows.append(v.variant_id)

        collections = ", ".join(buffer.selected_collections) or "none"
        marker = (
            "● unsaved changes" if buffer.has_unsaved_changes else "saved"
        )
        self.query_one("#status", Static).update(
            f"{len(buffer.products)} products in {collections} | {marker}"
        )

    def _report(self, errors: list[str]) -> bool:
        """Notify about *errors*; returns True when there were none."""
        for message in errors:
            self.notify(message, severity="error")
        return not errors

    def _active(self) -> str:
        """Id of the table edits apply to: the focused one, else the last."""
        focused = self.focused
        if isinstance(focused, DataTable) and focused.id:
            self.active_table = focused.id
        return self.active_table

    def _highlighted(self, table_id: str) -> EntityId | None:
        rows = (
            self.product_rows if table_id == "products_table"
            else self.variant_rows
        )
        row = self._table(table_id).cursor_row
        if 0 <= row < len(rows):
            return rows[row]
        return None

    # ── Events ───────────────────────────────────────────

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        """Handle button click events."""
        if event.button.id == "load_btn":
            await self.load_collections()

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        """Handle Enter in the collection or edit inputs."""
        if event.input.id == "collections_input":
            await self.load_collections()
        elif event.input.id == "edit_input":
            self.apply_edit(event.value)

    def on_data_table_row_highlighted(
        self, event: DataTable.RowHighlighted
    ) -> None:
        """Track the active table and follow product selection."""
        table_id = event.data_table.id or "products_table"
        if event.data_table.has_focus:
            self.active_table = table_id
        if table_id != "products_table":
            return
        product_id = self._highlighted(table_id)
        if (
            product_id is not None
            and product_id != self.session.buffer.selected_product_id
        ):
            self.run_worker(self.select_product(product_id), exclusive=True)

    async def select_product(self, product_id: EntityId) -> None:
        self._report(await self.session.select_product(product_id))
        self.refresh_view()

    async def load_collections(self) -> None:
        """Load the collections typed into the input."""
        raw = self.query_one("#collections_input", Input).value
        ids = [c.strip() for c in raw.split(",") if c.strip()]
        if not ids:
            self.notify(
                "Enter at least one collection ID", severity="warning"
            )
            return
        if self.session.buffer.has_unsaved_changes:
            self.notify(
                "Save or discard your changes first", severity="warning"
            )
            return
        self.query_one("#status", Static).update(
            f"Loading {', '.join(ids)}..."
        )
        result = await self.session.select_collections(ids)
        self._report(result.errors)
        self.refresh_view()

    def apply_edit(self, raw: str) -> None:
        """Apply a ``field=value`` edit to the highlighted row."""
        buffer = self.session.buffer
        active = self._active()
        entity_id = self._highlighted(active)
        if entity_id is None:
            self.notify("Highlight a row to edit", severity="warning")
            return
        try:
            name, value = parse_assignment(raw)
            if active == "products_table":
                buffer.set_product_field(entity_id, name, value)
            else:
                buffer.set_variant_field(entity_id, name, value)
        except (ValueError, InvalidTransitionError, UnknownEntityError) as e:
            self.notify(str(e), severity="error")
            return
        self.query_one("#edit_input", Input).value = ""
        self.refresh_view()

    # ── Actions ──────────────────────────────────────────

    def action_add_product(self) -> None:
        """Add a product to the single loaded collection."""
        try:
            self.session.buffer.add_product()
        except ValueError as e:
            self.notify(str(e), severity="warning")
            return
        self.refresh_view()

    def action_add_variant(self) -> None:
        """Add a variant to the selected product."""
        selected = self.session.buffer.selected_product_id
        if selected is None:
            self.notify("Select a product first", severity="warning")
            return
        try:
            self.session.buffer.add_variant(selected)
        except (ValueError, UnknownEntityError) as e:
            self.notify(str(e), severity="warning")
            return
        self.refresh_view()

    def action_delete(self) -> None:
        """Delete the highlighted product or variant."""
        active = self._active()
        entity_id = self._highlighted(active)
        if entity_id is None:
            return
        buffer = self.session.buffer
        if active == "products_table":
            buffer.delete_product(entity_id)
        else:
            buffer.delete_variant(entity_id)
        self.refresh_view()

    async def action_undo(self) -> None:
        """Revert the highlighted product or variant."""
        active = self._active()
        entity_id = self._highlighted(active)
        if entity_id is None:
            return
        if active == "products_table":
            result = await self.session.undo_product(entity_id)
        else:
            result = await self.session.undo_variant(entity_id)
        self._report(result.errors)
        self.refresh_view()

    def action_set_default(self) -> None:
        """Make the highlighted variant its product's default."""
        buffer = self.session.buffer
        variant_id = self._highlighted("variants_table")
        if variant_id is None or buffer.selected_product_id is None:
            self.notify("Highlight a variant first", severity="warning")
            return
        try:
            buffer.set_default_variant(buffer.selected_product_id, variant_id)
        except (ValueError, InvalidTransitionError, UnknownEntityError) as e:
            self.notify(str(e), severity="error")
            return
        self.refresh_view()

    async def action_save(self) -> None:
        """Commit every buffered change."""
        if not self.session.buffer.has_unsaved_changes:
            self.notify("Nothing to save")
            return
        self.query_one("#status", Static).update("💾 Saving...")
        result = await self.session.save()
        if self._report(result.errors) and result.report is not None:
            logger.info("Saved %d operations", result.report.total_operations)
            self.notify(
                f"Saved ({result.report.total_operations} operations)"
            )
        self.refresh_view()

    async def action_discard(self) -> None:
        """Drop all unsaved edits and reload."""
        result = await self.session.discard()
        if self._report(result.errors):
            self.notify("Changes discarded")
        self.refresh_view()

    async def on_unmount(self) -> None:
        await self.session.close()
