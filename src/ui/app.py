# src/ui/app.py

"""Terminal UI for browsing below-retail deals."""

import logging
import webbrowser
from typing import cast

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

from src.config.settings import Settings
from src.filters.query_validator import QueryValidator
from src.models.page import PaginatedResult
from src.models.product import Product
from src.services.catalog_service import CatalogService
from src.services.errors import AllSourcesFailedError, QueryValidationError
from src.storage.file_manager import FileManager

logger = logging.getLogger("retail_radar.ui")


class RetailRadarApp(App[object]):
    """Terminal UI for the retail_radar deal finder."""

    CSS_PATH = "styles.css"

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("n", "next_page", "Next Page"),
        Binding("h", "health", "Health"),
        Binding("b", "breaker_stats", "Breakers"),
        Binding("r", "reset_breakers", "Reset Breakers"),
        Binding("s", "save", "Save"),
        Binding("e", "export", "Export CSV"),
    ]

    def __init__(self, service: CatalogService | None = None) -> None:
        super().__init__()
        self._service = service
        self.products: list[Product] = []
        self.page: PaginatedResult | None = None
        self.current_brand: str = ""
        self.current_params: dict[str, str] = {}
        self.file_manager = FileManager()
        self.settings = Settings()

    @property
    def service(self) -> CatalogService:
        """The catalog service, created on first use."""
        if self._service is None:
            self._service = CatalogService.from_settings()
        return self._service

    def compose(self) -> ComposeResult:
        """Build the widget tree for the TUI."""
        yield Header()
        yield Container(
            Static("👟 Retail Radar: deals below retail", id="title"),
            Horizontal(
                Input(placeholder="Brand (e.g. nike)", id="brand_input"),
                Input(placeholder="Min discount 0-1", id="min_discount_input"),
                Input(placeholder="Max price", id="max_price_input"),
                Button("Search", variant="primary", id="search_btn"),
                Button("Next", id="next_btn", disabled=True),
                id="search_bar",
            ),
            Static("Ready", id="status"),
            cast(
                DataTable[str | Text],
                DataTable(
                    id="results_table",
                    zebra_stripes=True,
                    cursor_type="row",
                ),
            ),
            Static("", id="ops_panel"),
            id="main_container",
        )
        yield Footer()

    def on_mount(self) -> None:
        """Configure the results table columns on startup."""
        table = cast(
            DataTable[str | Text],
            self.query_one("#results_table", DataTable),
        )
        table.add_columns(
            "Name", "Size", "Retail", "Ask", "Discount", "Source"
        )

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        """Handle button click events."""
        if event.button.id == "search_btn":
            await self.perform_search()
        elif event.button.id == "next_btn":
            await self.action_next_page()

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        """Enter in any input starts a fresh search."""
        await self.perform_search()

    async def perform_search(self) -> None:
        """Query the first page for the entered brand and filters."""
        brand = self.query_one("#brand_input", Input).value.strip()
        if not brand:
            self.notify("Please enter a brand", severity="warning")
            return

        self.current_brand = brand
        self.current_params = {
            "minDiscount": self.query_one(
                "#min_discount_input", Input
            ).value.strip(),
            "maxPrice": self.query_one(
                "#max_price_input", Input
            ).value.strip(),
        }
        self.products = []
        await self._load_page(cursor=None)

    async def action_next_page(self) -> None:
        """Load the page after the current one."""
        if not self.page or not self.page.has_next or not self.page.cursor:
            self.notify("No more pages", severity="warning")
            return
        await self._load_page(cursor=self.page.cursor)

    async def _load_page(self, cursor: str | None) -> None:
        status = self.query_one("#status", Static)
        params = dict(self.current_params)
        if cursor:
            params["cursor"] = cursor
        try:
            brand = QueryValidator.validate_brand(self.current_brand)
            query = QueryValidator.validate(params)
        except QueryValidationError as exc:
            self.notify(str(exc), severity="error")
            return

        status.update(f"🔍 Searching '{brand}' below retail...")
        try:
            page = await self.service.get_below_retail(brand, query)
        except AllSourcesFailedError as exc:
            logger.error("Search for %s failed: %s", brand, exc)
            status.update("❌ All sources failed")
            self.notify(str(exc), severity="error")
            return

        self.page = page
        self.products = list(page.data)
        self.populate_table()
        self.query_one("#next_btn", Button).disabled = not page.has_next

        if not self.products:
            status.update("❌ No below-retail products found")
        else:
            status.update(
                f"✅ {len(self.products)} of {page.total} products"
                f"{' (more available)' if page.has_next else ''}"
            )

    def populate_table(self) -> None:
        """Fill the DataTable with the current page."""
        table = cast(
            DataTable[str | Text],
            self.query_one("#results_table", DataTable),
        )
        table.clear()
        for p in self.products:
            style = "bold green" if p.discount_percentage >= 0.3 else ""
            table.add_row(
                p.name[:60],
                p.size or "",
                f"${p.retail_price:,.2f}",
                f"${p.current_price:,.2f}",
                Text(f"{p.discount_percentage:.1%}", style=style),
                p.source,
            )

    def on_data_table_row_selected(
        self, event: DataTable.RowSelected
    ) -> None:
        """Open the selected product's URL in the default browser."""
        if 0 <= event.cursor_row < len(self.products):
            webbrowser.open(self.products[event.cursor_row].url)

    async def action_health(self) -> None:
        """Probe every source and show the results."""
        results = await self.service.get_health_status()
        lines = [
            f"{r.source_id}: {r.status.upper()} "
            f"({r.latency_ms:.0f}ms, circuit {r.circuit_state}) {r.message}"
            for r in results
        ]
        self.query_one("#ops_panel", Static).update("\n".join(lines))

    def action_breaker_stats(self) -> None:
        """Show the circuit breaker state of every source."""
        lines = [
            f"{s.name}: {s.state.value} "
            f"(failures={s.failure_count})"
            for s in self.service.get_adapter_stats()
        ]
        self.query_one("#ops_panel", Static).update("\n".join(lines))

    def action_reset_breakers(self) -> None:
        """Close every circuit breaker."""
        self.service.reset_circuit_breakers()
        self.notify("Circuit breakers reset")
        self.action_breaker_stats()

    def action_save(self) -> None:
        """Save the current page to a JSON file."""
        if not self.page or not self.products:
            self.notify("No results to save", severity="warning")
            return
        try:
            path = self.file_manager.save_results(
                self.current_brand, self.page
            )
            logger.info("Results saved to %s", path)
            self.notify(f"Saved to {path}")
        except OSError as e:
            logger.error("Failed to save results", exc_info=True)
            self.notify(f"Save failed: {e}", severity="error")

    def action_export(self) -> None:
        """Export the current page to a CSV file."""
        if not self.products:
            self.notify("No results to export", severity="warning")
            return
        try:
            path = self.file_manager.export_csv(
                self.current_brand, self.products
            )
            logger.info("Exported results to %s", path)
            self.notify(f"Exported to {path}")
        except OSError as e:
            logger.error("Failed to export results", exc_info=True)
            self.notify(f"Export failed: {e}", severity="error")
