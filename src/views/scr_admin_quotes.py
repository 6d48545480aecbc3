from typing import Dict, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Label, Markdown, Select

import db.crud
from db.crud import RecordNotFound
from db.models import Quote, QuoteStatus
from utils.messages import ModeSwitchedMessage
from views.base_screen import BaseScreen


class AdminQuotesScreen(BaseScreen):
    """Quote requests, newest first; approve or reject the highlighted one."""

    def __init__(self) -> None:
        super().__init__()
        self._quotes: Dict[int, Quote] = {}
        self._selected: Optional[int] = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Horizontal(id="hort-filter"):
            yield Label("Show:")
            yield Select(
                [(s.label, s.value) for s in QuoteStatus],
                prompt="All statuses",
                id="select-filter",
            )
        with Vertical():
            yield DataTable(id="table-quotes")
            yield Markdown("", id="md-quote-detail")
        with Horizontal(id="hort-table-control"):
            yield Button("Approve", id="btn-approve", variant="success", disabled=True)
            yield Button("Reject", id="btn-reject", variant="error", disabled=True)

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Quote No", "Date", "Customer", "Email", "Status")
        self.handle_refresh()

    @on(ModeSwitchedMessage)
    @on(ScreenResume)
    @on(Select.Changed, "#select-filter")
    @work(exclusive=True, group="quotes")
    async def handle_refresh(self) -> None:
        value = self.query_one("#select-filter", Select).value
        status = QuoteStatus(value) if isinstance(value, str) else None
        quotes = await db.crud.list_quotes(status=status)
        self._quotes = {q.id: q for q in quotes}

        table = self.query_one(DataTable)
        table.clear()
        for q in quotes:
            table.add_row(
                q.id,
                f"{q.created_at:%Y-%m-%d %H:%M}",
                q.customer_name,
                q.customer_email,
                q.status.label,
                key=str(q.id),
            )
        if quotes:
            table.move_cursor(row=0)
            await self._show(quotes[0].id)
        else:
            await self._show(None)

    @on(DataTable.RowHighlighted)
    async def handle_row_highlight(self, event: DataTable.RowHighlighted) -> None:
        if event.row_key is not None and event.row_key.value:
            await self._show(int(event.row_key.value))

    async def _show(self, quote_id: Optional[int]) -> None:
        self._selected = quote_id
        quote = self._quotes.get(quote_id) if quote_id is not None else None
        md = self.query_one("#md-quote-detail", Markdown)
        if quote is None:
            await md.update("### No quote requests.")
        else:
            await md.update(
                f"### Quote #{quote.id}  ({quote.status.label})\n"
                f"{quote.customer_name}, {quote.customer_email}, {quote.phone or 'no phone'}\n\n"
                f"{quote.message or '_No details given._'}"
            )
        self.query_one("#btn-approve", Button).disabled = (
            quote is None or quote.status == QuoteStatus.APPROVED
        )
        self.query_one("#btn-reject", Button).disabled = (
            quote is None or quote.status == QuoteStatus.REJECTED
        )

    @on(Button.Pressed, "#btn-approve")
    def handle_approve(self) -> None:
        self._decide(QuoteStatus.APPROVED)

    @on(Button.Pressed, "#btn-reject")
    def handle_reject(self) -> None:
        self._decide(QuoteStatus.REJECTED)

    @work(exclusive=True, group="update")
    async def _decide(self, status: QuoteStatus) -> None:
        if self._selected is None:
            return
        try:
            quote = await db.crud.update_quote_status(self._selected, status)
        except (RecordNotFound, ValueError) as exc:
            self.notify(str(exc), severity="error")
        else:
            self.notify(f"Quote #{quote.id} {quote.status.value}.")
        self.handle_refresh()
