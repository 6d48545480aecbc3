from typing import List

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.events import ScreenResume
from textual.widgets import Button, Input, Label, Markdown, TextArea

import db.crud
from db.models import Quote, QuoteStatus
from utils.messages import ModeSwitchedMessage
from utils.pure import generate_markdown_table
from views.base_screen import BaseScreen

STATUS_NOTES = {
    QuoteStatus.PENDING: "Your quote is being reviewed. We will update you soon.",
    QuoteStatus.APPROVED: "Your quote has been approved! We will contact you shortly with more details.",
    QuoteStatus.REJECTED: "Unfortunately, we cannot fulfill this quote request at this time.",
}


def quotes_markdown(quotes: List[Quote]) -> str:
    counts = {s: sum(1 for q in quotes if q.status == s) for s in QuoteStatus}
    md = "### My Quotes\n\n" + generate_markdown_table(
        [s.label for s in QuoteStatus], [[counts[s] for s in QuoteStatus]], ["c"] * 3
    )
    if not quotes:
        return md + "\n\nYou have not requested any quotes yet."
    for q in quotes:
        md += (
            f"\n\n#### Quote #{q.id}  ({q.status.label})\n"
            f"Requested: {q.created_at:%Y-%m-%d %H:%M}  \n"
            f"{STATUS_NOTES[q.status]}"
        )
        if q.message:
            md += f"\n\n> {q.message}"
    return md


class QuotesScreen(BaseScreen):
    """
    Request a quote for bulk or custom orders and follow up on earlier requests.
    """

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Horizontal():
            with VerticalScroll(id="div-quote-form"):
                yield Label("Name")
                yield Input(placeholder="Jane Doe", id="input-quote-name")
                yield Label("Email")
                yield Input(placeholder="user@example.com", id="input-quote-email")
                yield Label("Phone (optional)")
                yield Input(placeholder="9876543210", id="input-quote-phone")
                yield Label("What do you need?")
                yield TextArea(id="input-quote-message")
                yield Button("Request Quote", id="btn-quote-submit", variant="primary")
            with Vertical():
                yield Markdown("", id="md-quotes")

    def on_mount(self) -> None:
        user = self.app.state.current_user()
        if user is not None:
            self.query_one("#input-quote-name", Input).value = user.name
            self.query_one("#input-quote-email", Input).value = user.email
        self.handle_refresh()

    @on(ModeSwitchedMessage)
    @on(ScreenResume)
    @work(exclusive=True, group="quotes")
    async def handle_refresh(self) -> None:
        md = self.query_one("#md-quotes", Markdown)
        uid = self.app.state.uid
        if uid is None:
            await md.update(
                "### Sign in to track your quotes.\n\n"
                "Guests can still send a request; we reply by email."
            )
            return
        await md.update(quotes_markdown(await db.crud.list_quotes(user_id=uid)))

    @on(Button.Pressed, "#btn-quote-submit")
    @work(exclusive=True, group="submit")
    async def handle_submit(self) -> None:
        message_area = self.query_one("#input-quote-message", TextArea)
        try:
            quote_id = await db.crud.submit_quote(
                self.query_one("#input-quote-name", Input).value,
                self.query_one("#input-quote-email", Input).value,
                phone=self.query_one("#input-quote-phone", Input).value,
                message=message_area.text,
                user_id=self.app.state.uid,
            )
        except ValueError as exc:
            self.notify(str(exc), severity="error")
            return
        message_area.clear()
        self.notify(f"Quote request #{quote_id} sent.")
        self.handle_refresh()
