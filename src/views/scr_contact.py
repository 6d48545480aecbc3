from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, VerticalScroll
from textual.widgets import Button, Input, Label, Markdown, TextArea

import db.crud
from utils.config import (
    COMPANY_ADDRESS,
    COMPANY_DESCRIPTION,
    COMPANY_EMAIL,
    COMPANY_NAME,
    COMPANY_PHONE,
)
from views.base_screen import BaseScreen


class ContactScreen(BaseScreen):
    """Store contact details and a message form that lands in the admin inbox."""

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Horizontal():
            yield Markdown(
                f"### {COMPANY_NAME}\n\n{COMPANY_DESCRIPTION}\n\n"
                f"- Phone: {COMPANY_PHONE}\n"
                f"- Email: {COMPANY_EMAIL}\n"
                f"- Address: {COMPANY_ADDRESS}\n",
                id="md-company",
            )
            with VerticalScroll(id="div-contact-form"):
                yield Label("Name")
                yield Input(placeholder="Jane Doe", id="input-contact-name")
                yield Label("Email")
                yield Input(placeholder="user@example.com", id="input-contact-email")
                yield Label("Subject")
                yield Input(id="input-contact-subject")
                yield Label("Message")
                yield TextArea(id="input-contact-message")
                yield Button("Send Message", id="btn-contact-submit", variant="primary")

    def on_mount(self) -> None:
        user = self.app.state.current_user()
        if user is not None:
            self.query_one("#input-contact-name", Input).value = user.name
            self.query_one("#input-contact-email", Input).value = user.email

    @on(Button.Pressed, "#btn-contact-submit")
    @work(exclusive=True)
    async def handle_submit(self) -> None:
        subject = self.query_one("#input-contact-subject", Input)
        body = self.query_one("#input-contact-message", TextArea)
        try:
            await db.crud.submit_message(
                self.query_one("#input-contact-name", Input).value,
                self.query_one("#input-contact-email", Input).value,
                subject.value,
                body.text,
            )
        except ValueError as exc:
            self.notify(str(exc), severity="error")
            return
        subject.value = ""
        body.clear()
        self.notify("Message sent. We will get back to you by email.")
