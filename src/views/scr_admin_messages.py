from typing import Dict, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Label, Markdown, Select, TextArea

import db.crud
from db.crud import RecordNotFound
from db.models import ContactMessage, MessageStatus
from utils.messages import ModeSwitchedMessage
from views.base_screen import BaseScreen


def message_markdown(msg: Optional[ContactMessage]) -> str:
    if msg is None:
        return "### No messages."
    md = (
        f"### {msg.subject}  ({msg.status.label})\n"
        f"From: {msg.customer_name} <{msg.customer_email}>  \n"
        f"Received: {msg.created_at:%Y-%m-%d %H:%M}\n\n"
        f"{msg.message}"
    )
    if msg.admin_reply:
        md += f"\n\n#### Reply ({msg.replied_at:%Y-%m-%d %H:%M})\n\n{msg.admin_reply}"
    return md


class AdminMessagesScreen(BaseScreen):
    """Contact-form inbox: read, reply to, or close customer messages."""

    def __init__(self) -> None:
        super().__init__()
        self._messages: Dict[int, ContactMessage] = {}
        self._selected: Optional[int] = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Horizontal(id="hort-filter"):
            yield Label("Show:")
            yield Select(
                [(s.label, s.value) for s in MessageStatus],
                prompt="All statuses",
                id="select-filter",
            )
        with Vertical():
            yield DataTable(id="table-messages")
            yield Markdown("", id="md-message-detail")
            yield TextArea(id="input-reply")
        with Horizontal(id="hort-table-control"):
            yield Button("Send Reply", id="btn-reply", variant="primary", disabled=True)
            yield Button("Close", id="btn-close-msg", variant="error", disabled=True)

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("No", "Date", "From", "Subject", "Status")
        self.handle_refresh()

    @on(ModeSwitchedMessage)
    @on(ScreenResume)
    @on(Select.Changed, "#select-filter")
    @work(exclusive=True, group="messages")
    async def handle_refresh(self) -> None:
        value = self.query_one("#select-filter", Select).value
        status = MessageStatus(value) if isinstance(value, str) else None
        messages = await db.crud.list_messages(status)
        self._messages = {m.id: m for m in messages}

        table = self.query_one(DataTable)
        table.clear()
        for m in messages:
            table.add_row(
                m.id,
                f"{m.created_at:%Y-%m-%d %H:%M}",
                m.customer_name,
                m.subject,
                m.status.label,
                key=str(m.id),
            )
        if messages:
            table.move_cursor(row=0)
            await self._show(messages[0].id)
        else:
            await self._show(None)

    @on(DataTable.RowHighlighted)
    async def handle_row_highlight(self, event: DataTable.RowHighlighted) -> None:
        if event.row_key is not None and event.row_key.value:
            await self._show(int(event.row_key.value))

    async def _show(self, message_id: Optional[int]) -> None:
        self._selected = message_id
        msg = self._messages.get(message_id) if message_id is not None else None
        await self.query_one("#md-message-detail", Markdown).update(message_markdown(msg))
        reply = self.query_one("#input-reply", TextArea)
        reply.text = msg.admin_reply or "" if msg else ""
        closed = msg is None or msg.status == MessageStatus.CLOSED
        self.query_one("#btn-reply", Button).disabled = closed
        self.query_one("#btn-reply", Button).label = (
            "Update Reply" if msg and msg.admin_reply else "Send Reply"
        )
        self.query_one("#btn-close-msg", Button).disabled = (
            msg is None or msg.status != MessageStatus.PENDING
        )

    @on(Button.Pressed, "#btn-reply")
    @work(exclusive=True, group="update")
    async def handle_reply(self) -> None:
        if self._selected is None:
            return
        try:
            await db.crud.reply_to_message(
                self._selected, self.query_one("#input-reply", TextArea).text
            )
        except (RecordNotFound, ValueError) as exc:
            self.notify(str(exc), severity="error")
            return
        self.notify("Reply saved.")
        self.handle_refresh()

    @on(Button.Pressed, "#btn-close-msg")
    @work(exclusive=True, group="update")
    async def handle_close(self) -> None:
        if self._selected is None:
            return
        try:
            await db.crud.close_message(self._selected)
        except (RecordNotFound, ValueError) as exc:
            self.notify(str(exc), severity="error")
            return
        self.notify("Message closed.")
        self.handle_refresh()
