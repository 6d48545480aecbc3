from typing import Optional

from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, MarkdownViewer

import db.crud
from cart import checkout
from cart.errors import CheckoutError
from cart.pricing import PENDING_LABEL, format_amount, line_total, subtotal
from utils.logger import get_logger
from utils.pure import generate_markdown_table
from views.modal_dialog import DialogModal

_logger = get_logger(__name__)


class CheckoutModal(ModalScreen[Optional[int]]):
    """
    Order summary plus the customer details form.
    Dismisses with the new order id, or None if nothing was placed.
    """

    FIELDS = {
        "input-name": "name",
        "input-email": "email",
        "input-phone": "phone",
        "input-address": "shipping_address",
    }

    def compose(self) -> ComposeResult:
        with Vertical():
            yield MarkdownViewer("", show_table_of_contents=False)
            with VerticalScroll(id="div-customer-form"):
                yield Label("Name")
                yield Input(placeholder="Jane Doe", id="input-name")
                yield Label("Email")
                yield Input(placeholder="user@example.com", id="input-email")
                yield Label("Phone")
                yield Input(placeholder="9876543210", id="input-phone")
                yield Label("Shipping Address")
                yield Input(placeholder="12 MG Road, Pune 411001", id="input-address")
                yield Label("Notes (optional)")
                yield Input(id="input-notes")
            with Horizontal():
                yield Button("Go Back", id="btn-quit")
                yield Button("Place Order", id="btn-submit", variant="primary")

    async def on_mount(self):
        cart = self.app.state.cart.read_cart()
        rows = [
            [
                line.name,
                format_amount(line.unit_price),
                line.quantity,
                format_amount(line_total(line)),
            ]
            for line in cart
        ]
        md = "### Order Summary\n\n"
        md += generate_markdown_table(
            ["Product", "Unit Price", "Quantity", "Total"], rows, ["l", "r", "c", "r"]
        )
        md += f"\n\n**Subtotal:** {format_amount(subtotal(cart))}  \n"
        md += f"Tax and shipping: {PENDING_LABEL.lower()}.  \n"
        md += "_Prices are confirmed against the catalogue when you place the order._"
        await self.query_one(MarkdownViewer).document.update(md)

        user = self.app.state.current_user()
        if user is not None:
            self.query_one("#input-name", Input).value = user.name
            self.query_one("#input-email", Input).value = user.email
        self.query_one("#input-name").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape" and not self.app.state.checkout_in_flight:
            self.dismiss(None)

    def _customer_info(self) -> checkout.CustomerInfo:
        values = {
            attr: self.query_one(f"#{input_id}", Input).value
            for input_id, attr in self.FIELDS.items()
        }
        notes = self.query_one("#input-notes", Input).value
        return checkout.CustomerInfo(
            notes=notes or None, user_id=self.app.state.uid, **values
        )

    def _set_busy(self, busy: bool) -> None:
        self.app.state.checkout_in_flight = busy
        submit = self.query_one("#btn-submit", Button)
        submit.disabled = busy
        submit.label = "Placing order..." if busy else "Place Order"
        self.query_one("#btn-quit", Button).disabled = busy

    @on(Button.Pressed, "#btn-submit")
    @work(exclusive=True)
    async def handle_submit(self):
        # a second press while an order is in flight must not place a second order
        if self.app.state.checkout_in_flight:
            return

        customer = self._customer_info()
        try:
            customer.validate()
        except ValueError as exc:
            for input_id, attr in self.FIELDS.items():
                if not getattr(customer, attr).strip() or (
                    attr == "email" and "@" not in customer.email
                ):
                    field = self.query_one(f"#{input_id}", Input)
                    field.add_class("-invalid")
                    field.focus()
                    break
            self.notify(str(exc), severity="error")
            return

        self._set_busy(True)
        try:
            reconciliation = await checkout.reconcile(
                self.app.state.cart.read_cart(), db.crud
            )
            if reconciliation.price_changes and not await self._confirm_price_changes(
                reconciliation
            ):
                return
            if not await self.app.push_screen_wait(
                DialogModal(
                    f"Place order for {format_amount(reconciliation.total_amount)}? "
                    "This cannot be undone.",
                    primary_text="Yes",
                    secondary_text="No",
                    tone="positive",
                )
            ):
                return
            order = await checkout.materialize(
                reconciliation, customer, db.crud, self.app.state.cart
            )
        except CheckoutError as exc:
            self.notify(str(exc), severity="error", timeout=8)
            return
        finally:
            self._set_busy(False)

        self.notify(f"Order placed. Your order number is {order.id}.")
        self.dismiss(order.id)

    async def _confirm_price_changes(self, reconciliation: checkout.Reconciliation) -> bool:
        rows = [
            [
                rl.line.name,
                format_amount(rl.line.unit_price),
                format_amount(rl.unit_price),
            ]
            for rl in reconciliation.price_changes
        ]
        body = generate_markdown_table(["Product", "In cart", "Now"], rows, ["l", "r", "r"])
        body += (
            f"\n\nNew total: **{format_amount(reconciliation.total_amount)}** "
            f"(was {format_amount(reconciliation.snapshot_total)})"
        )
        _logger.info(f"Prices changed for {len(rows)} cart line(s) before checkout")
        return await self.app.push_screen_wait(
            DialogModal(
                "Some prices changed since you added these items.",
                primary_text="Continue",
                secondary_text="Go Back",
                tone="warning",
                body_md=body,
            )
        )

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(None)
