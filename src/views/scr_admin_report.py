from typing import List, Tuple

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Vertical
from textual.events import ScreenResume
from textual.widgets import MarkdownViewer

import db.crud as crud
from cart.pricing import format_amount
from utils.config import LOW_STOCK_THRESHOLD, PROFIT_MARGIN
from utils.messages import ModeSwitchedMessage, NewOrderMessage, OrderStatusChangedMessage
from utils.pure import generate_markdown_table
from views.base_screen import BaseScreen


class AdminReportScreen(BaseScreen):
    """
    Analytics: revenue, order counts, stock alerts and best sellers.
    """

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield MarkdownViewer(id="md-report", show_table_of_contents=False)

    def on_mount(self) -> None:
        self.handle_reload()

    @on(NewOrderMessage)
    @on(OrderStatusChangedMessage)
    @on(ScreenResume)
    @on(ModeSwitchedMessage)
    @work(exclusive=True)
    async def handle_reload(self) -> None:
        summary = await crud.sales_summary(LOW_STOCK_THRESHOLD, PROFIT_MARGIN)
        best_sellers = await crud.top_products_by_quantity(k=3)

        def mk_table(rows: List[Tuple[int, str, int]]) -> str:
            if not rows:
                return "_No sales yet._\n"
            return generate_markdown_table(
                ["ID", "Name", "Units"], rows, ["r", "l", "r"]
            ) + "\n"

        md = (
            "### Sales\n\n"
            f"- Total Revenue (completed orders): {format_amount(summary['total_revenue'])}\n"
            f"- Estimated Profit ({PROFIT_MARGIN:.0%} margin): "
            f"{format_amount(summary['estimated_profit'])}\n"
            f"- Average Order Value: {format_amount(summary['average_order_value'])}\n\n"
            "### Orders\n\n"
            f"- Total: {summary['total_orders']}\n"
            f"- Pending: {summary['pending_orders']}\n"
            f"- Completed: {summary['completed_orders']}\n"
            f"- Cancelled: {summary['cancelled_orders']}\n\n"
            "### Stock\n\n"
            f"- Active Products: {summary['active_products']}\n"
            f"- Low Stock (1-{LOW_STOCK_THRESHOLD}): {summary['low_stock_items']}\n"
            f"- Out of Stock: {summary['out_of_stock_items']}\n\n"
            "### Inbox\n\n"
            f"- Pending Quotes: {summary['pending_quotes']}\n"
            f"- Unanswered Messages: {summary['pending_messages']}\n\n"
            "### Best Sellers\n\n" + mk_table(best_sellers)
        )
        await self.query_one("#md-report", MarkdownViewer).document.update(md)
