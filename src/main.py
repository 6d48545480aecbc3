from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import LoadingIndicator

from utils.logger import get_logger
from utils.messages import ModeSwitchedMessage, QuitRequestedMessage, UserLogoutMessage
from utils.state import GlobalState
from views.scr_admin_messages import AdminMessagesScreen
from views.scr_admin_orders import AdminOrdersScreen
from views.scr_admin_quotes import AdminQuotesScreen
from views.scr_admin_report import AdminReportScreen
from views.scr_admin_stock import AdminStockScreen
from views.scr_browse import BrowseScreen
from views.scr_cart import CartScreen
from views.scr_contact import ContactScreen
from views.scr_login import LoginScreen
from views.scr_my_orders import MyOrdersScreen
from views.scr_quotes import QuotesScreen

_logger = get_logger(__name__)


class StorefrontApp(App):
    BINDINGS = [
        Binding("ctrl+t", "switch_light", "Toggle Theme", show=True),
    ]

    MODES = {
        "browse": BrowseScreen,
        "cart": CartScreen,
        "my_orders": MyOrdersScreen,
        "quotes": QuotesScreen,
        "contact": ContactScreen,
        "admin_orders": AdminOrdersScreen,
        "admin_stock": AdminStockScreen,
        "admin_report": AdminReportScreen,
        "admin_quotes": AdminQuotesScreen,
        "admin_messages": AdminMessagesScreen,
    }

    ADMIN_MODES = {
        "admin_orders": "Orders",
        "admin_stock": "Stock & Prices",
        "admin_quotes": "Quotes",
        "admin_messages": "Messages",
        "admin_report": "Analytics",
    }
    CUSTOMER_MODES = {
        "browse": "Products",
        "cart": "Cart",
        "my_orders": "My Orders",
        "quotes": "Quotes",
        "contact": "Contact Us",
    }

    CSS_PATH = "views/styles/app.tcss"

    state: GlobalState

    def __init__(self):
        super().__init__()
        self.state = GlobalState()

    def compose(self) -> ComposeResult:
        yield LoadingIndicator()

    async def on_mount(self) -> None:
        self.main_flow()

    def action_switch_light(self):
        if self.theme == "textual-dark":
            self.theme = "solarized-light"
        else:
            self.theme = "textual-dark"
        self.notify(f"Theme changed to {self.theme}")

    @on(UserLogoutMessage)
    def handle_user_logout(self):
        was_signed_in = self.state.current_user() is not None
        self.state.sign_out()
        if was_signed_in:
            self.notify("Logout successful.")
        self.main_flow()

    @on(QuitRequestedMessage)
    def handle_quit(self):
        self.exit()

    @work
    async def main_flow(self):
        await self.push_screen_wait(LoginScreen())
        target = "admin_orders" if self.state.is_admin else "browse"
        _logger.info(f"Signed in as {self.state.role}, opening {target}")
        self.app.post_message(ModeSwitchedMessage(self.app.current_mode, target))
        await self.switch_mode(target)


def run() -> None:
    StorefrontApp().run()


if __name__ == "__main__":
    run()
