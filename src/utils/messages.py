from textual.message import Message


class QuitRequestedMessage(Message):
    """
    broadcasted when the app is about to quit
    """

    bubble = True


class UserLogoutMessage(Message):
    """
    broadcasted when the user logs out
    """

    bubble = True


class UserLoginMessage(Message):
    """
    Fired when user logged in (or chose guest), so screens can refresh
    """

    bubble = True


class CartChangedMessage(Message):
    """
    Fired whenever the cart store is written: add from product detail,
    quantity change or removal in the cart screen, or a successful checkout.

    If posted from outside CartScreen, make sure to post at App level
    """

    bubble = True


class NewOrderMessage(Message):
    """
    Fired when a new order is created.
    Listened to by my orders and the admin screens
    """

    bubble = True

    def __init__(self, order_id: int) -> None:
        super().__init__()
        self.order_id = order_id


class OrderStatusChangedMessage(Message):
    """
    Fired by the admin order screen after a status transition
    """

    bubble = True

    def __init__(self, order_id: int, status: str) -> None:
        super().__init__()
        self.order_id = order_id
        self.status = status


class ModeSwitchedMessage(Message):
    """
    fired whenever switch_mode is called
    must be fired from app level
    """

    bubble = True

    def __init__(self, old_mode: str, new_mode: str) -> None:
        super().__init__()
        self.old_mode = old_mode
        self.new_mode = new_mode
