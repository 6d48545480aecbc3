# pure cart transformations; each returns a new Cart and never raises
from dataclasses import replace

from cart.models import Cart, CartLine, to_money
from db.models import Product


def add_item(cart: Cart, product: Product, quantity: int = 1) -> Cart:
    """
    Merge `quantity` units of product into the cart.
    An existing line for the product grows; otherwise a new line is appended
    with the product's current name, price and first image as a snapshot.
    """
    quantity = max(int(quantity), 1)
    if cart.find(product.id) is not None:
        return Cart(
            tuple(
                replace(line, quantity=line.quantity + quantity)
                if line.product_id == product.id
                else line
                for line in cart.lines
            )
        )

    new_line = CartLine(
        product_id=product.id,
        name=product.name,
        unit_price=to_money(product.price),
        quantity=quantity,
        image_ref=product.image_refs[0] if product.image_refs else None,
    )
    return Cart(cart.lines + (new_line,))


def set_quantity(cart: Cart, product_id: int, quantity: int) -> Cart:
    # removal is its own operation, so a line never drops below 1
    quantity = max(int(quantity), 1)
    return Cart(
        tuple(
            replace(line, quantity=quantity) if line.product_id == product_id else line
            for line in cart.lines
        )
    )


def adjust_quantity(cart: Cart, product_id: int, delta: int) -> Cart:
    line = cart.find(product_id)
    if line is None:
        return cart
    return set_quantity(cart, product_id, line.quantity + delta)


def remove_item(cart: Cart, product_id: int) -> Cart:
    if cart.find(product_id) is None:
        return cart
    return Cart(tuple(line for line in cart.lines if line.product_id != product_id))


def clear(cart: Cart) -> Cart:
    return Cart()
