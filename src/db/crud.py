# src/db/crud.py
from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from cart.models import to_money
from cart.status import OrderStatus, check_transition
from db import models
from db.database import connect
from utils.logger import get_logger

_logger = get_logger(__name__)

PRODUCT_COLUMNS = (
    "id, name, description, category, price, stock, is_active, image_refs, specifications"
)
ORDER_COLUMNS = (
    "id, user_id, customer_name, customer_email, customer_phone, shipping_address, "
    "status, total_amount, created_at, notes"
)


class StockConflict(Exception):
    """Raised when a conditional stock decrement finds too few units left."""

    def __init__(self, product_id: int, requested: int, available: int):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Product {product_id}: requested {requested}, available {available}"
        )


class RecordNotFound(LookupError):
    pass


class OrderNotFound(RecordNotFound):
    pass


def _ts(when: datetime) -> str:
    return when.isoformat(sep=" ", timespec="seconds")


def _row_to_product(row) -> models.Product:
    return models.Product(
        id=int(row["id"]),
        name=row["name"],
        description=row["description"],
        category=row["category"],
        price=to_money(row["price"]),
        stock=int(row["stock"]),
        is_active=bool(row["is_active"]),
        image_refs=tuple(json.loads(row["image_refs"] or "[]")),
        specifications=dict(json.loads(row["specifications"] or "{}")),
    )


def _row_to_order(row) -> models.Order:
    return models.Order(
        id=int(row["id"]),
        user_id=row["user_id"],
        customer_name=row["customer_name"],
        customer_email=row["customer_email"],
        customer_phone=row["customer_phone"],
        shipping_address=row["shipping_address"],
        status=OrderStatus(row["status"]),
        total_amount=to_money(row["total_amount"]),
        created_at=datetime.fromisoformat(str(row["created_at"])),
        notes=row["notes"],
    )


# ---------------------------
# Auth & Registration
# ---------------------------


async def email_available(email: str) -> bool:
    """True if no user already registered with the given email."""
    async with connect() as conn:
        cur = await conn.execute(
            "SELECT 1 FROM users WHERE LOWER(email) = LOWER(?) LIMIT 1;", (email,)
        )
        row = await cur.fetchone()
        await cur.close()
        return row is None


async def register_customer(name: str, email: str, pwd: str) -> int:
    """Create a customer account and return its uid."""
    async with connect() as conn:
        cur = await conn.execute(
            "INSERT INTO users(name, email, pwd, role) VALUES (?, ?, ?, 'customer');",
            (name, email, pwd),
        )
        uid = cur.lastrowid
        await cur.close()
        await conn.commit()
    _logger.info(f"Registered customer {uid}")
    return int(uid)


async def login(email: str, pwd: str) -> Optional[models.User]:
    """Return the User if email/pwd match; otherwise None."""
    async with connect() as conn:
        cur = await conn.execute(
            "SELECT uid, name, email, role FROM users WHERE LOWER(email) = LOWER(?) AND pwd = ?;",
            (email, pwd),
        )
        row = await cur.fetchone()
        await cur.close()
    if not row:
        return None
    return models.User(uid=int(row[0]), name=row[1], email=row[2], role=row[3])


async def get_user(uid: int) -> Optional[models.User]:
    async with connect() as conn:
        cur = await conn.execute(
            "SELECT uid, name, email, role FROM users WHERE uid = ?;", (uid,)
        )
        row = await cur.fetchone()
        await cur.close()
    if not row:
        return None
    return models.User(uid=int(row[0]), name=row[1], email=row[2], role=row[3])


# ---------------------------
# Products
# ---------------------------


async def get_product(product_id: int) -> Optional[models.Product]:
    """Fetch a product by id, active or not. None if it does not exist."""
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT {PRODUCT_COLUMNS} FROM products WHERE id = ?;", (product_id,)
        )
        row = await cur.fetchone()
        await cur.close()
    return _row_to_product(row) if row else None


async def list_active_products(
    query: str, page: int, page_size: int = 5
) -> Tuple[List[models.Product], int]:
    """
    Storefront listing: active products whose name, description or category
    contains any of the words in `query` (case-insensitive). An empty query
    lists everything. Returns (products for page, total_count).
    """
    words = [w for w in (query or "").strip().lower().split() if w]
    where = "is_active = 1"
    params: List[str | int] = []
    if words:
        cond = " OR ".join(
            ["(LOWER(name) LIKE ? OR LOWER(description) LIKE ? OR LOWER(category) LIKE ?)"]
            * len(words)
        )
        where += f" AND ({cond})"
        for w in words:
            like = f"%{w}%"
            params.extend([like, like, like])

    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT COUNT(*) FROM products WHERE {where};", tuple(params)
        )
        total = (await cur.fetchone())[0]
        await cur.close()

        offset = max(page - 1, 0) * page_size
        cur = await conn.execute(
            f"""
            SELECT {PRODUCT_COLUMNS}
            FROM products
            WHERE {where}
            ORDER BY id
            LIMIT ? OFFSET ?;
            """,
            tuple(params + [page_size, offset]),
        )
        rows = await cur.fetchall()
        await cur.close()
    return [_row_to_product(r) for r in rows], total


async def search_products_admin(query: str) -> List[models.Product]:
    """
    Admin lookup over all products, inactive ones included.
    - Empty string: every product ordered by id.
    - Numeric only: exact id match; falls back to keyword search if none.
    - Otherwise: whole phrase matches first, then each word; no duplicates.
    """
    phrase = (query or "").strip().lower()

    async with connect() as conn:

        async def fetch(sql: str, params: Sequence = ()) -> List[models.Product]:
            cur = await conn.execute(sql, tuple(params))
            rows = await cur.fetchall()
            await cur.close()
            return [_row_to_product(r) for r in rows]

        keyword_sql = f"""
            SELECT {PRODUCT_COLUMNS}
            FROM products
            WHERE LOWER(name) LIKE ? OR LOWER(description) LIKE ?
            ORDER BY id;
            """

        if not phrase:
            return await fetch(f"SELECT {PRODUCT_COLUMNS} FROM products ORDER BY id;")

        if phrase.isdigit():
            exact = await fetch(
                f"SELECT {PRODUCT_COLUMNS} FROM products WHERE id = ?;", (int(phrase),)
            )
            if exact:
                return exact
            like = f"%{phrase}%"
            return await fetch(keyword_sql, (like, like))

        results: List[models.Product] = []
        seen: set[int] = set()
        terms = [phrase] + [w for w in phrase.split() if w != phrase]
        for term in dict.fromkeys(terms):
            like = f"%{term}%"
            for prod in await fetch(keyword_sql, (like, like)):
                if prod.id not in seen:
                    seen.add(prod.id)
                    results.append(prod)
        return results


async def update_product(
    product_id: int,
    price: Optional[Decimal] = None,
    stock: Optional[int] = None,
    is_active: Optional[bool] = None,
) -> bool:
    """
    Update only the provided fields. Return True if a row was updated.
    """
    sets: List[str] = []
    params: List = []
    if price is not None:
        if price < 0:
            raise ValueError("Price cannot be negative.")
        sets.append("price = ?")
        params.append(float(to_money(price)))
    if stock is not None:
        if stock < 0:
            raise ValueError("Stock cannot be negative.")
        sets.append("stock = ?")
        params.append(int(stock))
    if is_active is not None:
        sets.append("is_active = ?")
        params.append(1 if is_active else 0)
    if not sets:
        return False

    async with connect() as conn:
        cur = await conn.execute(
            f"UPDATE products SET {', '.join(sets)} WHERE id = ?;",
            tuple(params + [product_id]),
        )
        updated = cur.rowcount > 0
        await cur.close()
        await conn.commit()
    if updated:
        _logger.info(f"Product {product_id} updated: {', '.join(sets)}")
    return updated


async def create_product(
    name: str,
    description: str,
    category: str,
    price: Decimal,
    stock: int,
    image_refs: Sequence[str] = (),
    specifications: Optional[Dict[str, str]] = None,
) -> int:
    """Add an active product to the catalogue and return its id."""
    if not (name or "").strip():
        raise ValueError("Product name is required.")
    if price < 0:
        raise ValueError("Price cannot be negative.")
    if stock < 0:
        raise ValueError("Stock cannot be negative.")

    async with connect() as conn:
        cur = await conn.execute(
            """
            INSERT INTO products(name, description, category, price, stock, is_active,
                                 image_refs, specifications)
            VALUES (?, ?, ?, ?, ?, 1, ?, ?);
            """,
            (
                name.strip(),
                (description or "").strip(),
                (category or "").strip(),
                float(to_money(price)),
                int(stock),
                json.dumps(list(image_refs)),
                json.dumps(specifications or {}),
            ),
        )
        product_id = cur.lastrowid
        await cur.close()
        await conn.commit()
    _logger.info(f"Product {product_id} created: {name.strip()}")
    return int(product_id)


async def delete_product(product_id: int) -> bool:
    """
    Remove a product that was never ordered. Return False if it does not exist.
    Ordered products stay for the order history; deactivate those instead.
    """
    async with connect() as conn:
        cur = await conn.execute(
            "SELECT 1 FROM order_items WHERE product_id = ? LIMIT 1;", (product_id,)
        )
        ordered = await cur.fetchone() is not None
        await cur.close()
        if ordered:
            raise ValueError("This product appears in orders; deactivate it instead.")
        cur = await conn.execute("DELETE FROM products WHERE id = ?;", (product_id,))
        deleted = cur.rowcount > 0
        await cur.close()
        await conn.commit()
    if deleted:
        _logger.info(f"Product {product_id} deleted")
    return deleted


async def low_stock_products(threshold: int) -> List[models.Product]:
    """Active products with stock <= threshold, emptiest first."""
    async with connect() as conn:
        cur = await conn.execute(
            f"""
            SELECT {PRODUCT_COLUMNS}
            FROM products
            WHERE is_active = 1 AND stock <= ?
            ORDER BY stock, id;
            """,
            (threshold,),
        )
        rows = await cur.fetchall()
        await cur.close()
    return [_row_to_product(r) for r in rows]


# ---------------------------
# Orders
# ---------------------------


async def insert_order(header: models.OrderHeader) -> int:
    """Insert an order header and return its id."""
    async with connect() as conn:
        cur = await conn.execute(
            """
            INSERT INTO orders(user_id, customer_name, customer_email, customer_phone,
                               shipping_address, status, total_amount, created_at, notes)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                header.user_id,
                header.customer_name,
                header.customer_email,
                header.customer_phone,
                header.shipping_address,
                header.status.value,
                float(header.total_amount),
                _ts(header.created_at),
                header.notes,
            ),
        )
        order_id = cur.lastrowid
        await cur.close()
        await conn.commit()
    return int(order_id)


async def insert_order_items(order_id: int, items: Sequence[models.OrderItem]) -> None:
    """
    Insert all lines of an order and take their quantities out of stock,
    in one transaction.

    Each decrement is conditional on enough stock remaining, so two buyers
    racing for the last units cannot both succeed. The loser gets a
    StockConflict and nothing from this call is kept.
    """
    async with connect() as conn:
        try:
            for line_no, item in enumerate(items, start=1):
                cur = await conn.execute(
                    "UPDATE products SET stock = stock - ? WHERE id = ? AND stock >= ?;",
                    (item.quantity, item.product_id, item.quantity),
                )
                decremented = cur.rowcount > 0
                await cur.close()
                if not decremented:
                    cur = await conn.execute(
                        "SELECT stock FROM products WHERE id = ?;", (item.product_id,)
                    )
                    row = await cur.fetchone()
                    await cur.close()
                    available = int(row[0]) if row else 0
                    raise StockConflict(item.product_id, item.quantity, available)

                await conn.execute(
                    """
                    INSERT INTO order_items(order_id, line_no, product_id, quantity, unit_price, subtotal)
                    VALUES (?, ?, ?, ?, ?, ?);
                    """,
                    (
                        order_id,
                        line_no,
                        item.product_id,
                        item.quantity,
                        float(item.unit_price),
                        float(item.subtotal),
                    ),
                )
            await conn.commit()
        except Exception:
            await conn.rollback()
            raise


async def delete_order(order_id: int) -> None:
    """Remove an order and its lines. Used to clean up a header left without lines."""
    async with connect() as conn:
        await conn.execute("DELETE FROM order_items WHERE order_id = ?;", (order_id,))
        await conn.execute("DELETE FROM orders WHERE id = ?;", (order_id,))
        await conn.commit()


async def get_order(order_id: int) -> Optional[models.Order]:
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT {ORDER_COLUMNS} FROM orders WHERE id = ?;", (order_id,)
        )
        row = await cur.fetchone()
        await cur.close()
    return _row_to_order(row) if row else None


async def get_order_detail(
    order_id: int,
) -> Tuple[Optional[models.Order], List[models.OrderItem]]:
    """
    Return (order, items) for a specific order; (None, []) if it does not exist.
    """
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT {ORDER_COLUMNS} FROM orders WHERE id = ?;", (order_id,)
        )
        order_row = await cur.fetchone()
        await cur.close()
        if not order_row:
            return None, []
        cur = await conn.execute(
            """
            SELECT oi.order_id, oi.product_id, oi.quantity, oi.unit_price, oi.subtotal,
                   COALESCE(p.name, '') AS product_name
            FROM order_items oi
            LEFT JOIN products p ON p.id = oi.product_id
            WHERE oi.order_id = ?
            ORDER BY oi.line_no;
            """,
            (order_id,),
        )
        item_rows = await cur.fetchall()
        await cur.close()
    items = [
        models.OrderItem(
            order_id=int(r["order_id"]),
            product_id=int(r["product_id"]),
            quantity=int(r["quantity"]),
            unit_price=to_money(r["unit_price"]),
            subtotal=to_money(r["subtotal"]),
            product_name=r["product_name"],
        )
        for r in item_rows
    ]
    return _row_to_order(order_row), items


async def list_orders_for_user(
    uid: int, page: int, page_size: int = 5
) -> Tuple[List[models.Order], int]:
    """
    A customer's orders, newest first, paginated. Returns (orders_for_page, total_count).
    """
    async with connect() as conn:
        cur = await conn.execute("SELECT COUNT(*) FROM orders WHERE user_id = ?;", (uid,))
        total = (await cur.fetchone())[0]
        await cur.close()
        offset = max(page - 1, 0) * page_size
        cur = await conn.execute(
            f"""
            SELECT {ORDER_COLUMNS}
            FROM orders
            WHERE user_id = ?
            ORDER BY created_at DESC, id DESC
            LIMIT ? OFFSET ?;
            """,
            (uid, page_size, offset),
        )
        rows = await cur.fetchall()
        await cur.close()
    return [_row_to_order(r) for r in rows], total


async def list_all_orders(
    status: Optional[OrderStatus] = None, page: int = 1, page_size: int = 5
) -> Tuple[List[models.Order], int]:
    """Every order (optionally one status only), newest first, paginated."""
    where = "1 = 1"
    params: List = []
    if status is not None:
        where = "status = ?"
        params.append(status.value)
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT COUNT(*) FROM orders WHERE {where};", tuple(params)
        )
        total = (await cur.fetchone())[0]
        await cur.close()
        offset = max(page - 1, 0) * page_size
        cur = await conn.execute(
            f"""
            SELECT {ORDER_COLUMNS}
            FROM orders
            WHERE {where}
            ORDER BY created_at DESC, id DESC
            LIMIT ? OFFSET ?;
            """,
            tuple(params + [page_size, offset]),
        )
        rows = await cur.fetchall()
        await cur.close()
    return [_row_to_order(r) for r in rows], total


async def update_order_status(
    order_id: int, new_status: OrderStatus, admin: bool = False
) -> models.Order:
    """
    Move an order to `new_status` if the lifecycle allows it.

    The update only applies while the order still has the status that was
    checked, so a concurrent change makes this raise instead of overwriting.
    Cancelling puts the ordered quantities back into stock.
    Raises OrderNotFound or cart.status.InvalidTransition.
    """
    async with connect() as conn:
        cur = await conn.execute("SELECT status FROM orders WHERE id = ?;", (order_id,))
        row = await cur.fetchone()
        await cur.close()
        if not row:
            raise OrderNotFound(f"Order {order_id} does not exist")
        old_status = OrderStatus(row[0])
        check_transition(old_status, new_status, admin=admin)

        try:
            cur = await conn.execute(
                "UPDATE orders SET status = ? WHERE id = ? AND status = ?;",
                (new_status.value, order_id, old_status.value),
            )
            changed = cur.rowcount > 0
            await cur.close()
            if not changed:
                raise OrderNotFound(f"Order {order_id} changed while updating")
            if new_status == OrderStatus.CANCELLED:
                await conn.execute(
                    """
                    UPDATE products
                    SET stock = stock + (
                        SELECT COALESCE(SUM(oi.quantity), 0)
                        FROM order_items oi
                        WHERE oi.order_id = ? AND oi.product_id = products.id
                    )
                    WHERE id IN (SELECT product_id FROM order_items WHERE order_id = ?);
                    """,
                    (order_id, order_id),
                )
            await conn.commit()
        except Exception:
            await conn.rollback()
            raise

    _logger.info(f"Order {order_id}: {old_status.value} -> {new_status.value}")
    return await get_order(order_id)


# ---------------------------
# Quotes
# ---------------------------


def _row_to_quote(row) -> models.Quote:
    return models.Quote(
        id=int(row["id"]),
        user_id=row["user_id"],
        customer_name=row["customer_name"],
        customer_email=row["customer_email"],
        phone=row["phone"],
        message=row["message"],
        status=models.QuoteStatus(row["status"]),
        created_at=datetime.fromisoformat(str(row["created_at"])),
    )


def _check_contact(name: str, email: str) -> None:
    if not (name or "").strip():
        raise ValueError("Name is required.")
    if "@" not in (email or ""):
        raise ValueError("Email address is invalid.")


async def submit_quote(
    name: str,
    email: str,
    phone: Optional[str] = None,
    message: Optional[str] = None,
    user_id: Optional[int] = None,
) -> int:
    """Record a quote request (guests included) as pending; return its id."""
    _check_contact(name, email)
    async with connect() as conn:
        cur = await conn.execute(
            """
            INSERT INTO quotes(user_id, customer_name, customer_email, phone, message,
                               status, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?);
            """,
            (
                user_id,
                name.strip(),
                email.strip(),
                (phone or "").strip() or None,
                (message or "").strip() or None,
                models.QuoteStatus.PENDING.value,
                _ts(datetime.now()),
            ),
        )
        quote_id = cur.lastrowid
        await cur.close()
        await conn.commit()
    _logger.info(f"Quote {quote_id} submitted")
    return int(quote_id)


async def list_quotes(
    user_id: Optional[int] = None, status: Optional[models.QuoteStatus] = None
) -> List[models.Quote]:
    """Quotes newest first; narrowed to one customer and/or one status when given."""
    conds: List[str] = []
    params: List = []
    if user_id is not None:
        conds.append("user_id = ?")
        params.append(user_id)
    if status is not None:
        conds.append("status = ?")
        params.append(status.value)
    where = " AND ".join(conds) or "1 = 1"
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT * FROM quotes WHERE {where} ORDER BY created_at DESC, id DESC;",
            tuple(params),
        )
        rows = await cur.fetchall()
        await cur.close()
    return [_row_to_quote(r) for r in rows]


async def update_quote_status(quote_id: int, status: models.QuoteStatus) -> models.Quote:
    """
    Approve or reject a quote. A decision can be changed later, but a quote
    never goes back to pending. Raises RecordNotFound or ValueError.
    """
    if status == models.QuoteStatus.PENDING:
        raise ValueError("A quote cannot be moved back to pending.")
    async with connect() as conn:
        cur = await conn.execute(
            "UPDATE quotes SET status = ? WHERE id = ?;", (status.value, quote_id)
        )
        changed = cur.rowcount > 0
        await cur.close()
        await conn.commit()
        if not changed:
            raise RecordNotFound(f"Quote {quote_id} does not exist")
        cur = await conn.execute("SELECT * FROM quotes WHERE id = ?;", (quote_id,))
        row = await cur.fetchone()
        await cur.close()
    _logger.info(f"Quote {quote_id} -> {status.value}")
    return _row_to_quote(row)


# ---------------------------
# Contact messages
# ---------------------------


def _row_to_message(row) -> models.ContactMessage:
    replied_at = row["replied_at"]
    return models.ContactMessage(
        id=int(row["id"]),
        customer_name=row["customer_name"],
        customer_email=row["customer_email"],
        subject=row["subject"],
        message=row["message"],
        status=models.MessageStatus(row["status"]),
        created_at=datetime.fromisoformat(str(row["created_at"])),
        admin_reply=row["admin_reply"],
        replied_at=datetime.fromisoformat(str(replied_at)) if replied_at else None,
    )


async def _get_message(conn, message_id: int) -> models.ContactMessage:
    cur = await conn.execute("SELECT * FROM messages WHERE id = ?;", (message_id,))
    row = await cur.fetchone()
    await cur.close()
    if not row:
        raise RecordNotFound(f"Message {message_id} does not exist")
    return _row_to_message(row)


async def submit_message(name: str, email: str, subject: str, message: str) -> int:
    """Store a contact-form message for the admin inbox; return its id."""
    _check_contact(name, email)
    if not (subject or "").strip():
        raise ValueError("Subject is required.")
    if not (message or "").strip():
        raise ValueError("Message is required.")
    async with connect() as conn:
        cur = await conn.execute(
            """
            INSERT INTO messages(customer_name, customer_email, subject, message,
                                 status, created_at)
            VALUES (?, ?, ?, ?, ?, ?);
            """,
            (
                name.strip(),
                email.strip(),
                subject.strip(),
                message.strip(),
                models.MessageStatus.PENDING.value,
                _ts(datetime.now()),
            ),
        )
        message_id = cur.lastrowid
        await cur.close()
        await conn.commit()
    _logger.info(f"Contact message {message_id} received")
    return int(message_id)


async def list_messages(
    status: Optional[models.MessageStatus] = None,
) -> List[models.ContactMessage]:
    """Inbox, newest first."""
    where, params = ("status = ?", (status.value,)) if status else ("1 = 1", ())
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT * FROM messages WHERE {where} ORDER BY created_at DESC, id DESC;",
            params,
        )
        rows = await cur.fetchall()
        await cur.close()
    return [_row_to_message(r) for r in rows]


async def reply_to_message(message_id: int, reply: str) -> models.ContactMessage:
    """Save (or replace) the admin reply and mark the message replied."""
    if not (reply or "").strip():
        raise ValueError("Please enter a reply.")
    async with connect() as conn:
        current = await _get_message(conn, message_id)
        if current.status == models.MessageStatus.CLOSED:
            raise ValueError("Closed messages cannot be replied to.")
        await conn.execute(
            "UPDATE messages SET admin_reply = ?, status = ?, replied_at = ? WHERE id = ?;",
            (
                reply.strip(),
                models.MessageStatus.REPLIED.value,
                _ts(datetime.now()),
                message_id,
            ),
        )
        await conn.commit()
        updated = await _get_message(conn, message_id)
    _logger.info(f"Message {message_id} replied")
    return updated


async def close_message(message_id: int) -> models.ContactMessage:
    """Close a message that needs no reply. Only pending messages can be closed."""
    async with connect() as conn:
        current = await _get_message(conn, message_id)
        if current.status != models.MessageStatus.PENDING:
            raise ValueError(f"Only pending messages can be closed ({current.status.value}).")
        await conn.execute(
            "UPDATE messages SET status = ? WHERE id = ?;",
            (models.MessageStatus.CLOSED.value, message_id),
        )
        await conn.commit()
        updated = await _get_message(conn, message_id)
    _logger.info(f"Message {message_id} closed")
    return updated


# ---------------------------
# Analytics (admin)
# ---------------------------


async def sales_summary(
    low_stock_threshold: int, profit_margin: Decimal
) -> Dict[str, Decimal | int]:
    """
    Figures for the admin report. Revenue counts completed orders only;
    the average order value is taken over every order that was not cancelled.
    """
    async with connect() as conn:
        cur = await conn.execute(
            """
            SELECT
                COUNT(*) AS total_orders,
                COALESCE(SUM(CASE WHEN status = 'completed' THEN 1 ELSE 0 END), 0),
                COALESCE(SUM(CASE WHEN status = 'pending' THEN 1 ELSE 0 END), 0),
                COALESCE(SUM(CASE WHEN status = 'cancelled' THEN 1 ELSE 0 END), 0),
                COALESCE(SUM(CASE WHEN status = 'completed' THEN total_amount ELSE 0 END), 0),
                COALESCE(SUM(CASE WHEN status != 'cancelled' THEN total_amount ELSE 0 END), 0)
            FROM orders;
            """
        )
        row = await cur.fetchone()
        await cur.close()
        cur = await conn.execute(
            """
            SELECT
                COALESCE(SUM(CASE WHEN stock = 0 THEN 1 ELSE 0 END), 0),
                COALESCE(SUM(CASE WHEN stock > 0 AND stock <= ? THEN 1 ELSE 0 END), 0),
                COUNT(*)
            FROM products
            WHERE is_active = 1;
            """,
            (low_stock_threshold,),
        )
        stock_row = await cur.fetchone()
        await cur.close()
        cur = await conn.execute(
            """
            SELECT
                (SELECT COUNT(*) FROM quotes WHERE status = 'pending'),
                (SELECT COUNT(*) FROM messages WHERE status = 'pending');
            """
        )
        inbox_row = await cur.fetchone()
        await cur.close()

    total_orders = int(row[0])
    cancelled = int(row[3])
    revenue = to_money(row[4])
    booked = to_money(row[5])
    open_orders = total_orders - cancelled
    avg_order_value = to_money(booked / open_orders) if open_orders else to_money(0)
    return {
        "total_orders": total_orders,
        "completed_orders": int(row[1]),
        "pending_orders": int(row[2]),
        "cancelled_orders": cancelled,
        "total_revenue": revenue,
        "average_order_value": avg_order_value,
        "estimated_profit": to_money(revenue * profit_margin),
        "active_products": int(stock_row[2]),
        "out_of_stock_items": int(stock_row[0]),
        "low_stock_items": int(stock_row[1]),
        "pending_quotes": int(inbox_row[0]),
        "pending_messages": int(inbox_row[1]),
    }


async def top_products_by_quantity(
    k: int = 3, include_ties_at_k: bool = True
) -> List[Tuple[int, str, int]]:
    """
    Best sellers by units ordered, cancelled orders excluded:
    [(product_id, name, units), ...]. With include_ties_at_k, every product
    tied with the kth one is kept.
    """
    if k < 1:
        return []
    async with connect() as conn:
        cur = await conn.execute(
            """
            SELECT oi.product_id, COALESCE(p.name, ''), SUM(oi.quantity) AS units
            FROM order_items oi
            JOIN orders o ON o.id = oi.order_id
            LEFT JOIN products p ON p.id = oi.product_id
            WHERE o.status != 'cancelled'
            GROUP BY oi.product_id
            ORDER BY units DESC, oi.product_id;
            """
        )
        rows = await cur.fetchall()
        await cur.close()
    if not rows:
        return []
    if include_ties_at_k:
        threshold = rows[min(k, len(rows)) - 1][2]
        rows = [r for r in rows if r[2] >= threshold]
    else:
        rows = rows[:k]
    return [(int(r[0]), r[1], int(r[2])) for r in rows]
