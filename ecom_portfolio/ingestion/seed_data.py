"""
Literal Seed Datasets

Fixed sample rows for the store. Primary keys are assigned by the database
in insertion order, so the integer references below (user 1, order 4,
product 10, ...) point at the n-th row of the corresponding batch.
"""

from datetime import datetime
from decimal import Decimal

from ecom_portfolio.database.models import OrderStatus

COMPLETED = OrderStatus.COMPLETED
PENDING = OrderStatus.PENDING
PROCESSING = OrderStatus.PROCESSING
SHIPPED = OrderStatus.SHIPPED


def _order(user_id: int, order_date: str, status: OrderStatus, amount: str) -> dict:
    return {
        "user_id": user_id,
        "order_date": datetime.fromisoformat(order_date),
        "status": status,
        "amount": Decimal(amount),
    }


SEED_USERS = [
    {"username": "john_doe", "email": "john.doe@example.com", "created_at": datetime(2026, 1, 10, 10, 0)},
    {"username": "jane_smith", "email": "jane.smith@example.com", "created_at": datetime(2026, 1, 11, 14, 30)},
    {"username": "mike_wilson", "email": "mike.wilson@example.com", "created_at": datetime(2026, 1, 12, 9, 15)},
    {"username": "sarah_jones", "email": "sarah.jones@example.com", "created_at": datetime(2026, 1, 13, 16, 45)},
    {"username": "david_brown", "email": "david.brown@example.com", "created_at": datetime(2026, 1, 14, 11, 20)},
]

SEED_PRODUCTS = [
    {"name": "Wireless Bluetooth Headphones", "price": Decimal("89.99"),
     "description": "High-quality wireless headphones with noise cancellation and 20-hour battery life"},
    {"name": "Smartphone Case Premium", "price": Decimal("29.99"),
     "description": "Durable and stylish protective case for latest smartphones"},
    {"name": "USB-C Fast Charger", "price": Decimal("24.99"),
     "description": "Quick charge adapter compatible with most modern devices"},
    {"name": "Laptop Backpack", "price": Decimal("59.99"),
     "description": "Water-resistant backpack with padded compartments for laptops up to 17 inches"},
    {"name": "Wireless Mouse", "price": Decimal("34.99"),
     "description": "Ergonomic wireless mouse with adjustable DPI settings"},
    {"name": "Mechanical Keyboard", "price": Decimal("129.99"),
     "description": "RGB backlit mechanical keyboard with Cherry MX switches"},
    {"name": "Portable Power Bank", "price": Decimal("49.99"),
     "description": "20000mAh power bank with dual USB ports and fast charging support"},
    {"name": "Webcam HD 1080p", "price": Decimal("79.99"),
     "description": "Full HD webcam with built-in microphone and auto-focus"},
    {"name": "Desk Lamp LED", "price": Decimal("39.99"),
     "description": "Adjustable LED desk lamp with color temperature control"},
    {"name": "Cable Management Kit", "price": Decimal("19.99"),
     "description": "Organize your cables with this complete cable management solution"},
]

SEED_ORDERS = [
    _order(1, "2026-01-14 10:30:00", COMPLETED, "154.98"),
    _order(2, "2026-01-14 11:45:00", PENDING, "89.99"),
    _order(3, "2026-01-14 12:00:00", SHIPPED, "24.99"),
    _order(1, "2026-01-14 13:15:00", PROCESSING, "219.97"),
    _order(4, "2026-01-14 14:30:00", COMPLETED, "49.99"),
    _order(5, "2026-01-14 15:00:00", PENDING, "129.99"),
    _order(2, "2026-01-14 16:20:00", COMPLETED, "94.98"),
    _order(3, "2026-01-14 17:00:00", PROCESSING, "154.98"),
]

# (order_id, product_id, quantity, unit_price)
SEED_ORDER_ITEMS = [
    {"order_id": order_id, "product_id": product_id, "quantity": quantity, "unit_price": Decimal(unit_price)}
    for order_id, product_id, quantity, unit_price in [
        (1, 1, 1, "89.99"),
        (1, 5, 1, "34.99"),
        (1, 10, 3, "19.99"),
        (2, 6, 1, "129.99"),
        (3, 3, 1, "24.99"),
        (4, 2, 2, "29.99"),
        (4, 4, 1, "59.99"),
        (4, 9, 1, "39.99"),
        (4, 10, 2, "19.99"),
        (5, 7, 1, "49.99"),
        (6, 6, 1, "129.99"),
        (7, 8, 1, "79.99"),
        (7, 10, 1, "19.99"),
        (8, 1, 1, "89.99"),
        (8, 5, 1, "34.99"),
        (8, 3, 1, "24.99"),
    ]
]

# user_id -> city, applied after the city column exists
USER_CITIES = {
    1: "New York",
    2: "Los Angeles",
    3: "New York",
    4: "Chicago",
    5: "Los Angeles",
}

REPORTING_ORDERS = [
    # 2026-01
    _order(1, "2026-01-01 09:30:00", COMPLETED, "159.99"),
    _order(2, "2026-01-02 14:20:00", COMPLETED, "89.99"),
    _order(3, "2026-01-03 10:15:00", COMPLETED, "124.99"),
    _order(4, "2026-01-04 16:45:00", COMPLETED, "249.98"),
    _order(5, "2026-01-05 11:30:00", COMPLETED, "79.99"),
    _order(1, "2026-01-06 13:20:00", COMPLETED, "199.99"),
    _order(2, "2026-01-07 15:10:00", PENDING, "54.99"),
    _order(3, "2026-01-08 09:45:00", COMPLETED, "179.99"),
    _order(4, "2026-01-09 14:00:00", SHIPPED, "129.99"),
    _order(5, "2026-01-10 10:30:00", COMPLETED, "99.99"),
    # 2026-02
    _order(1, "2026-02-01 11:20:00", COMPLETED, "239.98"),
    _order(2, "2026-02-02 16:40:00", COMPLETED, "149.99"),
    _order(3, "2026-02-03 08:55:00", COMPLETED, "189.99"),
    _order(4, "2026-02-04 12:30:00", COMPLETED, "269.98"),
    _order(5, "2026-02-05 15:15:00", COMPLETED, "119.99"),
    # Additional orders for variety
    _order(1, "2026-01-15 10:00:00", COMPLETED, "154.98"),
    _order(2, "2026-01-18 14:30:00", COMPLETED, "94.98"),
    _order(3, "2026-01-20 09:00:00", COMPLETED, "134.99"),
    _order(4, "2026-01-22 13:15:00", COMPLETED, "289.98"),
    _order(5, "2026-01-25 16:45:00", COMPLETED, "109.99"),
    _order(1, "2026-01-28 11:20:00", COMPLETED, "174.99"),
    _order(2, "2026-01-30 14:00:00", COMPLETED, "124.99"),
    _order(3, "2026-02-10 09:30:00", COMPLETED, "199.99"),
    _order(4, "2026-02-12 15:20:00", COMPLETED, "309.98"),
    _order(5, "2026-02-15 12:10:00", COMPLETED, "139.99"),
]
