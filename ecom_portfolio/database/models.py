"""
Database Models - Normalized (3NF) Store Schema

This module defines the operational schema of the store:

- User: registered customers
- Product: catalog entries with a searchable description
- Order: one purchase by one user, with status and amount
- OrderItem: line items linking an order to the products it contains

Referential actions:
- orders.user_id -> users: ON UPDATE CASCADE, ON DELETE RESTRICT
- order_items.order_id -> orders: ON UPDATE CASCADE, ON DELETE CASCADE
- order_items.product_id -> products: ON UPDATE CASCADE, ON DELETE RESTRICT

orders.amount is recorded independently of the order's line items.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, List

from sqlalchemy import (
    CheckConstraint,
    DDL,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    column,
    event,
    func,
    table,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


# =============================================================================
# ENUMERATIONS
# =============================================================================

class OrderStatus(str, Enum):
    """Order status enumeration"""
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    COMPLETED = "completed"


# =============================================================================
# TABLES
# =============================================================================

class User(Base):
    """
    User Table (parent of orders)

    The city column is not declared here; it is added to the live table by
    the analytics schema evolution step. See ``users_with_city``.
    """
    __tablename__ = "users"

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, server_default=func.now()
    )

    orders: Mapped[List["Order"]] = relationship(back_populates="user")

    __table_args__ = (
        Index("idx_reg_date", "created_at"),
    )


class Product(Base):
    """
    Product Catalog Table

    On PostgreSQL the description gets a GIN full-text index (idx_desc).
    """
    __tablename__ = "products"

    product_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)

    order_items: Mapped[List["OrderItem"]] = relationship(back_populates="product")

    __table_args__ = (
        CheckConstraint("price > 0", name="ck_products_price_positive"),
    )


class Order(Base):
    """
    Orders Table (child of users)
    """
    __tablename__ = "orders"

    order_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey(
            "users.user_id",
            name="fk_orders_users",
            onupdate="CASCADE",
            ondelete="RESTRICT",
        ),
        nullable=False,
    )
    order_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime, server_default=func.now()
    )
    status: Mapped[OrderStatus] = mapped_column(
        SQLEnum(
            OrderStatus,
            name="order_status",
            native_enum=False,
            create_constraint=True,
            length=20,
            values_callable=lambda members: [m.value for m in members],
        ),
        default=OrderStatus.PENDING,
        server_default=OrderStatus.PENDING.value,
    )
    amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2))

    user: Mapped["User"] = relationship(back_populates="orders")
    items: Mapped[List["OrderItem"]] = relationship(back_populates="order")

    __table_args__ = (
        # User order history lookups
        Index("idx_user_order", "user_id", "order_date"),
    )


class OrderItem(Base):
    """
    Order Items Table

    Line-item detail with grain at one product per order line.
    """
    __tablename__ = "order_items"

    order_item_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey(
            "orders.order_id",
            name="fk_order_items_orders",
            onupdate="CASCADE",
            ondelete="CASCADE",
        ),
        nullable=False,
    )
    product_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey(
            "products.product_id",
            name="fk_order_items_products",
            onupdate="CASCADE",
            ondelete="RESTRICT",
        ),
        nullable=False,
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    order: Mapped["Order"] = relationship(back_populates="items")
    product: Mapped["Product"] = relationship(back_populates="order_items")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
        CheckConstraint("unit_price > 0", name="ck_order_items_unit_price_positive"),
    )


event.listen(
    Product.__table__,
    "after_create",
    DDL(
        "CREATE INDEX idx_desc ON products "
        "USING GIN (to_tsvector('english', coalesce(description, '')))"
    ).execute_if(dialect="postgresql"),
)


# =============================================================================
# POST-MIGRATION SHAPES
# =============================================================================

# users as it looks after the analytics schema evolution adds the city column
users_with_city = table(
    "users",
    column("user_id", Integer),
    column("username", String(50)),
    column("city", String(50)),
)

SALES_KPI_VIEW = "v_sales_kpi_summary"
