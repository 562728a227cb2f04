"""
Database Module
"""
from .connection import init_database, close_database, get_db, build_engine
from .models import Base, User, Product, Order, OrderItem, OrderStatus

__all__ = [
    "init_database",
    "close_database",
    "get_db",
    "build_engine",
    "Base",
    "User",
    "Product",
    "Order",
    "OrderItem",
    "OrderStatus",
]
