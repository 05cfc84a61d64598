"""
Database Module
"""
from .connection import init_database, close_database, get_db, get_engine
from .models import Base, Customer, Order, Product

__all__ = [
    "init_database",
    "close_database",
    "get_db",
    "get_engine",
    "Base",
    "Customer",
    "Order",
    "Product",
]
