"""
Database Models

Relational schema for the clean Superstore tables:

- customers: one row per customer
- products: canonical products, one row per product id
- orders: transaction lines keyed by (order_id, line_id), with foreign keys
  to customers and products

Derived analytical tables are written next to these and replaced on every
run; they carry no constraints and are not modelled here.
"""

from datetime import date
from typing import Optional

from sqlalchemy import (
    Date,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


class Customer(Base):
    """Customer reference table"""
    __tablename__ = "customers"

    customer_id: Mapped[str] = mapped_column(String(20), primary_key=True)
    customer_name: Mapped[Optional[str]] = mapped_column(String(100))
    segment: Mapped[Optional[str]] = mapped_column(String(50))
    country: Mapped[Optional[str]] = mapped_column(String(50))
    city: Mapped[Optional[str]] = mapped_column(String(100))
    state: Mapped[Optional[str]] = mapped_column(String(100))
    postal_code: Mapped[Optional[str]] = mapped_column(String(20))
    region: Mapped[Optional[str]] = mapped_column(String(50))

    __table_args__ = (
        Index("ix_customers_region_segment", "region", "segment"),
    )


class Product(Base):
    """Canonical product table"""
    __tablename__ = "products"

    product_id: Mapped[str] = mapped_column(String(50), primary_key=True)
    product_name: Mapped[Optional[str]] = mapped_column(String(200))
    category: Mapped[Optional[str]] = mapped_column(String(50))
    sub_category: Mapped[Optional[str]] = mapped_column(String(50))


class Order(Base):
    """
    Transaction line table

    Many lines share one order_id and one customer_id.
    """
    __tablename__ = "orders"

    order_id: Mapped[str] = mapped_column(String(20), primary_key=True)
    line_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    order_date: Mapped[date] = mapped_column(Date, nullable=False)
    ship_date: Mapped[Optional[date]] = mapped_column(Date)
    ship_mode: Mapped[Optional[str]] = mapped_column(String(50))
    customer_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("customers.customer_id"), nullable=False
    )
    product_id: Mapped[str] = mapped_column(
        String(50), ForeignKey("products.product_id"), nullable=False
    )
    sales: Mapped[Optional[float]] = mapped_column(Float)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    discount: Mapped[Optional[float]] = mapped_column(Float)
    profit: Mapped[Optional[float]] = mapped_column(Float)

    __table_args__ = (
        Index("ix_orders_customer_date", "customer_id", "order_date"),
        Index("ix_orders_product", "product_id"),
    )
