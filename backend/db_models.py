"""
SQLAlchemy ORM models for the Storefront Fulfillment API.

Tables:
    products             : catalog entries (price, stock); owned by the catalog
    orders               : buyer orders with captured total price
    order_items          : order lines with unit price captured at purchase
    payments             : one payment record per order (proof + verification)
    order_status_history : append-only audit trail of order status transitions
"""
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Numeric, Boolean, DateTime, Text, ForeignKey,
    CheckConstraint, UniqueConstraint, Index,
)
from sqlalchemy.orm import relationship

from database import Base
from domain.enums import OrderStatus, PaymentStatus

# Fixed-point currency amounts
Money = Numeric(12, 2)


# ════════════════════════════════════════════════════════════════════
# Catalog
# ════════════════════════════════════════════════════════════════════

class Product(Base):
    """
    Catalog product. The fulfillment core reads price/stock and mutates stock
    only through services.inventory_service.
    """
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    price = Column(Money, nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_product_stock_non_negative"),
    )


# ════════════════════════════════════════════════════════════════════
# Orders
# ════════════════════════════════════════════════════════════════════

class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    total_price = Column(Money, nullable=False)
    status = Column(String(20), nullable=False, default=OrderStatus.PENDING.value, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    items = relationship(
        "OrderItem",
        back_populates="order",
        order_by="OrderItem.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    payment = relationship("Payment", back_populates="order", uselist=False, lazy="selectin")

    __table_args__ = (
        # For "my orders": filter by user_id, order by created_at DESC
        Index("ix_orders_user_created", "user_id", "created_at"),
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Money, nullable=False)  # captured at purchase

    order = relationship("Order", back_populates="items")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_item_quantity_positive"),
    )


# ════════════════════════════════════════════════════════════════════
# Payments
# ════════════════════════════════════════════════════════════════════

class Payment(Base):
    """
    One payment per order, created PENDING together with the order.

    Lifecycle: PENDING -> VERIFIED | REJECTED, VERIFIED -> REFUNDED.
    """
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, nullable=False, index=True)
    amount = Column(Money, nullable=False)
    status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value, index=True)
    proof_url = Column(String(500), nullable=True)
    reason = Column(Text, nullable=True)
    paid_at = Column(DateTime, nullable=True)      # proof submitted
    verified_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    order = relationship("Order", back_populates="payment")

    __table_args__ = (
        UniqueConstraint("order_id", name="uq_payment_order_id"),
    )


# ════════════════════════════════════════════════════════════════════
# Status History
# ════════════════════════════════════════════════════════════════════

class OrderStatusHistory(Base):
    """Append-only. from_status is null only for the creation entry."""
    __tablename__ = "order_status_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    from_status = Column(String(20), nullable=True)
    to_status = Column(String(20), nullable=False)
    changed_by = Column(String(50), nullable=False)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_history_order_created", "order_id", "created_at"),
    )
