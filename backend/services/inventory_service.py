"""
Inventory ledger: conditional stock decrement/increment on products.

Both primitives run inside the caller's transaction. try_decrement is a
single conditional UPDATE evaluated by the database, so two concurrent
buyers can never both pass a stock check and drive stock below zero: the
loser simply matches zero rows.
"""
import logging
from typing import Iterable

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import OrderItem, Product
from domain.errors import InsufficientStockError

logger = logging.getLogger(__name__)


def _check_quantity(quantity: int) -> None:
    if quantity <= 0:
        raise ValueError(f"quantity must be positive, got {quantity}")


async def try_decrement(db: AsyncSession, product_id: int, quantity: int) -> bool:
    """Decrement stock by ``quantity`` only if at least that much is left."""
    _check_quantity(quantity)
    res = await db.execute(
        update(Product)
        .where(Product.id == product_id, Product.stock >= quantity)
        .values(stock=Product.stock - quantity)
        .execution_options(synchronize_session=False)
    )
    return res.rowcount == 1


async def increment(db: AsyncSession, product_id: int, quantity: int) -> None:
    """Return ``quantity`` units to stock (restock on cancellation/refund)."""
    _check_quantity(quantity)
    await db.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(stock=Product.stock + quantity)
        .execution_options(synchronize_session=False)
    )


async def decrement_items(db: AsyncSession, items: Iterable[OrderItem]) -> None:
    """
    Take stock for every order line.

    Raises InsufficientStockError on the first line that cannot be covered.
    Earlier decrements are only undone by rolling back the enclosing
    transaction, which with_transaction() does on any exception.
    """
    for item in items:
        if not await try_decrement(db, item.product_id, item.quantity):
            logger.warning(
                f"Insufficient stock for product {item.product_id} "
                f"(order {item.order_id}, requested {item.quantity})"
            )
            raise InsufficientStockError(item.product_id, item.quantity)


async def restock_items(db: AsyncSession, items: Iterable[OrderItem]) -> None:
    for item in items:
        await increment(db, item.product_id, item.quantity)
