"""
Catalog lookups consumed by the fulfillment core.

The catalog itself (product CRUD, categories) lives outside this service;
the core only needs price and stock by product id.
"""
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import Product


async def get_product(db: AsyncSession, product_id: int) -> Product | None:
    res = await db.execute(select(Product).where(Product.id == product_id))
    return res.scalar_one_or_none()


async def get_products(db: AsyncSession, product_ids: list[int]) -> dict[int, Product]:
    """Active products keyed by id; unknown or inactive ids are simply absent."""
    if not product_ids:
        return {}
    res = await db.execute(
        select(Product).where(Product.id.in_(product_ids), Product.active == True)  # noqa: E712
    )
    return {p.id: p for p in res.scalars().all()}


async def create_product(
    db: AsyncSession,
    *,
    name: str,
    price: Decimal,
    stock: int,
    active: bool = True,
) -> Product:
    """Insert a catalog product (seeding and tests)."""
    product = Product(name=name, price=Decimal(price), stock=stock, active=active)
    db.add(product)
    await db.flush()
    return product
