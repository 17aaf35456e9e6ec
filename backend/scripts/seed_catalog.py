#!/usr/bin/env python3
"""
Seed the catalog for local development.

Creates the tables, inserts a handful of demo products and prints an ADMIN
and a CUSTOMER access token for trying the API by hand.

Usage:
    cd backend
    python scripts/seed_catalog.py

Requirements:
    - .env with JWT_SECRET (and DATABASE_URL if not using the default SQLite file)
"""
import asyncio
import os
import sys
from decimal import Decimal

# Setup paths
SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
BACKEND_DIR = os.path.join(SCRIPT_DIR, "..")
sys.path.insert(0, BACKEND_DIR)
os.chdir(BACKEND_DIR)

from dotenv import load_dotenv
load_dotenv(".env", override=True)

from sqlalchemy import select

from database import async_session, init_db
from db_models import Product
from domain.enums import Role
from middleware.auth import issue_access_token
from services import catalog_service

DEMO_PRODUCTS = [
    ("Canvas Tote Bag", Decimal("12.50"), 40),
    ("Enamel Mug", Decimal("9.00"), 25),
    ("Hoodie (M)", Decimal("42.00"), 10),
    ("Sticker Pack", Decimal("3.75"), 200),
    ("Limited Print", Decimal("80.00"), 3),
]

DEMO_ADMIN_ID = 1
DEMO_CUSTOMER_ID = 101


async def main():
    os.makedirs("data", exist_ok=True)
    await init_db()

    async with async_session() as db:
        existing = set((await db.execute(select(Product.name))).scalars().all())
        created = 0
        for name, price, stock in DEMO_PRODUCTS:
            if name in existing:
                continue
            await catalog_service.create_product(db, name=name, price=price, stock=stock)
            created += 1
        await db.commit()

        products = (await db.execute(select(Product).order_by(Product.id))).scalars().all()

    print(f"Seeded {created} new product(s); catalog now has {len(products)}:")
    for p in products:
        print(f"  #{p.id:<3} {p.name:<20} {p.price:>8}  stock={p.stock}")

    print("\nAccess tokens (send as 'Authorization: Bearer <token>'):")
    print(f"  ADMIN    (user {DEMO_ADMIN_ID}):   {issue_access_token(user_id=DEMO_ADMIN_ID, role=Role.ADMIN)}")
    print(f"  CUSTOMER (user {DEMO_CUSTOMER_ID}): {issue_access_token(user_id=DEMO_CUSTOMER_ID, role=Role.CUSTOMER)}")


if __name__ == "__main__":
    asyncio.run(main())
