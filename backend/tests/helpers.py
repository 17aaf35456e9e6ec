"""
Shared test helpers: principals, tokens, order placement and out-of-band writes.
"""
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from database import with_transaction
from domain.enums import Role
from domain.principal import Principal
from middleware.auth import issue_access_token
from services import order_service

CUSTOMER_ID = 101
OTHER_CUSTOMER_ID = 202
ADMIN_ID = 1

CUSTOMER = Principal(user_id=CUSTOMER_ID, role=Role.CUSTOMER)
OTHER_CUSTOMER = Principal(user_id=OTHER_CUSTOMER_ID, role=Role.CUSTOMER)
ADMIN = Principal(user_id=ADMIN_ID, role=Role.ADMIN)


def auth_headers(user_id: int, role: Role = Role.CUSTOMER) -> dict:
    """Authorization header with a valid JWT for the given principal."""
    token = issue_access_token(user_id=user_id, role=role)
    return {"Authorization": f"Bearer {token}"}


async def place_order(db: AsyncSession, items: list[dict], user_id: int = CUSTOMER_ID):
    """Create an order through the unit of work, as the checkout route does."""
    return await with_transaction(
        db,
        order_service.create_order,
        user_id=user_id,
        items=items,
        changed_by=Role.CUSTOMER,
    )


async def write_behind_session(db: AsyncSession, model, row_id: int, **values):
    """
    Commit a row change without touching the session's loaded objects.

    Simulates another request winning a race: the next read through the
    same session still sees the old attribute values.
    """
    await db.execute(
        update(model)
        .where(model.id == row_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
