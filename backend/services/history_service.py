"""
Order status history: append-only audit trail of status transitions.
"""
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import OrderStatusHistory


def _value(status) -> str | None:
    return getattr(status, "value", status)


async def append(
    db: AsyncSession,
    *,
    order_id: int,
    from_status,
    to_status,
    changed_by,
    note: str | None = None,
) -> OrderStatusHistory:
    """Record one transition. Never updates an existing row."""
    entry = OrderStatusHistory(
        order_id=order_id,
        from_status=_value(from_status),
        to_status=_value(to_status),
        changed_by=_value(changed_by),
        note=note,
        created_at=datetime.utcnow(),
    )
    db.add(entry)
    await db.flush()
    return entry


async def list_for_order(db: AsyncSession, order_id: int) -> list[OrderStatusHistory]:
    """History entries for an order, oldest first."""
    res = await db.execute(
        select(OrderStatusHistory)
        .where(OrderStatusHistory.order_id == order_id)
        .order_by(OrderStatusHistory.created_at.asc(), OrderStatusHistory.id.asc())
    )
    return list(res.scalars().all())
