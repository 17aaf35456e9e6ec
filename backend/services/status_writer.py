"""
Compare-and-set status writes for orders and payments.

A status change is an UPDATE conditioned on the status the caller read in
the same transaction. If another transaction got there first the UPDATE
matches no row and the current unit of work is aborted, so two transitions
can never both commit from the same prior status.

Callers pass ``on_conflict`` to turn a lost race into the error their
operation normally reports; it receives the status the winner left behind.
Without it a lost race is a ConcurrentModificationError (409).
"""
import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from db_models import Order, OrderStatusHistory, Payment
from domain.enums import OrderStatus, PaymentStatus
from domain.errors import ConcurrentModificationError, DomainError
from services import history_service

logger = logging.getLogger(__name__)

ConflictHandler = Callable[[Optional[str]], DomainError]


async def _compare_and_set(
    db: AsyncSession,
    obj,
    model,
    expected: str,
    values: dict,
    on_conflict: ConflictHandler | None = None,
) -> None:
    values = {**values, "updated_at": datetime.utcnow()}
    res = await db.execute(
        update(model)
        .where(model.id == obj.id, model.status == expected)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        current = await db.scalar(select(model.status).where(model.id == obj.id))
        logger.info(
            f"Lost race on {model.__tablename__} {obj.id}: expected {expected}, found {current}"
        )
        if on_conflict is not None:
            raise on_conflict(current)
        raise ConcurrentModificationError(
            details={"resource": model.__tablename__, "id": obj.id, "expected_status": expected}
        )
    for key, value in values.items():
        set_committed_value(obj, key, value)


async def transition_order(
    db: AsyncSession,
    order: Order,
    to_status: OrderStatus,
    *,
    changed_by,
    note: str | None = None,
    on_conflict: ConflictHandler | None = None,
) -> OrderStatusHistory:
    """Move ``order`` to ``to_status`` and append the matching history entry."""
    from_status = order.status
    await _compare_and_set(
        db, order, Order, from_status, {"status": OrderStatus(to_status).value}, on_conflict
    )
    entry = await history_service.append(
        db,
        order_id=order.id,
        from_status=from_status,
        to_status=to_status,
        changed_by=changed_by,
        note=note,
    )
    logger.info(
        f"Order {order.id}: {from_status} -> {OrderStatus(to_status).value} "
        f"by {entry.changed_by}"
    )
    return entry


async def set_payment_status(
    db: AsyncSession,
    payment: Payment,
    to_status: PaymentStatus,
    *,
    on_conflict: ConflictHandler | None = None,
    **fields,
) -> None:
    """Move ``payment`` from its loaded status to ``to_status``, writing ``fields`` alongside."""
    from_status = payment.status
    await _compare_and_set(
        db,
        payment,
        Payment,
        from_status,
        {"status": PaymentStatus(to_status).value, **fields},
        on_conflict,
    )
    logger.info(f"Payment {payment.id}: {from_status} -> {PaymentStatus(to_status).value}")


async def update_payment_fields(
    db: AsyncSession,
    payment: Payment,
    *,
    on_conflict: ConflictHandler | None = None,
    **fields,
) -> None:
    """Write ``fields`` only while the payment still has the status it was loaded with."""
    await _compare_and_set(db, payment, Payment, payment.status, fields, on_conflict)
