"""
Order service: order creation, admin status changes, paid-order cancellation
and order reads.

Every write function here expects to run inside database.with_transaction():
it raises a DomainError on any precondition failure and leaves committing
or rolling back to the unit of work.
"""
import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import Order, OrderItem, OrderStatusHistory, Payment
from domain import transitions
from domain.constants import DEFAULT_REFUND_REASON, NOTE_ORDER_CREATED
from domain.enums import OrderStatus, PaymentStatus, Role
from domain.errors import (
    AlreadyCancelledError,
    EmptyOrderError,
    ForbiddenError,
    InvalidTransitionError,
    OrderFinalizedError,
    OrderNotCancellableError,
    OrderNotFoundError,
    PaymentNotFoundError,
    PaymentNotVerifiedError,
    ProductNotFoundError,
    ValidationError,
)
from domain.principal import Principal
from services import catalog_service, history_service, inventory_service
from services.status_writer import set_payment_status, transition_order

logger = logging.getLogger(__name__)


def _cancel_conflict_on_payment(current: str | None):
    if current == PaymentStatus.REFUNDED.value:
        return AlreadyCancelledError()
    return PaymentNotVerifiedError()


def _cancel_conflict_on_order(current: str | None):
    if current == OrderStatus.CANCELLED.value:
        return AlreadyCancelledError()
    return OrderNotCancellableError(current or "unknown")


async def get_order(db: AsyncSession, order_id: int) -> Order:
    """Load an order with its items and payment, or raise OrderNotFoundError."""
    res = await db.execute(select(Order).where(Order.id == order_id))
    order = res.scalar_one_or_none()
    if not order:
        raise OrderNotFoundError(order_id)
    return order


def _merge_lines(items: list[dict]) -> dict[int, int]:
    """Collapse repeated product ids into one line, keeping first-seen order."""
    lines: dict[int, int] = {}
    for i in items:
        pid = int(i["product_id"])
        qty = int(i.get("quantity", 1))
        if qty <= 0:
            raise ValidationError("Quantity must be positive", field="quantity")
        lines[pid] = lines.get(pid, 0) + qty
    return lines


async def create_order(
    db: AsyncSession,
    *,
    user_id: int,
    items: list[dict],
    changed_by=Role.CUSTOMER,
) -> Order:
    """
    Create a PENDING order with captured prices, its creation history entry
    and its PENDING payment.

    items: [{product_id:int, quantity:int}]

    Stock is not touched here; it is taken when the payment is verified.
    """
    if not items:
        raise EmptyOrderError()

    lines = _merge_lines(items)
    products = await catalog_service.get_products(db, list(lines))

    total = Decimal("0.00")
    order_items: list[OrderItem] = []
    for pid, qty in lines.items():
        p = products.get(pid)
        if not p:
            raise ProductNotFoundError(pid)
        unit_price = Decimal(p.price)
        total += unit_price * qty
        order_items.append(OrderItem(product_id=pid, quantity=qty, unit_price=unit_price))

    order = Order(
        user_id=user_id,
        total_price=total,
        status=OrderStatus.PENDING.value,
        items=order_items,
    )
    order.payment = Payment(
        user_id=user_id,
        amount=total,
        status=PaymentStatus.PENDING.value,
    )
    db.add(order)
    await db.flush()

    await history_service.append(
        db,
        order_id=order.id,
        from_status=None,
        to_status=OrderStatus.PENDING,
        changed_by=changed_by,
        note=NOTE_ORDER_CREATED,
    )
    logger.info(f"Order {order.id} created for user {user_id}: {len(order_items)} line(s), total {total}")
    return order


async def update_order_status(
    db: AsyncSession,
    *,
    order_id: int,
    new_status: OrderStatus,
    changed_by,
    note: str | None = None,
) -> Order:
    """
    Privileged status change along the order state machine.

    PENDING -> PAID additionally takes stock for every line; any shortfall
    aborts the whole change.
    """
    new_status = OrderStatus(new_status)
    order = await get_order(db, order_id)
    current = OrderStatus(order.status)

    if transitions.is_terminal(current):
        raise OrderFinalizedError(current.value)

    if not transitions.can_transition(current, new_status):
        raise InvalidTransitionError(current.value, new_status.value)

    if transitions.requires_verified_payment(new_status):
        if not order.payment or order.payment.status != PaymentStatus.VERIFIED.value:
            raise PaymentNotVerifiedError()

    if current == OrderStatus.PENDING and new_status == OrderStatus.PAID:
        await inventory_service.decrement_items(db, order.items)

    await transition_order(db, order, new_status, changed_by=changed_by, note=note)
    return order


async def cancel_paid_order(
    db: AsyncSession,
    *,
    order_id: int,
    principal: Principal,
    reason: str | None = None,
) -> Order:
    """
    Cancel a PAID or PROCESSING order whose payment was verified: restock
    every line, refund the payment and move the order to CANCELLED.
    """
    order = await get_order(db, order_id)
    if not principal.can_access(order.user_id):
        raise ForbiddenError("You can only cancel your own orders.")

    current = OrderStatus(order.status)
    if current == OrderStatus.CANCELLED:
        raise AlreadyCancelledError()
    if current not in transitions.REFUNDABLE_STATUSES:
        raise OrderNotCancellableError(current.value)

    payment = order.payment
    if not payment:
        raise PaymentNotFoundError(f"order {order.id}", status_code=400)
    if payment.status != PaymentStatus.VERIFIED.value:
        raise PaymentNotVerifiedError()

    await inventory_service.restock_items(db, order.items)
    await set_payment_status(
        db,
        payment,
        PaymentStatus.REFUNDED,
        reason=reason or DEFAULT_REFUND_REASON,
        on_conflict=_cancel_conflict_on_payment,
    )
    await transition_order(
        db,
        order,
        OrderStatus.CANCELLED,
        changed_by=principal.role,
        note=reason,
        on_conflict=_cancel_conflict_on_order,
    )
    return order


# ── Reads ───────────────────────────────────────────────────────────

async def get_order_detail(db: AsyncSession, *, order_id: int, principal: Principal) -> Order:
    order = await get_order(db, order_id)
    if not principal.can_access(order.user_id):
        raise ForbiddenError("Access denied.")
    return order


async def get_timeline(
    db: AsyncSession,
    *,
    order_id: int,
    principal: Principal,
) -> list[OrderStatusHistory]:
    """Status history of an order, oldest first."""
    await get_order_detail(db, order_id=order_id, principal=principal)
    return await history_service.list_for_order(db, order_id)


async def list_user_orders(
    db: AsyncSession,
    *,
    user_id: int,
    limit: int = 50,
    offset: int = 0,
) -> list[Order]:
    res = await db.execute(
        select(Order)
        .where(Order.user_id == user_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(res.scalars().all())


async def list_orders(
    db: AsyncSession,
    *,
    status: OrderStatus | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Order]:
    """All orders (admin), newest first, optionally filtered by status."""
    stmt = select(Order)
    if status is not None:
        stmt = stmt.where(Order.status == OrderStatus(status).value)
    res = await db.execute(
        stmt.order_by(Order.created_at.desc(), Order.id.desc()).limit(limit).offset(offset)
    )
    return list(res.scalars().all())
