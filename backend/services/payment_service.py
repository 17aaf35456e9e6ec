"""
Payment service: proof submission, admin verification and rejection.

Verification is the point at which the store commits to fulfilling an order:
it verifies the payment, takes stock for every line and moves the order to
PAID in one unit of work. Rejection cancels the order without touching stock.
"""
from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import Payment
from domain.constants import NOTE_PAYMENT_REJECTED, NOTE_PAYMENT_VERIFIED
from domain.enums import OrderStatus, PaymentStatus
from domain.errors import (
    ForbiddenError,
    InvalidOrderStatusError,
    OrderAlreadyCompletedError,
    PaymentAlreadyProcessedError,
    PaymentNotFoundError,
)
from services import inventory_service, order_service
from services.status_writer import set_payment_status, transition_order, update_payment_fields

logger = logging.getLogger(__name__)


async def get_payment(db: AsyncSession, payment_id: int) -> Payment:
    res = await db.execute(select(Payment).where(Payment.id == payment_id))
    payment = res.scalar_one_or_none()
    if not payment:
        raise PaymentNotFoundError(payment_id)
    return payment


async def list_payments(
    db: AsyncSession,
    *,
    status: PaymentStatus | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Payment]:
    stmt = select(Payment)
    if status is not None:
        stmt = stmt.where(Payment.status == PaymentStatus(status).value)
    res = await db.execute(
        stmt.order_by(Payment.created_at.desc(), Payment.id.desc()).limit(limit).offset(offset)
    )
    return list(res.scalars().all())


def _require_pending(payment: Payment) -> None:
    if payment.status != PaymentStatus.PENDING.value:
        raise PaymentAlreadyProcessedError(payment.status)


def _already_processed(current: str | None) -> PaymentAlreadyProcessedError:
    return PaymentAlreadyProcessedError(current or "unknown")


def _order_moved(current: str | None) -> InvalidOrderStatusError:
    return InvalidOrderStatusError(current or "unknown")


async def check_proof_allowed(db: AsyncSession, *, payment_id: int, buyer_id: int) -> Payment:
    """Raise unless ``buyer_id`` may attach proof to this payment right now."""
    payment = await get_payment(db, payment_id)
    order = await order_service.get_order(db, payment.order_id)

    if order.user_id != buyer_id:
        raise ForbiddenError("You can only submit proof for your own orders.")
    _require_pending(payment)
    if order.status != OrderStatus.PENDING.value:
        raise InvalidOrderStatusError(order.status)
    return payment


async def submit_proof(
    db: AsyncSession,
    *,
    payment_id: int,
    buyer_id: int,
    proof_url: str,
) -> Payment:
    """
    Attach the buyer's proof of payment. The payment stays PENDING until an
    admin verifies it; a new upload replaces an earlier one.
    """
    payment = await check_proof_allowed(db, payment_id=payment_id, buyer_id=buyer_id)
    order_id = payment.order_id

    await update_payment_fields(
        db,
        payment,
        proof_url=proof_url,
        paid_at=datetime.utcnow(),
        on_conflict=_already_processed,
    )

    logger.info(f"Proof submitted for payment {payment.id} (order {order_id})")
    return payment


async def verify_payment(
    db: AsyncSession,
    *,
    payment_id: int,
    changed_by,
) -> Payment:
    """
    Verify a PENDING payment: take stock for every line, mark the payment
    VERIFIED and the order PAID. Any stock shortfall aborts all three.
    """
    payment = await get_payment(db, payment_id)
    _require_pending(payment)

    order = await order_service.get_order(db, payment.order_id)
    if order.status != OrderStatus.PENDING.value:
        raise InvalidOrderStatusError(order.status)

    await inventory_service.decrement_items(db, order.items)
    await set_payment_status(
        db,
        payment,
        PaymentStatus.VERIFIED,
        verified_at=datetime.utcnow(),
        on_conflict=_already_processed,
    )
    await transition_order(
        db,
        order,
        OrderStatus.PAID,
        changed_by=changed_by,
        note=NOTE_PAYMENT_VERIFIED,
        on_conflict=_order_moved,
    )
    return payment


async def reject_payment(
    db: AsyncSession,
    *,
    payment_id: int,
    changed_by,
    reason: str | None = None,
) -> Payment:
    """Reject a PENDING payment and cancel its order. Stock was never taken."""
    payment = await get_payment(db, payment_id)
    _require_pending(payment)

    order = await order_service.get_order(db, payment.order_id)
    if order.status == OrderStatus.COMPLETED.value:
        raise OrderAlreadyCompletedError()

    await set_payment_status(
        db, payment, PaymentStatus.REJECTED, reason=reason, on_conflict=_already_processed
    )
    if order.status == OrderStatus.CANCELLED.value:
        # Order was already cancelled by an admin; only the payment moves.
        return payment
    await transition_order(
        db,
        order,
        OrderStatus.CANCELLED,
        changed_by=changed_by,
        note=reason or NOTE_PAYMENT_REJECTED,
        on_conflict=_order_moved,
    )
    return payment
