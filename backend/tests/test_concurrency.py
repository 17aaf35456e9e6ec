"""
Concurrency tests: competing units of work on a file-backed database.

Each contender runs in its own session (and connection), so the conditional
stock update and the status compare-and-set writes really race. Losers must
report the same error codes a sequential caller would get.
"""
import asyncio
from decimal import Decimal

import pytest

from database import with_transaction
from domain.enums import OrderStatus, PaymentStatus, Role
from domain.errors import DomainError
from services import catalog_service, order_service, payment_service
from tests.helpers import ADMIN, place_order


async def _seed(maker, *, stock: int, orders: int, quantity: int):
    """Create one product and ``orders`` PENDING orders for it; return (product_id, payment_ids)."""
    async with maker() as session:
        product = await catalog_service.create_product(
            session, name="Limited Hoodie", price=Decimal("40.00"), stock=stock
        )
        await session.commit()
        product_id = product.id

        payment_ids = []
        for _ in range(orders):
            order = await place_order(session, [{"product_id": product_id, "quantity": quantity}])
            payment_ids.append(order.payment.id)
    return product_id, payment_ids


async def _attempt(maker, fn, **kwargs) -> str:
    """Run ``fn`` as its own unit of work; return "ok" or the domain error code."""
    async with maker() as session:
        try:
            await with_transaction(session, fn, **kwargs)
            return "ok"
        except DomainError as exc:
            return exc.code


def _verify(maker, payment_id):
    return _attempt(maker, payment_service.verify_payment, payment_id=payment_id, changed_by=Role.ADMIN)


def _reject(maker, payment_id):
    return _attempt(maker, payment_service.reject_payment, payment_id=payment_id, changed_by=Role.ADMIN)


def _cancel(maker, order_id):
    return _attempt(maker, order_service.cancel_paid_order, order_id=order_id, principal=ADMIN)


async def _stock(maker, product_id: int) -> int:
    async with maker() as session:
        product = await catalog_service.get_product(session, product_id)
        return product.stock


@pytest.mark.integration
async def test_two_verifies_cannot_oversell(file_session_maker):
    """Stock 5, two orders of 3 verified at once: one wins, the other sees insufficient stock."""
    product_id, payment_ids = await _seed(file_session_maker, stock=5, orders=2, quantity=3)

    results = await asyncio.gather(*(_verify(file_session_maker, pid) for pid in payment_ids))

    assert sorted(results) == ["insufficient_stock", "ok"]
    assert await _stock(file_session_maker, product_id) == 2

    loser_payment_id = payment_ids[results.index("insufficient_stock")]
    async with file_session_maker() as session:
        payment = await payment_service.get_payment(session, loser_payment_id)
        assert payment.status == PaymentStatus.PENDING.value
        order = await order_service.get_order(session, payment.order_id)
        assert order.status == OrderStatus.PENDING.value


@pytest.mark.integration
async def test_many_verifies_never_drive_stock_negative(file_session_maker):
    product_id, payment_ids = await _seed(file_session_maker, stock=5, orders=5, quantity=2)

    results = await asyncio.gather(*(_verify(file_session_maker, pid) for pid in payment_ids))

    assert results.count("ok") == 5 // 2
    assert results.count("insufficient_stock") == len(payment_ids) - 5 // 2
    assert await _stock(file_session_maker, product_id) == 1

    async with file_session_maker() as session:
        paid = await order_service.list_orders(session, status=OrderStatus.PAID)
        assert len(paid) == 2


@pytest.mark.integration
async def test_same_payment_verified_once(file_session_maker):
    """Concurrent verifications of one payment: one wins, every other caller gets payment_already_processed."""
    product_id, payment_ids = await _seed(file_session_maker, stock=5, orders=1, quantity=1)
    payment_id = payment_ids[0]

    results = await asyncio.gather(*(_verify(file_session_maker, payment_id) for _ in range(3)))

    assert sorted(results) == ["ok", "payment_already_processed", "payment_already_processed"]
    assert await _stock(file_session_maker, product_id) == 4

    async with file_session_maker() as session:
        payment = await payment_service.get_payment(session, payment_id)
        assert payment.status == PaymentStatus.VERIFIED.value


@pytest.mark.integration
async def test_verify_racing_reject(file_session_maker):
    product_id, payment_ids = await _seed(file_session_maker, stock=5, orders=1, quantity=2)
    payment_id = payment_ids[0]

    verify_result, reject_result = await asyncio.gather(
        _verify(file_session_maker, payment_id),
        _reject(file_session_maker, payment_id),
    )

    assert sorted([verify_result, reject_result]) == ["ok", "payment_already_processed"]
    async with file_session_maker() as session:
        payment = await payment_service.get_payment(session, payment_id)
        order = await order_service.get_order(session, payment.order_id)
    if verify_result == "ok":
        assert (payment.status, order.status) == ("VERIFIED", "PAID")
        assert await _stock(file_session_maker, product_id) == 3
    else:
        assert (payment.status, order.status) == ("REJECTED", "CANCELLED")
        assert await _stock(file_session_maker, product_id) == 5


@pytest.mark.integration
async def test_concurrent_cancels_refund_once(file_session_maker):
    product_id, payment_ids = await _seed(file_session_maker, stock=5, orders=1, quantity=3)
    assert await _verify(file_session_maker, payment_ids[0]) == "ok"
    async with file_session_maker() as session:
        payment = await payment_service.get_payment(session, payment_ids[0])
        order_id = payment.order_id

    results = await asyncio.gather(*(_cancel(file_session_maker, order_id) for _ in range(2)))

    assert sorted(results) == ["already_cancelled", "ok"]
    assert await _stock(file_session_maker, product_id) == 5
