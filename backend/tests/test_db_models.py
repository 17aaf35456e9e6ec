"""
Tests for the ORM mapping: relationship loading and foreign key enforcement.
"""
from decimal import Decimal

import pytest
from sqlalchemy import delete, func, inspect, select
from sqlalchemy.exc import IntegrityError

from db_models import Order, OrderItem, OrderStatusHistory, Payment
from tests.helpers import CUSTOMER_ID


@pytest.mark.unit
def test_order_relationships_are_eagerly_loadable():
    relationships = inspect(Order).relationships
    assert sorted(relationships.keys()) == ["items", "payment"]
    for rel in relationships:
        assert rel.lazy == "selectin", rel.key


@pytest.mark.unit
def test_no_relationship_uses_deprecated_loaders():
    for model in (Order, OrderItem, Payment, OrderStatusHistory):
        for rel in inspect(model).relationships:
            assert rel.lazy not in ("noload", "dynamic"), f"{model.__name__}.{rel.key}"


@pytest.mark.unit
async def test_item_for_missing_order_is_rejected(db_session, product):
    db_session.add(
        OrderItem(order_id=9999, product_id=product.id, quantity=1, unit_price=Decimal("1.00"))
    )
    with pytest.raises(IntegrityError):
        await db_session.flush()
    await db_session.rollback()


@pytest.mark.unit
async def test_payment_for_missing_order_is_rejected(db_session):
    db_session.add(Payment(order_id=9999, user_id=CUSTOMER_ID, amount=Decimal("10.00")))
    with pytest.raises(IntegrityError):
        await db_session.flush()
    await db_session.rollback()


@pytest.mark.unit
async def test_deleting_order_cascades_to_children(db_session, pending_order):
    order_id = pending_order.id
    await db_session.execute(delete(Order).where(Order.id == order_id))
    await db_session.commit()

    for model in (OrderItem, Payment, OrderStatusHistory):
        remaining = await db_session.scalar(
            select(func.count()).select_from(model).where(model.order_id == order_id)
        )
        assert remaining == 0, model.__name__
