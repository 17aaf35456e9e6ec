"""
Order endpoints: checkout, admin status changes, paid-order cancellation,
order detail and timeline.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db, with_transaction
from deps import Pagination, pagination_params, require_admin, require_principal
from domain.enums import OrderStatus
from domain.principal import Principal
from domain.responses import paginated_response, success_response
from models import (
    OrderCancelRequest,
    OrderCreateRequest,
    OrderStatusUpdateRequest,
    dump_history,
    dump_order,
)
from services import order_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_order(
    request: OrderCreateRequest,
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
):
    order = await with_transaction(
        db,
        order_service.create_order,
        user_id=principal.user_id,
        items=[{"product_id": i.product_id, "quantity": i.quantity} for i in request.items],
        changed_by=principal.role,
    )
    return success_response(data=dump_order(order))


@router.get("")
async def list_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    page: Pagination = Depends(pagination_params),
    _admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    orders = await order_service.list_orders(
        db, status=status_filter, limit=page["limit"], offset=page["offset"]
    )
    return paginated_response([dump_order(o) for o in orders], page["limit"], page["offset"])


@router.get("/me")
async def list_my_orders(
    page: Pagination = Depends(pagination_params),
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
):
    orders = await order_service.list_user_orders(
        db, user_id=principal.user_id, limit=page["limit"], offset=page["offset"]
    )
    return paginated_response([dump_order(o) for o in orders], page["limit"], page["offset"])


@router.get("/{order_id}")
async def get_order_detail(
    order_id: int,
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
):
    order = await order_service.get_order_detail(db, order_id=order_id, principal=principal)
    return success_response(data=dump_order(order))


@router.patch("/{order_id}/status")
async def update_order_status(
    order_id: int,
    request: OrderStatusUpdateRequest,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    order = await with_transaction(
        db,
        order_service.update_order_status,
        order_id=order_id,
        new_status=request.status,
        changed_by=admin.role,
        note=request.note,
    )
    return success_response(data=dump_order(order))


@router.patch("/{order_id}/cancel")
async def cancel_paid_order(
    order_id: int,
    request: Optional[OrderCancelRequest] = None,
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
):
    order = await with_transaction(
        db,
        order_service.cancel_paid_order,
        order_id=order_id,
        principal=principal,
        reason=request.reason if request else None,
    )
    return success_response(data=dump_order(order))


@router.get("/{order_id}/timeline")
async def get_order_timeline(
    order_id: int,
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
):
    history = await order_service.get_timeline(db, order_id=order_id, principal=principal)
    return success_response(
        data=[dump_history(h) for h in history],
        meta={"total": len(history)},
    )
