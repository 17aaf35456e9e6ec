"""
Payment endpoints: buyer proof upload, admin verification/rejection and
admin listing.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db, with_transaction
from deps import Pagination, pagination_params, require_admin, require_principal
from domain.enums import PaymentStatus
from domain.principal import Principal
from domain.responses import paginated_response, success_response
from models import PaymentRejectRequest, dump_payment
from services import payment_service, proof_storage

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/payments", tags=["payments"])


@router.get("")
async def list_payments(
    status_filter: Optional[PaymentStatus] = Query(None, alias="status"),
    page: Pagination = Depends(pagination_params),
    _admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    payments = await payment_service.list_payments(
        db, status=status_filter, limit=page["limit"], offset=page["offset"]
    )
    return paginated_response([dump_payment(p) for p in payments], page["limit"], page["offset"])


@router.post("/{payment_id}/proof")
async def upload_payment_proof(
    payment_id: int,
    image: UploadFile = File(..., description="Proof of payment (image or PDF)"),
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
):
    """
    Upload proof of an off-band payment.

    Preconditions are checked before the file is written, and the file is
    removed again if the transaction fails afterwards, so a rejected request
    leaves nothing behind on disk.
    """
    data = await image.read()
    proof_storage.validate_proof(data, image.content_type)

    saved: list[str] = []

    async def _submit(session: AsyncSession):
        await payment_service.check_proof_allowed(session, payment_id=payment_id, buyer_id=principal.user_id)
        proof_url = await proof_storage.save_proof(
            payment_id=payment_id,
            data=data,
            content_type=image.content_type,
            original_filename=image.filename,
        )
        saved.append(proof_url)
        return await payment_service.submit_proof(
            session,
            payment_id=payment_id,
            buyer_id=principal.user_id,
            proof_url=proof_url,
        )

    try:
        payment = await with_transaction(db, _submit)
    except Exception:
        for proof_url in saved:
            await proof_storage.discard_proof(proof_url)
        raise
    return success_response(data=dump_payment(payment))


@router.patch("/{payment_id}/verify")
async def verify_payment(
    payment_id: int,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    payment = await with_transaction(
        db,
        payment_service.verify_payment,
        payment_id=payment_id,
        changed_by=admin.role,
    )
    return success_response(data=dump_payment(payment))


@router.patch("/{payment_id}/reject")
async def reject_payment(
    payment_id: int,
    request: Optional[PaymentRejectRequest] = None,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    payment = await with_transaction(
        db,
        payment_service.reject_payment,
        payment_id=payment_id,
        changed_by=admin.role,
        reason=request.reason if request else None,
    )
    return success_response(data=dump_payment(payment))
