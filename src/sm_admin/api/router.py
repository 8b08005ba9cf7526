# src/sm_admin/api/router.py
"""Admin REST API. Every route requires the admin role."""
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.sm_admin.application.service import AdminService
from src.sm_common.database import get_db_session
from src.sm_common.response import ApiResponse, respond
from src.sm_gateway.auth.actor import Actor
from src.sm_gateway.auth.dependencies import require_admin
from src.sm_payment.application.schemas import OverrideStatusBody, ResolveRefundBody

router = APIRouter(prefix="/admin", tags=["admin"])
_service = AdminService()


@router.get("/payments")
async def list_all_payments(
    request: Request,
    admin: Annotated[Actor, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    status: str | None = Query(None, description="Filter by payment status"),
    payment_method: str | None = Query(None, description="Filter by payment method"),
    participant_id: str | None = Query(None, description="Seeker or provider user ID"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    cursor: str | None = Query(None, description="Pagination cursor (payment ID)"),
) -> ApiResponse:
    result = await _service.list_payments(
        db, admin, status, payment_method, participant_id, cursor, limit
    )
    return respond(request, result)


@router.get("/payments/stats")
async def payment_stats(
    request: Request,
    admin: Annotated[Actor, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    return respond(request, await _service.payment_stats(db, admin))


@router.post("/payments/{payment_id}/refund/resolve")
async def resolve_refund(
    payment_id: str,
    body: ResolveRefundBody,
    request: Request,
    admin: Annotated[Actor, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.resolve_refund(db, payment_id, body.approve, admin)
    return respond(request, result)


@router.post("/payments/{payment_id}/override")
async def override_payment_status(
    payment_id: str,
    body: OverrideStatusBody,
    request: Request,
    admin: Annotated[Actor, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.override_payment_status(
        db, payment_id, body.status, body.reason, admin
    )
    return respond(request, result)


@router.post("/offers/sweep")
async def sweep_expired_offers(
    request: Request,
    admin: Annotated[Actor, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    return respond(request, await _service.sweep_offers(db, admin))
