"""sm_payment REST endpoints.

GET   /payments/mine                  — caller's payments (seeker or provider)
GET   /payments/{payment_id}          — payment detail
PATCH /payments/{payment_id}/status   — tagged status command
POST  /payments/{payment_id}/refund   — participant refund request
POST  /payments/webhook               — gateway callback (no bearer token)
"""

import hmac
from typing import Annotated

from fastapi import APIRouter, Depends, Header, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.sm_common.database import get_db_session
from src.sm_common.errors import ForbiddenError
from src.sm_common.response import ApiResponse, respond
from src.sm_gateway.auth.actor import Actor
from src.sm_gateway.auth.dependencies import get_current_actor
from src.sm_payment.application.schemas import (
    GatewayEvent,
    PaymentStatusCommand,
    RefundRequestBody,
)
from src.sm_payment.application.service import PaymentApplicationService

router = APIRouter(prefix="/payments", tags=["payments"])

_service = PaymentApplicationService()


def _check_webhook_secret(supplied: str | None) -> None:
    expected = settings.PAYMENT_WEBHOOK_SECRET
    # No secret configured: the endpoint is closed
    if not expected:
        raise ForbiddenError("Webhook endpoint is not configured", 4009)
    if supplied is None or not hmac.compare_digest(supplied, expected):
        raise ForbiddenError("Invalid webhook signature", 4009)


@router.get("/mine")
async def list_my_payments(
    request: Request,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    status: str | None = Query(None, description="Filter by payment status"),
    payment_method: str | None = Query(None, description="Filter by payment method"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    cursor: str | None = Query(None, description="Pagination cursor (payment ID)"),
) -> ApiResponse:
    result = await _service.list_mine(db, actor, status, payment_method, cursor, limit)
    return respond(request, result)


@router.post("/webhook")
async def gateway_webhook(
    event: GatewayEvent,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    x_webhook_secret: Annotated[str | None, Header()] = None,
) -> ApiResponse:
    _check_webhook_secret(x_webhook_secret)
    result = await _service.handle_gateway_event(db, event)
    return respond(request, result)


@router.get("/{payment_id}")
async def get_payment(
    payment_id: str,
    request: Request,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get(db, payment_id, actor)
    return respond(request, result)


@router.patch("/{payment_id}/status")
async def update_payment_status(
    payment_id: str,
    command: PaymentStatusCommand,
    request: Request,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.update_status(db, payment_id, command, actor)
    return respond(request, result)


@router.post("/{payment_id}/refund")
async def request_refund(
    payment_id: str,
    body: RefundRequestBody,
    request: Request,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.request_refund(
        db, payment_id, actor, body.reason, body.amount_cents
    )
    return respond(request, result)
