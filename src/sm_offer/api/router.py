"""sm_offer REST endpoints.

POST   /offers                 — provider submits an offer
GET    /offers                 — list offers visible to the caller
GET    /offers/{offer_id}      — offer detail incl. effective price
PATCH  /offers/{offer_id}      — provider edits an open offer
DELETE /offers/{offer_id}      — provider withdraws an untouched offer
POST   /offers/{offer_id}/accept
POST   /offers/{offer_id}/reject
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.sm_common.database import get_db_session
from src.sm_common.response import ApiResponse, respond
from src.sm_gateway.auth.actor import Actor
from src.sm_gateway.auth.dependencies import get_current_actor
from src.sm_offer.application.schemas import (
    AcceptOfferRequest,
    CreateOfferRequest,
    UpdateOfferRequest,
)
from src.sm_offer.application.service import OfferApplicationService

router = APIRouter(prefix="/offers", tags=["offers"])

_service = OfferApplicationService()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_offer(
    body: CreateOfferRequest,
    request: Request,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.create(db, actor, body)
    return respond(request, result)


@router.get("")
async def list_offers(
    request: Request,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request_id: str | None = Query(None, description="Filter by service request ID"),
    status: str | None = Query(None, description="Filter by offer status"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    cursor: str | None = Query(None, description="Pagination cursor (offer ID)"),
) -> ApiResponse:
    result = await _service.list_offers(db, actor, request_id, status, cursor, limit)
    return respond(request, result)


@router.get("/{offer_id}")
async def get_offer(
    offer_id: str,
    request: Request,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get(db, offer_id, actor)
    return respond(request, result)


@router.patch("/{offer_id}")
async def update_offer(
    offer_id: str,
    body: UpdateOfferRequest,
    request: Request,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.update(db, offer_id, actor, body)
    return respond(request, result)


@router.delete("/{offer_id}")
async def delete_offer(
    offer_id: str,
    request: Request,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    await _service.delete(db, offer_id, actor)
    return respond(request, {"deleted": offer_id})


@router.post("/{offer_id}/accept")
async def accept_offer(
    offer_id: str,
    request: Request,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    body: AcceptOfferRequest | None = None,
) -> ApiResponse:
    method = (body or AcceptOfferRequest()).payment_method
    result = await _service.accept(db, offer_id, actor, method.value)
    return respond(request, result)


@router.post("/{offer_id}/reject")
async def reject_offer(
    offer_id: str,
    request: Request,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.reject(db, offer_id, actor)
    return respond(request, result)
