"""sm_negotiation REST endpoints.

POST /offers/{offer_id}/negotiations  — append a message (optionally a counter price)
GET  /offers/{offer_id}/negotiations  — full ledger + effective price
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.sm_common.database import get_db_session
from src.sm_common.response import ApiResponse, respond
from src.sm_gateway.auth.actor import Actor
from src.sm_gateway.auth.dependencies import get_current_actor
from src.sm_negotiation.application.schemas import AppendNegotiationRequest
from src.sm_negotiation.application.service import NegotiationApplicationService

router = APIRouter(prefix="/offers/{offer_id}/negotiations", tags=["negotiations"])

_service = NegotiationApplicationService()


@router.post("", status_code=status.HTTP_201_CREATED)
async def append_negotiation(
    offer_id: str,
    body: AppendNegotiationRequest,
    request: Request,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.append(db, offer_id, actor, body)
    return respond(request, result)


@router.get("")
async def negotiation_history(
    offer_id: str,
    request: Request,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.history(db, offer_id, actor)
    return respond(request, result)
