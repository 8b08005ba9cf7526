"""sm_request REST endpoints.

POST /requests               — seeker posts a service request
GET  /requests/{request_id}  — read a service request (status, assignment)
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.sm_common.database import get_db_session
from src.sm_common.response import ApiResponse, respond
from src.sm_gateway.auth.actor import Actor
from src.sm_gateway.auth.dependencies import get_current_actor
from src.sm_request.application.schemas import CreateServiceRequestRequest
from src.sm_request.application.service import ServiceRequestApplicationService

router = APIRouter(prefix="/requests", tags=["requests"])

_service = ServiceRequestApplicationService()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_request(
    body: CreateServiceRequestRequest,
    request: Request,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.create(db, actor, body)
    return respond(request, result)


@router.get("/{request_id}")
async def get_request(
    request_id: str,
    request: Request,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get(db, actor, request_id)
    return respond(request, result)
