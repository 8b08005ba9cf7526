"""ServiceRequestApplicationService: thin composition layer.

The request catalogue proper (categories, search, location) lives outside
this service; only what the offer lifecycle needs is exposed here.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from src.sm_common.datetime_utils import utc_now
from src.sm_common.errors import ForbiddenError, ServiceRequestNotFoundError
from src.sm_common.id_generator import generate_id
from src.sm_gateway.auth.actor import Actor
from src.sm_request.application.schemas import (
    CreateServiceRequestRequest,
    ServiceRequestResponse,
)
from src.sm_request.domain.models import ServiceRequest
from src.sm_request.domain.repository import ServiceRequestRepositoryProtocol
from src.sm_request.infrastructure.persistence import ServiceRequestRepository


class ServiceRequestApplicationService:
    def __init__(self, repo: ServiceRequestRepositoryProtocol | None = None) -> None:
        self._repo: ServiceRequestRepositoryProtocol = repo or ServiceRequestRepository()

    async def create(
        self, db: AsyncSession, actor: Actor, req: CreateServiceRequestRequest
    ) -> ServiceRequestResponse:
        if not actor.is_seeker:
            raise ForbiddenError("Only seekers can post service requests")
        now = utc_now()
        request = ServiceRequest(
            id=generate_id("req"),
            seeker_id=actor.user_id,
            title=req.title,
            description=req.description,
            created_at=now,
            updated_at=now,
        )
        try:
            await self._repo.save(request, db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return ServiceRequestResponse.from_domain(request)

    async def get(
        self, db: AsyncSession, actor: Actor, request_id: str
    ) -> ServiceRequestResponse:
        request = await self._repo.get_by_id(request_id, db)
        if request is None:
            raise ServiceRequestNotFoundError(request_id)
        return ServiceRequestResponse.from_domain(request)
