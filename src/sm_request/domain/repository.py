# src/sm_request/domain/repository.py
"""ServiceRequestRepository Protocol: interface contract for persistence layer."""
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.sm_request.domain.models import ServiceRequest


class ServiceRequestRepositoryProtocol(Protocol):
    async def save(self, request: ServiceRequest, db: AsyncSession) -> None: ...

    async def get_by_id(self, request_id: str, db: AsyncSession) -> ServiceRequest | None: ...

    async def update_status(
        self, request: ServiceRequest, db: AsyncSession
    ) -> ServiceRequest | None:
        """Persist status/assigned_provider_id guarded by request.version.

        Returns the stored row (version bumped) or None if the version moved.
        """
        ...
