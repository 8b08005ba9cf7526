# src/sm_request/infrastructure/persistence.py
"""ServiceRequestRepository: raw SQL persistence implementation."""
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sm_request.domain.models import ServiceRequest

_COLUMNS = """
    id, seeker_id, title, description, status, assigned_provider_id,
    version, created_at, updated_at
"""

_INSERT_SQL = text("""
    INSERT INTO service_requests (id, seeker_id, title, description, status, version)
    VALUES (:id, :seeker_id, :title, :description, :status, 0)
""")

_GET_BY_ID_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM service_requests WHERE id = :id
""")

_UPDATE_STATUS_SQL = text(f"""
    UPDATE service_requests
    SET status = :status,
        assigned_provider_id = :assigned_provider_id,
        version = version + 1,
        updated_at = NOW()
    WHERE id = :id AND version = :version
    RETURNING {_COLUMNS}
""")


def _row_to_request(row: Any) -> ServiceRequest:
    return ServiceRequest(
        id=row.id,
        seeker_id=row.seeker_id,
        title=row.title,
        description=row.description,
        status=row.status,
        assigned_provider_id=row.assigned_provider_id,
        version=row.version,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class ServiceRequestRepository:
    """Concrete implementation of ServiceRequestRepositoryProtocol using raw SQL."""

    async def save(self, request: ServiceRequest, db: AsyncSession) -> None:
        await db.execute(
            _INSERT_SQL,
            {
                "id": request.id,
                "seeker_id": request.seeker_id,
                "title": request.title,
                "description": request.description,
                "status": request.status,
            },
        )

    async def get_by_id(self, request_id: str, db: AsyncSession) -> ServiceRequest | None:
        result = await db.execute(_GET_BY_ID_SQL, {"id": request_id})
        row = result.fetchone()
        return _row_to_request(row) if row else None

    async def update_status(
        self, request: ServiceRequest, db: AsyncSession
    ) -> ServiceRequest | None:
        result = await db.execute(
            _UPDATE_STATUS_SQL,
            {
                "id": request.id,
                "status": request.status,
                "assigned_provider_id": request.assigned_provider_id,
                "version": request.version,
            },
        )
        row = result.fetchone()
        return _row_to_request(row) if row else None
