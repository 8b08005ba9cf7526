"""Pydantic schemas for the service-request surface."""
from datetime import datetime

from pydantic import BaseModel, Field

from src.sm_request.domain.models import ServiceRequest


class CreateServiceRequestRequest(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: str | None = Field(None, max_length=2000)


class ServiceRequestResponse(BaseModel):
    id: str
    seeker_id: str
    title: str
    description: str | None
    status: str
    assigned_provider_id: str | None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_domain(cls, r: ServiceRequest) -> "ServiceRequestResponse":
        return cls(
            id=r.id,
            seeker_id=r.seeker_id,
            title=r.title,
            description=r.description,
            status=r.status,
            assigned_provider_id=r.assigned_provider_id,
            created_at=r.created_at,
            updated_at=r.updated_at,
        )
