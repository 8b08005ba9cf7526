"""ServiceRequest domain model: pure dataclass, no SQLAlchemy dependency.

The request itself is owned by the (external) request catalogue; the offer
lifecycle only reads it and advances its status.
"""
from dataclasses import dataclass
from datetime import datetime

from src.sm_common.enums import ServiceRequestStatus

_BIDDABLE = (ServiceRequestStatus.OPEN.value, ServiceRequestStatus.NEGOTIATING.value)


@dataclass
class ServiceRequest:
    id: str
    seeker_id: str
    title: str
    description: str | None
    status: str = ServiceRequestStatus.OPEN.value
    assigned_provider_id: str | None = None
    version: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def accepts_offers(self) -> bool:
        return self.status in _BIDDABLE
