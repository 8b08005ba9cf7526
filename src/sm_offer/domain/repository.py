# src/sm_offer/domain/repository.py
"""OfferRepository Protocol: interface contract for persistence layer.

Every mutating method is an update-if-unchanged on ``offer.version``: it
returns the stored row (version + 1) on success and None when the row moved
underneath the caller.
"""
from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.sm_offer.domain.models import Offer


class OfferRepositoryProtocol(Protocol):
    async def save(self, offer: Offer, db: AsyncSession) -> None: ...

    async def get_by_id(self, offer_id: str, db: AsyncSession) -> Offer | None: ...

    async def get_active_by_provider(
        self, request_id: str, provider_id: str, db: AsyncSession
    ) -> Offer | None: ...

    async def get_accepted_for_request(
        self, request_id: str, db: AsyncSession
    ) -> Offer | None: ...

    async def update(self, offer: Offer, db: AsyncSession) -> Offer | None: ...

    async def reject_open_siblings(
        self, request_id: str, accepted_offer_id: str, db: AsyncSession
    ) -> list[Offer]: ...

    async def delete(self, offer: Offer, db: AsyncSession) -> bool: ...

    async def list_expiry_candidates(
        self, now: datetime, limit: int, db: AsyncSession
    ) -> list[Offer]: ...

    async def list_offers(
        self,
        provider_id: str | None,
        seeker_id: str | None,
        request_id: str | None,
        status: str | None,
        limit: int,
        cursor_id: str | None,
        db: AsyncSession,
    ) -> list[Offer]: ...
