# src/sm_negotiation/domain/repository.py
"""NegotiationLedger Protocol: append and read, never update or delete."""
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.sm_negotiation.domain.models import NegotiationEntry


class NegotiationLedgerProtocol(Protocol):
    async def append(
        self,
        offer_id: str,
        actor_id: str,
        message: str,
        counter_price: int | None,
        db: AsyncSession,
    ) -> NegotiationEntry:
        """Insert the next entry (sequence = last + 1) and return it."""
        ...

    async def history(self, offer_id: str, db: AsyncSession) -> list[NegotiationEntry]:
        """All entries of an offer in insertion order."""
        ...

    async def latest(self, offer_id: str, db: AsyncSession) -> NegotiationEntry | None: ...
