# src/sm_payment/domain/repository.py
"""PaymentRepository Protocol: interface contract for persistence layer."""
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.sm_payment.domain.models import Payment


class PaymentRepositoryProtocol(Protocol):
    async def save(self, payment: Payment, db: AsyncSession) -> None: ...

    async def get_by_id(self, payment_id: str, db: AsyncSession) -> Payment | None: ...

    async def get_by_offer_id(self, offer_id: str, db: AsyncSession) -> Payment | None: ...

    async def get_by_transaction_id(
        self, transaction_id: str, db: AsyncSession
    ) -> Payment | None: ...

    async def update(self, payment: Payment, db: AsyncSession) -> Payment | None:
        """Update-if-unchanged on payment.version; None when the row moved."""
        ...

    async def list_payments(
        self,
        participant_id: str | None,
        status: str | None,
        payment_method: str | None,
        limit: int,
        cursor_id: str | None,
        db: AsyncSession,
    ) -> list[Payment]: ...
