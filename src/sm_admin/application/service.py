# src/sm_admin/application/service.py
"""Admin application service.

Thin composition over the payment and offer services for the privileged
operations, plus a read-only revenue summary computed straight from SQL.
"""
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sm_common.enums import PaymentStatus
from src.sm_common.errors import ForbiddenError
from src.sm_gateway.auth.actor import Actor
from src.sm_offer.application.service import OfferApplicationService
from src.sm_payment.application.schemas import PaymentListResponse, PaymentResponse
from src.sm_payment.application.service import PaymentApplicationService

_PAYMENT_STATS_SQL = text("""
    SELECT
        status,
        COUNT(*) AS payments,
        COALESCE(SUM(amount), 0) AS total_amount,
        COALESCE(SUM(platform_fee), 0) AS total_fees
    FROM payments
    GROUP BY status
""")


class AdminService:
    def __init__(
        self,
        payments: PaymentApplicationService | None = None,
        offers: OfferApplicationService | None = None,
    ) -> None:
        self._payments = payments or PaymentApplicationService()
        self._offers = offers or OfferApplicationService()

    async def list_payments(
        self,
        db: AsyncSession,
        actor: Actor,
        status: str | None,
        payment_method: str | None,
        participant_id: str | None,
        cursor: str | None,
        limit: int,
    ) -> PaymentListResponse:
        return await self._payments.list_all(
            db, actor, status, payment_method, cursor, limit, participant_id
        )

    async def resolve_refund(
        self, db: AsyncSession, payment_id: str, approve: bool, actor: Actor
    ) -> PaymentResponse:
        return await self._payments.resolve_refund(db, payment_id, approve, actor)

    async def override_payment_status(
        self, db: AsyncSession, payment_id: str, status: str, reason: str, actor: Actor
    ) -> PaymentResponse:
        return await self._payments.override_status(db, payment_id, status, actor, reason)

    async def sweep_offers(self, db: AsyncSession, actor: Actor) -> dict[str, int]:
        if not actor.is_admin:
            raise ForbiddenError("Administrator role required")
        return {"expired": await self._offers.sweep_expired(db)}

    async def payment_stats(self, db: AsyncSession, actor: Actor) -> dict[str, Any]:
        """Per-status counts and sums; revenue is the fee on completed payments."""
        if not actor.is_admin:
            raise ForbiddenError("Administrator role required")
        rows = (await db.execute(_PAYMENT_STATS_SQL)).fetchall()
        by_status = {
            row.status: {
                "payments": row.payments,
                "total_amount_cents": row.total_amount,
                "total_fees_cents": row.total_fees,
            }
            for row in rows
        }
        completed = by_status.get(PaymentStatus.COMPLETED.value, {})
        return {
            "by_status": by_status,
            "total_payments": sum(s["payments"] for s in by_status.values()),
            "platform_revenue_cents": completed.get("total_fees_cents", 0),
        }
