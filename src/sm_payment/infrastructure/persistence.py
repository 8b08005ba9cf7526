# src/sm_payment/infrastructure/persistence.py
"""PaymentRepository: raw SQL persistence implementation.

The refund request is flattened into refund_* columns (NULL when none).
provider_amount is written from the domain property and guarded by a CHECK.
"""
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sm_payment.domain.models import Payment, RefundRequest

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_COLUMNS = """
    id, request_id, offer_id, seeker_id, provider_id,
    amount, platform_fee, provider_amount,
    payment_method, payment_gateway, transaction_id, status,
    refund_reason, refund_amount, refund_requested_by, refund_requested_at, refund_status,
    paid_at, verified_at, verified_by, version, created_at, updated_at
"""

_INSERT_PAYMENT_SQL = text("""
    INSERT INTO payments (id, request_id, offer_id, seeker_id, provider_id,
        amount, platform_fee, provider_amount,
        payment_method, payment_gateway, status, version)
    VALUES (:id, :request_id, :offer_id, :seeker_id, :provider_id,
        :amount, :platform_fee, :provider_amount,
        :payment_method, :payment_gateway, :status, 0)
""")

_UPDATE_PAYMENT_SQL = text(f"""
    UPDATE payments
    SET status = :status,
        transaction_id = :transaction_id,
        refund_reason = :refund_reason,
        refund_amount = :refund_amount,
        refund_requested_by = :refund_requested_by,
        refund_requested_at = :refund_requested_at,
        refund_status = :refund_status,
        paid_at = :paid_at,
        verified_at = :verified_at,
        verified_by = :verified_by,
        version = version + 1,
        updated_at = NOW()
    WHERE id = :id AND version = :version
    RETURNING {_COLUMNS}
""")

_GET_BY_ID_SQL = text(f"SELECT {_COLUMNS} FROM payments WHERE id = :id")

_GET_BY_OFFER_SQL = text(f"SELECT {_COLUMNS} FROM payments WHERE offer_id = :offer_id")

_GET_BY_TRANSACTION_SQL = text(
    f"SELECT {_COLUMNS} FROM payments WHERE transaction_id = :transaction_id"
)

_LIST_PAYMENTS_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM payments
    WHERE (CAST(:participant_id AS TEXT) IS NULL
           OR seeker_id = :participant_id OR provider_id = :participant_id)
      AND (CAST(:status AS TEXT) IS NULL OR status = :status)
      AND (CAST(:payment_method AS TEXT) IS NULL OR payment_method = :payment_method)
      AND (CAST(:cursor_id AS TEXT) IS NULL OR id < :cursor_id)
    ORDER BY id DESC
    LIMIT :limit
""")


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_payment(row: Any) -> Payment:
    refund = None
    if row.refund_status is not None:
        refund = RefundRequest(
            reason=row.refund_reason,
            amount=row.refund_amount,
            requested_by=row.refund_requested_by,
            requested_at=row.refund_requested_at,
            status=row.refund_status,
        )
    return Payment(
        id=row.id,
        request_id=row.request_id,
        offer_id=row.offer_id,
        seeker_id=row.seeker_id,
        provider_id=row.provider_id,
        amount=row.amount,
        platform_fee=row.platform_fee,
        payment_method=row.payment_method,
        payment_gateway=row.payment_gateway,
        transaction_id=row.transaction_id,
        status=row.status,
        refund_request=refund,
        paid_at=row.paid_at,
        verified_at=row.verified_at,
        verified_by=row.verified_by,
        version=row.version,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class PaymentRepository:
    """Concrete implementation of PaymentRepositoryProtocol using raw SQL."""

    async def save(self, payment: Payment, db: AsyncSession) -> None:
        await db.execute(
            _INSERT_PAYMENT_SQL,
            {
                "id": payment.id,
                "request_id": payment.request_id,
                "offer_id": payment.offer_id,
                "seeker_id": payment.seeker_id,
                "provider_id": payment.provider_id,
                "amount": payment.amount,
                "platform_fee": payment.platform_fee,
                "provider_amount": payment.provider_amount,
                "payment_method": payment.payment_method,
                "payment_gateway": payment.payment_gateway,
                "status": payment.status,
            },
        )

    async def get_by_id(self, payment_id: str, db: AsyncSession) -> Payment | None:
        row = (await db.execute(_GET_BY_ID_SQL, {"id": payment_id})).fetchone()
        return _row_to_payment(row) if row else None

    async def get_by_offer_id(self, offer_id: str, db: AsyncSession) -> Payment | None:
        row = (await db.execute(_GET_BY_OFFER_SQL, {"offer_id": offer_id})).fetchone()
        return _row_to_payment(row) if row else None

    async def get_by_transaction_id(
        self, transaction_id: str, db: AsyncSession
    ) -> Payment | None:
        row = (
            await db.execute(_GET_BY_TRANSACTION_SQL, {"transaction_id": transaction_id})
        ).fetchone()
        return _row_to_payment(row) if row else None

    async def update(self, payment: Payment, db: AsyncSession) -> Payment | None:
        refund = payment.refund_request
        result = await db.execute(
            _UPDATE_PAYMENT_SQL,
            {
                "id": payment.id,
                "version": payment.version,
                "status": payment.status,
                "transaction_id": payment.transaction_id,
                "refund_reason": refund.reason if refund else None,
                "refund_amount": refund.amount if refund else None,
                "refund_requested_by": refund.requested_by if refund else None,
                "refund_requested_at": refund.requested_at if refund else None,
                "refund_status": refund.status if refund else None,
                "paid_at": payment.paid_at,
                "verified_at": payment.verified_at,
                "verified_by": payment.verified_by,
            },
        )
        row = result.fetchone()
        return _row_to_payment(row) if row else None

    async def list_payments(
        self,
        participant_id: str | None,
        status: str | None,
        payment_method: str | None,
        limit: int,
        cursor_id: str | None,
        db: AsyncSession,
    ) -> list[Payment]:
        result = await db.execute(
            _LIST_PAYMENTS_SQL,
            {
                "participant_id": participant_id,
                "status": status,
                "payment_method": payment_method,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_payment(row) for row in result.fetchall()]
