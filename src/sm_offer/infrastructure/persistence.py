# src/sm_offer/infrastructure/persistence.py
"""OfferRepository: raw SQL persistence implementation.

Optimistic concurrency: every UPDATE carries ``AND version = :version`` and
bumps the version; zero rows back means the caller read a stale row.
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.
"""
from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sm_offer.domain.models import Offer, PaymentSchedule, Timeline

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_COLUMNS = """
    id, request_id, provider_id, price,
    timeline_start_date, timeline_duration, scope_of_work,
    materials_included, warranty,
    deposit_amount, milestone_amount, final_amount,
    status, expires_at, version, created_at, updated_at
"""

_INSERT_OFFER_SQL = text("""
    INSERT INTO offers (id, request_id, provider_id, price,
        timeline_start_date, timeline_duration, scope_of_work,
        materials_included, warranty,
        deposit_amount, milestone_amount, final_amount,
        status, expires_at, version)
    VALUES (:id, :request_id, :provider_id, :price,
        :timeline_start_date, :timeline_duration, :scope_of_work,
        :materials_included, :warranty,
        :deposit_amount, :milestone_amount, :final_amount,
        :status, :expires_at, 0)
""")

_UPDATE_OFFER_SQL = text(f"""
    UPDATE offers
    SET price = :price,
        timeline_start_date = :timeline_start_date,
        timeline_duration = :timeline_duration,
        scope_of_work = :scope_of_work,
        materials_included = :materials_included,
        warranty = :warranty,
        deposit_amount = :deposit_amount,
        milestone_amount = :milestone_amount,
        final_amount = :final_amount,
        status = :status,
        version = version + 1,
        updated_at = NOW()
    WHERE id = :id AND version = :version
    RETURNING {_COLUMNS}
""")

_REJECT_SIBLINGS_SQL = text(f"""
    UPDATE offers
    SET status = 'rejected', version = version + 1, updated_at = NOW()
    WHERE request_id = :request_id
      AND id <> :offer_id
      AND status IN ('pending', 'negotiating')
    RETURNING {_COLUMNS}
""")

_DELETE_OFFER_SQL = text("""
    DELETE FROM offers
    WHERE id = :id AND version = :version AND status = 'pending'
""")

_GET_OFFER_BY_ID_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM offers WHERE id = :id
""")

_GET_ACTIVE_BY_PROVIDER_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM offers
    WHERE request_id = :request_id AND provider_id = :provider_id
      AND status IN ('pending', 'negotiating')
    LIMIT 1
""")

_GET_ACCEPTED_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM offers
    WHERE request_id = :request_id AND status = 'accepted'
    LIMIT 1
""")

_LIST_EXPIRY_CANDIDATES_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM offers
    WHERE status IN ('pending', 'negotiating') AND expires_at <= :now
    ORDER BY expires_at
    LIMIT :limit
""")

_LIST_OFFERS_SQL = text("""
    SELECT o.id, o.request_id, o.provider_id, o.price,
           o.timeline_start_date, o.timeline_duration, o.scope_of_work,
           o.materials_included, o.warranty,
           o.deposit_amount, o.milestone_amount, o.final_amount,
           o.status, o.expires_at, o.version, o.created_at, o.updated_at
    FROM offers o
    JOIN service_requests r ON r.id = o.request_id
    WHERE (CAST(:provider_id AS TEXT) IS NULL OR o.provider_id = :provider_id)
      AND (CAST(:seeker_id AS TEXT) IS NULL OR r.seeker_id = :seeker_id)
      AND (CAST(:request_id AS TEXT) IS NULL OR o.request_id = :request_id)
      AND (CAST(:status AS TEXT) IS NULL OR o.status = :status)
      AND (CAST(:cursor_id AS TEXT) IS NULL OR o.id < :cursor_id)
    ORDER BY o.id DESC
    LIMIT :limit
""")


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_offer(row: Any) -> Offer:
    """Convert a DB result row to an Offer domain object."""
    return Offer(
        id=row.id,
        request_id=row.request_id,
        provider_id=row.provider_id,
        price=row.price,
        timeline=Timeline(start_date=row.timeline_start_date, duration=row.timeline_duration),
        scope_of_work=row.scope_of_work,
        materials_included=list(row.materials_included or []),
        warranty=row.warranty,
        payment_schedule=PaymentSchedule(
            deposit=row.deposit_amount,
            milestone=row.milestone_amount,
            final=row.final_amount,
        ),
        status=row.status,
        expires_at=row.expires_at,
        version=row.version,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _offer_params(offer: Offer) -> dict[str, Any]:
    return {
        "id": offer.id,
        "price": offer.price,
        "timeline_start_date": offer.timeline.start_date,
        "timeline_duration": offer.timeline.duration,
        "scope_of_work": offer.scope_of_work,
        "materials_included": offer.materials_included,
        "warranty": offer.warranty,
        "deposit_amount": offer.payment_schedule.deposit,
        "milestone_amount": offer.payment_schedule.milestone,
        "final_amount": offer.payment_schedule.final,
        "status": offer.status,
    }


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class OfferRepository:
    """Concrete implementation of OfferRepositoryProtocol using raw SQL."""

    async def save(self, offer: Offer, db: AsyncSession) -> None:
        params = _offer_params(offer)
        params.update(
            request_id=offer.request_id,
            provider_id=offer.provider_id,
            expires_at=offer.expires_at,
        )
        await db.execute(_INSERT_OFFER_SQL, params)

    async def get_by_id(self, offer_id: str, db: AsyncSession) -> Offer | None:
        result = await db.execute(_GET_OFFER_BY_ID_SQL, {"id": offer_id})
        row = result.fetchone()
        return _row_to_offer(row) if row else None

    async def get_active_by_provider(
        self, request_id: str, provider_id: str, db: AsyncSession
    ) -> Offer | None:
        result = await db.execute(
            _GET_ACTIVE_BY_PROVIDER_SQL,
            {"request_id": request_id, "provider_id": provider_id},
        )
        row = result.fetchone()
        return _row_to_offer(row) if row else None

    async def get_accepted_for_request(
        self, request_id: str, db: AsyncSession
    ) -> Offer | None:
        result = await db.execute(_GET_ACCEPTED_SQL, {"request_id": request_id})
        row = result.fetchone()
        return _row_to_offer(row) if row else None

    async def update(self, offer: Offer, db: AsyncSession) -> Offer | None:
        params = _offer_params(offer)
        params["version"] = offer.version
        result = await db.execute(_UPDATE_OFFER_SQL, params)
        row = result.fetchone()
        return _row_to_offer(row) if row else None

    async def reject_open_siblings(
        self, request_id: str, accepted_offer_id: str, db: AsyncSession
    ) -> list[Offer]:
        result = await db.execute(
            _REJECT_SIBLINGS_SQL,
            {"request_id": request_id, "offer_id": accepted_offer_id},
        )
        return [_row_to_offer(row) for row in result.fetchall()]

    async def delete(self, offer: Offer, db: AsyncSession) -> bool:
        result = await db.execute(
            _DELETE_OFFER_SQL, {"id": offer.id, "version": offer.version}
        )
        return bool(result.rowcount)

    async def list_expiry_candidates(
        self, now: datetime, limit: int, db: AsyncSession
    ) -> list[Offer]:
        result = await db.execute(_LIST_EXPIRY_CANDIDATES_SQL, {"now": now, "limit": limit})
        return [_row_to_offer(row) for row in result.fetchall()]

    async def list_offers(
        self,
        provider_id: str | None,
        seeker_id: str | None,
        request_id: str | None,
        status: str | None,
        limit: int,
        cursor_id: str | None,
        db: AsyncSession,
    ) -> list[Offer]:
        result = await db.execute(
            _LIST_OFFERS_SQL,
            {
                "provider_id": provider_id,
                "seeker_id": seeker_id,
                "request_id": request_id,
                "status": status,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_offer(row) for row in result.fetchall()]
