# src/sm_negotiation/infrastructure/persistence.py
"""NegotiationLedger: raw SQL persistence implementation.

Sequence numbers are computed inside the INSERT; two racing appends on the
same offer collide on uq_negotiation_entries_offer_seq and the loser's
transaction fails with IntegrityError.
"""
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sm_negotiation.domain.models import NegotiationEntry

_COLUMNS = "offer_id, sequence, actor_id, message, counter_price, created_at"

_APPEND_SQL = text(f"""
    INSERT INTO negotiation_entries (offer_id, sequence, actor_id, message, counter_price)
    SELECT :offer_id, COALESCE(MAX(sequence), 0) + 1, :actor_id, :message, :counter_price
    FROM negotiation_entries
    WHERE offer_id = :offer_id
    RETURNING {_COLUMNS}
""")

_HISTORY_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM negotiation_entries
    WHERE offer_id = :offer_id
    ORDER BY sequence ASC
""")

_LATEST_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM negotiation_entries
    WHERE offer_id = :offer_id
    ORDER BY sequence DESC
    LIMIT 1
""")


def _row_to_entry(row: Any) -> NegotiationEntry:
    return NegotiationEntry(
        offer_id=row.offer_id,
        sequence=row.sequence,
        actor_id=row.actor_id,
        message=row.message,
        counter_price=row.counter_price,
        created_at=row.created_at,
    )


class NegotiationLedger:
    """Concrete implementation of NegotiationLedgerProtocol using raw SQL."""

    async def append(
        self,
        offer_id: str,
        actor_id: str,
        message: str,
        counter_price: int | None,
        db: AsyncSession,
    ) -> NegotiationEntry:
        result = await db.execute(
            _APPEND_SQL,
            {
                "offer_id": offer_id,
                "actor_id": actor_id,
                "message": message,
                "counter_price": counter_price,
            },
        )
        return _row_to_entry(result.fetchone())

    async def history(self, offer_id: str, db: AsyncSession) -> list[NegotiationEntry]:
        result = await db.execute(_HISTORY_SQL, {"offer_id": offer_id})
        return [_row_to_entry(row) for row in result.fetchall()]

    async def latest(self, offer_id: str, db: AsyncSession) -> NegotiationEntry | None:
        result = await db.execute(_LATEST_SQL, {"offer_id": offer_id})
        row = result.fetchone()
        return _row_to_entry(row) if row else None
