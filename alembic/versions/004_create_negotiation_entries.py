"""004: create negotiation_entries table

Revision ID: 004
Revises: 003
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE negotiation_entries (
            offer_id       VARCHAR(32) NOT NULL REFERENCES offers (id),
            sequence       INT         NOT NULL,
            actor_id       VARCHAR(64) NOT NULL,
            message        TEXT        NOT NULL,
            counter_price  BIGINT,
            created_at     TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_negotiation_entries_offer_seq   PRIMARY KEY (offer_id, sequence),
            CONSTRAINT ck_negotiation_entries_seq_gt_0    CHECK (sequence > 0),
            CONSTRAINT ck_negotiation_entries_counter_gt_0 CHECK (
                counter_price IS NULL OR counter_price > 0
            )
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_negotiation_entries_append_only
            BEFORE UPDATE OR DELETE ON negotiation_entries
            FOR EACH ROW EXECUTE FUNCTION fn_reject_mutation();
    """)
    op.execute(
        "COMMENT ON TABLE negotiation_entries IS "
        "'Append-only offer negotiation ledger, dense 1-based sequence per offer';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS negotiation_entries CASCADE;")
