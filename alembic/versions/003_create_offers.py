"""003: create offers table

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE offers (
            id                   VARCHAR(32)  PRIMARY KEY,
            request_id           VARCHAR(32)  NOT NULL REFERENCES service_requests (id),
            provider_id          VARCHAR(64)  NOT NULL,
            price                BIGINT       NOT NULL,
            timeline_start_date  TIMESTAMPTZ  NOT NULL,
            timeline_duration    VARCHAR(100) NOT NULL,
            scope_of_work        TEXT         NOT NULL,
            materials_included   TEXT[]       NOT NULL DEFAULT '{}',
            warranty             VARCHAR(500) NOT NULL DEFAULT 'No warranty',
            deposit_amount       BIGINT       NOT NULL DEFAULT 0,
            milestone_amount     BIGINT       NOT NULL DEFAULT 0,
            final_amount         BIGINT       NOT NULL DEFAULT 0,
            status               VARCHAR(20)  NOT NULL DEFAULT 'pending',
            expires_at           TIMESTAMPTZ  NOT NULL,
            version              INT          NOT NULL DEFAULT 0,
            created_at           TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            updated_at           TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_offers_price_gt_0        CHECK (price > 0),
            CONSTRAINT ck_offers_schedule_gte_0    CHECK (
                deposit_amount >= 0 AND milestone_amount >= 0 AND final_amount >= 0
            ),
            CONSTRAINT ck_offers_schedule_le_price CHECK (
                deposit_amount + milestone_amount + final_amount <= price
            ),
            CONSTRAINT ck_offers_status            CHECK (
                status IN ('pending', 'negotiating', 'accepted', 'rejected', 'expired')
            )
        );
    """)
    op.execute("CREATE INDEX idx_offers_request ON offers (request_id);")
    op.execute("CREATE INDEX idx_offers_provider ON offers (provider_id, id DESC);")
    # One non-terminal offer per provider per request
    op.execute("""
        CREATE UNIQUE INDEX uq_offers_active_provider
        ON offers (request_id, provider_id)
        WHERE status IN ('pending', 'negotiating');
    """)
    # At most one accepted offer per request
    op.execute("""
        CREATE UNIQUE INDEX uq_offers_one_accepted
        ON offers (request_id)
        WHERE status = 'accepted';
    """)
    op.execute("""
        CREATE INDEX idx_offers_expiry
        ON offers (expires_at)
        WHERE status IN ('pending', 'negotiating');
    """)
    op.execute("""
        CREATE TRIGGER trg_offers_updated_at
            BEFORE UPDATE ON offers
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE offers IS 'Provider bids on service requests; all amounts in cents';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS offers CASCADE;")
