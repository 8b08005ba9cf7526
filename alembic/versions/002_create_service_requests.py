"""002: create service_requests table

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE service_requests (
            id                    VARCHAR(32)  PRIMARY KEY,
            seeker_id             VARCHAR(64)  NOT NULL,
            title                 VARCHAR(200) NOT NULL,
            description           TEXT,
            status                VARCHAR(20)  NOT NULL DEFAULT 'open',
            assigned_provider_id  VARCHAR(64),
            version               INT          NOT NULL DEFAULT 0,
            created_at            TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            updated_at            TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_service_requests_status CHECK (
                status IN ('open', 'negotiating', 'assigned', 'in_progress', 'completed', 'cancelled')
            ),
            CONSTRAINT ck_service_requests_assignment CHECK (
                status IN ('open', 'negotiating', 'cancelled') OR assigned_provider_id IS NOT NULL
            )
        );
    """)
    op.execute(
        "CREATE INDEX idx_service_requests_seeker ON service_requests (seeker_id, created_at DESC);"
    )
    op.execute("""
        CREATE TRIGGER trg_service_requests_updated_at
            BEFORE UPDATE ON service_requests
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute(
        "COMMENT ON TABLE service_requests IS "
        "'Seeker job postings; only status/assignment are written by the offer lifecycle';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS service_requests CASCADE;")
