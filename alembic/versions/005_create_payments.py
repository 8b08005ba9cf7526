"""005: create payments table

Revision ID: 005
Revises: 004
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE payments (
            id                   VARCHAR(32)  PRIMARY KEY,
            request_id           VARCHAR(32)  NOT NULL REFERENCES service_requests (id),
            offer_id             VARCHAR(32)  NOT NULL REFERENCES offers (id),
            seeker_id            VARCHAR(64)  NOT NULL,
            provider_id          VARCHAR(64)  NOT NULL,
            amount               BIGINT       NOT NULL,
            platform_fee         BIGINT       NOT NULL,
            provider_amount      BIGINT       NOT NULL,
            payment_method       VARCHAR(20)  NOT NULL,
            payment_gateway      VARCHAR(20)  NOT NULL DEFAULT 'manual',
            transaction_id       VARCHAR(128),
            status               VARCHAR(20)  NOT NULL DEFAULT 'pending',
            refund_reason        TEXT,
            refund_amount        BIGINT,
            refund_requested_by  VARCHAR(64),
            refund_requested_at  TIMESTAMPTZ,
            refund_status        VARCHAR(20),
            paid_at              TIMESTAMPTZ,
            verified_at          TIMESTAMPTZ,
            verified_by          VARCHAR(64),
            version              INT          NOT NULL DEFAULT 0,
            created_at           TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            updated_at           TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_payments_offer_id          UNIQUE (offer_id),
            CONSTRAINT ck_payments_amount_gt_0       CHECK (amount > 0),
            CONSTRAINT ck_payments_fee_range         CHECK (platform_fee >= 0 AND platform_fee <= amount),
            CONSTRAINT ck_payments_provider_amount   CHECK (provider_amount = amount - platform_fee),
            CONSTRAINT ck_payments_method            CHECK (
                payment_method IN ('stripe', 'cod', 'bank_transfer', 'cash',
                                   'vodafone_cash', 'meeza', 'fawry')
            ),
            CONSTRAINT ck_payments_gateway           CHECK (
                payment_gateway IN ('stripe', 'manual', 'vodafone_cash_api', 'meeza_api', 'fawry_api')
            ),
            CONSTRAINT ck_payments_status            CHECK (
                status IN ('pending', 'agreed', 'completed', 'disputed', 'refunded')
            ),
            CONSTRAINT ck_payments_refund_status     CHECK (
                refund_status IS NULL OR refund_status IN ('pending', 'approved', 'rejected')
            ),
            CONSTRAINT ck_payments_refund_amount     CHECK (
                refund_amount IS NULL OR (refund_amount > 0 AND refund_amount <= amount)
            )
        );
    """)
    op.execute("""
        CREATE UNIQUE INDEX uq_payments_transaction_id
        ON payments (transaction_id)
        WHERE transaction_id IS NOT NULL;
    """)
    op.execute("CREATE INDEX idx_payments_seeker ON payments (seeker_id, id DESC);")
    op.execute("CREATE INDEX idx_payments_provider ON payments (provider_id, id DESC);")
    op.execute("CREATE INDEX idx_payments_status ON payments (status, id DESC);")
    op.execute("""
        CREATE TRIGGER trg_payments_updated_at
            BEFORE UPDATE ON payments
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute(
        "COMMENT ON TABLE payments IS "
        "'Escrow payment per accepted offer (1:1); all amounts in cents';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS payments CASCADE;")
