"""001: create common functions, users and cards tables

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_update_timestamp()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE TABLE users (
            id              VARCHAR(64)     PRIMARY KEY,
            document        VARCHAR(64)     NOT NULL,
            email           VARCHAR(255),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("COMMENT ON TABLE users IS 'Owned by the identity system, read-only for the card service';")
    op.execute("""
        CREATE TABLE cards (
            id              VARCHAR(64)     PRIMARY KEY,
            user_id         VARCHAR(64)     NOT NULL,
            card_type       VARCHAR(10)     NOT NULL,
            status          VARCHAR(10)     NOT NULL,
            balance         NUMERIC(18, 2)  NOT NULL DEFAULT 0,
            credit_limit    NUMERIC(18, 2),
            version         BIGINT          NOT NULL DEFAULT 0,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_cards_user_type       UNIQUE (user_id, card_type),
            CONSTRAINT ck_cards_type            CHECK (card_type IN ('DEBIT', 'CREDIT')),
            CONSTRAINT ck_cards_status          CHECK (status IN ('PENDING', 'ACTIVATED')),
            CONSTRAINT ck_cards_balance_gte_0   CHECK (balance >= 0),
            CONSTRAINT ck_cards_credit_limit    CHECK (
                card_type = 'DEBIT' OR (credit_limit IS NOT NULL AND balance <= credit_limit)
            )
        );
    """)
    op.execute("CREATE INDEX idx_cards_user ON cards (user_id);")
    op.execute("""
        CREATE TRIGGER trg_cards_updated_at
            BEFORE UPDATE ON cards
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE cards IS 'CREDIT balance = remaining available credit';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS cards CASCADE;")
    op.execute("DROP TABLE IF EXISTS users CASCADE;")
    op.execute("DROP FUNCTION IF EXISTS fn_update_timestamp();")
