"""002: create transactions and card_errors tables

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
        CREATE TABLE transactions (
            id              VARCHAR(64)     PRIMARY KEY,
            card_id         VARCHAR(64)     NOT NULL REFERENCES cards (id),
            amount          NUMERIC(18, 2)  NOT NULL,
            merchant        VARCHAR(255)    NOT NULL,
            tx_type         VARCHAR(20)     NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_transactions_amount_gt_0 CHECK (amount > 0),
            CONSTRAINT ck_transactions_type CHECK (
                tx_type IN ('PURCHASE', 'SAVING', 'PAYMENT_BALANCE')
            )
        );
    """)
    op.execute("CREATE INDEX idx_transactions_card_time ON transactions (card_id, created_at);")
    op.execute("COMMENT ON TABLE transactions IS 'Append-only, never updated or deleted';")
    op.execute("""
        CREATE TABLE card_errors (
            id              VARCHAR(64)     PRIMARY KEY,
            card_id         VARCHAR(64),
            error_message   TEXT            NOT NULL,
            raw_message     TEXT,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("COMMENT ON TABLE card_errors IS 'Error log / dead letters, append-only';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS card_errors CASCADE;")
    op.execute("DROP TABLE IF EXISTS transactions CASCADE;")
