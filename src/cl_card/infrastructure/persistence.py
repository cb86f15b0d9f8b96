"""CardRepository — concrete implementation of CardRepositoryProtocol.

Card updates are conditional on the version column (optimistic concurrency):
UPDATE ... WHERE id = :id AND version = :expected_version. Zero rows means
another writer got there first and the caller must re-read and retry.

Transaction ownership: the CALLER (application service) commits or rolls back.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.cl_card.domain.models import Card, ErrorRecord, Transaction, User
from src.cl_common.errors import ConcurrentModificationError, InternalError

# ---------------------------------------------------------------------------
# SQL: users (read-only)
# ---------------------------------------------------------------------------

_GET_USER_SQL = text("""
    SELECT id, document, email
    FROM users
    WHERE id = :user_id
""")

# ---------------------------------------------------------------------------
# SQL: cards
# ---------------------------------------------------------------------------

_CARD_COLUMNS = "id, user_id, card_type, status, balance, credit_limit, version, created_at"

_GET_CARD_SQL = text(f"""
    SELECT {_CARD_COLUMNS}
    FROM cards
    WHERE id = :card_id
""")

_FIND_CARDS_BY_USER_SQL = text(f"""
    SELECT {_CARD_COLUMNS}
    FROM cards
    WHERE user_id = :user_id
      AND (CAST(:card_type AS VARCHAR) IS NULL OR card_type = :card_type)
    ORDER BY created_at ASC
""")

_INSERT_CARD_SQL = text(f"""
    INSERT INTO cards
        (id, user_id, card_type, status, balance, credit_limit, version, created_at)
    VALUES
        (:id, :user_id, :card_type, :status, :balance, :credit_limit, 0, :created_at)
    RETURNING {_CARD_COLUMNS}
""")

_UPDATE_CARD_SQL = text(f"""
    UPDATE cards
    SET status = :status,
        balance = :balance,
        version = version + 1,
        updated_at = NOW()
    WHERE id = :id AND version = :expected_version
    RETURNING {_CARD_COLUMNS}
""")

# ---------------------------------------------------------------------------
# SQL: transactions (append-only)
# ---------------------------------------------------------------------------

_INSERT_TX_SQL = text("""
    INSERT INTO transactions (id, card_id, amount, merchant, tx_type, created_at)
    VALUES (:id, :card_id, :amount, :merchant, :tx_type, :created_at)
    RETURNING id, card_id, amount, merchant, tx_type, created_at
""")

_LIST_TX_SQL = text("""
    SELECT id, card_id, amount, merchant, tx_type, created_at
    FROM transactions
    WHERE card_id = :card_id
    ORDER BY created_at ASC
""")

_COUNT_TX_SQL = text("""
    SELECT COUNT(*)
    FROM transactions
    WHERE card_id = :card_id AND tx_type = :tx_type
""")

# ---------------------------------------------------------------------------
# SQL: error log (append-only)
# ---------------------------------------------------------------------------

_INSERT_ERROR_SQL = text("""
    INSERT INTO card_errors (id, card_id, error_message, raw_message, created_at)
    VALUES (:id, :card_id, :error_message, :raw_message, :created_at)
""")


def _row_to_user(row: object) -> User:
    return User(
        id=row.id,  # type: ignore[attr-defined]
        document=row.document,  # type: ignore[attr-defined]
        email=row.email,  # type: ignore[attr-defined]
    )


def _row_to_card(row: object) -> Card:
    return Card(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        card_type=row.card_type,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        balance=row.balance,  # type: ignore[attr-defined]
        credit_limit=row.credit_limit,  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


def _row_to_tx(row: object) -> Transaction:
    return Transaction(
        id=row.id,  # type: ignore[attr-defined]
        card_id=row.card_id,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        merchant=row.merchant,  # type: ignore[attr-defined]
        tx_type=row.tx_type,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class CardRepository:
    """Concrete repository over PostgreSQL via raw SQL."""

    async def get_user(self, db: AsyncSession, user_id: str) -> User | None:
        result = await db.execute(_GET_USER_SQL, {"user_id": user_id})
        row = result.fetchone()
        return _row_to_user(row) if row else None

    async def get_card(self, db: AsyncSession, card_id: str) -> Card | None:
        result = await db.execute(_GET_CARD_SQL, {"card_id": card_id})
        row = result.fetchone()
        return _row_to_card(row) if row else None

    async def find_cards_by_user(
        self, db: AsyncSession, user_id: str, card_type: str | None = None
    ) -> list[Card]:
        result = await db.execute(
            _FIND_CARDS_BY_USER_SQL, {"user_id": user_id, "card_type": card_type}
        )
        return [_row_to_card(row) for row in result.fetchall()]

    async def insert_card(self, db: AsyncSession, card: Card) -> Card:
        result = await db.execute(
            _INSERT_CARD_SQL,
            {
                "id": card.id,
                "user_id": card.user_id,
                "card_type": card.card_type,
                "status": card.status,
                "balance": card.balance,
                "credit_limit": card.credit_limit,
                "created_at": card.created_at,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Card insert returned no rows; this should never happen")
        return _row_to_card(row)

    async def update_card(
        self, db: AsyncSession, card: Card, expected_version: int
    ) -> Card:
        result = await db.execute(
            _UPDATE_CARD_SQL,
            {
                "id": card.id,
                "status": card.status,
                "balance": card.balance,
                "expected_version": expected_version,
            },
        )
        row = result.fetchone()
        if row is None:
            raise ConcurrentModificationError(card.id, expected_version)
        return _row_to_card(row)

    async def insert_transaction(
        self, db: AsyncSession, tx: Transaction
    ) -> Transaction:
        result = await db.execute(
            _INSERT_TX_SQL,
            {
                "id": tx.id,
                "card_id": tx.card_id,
                "amount": tx.amount,
                "merchant": tx.merchant,
                "tx_type": tx.tx_type,
                "created_at": tx.created_at,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Transaction insert returned no rows; this should never happen")
        return _row_to_tx(row)

    async def list_transactions(
        self, db: AsyncSession, card_id: str
    ) -> list[Transaction]:
        result = await db.execute(_LIST_TX_SQL, {"card_id": card_id})
        return [_row_to_tx(row) for row in result.fetchall()]

    async def count_transactions(
        self, db: AsyncSession, card_id: str, tx_type: str
    ) -> int:
        result = await db.execute(_COUNT_TX_SQL, {"card_id": card_id, "tx_type": tx_type})
        return int(result.scalar_one())

    async def insert_error(self, db: AsyncSession, record: ErrorRecord) -> None:
        await db.execute(
            _INSERT_ERROR_SQL,
            {
                "id": record.id,
                "card_id": record.card_id,
                "error_message": record.error_message,
                "raw_message": record.raw_message,
                "created_at": record.created_at,
            },
        )
