"""Repository Protocol — the store gateway seen by the card and report services.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.cl_card.domain.models import Card, ErrorRecord, Transaction, User


class CardRepositoryProtocol(Protocol):
    async def get_user(self, db: AsyncSession, user_id: str) -> User | None: ...

    async def get_card(self, db: AsyncSession, card_id: str) -> Card | None: ...

    async def find_cards_by_user(
        self, db: AsyncSession, user_id: str, card_type: str | None = None
    ) -> list[Card]: ...

    async def insert_card(self, db: AsyncSession, card: Card) -> Card: ...

    async def update_card(
        self, db: AsyncSession, card: Card, expected_version: int
    ) -> Card:
        """Conditional write: raises ConcurrentModificationError on version mismatch."""
        ...

    async def insert_transaction(
        self, db: AsyncSession, tx: Transaction
    ) -> Transaction: ...

    async def list_transactions(
        self, db: AsyncSession, card_id: str
    ) -> list[Transaction]: ...

    async def count_transactions(
        self, db: AsyncSession, card_id: str, tx_type: str
    ) -> int: ...

    async def insert_error(self, db: AsyncSession, record: ErrorRecord) -> None: ...
