"""Shared test fixtures.

FakeCardRepository keeps records in dicts and copies them on read/write so
that version checks behave like the real conditional UPDATE.
"""

import dataclasses
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from src.cl_card.domain.models import Card, ErrorRecord, Transaction, User
from src.cl_common.errors import ConcurrentModificationError


class FakeCardRepository:
    def __init__(self) -> None:
        self.users: dict[str, User] = {}
        self.cards: dict[str, Card] = {}
        self.transactions: list[Transaction] = []
        self.errors: list[ErrorRecord] = []

    def add_user(self, user_id: str, email: str | None = None) -> User:
        user = User(id=user_id, document=f"doc-{user_id}", email=email or f"{user_id}@example.com")
        self.users[user_id] = user
        return user

    def add_card(self, card: Card) -> Card:
        self.cards[card.id] = dataclasses.replace(card)
        return card

    async def get_user(self, db, user_id: str) -> User | None:
        return self.users.get(user_id)

    async def get_card(self, db, card_id: str) -> Card | None:
        card = self.cards.get(card_id)
        return dataclasses.replace(card) if card else None

    async def find_cards_by_user(self, db, user_id: str, card_type: str | None = None) -> list[Card]:
        return [
            dataclasses.replace(c)
            for c in self.cards.values()
            if c.user_id == user_id and (card_type is None or c.card_type == card_type)
        ]

    async def insert_card(self, db, card: Card) -> Card:
        self.cards[card.id] = dataclasses.replace(card, version=0)
        return dataclasses.replace(self.cards[card.id])

    async def update_card(self, db, card: Card, expected_version: int) -> Card:
        stored = self.cards.get(card.id)
        if stored is None or stored.version != expected_version:
            raise ConcurrentModificationError(card.id, expected_version)
        self.cards[card.id] = dataclasses.replace(
            stored, status=card.status, balance=card.balance, version=stored.version + 1
        )
        return dataclasses.replace(self.cards[card.id])

    async def insert_transaction(self, db, tx: Transaction) -> Transaction:
        self.transactions.append(tx)
        return tx

    async def list_transactions(self, db, card_id: str) -> list[Transaction]:
        return [t for t in self.transactions if t.card_id == card_id]

    async def count_transactions(self, db, card_id: str, tx_type: str) -> int:
        return sum(1 for t in self.transactions if t.card_id == card_id and t.tx_type == tx_type)

    async def insert_error(self, db, record: ErrorRecord) -> None:
        self.errors.append(record)


@pytest.fixture
def fake_repo() -> FakeCardRepository:
    return FakeCardRepository()


@pytest.fixture
def notifier() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def db() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
async def client() -> AsyncClient:
    """Async HTTP client for testing FastAPI endpoints (lifespan not run)."""
    from src.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
