"""Domain models for cl_card — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.cl_common.enums import CardStatus, CardType


@dataclass
class User:
    id: str
    document: str
    email: str | None = None


@dataclass
class Card:
    id: str
    user_id: str
    card_type: str                   # CardType value
    status: str                      # CardStatus value
    balance: Decimal                 # DEBIT: funds; CREDIT: remaining available credit
    created_at: datetime
    credit_limit: Decimal | None = None   # CREDIT only
    version: int = 0

    @property
    def is_credit(self) -> bool:
        return self.card_type == CardType.CREDIT

    @property
    def is_activated(self) -> bool:
        return self.status == CardStatus.ACTIVATED

    @property
    def used_balance(self) -> Decimal | None:
        """Amount owed on a CREDIT card; None for DEBIT."""
        if self.credit_limit is None:
            return None
        return self.credit_limit - self.balance


@dataclass
class Transaction:
    id: str
    card_id: str
    amount: Decimal                  # always positive; direction follows tx_type
    merchant: str
    tx_type: str                     # TransactionType value
    created_at: datetime


@dataclass
class ErrorRecord:
    """Append-only audit entry; the service writes these and never reads them back."""

    id: str
    error_message: str
    card_id: str | None = None
    raw_message: str | None = None
    created_at: datetime | None = None
