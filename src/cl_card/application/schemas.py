"""Pydantic schemas for cl_card API and queue messages."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from src.cl_card.domain.models import Card, Transaction
from src.cl_common.money import money_to_display

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CreateCardRequest(BaseModel):
    """Also the queue envelope: {"userId": "...", "request": "DEBIT" | "CREDIT"}."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., min_length=1, alias="userId")
    request: str | None = Field(None, description="DEBIT or CREDIT; blank means DEBIT")


class ActivateCardRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., min_length=1, alias="userId")


class _AmountRequest(BaseModel):
    merchant: str = Field(..., min_length=1, max_length=255)
    amount: Decimal = Field(..., gt=0, max_digits=18, decimal_places=2)


class PurchaseRequest(_AmountRequest):
    model_config = ConfigDict(populate_by_name=True)

    card_id: str = Field(..., min_length=1, alias="cardId")


class SaveBalanceRequest(_AmountRequest):
    pass


class PayCreditRequest(_AmountRequest):
    pass


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class CardResponse(BaseModel):
    id: str
    user_id: str
    card_type: str
    status: str
    balance: Decimal
    balance_display: str
    credit_limit: Decimal | None
    used_balance: Decimal | None
    version: int
    created_at: str  # ISO8601 string

    @classmethod
    def from_domain(cls, card: Card) -> "CardResponse":
        return cls(
            id=card.id,
            user_id=card.user_id,
            card_type=card.card_type,
            status=card.status,
            balance=card.balance,
            balance_display=money_to_display(card.balance),
            credit_limit=card.credit_limit,
            used_balance=card.used_balance,
            version=card.version,
            created_at=card.created_at.isoformat(),
        )


class TransactionResponse(BaseModel):
    id: str
    card_id: str
    amount: Decimal
    amount_display: str
    merchant: str
    tx_type: str
    created_at: str  # ISO8601 string

    @classmethod
    def from_domain(cls, tx: Transaction) -> "TransactionResponse":
        return cls(
            id=tx.id,
            card_id=tx.card_id,
            amount=tx.amount,
            amount_display=money_to_display(tx.amount),
            merchant=tx.merchant,
            tx_type=tx.tx_type,
            created_at=tx.created_at.isoformat(),
        )
