"""CardApplicationService — card lifecycle and balance-mutating operations.

Each mutating operation runs as one unit of work on the caller's session:
read card -> check rules -> conditional update (version check) -> append
transaction -> commit -> notify. Any failure is written to the error log by
ErrorRecorder and the original exception is re-raised unchanged.

Notifications go out after commit and are not rolled back if they fail.

CREDIT balance is the remaining available credit: purchases spend it down,
payments restore it up to credit_limit. The owed amount is Card.used_balance.
"""

import logging
import random
import uuid
from decimal import Decimal
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.cl_card.application.error_recorder import ErrorRecorder
from src.cl_card.domain.models import Card, Transaction, User
from src.cl_card.domain.repository import CardRepositoryProtocol
from src.cl_card.domain.scoring import credit_limit_for_score, draw_score
from src.cl_card.infrastructure.persistence import CardRepository
from src.cl_common.datetime_utils import utc_now
from src.cl_common.enums import CardStatus, CardType, NotificationEvent, TransactionType
from src.cl_common.errors import (
    ActivationThresholdNotMetError,
    CardAlreadyExistsError,
    CardNotFoundError,
    CreditLimitExceededError,
    InsufficientFundsError,
    InvalidArgumentError,
    InvalidCardOperationError,
    UserNotFoundError,
)
from src.cl_common.money import ZERO, require_positive
from src.cl_notify.domain.notifier import NotifierProtocol
from src.cl_notify.infrastructure.redis_notifier import RedisNotifier

logger = logging.getLogger(__name__)


def parse_card_type(requested_type: str | None) -> CardType:
    """Case-insensitive; None or blank means DEBIT."""
    if requested_type is None or not requested_type.strip():
        return CardType.DEBIT
    try:
        return CardType(requested_type.strip().upper())
    except ValueError as exc:
        raise InvalidArgumentError(
            f"card type must be DEBIT or CREDIT, got {requested_type!r}"
        ) from exc


class CardApplicationService:
    def __init__(
        self,
        repo: CardRepositoryProtocol | None = None,
        notifier: NotifierProtocol | None = None,
        rng: random.Random | None = None,
        error_recorder: ErrorRecorder | None = None,
        activation_threshold: int | None = None,
    ) -> None:
        self._repo: CardRepositoryProtocol = repo or CardRepository()
        self._notifier: NotifierProtocol = notifier or RedisNotifier()
        self._rng = rng or random.Random()
        self._errors = error_recorder or ErrorRecorder(self._repo)
        self._threshold = (
            activation_threshold
            if activation_threshold is not None
            else settings.ACTIVATION_PURCHASE_THRESHOLD
        )

    # ------------------------------------------------------------------
    # Card lifecycle
    # ------------------------------------------------------------------

    async def create_card(
        self, db: AsyncSession, user_id: str, requested_type: str | None
    ) -> Card:
        card_ref: str | None = None
        try:
            card_type = parse_card_type(requested_type)
            user = await self._repo.get_user(db, user_id)
            if user is None:
                raise UserNotFoundError(user_id)

            existing = await self._repo.find_cards_by_user(db, user_id, card_type.value)
            if existing:
                card_ref = existing[0].id
                raise CardAlreadyExistsError(card_type.value)

            card = self._new_card(user_id, card_type)
            try:
                card = await self._repo.insert_card(db, card)
                await db.commit()
            except IntegrityError as exc:
                # Lost the race against a concurrent create for the same (user, type)
                raise CardAlreadyExistsError(card_type.value) from exc
            card_ref = card.id
            logger.info(
                "Card created: id=%s user=%s type=%s status=%s",
                card.id, user_id, card.card_type, card.status,
            )

            await self._notifier.send(
                NotificationEvent.CARD_CREATE.value,
                {
                    "date": utc_now().isoformat(),
                    "type": card.card_type,
                    "balance": str(card.balance),
                    "userId": user_id,
                    "userEmail": user.email,
                },
            )
            return card
        except Exception as exc:
            await self._errors.log_error(
                db, card_ref, exc, f"CreateCardAsync: userId={user_id}, request={requested_type}"
            )
            raise

    async def activate_card(self, db: AsyncSession, user_id: str) -> Card:
        card_ref: str | None = None
        try:
            cards = await self._repo.find_cards_by_user(db, user_id)
            if not cards:
                raise CardNotFoundError(f"user {user_id}")
            # Only CREDIT cards start PENDING, so prefer it when the user holds both
            card = next((c for c in cards if c.is_credit), cards[0])
            card_ref = card.id

            purchases = await self._repo.count_transactions(
                db, card.id, TransactionType.PURCHASE.value
            )
            if purchases < self._threshold:
                raise ActivationThresholdNotMetError(purchases, self._threshold)

            card.status = CardStatus.ACTIVATED.value
            card = await self._repo.update_card(db, card, card.version)
            await db.commit()
            logger.info("Card activated: id=%s purchases=%d", card.id, purchases)

            user = await self._repo.get_user(db, user_id)
            await self._notify_activation(card, user)
            return card
        except Exception as exc:
            await self._errors.log_error(db, card_ref, exc, f"ActivateCardAsync: userId={user_id}")
            raise

    async def get_card(self, db: AsyncSession, card_id: str) -> Card:
        card = await self._repo.get_card(db, card_id)
        if card is None:
            raise CardNotFoundError(card_id)
        return card

    # ------------------------------------------------------------------
    # Balance-mutating operations
    # ------------------------------------------------------------------

    async def purchase(
        self, db: AsyncSession, card_id: str, merchant: str, amount: Decimal
    ) -> Transaction:
        try:
            value = require_positive(amount)
            card = await self.get_card(db, card_id)
            expected_version = card.version

            if card.balance < value:
                if card.is_credit:
                    raise CreditLimitExceededError(value, card.balance)
                raise InsufficientFundsError(value, card.balance)
            card.balance = card.balance - value

            card = await self._repo.update_card(db, card, expected_version)
            tx = await self._repo.insert_transaction(
                db, self._new_transaction(card.id, merchant, value, TransactionType.PURCHASE)
            )
            activated = False
            if card.is_credit and not card.is_activated:
                card, activated = await self._activate_if_eligible(db, card)
            await db.commit()

            user = await self._repo.get_user(db, card.user_id)
            if activated:
                await self._notify_activation(card, user)
            await self._notifier.send(
                NotificationEvent.TRANSACTION_PURCHASE.value,
                self._transaction_payload(card, tx, user),
            )
            return tx
        except Exception as exc:
            await self._errors.log_error(
                db, card_id, exc, f"PurchaseAsync: merchant={merchant}, amount={amount}"
            )
            raise

    async def save(
        self, db: AsyncSession, card_id: str, merchant: str, amount: Decimal
    ) -> Transaction:
        try:
            value = require_positive(amount)
            card = await self.get_card(db, card_id)
            if card.card_type != CardType.DEBIT:
                raise InvalidCardOperationError("Only debit cards can save balance")
            expected_version = card.version
            card.balance = card.balance + value

            card = await self._repo.update_card(db, card, expected_version)
            tx = await self._repo.insert_transaction(
                db, self._new_transaction(card.id, merchant, value, TransactionType.SAVING)
            )
            await db.commit()

            user = await self._repo.get_user(db, card.user_id)
            await self._notifier.send(
                NotificationEvent.TRANSACTION_SAVE.value,
                self._transaction_payload(card, tx, user),
            )
            return tx
        except Exception as exc:
            await self._errors.log_error(
                db, card_id, exc, f"SaveTransactionAsync: merchant={merchant}, amount={amount}"
            )
            raise

    async def pay_credit_card(
        self, db: AsyncSession, card_id: str, merchant: str, amount: Decimal
    ) -> Transaction:
        try:
            value = require_positive(amount)
            card = await self.get_card(db, card_id)
            if card.card_type != CardType.CREDIT:
                raise InvalidCardOperationError("Only credit cards can pay")
            expected_version = card.version
            # Used balance floors at zero: available credit never exceeds the limit
            limit = card.credit_limit if card.credit_limit is not None else card.balance
            card.balance = min(limit, card.balance + value)

            card = await self._repo.update_card(db, card, expected_version)
            tx = await self._repo.insert_transaction(
                db,
                self._new_transaction(card.id, merchant, value, TransactionType.PAYMENT_BALANCE),
            )
            await db.commit()

            user = await self._repo.get_user(db, card.user_id)
            await self._notifier.send(
                NotificationEvent.TRANSACTION_PAID.value,
                self._transaction_payload(card, tx, user),
            )
            return tx
        except Exception as exc:
            await self._errors.log_error(
                db, card_id, exc, f"PayCreditCardAsync: merchant={merchant}, amount={amount}"
            )
            raise

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _new_card(self, user_id: str, card_type: CardType) -> Card:
        if card_type == CardType.CREDIT:
            score = draw_score(self._rng)
            limit = credit_limit_for_score(score)
            logger.debug("Credit score for user %s: %d -> limit %s", user_id, score, limit)
            return Card(
                id=str(uuid.uuid4()),
                user_id=user_id,
                card_type=CardType.CREDIT.value,
                status=CardStatus.PENDING.value,
                balance=limit,
                credit_limit=limit,
                created_at=utc_now(),
            )
        return Card(
            id=str(uuid.uuid4()),
            user_id=user_id,
            card_type=CardType.DEBIT.value,
            status=CardStatus.ACTIVATED.value,
            balance=ZERO,
            created_at=utc_now(),
        )

    @staticmethod
    def _new_transaction(
        card_id: str, merchant: str, amount: Decimal, tx_type: TransactionType
    ) -> Transaction:
        return Transaction(
            id=str(uuid.uuid4()),
            card_id=card_id,
            amount=amount,
            merchant=merchant,
            tx_type=tx_type.value,
            created_at=utc_now(),
        )

    async def _activate_if_eligible(
        self, db: AsyncSession, card: Card
    ) -> tuple[Card, bool]:
        purchases = await self._repo.count_transactions(
            db, card.id, TransactionType.PURCHASE.value
        )
        if purchases < self._threshold:
            return card, False
        card.status = CardStatus.ACTIVATED.value
        card = await self._repo.update_card(db, card, card.version)
        logger.info("Card activated by purchase: id=%s purchases=%d", card.id, purchases)
        return card, True

    async def _notify_activation(self, card: Card, user: User | None) -> None:
        await self._notifier.send(
            NotificationEvent.CARD_ACTIVATE.value,
            {
                "date": utc_now().isoformat(),
                "type": card.card_type,
                "cardId": card.id,
                "balance": str(card.balance),
                "userId": card.user_id,
                "userEmail": user.email if user else None,
            },
        )

    @staticmethod
    def _transaction_payload(
        card: Card, tx: Transaction, user: User | None
    ) -> dict[str, Any]:
        return {
            "date": utc_now().isoformat(),
            "type": tx.tx_type,
            "amount": str(tx.amount),
            "merchant": tx.merchant,
            "cardId": card.id,
            "balance": str(card.balance),
            "userId": card.user_id,
            "userEmail": user.email if user else None,
        }
