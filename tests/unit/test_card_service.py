"""Unit tests for CardApplicationService against the in-memory fake repository."""

from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from src.cl_card.application.service import CardApplicationService, parse_card_type
from src.cl_card.domain.models import Card, Transaction
from src.cl_common.enums import CardStatus, CardType, TransactionType
from src.cl_common.errors import (
    ActivationThresholdNotMetError,
    CardAlreadyExistsError,
    CardNotFoundError,
    ConcurrentModificationError,
    CreditLimitExceededError,
    InsufficientFundsError,
    InvalidArgumentError,
    InvalidCardOperationError,
    UserNotFoundError,
)


class _FixedScore:
    """Stands in for random.Random with a fixed draw."""

    def __init__(self, score: int) -> None:
        self.score = score

    def randint(self, a: int, b: int) -> int:
        assert (a, b) == (0, 100)
        return self.score


def _make_card(
    card_id: str = "c1",
    user_id: str = "u1",
    card_type: str = "DEBIT",
    status: str = "ACTIVATED",
    balance: str = "100.00",
    credit_limit: str | None = None,
) -> Card:
    return Card(
        id=card_id,
        user_id=user_id,
        card_type=card_type,
        status=status,
        balance=Decimal(balance),
        credit_limit=Decimal(credit_limit) if credit_limit is not None else None,
        created_at=datetime.now(UTC),
    )


def _add_purchases(repo, card_id: str, n: int, tx_type: str = "PURCHASE") -> None:
    for i in range(n):
        repo.transactions.append(
            Transaction(
                id=f"tx-{card_id}-{tx_type}-{i}",
                card_id=card_id,
                amount=Decimal("1.00"),
                merchant="shop",
                tx_type=tx_type,
                created_at=datetime.now(UTC),
            )
        )


def _events(notifier: AsyncMock) -> list[str]:
    return [c.args[0] for c in notifier.send.await_args_list]


@pytest.fixture
def svc(fake_repo, notifier) -> CardApplicationService:
    return CardApplicationService(repo=fake_repo, notifier=notifier, rng=_FixedScore(50))


class TestParseCardType:
    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_blank_defaults_to_debit(self, raw) -> None:
        assert parse_card_type(raw) == CardType.DEBIT

    def test_case_insensitive(self) -> None:
        assert parse_card_type(" credit ") == CardType.CREDIT

    def test_unknown_type_rejected(self) -> None:
        with pytest.raises(InvalidArgumentError):
            parse_card_type("PREPAID")


class TestCreateCard:
    async def test_debit_card_is_activated_with_zero_balance(self, svc, fake_repo, notifier, db) -> None:
        fake_repo.add_user("u1", "u1@example.com")

        card = await svc.create_card(db, "u1", "DEBIT")

        assert card.status == CardStatus.ACTIVATED
        assert card.balance == Decimal("0")
        assert card.credit_limit is None
        assert card.id in fake_repo.cards
        db.commit.assert_awaited()
        event, payload = notifier.send.await_args.args
        assert event == "CARD.CREATE"
        assert payload["type"] == "DEBIT"
        assert payload["userId"] == "u1"
        assert payload["userEmail"] == "u1@example.com"
        assert "date" in payload

    async def test_credit_card_is_pending_with_seeded_limit(self, svc, fake_repo, db) -> None:
        fake_repo.add_user("u1")

        card = await svc.create_card(db, "u1", "credit")

        assert card.status == CardStatus.PENDING
        # 100 + 0.5 * (10_000_000 - 100)
        assert card.balance == Decimal("5000050.00")
        assert card.credit_limit == card.balance
        assert card.used_balance == Decimal("0")

    async def test_credit_balance_in_range_for_random_scores(self, fake_repo, notifier, db) -> None:
        for score in (0, 1, 37, 99, 100):
            fake_repo.cards.clear()
            fake_repo.add_user("u1")
            svc = CardApplicationService(repo=fake_repo, notifier=notifier, rng=_FixedScore(score))
            card = await svc.create_card(db, "u1", "CREDIT")
            assert Decimal("100") <= card.balance <= Decimal("10000000")

    async def test_top_score_reaches_max_limit(self, fake_repo, notifier, db) -> None:
        fake_repo.add_user("u1")
        svc = CardApplicationService(repo=fake_repo, notifier=notifier, rng=_FixedScore(100))

        card = await svc.create_card(db, "u1", "CREDIT")

        assert card.credit_limit == Decimal("10000000.00")
        assert card.balance == Decimal("10000000.00")

    async def test_notify_failure_after_create_records_new_card(self, fake_repo, db) -> None:
        notifier = AsyncMock()
        notifier.send.side_effect = ConnectionError("queue down")
        svc = CardApplicationService(repo=fake_repo, notifier=notifier, rng=_FixedScore(50))
        fake_repo.add_user("u1")

        with pytest.raises(ConnectionError):
            await svc.create_card(db, "u1", "DEBIT")

        (card_id,) = fake_repo.cards
        assert fake_repo.errors[-1].card_id == card_id
        assert fake_repo.errors[-1].error_message == "queue down"

    async def test_missing_type_defaults_to_debit(self, svc, fake_repo, db) -> None:
        fake_repo.add_user("u1")
        card = await svc.create_card(db, "u1", None)
        assert card.card_type == CardType.DEBIT

    async def test_invalid_type_rejected_and_recorded(self, svc, fake_repo, db) -> None:
        fake_repo.add_user("u1")
        with pytest.raises(InvalidArgumentError):
            await svc.create_card(db, "u1", "GOLD")
        assert fake_repo.cards == {}
        assert len(fake_repo.errors) == 1

    async def test_unknown_user_not_found(self, svc, fake_repo, notifier, db) -> None:
        with pytest.raises(UserNotFoundError):
            await svc.create_card(db, "ghost", "DEBIT")
        notifier.send.assert_not_awaited()

    async def test_duplicate_type_conflict_references_existing_card(self, svc, fake_repo, db) -> None:
        fake_repo.add_user("u1")
        first = await svc.create_card(db, "u1", "CREDIT")

        with pytest.raises(CardAlreadyExistsError) as exc_info:
            await svc.create_card(db, "u1", "CREDIT")

        assert exc_info.value.http_status == 409
        assert len(fake_repo.cards) == 1
        assert fake_repo.errors[-1].card_id == first.id
        assert "already has a card" in fake_repo.errors[-1].error_message

    async def test_same_user_may_hold_one_card_of_each_type(self, svc, fake_repo, db) -> None:
        fake_repo.add_user("u1")
        await svc.create_card(db, "u1", "DEBIT")
        await svc.create_card(db, "u1", "CREDIT")
        assert len(fake_repo.cards) == 2


class TestActivateCard:
    async def test_below_threshold_reports_exact_count(self, svc, fake_repo, notifier, db) -> None:
        fake_repo.add_card(_make_card("c2", card_type="CREDIT", status="PENDING",
                                      balance="1000.00", credit_limit="1000.00"))
        _add_purchases(fake_repo, "c2", 7)

        with pytest.raises(ActivationThresholdNotMetError) as exc_info:
            await svc.activate_card(db, "u1")

        assert "7/10" in exc_info.value.message
        assert exc_info.value.current == 7
        assert fake_repo.cards["c2"].status == CardStatus.PENDING
        notifier.send.assert_not_awaited()

    async def test_ten_purchases_activate(self, svc, fake_repo, notifier, db) -> None:
        fake_repo.add_user("u1")
        fake_repo.add_card(_make_card("c2", card_type="CREDIT", status="PENDING",
                                      balance="1000.00", credit_limit="1000.00"))
        _add_purchases(fake_repo, "c2", 10)

        card = await svc.activate_card(db, "u1")

        assert card.status == CardStatus.ACTIVATED
        assert fake_repo.cards["c2"].status == CardStatus.ACTIVATED
        assert _events(notifier) == ["CARD.ACTIVATE"]

    async def test_savings_do_not_count_towards_threshold(self, svc, fake_repo, db) -> None:
        fake_repo.add_card(_make_card("c2", card_type="CREDIT", status="PENDING",
                                      balance="1000.00", credit_limit="1000.00"))
        _add_purchases(fake_repo, "c2", 9)
        _add_purchases(fake_repo, "c2", 5, tx_type="SAVING")

        with pytest.raises(ActivationThresholdNotMetError):
            await svc.activate_card(db, "u1")

    async def test_prefers_credit_card_when_user_has_both(self, svc, fake_repo, db) -> None:
        fake_repo.add_card(_make_card("d1", card_type="DEBIT"))
        fake_repo.add_card(_make_card("c2", card_type="CREDIT", status="PENDING",
                                      balance="1000.00", credit_limit="1000.00"))
        _add_purchases(fake_repo, "c2", 10)

        card = await svc.activate_card(db, "u1")

        assert card.id == "c2"

    async def test_repeat_activation_renotifies(self, svc, fake_repo, notifier, db) -> None:
        fake_repo.add_card(_make_card("c2", card_type="CREDIT", status="PENDING",
                                      balance="1000.00", credit_limit="1000.00"))
        _add_purchases(fake_repo, "c2", 10)

        await svc.activate_card(db, "u1")
        card = await svc.activate_card(db, "u1")

        assert card.status == CardStatus.ACTIVATED
        assert _events(notifier) == ["CARD.ACTIVATE", "CARD.ACTIVATE"]

    async def test_user_without_card_not_found(self, svc, db) -> None:
        with pytest.raises(CardNotFoundError):
            await svc.activate_card(db, "nobody")


class TestPurchase:
    async def test_debit_purchase_decrements_balance(self, svc, fake_repo, notifier, db) -> None:
        fake_repo.add_user("u1")
        fake_repo.add_card(_make_card("c1", balance="100.00"))

        tx = await svc.purchase(db, "c1", "shop", Decimal("40"))

        assert tx.tx_type == TransactionType.PURCHASE
        assert tx.amount == Decimal("40.00")
        assert fake_repo.cards["c1"].balance == Decimal("60.00")
        assert fake_repo.cards["c1"].version == 1
        event, payload = notifier.send.await_args.args
        assert event == "TRANSACTION.PURCHASE"
        assert payload["amount"] == "40.00"
        assert payload["userEmail"] == "u1@example.com"

    async def test_debit_insufficient_funds_leaves_balance(self, svc, fake_repo, notifier, db) -> None:
        fake_repo.add_card(_make_card("c1", balance="100.00"))

        with pytest.raises(InsufficientFundsError):
            await svc.purchase(db, "c1", "shop", Decimal("150"))

        assert fake_repo.cards["c1"].balance == Decimal("100.00")
        assert fake_repo.transactions == []
        notifier.send.assert_not_awaited()
        record = fake_repo.errors[-1]
        assert record.card_id == "c1"
        assert record.raw_message == "PurchaseAsync: merchant=shop, amount=150"

    async def test_credit_purchase_spends_available_credit(self, svc, fake_repo, db) -> None:
        fake_repo.add_card(_make_card("c2", card_type="CREDIT", status="PENDING",
                                      balance="500.00", credit_limit="500.00"))

        await svc.purchase(db, "c2", "shop", Decimal("120.50"))

        card = fake_repo.cards["c2"]
        assert card.balance == Decimal("379.50")
        assert card.used_balance == Decimal("120.50")

    async def test_credit_over_limit_rejected(self, svc, fake_repo, db) -> None:
        fake_repo.add_card(_make_card("c2", card_type="CREDIT", status="PENDING",
                                      balance="50.00", credit_limit="500.00"))

        with pytest.raises(CreditLimitExceededError):
            await svc.purchase(db, "c2", "shop", Decimal("50.01"))

        assert fake_repo.cards["c2"].balance == Decimal("50.00")

    async def test_tenth_credit_purchase_activates_card(self, svc, fake_repo, notifier, db) -> None:
        fake_repo.add_user("u1")
        fake_repo.add_card(_make_card("c2", card_type="CREDIT", status="PENDING",
                                      balance="500.00", credit_limit="500.00"))
        _add_purchases(fake_repo, "c2", 9)

        await svc.purchase(db, "c2", "shop", Decimal("10"))

        assert fake_repo.cards["c2"].status == CardStatus.ACTIVATED
        assert _events(notifier) == ["CARD.ACTIVATE", "TRANSACTION.PURCHASE"]

    async def test_credit_purchase_below_threshold_stays_pending(self, svc, fake_repo, notifier, db) -> None:
        fake_repo.add_card(_make_card("c2", card_type="CREDIT", status="PENDING",
                                      balance="500.00", credit_limit="500.00"))

        await svc.purchase(db, "c2", "shop", Decimal("10"))

        assert fake_repo.cards["c2"].status == CardStatus.PENDING
        assert _events(notifier) == ["TRANSACTION.PURCHASE"]

    async def test_missing_card(self, svc, fake_repo, db) -> None:
        with pytest.raises(CardNotFoundError):
            await svc.purchase(db, "nope", "shop", Decimal("1"))
        assert fake_repo.errors[-1].card_id == "nope"

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5")])
    async def test_non_positive_amount_rejected(self, svc, fake_repo, db, amount) -> None:
        fake_repo.add_card(_make_card("c1", balance="100.00"))
        with pytest.raises(InvalidArgumentError):
            await svc.purchase(db, "c1", "shop", amount)
        assert fake_repo.cards["c1"].balance == Decimal("100.00")

    async def test_notification_failure_propagates_after_commit(self, fake_repo, db) -> None:
        notifier = AsyncMock()
        notifier.send.side_effect = ConnectionError("queue down")
        svc = CardApplicationService(repo=fake_repo, notifier=notifier)
        fake_repo.add_card(_make_card("c1", balance="100.00"))

        with pytest.raises(ConnectionError):
            await svc.purchase(db, "c1", "shop", Decimal("10"))

        # write already committed; not rolled back by the notifier failure
        db.commit.assert_awaited()
        assert len(fake_repo.transactions) == 1
        assert fake_repo.errors[-1].error_message == "queue down"

    async def test_version_conflict_surfaces(self, notifier, db) -> None:
        repo = AsyncMock()
        repo.get_card.return_value = _make_card("c1", balance="100.00")
        repo.update_card.side_effect = ConcurrentModificationError("c1", 0)
        svc = CardApplicationService(repo=repo, notifier=notifier)

        with pytest.raises(ConcurrentModificationError):
            await svc.purchase(db, "c1", "shop", Decimal("10"))

        repo.insert_transaction.assert_not_awaited()
        repo.insert_error.assert_awaited_once()


class TestSave:
    async def test_debit_save_increases_balance(self, svc, fake_repo, notifier, db) -> None:
        fake_repo.add_card(_make_card("c1", balance="100.00"))

        tx = await svc.save(db, "c1", "payroll", Decimal("25.25"))

        assert tx.tx_type == TransactionType.SAVING
        assert fake_repo.cards["c1"].balance == Decimal("125.25")
        assert _events(notifier) == ["TRANSACTION.SAVE"]

    async def test_credit_card_cannot_save(self, svc, fake_repo, db) -> None:
        fake_repo.add_card(_make_card("c2", card_type="CREDIT", balance="10.00", credit_limit="10.00"))

        with pytest.raises(InvalidCardOperationError):
            await svc.save(db, "c2", "payroll", Decimal("5"))

        assert fake_repo.errors[-1].raw_message.startswith("SaveTransactionAsync:")


class TestPayCreditCard:
    async def test_overpayment_floors_used_balance_at_zero(self, svc, fake_repo, notifier, db) -> None:
        # limit 1000, used 50
        fake_repo.add_card(_make_card("c2", card_type="CREDIT", balance="950.00", credit_limit="1000.00"))

        tx = await svc.pay_credit_card(db, "c2", "x", Decimal("99999999"))

        card = fake_repo.cards["c2"]
        assert tx.tx_type == TransactionType.PAYMENT_BALANCE
        assert card.used_balance == Decimal("0")
        assert card.balance == Decimal("1000.00")
        assert card.balance >= 0
        assert _events(notifier) == ["TRANSACTION.PAID"]

    async def test_partial_payment_reduces_used_balance(self, svc, fake_repo, db) -> None:
        fake_repo.add_card(_make_card("c2", card_type="CREDIT", balance="700.00", credit_limit="1000.00"))

        await svc.pay_credit_card(db, "c2", "x", Decimal("100"))

        assert fake_repo.cards["c2"].used_balance == Decimal("200.00")

    async def test_debit_card_cannot_pay(self, svc, fake_repo, db) -> None:
        fake_repo.add_card(_make_card("c1", balance="100.00"))

        with pytest.raises(InvalidCardOperationError):
            await svc.pay_credit_card(db, "c1", "x", Decimal("5"))

        assert fake_repo.cards["c1"].balance == Decimal("100.00")
