"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class CardType(str, Enum):
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"


class CardStatus(str, Enum):
    PENDING = "PENDING"
    ACTIVATED = "ACTIVATED"


class TransactionType(str, Enum):
    PURCHASE = "PURCHASE"
    SAVING = "SAVING"
    PAYMENT_BALANCE = "PAYMENT_BALANCE"


class NotificationEvent(str, Enum):
    """Event names carried in the `type` field of the notification envelope."""
    CARD_CREATE = "CARD.CREATE"
    CARD_ACTIVATE = "CARD.ACTIVATE"
    TRANSACTION_PURCHASE = "TRANSACTION.PURCHASE"
    TRANSACTION_SAVE = "TRANSACTION.SAVE"
    TRANSACTION_PAID = "TRANSACTION.PAID"
    REPORT_ACTIVITY = "REPORT.ACTIVITY"
