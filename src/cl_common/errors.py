"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: User
  2xxx: Card lifecycle
  3xxx: Balance / transaction rules
  9xxx: System / input
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: User ---

class UserNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(1001, f"User not found: {user_id}", 404)


# --- 2xxx: Card lifecycle ---

class CardNotFoundError(AppError):
    def __init__(self, card_ref: str) -> None:
        super().__init__(2001, f"Card not found: {card_ref}", 404)


class CardAlreadyExistsError(AppError):
    def __init__(self, card_type: str) -> None:
        super().__init__(
            2002, f"User already has a card of this type: {card_type}", 409
        )


class ActivationThresholdNotMetError(AppError):
    def __init__(self, current: int, required: int) -> None:
        self.current = current
        self.required = required
        super().__init__(
            2003,
            f"Card activation requires {required} purchases: {current}/{required}",
            412,
        )


class ConcurrentModificationError(AppError):
    def __init__(self, card_id: str, expected_version: int) -> None:
        super().__init__(
            2005,
            f"Card {card_id} was modified concurrently (expected version {expected_version})",
            409,
        )


# --- 3xxx: Balance / transaction rules ---

class InsufficientFundsError(AppError):
    def __init__(self, required: object, available: object) -> None:
        super().__init__(
            3001,
            f"Insufficient balance: required {required}, available {available}",
            422,
        )


class CreditLimitExceededError(AppError):
    def __init__(self, required: object, available: object) -> None:
        super().__init__(
            3002,
            f"Credit limit exceeded: required {required}, available credit {available}",
            422,
        )


class InvalidCardOperationError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3003, detail, 422)


# --- 9xxx: System / input ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class InvalidArgumentError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(9003, f"Invalid argument: {detail}", 400)
