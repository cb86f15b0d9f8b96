"""Tests for cl_common.errors and cl_common.response."""

from src.cl_common.errors import (
    ActivationThresholdNotMetError,
    AppError,
    CardAlreadyExistsError,
    CardNotFoundError,
    ConcurrentModificationError,
    CreditLimitExceededError,
    InsufficientFundsError,
    InvalidArgumentError,
    InvalidCardOperationError,
    UserNotFoundError,
)
from src.cl_common.response import error_response, success_response


class TestAppError:
    def test_base_error(self) -> None:
        err = AppError(code=9002, message="Internal error")
        assert err.code == 9002
        assert err.message == "Internal error"
        assert err.http_status == 500
        assert isinstance(err, Exception)


class TestSpecificErrors:
    def test_not_found(self) -> None:
        assert UserNotFoundError("u1").http_status == 404
        err = CardNotFoundError("c1")
        assert err.code == 2001
        assert "c1" in err.message

    def test_conflicts(self) -> None:
        assert CardAlreadyExistsError("CREDIT").http_status == 409
        err = ConcurrentModificationError("c1", 3)
        assert err.code == 2005
        assert err.http_status == 409
        assert "version 3" in err.message

    def test_activation_threshold(self) -> None:
        err = ActivationThresholdNotMetError(current=7, required=10)
        assert err.http_status == 412
        assert err.message.endswith("7/10")

    def test_balance_rules(self) -> None:
        err = InsufficientFundsError(required="150.00", available="100.00")
        assert err.code == 3001
        assert "150.00" in err.message and "100.00" in err.message
        assert CreditLimitExceededError("1", "0").code == 3002
        assert InvalidCardOperationError("Only credit cards can pay").message == "Only credit cards can pay"

    def test_invalid_argument(self) -> None:
        err = InvalidArgumentError("start is required")
        assert err.http_status == 400
        assert err.message == "Invalid argument: start is required"


class TestApiResponse:
    def test_success(self) -> None:
        resp = success_response({"id": "abc"})
        assert resp.code == 0
        assert resp.data == {"id": "abc"}
        assert resp.request_id.startswith("req_")

    def test_error(self) -> None:
        resp = error_response(3001, "Insufficient balance")
        assert resp.code == 3001
        assert resp.data is None
        assert set(resp.model_dump()) == {"code", "message", "data", "timestamp", "request_id"}
