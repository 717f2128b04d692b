"""Tests for service results and their translation to HTTP errors."""

import pytest
from fastapi import HTTPException

from shared.utils.results import ErrorCode, ServiceResult, http_exception_from, unwrap


class TestServiceResult:
    def test_success(self) -> None:
        result = ServiceResult.success(42)
        assert result.ok
        assert unwrap(result) == 42

    @pytest.mark.parametrize(
        "code, status_code",
        [
            (ErrorCode.VALIDATION_ERROR, 400),
            (ErrorCode.INVALID_TRANSITION, 400),
            (ErrorCode.INVALID_OPERATION, 400),
            (ErrorCode.UNAUTHORIZED, 401),
            (ErrorCode.FORBIDDEN, 403),
            (ErrorCode.NOT_FOUND, 404),
            (ErrorCode.CONFLICT, 409),
            (ErrorCode.INTERNAL_ERROR, 500),
        ],
    )
    def test_unwrap_failure_raises_with_status(self, code: ErrorCode, status_code: int) -> None:
        result = ServiceResult.failure(code, "mensaje")
        assert not result.ok

        with pytest.raises(HTTPException) as exc_info:
            unwrap(result)

        assert exc_info.value.status_code == status_code
        assert exc_info.value.detail == {"error": code.value, "detail": "mensaje"}

    def test_unauthorized_carries_bearer_challenge(self) -> None:
        error = ServiceResult.failure(ErrorCode.UNAUTHORIZED, "x").error
        assert http_exception_from(error).headers == {"WWW-Authenticate": "Bearer"}
