"""
Tests for error handling classes.

Tests cover:
- ErrorCode values and their HTTP status mapping
- PronounceError creation and serialization (to_dict)
- Subclass codes and details preservation
"""
import pytest

from pronounce_ms.core.errors import (
    STATUS_BY_CODE,
    ErrorCode,
    InternalError,
    NotFoundError,
    PronounceError,
    UpstreamFailure,
    UpstreamTimeout,
    ValidationError,
)


class TestErrorCode:
    """Tests for ErrorCode constants."""

    def test_codes(self):
        assert ErrorCode.INVALID_INPUT == "INVALID_INPUT"
        assert ErrorCode.NOT_FOUND == "NOT_FOUND"
        assert ErrorCode.UPSTREAM_TIMEOUT == "UPSTREAM_TIMEOUT"
        assert ErrorCode.UPSTREAM_FAILED == "UPSTREAM_FAILED"
        assert ErrorCode.INTERNAL_ERROR == "INTERNAL_ERROR"

    def test_status_mapping(self):
        assert STATUS_BY_CODE == {
            "INVALID_INPUT": 400,
            "NOT_FOUND": 404,
            "UPSTREAM_FAILED": 500,
            "UPSTREAM_TIMEOUT": 504,
            "INTERNAL_ERROR": 500,
        }


class TestPronounceError:
    """Tests for the PronounceError base exception."""

    def test_creation_with_message(self):
        error = PronounceError("Test error message")
        assert error.message == "Test error message"
        assert str(error) == "Test error message"

    def test_default_code(self):
        error = PronounceError("x")
        assert error.code == ErrorCode.INTERNAL_ERROR
        assert error.http_status == 500

    def test_unknown_code_maps_to_500(self):
        assert PronounceError("x", code="SOMETHING_ELSE").http_status == 500

    def test_to_dict_without_details(self):
        assert PronounceError("boom", ErrorCode.NOT_FOUND).to_dict() == {
            "success": False,
            "error": "NOT_FOUND",
            "message": "boom",
        }

    def test_to_dict_with_details(self):
        error = PronounceError("boom", ErrorCode.NOT_FOUND, {"cacheKey": "abc"})
        assert error.to_dict()["details"] == {"cacheKey": "abc"}

    def test_can_be_raised_and_caught(self):
        with pytest.raises(PronounceError) as exc_info:
            raise PronounceError("raised")
        assert exc_info.value.message == "raised"


class TestSubclasses:
    """Each subclass carries its own code and status."""

    @pytest.mark.parametrize(
        "error,code,status",
        [
            (ValidationError("bad", "TEXT_REQUIRED"), ErrorCode.INVALID_INPUT, 400),
            (NotFoundError("gone"), ErrorCode.NOT_FOUND, 404),
            (UpstreamTimeout("slow"), ErrorCode.UPSTREAM_TIMEOUT, 504),
            (UpstreamFailure("down"), ErrorCode.UPSTREAM_FAILED, 500),
            (InternalError(), ErrorCode.INTERNAL_ERROR, 500),
        ],
    )
    def test_code_and_status(self, error, code, status):
        assert isinstance(error, PronounceError)
        assert error.code == code
        assert error.http_status == status

    def test_validation_reason_in_details(self):
        error = ValidationError("Too long", "TEXT_TOO_LONG", {"maxLength": 100})
        assert error.reason == "TEXT_TOO_LONG"
        assert error.to_dict()["details"] == {"reason": "TEXT_TOO_LONG", "maxLength": 100}

    def test_internal_error_default_message(self):
        assert InternalError().message == "Internal server error"
