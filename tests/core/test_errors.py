"""Tests for error types and codes."""

import pytest

from circlerank.core.errors import (
    CircleRankError,
    ConfigError,
    ErrorCode,
    InternalError,
    NotFoundError,
    RankingValidationError,
    SourceError,
    StoreError,
)


class TestErrorCode:
    """Error code value tests."""

    @pytest.mark.parametrize(
        ("code", "expected_range"),
        [
            (ErrorCode.CONFIG_PARSE_ERROR, 2000),
            (ErrorCode.CONFIG_INVALID_VALUE, 2000),
            (ErrorCode.RANKING_DUPLICATE_ITEMS, 3000),
            (ErrorCode.RANKING_SET_MISMATCH, 3000),
            (ErrorCode.STORE_UNAVAILABLE, 4000),
            (ErrorCode.STORE_SCAN_FAILED, 4000),
            (ErrorCode.SOURCE_UNAVAILABLE, 5000),
            (ErrorCode.SCOPE_NOT_FOUND, 5000),
            (ErrorCode.INTERNAL_ERROR, 9000),
            (ErrorCode.INTERNAL_TIMEOUT, 9000),
        ],
    )
    def test_given_error_code_when_checked_then_in_correct_range(
        self, code: ErrorCode, expected_range: int
    ) -> None:
        """Error codes fall within their designated numeric range."""
        # Given
        error_code = code

        # When
        value = error_code.value

        # Then
        assert expected_range <= value < expected_range + 1000


class TestCircleRankError:
    """Base error behavior tests."""

    def test_given_error_when_to_dict_then_serializes_all_fields(self) -> None:
        """Error serializes to dict with all required fields."""
        # Given
        error = CircleRankError(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message="Test message",
            retryable=True,
            details={"key": "value"},
        )

        # When
        result = error.to_dict()

        # Then
        assert result == {
            "code": 2001,
            "error": "CONFIG_PARSE_ERROR",
            "message": "Test message",
            "retryable": True,
            "details": {"key": "value"},
        }

    def test_given_error_when_str_then_human_readable(self) -> None:
        """Error string representation is human readable."""
        # Given
        error = CircleRankError(
            code=ErrorCode.INTERNAL_ERROR,
            message="Something broke",
        )

        # When
        result = str(error)

        # Then
        assert result == "[9001] INTERNAL_ERROR: Something broke"


class TestConfigError:
    """ConfigError factory method tests."""

    @pytest.mark.parametrize(
        ("factory", "kwargs", "expected_code"),
        [
            (
                "parse_error",
                {"path": "/foo", "reason": "bad yaml"},
                ErrorCode.CONFIG_PARSE_ERROR,
            ),
            (
                "invalid_value",
                {"field": "cache.max_age_sec", "value": -1, "reason": "negative"},
                ErrorCode.CONFIG_INVALID_VALUE,
            ),
            ("missing_required", {"field": "database.path"}, ErrorCode.CONFIG_MISSING_REQUIRED),
            ("file_not_found", {"path": "/missing"}, ErrorCode.CONFIG_FILE_NOT_FOUND),
        ],
    )
    def test_given_factory_when_called_then_correct_code(
        self, factory: str, kwargs: dict[str, object], expected_code: ErrorCode
    ) -> None:
        """Factory methods produce errors with correct error codes."""
        # Given
        factory_method = getattr(ConfigError, factory)

        # When
        error = factory_method(**kwargs)

        # Then
        assert error.code == expected_code

    def test_given_parse_error_when_created_then_path_in_details(self) -> None:
        """Parse error includes file path in details."""
        # Given
        path = "/config.yaml"
        reason = "invalid syntax"

        # When
        error = ConfigError.parse_error(path, reason)

        # Then
        assert error.details["path"] == path
        assert reason in error.message


class TestRankingValidationError:
    """Validation errors carry what a form needs to re-render."""

    def test_given_duplicates_when_created_then_sorted_unique_ids(self) -> None:
        """Duplicate ids are reported once each, sorted."""
        # Given
        duplicates = ["b", "a", "b"]

        # When
        error = RankingValidationError.duplicate_items("c1:tasks", duplicates)

        # Then
        assert error.code == ErrorCode.RANKING_DUPLICATE_ITEMS
        assert error.details["duplicates"] == ["a", "b"]
        assert not error.retryable

    def test_given_mismatch_when_created_then_missing_and_unknown_listed(self) -> None:
        """Set mismatch lists both sides of the difference."""
        # Given
        missing = {"c", "a"}
        unknown = {"z"}

        # When
        error = RankingValidationError.set_mismatch("c1:tasks", missing, unknown)

        # Then
        assert error.code == ErrorCode.RANKING_SET_MISMATCH
        assert error.details["missing"] == ["a", "c"]
        assert error.details["unknown"] == ["z"]
        assert "2 missing, 1 unknown" in error.message


class TestRetryability:
    """Store and source failures are retryable, lookups are not."""

    @pytest.mark.parametrize(
        ("error", "retryable"),
        [
            (StoreError.unavailable("upsert", "locked"), True),
            (StoreError.scan_failed("c1:tasks", "io"), True),
            (SourceError.unavailable("items", "c1:tasks", "timeout"), True),
            (NotFoundError.scope("c1:tasks"), False),
        ],
    )
    def test_given_error_when_checked_then_retryable_flag_matches(
        self, error: CircleRankError, retryable: bool
    ) -> None:
        """Retryable flag follows the error family."""
        assert error.retryable is retryable


class TestInternalError:
    """InternalError tests."""

    def test_given_unexpected_error_when_created_then_includes_extras(self) -> None:
        """Unexpected error captures arbitrary extra details."""
        # Given
        message = "boom"
        extras = {"foo": "bar", "count": 42}

        # When
        error = InternalError.unexpected(message, **extras)

        # Then
        assert error.details == extras
        assert error.code == ErrorCode.INTERNAL_ERROR
