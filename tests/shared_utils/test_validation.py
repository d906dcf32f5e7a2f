"""
Comprehensive tests for shared_utils.validation.

Covers the InputValidator static methods.
"""

import pytest

from shared_utils.validation import InputValidator
from shared_utils.error_handler import ValidationError


# ---------------------------------------------------------------------------
# validate_non_empty_string
# ---------------------------------------------------------------------------


class TestValidateNonEmptyString:
    def test_success(self) -> None:
        assert InputValidator.validate_non_empty_string("hello", "field") == "hello"

    def test_strips_whitespace(self) -> None:
        assert InputValidator.validate_non_empty_string("  hello  ", "field") == "hello"

    def test_empty_raises(self) -> None:
        with pytest.raises(ValidationError, match="cannot be empty"):
            InputValidator.validate_non_empty_string("", "name")

    def test_whitespace_only_raises(self) -> None:
        with pytest.raises(ValidationError, match="cannot be empty"):
            InputValidator.validate_non_empty_string("   ", "test_field")

    def test_non_string_raises(self) -> None:
        with pytest.raises(ValidationError, match="must be a string"):
            InputValidator.validate_non_empty_string(123, "field")  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# validate_identifier
# ---------------------------------------------------------------------------


class TestValidateIdentifier:
    @pytest.mark.parametrize(
        "value",
        ["u1", "user_42", "a-b.c", "auth0:x", "ana@example.com", "9f1c2e"],
    )
    def test_accepts_opaque_ids(self, value: str) -> None:
        assert InputValidator.validate_identifier(value, "userId") == value

    def test_strips(self) -> None:
        assert InputValidator.validate_identifier("  u1 ", "userId") == "u1"

    def test_too_long(self) -> None:
        with pytest.raises(ValidationError, match="too long"):
            InputValidator.validate_identifier("x" * 129, "userId")

    def test_custom_max_length(self) -> None:
        with pytest.raises(ValidationError, match="max 4"):
            InputValidator.validate_identifier("abcde", "meetingId", max_length=4)

    @pytest.mark.parametrize("value", ["has space", "semi;colon", "<script>", "slash/ed"])
    def test_rejects_invalid_characters(self, value: str) -> None:
        with pytest.raises(ValidationError, match="invalid characters"):
            InputValidator.validate_identifier(value, "userId")

    def test_empty_raises(self) -> None:
        with pytest.raises(ValidationError, match="cannot be empty"):
            InputValidator.validate_identifier("", "userId")


# ---------------------------------------------------------------------------
# validate_token_subject
# ---------------------------------------------------------------------------


class TestValidateTokenSubject:
    @pytest.mark.parametrize("value", ["auth0|abc", "a+b@x.io", "google-oauth2|1 2", "u1"])
    def test_accepts_issuer_formats(self, value: str) -> None:
        assert InputValidator.validate_token_subject(value, "userId") == value

    def test_accepts_what_identifier_check_rejects(self) -> None:
        with pytest.raises(ValidationError):
            InputValidator.validate_identifier("a+b@x.io", "userId")
        assert InputValidator.validate_token_subject("a+b@x.io", "userId") == "a+b@x.io"

    @pytest.mark.parametrize("value", ["u1\nadmin", "u1\x00", "tab\there", "del\x7f"])
    def test_rejects_control_characters(self, value: str) -> None:
        with pytest.raises(ValidationError, match="control characters"):
            InputValidator.validate_token_subject(value, "userId")

    def test_too_long(self) -> None:
        with pytest.raises(ValidationError, match="max 256"):
            InputValidator.validate_token_subject("x" * 257, "userId")

    def test_empty_raises(self) -> None:
        with pytest.raises(ValidationError, match="cannot be empty"):
            InputValidator.validate_token_subject("  ", "userId")


# ---------------------------------------------------------------------------
# optional_text
# ---------------------------------------------------------------------------


class TestOptionalText:
    def test_none(self) -> None:
        assert InputValidator.optional_text(None) is None

    def test_blank_collapses_to_none(self) -> None:
        assert InputValidator.optional_text("   ") is None

    def test_strips(self) -> None:
        assert InputValidator.optional_text("  Ana ") == "Ana"
