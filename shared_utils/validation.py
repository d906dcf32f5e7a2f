"""
Input validation and sanitization utilities.
Provides functions for validating and cleaning identifiers and text.
"""

import re
from typing import Optional

from shared_utils.error_handler import ValidationError

_IDENTIFIER_MAX_LENGTH = 128
_IDENTIFIER_PATTERN = re.compile(r'^[A-Za-z0-9_\-.:@]+$')
_CONTROL_CHARACTERS = re.compile(r"[\x00-\x1f\x7f]")


class InputValidator:
    """Utility class for input validation."""

    @staticmethod
    def validate_non_empty_string(value: str, field_name: str) -> str:
        """Validate non-empty string.

        Args:
            value: String to validate
            field_name: Name of field for error messages

        Returns:
            Validated string, stripped

        Raises:
            ValidationError: If validation fails
        """
        if not isinstance(value, str):
            raise ValidationError(f"{field_name} must be a string")

        if not value or not value.strip():
            raise ValidationError(f"{field_name} cannot be empty")

        return value.strip()

    @staticmethod
    def validate_identifier(value: str, field_name: str, max_length: int = _IDENTIFIER_MAX_LENGTH) -> str:
        """Validate an opaque identifier (meeting id, user id).

        Args:
            value: Identifier to validate
            field_name: Name of field for error messages
            max_length: Maximum identifier length

        Returns:
            Validated identifier

        Raises:
            ValidationError: If validation fails
        """
        value = InputValidator.validate_non_empty_string(value, field_name)
        if len(value) > max_length:
            raise ValidationError(f"{field_name} too long (max {max_length} characters)")
        if not _IDENTIFIER_PATTERN.match(value):
            raise ValidationError(f"{field_name} contains invalid characters")
        return value

    @staticmethod
    def validate_token_subject(value: str, field_name: str, max_length: int = 256) -> str:
        """Validate a user id taken from a verified token.

        Issuers choose their own id formats (``auth0|abc``, ``a+b@x.io``), so
        only emptiness, length and control characters are checked.

        Raises:
            ValidationError: If validation fails
        """
        value = InputValidator.validate_non_empty_string(value, field_name)
        if len(value) > max_length:
            raise ValidationError(f"{field_name} too long (max {max_length} characters)")
        if _CONTROL_CHARACTERS.search(value):
            raise ValidationError(f"{field_name} contains control characters")
        return value

    @staticmethod
    def optional_text(value: Optional[str]) -> Optional[str]:
        """Strip optional text, collapsing blank values to None."""
        if value is None:
            return None
        stripped = value.strip()
        return stripped or None
