"""Field validation engine for server-defined registration forms"""

import logging
import re
from datetime import date
from functools import lru_cache
from typing import Mapping, Optional, Pattern

from registration_flow.config import settings
from registration_flow.domain.models import (
    CHOICE_FIELD_TYPES,
    FieldDescriptor,
    FieldType,
    FieldValue,
    Numeric,
    RegistrationFormSchema,
    ValidationErrorMap,
    coerce_value,
    default_value,
)
from registration_flow.utils.date_utils import age_in_years, parse_calendar_date

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Canonical phone rule: formatting characters are ignored, then an optional
# leading "+" followed by 1-16 digits.
PHONE_RE = re.compile(r"^\+?\d{1,16}$")
PHONE_FORMATTING_RE = re.compile(r"[\s\-.()]")


@lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> Optional[Pattern[str]]:
    """
    Compile a backend-supplied validation regex once.

    Patterns are untrusted data: a pattern that fails to compile is logged
    and treated as no constraint.
    """
    try:
        return re.compile(pattern)
    except re.error as e:
        logger.warning(
            "Ignoring malformed validation pattern",
            extra={"pattern": pattern, "error": str(e)},
        )
        return None


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_RE.match(value.strip()))


def is_valid_phone(value: str) -> bool:
    return bool(PHONE_RE.match(PHONE_FORMATTING_RE.sub("", value.strip())))


def is_date_of_birth_field(descriptor: FieldDescriptor) -> bool:
    return (
        descriptor.field_name.lower() in {name.lower() for name in settings.date_of_birth_fields}
        or "birth" in descriptor.label.lower()
    )


def _type_error(descriptor: FieldDescriptor, value: FieldValue, today: date) -> Optional[str]:
    """Type-specific rules; returns the default message of the first failure"""
    label = descriptor.label
    text = value.as_string()

    if descriptor.field_type == FieldType.EMAIL:
        if not is_valid_email(text):
            return f"{label} must be a valid email address"

    elif descriptor.field_type == FieldType.TEL:
        if not is_valid_phone(text):
            return f"{label} must be a valid phone number"

    elif descriptor.field_type == FieldType.NUMBER:
        number = value.number if isinstance(value, Numeric) else Numeric(text).number
        if number is None:
            return f"{label} must be a number"

    elif descriptor.field_type == FieldType.DATE:
        parsed = parse_calendar_date(text)
        if parsed is None:
            return f"{label} must be a valid date"
        if is_date_of_birth_field(descriptor):
            if parsed > today:
                return f"{label} cannot be in the future"
            if age_in_years(parsed, today) > settings.max_age_years:
                return f"{label} is not a valid date of birth"

    elif descriptor.field_type in CHOICE_FIELD_TYPES:
        if text not in {option.value for option in descriptor.options}:
            return f"{label} must be one of the available options"

    return None


def validate_field(
    descriptor: FieldDescriptor,
    value: object,
    today: Optional[date] = None,
) -> Optional[str]:
    """
    Validate one value against its descriptor.

    Rules run in fixed order and the first failure wins:
    1. Required: empty, blank or unchecked values fail
    2. Empty optional values pass without further checks
    3. Pattern: validation_regex must match the value's string form
    4. Type-specific: email, tel, number, date (+ date of birth bounds), choices

    The descriptor's error_message, when set, replaces every default message.

    Returns:
        Error message, or None if the value is acceptable
    """
    today = today or date.today()
    value = coerce_value(descriptor.field_type, value)

    if value.is_empty():
        if descriptor.is_required:
            return descriptor.error_message or f"{descriptor.label} is required"
        return None

    if descriptor.validation_regex:
        pattern = compile_pattern(descriptor.validation_regex)
        if pattern is not None and not pattern.search(value.as_string()):
            return descriptor.error_message or f"{descriptor.label} format is invalid"

    error = _type_error(descriptor, value, today)
    if error is not None:
        return descriptor.error_message or error

    return None


def validate_all(
    schema: RegistrationFormSchema,
    values: Mapping[str, object],
    today: Optional[date] = None,
) -> ValidationErrorMap:
    """
    Validate every field of a schema in ascending sort_order.

    Pure function: fields that pass are omitted from the result, and a field
    missing from values is validated as its type default.
    """
    errors: ValidationErrorMap = {}
    for descriptor in schema.ordered_fields():
        value = values.get(descriptor.field_name, default_value(descriptor.field_type))
        error = validate_field(descriptor, value, today)
        if error is not None:
            errors[descriptor.field_name] = error
    return errors
