"""Required-field validation for inbound records."""

from typing import Any, Iterable, List, Mapping

from chu.errors import ValidationError


def _is_blank(value: Any) -> bool:
    return value is None or value == ""


def missing_fields(record: Mapping[str, Any], required: Iterable[str]) -> List[str]:
    """
    Return the required fields that are absent, null or empty in `record`.

    Zero, False and whitespace count as present values. Order follows `required`.
    """
    return [field for field in required if _is_blank(record.get(field))]


def non_string_fields(record: Mapping[str, Any], fields: Iterable[str]) -> List[str]:
    """Return the present `fields` whose value is not a string."""
    return [
        field
        for field in fields
        if not _is_blank(record.get(field)) and not isinstance(record[field], str)
    ]


def validate_record(
    record: Mapping[str, Any],
    required: Iterable[str],
    string_fields: Iterable[str] = (),
) -> None:
    """
    Raise ValidationError if any required field is missing, or if any of
    `string_fields` holds something other than a string.
    """
    missing = missing_fields(record, required)
    invalid = non_string_fields(record, string_fields)
    if missing or invalid:
        raise ValidationError(missing, invalid)
