"""Shared parsing helpers for CLI arguments and config value normalization."""

from __future__ import annotations


def normalize_optional_string(value: object) -> str | None:
    """Normalize an optional value to a stripped non-empty string.

    Args:
        value: Arbitrary input value.

    Returns:
        Stripped string value, or `None` when the value is empty after trimming.
    """

    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    return text


def parse_non_negative_float(value: object, field_name: str) -> float:
    """Parse a float that must be zero or greater.

    Raises:
        ValueError: If the value is not numeric or is negative.
    """

    if isinstance(value, bool):
        raise ValueError(f"`{field_name}` must be a non-negative number.")
    if isinstance(value, (int, float)):
        parsed = float(value)
    else:
        normalized = normalize_optional_string(value)
        if normalized is None:
            raise ValueError(f"`{field_name}` must be a non-negative number.")
        try:
            parsed = float(normalized)
        except ValueError as exc:
            raise ValueError(f"`{field_name}` must be a non-negative number.") from exc
    if parsed < 0 or parsed != parsed:
        raise ValueError(f"`{field_name}` must be a non-negative number.")
    return parsed


def parse_id_list(value: str) -> list[int]:
    """Parse a comma-separated id list such as ``"5, 7,9"`` preserving order.

    Duplicates are kept; the caller decides whether repeats are meaningful.

    Raises:
        ValueError: If the list is empty or any token is not a positive integer.
    """

    tokens = [token.strip() for token in value.split(",")]
    tokens = [token for token in tokens if token]
    if not tokens:
        raise ValueError("Id list must contain at least one id.")

    ids: list[int] = []
    for token in tokens:
        try:
            parsed = int(token)
        except ValueError as exc:
            raise ValueError(f"Invalid id `{token}`: ids must be positive integers.") from exc
        if parsed <= 0:
            raise ValueError(f"Invalid id `{token}`: ids must be positive integers.")
        ids.append(parsed)
    return ids
