"""Input cleaning shared by the services.

All free text (comments, notes, titles) is sanitized with bleach.clean()
to strip HTML tags before it is stored.
"""

from datetime import date, datetime, timezone

import bleach

from salesdesk.errors import ValidationError


def sanitize(text):
    """Strip all HTML tags from user input. None stays None."""
    if text is None:
        return text
    return bleach.clean(str(text), tags=[], strip=True).strip()


def sanitize_optional(text):
    """Sanitize, mapping blank results to None."""
    return sanitize(text) or None


def parse_datetime(value, field="due_date"):
    """Parse an ISO-8601 string (or pass through a datetime).

    Naive values are taken as UTC. Blank -> None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        raw = str(value).strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            raise ValidationError(f"Invalid {field}: {value!r}. Use ISO-8601.")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_date(value, field="date"):
    """Parse YYYY-MM-DD (a datetime string keeps its date part). Blank -> None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        raise ValidationError(f"Invalid {field}: {value!r}. Use YYYY-MM-DD.")


def pick_choice(value, choices, field, default=None):
    """Match ``value`` case-insensitively against ``choices``.

    Returns the canonical spelling, ``default`` when blank, or raises.
    """
    if value is None or str(value).strip() == "":
        return default
    wanted = str(value).strip().lower()
    for choice in choices:
        if choice.lower() == wanted:
            return choice
    raise ValidationError(
        f"Invalid {field} '{value}'. Must be one of: {', '.join(choices)}"
    )


def json_object(payload):
    """Request bodies must be JSON objects. None (no body) -> {}."""
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object.")
    return payload


def parse_limit(value, default=200, maximum=500):
    try:
        limit = int(value) if value not in (None, "") else default
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid limit: {value!r}")
    return max(1, min(limit, maximum))


def parse_flag(value):
    return str(value or "").lower() in ("1", "true", "yes")
