"""Validation layer for user-supplied scalars.

Pure functions: each returns the sanitized value or raises InvalidRequestError
before anything reaches storage. Limits come from watchtogether.limits.

Date values are epoch milliseconds (UTC).
"""

import re
import time

from lxml.etree import ParserError
from lxml.html import fragment_fromstring

from watchtogether import limits
from watchtogether.errors import ApiErrorCode, InvalidRequestError

_WHITESPACE_RE = re.compile(r"\s+")
# Characters lxml refuses to parse: C0 controls other than tab, newline and
# carriage return, lone surrogates and the U+FFFE/U+FFFF noncharacters
_NON_XML_RE = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def strip_html(value: str) -> str:
    """Return the visible text of an HTML fragment, whitespace-collapsed."""
    value = _NON_XML_RE.sub("", value).strip()
    if not value:
        return ""
    try:
        text = fragment_fromstring(value, create_parent="div").text_content()
    except ParserError:
        # Nothing but markup (e.g. a lone comment)
        return ""
    return _WHITESPACE_RE.sub(" ", text).strip()


def validate_string(
    value: str | None,
    field_name: str,
    *,
    required: bool = False,
    min_length: int | None = None,
    max_length: int | None = None,
    code: ApiErrorCode = ApiErrorCode.E_INVALID_REQUEST,
) -> str | None:
    """Sanitize and bound a free-text value.

    HTML is stripped, whitespace collapsed and trimmed. An empty result is
    returned as None unless the field is required.
    """
    if value is None:
        if required:
            raise InvalidRequestError(code, f"{field_name} is required")
        return None

    sanitized = strip_html(value)

    if not sanitized:
        if required:
            raise InvalidRequestError(code, f"{field_name} cannot be empty")
        return None

    if min_length is not None and len(sanitized) < min_length:
        plural = "" if min_length == 1 else "s"
        raise InvalidRequestError(
            code, f"{field_name} must be at least {min_length} character{plural}"
        )

    if max_length is not None and len(sanitized) > max_length:
        raise InvalidRequestError(
            code,
            f"{field_name} must be at most {max_length} characters (currently {len(sanitized)})",
        )

    return sanitized


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_rating(value: int | None, field_name: str = "Rating") -> int | None:
    """Rating must be a whole number in [RATING_MIN, RATING_MAX]; None passes."""
    if value is None:
        return None

    if not _is_int(value):
        raise InvalidRequestError(
            ApiErrorCode.E_RATING_INVALID, f"{field_name} must be a whole number"
        )

    if value < limits.RATING_MIN or value > limits.RATING_MAX:
        raise InvalidRequestError(
            ApiErrorCode.E_RATING_INVALID,
            f"{field_name} must be between {limits.RATING_MIN} and {limits.RATING_MAX}",
        )

    return value


def validate_tags(tags: list[str] | None) -> list[str] | None:
    """Sanitize, drop empties and dedupe tags case-insensitively (first spelling wins)."""
    if not tags:
        return None

    unique: list[str] = []
    seen: set[str] = set()
    for tag in tags:
        cleaned = validate_string(
            tag,
            "Tag",
            max_length=limits.TAG_LENGTH_MAX,
            code=ApiErrorCode.E_TAGS_INVALID,
        )
        if cleaned is None:
            continue
        key = cleaned.lower()
        if key in seen:
            continue
        seen.add(key)
        unique.append(cleaned)

    if len(unique) > limits.TAGS_MAX:
        raise InvalidRequestError(
            ApiErrorCode.E_TAGS_INVALID,
            f"Maximum {limits.TAGS_MAX} tags allowed (you have {len(unique)})",
        )

    return unique or None


def validate_season_number(season_number: int) -> int:
    if not _is_int(season_number):
        raise InvalidRequestError(
            ApiErrorCode.E_SEASON_INVALID, "Season number must be a whole number"
        )

    if season_number < limits.SEASON_NUMBER_MIN or season_number > limits.SEASON_NUMBER_MAX:
        raise InvalidRequestError(
            ApiErrorCode.E_SEASON_INVALID,
            f"Season number must be between {limits.SEASON_NUMBER_MIN} "
            f"and {limits.SEASON_NUMBER_MAX}",
        )

    return season_number


def validate_dates(
    started_at: int | None,
    finished_at: int | None,
    *,
    now: int | None = None,
    allow_future: bool = False,
) -> None:
    """Check a (start, finish) pair after merging with stored values.

    Neither date may lie in the future and finish may not precede start.
    """
    if now is None:
        now = now_ms()

    if not allow_future:
        if started_at is not None and started_at > now:
            raise InvalidRequestError(
                ApiErrorCode.E_DATES_INVALID, "Start date cannot be in the future"
            )
        if finished_at is not None and finished_at > now:
            raise InvalidRequestError(
                ApiErrorCode.E_DATES_INVALID, "Finish date cannot be in the future"
            )

    if started_at is not None and finished_at is not None and finished_at < started_at:
        raise InvalidRequestError(
            ApiErrorCode.E_DATES_INVALID, "Finish date cannot be before start date"
        )


def validate_positive_int(value: int, field_name: str) -> int:
    if not _is_int(value) or value <= 0:
        raise InvalidRequestError(
            ApiErrorCode.E_INVALID_REQUEST, f"{field_name} must be a positive integer"
        )
    return value


def validate_email(email: str) -> str:
    """Trim and check the basic local@domain.tld shape."""
    trimmed = (email or "").strip()
    if not _EMAIL_RE.match(trimmed):
        raise InvalidRequestError(ApiErrorCode.E_EMAIL_INVALID, "Invalid email format")
    return trimmed


def validate_array_length(items: list, max_length: int, field_name: str) -> None:
    if len(items) > max_length:
        raise InvalidRequestError(
            ApiErrorCode.E_INVALID_REQUEST,
            f"Maximum {max_length} {field_name} allowed (you have {len(items)})",
        )
