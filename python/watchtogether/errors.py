"""API error definitions.

All API errors are defined here with their corresponding HTTP status codes.
"""

from enum import Enum


class ApiErrorCode(str, Enum):
    """Standardized error codes for the API.

    Format: E_CATEGORY_NAME
    """

    # Authentication errors (401)
    E_UNAUTHENTICATED = "E_UNAUTHENTICATED"

    # Authorization errors (403)
    E_FORBIDDEN = "E_FORBIDDEN"
    E_INTERNAL_ONLY = "E_INTERNAL_ONLY"
    E_OWNER_REQUIRED = "E_OWNER_REQUIRED"

    # Not found errors (404)
    E_NOT_FOUND = "E_NOT_FOUND"
    E_LIST_NOT_FOUND = "E_LIST_NOT_FOUND"
    E_ITEM_NOT_FOUND = "E_ITEM_NOT_FOUND"
    E_MEDIA_NOT_FOUND = "E_MEDIA_NOT_FOUND"
    E_MEMBER_NOT_FOUND = "E_MEMBER_NOT_FOUND"
    E_USER_NOT_FOUND = "E_USER_NOT_FOUND"

    # Validation errors (400)
    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_NAME_INVALID = "E_NAME_INVALID"
    E_INVALID_KIND = "E_INVALID_KIND"
    E_RATING_INVALID = "E_RATING_INVALID"
    E_TAGS_INVALID = "E_TAGS_INVALID"
    E_DATES_INVALID = "E_DATES_INVALID"
    E_SEASON_INVALID = "E_SEASON_INVALID"
    E_EMAIL_INVALID = "E_EMAIL_INVALID"
    E_ROSTER_FULL = "E_ROSTER_FULL"
    E_OWNER_TARGET_FORBIDDEN = "E_OWNER_TARGET_FORBIDDEN"
    E_STATUS_NOT_ALLOWED = "E_STATUS_NOT_ALLOWED"

    # Conflict errors (409)
    E_ITEM_EXISTS = "E_ITEM_EXISTS"
    E_MEMBER_EXISTS = "E_MEMBER_EXISTS"

    # Server errors
    E_UPSTREAM_UNAVAILABLE = "E_UPSTREAM_UNAVAILABLE"  # 502
    E_AUTH_UNAVAILABLE = "E_AUTH_UNAVAILABLE"  # 503
    E_INTERNAL = "E_INTERNAL"  # 500


# Error code to HTTP status mapping
ERROR_CODE_TO_STATUS: dict[ApiErrorCode, int] = {
    ApiErrorCode.E_UNAUTHENTICATED: 401,
    ApiErrorCode.E_FORBIDDEN: 403,
    ApiErrorCode.E_INTERNAL_ONLY: 403,
    ApiErrorCode.E_OWNER_REQUIRED: 403,
    ApiErrorCode.E_NOT_FOUND: 404,
    ApiErrorCode.E_LIST_NOT_FOUND: 404,
    ApiErrorCode.E_ITEM_NOT_FOUND: 404,
    ApiErrorCode.E_MEDIA_NOT_FOUND: 404,
    ApiErrorCode.E_MEMBER_NOT_FOUND: 404,
    ApiErrorCode.E_USER_NOT_FOUND: 404,
    ApiErrorCode.E_INVALID_REQUEST: 400,
    ApiErrorCode.E_NAME_INVALID: 400,
    ApiErrorCode.E_INVALID_KIND: 400,
    ApiErrorCode.E_RATING_INVALID: 400,
    ApiErrorCode.E_TAGS_INVALID: 400,
    ApiErrorCode.E_DATES_INVALID: 400,
    ApiErrorCode.E_SEASON_INVALID: 400,
    ApiErrorCode.E_EMAIL_INVALID: 400,
    ApiErrorCode.E_ROSTER_FULL: 400,
    ApiErrorCode.E_OWNER_TARGET_FORBIDDEN: 400,
    ApiErrorCode.E_STATUS_NOT_ALLOWED: 400,
    ApiErrorCode.E_ITEM_EXISTS: 409,
    ApiErrorCode.E_MEMBER_EXISTS: 409,
    ApiErrorCode.E_UPSTREAM_UNAVAILABLE: 502,
    ApiErrorCode.E_AUTH_UNAVAILABLE: 503,
    ApiErrorCode.E_INTERNAL: 500,
}


class ApiError(Exception):
    """Base exception for API errors.

    Attributes:
        code: The error code enum value
        message: Human-readable error message
        status_code: HTTP status code (derived from code)
    """

    def __init__(self, code: ApiErrorCode, message: str):
        self.code = code
        self.message = message
        self.status_code = ERROR_CODE_TO_STATUS.get(code, 500)
        super().__init__(message)


class NotFoundError(ApiError):
    """Resource not found error."""

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_NOT_FOUND, message: str = "Not found"):
        super().__init__(code, message)


class ForbiddenError(ApiError):
    """Role check failure for an existing resource."""

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_FORBIDDEN, message: str = "Forbidden"):
        super().__init__(code, message)


class InvalidRequestError(ApiError):
    """Input out of bounds (length, range, format, roster size)."""

    def __init__(
        self, code: ApiErrorCode = ApiErrorCode.E_INVALID_REQUEST, message: str = "Invalid request"
    ):
        super().__init__(code, message)


class ConflictError(ApiError):
    """Duplicate list item or membership."""

    def __init__(self, code: ApiErrorCode, message: str = "Already exists"):
        super().__init__(code, message)


class UpstreamError(ApiError):
    """External catalog unreachable, timed out, or returned non-2xx.

    Retryable: the caller may repeat the same request later.
    """

    retryable = True

    def __init__(
        self,
        message: str = "Catalog service unavailable",
        upstream_status: int | None = None,
    ):
        self.upstream_status = upstream_status
        super().__init__(ApiErrorCode.E_UPSTREAM_UNAVAILABLE, message)
