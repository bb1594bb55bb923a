"""Authentication middleware for FastAPI.

Provides:
- AuthMiddleware: Global middleware for bearer tokens and the internal secret
- get_viewer: Dependency for accessing the authenticated viewer identity
"""

import hmac
import logging
from dataclasses import dataclass

from fastapi import Depends, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from watchtogether.auth.verifier import TokenVerifier
from watchtogether.errors import ApiError, ApiErrorCode
from watchtogether.logging import subject_var
from watchtogether.responses import error_response

logger = logging.getLogger(__name__)

AUTHORIZATION_HEADER = "authorization"
INTERNAL_SECRET_HEADER = "x-internal-secret"

# Paths that don't require authentication
PUBLIC_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}

# Identity-sync routes, called by the identity provider's webhook
INTERNAL_PATH_PREFIX = "/internal/"


@dataclass
class Viewer:
    """Authenticated viewer identity.

    Attributes:
        subject: The identity provider's opaque subject (JWT sub claim).
    """

    subject: str


class AuthMiddleware(BaseHTTPMiddleware):
    """Authentication middleware for FastAPI.

    Order of checks:
    1. Skip if public path
    2. Internal paths: verify X-Internal-Secret, no bearer token
    3. Extract bearer token
    4. Verify token via TokenVerifier
    5. Attach Viewer to request state
    """

    def __init__(
        self,
        app: ASGIApp,
        verifier: TokenVerifier,
        internal_secret: str | None = None,
    ):
        super().__init__(app)
        self.verifier = verifier
        self.internal_secret = internal_secret

    async def dispatch(self, request: Request, call_next) -> JSONResponse:
        path = request.url.path
        if path in PUBLIC_PATHS:
            return await call_next(request)

        if path.startswith(INTERNAL_PATH_PREFIX):
            error_response_obj = self._verify_internal_secret(request)
            if error_response_obj:
                return error_response_obj
            return await call_next(request)

        token, error_response_obj = self._extract_bearer_token(request)
        if error_response_obj:
            return error_response_obj

        try:
            verified = self.verifier.verify(token)
        except ApiError as e:
            return self._error_json_response(e.code, e.message, e.status_code)

        viewer = Viewer(subject=verified.subject)
        request.state.viewer = viewer
        subject_var.set(viewer.subject)

        return await call_next(request)

    def _verify_internal_secret(self, request: Request) -> JSONResponse | None:
        """Constant-time check of the internal secret header."""
        header_value = request.headers.get(INTERNAL_SECRET_HEADER)

        if not self.internal_secret:
            logger.error("Internal secret not configured; rejecting internal request")
            return self._error_json_response(
                ApiErrorCode.E_INTERNAL_ONLY,
                "Internal API access required",
                403,
            )

        if header_value is None or not hmac.compare_digest(
            header_value.encode(), self.internal_secret.encode()
        ):
            logger.warning(
                "auth_failure",
                extra={
                    "reason": "internal_secret_mismatch"
                    if header_value is not None
                    else "internal_secret_missing",
                    "request_path": request.url.path,
                },
            )
            return self._error_json_response(
                ApiErrorCode.E_INTERNAL_ONLY,
                "Internal API access required",
                403,
            )

        return None

    def _extract_bearer_token(self, request: Request) -> tuple[str, JSONResponse | None]:
        """Returns (token, error_response). Token is empty string on error."""
        auth_header = request.headers.get(AUTHORIZATION_HEADER)

        if not auth_header:
            logger.warning(
                "auth_failure",
                extra={"reason": "missing_header", "request_path": request.url.path},
            )
            return "", self._error_json_response(
                ApiErrorCode.E_UNAUTHENTICATED,
                "Authentication required",
                401,
            )

        token = ""
        if auth_header.lower().startswith("bearer "):
            token = auth_header[7:].strip()

        if not token:
            logger.warning(
                "auth_failure",
                extra={"reason": "invalid_header_format", "request_path": request.url.path},
            )
            return "", self._error_json_response(
                ApiErrorCode.E_UNAUTHENTICATED,
                "Invalid authorization header format",
                401,
            )

        return token, None

    def _error_json_response(
        self, code: ApiErrorCode, message: str, status_code: int
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status_code,
            content=error_response(code, message),
        )


def get_viewer(request: Request) -> Viewer:
    """FastAPI dependency to get the authenticated viewer.

    Raises:
        ApiError: If viewer is not set (middleware didn't run or path is public).
    """
    viewer = getattr(request.state, "viewer", None)
    if viewer is None:
        raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Authentication required")
    return viewer


ViewerDep = Depends(get_viewer)
