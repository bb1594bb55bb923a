"""Bearer token verification.

A verified token yields the viewer's subject: the identity provider's
opaque `sub` claim, used as-is as the key for list ownership and roster
membership. Nothing else from the token is trusted.

Test-only verifiers are in tests/support/mock_verifier.py.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol

import jwt
from jwt import PyJWKClient
from jwt.exceptions import (
    DecodeError,
    ExpiredSignatureError,
    InvalidAudienceError,
    InvalidIssuerError,
    InvalidSignatureError,
    InvalidTokenError,
    PyJWKClientError,
)

from watchtogether.errors import ApiError, ApiErrorCode
from watchtogether.logging import get_logger

logger = get_logger(__name__)

CLOCK_SKEW_SECONDS = 60
ALGORITHMS = ["RS256", "ES256"]

# PyJWKClient refetches the key set once before giving up with this message
_UNKNOWN_KID_MESSAGE = "Unable to find a signing key"

# Most specific first: every entry is a subclass of InvalidTokenError
_REJECTIONS: tuple[tuple[type[InvalidTokenError], str, str], ...] = (
    (ExpiredSignatureError, "expired_token", "Token expired"),
    (InvalidSignatureError, "invalid_signature", "Invalid token signature"),
    (InvalidIssuerError, "invalid_issuer", "Invalid token issuer"),
    (InvalidAudienceError, "invalid_audience", "Invalid token audience"),
    (DecodeError, "decode_error", "Invalid token format"),
    (InvalidTokenError, "invalid_token", "Invalid token"),
)


@dataclass(frozen=True)
class VerifiedToken:
    subject: str
    claims: dict[str, Any] = field(default_factory=dict)


class TokenVerifier(Protocol):
    def verify(self, token: str) -> VerifiedToken:
        """Verify a bearer token.

        Raises:
            ApiError(E_UNAUTHENTICATED): Token is invalid, expired, or malformed.
            ApiError(E_AUTH_UNAVAILABLE): The key set could not be fetched.
        """
        ...


def reject(reason: str, message: str, **fields: Any) -> ApiError:
    logger.warning("auth_failure", reason=reason, **fields)
    return ApiError(ApiErrorCode.E_UNAUTHENTICATED, message)


def rejection_for(error: InvalidTokenError) -> ApiError:
    for error_type, reason, message in _REJECTIONS:
        if isinstance(error, error_type):
            return reject(reason, message, error=str(error))
    return reject("invalid_token", "Invalid token", error=str(error))


def subject_from_claims(claims: dict[str, Any]) -> VerifiedToken:
    subject = claims.get("sub")
    if not isinstance(subject, str) or not subject.strip():
        raise reject("missing_sub", "Invalid token: missing sub")
    return VerifiedToken(subject=subject, claims=claims)


class JwksTokenVerifier:
    """Verifies tokens against the identity provider's published key set.

    Checks the signature (RS256 or ES256, key chosen by `kid`), `exp` with
    60 s leeway, `iss` against the configured issuer, `aud` when audiences
    are configured, and a non-blank `sub`.
    """

    def __init__(
        self,
        jwks_url: str,
        issuer: str,
        audiences: list[str] | None = None,
        cache_ttl: int = 3600,
    ):
        self.jwks_url = jwks_url
        self.issuer = issuer.rstrip("/")
        self.audiences = audiences or []
        # PyJWKClient fetches lazily; constructing it does no I/O
        self._jwks_client = PyJWKClient(jwks_url, cache_keys=True, lifespan=cache_ttl)

    def _get_jwks_client(self) -> PyJWKClient:
        return self._jwks_client

    def _signing_key(self, token: str) -> Any:
        try:
            return self._get_jwks_client().get_signing_key_from_jwt(token)
        except DecodeError as e:
            # Header is unreadable, so there is no kid to look up
            raise rejection_for(e) from e
        except PyJWKClientError as e:
            if _UNKNOWN_KID_MESSAGE in str(e):
                raise reject("unknown_kid", "Invalid token: signing key not found") from e
            logger.warning("auth_failure", reason="jwks_unavailable", error=str(e))
            raise ApiError(
                ApiErrorCode.E_AUTH_UNAVAILABLE, "Authentication service unavailable"
            ) from e

    def verify(self, token: str) -> VerifiedToken:
        signing_key = self._signing_key(token)
        try:
            claims = jwt.decode(
                token,
                signing_key.key,
                algorithms=ALGORITHMS,
                audience=self.audiences or None,
                issuer=self.issuer,
                leeway=CLOCK_SKEW_SECONDS,
                options={
                    "require": ["exp", "iss", "sub"],
                    "verify_aud": bool(self.audiences),
                },
            )
        except InvalidTokenError as e:
            raise rejection_for(e) from e
        return subject_from_claims(claims)
