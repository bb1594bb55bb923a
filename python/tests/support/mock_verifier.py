"""Test-only token verifier using a locally generated RSA keypair.

Not part of the runtime code. It validates the same claim structure as
JwksTokenVerifier so config mistakes surface in tests.
"""

import threading

import jwt
from jwt.exceptions import InvalidTokenError

from watchtogether.auth.verifier import (
    CLOCK_SKEW_SECONDS,
    VerifiedToken,
    rejection_for,
    subject_from_claims,
)


class MockJwtVerifier:
    """Verifier for tokens minted with get_private_key().

    Usage:
        verifier = MockJwtVerifier()
        subject = verifier.verify(token).subject
    """

    # Class-level RSA keypair (generated once per process)
    _private_key: bytes | None = None
    _public_key: bytes | None = None
    _lock = threading.Lock()

    def __init__(
        self,
        issuer: str = "test-issuer",
        audiences: list[str] | None = None,
    ):
        self.issuer = issuer
        self.audiences = audiences or ["test-audience"]
        self._ensure_keypair()

    @classmethod
    def _ensure_keypair(cls) -> None:
        with cls._lock:
            if cls._private_key is None:
                from cryptography.hazmat.primitives import serialization
                from cryptography.hazmat.primitives.asymmetric import rsa

                private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)

                cls._private_key = private_key.private_bytes(
                    encoding=serialization.Encoding.PEM,
                    format=serialization.PrivateFormat.PKCS8,
                    encryption_algorithm=serialization.NoEncryption(),
                )
                cls._public_key = private_key.public_key().public_bytes(
                    encoding=serialization.Encoding.PEM,
                    format=serialization.PublicFormat.SubjectPublicKeyInfo,
                )

    @classmethod
    def get_private_key(cls) -> bytes:
        cls._ensure_keypair()
        assert cls._private_key is not None
        return cls._private_key

    @classmethod
    def get_public_key(cls) -> bytes:
        cls._ensure_keypair()
        assert cls._public_key is not None
        return cls._public_key

    def verify(self, token: str) -> VerifiedToken:
        try:
            claims = jwt.decode(
                token,
                self.get_public_key(),
                algorithms=["RS256"],
                audience=self.audiences,
                issuer=self.issuer,
                leeway=CLOCK_SKEW_SECONDS,
                options={"require": ["exp", "iss", "sub"], "verify_aud": True},
            )
        except InvalidTokenError as e:
            raise rejection_for(e) from e
        return subject_from_claims(claims)
