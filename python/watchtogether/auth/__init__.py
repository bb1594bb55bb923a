"""Authentication and authorization module.

This module provides:
- Token verification (JWKS verifier)
- Auth middleware for FastAPI
- List role resolution and access predicates

Note: Test-only verifiers are in tests/support/mock_verifier.py
"""

from watchtogether.auth.middleware import AuthMiddleware, Viewer, get_viewer
from watchtogether.auth.verifier import JwksTokenVerifier, TokenVerifier, VerifiedToken

__all__ = [
    "AuthMiddleware",
    "Viewer",
    "get_viewer",
    "JwksTokenVerifier",
    "TokenVerifier",
    "VerifiedToken",
]
