"""
Credential issuer package.

Fabricates RS256 service account tokens with single-use signing keys.
"""

from .credential_issuer import (
    CredentialIssuer,
    NAME_CLAIM,
    NAMESPACE_CLAIM,
    SERVICE_ACCOUNT_ISSUER,
    UID_CLAIM,
    build_claims,
)

__all__ = [
    "CredentialIssuer",
    "NAME_CLAIM",
    "NAMESPACE_CLAIM",
    "SERVICE_ACCOUNT_ISSUER",
    "UID_CLAIM",
    "build_claims",
]
