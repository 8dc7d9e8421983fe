"""
Service account token issuer.

Tokens are structurally real RS256 JWTs carrying the claims a Kubernetes
service account token carries, so consumers that parse the payload before
calling the token review API accept them. Each token is signed with a freshly
generated RSA key that is dropped immediately afterwards: nothing can verify
the signature later, and the only proof a token is genuine is its presence in
the identity registry.
"""

from typing import Any, Dict

import jwt
from cryptography.hazmat.primitives.asymmetric import rsa

from shared.errors import IssuanceError
from shared.logging import get_logger
from ..registry import ServiceAccount

SERVICE_ACCOUNT_ISSUER = "kubernetes/serviceaccount"
UID_CLAIM = "kubernetes.io/serviceaccount/service-account.uid"
NAME_CLAIM = "kubernetes.io/serviceaccount/service-account.name"
NAMESPACE_CLAIM = "kubernetes.io/serviceaccount/namespace"

SIGNING_ALGORITHM = "RS256"
RSA_PUBLIC_EXPONENT = 65537


def build_claims(identity: ServiceAccount) -> Dict[str, Any]:
    """Claim set for a service account token."""
    return {
        "iss": SERVICE_ACCOUNT_ISSUER,
        "sub": identity.username,
        UID_CLAIM: identity.uid,
        NAME_CLAIM: identity.name,
        NAMESPACE_CLAIM: identity.namespace,
    }


class CredentialIssuer:
    """Manufactures signed tokens for service accounts."""

    def __init__(self, key_size: int = 2048):
        self.key_size = key_size
        self.logger = get_logger("kube_auth.issuer")

    def _generate_key(self) -> rsa.RSAPrivateKey:
        return rsa.generate_private_key(public_exponent=RSA_PUBLIC_EXPONENT, key_size=self.key_size)

    def issue(self, identity: ServiceAccount) -> str:
        """
        Issue a token for ``identity``.

        Args:
            identity: The service account the token asserts

        Returns:
            Encoded JWT string

        Raises:
            IssuanceError: If key generation or signing fails
        """
        try:
            private_key = self._generate_key()
        except (ValueError, TypeError) as e:
            raise IssuanceError(
                f"generate secret key: {e}",
                details={"key_size": self.key_size},
            ) from e

        try:
            token = jwt.encode(build_claims(identity), private_key, algorithm=SIGNING_ALGORITHM)
        except (jwt.PyJWTError, ValueError, TypeError) as e:
            raise IssuanceError(f"sign token: {e}") from e

        self.logger.debug(
            "Issued service account token",
            uid=identity.uid,
            username=identity.username,
        )
        return token
