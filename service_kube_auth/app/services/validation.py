"""
Token validation against the identity registry.
"""

from typing import Optional

from pydantic import BaseModel

from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..registry import IdentityRegistry


class AuthResult(BaseModel):
    """Outcome of a token review."""
    authenticated: bool
    username: Optional[str] = None
    uid: Optional[str] = None


class ValidationService:
    """Answers whether a token was issued here, and for whom.

    An unknown token is an ordinary negative answer, not an error.
    """

    def __init__(self, registry: IdentityRegistry, metrics: Optional[MetricsCollector] = None):
        self.registry = registry
        self.metrics = metrics
        self.logger = get_logger("kube_auth.validation")

    def validate(self, token: str) -> AuthResult:
        """Look ``token`` up and report the identity it is bound to."""
        identity = self.registry.lookup(token)

        if identity is None:
            self.logger.debug("Token review for unknown token")
            if self.metrics:
                self.metrics.increment_counter("token_reviews_total", result="unauthenticated")
            return AuthResult(authenticated=False)

        if self.metrics:
            self.metrics.increment_counter("token_reviews_total", result="authenticated")
        self.logger.debug("Token review succeeded", username=identity.username, uid=identity.uid)
        return AuthResult(authenticated=True, username=identity.username, uid=identity.uid)
