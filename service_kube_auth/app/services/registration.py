"""
Service account registration.
"""

from contextlib import nullcontext
from typing import Optional

from shared.errors import IssuanceError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..issuer import CredentialIssuer
from ..registry import IdentityRegistry, ServiceAccount


class RegistrationService:
    """Issues a token for a service account and records it in the registry.

    Not idempotent: registering the same account twice yields two tokens, and
    both stay valid until a reset removes them.
    """

    def __init__(self, issuer: CredentialIssuer, registry: IdentityRegistry, metrics: Optional[MetricsCollector] = None):
        self.issuer = issuer
        self.registry = registry
        self.metrics = metrics
        self.logger = get_logger("kube_auth.registration")

    def register(self, identity: ServiceAccount) -> str:
        """Return a new token bound to ``identity``.

        An IssuanceError is re-raised with a ``generate jwt token:`` prefix
        and leaves the registry untouched.
        """
        timer = self.metrics.time_operation("token_issuance_duration_seconds") if self.metrics else nullcontext()
        try:
            with timer:
                token = self.issuer.issue(identity)
        except IssuanceError as e:
            if self.metrics:
                self.metrics.increment_counter("service_account_registrations_total", status="error")
            raise IssuanceError(
                f"generate jwt token: {e.message}",
                details={**e.details, "uid": identity.uid, "username": identity.username},
            ) from e

        self.registry.insert(token, identity)

        if self.metrics:
            self.metrics.increment_counter("service_account_registrations_total", status="ok")
            self.metrics.set_gauge("registry_entries", len(self.registry))

        self.logger.info(
            "Service account registered",
            uid=identity.uid,
            username=identity.username,
        )
        return token
