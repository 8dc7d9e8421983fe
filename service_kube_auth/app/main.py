"""
Kube Auth Mock service.

Stands in for the Kubernetes API server's token review endpoint so a trust
system (e.g. Vault's Kubernetes auth method) can be exercised without a
cluster. Test suites register fake service accounts through the testing
endpoints, hand the returned token to the trust system, and the trust system
calls back into the token review endpoint to have it checked.
"""

import asyncio
from typing import Optional

from fastapi import Request, Response

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from .issuer import CredentialIssuer
from .models import (
    ResetRequest,
    ServiceAccountRegistrationRequest,
    ServiceAccountRegistrationResponse,
    TokenReviewRequest,
    TokenReviewResponse,
    TokenReviewStatus,
    UserInfo,
)
from .registry import IdentityRegistry
from .services import RegistrationService, ResetService, ValidationService

SERVICE_NAME = "kube_auth"

TOKEN_REVIEW_PATH = "/apis/authentication.k8s.io/v1/tokenreviews"
SERVICE_ACCOUNTS_PATH = "/api/v1/testing/serviceaccounts"
HEALTH_PATH = "/api/v1/testing/health"
RESET_PATH = "/api/v1/testing/reset"


class KubeAuthService(BaseService):
    """Kube token review mock implementation."""

    def __init__(self, config: Optional[ServiceConfig] = None):
        config = config or get_config(SERVICE_NAME)
        self.registry = IdentityRegistry()
        self.issuer = CredentialIssuer(key_size=config.rsa_key_size)
        super().__init__(SERVICE_NAME, config)

        self.registration = RegistrationService(self.issuer, self.registry, self.metrics)
        self.validation = ValidationService(self.registry, self.metrics)
        self.reset_service = ResetService(self.registry, self.metrics)

    def _setup_service_routes(self):
        """Set up token review and testing routes."""

        # Real Kubernetes endpoint, called by the trust system under test
        @self.route(TOKEN_REVIEW_PATH, ["PUT", "POST"], "login request must be either PUT or POST")
        async def token_review(request: Request):
            """Review a token previously issued by the registration endpoint."""
            self.logger.debug("Received token review request")

            review = await self.decode_request(request, TokenReviewRequest, "token review request")
            result = self.validation.validate(review.spec.token)

            status = TokenReviewStatus(authenticated=result.authenticated)
            if result.authenticated:
                status.user = UserInfo(username=result.username, uid=result.uid)
            return TokenReviewResponse(status=status).model_dump(exclude_none=True)

        # Testing endpoint: register a fake service account and get its token
        @self.route(SERVICE_ACCOUNTS_PATH, ["POST"], "service account registration handler expects POST")
        async def register_service_account(request: Request):
            """Issue a token for a service account and remember it."""
            self.logger.debug("Received service account registration request")

            registration = await self.decode_request(
                request, ServiceAccountRegistrationRequest, "service account registration request"
            )
            # Key generation is CPU bound; keep it off the event loop
            token = await asyncio.to_thread(self.registration.register, registration.to_identity())
            return ServiceAccountRegistrationResponse(token=token, jwt=token).model_dump()

        @self.route(HEALTH_PATH, ["GET"], "health handler expects GET")
        async def health(request: Request):
            """Liveness probe for test suites."""
            self.logger.debug("Received health probe")
            self.metrics.record_health_check("ok")
            return Response(status_code=200)

        # Testing endpoint: clean up registered service accounts between tests
        @self.route(RESET_PATH, ["DELETE"], "reset handler expects DELETE")
        async def reset(request: Request):
            """Remove all registered tokens, or only the listed keys."""
            self.logger.debug("Received reset request")

            reset_request = await self.decode_request(request, ResetRequest, "reset request", allow_empty=True)
            self.reset_service.reset(reset_request.uids or [])
            return Response(status_code=200)


def create_app(config: Optional[ServiceConfig] = None):
    """Create FastAPI application."""
    service = KubeAuthService(config)
    return service.app


def main():
    """Console entry point."""
    service = KubeAuthService()
    service.logger.info("Starting kube auth server", host=service.config.host, port=service.config.port)
    service.run()
    service.logger.info("Kube auth server stopped")


if __name__ == "__main__":
    main()
