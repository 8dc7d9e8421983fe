"""
Wire models for the token review and testing endpoints.

Fields missing from a request decode to their zero value, so ``{}`` is a
valid (if useless) payload; a field of the wrong JSON type is not.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from .registry import ServiceAccount

TOKEN_REVIEW_API_VERSION = "authentication.k8s.io/v1"
TOKEN_REVIEW_KIND = "TokenReview"


class TokenReviewSpec(BaseModel):
    token: str = ""
    audiences: List[str] = Field(default_factory=list)


class TokenReviewRequest(BaseModel):
    """Body of ``POST /apis/authentication.k8s.io/v1/tokenreviews``."""
    spec: TokenReviewSpec = Field(default_factory=TokenReviewSpec)


class UserInfo(BaseModel):
    username: str
    uid: str


class TokenReviewStatus(BaseModel):
    authenticated: bool
    user: Optional[UserInfo] = None


class TokenReviewResponse(BaseModel):
    apiVersion: str = TOKEN_REVIEW_API_VERSION
    kind: str = TOKEN_REVIEW_KIND
    status: TokenReviewStatus


class ServiceAccountRegistrationRequest(BaseModel):
    """Body of ``POST /api/v1/testing/serviceaccounts``."""
    uid: str = ""
    name: str = ""
    namespace: str = ""

    def to_identity(self) -> ServiceAccount:
        return ServiceAccount(uid=self.uid, name=self.name, namespace=self.namespace)


class ServiceAccountRegistrationResponse(BaseModel):
    success: bool = True
    token: str
    # Harness clients written against earlier releases read "jwt"
    jwt: str


class ResetRequest(BaseModel):
    """Body of ``DELETE /api/v1/testing/reset``; an empty body clears everything."""
    uids: Optional[List[str]] = None
