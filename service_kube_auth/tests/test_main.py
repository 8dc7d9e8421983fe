"""
Tests for the Kube Auth Mock HTTP API.
"""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from service_kube_auth.app.main import KubeAuthService
from shared.errors import IssuanceError
from shared.test_helpers import (
    HEALTH_PATH,
    RESET_PATH,
    SERVICE_ACCOUNTS_PATH,
    TOKEN_REVIEW_PATH,
    ServiceAccountFactory,
    decode_unverified,
    make_test_config,
    register_service_account,
    review_token,
)


@pytest.fixture
def service():
    """Create a service with its own registry."""
    return KubeAuthService(make_test_config())


@pytest.fixture
def client(service):
    """Create test client."""
    return TestClient(service.app)


class TestHealth:
    """Test cases for the health probe."""

    def test_health_ok_with_empty_body(self, client):
        response = client.get(HEALTH_PATH)
        assert response.status_code == 200
        assert response.content == b""

    def test_health_wrong_method(self, client):
        response = client.post(HEALTH_PATH)
        assert response.status_code == 501
        assert response.json() == {
            "success": False,
            "error": 'health handler expects GET but got "POST"',
        }


class TestServiceAccountRegistration:
    """Test cases for the registration endpoint."""

    def test_register_returns_token(self, client):
        response = client.post(SERVICE_ACCOUNTS_PATH, json=ServiceAccountFactory.create())

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["token"] == data["jwt"]
        claims = decode_unverified(data["token"])
        assert claims["kubernetes.io/serviceaccount/service-account.uid"] == "12345"

    def test_register_twice_gives_distinct_valid_tokens(self, client):
        payload = ServiceAccountFactory.create()
        first = register_service_account(client, payload)
        second = register_service_account(client, payload)

        assert first != second
        assert review_token(client, first)["authenticated"] is True
        assert review_token(client, second)["authenticated"] is True

    def test_register_malformed_json(self, client, service):
        response = client.post(
            SERVICE_ACCOUNTS_PATH,
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["error"].startswith("invalid service account registration request")
        assert len(service.registry) == 0

    def test_register_wrong_field_type(self, client, service):
        response = client.post(SERVICE_ACCOUNTS_PATH, json={"uid": 12345, "name": "svc", "namespace": "default"})
        assert response.status_code == 400
        assert len(service.registry) == 0

    def test_register_empty_body(self, client):
        response = client.post(SERVICE_ACCOUNTS_PATH)
        assert response.status_code == 400

    def test_register_wrong_method(self, client):
        response = client.get(SERVICE_ACCOUNTS_PATH)
        assert response.status_code == 501
        assert response.json()["error"] == 'service account registration handler expects POST but got "GET"'

    def test_register_issuance_failure(self, client, service):
        with patch.object(service.issuer, "issue", side_effect=IssuanceError("generate secret key: boom")):
            response = client.post(SERVICE_ACCOUNTS_PATH, json=ServiceAccountFactory.create())

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "generate jwt token: generate secret key: boom"}
        assert len(service.registry) == 0


class TestTokenReview:
    """Test cases for the token review endpoint."""

    def test_review_registered_token(self, client):
        token = register_service_account(client, ServiceAccountFactory.create())

        response = client.post(TOKEN_REVIEW_PATH, json={"spec": {"token": token}})

        assert response.status_code == 200
        assert response.json() == {
            "apiVersion": "authentication.k8s.io/v1",
            "kind": "TokenReview",
            "status": {
                "authenticated": True,
                "user": {
                    "username": "system:serviceaccount:default:my-service",
                    "uid": "12345",
                },
            },
        }

    def test_review_accepts_put(self, client):
        token = register_service_account(client)
        assert review_token(client, token, method="PUT")["authenticated"] is True

    def test_review_unknown_token(self, client):
        response = client.post(TOKEN_REVIEW_PATH, json={"spec": {"token": "never-issued"}})

        assert response.status_code == 200
        assert response.json()["status"] == {"authenticated": False}

    def test_review_missing_spec(self, client):
        response = client.post(TOKEN_REVIEW_PATH, json={})
        assert response.status_code == 200
        assert response.json()["status"] == {"authenticated": False}

    def test_review_malformed_json_leaves_registry(self, client):
        token = register_service_account(client)

        response = client.post(
            TOKEN_REVIEW_PATH,
            content=b"[broken",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"].startswith("invalid token review request")
        assert review_token(client, token)["authenticated"] is True

    def test_review_wrong_method(self, client):
        response = client.get(TOKEN_REVIEW_PATH)
        assert response.status_code == 501
        assert response.json()["error"] == 'login request must be either PUT or POST but got "GET"'


class TestReset:
    """Test cases for the reset endpoint."""

    def test_reset_without_body_clears_all(self, client):
        tokens = [register_service_account(client) for _ in range(2)]

        response = client.delete(RESET_PATH)

        assert response.status_code == 200
        assert response.content == b""
        for token in tokens:
            assert review_token(client, token)["authenticated"] is False

    def test_reset_with_empty_object_clears_all(self, client, service):
        register_service_account(client)
        response = client.request("DELETE", RESET_PATH, json={})
        assert response.status_code == 200
        assert len(service.registry) == 0

    def test_reset_with_keys(self, client):
        keep = register_service_account(client)
        drop = register_service_account(client)

        response = client.request("DELETE", RESET_PATH, json={"uids": [drop]})

        assert response.status_code == 200
        assert review_token(client, drop)["authenticated"] is False
        assert review_token(client, keep)["authenticated"] is True

    def test_reset_malformed_body(self, client, service):
        register_service_account(client)
        response = client.request(
            "DELETE", RESET_PATH, content=b"{oops", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400
        assert len(service.registry) == 1

    def test_reset_wrong_method(self, client, service):
        register_service_account(client)
        response = client.post(RESET_PATH, json={})
        assert response.status_code == 501
        assert response.json()["error"] == 'reset handler expects DELETE but got "POST"'
        assert len(service.registry) == 1


class TestUnimplemented:
    """Test cases for unmatched requests."""

    def test_unknown_path(self, client):
        response = client.get("/api/v1/namespaces")
        assert response.status_code == 501
        assert response.json() == {
            "success": False,
            "error": "unimplemented request: /api/v1/namespaces",
        }

    def test_unknown_path_echoes_query(self, client):
        response = client.post("/apis/foo?watch=true")
        assert response.status_code == 501
        assert response.json()["error"] == "unimplemented request: /apis/foo?watch=true"

    def test_root_path(self, client):
        response = client.get("/")
        assert response.status_code == 501

    def test_custom_verb_on_known_path(self, client):
        response = client.request("TRACE", HEALTH_PATH)
        assert response.status_code == 501
        assert response.json() == {
            "success": False,
            "error": 'health handler expects GET but got "TRACE"',
        }

    def test_custom_verb_on_unknown_path(self, client):
        response = client.request("PROPFIND", "/some/other")
        assert response.status_code == 501
        assert response.json() == {"success": False, "error": "unimplemented request: /some/other"}

    @pytest.mark.parametrize("path", ["/docs", "/redoc", "/openapi.json"])
    def test_docs_not_served_by_default(self, client, path):
        response = client.get(path)
        assert response.status_code == 501
        assert response.json()["error"] == f"unimplemented request: {path}"


class TestMetrics:
    """Test cases for the metrics endpoint."""

    def test_metrics_exposes_review_counters(self, client):
        token = register_service_account(client)
        review_token(client, token)

        response = client.get("/metrics")

        assert response.status_code == 200
        assert 'token_reviews_total{result="authenticated"} 1.0' in response.text
        assert 'service_account_registrations_total{status="ok"} 1.0' in response.text

    def test_metrics_label_unknown_paths_as_unmatched(self, client, service):
        for i in range(20):
            client.get(f"/random/{i}")

        sample = service.metrics.registry.get_sample_value(
            "http_requests_total", {"method": "GET", "endpoint": "unmatched", "status_code": "501"}
        )
        assert sample == 20
        assert 'endpoint="/random' not in client.get("/metrics").text

    def test_metrics_label_wrong_method_as_unmatched(self, client, service):
        client.get(TOKEN_REVIEW_PATH)

        sample = service.metrics.registry.get_sample_value(
            "http_requests_total", {"method": "GET", "endpoint": "unmatched", "status_code": "501"}
        )
        assert sample == 1

    def test_unhandled_exception_still_recorded(self, service):
        client = TestClient(service.app, raise_server_exceptions=False)

        with patch.object(service.validation, "validate", side_effect=RuntimeError("boom")):
            response = client.post(TOKEN_REVIEW_PATH, json={"spec": {"token": "anything"}})

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "internal server error"}
        sample = service.metrics.registry.get_sample_value(
            "http_requests_total", {"method": "POST", "endpoint": TOKEN_REVIEW_PATH, "status_code": "500"}
        )
        assert sample == 1
