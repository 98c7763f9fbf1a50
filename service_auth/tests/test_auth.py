"""
Tests for Auth service.
"""

import pytest
from fastapi.testclient import TestClient
from unittest.mock import patch
from structlog.testing import capture_logs

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_auth.app.main import AuthService, create_app
from service_auth.app.validation.token_service import TokenService
from shared.config import get_config
from shared.test_helpers import bearer, tamper_signature


SECRET = "endpoint-test-secret-longer-than-32-chars"


@pytest.fixture
def token_service():
    """TokenService shared between the app and the test."""
    return TokenService(SECRET)


@pytest.fixture
def auth_service(token_service):
    """Create AuthService instance."""
    return AuthService(config=get_config("auth", 8010, env="test"), token_service=token_service)


@pytest.fixture
def client(auth_service):
    """Create test client."""
    return TestClient(auth_service.app)


def test_root_endpoint(client):
    """Test root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["service"] == "auth"
    assert data["version"] == "1.0.0"


def test_health_check(client):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["service"] == "auth"
    assert data["status"] == "ok"
    assert data["dependencies"] == {"signing_key": "ok"}


def test_request_id_is_echoed(client):
    """X-Request-ID is propagated or generated."""
    response = client.get("/api/hello", headers={"X-Request-ID": "req-1"})
    assert response.headers["X-Request-ID"] == "req-1"

    response = client.get("/api/hello")
    assert response.headers["X-Request-ID"]


def test_hello(client):
    """Plain greeting."""
    response = client.get("/api/hello")
    assert response.status_code == 200
    assert response.text == "Hello World!"


def test_hello_name(client):
    """Custom greeting keeps the given name."""
    response = client.get("/api/hello/John")
    assert response.status_code == 200
    assert response.text == "Hello, John!"


def test_hello_name_too_short(client):
    """Short names are a 400 with the classified body."""
    response = client.get("/api/hello/A")
    assert response.status_code == 400
    assert response.json() == {
        "code": "INVALID_INPUT",
        "message": "Name must be at least 2 characters long",
        "details": {}
    }


@pytest.mark.parametrize("name,expected", [("john", "Hello, John!"), ("ALEXANDER", "Hello, Alexander!")])
def test_greet(client, name, expected):
    """Validated greeting normalizes the name."""
    response = client.get("/api/greet", params={"name": name})
    assert response.status_code == 200
    assert response.text == expected


@pytest.mark.parametrize("params,message", [
    ({}, "Name cannot be null or empty"),
    ({"name": ""}, "Name cannot be null or empty"),
    ({"name": "x" * 51}, "Name cannot exceed 50 characters"),
])
def test_greet_invalid(client, params, message):
    """Missing, blank and over-long names are a 400."""
    response = client.get("/api/greet", params=params)
    assert response.status_code == 400
    assert response.json()["message"] == message


def test_user_greeting(client):
    """Known user greeting."""
    response = client.get("/api/user/123/greeting")
    assert response.status_code == 200
    assert response.text == "Hello, User 123!"


def test_user_greeting_not_found(client):
    """Unknown user is a 404."""
    response = client.get("/api/user/999/greeting")
    assert response.status_code == 404
    data = response.json()
    assert data["code"] == "NOT_FOUND"
    assert data["message"] == "User not found with ID: 999"
    assert data["details"] == {"user_id": "999"}


def test_protected_success(client, token_service):
    """A valid bearer token reaches the protected resource."""
    token = token_service.generate("project-alpha")

    response = client.get("/api/protected", headers=bearer(token.encoded))

    assert response.status_code == 200
    assert response.text == "Welcome, project-alpha"


@pytest.mark.parametrize("headers,message", [
    ({}, "Authorization header required"),
    ({"Authorization": "Token xyz"}, "Invalid authorization header format. Expected: Bearer <token>"),
    ({"Authorization": "Bearer garbage"}, "Invalid token"),
])
def test_protected_rejections(client, headers, message):
    """All header and token problems are a 401."""
    response = client.get("/api/protected", headers=headers)
    assert response.status_code == 401
    assert response.json() == {"code": "UNAUTHORIZED", "message": message, "details": {}}


def test_protected_tampered_token(client, token_service):
    """A tampered signature is a 401."""
    token = tamper_signature(token_service.generate("alice").encoded, 10)

    response = client.get("/api/protected", headers=bearer(token))

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid token"


def test_verify_endpoint(client, token_service):
    """Explicit token verification returns the subject."""
    token = token_service.generate("alice")

    response = client.post("/auth/verify", json={"token": token.encoded})

    assert response.status_code == 200
    assert response.json() == {"valid": True, "subject": "alice"}


@pytest.mark.parametrize("body,status,code", [
    ({}, 400, "INVALID_INPUT"),
    ({"token": "  "}, 400, "INVALID_INPUT"),
    ({"token": "garbage"}, 401, "UNAUTHORIZED"),
])
def test_verify_endpoint_failures(client, body, status, code):
    """Blank tokens are 400, bad ones 401."""
    response = client.post("/auth/verify", json=body)
    assert response.status_code == status
    assert response.json()["code"] == code


def test_verify_endpoint_rejects_non_string_token(client):
    """A wrongly typed token is INVALID_INPUT in the classified body, without echoing the input."""
    response = client.post("/auth/verify", json={"token": 123})

    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "INVALID_INPUT"
    assert data["message"] == "Invalid request"
    assert data["details"] == {"errors": [{"loc": ["body", "token"], "type": "string_type"}]}
    assert "123" not in response.text


def test_verify_endpoint_rejects_malformed_json(client):
    """A body that is not JSON is INVALID_INPUT, not a framework 422."""
    response = client.post(
        "/auth/verify",
        content=b"{not json",
        headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400
    data = response.json()
    assert set(data) == {"code", "message", "details"}
    assert data["code"] == "INVALID_INPUT"
    assert data["details"]["errors"][0]["type"] == "json_invalid"


@pytest.mark.parametrize("method,path,status,code", [
    ("get", "/no/such/route", 404, "NOT_FOUND"),
    ("post", "/api/hello", 400, "INVALID_INPUT"),
])
def test_routing_errors_use_classified_body(client, method, path, status, code):
    """Unknown routes and wrong methods render through the shared failure model."""
    response = getattr(client, method)(path)

    assert response.status_code == status
    data = response.json()
    assert set(data) == {"code", "message", "details"}
    assert data["code"] == code


def test_internal_failure_hides_cause(auth_service, client, token_service):
    """Unexpected errors render as a generic 500 without the original message."""
    token = token_service.generate("alice")

    with patch(
        "service_auth.app.validation.token_service.jwt.decode",
        side_effect=RuntimeError("secret internals")
    ):
        response = client.get("/api/protected", headers=bearer(token.encoded))

    assert response.status_code == 500
    data = response.json()
    assert data["code"] == "INTERNAL"
    assert "secret internals" not in response.text


def test_metrics_count_outcomes(auth_service, client, token_service):
    """Verification outcomes and classified errors are counted."""
    token = token_service.generate("alice")
    client.get("/api/protected", headers=bearer(token.encoded))
    client.get("/api/protected")

    metrics = auth_service.metrics
    assert metrics.sample_value("token_verifications_total", outcome="valid") == 1.0
    assert metrics.sample_value("token_verifications_total", outcome="unauthorized") == 1.0
    assert metrics.sample_value("errors_total", error_type="UNAUTHORIZED", service="auth") == 1.0

    response = client.get("/metrics")
    assert response.status_code == 200
    assert "token_verifications_total" in response.text


def test_create_app_uses_configured_secret():
    """create_app derives the key from ACCESS_JWT_SECRET."""
    with patch.dict(os.environ, {"ACCESS_JWT_SECRET": SECRET}):
        app = create_app()

    token = TokenService(SECRET).generate("alice")
    response = TestClient(app).get("/api/protected", headers=bearer(token.encoded))

    assert response.status_code == 200
    assert response.text == "Welcome, alice"


@pytest.mark.parametrize("path,status,body", [
    ("/api/greet/response-entity/John", 200, "Hello, John!"),
    ("/api/greet/exception/John", 200, "Hello, John!"),
    ("/api/greet/advanced/jOHN", 200, "Hello, John!"),
])
def test_greet_variants(client, path, status, body):
    """The three greeting variants succeed for a valid name."""
    response = client.get(path)
    assert response.status_code == status
    assert response.text == body


@pytest.mark.parametrize("name,message", [
    ("%20%20", "Name cannot be null or empty"),
    ("A", "Name must be at least 2 characters long"),
    ("x" * 51, "Name cannot exceed 50 characters"),
])
def test_greet_response_entity_rejections(client, name, message):
    """Handler-side checks and the service's length check give the same 400 body."""
    response = client.get(f"/api/greet/response-entity/{name}")

    assert response.status_code == 400
    assert response.json() == {"code": "INVALID_INPUT", "message": message, "details": {}}


def test_greet_exception_rejection(client):
    """Service-raised failures on the exception variant render as 400."""
    response = client.get("/api/greet/exception/A")

    assert response.status_code == 400
    assert response.json()["message"] == "Name must be at least 2 characters long"


def test_greet_advanced_keeps_failure_kind(client):
    """The advanced variant logs the failure and re-raises it unchanged."""
    with capture_logs() as logs:
        response = client.get("/api/greet/advanced/A")

    assert response.status_code == 400
    assert response.json() == {
        "code": "INVALID_INPUT",
        "message": "Name must be at least 2 characters long",
        "details": {}
    }
    failures = [entry for entry in logs if entry["event"] == "Failed to generate greeting"]
    assert failures[0]["code"] == "INVALID_INPUT"
    assert failures[0]["log_level"] == "error"


def test_greet_advanced_wraps_unexpected_errors(auth_service, client):
    """Unexpected errors on the advanced variant become INTERNAL with a fixed message."""
    with patch.object(
        auth_service.greeting_service,
        "get_validated_greeting",
        side_effect=RuntimeError("greeting backend down")
    ):
        response = client.get("/api/greet/advanced/John")

    assert response.status_code == 500
    assert response.json() == {
        "code": "INTERNAL",
        "message": "An unexpected error occurred",
        "details": {}
    }
    assert "greeting backend down" not in response.text
