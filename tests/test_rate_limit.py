"""Tests for rate limiting middleware."""

import json
from unittest.mock import MagicMock, patch

import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from app.config import get_settings
from app.main import app
from app.middleware.rate_limit import (
    api_rate_limit,
    get_client_ip,
    get_limiter,
    rate_limit_exceeded_handler,
)


@pytest.fixture(autouse=True)
def reset_rate_limiter() -> None:
    """Reset the rate limiter before each test."""
    limiter = get_limiter()
    limiter.reset()


@pytest.fixture
def client() -> TestClient:
    """Create FastAPI test client."""
    return TestClient(app)


@pytest.fixture
def low_limit(monkeypatch):
    """Allow two /api requests per window."""
    monkeypatch.setenv("RATE_LIMIT_MAX_REQUESTS", "2")
    monkeypatch.setenv("RATE_LIMIT_WINDOW_SECONDS", "900")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# Client IP Detection Tests


def test_get_client_ip_direct() -> None:
    """Test getting client IP from direct connection."""
    mock_request = MagicMock(spec=Request)
    mock_request.headers = {}

    with patch("app.middleware.rate_limit.get_remote_address") as mock_get_remote:
        mock_get_remote.return_value = "192.168.1.100"
        ip = get_client_ip(mock_request)

    assert ip == "192.168.1.100"


def test_forwarded_for_ignored_without_trusted_proxies(monkeypatch) -> None:
    """X-Forwarded-For is not trusted unless the peer is a configured proxy."""
    monkeypatch.setenv("TRUSTED_PROXIES", "")
    get_settings.cache_clear()
    mock_request = MagicMock(spec=Request)
    mock_request.headers = {"X-Forwarded-For": "10.0.0.1, 192.168.1.1"}

    with patch("app.middleware.rate_limit.get_remote_address", return_value="203.0.113.9"):
        ip = get_client_ip(mock_request)

    assert ip == "203.0.113.9"


def test_forwarded_for_used_from_trusted_proxy(monkeypatch) -> None:
    monkeypatch.setenv("TRUSTED_PROXIES", "127.0.0.1, 10.1.1.1")
    get_settings.cache_clear()
    mock_request = MagicMock(spec=Request)
    mock_request.headers = {"X-Forwarded-For": " 10.0.0.1 , 192.168.1.1"}

    with patch("app.middleware.rate_limit.get_remote_address", return_value="10.1.1.1"):
        ip = get_client_ip(mock_request)

    assert ip == "10.0.0.1"


def test_forwarded_for_ignored_from_untrusted_peer(monkeypatch) -> None:
    monkeypatch.setenv("TRUSTED_PROXIES", "10.1.1.1")
    get_settings.cache_clear()
    mock_request = MagicMock(spec=Request)
    mock_request.headers = {"X-Forwarded-For": "10.0.0.1"}

    with patch("app.middleware.rate_limit.get_remote_address", return_value="198.51.100.7"):
        ip = get_client_ip(mock_request)

    assert ip == "198.51.100.7"


# Configuration Tests


def test_api_rate_limit_follows_settings(low_limit) -> None:
    assert api_rate_limit() == "2 per 900 seconds"


def test_limiter_instance() -> None:
    """Test that limiter is properly configured."""
    limiter = get_limiter()

    assert limiter is not None
    assert app.state.limiter is limiter


# Rate Limit Exceeded Handler Tests


def test_rate_limit_exceeded_handler() -> None:
    """Test rate limit exceeded handler returns proper response."""
    mock_request = MagicMock(spec=Request)
    mock_exc = MagicMock()
    mock_exc.retry_after = 45
    mock_exc.detail = "100 per 900 second"

    response = rate_limit_exceeded_handler(mock_request, mock_exc)

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "45"
    assert response.headers["X-RateLimit-Remaining"] == "0"
    assert response.headers["X-RateLimit-Limit"] == "100 per 900 second"

    body = json.loads(response.body.decode())
    assert body == {
        "success": False,
        "message": "Too many requests from this IP, please try again later.",
        "retry_after": 45,
    }


def test_rate_limit_exceeded_handler_default_retry() -> None:
    """Test rate limit exceeded handler with default retry time."""
    mock_request = MagicMock(spec=Request)
    mock_exc = MagicMock(spec=[])  # Empty spec means no attributes

    response = rate_limit_exceeded_handler(mock_request, mock_exc)

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "60"
    assert "X-RateLimit-Limit" not in response.headers


# Integration Tests with FastAPI


def test_api_responses_carry_rate_limit_headers(client: TestClient, low_limit) -> None:
    response = client.post("/api/classify", json={"title": "Pay invoice"})

    assert response.status_code == 200
    assert response.headers["X-RateLimit-Limit"] == "2"
    assert response.headers["X-RateLimit-Remaining"] == "1"


def test_api_rate_limit_enforced(client: TestClient, low_limit) -> None:
    """The third request inside the window is rejected."""
    for _ in range(2):
        assert client.post("/api/classify", json={"title": "Pay invoice"}).status_code == 200

    response = client.post("/api/classify", json={"title": "Pay invoice"})

    assert response.status_code == 429
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Too many requests from this IP, please try again later."
    assert "Retry-After" in response.headers


def test_limit_is_shared_across_api_routes(client: TestClient, low_limit) -> None:
    with patch("app.routers.stats.get_supabase_client") as mock_get_client:
        mock_response = MagicMock(data=[], count=0)
        mock_get_client.return_value.table.return_value.select.return_value.execute.return_value = mock_response

        assert client.post("/api/classify", json={"title": "a"}).status_code == 200
        assert client.get("/api/tasks/statistics").status_code == 200
        assert client.get("/api/tasks/statistics").status_code == 429


def test_health_endpoint_no_rate_limit(client: TestClient, low_limit) -> None:
    """Test that health endpoint is not rate limited."""
    with patch("app.main.get_supabase_client") as mock_supabase:
        mock_supabase.return_value = MagicMock()

        for _ in range(5):
            response = client.get("/health")
            assert response.status_code in [200, 503]


def test_version_endpoint_no_rate_limit(client: TestClient, low_limit) -> None:
    """Test that version endpoint is not rate limited."""
    for _ in range(5):
        response = client.get("/version")
        assert response.status_code == 200
