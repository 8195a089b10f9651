"""
HTTP-level tests for the verifier routes.

The orchestrator is built from real gate/cache/pattern objects with a mocked
browser manager and session, then swapped in through dependencies.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from apps.services.verifier import dependencies, diagnostics
from apps.services.verifier.app import create_app
from apps.services.verifier.code_normalizer import CodePattern
from apps.services.verifier.orchestrator import VerificationOrchestrator
from apps.services.verifier.rate_limiter import InMemoryRateLimiter
from apps.services.verifier.response_cache import InMemoryResultCache
from apps.services.verifier.routers.verify import sanitize_error_message
from libs.core.config import get_settings
from libs.core.exceptions import BrowserLaunchError, UpstreamAutomationError

FRAGMENTS = ["Jane Doe", "2021", "Activo", "Código: AVAL-123456789"]


@pytest.fixture
def browser_manager():
    manager = MagicMock()
    manager.acquire = AsyncMock(return_value=MagicMock(name="browser"))
    return manager


@pytest.fixture
def session():
    session = MagicMock()
    session.run = AsyncMock(return_value=list(FRAGMENTS))
    return session


@pytest.fixture
def client(browser_manager, session):
    dependencies.set_orchestrator(VerificationOrchestrator(
        rate_gate=InMemoryRateLimiter(interval_ms=5000),
        cache=InMemoryResultCache(),
        browser_manager=browser_manager,
        session=session,
        pattern=CodePattern(),
    ))
    # No context manager: the lifespan (logging setup, real wiring) is not run
    return TestClient(create_app())


def post_verify(client, code, ip="203.0.113.1"):
    return client.post("/verify", json={"code": code}, headers={"X-Forwarded-For": ip})


class TestHealthRoutes:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.text == "OK"

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"ok": True}

    def test_cors_preflight(self, client):
        response = client.options(
            "/verify",
            headers={
                "Origin": "https://example.org",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "Content-Type",
            },
        )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"


class TestVerifyRoute:

    def test_fresh_then_cached(self, client, session):
        first = post_verify(client, "aval\u2011123456789", ip="203.0.113.1")
        second = post_verify(client, "AVAL-123456789", ip="203.0.113.2")

        assert first.status_code == 200
        assert first.json() == {
            "cached": False,
            "code": "AVAL-123456789",
            "valid": True,
            "active": True,
            "nombre": "Jane Doe",
            "era": "2021",
            "estado": "Activo",
            "codigo": "AVAL-123456789",
            "fechaRegistro": None,
            "fechaAprobacion": None,
        }
        assert second.status_code == 200
        assert second.json()["cached"] is True
        assert session.run.await_count == 1

    def test_pattern_rejected(self, client, browser_manager):
        response = post_verify(client, "AVAL-12")

        assert response.status_code == 400
        assert response.json() == {
            "valid": False,
            "active": False,
            "reason": "pattern",
            "code": "AVAL-12",
        }
        browser_manager.acquire.assert_not_awaited()

    def test_missing_code(self, client):
        response = client.post("/verify", json={}, headers={"X-Forwarded-For": "203.0.113.9"})
        assert response.status_code == 400
        assert response.json()["code"] == ""

    def test_malformed_body(self, client):
        response = client.post(
            "/verify",
            content=b"{not json",
            headers={"Content-Type": "application/json", "X-Forwarded-For": "203.0.113.10"},
        )
        assert response.status_code == 400
        assert response.json()["reason"] == "pattern"

    def test_numeric_code_is_coerced(self, client):
        response = post_verify(client, 123456789)
        assert response.status_code == 400
        assert response.json()["code"] == "123456789"

    def test_rate_limited(self, client):
        post_verify(client, "AVAL-123456789", ip="198.51.100.7")
        response = post_verify(client, "AVAL-123456789", ip="198.51.100.7")

        assert response.status_code == 429
        body = response.json()
        assert body["error"] == "rate_limited"
        assert 0 < body["retryInMs"] <= 5000
        assert 1 <= int(response.headers["Retry-After"]) <= 5

    def test_forwarded_for_uses_first_hop(self, client):
        post_verify(client, "AVAL-123456789", ip="198.51.100.8, 10.0.0.1")
        response = post_verify(client, "AVAL-123456789", ip="198.51.100.8, 10.0.0.2")
        assert response.status_code == 429

    def test_automation_error(self, client, session):
        session.run.side_effect = UpstreamAutomationError(
            "results",
            "Timeout 90000ms exceeded.\nCall log:\n  - waiting for locator('div.top-item')",
        )

        response = post_verify(client, "AVAL-123456789")

        assert response.status_code == 502
        assert response.json() == {
            "ok": False,
            "stage": "verify",
            "step": "results",
            "message": "Timeout 90000ms exceeded.",
        }

    def test_launch_error(self, client, browser_manager):
        browser_manager.acquire.side_effect = BrowserLaunchError("Browser launch failed: missing libnss3")

        response = post_verify(client, "AVAL-123456789")

        assert response.status_code == 502
        assert response.json() == {
            "ok": False,
            "stage": "launch",
            "message": "Browser launch failed: missing libnss3",
        }

    def test_unexpected_error_is_502(self, client, session):
        session.run.side_effect = RuntimeError("page crashed\nCall log:\n  - navigating")

        response = post_verify(client, "AVAL-123456789", ip="203.0.113.30")

        assert response.status_code == 502
        assert response.json() == {"ok": False, "stage": "verify", "message": "page crashed"}

    def test_error_is_not_cached(self, client, session):
        session.run.side_effect = UpstreamAutomationError("navigate", "net::ERR_TIMED_OUT")
        assert post_verify(client, "AVAL-123456789", ip="203.0.113.20").status_code == 502

        session.run.side_effect = None
        response = post_verify(client, "AVAL-123456789", ip="203.0.113.21")
        assert response.status_code == 200
        assert response.json()["cached"] is False


class TestSanitizeErrorMessage:

    def test_strips_call_log(self):
        assert sanitize_error_message("boom\nCall log:\n  - a\n  - b") == "boom"

    def test_strips_logs_block(self):
        message = "browserType.launch: failed\n=========================== logs ===========================\n<launching>"
        assert sanitize_error_message(message) == "browserType.launch: failed"

    def test_truncates(self):
        text = sanitize_error_message("x" * 2000)
        assert len(text) == 500
        assert text.endswith("...")

    def test_empty(self):
        assert sanitize_error_message("") == ""


class TestDebugRoutes:

    def test_launch_failure_is_500(self, client, browser_manager):
        browser_manager.acquire.side_effect = BrowserLaunchError("Browser launch failed: boom")
        dependencies.set_browser_manager(browser_manager)
        dependencies.set_form_session(MagicMock())

        response = client.get("/debug/launch")

        assert response.status_code == 500
        assert response.json() == {
            "ok": False,
            "stage": "launch",
            "error": "Browser launch failed: boom",
        }

    def test_debug_routes_can_be_disabled(self, monkeypatch):
        monkeypatch.setenv("VERIFIER_DEBUG_ROUTES", "false")
        get_settings.cache_clear()

        client = TestClient(create_app())

        assert client.get("/debug/launch").status_code == 404

    def test_node_fetch_alias(self, client, monkeypatch):
        async def fake_check_network():
            return {"ok": True, "stage": "fetch", "status": 200, "bytes": 1256}

        monkeypatch.setattr(diagnostics, "check_network", fake_check_network)

        for path in ("/debug/fetch", "/debug/node-fetch"):
            response = client.get(path)
            assert response.status_code == 200
            assert response.json()["status"] == 200

    def test_raa_title_alias(self, client, browser_manager):
        browser_manager.acquire.side_effect = BrowserLaunchError("Browser launch failed: boom")
        dependencies.set_browser_manager(browser_manager)
        dependencies.set_form_session(MagicMock())

        for path in ("/debug/site-title", "/debug/raa-title"):
            response = client.get(path)
            assert response.status_code == 500
            assert response.json()["stage"] == "goto-site"
