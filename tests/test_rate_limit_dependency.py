"""Tests for the rate limiting dependencies and their HTTP behaviour."""

from unittest.mock import Mock

import pytest
import redis
from fastapi import HTTPException
from fastapi.testclient import TestClient

from app.adapters.rate_limit.base import AbstractCounterStore, RateLimitPolicy
from app.adapters.rate_limit.in_memory import InMemoryCounterStore
from app.adapters.rate_limit.redis_store import RedisCounterStore
from app.core import rate_limit as rate_limit_module
from app.core.config import RateLimitSettings, settings
from app.core.errors import RateLimitStoreAppError
from app.core.rate_limit import (
    apply_rate_limit,
    authenticated_subject_key,
    build_counter_store,
    client_address_key,
    get_counter_store,
    ip_policy,
    user_policy,
)
from app.core.security import create_access_token
from app.main import app
from app.services.admission_controller import AdmissionController


def _request(host: str | None = "203.0.113.5", headers: dict[str, str] | None = None) -> Mock:
    request = Mock()
    request.client = Mock(host=host) if host is not None else None
    request.headers = headers or {}
    return request


class TestKeyDerivation:
    def test_uses_client_host(self) -> None:
        assert client_address_key(_request()) == "203.0.113.5"

    def test_missing_client_falls_back_to_unknown(self) -> None:
        assert client_address_key(_request(host=None)) == "unknown"

    def test_forwarded_for_ignored_by_default(self) -> None:
        request = _request(headers={"X-Forwarded-For": "198.51.100.7, 10.0.0.1"})

        assert client_address_key(request) == "203.0.113.5"

    def test_forwarded_for_first_hop_when_trusted(self) -> None:
        request = _request(headers={"X-Forwarded-For": "198.51.100.7, 10.0.0.1"})

        assert client_address_key(request, trust_forwarded_for=True) == "198.51.100.7"

    def test_blank_forwarded_for_falls_back_to_client(self) -> None:
        request = _request(headers={"X-Forwarded-For": " "})

        assert client_address_key(request, trust_forwarded_for=True) == "203.0.113.5"

    def test_subject_key_is_user_id(self) -> None:
        assert authenticated_subject_key("de305d54-75b4-431b-adb2-eb6b9e546099") == (
            "de305d54-75b4-431b-adb2-eb6b9e546099"
        )


class TestPoliciesFromSettings:
    def test_ip_policy(self) -> None:
        cfg = RateLimitSettings(ip_namespace="addr", ip_max_requests=5, ip_window_seconds=30)

        assert ip_policy(cfg) == RateLimitPolicy(namespace="addr", max_count=5, window_seconds=30)

    def test_user_policy(self) -> None:
        cfg = RateLimitSettings(user_namespace="acct", user_max_requests=7, user_window_seconds=90)

        assert user_policy(cfg) == RateLimitPolicy(namespace="acct", max_count=7, window_seconds=90)

    def test_non_positive_limits_rejected_at_load(self) -> None:
        with pytest.raises(ValueError):
            RateLimitSettings(ip_max_requests=0)


class TestCounterStoreFactory:
    def test_memory_backend(self) -> None:
        assert isinstance(build_counter_store("memory"), InMemoryCounterStore)

    def test_redis_backend(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(rate_limit_module, "get_redis_client", lambda: Mock(spec=redis.Redis))

        assert isinstance(build_counter_store("REDIS"), RedisCounterStore)

    def test_unknown_backend(self) -> None:
        with pytest.raises(ValueError):
            build_counter_store("memcached")

    def test_store_is_cached_until_backend_changes(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(rate_limit_module, "_store", None)
        monkeypatch.setattr(rate_limit_module, "_store_backend", None)
        monkeypatch.setattr(settings.rate_limit, "backend", "memory")

        first = get_counter_store()
        assert get_counter_store() is first


class TestApplyRateLimit:
    def test_exceeded_raises_429_with_headers(self) -> None:
        controller = AdmissionController(InMemoryCounterStore())
        policy = RateLimitPolicy(namespace="ip", max_count=1, window_seconds=60)
        cfg = RateLimitSettings(include_headers=True)

        apply_rate_limit(controller, policy, "k", rate_limit_settings=cfg)
        with pytest.raises(HTTPException) as exc_info:
            apply_rate_limit(controller, policy, "k", rate_limit_settings=cfg)

        assert exc_info.value.status_code == 429
        assert exc_info.value.detail == "rate limit exceeded"
        assert exc_info.value.headers == {"X-RateLimit-Limit": "1", "X-RateLimit-Remaining": "0"}

    def test_headers_can_be_disabled(self) -> None:
        controller = AdmissionController(InMemoryCounterStore())
        policy = RateLimitPolicy(namespace="ip", max_count=1, window_seconds=60)
        cfg = RateLimitSettings(include_headers=False)

        apply_rate_limit(controller, policy, "k", rate_limit_settings=cfg)
        with pytest.raises(HTTPException) as exc_info:
            apply_rate_limit(controller, policy, "k", rate_limit_settings=cfg)

        assert exc_info.value.headers is None

    def test_store_failure_propagates_when_fail_closed(self) -> None:
        store = Mock(spec=AbstractCounterStore)
        store.get_count.side_effect = redis.ConnectionError("down")
        policy = RateLimitPolicy(namespace="ip", max_count=1, window_seconds=60)

        with pytest.raises(RateLimitStoreAppError):
            apply_rate_limit(
                AdmissionController(store),
                policy,
                "k",
                rate_limit_settings=RateLimitSettings(fail_open=False),
            )

    def test_store_failure_admits_when_fail_open(self) -> None:
        store = Mock(spec=AbstractCounterStore)
        store.get_count.side_effect = redis.ConnectionError("down")
        policy = RateLimitPolicy(namespace="ip", max_count=1, window_seconds=60)

        result = apply_rate_limit(
            AdmissionController(store),
            policy,
            "k",
            rate_limit_settings=RateLimitSettings(fail_open=True),
        )

        assert result is None


@pytest.fixture
def tight_limits(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings.rate_limit, "ip_max_requests", 2)
    monkeypatch.setattr(settings.rate_limit, "user_max_requests", 2)
    monkeypatch.setattr(settings.rate_limit, "include_headers", True)
    monkeypatch.setattr(settings.rate_limit, "fail_open", False)
    monkeypatch.setattr(settings.rate_limit, "enabled", True)


@pytest.mark.usefixtures("tight_limits")
class TestHttpThrottling:
    def test_login_throttled_by_address(self, client: TestClient) -> None:
        payload = {"username": "nobody", "password": "Wrong_password1!"}

        assert client.post("/v1/users/login", json=payload).status_code == 400
        assert client.post("/v1/users/login", json=payload).status_code == 400

        resp = client.post("/v1/users/login", json=payload)
        assert resp.status_code == 429
        assert resp.json() == {"detail": "rate limit exceeded"}
        assert resp.headers["X-RateLimit-Limit"] == "2"
        assert resp.headers["X-RateLimit-Remaining"] == "0"

    def test_address_budget_shared_by_register_and_login(
        self, client: TestClient, valid_registration: dict[str, str]
    ) -> None:
        assert client.post("/v1/users/register", json=valid_registration).status_code == 201
        assert client.post(
            "/v1/users/login",
            json={"username": valid_registration["username"], "password": valid_registration["password"]},
        ).status_code == 200

        assert client.post("/v1/users/register", json=valid_registration).status_code == 429

    def test_profile_throttled_per_user(self, client: TestClient, counter_store: InMemoryCounterStore) -> None:
        alice = {"Authorization": f"Bearer {create_access_token('alice-id')}"}
        bob = {"Authorization": f"Bearer {create_access_token('bob-id')}"}

        # Unknown subjects get 401 from the service, but still spend budget
        assert client.get("/v1/self/info", headers=alice).status_code == 401
        assert client.get("/v1/self/info", headers=alice).status_code == 401
        assert client.get("/v1/self/info", headers=alice).status_code == 429

        assert client.get("/v1/self/info", headers=bob).status_code == 401
        assert counter_store.get_count("user:alice-id") == 2
        assert counter_store.get_count("user:bob-id") == 1

    def test_missing_token_rejected_before_budget_is_spent(
        self, client: TestClient, counter_store: InMemoryCounterStore
    ) -> None:
        for _ in range(3):
            assert client.get("/v1/self/info").status_code == 401

        assert counter_store.get_count("user:unknown") == 0

    def test_health_check_is_not_throttled(self, client: TestClient) -> None:
        for _ in range(5):
            assert client.get("/health-check").status_code == 200

    def test_disabled_rate_limit_admits_everything(
        self, client: TestClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings.rate_limit, "enabled", False)
        payload = {"username": "nobody", "password": "Wrong_password1!"}

        for _ in range(5):
            assert client.post("/v1/users/login", json=payload).status_code == 400

    def test_store_outage_returns_503(self, client: TestClient) -> None:
        broken = Mock(spec=AbstractCounterStore)
        broken.get_count.side_effect = redis.ConnectionError("Connection refused")
        app.dependency_overrides[get_counter_store] = lambda: broken

        resp = client.post("/v1/users/login", json={"username": "u", "password": "Password_123"})

        assert resp.status_code == 503
        assert resp.json()["error"]["code"] == "rate_limit_store_unavailable"

    def test_corrupted_counter_is_500_even_when_fail_open(
        self, client: TestClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings.rate_limit, "fail_open", True)
        broken = Mock(spec=AbstractCounterStore)
        broken.get_count.side_effect = ValueError("invalid literal for int()")
        app.dependency_overrides[get_counter_store] = lambda: broken

        resp = TestClient(app, raise_server_exceptions=False).post(
            "/v1/users/login", json={"username": "u", "password": "Password_123"}
        )

        assert resp.status_code == 500
        assert resp.json()["error"]["code"] == "internal_server_error"

    def test_store_outage_fail_open_reaches_handler(
        self, client: TestClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings.rate_limit, "fail_open", True)
        broken = Mock(spec=AbstractCounterStore)
        broken.get_count.side_effect = redis.ConnectionError("Connection refused")
        app.dependency_overrides[get_counter_store] = lambda: broken

        resp = client.post("/v1/users/login", json={"username": "u", "password": "Password_123"})

        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "invalid_credentials"
