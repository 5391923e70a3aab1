from __future__ import annotations

from datetime import date

import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings, get_settings
from app.core.rate_limit import InMemoryRateLimiter, RateLimitExceeded, RateLimitRule


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def test_limiter_blocks_after_max_requests() -> None:
    clock = FakeClock()
    limiter = InMemoryRateLimiter(clock=clock)
    rule = RateLimitRule(max_requests=2, window_seconds=60)

    assert limiter.hit("client-a", rule) == 1
    assert limiter.hit("client-a", rule) == 0

    clock.advance(15.2)
    with pytest.raises(RateLimitExceeded) as exc_info:
        limiter.hit("client-a", rule)

    assert exc_info.value.retry_after == 45
    assert limiter.hit("client-b", rule) == 1


def test_limiter_window_resets() -> None:
    clock = FakeClock()
    limiter = InMemoryRateLimiter(clock=clock)
    rule = RateLimitRule(max_requests=1, window_seconds=10)

    limiter.hit("client", rule)
    with pytest.raises(RateLimitExceeded):
        limiter.hit("client", rule)

    clock.advance(10)
    assert limiter.hit("client", rule) == 0


def test_limiter_evicts_least_recent_key_when_full() -> None:
    clock = FakeClock()
    limiter = InMemoryRateLimiter(clock=clock, max_keys=2, sweep_seconds=3600)
    rule = RateLimitRule(max_requests=1, window_seconds=600)

    limiter.hit("first", rule)
    limiter.hit("second", rule)
    limiter.hit("third", rule)

    assert len(limiter) == 2
    # "first" was evicted, so it starts a fresh window.
    assert limiter.hit("first", rule) == 0
    with pytest.raises(RateLimitExceeded):
        limiter.hit("third", rule)


def test_limiter_sweeps_expired_windows() -> None:
    clock = FakeClock()
    limiter = InMemoryRateLimiter(clock=clock, sweep_seconds=30)
    short = RateLimitRule(max_requests=5, window_seconds=5)

    for key in ("a", "b", "c"):
        limiter.hit(key, short)
    assert len(limiter) == 3

    clock.advance(31)
    limiter.hit("d", short)

    assert len(limiter) == 1


def test_limiter_reset() -> None:
    limiter = InMemoryRateLimiter(clock=FakeClock())
    rule = RateLimitRule(max_requests=1, window_seconds=60)
    limiter.hit("a", rule)
    limiter.hit("b", rule)

    limiter.reset("a")
    assert len(limiter) == 1
    limiter.reset()
    assert len(limiter) == 0


def test_list_endpoint_returns_429_with_retry_after(client: TestClient) -> None:
    client.app.dependency_overrides[get_settings] = lambda: Settings(rate_limit_max_requests=2)

    statuses = [client.get("/api/v1/projects").status_code for _ in range(3)]
    blocked = client.get("/api/v1/projects")

    assert statuses == [200, 200, 429]
    assert blocked.status_code == 429
    assert int(blocked.headers["Retry-After"]) > 0
    assert blocked.json() == {
        "success": False,
        "error": "Too many requests. Please try again later.",
        "code": "rate_limited",
    }


def test_clients_are_keyed_by_forwarded_address(client: TestClient) -> None:
    client.app.dependency_overrides[get_settings] = lambda: Settings(rate_limit_max_requests=1)

    first = client.get("/api/v1/resources", headers={"X-Forwarded-For": "10.0.0.1, 172.16.0.1"})
    repeat = client.get("/api/v1/resources", headers={"X-Forwarded-For": "10.0.0.1"})
    other = client.get("/api/v1/resources", headers={"X-Forwarded-For": "10.0.0.2"})

    assert (first.status_code, repeat.status_code, other.status_code) == (200, 429, 200)


def test_export_scope_is_limited_separately(client: TestClient, seed) -> None:
    client.app.dependency_overrides[get_settings] = lambda: Settings(
        rate_limit_max_requests=1,
        rate_limit_export_max_requests=1,
    )
    project = seed.project("Apollo")
    seed.allocation(seed.resource("Alice"), seed.work_type("Project"), date(2025, 6, 9), "2", project=project)

    assert client.get("/api/v1/projects").status_code == 200
    params = {"project_id": str(project.id)}
    assert client.get("/api/v1/exports/project-planning", params=params).status_code == 200

    blocked = client.get("/api/v1/exports/project-planning", params=params)
    assert blocked.status_code == 429
    assert blocked.json()["error"] == "Too many export requests. Please try again later."


def test_disabled_limiter_never_blocks(client: TestClient) -> None:
    client.app.dependency_overrides[get_settings] = lambda: Settings(
        rate_limit_enabled=False,
        rate_limit_max_requests=1,
    )

    assert all(client.get("/api/v1/projects").status_code == 200 for _ in range(3))
