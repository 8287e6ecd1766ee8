"""Tests for the admission gate and rate limiting middleware."""

import asyncio

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from recruiter.app.middleware.rate_limit import (
    AdmissionGate,
    RateLimitMiddleware,
    RateLimitResult,
)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def gate(clock):
    return AdmissionGate(max_requests=10, window_seconds=60, clock=clock)


class TestAdmissionGate:
    """Sliding-window admission decisions."""

    @pytest.mark.asyncio
    async def test_first_request_is_admitted(self, gate):
        result = await gate.check("10.0.0.1")

        assert result.allowed is True
        assert result.limit == 10
        assert result.remaining == 9
        assert result.retry_after is None

    @pytest.mark.asyncio
    async def test_eleventh_request_is_rejected(self, gate):
        for _ in range(10):
            assert await gate.admit("10.0.0.1") is True

        result = await gate.check("10.0.0.1")

        assert result.allowed is False
        assert result.remaining == 0
        assert result.retry_after == 60

    @pytest.mark.asyncio
    async def test_admitted_again_after_window_elapses(self, gate, clock):
        for _ in range(10):
            await gate.admit("10.0.0.1")
        assert await gate.admit("10.0.0.1") is False

        clock.advance(60)

        assert await gate.admit("10.0.0.1") is True

    @pytest.mark.asyncio
    async def test_window_slides(self, gate, clock):
        for _ in range(5):
            await gate.admit("10.0.0.1")
        clock.advance(30)
        for _ in range(5):
            await gate.admit("10.0.0.1")
        assert await gate.admit("10.0.0.1") is False

        # The first five leave the window; the second five are still in it.
        clock.advance(31)

        result = await gate.check("10.0.0.1")
        assert result.allowed is True
        assert result.remaining == 4

    @pytest.mark.asyncio
    async def test_rejections_are_not_recorded(self, gate, clock):
        for _ in range(10):
            await gate.admit("10.0.0.1")
        for _ in range(5):
            await gate.admit("10.0.0.1")

        clock.advance(60)

        for _ in range(10):
            assert await gate.admit("10.0.0.1") is True

    @pytest.mark.asyncio
    async def test_retry_after_counts_down(self, gate, clock):
        for _ in range(10):
            await gate.admit("10.0.0.1")

        clock.advance(45)
        result = await gate.check("10.0.0.1")

        assert result.allowed is False
        assert result.retry_after == 15

    @pytest.mark.asyncio
    async def test_identities_are_independent(self, gate):
        for _ in range(10):
            await gate.admit("key1")

        assert await gate.admit("key1") is False
        assert await gate.admit("key2") is True

    @pytest.mark.asyncio
    async def test_concurrent_checks_never_over_admit(self):
        gate = AdmissionGate(max_requests=10, window_seconds=60)

        results = await asyncio.gather(*(gate.admit("10.0.0.1") for _ in range(50)))

        assert results.count(True) == 10
        assert results.count(False) == 40

    @pytest.mark.parametrize("kwargs", [{"max_requests": 0}, {"window_seconds": 0}])
    def test_invalid_configuration(self, kwargs):
        with pytest.raises(ValueError):
            AdmissionGate(**kwargs)


class TestSweep:

    @pytest.mark.asyncio
    async def test_sweep_removes_idle_identities(self, gate, clock):
        await gate.admit("old")
        clock.advance(50)
        await gate.admit("recent")
        clock.advance(20)

        removed = await gate.sweep()

        assert removed == 1
        assert gate.tracked_identities == 1

    @pytest.mark.asyncio
    async def test_sweep_keeps_active_windows_pruned(self, gate, clock):
        for _ in range(10):
            await gate.admit("busy")
        clock.advance(61)
        await gate.admit("other")

        await gate.sweep()

        assert gate.tracked_identities == 1
        assert await gate.admit("busy") is True

    @pytest.mark.asyncio
    async def test_admission_continues_during_sweep(self, clock):
        gate = AdmissionGate(max_requests=10, window_seconds=60, clock=clock)
        for i in range(200):
            await gate.admit(f"client-{i}")
        clock.advance(120)

        sweep_task = asyncio.create_task(gate.sweep())
        await asyncio.sleep(0)
        # Sweep yields between identities, so admission proceeds mid-sweep.
        assert await gate.admit("newcomer") is True
        assert not sweep_task.done()

        assert await sweep_task == 200
        assert gate.tracked_identities == 1

    @pytest.mark.asyncio
    async def test_background_sweep_runs_periodically(self, clock):
        gate = AdmissionGate(max_requests=10, window_seconds=60, sweep_interval=0.01, clock=clock)
        await gate.admit("transient")
        clock.advance(61)

        await gate.start()
        try:
            for _ in range(100):
                if gate.tracked_identities == 0:
                    break
                await asyncio.sleep(0.01)
        finally:
            await gate.stop()

        assert gate.tracked_identities == 0

    @pytest.mark.asyncio
    async def test_start_and_stop_are_idempotent(self, gate):
        await gate.stop()
        await gate.start()
        await gate.start()
        await gate.stop()
        await gate.stop()


class TestRateLimitResult:

    def test_result_creation(self):
        result = RateLimitResult(allowed=True, limit=10, remaining=9, reset_after=60)

        assert result.allowed is True
        assert result.retry_after is None


class TestRateLimitMiddleware:

    def _app(self, gate: AdmissionGate, **kwargs) -> FastAPI:
        app = FastAPI()
        app.add_middleware(RateLimitMiddleware, gate=gate, **kwargs)

        @app.post("/api/generate-kit")
        async def kit():
            return {"ok": True}

        @app.get("/health")
        async def health():
            return {"status": "ok"}

        return app

    def test_rejects_with_429_and_headers(self):
        gate = AdmissionGate(max_requests=2, window_seconds=60)
        client = TestClient(self._app(gate))

        assert client.post("/api/generate-kit").status_code == 200
        second = client.post("/api/generate-kit")
        assert second.status_code == 200
        assert second.headers["X-RateLimit-Remaining"] == "0"

        resp = client.post("/api/generate-kit")

        assert resp.status_code == 429
        body = resp.json()
        assert body["error"] == "rate_limit_exceeded"
        assert "Maximum 2 requests per 60 seconds" in body["message"]
        assert resp.headers["X-RateLimit-Limit"] == "2"
        assert int(resp.headers["Retry-After"]) >= 1

    def test_paths_outside_prefix_are_not_limited(self):
        gate = AdmissionGate(max_requests=1, window_seconds=60)
        client = TestClient(self._app(gate))

        for _ in range(5):
            assert client.get("/health").status_code == 200
        assert gate.tracked_identities == 0

    def test_forwarded_for_is_ignored_unless_trusted(self):
        gate = AdmissionGate(max_requests=1, window_seconds=60)
        client = TestClient(self._app(gate))

        assert client.post("/api/generate-kit", headers={"X-Forwarded-For": "1.1.1.1"}).status_code == 200
        assert client.post("/api/generate-kit", headers={"X-Forwarded-For": "2.2.2.2"}).status_code == 429

    def test_forwarded_for_when_trusted(self):
        gate = AdmissionGate(max_requests=1, window_seconds=60)
        client = TestClient(self._app(gate, trust_forwarded_for=True))

        assert client.post("/api/generate-kit", headers={"X-Forwarded-For": "1.1.1.1"}).status_code == 200
        assert client.post("/api/generate-kit", headers={"X-Forwarded-For": "2.2.2.2, 10.0.0.1"}).status_code == 200
        assert client.post("/api/generate-kit", headers={"X-Forwarded-For": "1.1.1.1"}).status_code == 429
