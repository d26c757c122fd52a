import pytest

from thoughtchain.errors import RateLimitError
from thoughtchain.services.rate_limiter import (
    InMemoryRateLimiter,
    RateLimitConfig,
    RateLimitGate,
    RateLimitRule,
    build_rate_limit_gate,
)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def test_limit_blocks_after_max_requests():
    clock = FakeClock()
    limiter = InMemoryRateLimiter(RateLimitRule(limit=2, window_seconds=60), clock=clock)

    assert limiter.is_allowed("client")
    assert limiter.is_allowed("client")
    assert not limiter.is_allowed("client")


def test_window_slides():
    clock = FakeClock()
    limiter = InMemoryRateLimiter(RateLimitRule(limit=2, window_seconds=60), clock=clock)

    assert limiter.is_allowed("client")
    clock.advance(30)
    assert limiter.is_allowed("client")
    assert not limiter.is_allowed("client")

    clock.advance(31)
    assert limiter.is_allowed("client")
    assert not limiter.is_allowed("client")


def test_clients_are_isolated():
    limiter = InMemoryRateLimiter(RateLimitRule(limit=1, window_seconds=60), clock=FakeClock())
    assert limiter.is_allowed("a")
    assert limiter.is_allowed("b")
    assert not limiter.is_allowed("a")


def test_check_raises_with_retry_after():
    clock = FakeClock()
    limiter = InMemoryRateLimiter(RateLimitRule(limit=1, window_seconds=60), clock=clock)
    limiter.check("client")
    clock.advance(20)

    with pytest.raises(RateLimitError) as excinfo:
        limiter.check("client")
    assert str(excinfo.value) == "Rate limit exceeded: max 1 requests per 60 seconds"
    assert excinfo.value.retry_after_seconds == 40


def test_cleanup_forgets_idle_clients():
    clock = FakeClock()
    limiter = InMemoryRateLimiter(RateLimitRule(limit=5, window_seconds=10), clock=clock)
    limiter.is_allowed("idle")
    clock.advance(5)
    limiter.is_allowed("busy")
    clock.advance(6)

    assert limiter.cleanup() == 1
    assert limiter.tracked_clients() == 1
    assert limiter.retry_after("idle") is None


def test_full_table_is_pruned_before_adding():
    clock = FakeClock()
    limiter = InMemoryRateLimiter(RateLimitRule(limit=5, window_seconds=10), max_entries=2, clock=clock)
    limiter.is_allowed("a")
    limiter.is_allowed("b")
    clock.advance(11)
    limiter.is_allowed("c")
    assert limiter.tracked_clients() == 1


def test_gate_runs_periodic_cleanup():
    clock = FakeClock()
    limiter = InMemoryRateLimiter(RateLimitRule(limit=100, window_seconds=10), clock=clock)
    gate = RateLimitGate(limiter, cleanup_every=3)

    gate.check("stale")
    clock.advance(11)
    gate.check("fresh")
    assert limiter.tracked_clients() == 2
    gate.check("fresh")
    assert limiter.tracked_clients() == 1


def test_disabled_gate_never_blocks():
    gate = build_rate_limit_gate(
        RateLimitConfig(enabled=False, rule=RateLimitRule(limit=1, window_seconds=60))
    )
    assert gate.limiter is None
    for _ in range(10):
        gate.check("client")


def test_enabled_gate_blocks():
    gate = build_rate_limit_gate(
        RateLimitConfig(enabled=True, rule=RateLimitRule(limit=1, window_seconds=60))
    )
    gate.check("client")
    with pytest.raises(RateLimitError):
        gate.check("client")
