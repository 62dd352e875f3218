from conftest import FakeClock

from gallery.services.rate_limit import RateLimiter


def make_limiter(clock: FakeClock) -> RateLimiter:
    return RateLimiter(max_requests=3, window_seconds=10, clock=clock)


def test_under_limit_allows_requests():
    limiter = make_limiter(FakeClock())
    decisions = [limiter.hit("1.2.3.4") for _ in range(3)]
    assert all(d.allowed for d in decisions)
    assert decisions[-1].remaining == 0


def test_exceeding_limit_blocks_request():
    clock = FakeClock()
    limiter = make_limiter(clock)
    for _ in range(3):
        limiter.hit("1.2.3.4")
    clock.advance(4)
    decision = limiter.hit("1.2.3.4")
    assert decision.allowed is False
    assert decision.retry_after == 6


def test_window_resets():
    clock = FakeClock()
    limiter = make_limiter(clock)
    for _ in range(4):
        limiter.hit("1.2.3.4")
    clock.advance(10)
    assert limiter.hit("1.2.3.4").allowed is True


def test_addresses_are_counted_separately():
    limiter = make_limiter(FakeClock())
    for _ in range(3):
        limiter.hit("1.2.3.4")
    assert limiter.hit("1.2.3.4").allowed is False
    assert limiter.hit("5.6.7.8").allowed is True


def test_reset_clears_counts():
    limiter = make_limiter(FakeClock())
    for _ in range(3):
        limiter.hit("1.2.3.4")
    limiter.reset("1.2.3.4")
    assert limiter.hit("1.2.3.4").allowed is True


def test_expired_addresses_are_dropped():
    clock = FakeClock()
    limiter = make_limiter(clock)
    for address in ("1.1.1.1", "2.2.2.2", "3.3.3.3"):
        limiter.hit(address)
    assert len(limiter) == 3

    clock.advance(10)
    limiter.hit("4.4.4.4")

    assert len(limiter) == 1


def test_sweep_keeps_active_windows():
    clock = FakeClock()
    limiter = make_limiter(clock)
    limiter.hit("1.1.1.1")
    clock.advance(6)
    for _ in range(3):
        limiter.hit("2.2.2.2")
    clock.advance(5)

    decision = limiter.hit("3.3.3.3")

    assert decision.allowed is True
    assert len(limiter) == 2
    assert limiter.hit("2.2.2.2").allowed is False
