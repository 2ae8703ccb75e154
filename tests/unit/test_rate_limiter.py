"""Tests for the sliding-window RateLimiter."""

import pytest

from scriptcast.utils.rate_limiter import RateLimiter


class TestRateLimiter:
    """Test suite for RateLimiter."""

    async def test_admits_immediately_below_limit(self, limiter_factory, fake_clock):
        """Calls under the limit should not wait."""
        limiter = limiter_factory(max_requests=3)

        for _ in range(3):
            assert await limiter.admit() == 0.0

        assert fake_clock.sleeps == []
        assert limiter.in_window == 3

    async def test_waits_for_oldest_to_leave_window(self, limiter_factory, fake_clock):
        """The call over the limit waits window - age(oldest) + margin."""
        limiter = limiter_factory(max_requests=2, window=60.0, safety_margin=1.0)

        await limiter.admit()  # t=1000
        fake_clock.now += 10
        await limiter.admit()  # t=1010
        fake_clock.now += 5  # t=1015, oldest is 15s old

        waited = await limiter.admit()

        assert waited == pytest.approx(46.0)
        assert fake_clock.sleeps == [pytest.approx(46.0)]

    async def test_admission_recorded_after_wait(self, limiter_factory, fake_clock):
        """The admission timestamp is taken after the wait, not before."""
        limiter = limiter_factory(max_requests=1, window=60.0, safety_margin=1.0)

        await limiter.admit()
        await limiter.admit()  # waits 61s, recorded at t=1061

        # At t=1061 + 59 the second admission is still inside the window
        fake_clock.now += 59
        assert limiter.in_window == 1
        await limiter.admit()
        assert fake_clock.sleeps[-1] == pytest.approx(2.0)

    async def test_window_never_exceeds_limit(self, limiter_factory, fake_clock):
        """No trailing window ever contains more than max_requests admissions."""
        limiter = limiter_factory(max_requests=3, window=60.0, safety_margin=0.5)
        admitted = []

        for _ in range(10):
            await limiter.admit()
            admitted.append(fake_clock.now)
            fake_clock.now += 1

        for i, start in enumerate(admitted):
            in_window = [t for t in admitted[i:] if t - start < 60.0]
            assert len(in_window) <= 3

    async def test_entries_older_than_window_are_evicted(self, limiter_factory, fake_clock):
        """Admissions at least one window old no longer count."""
        limiter = limiter_factory(max_requests=2, window=60.0)

        await limiter.admit()
        await limiter.admit()
        fake_clock.now += 60

        assert limiter.in_window == 0
        assert await limiter.admit() == 0.0

    async def test_reset_clears_history(self, limiter_factory):
        """reset() should forget every admission."""
        limiter = limiter_factory(max_requests=1)
        await limiter.admit()

        limiter.reset()

        assert limiter.in_window == 0
        assert await limiter.admit() == 0.0

    def test_rejects_invalid_configuration(self):
        """max_requests below 1 or a non-positive window are rejected."""
        with pytest.raises(ValueError):
            RateLimiter(max_requests=0)
        with pytest.raises(ValueError):
            RateLimiter(window=0)
