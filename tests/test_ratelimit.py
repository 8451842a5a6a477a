"""Tests for the leaky-bucket rate limiter."""

import threading

import pytest

from chat_gateway.ratelimit import LeakyBucketRateLimiter


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestLeakyBucket:
    @pytest.fixture
    def clock(self):
        return FakeClock()

    def test_starts_full_and_denies_when_empty(self, clock):
        limiter = LeakyBucketRateLimiter(3, 1.0, clock=clock)

        assert [limiter.try_admit() for _ in range(4)] == [True, True, True, False]

    def test_refills_over_time(self, clock):
        limiter = LeakyBucketRateLimiter(2, 0.5, clock=clock)
        assert limiter.try_admit()
        assert limiter.try_admit()
        assert not limiter.try_admit()

        clock.now += 1.0  # half a token
        assert not limiter.try_admit()

        clock.now += 1.0
        assert limiter.try_admit()
        assert not limiter.try_admit()

    def test_level_never_exceeds_capacity(self, clock):
        limiter = LeakyBucketRateLimiter(5, 10.0, clock=clock)
        limiter.try_admit()

        clock.now += 3600
        assert limiter.level == 5

    def test_default_is_ten_per_minute(self, clock):
        limiter = LeakyBucketRateLimiter(clock=clock)
        admitted = sum(limiter.try_admit() for _ in range(20))
        assert admitted == 10

        clock.now += 6.5  # one token per six seconds
        assert limiter.try_admit()
        assert not limiter.try_admit()

    def test_per_minute(self):
        limiter = LeakyBucketRateLimiter.per_minute(4, 30)
        assert limiter.capacity == 4
        assert limiter.refill_rate == pytest.approx(0.5)

    @pytest.mark.parametrize("capacity, rate", [(0, 1.0), (1, 0.0), (1, -2.0)])
    def test_invalid_arguments(self, capacity, rate):
        with pytest.raises(ValueError):
            LeakyBucketRateLimiter(capacity, rate)

    def test_clock_going_backwards_does_not_drain(self, clock):
        limiter = LeakyBucketRateLimiter(1, 1.0, clock=clock)
        clock.now -= 100
        assert limiter.try_admit()


class TestConcurrentAdmission:
    def test_threads_never_admit_more_than_capacity(self):
        limiter = LeakyBucketRateLimiter(50, 1e-9)
        start = threading.Barrier(8)
        admitted = []

        def worker():
            start.wait()
            admitted.append(sum(limiter.try_admit() for _ in range(100)))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sum(admitted) == 50
