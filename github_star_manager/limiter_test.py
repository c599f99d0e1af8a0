"""Unit tests for the token bucket limiter."""

import random
import threading

import pytest

from .limiter import TokenBucket


def describe_TokenBucket():
    def _bucket(clock, capacity=5, refill_rate=5.0, **kw):
        return TokenBucket(capacity, refill_rate, clock=clock, sleep=clock.sleep, **kw)

    def describe_acquire():
        def it_allows_a_burst_up_to_capacity(clock):
            bucket = _bucket(clock)

            for _ in range(5):
                bucket.acquire()

            assert clock.sleeps == []
            assert bucket.remaining == pytest.approx(0)

        def it_blocks_the_sixth_call_until_refill(clock):
            bucket = _bucket(clock)
            for _ in range(5):
                bucket.acquire()

            bucket.acquire()

            # one token at 5/s
            assert sum(clock.sleeps) == pytest.approx(0.2, abs=0.01)
            assert 0 <= bucket.remaining < 1

        def it_debits_the_full_cost(clock):
            bucket = _bucket(clock, capacity=10, refill_rate=1.0)

            bucket.acquire(4)

            assert bucket.remaining == pytest.approx(6)
            assert clock.sleeps == []

        def it_waits_for_a_multi_token_cost(clock):
            bucket = _bucket(clock, capacity=10, refill_rate=2.0)
            bucket.acquire(9)

            bucket.acquire(3)

            # needed 2 more tokens at 2/s
            assert sum(clock.sleeps) == pytest.approx(1.0, abs=0.01)
            assert bucket.remaining >= 0

        def it_refills_lazily_from_elapsed_time(clock):
            bucket = _bucket(clock, capacity=5, refill_rate=1.0)
            for _ in range(5):
                bucket.acquire()

            clock.now += 3
            bucket.acquire()

            assert clock.sleeps == []
            assert bucket.remaining == pytest.approx(2)

        def it_never_refills_above_capacity(clock):
            bucket = _bucket(clock, capacity=5, refill_rate=100.0)
            bucket.acquire()

            clock.now += 60
            bucket.acquire()

            assert bucket.remaining == pytest.approx(4)

        def it_clamps_each_wait_to_max_wait(clock):
            bucket = _bucket(clock, capacity=1, refill_rate=0.01, max_wait=30.0)
            bucket.acquire()

            bucket.acquire()

            assert max(clock.sleeps) <= 30.0
            assert sum(clock.sleeps) == pytest.approx(100.0, abs=0.1)

        def it_fills_the_bucket_once_the_server_reset_passes(clock):
            bucket = _bucket(clock, capacity=10, refill_rate=1.0)
            bucket.observe(remaining=0, capacity=10, reset_at=clock.now + 2)
            # a local estimate far slower than the server's window
            bucket.refill_rate = 0.001

            clock.now += 3
            bucket.acquire()

            assert clock.sleeps == []
            assert bucket.remaining == pytest.approx(9)
            assert bucket.reset_at is None

        def it_rejects_a_cost_below_one(clock):
            bucket = _bucket(clock)

            with pytest.raises(ValueError):
                bucket.acquire(0)

    def describe_fail_open():
        def it_proceeds_with_zero_capacity(clock):
            bucket = _bucket(clock, capacity=0)

            bucket.acquire()

            assert clock.sleeps == []

        def it_proceeds_with_negative_refill_rate(clock):
            bucket = _bucket(clock, capacity=1, refill_rate=-1.0)
            bucket.acquire()

            bucket.acquire()

            assert clock.sleeps == []
            assert bucket.remaining == 0

        def it_proceeds_when_cost_exceeds_capacity(clock):
            bucket = _bucket(clock, capacity=2)

            bucket.acquire(3)

            assert clock.sleeps == []
            assert bucket.remaining == pytest.approx(2)

        def it_waits_for_reset_when_refill_is_zero(clock):
            bucket = _bucket(clock, capacity=1, refill_rate=0.0)
            bucket.acquire()
            bucket.reset_at = clock.now + 5

            bucket.acquire()

            assert sum(clock.sleeps) == pytest.approx(5.0, abs=0.01)

    def describe_observe():
        def it_overwrites_remaining_and_capacity(clock):
            bucket = _bucket(clock)

            bucket.observe(remaining=4200, capacity=5000)

            assert bucket.capacity == 5000
            assert bucket.remaining == 4200

        def it_projects_refill_to_the_reset_window(clock):
            bucket = _bucket(clock)

            bucket.observe(remaining=0, capacity=5000, reset_at=clock.now + 1000)

            assert bucket.refill_rate == pytest.approx(5.0)
            assert bucket.reset_at == clock.now + 1000

        def it_uses_at_least_one_second_for_a_stale_reset(clock):
            bucket = _bucket(clock)

            bucket.observe(remaining=10, capacity=60, reset_at=clock.now - 30)

            assert bucket.refill_rate == pytest.approx(60.0)

        def it_keeps_the_rate_without_a_reset(clock):
            bucket = _bucket(clock, refill_rate=2.5)

            bucket.observe(remaining=3, capacity=5)

            assert bucket.refill_rate == 2.5

        def it_clamps_remaining_into_range(clock):
            bucket = _bucket(clock)

            bucket.observe(remaining=900, capacity=100)
            assert bucket.remaining == 100

            bucket.observe(remaining=-5, capacity=100)
            assert bucket.remaining == 0

        def it_clamps_a_negative_capacity_to_zero(clock):
            bucket = _bucket(clock)

            bucket.observe(remaining=0, capacity=-1)

            assert bucket.capacity == 0
            assert 0 <= bucket.remaining <= bucket.capacity

    def describe_invariants():
        def it_keeps_remaining_within_capacity_for_any_sequence(clock):
            rng = random.Random(42)
            bucket = _bucket(clock, capacity=20, refill_rate=3.0)

            for _ in range(500):
                if rng.random() < 0.3:
                    capacity = rng.randint(-5, 50)
                    reset = clock.now + rng.randint(-10, 100) if rng.random() < 0.5 else None
                    bucket.observe(rng.randint(-5, 80), capacity, reset)
                else:
                    bucket.acquire(rng.randint(1, 3))
                clock.now += rng.random()
                assert 0 <= bucket.remaining <= bucket.capacity

        def it_is_safe_across_threads():
            bucket = TokenBucket(capacity=100, refill_rate=0.001)

            def worker():
                for _ in range(10):
                    bucket.acquire()

            threads = [threading.Thread(target=worker) for _ in range(10)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

            assert 0 <= bucket.remaining < 1
