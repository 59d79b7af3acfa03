import threading
import unittest

from researchhub.core.rate_limit import RateLimiter


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class TestRateLimiter(unittest.TestCase):

    def setUp(self):
        self.clock = FakeClock()
        self.limiter = RateLimiter(max_attempts=5, window_ms=900_000, clock=self.clock)

    def test_sixth_attempt_in_window_is_denied(self):
        for _ in range(5):
            self.assertTrue(self.limiter.check("10.0.0.1").allowed)

        decision = self.limiter.check("10.0.0.1")
        self.assertFalse(decision.allowed)
        self.assertEqual(decision.retry_after, 900)

    def test_allows_again_after_window(self):
        for _ in range(5):
            self.limiter.check("10.0.0.1")
        self.assertFalse(self.limiter.check("10.0.0.1").allowed)

        self.clock.advance(900.001)
        self.assertTrue(self.limiter.check("10.0.0.1").allowed)

    def test_window_slides_with_the_oldest_attempt(self):
        self.limiter.check("k")
        self.clock.advance(600)
        for _ in range(4):
            self.limiter.check("k")

        decision = self.limiter.check("k")
        self.assertFalse(decision.allowed)
        self.assertEqual(decision.retry_after, 300)

        # Only the first attempt has aged out
        self.clock.advance(300.5)
        self.assertTrue(self.limiter.check("k").allowed)
        self.assertFalse(self.limiter.check("k").allowed)

    def test_denied_attempts_are_not_recorded(self):
        for _ in range(5):
            self.limiter.check("k")
        for _ in range(10):
            self.assertFalse(self.limiter.check("k").allowed)
        self.clock.advance(901)
        self.assertTrue(self.limiter.check("k").allowed)

    def test_keys_are_independent(self):
        for _ in range(5):
            self.limiter.check("a")
        self.assertFalse(self.limiter.check("a").allowed)
        self.assertTrue(self.limiter.check("b").allowed)

    def test_reset_clears_a_key(self):
        for _ in range(5):
            self.limiter.check("a")
        self.limiter.reset("a")
        self.assertTrue(self.limiter.check("a").allowed)

    def test_sweep_drops_idle_keys(self):
        self.limiter.check("old")
        self.clock.advance(1000)
        self.limiter.check("new")

        self.assertEqual(len(self.limiter), 2)
        self.assertEqual(self.limiter.sweep(), 1)
        self.assertEqual(len(self.limiter), 1)

    def test_sweep_runs_periodically(self):
        limiter = RateLimiter(max_attempts=5, window_ms=1000, clock=self.clock, sweep_every=3)
        limiter.check("a")
        limiter.check("b")
        self.clock.advance(5)
        limiter.check("c")  # third check sweeps a and b first
        self.assertEqual(len(limiter), 1)

    def test_concurrent_checks_never_exceed_the_limit(self):
        limiter = RateLimiter(max_attempts=5, window_ms=900_000)
        results = []
        lock = threading.Lock()

        def attempt():
            decision = limiter.check("shared")
            with lock:
                results.append(decision.allowed)

        threads = [threading.Thread(target=attempt) for _ in range(50)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(results.count(True), 5)
        self.assertEqual(results.count(False), 45)
