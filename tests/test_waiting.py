import unittest

from thermostat_e2e.waiting import poll_until


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class TestPollUntil(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()

    def _poll(self, values, expected, timeout=5.0, **kwargs):
        it = iter(values)
        return poll_until(lambda: next(it), lambda v: v == expected, timeout,
                          clock=self.clock, sleep=self.clock.sleep, **kwargs)

    def test_returns_as_soon_as_value_matches(self):
        self.assertEqual(self._poll([70, 70, 71], 71), 71)
        self.assertEqual(len(self.clock.sleeps), 2)

    def test_backoff_grows_and_caps(self):
        self._poll([0] * 10 + [1], 1, timeout=60.0, interval=1.0, backoff=2.0, max_interval=3.0)
        self.assertEqual(self.clock.sleeps[:4], [1.0, 2.0, 3.0, 3.0])

    def test_timeout_returns_last_value(self):
        result = self._poll(range(100), -1, timeout=1.0, interval=0.25, backoff=1.0)
        self.assertEqual(result, 4)
        self.assertAlmostEqual(self.clock.now, 1.0)

    def test_initial_delay_before_first_read(self):
        self._poll([5], 5, initial_delay=1.5)
        self.assertEqual(self.clock.sleeps, [1.5])

    def test_reads_at_least_once_with_zero_timeout(self):
        self.assertEqual(self._poll([9], 1, timeout=0.0), 9)


if __name__ == "__main__":
    unittest.main()
