from datetime import datetime, timedelta
from unittest import TestCase

from usage_collector.scheduler import CronScheduler, validate_cron


class FakeClock:
    """Advances by however long the scheduler sleeps."""

    def __init__(self, now):
        self.now = now
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += timedelta(seconds=seconds)


class TestCronScheduler(TestCase):
    def test_validate_cron(self):
        self.assertTrue(validate_cron("0 */4 * * *"))
        self.assertTrue(validate_cron("*/30 * * * *"))
        self.assertFalse(validate_cron("every hour"))
        self.assertFalse(validate_cron("61 * * * *"))

    def test_invalid_expression(self):
        with self.assertRaises(ValueError):
            CronScheduler("nope", lambda: None)

    def test_runs_immediately_then_on_schedule(self):
        clock = FakeClock(datetime(2025, 1, 20, 9, 30))
        runs = []
        scheduler = CronScheduler("0 * * * *", lambda: runs.append(clock.now), clock=clock, sleep=clock.sleep)

        self.assertEqual(scheduler.run_forever(max_runs=3), 3)
        self.assertEqual(
            runs,
            [
                datetime(2025, 1, 20, 9, 30),
                datetime(2025, 1, 20, 10, 0),
                datetime(2025, 1, 20, 11, 0),
            ],
        )
        self.assertEqual(clock.sleeps, [1800, 3600])

    def test_failing_job_keeps_schedule_alive(self):
        clock = FakeClock(datetime(2025, 1, 20, 9, 0))
        calls = []

        def job():
            calls.append(1)
            raise RuntimeError("sync exploded")

        scheduler = CronScheduler("*/30 * * * *", job, clock=clock, sleep=clock.sleep)

        self.assertEqual(scheduler.run_forever(max_runs=2), 2)
        self.assertEqual(len(calls), 2)

    def test_next_run(self):
        scheduler = CronScheduler("0 */4 * * *", lambda: None)
        self.assertEqual(
            scheduler.next_run(datetime(2025, 1, 20, 9, 15)), datetime(2025, 1, 20, 12, 0)
        )
