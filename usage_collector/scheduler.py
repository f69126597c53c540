import time
from collections.abc import Callable
from datetime import datetime

from croniter import croniter

from usage_collector.logger import get_logger

logger = get_logger(name="scheduler")


def validate_cron(expression: str) -> bool:
    return croniter.is_valid(expression)


class CronScheduler:
    """Runs a job now and then at every firing of a cron expression.

    Runs are strictly sequential: the next firing is computed after the job
    returns, so a slow run delays (never overlaps) the next one and missed
    firings are skipped.
    """

    def __init__(
        self,
        expression: str,
        job: Callable[[], object],
        clock: Callable[[], datetime] = datetime.now,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if not validate_cron(expression):
            raise ValueError(f"Invalid cron expression: {expression!r}")
        self.expression = expression
        self.job = job
        self.clock = clock
        self.sleep = sleep

    def next_run(self, after: datetime) -> datetime:
        return croniter(self.expression, after).get_next(datetime)

    def _run_job(self) -> None:
        try:
            self.job()
        except Exception as e:
            # A failed run must not kill the schedule
            logger.exception(f"Scheduled sync failed: {e}")

    def run_forever(self, max_runs: int | None = None) -> int:
        """Block running the job; returns the number of runs (for ``max_runs``)."""
        runs = 0
        logger.info("Running initial sync...")
        self._run_job()
        runs += 1

        while max_runs is None or runs < max_runs:
            now = self.clock()
            upcoming = self.next_run(now)
            wait = max((upcoming - now).total_seconds(), 0)
            logger.info(f"Next sync at {upcoming:%Y-%m-%d %H:%M}")
            self.sleep(wait)
            logger.info("Running scheduled sync...")
            self._run_job()
            runs += 1
        return runs
