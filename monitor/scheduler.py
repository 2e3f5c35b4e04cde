"""Background scheduler for periodic alert evaluation passes."""
import logging
import threading
import schedule

from utils.constants import DEFAULT_EVAL_INTERVAL_SECONDS, MAX_CONSECUTIVE_FAILURES

logger = logging.getLogger("lightwatch.scheduler")

IDLE = "idle"
RUNNING = "running"
STOPPED = "stopped"


class EngineScheduler:
    """Run `engine.tick()` every `interval_seconds` on a background thread.

    Passes never overlap: the next run is scheduled from the end of the
    previous pass, so a slow pass delays the cadence instead of queueing
    catch-up runs. `stop()` is observed only between passes.
    """

    def __init__(self, engine, interval_seconds=DEFAULT_EVAL_INTERVAL_SECONDS, run_immediately=True):
        self.engine = engine
        self.interval = interval_seconds
        self.run_immediately = run_immediately
        self.state = IDLE
        self.passes = 0
        self._jobs = schedule.Scheduler()
        self._stop_event = threading.Event()
        self._thread = None
        self._consecutive_failures = 0

    def start(self):
        """Start background evaluation."""
        if self.state != IDLE:
            logger.warning(f"Scheduler cannot start from state {self.state}")
            return
        self._jobs.every(self.interval).seconds.do(self._tick_job)
        self._thread = threading.Thread(target=self._run_loop, name="lightwatch-scheduler", daemon=True)
        self.state = RUNNING
        self._thread.start()
        logger.info(f"Alert engine started (every {self.interval}s)")

    def stop(self, timeout=None):
        """Request shutdown and wait for the in-flight pass to finish."""
        if self.state != RUNNING:
            return
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("Scheduler thread still finishing its pass")
            self._thread = None
        self._jobs.clear()
        self.state = STOPPED
        logger.info("Alert engine stopped")

    def _run_loop(self):
        if self.run_immediately:
            self._tick_job()
        while not self._stop_event.is_set():
            self._jobs.run_pending()
            idle = self._jobs.idle_seconds
            self._stop_event.wait(max(idle, 0) if idle is not None else 1)

    def _tick_job(self):
        try:
            fired = self.engine.tick()
            self._consecutive_failures = 0
            if fired:
                logger.info(f"Pass fired {len(fired)} alert(s)")
        except Exception as e:
            self._consecutive_failures += 1
            logger.error(f"Alert engine tick failed ({self._consecutive_failures} consecutive): {e}")
            if self._consecutive_failures >= MAX_CONSECUTIVE_FAILURES:
                logger.critical(f"{MAX_CONSECUTIVE_FAILURES}+ consecutive tick failures!")
        finally:
            self.passes += 1
