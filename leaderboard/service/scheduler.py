"""Periodic, single-flight recompute scheduling."""

import logging
import threading
import time
from typing import Callable

from ..core import DRAIN_POLL_SECONDS, DRAIN_TIMEOUT_SECONDS, UPDATE_INTERVAL_SECONDS

logger = logging.getLogger(__name__)

STATE_STOPPED = "stopped"
STATE_IDLE = "idle"
STATE_COMPUTING = "computing"
STATE_SHUTTING_DOWN = "shutting_down"


class Scheduler:
    """
    Runs `task` once on start and then every `interval` seconds.

    Timer ticks and forced refreshes share one non-blocking guard: a trigger
    that arrives while a computation is in flight is dropped, never queued.
    Exceptions from `task` are logged and swallowed so the next tick acts as
    the retry.
    """

    def __init__(
        self,
        task: Callable[[], object],
        interval: float = UPDATE_INTERVAL_SECONDS,
        drain_timeout: float = DRAIN_TIMEOUT_SECONDS,
        poll_interval: float = DRAIN_POLL_SECONDS,
    ):
        self.task = task
        self.interval = interval
        self.drain_timeout = drain_timeout
        self.poll_interval = poll_interval

        self._busy = threading.Lock()
        self._state_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._ticker: threading.Thread | None = None
        self._running = False
        self._shutting_down = False

        self.completed = 0
        self.failed = 0
        self.skipped = 0

    def _count(self, counter: str):
        with self._state_lock:
            setattr(self, counter, getattr(self, counter) + 1)

    @property
    def running(self) -> bool:
        return self._running

    @property
    def state(self) -> str:
        if not self._running:
            return STATE_SHUTTING_DOWN if self._shutting_down else STATE_STOPPED
        return STATE_COMPUTING if self._busy.locked() else STATE_IDLE

    def start(self):
        """Run one computation now, then arm the periodic ticker. No-op if running."""
        with self._state_lock:
            if self._running:
                logger.warning("Leaderboard scheduler already running")
                return

            self._running = True
            self._stop_event = threading.Event()
            self._ticker = threading.Thread(
                target=self._tick_loop,
                args=(self._stop_event,),
                name="leaderboard-ticker",
                daemon=True,
            )
            self._ticker.start()

        logger.info(f"Leaderboard scheduler started - updating every {self.interval:g} seconds")

    def _tick_loop(self, stop_event: threading.Event):
        self.run_once("startup")
        while not stop_event.wait(self.interval):
            self.run_once("timer")

    def run_once(self, trigger: str = "timer") -> bool:
        """
        Run the task if nothing else is computing.
        Returns True if this call ran the task (successfully or not).
        """
        if not self._running:
            logger.info(f"Leaderboard scheduler is stopped, skipping {trigger} update")
            return False

        if not self._busy.acquire(blocking=False):
            self._count("skipped")
            logger.warning(f"Leaderboard update already in progress, skipping {trigger} trigger")
            return False

        if not self._running:
            self._busy.release()
            logger.info(f"Leaderboard scheduler is stopping, skipping {trigger} update")
            return False

        try:
            self.task()
            self._count("completed")
        except Exception as e:
            self._count("failed")
            logger.error(f"Failed to update leaderboard ({trigger}): {e}", exc_info=True)
        finally:
            self._busy.release()

        return True

    def force_refresh(self) -> bool:
        """
        Dispatch an immediate computation without waiting for it.
        Returns False if the trigger was dropped (busy or stopped).
        """
        if not self._running:
            logger.info("Leaderboard scheduler is stopped, ignoring refresh request")
            return False

        if self._busy.locked():
            self._count("skipped")
            logger.warning("Leaderboard update already in progress, ignoring refresh request")
            return False

        logger.info("Force updating leaderboard...")
        threading.Thread(
            target=self.run_once,
            args=("forced",),
            name="leaderboard-refresh",
            daemon=True,
        ).start()
        return True

    def wait_idle(self, timeout: float) -> bool:
        """Poll until no computation is in flight. Returns False on timeout."""
        deadline = time.monotonic() + timeout
        while self._busy.locked():
            if time.monotonic() >= deadline:
                return False
            time.sleep(self.poll_interval)
        return True

    def stop(self):
        """
        Cancel future ticks and wait (bounded) for an in-flight computation.
        Idempotent. The drain is best effort: on timeout we stop anyway.
        """
        with self._state_lock:
            if not self._running:
                return
            self._running = False
            self._shutting_down = True
            self._stop_event.set()
            ticker, self._ticker = self._ticker, None

        logger.info("Stopping leaderboard scheduler...")

        if self._busy.locked():
            logger.info("Waiting for ongoing leaderboard update to complete...")
            if not self.wait_idle(self.drain_timeout):
                logger.warning(
                    f"Leaderboard update still running after {self.drain_timeout:g}s, stopping anyway"
                )

        if ticker is not None and ticker is not threading.current_thread():
            ticker.join(timeout=self.poll_interval)

        self._shutting_down = False
        logger.info("Leaderboard scheduler stopped")
