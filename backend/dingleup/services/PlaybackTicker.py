import logging
import threading
import uuid

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler

logger = logging.getLogger(__name__)


class PlaybackTicker:
    """
    Drives a PlaybackGate with one recurring APScheduler job.
    All gate calls go through the ticker so the scheduler thread and the
    caller never touch the gate at the same time.
    """
    DEFAULT_INTERVAL_MS = 200

    def __init__(self, gate, scheduler=None, interval_ms=DEFAULT_INTERVAL_MS):
        self.gate = gate
        self.scheduler = scheduler or BackgroundScheduler()
        self._owns_scheduler = scheduler is None
        self.interval_ms = interval_ms
        self.job_id = f"playback-gate-{uuid.uuid4().hex[:8]}"
        self.job = None
        self.lock = threading.RLock()

    @property
    def running(self):
        return self.job is not None

    def start(self):
        if self.job is not None:
            return
        if self._owns_scheduler and not self.scheduler.running:
            self.scheduler.start()
        self.job = self.scheduler.add_job(
            self._tick,
            'interval',
            seconds=self.interval_ms / 1000.0,
            id=self.job_id,
            max_instances=1,
            coalesce=True
        )

    def _tick(self):
        with self.lock:
            self.gate.tick()
            finished = self.gate.is_finished
        if finished:
            self.stop()

    def asset_ready(self):
        with self.lock:
            return self.gate.asset_ready()

    def request_close(self):
        with self.lock:
            closed = self.gate.request_close()
        if closed:
            self.stop()
        return closed

    def stop(self):
        if self.job is None:
            return
        try:
            self.job.remove()
        except JobLookupError:
            pass
        self.job = None
        if self._owns_scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    def teardown(self):
        """Clear the timer first so no stale tick can fire after the view is gone"""
        self.stop()
        with self.lock:
            return self.gate.teardown()
