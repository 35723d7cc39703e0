# -*- coding: utf-8 -*-
"""Timed playback gate for the full-screen reward video player.

The gate is a finite state machine driven by a single recurring tick.
Elapsed watch time is always recomputed from a wall-clock reference
(``clock()``), never decremented per tick, so a suspended or throttled
host catches up on the first tick after it resumes. The reference is the
first segment's start and is never reset; a segment that is still loading
blocks transitions but not the clock.

    LOADING -> PLAYING -> (segment switch) -> LOADING -> PLAYING -> ...
    PLAYING -> READY_TO_CLOSE -> CLOSED
    any non-terminal state -> CANCELLED (teardown)
"""
import logging
import math
import time
from enum import Enum

logger = logging.getLogger(__name__)

DEFAULT_SEGMENT_SECONDS = 15


class GateState(str, Enum):
    LOADING = "loading"
    PLAYING = "playing"
    READY_TO_CLOSE = "ready_to_close"
    CLOSED = "closed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({GateState.CLOSED, GateState.CANCELLED})


class PlaybackGate:
    """
    :param videos: ordered playlist; each item needs an ``id`` attribute or key
    :param segment_seconds: mandatory watch time per segment
    :param on_reconcile: called once with the watched id list when the user closes
    :param on_completed: called once after ``on_reconcile``
    :param on_ready: called once when closing becomes possible (e.g. to show a hint)
    :param clock: monotonic seconds source
    """

    def __init__(self, videos, segment_seconds=DEFAULT_SEGMENT_SECONDS, on_reconcile=None,
                 on_completed=None, on_ready=None, clock=time.monotonic):
        if not videos:
            raise ValueError("PlaybackGate needs at least one video")
        if segment_seconds <= 0:
            raise ValueError("segment_seconds must be positive")

        self.videos = list(videos)
        self.segment_seconds = segment_seconds
        self.on_reconcile = on_reconcile
        self.on_completed = on_completed
        self.on_ready = on_ready
        self.clock = clock

        self.state = GateState.LOADING
        self.current_index = 0
        self.muted = False
        self._watched = []
        self._session_start = None  # clock() at the first segment's Loading -> Playing
        self._ready = False
        self._reported = False

    # ---- derived values ---------------------------------------------------

    @property
    def total_seconds(self):
        return len(self.videos) * self.segment_seconds

    @property
    def current_video(self):
        return self.videos[self.current_index]

    @property
    def elapsed(self):
        if self._ready:
            return max(self._since_start(), self.total_seconds)
        return self._since_start()

    def _since_start(self):
        if self._session_start is None:
            return 0.0
        return max(self.clock() - self._session_start, 0.0)

    @property
    def seconds_left(self):
        return max(int(math.ceil(self.total_seconds - self.elapsed)), 0)

    @property
    def can_close(self):
        return self._ready

    @property
    def is_finished(self):
        """No more ticks are needed once closing is possible or the gate is terminal"""
        return self._ready or self.state in TERMINAL_STATES

    @property
    def watched_video_ids(self):
        return list(self._watched)

    @staticmethod
    def _video_id(video):
        return video["id"] if isinstance(video, dict) else video.id

    def _mark_watched(self, video):
        video_id = self._video_id(video)
        if video_id not in self._watched:
            self._watched.append(video_id)

    # ---- transitions ------------------------------------------------------

    def asset_ready(self):
        """The current segment's asset buffered enough to play"""
        if self.state is not GateState.LOADING:
            return False
        if self._session_start is None:
            self._session_start = self.clock()
        self.state = GateState.PLAYING
        logger.debug("[playback-gate] Segment %s playing", self.current_index)
        return True

    def tick(self):
        """Recompute elapsed time and apply any due transition. Returns the state."""
        if self.state is not GateState.PLAYING:
            return self.state

        elapsed = self.elapsed
        if elapsed >= self.total_seconds:
            self._become_ready()
            return self.state

        due_index = min(int(elapsed // self.segment_seconds), len(self.videos) - 1)
        if due_index > self.current_index:
            self._switch_segment(due_index, elapsed)
        return self.state

    def _switch_segment(self, due_index, elapsed):
        while self.current_index < due_index:
            self._mark_watched(self.current_video)
            self.current_index += 1
        self.state = GateState.LOADING
        logger.debug("[playback-gate] Switched to segment %s at %.1fs", self.current_index, elapsed)

    def _become_ready(self):
        for video in self.videos[self.current_index:]:
            self._mark_watched(video)
        self._ready = True
        self.state = GateState.READY_TO_CLOSE
        logger.info("[playback-gate] Ready to close, watched %s", self._watched)
        if self.on_ready:
            self.on_ready()

    def request_close(self):
        """
        User pressed close. Ignored until the required time has elapsed;
        the reconcile and completed callbacks fire at most once.
        If reconciliation raises, the gate reopens so the user can close again.
        """
        if self.state is not GateState.READY_TO_CLOSE or self._reported:
            return False
        self._reported = True
        self.state = GateState.CLOSED
        watched = self.watched_video_ids
        if self.on_reconcile:
            try:
                self.on_reconcile(watched)
            except Exception:
                self._reported = False
                self.state = GateState.READY_TO_CLOSE
                raise
        if self.on_completed:
            self.on_completed(watched)
        return True

    def teardown(self):
        """Hosting view went away; an unclosed gate forfeits the reward"""
        if self.state in TERMINAL_STATES:
            return False
        logger.info("[playback-gate] Torn down at %.1fs, no reward", self.elapsed)
        self.state = GateState.CANCELLED
        return True

    def toggle_mute(self):
        self.muted = not self.muted
        return self.muted
