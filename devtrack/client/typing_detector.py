"""Typing detection.

Keystroke signals are turned into one "typing" event per burst. A burst
starts at the first keystroke seen while idle; keystrokes during a burst do
not move its start. A background job checks every detector once per
interval and, once more than ``idle_threshold`` whole seconds have passed
since the burst started, emits the event with that elapsed time as its
duration and goes back to idle. A burst still open when the process exits
is not flushed.
"""

import threading
import time
from collections.abc import Callable

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from devtrack.client.events import TYPING_METADATA, Activity, ActivityEvent, ActivityKey
from devtrack.core.errors import EventPersistenceError
from devtrack.core.logging import get_logger, log_error

logger = get_logger(__name__)

DEFAULT_IDLE_THRESHOLD_SECONDS = 3
DEFAULT_MONITOR_INTERVAL_SECONDS = 1.0


class TypingDetector:
    """Idle/Typing state machine for a single (file, language, project, editor).

    ``on_keystroke`` may be called from any thread while ``tick`` runs on the
    monitor's thread; every read or change of the session state happens
    under ``self._lock``. The emit callback runs after the lock is released.
    """

    def __init__(
        self,
        key: ActivityKey,
        emit: Callable[[ActivityEvent], object],
        idle_threshold: int = DEFAULT_IDLE_THRESHOLD_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.key = key
        self.emit = emit
        self.idle_threshold = idle_threshold
        self.clock = clock

        self._lock = threading.Lock()
        self._started_at: float | None = None

    @property
    def is_typing(self) -> bool:
        with self._lock:
            return self._started_at is not None

    @property
    def started_at(self) -> float | None:
        with self._lock:
            return self._started_at

    def on_keystroke(self) -> None:
        """Start a burst if idle; no-op while a burst is open."""
        with self._lock:
            if self._started_at is None:
                self._started_at = self.clock()

    def _close_burst_if_elapsed(self) -> int | None:
        with self._lock:
            if self._started_at is None:
                return None
            elapsed = int(self.clock() - self._started_at)
            if elapsed <= self.idle_threshold:
                return None
            self._started_at = None
            return elapsed

    def tick(self) -> ActivityEvent | None:
        """
        Close the open burst if it has run past the idle threshold.

        Returns:
            The emitted typing event, or None when nothing was emitted.
            A failed emit is logged and the burst is dropped.
        """
        duration = self._close_burst_if_elapsed()
        if duration is None:
            return None

        event = ActivityEvent(
            key=self.key,
            activity=Activity.TYPING,
            metadata=TYPING_METADATA,
            duration=duration,
        )
        try:
            self.emit(event)
        except EventPersistenceError as e:
            log_error(
                logger,
                "Dropping typing session",
                error=e,
                extra={"file": self.key.file, "duration": duration},
            )
            return None
        return event


class TypingMonitor:
    """Keyed registry of detectors ticked by one background scheduler job.

    Typing in different files (or editors) is tracked independently: each
    ``ActivityKey`` gets its own ``TypingDetector`` on first keystroke, and
    the detector is dropped once it is idle again after a tick.
    """

    JOB_ID = "typing_monitor_tick"

    def __init__(
        self,
        emit: Callable[[ActivityEvent], object],
        idle_threshold: int = DEFAULT_IDLE_THRESHOLD_SECONDS,
        interval: float = DEFAULT_MONITOR_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.emit = emit
        self.idle_threshold = idle_threshold
        self.interval = interval
        self.clock = clock

        self._detectors: dict[ActivityKey, TypingDetector] = {}
        self._lock = threading.Lock()
        self._scheduler: BackgroundScheduler | None = None

    def detector_for(self, key: ActivityKey) -> TypingDetector:
        with self._lock:
            return self._get_or_create(key)

    def _get_or_create(self, key: ActivityKey) -> TypingDetector:
        # caller holds self._lock
        detector = self._detectors.get(key)
        if detector is None:
            detector = TypingDetector(
                key,
                self.emit,
                idle_threshold=self.idle_threshold,
                clock=self.clock,
            )
            self._detectors[key] = detector
        return detector

    def on_keystroke(self, key: ActivityKey) -> None:
        # held across the keystroke so eviction never sees a half-started burst
        with self._lock:
            self._get_or_create(key).on_keystroke()

    def tick_all(self) -> list[ActivityEvent]:
        """Tick every detector once, then drop the idle ones; return the events emitted."""
        with self._lock:
            detectors = list(self._detectors.values())

        emitted = []
        for detector in detectors:
            event = detector.tick()
            if event is not None:
                emitted.append(event)

        with self._lock:
            for key in [k for k, d in self._detectors.items() if not d.is_typing]:
                del self._detectors[key]
        return emitted

    @property
    def tracked_count(self) -> int:
        """Number of keys with a live detector."""
        with self._lock:
            return len(self._detectors)

    def start(self) -> None:
        """Start ticking detectors in the background."""
        if self._scheduler is not None:
            return

        scheduler = BackgroundScheduler()
        scheduler.add_job(
            self.tick_all,
            trigger=IntervalTrigger(seconds=self.interval),
            id=self.JOB_ID,
            name="Close finished typing sessions",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info(
            "Typing monitor started",
            extra={"interval": self.interval, "idle_threshold": self.idle_threshold},
        )

    def shutdown(self) -> None:
        """Stop the background job. Open bursts are discarded."""
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=True)
        self._scheduler = None
        logger.info("Typing monitor stopped")
