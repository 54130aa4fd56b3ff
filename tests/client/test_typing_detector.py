"""Tests for typing burst detection."""

import threading

import pytest

from devtrack.client.events import TYPING_METADATA, Activity, ActivityKey
from devtrack.client.typing_detector import TypingDetector, TypingMonitor
from devtrack.core.errors import EventPersistenceError

KEY = ActivityKey(file="/src/demo/main.rs", language="rust", project="demo", editor="editorX")
OTHER_KEY = ActivityKey(file="/src/demo/lib.rs", language="rust", project="demo", editor="editorX")


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def emitted() -> list:
    return []


@pytest.fixture
def detector(clock, emitted) -> TypingDetector:
    return TypingDetector(KEY, emitted.append, idle_threshold=3, clock=clock)


def run_seconds(detector: TypingDetector, clock: FakeClock, seconds: int, keystrokes_at=()) -> None:
    """Simulate ``seconds`` one-second ticks, typing at the given offsets."""
    for second in range(seconds):
        if second in keystrokes_at:
            detector.on_keystroke()
        clock.advance(1)
        detector.tick()


class TestTypingDetector:
    """State machine behaviour with a fake clock."""

    def test_starts_idle(self, detector):
        assert not detector.is_typing
        assert detector.started_at is None

    def test_keystroke_starts_burst(self, detector, clock):
        detector.on_keystroke()
        assert detector.is_typing
        assert detector.started_at == clock.now

    def test_keystrokes_during_burst_keep_start_time(self, detector, clock):
        detector.on_keystroke()
        started = detector.started_at
        clock.advance(2)
        detector.on_keystroke()

        assert detector.started_at == started

    def test_debounced_burst_emits_once(self, detector, clock, emitted):
        """Keystrokes at t=0,1,2 then silence: exactly one typing event."""
        run_seconds(detector, clock, 10, keystrokes_at=(0, 1, 2))

        assert len(emitted) == 1
        event = emitted[0]
        assert event.activity is Activity.TYPING
        assert event.metadata == TYPING_METADATA
        assert event.key == KEY
        assert 3 <= event.duration <= 4

    def test_no_emission_before_threshold(self, detector, clock, emitted):
        detector.on_keystroke()
        for _ in range(3):
            clock.advance(1)
            assert detector.tick() is None

        assert emitted == []
        assert detector.is_typing

    def test_idle_tick_after_emission_emits_nothing(self, detector, clock, emitted):
        detector.on_keystroke()
        clock.advance(4)
        assert detector.tick() is not None

        clock.advance(1)
        assert detector.tick() is None
        clock.advance(10)
        assert detector.tick() is None
        assert len(emitted) == 1
        assert not detector.is_typing

    def test_new_keystroke_starts_new_burst(self, detector, clock, emitted):
        run_seconds(detector, clock, 6, keystrokes_at=(0,))
        run_seconds(detector, clock, 6, keystrokes_at=(0,))

        assert len(emitted) == 2

    def test_duration_uses_whole_seconds(self, detector, clock):
        detector.on_keystroke()
        clock.advance(5.7)
        event = detector.tick()

        assert event.duration == 5

    def test_elapsed_exactly_threshold_does_not_emit(self, detector, clock):
        detector.on_keystroke()
        clock.advance(3.9)
        assert detector.tick() is None

    def test_emit_failure_drops_burst(self, clock):
        def failing_emit(event):
            raise EventPersistenceError("database is locked", retryable=True)

        detector = TypingDetector(KEY, failing_emit, idle_threshold=3, clock=clock)
        detector.on_keystroke()
        clock.advance(4)

        assert detector.tick() is None
        assert not detector.is_typing

    def test_concurrent_keystrokes_and_ticks(self, clock, emitted):
        """Hammering from several threads never loses or duplicates a burst."""
        detector = TypingDetector(KEY, emitted.append, idle_threshold=3, clock=clock)
        barrier = threading.Barrier(5)

        def type_away():
            barrier.wait()
            for _ in range(2000):
                detector.on_keystroke()

        threads = [threading.Thread(target=type_away) for _ in range(4)]
        for thread in threads:
            thread.start()
        barrier.wait()
        for _ in range(2000):
            detector.tick()
        for thread in threads:
            thread.join()

        # the clock never moved, so the open burst cannot have been closed
        assert emitted == []
        assert detector.is_typing

        clock.advance(4)
        detector.tick()
        detector.tick()
        assert len(emitted) == 1


class TestTypingMonitor:
    """Per-key registry and background ticking."""

    def test_one_detector_per_key(self, clock, emitted):
        monitor = TypingMonitor(emitted.append, clock=clock)

        assert monitor.detector_for(KEY) is monitor.detector_for(KEY)
        assert monitor.detector_for(KEY) is not monitor.detector_for(OTHER_KEY)

    def test_files_are_tracked_independently(self, clock, emitted):
        monitor = TypingMonitor(emitted.append, idle_threshold=3, clock=clock)

        monitor.on_keystroke(KEY)
        clock.advance(2)
        monitor.on_keystroke(OTHER_KEY)

        clock.advance(2)
        first = monitor.tick_all()
        assert [e.key for e in first] == [KEY]

        clock.advance(2)
        second = monitor.tick_all()
        assert [e.key for e in second] == [OTHER_KEY]
        assert [e.duration for e in emitted] == [4, 4]

    def test_registry_empties_once_bursts_are_emitted(self, clock, emitted):
        monitor = TypingMonitor(emitted.append, idle_threshold=0, clock=clock)
        keys = [
            ActivityKey(file=f"/src/demo/f{i}.rs", language="rust", project="demo", editor="editorX")
            for i in range(100)
        ]
        for key in keys:
            monitor.on_keystroke(key)
        assert monitor.tracked_count == 100

        clock.advance(1)
        monitor.tick_all()

        assert len(emitted) == 100
        assert monitor.tracked_count == 0

    def test_open_bursts_are_kept(self, clock, emitted):
        monitor = TypingMonitor(emitted.append, idle_threshold=3, clock=clock)
        monitor.on_keystroke(KEY)
        clock.advance(1)

        monitor.tick_all()

        assert monitor.tracked_count == 1
        assert monitor.detector_for(KEY).is_typing

    def test_keystroke_after_eviction_starts_new_burst(self, clock, emitted):
        monitor = TypingMonitor(emitted.append, idle_threshold=3, clock=clock)
        monitor.on_keystroke(KEY)
        clock.advance(4)
        monitor.tick_all()
        assert monitor.tracked_count == 0

        monitor.on_keystroke(KEY)
        clock.advance(5)
        monitor.tick_all()

        assert [e.duration for e in emitted] == [4, 5]

    def test_keystrokes_racing_eviction_are_not_lost(self, clock, emitted):
        """Every key typed on during concurrent ticks still has its burst open."""
        monitor = TypingMonitor(emitted.append, idle_threshold=3, clock=clock)
        keys = [
            ActivityKey(file=f"/src/demo/f{i}.rs", language="rust", project="demo", editor="editorX")
            for i in range(50)
        ]
        barrier = threading.Barrier(2)

        def type_away():
            barrier.wait()
            for key in keys:
                monitor.on_keystroke(key)

        typist = threading.Thread(target=type_away)
        typist.start()
        barrier.wait()
        for _ in range(200):
            monitor.tick_all()
        typist.join()

        # the clock never moved, so no burst may have closed or vanished
        assert emitted == []
        assert monitor.tracked_count == len(keys)

        clock.advance(4)
        monitor.tick_all()
        assert len(emitted) == len(keys)
        assert monitor.tracked_count == 0

    def test_background_scheduler_emits(self):
        done = threading.Event()
        events = []

        def emit(event):
            events.append(event)
            done.set()

        monitor = TypingMonitor(emit, idle_threshold=0, interval=0.05)
        monitor.start()
        try:
            monitor.on_keystroke(KEY)
            assert done.wait(timeout=5)
        finally:
            monitor.shutdown()

        assert len(events) == 1
        assert events[0].duration >= 1

    def test_shutdown_without_start(self, emitted):
        TypingMonitor(emitted.append).shutdown()
