"""Debounced re-analysis of the trip set after edits."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from .compliance import analyze_compliance
from .models import ComplianceStatus, Trip, UserProfile
from .store import ProfileStore, SimulationOverlay, TripStore


logger = logging.getLogger(__name__)

Analyzer = Callable[[List[Trip], UserProfile, Callable[[], None]], ComplianceStatus]


class DebouncedTrigger:
    """Single pending-timer slot: each ``schedule()`` replaces the previous timer.

    Only the most recently scheduled call fires, ``delay`` seconds after it
    was scheduled; replaced timers are cancelled and never run.
    """

    def __init__(self, delay: float, callback: Callable[[], Any]):
        self.delay = delay
        self._callback = callback
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def schedule(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            timer = threading.Timer(self.delay, self._fire)
            timer.daemon = True
            self._timer = timer
            timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _fire(self) -> None:
        with self._lock:
            if self._timer is None or self._timer is not threading.current_thread():
                return
            self._timer = None
        try:
            self._callback()
        except Exception:  # noqa: BLE001
            logger.exception("Debounced callback failed")


class AnalysisCoordinator:
    """Holds the current compliance status and re-runs analysis on edits.

    Runs are numbered; a result that finishes after a newer run has started
    is discarded instead of overwriting fresher state.
    """

    def __init__(
        self,
        trips: TripStore,
        profiles: ProfileStore,
        overlay: SimulationOverlay,
        debounce_seconds: float = 2.0,
        analyzer: Optional[Analyzer] = None,
    ):
        self.trips = trips
        self.profiles = profiles
        self.overlay = overlay
        self.status: Optional[ComplianceStatus] = None
        self.loading = False
        self.retrying = False
        self._analyzer: Analyzer = analyzer or analyze_compliance
        self._seq = 0
        self._lock = threading.Lock()
        self._trigger = DebouncedTrigger(debounce_seconds, self.run)

    def active_trips(self) -> List[Trip]:
        return self.overlay.merged(self.trips.list())

    def notify_changed(self) -> None:
        self._trigger.schedule()

    def run(self) -> Optional[ComplianceStatus]:
        profile = self.profiles.get()
        if profile is None:
            logger.debug("Skipping analysis until onboarding is complete")
            return None

        with self._lock:
            self._seq += 1
            seq = self._seq
            self.loading = True
            self.retrying = False

        def on_retry() -> None:
            with self._lock:
                if seq == self._seq:
                    self.retrying = True

        result = None
        try:
            result = self._analyzer(self.active_trips(), profile, on_retry)
        finally:
            with self._lock:
                if seq == self._seq:
                    if result is not None:
                        self.status = result
                    self.loading = False
                    self.retrying = False
                elif result is not None:
                    logger.info("Dropping stale analysis result #%s (latest is #%s)", seq, self._seq)
        return result

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "status": self.status.to_dict() if self.status else None,
                "loading": self.loading or self._trigger.pending,
                "retrying": self.retrying,
                "simulation": self.overlay.active,
            }

    def shutdown(self) -> None:
        self._trigger.cancel()
