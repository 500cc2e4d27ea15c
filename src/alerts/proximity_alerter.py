"""
Proximity/Reminder evaluator - periodic smart-alert cycle over the event set
"""
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional

from config.settings import Config
from src.alerts.geo import haversine_distance
from src.alerts.position_source import Position, PositionSource
from src.events.models import CalendarEvent, Priority
from src.scheduler.interval_math import align_awareness
from utils.schedule_logger import ScheduleLogger

logger = logging.getLogger(__name__)

ALERT_PRIORITIES = (Priority.HIGH, Priority.MEDIUM)


def select_alertable_events(events: Iterable[CalendarEvent], now: datetime,
                            alert_window_minutes: int) -> List[CalendarEvent]:
    """Events starting within the alert window that still need an alert"""
    window = timedelta(minutes=alert_window_minutes)
    alertable = []

    for event in events:
        if event.priority not in ALERT_PRIORITIES:
            continue
        if event.auto_notified or not event.proximity_alert_enabled:
            continue

        current = align_awareness(now, event.start)
        if current < event.start <= current + window:
            alertable.append(event)

    return alertable


class ProximityAlerter:
    """
    Runs the smart-alert cycle on a fixed interval.

    Events without a location fire as plain reminders. Events with a
    location fire only when the user has moved less than the movement
    threshold since the previous position sample; the very first sample is
    just recorded. The alerter never changes events: ``on_alert`` is
    expected to mark them as notified.
    """

    def __init__(self, event_source: Callable[[], List[CalendarEvent]],
                 on_alert: Callable[[CalendarEvent], None],
                 position_source: Optional[PositionSource] = None,
                 alert_window_minutes: int = Config.ALERT_WINDOW_MINUTES,
                 movement_threshold_km: float = Config.MOVEMENT_THRESHOLD_KM,
                 interval_seconds: float = Config.POLLING_INTERVAL_SECONDS,
                 position_timeout_seconds: float = Config.POSITION_TIMEOUT_SECONDS,
                 executor=None,
                 clock: Callable[[], datetime] = None):
        self.event_source = event_source
        self.on_alert = on_alert
        self.position_source = position_source
        self.alert_window_minutes = alert_window_minutes
        self.movement_threshold_km = movement_threshold_km
        self.interval_seconds = interval_seconds
        self.position_timeout_seconds = position_timeout_seconds
        self.clock = clock or (lambda: datetime.now().astimezone())

        self.executor = executor
        self._owns_executor = False

        self.last_position: Optional[Position] = None
        self._lock = threading.RLock()
        self._pending: Optional[Future] = None
        self._pending_since = 0.0
        self._request_seq = 0
        self._applied_seq = 0

        self._cancelled = False
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        """Start the timer; the first cycle runs immediately"""
        with self._lock:
            if self.is_running:
                return
            self._cancelled = False
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._run, args=(self._stop_event,),
                name="proximity-alerter", daemon=True,
            )
            self._thread.start()

        logger.info(f"⏰ Smart alerts enabled (every {self.interval_seconds}s, "
                    f"window {self.alert_window_minutes} min, "
                    f"movement threshold {self.movement_threshold_km} km)")

    def stop(self):
        """Stop the timer. No tick or late position result fires after this returns."""
        with self._lock:
            self._cancelled = True
            self._stop_event.set()
            thread = self._thread
            self._thread = None
            self._pending = None
            # Results of requests issued before the stop can update the position but never fire
            self._request_seq += 1

            if self._owns_executor and self.executor is not None:
                self.executor.shutdown(wait=False, cancel_futures=True)
                self.executor = None
                self._owns_executor = False

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.interval_seconds)

        logger.info("⏹️  Smart alerts disabled")

    def _run(self, stop_event: threading.Event):
        while not stop_event.is_set():
            try:
                self.check_smart_alerts()
            except Exception as e:
                logger.error(f"❌ Smart alert cycle failed: {e}")

            if stop_event.wait(self.interval_seconds):
                break

    def check_smart_alerts(self, now: datetime = None) -> List[CalendarEvent]:
        """Run one cycle. Returns the time-based reminders fired immediately."""
        if self._cancelled:
            return []

        now = now or self.clock()
        events = self.event_source()
        alertable = select_alertable_events(events, now, self.alert_window_minutes)

        proximity_events = [e for e in alertable if e.has_location]
        reminder_events = [e for e in alertable if not e.has_location]

        if alertable:
            ScheduleLogger.log_alert_cycle(now, reminder_events, proximity_events)

        fired = [event for event in reminder_events if self._fire(event)]

        if proximity_events:
            self._request_position(proximity_events)

        return fired

    def _request_position(self, proximity_events: List[CalendarEvent]):
        if self.position_source is None:
            logger.debug("No position source configured; skipping proximity gating")
            return

        with self._lock:
            if self._pending is not None and not self._pending.done():
                waited = time.monotonic() - self._pending_since
                if waited < self.position_timeout_seconds:
                    logger.debug(f"Position request still in flight ({waited:.1f}s); skipping")
                    return
                logger.warning(f"⚠️  Position request timed out after {waited:.1f}s; issuing a new one")

            self._request_seq += 1
            seq = self._request_seq
            future = self._get_executor().submit(self.position_source.get_position)
            self._pending = future
            self._pending_since = time.monotonic()

        future.add_done_callback(lambda f: self._on_position(f, seq, proximity_events))

    def _on_position(self, future: Future, seq: int, proximity_events: List[CalendarEvent]):
        try:
            position = future.result()
        except Exception as e:
            logger.warning(f"Could not get user location for proximity alert: {e}")
            with self._lock:
                if self._pending is future:
                    self._pending = None
            return

        with self._lock:
            if self._pending is future:
                self._pending = None

            if seq <= self._applied_seq:
                logger.debug(f"Discarding stale position sample #{seq}")
                return

            previous = self.last_position
            self.last_position = position
            self._applied_seq = seq
            is_latest_request = seq == self._request_seq

        if self._cancelled or not is_latest_request:
            return

        if previous is None:
            logger.info("📍 First position sample recorded; proximity alerts start next cycle")
            return

        distance = haversine_distance(previous.latitude, previous.longitude,
                                      position.latitude, position.longitude)

        if distance < self.movement_threshold_km:
            logger.info(f"📍 Moved {distance * 1000:.0f} m since last sample; "
                        f"firing {len(proximity_events)} proximity alert(s)")
            for event in proximity_events:
                self._fire(event)
        else:
            logger.info(f"🚶 Moved {distance * 1000:.0f} m since last sample; user is on the way")

    def _fire(self, event: CalendarEvent) -> bool:
        if self._cancelled:
            return False
        try:
            self.on_alert(event)
            return True
        except Exception as e:
            logger.error(f"❌ Alert callback failed for '{event.title}': {e}")
            return False

    def _get_executor(self):
        if self.executor is None:
            self.executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="position")
            self._owns_executor = True
        return self.executor
