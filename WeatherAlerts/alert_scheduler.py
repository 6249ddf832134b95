"""Periodic alert evaluation - checks active alerts and emits notifications."""
import logging
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from alert_conditions import evaluate_alert
from local_store import LocalStore
from notification_transport import NotificationTransportBase
from weather_data import Alert, AlertNotification
from weather_provider import WeatherUnavailable
from weather_service import WeatherService

# Per-alert outcomes
CHECKED = "checked"
TRIGGERED = "triggered"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass
class TickResult:
    """Summary of one scheduler tick."""
    started: datetime
    checked: int = 0
    triggered: int = 0
    skipped: int = 0
    failed: int = 0
    notifications: List[AlertNotification] = field(default_factory=list)


class AlertScheduler:
    """
    Evaluates every active alert on a fixed period.

    Each tick loads active alerts, resolves the current weather for the
    reference location, and for every triggered alert stores a new
    notification and publishes it. Alerts are checked concurrently and a
    failure in one never affects the others.

    There is no suppression across ticks: an alert that stays triggered
    produces a fresh notification on every tick.

    Ticks never overlap. A ``tick()`` call made while another is running is
    skipped, and when a tick overruns the period the driver loop drops the
    missed slots instead of queueing them.

    Each alert must finish within ``alert_timeout_seconds`` of the tick's
    start. Alerts still waiting on weather at that point are counted as
    skipped and the tick ends without them; if their fetch completes later
    they are dropped rather than notified.
    """

    def __init__(
        self,
        store: LocalStore,
        weather_service: WeatherService,
        transport: NotificationTransportBase,
        location: str,
        interval_seconds: float = 60.0,
        max_workers: int = 4,
        alert_timeout_seconds: float = 30.0,
    ):
        """
        Initialize alert scheduler.

        Args:
            store: Store holding alerts and notifications
            weather_service: Resolves current weather (cache-or-fetch)
            transport: Where triggered notifications are published
            location: Reference location used for every alert
            interval_seconds: Seconds between ticks
            max_workers: Number of alerts evaluated concurrently
            alert_timeout_seconds: Deadline for every alert in a tick
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if alert_timeout_seconds <= 0:
            raise ValueError("alert_timeout_seconds must be positive")
        self.store = store
        self.weather_service = weather_service
        self.transport = transport
        self.location = location
        self.interval_seconds = interval_seconds
        self.max_workers = max_workers
        self.alert_timeout_seconds = alert_timeout_seconds

        self.last_run: Optional[datetime] = None
        self.tick_count = 0
        self._in_flight = threading.Lock()
        self._stop_event = threading.Event()

    @property
    def running_tick(self) -> bool:
        """True while a tick is in progress."""
        return self._in_flight.locked()

    def tick(self) -> Optional[TickResult]:
        """
        Run one evaluation pass over all active alerts.

        Returns:
            TickResult for the pass, or None if another tick was still running
        """
        if not self._in_flight.acquire(blocking=False):
            logging.warning("Previous alert check still running, skipping this tick")
            return None
        try:
            return self._run_tick()
        finally:
            self._in_flight.release()

    def _run_tick(self) -> TickResult:
        result = TickResult(started=datetime.now())
        self.tick_count += 1
        self.last_run = result.started
        logging.info(f"Tick {self.tick_count}: checking alert conditions")

        alerts = self.store.get_active_alerts()
        outcomes = []
        if alerts:
            deadline = time.monotonic() + self.alert_timeout_seconds
            pool = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="alert-check")
            futures = {pool.submit(self._check_alert_isolated, alert, deadline): alert for alert in alerts}
            done, pending = wait(futures, timeout=self.alert_timeout_seconds)
            # Stuck fetches keep their worker thread; the tick does not wait for them
            pool.shutdown(wait=False)
            outcomes = [future.result() for future in done]
            for future in pending:
                future.cancel()
                logging.warning(
                    f"Alert {futures[future].id} not finished within {self.alert_timeout_seconds}s, "
                    f"retrying next tick"
                )
                outcomes.append((SKIPPED, None))

        for outcome, notification in outcomes:
            if outcome == SKIPPED:
                result.skipped += 1
                continue
            if outcome == FAILED:
                result.failed += 1
                continue
            result.checked += 1
            if outcome == TRIGGERED:
                result.triggered += 1
                result.notifications.append(notification)

        logging.info(
            f"Tick {self.tick_count} done: {len(alerts)} active, {result.checked} checked, "
            f"{result.triggered} triggered, {result.skipped} skipped, {result.failed} failed"
        )
        return result

    def _check_alert_isolated(self, alert: Alert, deadline: Optional[float] = None):
        try:
            return self.check_alert(alert, deadline)
        except WeatherUnavailable as e:
            logging.warning(f"Weather unavailable for alert {alert.id}, retrying next tick: {e}")
            return SKIPPED, None
        except Exception as e:
            logging.exception(f"Failed to check alert {alert.id}: {e}")
            return FAILED, None

    def check_alert(self, alert: Alert, deadline: Optional[float] = None):
        """
        Evaluate one alert and, if triggered, store and publish a notification.

        Returns:
            (outcome, notification) where outcome is CHECKED or TRIGGERED

        Raises:
            WeatherUnavailable: If current weather could not be resolved before
                ``deadline`` (a ``time.monotonic()`` value)
            StoreWriteFailed: If the notification could not be stored
        """
        weather = self.weather_service.get_current(self.location)
        if deadline is not None and time.monotonic() > deadline:
            raise WeatherUnavailable(f"Weather for {self.location} arrived after the tick deadline")
        evaluation = evaluate_alert(alert, weather)
        logging.debug(f"Alert {alert.id}: results={evaluation.results} triggered={evaluation.triggered}")
        if not evaluation.triggered:
            return CHECKED, None

        notification = AlertNotification(
            id=str(uuid.uuid4()),
            alert_id=alert.id,
            message=evaluation.message,
            timestamp=datetime.now(),
            acknowledged=False,
        )
        self.store.save_notification(notification)
        logging.info(f"Alert {alert.id} triggered: {notification.message}")

        try:
            self.transport.publish(notification)
        except Exception as e:
            # Already stored; delivery is best effort
            logging.error(f"Failed to publish notification {notification.id}: {e}")
        return TRIGGERED, notification

    def run_forever(self) -> None:
        """Run ticks at a fixed rate until ``stop()`` is called."""
        self._stop_event.clear()
        logging.info(f"Alert scheduler started (interval={self.interval_seconds}s, location={self.location})")
        next_due = time.monotonic()
        while not self._stop_event.is_set():
            self.tick()
            next_due += self.interval_seconds
            now = time.monotonic()
            if now > next_due:
                missed = int((now - next_due) // self.interval_seconds) + 1
                logging.warning(f"Tick overran the interval, skipping {missed} missed tick(s)")
                next_due += missed * self.interval_seconds
            self._stop_event.wait(max(next_due - now, 0.0))
        logging.info("Alert scheduler stopped")

    def stop(self) -> None:
        self._stop_event.set()
