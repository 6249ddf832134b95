"""Alert management - create, list and toggle alerts."""
import logging
import uuid
from datetime import datetime
from typing import List, Sequence

from alert_conditions import normalize_combinator
from local_store import LocalStore
from weather_data import Alert, AlertNotification, Condition


class InvalidAlertError(ValueError):
    """Raised when an alert definition is rejected at creation time."""
    pass


class AlertService:
    """Alert lifecycle operations on top of the local store."""

    def __init__(self, store: LocalStore):
        self.store = store

    def create_alert(self, conditions: Sequence[Condition], combinator: str) -> Alert:
        """
        Create and persist a new active alert.

        Args:
            conditions: Non-empty ordered conditions
            combinator: "AND" or "OR" (case-insensitive)

        Returns:
            Alert: The stored alert

        Raises:
            InvalidAlertError: If there are no conditions or the combinator is unknown
            StoreWriteFailed: If the alert could not be stored
        """
        if not conditions:
            raise InvalidAlertError("An alert needs at least one condition")
        try:
            mode = normalize_combinator(combinator)
        except ValueError as e:
            raise InvalidAlertError(str(e)) from e

        alert = Alert(
            id=str(uuid.uuid4()),
            active=True,
            conditions=list(conditions),
            combinator=mode,
            created=datetime.now(),
        )
        self.store.save_alert(alert)
        return alert

    def get_active_alerts(self) -> List[Alert]:
        return self.store.get_active_alerts()

    def set_active(self, alert_id: str, active: bool) -> bool:
        """
        Toggle an alert on or off.

        Returns:
            False if no alert with that id exists
        """
        alert = self.store.get_alert(alert_id)
        if alert is None:
            logging.warning(f"Alert {alert_id} not found")
            return False
        alert.active = active
        self.store.save_alert(alert)
        logging.info(f"Alert {alert_id} is now {'active' if active else 'inactive'}")
        return True

    def get_notifications(self) -> List[AlertNotification]:
        """All stored notifications, newest first."""
        return sorted(self.store.get_notifications(), key=lambda n: n.timestamp, reverse=True)
