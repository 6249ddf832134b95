"""File-backed persistent store for reports, alerts, notifications and statistics."""
import hashlib
import json
import logging
import os
import tempfile
from datetime import date, timedelta
from pathlib import Path
from typing import Callable, Generic, List, Optional, TypeVar
from urllib.parse import quote

from weather_data import Alert, AlertNotification, WeatherReport, WeatherStatistics

T = TypeVar("T")

REPORTS_DIR = "reports"
ALERTS_DIR = "alerts"
NOTIFICATIONS_DIR = "notifications"
STATISTICS_DIR = "statistics"

ENTRY_SUFFIX = ".json"
TEMP_SUFFIX = ".tmp"

# Most filesystems cap a file name at 255 bytes
MAX_NAME_BYTES = 255
HASHED_PREFIX_CHARS = 64


class StoreWriteFailed(Exception):
    """Raised when an entry could not be durably written."""
    pass


class StoreReadCorrupt(Exception):
    """Raised when a stored entry cannot be deserialized."""
    pass


def _slug(location: str) -> str:
    return location.lower().replace(" ", "_")


def report_key(location: str, day: date) -> str:
    """Key for a weather report, e.g. ``new_york_2024-01-01``."""
    return f"{_slug(location)}_{day.isoformat()}"


def statistics_key(location: str, start_date: date, end_date: date) -> str:
    """Key for cached statistics, e.g. ``seattle_2024-01-01_to_2024-01-07``."""
    return f"{_slug(location)}_{start_date.isoformat()}_to_{end_date.isoformat()}"


class StoreNamespace(Generic[T]):
    """
    A flat directory of ``<key>.json`` entries for one entity kind.

    Writes go to a temporary file in the same directory and are moved into
    place with ``os.replace``, so readers only ever see complete entries.
    """

    def __init__(
        self,
        directory: Path,
        to_dict: Callable[[T], dict],
        from_dict: Callable[[dict], T],
    ):
        """
        Args:
            directory: Directory holding this namespace's entries
            to_dict: Converts an entity to its JSON-ready dict
            from_dict: Builds an entity from its stored dict
        """
        self.directory = directory
        self._to_dict = to_dict
        self._from_dict = from_dict
        self.directory.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        """
        Map a key to its entry file.

        Keys are percent-encoded. Encoded names too long for the filesystem
        become a readable prefix plus ``%%`` and the key's SHA-256; ``%%``
        never appears in a percent-encoded name, so the two forms cannot clash.
        """
        if not key:
            raise ValueError("Store key must not be empty")
        name = quote(key, safe="")
        if len(name) + len(ENTRY_SUFFIX) + len(TEMP_SUFFIX) > MAX_NAME_BYTES:
            digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
            name = f"{name[:HASHED_PREFIX_CHARS]}%%{digest}"
        return self.directory / (name + ENTRY_SUFFIX)

    def put(self, key: str, value: T) -> None:
        """
        Serialize and durably write an entry, replacing any existing one.

        Raises:
            StoreWriteFailed: If the entry could not be written
        """
        path = self.path_for(key)
        tmp_name = None
        try:
            payload = json.dumps(self._to_dict(value), indent=2)
            with tempfile.NamedTemporaryFile(
                "w",
                dir=self.directory,
                prefix=".",
                suffix=TEMP_SUFFIX,
                delete=False,
                encoding="utf-8",
            ) as tmp_file:
                tmp_name = tmp_file.name
                tmp_file.write(payload)
                tmp_file.flush()
                os.fsync(tmp_file.fileno())
            os.replace(tmp_name, path)
            tmp_name = None
        except (OSError, TypeError, ValueError) as e:
            logging.error(f"Failed to write {self.directory.name}/{key}: {e}")
            raise StoreWriteFailed(f"Failed to write {self.directory.name}/{key}: {e}") from e
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.remove(tmp_name)
        logging.debug(f"Stored {self.directory.name}/{key}")

    def get(self, key: str) -> Optional[T]:
        """Return the entry for ``key``, or None when absent or unreadable."""
        path = self.path_for(key)
        try:
            if not path.is_file():
                return None
            return self._load(path)
        except StoreReadCorrupt as e:
            logging.warning(str(e))
            return None
        except OSError as e:
            logging.warning(f"Could not read {self.directory.name}/{key}: {e}")
            return None

    def list_all(self) -> List[T]:
        """Return every entry that can be parsed; bad entries are logged and skipped."""
        entries = []
        for path in sorted(self.directory.glob("*" + ENTRY_SUFFIX)):
            try:
                entries.append(self._load(path))
            except StoreReadCorrupt as e:
                logging.warning(f"Skipping entry: {e}")
        return entries

    def delete(self, key: str) -> bool:
        """Remove one entry. Returns False when there was nothing to remove."""
        try:
            self.path_for(key).unlink()
            return True
        except FileNotFoundError:
            return False

    def entry_paths(self) -> List[Path]:
        """Paths of every stored entry; in-flight temp files are excluded."""
        return [p for p in self.directory.glob("*" + ENTRY_SUFFIX) if p.is_file()]

    def _load(self, path: Path) -> T:
        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
            return self._from_dict(data)
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise StoreReadCorrupt(f"Unreadable entry {path}: {e}") from e


class LocalStore:
    """
    Durable local repository with four independent namespaces.

    Every entity is a pretty-printed JSON file under ``base_path``:
    ``reports/``, ``alerts/``, ``notifications/`` and ``statistics/``.
    """

    def __init__(self, base_path):
        """
        Initialize the store, creating namespace directories if needed.

        Args:
            base_path: Root directory for all stored entries

        Raises:
            StoreWriteFailed: If the directories cannot be created
        """
        self.base_path = Path(base_path).expanduser()
        try:
            self.reports: StoreNamespace[WeatherReport] = StoreNamespace(
                self.base_path / REPORTS_DIR, WeatherReport.to_dict, WeatherReport.from_dict
            )
            self.alerts: StoreNamespace[Alert] = StoreNamespace(
                self.base_path / ALERTS_DIR, Alert.to_dict, Alert.from_dict
            )
            self.notifications: StoreNamespace[AlertNotification] = StoreNamespace(
                self.base_path / NOTIFICATIONS_DIR, AlertNotification.to_dict, AlertNotification.from_dict
            )
            self.statistics: StoreNamespace[WeatherStatistics] = StoreNamespace(
                self.base_path / STATISTICS_DIR, WeatherStatistics.to_dict, WeatherStatistics.from_dict
            )
        except OSError as e:
            raise StoreWriteFailed(f"Storage initialization failed at {self.base_path}: {e}") from e
        logging.info(f"Storage directories initialized at: {self.base_path}")

    @property
    def namespaces(self) -> List[StoreNamespace]:
        return [self.reports, self.alerts, self.notifications, self.statistics]

    # Reports

    def save_report(self, report: WeatherReport) -> None:
        self.reports.put(report_key(report.location, report.date), report)

    def get_report(self, location: str, day: date) -> Optional[WeatherReport]:
        return self.reports.get(report_key(location, day))

    def get_weekly_reports(self, location: str, start_date: date) -> List[WeatherReport]:
        """Stored reports for the seven days starting at ``start_date``; missing days are left out."""
        reports = []
        for offset in range(7):
            report = self.get_report(location, start_date + timedelta(days=offset))
            if report is not None:
                reports.append(report)
        return reports

    # Alerts

    def save_alert(self, alert: Alert) -> None:
        self.alerts.put(alert.id, alert)
        logging.info(f"Saved alert {alert.id} with {len(alert.conditions)} conditions")

    def get_alert(self, alert_id: str) -> Optional[Alert]:
        return self.alerts.get(alert_id)

    def get_alerts(self) -> List[Alert]:
        return self.alerts.list_all()

    def get_active_alerts(self) -> List[Alert]:
        alerts = [a for a in self.alerts.list_all() if a.active]
        logging.info(f"Retrieved {len(alerts)} active alerts")
        return alerts

    # Notifications

    def save_notification(self, notification: AlertNotification) -> None:
        self.notifications.put(notification.id, notification)

    def get_notifications(self) -> List[AlertNotification]:
        return self.notifications.list_all()

    # Statistics

    def save_statistics(self, statistics: WeatherStatistics) -> None:
        key = statistics_key(statistics.location, statistics.start_date, statistics.end_date)
        self.statistics.put(key, statistics)

    def get_statistics(self, location: str, start_date: date, end_date: date) -> Optional[WeatherStatistics]:
        return self.statistics.get(statistics_key(location, start_date, end_date))

    # Cache management

    def size_bytes(self) -> int:
        """Total on-disk size of all stored entries across every namespace."""
        total = 0
        for namespace in self.namespaces:
            for path in namespace.entry_paths():
                try:
                    total += path.stat().st_size
                except OSError as e:
                    # Removed between listing and stat
                    logging.debug(f"Could not stat {path}: {e}")
        logging.debug(f"Total cache size in bytes: {total}")
        return total

    def clear_all(self) -> None:
        """Delete every stored entry; the namespace directories are kept."""
        removed = 0
        for namespace in self.namespaces:
            for path in namespace.entry_paths():
                try:
                    path.unlink()
                    removed += 1
                except FileNotFoundError:
                    pass
        logging.info(f"Cleared {removed} entries from {self.base_path}")
