"""Tests for the file-backed local store."""
import json
import threading
import pytest
from datetime import date, datetime
from pathlib import Path
from unittest.mock import patch
from local_store import (
    LocalStore,
    MAX_NAME_BYTES,
    StoreWriteFailed,
    report_key,
    statistics_key,
)
from weather_data import Alert, AlertNotification, Condition, WeatherReport, WeatherStatistics


@pytest.fixture
def store(tmp_path):
    return LocalStore(tmp_path / "store")


def make_report(location="Seattle", day=date(2024, 1, 1), high_temp=12.0):
    return WeatherReport(
        location=location,
        date=day,
        high_temp=high_temp,
        low_temp=3.0,
        humidity=75.0,
        wind_speed=4.5,
        wind_direction="NW",
        precipitation_chance=40.0,
    )


def make_alert(alert_id="alert-1", active=True):
    return Alert(
        id=alert_id,
        active=active,
        conditions=[Condition("temperature", ">", 30.0)],
        combinator="AND",
        created=datetime(2024, 1, 1, 9, 0, 0),
    )


def test_keys_are_deterministic():
    assert report_key("New York", date(2024, 1, 1)) == "new_york_2024-01-01"
    assert report_key("new york", date(2024, 1, 1)) == report_key("New York", date(2024, 1, 1))
    assert statistics_key("Seattle", date(2024, 1, 1), date(2024, 1, 7)) == "seattle_2024-01-01_to_2024-01-07"


def test_namespaces_created(store):
    for name in ("reports", "alerts", "notifications", "statistics"):
        assert (store.base_path / name).is_dir()


def test_round_trip_every_entity(store):
    """Test put then get returns an equal value in every namespace."""
    report = make_report()
    alert = make_alert()
    notification = AlertNotification(
        id="n-1", alert_id="alert-1", message="msg", timestamp=datetime(2024, 1, 1, 10, 0, 0)
    )
    stats = WeatherStatistics(
        location="Seattle",
        start_date=date(2024, 1, 1),
        end_date=date(2024, 1, 7),
        average_temperature=7.5,
        average_precipitation=30.0,
        average_wind_speed=4.0,
        average_humidity=70.0,
        calculated=datetime(2024, 1, 8, 0, 0, 0),
    )

    store.save_report(report)
    store.save_alert(alert)
    store.save_notification(notification)
    store.save_statistics(stats)

    assert store.get_report("Seattle", date(2024, 1, 1)) == report
    assert store.get_alert("alert-1") == alert
    assert store.notifications.get("n-1") == notification
    assert store.get_statistics("Seattle", date(2024, 1, 1), date(2024, 1, 7)) == stats


def test_get_missing_returns_none(store):
    assert store.get_report("Nowhere", date(2024, 1, 1)) is None
    assert store.get_alert("missing") is None


def test_put_overwrites(store):
    store.save_report(make_report(high_temp=10.0))
    store.save_report(make_report(high_temp=20.0))

    assert store.get_report("Seattle", date(2024, 1, 1)).high_temp == 20.0
    assert len(store.reports.list_all()) == 1


def test_stored_json_is_human_readable(store):
    store.save_report(make_report())

    path = store.reports.path_for(report_key("Seattle", date(2024, 1, 1)))
    data = json.loads(path.read_text())
    assert data["date"] == "2024-01-01"
    assert data["highTemp"] == 12.0


def test_write_leaves_no_temp_files(store):
    store.save_alert(make_alert())

    files = [p.name for p in (store.base_path / "alerts").iterdir()]
    assert files == ["alert-1.json"]


def test_unsafe_key_stays_inside_namespace(store):
    """Test keys with path separators cannot escape the namespace directory."""
    store.save_report(make_report(location="../../etc"))

    path = store.reports.path_for(report_key("../../etc", date(2024, 1, 1)))
    assert path.parent == store.base_path / "reports"
    assert store.get_report("../../etc", date(2024, 1, 1)) is not None


def test_corrupt_entry_skipped_in_listing(store):
    """Test that a bad file does not abort listing."""
    store.save_alert(make_alert("good"))
    (store.base_path / "alerts" / "broken.json").write_text("{not json")
    (store.base_path / "alerts" / "partial.json").write_text('{"id": "x"}')

    alerts = store.get_alerts()
    assert [a.id for a in alerts] == ["good"]


def test_corrupt_entry_reads_as_absent(store):
    (store.base_path / "alerts" / "broken.json").write_text("garbage")

    assert store.get_alert("broken") is None


def test_get_active_alerts_filters_inactive(store):
    store.save_alert(make_alert("on", active=True))
    store.save_alert(make_alert("off", active=False))

    assert [a.id for a in store.get_active_alerts()] == ["on"]


def test_weekly_reports_skip_missing_days(store):
    store.save_report(make_report(day=date(2024, 1, 1)))
    store.save_report(make_report(day=date(2024, 1, 3)))
    store.save_report(make_report(day=date(2024, 1, 9)))

    reports = store.get_weekly_reports("Seattle", date(2024, 1, 1))
    assert [r.date for r in reports] == [date(2024, 1, 1), date(2024, 1, 3)]


def test_write_failure_raises(store):
    """Test that write errors are surfaced, not swallowed."""
    with patch("local_store.os.replace", side_effect=OSError("disk full")):
        with pytest.raises(StoreWriteFailed) as exc_info:
            store.save_alert(make_alert())

    assert "disk full" in str(exc_info.value)
    # Nothing half-written left behind
    assert list((store.base_path / "alerts").iterdir()) == []


def test_size_bytes_and_clear_all(store):
    store.save_report(make_report())
    store.save_alert(make_alert())

    assert store.size_bytes() > 0

    store.clear_all()

    assert store.size_bytes() == 0
    for namespace in store.namespaces:
        assert namespace.list_all() == []
        assert namespace.directory.is_dir()


def test_clear_then_get_returns_none(store):
    store.save_report(make_report(location="Seattle", day=date(2024, 1, 1)))

    store.clear_all()

    assert store.get_report("Seattle", date(2024, 1, 1)) is None


def test_store_usable_after_clear(store):
    store.clear_all()
    store.save_alert(make_alert())

    assert store.get_alert("alert-1") is not None


def test_delete(store):
    store.save_alert(make_alert())

    assert store.alerts.delete("alert-1") is True
    assert store.alerts.delete("alert-1") is False


def test_concurrent_writes_same_key(store):
    """Test that concurrent writers never leave a half-written entry."""
    errors = []

    def writer(temp):
        try:
            for _ in range(20):
                store.save_report(make_report(high_temp=temp))
        except Exception as e:  # pragma: no cover - reported below
            errors.append(e)

    threads = [threading.Thread(target=writer, args=(float(t),)) for t in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    report = store.get_report("Seattle", date(2024, 1, 1))
    assert report is not None
    assert report.high_temp in {0.0, 1.0, 2.0, 3.0, 4.0}
    assert len(list((store.base_path / "reports").iterdir())) == 1


LONG_LOCATION = "東京都" * 10


def test_long_key_missing_reads_as_none(store):
    """Test that keys too long for a file name do not raise on lookup."""
    assert store.get_report(LONG_LOCATION, date(2024, 1, 1)) is None
    assert store.get_alert("x" * 300) is None


def test_long_keys_round_trip(store):
    report = make_report(location=LONG_LOCATION)
    alert = make_alert("x" * 300)

    store.save_report(report)
    store.save_alert(alert)

    assert store.get_report(LONG_LOCATION, date(2024, 1, 1)) == report
    assert store.get_alert("x" * 300) == alert
    assert [a.id for a in store.get_alerts()] == ["x" * 300]


def test_long_key_file_name_fits_filesystem(store):
    key = report_key(LONG_LOCATION, date(2024, 1, 1))
    path = store.reports.path_for(key)

    assert len(path.name.encode("utf-8")) <= MAX_NAME_BYTES
    assert path.parent == store.base_path / "reports"
    assert store.reports.path_for(key) == path


def test_distinct_long_keys_get_distinct_files(store):
    # Same readable prefix, different tails
    first = store.alerts.path_for("x" * 300 + "a")
    second = store.alerts.path_for("x" * 300 + "b")

    assert first != second


def test_short_keys_keep_readable_names(store):
    assert store.alerts.path_for("alert-1").name == "alert-1.json"


def test_filesystem_error_on_lookup_reads_as_absent(store):
    with patch.object(Path, "is_file", side_effect=OSError(36, "File name too long")):
        assert store.get_alert("alert-1") is None


def test_non_boolean_active_flag_skipped(store):
    """Test that an alert stored with a string flag is not treated as active."""
    store.save_alert(make_alert("good"))
    data = make_alert("stringly").to_dict()
    data["active"] = "false"
    (store.base_path / "alerts" / "stringly.json").write_text(json.dumps(data))

    assert [a.id for a in store.get_alerts()] == ["good"]
    assert [a.id for a in store.get_active_alerts()] == ["good"]
    assert store.get_alert("stringly") is None
