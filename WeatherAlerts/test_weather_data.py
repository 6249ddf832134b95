"""Tests for weather_data module."""
import json
import pytest
from datetime import date, datetime
from weather_data import (
    Alert,
    AlertNotification,
    Condition,
    WeatherReport,
    WeatherStatistics,
    degrees_to_compass,
)


@pytest.fixture
def sample_report():
    return WeatherReport(
        location="Seattle",
        date=date(2024, 1, 1),
        high_temp=12.5,
        low_temp=4.0,
        humidity=80.0,
        wind_speed=6.2,
        wind_direction="SW",
        precipitation_chance=70.0,
    )


def test_weather_report_json_fields(sample_report):
    """Test report serializes with camelCase names and an ISO date."""
    data = sample_report.to_dict()

    assert data == {
        "location": "Seattle",
        "date": "2024-01-01",
        "highTemp": 12.5,
        "lowTemp": 4.0,
        "humidity": 80.0,
        "windSpeed": 6.2,
        "windDirection": "SW",
        "precipitationChance": 70.0,
    }
    # Must survive a real JSON encode/decode
    assert WeatherReport.from_dict(json.loads(json.dumps(data))) == sample_report


def test_weather_report_is_immutable(sample_report):
    """Test that stored reports cannot be mutated in place."""
    with pytest.raises(AttributeError):
        sample_report.high_temp = 99.0


def test_alert_from_dict():
    """Test alert parsing, including nested conditions and timestamp."""
    alert = Alert.from_dict({
        "id": "abc",
        "active": True,
        "conditions": [{"parameter": "temperature", "operator": ">", "threshold": 30}],
        "combinator": "AND",
        "created": "2024-05-01T12:30:00",
    })

    assert alert.conditions == [Condition("temperature", ">", 30.0)]
    assert alert.created == datetime(2024, 5, 1, 12, 30)
    assert alert.active is True


def test_alert_without_conditions_rejected():
    """Test that an alert with an empty condition list cannot be loaded."""
    with pytest.raises(ValueError):
        Alert.from_dict({
            "id": "abc",
            "active": True,
            "conditions": [],
            "combinator": "AND",
            "created": "2024-05-01T12:30:00",
        })


@pytest.mark.parametrize("flag", ["false", "true", 0, 1, None])
def test_alert_active_flag_must_be_boolean(flag):
    """Test that a non-boolean active flag is rejected instead of coerced."""
    with pytest.raises(TypeError):
        Alert.from_dict({
            "id": "abc",
            "active": flag,
            "conditions": [{"parameter": "temperature", "operator": ">", "threshold": 30}],
            "combinator": "AND",
            "created": "2024-05-01T12:30:00",
        })


def test_notification_acknowledged_flag_must_be_boolean():
    with pytest.raises(TypeError):
        AlertNotification.from_dict({
            "id": "n1",
            "alertId": "a1",
            "message": "msg",
            "timestamp": "2024-05-01T08:00:00",
            "acknowledged": "false",
        })


def test_notification_fields():
    notification = AlertNotification(
        id="n1",
        alert_id="a1",
        message="temperature > 30.0 (Current value: 35.0)",
        timestamp=datetime(2024, 5, 1, 8, 0, 0),
    )

    data = notification.to_dict()
    assert data["alertId"] == "a1"
    assert data["timestamp"] == "2024-05-01T08:00:00"
    assert data["acknowledged"] is False


def test_statistics_without_calculated_timestamp():
    stats = WeatherStatistics.from_dict({
        "location": "Seattle",
        "startDate": "2024-01-01",
        "endDate": "2024-01-07",
        "averageTemperature": 8.5,
    })

    assert stats.calculated is None
    assert stats.average_humidity == 0.0
    assert stats.to_dict()["calculated"] is None


@pytest.mark.parametrize("degrees,expected", [
    (0, "N"),
    (44, "NE"),
    (90, "E"),
    (180, "S"),
    (225, "SW"),
    (338, "N"),
    (359.9, "N"),
])
def test_degrees_to_compass(degrees, expected):
    assert degrees_to_compass(degrees) == expected
