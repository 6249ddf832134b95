"""Weather alert domain model - pure data structures independent of any API or storage."""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional


COMPASS_POINTS = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")


@dataclass(frozen=True)
class WeatherReport:
    """Observed weather for one location on one calendar day."""
    location: str
    date: date
    high_temp: float
    low_temp: float
    humidity: float
    wind_speed: float
    wind_direction: str  # one of COMPASS_POINTS
    precipitation_chance: float  # 0-100

    def to_dict(self) -> dict:
        return {
            "location": self.location,
            "date": self.date.isoformat(),
            "highTemp": self.high_temp,
            "lowTemp": self.low_temp,
            "humidity": self.humidity,
            "windSpeed": self.wind_speed,
            "windDirection": self.wind_direction,
            "precipitationChance": self.precipitation_chance,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WeatherReport":
        return cls(
            location=data["location"],
            date=date.fromisoformat(data["date"]),
            high_temp=float(data["highTemp"]),
            low_temp=float(data["lowTemp"]),
            humidity=float(data["humidity"]),
            wind_speed=float(data["windSpeed"]),
            wind_direction=data["windDirection"],
            precipitation_chance=float(data["precipitationChance"]),
        )


@dataclass(frozen=True)
class Condition:
    """A single threshold check, e.g. ``temperature > 30``."""
    parameter: str  # temperature, precipitation, wind, humidity
    operator: str  # >, <, =
    threshold: float

    def to_dict(self) -> dict:
        return {
            "parameter": self.parameter,
            "operator": self.operator,
            "threshold": self.threshold,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Condition":
        return cls(
            parameter=data["parameter"],
            operator=data["operator"],
            threshold=float(data["threshold"]),
        )


@dataclass
class Alert:
    """
    A user-registered set of conditions combined with AND/OR.

    Only ``active`` changes after creation.
    """
    id: str
    active: bool
    conditions: List[Condition]
    combinator: str  # "AND" or "OR"
    created: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "active": self.active,
            "conditions": [c.to_dict() for c in self.conditions],
            "combinator": self.combinator,
            "created": self.created.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Alert":
        conditions = [Condition.from_dict(c) for c in data["conditions"]]
        if not conditions:
            raise ValueError("Alert has no conditions")
        active = data["active"]
        if not isinstance(active, bool):
            raise TypeError(f"Alert active flag must be a boolean, got {active!r}")
        return cls(
            id=data["id"],
            active=active,
            conditions=conditions,
            combinator=data["combinator"],
            created=datetime.fromisoformat(data["created"]),
        )


@dataclass(frozen=True)
class AlertNotification:
    """Record of an alert that fired during a scheduler tick."""
    id: str
    alert_id: str
    message: str
    timestamp: datetime
    acknowledged: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "alertId": self.alert_id,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "acknowledged": self.acknowledged,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AlertNotification":
        acknowledged = data.get("acknowledged", False)
        if not isinstance(acknowledged, bool):
            raise TypeError(f"Notification acknowledged flag must be a boolean, got {acknowledged!r}")
        return cls(
            id=data["id"],
            alert_id=data["alertId"],
            message=data["message"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            acknowledged=acknowledged,
        )


@dataclass(frozen=True)
class WeatherStatistics:
    """Averaged metrics for a location over a date range."""
    location: str
    start_date: date
    end_date: date
    average_temperature: float = 0.0
    average_precipitation: float = 0.0
    average_wind_speed: float = 0.0
    average_humidity: float = 0.0
    calculated: Optional[datetime] = field(default=None)

    def to_dict(self) -> dict:
        return {
            "location": self.location,
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat(),
            "averageTemperature": self.average_temperature,
            "averagePrecipitation": self.average_precipitation,
            "averageWindSpeed": self.average_wind_speed,
            "averageHumidity": self.average_humidity,
            "calculated": self.calculated.isoformat() if self.calculated else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WeatherStatistics":
        calculated = data.get("calculated")
        return cls(
            location=data["location"],
            start_date=date.fromisoformat(data["startDate"]),
            end_date=date.fromisoformat(data["endDate"]),
            average_temperature=float(data.get("averageTemperature", 0.0)),
            average_precipitation=float(data.get("averagePrecipitation", 0.0)),
            average_wind_speed=float(data.get("averageWindSpeed", 0.0)),
            average_humidity=float(data.get("averageHumidity", 0.0)),
            calculated=datetime.fromisoformat(calculated) if calculated else None,
        )


def degrees_to_compass(degrees: float) -> str:
    """Map a wind bearing in degrees to one of the 8 compass points."""
    index = int(round(degrees / 45.0)) % 8
    return COMPASS_POINTS[index]
