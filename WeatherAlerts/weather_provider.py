"""Weather provider abstraction - allows swapping different weather APIs."""
from abc import ABC, abstractmethod
from datetime import date
from weather_data import WeatherReport


class WeatherProviderBase(ABC):
    """Abstract base class for weather data providers."""

    @abstractmethod
    def get_report(self, location: str, day: date) -> WeatherReport:
        """
        Fetch the weather report for a location on a given day.

        Args:
            location: Location name understood by the provider (e.g. "Seattle")
            day: Calendar day to fetch

        Returns:
            WeatherReport: Weather for that location and day

        Raises:
            WeatherUnavailable: If the provider fails or times out
        """
        pass

    def get_current(self, location: str) -> WeatherReport:
        """Fetch today's weather for a location."""
        return self.get_report(location, date.today())


class WeatherUnavailable(Exception):
    """Exception raised when a weather provider fails or times out."""
    pass
