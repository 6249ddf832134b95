"""Weather service: read-through cache over the local store."""
import logging
from datetime import date, timedelta
from typing import List

from local_store import LocalStore
from weather_data import WeatherReport
from weather_provider import WeatherProviderBase, WeatherUnavailable


class WeatherService:
    """
    Resolves weather reports from the local store, fetching from the provider on a miss.

    Stored reports never expire: a (location, day) pair is fetched once and
    trusted from then on. Two callers missing the same key at the same time
    may both fetch; the later write simply overwrites the earlier one.
    """

    def __init__(self, provider: WeatherProviderBase, store: LocalStore):
        """
        Initialize weather service.

        Args:
            provider: Weather provider to use on cache misses
            store: Local store holding previously fetched reports
        """
        self.provider = provider
        self.store = store

    def resolve(self, location: str, day: date) -> WeatherReport:
        """
        Get the report for a location and day, using the store if possible.

        Returns:
            WeatherReport: Stored or freshly fetched report

        Raises:
            WeatherUnavailable: If the report is not stored and the provider fails
            StoreWriteFailed: If a fetched report could not be persisted
        """
        cached = self.store.get_report(location, day)
        if cached is not None:
            logging.debug(f"Using stored weather report for {location} on {day}")
            return cached

        logging.info(f"Fetching weather data for {location} on {day}...")
        try:
            report = self.provider.get_report(location, day)
        except WeatherUnavailable:
            raise
        except Exception as e:
            logging.error(f"Provider error for {location} on {day}: {e}")
            raise WeatherUnavailable(f"Failed to fetch weather for {location} on {day}: {e}") from e

        self.store.save_report(report)
        logging.info(
            f"Weather fetch successful for {location} on {day}: "
            f"high={report.high_temp} low={report.low_temp}"
        )
        return report

    def get_current(self, location: str) -> WeatherReport:
        """Resolve today's report for a location."""
        return self.resolve(location, date.today())

    def get_weekly(self, location: str, start_date: date) -> List[WeatherReport]:
        """Resolve seven consecutive daily reports starting at ``start_date``."""
        return [self.resolve(location, start_date + timedelta(days=i)) for i in range(7)]
