"""OpenWeather API provider implementation."""
import logging
from datetime import date, datetime
from typing import Optional

import requests

from weather_data import WeatherReport, degrees_to_compass
from weather_provider import WeatherProviderBase, WeatherUnavailable


class OpenWeatherProvider(WeatherProviderBase):
    """
    Weather provider using the free OpenWeather 2.5 API.

    Today's weather comes from the Current Weather endpoint
    (https://openweathermap.org/current). Other days are taken from the
    5 day / 3 hour forecast (https://openweathermap.org/forecast5), using
    the first 3-hour slot that falls on the requested date.
    """

    BASE_URL = "https://api.openweathermap.org/data/2.5"

    def __init__(
        self,
        api_key: str,
        units: str = "metric",
        lang: str = "en",
        timeout: int = 10,
        base_url: Optional[str] = None,
    ):
        """
        Initialize OpenWeather provider.

        Args:
            api_key: OpenWeather API key
            units: Temperature units ("metric", "imperial", or "standard")
            lang: Language code for descriptions (e.g., "en", "de")
            timeout: HTTP request timeout in seconds
            base_url: Override for the API root (tests, proxies)
        """
        self.api_key = api_key
        self.units = units
        self.lang = lang
        self.timeout = timeout
        self.base_url = (base_url or self.BASE_URL).rstrip("/")

    def get_report(self, location: str, day: date) -> WeatherReport:
        """
        Fetch weather for a location and day.

        Raises:
            WeatherUnavailable: If the request fails, times out or cannot be parsed
        """
        if day == date.today():
            data = self._request("weather", location)
            return self._parse_current(data, location, day)
        data = self._request("forecast", location)
        return self._parse_forecast(data, location, day)

    def _request(self, endpoint: str, location: str) -> dict:
        url = f"{self.base_url}/{endpoint}"
        params = {
            "q": location,
            "appid": self.api_key,
            "units": self.units,
            "lang": self.lang,
        }
        try:
            logging.info(f"Making OpenWeather API request: {url} (location={location})")
            response = requests.get(url, params=params, timeout=self.timeout)
            logging.info(f"API response status: {response.status_code}")

            if not response.ok:
                logging.error(f"API request failed with status {response.status_code}")
                self._handle_error_response(response)

            data = response.json()
            logging.debug(f"API response (truncated): {str(data)[:500]}...")
            return data
        except requests.exceptions.Timeout as e:
            logging.error(f"OpenWeather request timed out after {self.timeout}s: {e}")
            raise WeatherUnavailable(f"Timeout after {self.timeout}s: {str(e)}")
        except requests.exceptions.RequestException as e:
            logging.error(f"Network error during API request: {e}")
            raise WeatherUnavailable(f"Network error: {str(e)}")
        except ValueError as e:
            logging.error(f"API returned invalid JSON: {e}")
            raise WeatherUnavailable(f"Invalid JSON response: {str(e)}")

    def _parse_current(self, data: dict, location: str, day: date) -> WeatherReport:
        try:
            main_data = data.get("main", {})
            if not main_data:
                raise WeatherUnavailable("Response missing 'main' block")
            return self._build_report(data, location, day)
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            logging.error(f"Failed to parse API response: {e}", exc_info=True)
            raise WeatherUnavailable(f"Failed to parse response: {str(e)}")

    def _parse_forecast(self, data: dict, location: str, day: date) -> WeatherReport:
        try:
            entries = data.get("list") or []
            if not entries:
                raise WeatherUnavailable("Response missing 'list' array")

            entry = None
            for candidate in entries:
                slot = datetime.strptime(candidate["dt_txt"], "%Y-%m-%d %H:%M:%S")
                if slot.date() == day:
                    entry = candidate
                    break
            if entry is None:
                # Requested day outside the forecast window
                logging.warning(f"No forecast slot for {location} on {day}, using first entry")
                entry = entries[0]

            if not entry.get("main"):
                raise WeatherUnavailable("Forecast entry missing 'main' block")
            return self._build_report(entry, location, day)
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            logging.error(f"Failed to parse forecast response: {e}", exc_info=True)
            raise WeatherUnavailable(f"Failed to parse response: {str(e)}")

    def _build_report(self, entry: dict, location: str, day: date) -> WeatherReport:
        main_data = entry["main"]
        wind_data = entry.get("wind") or {}

        report = WeatherReport(
            location=location,
            date=day,
            high_temp=float(main_data.get("temp_max", main_data.get("temp", 0.0))),
            low_temp=float(main_data.get("temp_min", main_data.get("temp", 0.0))),
            humidity=float(main_data.get("humidity", 0.0)),
            wind_speed=float(wind_data.get("speed", 0.0)),
            wind_direction=degrees_to_compass(float(wind_data.get("deg", 0.0))),
            precipitation_chance=self._precipitation_chance(entry),
        )
        logging.info(
            f"Mapped weather report for {location} on {day}: "
            f"high={report.high_temp}, low={report.low_temp}"
        )
        return report

    @staticmethod
    def _precipitation_chance(entry: dict) -> float:
        """Use the forecast probability when present, otherwise 100 if rain was reported."""
        pop = entry.get("pop")
        if pop is not None:
            return round(float(pop) * 100.0, 1)
        rain = entry.get("rain") or {}
        if rain.get("1h", 0.0) > 0 or rain.get("3h", 0.0) > 0:
            return 100.0
        return 0.0

    def _handle_error_response(self, response: requests.Response) -> None:
        """Parse and raise error from OpenWeather error response."""
        try:
            error_data = response.json()
        except ValueError:
            # Not JSON, use HTTP status
            logging.error(f"Non-JSON error response: HTTP {response.status_code}, body: {response.text[:500]}")
            raise WeatherUnavailable(
                f"HTTP {response.status_code}: {response.text[:200]}"
            )

        cod = error_data.get("cod", response.status_code)
        message = error_data.get("message", "Unknown error")
        logging.error(f"OpenWeather API error response: {error_data}")
        raise WeatherUnavailable(f"OpenWeather API error {cod}: {message}")
