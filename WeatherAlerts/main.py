"""Weather alert daemon and admin commands."""
import argparse
import logging
import os
import signal
import sys
from dataclasses import dataclass
from typing import List, Optional

from dotenv import load_dotenv

from alert_scheduler import AlertScheduler
from alert_service import AlertService, InvalidAlertError
from cache_admin import CacheAdmin
from local_store import LocalStore, StoreWriteFailed
from notification_transport import TopicTransport, WebhookTransport
from openweather_provider import OpenWeatherProvider
from weather_data import AlertNotification, Condition
from weather_service import WeatherService

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DEFAULT_LOG_FILE = os.path.join(BASE_DIR, "weather-alerts.log")
DEFAULT_STORE_DIR = os.path.join("~", "Documents", "WeatherApp")


@dataclass
class AppConfig:
    store_dir: str
    api_key: Optional[str] = None
    location: Optional[str] = None
    units: str = "metric"
    lang: str = "en"
    webhook_url: Optional[str] = None


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser("Weather alert pipeline")
    parser.add_argument("--log-file", default=DEFAULT_LOG_FILE)
    parser.add_argument("--store-dir", default=None, help="Overrides WEATHER_STORE_DIR")
    parser.add_argument("--verbose", action="store_true")

    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Check alerts on a fixed interval until stopped")
    run.add_argument("--interval", type=float, default=60.0, help="Seconds between alert checks")
    run.add_argument("--workers", type=int, default=4, help="Alerts evaluated concurrently")
    run.add_argument("--timeout", type=int, default=10, help="HTTP timeout in seconds")
    run.add_argument("--alert-timeout", type=float, default=30.0, help="Seconds each alert may take per tick")

    check = sub.add_parser("check", help="Run a single alert check")
    check.add_argument("--workers", type=int, default=4)
    check.add_argument("--timeout", type=int, default=10, help="HTTP timeout in seconds")
    check.add_argument("--alert-timeout", type=float, default=30.0, help="Seconds each alert may take per tick")

    create = sub.add_parser("create-alert", help="Register a new alert")
    create.add_argument(
        "--condition",
        nargs=3,
        action="append",
        required=True,
        metavar=("PARAMETER", "OPERATOR", "THRESHOLD"),
        help="e.g. --condition temperature '>' 30 (repeatable)",
    )
    create.add_argument("--combinator", default="AND", help="AND or OR")

    toggle = sub.add_parser("set-active", help="Enable or disable an alert")
    toggle.add_argument("alert_id")
    toggle.add_argument("state", choices=["on", "off"])

    sub.add_parser("alerts", help="List active alerts")
    sub.add_parser("notifications", help="List stored notifications")
    sub.add_parser("cache-size", help="Print store size in MB")
    sub.add_parser("cache-clear", help="Delete every stored entry")
    return parser.parse_args(argv)


def setup_logging(log_file: str, verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file)
        ]
    )


def load_config(store_dir: Optional[str] = None) -> AppConfig:
    load_dotenv()
    config = AppConfig(
        store_dir=store_dir or os.getenv("WEATHER_STORE_DIR", DEFAULT_STORE_DIR),
        api_key=os.getenv("WEATHER_API_KEY"),
        location=os.getenv("WEATHER_LOCATION"),
        units=os.getenv("WEATHER_UNITS", "metric"),
        lang=os.getenv("WEATHER_LANG", "en"),
        webhook_url=os.getenv("ALERT_WEBHOOK_URL"),
    )
    logging.info("Configuration loaded: store=%s location=%s units=%s", config.store_dir, config.location, config.units)
    return config


def log_notification(notification: AlertNotification) -> None:
    logging.info("ALERT %s: %s", notification.alert_id, notification.message)


def build_scheduler(config: AppConfig, store: LocalStore, args: argparse.Namespace) -> AlertScheduler:
    if not config.api_key:
        raise SystemExit("Missing WEATHER_API_KEY in environment")
    if not config.location:
        raise SystemExit("Missing WEATHER_LOCATION in environment")

    provider = OpenWeatherProvider(
        api_key=config.api_key,
        units=config.units,
        lang=config.lang,
        timeout=args.timeout,
    )
    transport = TopicTransport()
    transport.subscribe(log_notification)
    if config.webhook_url:
        transport.subscribe(WebhookTransport(config.webhook_url, timeout=args.timeout).publish)
        logging.info("Webhook delivery enabled: %s", config.webhook_url)

    scheduler = AlertScheduler(
        store=store,
        weather_service=WeatherService(provider, store),
        transport=transport,
        location=config.location,
        interval_seconds=getattr(args, "interval", 60.0),
        max_workers=args.workers,
        alert_timeout_seconds=args.alert_timeout,
    )
    logging.info("Alert scheduler ready (interval=%ss, workers=%s)", scheduler.interval_seconds, args.workers)
    return scheduler


def parse_conditions(raw: List[List[str]]) -> List[Condition]:
    conditions = []
    for parameter, operator, threshold in raw:
        try:
            value = float(threshold)
        except ValueError as exc:
            raise SystemExit(f"Invalid threshold {threshold!r}: {exc}") from exc
        conditions.append(Condition(parameter=parameter, operator=operator, threshold=value))
    return conditions


def signal_handler(signum, frame):
    logging.info("Received signal %s, shutting down", signum)
    raise KeyboardInterrupt()


def run_command(args: argparse.Namespace, config: AppConfig) -> int:
    store = LocalStore(config.store_dir)

    if args.command == "run":
        scheduler = build_scheduler(config, store, args)
        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)
        try:
            scheduler.run_forever()
        except KeyboardInterrupt:
            scheduler.stop()
            logging.info("Stopping alert scheduler")
        return 0

    if args.command == "check":
        result = build_scheduler(config, store, args).tick()
        print(f"checked={result.checked} triggered={result.triggered} "
              f"skipped={result.skipped} failed={result.failed}")
        return 0

    service = AlertService(store)
    if args.command == "create-alert":
        try:
            alert = service.create_alert(parse_conditions(args.condition), args.combinator)
        except InvalidAlertError as err:
            logging.error("Alert rejected: %s", err)
            return 2
        print(alert.id)
        return 0

    if args.command == "set-active":
        if not service.set_active(args.alert_id, args.state == "on"):
            print(f"Alert {args.alert_id} not found", file=sys.stderr)
            return 1
        return 0

    if args.command == "alerts":
        for alert in service.get_active_alerts():
            clauses = f" {alert.combinator} ".join(
                f"{c.parameter} {c.operator} {c.threshold}" for c in alert.conditions
            )
            print(f"{alert.id}  {alert.created.isoformat()}  {clauses}")
        return 0

    if args.command == "notifications":
        for notification in service.get_notifications():
            print(f"{notification.timestamp.isoformat()}  {notification.alert_id}  {notification.message}")
        return 0

    admin = CacheAdmin(store)
    if args.command == "cache-size":
        print(f"{admin.size_mb():.3f}")
        return 0

    if args.command == "cache-clear":
        admin.clear()
        return 0

    raise SystemExit(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_file, args.verbose)
    config = load_config(args.store_dir)
    try:
        return run_command(args, config)
    except StoreWriteFailed as err:
        logging.error("Storage error: %s", err)
        return 1


if __name__ == "__main__":
    sys.exit(main())
