"""Notification transports - where finished alert notifications are pushed."""
import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, List

import requests

from weather_data import AlertNotification

Subscriber = Callable[[AlertNotification], None]


class NotificationTransportBase(ABC):
    """Abstract fan-out sink for alert notifications."""

    @abstractmethod
    def publish(self, notification: AlertNotification) -> None:
        """
        Push a notification to listeners. Fire-and-forget: callers do not wait
        for delivery acknowledgement.
        """
        pass


class TopicTransport(NotificationTransportBase):
    """In-process pub/sub topic that hands each notification to every subscriber."""

    def __init__(self, topic: str = "/topic/alerts"):
        self.topic = topic
        self._subscribers: List[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> None:
        with self._lock:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, notification: AlertNotification) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        logging.info(f"Publishing notification {notification.id} to {self.topic} ({len(subscribers)} subscribers)")
        for callback in subscribers:
            try:
                callback(notification)
            except Exception as e:
                # One broken listener must not starve the rest
                logging.exception(f"Subscriber {callback!r} failed on {notification.id}: {e}")


class WebhookTransport(NotificationTransportBase):
    """Posts each notification as JSON to an HTTP endpoint."""

    def __init__(self, url: str, timeout: int = 5):
        """
        Args:
            url: Endpoint receiving POSTed notifications
            timeout: HTTP request timeout in seconds
        """
        self.url = url
        self.timeout = timeout

    def publish(self, notification: AlertNotification) -> None:
        try:
            response = requests.post(self.url, json=notification.to_dict(), timeout=self.timeout)
            if not response.ok:
                logging.error(
                    f"Webhook rejected notification {notification.id}: "
                    f"HTTP {response.status_code} {response.text[:200]}"
                )
                return
            logging.info(f"Webhook delivered notification {notification.id}")
        except requests.exceptions.RequestException as e:
            logging.error(f"Webhook delivery failed for {notification.id}: {e}")
