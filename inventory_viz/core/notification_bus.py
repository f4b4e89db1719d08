from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

Subscriber = Callable[[Any], None]


class Channel(str, Enum):
    CHART_UPDATE = "chart-update"
    COMPARISON_UPDATE = "comparison-update"
    ERROR_UPDATE = "error-update"
    CLEAR = "clear"
    FILTER_CHANGE = "filter-change"


@dataclass(frozen=True)
class Notification:
    channel: Channel
    payload: Any


class Subscription:
    """Handle returned by NotificationBus.subscribe(); call unsubscribe() to detach."""

    def __init__(self, bus: NotificationBus, channel: Channel, callback: Subscriber):
        self.channel = channel
        self.callback = callback
        self._bus = bus
        self.active = True

    def unsubscribe(self) -> None:
        self._bus.unsubscribe(self)


class NotificationBus:
    """
    Independent broadcast channels between the orchestrator and the presentation widgets.

    Design Notes:
    - publish() delivers synchronously to the subscribers registered at that moment, in
      subscription order, and returns how many were reached
    - there is no history: a widget subscribing after a publish never sees that payload
    - publishing on a channel without subscribers is a no-op
    - a subscriber raising does not stop delivery to the remaining subscribers
    """

    def __init__(self):
        self._subscriptions: Dict[Channel, List[Subscription]] = {c: [] for c in Channel}
        self._lock = threading.Lock()

    def subscribe(self, channel: Channel, callback: Subscriber) -> Subscription:
        channel = Channel(channel)
        sub = Subscription(self, channel, callback)
        with self._lock:
            self._subscriptions[channel].append(sub)
        return sub

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            subs = self._subscriptions[subscription.channel]
            if subscription in subs:
                subs.remove(subscription)
        subscription.active = False

    def subscriber_count(self, channel: Channel) -> int:
        with self._lock:
            return len(self._subscriptions[Channel(channel)])

    def publish(self, channel: Channel, payload: Any) -> int:
        channel = Channel(channel)
        with self._lock:
            targets = list(self._subscriptions[channel])

        if not targets:
            logger.debug("No subscribers", extra={"channel": channel.value})
            return 0

        delivered = 0
        for sub in targets:
            try:
                sub.callback(payload)
                delivered += 1
            except Exception:
                logger.exception(
                    "Subscriber failed while handling notification",
                    extra={"channel": channel.value},
                )
        return delivered

    def publish_notification(self, notification: Notification) -> int:
        return self.publish(notification.channel, notification.payload)
