import json
import logging
from datetime import datetime, timezone
from typing import Optional

from confluent_kafka import Producer

from admissions.config import KafkaConfig

logger = logging.getLogger(__name__)


class NotificationPublisher:
    """
    Publishes admission events for the site's toast/alert surface.

    Publishing is fire-and-forget: a failed delivery is logged and never
    fails the operation that triggered it. Sends never wait on the broker;
    outstanding messages are flushed by close() at shutdown.
    """

    def __init__(self, bootstrap_servers: str, topic: str, flush_timeout: float = 0.0):
        self.topic = topic
        self.flush_timeout = flush_timeout
        self.producer = Producer({"bootstrap.servers": bootstrap_servers})

    def _delivery_report(self, err, msg):
        if err:
            logger.error("Delivery failed for notification: %s", err)
        else:
            logger.info("Notification delivered to %s [%d] at offset %s", msg.topic(), msg.partition(), msg.offset())

    def publish(self, event: str, message: str, application_id: Optional[str] = None,
                level: str = "success", **extra) -> None:
        payload = {
            "event": event,
            "level": level,
            "message": message,
            "application_id": application_id,
            "sent_at": datetime.now(timezone.utc).isoformat(),
        }
        payload.update(extra)
        try:
            self.producer.produce(self.topic, value=json.dumps(payload).encode("utf-8"), callback=self._delivery_report)
            # serve delivery callbacks and attempt to send outstanding messages
            self.producer.poll(0)
            self.producer.flush(self.flush_timeout)
        except Exception as exc:
            logger.exception("Failed to publish %s notification: %s", event, exc)

    def close(self, timeout: float = 5.0) -> None:
        remaining = self.producer.flush(timeout)
        if remaining:
            logger.warning("%d notification(s) not delivered before shutdown", remaining)


class NullPublisher:
    """Used when notifications are switched off; only logs."""

    def publish(self, event: str, message: str, application_id: Optional[str] = None,
                level: str = "success", **extra) -> None:
        logger.info("Notification (%s, not sent): %s", event, message)

    def close(self, timeout: float = 5.0) -> None:
        pass


_publisher = None


def get_notifier():
    """
    Dependency returning the process-wide publisher, created on first use.
    """
    global _publisher
    if _publisher is None:
        if KafkaConfig.NOTIFICATIONS_ENABLED:
            _publisher = NotificationPublisher(KafkaConfig.BOOTSTRAP_SERVERS, KafkaConfig.ADMISSION_EVENTS_TOPIC)
        else:
            _publisher = NullPublisher()
    return _publisher


def close_notifier() -> None:
    """Flush and drop the process-wide publisher, if one was created."""
    global _publisher
    if _publisher is not None:
        _publisher.close()
        _publisher = None
