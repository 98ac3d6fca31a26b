"""Kafka publisher for channel and membership events.

Events go to one topic, keyed by channel id so that every event of a
channel lands on the same partition in order::

    {"event_type": "member.joined", "occurred_at": "...", "data": {...}}
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from aiokafka import AIOKafkaProducer

logger = logging.getLogger(__name__)


def encode_event(value: Dict[str, Any]) -> bytes:
    return json.dumps(value, default=str).encode("utf-8")


class KafkaProducer:
    """Owns one ``AIOKafkaProducer`` for the lifetime of the app."""

    def __init__(self, bootstrap_servers: str, topic: str = "channels"):
        self.bootstrap_servers = bootstrap_servers
        self.topic = topic
        self.producer: Optional[AIOKafkaProducer] = None

    @property
    def started(self) -> bool:
        return self.producer is not None

    async def start(self) -> None:
        """Connect to the brokers. Connection errors propagate to the caller."""
        producer = AIOKafkaProducer(
            bootstrap_servers=self.bootstrap_servers,
            value_serializer=encode_event,
        )
        try:
            await producer.start()
        except Exception as e:
            logger.error(f"Could not connect to Kafka at {self.bootstrap_servers}: {e}")
            raise
        self.producer = producer
        logger.info(f"Kafka producer connected to {self.bootstrap_servers}, topic {self.topic}")

    async def stop(self) -> None:
        if not self.started:
            return
        await self.producer.stop()
        self.producer = None
        logger.info("Kafka producer stopped")

    async def publish_channel_event(
        self,
        event_type: str,
        channel_data: Dict[str, Any],
        key: Optional[str] = None,
    ) -> None:
        """Send one event without waiting for the broker acknowledgement.

        Delivery is best effort: a producer that never started, or a failed
        send, is logged and the caller carries on.
        """
        if not self.started:
            logger.warning(f"Kafka unavailable, {event_type} event not published")
            return

        event = {
            "event_type": event_type,
            "occurred_at": datetime.now(timezone.utc).isoformat(),
            "data": channel_data,
        }
        try:
            await self.producer.send(
                self.topic,
                value=event,
                key=key.encode("utf-8") if key is not None else None,
            )
        except Exception as e:
            logger.error(f"Publishing {event_type} to {self.topic} failed: {e}")
            return
        logger.debug(f"Queued {event_type} for {self.topic} (key={key})")
