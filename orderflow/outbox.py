"""Relay that publishes pending outbox events to a message broker."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Tuple

from sqlalchemy.exc import SQLAlchemyError

from orderflow.store import OrderStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Message:
    """A message to publish: topic, key and value."""

    topic: str
    key: str
    value: str


SendFunc = Callable[[Message], Tuple[int, int]]


class OutboxRelay:
    """Publishes unprocessed outbox events and marks them processed."""

    def __init__(self, store: OrderStore, send: SendFunc, topic: str = "orders") -> None:
        self.store = store
        self.send = send
        self.topic = topic

    def process_pending(self) -> int:
        """Publish every pending event once; return how many were sent."""
        try:
            events = self.store.pending_events()
        except SQLAlchemyError:
            logger.exception("Error querying outbox")
            return 0

        sent = 0
        for event in events:
            message = Message(
                topic=self.topic,
                key=str(event.aggregate_id),
                value=event.payload,
            )
            try:
                partition, offset = self.send(message)
            except Exception:
                logger.exception("Error sending message to Kafka")
                continue
            sent += 1
            logger.info(
                "Event sent to Kafka",
                extra={"event_id": event.id, "partition": partition, "offset": offset},
            )
            try:
                self.store.mark_processed(event.id)
            except SQLAlchemyError:
                logger.exception("Error updating outbox event as processed")
        return sent

    def run(self, stop: threading.Event, interval: float = 5.0) -> None:
        """Process the outbox every interval seconds until stop is set."""
        while not stop.wait(interval):
            self.process_pending()