"""Consumer side: reads order events and processes them."""

from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConsumedMessage:
    """A message read from the broker."""

    topic: str
    key: bytes
    value: bytes
    partition: int = 0
    offset: int = 0


@dataclass(frozen=True)
class ProcessResult:
    """What processing a message found out."""

    order_id: Optional[str] = None
    customer_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _reject_constant(name: str) -> None:
    raise ValueError(f"invalid JSON constant: {name}")


def parse_order(value: bytes) -> dict[str, Any]:
    """Parse an order event; raise ValueError if it is not a JSON object."""
    text = value.decode("utf-8", errors="replace")
    data = json.loads(text, parse_constant=_reject_constant)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("order event must be a JSON object")
    return data


def process_message(message: ConsumedMessage, delay: float = 0.1) -> ProcessResult:
    """Parse an order event and run the business step on it."""
    try:
        order = parse_order(message.value)
    except ValueError as exc:
        logger.error("Error parsing order JSON: %s", exc)
        return ProcessResult(error=str(exc))

    order_id = order.get("order_id")
    customer_id = order.get("customer_id")
    result = ProcessResult(
        order_id=order_id if isinstance(order_id, str) else None,
        customer_id=customer_id if isinstance(customer_id, str) else None,
    )
    if delay > 0:
        time.sleep(delay)
    return result


def consume(
    messages: Iterable[Union[ConsumedMessage, Exception]],
    stop: threading.Event,
    delay: float = 0.1,
) -> list[ProcessResult]:
    """Process messages until the source runs dry or stop is set.

    Exceptions in the stream are consumer errors: they are logged and skipped.
    """
    logger.info("Order Processor is running and listening for events...")
    results: list[ProcessResult] = []
    for item in messages:
        if stop.is_set():
            break
        if isinstance(item, Exception):
            logger.error("Error: %s", item)
            continue
        logger.info(
            "Received message",
            extra={
                "kafka_key": item.key.decode("utf-8", errors="replace"),
                "kafka_value": item.value.decode("utf-8", errors="replace"),
                "kafka_partition": item.partition,
                "kafka_offset": item.offset,
            },
        )
        results.append(process_message(item, delay))
    logger.info("Order Processor shutting down.")
    return results