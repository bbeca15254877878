"""Persistence of orders and their outbox events."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Mapping

import sqlalchemy as sa
from sqlalchemy.engine import URL, Engine

_metadata = sa.MetaData()


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
    )


_orders = sa.Table(
    "orders",
    _metadata,
    sa.Column("id", sa.Integer, primary_key=True),
    sa.Column("status", sa.Text, nullable=False),
    _created_at(),
)

_outbox = sa.Table(
    "outbox",
    _metadata,
    sa.Column("id", sa.Integer, primary_key=True),
    sa.Column("aggregate_id", sa.Integer, nullable=False),
    sa.Column("event_type", sa.Text, nullable=False),
    sa.Column("payload", sa.Text, nullable=False),
    sa.Column("processed", sa.Boolean, server_default=sa.false()),
    _created_at(),
)

# Characters escaped in JSON output so it is safe to embed in HTML.
_JSON_ESCAPES = str.maketrans(
    {c: f"\\u{ord(c):04x}" for c in "<>&\u2028\u2029"}
)


@dataclass
class Order:
    """An order as received from and returned to clients."""

    id: int = 0
    status: str = ""

    def to_payload(self) -> str:
        """Serialise the order as compact JSON."""
        text = json.dumps(
            {"id": self.id, "status": self.status},
            ensure_ascii=False,
            separators=(",", ":"),
        )
        return text.translate(_JSON_ESCAPES)


@dataclass
class OutboxEvent:
    """An event waiting in the outbox to be published."""

    id: int
    aggregate_id: int
    event_type: str
    payload: str
    processed: bool = False


class OrderStore:
    """Orders and outbox events kept in one relational database."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    @classmethod
    def from_url(cls, url: str | URL) -> "OrderStore":
        return cls(sa.create_engine(url))

    def create_tables(self) -> None:
        _metadata.create_all(self.engine)

    def create_order(self, order: Order) -> int:
        """Insert an order and its creation event atomically; return the new id."""
        with self.engine.begin() as conn:
            result = conn.execute(sa.insert(_orders).values(status=order.status))
            order_id = int(result.inserted_primary_key[0])
            conn.execute(
                sa.insert(_outbox).values(
                    aggregate_id=order_id,
                    event_type="OrderCreated",
                    payload=order.to_payload(),
                )
            )
        return order_id

    def pending_events(self) -> list[OutboxEvent]:
        """Return the events not yet published, oldest first."""
        c = _outbox.c
        query = (
            sa.select(c.id, c.aggregate_id, c.event_type, c.payload)
            .where(c.processed == sa.false())
            .order_by(c.id)
        )
        with self.engine.connect() as conn:
            return [OutboxEvent(*row) for row in conn.execute(query)]

    def mark_processed(self, event_id: int) -> None:
        with self.engine.begin() as conn:
            conn.execute(
                sa.update(_outbox).where(_outbox.c.id == event_id).values(processed=True)
            )

    def ping(self) -> None:
        """Raise if the database cannot be reached."""
        with self.engine.connect() as conn:
            conn.execute(sa.text("SELECT 1"))


def postgres_url_from_env(environ: Mapping[str, str] | None = None) -> URL:
    """Build the database URL from the POSTGRES_* environment variables."""
    env = os.environ if environ is None else environ
    return URL.create(
        "postgresql",
        username=env.get("POSTGRES_USER") or None,
        password=env.get("POSTGRES_PASSWORD") or None,
        host=env.get("POSTGRES_HOST") or None,
        database=env.get("POSTGRES_DB") or None,
        query={"sslmode": "disable"},
    )