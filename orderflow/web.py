"""HTTP interface of the order service."""

from __future__ import annotations

import json
import logging

from flask import Flask, Response, request
from sqlalchemy.exc import SQLAlchemyError

from orderflow.metrics import Counter, Registry
from orderflow.store import Order, OrderStore

logger = logging.getLogger(__name__)

_ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE"]


def _text(message: str, status: int) -> Response:
    response = Response(message, status=status, content_type="text/plain; charset=utf-8")
    if status != 200:
        response.set_data(message + "\n")
        response.headers["X-Content-Type-Options"] = "nosniff"
    return response


def _reject_constant(name: str) -> None:
    raise ValueError(f"invalid JSON constant: {name}")


def _decode_order(body: bytes) -> Order:
    """Read the first JSON value of the body into an order; raise ValueError if invalid."""
    text = body.decode("utf-8", errors="replace").lstrip(" \t\r\n")
    value, _ = json.JSONDecoder(parse_constant=_reject_constant).raw_decode(text)
    order = Order()
    if value is None:
        return order
    if not isinstance(value, dict):
        raise ValueError("order must be a JSON object")
    for key, field in value.items():
        name = key.lower()
        if field is None or name not in ("id", "status"):
            continue
        if name == "id":
            if isinstance(field, bool) or not isinstance(field, int):
                raise ValueError("id must be an integer")
            if not -(2**63) <= field < 2**63:
                raise ValueError("id out of range")
            order.id = field
        else:
            if not isinstance(field, str):
                raise ValueError("status must be a string")
            order.status = field
    return order


def create_app(store: OrderStore, counter: Counter, registry: Registry) -> Flask:
    """Build the web application serving orders, metrics and health checks."""
    app = Flask(__name__)

    @app.route("/order", methods=_ALL_METHODS)
    def create_order() -> Response:
        if request.method != "POST":
            return _text("Method not allowed", 405)
        try:
            order = _decode_order(request.get_data())
        except ValueError:
            return _text("Bad request", 400)
        if not order.status:
            order.status = "created"
        try:
            order.id = store.create_order(order)
        except SQLAlchemyError:
            logger.exception("Error creating order")
            return _text("Internal server error", 500)
        counter.inc()
        return Response(order.to_payload() + "\n", content_type="application/json")

    @app.route("/metrics")
    def metrics() -> Response:
        return Response(
            registry.render(),
            content_type="text/plain; version=0.0.4; charset=utf-8",
        )

    @app.route("/healthz", methods=_ALL_METHODS)
    def health() -> Response:
        return _text("OK", 200)

    @app.route("/ready", methods=_ALL_METHODS)
    def ready() -> Response:
        try:
            store.ping()
        except SQLAlchemyError:
            return _text("Database unreachable", 503)
        return _text("OK", 200)

    return app