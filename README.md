# orderflow

`orderflow` takes orders over HTTP, stores each order together with an
`OrderCreated` event in one database transaction, and relays those events
to a message topic through a function you supply. A separate processor
parses order messages and runs the business step for each one.

## Modules

### `orderflow.store`

- `Order(id=0, status="")`: a dataclass. `to_payload()` returns it as compact
  JSON (`{"id":1,"status":"created"}`), with `<`, `>`, `&`, U+2028 and U+2029
  written as `\uXXXX` escapes.
- `OutboxEvent(id, aggregate_id, event_type, payload, processed=False)`.
- `OrderStore(engine)` wraps a SQLAlchemy engine; `OrderStore.from_url(url)`
  creates the engine for you.
  - `create_tables()` creates the `orders` and `outbox` tables if missing.
  - `create_order(order)` inserts the order and an `OrderCreated` outbox event
    whose payload is `order.to_payload()`, in one transaction, and returns the
    new order id.
  - `pending_events()` returns the unprocessed events, oldest first.
  - `mark_processed(event_id)` flags one event as processed.
  - `ping()` raises if the database cannot be reached.
- `postgres_url_from_env(environ=None)` builds a `postgresql` URL from
  `POSTGRES_HOST`, `POSTGRES_USER`, `POSTGRES_PASSWORD` and `POSTGRES_DB`
  (from `os.environ` when `environ` is omitted), with `sslmode=disable`.
  Empty variables are left out of the URL.

### `orderflow.outbox`

- `Message(topic, key, value)`: a frozen dataclass.
- `OutboxRelay(store, send, topic="orders")`:
  - `process_pending()` turns each pending event into a `Message` keyed by the
    order id and calls `send(message)`, which must return a
    `(partition, offset)` pair. Events whose send succeeded are marked
    processed; an exception from `send` is logged and the event stays pending
    for the next pass. A failure to read the outbox is logged and the pass
    sends nothing. Returns the number of events sent.
  - `run(stop, interval=5.0)` waits `interval` seconds, then calls
    `process_pending()`, repeating until the `threading.Event` `stop` is set.

### `orderflow.metrics`

- `Counter(name, help)`: `inc(amount=1)` adds to it (a negative amount raises
  `ValueError`); `value` reads it; `render()` gives the Prometheus text format.
- `Registry()`: `register(metric)` adds a counter (a duplicate name raises
  `ValueError`); `render()` outputs every counter, sorted by name.

### `orderflow.web`

`create_app(store, counter, registry)` returns a Flask application:

- `/order`: `POST` a JSON object such as `{"status": "test"}`. Field names
  are matched case-insensitively, unknown fields and `null` values are
  ignored, and the status defaults to `created`. The response is the stored
  order as JSON with its new `id`, and `counter` is incremented. Other
  methods get 405, an unreadable body or wrongly typed field gets 400, and a
  database error gets 500.
- `/metrics`: `registry.render()`.
- `/healthz`: always `OK`.
- `/ready`: `OK` while `store.ping()` succeeds, 503 `Database unreachable`
  otherwise.

### `orderflow.processor`

- `ConsumedMessage(topic, key, value, partition=0, offset=0)`, with `key` and
  `value` as bytes.
- `parse_order(value)` decodes a JSON object from bytes; `null` gives `{}`,
  anything else that is not an object raises `ValueError`.
- `process_message(message, delay=0.1)` parses the value and sleeps `delay`
  seconds as the business step. It returns a `ProcessResult` with
  `order_id` and `customer_id` (when they are strings in the event), or with
  `error` set if parsing failed; `ok` tells which.
- `consume(messages, stop, delay=0.1)` processes an iterable of
  `ConsumedMessage` objects, logging and skipping any exceptions in it, until
  the iterable ends or `stop` is set, and returns the results in order.

## Example

```python
import threading

from orderflow.metrics import Counter, Registry
from orderflow.outbox import OutboxRelay
from orderflow.store import OrderStore
from orderflow.web import create_app

store = OrderStore.from_url("sqlite:///orders.db")
store.create_tables()

counter = Counter("order_created_total", "Total number of orders created")
registry = Registry()
registry.register(counter)

app = create_app(store, counter, registry)

def send(message):
    print(message)
    return 0, 0  # partition, offset

relay = OutboxRelay(store, send, "orders")
stop = threading.Event()
threading.Thread(target=relay.run, args=(stop, 5.0), daemon=True).start()

app.run(port=8080)
```

Any database that SQLAlchemy can reach will do. For PostgreSQL, pass
`postgres_url_from_env()` to `OrderStore.from_url` and install a PostgreSQL
driver alongside the package.

## What it does not do

- There is no command to start the service or the processor; you wire the
  parts together in your own program, as in the example.
- There is no message broker client. The relay publishes only through the
  `send` function you pass it, and `consume` reads only the iterable you pass
  it.
- No traces are exported; the packages log through the standard `logging`
  module.