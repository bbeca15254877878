import threading

import pytest
import sqlalchemy as sa

from orderflow.outbox import Message, OutboxRelay
from orderflow.store import Order, OrderStore


@pytest.fixture
def store(tmp_path):
    engine = sa.create_engine(
        f"sqlite:///{tmp_path / 'orders.db'}",
        connect_args={"check_same_thread": False},
    )
    s = OrderStore(engine)
    s.create_tables()
    return s


class Recorder:
    def __init__(self):
        self.messages = []
        self.event = threading.Event()

    def __call__(self, message):
        self.messages.append(message)
        self.event.set()
        return 0, len(self.messages) - 1


def test_pending_event_is_sent_once(store):
    order = Order(status="created")
    order_id = store.create_order(order)
    recorder = Recorder()
    relay = OutboxRelay(store, recorder)
    assert relay.process_pending() == 1
    assert recorder.messages == [
        Message(topic="orders", key=str(order_id), value=order.to_payload())
    ]
    assert relay.process_pending() == 0
    assert len(recorder.messages) == 1
    assert store.pending_events() == []


def test_custom_topic(store):
    store.create_order(Order(status="x"))
    recorder = Recorder()
    OutboxRelay(store, recorder, topic="other").process_pending()
    assert [m.topic for m in recorder.messages] == ["other"]


def test_failed_send_leaves_event_pending(store):
    store.create_order(Order(status="x"))

    def failing(message):
        raise ConnectionError("broker down")

    relay = OutboxRelay(store, failing)
    assert relay.process_pending() == 0
    assert len(store.pending_events()) == 1


def test_failure_does_not_stop_other_events(store):
    first = store.create_order(Order(status="a"))
    second = store.create_order(Order(status="b"))
    delivered = []

    def flaky(message):
        if message.key == str(first):
            raise ConnectionError("broker down")
        delivered.append(message.key)
        return 0, 0

    assert OutboxRelay(store, flaky).process_pending() == 1
    assert delivered == [str(second)]
    assert [e.aggregate_id for e in store.pending_events()] == [first]


def test_query_error_sends_nothing(tmp_path):
    store = OrderStore.from_url(f"sqlite:///{tmp_path / 'empty.db'}")
    recorder = Recorder()
    assert OutboxRelay(store, recorder).process_pending() == 0
    assert recorder.messages == []


def test_run_processes_until_stopped(store):
    store.create_order(Order(status="created"))
    recorder = Recorder()
    relay = OutboxRelay(store, recorder)
    stop = threading.Event()
    worker = threading.Thread(target=relay.run, args=(stop, 0.01))
    worker.start()
    try:
        assert recorder.event.wait(5)
    finally:
        stop.set()
        worker.join(5)
    assert not worker.is_alive()
    assert len(recorder.messages) == 1
    assert store.pending_events() == []