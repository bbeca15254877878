import threading

import pytest

from orderflow.processor import (
    ConsumedMessage,
    ProcessResult,
    consume,
    parse_order,
    process_message,
)


def _message(value, key=b"1", offset=0):
    return ConsumedMessage(topic="orders", key=key, value=value, partition=0, offset=offset)


def _stream_setting_stop(stop):
    yield _message(b'{"order_id": "a"}')
    stop.set()
    yield _message(b'{"order_id": "b"}')


def test_parse_order_object():
    assert parse_order(b'{"order_id": "a1", "n": 2}') == {"order_id": "a1", "n": 2}


def test_parse_order_null_is_empty():
    assert parse_order(b"null") == {}


@pytest.mark.parametrize("value", [b"not json", b"[1, 2]", b'"text"', b"NaN", b""])
def test_parse_order_rejects(value):
    with pytest.raises(ValueError):
        parse_order(value)


def test_process_message_extracts_ids():
    result = process_message(
        _message(b'{"order_id": "o-7", "customer_id": "c-3"}'), delay=0
    )
    assert result == ProcessResult(order_id="o-7", customer_id="c-3")
    assert result.ok


def test_process_message_ignores_non_string_ids():
    result = process_message(_message(b'{"id": 4, "order_id": 4, "status": "test"}'), delay=0)
    assert result.order_id is None
    assert result.customer_id is None
    assert result.ok


def test_process_message_bad_json():
    result = process_message(_message(b"{broken"), delay=0)
    assert not result.ok
    assert result.order_id is None


def test_consume_processes_all_and_skips_errors():
    stream = [
        _message(b'{"order_id": "a"}', offset=0),
        RuntimeError("broker hiccup"),
        _message(b'{"order_id": "b"}', offset=1),
    ]
    results = consume(stream, threading.Event(), delay=0)
    assert [r.order_id for r in results] == ["a", "b"]


def test_consume_stops_when_signalled():
    stop = threading.Event()
    results = consume(_stream_setting_stop(stop), stop, delay=0)
    assert [r.order_id for r in results] == ["a"]


def test_consume_already_stopped():
    stop = threading.Event()
    stop.set()
    assert consume([_message(b"{}")], stop, delay=0) == []