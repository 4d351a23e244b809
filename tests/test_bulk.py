import threading
import time

import pytest
from opensearchpy.exceptions import ConnectionError as TransportConnectionError

from logship.dispatch import IndexOperation
from logship.opensearch import bulk


class FakeBulk:
    """Stands in for opensearchpy.helpers.bulk and records each call."""

    def __init__(self, fail_with=None, rejected=0):
        self.calls = []
        self.fail_with = fail_with
        self.rejected = rejected
        self.called = threading.Event()

    def __call__(self, client, actions, **kwargs):
        actions = list(actions)
        self.calls.append((client, actions, kwargs))
        self.called.set()
        if self.fail_with is not None:
            raise self.fail_with
        return len(actions) - self.rejected, self.rejected


@pytest.fixture
def fake_bulk(monkeypatch):
    fake = FakeBulk()
    monkeypatch.setattr(bulk.helpers, "bulk", fake)
    return fake


def _op(i):
    return IndexOperation(index="logs", document=f'{{"message": "line {i}"}}')


def test_flushes_when_batch_is_full(fake_bulk):
    sink = bulk.BulkSink("client", flush_interval=60, batch_size=3)
    for i in range(3):
        sink.enqueue(_op(i))
    assert fake_bulk.called.wait(2)
    client, actions, kwargs = fake_bulk.calls[0]
    assert client == "client"
    assert [action["_source"] for action in actions] == [_op(i).document for i in range(3)]
    assert kwargs["raise_on_error"] is False
    assert sink.close(timeout=2)
    assert sink.sent == 3


def test_flushes_on_timer(fake_bulk):
    sink = bulk.BulkSink("client", flush_interval=0.05, batch_size=100)
    sink.enqueue(_op(0))
    assert fake_bulk.called.wait(2)
    assert len(fake_bulk.calls[0][1]) == 1
    sink.close(timeout=2)


def test_close_flushes_remaining_operations(fake_bulk):
    sink = bulk.BulkSink("client", flush_interval=60, batch_size=100)
    for i in range(5):
        sink.enqueue(_op(i))
    assert sink.close(timeout=2) is True
    sent = [action for _, actions, _ in fake_bulk.calls for action in actions]
    assert [action["_source"] for action in sent] == [_op(i).document for i in range(5)]
    assert sink.pending_count == 0


def test_enqueue_after_close_is_rejected(fake_bulk):
    sink = bulk.BulkSink("client", flush_interval=60)
    sink.close(timeout=2)
    with pytest.raises(RuntimeError):
        sink.enqueue(_op(0))


def test_actions_carry_no_type_or_id(fake_bulk):
    sink = bulk.BulkSink("client", flush_interval=60)
    sink.enqueue(_op(0))
    sink.close(timeout=2)
    action = fake_bulk.calls[0][1][0]
    assert "_type" not in action
    assert action["_op_type"] == "index"
    assert "_id" not in action


def test_failed_bulk_request_drops_batch(monkeypatch, caplog):
    fake = FakeBulk(fail_with=TransportConnectionError("N/A", "refused", None))
    monkeypatch.setattr(bulk.helpers, "bulk", fake)
    sink = bulk.BulkSink("client", flush_interval=60)
    sink.enqueue(_op(0))
    sink.enqueue(_op(1))
    assert sink.close(timeout=2) is True
    assert sink.failed == 2
    assert sink.sent == 0
    assert "dropping batch" in caplog.text


def test_rejected_documents_are_counted(monkeypatch):
    fake = FakeBulk(rejected=1)
    monkeypatch.setattr(bulk.helpers, "bulk", fake)
    sink = bulk.BulkSink("client", flush_interval=60)
    sink.enqueue(_op(0))
    sink.enqueue(_op(1))
    sink.close(timeout=2)
    assert sink.sent == 1
    assert sink.failed == 1


def test_bounded_queue_applies_backpressure(monkeypatch):
    release = threading.Event()

    def slow_bulk(client, actions, **kwargs):
        release.wait(5)
        actions = list(actions)
        return len(actions), 0

    monkeypatch.setattr(bulk.helpers, "bulk", slow_bulk)
    sink = bulk.BulkSink("client", flush_interval=60, batch_size=1, queue_size=1)
    sink.enqueue(_op(0))  # taken by the flush thread, which then blocks
    time.sleep(0.05)
    sink.enqueue(_op(1))  # fills the queue

    blocked = threading.Thread(target=sink.enqueue, args=(_op(2),))
    blocked.start()
    blocked.join(0.1)
    assert blocked.is_alive()

    release.set()
    blocked.join(2)
    assert not blocked.is_alive()
    assert sink.close(timeout=2)
    assert sink.sent == 3
