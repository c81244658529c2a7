"""Tests: NotificationQueue (Redis list FIFO of {"logId": ...} jobs).

Invariants:
    - Jobs come out in the order they went in
    - An empty queue pops None, not an error
    - Redis faults surface as QueueUnavailableException, no retry
    - Payloads that are not exactly {"logId": <non-empty str>} are rejected
"""

import json

import pytest

from notifier.core.exceptions import MalformedJobException, QueueUnavailableException
from notifier.schemas.notification import QueueJob
from notifier.services.queue import NotificationQueue

from tests.fakes import UnreachableRedis


async def test_pop_returns_jobs_in_push_order(queue):
    for log_id in ("j1", "j2", "j3"):
        await queue.push(QueueJob(log_id=log_id))

    popped = [await queue.pop() for _ in range(3)]

    assert [job.log_id for job in popped] == ["j1", "j2", "j3"]


async def test_pop_on_empty_queue_returns_none(queue):
    assert await queue.pop() is None


async def test_push_stores_only_the_log_pointer(queue, fake_redis):
    length = await queue.push(QueueJob(log_id="abc"))

    assert length == 1
    assert json.loads(fake_redis.lists["test:notifications"][0]) == {"logId": "abc"}


async def test_length_counts_waiting_jobs(queue):
    await queue.push(QueueJob(log_id="a"))
    await queue.push(QueueJob(log_id="b"))
    await queue.pop()

    assert await queue.length() == 1


@pytest.mark.parametrize("raw", [
    "not json",
    '{"logId": ""}',
    '{"id": "abc"}',
    '{"logId": "abc", "title": "copied payload"}',
])
async def test_malformed_payload_is_rejected(queue, fake_redis, raw):
    fake_redis.lists["test:notifications"].append(raw)

    with pytest.raises(MalformedJobException) as exc_info:
        await queue.pop()

    assert exc_info.value.raw == raw
    assert exc_info.value.error_code == "MALFORMED_JOB"


async def test_malformed_payload_does_not_block_later_jobs(queue, fake_redis):
    fake_redis.lists["test:notifications"].append("garbage")
    await queue.push(QueueJob(log_id="good"))

    with pytest.raises(MalformedJobException):
        await queue.pop()

    assert (await queue.pop()).log_id == "good"


async def test_dead_letter_keeps_payload_and_reason(queue, fake_redis):
    await queue.dead_letter("garbage", "Invalid JSON")

    entry = json.loads(fake_redis.lists["test:notifications:dead"][0])
    assert entry["payload"] == "garbage"
    assert entry["reason"] == "Invalid JSON"
    assert "rejected_at" in entry


async def test_unreachable_backend_raises_on_push():
    queue = NotificationQueue(UnreachableRedis(), key="q")

    with pytest.raises(QueueUnavailableException) as exc_info:
        await queue.push(QueueJob(log_id="abc"))

    assert "Connection refused" in exc_info.value.detail


async def test_unreachable_backend_raises_on_pop_and_length():
    queue = NotificationQueue(UnreachableRedis(), key="q")

    with pytest.raises(QueueUnavailableException):
        await queue.pop()
    with pytest.raises(QueueUnavailableException):
        await queue.length()
