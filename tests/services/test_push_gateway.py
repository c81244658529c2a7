"""Tests: FirebasePushGateway against a patched firebase_admin.messaging."""

from types import SimpleNamespace
from unittest.mock import patch

from notifier.services.push_gateway import (
    MULTICAST_BATCH_SIZE,
    FirebasePushGateway,
    stringify_data,
)


def _batch_response(message):
    responses = []
    for token in message.tokens:
        if token.startswith("bad"):
            responses.append(SimpleNamespace(
                success=False, message_id=None, exception=Exception("Requested entity was not found.")
            ))
        else:
            responses.append(SimpleNamespace(success=True, message_id=f"id-{token}", exception=None))
    failures = sum(1 for r in responses if not r.success)
    return SimpleNamespace(
        success_count=len(responses) - failures, failure_count=failures, responses=responses
    )


def test_stringify_data_serializes_non_strings():
    assert stringify_data({"a": "x", "n": 3, "flags": [1, 2], "nested": {"k": True}}) == {
        "a": "x",
        "n": "3",
        "flags": "[1, 2]",
        "nested": '{"k": true}',
    }
    assert stringify_data(None) == {}


async def test_multicast_is_batched_and_merged():
    tokens = [f"t{i}" for i in range(MULTICAST_BATCH_SIZE + 1)]
    sent = []

    def fake_send(message, app=None):
        sent.append(list(message.tokens))
        return _batch_response(message)

    with patch("notifier.services.push_gateway.messaging.send_each_for_multicast", side_effect=fake_send):
        result = await FirebasePushGateway().send_multicast(tokens, "T", "B", {"n": 1})

    assert [len(batch) for batch in sent] == [MULTICAST_BATCH_SIZE, 1]
    assert result.success_count == MULTICAST_BATCH_SIZE + 1
    assert [r.token for r in result.responses] == tokens


async def test_multicast_reports_failed_tokens():
    with patch(
        "notifier.services.push_gateway.messaging.send_each_for_multicast",
        side_effect=lambda message, app=None: _batch_response(message),
    ):
        result = await FirebasePushGateway().send_multicast(["good", "bad-1"], "T", "B")

    assert result.success_count == 1
    assert result.failure_count == 1
    assert result.failed_tokens == ["bad-1"]
    assert result.responses[1].error == "Requested entity was not found."


async def test_send_to_topic_builds_topic_message():
    with patch("notifier.services.push_gateway.messaging.send", return_value="projects/p/messages/1") as send:
        message_id = await FirebasePushGateway().send_to_topic("all", "T", "B", {"n": 1})

    assert message_id == "projects/p/messages/1"
    message = send.call_args.args[0]
    assert message.topic == "all"
    assert message.data == {"n": "1"}
    assert message.notification.title == "T"


async def test_send_to_token_builds_token_message():
    with patch("notifier.services.push_gateway.messaging.send", return_value="m1") as send:
        assert await FirebasePushGateway().send_to_token("tok", "T", "B") == "m1"

    assert send.call_args.args[0].token == "tok"


async def test_subscribe_to_topic_reports_errors():
    response = SimpleNamespace(
        success_count=1, failure_count=1, errors=[SimpleNamespace(reason="INVALID_ARGUMENT")]
    )
    with patch("notifier.services.push_gateway.messaging.subscribe_to_topic", return_value=response) as sub:
        result = await FirebasePushGateway().subscribe_to_topic(["a", "b"], "all")

    assert sub.call_args.args[:2] == (["a", "b"], "all")
    assert result.failure_count == 1
    assert result.errors == ["INVALID_ARGUMENT"]
