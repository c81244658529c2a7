"""Tests: PushNotificationService (delivery on top of the gateway contract).

Invariants:
    - A user with no active tokens is a no-op, not an error
    - One multicast per user; tokens reported failed are deactivated
    - send_to_users attempts every recipient in order, then raises if any failed
    - Broadcast failures are logged and swallowed
    - Registering a token does not subscribe it; subscription is explicit
"""

import pytest

from notifier.core.exceptions import DeliveryException
from notifier.services.push_notification_service import PushNotificationService
from notifier.services.token_registry import TokenRegistry

from tests.fakes import RecordingGateway


async def _register(db, *pairs):
    registry = TokenRegistry(db)
    for user_id, token in pairs:
        await registry.upsert(user_id, token, "android")


async def test_user_without_tokens_is_a_no_op(db, gateway):
    report = await PushNotificationService(db, gateway).send_to_user("nobody", "T", "B")

    assert gateway.multicast_calls == []
    assert report.success_count == 0
    assert report.failure_count == 0


async def test_one_multicast_covers_all_active_tokens(db, gateway):
    await _register(db, ("u1", "t1"), ("u1", "t2"), ("u2", "other"))

    report = await PushNotificationService(db, gateway).send_to_user(
        "u1", "Title", "Body", {"screen": "offers"}
    )

    assert len(gateway.multicast_calls) == 1
    tokens, title, body, data = gateway.multicast_calls[0]
    assert sorted(tokens) == ["t1", "t2"]
    assert (title, body, data) == ("Title", "Body", {"screen": "offers"})
    assert report.success_count == 2


async def test_failed_tokens_are_deactivated(db):
    gateway = RecordingGateway(failing_tokens={"dead"})
    await _register(db, ("u1", "dead"), ("u1", "alive"))
    service = PushNotificationService(db, gateway)

    report = await service.send_to_user("u1", "T", "B")

    assert report.failure_count == 1
    assert report.deactivated_tokens == ["dead"]
    assert [t.token for t in await TokenRegistry(db).find_active_by_user("u1")] == ["alive"]

    await service.send_to_user("u1", "T", "B")
    assert gateway.multicast_tokens[-1] == ["alive"]


async def test_send_to_users_goes_in_order(db, gateway):
    await _register(db, ("u1", "t1"), ("u2", "t2"), ("u3", "t3"))

    reports = await PushNotificationService(db, gateway).send_to_users(["u3", "u1", "u2"], "T", "B")

    assert gateway.multicast_tokens == [["t3"], ["t1"], ["t2"]]
    assert [r.user_id for r in reports] == ["u3", "u1", "u2"]


async def test_send_to_users_continues_past_a_failing_recipient(db):
    gateway = RecordingGateway(raising_tokens={"t2": RuntimeError("FCM unavailable")})
    await _register(db, ("u1", "t1"), ("u2", "t2"), ("u3", "t3"))

    with pytest.raises(DeliveryException) as exc_info:
        await PushNotificationService(db, gateway).send_to_users(["u1", "u2", "u3"], "T", "B")

    assert gateway.multicast_tokens == [["t1"], ["t2"], ["t3"]]
    assert exc_info.value.failures == {"u2": "FCM unavailable"}
    assert "1 of 3 users" in exc_info.value.detail
    assert "u2: FCM unavailable" in exc_info.value.detail


async def test_send_to_all_uses_broadcast_topic(db, gateway):
    message_id = await PushNotificationService(db, gateway, broadcast_topic="all").send_to_all(
        "T", "M", {"k": "v"}
    )

    assert gateway.topic_calls == [("all", "T", "M", {"k": "v"})]
    assert gateway.multicast_calls == []
    assert message_id == "projects/test/messages/1"


async def test_send_to_all_swallows_provider_errors(db):
    gateway = RecordingGateway(topic_error=RuntimeError("quota exceeded"))

    assert await PushNotificationService(db, gateway).send_to_all("T", "M") is None
    assert len(gateway.topic_calls) == 1


async def test_registration_does_not_subscribe(db, gateway):
    service = PushNotificationService(db, gateway)

    await service.register_device_token("u1", "t1", "web", device_id="browser")

    assert gateway.subscriptions == []
    assert [t.token for t in await TokenRegistry(db).find_active_by_user("u1")] == ["t1"]


async def test_subscribe_to_broadcast(db, gateway):
    assert await PushNotificationService(db, gateway, broadcast_topic="all").subscribe_to_broadcast("t1") is True
    assert gateway.subscriptions == [(["t1"], "all")]


async def test_subscription_failure_keeps_registration(db):
    gateway = RecordingGateway(subscribe_error=RuntimeError("invalid token"))
    service = PushNotificationService(db, gateway)

    await service.register_device_token("u1", "t1", "ios")

    assert await service.subscribe_to_broadcast("t1") is False
    assert [t.token for t in await TokenRegistry(db).find_active_by_user("u1")] == ["t1"]


async def test_unregister_device_token(db, gateway):
    await _register(db, ("u1", "t1"))
    service = PushNotificationService(db, gateway)

    assert await service.unregister_device_token("t1") is True
    assert await TokenRegistry(db).find_active_by_user("u1") == []


async def test_send_to_device_raises_on_failure(db):
    gateway = RecordingGateway(raising_tokens={"t1": RuntimeError("unregistered")})

    with pytest.raises(DeliveryException, match="unregistered"):
        await PushNotificationService(db, gateway).send_to_device("t1", "T", "B")


async def test_send_to_device_returns_message_id(db, gateway):
    assert await PushNotificationService(db, gateway).send_to_device("t1", "T", "B") == "msg-t1"
