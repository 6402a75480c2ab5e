"""
Service-level tests for app.services.messaging.MessagingGateway.
Uses mock sockets registered on a private ConnectionRegistry.
"""
import json

import pytest
from tortoise.exceptions import OperationalError

from app.core.errors import NotFound, PersistenceError, ValidationError
from app.core.pubsub import ConnectionRegistry
from app.models.message import Message
from app.services.messaging import MessagingGateway


pytestmark = pytest.mark.asyncio


class MockWebSocket:
    """Mock WebSocket for testing."""

    def __init__(self):
        self.sent_texts = []

    async def send_text(self, text: str):
        self.sent_texts.append(text)

    def events(self, kind: str | None = None):
        parsed = [json.loads(t) for t in self.sent_texts]
        return [e for e in parsed if kind is None or e["type"] == kind]


@pytest.fixture
def gateway():
    return MessagingGateway(ConnectionRegistry())


async def test_message_fans_out_to_every_receiver_channel(db, gateway, create_user, identity_of):
    u1, _ = await create_user()
    u2, _ = await create_user()
    tab_a, tab_b, sender_tab = MockWebSocket(), MockWebSocket(), MockWebSocket()
    await gateway.connect(identity_of(u1), tab_a)
    await gateway.connect(identity_of(u1), tab_b)
    await gateway.connect(identity_of(u2), sender_tab)

    payload = await gateway.send_message(u2.id, u1.id, "Congrats on the new role!")

    received_a = tab_a.events("new_message")
    received_b = tab_b.events("new_message")
    assert len(received_a) == len(received_b) == 1
    assert received_a[0]["data"] == received_b[0]["data"] == json.loads(json.dumps(payload))
    assert received_a[0]["data"]["senderUsername"] == u2.username
    # The sender's own channels get the echo too
    assert sender_tab.events("new_message")[0]["data"]["id"] == payload["id"]

    row = await Message.get(id=payload["id"])
    assert row.is_read is False
    assert row.sender_id == u2.id and row.receiver_id == u1.id


async def test_message_persisted_before_push(db, gateway, create_user, identity_of):
    u1, _ = await create_user()
    u2, _ = await create_user()
    seen_in_store = []

    class CheckingWebSocket(MockWebSocket):
        async def send_text(self, text: str):
            event = json.loads(text)
            if event["type"] == "new_message":
                seen_in_store.append(await Message.filter(id=event["data"]["id"]).exists())
            await super().send_text(text)

    await gateway.connect(identity_of(u1), CheckingWebSocket())
    await gateway.send_message(u2.id, u1.id, "hello")
    assert seen_in_store == [True]


async def test_store_failure_pushes_nothing(db, gateway, create_user, identity_of, monkeypatch):
    u1, _ = await create_user()
    u2, _ = await create_user()
    receiver_tab = MockWebSocket()
    await gateway.connect(identity_of(u1), receiver_tab)

    async def failing_create(*args, **kwargs):
        raise OperationalError("disk full")

    monkeypatch.setattr(Message, "create", failing_create)
    with pytest.raises(PersistenceError):
        await gateway.send_message(u2.id, u1.id, "lost?")
    monkeypatch.undo()

    assert receiver_tab.events("new_message") == []
    assert await Message.all().count() == 0


async def test_message_to_offline_user_is_still_stored(db, gateway, create_user):
    u1, _ = await create_user()
    u2, _ = await create_user()
    payload = await gateway.send_message(u2.id, u1.id, "see this later")
    assert await Message.filter(id=payload["id"], receiver_id=u1.id).exists()


@pytest.mark.parametrize(
    "receiver, content, code",
    [
        (None, "hi", "INVALID_INPUT"),
        ("abc", "hi", "INVALID_INPUT"),
        (True, "hi", "INVALID_INPUT"),
        (1, "", "INVALID_INPUT"),
        (1, "   ", "INVALID_INPUT"),
        (1, "x" * 5001, "MESSAGE_TOO_LONG"),
    ],
)
async def test_send_validation(db, gateway, create_user, receiver, content, code):
    sender, _ = await create_user()
    with pytest.raises(ValidationError) as exc:
        await gateway.send_message(sender.id, receiver, content)
    assert exc.value.code == code
    assert await Message.all().count() == 0


async def test_unknown_receiver(db, gateway, create_user):
    sender, _ = await create_user()
    with pytest.raises(NotFound) as exc:
        await gateway.send_message(sender.id, 987654, "anyone there?")
    assert exc.value.code == "USER_NOT_FOUND"


async def test_mark_read_and_conversation(db, gateway, create_user):
    u1, _ = await create_user()
    u2, _ = await create_user()
    u3, _ = await create_user()
    await gateway.send_message(u2.id, u1.id, "first")
    await gateway.send_message(u1.id, u2.id, "second")
    await gateway.send_message(u2.id, u1.id, "third")
    await gateway.send_message(u3.id, u1.id, "unrelated")

    assert await gateway.mark_read(u1.id, u2.id) == 2
    assert await gateway.mark_read(u1.id, u2.id) == 0
    assert await Message.filter(sender_id=u3.id, is_read=False).count() == 1

    history = await gateway.get_conversation(u1.id, u2.id)
    assert [m["content"] for m in history] == ["first", "second", "third"]
    assert history[0]["read"] is True
    assert history[1]["read"] is False

    latest = await gateway.get_conversation(u1.id, u2.id, limit=2)
    assert [m["content"] for m in latest] == ["second", "third"]


async def test_typing_reaches_receiver_only(db, gateway, create_user, identity_of):
    u1, _ = await create_user()
    u2, _ = await create_user()
    u1_tab, u2_tab = MockWebSocket(), MockWebSocket()
    await gateway.connect(identity_of(u1), u1_tab)
    await gateway.connect(identity_of(u2), u2_tab)
    u1_tab.sent_texts.clear()
    u2_tab.sent_texts.clear()

    assert await gateway.typing_start(identity_of(u2), u1.id) == 1
    assert await gateway.typing_stop(identity_of(u2), u1.id) == 1

    assert u1_tab.events("user_typing")[0]["data"] == {"userId": u2.id, "username": u2.username}
    assert u1_tab.events("user_stopped_typing")[0]["data"] == {"userId": u2.id}
    assert u2_tab.sent_texts == []


async def test_typing_to_offline_user_is_dropped(db, gateway, create_user, identity_of):
    u1, _ = await create_user()
    u2, _ = await create_user()
    assert await gateway.typing_start(identity_of(u2), u1.id) == 0
    assert await Message.all().count() == 0


async def test_presence_online_once_offline_on_last_channel(db, gateway, create_user, identity_of):
    u1, _ = await create_user()
    watcher, _ = await create_user()
    watcher_tab = MockWebSocket()
    await gateway.connect(identity_of(watcher), watcher_tab)

    tab_a, tab_b = MockWebSocket(), MockWebSocket()
    await gateway.connect(identity_of(u1), tab_a)
    await gateway.connect(identity_of(u1), tab_b)
    changes = watcher_tab.events("user_status_change")
    assert [c["data"]["status"] for c in changes] == ["online"]
    assert changes[0]["data"]["userId"] == u1.id
    # Nobody announces themselves to themselves
    assert tab_a.events("user_status_change") == []

    await gateway.disconnect(tab_a, u1.username)
    assert len(watcher_tab.events("user_status_change")) == 1
    assert gateway.registry.is_online(u1.id)

    await gateway.disconnect(tab_b, u1.username)
    statuses = [c["data"]["status"] for c in watcher_tab.events("user_status_change")]
    assert statuses == ["online", "offline"]
    assert not gateway.registry.is_online(u1.id)


async def test_offline_announced_after_channel_dropped_by_failed_push(db, gateway, create_user, identity_of):
    u1, _ = await create_user()
    watcher, _ = await create_user()
    watcher_tab = MockWebSocket()
    await gateway.connect(identity_of(watcher), watcher_tab)

    class DeadWebSocket(MockWebSocket):
        async def send_text(self, text: str):
            raise RuntimeError("Connection closed")

    dead = DeadWebSocket()
    await gateway.connect(identity_of(u1), dead)
    await gateway.send_message(watcher.id, u1.id, "still there?")
    assert not gateway.registry.is_online(u1.id)

    await gateway.disconnect(dead, u1.username)
    statuses = [c["data"]["status"] for c in watcher_tab.events("user_status_change")]
    assert statuses == ["online", "offline"]


async def test_disconnect_unknown_channel_is_noop(db, gateway):
    await gateway.disconnect(MockWebSocket(), "ghost")
    assert gateway.registry.online_user_ids() == []


async def test_presence_status_validated(db, gateway):
    with pytest.raises(ValidationError):
        await gateway.presence_change(1, "someone", "away")
