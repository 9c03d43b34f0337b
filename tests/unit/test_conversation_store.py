from __future__ import annotations

from social_chat.domain.entities.conversation import Conversation
from social_chat.domain.entities.message import Message
from social_chat.domain.value_objects.enums import ConversationKind
from social_chat.services.conversation_store import ConversationStore
from tests.conftest import utc


def _conv(conversation_id: int, name: str = "x", unread: int = 0) -> Conversation:
    return Conversation(
        id=conversation_id,
        kind=ConversationKind.DIRECT,
        display_name=name,
        unread_count=unread,
    )


def _msg(conversation_id: int, content: str) -> Message:
    return Message(type="message", sender_id=7, conversation_id=conversation_id, content=content)


def test_replace_roster_drops_duplicate_ids():
    store = ConversationStore()

    store.replace_roster([_conv(1, "first"), _conv(2), _conv(1, "second")])

    assert [c.id for c in store.roster()] == [1, 2]
    assert store.get(1).display_name == "first"


def test_roster_returns_copy():
    store = ConversationStore()
    store.replace_roster([_conv(1)])

    store.roster().clear()

    assert len(store.roster()) == 1


def test_messages_for_filters_in_arrival_order():
    store = ConversationStore()
    for conversation_id, content in [(1, "a"), (2, "b"), (1, "c")]:
        store.append(_msg(conversation_id, content))

    assert [m.content for m in store.messages_for(1)] == ["a", "c"]
    assert [m.content for m in store.messages_for(2)] == ["b"]


def test_messages_for_is_a_snapshot():
    store = ConversationStore()
    store.append(_msg(1, "a"))

    snapshot = store.messages_for(1)
    store.append(_msg(1, "b"))

    assert [m.content for m in snapshot] == ["a"]
    assert len(store.messages_for(1)) == 2


def test_unread_bookkeeping():
    store = ConversationStore()
    store.replace_roster([_conv(1, unread=1), _conv(2)])

    store.mark_unread(1)
    store.mark_unread(99)
    store.reset_unread(2)

    assert store.get(1).unread_count == 2
    assert store.get(2).unread_count == 0

    store.reset_unread(1)
    assert store.get(1).unread_count == 0


def test_touch_keeps_position():
    store = ConversationStore()
    store.replace_roster([_conv(1), _conv(2)])

    store.touch(2, utc(2024, 1, 1))

    assert [c.id for c in store.roster()] == [1, 2]
    assert store.get(2).last_message_at == utc(2024, 1, 1)


def test_clear():
    store = ConversationStore()
    store.replace_roster([_conv(1)])
    store.append(_msg(1, "a"))

    store.clear()

    assert store.roster() == []
    assert store.messages_for(1) == []
    assert store.get(1) is None
