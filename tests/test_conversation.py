from backend.app.schemas import ChatOut, MessageOut
from backend.app.services.conversation import (
    ConversationState,
    Pending,
    Persisted,
    add_pending,
    append,
    new_pending,
    promote,
    remove_chat,
    retitle_chat,
    rollback,
    serialize_state,
)


def _message(id, content, role="user"):
    return MessageOut(id=id, chat_id="c1", role=role, content=content, created_at="2024-01-01T00:00:00Z")


def _chat(id, title):
    return ChatOut(id=id, user_id="u", title=title, created_at="2024-01-01T00:00:00Z")


def test_promote_replaces_pending_in_place():
    pending = new_pending("user", "second")
    state = ConversationState(active_chat_id="c1", entries=(Persisted(_message("m1", "first")),))
    state = add_pending(state, pending)
    state = append(state, _message("m3", "third", role="assistant"))

    state = promote(state, pending.temp_id, _message("m2", "second"))

    assert [e.id for e in state.entries] == ["m1", "m2", "m3"]
    assert not any(isinstance(e, Pending) for e in state.entries)


def test_rollback_removes_only_the_pending_entry():
    pending = new_pending("user", "oops")
    before = ConversationState(entries=(Persisted(_message("m1", "first")),))

    after = rollback(add_pending(before, pending), pending.temp_id)

    assert after == before


def test_chat_list_edits_keep_order():
    state = ConversationState(chats=(_chat("a", "A"), _chat("b", "B"), _chat("c", "C")))

    renamed = retitle_chat(state, "b", "Bee")
    removed = remove_chat(state, "b")

    assert [(c.id, c.title) for c in renamed.chats] == [("a", "A"), ("b", "Bee"), ("c", "C")]
    assert [c.id for c in removed.chats] == ["a", "c"]
    assert state.chats[1].title == "B"


def test_serialize_state_marks_pending_entries():
    pending = new_pending("user", "hi")
    state = add_pending(ConversationState(chats=(_chat("c1", "Chat"),), active_chat_id="c1"), pending)

    out = serialize_state(state)

    assert out["currentChatId"] == "c1"
    assert out["isTyping"] is False
    assert out["chats"][0]["title"] == "Chat"
    assert out["messages"] == [
        {
            "id": pending.temp_id,
            "chat_id": "c1",
            "role": "user",
            "content": "hi",
            "created_at": pending.created_at,
            "pending": True,
        }
    ]
