"""Visible conversation state and its transitions.

A ``ConversationState`` is never mutated; each transition returns a new one.
Transcript entries are either ``Pending`` (shown before the store has
accepted them) or ``Persisted`` (carrying the stored record).
"""
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple, Union

from ..schemas import ChatOut, MessageOut


@dataclass(frozen=True)
class Pending:
    temp_id: str
    role: str
    content: str
    created_at: str

    @property
    def id(self) -> str:
        return self.temp_id


@dataclass(frozen=True)
class Persisted:
    record: MessageOut

    @property
    def id(self) -> str:
        return self.record.id

    @property
    def role(self) -> str:
        return self.record.role

    @property
    def content(self) -> str:
        return self.record.content


Entry = Union[Pending, Persisted]


@dataclass(frozen=True)
class ConversationState:
    chats: Tuple[ChatOut, ...] = ()
    active_chat_id: Optional[str] = None
    entries: Tuple[Entry, ...] = ()
    is_typing: bool = False


def new_pending(role: str, content: str) -> Pending:
    created = datetime.now(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")
    return Pending(temp_id=str(uuid.uuid4()), role=role, content=content, created_at=created)


def with_chats(state: ConversationState, chats) -> ConversationState:
    return replace(state, chats=tuple(chats))


def prepend_chat(state: ConversationState, chat: ChatOut) -> ConversationState:
    return replace(state, chats=(chat,) + state.chats)


def remove_chat(state: ConversationState, chat_id: str) -> ConversationState:
    return replace(state, chats=tuple(c for c in state.chats if c.id != chat_id))


def retitle_chat(state: ConversationState, chat_id: str, title: str) -> ConversationState:
    chats = tuple(c.model_copy(update={"title": title}) if c.id == chat_id else c for c in state.chats)
    return replace(state, chats=chats)


def activate_chat(state: ConversationState, chat_id: Optional[str]) -> ConversationState:
    return replace(state, active_chat_id=chat_id)


def open_chat(state: ConversationState, chat_id: str, messages) -> ConversationState:
    return replace(state, active_chat_id=chat_id, entries=tuple(Persisted(m) for m in messages))


def reset(state: ConversationState) -> ConversationState:
    """Back to the new-chat condition; the chat list is kept."""
    return replace(state, active_chat_id=None, entries=())


def add_pending(state: ConversationState, entry: Pending) -> ConversationState:
    return replace(state, entries=state.entries + (entry,))


def promote(state: ConversationState, temp_id: str, record: MessageOut) -> ConversationState:
    entries = tuple(
        Persisted(record) if isinstance(e, Pending) and e.temp_id == temp_id else e
        for e in state.entries
    )
    return replace(state, entries=entries)


def rollback(state: ConversationState, temp_id: str) -> ConversationState:
    entries = tuple(e for e in state.entries if not (isinstance(e, Pending) and e.temp_id == temp_id))
    return replace(state, entries=entries)


def append(state: ConversationState, record: MessageOut) -> ConversationState:
    return replace(state, entries=state.entries + (Persisted(record),))


def set_typing(state: ConversationState, is_typing: bool) -> ConversationState:
    return replace(state, is_typing=is_typing)


def _entry_out(entry: Entry, chat_id: Optional[str]) -> Dict[str, Any]:
    if isinstance(entry, Persisted):
        out = entry.record.model_dump()
        out["pending"] = False
        return out
    return {
        "id": entry.temp_id,
        "chat_id": chat_id,
        "role": entry.role,
        "content": entry.content,
        "created_at": entry.created_at,
        "pending": True,
    }


def serialize_state(state: ConversationState) -> Dict[str, Any]:
    return {
        "chats": [c.model_dump() for c in state.chats],
        "currentChatId": state.active_chat_id,
        "messages": [_entry_out(e, state.active_chat_id) for e in state.entries],
        "isTyping": state.is_typing,
    }
