"""Chat and message records against the relational store.

Each function is one unit of work over a SQLAlchemy session. Nothing here
retries or caches; store failures propagate as ``PersistenceError``.
"""
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, TypeVar

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..db.tables import Chat, Message
from ..schemas import ChatOut, MessageOut

DEFAULT_CHAT_TITLE = "New Chat"

T = TypeVar("T")


class PersistenceError(Exception):
    pass


class ChatNotFoundError(PersistenceError):
    def __init__(self, chat_id: str):
        super().__init__(f"Chat not found: {chat_id}")
        self.chat_id = chat_id


def _now_dt() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


def _chat_out(row: Chat) -> ChatOut:
    return ChatOut(id=row.id, user_id=row.user_id, title=row.title, created_at=_iso(row.created_at))


def _message_out(row: Message) -> MessageOut:
    return MessageOut(
        id=row.id,
        chat_id=row.chat_id,
        role=row.role,
        content=row.content,
        created_at=_iso(row.created_at),
    )


def _get_chat(db: Session, chat_id: str) -> Chat:
    row = db.query(Chat).filter(Chat.id == chat_id).first()
    if not row:
        raise ChatNotFoundError(chat_id)
    return row


def _unit_of_work(db: Session, work: Callable[[], T]) -> T:
    try:
        return work()
    except PersistenceError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError(str(e)) from e


def fetch_chats(db: Session, user_id: str) -> List[ChatOut]:
    def work():
        rows = (
            db.query(Chat)
            .filter(Chat.user_id == user_id)
            .order_by(Chat.created_at.desc())
            .all()
        )
        return [_chat_out(r) for r in rows]

    return _unit_of_work(db, work)


def create_chat(db: Session, user_id: str, title: Optional[str] = None) -> ChatOut:
    def work():
        # newest-first listing relies on strictly increasing created_at per user
        latest = db.query(func.max(Chat.created_at)).filter(Chat.user_id == user_id).scalar()
        created_at = _now_dt()
        if latest is not None and created_at <= latest:
            created_at = latest + timedelta(microseconds=1)
        row = Chat(user_id=user_id, title=title or DEFAULT_CHAT_TITLE, created_at=created_at)
        db.add(row)
        db.commit()
        db.refresh(row)
        return _chat_out(row)

    return _unit_of_work(db, work)


def delete_chat(db: Session, chat_id: str) -> None:
    def work():
        row = _get_chat(db, chat_id)
        db.query(Message).filter(Message.chat_id == chat_id).delete(synchronize_session=False)
        db.delete(row)
        db.commit()

    _unit_of_work(db, work)


def rename_chat(db: Session, chat_id: str, title: str) -> ChatOut:
    def work():
        row = _get_chat(db, chat_id)
        row.title = title
        db.commit()
        db.refresh(row)
        return _chat_out(row)

    return _unit_of_work(db, work)


def fetch_messages(db: Session, chat_id: str) -> List[MessageOut]:
    def work():
        rows = (
            db.query(Message)
            .filter(Message.chat_id == chat_id)
            .order_by(Message.created_at.asc())
            .all()
        )
        return [_message_out(r) for r in rows]

    return _unit_of_work(db, work)


def save_message(db: Session, chat_id: str, role: str, content: str) -> MessageOut:
    def work():
        _get_chat(db, chat_id)
        # keep created_at monotonic within a chat so ordering matches insertion
        latest = db.query(func.max(Message.created_at)).filter(Message.chat_id == chat_id).scalar()
        created_at = _now_dt()
        if latest is not None and created_at <= latest:
            created_at = latest + timedelta(microseconds=1)
        row = Message(chat_id=chat_id, role=role, content=content, created_at=created_at)
        db.add(row)
        db.commit()
        db.refresh(row)
        return _message_out(row)

    return _unit_of_work(db, work)


class ChatStore:
    """Async face of the gateway: one session per call, run off the event loop."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def _run(self, fn: Callable[..., T], *args) -> T:
        with self._session_factory() as db:
            return fn(db, *args)

    async def fetch_chats(self, user_id: str) -> List[ChatOut]:
        return await run_in_threadpool(self._run, fetch_chats, user_id)

    async def create_chat(self, user_id: str, title: Optional[str] = None) -> ChatOut:
        return await run_in_threadpool(self._run, create_chat, user_id, title)

    async def delete_chat(self, chat_id: str) -> None:
        await run_in_threadpool(self._run, delete_chat, chat_id)

    async def rename_chat(self, chat_id: str, title: str) -> ChatOut:
        return await run_in_threadpool(self._run, rename_chat, chat_id, title)

    async def fetch_messages(self, chat_id: str) -> List[MessageOut]:
        return await run_in_threadpool(self._run, fetch_messages, chat_id)

    async def save_message(self, chat_id: str, role: str, content: str) -> MessageOut:
        return await run_in_threadpool(self._run, save_message, chat_id, role, content)
