import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

from .conversation import (
    ConversationState,
    Pending,
    activate_chat,
    add_pending,
    append,
    new_pending,
    open_chat,
    prepend_chat,
    promote,
    remove_chat,
    reset,
    retitle_chat,
    rollback,
    set_typing,
    with_chats,
)
from .generation import is_error_reply
from .persistence import DEFAULT_CHAT_TITLE

logger = logging.getLogger(__name__)

TITLE_PREFIX_LENGTH = 30

StateListener = Callable[[ConversationState], Union[None, Awaitable[None]]]


def derive_title(text: str) -> str:
    if not text:
        return DEFAULT_CHAT_TITLE
    return f"{text[:TITLE_PREFIX_LENGTH]}..."


@dataclass(frozen=True)
class SubmissionResult:
    state: ConversationState
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class SubmissionOrchestrator:
    """Drives user actions from input to the state a client should display.

    ``store`` exposes the async gateway operations (see ``ChatStore``) and
    ``generator`` exposes ``async generate(messages) -> str``. Every state
    transition is handed to ``on_change`` before the next awaited call.
    """

    def __init__(self, store, generator, user_id: str, on_change: Optional[StateListener] = None):
        self.store = store
        self.generator = generator
        self.user_id = user_id
        self.on_change = on_change
        self._lock = asyncio.Lock()
        self._latest: Optional[ConversationState] = None

    async def _emit(self, state: ConversationState) -> ConversationState:
        self._latest = state
        if self.on_change is not None:
            try:
                result = self.on_change(state)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("State listener failed")
        return state

    async def submit(self, state: ConversationState, text: str) -> SubmissionResult:
        text = (text or "").strip()
        if not text:
            return SubmissionResult(state)

        queued = self._lock.locked()
        async with self._lock:
            if queued and self._latest is not None:
                # a queued submission continues from what the one before it left
                state = self._latest
            pending = new_pending("user", text)
            state = await self._emit(add_pending(state, pending))

            chat_id = state.active_chat_id
            if chat_id is None:
                try:
                    chat = await self.store.create_chat(self.user_id, derive_title(text))
                except Exception as e:
                    logger.error("Failed to initialize chat: %s", e)
                    state = await self._emit(rollback(state, pending.temp_id))
                    return SubmissionResult(state, e)
                chat_id = chat.id
                state = await self._emit(prepend_chat(activate_chat(state, chat_id), chat))

            state = await self._emit(set_typing(state, True))
            error = None
            try:
                state, error = await self._save_and_reply(state, pending, chat_id)
            finally:
                state = await self._emit(set_typing(state, False))
            return SubmissionResult(state, error)

    async def _save_and_reply(
        self, state: ConversationState, pending: Pending, chat_id: str
    ) -> Tuple[ConversationState, Optional[BaseException]]:
        transcript: List[Dict[str, Any]] = [{"role": e.role, "content": e.content} for e in state.entries]

        saved, reply = await asyncio.gather(
            self.store.save_message(chat_id, "user", pending.content),
            self.generator.generate(transcript),
            return_exceptions=True,
        )
        for outcome in (saved, reply):
            if isinstance(outcome, BaseException):
                logger.error("Chat error: %s", outcome)
                state = await self._emit(rollback(state, pending.temp_id))
                return state, outcome

        state = await self._emit(promote(state, pending.temp_id, saved))

        if is_error_reply(reply):
            logger.warning("Storing failed generation as assistant reply in chat %s", chat_id)
        try:
            assistant = await self.store.save_message(chat_id, "assistant", reply)
        except Exception as e:
            logger.error("Failed to save assistant reply: %s", e)
            return state, e
        state = await self._emit(append(state, assistant))
        return state, None

    async def load_chats(self, state: ConversationState) -> SubmissionResult:
        try:
            chats = await self.store.fetch_chats(self.user_id)
        except Exception as e:
            logger.error("Failed to load chats: %s", e)
            return SubmissionResult(state, e)
        return SubmissionResult(await self._emit(with_chats(state, chats)))

    async def select_chat(self, state: ConversationState, chat_id: str) -> SubmissionResult:
        try:
            messages = await self.store.fetch_messages(chat_id)
        except Exception as e:
            logger.error("Failed to load messages: %s", e)
            return SubmissionResult(state, e)
        return SubmissionResult(await self._emit(open_chat(state, chat_id, messages)))

    async def new_chat(self, state: ConversationState) -> SubmissionResult:
        return SubmissionResult(await self._emit(reset(state)))

    async def delete_chat(self, state: ConversationState, chat_id: str) -> SubmissionResult:
        try:
            await self.store.delete_chat(chat_id)
        except Exception as e:
            logger.error("Failed to delete chat: %s", e)
            return SubmissionResult(state, e)
        if state.active_chat_id == chat_id:
            state = reset(state)
        return SubmissionResult(await self._emit(remove_chat(state, chat_id)))

    async def rename_chat(self, state: ConversationState, chat_id: str, title: str) -> SubmissionResult:
        title = (title or "").strip()
        if not title:
            return SubmissionResult(state)
        try:
            await self.store.rename_chat(chat_id, title)
        except Exception as e:
            logger.error("Failed to rename chat: %s", e)
            return SubmissionResult(state, e)
        return SubmissionResult(await self._emit(retitle_chat(state, chat_id, title)))
