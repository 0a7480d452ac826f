import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from ...core.config import Settings, get_settings
from ...schemas import ClientAction
from ...services.conversation import ConversationState, serialize_state
from ...services.generation import GenerationClient
from ...services.orchestrator import SubmissionOrchestrator, SubmissionResult
from ...services.persistence import ChatStore
from ..deps import get_generation_client, get_store

logger = logging.getLogger(__name__)

router = APIRouter()

_NEEDS_CHAT_ID = {"select_chat", "delete_chat", "rename_chat"}


async def _dispatch(orchestrator: SubmissionOrchestrator, state: ConversationState, action: ClientAction) -> SubmissionResult:
    if action.type == "load_chats":
        return await orchestrator.load_chats(state)
    if action.type == "select_chat":
        return await orchestrator.select_chat(state, action.chatId)
    if action.type == "new_chat":
        return await orchestrator.new_chat(state)
    if action.type == "send_message":
        return await orchestrator.submit(state, action.content or "")
    if action.type == "delete_chat":
        return await orchestrator.delete_chat(state, action.chatId)
    return await orchestrator.rename_chat(state, action.chatId, action.title or "")


@router.websocket("/ws")
async def chat_session_ws(
    websocket: WebSocket,
    store: ChatStore = Depends(get_store),
    generator: GenerationClient = Depends(get_generation_client),
    settings: Settings = Depends(get_settings),
):
    """
    One client session. The server owns the visible state, pushes a
    ``{"type": "state"}`` frame after every transition and reports surfaced
    failures as ``{"type": "error"}`` frames.
    """
    await websocket.accept()

    async def push(state: ConversationState):
        await websocket.send_json({"type": "state", "state": serialize_state(state)})

    orchestrator = SubmissionOrchestrator(store, generator, settings.user_id, on_change=push)
    state = ConversationState()

    result = await orchestrator.load_chats(state)
    state = result.state
    if result.error is not None:
        await websocket.send_json({"type": "error", "action": "load_chats", "detail": str(result.error)})

    try:
        while True:
            raw_data = await websocket.receive_text()
            try:
                action = ClientAction.model_validate_json(raw_data)
            except ValidationError as e:
                await websocket.send_json({"type": "error", "action": None, "detail": e.errors(include_url=False, include_context=False)})
                continue

            if action.type in _NEEDS_CHAT_ID and not action.chatId:
                await websocket.send_json({"type": "error", "action": action.type, "detail": "chatId is required"})
                continue

            result = await _dispatch(orchestrator, state, action)
            state = result.state
            if result.error is not None:
                await websocket.send_json({"type": "error", "action": action.type, "detail": str(result.error)})
    except WebSocketDisconnect:
        logger.info("Chat session closed")
