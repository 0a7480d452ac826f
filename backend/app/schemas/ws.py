from typing import Literal, Optional
from pydantic import BaseModel

ActionType = Literal[
    "load_chats",
    "select_chat",
    "new_chat",
    "send_message",
    "delete_chat",
    "rename_chat",
]

class ClientAction(BaseModel):
    type: ActionType
    chatId: Optional[str] = None
    content: Optional[str] = None
    title: Optional[str] = None
