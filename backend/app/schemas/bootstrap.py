from typing import List, Optional
from pydantic import BaseModel
from .chat import ChatOut

class BootstrapOut(BaseModel):
    userId: str
    chats: List[ChatOut]
    currentChatId: Optional[str] = None
