from typing import Literal
from pydantic import BaseModel

Role = Literal["user", "assistant"]

class MessageIn(BaseModel):
    role: Role
    content: str

class MessageOut(BaseModel):
    id: str
    chat_id: str
    role: Role
    content: str
    created_at: str
