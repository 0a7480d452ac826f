from typing import Optional
from pydantic import BaseModel

class ChatCreate(BaseModel):
    title: Optional[str] = None

class ChatPatch(BaseModel):
    title: str

class ChatOut(BaseModel):
    id: str
    user_id: str
    title: str
    created_at: str
