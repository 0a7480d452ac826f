from typing import List
from pydantic import BaseModel

class Turn(BaseModel):
    role: str
    content: str

class CompletionIn(BaseModel):
    messages: List[Turn]

class CompletionOut(BaseModel):
    content: str
    error: bool
