from fastapi import APIRouter, Depends, HTTPException

from ...schemas import CompletionIn, CompletionOut
from ...services.generation import GenerationClient, is_error_reply
from ..deps import get_generation_client

router = APIRouter()

@router.post("/completions", response_model=CompletionOut)
async def create_completion(payload: CompletionIn, client: GenerationClient = Depends(get_generation_client)):
    if not payload.messages:
        raise HTTPException(status_code=400, detail="messages must not be empty")
    if payload.messages[-1].role != "user":
        raise HTTPException(status_code=400, detail="last message must come from the user")
    content = await client.generate(payload.messages)
    return {"content": content, "error": is_error_reply(content)}
