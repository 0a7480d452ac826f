from typing import List
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from ...core.config import Settings, get_settings
from ...db.database import get_db
from ...schemas import ChatCreate, ChatOut, ChatPatch
from ...services import persistence
from ...services.persistence import ChatNotFoundError, PersistenceError

router = APIRouter()

def _raise_http(e: PersistenceError):
    if isinstance(e, ChatNotFoundError):
        raise HTTPException(status_code=404, detail="Chat not found")
    raise HTTPException(status_code=500, detail=str(e))

@router.get("/chats", response_model=List[ChatOut])
def list_chats(db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    try:
        return persistence.fetch_chats(db, settings.user_id)
    except PersistenceError as e:
        _raise_http(e)

@router.post("/chats", response_model=ChatOut)
def create_chat(payload: ChatCreate, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    try:
        return persistence.create_chat(db, settings.user_id, payload.title)
    except PersistenceError as e:
        _raise_http(e)

@router.patch("/chats/{chatId}", response_model=ChatOut)
def patch_chat(chatId: str, payload: ChatPatch, db: Session = Depends(get_db)):
    title = payload.title.strip()
    if not title:
        raise HTTPException(status_code=400, detail="title must not be blank")
    try:
        return persistence.rename_chat(db, chatId, title)
    except PersistenceError as e:
        _raise_http(e)

@router.delete("/chats/{chatId}", status_code=204)
def delete_chat(chatId: str, db: Session = Depends(get_db)):
    try:
        persistence.delete_chat(db, chatId)
    except PersistenceError as e:
        _raise_http(e)
