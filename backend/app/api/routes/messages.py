from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from ...db.database import get_db
from ...schemas import MessageIn, MessageOut
from ...services import persistence
from ...services.persistence import PersistenceError
from .chats import _raise_http

router = APIRouter()

@router.get("/chats/{chatId}/messages", response_model=List[MessageOut])
def list_messages(chatId: str, db: Session = Depends(get_db)):
    try:
        return persistence.fetch_messages(db, chatId)
    except PersistenceError as e:
        _raise_http(e)

@router.post("/chats/{chatId}/messages", response_model=MessageOut)
def create_message(chatId: str, payload: MessageIn, db: Session = Depends(get_db)):
    try:
        return persistence.save_message(db, chatId, payload.role, payload.content)
    except PersistenceError as e:
        _raise_http(e)
