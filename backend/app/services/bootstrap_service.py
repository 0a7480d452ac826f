from typing import Any, Dict

from sqlalchemy.orm import Session

from .persistence import fetch_chats


def build_bootstrap(db: Session, user_id: str) -> Dict[str, Any]:
    chats = fetch_chats(db, user_id)
    return {
        "userId": user_id,
        "chats": chats,
        "currentChatId": None,
    }
