from fastapi import Depends
from sqlalchemy.orm import sessionmaker

from ..core.config import Settings, get_settings
from ..db.database import get_session_factory
from ..services.generation import GenerationClient
from ..services.persistence import ChatStore


def get_store(session_factory: sessionmaker = Depends(get_session_factory)) -> ChatStore:
    return ChatStore(session_factory)


def get_generation_client(settings: Settings = Depends(get_settings)) -> GenerationClient:
    return GenerationClient.from_settings(settings)
