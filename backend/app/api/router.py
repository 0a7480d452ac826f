from fastapi import APIRouter
from .routes import bootstrap
from .routes import chats
from .routes import messages
from .routes import completions
from .routes import session

router = APIRouter()
router.include_router(bootstrap.router, prefix="/api")
router.include_router(chats.router, prefix="/api")
router.include_router(messages.router, prefix="/api")
router.include_router(completions.router, prefix="/api")
router.include_router(session.router, prefix="/api")
