from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import get_settings
from .core.log import configure_logging
from .db.database import init_db
from .api.router import router as api_router

settings = get_settings()
configure_logging(settings.log_level)

app = FastAPI(title="ThreadChat")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.on_event("startup")
def _startup():
    init_db()

app.include_router(api_router)

