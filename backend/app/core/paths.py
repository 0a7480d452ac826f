import os
from pathlib import Path


def get_app_data_dir() -> Path:
    override = os.environ.get("CHAT_DATA_DIR", "").strip()
    if override:
        p = Path(override).expanduser().resolve()
        p.mkdir(parents=True, exist_ok=True)
        return p

    base = os.environ.get("LOCALAPPDATA") or os.environ.get("APPDATA") or str(Path.home())
    p = Path(base) / "ThreadChat"
    p.mkdir(parents=True, exist_ok=True)
    return p


def get_default_db_url() -> str:
    return f"sqlite:///{get_app_data_dir() / 'chat.db'}"


