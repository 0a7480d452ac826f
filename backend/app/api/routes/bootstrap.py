from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ...core.config import Settings, get_settings
from ...db.database import get_db
from ...schemas import BootstrapOut
from ...services.bootstrap_service import build_bootstrap
from ...services.persistence import PersistenceError

router = APIRouter()

@router.get("/bootstrap", response_model=BootstrapOut)
def get_bootstrap(db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    try:
        return build_bootstrap(db, settings.user_id)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))
