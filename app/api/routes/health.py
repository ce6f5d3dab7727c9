from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.services.teams import database_stats
from app.utils.helpers import to_iso_z, utcnow

router = APIRouter(tags=["health"])


@router.get("/health")
def health(db: Session = Depends(get_db)):
    return {"status": "ok", "timestamp": to_iso_z(utcnow()), "counts": database_stats(db)}
