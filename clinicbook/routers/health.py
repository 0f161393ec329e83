# clinicbook/routers/health.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError

from clinicbook.db.sql import get_store
from clinicbook.db.store import KeyValueStore

router = APIRouter()

@router.get("/health")
def health_root():
    return {"status": "ok"}

@router.get("/health/store")
def health_store(store: KeyValueStore = Depends(get_store)):
    """
    Checks the backing store answers (SELECT 1 for SQL stores).
    Returns 503 if it does not (useful for readiness/liveness checks).
    """
    try:
        store.ping()
    except SQLAlchemyError as exc:
        # Don't expose internal details
        raise HTTPException(status_code=503, detail="store_unavailable") from exc
    return {"status": "ok", "store": type(store).__name__}
