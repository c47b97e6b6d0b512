import logging

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from mobileorder.db import engine

router = APIRouter()
log = logging.getLogger("health")


@router.get("/health", tags=["health"])
def health():
    db_ok = False
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            db_ok = True
    except SQLAlchemyError as e:
        log.warning("database health check failed: %s", e)

    return {"status": "ok" if db_ok else "degraded", "db": db_ok}
