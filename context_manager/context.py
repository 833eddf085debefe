from contextvars import ContextVar
from typing import Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from database.db import get_db
from logger import logger


# request scoped state: the session every layer shares, who is acting, and
# whether get_db should roll back instead of committing
context_db_session: ContextVar[Session] = ContextVar("db_session", default=None)
context_actor_data: ContextVar[Optional[dict]] = ContextVar("actor_data", default=None)
context_set_db_session_rollback: ContextVar[bool] = ContextVar(
    "set_db_session_rollback", default=False
)


# dependency on every /api/v1 route
async def build_request_context(db: Session = Depends(get_db)):
    context_db_session.set(db)
    context_actor_data.set(None)
    context_set_db_session_rollback.set(False)
    logger.info(msg="REQUEST_INITIATED")


def get_db_session() -> Session:
    return context_db_session.get()


def mark_rollback():
    """Make get_db roll the request's session back instead of committing"""
    context_set_db_session_rollback.set(True)


def set_actor(actor_type: str, actor_id: str):
    context_actor_data.set({"actor_type": actor_type, "actor_id": actor_id})


def get_actor_data() -> Optional[dict]:
    """
    Safely get actor data from context.
    Returns None if no actor has been identified for this request.
    """
    actor_data = context_actor_data.get()
    if not actor_data or "actor_id" not in actor_data:
        return None
    return actor_data
