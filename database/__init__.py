from .db import (
    DBBase,
    DBBaseClass,
    SessionLocal,
    db_engine,
    get_db,
    init_models,
    time_now,
)

__all__ = [
    "DBBase",
    "DBBaseClass",
    "SessionLocal",
    "db_engine",
    "get_db",
    "init_models",
    "time_now",
]
