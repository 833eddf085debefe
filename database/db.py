"""
Database Configuration Module

Connection settings are read from the environment (see .env.example):
- DATABASE_URL takes precedence when set (tests use "sqlite://")
- otherwise a PostgreSQL URI is built from db_user/db_password/db_host/db_port/db_name

Pool sizing for PostgreSQL comes from DB_POOL_SIZE / DB_MAX_OVERFLOW.

Orders and order events are written by the boundary layer only; the pricing,
trust and state machine code never touches a session.
"""

import os
from datetime import datetime
from urllib.parse import quote_plus
import uuid as uuid
from pytz import timezone
from dotenv import load_dotenv

load_dotenv()

from sqlalchemy import Column, TIMESTAMP, Boolean, String, create_engine, event, inspect
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from logger import logging


# ============================================
# DATABASE CONNECTION CONFIGURATION
# ============================================

DBTYPE_POSTGRES = "postgresql"


def build_database_uri() -> str:
    database_url = os.environ.get("DATABASE_URL")
    if database_url:
        return database_url

    return "%s://%s:%s@%s:%s/%s" % (
        DBTYPE_POSTGRES,
        os.environ.get("db_user"),
        quote_plus(os.environ.get("db_password", "")),
        os.environ.get("db_host"),
        os.environ.get("db_port"),
        os.environ.get("db_name"),
    )


CORE_SQLALCHEMY_DATABASE_URI = build_database_uri()
IS_SQLITE = CORE_SQLALCHEMY_DATABASE_URI.startswith("sqlite")

# ============================================
# CONNECTION POOL SETTINGS
# ============================================

if IS_SQLITE:
    # one shared connection, otherwise every session sees its own empty in-memory db
    POOL_CONFIG = {
        "connect_args": {"check_same_thread": False},
        "poolclass": StaticPool,
    }
else:
    POOL_CONFIG = {
        "pool_size": int(os.environ.get("DB_POOL_SIZE", "10")),
        "max_overflow": int(os.environ.get("DB_MAX_OVERFLOW", "10")),
        "pool_timeout": 30,
        # drop connections the server closed while idle
        "pool_pre_ping": True,
        "pool_recycle": 1800,
        "poolclass": QueuePool,
    }

db_engine = create_engine(CORE_SQLALCHEMY_DATABASE_URI, echo=False, **POOL_CONFIG)


if IS_SQLITE:

    @event.listens_for(db_engine, "connect")
    def enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# ============================================
# SESSION CONFIGURATION
# ============================================

SessionLocal = sessionmaker(
    autoflush=False,
    bind=db_engine,
    # snapshots are built from rows after commit
    expire_on_commit=False,
)

UTC = timezone("UTC")
# Treksistem operates in WIB
APP_TIMEZONE = timezone(os.environ.get("APP_TIMEZONE", "Asia/Jakarta"))


def time_now():
    return datetime.now(UTC)


def time_now_local():
    return datetime.now(APP_TIMEZONE)


# ============================================
# SCHEMA
# ============================================

DBBase = declarative_base()


def init_models():
    """Create all tables that do not exist yet"""
    # registers every table on DBBase.metadata
    import models  # noqa: F401

    DBBase.metadata.create_all(bind=db_engine)
    logging.info("Database tables initialised")


def missing_tables():
    """Names of mapped tables that are not present in the database"""
    import models  # noqa: F401

    existing = set(inspect(db_engine).get_table_names())
    return sorted(set(DBBase.metadata.tables) - existing)


# ============================================
# SESSION MANAGEMENT
# ============================================


def get_db():
    """
    Request-scoped session for FastAPI.

    Commits once the endpoint returns unless the request was flagged for
    rollback (see context_manager.context.mark_rollback); any exception rolls
    back and propagates.
    """
    from context_manager.context import context_set_db_session_rollback

    db: Session = SessionLocal()
    try:
        yield db

        if context_set_db_session_rollback.get():
            logging.debug("Request flagged for rollback")
            db.rollback()
        else:
            db.commit()

    except Exception as e:
        logging.error(f"DB session error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


# ============================================
# BASE MODEL CLASS
# ============================================


def new_uuid() -> str:
    return str(uuid.uuid4())


class DBBaseClass:
    """
    Columns shared by every table: opaque string id, timestamps and a
    soft delete flag. Rows are never hard deleted by the engine.
    """

    id = Column(String(36), primary_key=True, default=new_uuid)

    created_at = Column(TIMESTAMP(timezone=True), default=time_now, nullable=False)
    updated_at = Column(
        TIMESTAMP(timezone=True),
        default=time_now,
        onupdate=time_now,
        nullable=False,
    )

    is_deleted = Column(Boolean, default=False, index=True)

    @classmethod
    def get_by_id(cls, id, db: Session = None):
        if db is None:
            from context_manager.context import get_db_session

            db = get_db_session()
        return db.query(cls).filter(cls.id == id, cls.is_deleted.is_(False)).first()
