import http

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from database.db import db_engine, missing_tables, time_now_local
from logger import logger

StatusRouter = APIRouter(tags=["health_checks"])


# liveness
@StatusRouter.get("/status", status_code=http.HTTPStatus.OK)
async def status_check():
    return JSONResponse(status_code=http.HTTPStatus.OK, content={"status": "OK"})


# readiness: database reachable and every order engine table created
@StatusRouter.get("/deepstatus", status_code=http.HTTPStatus.OK)
async def deep_status_check():
    try:
        with db_engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        missing = missing_tables()
    except SQLAlchemyError as e:
        logger.error(f"Deep status check failed: {e}")
        return JSONResponse(
            status_code=http.HTTPStatus.SERVICE_UNAVAILABLE,
            content={"db": False, "error": "db not connected"},
        )

    return JSONResponse(
        status_code=http.HTTPStatus.OK if not missing else http.HTTPStatus.SERVICE_UNAVAILABLE,
        content={
            "db": True,
            "missing_tables": missing,
            "server_time": time_now_local().isoformat(),
        },
    )
