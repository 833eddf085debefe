import os
import time
from collections import deque

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from slowapi.errors import RateLimitExceeded

from logger import logger
from utils.exception_handler import (
    custom_http_exception_handler,
    handle_engine_error,
    handle_request_validation_error,
    handle_validation_error,
)
from utils.result import EngineError

from router import CommonRouter, DefaultRouter, StatusRouter
from limiter import limiter, rate_limit_handler

from database.db import init_models

app = FastAPI(title="Treksistem Order Engine")

# Routers
app.include_router(CommonRouter)
app.include_router(StatusRouter)
app.include_router(DefaultRouter)

# per-route limits (order placement) live on the controllers
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_handler)

# Exception handlers
app.add_exception_handler(RequestValidationError, handle_request_validation_error)
app.add_exception_handler(ValidationError, handle_validation_error)
app.add_exception_handler(EngineError, handle_engine_error)
app.add_exception_handler(HTTPException, custom_http_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    init_models()
    logger.info("Treksistem order engine started")


# -------------------------------
# Global request ceiling
# -------------------------------
MAX_REQUESTS_PER_SECOND = int(os.getenv("MAX_REQUESTS_PER_SECOND", "200"))
WINDOW_SECONDS = 1.0
request_timestamps = deque()


@app.middleware("http")
async def rate_limit_middleware(request: Request, call_next):
    now = time.monotonic()
    while request_timestamps and now - request_timestamps[0] >= WINDOW_SECONDS:
        request_timestamps.popleft()

    if len(request_timestamps) >= MAX_REQUESTS_PER_SECOND:
        logger.warning(f"Global request ceiling hit on {request.url.path}")
        return JSONResponse(
            status_code=429,
            content={"status": False, "message": "Too many requests, slow down", "data": {}},
        )

    request_timestamps.append(now)
    return await call_next(request)


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("RELOAD", "false").lower() == "true",
    )
