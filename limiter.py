import os

from dotenv import load_dotenv
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

load_dotenv()

# public order placement, per client IP
PLACEMENT_RATE_LIMIT = os.getenv("PLACEMENT_RATE_LIMIT", "30/minute")

limiter = Limiter(key_func=get_remote_address)


def rate_limit_handler(request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={"status": False, "message": "Too many requests. Slow down!", "data": {}},
    )
