from contextlib import asynccontextmanager
import logging
import os

from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

# Rate limiting (slowapi)
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

# Centralized logging setup
from utils.logger import setup_logging, RequestContextLogMiddleware

setup_logging()

from db.setup_db import create_tables
from utils.limiter import limiter
from routers.forms import router as forms_router
from routers.embed import router as embed_router
from routers.submit import router as submit_router
from routers.health import router as health_router

logger = logging.getLogger("backend")

# Client-facing text per status when details must not leak
SAFE_MESSAGES = {
    400: "Invalid request.",
    404: "Not found.",
    405: "Method not allowed.",
    409: "Conflict.",
    413: "Request too large.",
    422: "Invalid request.",
    429: "Too many requests.",
    500: "Something went wrong. Please try again.",
    503: "Service unavailable. Please try again.",
}


def is_production() -> bool:
    env = os.getenv("ENV") or os.getenv("APP_ENV") or ""
    return env.lower() == "production"


def safe_message(status_code: int) -> str:
    return SAFE_MESSAGES.get(int(status_code or 500), SAFE_MESSAGES[500])


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Opt-in table creation for local runs; production schemas are managed separately
    if os.getenv("CREATE_TABLES", "").lower() in ("1", "true", "yes"):
        await create_tables()
        logger.info("Database tables ensured")
    yield


app = FastAPI(title="QuickForm API", lifespan=lifespan)
app.state.limiter = limiter


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Structured details (content errors, invalid field lists) pass through outside production."""
    if is_production() or not exc.detail:
        detail = safe_message(exc.status_code)
    elif isinstance(exc.detail, (dict, list)):
        detail = exc.detail
    else:
        detail = str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": detail}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.info("Rejected %s %s: %d validation errors", request.method, request.url.path, len(exc.errors()))
    return JSONResponse(status_code=422, content={"detail": safe_message(422)})


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    logger.warning("Rate limit hit on %s", request.url.path)
    return JSONResponse(status_code=429, content={"detail": "Rate limit exceeded"})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": safe_message(500)})


app.add_middleware(SlowAPIMiddleware)

# Embedded forms post from arbitrary host pages
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,  # Must be False when allow_origins=["*"]
    allow_methods=["*"],
    allow_headers=["*"],
)

# Request/response logging middleware
app.add_middleware(RequestContextLogMiddleware)

app.include_router(health_router)
app.include_router(forms_router)
app.include_router(embed_router)
app.include_router(submit_router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")), reload=True)
