import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.routes import appointments, chatbot, slots
from app.core.config import settings, _ENV_FILE
from app.core.db import build_engine, build_session_maker
from app.core.errors import OracleServiceError, StorageError
from app.services.llm_service import build_llm_service

if os.getenv("ENV") != "production":
    logging.basicConfig(level=logging.DEBUG)
else:
    logging.basicConfig(
        level=logging.INFO,
        format='{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s"}',
    )
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Loading .env from: %s (exists: %s)", _ENV_FILE, _ENV_FILE.exists())
    engine = build_engine(settings)
    app.state.session_maker = build_session_maker(engine)
    if settings.llm_configured:
        app.state.llm = build_llm_service(settings)
        logger.info("LLM provider: %s", settings.llm_provider)
    else:
        app.state.llm = None
        logger.warning(
            "LLM: NOT configured. Set GEMINI_API_KEY (or LLM_PROVIDER=mock) in %s; chatbot will return 500",
            _ENV_FILE,
        )
    logger.info(
        "Business hours: Mon-Fri %d-%d, Sat %d-%d, Sun closed (%s)",
        settings.weekday_start_hour,
        settings.weekday_end_hour,
        settings.saturday_start_hour,
        settings.saturday_end_hour,
        settings.business_timezone,
    )
    yield
    await engine.dispose()


app = FastAPI(
    title="Autocare Service API",
    description="Service-center backend: appointment slot availability, bookings, chat assistant",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

app.include_router(slots.router, prefix="/api")
app.include_router(appointments.router, prefix="/api")
app.include_router(chatbot.router, prefix="/api")


def _cors_headers(origin: str | None) -> dict[str, str]:
    """Add CORS headers to error responses so the browser doesn't block them."""
    headers = {
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Methods": "GET, POST, PUT, PATCH, DELETE, OPTIONS",
        "Access-Control-Allow-Headers": "Authorization, Content-Type",
    }
    if origin and origin in settings.cors_origins_list:
        headers["Access-Control-Allow-Origin"] = origin
    elif settings.cors_origins_list:
        headers["Access-Control-Allow-Origin"] = settings.cors_origins_list[0]
    return headers


def _error_response(request: Request, status_code: int, error: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error},
        headers=_cors_headers(request.headers.get("origin")),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error_response(request, exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.debug("Rejected request to %s: %s", request.url.path, exc.errors())
    return _error_response(request, 400, "Invalid request")


@app.exception_handler(OracleServiceError)
async def oracle_error_handler(request: Request, exc: OracleServiceError) -> JSONResponse:
    logger.error("Oracle failure (%s): %s", exc.category, exc)
    return _error_response(request, 500, exc.user_message)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    logger.error("Storage failure: %s", exc)
    return _error_response(request, 500, "Internal server error")


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Generic 500 in the error envelope; CORS included so the browser does not block it."""
    logger.exception("Unhandled exception: %s", exc)
    return _error_response(request, 500, "Internal server error")


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}
