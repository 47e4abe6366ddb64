from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from .config import Settings, get_settings
from .exceptions import ConfigurationError, PlanFinderError, get_error_response, get_status_code
from .models import HealthResponse, PromptRequest, ResponseEnvelope
from .services.catalog import CatalogService, get_supabase_client
from .services.intent_extractor import IntentExtractor
from .services.llm import create_generator
from .services.pipeline import PlanFinder
from .services.retrieval import create_retriever
from .utils.logging_security import SecureLogger, log_secure

logger = logging.getLogger("esim_backend")
logging.basicConfig(level=logging.INFO)


settings: Settings = get_settings()


def build_plan_finder(settings: Settings) -> PlanFinder:
    """Wire the production pipeline: Supabase catalog, OpenAI generation, pgvector retrieval."""
    client = get_supabase_client()
    extractor = IntentExtractor(
        generator=create_generator(settings),
        retriever=create_retriever(client, settings),
    )
    return PlanFinder(extractor=extractor, catalog=CatalogService(client, settings), settings=settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the plan finder once per process; release the Supabase thread pool on exit."""
    try:
        app.state.plan_finder = build_plan_finder(settings)
        logger.info("✅ Plan finder ready (model: %s, plans table: %s)", settings.llm_model, settings.plans_table)
    except ConfigurationError as e:
        app.state.plan_finder = None
        logger.error("❌ Plan finder not configured: %s", e.message)
    else:
        if not await app.state.plan_finder.catalog.health_check():
            logger.warning("⚠️  Supabase not reachable at startup, /prompt will fail until it is")

    yield

    if app.state.plan_finder is not None:
        get_supabase_client().shutdown()


app = FastAPI(title="eSIM Plan Finder API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def secure_logging_middleware(request: Request, call_next):
    """Request tracing with a request id and redacted request/response logs."""
    request_id = SecureLogger.new_request_id()
    request.state.request_id = request_id
    start_time = time.perf_counter()

    log_secure("info", "Request received", SecureLogger.request_fields(request, request_id), request_id)

    try:
        response = await call_next(request)
    except Exception as e:
        duration_ms = (time.perf_counter() - start_time) * 1000
        error_log = SecureLogger.error_fields(request_id, e, with_traceback=True)
        error_log["duration_ms"] = round(duration_ms, 2)
        log_secure("error", "Request failed", error_log, request_id)
        raise

    duration_ms = (time.perf_counter() - start_time) * 1000
    log_secure(
        "info",
        "Request completed",
        SecureLogger.response_fields(request_id, response.status_code, duration_ms),
        request_id,
    )
    response.headers["X-Request-ID"] = request_id
    return response


def error_response(request: Request, exc: Exception) -> JSONResponse:
    """JSON error body carrying the request id set by the logging middleware."""
    request_id = getattr(request.state, "request_id", None)
    headers = {"X-Request-ID": request_id} if request_id else None
    return JSONResponse(status_code=get_status_code(exc), content=get_error_response(exc), headers=headers)


@app.exception_handler(PlanFinderError)
async def plan_finder_error_handler(request: Request, exc: PlanFinderError) -> JSONResponse:
    logger.warning("%s: %s", exc.code, exc.message)
    return error_response(request, exc)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error")
    return error_response(request, exc)


def get_plan_finder(request: Request) -> PlanFinder:
    plan_finder = getattr(request.app.state, "plan_finder", None)
    if plan_finder is None:
        raise ConfigurationError("Plan finder is not configured. Check OPENAI_API_KEY, SUPABASE_URL and SUPABASE_ANON_KEY.")
    return plan_finder


@app.get("/", response_class=PlainTextResponse)
async def root() -> str:
    return "Hello from the eSIM plan finder!"


@app.get("/api/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    services = {
        "openai": settings.openai_enabled,
        "supabase": settings.supabase_enabled,
        "retrieval": settings.enable_retrieval,
    }

    return HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc).isoformat(),
        environment=settings.environment or "development",
        services=services,
    )


@app.post(
    "/prompt",
    response_model=ResponseEnvelope,
    summary="Recommend eSIM plans for a chat message",
    description="Extracts destination, data allowance and trip length from the last chat message and returns matching eSIM plans with a conversational reply. Example: 'Saya ke Jepang 10 hari, butuh 5GB'.",
)
async def prompt_endpoint(request: PromptRequest, plan_finder: PlanFinder = Depends(get_plan_finder)) -> JSONResponse:
    text = request.current_message
    logger.info("📝 Prompt: %s", SecureLogger.preview(text))

    envelope = await plan_finder.handle_request(text)
    return JSONResponse(status_code=envelope.status, content=envelope.model_dump(mode="json"))
