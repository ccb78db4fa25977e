import logging
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from settings import get_settings
from trip_search.geocoding.client import GeocodeClient
from trip_search.middleware import RequestLoggingMiddleware
from trip_search.monitoring.metrics import get_metrics, record_search
from trip_search.routing.client import ItineraryClient
from trip_search.search.models import (
    FieldInputRequest,
    FieldResponse,
    SearchRequest,
    SearchStateResponse,
    SelectRequest,
    field_response,
    state_response,
)
from trip_search.search.orchestrator import Phase
from trip_search.search.session import FIELD_NAMES, TripSession, new_session

settings = get_settings()

# Structured logging: include module and level; handlers can add JSON later
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)


@asynccontextmanager
async def lifespan(app: FastAPI):
    geocoder = GeocodeClient(
        base_url=settings.pelias_url,
        accept_language=settings.accept_language,
        timeout=settings.request_timeout_seconds,
    )
    app.state.geocoder = geocoder
    app.state.suggester = geocoder
    app.state.planner = ItineraryClient(
        url=settings.otp_url,
        accept_language=settings.accept_language,
        timeout=settings.request_timeout_seconds,
    )
    app.state.sessions = {}
    yield
    app.state.sessions = {}


app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(Exception)
def unhandled_exception_handler(request: Request, exc: Exception):
    """Return consistent JSON error for unhandled exceptions (500). Skip validation/HTTP errors."""
    from fastapi.exceptions import RequestValidationError
    if isinstance(exc, (HTTPException, RequestValidationError)):
        raise exc
    logger.exception("telemetry unhandled_exception path=%s", request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "An unexpected error occurred. Please try again later."},
    )


# Order: last added = innermost. RequestLogging runs first (outermost), then CORS.
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _session(request: Request, session_id: str) -> TripSession:
    session = request.app.state.sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Search session not found.")
    return session


@app.get("/favicon.ico", include_in_schema=False)
def favicon(request: Request):
    """Return 204 so browser favicon requests don't log 404."""
    return Response(status_code=204)


@app.get("/health")
def health(request: Request):
    logger.info("telemetry route=health")
    return {"status": "ok"}


@app.get("/metrics")
def metrics(request: Request):
    """Request counts, search outcomes and uptime."""
    return get_metrics()


# --- Search sessions ---


@app.post("/sessions", response_model=SearchStateResponse, status_code=201)
def create_session(request: Request):
    """Start a search session: idle state plus empty origin/destination inputs."""
    state = request.app.state
    session = new_session(
        geocoder=state.geocoder,
        suggester=state.suggester,
        planner=state.planner,
        debounce_seconds=settings.suggest_debounce_ms / 1000.0,
    )
    sessions = state.sessions
    if len(sessions) >= settings.max_sessions:
        oldest_id = min(sessions, key=lambda k: sessions[k].created_at)
        sessions.pop(oldest_id, None)
        logger.info("telemetry session_evicted session_id=%s", oldest_id)
    sessions[session.session_id] = session
    logger.info("telemetry route=create_session session_id=%s", session.session_id)
    return state_response(session.session_id, session.orchestrator.state)


@app.get("/sessions/{session_id}", response_model=SearchStateResponse)
def get_session(request: Request, session_id: str):
    session = _session(request, session_id)
    return state_response(session_id, session.orchestrator.state)


@app.delete("/sessions/{session_id}", status_code=204)
def delete_session(request: Request, session_id: str):
    """Drop a session once its UI is gone."""
    _session(request, session_id)
    request.app.state.sessions.pop(session_id, None)
    logger.info("telemetry route=delete_session session_id=%s", session_id)
    return Response(status_code=204)


@app.post("/sessions/{session_id}/search", response_model=SearchStateResponse)
async def search(request: Request, session_id: str, body: SearchRequest):
    """
    Resolve origin and destination, then plan. Errors are reported in the state
    (phase=error) rather than as HTTP errors.
    """
    session = _session(request, session_id)
    logger.info(
        "telemetry route=search session_id=%s depart_at=%s",
        session_id,
        body.depart_at,
    )
    when = body.time or datetime.now().astimezone()
    orchestrator = session.orchestrator
    # submit claims the next generation before its first await
    token = orchestrator.generation + 1
    state = await orchestrator.submit(body.origin, body.destination, body.depart_at, when)
    # A superseded submit returns the newer search's state; only the current one is counted
    if orchestrator.generation == token:
        if state.phase is Phase.SUCCESS:
            record_search("success")
        elif state.phase is Phase.ERROR and state.error_kind is not None:
            record_search(state.error_kind.value)
    return state_response(session_id, state)


@app.post("/sessions/{session_id}/select", response_model=SearchStateResponse)
def select(request: Request, session_id: str, body: SelectRequest):
    """Toggle selection of routes[index]; index null clears it."""
    session = _session(request, session_id)
    orchestrator = session.orchestrator
    if body.index is None:
        orchestrator.select_route(None)
        return state_response(session_id, orchestrator.state)
    if orchestrator.state.phase is not Phase.SUCCESS:
        raise HTTPException(status_code=409, detail="No search results to select from.")
    if not (0 <= body.index < len(orchestrator.state.routes)):
        raise HTTPException(status_code=400, detail="Route index out of range.")
    orchestrator.select_route(orchestrator.state.routes[body.index])
    return state_response(session_id, orchestrator.state)


@app.put("/sessions/{session_id}/fields/{field_name}", response_model=FieldResponse)
@limiter.limit(settings.suggest_rate_limit)
async def update_field(request: Request, session_id: str, field_name: str, body: FieldInputRequest):
    """
    Feed the current input value to the debounced autocomplete for origin or destination.
    Responds once the field is quiet with its value, suggestions and popover state.
    """
    session = _session(request, session_id)
    if field_name not in FIELD_NAMES:
        raise HTTPException(status_code=404, detail=f"Unknown field: {field_name}.")
    field = session.fields[field_name]
    field.set_value(body.text)
    await field.settled()
    return field_response(field)
