from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict
from uuid import UUID, uuid4

from fastapi import APIRouter, FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.core.errors import DomainError
from src.core.logging import actor_var, configure_logging, correlation_id_var
from src.core.settings import get_app_settings
from src.db.run_migrations import main as run_alembic
from src.db.seed import seed_all
from src.schemas.common import ErrorInfo, ErrorResponse, MessageResponse
from src.schemas.realtime import WsEnvelope
from src.services.realtime import broadcast_manager

from src.api.routes.change_requests import router as change_requests_router
from src.api.routes.gates import router as gates_router
from src.api.routes.orders import router as orders_router
from src.api.routes.quality import router as quality_router

settings = get_app_settings()

# Configure structured logging once at import
configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "Health", "description": "Liveness and readiness probes."},
    {"name": "Orders", "description": "Orders, status transitions, priority and SLA timeline."},
    {"name": "Gates", "description": "Approval gates that must clear before production."},
    {"name": "Change Requests", "description": "Customer changes: pricing, quoting, payment and completion."},
    {"name": "Quality", "description": "QC inspections and follow-ups."},
    {
        "name": "WebSocket",
        "description": "WebSocket usage, endpoints, and connection details.",
    },
]

app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    openapi_tags=openapi_tags,
)

# CORS - avoid wildcard with credentials
cors_allow_credentials = settings.CORS_ALLOW_CREDENTIALS
if settings.CORS_ORIGINS == ["*"] and cors_allow_credentials:
    logger.warning("CORS_ALLOW_CREDENTIALS=True with '*' origins is not permitted; disabling credentials.")
    cors_allow_credentials = False

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=cors_allow_credentials,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """
    Enrich request context with correlation_id and actor for logging and error responses.
    Adds 'X-Correlation-ID' to every response.
    """
    corr = request.headers.get("X-Correlation-ID") or request.headers.get("X-Request-ID") or str(uuid4())
    actor = (request.headers.get("X-Actor") or "").strip() or None
    token_corr = correlation_id_var.set(corr)
    token_actor = actor_var.set(actor)
    request.state.correlation_id = corr
    request.state.actor = actor

    logger.info("Incoming request %s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
    finally:
        correlation_id_var.reset(token_corr)
        actor_var.reset(token_actor)

    response.headers["X-Correlation-ID"] = corr
    return response


def _build_error_response(
    request: Request,
    status_code: int,
    error_type: str,
    message: str,
    details: Any | None = None,
) -> JSONResponse:
    """Build a standardized ErrorResponse JSONResponse."""
    ts = datetime.now(tz=timezone.utc)
    err = ErrorResponse(
        status=status_code,
        error=ErrorInfo(type=error_type, message=message, details=details),
        correlation_id=getattr(request.state, "correlation_id", None),
        actor=getattr(request.state, "actor", None),
        path=request.url.path,
        method=request.method,
        timestamp=ts,
    )
    return JSONResponse(status_code=status_code, content=err.model_dump(mode="json"))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Global handler for HTTPException to produce a standardized error envelope.

    DomainError carries its own error code and details; other HTTP errors are
    reported as http_error.
    """
    if isinstance(exc, DomainError):
        logger.warning("Rejected %s %s: %s (%s)", request.method, request.url.path, exc.code, exc.detail)
        return _build_error_response(
            request=request,
            status_code=exc.status_code,
            error_type=exc.code,
            message=str(exc.detail),
            details=exc.details,
        )
    detail = exc.detail if isinstance(exc.detail, str) else "HTTP Error"
    return _build_error_response(
        request=request,
        status_code=exc.status_code,
        error_type="http_error",
        message=str(detail),
        details=None if isinstance(exc.detail, str) else exc.detail,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Global handler for request validation errors with a standard structure.
    """
    return _build_error_response(
        request=request,
        status_code=422,
        error_type="validation_error",
        message="Request validation failed",
        details=exc.errors(),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """
    Catch-all handler to avoid leaking stack traces and to return a structured error.
    """
    logger.exception("Unhandled error processing request")
    return _build_error_response(
        request=request,
        status_code=500,
        error_type="internal_error",
        message="An unexpected error occurred",
        details=None,
    )


@app.on_event("startup")
async def on_startup() -> None:
    """
    Run migrations and optional seeding on service startup.

    Alembic drives its own event loop, so it runs in a worker thread.
    Seeding is opt-in via settings.
    """
    if settings.RUN_MIGRATIONS_ON_STARTUP:
        try:
            logger.info("Running Alembic migrations: upgrade head")
            await asyncio.to_thread(run_alembic, ["upgrade", "head"])
            logger.info("Migrations completed.")
        except Exception as exc:
            logger.exception("Migration step failed: %s", exc)
            # Do not crash the app in case of transient DB issues; rely on retries or later readiness probes.

    if settings.AUTO_SEED:
        try:
            logger.info("Running database seeding...")
            await seed_all()
            logger.info("Seeding completed.")
        except Exception as exc:
            logger.exception("Seeding step failed: %s", exc)


# Build API v1 router and include sub-routers
api_v1 = APIRouter(prefix="/api/v1")


# PUBLIC_INTERFACE
@api_v1.get(
    "/health",
    response_model=MessageResponse,
    summary="Health Check",
    tags=["Health"],
)
def health_check() -> MessageResponse:
    """
    Basic liveness health check endpoint.

    Returns:
        MessageResponse: Simple confirmation that the service is running.
    """
    return MessageResponse(message="Healthy", details={"version": settings.APP_VERSION})


# PUBLIC_INTERFACE
@api_v1.get(
    "/websocket-info",
    response_model=Dict[str, Any],
    summary="WebSocket Usage Information",
    description="Connection details for the order event WebSocket endpoint.",
    tags=["WebSocket"],
)
def websocket_info() -> Dict[str, Any]:
    """
    Describe how to connect to WebSocket endpoints in this service.

    Returns:
        JSON object with usage notes and the endpoint list.
    """
    return {
        "usage": (
            "Connect to /ws/orders to receive every order event, or /ws/orders?order=<order id> "
            "for a single order. Message format is JSON with fields: "
            "{ type: string, payload: object, at: ISO-8601, actor?: string, channel?: string }."
        ),
        "endpoints": [
            {
                "path": "/ws/orders",
                "summary": "Order lifecycle events (server push).",
                "query": ["order?"],
                "messages": {
                    "client_to_server": ["ping"],
                    "server_to_client": [
                        "order.created",
                        "order.status_changed",
                        "order.priority_changed",
                        "order.production_recorded",
                        "gate.updated",
                        "change_request.created",
                        "change_request.quoted",
                        "change_request.responded",
                        "change_request.paid",
                        "change_request.completed",
                        "change_request.cancelled",
                        "qc.recorded",
                        "qc.follow_up_completed",
                    ],
                },
            }
        ],
        "notes": "WebSocket endpoints are not represented in OpenAPI schema; refer to this endpoint for usage.",
    }


# Include all routers under /api/v1
api_v1.include_router(orders_router)
api_v1.include_router(gates_router)
api_v1.include_router(change_requests_router)
api_v1.include_router(quality_router)

# Attach api_v1 to app
app.include_router(api_v1)


# PUBLIC_INTERFACE
@app.websocket("/ws/orders")
async def ws_orders(websocket: WebSocket):
    """
    WebSocket endpoint for real-time order events.

    Query Parameters:
      - order: optional order id; without it every order's events are delivered

    Messages:
      - Server -> Client: WsEnvelope with type e.g. 'order.status_changed'
      - Client -> Server: optional 'ping' to keepalive; other messages ignored.
    """
    await websocket.accept()
    order = websocket.query_params.get("order")
    if order:
        try:
            UUID(order)
        except ValueError:
            await websocket.close(code=4400)
            return

    topic = broadcast_manager.order_topic(order)
    await broadcast_manager.connect(topic, websocket)
    await websocket.send_json(
        WsEnvelope(type="subscribed", payload={"topic": topic}, channel=topic).model_dump(mode="json")
    )

    try:
        while True:
            msg = await websocket.receive_text()
            if msg and msg.lower() == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        await broadcast_manager.disconnect(topic, websocket)
    except Exception:
        logger.exception("Error on ws_orders connection")
        await broadcast_manager.disconnect(topic, websocket)
        await websocket.close()
