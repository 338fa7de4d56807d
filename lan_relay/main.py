"""
FastAPI Application Entry Point

Restaurant LAN Relay - bridges the customer ordering app and the POS
terminals on the restaurant network.

Endpoints:
    - GET  /health: Liveness check (plain "OK")
    - GET  /api/floor-plan: Sections and tables snapshot
    - POST /api/order: Customer order submission, broadcast to POS
    - POST /api/menu: Menu sync acknowledgment from POS
    - POST /api/sections, /api/tables: Floor-plan setup
    - GET  /api/orders: Stored orders (items left encoded)
    - GET  /api/relay/stats: Broadcast channel statistics
    - WS   /ws: POS terminal duplex connection
    - GET  /{path}: Static assets from the public directory
"""

import asyncio
import sys
import json
import logging
from typing import Any, Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends, Request, WebSocket
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession

# Windows-specific event loop policy
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Internal imports
from lan_relay.core.config import Settings, get_settings, setup_logging
from lan_relay.core.exceptions import MalformedRequestError, RelayServiceError
from lan_relay.database import get_db, open_store
from lan_relay.repositories import FloorPlanRepository, OrderIdGenerator, OrderRepository
from lan_relay.schemas import (
    ErrorResponse,
    FloorPlanResponse,
    OrderCreateResponse,
    OrderRecord,
    RelayEventType,
    RelayStatsResponse,
    SectionCreate,
    SectionResponse,
    SuccessResponse,
    TableCreate,
    TableResponse,
)
from lan_relay.services.broadcast import BroadcastChannel, WebSocketConnection

logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.

    A store that cannot be opened aborts startup: StoreInitializationError
    propagates and the server never begins serving.
    """
    settings: Settings = app.state.settings

    # Startup
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    app.state.store = await open_store(settings.store_url, echo=settings.debug)
    app.state.channel = BroadcastChannel(
        settings.broadcast_topic,
        max_pending=settings.subscriber_queue_size,
    )
    app.state.order_ids = OrderIdGenerator()
    logger.info(f"✅ Broadcast topic: {settings.broadcast_topic}")
    logger.info(f"✅ Static assets: {settings.public_dir}")

    logger.info("=" * 60)
    logger.info(f"✅ LAN relay ready on {settings.api_host}:{settings.api_port}")
    logger.info("=" * 60)

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await app.state.channel.close()
    await app.state.store.dispose()
    logger.info("✅ Cleanup complete")


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_channel(request: Request) -> BroadcastChannel:
    return request.app.state.channel


def get_floor_plan_repository(db: AsyncSession = Depends(get_db)) -> FloorPlanRepository:
    return FloorPlanRepository(db)


def get_order_repository(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> OrderRepository:
    return OrderRepository(db, id_generator=request.app.state.order_ids)


async def read_json(request: Request) -> Any:
    """Decode a request body, turning bad JSON into a client error."""
    try:
        return await request.json()
    except ValueError as e:
        raise MalformedRequestError("Request body is not valid JSON", detail=str(e)) from e


# =============================================================================
# ROUTES
# =============================================================================

def register_routes(app: FastAPI) -> None:
    """Attach all routes. The static catch-all must be registered last."""

    # -------------------------------------------------------------------------
    # HEALTH
    # -------------------------------------------------------------------------

    @app.get("/health", response_class=PlainTextResponse, tags=["Health"])
    async def health_check() -> str:
        return "OK"

    # -------------------------------------------------------------------------
    # FLOOR PLAN
    # -------------------------------------------------------------------------

    @app.get(
        "/api/floor-plan",
        response_model=FloorPlanResponse,
        tags=["Floor Plan"],
        summary="Sections and tables",
    )
    async def get_floor_plan(
        repo: FloorPlanRepository = Depends(get_floor_plan_repository),
    ) -> FloorPlanResponse:
        sections, tables = await repo.snapshot()
        return FloorPlanResponse(
            sections=[SectionResponse.model_validate(s) for s in sections],
            tables=[TableResponse.model_validate(t) for t in tables],
        )

    @app.post(
        "/api/sections",
        response_model=SectionResponse,
        responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
        tags=["Floor Plan"],
    )
    async def create_section(
        section: SectionCreate,
        repo: FloorPlanRepository = Depends(get_floor_plan_repository),
    ) -> SectionResponse:
        created = await repo.insert_section(section.id, section.name)
        return SectionResponse.model_validate(created)

    @app.post(
        "/api/tables",
        response_model=TableResponse,
        responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
        tags=["Floor Plan"],
    )
    async def create_table(
        table: TableCreate,
        repo: FloorPlanRepository = Depends(get_floor_plan_repository),
    ) -> TableResponse:
        created = await repo.insert_table(table)
        return TableResponse.model_validate(created)

    # -------------------------------------------------------------------------
    # ORDERS
    # -------------------------------------------------------------------------

    @app.post(
        "/api/order",
        response_model=OrderCreateResponse,
        responses={400: {"content": {"text/plain": {}}}},
        tags=["Orders"],
        summary="Submit Order (Customer -> POS)",
    )
    async def submit_order(
        request: Request,
        repo: OrderRepository = Depends(get_order_repository),
        channel: BroadcastChannel = Depends(get_channel),
    ):
        """
        Store a customer order and push it to every POS terminal.

        The caller only learns whether the order was stored; delivery to the
        terminals is best effort.
        """
        try:
            body = await read_json(request)
            logger.info(f"New order received: {body}")
            order = await repo.insert(body)
        except RelayServiceError as e:
            logger.error(f"Error saving order: {e.message} {e.detail or ''}")
            return PlainTextResponse("Invalid Request", status_code=400)

        # Relay the body exactly as the customer app sent it
        event = json.dumps({"type": RelayEventType.NEW_ORDER.value, "payload": body})
        channel.publish(event)

        return OrderCreateResponse(success=True, message="Order placed", order_id=order.id)

    @app.get(
        "/api/orders",
        response_model=list[OrderRecord],
        tags=["Orders"],
    )
    async def list_orders(
        repo: OrderRepository = Depends(get_order_repository),
    ) -> list[OrderRecord]:
        orders = await repo.list_orders()
        return [OrderRecord.model_validate(o) for o in orders]

    # -------------------------------------------------------------------------
    # MENU SYNC
    # -------------------------------------------------------------------------

    @app.post(
        "/api/menu",
        response_model=SuccessResponse,
        responses={400: {"model": ErrorResponse}},
        tags=["Menu"],
        summary="Sync Menu (POS -> Server)",
    )
    async def sync_menu(request: Request) -> SuccessResponse:
        """Acknowledge a menu push. The menu itself is not stored."""
        body = await read_json(request)
        if not isinstance(body, list):
            raise MalformedRequestError("Menu sync expects a JSON array")
        logger.info(f"Menu synced: {len(body)} items")
        return SuccessResponse()

    # -------------------------------------------------------------------------
    # RELAY
    # -------------------------------------------------------------------------

    @app.get("/api/relay/stats", response_model=RelayStatsResponse, tags=["Relay"])
    async def relay_stats(
        channel: BroadcastChannel = Depends(get_channel),
    ) -> RelayStatsResponse:
        return RelayStatsResponse(**channel.stats())

    @app.websocket("/ws")
    async def pos_socket(websocket: WebSocket):
        """
        POS terminal connection.

        Subscribed before the handshake completes; every inbound frame is
        re-published verbatim to all other terminals.
        """
        settings: Settings = websocket.app.state.settings
        channel: BroadcastChannel = websocket.app.state.channel
        connection = WebSocketConnection(websocket)

        channel.subscribe(connection)
        try:
            await connection.accept()
            logger.info(f"Client connected: {connection.connection_id}")
            while True:
                message = await asyncio.wait_for(
                    websocket.receive(),
                    timeout=settings.ws_idle_timeout_seconds,
                )
                if message["type"] == "websocket.disconnect":
                    break
                payload = message.get("text")
                if payload is None:
                    payload = message.get("bytes")
                if payload is None:
                    continue
                logger.debug(f"Relaying from {connection.connection_id}: {payload!r}")
                channel.publish(payload, exclude=connection)
        except asyncio.TimeoutError:
            logger.info(f"Closing idle client {connection.connection_id}")
            await connection.close(code=1001)
        finally:
            channel.unsubscribe(connection)
            logger.info(f"Client disconnected: {connection.connection_id}")

    # -------------------------------------------------------------------------
    # STATIC ASSETS
    # -------------------------------------------------------------------------

    @app.get("/{file_path:path}", include_in_schema=False)
    async def static_asset(file_path: str, request: Request):
        settings: Settings = request.app.state.settings
        root = settings.public_dir.resolve()
        if file_path in ("", "/"):
            file_path = "index.html"

        target = (root / file_path.lstrip("/")).resolve()
        if target.is_relative_to(root) and target.is_file():
            return FileResponse(target)
        return PlainTextResponse("Not Found", status_code=404)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

def register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(RelayServiceError)
    async def relay_error_handler(request: Request, exc: RelayServiceError) -> JSONResponse:
        logger.warning(f"{request.method} {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(error=exc.error, detail=exc.message).model_dump(),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(error="Malformed Request", detail=f"invalid fields: {fields}").model_dump(),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all exception handler."""
        logger.exception(f"Unhandled exception: {exc}")
        settings: Settings = request.app.state.settings

        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": "Internal Server Error",
                "detail": str(exc) if settings.debug else "An unexpected error occurred",
            },
        )


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the relay application.

    Args:
        settings: Overrides the environment-derived settings (used by tests)
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        description=(
            "Always-on LAN service that stores the floor plan and customer "
            "orders and relays live order events to POS terminals."
        ),
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    register_routes(app)
    return app


# Initialize configuration and logging
setup_logging()
app = create_app()


def run() -> None:
    """Console entry point: serve the relay with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    run()
