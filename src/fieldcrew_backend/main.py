from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from .broadcaster import LiveBroadcaster
from .configuration import Settings, load_settings
from .database import Database, EntityStore
from .entities import EntityKind, configure_kinds
from .entity_service import EntityService
from .errors import EntityNotFoundError, PersistenceError
from .event_log import build_publisher
from .fanout import FanoutDispatcher
from .models import EntityKindInfo, MessageResponse

logger = logging.getLogger(__name__)


def build_entity_router(kind: EntityKind) -> APIRouter:
    """Mount the five CRUD routes for one entity kind under ``/{kind.path}``."""
    router = APIRouter(prefix=f"/{kind.path}", tags=[kind.path])

    def get_service(request: Request) -> EntityService:
        return request.app.state.services[kind.name]

    @router.get("", name=f"list_{kind.name}")
    def list_entities(service: EntityService = Depends(get_service)) -> List[Dict[str, Any]]:
        return service.list()

    @router.get("/{entity_id}", name=f"get_{kind.name}")
    def get_entity(entity_id: int, service: EntityService = Depends(get_service)) -> Dict[str, Any]:
        return service.get(entity_id)

    @router.post("", status_code=201, name=f"create_{kind.name}")
    def create_entity(
        attributes: Dict[str, Any] = Body(...),
        service: EntityService = Depends(get_service),
    ) -> Dict[str, Any]:
        return service.create(attributes)

    @router.put("/{entity_id}", name=f"update_{kind.name}")
    def update_entity(
        entity_id: int,
        attributes: Dict[str, Any] = Body(...),
        service: EntityService = Depends(get_service),
    ) -> Dict[str, Any]:
        return service.update(entity_id, attributes)

    @router.delete("/{entity_id}", response_model=MessageResponse, name=f"delete_{kind.name}")
    def delete_entity(entity_id: int, service: EntityService = Depends(get_service)) -> MessageResponse:
        return service.delete(entity_id)

    return router


def create_app(
    settings: Optional[Settings] = None,
    *,
    publisher: Any = None,
    broadcaster: Optional[LiveBroadcaster] = None,
) -> FastAPI:
    """
    Build the API with its shared handles.

    The database, event publisher, live broadcaster and fan-out dispatcher are
    created once here and shared by every entity service. Pass ``publisher``
    or ``broadcaster`` to substitute stand-ins (tests, local runs).
    """
    settings = settings or load_settings()
    kinds = configure_kinds(settings.broadcast)

    database = Database(settings.database_path, timeout=settings.database_timeout)
    database.init_schema(kinds)

    broadcaster = broadcaster or LiveBroadcaster()
    dispatcher = FanoutDispatcher(
        publisher if publisher is not None else build_publisher(settings),
        broadcaster,
        max_workers=settings.fanout_max_workers,
    )

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        await asyncio.to_thread(dispatcher.drain, 10)
        dispatcher.shutdown(wait=False)

    app = FastAPI(title="FieldCrew API", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.kinds = kinds
    app.state.database = database
    app.state.broadcaster = broadcaster
    app.state.dispatcher = dispatcher
    app.state.services = {
        kind.name: EntityService(kind, EntityStore(database, kind), dispatcher) for kind in kinds
    }

    @app.exception_handler(EntityNotFoundError)
    async def handle_not_found(_request: Request, exc: EntityNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"message": str(exc)})

    @app.exception_handler(PersistenceError)
    async def handle_persistence_error(request: Request, exc: PersistenceError) -> JSONResponse:
        logger.error(f"Persistence failure on {request.method} {request.url.path}: {exc}", exc_info=exc)
        return JSONResponse(status_code=500, content={"message": "Server error"})

    @app.get("/", response_class=PlainTextResponse)
    def alive() -> str:
        return "I am alive!"

    @app.get("/healthz")
    def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/config/entities", response_model=List[EntityKindInfo])
    def list_entity_kinds() -> List[EntityKindInfo]:
        return [kind.to_info() for kind in kinds]

    @app.websocket("/ws")
    async def live_updates(websocket: WebSocket) -> None:
        await broadcaster.connect(websocket)
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            broadcaster.disconnect(websocket)

    for kind in kinds:
        app.include_router(build_entity_router(kind))

    return app


app = create_app()


def run() -> None:
    """Serve the API with uvicorn on the configured host and port."""
    import uvicorn

    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run("fieldcrew_backend.main:app", host=settings.host, port=settings.port)
