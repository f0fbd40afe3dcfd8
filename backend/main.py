import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from errors import BadInput, StorageFailure
from models import EventStore
from repo_events import EventRepo
from repo_memory import InMemoryEventRepo
from service_events import EventService
from settings import DEFAULT_BABY_NAMES, settings

logger = logging.getLogger(__name__)

PROFILE = {
    "id": "usr_mock_1",
    "name": "Baby Tracker User",
    "email": "user@example.com",
}


def configure_logging(level: str = settings.log_level) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_repo() -> EventStore:
    """Pick the event store from `settings.storage_backend`."""

    backend = settings.storage_backend.strip().lower()
    if backend == "memory":
        return InMemoryEventRepo()
    if backend == "postgres":
        return EventRepo(settings.db_url)
    raise ValueError(f"Unsupported STORAGE_BACKEND: {settings.storage_backend}")


async def bootstrap(repo: EventStore) -> None:
    """One-time startup work: schema and default babies.

    Kept out of the repository constructors so tests can skip it.
    """

    if settings.auto_migrate and hasattr(repo, "migrate"):
        await repo.migrate()
        logger.info("schema migration applied")
    if settings.seed_on_empty:
        inserted = await repo.seed_babies(DEFAULT_BABY_NAMES)
        if inserted:
            logger.info("seeded %d default babies", inserted)


def create_app(repo: Optional[EventStore] = None, run_bootstrap: bool = True) -> FastAPI:
    """Build the API around `repo` (or the configured store).

    Routes stay thin: they decode the request, call `EventService` and map
    its errors to status codes.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging()
        store = repo if repo is not None else build_repo()
        logger.info("using %s event store", type(store).__name__)
        if run_bootstrap:
            await bootstrap(store)
        app.state.service = EventService(store)
        yield

    app = FastAPI(title="Baby Tracker API", version="0.1.0", lifespan=lifespan)

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    def get_service(request: Request) -> EventService:
        return request.app.state.service

    @app.exception_handler(BadInput)
    async def bad_input(request: Request, exc: BadInput):
        logger.debug("rejected %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=400, content={"detail": exc.message, "field": exc.field}
        )

    @app.exception_handler(StorageFailure)
    async def storage_failure(request: Request, exc: StorageFailure):
        logger.error(
            "%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc
        )
        return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})

    @app.get("/healthz")
    async def healthz(svc: EventService = Depends(get_service)):
        try:
            await svc.health_check()
        except StorageFailure as e:
            logger.warning("health check failed: %s", e.__cause__ or e)
            return JSONResponse(status_code=503, content={"status": "unavailable"})
        return {"status": "ok"}

    @app.get("/v1/babies")
    async def list_babies(svc: EventService = Depends(get_service)):
        babies = await svc.list_babies()
        return {"data": [b.model_dump() for b in babies]}

    @app.get("/v1/babies/{baby_id}/weights")
    async def list_weights(baby_id: str, svc: EventService = Depends(get_service)):
        entries = await svc.list_weight_entries(baby_id)
        return {"data": [e.model_dump(mode="json") for e in entries]}

    @app.post("/v1/babies/{baby_id}/events", status_code=201)
    async def create_event(
        baby_id: str, request: Request, svc: EventService = Depends(get_service)
    ):
        body = await _json_object(request)
        # "type" is the historical wire name for the kind
        kind = body.get("kind", body.get("type"))
        event = await svc.create_event(baby_id, kind, body)
        return {"data": event.as_response()}

    @app.get("/v1/profile")
    async def profile():
        return PROFILE

    return app


async def _json_object(request: Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="invalid json body")
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="invalid json body")
    return body


app = create_app()


def run() -> None:
    configure_logging()
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
