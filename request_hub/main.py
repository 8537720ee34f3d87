from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from request_hub.api.routers.notifications import router as notifications_router
from request_hub.api.routers.requests import router as requests_router
from request_hub.core.config import settings
from request_hub.core.logging import configure_logging
from request_hub.repositories.data_store import RevisionConflictError
from request_hub.services.container import sweep_scheduler

configure_logging()


@asynccontextmanager
async def lifespan(_: FastAPI):
    sweep_scheduler.start()
    try:
        yield
    finally:
        await sweep_scheduler.stop()


app = FastAPI(
    title=settings.app_name,
    version="1.0.0",
    description=(
        "Interdepartmental request tracking: acceptance, completion, rejection, "
        "expiry of finished items, and archival of pending projects."
    ),
    lifespan=lifespan,
)


@app.exception_handler(RevisionConflictError)
async def handle_revision_conflict(_request: Request, exc: RevisionConflictError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.get("/")
def health() -> dict[str, str]:
    return {"status": "ok", "service": settings.app_name}


app.include_router(requests_router)
app.include_router(notifications_router)
