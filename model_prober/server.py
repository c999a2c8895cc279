"""Model Prober - FastAPI application.

Exposes the model listing and streams probe runs as server-sent events,
one event per result snapshot.
"""

import json
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse
from loguru import logger
from pydantic import BaseModel

from model_prober import __version__
from model_prober.errors import PreconditionError, require_credential
from model_prober.models import ModelListing
from model_prober.prober import ModelProber, list_models


class ModelsRequest(BaseModel):
    """Request body for listing models."""

    api_key: str


class ProbeRequest(BaseModel):
    """Request body for a probe run.

    ``models`` restricts the run to the given ids; when omitted the
    provider listing is probed, or the built-in catalog if that is empty.
    """

    api_key: str
    models: list[str] | None = None


router = APIRouter(prefix="/api", tags=["probe"])


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.post("/models", response_model=ModelListing)
async def get_models(body: ModelsRequest) -> ModelListing:
    """List the models visible to the given key."""
    return await list_models(body.api_key)


@router.post("/probe")
async def probe_models(body: ProbeRequest):
    """Probe models one at a time (SSE stream).

    Each event carries a result snapshot; a ``testing`` snapshot is
    replaced by the terminal snapshot with the same index. The stream
    ends with the run outcome and a ``[DONE]`` marker.
    """
    require_credential(body.api_key)

    async def generate():
        async with ModelProber(body.api_key) as prober:
            run = None
            async for run in prober.run(body.models):
                yield run.results[-1].to_sse()
            outcome = run.outcome.value if run and run.outcome else None
            yield f"data: {json.dumps({'outcome': outcome})}\n\n"
        yield "data: [DONE]\n\n"

    return StreamingResponse(
        generate(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )


async def precondition_error_handler(request: Request, exc: PreconditionError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"title": "Bad Request", "status": 400, "detail": exc.message},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    from model_prober.logging_config import intercept_standard_logging, setup_logging

    setup_logging()
    intercept_standard_logging()
    logger.info(f"Model Prober API v{__version__} ready")
    yield
    logger.info("Model Prober API shutting down")


def create_app() -> FastAPI:
    application = FastAPI(
        title="Model Prober",
        description="Check which provider models respond under an API key",
        version=__version__,
        lifespan=lifespan,
    )
    application.include_router(router)
    application.add_exception_handler(PreconditionError, precondition_error_handler)
    return application


app = create_app()
