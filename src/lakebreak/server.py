"""
HTTP surface for the pipeline.

    GET  /api/lakeTemp               -> ingest a wide CSV from disk
    POST /api/preprocessTimeSeries   -> smooth + difference raw series
    POST /api/detectMutation         -> one mutation point per series

Run with:  uvicorn lakebreak.server:app
"""

import json
import logging
import os
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from starlette.responses import JSONResponse

from . import __version__
from .api import handle_detect, handle_ingest, handle_preprocess

DATA_DIR_ENV = 'LAKEBREAK_DATA_DIR'


class _DefaultRequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = "-"
        return True


def _configure_logging() -> logging.Logger:
    logger = logging.getLogger("lakebreak")
    logger.setLevel(logging.INFO)
    logger.propagate = False

    # Avoid duplicate handlers (e.g. reload/test runner).
    for handler in list(logger.handlers):
        if getattr(handler, "_lakebreak", False):
            logger.removeHandler(handler)

    formatter = logging.Formatter(
        fmt="%(asctime)s %(levelname)s [%(name)s] [request_id=%(request_id)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(logging.INFO)
    stream_handler.setFormatter(formatter)
    stream_handler.addFilter(_DefaultRequestIdFilter())
    stream_handler._lakebreak = True
    logger.addHandler(stream_handler)

    return logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = _configure_logging()
    data_dir = Path(os.environ.get(DATA_DIR_ENV, os.getcwd()))

    app.state.logger = logger
    app.state.data_dir = data_dir
    logger.info("backend_start data_dir=%s", data_dir)

    yield


app = FastAPI(
    title="lakebreak API",
    description="Mutation-point detection for lake temperature series",
    version=__version__,
    lifespan=lifespan,
)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    logger = logging.getLogger("lakebreak.server")
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    start = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        duration_ms = (time.perf_counter() - start) * 1000
        logger.exception(
            "request_unhandled_exception %s %s (%.2f ms)",
            request.method, request.url.path, duration_ms,
            extra={"request_id": request_id},
        )
        response = JSONResponse(
            status_code=500,
            content={"detail": "Internal Server Error", "request_id": request_id},
        )

    duration_ms = (time.perf_counter() - start) * 1000
    response.headers["X-Request-ID"] = request_id

    logger.info(
        "request %s %s status=%s (%.2f ms)",
        request.method, request.url.path, getattr(response, "status_code", None), duration_ms,
        extra={"request_id": request_id},
    )
    return response


async def _read_json(request: Request, key: str):
    """Decode the body, or return a 400 response."""
    try:
        return await request.json(), None
    except (json.JSONDecodeError, UnicodeDecodeError) as err:
        return None, JSONResponse(
            status_code=400,
            content={key: [], "error": "Failed to parse request body", "detail": str(err)},
        )


def _data_dir(request: Request) -> Path:
    return getattr(request.app.state, "data_dir", None) or Path(
        os.environ.get(DATA_DIR_ENV, os.getcwd()))


@app.get("/api/lakeTemp")
async def lake_temp(request: Request):
    """Ingest the wide CSV named by csvPath."""
    status, body = handle_ingest(dict(request.query_params), base_dir=_data_dir(request))
    return JSONResponse(status_code=status, content=body)


@app.post("/api/preprocessTimeSeries")
async def preprocess_time_series(request: Request):
    """Smooth and difference the posted raw series."""
    body, error = await _read_json(request, "processedSeries")
    if error is not None:
        return error
    status, content = handle_preprocess(body, dict(request.query_params))
    return JSONResponse(status_code=status, content=content)


@app.post("/api/detectMutation")
async def detect_mutation(request: Request):
    """Detect one mutation point per posted processed series."""
    body, error = await _read_json(request, "mutationPoints")
    if error is not None:
        return error
    status, content = handle_detect(body, dict(request.query_params))
    return JSONResponse(status_code=status, content=content)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "version": __version__}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "lakebreak.server:app",
        host="0.0.0.0",
        port=8000,
        reload=False,
        log_level="info",
    )
