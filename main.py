"""Staffing Campaigns API: FastAPI front for the CRM add-on.

Routes:
  GET    /health                 Health check
  GET|POST .../web/<function>    API function call (see api.API)
  *      anything else           Single-page app from SPA_BUILD_DIR

API functions always answer 200 with their own success/error fields; only
routing problems (unknown function, wrong method) get other status codes.
"""

import json
import logging
import os
import re
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse
from starlette.concurrency import run_in_threadpool

from api import API, default_services
from db import init_db

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SPA_BUILD_DIR = Path(os.environ.get("SPA_BUILD_DIR", "build")).resolve()
SPA_PREFIX = "/web/ai"

CONTENT_TYPES = {
    "js": "application/javascript",
    "css": "text/css",
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "ico": "image/x-icon",
    "svg": "image/svg+xml",
    "woff": "font/woff",
    "woff2": "font/woff2",
    "ttf": "font/ttf",
    "eot": "application/vnd.ms-fontobject",
}
ASSET_PATTERN = re.compile(r"\.(%s)$" % "|".join(CONTENT_TYPES), re.IGNORECASE)

app = FastAPI(title="Staffing Campaigns API", version="1.0.0")
app.state.services = default_services()


def error_envelope(exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=200,
        content={"success": False, "error": "exception", "message": str(exc)},
    )


@app.exception_handler(Exception)
async def unhandled_exception(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.url.path}")
    return error_envelope(exc)


@app.on_event("startup")
def startup():
    try:
        init_db()
        logger.info("Campaign tables initialized")
    except Exception as e:
        logger.error(f"Database init failed (tables must already exist): {e}")


@app.get("/health")
def health():
    return {"status": "ok"}


def path_segments(path: str) -> list[str]:
    return [part for part in path.split("/") if part]


def find_api_function(parts: list[str]):
    """Last 'web' segment followed by a known function name, if any."""
    for i in range(len(parts) - 2, -1, -1):
        if parts[i] == "web" and parts[i + 1] in API:
            return parts[i + 1]
    return None


def is_app_root(parts: list[str]) -> bool:
    return not parts or parts == ["web", "ai"]


async def read_params(request: Request) -> dict:
    if request.method != "POST":
        return dict(request.query_params)
    body = await request.body()
    try:
        decoded = json.loads(body) if body else {}
    except ValueError:
        return {}
    return decoded if isinstance(decoded, dict) else {}


def serve_spa(path: str):
    if ASSET_PATTERN.search(path):
        relative = re.sub(r"^%s" % re.escape(SPA_PREFIX), "", path).lstrip("/")
        candidate = (SPA_BUILD_DIR / relative).resolve()
        if candidate.is_file() and SPA_BUILD_DIR in candidate.parents:
            media_type = CONTENT_TYPES.get(candidate.suffix.lstrip(".").lower())
            return FileResponse(candidate, media_type=media_type)

    index_file = SPA_BUILD_DIR / "index.html"
    if index_file.is_file():
        return FileResponse(index_file, media_type="text/html")
    return PlainTextResponse(
        "Build files not found. Please run 'npm run build' in the frontend folder.",
        status_code=404,
    )


async def call_function(name: str, request: Request):
    config = API[name]
    if request.method not in config["method"]:
        return JSONResponse(status_code=405, content={"error": "Method not allowed"})

    params = await read_params(request)
    if "debug" in request.query_params:
        params.setdefault("debug", request.query_params["debug"])

    try:
        result = await run_in_threadpool(config["handler"], request.app.state.services, params)
    except Exception as e:
        logger.exception(f"API function {name} failed")
        return error_envelope(e)
    return JSONResponse(status_code=200, content=jsonable_encoder(result))


@app.api_route("/{full_path:path}", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
async def dispatch(request: Request, full_path: str):
    path = request.url.path
    parts = path_segments(path)

    if not is_app_root(parts):
        name = find_api_function(parts)
        if name is not None:
            return await call_function(name, request)
        if request.method == "POST" and len(parts) >= 2 and parts[-2] == "web":
            return JSONResponse(status_code=404, content={"error": "Unknown function"})

    return serve_spa(path)
