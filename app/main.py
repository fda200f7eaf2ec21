"""FastAPI entrypoint for OpenAI-compatible relay to Raycast AI"""

from contextlib import asynccontextmanager
import logging
import os
import sys

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .routes_openai import router as openai_router
from .config import get_settings
from .errors import (
    INVALID_REQUEST,
    NOT_FOUND,
    GatewayError,
    error_response,
    map_gateway_error,
    map_generic_error,
)

# Configure logging
log_level = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Max-Age": "86400",
}


def _preview(body: bytes) -> str:
    text = body.decode("utf-8", errors="replace")
    max_len = get_settings().LOG_REQUEST_BODY_MAX_LENGTH
    if len(text) > max_len:
        text = text[:max_len] + "...(truncated)"
    return text


@asynccontextmanager
async def lifespan(app: FastAPI):
    # on startup
    logger.info("Starting Raycast relay")
    settings = get_settings()
    logger.info(
        "Env status: API_KEY=%s, ADVANCED=%s, INCLUDE_DEPRECATED=%s, RAYCAST_BEARER_TOKEN=%s",
        "set" if settings.API_KEY else "not set",
        settings.ADVANCED if settings.ADVANCED is not None else "default(true)",
        settings.INCLUDE_DEPRECATED if settings.INCLUDE_DEPRECATED is not None else "default(true)",
        "set" if settings.RAYCAST_BEARER_TOKEN else "MISSING",
    )

    # app.state.raycast_client is created lazily in routes
    yield
    # on shutdown
    logger.info("Shutting down relay")
    client = getattr(app.state, "raycast_client", None)
    if client:
        try:
            # Close underlying HTTP client to Raycast
            await client.close()
            logger.info("HTTP client closed successfully")
        except Exception as e:
            logger.error(f"Error closing HTTP client: {e}")

app = FastAPI(
    title="Raycast relay",
    version="0.1.0",
    description="OpenAI-compatible endpoints backed by Raycast AI",
    lifespan=lifespan,
)

# Preflight for every path, CORS origin on every response, request logging
@app.middleware("http")
async def cors_and_logging_middleware(request: Request, call_next):
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=CORS_HEADERS)

    if logger.isEnabledFor(logging.DEBUG) and request.method == "POST":
        # Redact sensitive headers
        headers = {k.lower(): v for k, v in request.headers.items()}
        if "authorization" in headers:
            parts = (headers["authorization"] or "").split()
            headers["authorization"] = (parts[0] + " ****") if len(parts) > 1 else "****"
        if "cookie" in headers:
            headers["cookie"] = "<redacted>"
        logger.debug(
            "Incoming POST %s - headers=%s body=%s",
            request.url.path,
            headers,
            _preview(await request.body()),
        )
    else:
        logger.info("Incoming %s %s", request.method, request.url.path)

    response = await call_next(request)
    if "access-control-allow-origin" not in response.headers:
        response.headers["Access-Control-Allow-Origin"] = "*"

    logger.info("Response for %s %s - status=%s", request.method, request.url.path, response.status_code)
    return response


@app.exception_handler(GatewayError)
async def handle_gateway_error(request: Request, exc: GatewayError):
    return map_gateway_error(exc)


# Malformed bodies are reported as OpenAI-style 400s
@app.exception_handler(RequestValidationError)
async def handle_validation_exception(request: Request, exc: RequestValidationError):
    try:
        body_preview = _preview(await request.body())
    except Exception:
        body_preview = "<unavailable>"

    logger.warning(
        "Validation error on %s %s: errors=%s body=%s",
        request.method,
        str(request.url),
        exc.errors(),
        body_preview,
    )
    return error_response("Missing or invalid request body", INVALID_REQUEST, 400)


@app.exception_handler(StarletteHTTPException)
async def handle_http_exception(request: Request, exc: StarletteHTTPException):
    if exc.status_code in (404, 405):
        return error_response("Not Found", NOT_FOUND, 404)
    return error_response(str(exc.detail), INVALID_REQUEST, exc.status_code)


@app.exception_handler(Exception)
async def handle_unexpected_exception(request: Request, exc: Exception):
    return map_generic_error(exc)


app.include_router(openai_router)

@app.get("/health")
async def health():
    return {"status": "ok"}

def main():
    """Entry point for the application"""
    import uvicorn
    settings = get_settings()
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)

if __name__ == "__main__":
    main()
