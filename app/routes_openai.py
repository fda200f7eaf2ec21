import logging
from typing import Dict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from .assembler import build_completion, build_model_list, new_completion_id
from .catalog import ModelCatalog, resolve_provider_info
from .config import Settings, get_settings, check_gateway_api_key
from .errors import (
    AUTHENTICATION,
    INVALID_REQUEST,
    SERVER_ERROR,
    GatewayError,
    error_response,
    map_api_error,
    map_generic_error,
)
from .openai_models import ChatCompletionsRequest, ModelList
from .raycast_client import RaycastApiClient
from .raycast_models import ApiError, ModelEntry
from .streaming import collect_completion_text, iter_chat_events, openai_stream_from_upstream
from .translation import DEFAULT_TEMPERATURE, build_chat_request

logger = logging.getLogger(__name__)


def _get_client(req: Request) -> RaycastApiClient:
    client = getattr(req.app.state, "raycast_client", None)
    if client is None:
        client = RaycastApiClient()
        req.app.state.raycast_client = client
    return client


def _get_catalog(req: Request) -> ModelCatalog:
    catalog = getattr(req.app.state, "model_catalog", None)
    if catalog is None:
        catalog = ModelCatalog(ttl=get_settings().MODELS_CACHE_TTL)
        req.app.state.model_catalog = catalog
    return catalog


def require_gateway_access(request: Request, settings: Settings = Depends(get_settings)) -> None:
    """Runs before the body is validated: credential config first, then the caller's key."""
    if not settings.RAYCAST_BEARER_TOKEN:
        logger.error("RAYCAST_BEARER_TOKEN is not configured.")
        raise GatewayError("Server configuration error: Missing Raycast credentials", SERVER_ERROR, 500)

    if not check_gateway_api_key(request.headers.get("authorization"), settings):
        logger.info("Failed API Key validation for %s %s", request.method, request.url.path)
        raise GatewayError("Invalid API key provided.", AUTHENTICATION, 401)


router = APIRouter(dependencies=[Depends(require_gateway_access)])


async def _load_catalog(request: Request, settings: Settings) -> Dict[str, ModelEntry]:
    return await _get_catalog(request).resolve(_get_client(request), settings)


@router.get("/v1/models", response_model=ModelList)
async def list_models(request: Request, settings: Settings = Depends(get_settings)):
    try:
        catalog = await _load_catalog(request, settings)
        return build_model_list(catalog)
    except Exception as e:
        return map_generic_error(e)


@router.post("/v1/chat/completions")
async def chat_completions(
    request: Request,
    body: ChatCompletionsRequest,
    settings: Settings = Depends(get_settings),
):
    if not body.messages:
        return error_response("Missing or invalid 'messages' field", INVALID_REQUEST, 400)

    model_id = body.model or settings.DEFAULT_MODEL_ID
    temperature = body.temperature if body.temperature is not None else DEFAULT_TEMPERATURE

    try:
        catalog = await _load_catalog(request, settings)
        if not catalog:
            return error_response("No models available. Check server configuration.", SERVER_ERROR, 500)

        if model_id not in catalog and not settings.MODEL_FALLBACK:
            logger.warning("Requested model \"%s\" unavailable/filtered.", model_id)
            return error_response(
                f'Model "{model_id}" not available. Default model: {settings.DEFAULT_MODEL_ID}',
                INVALID_REQUEST,
                400,
            )
        entry = resolve_provider_info(model_id, catalog)

        logger.info(
            "Relaying request for %s to Raycast %s/%s",
            model_id, entry.provider, entry.internal_model,
        )

        raycast_request = build_chat_request(entry, body.messages, temperature)
        upstream = await _get_client(request).open_chat_stream(raycast_request)
        events = iter_chat_events(upstream)

        if body.stream:
            # Handed over directly so a client disconnect closes the upstream reader too
            stream = openai_stream_from_upstream(
                model=model_id,
                events=events,
                request_id=new_completion_id(),
            )
            headers = {
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
            }
            return StreamingResponse(
                stream,
                media_type="text/event-stream",
                headers=headers,
            )

        # Non-stream path
        final_text = await collect_completion_text(events)
        return build_completion(model=model_id, content=final_text)

    except ApiError as e:
        return map_api_error(e)
    except Exception as e:
        return map_generic_error(e)
