"""Async HTTP client for Raycast AI: model listing and SSE chat stream."""

import json
import logging
from typing import Optional, Dict, Any

import httpx

from .config import get_settings, Settings
from .raycast_models import RaycastChatRequest, ApiError

logger = logging.getLogger(__name__)

MODELS_PATH = "/api/v1/ai/models"
CHAT_PATH = "/api/v1/ai/chat_completions"


def _redact(headers: Dict[str, str]) -> Dict[str, str]:
    return {k: ("****" if k.lower() == "authorization" else v) for k, v in headers.items()}


class RaycastApiClient:
    """Client to interact with Raycast AI backend."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings: Settings = settings or get_settings()
        self.base_url = self.settings.RAYCAST_BASE_URL.rstrip("/")

        # Use infinite read timeout for SSE, while keeping bounded connect/write/pool timeouts
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=self.settings.RAYCAST_TIMEOUT,
                read=None,
                write=self.settings.RAYCAST_TIMEOUT,
                pool=self.settings.RAYCAST_TIMEOUT,
            ),
            headers=self._headers(),
            transport=transport,
        )

    def _headers(self) -> Dict[str, str]:
        return {
            "Host": httpx.URL(self.base_url).host,
            "Accept": "application/json",
            "User-Agent": self.settings.RAYCAST_USER_AGENT,
            "Authorization": f"Bearer {self.settings.RAYCAST_BEARER_TOKEN or ''}",
            "Accept-Language": "en-US,en;q=0.9",
            "Content-Type": "application/json",
            "Connection": "close",
        }

    async def fetch_models(self) -> Dict[str, Any]:
        """GET the raw models listing. Raises ApiError on non-200 or transport failure."""
        url = f"{self.base_url}{MODELS_PATH}"
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Fetching models from %s - headers=%s", url, _redact(dict(self.client.headers)))

        try:
            resp = await self.client.get(url)
        except httpx.RequestError as e:
            raise ApiError(f"Network error fetching models: {str(e)}")

        if resp.status_code != 200:
            logger.error("Raycast models API error (%s): %s", resp.status_code, resp.text)
            raise ApiError(f"Raycast API error: {resp.status_code}", resp.status_code)

        try:
            return resp.json()
        except ValueError as e:
            raise ApiError(f"Invalid JSON from models endpoint: {str(e)}", resp.status_code)

    async def open_chat_stream(self, request_data: RaycastChatRequest) -> httpx.Response:
        """
        POST a chat request and return the open streaming response.

        The status is checked before anything is read from the body, so a failed
        upstream call surfaces as ApiError and no partial stream ever starts.
        The caller owns the returned response and must close it.
        """
        url = f"{self.base_url}{CHAT_PATH}"
        payload = request_data.model_dump()

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Sending chat request to upstream %s - headers=%s payload=%s",
                url,
                _redact(dict(self.client.headers)),
                json.dumps(payload, ensure_ascii=False),
            )
        else:
            logger.info(
                "Sending chat request to upstream - provider=%s model=%s thread_id=%s",
                request_data.provider,
                request_data.model,
                request_data.thread_id,
            )

        try:
            request = self.client.build_request("POST", url, json=payload)
            response = await self.client.send(request, stream=True)
        except httpx.RequestError as e:
            raise ApiError(f"Network error sending message: {str(e)}")

        logger.info("Raycast API response status: %s", response.status_code)
        if not response.is_success:
            try:
                body = await response.aread()
                # Logged only; the caller never sees the upstream body
                logger.error("Raycast API error response body: %s", body.decode("utf-8", errors="replace"))
            except httpx.HTTPError as e:
                logger.warning("Could not read Raycast error body: %s", e)
            finally:
                await response.aclose()
            raise ApiError(f"Raycast API error ({response.status_code})", response.status_code)

        return response

    async def close(self):
        """Close underlying HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
