"""
Shared pytest configuration.

Puts the project root on sys.path so that `import app` works, and provides a
fake Raycast backend built on httpx.MockTransport.
"""

import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
import pytest
import pytest_asyncio


# Ensure project root is importable for test modules.
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app.catalog import ModelCatalog  # noqa: E402
from app.config import get_settings  # noqa: E402
from app.raycast_client import RaycastApiClient  # noqa: E402


ENV_VARS = (
    "API_KEY",
    "ADVANCED",
    "INCLUDE_DEPRECATED",
    "DEFAULT_MODEL_ID",
    "MODEL_FALLBACK",
    "MODELS_CACHE_TTL",
    "RAYCAST_BASE_URL",
    "RAYCAST_BEARER_TOKEN",
)


def raw_model(model_id: str, provider: str = "openai", model: Optional[str] = None,
              premium: bool = False, availability: str = "public") -> Dict[str, Any]:
    return {
        "id": model_id,
        "model": model or model_id.split("-", 1)[-1],
        "name": model_id,
        "provider": provider,
        "requires_better_ai": premium,
        "availability": availability,
    }


def sse_lines(*events: Dict[str, Any]) -> List[bytes]:
    return [f"data: {json.dumps(e)}\n".encode("utf-8") for e in events]


class FakeRaycast:
    """Minimal Raycast backend: models listing plus a scripted chat stream."""

    def __init__(self) -> None:
        self.models: List[Dict[str, Any]] = [
            raw_model("openai-gpt-4o-mini", model="gpt-4o-mini"),
            raw_model("anthropic-claude-sonnet", provider="anthropic", model="claude-sonnet", premium=True),
        ]
        self.models_status = 200
        self.models_body: Optional[Any] = None
        self.chat_status = 200
        self.chat_error_body = b'{"error": "upstream secret detail"}'
        self.chat_chunks: List[bytes] = sse_lines(
            {"text": "Hel"},
            {"text": "lo"},
            {"finish_reason": "stop"},
        )
        self.requests: List[httpx.Request] = []

    async def _stream(self):
        for chunk in self.chat_chunks:
            yield chunk

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith("/api/v1/ai/models"):
            body = self.models_body if self.models_body is not None else {
                "models": self.models,
                "default_models": {"chat": "openai-gpt-4o-mini"},
            }
            return httpx.Response(self.models_status, json=body)
        if request.url.path.endswith("/api/v1/ai/chat_completions"):
            if self.chat_status != 200:
                return httpx.Response(self.chat_status, content=self.chat_error_body)
            return httpx.Response(
                200,
                headers={"content-type": "text/event-stream"},
                content=self._stream(),
            )
        return httpx.Response(404)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def chat_payloads(self) -> List[Dict[str, Any]]:
        return [
            json.loads(r.content)
            for r in self.requests
            if r.url.path.endswith("/api/v1/ai/chat_completions")
        ]


@pytest.fixture
def env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("RAYCAST_BEARER_TOKEN", "test-token")
    get_settings.cache_clear()
    yield monkeypatch
    get_settings.cache_clear()


@pytest.fixture
def vendor() -> FakeRaycast:
    return FakeRaycast()


@pytest_asyncio.fixture
async def raycast(env, vendor):
    client = RaycastApiClient(transport=vendor.transport)
    yield client
    await client.close()


@pytest_asyncio.fixture
async def gateway(env, vendor):
    from app.main import app

    client = RaycastApiClient(transport=vendor.transport)
    app.state.raycast_client = client
    app.state.model_catalog = ModelCatalog()
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
        yield http
    await client.close()
    app.state.raycast_client = None
    app.state.model_catalog = None
