"""Build OpenAI-schema objects from reassembled Raycast output."""

import json
import time
import uuid
from typing import Any, Dict, Mapping, Optional

from .openai_models import (
    ChatChoice,
    ChatCompletion,
    ChatMessageResponse,
    ModelData,
    ModelList,
    Usage,
)
from .raycast_models import ModelEntry


def new_completion_id() -> str:
    return f"chatcmpl-{uuid.uuid4().hex}"


def build_chunk(
    chunk_id: str,
    model: str,
    created: int,
    content: Optional[str] = None,
    finish_reason: Optional[str] = None,
) -> Dict[str, Any]:
    delta: Dict[str, Any] = {}
    if content is not None:
        delta["content"] = content

    return {
        "id": chunk_id,
        "object": "chat.completion.chunk",
        "created": created,
        "model": model,
        "choices": [
            {
                "index": 0,
                "delta": delta,
                "finish_reason": finish_reason,
            }
        ],
    }


def sse_encode(obj: Dict[str, Any]) -> bytes:
    return f"data: {json.dumps(obj, ensure_ascii=False)}\n\n".encode("utf-8")


def sse_done() -> bytes:
    return b"data: [DONE]\n\n"


def build_completion(model: str, content: str, completion_id: Optional[str] = None) -> ChatCompletion:
    """
    Wrap the aggregated text into a chat.completion object.

    Raycast reports neither usage nor a per-response stop reason, so usage is
    zeroed and finish_reason is always "stop".
    """
    return ChatCompletion(
        id=completion_id or new_completion_id(),
        created=int(time.time()),
        model=model,
        choices=[
            ChatChoice(
                index=0,
                message=ChatMessageResponse(content=content),
                finish_reason="stop",
            )
        ],
        usage=Usage(),
    )


def build_model_list(catalog: Mapping[str, ModelEntry]) -> ModelList:
    created = int(time.time())
    return ModelList(
        data=[
            ModelData(id=public_id, created=created, owned_by=entry.provider)
            for public_id, entry in catalog.items()
        ],
    )
