"""Translate OpenAI chat requests into Raycast chat requests."""

from typing import Any, List, Sequence, Tuple

from .openai_models import ChatMessage
from .raycast_models import ModelEntry, RaycastChatRequest, RaycastMessage

DEFAULT_SYSTEM_INSTRUCTION = "markdown"
DEFAULT_TEMPERATURE = 0.5


def message_text(content: Any) -> str:
    """Convert OpenAI content (string or array-of-parts) into plain text."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: List[str] = []
        for item in content:
            if isinstance(item, str):
                parts.append(item)
            elif isinstance(item, dict):
                # OpenAI content part: prefer 'text'
                t = item.get("text")
                if isinstance(t, str):
                    parts.append(t)
            else:
                t = getattr(item, "text", None)
                if isinstance(t, str):
                    parts.append(t)
        return "\n".join([p for p in parts if p])
    # Fallback for unexpected types
    return str(content)


def convert_messages(messages: Sequence[ChatMessage]) -> Tuple[List[RaycastMessage], str]:
    """
    Map OpenAI messages to Raycast messages, extracting the leading system message.

    Only a system message at index 0 becomes the system instruction. User and
    assistant messages are kept in order; anything else is dropped.
    """
    system_instruction = DEFAULT_SYSTEM_INSTRUCTION
    raycast_messages: List[RaycastMessage] = []

    for index, msg in enumerate(messages):
        if msg.role == "system" and index == 0:
            system_instruction = message_text(msg.content)
        elif msg.role in ("user", "assistant"):
            raycast_messages.append(RaycastMessage.from_text(msg.role, message_text(msg.content)))

    return raycast_messages, system_instruction


def build_chat_request(
    entry: ModelEntry,
    messages: Sequence[ChatMessage],
    temperature: float = DEFAULT_TEMPERATURE,
) -> RaycastChatRequest:
    """Build the full Raycast request; thread_id is freshly generated each time."""
    raycast_messages, system_instruction = convert_messages(messages)
    return RaycastChatRequest(
        model=entry.internal_model,
        provider=entry.provider,
        messages=raycast_messages,
        system_instruction=system_instruction,
        temperature=temperature,
    )
