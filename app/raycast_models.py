"""Pydantic models for Raycast AI API and gateway."""

import uuid
from typing import Optional, Any, Dict, List, Literal
from pydantic import BaseModel, Field


class RaycastMessageContent(BaseModel):
    """Inner content structure for message."""
    text: str


class RaycastMessage(BaseModel):
    """One conversation turn as Raycast expects it."""
    author: Literal["user", "assistant"]
    content: RaycastMessageContent

    @classmethod
    def from_text(cls, author: str, text: str) -> "RaycastMessage":
        return cls(author=author, content=RaycastMessageContent(text=text))


class RaycastTool(BaseModel):
    name: str
    type: str


class RaycastChatRequest(BaseModel):
    """Request body for the chat_completions endpoint."""
    model: str
    provider: str
    messages: List[RaycastMessage]
    system_instruction: str = "markdown"
    temperature: float = 0.5
    additional_system_instructions: str = ""
    debug: bool = False
    locale: str = "en-US"
    source: str = "ai_chat"
    thread_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    tools: List[RaycastTool] = Field(default_factory=list)


class RaycastSSEData(BaseModel):
    """Payload of one 'data:' line in the chat stream.

    finish_reason is None both when absent and when null; only a non-null
    value ends the stream.
    """
    text: Optional[str] = None
    finish_reason: Optional[str] = None
    model_config = {"extra": "allow"}

    @property
    def finished(self) -> bool:
        return self.finish_reason is not None


class RaycastRawModel(BaseModel):
    """Entry of the models listing as returned by Raycast."""
    id: str
    model: str
    provider: str
    name: Optional[str] = None
    requires_better_ai: Optional[bool] = False
    availability: Optional[str] = None
    model_config = {"extra": "allow"}

    @property
    def is_deprecated(self) -> bool:
        return self.availability == "deprecated"


class RaycastModelsResponse(BaseModel):
    """Response for the models listing."""
    # Entries are validated one by one when filtering
    models: List[Any]
    default_models: Optional[Dict[str, Any]] = None
    model_config = {"extra": "allow"}


class ModelEntry(BaseModel):
    """Resolved public model id with its Raycast provider and internal name."""
    public_id: str
    provider: str
    internal_model: str


class ApiError(Exception):
    """Raycast API error."""
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)
