# OpenAI-compatible schema models for chat completions API

from typing import List, Optional, Literal, Dict, Any, Union
from pydantic import BaseModel, Field

class ContentPart(BaseModel):
    # OpenAI content part (we only need 'text'; allow extras for forward-compat)
    type: Optional[str] = None
    text: Optional[str] = None
    model_config = {"extra": "allow"}

class ChatMessage(BaseModel):
    # Any role is accepted here; translation keeps system/user/assistant only
    role: str
    # Accept both string and array-of-parts per OpenAI SDKs
    content: Union[str, List[Union[str, ContentPart, Dict[str, Any]]], None] = None
    model_config = {"extra": "ignore"}

class ChatCompletionsRequest(BaseModel):
    # Open record: only the fields below are read, everything else is ignored
    model_config = {"extra": "ignore"}

    model: Optional[str] = None
    messages: List[ChatMessage] = Field(default_factory=list)
    stream: Optional[bool] = False
    temperature: Optional[float] = 0.5

class ChatMessageResponse(BaseModel):
    role: Literal["assistant"] = "assistant"
    content: str
    refusal: Optional[str] = None
    annotations: List[Any] = Field(default_factory=list)

class ChatChoice(BaseModel):
    index: int = 0
    message: ChatMessageResponse
    logprobs: Optional[Any] = None
    finish_reason: Optional[str] = None

class PromptTokensDetails(BaseModel):
    cached_tokens: int = 0
    audio_tokens: int = 0

class CompletionTokensDetails(BaseModel):
    reasoning_tokens: int = 0
    audio_tokens: int = 0
    accepted_prediction_tokens: int = 0
    rejected_prediction_tokens: int = 0

class Usage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    prompt_tokens_details: PromptTokensDetails = Field(default_factory=PromptTokensDetails)
    completion_tokens_details: CompletionTokensDetails = Field(default_factory=CompletionTokensDetails)

class ChatCompletion(BaseModel):
    id: str
    object: Literal["chat.completion"] = "chat.completion"
    created: int
    model: str
    choices: List[ChatChoice]
    usage: Usage = Field(default_factory=Usage)
    service_tier: str = "default"
    system_fingerprint: Optional[str] = None

class ModelData(BaseModel):
    id: str
    object: Literal["model"] = "model"
    created: int
    owned_by: str

class ModelList(BaseModel):
    object: Literal["list"] = "list"
    data: List[ModelData]
