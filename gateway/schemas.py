"""Request/response models — the contract between the gateway and clients."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_CHAT_MODEL = "openai/gpt-4o-mini"


class ChatMessage(BaseModel):
    """A caller-supplied conversation turn. Callers never send the system turn."""

    role: Literal["user", "assistant"]
    content: str = Field(min_length=1, max_length=50_000)


class ChatTurn(BaseModel):
    """A turn as sent to the inference provider, system turn included."""

    role: Literal["user", "assistant", "system"]
    content: str


class ChatRequest(BaseModel):
    """Body of POST /agents/{agent}/chat."""

    messages: list[ChatMessage] = Field(min_length=1, max_length=50)


class GenericChatRequest(BaseModel):
    """Body of the paid POST /api/v1/chat route.

    The persona becomes the system prompt. ``price`` is what the caller
    offers per call; the payment gate clamps it to the configured floor.
    """

    persona: str = Field(min_length=1, max_length=5_000)
    messages: list[ChatMessage] = Field(min_length=1, max_length=50)
    model: str = DEFAULT_CHAT_MODEL
    price: str = Field("0.01", pattern=r"^\d+\.?\d*$")


class SummarizeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str = Field(min_length=1, max_length=50_000)
    max_length: int = Field(500, ge=50, le=2_000, alias="maxLength")


class AuditRequest(BaseModel):
    code: str = Field(min_length=1, max_length=100_000)
    language: str = "auto"


class ExecuteRequest(BaseModel):
    task: str = Field(min_length=1, max_length=5_000)
