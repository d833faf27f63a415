from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

RUNNING_HEALTH = "running"


class ChatMessage(BaseModel):
    """Chat completion message payload.

    Attributes:
        role: Message author role, usually "system", "user" or "assistant".
        content: Message text content.
    """

    model_config = ConfigDict(frozen=True)

    role: str
    content: str


class ChatCompletionRequest(BaseModel):
    model: str
    messages: list[ChatMessage]
    temperature: float | None = None

    def encode(self) -> bytes:
        """Serialize the request body, leaving out unset optional fields."""
        return self.model_dump_json(exclude_none=True).encode("utf-8")


class ChatCompletionStreamRequest(ChatCompletionRequest):
    stream: Literal[True] = True


class ChatChoice(BaseModel):
    index: int | None = None
    message: ChatMessage


class ChatCompletionResponse(BaseModel):
    id: str | None = None
    object: str | None = None
    created: int | None = None
    model: str | None = None
    choices: list[ChatChoice]

    @property
    def content(self) -> str | None:
        """First choice content stripped of surrounding whitespace, if any."""
        if not self.choices:
            return None
        return self.choices[0].message.content.strip()


class ChunkDelta(BaseModel):
    role: str | None = None
    content: str | None = None


class ChunkChoice(BaseModel):
    index: int | None = None
    delta: ChunkDelta
    finish_reason: str | None = None


class ChatCompletionChunk(BaseModel):
    """One decoded `data:` event of a streamed chat completion."""

    id: str | None = None
    object: str | None = None
    created: int | None = None
    model: str | None = None
    choices: list[ChunkChoice]

    @property
    def delta_content(self) -> str | None:
        if not self.choices:
            return None
        return self.choices[0].delta.content


class OsaurusModel(BaseModel):
    """A model advertised by the server's `/v1/models` endpoint."""

    model_config = ConfigDict(frozen=True)

    id: str
    object: str | None = None
    created: int | None = None
    owned_by: str | None = None

    @property
    def display_name(self) -> str:
        return (
            self.id.replace("llama-", "Llama ")
            .replace("-", " ")
            .replace("instruct", "Instruct")
            .replace("4bit", "(4-bit)")
            .replace("8bit", "(8-bit)")
            .replace("fp16", "(FP16)")
        )


class ModelsResponse(BaseModel):
    object: str | None = None
    data: list[OsaurusModel]


class SharedConfiguration(BaseModel):
    """Per-instance descriptor written by the Osaurus server to `configuration.json`."""

    model_config = ConfigDict(populate_by_name=True)

    instance_id: str = Field(alias="instanceId")
    updated_at: str = Field(alias="updatedAt")
    health: str
    port: int | None = None
    address: str | None = None
    url: str | None = None
    expose_to_network: bool | None = Field(default=None, alias="exposeToNetwork")

    @property
    def is_eligible(self) -> bool:
        """Whether this descriptor can be selected as a discovery candidate."""
        return self.health == RUNNING_HEALTH and self.address is not None and self.port is not None


@dataclass(frozen=True)
class OsaurusInstance:
    """A running server instance selected by discovery."""

    instance_id: str
    updated_at: datetime
    address: str
    port: int
    url: str
    expose_to_network: bool = False
