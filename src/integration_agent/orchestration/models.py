"""Data models for the tool-calling loop."""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from .errors import OrchestrationError


class Role(str, Enum):
    """Conversation roles."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ToolCallRequest(BaseModel):
    """A tool invocation requested by the model."""

    id: str
    tool_name: str
    raw_arguments: str = ""


class Message(BaseModel):
    """One entry of the conversation."""

    role: Role
    content: str = ""
    tool_call_id: str | None = None
    tool_calls: list[ToolCallRequest] = Field(default_factory=list)

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str = "", tool_calls: list[ToolCallRequest] | None = None) -> "Message":
        return cls(role=Role.ASSISTANT, content=content, tool_calls=tool_calls or [])

    @classmethod
    def tool_result(cls, result: "ToolResult") -> "Message":
        return cls(role=Role.TOOL, content=result.content, tool_call_id=result.tool_call_id)

    def token_text(self) -> str:
        """Text counted against the token budget."""
        if not self.tool_calls:
            return self.content
        parts = [self.content] + [f"{call.tool_name}{call.raw_arguments}" for call in self.tool_calls]
        return "".join(parts)


class ToolResult(BaseModel):
    """Output of a dispatched tool call."""

    tool_call_id: str
    content: str


class ToolSpec(BaseModel):
    """Catalogue entry advertised to the model."""

    name: str
    description: str
    parameters: dict[str, Any]


class CompletionRequest(BaseModel):
    """Everything sent to the completion endpoint for one turn."""

    messages: list[Message]
    tools: list[ToolSpec] = Field(default_factory=list)
    response_schema: dict[str, Any] | None = None
    response_schema_name: str = "response"
    temperature: float = 0.0
    timeout: float | None = None


class CompletionResponse(BaseModel):
    """Model reply: final text, tool calls, or both."""

    content: str = ""
    tool_calls: list[ToolCallRequest] = Field(default_factory=list)


class RunOutcome(str, Enum):
    """How a run ended."""

    FINISHED = "finished"
    ITERATIONS_EXHAUSTED = "iterations_exhausted"
    ARGUMENT_DECODE_FAILURE = "argument_decode_failure"
    MISSING_ARGUMENT = "missing_argument"
    UNKNOWN_TOOL = "unknown_tool"
    CAPABILITY_EXECUTION_FAILURE = "capability_execution_failure"
    COMPLETION_ENDPOINT_FAILURE = "completion_endpoint_failure"
    CANCELLED = "cancelled"


@dataclass
class RunResult:
    """Result of an orchestrator run."""

    outcome: RunOutcome
    run_id: str | None = None
    final_text: str | None = None
    error: "OrchestrationError | None" = None
    iterations: int = 0
    completion_requests: int = 0
    messages: list[Message] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.outcome == RunOutcome.FINISHED

    def unwrap(self) -> str:
        """Return the final text or raise the error that ended the run."""
        if self.success:
            return self.final_text or ""
        raise self.error
