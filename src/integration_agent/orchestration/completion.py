"""Completion endpoint clients."""

from typing import Any, Protocol

from openai import OpenAI, OpenAIError

from ..logging_config import get_logger
from .errors import CompletionEndpointFailure
from .models import CompletionRequest, CompletionResponse, Message, Role, ToolCallRequest, ToolSpec

logger = get_logger(__name__)


class CompletionClient(Protocol):
    """Black-box completion endpoint: a final answer or a list of tool calls."""

    def complete(self, request: CompletionRequest) -> CompletionResponse: ...


def message_to_payload(message: Message) -> dict[str, Any]:
    """Serialize a message into the chat-completions wire format."""
    payload: dict[str, Any] = {"role": message.role.value}
    if message.tool_calls:
        payload["content"] = message.content or None
        payload["tool_calls"] = [
            {
                "id": call.id,
                "type": "function",
                "function": {"name": call.tool_name, "arguments": call.raw_arguments or "{}"},
            }
            for call in message.tool_calls
        ]
    else:
        payload["content"] = message.content
    if message.tool_call_id:
        payload["tool_call_id"] = message.tool_call_id
    return payload


def tool_to_payload(tool: ToolSpec) -> dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": tool.name,
            "description": tool.description,
            "parameters": tool.parameters,
        },
    }


def drop_orphan_tool_results(messages: list[Message]) -> list[Message]:
    """Remove tool results whose call was truncated out of the conversation.

    The endpoint rejects a tool message unless an earlier assistant message
    issued the matching call id.
    """
    issued: set[str] = set()
    kept = []
    for message in messages:
        if message.role == Role.ASSISTANT:
            issued.update(call.id for call in message.tool_calls)
        elif message.role == Role.TOOL and message.tool_call_id not in issued:
            logger.warning("orphan_tool_result_dropped", tool_call_id=message.tool_call_id)
            continue
        kept.append(message)
    return kept


class OpenAICompletionClient:
    """Chat-completions client with function tools and strict JSON output."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4o-mini",
        max_retries: int = 2,
        client: OpenAI | None = None,
    ):
        self.model = model
        self._client = client or OpenAI(api_key=api_key, max_retries=max_retries)

    def build_payload(self, request: CompletionRequest) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [message_to_payload(m) for m in drop_orphan_tool_results(request.messages)],
            "temperature": request.temperature,
        }
        if request.tools:
            payload["tools"] = [tool_to_payload(t) for t in request.tools]
        if request.response_schema is not None:
            payload["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": request.response_schema_name,
                    "schema": request.response_schema,
                    "strict": True,
                },
            }
        if request.timeout is not None:
            payload["timeout"] = request.timeout
        return payload

    def complete(self, request: CompletionRequest) -> CompletionResponse:
        payload = self.build_payload(request)
        logger.debug("chat_completion_request", model=self.model, messages=len(payload["messages"]))

        try:
            response = self._client.chat.completions.create(**payload)
        except OpenAIError as e:
            raise CompletionEndpointFailure(f"completion request failed: {e}", model=self.model) from e

        if not response.choices:
            raise CompletionEndpointFailure("completion response had no choices", model=self.model)

        message = response.choices[0].message
        tool_calls = [
            ToolCallRequest(
                id=call.id,
                tool_name=call.function.name,
                raw_arguments=call.function.arguments or "",
            )
            for call in (message.tool_calls or [])
        ]
        return CompletionResponse(content=message.content or "", tool_calls=tool_calls)
