"""Tool-calling orchestration loop and its bounded conversation buffer."""

from .buffer import ConversationBuffer, TiktokenEstimator, TokenEstimator
from .cancellation import CancellationToken
from .completion import CompletionClient, OpenAICompletionClient
from .dispatcher import ResolvedCall, ToolDispatcher
from .errors import (
    ArgumentDecodeFailure,
    Cancelled,
    CapabilityExecutionFailure,
    CompletionEndpointFailure,
    IterationsExhausted,
    MissingArgument,
    OrchestrationError,
    ToolCallError,
    UnknownTool,
)
from .models import (
    CompletionRequest,
    CompletionResponse,
    Message,
    Role,
    RunOutcome,
    RunResult,
    ToolCallRequest,
    ToolResult,
    ToolSpec,
)
from .orchestrator import Orchestrator, ToolFailurePolicy

__all__ = [
    "ConversationBuffer",
    "TiktokenEstimator",
    "TokenEstimator",
    "CancellationToken",
    "CompletionClient",
    "OpenAICompletionClient",
    "ResolvedCall",
    "ToolDispatcher",
    "ArgumentDecodeFailure",
    "Cancelled",
    "CapabilityExecutionFailure",
    "CompletionEndpointFailure",
    "IterationsExhausted",
    "MissingArgument",
    "OrchestrationError",
    "ToolCallError",
    "UnknownTool",
    "CompletionRequest",
    "CompletionResponse",
    "Message",
    "Role",
    "RunOutcome",
    "RunResult",
    "ToolCallRequest",
    "ToolResult",
    "ToolSpec",
    "Orchestrator",
    "ToolFailurePolicy",
]
