"""Errors raised while driving a tool-calling run.

Every error carries a machine readable ``code``, a human readable ``message``
and free-form ``extra`` fields for logging. Each concrete class maps onto one
``RunOutcome`` so the orchestrator can tag its result without inspecting
messages; the two base classes carry none and are never raised directly.
"""

from .models import RunOutcome


class OrchestrationError(Exception):
    """Base class for run-terminating errors."""

    outcome: RunOutcome | None = None
    default_code = "ORCHESTRATION_ERROR"

    def __init__(self, message: str, code: str | None = None, **extra):
        self.code = code or self.default_code
        self.message = message
        self.extra = extra
        super().__init__(message)


class ToolCallError(OrchestrationError):
    """A model-issued tool call could not be resolved or executed."""


class ArgumentDecodeFailure(ToolCallError):
    """Tool arguments were not a JSON object."""

    outcome = RunOutcome.ARGUMENT_DECODE_FAILURE
    default_code = "ARGUMENT_DECODE_FAILURE"


class MissingArgument(ToolCallError):
    """A required argument key was absent."""

    outcome = RunOutcome.MISSING_ARGUMENT
    default_code = "MISSING_ARGUMENT"

    def __init__(self, tool_name: str, key: str):
        super().__init__(f"{tool_name}: missing required argument '{key}'", tool=tool_name, key=key)
        self.tool_name = tool_name
        self.key = key


class UnknownTool(ToolCallError):
    """No capability is registered under the requested name."""

    outcome = RunOutcome.UNKNOWN_TOOL
    default_code = "UNKNOWN_TOOL"

    def __init__(self, tool_name: str):
        super().__init__(f"unknown tool: {tool_name}", tool=tool_name)
        self.tool_name = tool_name


class CapabilityExecutionFailure(ToolCallError):
    """A capability raised while executing."""

    outcome = RunOutcome.CAPABILITY_EXECUTION_FAILURE
    default_code = "CAPABILITY_EXECUTION_FAILURE"


class CompletionEndpointFailure(OrchestrationError):
    """The completion endpoint returned an error or an unusable response."""

    outcome = RunOutcome.COMPLETION_ENDPOINT_FAILURE
    default_code = "COMPLETION_ENDPOINT_FAILURE"


class IterationsExhausted(OrchestrationError):
    """The iteration cap was reached without a final answer."""

    outcome = RunOutcome.ITERATIONS_EXHAUSTED
    default_code = "ITERATIONS_EXHAUSTED"


class Cancelled(OrchestrationError):
    """The run was cancelled or its deadline passed."""

    outcome = RunOutcome.CANCELLED
    default_code = "CANCELLED"
