"""LangGraph state machine driving the tool-calling loop.

One run alternates between two working nodes:

    await_completion -> dispatch_tools -> await_completion -> ... -> finish

``await_completion`` truncates the conversation to the token budget and
blocks on the completion endpoint. If the reply carries tool calls,
``dispatch_tools`` resolves and executes them strictly in the order the
model issued them, appending one tool-result message per call. A reply with
no tool calls ends the run. The iteration cap bounds the number of
completion requests.
"""

import json
import uuid
from enum import Enum
from typing import Any, Iterable, TypedDict

from langgraph.graph import END, StateGraph

from ..logging_config import bound_run_context, get_logger
from ..tools.base import Capability
from ..utils import truncate_text
from .buffer import ConversationBuffer, TokenEstimator
from .cancellation import CancellationToken
from .completion import CompletionClient
from .dispatcher import ToolDispatcher
from .errors import (
    Cancelled,
    CapabilityExecutionFailure,
    CompletionEndpointFailure,
    IterationsExhausted,
    OrchestrationError,
    ToolCallError,
)
from .models import (
    CompletionRequest,
    CompletionResponse,
    Message,
    RunOutcome,
    RunResult,
    ToolCallRequest,
    ToolResult,
)

logger = get_logger(__name__)


class ToolFailurePolicy(str, Enum):
    """What happens when a tool call cannot be resolved or fails."""

    FAIL_FAST = "fail_fast"
    REPORT_TO_MODEL = "report_to_model"


class OrchestratorAction(str, Enum):
    """Routing decisions between graph nodes."""

    AWAIT_COMPLETION = "await_completion"
    DISPATCH_TOOLS = "dispatch_tools"
    FINISH = "finish"
    EXHAUSTED = "exhausted"
    FAIL = "fail"


class OrchestratorState(TypedDict):
    """State carried through the graph for one run."""

    run_id: str
    buffer: ConversationBuffer
    max_iterations: int
    iteration: int
    completion_requests: int
    cancel_token: CancellationToken | None

    response: CompletionResponse | None
    final_text: str | None
    failure: OrchestrationError | None

    action: OrchestratorAction
    is_complete: bool


class Orchestrator:
    """Runs a conversation against a completion endpoint until it answers."""

    def __init__(
        self,
        completion_client: CompletionClient,
        capabilities: Iterable[Capability],
        estimator: TokenEstimator | None = None,
        context_window_tokens: int = 128_000,
        response_reserve_tokens: int = 500,
        max_iterations: int = 20,
        response_schema: dict[str, Any] | None = None,
        response_schema_name: str = "response",
        temperature: float = 0.0,
        tool_failure_policy: ToolFailurePolicy = ToolFailurePolicy.FAIL_FAST,
    ):
        """Initialize the orchestrator.

        Args:
            completion_client: Endpoint returning final text or tool calls.
            capabilities: Tools to register; names must be unique.
            estimator: Token estimator; tiktoken when omitted.
            context_window_tokens: Hard context limit of the model.
            response_reserve_tokens: Tokens held back for the reply.
            max_iterations: Default cap on completion requests per run.
            response_schema: JSON schema the final answer must follow.
            response_schema_name: Name the schema is registered under.
            temperature: Sampling temperature.
            tool_failure_policy: Abort on tool failure, or report it to the model.
        """
        self.completion_client = completion_client
        self.dispatcher = ToolDispatcher(capabilities)
        self.estimator = estimator
        self.token_budget = context_window_tokens - response_reserve_tokens
        self.max_iterations = max_iterations
        self.response_schema = response_schema
        self.response_schema_name = response_schema_name
        self.temperature = temperature
        self.tool_failure_policy = ToolFailurePolicy(tool_failure_policy)
        self.graph = self._build_graph()
        self.app = self.graph.compile()

    # Nodes

    def _await_completion(self, state: OrchestratorState) -> OrchestratorState:
        log = logger.bind(iteration=state["iteration"])

        if state["iteration"] >= state["max_iterations"]:
            return {**state, "action": OrchestratorAction.EXHAUSTED}

        token = state["cancel_token"]
        requests = state["completion_requests"]
        try:
            if token is not None:
                token.raise_if_cancelled()

            buffer = self._fit_to_budget(state["buffer"])
            request = CompletionRequest(
                messages=buffer.messages,
                tools=self.dispatcher.catalogue(),
                response_schema=self.response_schema,
                response_schema_name=self.response_schema_name,
                temperature=self.temperature,
                timeout=token.remaining() if token is not None else None,
            )
            log.info("completion_requested", messages=len(request.messages))
            requests += 1
            response = self._request_completion(request)

            if token is not None:
                token.raise_if_cancelled()
        except OrchestrationError as e:
            log.error("completion_failed", code=e.code, error=e.message)
            return {
                **state,
                "completion_requests": requests,
                "failure": e,
                "action": OrchestratorAction.FAIL,
            }

        if not response.tool_calls:
            log.info("completion_finished", content_chars=len(response.content))
            action = OrchestratorAction.FINISH
        else:
            log.info("tool_calls_requested", tools=[c.tool_name for c in response.tool_calls])
            action = OrchestratorAction.DISPATCH_TOOLS

        return {
            **state,
            "completion_requests": requests,
            "response": response,
            "action": action,
        }

    def _fit_to_budget(self, buffer: ConversationBuffer) -> ConversationBuffer:
        try:
            return buffer.truncate(self.token_budget)
        except Exception as e:
            raise CompletionEndpointFailure(f"could not fit conversation to token budget: {e}") from e

    def _request_completion(self, request: CompletionRequest) -> CompletionResponse:
        try:
            return self.completion_client.complete(request)
        except (CompletionEndpointFailure, Cancelled):
            raise
        except Exception as e:
            raise CompletionEndpointFailure(f"completion request failed: {e}") from e

    def _dispatch_tools(self, state: OrchestratorState) -> OrchestratorState:
        buffer = state["buffer"]
        response = state["response"]
        token = state["cancel_token"]

        buffer.append(Message.assistant(response.content, tool_calls=response.tool_calls))

        try:
            for call in response.tool_calls:
                if token is not None:
                    token.raise_if_cancelled()
                result = self._run_tool_call(call, state["iteration"])
                buffer.append(Message.tool_result(result))
        except OrchestrationError as e:
            logger.error(
                "tool_dispatch_failed",
                iteration=state["iteration"],
                code=e.code,
                error=e.message,
            )
            return {**state, "failure": e, "action": OrchestratorAction.FAIL}

        return {
            **state,
            "iteration": state["iteration"] + 1,
            "response": None,
            "action": OrchestratorAction.AWAIT_COMPLETION,
        }

    def _run_tool_call(self, call: ToolCallRequest, iteration: int) -> ToolResult:
        log = logger.bind(iteration=iteration, tool=call.tool_name, tool_call_id=call.id)
        try:
            resolved = self.dispatcher.resolve(call.tool_name, call.raw_arguments)
            log.info("tool_call_dispatched", arguments=resolved.arguments)
            try:
                content = resolved.execute()
            except Cancelled:
                raise
            except Exception as e:
                raise CapabilityExecutionFailure(
                    f"{call.tool_name} failed: {e}", tool=call.tool_name
                ) from e
            if not isinstance(content, str):
                content = json.dumps(content, default=str)
        except ToolCallError as e:
            if self.tool_failure_policy is ToolFailurePolicy.FAIL_FAST:
                raise
            log.warning("tool_call_failed_reported", code=e.code, error=e.message)
            return ToolResult(tool_call_id=call.id, content=f"Error: {e.message}")

        log.debug("tool_call_completed", result=truncate_text(content, 200))
        return ToolResult(tool_call_id=call.id, content=content)

    def _finish(self, state: OrchestratorState) -> OrchestratorState:
        response = state["response"]
        state["buffer"].append(Message.assistant(response.content))
        return {**state, "final_text": response.content, "is_complete": True}

    def _exhausted(self, state: OrchestratorState) -> OrchestratorState:
        logger.warning("iterations_exhausted", max_iterations=state["max_iterations"])
        failure = IterationsExhausted(
            "reached maximum iterations without resolution",
            max_iterations=state["max_iterations"],
        )
        return {**state, "failure": failure, "is_complete": True}

    def _fail(self, state: OrchestratorState) -> OrchestratorState:
        return {**state, "is_complete": True}

    def _build_graph(self) -> StateGraph:
        graph = StateGraph(OrchestratorState)

        graph.add_node("await_completion", self._await_completion)
        graph.add_node("dispatch_tools", self._dispatch_tools)
        graph.add_node("finish", self._finish)
        graph.add_node("exhausted", self._exhausted)
        graph.add_node("fail", self._fail)

        graph.add_conditional_edges(
            "await_completion",
            lambda s: s["action"].value,
            {
                OrchestratorAction.DISPATCH_TOOLS.value: "dispatch_tools",
                OrchestratorAction.FINISH.value: "finish",
                OrchestratorAction.EXHAUSTED.value: "exhausted",
                OrchestratorAction.FAIL.value: "fail",
            },
        )
        graph.add_conditional_edges(
            "dispatch_tools",
            lambda s: s["action"].value,
            {
                OrchestratorAction.AWAIT_COMPLETION.value: "await_completion",
                OrchestratorAction.FAIL.value: "fail",
            },
        )
        graph.add_edge("finish", END)
        graph.add_edge("exhausted", END)
        graph.add_edge("fail", END)

        graph.set_entry_point("await_completion")

        return graph

    def run(
        self,
        system_prompt: str,
        user_prompt: str,
        max_iterations: int | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> RunResult:
        """Drive the conversation until a final answer or a terminal failure.

        Args:
            system_prompt: First seed message.
            user_prompt: Second seed message, the task.
            max_iterations: Cap on completion requests; defaults to the
                orchestrator's setting.
            cancel_token: Optional token checked before each blocking step.

        Returns:
            RunResult tagged with the outcome. Failures are reported in the
            result, never raised.
        """
        max_iterations = self.max_iterations if max_iterations is None else max_iterations
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")

        run_id = uuid.uuid4().hex[:8]
        buffer = ConversationBuffer(system_prompt, user_prompt, estimator=self.estimator)
        initial_state: OrchestratorState = {
            "run_id": run_id,
            "buffer": buffer,
            "max_iterations": max_iterations,
            "iteration": 0,
            "completion_requests": 0,
            "cancel_token": cancel_token,
            "response": None,
            "final_text": None,
            "failure": None,
            "action": OrchestratorAction.AWAIT_COMPLETION,
            "is_complete": False,
        }

        with bound_run_context(run_id=run_id):
            logger.info("run_started", max_iterations=max_iterations, tools=len(self.dispatcher.capabilities))

            # Each iteration visits two nodes; leave room for the terminal ones.
            final_state = self.app.invoke(
                initial_state,
                config={"recursion_limit": 2 * max_iterations + 10},
            )

        failure = final_state["failure"]
        result = RunResult(
            outcome=failure.outcome if failure is not None else RunOutcome.FINISHED,
            run_id=run_id,
            final_text=final_state["final_text"],
            error=failure,
            iterations=final_state["iteration"],
            completion_requests=final_state["completion_requests"],
            messages=final_state["buffer"].messages,
        )
        logger.info(
            "run_completed",
            run_id=run_id,
            outcome=result.outcome.value,
            iterations=result.iterations,
            completion_requests=result.completion_requests,
        )
        return result
