"""Generate an API integration config from a documentation URL."""

import json
from dataclasses import dataclass, field
from typing import Any, Sequence

from pydantic import ValidationError

from .config import AgentSettings
from .logging_config import get_logger, save_debug_artifact
from .models import APIConfig
from .orchestration.buffer import TiktokenEstimator, TokenEstimator
from .orchestration.cancellation import CancellationToken
from .orchestration.completion import CompletionClient, OpenAICompletionClient
from .orchestration.models import RunResult
from .orchestration.orchestrator import Orchestrator
from .tools.base import Capability
from .tools.browser import BrowserSession, browser_capabilities
from .tools.http import HTTPRequestTool
from .utils import model_to_dict

logger = get_logger(__name__)

SYSTEM_PROMPT = """You are an advanced API integration expert.
You work with a specialized API Integration Engine that relies on a configuration file to drive all parts of the integration.
You will be given a URL to a page of API documentation and your job is to extract the API endpoints and data models from the documentation and generate a configuration object.
You have access to a full Chrome browser as a tool, so you can navigate the documentation and do whatever is needed to extract the information.
You also have access to an HTTP request tool, so you can interact with APIs when needed."""

RESPONSE_SCHEMA_NAME = "api_config"

# Strict structured-output schema for the final answer. Strict mode requires
# every property to be listed as required and no additional properties.
API_CONFIG_RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "integration": {"type": "string", "description": "The name of the integration"},
        "account_id": {"type": "string", "description": "The account ID"},
        "base_url": {"type": "string", "description": "The base URL"},
        "jobs": {
            "type": "array",
            "items": {
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "name": {"type": "string", "description": "Name of the job"},
                },
                "required": ["name"],
            },
        },
    },
    "required": ["integration", "account_id", "base_url", "jobs"],
}


def build_user_prompt(documentation_url: str) -> str:
    return f"Here is the documentation URL for the API: {documentation_url}"


@dataclass
class IntegrationResult:
    """Result of an integration config generation run."""

    documentation_url: str
    success: bool
    config: APIConfig | None = None
    run: RunResult | None = None
    errors: list[str] = field(default_factory=list)


def parse_api_config(text: str) -> APIConfig:
    """Parse the model's final answer into an APIConfig.

    Raises:
        ValueError: The text is not valid JSON or does not match the model.
    """
    try:
        return APIConfig.model_validate_json(text)
    except ValidationError as e:
        raise ValueError(f"final answer is not a valid API config: {e}") from e


def build_orchestrator(
    settings: AgentSettings,
    capabilities: Sequence[Capability],
    completion_client: CompletionClient | None = None,
    estimator: TokenEstimator | None = None,
) -> Orchestrator:
    """Wire an orchestrator for config generation."""
    if completion_client is None:
        completion_client = OpenAICompletionClient(
            api_key=settings.require_api_key(),
            model=settings.model,
            max_retries=settings.openai_max_retries,
        )
    return Orchestrator(
        completion_client=completion_client,
        capabilities=capabilities,
        estimator=estimator or TiktokenEstimator(settings.model),
        context_window_tokens=settings.context_window_tokens,
        response_reserve_tokens=settings.response_reserve_tokens,
        max_iterations=settings.max_iterations,
        response_schema=API_CONFIG_RESPONSE_SCHEMA,
        response_schema_name=RESPONSE_SCHEMA_NAME,
        temperature=settings.temperature,
        tool_failure_policy=settings.tool_failure_policy,
    )


def generate_api_config(
    orchestrator: Orchestrator,
    documentation_url: str,
    max_iterations: int | None = None,
    cancel_token: CancellationToken | None = None,
) -> IntegrationResult:
    """Run the orchestrator on a documentation URL and parse its answer."""
    log = logger.bind(documentation_url=documentation_url)
    run = orchestrator.run(
        SYSTEM_PROMPT,
        build_user_prompt(documentation_url),
        max_iterations=max_iterations,
        cancel_token=cancel_token,
    )

    save_debug_artifact(
        "transcript",
        run.messages,
        run_id=run.run_id,
        phase="integration_agent",
    )

    if not run.success:
        log.error("config_generation_failed", outcome=run.outcome.value, error=str(run.error))
        return IntegrationResult(
            documentation_url=documentation_url,
            success=False,
            run=run,
            errors=[f"{run.outcome.value}: {run.error}"],
        )

    try:
        config = parse_api_config(run.final_text or "")
    except ValueError as e:
        log.error("config_parse_failed", error=str(e))
        return IntegrationResult(
            documentation_url=documentation_url,
            success=False,
            run=run,
            errors=[str(e)],
        )

    save_debug_artifact("api_config", config, run_id=run.run_id, phase="integration_agent")
    log.info("config_generated", integration=config.integration, jobs=len(config.jobs))
    return IntegrationResult(documentation_url=documentation_url, success=True, config=config, run=run)


def run_integration_agent(
    documentation_url: str,
    settings: AgentSettings | None = None,
    max_iterations: int | None = None,
    completion_client: CompletionClient | None = None,
    cancel_token: CancellationToken | None = None,
) -> IntegrationResult:
    """Generate an API config for ``documentation_url`` with the full tool set.

    Launches a browser session for the duration of the run.

    Raises:
        ValueError: No API key is configured and no client was given.
    """
    settings = settings or AgentSettings.from_env()
    if completion_client is None:
        settings.require_api_key()

    http_tool = HTTPRequestTool(timeout=settings.http_timeout)
    session = BrowserSession(
        headless=settings.headless,
        user_data_dir=settings.browser_user_data_dir,
        timeout_ms=settings.navigation_timeout_ms,
    )
    try:
        with session:
            capabilities = [*browser_capabilities(session), http_tool]
            orchestrator = build_orchestrator(settings, capabilities, completion_client)
            return generate_api_config(orchestrator, documentation_url, max_iterations, cancel_token)
    finally:
        http_tool.close()


def config_to_json(config: APIConfig) -> str:
    return json.dumps(model_to_dict(config), indent=2)
