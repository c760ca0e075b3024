"""Tests for the integration agent wiring."""

import json

import pytest

from integration_agent.agent import (
    API_CONFIG_RESPONSE_SCHEMA,
    RESPONSE_SCHEMA_NAME,
    SYSTEM_PROMPT,
    build_orchestrator,
    build_user_prompt,
    generate_api_config,
    run_integration_agent,
)
from integration_agent.config import AgentSettings
from integration_agent.orchestration.models import RunOutcome

from fakes import RecordingCapability, ScriptedCompletionClient, answer, calls, length_estimator, tool_call

CONFIG_JSON = json.dumps(
    {
        "integration": "dyflexis",
        "account_id": "acme",
        "base_url": "https://app.dyflexis.com/api/v3",
        "jobs": [{"name": "sync_employees"}],
    }
)


@pytest.fixture
def settings():
    return AgentSettings(openai_api_key="sk-test", max_iterations=5)


class TestResponseSchema:
    """Tests for the structured-output schema."""

    def test_strict_mode_shape(self):
        """Test every object property is required and closed."""
        assert API_CONFIG_RESPONSE_SCHEMA["additionalProperties"] is False
        assert set(API_CONFIG_RESPONSE_SCHEMA["required"]) == set(API_CONFIG_RESPONSE_SCHEMA["properties"])
        job = API_CONFIG_RESPONSE_SCHEMA["properties"]["jobs"]["items"]
        assert job["additionalProperties"] is False
        assert job["required"] == ["name"]


class TestGenerateApiConfig:
    """Tests for running the agent with a fake endpoint."""

    def test_success(self, settings):
        """Test a valid final answer is parsed into a config."""
        log = []
        client = ScriptedCompletionClient(
            calls(tool_call("c1", "browser_navigate", '{"url": "https://developer.dyflexis.com/v3"}')),
            answer(CONFIG_JSON),
        )
        tools = [RecordingCapability("browser_navigate", log, required=("url",))]
        orchestrator = build_orchestrator(settings, tools, client, estimator=length_estimator)

        result = generate_api_config(orchestrator, "https://developer.dyflexis.com/v3")

        assert result.success
        assert result.errors == []
        assert result.config.integration == "dyflexis"
        assert result.config.jobs[0].name == "sync_employees"
        assert result.run.iterations == 1
        assert log == [("browser_navigate", {"url": "https://developer.dyflexis.com/v3"})]

    def test_prompts_and_schema_sent(self, settings):
        """Test the seeds and response schema reach the endpoint."""
        client = ScriptedCompletionClient(answer(CONFIG_JSON))
        orchestrator = build_orchestrator(settings, [], client, estimator=length_estimator)

        generate_api_config(orchestrator, "https://docs.example.com")

        request = client.requests[0]
        assert request.messages[0].content == SYSTEM_PROMPT
        assert request.messages[1].content == build_user_prompt("https://docs.example.com")
        assert "https://docs.example.com" in request.messages[1].content
        assert request.response_schema == API_CONFIG_RESPONSE_SCHEMA
        assert request.response_schema_name == RESPONSE_SCHEMA_NAME

    def test_unparseable_answer(self, settings):
        """Test a non-JSON answer is reported as a failure."""
        client = ScriptedCompletionClient(answer("I could not find the docs."))
        orchestrator = build_orchestrator(settings, [], client, estimator=length_estimator)

        result = generate_api_config(orchestrator, "https://docs.example.com")

        assert not result.success
        assert result.config is None
        assert result.run.outcome == RunOutcome.FINISHED
        assert "not a valid API config" in result.errors[0]

    def test_exhausted_run(self, settings):
        """Test hitting the iteration cap is reported with its outcome."""
        client = ScriptedCompletionClient(calls(tool_call("c", "noop")))
        tools = [RecordingCapability("noop")]
        orchestrator = build_orchestrator(settings, tools, client, estimator=length_estimator)

        result = generate_api_config(orchestrator, "https://docs.example.com", max_iterations=2)

        assert not result.success
        assert result.run.outcome == RunOutcome.ITERATIONS_EXHAUSTED
        assert result.errors[0].startswith("iterations_exhausted")
        assert len(client.requests) == 2


class TestRunIntegrationAgent:
    """Tests for the top-level entry point."""

    def test_requires_api_key(self):
        """Test a missing key fails before any browser is launched."""
        with pytest.raises(ValueError, match="OPENAI_API_KEY"):
            run_integration_agent("https://docs.example.com", settings=AgentSettings())
