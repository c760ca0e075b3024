"""Tests for tool-call resolution."""

import pytest

from integration_agent.orchestration.dispatcher import ToolDispatcher, decode_arguments
from integration_agent.orchestration.errors import (
    ArgumentDecodeFailure,
    MissingArgument,
    UnknownTool,
)
from integration_agent.orchestration.models import RunOutcome

from fakes import RecordingCapability


@pytest.fixture
def log():
    return []


@pytest.fixture
def dispatcher(log):
    return ToolDispatcher([
        RecordingCapability("browser_navigate", log, required=("url",)),
        RecordingCapability("extract_page_content", log, defaults={"selector": "body"}),
        RecordingCapability("http_request", log, required=("url",), defaults={"method": "GET"}),
    ])


class TestRegistration:
    """Tests for building the registration table."""

    def test_duplicate_names_rejected(self):
        """Test two capabilities cannot share a name."""
        with pytest.raises(ValueError, match="duplicate"):
            ToolDispatcher([RecordingCapability("a"), RecordingCapability("a")])

    def test_table_is_read_only(self, dispatcher):
        """Test the table cannot be modified after construction."""
        with pytest.raises(TypeError):
            dispatcher.capabilities["new"] = RecordingCapability("new")

    def test_catalogue_in_registration_order(self, dispatcher):
        """Test the catalogue lists every capability with its schema."""
        catalogue = dispatcher.catalogue()
        assert [t.name for t in catalogue] == ["browser_navigate", "extract_page_content", "http_request"]
        assert catalogue[0].parameters["required"] == ["url"]
        assert "required" not in catalogue[1].parameters


class TestResolve:
    """Tests for resolving a tool name and raw arguments."""

    def test_resolves_known_tool(self, dispatcher):
        """Test a valid call resolves to its capability and arguments."""
        resolved = dispatcher.resolve("browser_navigate", '{"url": "https://example.com"}')
        assert resolved.capability.name == "browser_navigate"
        assert resolved.arguments == {"url": "https://example.com"}

    def test_unknown_tool(self, dispatcher):
        """Test an unregistered name fails with UnknownTool."""
        with pytest.raises(UnknownTool) as exc_info:
            dispatcher.resolve("browser_scroll", "{}")
        assert exc_info.value.tool_name == "browser_scroll"
        assert exc_info.value.outcome == RunOutcome.UNKNOWN_TOOL

    def test_missing_required_argument(self, dispatcher, log):
        """Test a missing required key fails without executing anything."""
        with pytest.raises(MissingArgument) as exc_info:
            dispatcher.resolve("browser_navigate", "{}")
        assert exc_info.value.key == "url"
        assert exc_info.value.tool_name == "browser_navigate"
        assert log == []

    def test_null_required_argument(self, dispatcher):
        """Test a null required value counts as missing."""
        with pytest.raises(MissingArgument):
            dispatcher.resolve("http_request", '{"url": null}')

    def test_malformed_json(self, dispatcher):
        """Test invalid JSON fails with ArgumentDecodeFailure."""
        with pytest.raises(ArgumentDecodeFailure):
            dispatcher.resolve("browser_navigate", '{"url": ')

    def test_non_object_arguments(self, dispatcher):
        """Test a JSON array is not accepted as arguments."""
        with pytest.raises(ArgumentDecodeFailure, match="JSON object"):
            dispatcher.resolve("browser_navigate", '["https://example.com"]')

    def test_defaults_applied(self, dispatcher):
        """Test optional keys take their documented defaults."""
        assert dispatcher.resolve("extract_page_content", "{}").arguments == {"selector": "body"}
        resolved = dispatcher.resolve("http_request", '{"url": "https://api.test"}')
        assert resolved.arguments == {"method": "GET", "url": "https://api.test"}

    def test_explicit_value_overrides_default(self, dispatcher):
        """Test a provided optional value wins over the default."""
        resolved = dispatcher.resolve("extract_page_content", '{"selector": "#main"}')
        assert resolved.arguments == {"selector": "#main"}

    def test_deterministic(self, dispatcher):
        """Test the same input always yields equal, independent arguments."""
        first = dispatcher.resolve("extract_page_content", "{}")
        first.arguments["selector"] = "mutated"
        second = dispatcher.resolve("extract_page_content", "{}")
        assert second.arguments == {"selector": "body"}

    def test_resolved_call_executes_capability(self, dispatcher, log):
        """Test executing a resolved call passes the validated arguments."""
        dispatcher.resolve("http_request", '{"url": "https://api.test"}').execute()
        assert log == [("http_request", {"method": "GET", "url": "https://api.test"})]


class TestDecodeArguments:
    """Tests for raw argument decoding."""

    def test_blank_is_empty(self):
        """Test empty or whitespace arguments decode to no arguments."""
        assert decode_arguments("t", "") == {}
        assert decode_arguments("t", "   ") == {}

    def test_decode_error_chains_cause(self):
        """Test the JSON error is kept as the cause."""
        with pytest.raises(ArgumentDecodeFailure) as exc_info:
            decode_arguments("t", "not json")
        assert exc_info.value.__cause__ is not None
        assert exc_info.value.code == "ARGUMENT_DECODE_FAILURE"
