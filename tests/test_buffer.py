"""Tests for the conversation buffer and its truncation."""

import pytest

from integration_agent.orchestration.buffer import ConversationBuffer, TiktokenEstimator
from integration_agent.orchestration.models import Message, Role, ToolResult

from fakes import length_estimator, tool_call


def _history(count: int, cost: int = 80) -> list[Message]:
    """Alternating assistant/tool messages, each costing ``cost`` tokens."""
    messages = []
    for i in range(count):
        content = f"{i:02d}" + "m" * (cost - 2)
        if i % 2 == 0:
            messages.append(Message.assistant(content))
        else:
            messages.append(Message.tool_result(ToolResult(tool_call_id=f"call_{i}", content=content)))
    return messages


@pytest.fixture
def buffer():
    """Seeds costing 50 tokens followed by ten 80-token messages."""
    buf = ConversationBuffer("s" * 25, "u" * 25, estimator=length_estimator)
    for message in _history(10):
        buf.append(message)
    return buf


class TestConversationBuffer:
    """Tests for buffer construction and appends."""

    def test_seeded_with_system_and_user(self):
        """Test a new buffer holds exactly the two seed messages."""
        buf = ConversationBuffer("system prompt", "user task", estimator=length_estimator)
        messages = buf.messages
        assert len(messages) == 2
        assert messages[0].role == Role.SYSTEM
        assert messages[0].content == "system prompt"
        assert messages[1].role == Role.USER
        assert messages[1].content == "user task"

    def test_append_adds_to_end(self):
        """Test append keeps chronological order."""
        buf = ConversationBuffer("s", "u", estimator=length_estimator)
        buf.append(Message.assistant("first"))
        buf.append(Message.assistant("second"))
        assert [m.content for m in buf.messages] == ["s", "u", "first", "second"]

    def test_append_rejects_non_messages(self):
        """Test append only accepts Message instances."""
        buf = ConversationBuffer("s", "u", estimator=length_estimator)
        with pytest.raises(TypeError):
            buf.append({"role": "user", "content": "hi"})

    def test_messages_is_a_snapshot(self):
        """Test mutating the returned list does not touch the buffer."""
        buf = ConversationBuffer("s", "u", estimator=length_estimator)
        buf.messages.append(Message.user("sneaky"))
        assert len(buf) == 2

    def test_token_count(self, buffer):
        """Test the whole-buffer estimate sums every message."""
        assert buffer.token_count() == 850

    def test_tool_calls_count_toward_tokens(self):
        """Test an assistant message's tool calls are part of its cost."""
        buf = ConversationBuffer("", "", estimator=length_estimator)
        message = Message.assistant("", tool_calls=[tool_call("c1", "nav", '{"u":1}')])
        assert buf.estimate(message) == len('nav{"u":1}')


class TestTruncate:
    """Tests for token-budgeted truncation."""

    def test_within_budget_unchanged(self, buffer):
        """Test 850 tokens under a 1000 budget keeps all twelve messages."""
        before = buffer.messages
        buffer.truncate(1000)
        assert buffer.messages == before
        assert len(buffer) == 12

    def test_keeps_most_recent_suffix(self, buffer):
        """Test a 300 budget keeps the seeds and the newest three messages."""
        original = buffer.messages
        buffer.truncate(300)
        messages = buffer.messages
        assert len(messages) == 5
        assert messages[:2] == original[:2]
        assert messages[2:] == original[-3:]
        assert buffer.token_count() == 290

    def test_respects_budget(self, buffer):
        """Test the result never exceeds the budget once seeds fit."""
        for budget in (50, 129, 130, 131, 449, 450, 851):
            buf = ConversationBuffer.from_messages(buffer.messages, estimator=length_estimator)
            buf.truncate(budget)
            assert buf.token_count() <= budget

    def test_seeds_kept_even_when_over_budget(self, buffer):
        """Test the first two messages survive a budget smaller than themselves."""
        original = buffer.messages
        buffer.truncate(10)
        assert buffer.messages == original[:2]

    def test_stops_at_first_message_that_does_not_fit(self):
        """Test older small messages are dropped once a large one fails to fit."""
        buf = ConversationBuffer("", "", estimator=length_estimator)
        buf.append(Message.assistant("a" * 5))
        buf.append(Message.assistant("b" * 500))
        buf.append(Message.assistant("c" * 5))
        buf.truncate(100)
        assert [m.content for m in buf.messages] == ["", "", "c" * 5]

    def test_idempotent(self, buffer):
        """Test truncating twice with the same budget changes nothing more."""
        once = buffer.truncate(300).messages
        twice = buffer.truncate(300).messages
        assert once == twice

    def test_returns_self(self, buffer):
        """Test truncate returns the buffer for chaining."""
        assert buffer.truncate(300) is buffer

    def test_fewer_than_two_messages_is_noop(self):
        """Test a buffer without both seeds is left alone."""
        lone = Message.system("x" * 1000)
        buf = ConversationBuffer.from_messages([lone], estimator=length_estimator)
        buf.truncate(0)
        assert buf.messages == [lone]

    def test_empty_buffer_is_noop(self):
        """Test an empty buffer truncates to itself."""
        buf = ConversationBuffer.from_messages([], estimator=length_estimator)
        assert buf.truncate(0).messages == []


class _WordEncoding:
    """Stand-in encoding: one token per whitespace-separated word."""

    name = "words"

    def encode(self, text):
        return text.split()


class TestTiktokenEstimator:
    """Tests for the default estimator formula."""

    def test_per_message_overhead_role_and_text(self):
        """Test cost is 4 + tokens(text) + tokens(role)."""
        estimator = TiktokenEstimator()
        estimator._enc = _WordEncoding()
        assert estimator("assistant", "three word text") == 4 + 3 + 1

    def test_empty_text(self):
        """Test empty text still pays the framing and role tokens."""
        estimator = TiktokenEstimator()
        estimator._enc = _WordEncoding()
        assert estimator("user", "") == 5
