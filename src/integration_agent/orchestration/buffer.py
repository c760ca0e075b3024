"""Token-budgeted conversation buffer."""

from typing import Iterable, Protocol

from ..logging_config import get_logger
from .models import Message, Role

logger = get_logger(__name__)

# Number of leading messages that survive every truncation (system prompt, user task).
SEED_COUNT = 2


class TokenEstimator(Protocol):
    """Estimate the token cost of one message."""

    def __call__(self, role: str, text: str) -> int: ...


class TiktokenEstimator:
    """Token estimator using tiktoken.

    Each message costs 4 tokens of framing plus the encoded text and the
    encoded role name. tiktoken is imported and the encoding loaded on first
    use, falling back to ``o200k_base`` for unknown models.
    """

    TOKENS_PER_MESSAGE = 4

    def __init__(self, model: str = "gpt-4o-mini"):
        self.model = model
        self._enc = None

    def _encoding(self):
        if self._enc is None:
            import tiktoken

            try:
                self._enc = tiktoken.encoding_for_model(self.model)
            except KeyError:
                self._enc = tiktoken.get_encoding("o200k_base")
        return self._enc

    def __call__(self, role: str, text: str) -> int:
        enc = self._encoding()
        return self.TOKENS_PER_MESSAGE + len(enc.encode(text or "")) + len(enc.encode(role))


class ConversationBuffer:
    """Ordered conversation seeded with a system prompt and a user task."""

    def __init__(
        self,
        system_prompt: str,
        user_prompt: str,
        estimator: TokenEstimator | None = None,
    ):
        self._messages: list[Message] = [Message.system(system_prompt), Message.user(user_prompt)]
        self._estimator = estimator

    @classmethod
    def from_messages(
        cls,
        messages: Iterable[Message],
        estimator: TokenEstimator | None = None,
    ) -> "ConversationBuffer":
        """Build a buffer from an existing message sequence."""
        buffer = cls.__new__(cls)
        buffer._messages = list(messages)
        buffer._estimator = estimator
        return buffer

    @property
    def estimator(self) -> TokenEstimator:
        if self._estimator is None:
            self._estimator = TiktokenEstimator()
        return self._estimator

    @property
    def messages(self) -> list[Message]:
        """Snapshot of the current messages."""
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def append(self, message: Message) -> None:
        if not isinstance(message, Message):
            raise TypeError(f"expected Message, got {type(message).__name__}")
        self._messages.append(message)

    def estimate(self, message: Message) -> int:
        role = message.role.value if isinstance(message.role, Role) else str(message.role)
        return self.estimator(role, message.token_text())

    def token_count(self) -> int:
        return sum(self.estimate(m) for m in self._messages)

    def truncate(self, token_budget: int) -> "ConversationBuffer":
        """Drop old messages until the buffer fits ``token_budget``.

        The first two messages are always kept. The rest of the budget is
        filled newest first, stopping at the first message that does not
        fit; everything older than it is dropped. Chronological order is
        preserved. Fewer than two messages is a no-op.

        Returns:
            This buffer, for chaining.
        """
        if len(self._messages) < SEED_COUNT:
            return self

        seeds = self._messages[:SEED_COUNT]
        total = sum(self.estimate(m) for m in seeds)

        kept: list[Message] = []
        for message in reversed(self._messages[SEED_COUNT:]):
            cost = self.estimate(message)
            if total + cost > token_budget:
                break
            total += cost
            kept.append(message)
        kept.reverse()

        dropped = len(self._messages) - SEED_COUNT - len(kept)
        if dropped:
            logger.info(
                "conversation_truncated",
                dropped=dropped,
                kept=len(kept) + SEED_COUNT,
                tokens=total,
                budget=token_budget,
            )

        self._messages = seeds + kept
        return self
