"""Capability contract shared by every tool the agent can call."""

from abc import ABC, abstractmethod
from typing import Any


class Capability(ABC):
    """A tool the model can invoke by name.

    Subclasses declare ``name``, ``description`` and ``parameters`` (a JSON
    schema object), list the argument keys that must be present in
    ``required``, and supply values for optional keys in ``defaults``.
    ``execute`` receives arguments that have already been validated and
    defaulted, and raises on failure.
    """

    name: str = ""
    description: str = ""
    parameters: dict[str, Any] = {"type": "object", "properties": {}}
    required: tuple[str, ...] = ()
    defaults: dict[str, Any] = {}

    def schema(self) -> dict[str, Any]:
        """JSON schema for the tool's arguments."""
        schema = dict(self.parameters)
        schema.setdefault("type", "object")
        if self.required:
            schema["required"] = list(self.required)
        return schema

    @abstractmethod
    def execute(self, arguments: dict[str, Any]) -> str:
        """Run the tool and return its textual result."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
