"""Resolve model-issued tool calls to registered capabilities."""

import json
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from ..tools.base import Capability
from .errors import ArgumentDecodeFailure, MissingArgument, UnknownTool
from .models import ToolSpec


@dataclass(frozen=True)
class ResolvedCall:
    """A capability paired with validated, defaulted arguments."""

    capability: Capability
    arguments: dict[str, Any]

    def execute(self) -> str:
        return self.capability.execute(self.arguments)


class ToolDispatcher:
    """Registration table of capabilities, keyed by tool name.

    The table is built once and is read-only afterwards. Resolution performs
    no I/O: it decodes arguments, checks required keys and applies defaults.
    """

    def __init__(self, capabilities: Iterable[Capability]):
        table: dict[str, Capability] = {}
        for capability in capabilities:
            if not capability.name:
                raise ValueError(f"{capability!r} has no name")
            if capability.name in table:
                raise ValueError(f"duplicate capability name: {capability.name}")
            table[capability.name] = capability
        self._table: Mapping[str, Capability] = MappingProxyType(table)

    @property
    def capabilities(self) -> Mapping[str, Capability]:
        return self._table

    def catalogue(self) -> list[ToolSpec]:
        """Name, description and schema of every capability, in registration order."""
        return [
            ToolSpec(name=cap.name, description=cap.description, parameters=cap.schema())
            for cap in self._table.values()
        ]

    def resolve(self, tool_name: str, raw_arguments: str) -> ResolvedCall:
        """Look up ``tool_name`` and validate ``raw_arguments`` against it.

        Raises:
            UnknownTool: No capability has that name.
            ArgumentDecodeFailure: Arguments are not a JSON object.
            MissingArgument: A required key is absent or null.
        """
        capability = self._table.get(tool_name)
        if capability is None:
            raise UnknownTool(tool_name)

        decoded = decode_arguments(tool_name, raw_arguments)

        for key in capability.required:
            if decoded.get(key) is None:
                raise MissingArgument(tool_name, key)

        arguments = dict(capability.defaults)
        arguments.update({k: v for k, v in decoded.items() if v is not None})
        return ResolvedCall(capability=capability, arguments=arguments)


def decode_arguments(tool_name: str, raw_arguments: str | None) -> dict[str, Any]:
    """Decode a JSON argument object; blank text means no arguments."""
    if raw_arguments is None or not raw_arguments.strip():
        return {}
    try:
        decoded = json.loads(raw_arguments)
    except json.JSONDecodeError as e:
        raise ArgumentDecodeFailure(
            f"{tool_name}: invalid JSON arguments: {e}", tool=tool_name, raw=raw_arguments
        ) from e
    if not isinstance(decoded, dict):
        raise ArgumentDecodeFailure(
            f"{tool_name}: arguments must be a JSON object, got {type(decoded).__name__}",
            tool=tool_name,
            raw=raw_arguments,
        )
    return decoded
