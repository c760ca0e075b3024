"""Capabilities the agent can call."""

from .base import Capability
from .browser import (
    BrowserSession,
    Click,
    ExecuteJavaScript,
    ExtractPageContent,
    Navigate,
    browser_capabilities,
    html_to_text,
)
from .http import HTTPRequestTool

__all__ = [
    "Capability",
    "BrowserSession",
    "Click",
    "ExecuteJavaScript",
    "ExtractPageContent",
    "Navigate",
    "browser_capabilities",
    "html_to_text",
    "HTTPRequestTool",
]
