"""Common utility functions."""

from typing import Any


def model_to_dict(model: Any) -> dict:
    """Convert a Pydantic model (or plain dict) to a dict."""
    if hasattr(model, "model_dump"):
        return model.model_dump(mode="json", by_alias=True, exclude_none=True)
    elif isinstance(model, dict):
        return dict(model)
    else:
        raise TypeError(f"Cannot convert {type(model)} to dict")


def truncate_text(text: str, limit: int = 500) -> str:
    """Shorten text for log lines and error messages."""
    if len(text) <= limit:
        return text
    return text[:limit] + f"... ({len(text) - limit} more chars)"
