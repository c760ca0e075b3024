"""Raw HTTP request capability."""

import json
from typing import Any

import httpx

from ..logging_config import get_logger
from ..utils import truncate_text
from .base import Capability

logger = get_logger(__name__)

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; IntegrationAgent/0.1)"


class HTTPRequestTool(Capability):
    name = "http_request"
    description = "Makes an HTTP request to the specified URL and returns the response body."
    parameters = {
        "type": "object",
        "properties": {
            "url": {"type": "string", "description": "The URL to request"},
            "method": {"type": "string", "description": "HTTP method (defaults to GET)"},
            "body": {"type": "string", "description": "The body of the request"},
            "headers": {"type": "object", "description": "The headers of the request"},
        },
    }
    required = ("url",)
    defaults = {"method": "GET"}

    def __init__(self, client: httpx.Client | None = None, timeout: float = 30.0):
        """Initialize the tool.

        Args:
            client: Optional pre-configured client (used for tests and proxies).
            timeout: Request timeout in seconds when no client is given.
        """
        self._client = client
        self.timeout = timeout

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                timeout=self.timeout,
                follow_redirects=True,
                headers={"User-Agent": DEFAULT_USER_AGENT},
            )
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def execute(self, arguments: dict[str, Any]) -> str:
        url = arguments["url"]
        method = str(arguments.get("method") or "GET").upper()

        body = arguments.get("body")
        if body is not None and not isinstance(body, str):
            body = json.dumps(body)

        headers = {}
        raw_headers = arguments.get("headers")
        if isinstance(raw_headers, dict):
            # Non-string header values are ignored.
            headers = {k: v for k, v in raw_headers.items() if isinstance(v, str)}

        log = logger.bind(method=method, url=url)
        log.info("http_request_started", headers=len(headers), body_size=len(body) if body else 0)

        response = self._get_client().request(method, url, content=body, headers=headers)
        log.info("http_response_received", status_code=response.status_code, size=len(response.content))

        if not response.is_success:
            raise httpx.HTTPStatusError(
                f"request failed with status code {response.status_code}: "
                f"{truncate_text(response.text, 1000)}",
                request=response.request,
                response=response,
            )

        return response.text
