"""Browser capabilities backed by Playwright.

All browser tools share one ``BrowserSession`` handle that the caller
creates, starts and closes. Nothing here holds a module-level page.
"""

import json
import re
from typing import Any

from bs4 import BeautifulSoup
from playwright.sync_api import Browser, BrowserContext, Page, Playwright, sync_playwright

from ..logging_config import get_logger
from .base import Capability

logger = get_logger(__name__)

BLOCK_TAGS = [
    "p", "div", "section", "article", "header", "footer", "main", "nav",
    "table", "tr", "ul", "ol", "dl", "dt", "dd", "blockquote", "li",
]


class BrowserSession:
    """A single Playwright page reused across tool calls."""

    def __init__(
        self,
        headless: bool = True,
        user_data_dir: str | None = None,
        timeout_ms: int = 30_000,
    ):
        self.headless = headless
        self.user_data_dir = user_data_dir
        self.timeout_ms = timeout_ms
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None

    def start(self) -> "BrowserSession":
        if self._page is not None:
            return self

        log = logger.bind(headless=self.headless, user_data_dir=self.user_data_dir)
        log.debug("launching_browser")
        self._playwright = sync_playwright().start()
        chromium = self._playwright.chromium

        if self.user_data_dir:
            self._context = chromium.launch_persistent_context(self.user_data_dir, headless=self.headless)
        else:
            self._browser = chromium.launch(headless=self.headless)
            self._context = self._browser.new_context()

        self._context.set_default_timeout(self.timeout_ms)
        self._page = self._context.pages[0] if self._context.pages else self._context.new_page()
        log.info("browser_started")
        return self

    def close(self) -> None:
        if self._context is not None:
            self._context.close()
        if self._browser is not None:
            self._browser.close()
        if self._playwright is not None:
            self._playwright.stop()
        self._page = self._context = self._browser = self._playwright = None
        logger.debug("browser_closed")

    @property
    def page(self) -> Page:
        if self._page is None:
            raise RuntimeError("browser session is not started")
        return self._page

    def __enter__(self) -> "BrowserSession":
        return self.start()

    def __exit__(self, *exc) -> None:
        self.close()


def html_to_text(html: str) -> str:
    """Convert an HTML fragment to compact markdown-like text.

    Scripts and styles are dropped, headings become ``#`` lines, links keep
    their target as ``[text](href)`` and ``<pre>`` blocks are fenced.
    """
    soup = BeautifulSoup(html, "html.parser")

    for tag in soup(["script", "style", "noscript", "svg", "template"]):
        tag.decompose()

    for a in soup.find_all("a"):
        text = a.get_text(" ", strip=True)
        href = a.get("href")
        a.replace_with(f"[{text}]({href})" if text and href else text)

    for level in range(1, 7):
        for heading in soup.find_all(f"h{level}"):
            heading.replace_with(f"\n{'#' * level} {heading.get_text(' ', strip=True)}\n")

    for pre in soup.find_all("pre"):
        pre.replace_with(f"\n```\n{pre.get_text().strip(chr(10))}\n```\n")

    for br in soup.find_all("br"):
        br.replace_with("\n")

    for li in soup.find_all("li"):
        li.insert(0, "- ")

    for tag in soup.find_all(BLOCK_TAGS):
        tag.insert_after("\n")

    lines = []
    in_fence = False
    for line in soup.get_text().splitlines():
        if line.strip() == "```":
            in_fence = not in_fence
            lines.append("```")
        elif in_fence:
            lines.append(line.rstrip())
        else:
            lines.append(" ".join(line.split()))

    return re.sub(r"\n{3,}", "\n\n", "\n".join(lines)).strip()


class BrowserCapability(Capability):
    """Base for tools that act on the shared page."""

    def __init__(self, session: BrowserSession):
        self.session = session


class ExtractPageContent(BrowserCapability):
    name = "extract_page_content"
    description = (
        "Extract the content of the current page as text. "
        "Optionally restrict it to the first element matching a CSS selector."
    )
    parameters = {
        "type": "object",
        "properties": {
            "selector": {
                "type": "string",
                "description": "CSS selector of the element to extract (defaults to body)",
            },
        },
    }
    defaults = {"selector": "body"}

    def execute(self, arguments: dict[str, Any]) -> str:
        selector = arguments["selector"]
        element = self.session.page.query_selector(selector)
        if element is None:
            raise ValueError(f"no element matches selector {selector!r}")
        html = element.evaluate("el => el.outerHTML")
        return html_to_text(html)


class Navigate(BrowserCapability):
    name = "browser_navigate"
    description = "Navigate the browser to a URL and wait for the page to settle."
    parameters = {
        "type": "object",
        "properties": {
            "url": {"type": "string", "description": "Absolute URL to open"},
        },
    }
    required = ("url",)

    def execute(self, arguments: dict[str, Any]) -> str:
        url = arguments["url"]
        self.session.page.goto(url, wait_until="networkidle")
        return f"Navigated to {url}"


class Click(BrowserCapability):
    name = "browser_click"
    description = "Click the first element matching a CSS selector on the current page."
    parameters = {
        "type": "object",
        "properties": {
            "selector": {"type": "string", "description": "CSS selector of the element to click"},
        },
    }
    required = ("selector",)

    def execute(self, arguments: dict[str, Any]) -> str:
        selector = arguments["selector"]
        self.session.page.click(selector)
        return f"clicked {selector}"


class ExecuteJavaScript(BrowserCapability):
    name = "browser_execute_js"
    description = (
        "Evaluate a JavaScript expression or function in the current page and return its result."
    )
    parameters = {
        "type": "object",
        "properties": {
            "script": {"type": "string", "description": "JavaScript expression or function source"},
        },
    }
    required = ("script",)

    def execute(self, arguments: dict[str, Any]) -> str:
        value = self.session.page.evaluate(arguments["script"])
        if isinstance(value, str):
            return value
        return json.dumps(value, default=str)


def browser_capabilities(session: BrowserSession) -> list[Capability]:
    """All browser tools bound to ``session``."""
    return [
        ExtractPageContent(session),
        Navigate(session),
        ExecuteJavaScript(session),
        Click(session),
    ]
