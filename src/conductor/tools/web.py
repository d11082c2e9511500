"""webfetch: HTTP GET a URL and return its text."""

from __future__ import annotations

import html
import re
from typing import Any

import httpx

from conductor.tools.base import BaseTool
from conductor.types.tools import ToolContext, ToolDef, ToolKind, ToolParam, ToolResultData

MAX_CONTENT_LENGTH = 50_000

_DEFINITION = ToolDef(
    name="webfetch",
    description=(
        "Fetch a URL over HTTP(S). HTML is reduced to plain text. "
        f"Output is truncated to max_length characters (default {MAX_CONTENT_LENGTH})."
    ),
    parameters=(
        ToolParam("url", "string", "http:// or https:// URL to fetch."),
        ToolParam(
            "max_length", "integer", "Maximum characters returned.",
            required=False, default=MAX_CONTENT_LENGTH,
        ),
    ),
)


def html_to_text(markup: str) -> str:
    """Strip tags and scripts, keep block boundaries as newlines."""
    text = re.sub(r"<(script|style)[^>]*>.*?</\1>", "", markup, flags=re.DOTALL | re.IGNORECASE)
    text = re.sub(r"<(br|p|div|h[1-6]|li|tr)[^>]*>", "\n", text, flags=re.IGNORECASE)
    text = html.unescape(re.sub(r"<[^>]+>", "", text))
    text = re.sub(r"[ \t]+", " ", text)
    return re.sub(r"\n{3,}", "\n\n", text).strip()


class WebFetchTool(BaseTool):
    """Fetch content from a URL via HTTP GET.

    ``transport`` lets callers (and tests) swap the httpx transport.
    """

    kind = ToolKind.WEBFETCH
    resource_arg = "url"

    def __init__(
        self, *, timeout: float = 30.0, transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport

    @property
    def definition(self) -> ToolDef:
        return _DEFINITION

    async def execute(self, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        url = str(args.get("url", ""))
        if not url:
            return self._error("url is required.")
        if not url.startswith(("http://", "https://")):
            return self._error("URL must start with http:// or https://")
        max_length = int(args.get("max_length") or MAX_CONTENT_LENGTH)

        try:
            async with httpx.AsyncClient(
                follow_redirects=True,
                timeout=self._timeout,
                transport=self._transport,
                headers={"User-Agent": "conductor/0.1"},
            ) as client:
                resp = await client.get(url)
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            return self._error(f"Fetch failed: {type(exc).__name__}: {exc}")

        body = resp.text
        if "html" in resp.headers.get("content-type", ""):
            body = html_to_text(body)
        if len(body) > max_length:
            body = body[:max_length] + f"\n\n[Truncated: {len(body):,} chars total]"
        return self._ok(body)
