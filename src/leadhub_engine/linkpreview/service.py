"""Open Graph link previews for URLs pasted into chats."""

import html
import logging
import re
from typing import Any
from urllib.parse import urlparse

import httpx

logger = logging.getLogger(__name__)

USER_AGENT = "facebookexternalhit/1.1 (+http://www.facebook.com/externalhit_uatext.php)"
MAX_BODY = 512 * 1024

_TITLE_TAG = re.compile(r"<title[^>]*>([^<]+)</title>", re.IGNORECASE)


def _meta_patterns(prop: str) -> list[re.Pattern]:
    p = re.escape(prop)
    return [
        re.compile(rf"""<meta[^>]+property=["']og:{p}["'][^>]+content=["']([^"']+)["']""", re.I),
        re.compile(rf"""<meta[^>]+content=["']([^"']+)["'][^>]+property=["']og:{p}["']""", re.I),
        re.compile(rf"""<meta[^>]+name=["']{p}["'][^>]+content=["']([^"']+)["']""", re.I),
        re.compile(rf"""<meta[^>]+content=["']([^"']+)["'][^>]+name=["']{p}["']""", re.I),
    ]


_PATTERNS = {prop: _meta_patterns(prop) for prop in ("title", "description", "image", "site_name")}


def domain_of(url: str) -> str:
    host = urlparse(url).hostname
    if not host:
        return url
    return host[4:] if host.startswith("www.") else host


def extract_meta(page: str, prop: str) -> str | None:
    for pattern in _PATTERNS[prop]:
        m = pattern.search(page)
        if m and m.group(1).strip():
            return html.unescape(m.group(1).strip())
    return None


def parse_preview(page: str, url: str) -> dict[str, Any]:
    domain = domain_of(url)
    title = extract_meta(page, "title")
    if not title:
        m = _TITLE_TAG.search(page)
        title = html.unescape(m.group(1).strip()) if m else domain
    return {
        "title": title,
        "description": extract_meta(page, "description") or "",
        "image": extract_meta(page, "image") or "",
        "site_name": extract_meta(page, "site_name") or "",
        "domain": domain,
        "url": url,
    }


class LinkPreviewService:
    def __init__(self, timeout: float = 6.0, transport: httpx.AsyncBaseTransport | None = None):
        self.timeout = timeout
        self._transport = transport

    async def preview(self, url: str) -> dict[str, Any]:
        """Fetch ``url`` and read its OG tags; any failure yields a domain-only preview."""
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                resp = await client.get(url, headers={"User-Agent": USER_AGENT})
            resp.raise_for_status()
            return parse_preview(resp.text[:MAX_BODY], url)
        except httpx.HTTPError as exc:
            logger.info("Link preview fell back to domain for %s: %s", url, type(exc).__name__)
            return parse_preview("", url)
