from __future__ import annotations

"""RSS 2.0 / Atom feed fetching and normalization."""

import logging
from dataclasses import dataclass
from typing import Any, Iterable
from xml.etree import ElementTree

import httpx
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Mozilla/5.0 (Chatbot RSS fetcher)"
DEFAULT_TIMEOUT = 15.0
DEFAULT_MAX_BYTES = 5 * 1024 * 1024
DEFAULT_IMPORT_LIMIT = 20


class FeedFetchError(RuntimeError):
    """Raised when the feed could not be downloaded."""
    pass


@dataclass(frozen=True)
class FeedItem:
    """Feed entry normalized across RSS and Atom."""
    title: str
    link: str
    content: str
    pub_date: str

    def to_dict(self) -> dict[str, str]:
        return {
            "title": self.title,
            "link": self.link,
            "content": self.content,
            "pubDate": self.pub_date,
        }


async def fetch_feed(
    url: str,
    client: httpx.AsyncClient | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    max_bytes: int = DEFAULT_MAX_BYTES,
    user_agent: str = DEFAULT_USER_AGENT,
) -> list[FeedItem]:
    """Download a feed and return its normalized items.

    Transport failures and non-success statuses raise ``FeedFetchError``;
    a body that is not a recognizable feed yields an empty list.
    """
    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(timeout=timeout, follow_redirects=True)
    try:
        response = await client.get(url, headers={"user-agent": user_agent})
        if response.is_error:
            raise FeedFetchError(f"Fetch failed {response.status_code}")
        content = response.content
    except httpx.HTTPError as exc:
        logger.warning("feed_fetch_failed", extra={"detail": type(exc).__name__})
        raise FeedFetchError(str(exc)) from exc
    finally:
        if owns_client and client is not None:
            await client.aclose()
    if max_bytes and len(content) > max_bytes:
        raise FeedFetchError("Feed exceeds maximum size limit")
    return parse_feed(content)


def parse_feed(payload: bytes | str) -> list[FeedItem]:
    """Normalize RSS channel items, or Atom entries when there are none."""
    try:
        root = ElementTree.fromstring(payload)
    except ElementTree.ParseError:
        logger.info("feed_unparseable")
        return []
    entries: list[ElementTree.Element] = []
    if _local(root.tag) == "rss":
        channel = _child(root, "channel")
        if channel is not None:
            entries = _children(channel, "item")
    if not entries and _local(root.tag) == "feed":
        entries = _children(root, "entry")
    return [_normalize(entry) for entry in entries]


def _normalize(entry: ElementTree.Element) -> FeedItem:
    return FeedItem(
        title=_text(_child(entry, "title")),
        link=_link(entry),
        content=_first_text(entry, ("encoded", "content", "description", "summary")),
        pub_date=_first_text(entry, ("pubDate", "published", "updated")),
    )


def _link(entry: ElementTree.Element) -> str:
    links = _children(entry, "link")
    for link in links:
        if link.get("href") and link.get("rel", "alternate") == "alternate":
            return link.get("href", "").strip()
    for link in links:
        if link.get("href"):
            return link.get("href", "").strip()
        text = _text(link)
        if text:
            return text
    return _text(_child(entry, "guid"))


def _local(tag: Any) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _children(element: ElementTree.Element, name: str) -> list[ElementTree.Element]:
    return [child for child in element if _local(child.tag) == name]


def _child(element: ElementTree.Element, name: str) -> ElementTree.Element | None:
    for child in element:
        if _local(child.tag) == name:
            return child
    return None


def _text(element: ElementTree.Element | None) -> str:
    if element is None:
        return ""
    return "".join(element.itertext()).strip()


def _first_text(element: ElementTree.Element, names: Iterable[str]) -> str:
    for name in names:
        value = _text(_child(element, name))
        if value:
            return value
    return ""


def strip_html(html: str) -> str:
    """Reduce HTML to its visible text."""
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    return " ".join(soup.get_text(" ", strip=True).split())


def feed_items_to_records(
    items: list[FeedItem], limit: int = DEFAULT_IMPORT_LIMIT
) -> list[dict[str, str]]:
    """Turn the first ``limit`` items into importable document records."""
    return [
        {"title": item.title, "url": item.link, "content": strip_html(item.content)}
        for item in items[: max(0, limit)]
    ]
