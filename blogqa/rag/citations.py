from __future__ import annotations

"""Related-link footers for answers."""

from dataclasses import dataclass

from blogqa.rag.types import ContextItem

LINKS_HEADING = "관련 링크:"
NO_LINKS = "지정된 링크가 없습니다."


@dataclass(frozen=True)
class Link:
    """Source link shown under an answer."""
    label: str
    title: str
    url: str


def build_links(contexts: list[ContextItem]) -> list[Link]:
    """Unique context URLs in rank order; contexts without a URL are skipped."""
    links: list[Link] = []
    seen: set[str] = set()
    for item in contexts:
        if not item.url or item.url in seen:
            continue
        seen.add(item.url)
        links.append(Link(label=f"{len(links) + 1}.", title=item.title or item.url, url=item.url))
    return links


def append_links_footer(answer: str, links: list[Link]) -> str:
    """Append the numbered related-link list to the answer."""
    if links:
        body = "\n".join(f"{link.label} {link.title} - {link.url}" for link in links)
    else:
        body = NO_LINKS
    return f"{answer}\n\n{LINKS_HEADING}\n{body}"
