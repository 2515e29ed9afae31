"""Page metadata extraction for articles saved from the browser."""

from __future__ import annotations

from typing import Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from readlater.models.entities import Article
from readlater.utils.text import make_snippet, normalize, reading_time_minutes, word_count
from readlater.utils.time import utc_now


def _page_title(soup: BeautifulSoup) -> Optional[str]:
    og = soup.find("meta", attrs={"property": "og:title"})
    if og and og.get("content"):
        return og["content"].strip()
    if soup.title and soup.title.string:
        return soup.title.string.strip()
    return None


def extract_article_info(url: str, html: str, title: Optional[str] = None) -> Article:
    """Build an unsaved ``Article`` from a page's URL and markup."""
    soup = BeautifulSoup(html, "html.parser")
    body = soup.body or soup
    words = word_count(body.get_text(" "))
    paragraphs = [normalize(p.get_text(" ")) for p in soup.find_all("p")]
    paragraphs = [p for p in paragraphs if p]
    now = utc_now()
    return Article(
        url=url,
        title=title or _page_title(soup) or url,
        domain=urlparse(url).hostname,
        content_snippet=make_snippet(paragraphs) if paragraphs else None,
        word_count=words,
        estimated_reading_time_minutes=reading_time_minutes(words),
        saved_at=now,
        updated_at=now,
    )


__all__ = ["extract_article_info"]
