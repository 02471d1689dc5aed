#!/usr/bin/env python3
"""
Content-region cleanup for extracted post bodies.

Each pass takes markup and returns markup, so passes can be tested on
their own and reordered on purpose. clean_content() runs them in the
order below on a snapshot of the content root's inner HTML; the live
page is never touched.
"""

# Standard library imports
import re
from dataclasses import dataclass, field
from functools import partial
from typing import Callable, List
from urllib.parse import urljoin

# Third-party imports
from bs4 import BeautifulSoup, Tag

METADATA_SCAN_LIMIT = 5  # direct children inspected for metadata chrome
READ_TIME_MAX_CHARS = 300
DATE_LINE_MAX_CHARS = 100
DATE_LIKE_PATTERN = re.compile(r'[a-z]{3} \d{1,2}, \d{4}')
FILLER_TEXT_PATTERN = re.compile(r'this is just to fill empty area of this tag', re.IGNORECASE)

CleanupPass = Callable[[str], str]


@dataclass(frozen=True)
class ContentImage:
    """Image found in the cleaned body; index is its document position"""

    source_url: str
    index: int


@dataclass(frozen=True)
class ContentPayload:
    """Cleaned body markup plus its images in document order"""

    body: str = ''
    images: List[ContentImage] = field(default_factory=list)


def _parse(markup: str) -> BeautifulSoup:
    return BeautifulSoup(markup, 'html.parser')


def _text(element: Tag) -> str:
    return element.get_text(' ', strip=True)


def remove_duplicate_title(markup: str, title: str) -> str:
    """Drop h1 headings that repeat the post title"""
    title_text = title.strip().lower()
    if not title_text:
        return markup

    soup = _parse(markup)
    for h1 in soup.find_all('h1'):
        h1_text = _text(h1).lower()
        if h1_text == title_text or h1_text in title_text:
            h1.decompose()
    return str(soup)


def remove_metadata_blocks(markup: str) -> str:
    """Drop reading-time and date lines among the first few children"""
    soup = _parse(markup)
    # Snapshot first so removals don't pull later children into the window
    top_elements = soup.find_all(True, recursive=False)[:METADATA_SCAN_LIMIT]
    for element in top_elements:
        text = _text(element).lower()
        is_read_time = 'min read' in text and len(text) < READ_TIME_MAX_CHARS
        is_date_line = DATE_LIKE_PATTERN.search(text) is not None and len(text) < DATE_LINE_MAX_CHARS
        if is_read_time or is_date_line:
            element.decompose()
    return str(soup)


def remove_reading_time_list(markup: str) -> str:
    """Drop the first list that carries a "min read" label"""
    soup = _parse(markup)
    for ul in soup.find_all('ul'):
        if 'min read' in _text(ul).lower():
            ul.decompose()
            break
    return str(soup)


def strip_filler_text(markup: str) -> str:
    """Remove the page builder's placeholder sentence"""
    return FILLER_TEXT_PATTERN.sub('', markup)


def absolutize_image_sources(markup: str, base_url: str) -> str:
    """Rewrite img src attributes to absolute URLs"""
    soup = _parse(markup)
    for img in soup.find_all('img'):
        src = img.get('src')
        if src:
            img['src'] = urljoin(base_url, str(src).strip())
    return str(soup)


def collect_images(markup: str) -> List[ContentImage]:
    """List every img in document order, numbered from 0 (src may be empty)"""
    soup = _parse(markup)
    return [
        ContentImage(source_url=str(img.get('src') or ''), index=i)
        for i, img in enumerate(soup.find_all('img'))
    ]


def cleanup_passes(title: str, base_url: str) -> List[CleanupPass]:
    """Cleanup passes in the order they must run

    Title removal comes before the metadata scan, since a leftover title
    heading can look like a short metadata line.
    """
    return [
        partial(remove_duplicate_title, title=title),
        remove_metadata_blocks,
        remove_reading_time_list,
        strip_filler_text,
        partial(absolutize_image_sources, base_url=base_url),
    ]


def clean_content(markup: str, title: str = '', base_url: str = '') -> ContentPayload:
    """Run every cleanup pass over a content snapshot and collect its images"""
    for cleanup in cleanup_passes(title, base_url):
        markup = cleanup(markup)
    return ContentPayload(body=markup, images=collect_images(markup))
