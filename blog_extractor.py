#!/usr/bin/env python3
"""
Blog Content Extractor - listing discovery and per-post field extraction.
Uses Playwright-rendered pages; every field degrades to '' on its own.
"""

# Standard library imports
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

# Local imports
from blog_browser import PageNavigator
from blog_config import FieldSpec, FieldStrategy, ScrapeConfig
from blog_content import ContentPayload, clean_content
from blog_errors import NoPostsFoundError
from blog_status import StatusCallback, emit

logger = logging.getLogger(__name__)

LIST_WAIT_UNTIL = 'networkidle'
DETAIL_WAIT_UNTIL = 'domcontentloaded'
OPEN_GRAPH_IMAGE_SELECTOR = 'meta[property="og:image"]'

# One step of a field's fallback chain: (navigator, page, selector) -> value or None
FieldExtractor = Callable[[PageNavigator, Any, str], Awaitable[Optional[str]]]


async def selector_image_source(navigator: PageNavigator, page: Any, selector: str) -> Optional[str]:
    """Resolved src of the matched element"""
    return await navigator.query_property(page, selector, "el => el.src || null")


async def open_graph_image(navigator: PageNavigator, page: Any, selector: str) -> Optional[str]:
    """Page-level og:image, ignoring the field selector"""
    return await navigator.query_property(page, OPEN_GRAPH_IMAGE_SELECTOR, "el => el.content || null")


async def selector_datetime(navigator: PageNavigator, page: Any, selector: str) -> Optional[str]:
    """Machine-readable datetime attribute, else rendered text"""
    return await navigator.query_property(
        page, selector, "el => el.getAttribute('datetime') || el.innerText"
    )


async def selector_text(navigator: PageNavigator, page: Any, selector: str) -> Optional[str]:
    return await navigator.query_text(page, selector)


# Tried in order, first non-empty value wins
FIELD_EXTRACTORS: Dict[FieldStrategy, List[FieldExtractor]] = {
    FieldStrategy.IMAGE: [selector_image_source, open_graph_image],
    FieldStrategy.DATE: [selector_datetime],
    FieldStrategy.PLAIN_TEXT: [selector_text],
}


class BlogExtractor:
    """Discovers post links on a listing page and extracts each post"""

    def __init__(
        self,
        navigator: PageNavigator,
        config: ScrapeConfig,
        callback: Optional[StatusCallback] = None
    ):
        self.navigator = navigator
        self.config = config
        self.callback = callback  # Optional callback for UI updates (level, message)

    def _log(self, level: str, message: str) -> None:
        """Log message to logger and optionally call callback for UI updates"""
        emit(logger, self.callback, level, message)

    async def discover_post_urls(self, list_url: str) -> List[str]:
        """Collect unique post URLs from the listing page

        Raises:
            NavigationError: listing page could not be loaded
            NoPostsFoundError: the link selector matched no usable links
        """
        page = await self.navigator.open(list_url, wait_until=LIST_WAIT_UNTIL)
        try:
            # Lazy-loaded listings only render links once scrolled into view
            await self.navigator.auto_scroll(page)
            hrefs = await self.navigator.query_all(page, self.config.post_link_selector, "el => el.href")
        finally:
            await self.navigator.close_page(page)

        # Remove empties and duplicates, keep first-seen order
        links = list(dict.fromkeys(str(href) for href in hrefs if href))
        self._log("debug", f"Found {len(links)} unique links")

        if not links:
            raise NoPostsFoundError(
                f"No posts found with selector '{self.config.post_link_selector}' on {list_url}"
            )
        return links

    async def extract_field(self, page: Any, spec: FieldSpec) -> str:
        """Run the field's fallback chain; any failure degrades to ''"""
        if not spec.selector:
            return ''

        for extractor in FIELD_EXTRACTORS[spec.strategy]:
            try:
                value = await extractor(self.navigator, page, spec.selector)
            except Exception as e:
                self._log("debug", f"  Failed to extract {spec.name} via {extractor.__name__}: {e}")
                continue
            if isinstance(value, str) and value.strip():
                return value.strip()
        return ''

    async def extract_content(self, page: Any, title: str) -> ContentPayload:
        """Snapshot the content root and clean it"""
        markup = await self.navigator.query_html(page, self.config.content_selector)
        if markup is None:
            self._log("warning", f"  Content selector '{self.config.content_selector}' matched nothing on {page.url}")
            return ContentPayload()
        return clean_content(markup, title=title, base_url=page.url)

    async def extract_post(self, url: str, field_names: List[str]) -> Tuple[Dict[str, Any], ContentPayload]:
        """Extract every template field and the cleaned body of one post

        Returns:
            (post record holding every field name, content payload)
        """
        self._log("debug", f"Scraping {url}...")
        page = await self.navigator.open(url, wait_until=DETAIL_WAIT_UNTIL)
        try:
            post: Dict[str, Any] = {}
            for spec in self.config.field_specs(field_names):
                post[spec.name] = await self.extract_field(page, spec)

            content = await self.extract_content(page, post.get('title') or '')
        finally:
            await self.navigator.close_page(page)

        return post, content
