#!/usr/bin/env python3
"""
Post transform pipeline: normalizes an extracted post record, localizes
its images, converts the body to Markdown and renders frontmatter.
"""

# Standard library imports
import html
import json
import logging
import os
import re
import time
import unicodedata
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

# Third-party imports
from bs4 import BeautifulSoup
from dateutil import parser as dateutil_parser
from markdownify import ATX, markdownify

# Local imports
from blog_config import FieldShape, FrontmatterTemplate
from blog_content import ContentImage, ContentPayload
from blog_downloader import ImageDownloader
from blog_status import StatusCallback, emit

logger = logging.getLogger(__name__)

IMAGES_SUBDIR = 'images/news'
DEFAULT_IMAGE_EXT = '.jpg'
DEFAULT_CATEGORIES = ['news']

SLUG_PATTERN = re.compile(r'[^a-z0-9]+')
URL_SEGMENT_PATTERN = re.compile(r'/([^/]+)/?$')
NUMBERED_POST_PATTERN = re.compile(r'post-\d+')
ORDINAL_PATTERN = re.compile(r'(\d+)(st|nd|rd|th)\b', re.IGNORECASE)
WORD_PATTERN = re.compile(r'[^\W\d_]+')

# Missing date parts come from here, never from the current date
DATE_DEFAULT = datetime(2000, 1, 1)
# Words tolerated around a date; any other skipped word means the text is not a date
DATE_CONTEXT_WORDS = frozenset({'published', 'posted', 'updated', 'on', 'at', 'date'})

SOCIAL_LINE_PATTERN = re.compile(r'^.*(?:Follow:|Listen:).*$', re.MULTILINE)
TRAILING_SECTION_PATTERN = re.compile(r'(?:Recent Posts|See All)[\s\S]*$', re.IGNORECASE)
EMPTY_HEADING_PATTERN = re.compile(r'^#{1,6}[ \t]*$', re.MULTILINE)
EXTRA_NEWLINES_PATTERN = re.compile(r'\n{3,}')


@dataclass(frozen=True)
class ImageDownloadTask:
    """One image to fetch for a post, with its published (site-root) path"""

    source_url: str
    filename: str
    directory: str
    published_path: str


@dataclass(frozen=True)
class ConvertedPost:
    slug: str
    content: str


def slugify(value: str) -> str:
    """Lowercase ASCII slug with hyphens; '' when nothing usable remains"""
    normalized = unicodedata.normalize('NFKD', value)
    normalized = normalized.encode('ascii', 'ignore').decode('ascii').lower()
    return SLUG_PATTERN.sub('-', normalized).strip('-')


def url_segment(url: str) -> str:
    """Final path segment of the source URL ('' if none)"""
    match = URL_SEGMENT_PATTERN.search(url)
    return match.group(1) if match else ''


def generate_slug(post: Dict[str, Any], source_url: str) -> str:
    """Derive the post slug from its title (or name) and source URL

    A URL segment of the form post-<n> replaces the slug outright. Any
    other segment that differs from the slug and is not already part of
    it is appended, which keeps posts with the same title apart.
    """
    title = str(post.get('title') or post.get('name') or '')
    slug = slugify(title) or f"post-{int(time.time() * 1000)}"

    segment = url_segment(source_url)
    if segment:
        if NUMBERED_POST_PATTERN.fullmatch(segment):
            slug = segment
        elif segment != slug and segment not in slug:
            slug = f"{slug}-{segment}"
    return slug


def normalize_list_field(value: Any, default: List[str]) -> List[str]:
    if isinstance(value, list):
        return value if value else list(default)
    if value:
        return [value]
    return list(default)


def image_extension(url: str) -> str:
    """Extension of the URL path (query and fragment ignored), default .jpg"""
    ext = os.path.splitext(PurePosixPath(urlparse(url).path).name)[1]
    return ext or DEFAULT_IMAGE_EXT


def is_remote_url(url: Any) -> bool:
    return isinstance(url, str) and url.lower().startswith(('http://', 'https://'))


def published_image_path(slug: str, filename: str) -> str:
    """Root-relative path used in Markdown, independent of the output root"""
    return f"/{IMAGES_SUBDIR}/{slug}/{filename}"


def is_true(value: Any) -> bool:
    return value is True or (isinstance(value, str) and value.strip().lower() == 'true')


def render_frontmatter_value(key: str, value: Any, shape: FieldShape) -> str:
    if shape is FieldShape.ARRAY or key in ('categories', 'tags'):
        items = value if isinstance(value, list) else ([value] if value else [])
        return json.dumps(items, ensure_ascii=False, separators=(',', ':'))
    if shape is FieldShape.BOOLEAN or key == 'draft':
        return 'true' if is_true(value) else 'false'
    text = '' if value is None else str(value)
    return '"' + text.replace('"', '\\"') + '"'


def cleanup_markdown(markdown: str) -> str:
    """Strip social lines, trailing post lists and leftover blank structure"""
    # Remove "Follow:" and "Listen:" lines
    markdown = SOCIAL_LINE_PATTERN.sub('', markdown)

    # Remove "Recent Posts" and everything after
    markdown = TRAILING_SECTION_PATTERN.sub('', markdown)

    # Remove empty headings (##, ###, etc. with nothing after them)
    markdown = EMPTY_HEADING_PATTERN.sub('', markdown)

    return EXTRA_NEWLINES_PATTERN.sub('\n\n', markdown).strip()


class PostConverter:
    """Turns an extracted post record and body into final Markdown file content"""

    def __init__(
        self,
        downloader: ImageDownloader,
        output_dir: str,
        callback: Optional[StatusCallback] = None
    ):
        self.downloader = downloader
        self.output_dir = output_dir
        self.callback = callback

    def _log(self, level: str, message: str) -> None:
        emit(logger, self.callback, level, message)

    def normalize_fields(self, post: Dict[str, Any]) -> None:
        """Apply list and boolean defaults in place"""
        post['categories'] = normalize_list_field(post.get('categories'), DEFAULT_CATEGORIES)
        post['tags'] = normalize_list_field(post.get('tags'), [])
        if post.get('draft') in (None, ''):
            post['draft'] = False

    def format_date(self, date_string: str) -> str:
        """Render a parseable date as an ISO-8601 UTC instant; otherwise keep it

        Uses python-dateutil so most human-readable formats work. Naive
        values are taken as UTC; missing day or month become 1. Text with
        words that are not part of a date (bylines, "5 days ago") is kept.
        """
        if not date_string:
            return ''

        try:
            # Remove ordinal suffixes (1st, 2nd, 3rd, 4th, etc.) for better parsing
            cleaned = ORDINAL_PATTERN.sub(r'\1', date_string)
            date_obj, skipped = dateutil_parser.parse(
                cleaned.strip(), default=DATE_DEFAULT, fuzzy_with_tokens=True, dayfirst=False
            )
        except (ValueError, TypeError, OverflowError) as e:
            self._log("warning", f"  Could not parse date '{date_string}': {e}")
            return date_string

        stray_words = [
            word
            for token in skipped
            for word in WORD_PATTERN.findall(token.lower())
            if word not in DATE_CONTEXT_WORDS
        ]
        if stray_words:
            self._log("warning", f"  Could not parse date '{date_string}': unexpected text {' '.join(stray_words)!r}")
            return date_string

        if date_obj.tzinfo is None:
            date_obj = date_obj.replace(tzinfo=timezone.utc)
        date_obj = date_obj.astimezone(timezone.utc)
        return date_obj.strftime('%Y-%m-%dT%H:%M:%S.') + f"{date_obj.microsecond // 1000:03d}Z"

    def image_task(self, url: str, slug: str, filename: str) -> ImageDownloadTask:
        return ImageDownloadTask(
            source_url=url,
            filename=filename,
            directory=os.path.join(self.output_dir, IMAGES_SUBDIR, slug),
            published_path=published_image_path(slug, filename),
        )

    async def download_hero_image(self, image_url: Any, slug: str) -> Any:
        """Localize the hero image; on failure the remote URL is kept"""
        if not is_remote_url(image_url):
            return image_url

        task = self.image_task(image_url, slug, f"hero{image_extension(image_url)}")
        result = await self.downloader.download_image(task.source_url, task.directory, task.filename)
        if result:
            return task.published_path
        return image_url

    async def process_images(self, body: str, images: List[ContentImage], slug: str) -> str:
        """Download remote body images and point the markup at the local copies"""
        tasks = [
            self.image_task(img.source_url, slug, f"content-{img.index}{image_extension(img.source_url)}")
            for img in images
            if is_remote_url(img.source_url)
        ]
        if not tasks:
            return body

        self._log("debug", f"  Downloading {len(tasks)} images...")
        downloads = await self.downloader.download_images(
            [(task.source_url, task.filename) for task in tasks],
            tasks[0].directory
        )

        # Replace image URLs in the markup (attribute values may be entity-escaped)
        for task, download in zip(tasks, downloads):
            if not download.success:
                continue
            body = body.replace(task.source_url, task.published_path)
            escaped = html.escape(task.source_url, quote=False)
            if escaped != task.source_url:
                body = body.replace(escaped, task.published_path)
        return body

    def html_to_markdown(self, html_content: str) -> str:
        soup = BeautifulSoup(html_content, 'html.parser')
        for unwanted in soup.find_all(['script', 'style', 'noscript']):
            unwanted.decompose()
        return markdownify(str(soup), heading_style=ATX)

    def generate_frontmatter(self, post: Dict[str, Any], template: FrontmatterTemplate) -> str:
        lines = ['---']
        for key in template.keys:
            value = render_frontmatter_value(key, post.get(key, ''), template.shape_of(key))
            lines.append(f"{key}: {value}")
        lines.append('---')
        return '\n'.join(lines) + '\n\n'

    async def convert(
        self,
        post: Dict[str, Any],
        content: ContentPayload,
        source_url: str,
        template: FrontmatterTemplate
    ) -> ConvertedPost:
        """Run every transform stage in order and build the file content"""
        self.normalize_fields(post)

        # Every path below derives from this one slug
        slug = generate_slug(post, source_url)

        if post.get('date'):
            post['date'] = self.format_date(str(post['date']))

        if post.get('image'):
            post['image'] = await self.download_hero_image(post['image'], slug)

        body = content.body
        if content.images:
            body = await self.process_images(body, content.images, slug)

        markdown = cleanup_markdown(self.html_to_markdown(body))
        frontmatter = self.generate_frontmatter(post, template)
        return ConvertedPost(slug=slug, content=frontmatter + markdown)
