"""Shared fakes: a scripted Playwright-like page and a navigator that never launches a browser"""

# Standard library imports
import asyncio
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

# Third-party imports
import pytest

# Local imports
from blog_browser import PageNavigator
from blog_downloader import ImageDownloader
from blog_errors import NavigationError

PNG_BYTES = b'\x89PNG\r\n\x1a\n' + b'\x00' * 64


class FakeElement:
    def __init__(self, text: str = '', html: str = '', props: Optional[Dict[str, Any]] = None):
        self.text = text
        self.html = html
        self.props = props or {}

    async def inner_text(self) -> str:
        return self.text

    async def inner_html(self) -> str:
        return self.html

    async def evaluate(self, expression: str) -> Any:
        value = self.props.get(expression)
        if isinstance(value, Exception):
            raise value
        return value


class FakePage:
    def __init__(
        self,
        url: str,
        elements: Optional[Dict[str, FakeElement]] = None,
        links: Optional[Dict[str, List[str]]] = None,
        scroll_gaps: Iterable[int] = ()
    ):
        self.url = url
        self.elements = elements or {}
        self.links = links or {}
        self.scroll_gaps = iter(scroll_gaps)
        self.evaluate_calls = 0
        self.closed = False

    async def query_selector(self, selector: str) -> Optional[FakeElement]:
        return self.elements.get(selector)

    async def eval_on_selector_all(self, selector: str, script: str) -> List[str]:
        return list(self.links.get(selector, []))

    async def evaluate(self, script: str, arg: Any = None) -> int:
        self.evaluate_calls += 1
        return next(self.scroll_gaps, 0)

    async def close(self) -> None:
        self.closed = True


class FakeNavigator(PageNavigator):
    """PageNavigator serving pre-built pages; the real query helpers run against them"""

    def __init__(self, pages: Dict[str, FakePage]):
        super().__init__()
        self.pages = pages
        self.opened: List[tuple] = []
        self.closed = False

    async def open(self, url: str, wait_until: str = 'networkidle', timeout_ms: Optional[int] = None) -> FakePage:
        self.opened.append((url, wait_until))
        if url not in self.pages:
            raise NavigationError(f"Could not load {url}")
        return self.pages[url]

    async def auto_scroll(self, page: Any, *args, **kwargs) -> int:
        return 0

    async def close(self) -> None:
        self.closed = True


class FakeTransport:
    """Replacement for ImageDownloader._fetch_to_file that never touches the network"""

    def __init__(self, failures: Optional[Dict[str, int]] = None, payload: bytes = PNG_BYTES):
        # url -> number of leading attempts that fail
        self.failures = dict(failures or {})
        self.payload = payload
        self.calls: List[str] = []

    async def __call__(self, url: str, file_path: Path) -> int:
        self.calls.append(url)
        remaining = self.failures.get(url, 0)
        if remaining:
            self.failures[url] = remaining - 1
            raise asyncio.TimeoutError()
        file_path.write_bytes(self.payload)
        return len(self.payload)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def downloader(monkeypatch, transport):
    image_downloader = ImageDownloader(max_retries=3, retry_delay=0)
    monkeypatch.setattr(image_downloader, '_fetch_to_file', transport)
    return image_downloader


@pytest.fixture
def template_file(tmp_path):
    path = tmp_path / 'demo.md'
    path.write_text(
        '---\n'
        'title: "Example"\n'
        'date: 2024-01-01\n'
        'image: ""\n'
        'categories: []\n'
        'tags: []\n'
        'draft: false\n'
        '---\n'
        '\n'
        'Body goes here.\n',
        encoding='utf-8'
    )
    return path
