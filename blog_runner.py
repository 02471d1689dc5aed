#!/usr/bin/env python3
"""
Run orchestration: listing discovery, then extract -> transform -> write
for each post, one at a time. A failing post is logged and counted; only
problems that make the rest of the run pointless abort it.
"""

# Standard library imports
import logging
import os
from pathlib import Path
from typing import List, Optional

# Third-party imports
import aiofiles
import validators

# Local imports
from blog_browser import PageNavigator
from blog_config import FrontmatterTemplate, ScrapeConfig, parse_template
from blog_converter import PostConverter
from blog_downloader import ImageDownloader
from blog_errors import InvalidUrlError
from blog_extractor import BlogExtractor
from blog_status import RunTally, StatusReporter, emit

logger = logging.getLogger(__name__)

OUTPUT_DIR = "output"


class BlogRunner:
    """Owns the browser and HTTP sessions for one run and tallies results"""

    def __init__(
        self,
        config: ScrapeConfig,
        output_dir: str = OUTPUT_DIR,
        reporter: Optional[StatusReporter] = None,
        navigator: Optional[PageNavigator] = None,
        downloader: Optional[ImageDownloader] = None,
        headless: bool = True,
        timeout_ms: int = 60000,
        max_retries: int = 3
    ):
        self.config = config
        self.output_dir = output_dir
        self.reporter = reporter or StatusReporter()
        callback = self.reporter.log
        self.navigator = navigator or PageNavigator(headless=headless, timeout_ms=timeout_ms, callback=callback)
        self.downloader = downloader or ImageDownloader(max_retries=max_retries, callback=callback)
        self.extractor = BlogExtractor(self.navigator, config, callback=callback)
        self.converter = PostConverter(self.downloader, output_dir, callback=callback)
        self.tally = RunTally()

    def _log(self, level: str, message: str) -> None:
        emit(logger, self.reporter.log, level, message)

    async def close(self) -> None:
        """Release the browser and HTTP sessions"""
        try:
            await self.navigator.close()
        finally:
            await self.downloader.close()

    async def run(self, list_url: str, template_path: str) -> RunTally:
        """Process every post linked from list_url

        Raises:
            BlogExtractorError: invalid URL, bad template, navigation failure
                on the listing page, or no posts found
        """
        try:
            if not validators.url(list_url):
                raise InvalidUrlError(f"Invalid URL: {list_url}")

            template = parse_template(template_path)
            self._log("info", f"Frontmatter keys: {', '.join(template.keys)}")

            self.reporter.start_spinner("Scraping list page...")
            try:
                links = await self.extractor.discover_post_urls(list_url)
            except Exception:
                self.reporter.stop_spinner("Failed", False)
                raise
            self.reporter.stop_spinner(f"Found {len(links)} posts", True)

            Path(self.output_dir).mkdir(parents=True, exist_ok=True)
            await self.process_posts(links, template)
        finally:
            await self.close()

        self.reporter.summary(self.tally, self.output_dir)
        return self.tally

    async def process_posts(self, links: List[str], template: FrontmatterTemplate) -> None:
        """Run each post to completion before starting the next"""
        self.reporter.start_progress(len(links))
        try:
            for i, link in enumerate(links, 1):
                self.reporter.update_progress(i, f"Scraping {i}/{len(links)}")
                try:
                    await self.process_post(link, template)
                    self.tally.record_success()
                except Exception as e:
                    self.tally.record_failure()
                    self._log("error", f"Failed to process {link}: {e}")
                    logger.debug("Failure details", exc_info=True)
        finally:
            self.reporter.stop_progress()

    async def process_post(self, link: str, template: FrontmatterTemplate) -> str:
        """Extract, transform and write one post; returns the written path"""
        post, content = await self.extractor.extract_post(link, template.keys)
        converted = await self.converter.convert(post, content, link, template)

        file_path = os.path.join(self.output_dir, f"{converted.slug}.md")
        async with aiofiles.open(file_path, 'w', encoding='utf-8') as f:
            await f.write(converted.content)

        self._log("success", f"Saved: {converted.slug}.md")
        return file_path
