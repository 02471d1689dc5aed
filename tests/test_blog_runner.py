import asyncio

import pytest
import yaml

from blog_config import ScrapeConfig
from blog_errors import InvalidUrlError, NoPostsFoundError, TemplateError
from blog_runner import BlogRunner
from blog_status import StatusReporter
from conftest import FakeElement, FakeNavigator, FakePage

LIST_URL = 'https://blog.example.com/posts'

CONFIG = ScrapeConfig(
    post_link_selector='a.post-link',
    content_selector='div.post-content',
    field_selectors={'title': 'h1.title', 'categories': '.category'},
)


class RecordingReporter(StatusReporter):
    def __init__(self):
        self.events = []

    def start_spinner(self, message):
        self.events.append(('start_spinner', message))

    def stop_spinner(self, message, success=True):
        self.events.append(('stop_spinner', message, success))

    def start_progress(self, total):
        self.events.append(('start_progress', total))

    def update_progress(self, index, status):
        self.events.append(('update_progress', index, status))

    def stop_progress(self):
        self.events.append(('stop_progress',))

    def summary(self, tally, output_dir):
        self.events.append(('summary', tally.success_count, tally.failure_count))


def post_page(url, title, category=None):
    elements = {
        'h1.title': FakeElement(text=title),
        'div.post-content': FakeElement(html=f'<h1>{title}</h1><p>Body of {title}</p>'),
    }
    if category:
        elements['.category'] = FakeElement(text=category)
    return FakePage(url, elements=elements)


def make_runner(tmp_path, downloader, pages, reporter=None):
    navigator = FakeNavigator(pages)
    runner = BlogRunner(
        CONFIG,
        output_dir=str(tmp_path / 'out'),
        reporter=reporter or RecordingReporter(),
        navigator=navigator,
        downloader=downloader,
    )
    return runner, navigator


def test_run_writes_posts_and_counts_failures(tmp_path, downloader, template_file):
    links = [
        'https://blog.example.com/posts/first-post',
        'https://blog.example.com/posts/missing',
        'https://blog.example.com/posts/second-post',
    ]
    pages = {
        LIST_URL: FakePage(LIST_URL, links={'a.post-link': links + [links[0]]}),
        links[0]: post_page(links[0], 'First Post', category='Events'),
        links[2]: post_page(links[2], 'Second Post'),
    }
    reporter = RecordingReporter()
    runner, navigator = make_runner(tmp_path, downloader, pages, reporter)

    tally = asyncio.run(runner.run(LIST_URL, str(template_file)))

    assert (tally.success_count, tally.failure_count) == (2, 1)
    assert tally.total == len(links)
    assert navigator.closed

    first = (tmp_path / 'out' / 'first-post.md').read_text(encoding='utf-8')
    frontmatter = yaml.safe_load(first.split('---\n')[1])
    assert frontmatter['title'] == 'First Post'
    assert frontmatter['categories'] == ['Events']
    assert frontmatter['draft'] is False
    assert first.rstrip().endswith('Body of First Post')

    second = (tmp_path / 'out' / 'second-post.md').read_text(encoding='utf-8')
    assert 'categories: ["news"]' in second

    assert reporter.events[0] == ('start_spinner', 'Scraping list page...')
    assert reporter.events[1] == ('stop_spinner', 'Found 3 posts', True)
    assert ('update_progress', 2, 'Scraping 2/3') in reporter.events
    assert reporter.events[-2] == ('stop_progress',)
    assert reporter.events[-1] == ('summary', 2, 1)


def test_invalid_url_is_fatal_and_releases_sessions(tmp_path, downloader, template_file):
    runner, navigator = make_runner(tmp_path, downloader, {})

    with pytest.raises(InvalidUrlError):
        asyncio.run(runner.run('not a url', str(template_file)))
    assert navigator.closed


def test_missing_template_is_fatal(tmp_path, downloader):
    runner, navigator = make_runner(tmp_path, downloader, {})

    with pytest.raises(TemplateError):
        asyncio.run(runner.run(LIST_URL, str(tmp_path / 'nope.md')))
    assert navigator.closed


def test_empty_listing_aborts_the_run(tmp_path, downloader, template_file):
    reporter = RecordingReporter()
    runner, navigator = make_runner(tmp_path, downloader, {LIST_URL: FakePage(LIST_URL)}, reporter)

    with pytest.raises(NoPostsFoundError):
        asyncio.run(runner.run(LIST_URL, str(template_file)))

    assert navigator.closed
    assert ('stop_spinner', 'Failed', False) in reporter.events
    assert not any(event[0] == 'summary' for event in reporter.events)
    assert not (tmp_path / 'out').exists()
