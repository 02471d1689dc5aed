#!/usr/bin/env python3
"""
Exception types for the blog extractor.

Every subclass of BlogExtractorError is fatal for a run. Per-post and
per-image problems are logged and counted instead of raised this far.
"""


class BlogExtractorError(Exception):
    """Base class for errors that abort the whole run"""


class InvalidUrlError(BlogExtractorError):
    """The listing page URL is not a valid URL"""


class TemplateError(BlogExtractorError):
    """Template file is missing or its frontmatter cannot be parsed"""


class ConfigError(BlogExtractorError):
    """Selector configuration is missing, unreadable or incomplete"""


class NavigationError(BlogExtractorError):
    """A page could not be loaded (timeout, browser failure, bad response)"""


class NoPostsFoundError(BlogExtractorError):
    """The post link selector matched nothing on the listing page"""
