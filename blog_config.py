#!/usr/bin/env python3
"""
Selector configuration and frontmatter template handling.

The template is any Markdown file with a YAML frontmatter block; its keys
decide which fields are extracted and written, and its value types decide
how each field is rendered (list, boolean or quoted string).
"""

# Standard library imports
import json
import logging
import os
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

# Third-party imports
import yaml
from rich.console import Console
from rich.prompt import Prompt

# Local imports
from blog_errors import ConfigError, TemplateError

logger = logging.getLogger(__name__)

POST_LINK_SELECTOR = 'postLinkSelector'
CONTENT_SELECTOR = 'contentSelector'
FIELD_SELECTOR_PREFIX = 'fm_'
REQUIRED_KEYS = (POST_LINK_SELECTOR, CONTENT_SELECTOR)

FRONTMATTER_PATTERN = re.compile(r'\A\ufeff?---[ \t]*\r?\n(.*?)^---[ \t]*$', re.DOTALL | re.MULTILINE)


class FieldStrategy(Enum):
    """How a field's value is read from the matched element"""

    PLAIN_TEXT = 'plainText'
    IMAGE = 'image'
    DATE = 'date'


class FieldShape(Enum):
    """Declared shape of a template value, used when rendering frontmatter"""

    STRING = 'string'
    ARRAY = 'array'
    BOOLEAN = 'boolean'


def resolve_strategy(field_name: str) -> FieldStrategy:
    """Pick the extraction strategy from the field name"""
    name = field_name.lower()
    if 'image' in name or 'thumb' in name:
        return FieldStrategy.IMAGE
    if 'date' in name:
        return FieldStrategy.DATE
    return FieldStrategy.PLAIN_TEXT


@dataclass(frozen=True)
class FieldSpec:
    """One template field bound to its selector and strategy"""

    name: str
    selector: str
    strategy: FieldStrategy


@dataclass(frozen=True)
class FrontmatterTemplate:
    """Ordered template keys and the declared shape of each"""

    keys: List[str]
    shapes: Dict[str, FieldShape] = field(default_factory=dict)

    def shape_of(self, key: str) -> FieldShape:
        return self.shapes.get(key, FieldShape.STRING)


@dataclass(frozen=True)
class ScrapeConfig:
    """Resolved selector configuration handed to the extractor"""

    post_link_selector: str
    content_selector: str
    field_selectors: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'ScrapeConfig':
        """Build from the JSON config format (postLinkSelector, contentSelector, fm_<key>)"""
        validate_config(data)
        field_selectors = {}
        for key, value in data.items():
            if key.startswith(FIELD_SELECTOR_PREFIX) and value:
                field_selectors[key[len(FIELD_SELECTOR_PREFIX):]] = str(value).strip()
        return cls(
            post_link_selector=str(data[POST_LINK_SELECTOR]).strip(),
            content_selector=str(data[CONTENT_SELECTOR]).strip(),
            field_selectors=field_selectors,
        )

    def selector_for(self, field_name: str) -> str:
        return self.field_selectors.get(field_name, '')

    def field_specs(self, keys: List[str]) -> List[FieldSpec]:
        """Bind template keys to selectors, resolving each strategy once"""
        return [
            FieldSpec(name=key, selector=self.selector_for(key), strategy=resolve_strategy(key))
            for key in keys
        ]

    def to_mapping(self) -> Dict[str, str]:
        data = {POST_LINK_SELECTOR: self.post_link_selector}
        for key, selector in self.field_selectors.items():
            data[f"{FIELD_SELECTOR_PREFIX}{key}"] = selector
        data[CONTENT_SELECTOR] = self.content_selector
        return data


def validate_config(data: Mapping[str, Any]) -> None:
    """Raise ConfigError unless both required selectors are present"""
    missing = [key for key in REQUIRED_KEYS if not data.get(key)]
    if missing:
        raise ConfigError(f"Missing required config fields: {', '.join(missing)}")


def shape_of_value(value: Any) -> FieldShape:
    if isinstance(value, list):
        return FieldShape.ARRAY
    if isinstance(value, bool):
        return FieldShape.BOOLEAN
    return FieldShape.STRING


def parse_template(template_path: str) -> FrontmatterTemplate:
    """Read the template's frontmatter keys and their declared shapes

    Raises:
        TemplateError: file missing, no frontmatter block, invalid YAML,
            or a block that is not a non-empty mapping
    """
    path = Path(template_path)
    if not path.is_file():
        raise TemplateError(f"Template file not found: {template_path}")

    try:
        text = path.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        raise TemplateError(f"Failed to read template file: {e}") from e

    match = FRONTMATTER_PATTERN.match(text)
    if not match:
        raise TemplateError(f"No frontmatter block found in {template_path}")

    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError as e:
        raise TemplateError(f"Failed to parse template frontmatter: {e}") from e

    if not isinstance(data, dict) or not data:
        raise TemplateError(f"Template frontmatter in {template_path} has no keys")

    keys = [str(key) for key in data.keys()]
    shapes = {str(key): shape_of_value(value) for key, value in data.items()}
    logger.info(f"Found {len(keys)} frontmatter keys in template file")
    return FrontmatterTemplate(keys=keys, shapes=shapes)


def load_config(config_path: str) -> ScrapeConfig:
    """Load and validate a JSON selector config file"""
    if not os.path.exists(config_path):
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Failed to parse config file: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a JSON object")

    config = ScrapeConfig.from_mapping(data)
    logger.info(f"Loaded config from {config_path}")
    return config


def save_config(config: ScrapeConfig, output_path: str) -> None:
    """Write the selector config as pretty-printed JSON"""
    try:
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(config.to_mapping(), f, indent=2)
    except OSError as e:
        raise ConfigError(f"Failed to save config: {e}") from e
    logger.info(f"Config saved to {output_path}")


def _ask(console: Console, message: str, required: bool) -> str:
    while True:
        answer = Prompt.ask(message, console=console, default='', show_default=False).strip()
        if answer or not required:
            return answer
        console.print("[red]Selector cannot be empty[/red]")


def prompt_for_selectors(keys: List[str], console: Optional[Console] = None) -> ScrapeConfig:
    """Ask for every selector interactively (blank field selectors are skipped)"""
    console = console or Console()
    data: Dict[str, str] = {
        POST_LINK_SELECTOR: _ask(console, "Enter CSS selector for post links on the list page", True)
    }
    for key in keys:
        data[f"{FIELD_SELECTOR_PREFIX}{key}"] = _ask(
            console, f'Enter CSS selector for "{key}" (leave empty to skip)', False
        )
    data[CONTENT_SELECTOR] = _ask(console, "Enter CSS selector for the main content body", True)
    return ScrapeConfig.from_mapping(data)
