#!/usr/bin/env python3
"""
Status reporting surface shared by the extractor components.

Components log through logging and optionally hand (level, message) pairs
to a callback. The run orchestrator additionally drives a StatusReporter
for spinner, progress and summary events; the CLI supplies a rich-backed
subclass, everything else can use the logging-only default.
"""

# Standard library imports
import logging
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)

# "success" has no logging level of its own
LOG_LEVELS = {
    'debug': logging.DEBUG,
    'info': logging.INFO,
    'success': logging.INFO,
    'warning': logging.WARNING,
    'warn': logging.WARNING,
    'error': logging.ERROR,
}

StatusCallback = Callable[[str, str], None]


def emit(log: logging.Logger, callback: Optional[StatusCallback], level: str, message: str) -> None:
    """Log message to the given logger and forward it to the callback if any"""
    log.log(LOG_LEVELS.get(level.lower(), logging.INFO), message)
    if callback:
        callback(level, message)


@dataclass
class RunTally:
    """Per-run counters, incremented once per processed post URL"""

    success_count: int = 0
    failure_count: int = 0

    def record_success(self) -> None:
        self.success_count += 1

    def record_failure(self) -> None:
        self.failure_count += 1

    @property
    def total(self) -> int:
        return self.success_count + self.failure_count


class StatusReporter:
    """Default reporter: events become log lines, nothing is rendered"""

    def start_spinner(self, message: str) -> None:
        logger.debug(message)

    def stop_spinner(self, message: str, success: bool = True) -> None:
        logger.log(logging.INFO if success else logging.ERROR, message)

    def start_progress(self, total: int) -> None:
        logger.debug(f"Processing {total} posts")

    def update_progress(self, index: int, status: str) -> None:
        logger.debug(f"[{index}] {status}")

    def stop_progress(self) -> None:
        pass

    def log(self, level: str, message: str) -> None:
        """Receive a log line already written to logging (for UI updates)"""

    def summary(self, tally: RunTally, output_dir: str) -> None:
        logger.info(f"Completed! {tally.success_count} posts saved to {output_dir}")
        if tally.failure_count > 0:
            logger.warning(f"{tally.failure_count} posts failed to process")
