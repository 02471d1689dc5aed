#!/usr/bin/env python3
"""
Blog Extractor CLI
Scrape the posts linked from a blog listing page into Markdown files with
frontmatter shaped like a template file, downloading images locally.
"""

__version__ = "1.0.0"

# Standard library imports
import argparse
import asyncio
import logging
import sys

# Third-party imports
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

# Local imports
from blog_config import load_config, parse_template, prompt_for_selectors, save_config
from blog_errors import BlogExtractorError
from blog_runner import OUTPUT_DIR, BlogRunner
from blog_status import RunTally, StatusReporter

# Initialize rich console
console = Console()


class RichStatusReporter(StatusReporter):
    """Renders run events with a rich spinner, progress bar and summary table"""

    def __init__(self, console: Console):
        self.console = console
        self._status = None
        self._progress = None
        self._task = None

    def start_spinner(self, message: str) -> None:
        self._status = self.console.status(f"[cyan]{message}")
        self._status.start()

    def stop_spinner(self, message: str, success: bool = True) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None
        if success:
            self.console.print(f"[green]✔[/green] {message}")
        else:
            self.console.print(f"[red]✖[/red] {message}")

    def start_progress(self, total: int) -> None:
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TextColumn("({task.completed}/{task.total})"),
            TimeElapsedColumn(),
            console=self.console
        )
        self._progress.start()
        self._task = self._progress.add_task("[cyan]Starting...", total=total)

    def update_progress(self, index: int, status: str) -> None:
        if self._progress is not None:
            # index is 1-based and reported before the post is processed
            self._progress.update(self._task, completed=index - 1, description=f"[cyan]{status}")

    def stop_progress(self) -> None:
        if self._progress is not None:
            self._progress.update(self._task, completed=self._progress.tasks[0].total)
            self._progress.stop()
            self._progress = None

    def summary(self, tally: RunTally, output_dir: str) -> None:
        table = Table(title="Extraction Summary", show_header=True, header_style="bold magenta")
        table.add_column("Metric", style="cyan", width=20)
        table.add_column("Count", justify="right", style="green")

        table.add_row("Total posts", str(tally.total))
        table.add_row("[OK] Saved", f"[green]{tally.success_count}[/green]")
        table.add_row("[FAIL] Failed", f"[red]{tally.failure_count}[/red]")

        self.console.print()
        self.console.print(table)
        self.console.print(f"[green]✔[/green] Completed! {tally.success_count} posts saved to {output_dir}")
        if tally.failure_count > 0:
            self.console.print(f"[yellow]⚠[/yellow] {tally.failure_count} posts failed to process")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Scrape blog posts and convert them to Markdown with frontmatter',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s https://blog.com/posts demo.md                        # Interactive mode
  %(prog)s https://blog.com/posts demo.md -c config.json         # Use config file
  %(prog)s https://blog.com/posts demo.md --save-config my.json  # Save prompted config
  %(prog)s https://blog.com/posts demo.md -o site/content -v     # Custom output, verbose
        """
    )

    parser.add_argument('url', help='Blog list page URL')
    parser.add_argument('template', help='Path to a Markdown file whose frontmatter is the output template')
    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )
    parser.add_argument(
        '-c', '--config',
        help='Path to JSON config file with selectors'
    )
    parser.add_argument(
        '-o', '--output',
        default=OUTPUT_DIR,
        help=f'Output directory (default: {OUTPUT_DIR})'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Show detailed logs'
    )
    parser.add_argument(
        '--no-headless',
        action='store_true',
        help='Show the browser window while scraping'
    )
    parser.add_argument(
        '--timeout',
        type=int,
        default=60000,
        help='Page load timeout in milliseconds (default: 60000)'
    )
    parser.add_argument(
        '--retry',
        type=int,
        default=3,
        help='Number of retries for failed image downloads (default: 3)'
    )
    parser.add_argument(
        '--save-config',
        help='Save the interactive config to a file'
    )
    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(message)s',
        handlers=[RichHandler(console=console, show_path=False)],
        force=True
    )


def main(argv=None) -> int:
    """Main extraction function with CLI arguments"""
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)
    logger = logging.getLogger("extract")

    console.rule("[bold]Blog Scraper & Markdown Converter")

    try:
        if args.config:
            config = load_config(args.config)
        else:
            template = parse_template(args.template)
            logger.info("Interactive mode: Please provide CSS selectors")
            config = prompt_for_selectors(template.keys, console)
            if args.save_config:
                save_config(config, args.save_config)

        runner = BlogRunner(
            config,
            output_dir=args.output,
            reporter=RichStatusReporter(console),
            headless=not args.no_headless,
            timeout_ms=args.timeout,
            max_retries=args.retry
        )
        tally = asyncio.run(runner.run(args.url, args.template))
    except BlogExtractorError as e:
        logger.error(f"Error: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 130

    return 0 if tally.failure_count == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
