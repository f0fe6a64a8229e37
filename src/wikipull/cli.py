"""Command-line interface for wikipull."""

import argparse
import asyncio
import contextlib
import signal
import sys
from pathlib import Path
from typing import Any, Optional


def _flag_value(argv: list[str], *names: str) -> Optional[Path]:
    for name in names:
        if name in argv:
            idx = argv.index(name)
            if idx + 1 < len(argv):
                return Path(argv[idx + 1])
    return None


# Diagnostics must work even when the dependency check below would fail
if "--doctor" in sys.argv:
    from .doctor import run_doctor

    sys.exit(
        run_doctor(
            output_dir=_flag_value(sys.argv, "--output-dir", "-o"),
            config_file=_flag_value(sys.argv, "--config", "-c"),
        )
    )

# Verify core dependencies
try:
    import bs4  # noqa: F401
    import html2text  # noqa: F401
    import playwright  # noqa: F401
    import pydantic  # noqa: F401
    import rich  # noqa: F401
except ImportError as e:
    print(f"\nERROR: Missing required dependency: {e.name}", file=sys.stderr)
    print("\nWikipull requires all core dependencies to be installed.", file=sys.stderr)
    print("\nRecommended fixes:", file=sys.stderr)
    print("  1. For pipx users: pipx reinstall wikipull --force", file=sys.stderr)
    print("  2. For pip users: pip install --upgrade --force-reinstall wikipull", file=sys.stderr)
    print("  3. For development: pip install -e .[dev]", file=sys.stderr)
    print("\nTo diagnose issues, run: wikipull --doctor", file=sys.stderr)
    sys.exit(1)

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn

from . import __version__
from .browser import BrowserSession
from .core import BatchOrchestrator, BatchState, convert_single_page
from .errors import BatchRejectedError, WikipullError
from .logging_config import setup_logging
from .models.config import WikipullConfig
from .models.events import BatchEventType, StatusRecord


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog="wikipull",
        description="Convert every page of a DeepWiki or Devin wiki to markdown and zip it",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Convert a whole DeepWiki project
  wikipull https://deepwiki.com/owner/repo

  # Number the files and stop after 20 pages
  wikipull https://deepwiki.com/owner/repo --number-files --max-pages 20

  # Watch the browser work
  wikipull https://deepwiki.com/owner/repo --headed

  # Load settings from a YAML file
  wikipull https://deepwiki.com/owner/repo --config wikipull.yaml

  # Save only this page as one markdown file
  wikipull https://deepwiki.com/owner/repo/2-setup --single
        """,
    )

    parser.add_argument(
        "url",
        nargs="?",
        help="Wiki page to start from (any page of the project)",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "--doctor",
        action="store_true",
        help="Run diagnostic checks",
    )

    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        metavar="FILE",
        help="YAML configuration file (requires pyyaml)",
    )

    # Output
    parser.add_argument(
        "--output-dir",
        "-o",
        type=Path,
        default=None,
        help="Directory the ZIP archive is saved into (default: ./wikis)",
    )

    # Scope settings
    scope_group = parser.add_argument_group("scope settings")
    scope_group.add_argument(
        "--single",
        action="store_true",
        help="Convert only the given page to one .md file instead of the whole wiki",
    )
    scope_group.add_argument(
        "--max-pages",
        type=int,
        default=None,
        help="Maximum pages to convert",
    )
    scope_group.add_argument(
        "--number-files",
        action="store_true",
        help="Prefix file names with each page's position",
    )

    # Browser settings
    browser_group = parser.add_argument_group("browser settings")
    browser_group.add_argument(
        "--headed",
        action="store_true",
        help="Show the browser window",
    )
    browser_group.add_argument(
        "--user-agent",
        type=str,
        help="Custom User-Agent string",
    )

    # Output control
    output_group = parser.add_argument_group("output control")
    output_group.add_argument(
        "--folder-name",
        type=str,
        default=None,
        metavar="NAME",
        help="Archive name (default: the site's title)",
    )
    output_group.add_argument(
        "--restore",
        action="store_true",
        help="Return to the starting page when the run ends",
    )
    output_group.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Verbose output",
    )
    output_group.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Suppress output",
    )

    return parser


def build_config(args: argparse.Namespace) -> WikipullConfig:
    """Merge the optional config file with command-line overrides."""
    data: dict[str, Any] = {}
    if args.config:
        data = WikipullConfig.from_yaml_file(args.config).model_dump(exclude_unset=True)

    if args.url:
        data["url"] = args.url

    # Output settings
    output_kwargs: dict = dict(data.get("output") or {})
    if args.output_dir:
        output_kwargs["directory"] = args.output_dir
    if args.folder_name:
        output_kwargs["folder_name"] = args.folder_name
    if args.restore:
        output_kwargs["restore_original_page"] = True
    if output_kwargs:
        data["output"] = output_kwargs

    # Scope settings
    scope_kwargs: dict = dict(data.get("scope") or {})
    if args.max_pages is not None:
        scope_kwargs["max_pages"] = args.max_pages
    if args.number_files:
        scope_kwargs["number_files"] = True
    if scope_kwargs:
        data["scope"] = scope_kwargs

    # Browser settings
    browser_kwargs: dict = dict(data.get("browser") or {})
    if args.headed:
        browser_kwargs["headless"] = False
    if args.user_agent:
        browser_kwargs["user_agent"] = args.user_agent
    if browser_kwargs:
        data["browser"] = browser_kwargs

    # Log level
    if args.verbose:
        data["log_level"] = "DEBUG"
    elif args.quiet:
        data["log_level"] = "ERROR"

    return WikipullConfig.model_validate(data)


def run_batch(args: argparse.Namespace) -> int:
    """Run one batch conversion with given arguments."""
    console = Console()

    try:
        config = build_config(args)
    except Exception as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        return 1

    if not config.url:
        console.print("[red]Error:[/red] Please provide a wiki URL to convert")
        return 1

    url = config.url

    async def run() -> int:
        setup_logging(config.log_level, config.log_file)

        if not args.quiet:
            console.print(f"[bold blue]wikipull[/bold blue] v{__version__}")
            console.print(f"Target: {url}")
            console.print(f"Output: {config.output.directory}")
            console.print()

        try:
            async with BrowserSession(config) as session:
                await session.open(url)

                orchestrator = BatchOrchestrator(session.target, session.agent, session.delivery, config)
                session.on_close(orchestrator.handle_target_closed)

                loop = asyncio.get_running_loop()
                with contextlib.suppress(NotImplementedError):
                    loop.add_signal_handler(signal.SIGINT, orchestrator.cancel_batch)

                try:
                    if args.quiet:
                        started = await orchestrator.start_batch()
                        outcome = await orchestrator.wait()
                    else:
                        with Progress(
                            SpinnerColumn(),
                            TextColumn("[progress.description]{task.description}"),
                            console=console,
                            transient=True,
                        ) as progress:
                            task = progress.add_task("Discovering pages...", total=None)

                            def on_status(record: StatusRecord) -> None:
                                if record.type == BatchEventType.PAGE_FAILED:
                                    console.print(f"[red]Failed:[/red] {record.message}")
                                elif record.type == BatchEventType.PAGE_WARNING:
                                    console.print(f"[yellow]Warning:[/yellow] {record.message}")
                                elif record.type == BatchEventType.COMPLETED:
                                    progress.update(task, description=f"[green]{record.message}")
                                elif record.type == BatchEventType.ERROR:
                                    progress.update(task, description=f"[red]{record.message}")
                                else:
                                    progress.update(task, description=f"[cyan]{record.message}")

                            orchestrator.subscribe(on_status)
                            started = await orchestrator.start_batch()
                            outcome = await orchestrator.wait()
                finally:
                    with contextlib.suppress(NotImplementedError):
                        loop.remove_signal_handler(signal.SIGINT)

                status = orchestrator.get_batch_status()
                if not args.quiet:
                    console.print()
                    console.print("[bold]Results:[/bold]")
                    console.print(f"  Pages found: {started.total}")
                    console.print(f"  Pages converted: {status.processed}")
                    console.print(f"  Pages failed: {status.failed}")
                    if orchestrator.last_archive is not None:
                        console.print(f"  Archive: {orchestrator.last_archive}")
                    elif outcome != BatchState.COMPLETED:
                        console.print(f"  Outcome: {outcome.value} ({status.message})")

                return 0 if outcome == BatchState.COMPLETED else 1

        except BatchRejectedError as e:
            console.print(f"[red]Error:[/red] {e}")
            return 1
        except Exception as e:
            console.print(f"[red]Error:[/red] {e}")
            if args.verbose:
                import traceback

                traceback.print_exc()
            return 1

    return asyncio.run(run())


def run_single(args: argparse.Namespace) -> int:
    """Convert the page at the given URL into one Markdown file."""
    console = Console()

    try:
        config = build_config(args)
    except Exception as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        return 1

    if not config.url:
        console.print("[red]Error:[/red] Please provide a wiki URL to convert")
        return 1

    async def run() -> int:
        setup_logging(config.log_level, config.log_file)

        try:
            async with BrowserSession(config) as session:
                await session.open(config.url)
                spinner = contextlib.nullcontext() if args.quiet else console.status("Converting page...")
                with spinner:
                    path = await convert_single_page(session.target, session.agent, config)
        except WikipullError as e:
            console.print(f"[red]Conversion failed:[/red] {e}")
            return 1
        except Exception as e:
            console.print(f"[red]Error:[/red] {e}")
            if args.verbose:
                import traceback

                traceback.print_exc()
            return 1

        if not args.quiet:
            console.print(f"[green]Saved:[/green] {path}")
        return 0

    return asyncio.run(run())


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.doctor:
        from .doctor import run_doctor

        return run_doctor(output_dir=args.output_dir, config_file=args.config)

    if args.single:
        return run_single(args)
    return run_batch(args)


if __name__ == "__main__":
    sys.exit(main())
