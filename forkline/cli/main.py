"""
Forkline CLI - Locate, fork and extract from live pages.
"""

import json
import logging
import sys

import click
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn

from forkline.core.config import EngineConfig
from forkline.core.tree import parse_path

console = Console()


def _browser_options(func):
    """Browser and polling options shared by the page commands."""
    options = [
        click.option('--headless/--headed', default=True, help='Run browser in headless mode'),
        click.option('--profile', 'profile_path', default=None, help='Browser profile directory (keeps logins)'),
        click.option('--socks5', 'socks5_proxy', default=None, help='SOCKS5 proxy as host:port'),
        click.option('--page-load-timeout', default=30, type=int, help='Page load timeout in seconds'),
        click.option('--script-timeout', default=30, type=int, help='Script timeout in seconds'),
        click.option('--navigation-attempts', default=10, type=click.IntRange(min=1),
                     help='Page loads tried before a timeout is reported'),
        click.option('--interval', 'interval_ms', default=1000, type=click.IntRange(min=1),
                     help='Poll interval in milliseconds'),
        click.option('--max-attempts', default=120, type=click.IntRange(min=0),
                     help='Poll attempts before giving up (0 polls until interrupted)'),
        click.option('--report-dir', default=None, help='Write a flight record JSON here'),
        click.option('--json', 'as_json', is_flag=True, help='Print machine-readable JSON'),
        click.option('-v', '--verbose', is_flag=True, help='Debug logging'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _build_config(headless, profile_path, socks5_proxy, page_load_timeout, script_timeout,
                  navigation_attempts, interval_ms, max_attempts, report_dir, **extra) -> EngineConfig:
    config = EngineConfig(
        headless=headless,
        profile_path=profile_path,
        socks5_proxy=socks5_proxy,
        page_load_timeout=page_load_timeout,
        script_timeout=script_timeout,
        navigation_attempts=navigation_attempts,
        interval_ms=interval_ms,
        max_attempts=max_attempts or None,
    )
    if report_dir:
        config.report_dir = report_dir
    for key, value in extra.items():
        if value is not None and hasattr(config, key):
            setattr(config, key, value)
    return config


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _open(url: str, config: EngineConfig):
    from forkline import ForklineOrchestrator
    return ForklineOrchestrator(url=url, config=config)


def _finish(fl, report_dir) -> None:
    if report_dir:
        path = fl.generate_report()
        console.print(f"[dim]Report: {path}[/dim]")


@click.group()
@click.version_option(version="0.1.0", prog_name="forkline")
def cli():
    """Forkline - text-anchored path location and polling extraction.

    Find nodes on a live page by their text, record replayable paths
    to them, and extract the items under those paths once rendered.
    """
    pass


@cli.command()
@click.argument('url')
@click.argument('text')
@_browser_options
def locate(url, text, as_json, verbose, **options):
    """
    Locate the first node whose text equals TEXT.

    \b
    Example:

        forkline locate "https://dictionary.example/define/hello" "used when meeting or greeting someone:"
    """
    _setup_logging(verbose)
    config = _build_config(**options)

    try:
        with _open(url, config) as fl:
            path = fl.locate(text)
            _finish(fl, options.get("report_dir"))
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(list(path) if path is not None else None))
    elif path is None:
        console.print(f"[yellow]No node with text {text!r}[/yellow]")
    else:
        console.print(f"[bold green]Path:[/bold green] {list(path)}")

    if path is None:
        sys.exit(2)


@cli.command()
@click.argument('url')
@click.argument('text1')
@click.argument('text2')
@click.option('--wait-for', default=None, help='Wait until the page text contains this first')
@_browser_options
def fork(url, text1, text2, wait_for, as_json, verbose, **options):
    """
    Locate two sibling items and split their paths at the fork.

    The upper path printed here is the anchor to pass to `extract`.

    \b
    Example:

        forkline fork "https://feed.example/u/someone" "__1__" "__0__" --wait-for "__0__"
    """
    _setup_logging(verbose)
    config = _build_config(**options)

    from forkline.core.fork import ForkResult

    try:
        with _open(url, config) as fl:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
                transient=True,
            ) as progress:
                progress.add_task("Waiting for both items to render...", total=None)
                result = fl.locate_fork(text1, text2, wait_for=wait_for)
            _finish(fl, options.get("report_dir"))
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    if result is None:
        console.print("[yellow]Items never appeared (polling gave up)[/yellow]")
        sys.exit(2)
    if not isinstance(result, ForkResult):
        console.print(f"[red]{result}[/red]")
        sys.exit(2)

    if as_json:
        click.echo(json.dumps(result.to_dict()))
        return

    table = Table(show_header=False, box=None)
    table.add_row("[bold]Upper path:[/bold]", str(list(result.upper_path)))
    table.add_row("[bold]Lower offsets:[/bold]", str(list(result.lower_offsets)))
    table.add_row("[bold]Fork index:[/bold]", str(result.fork_index))
    table.add_row("[bold]Expression:[/bold]", result.describe())
    if not result.suffixes_agree:
        table.add_row("[bold yellow]Sibling offsets:[/bold yellow]", str(list(result.sibling_offsets)))
    console.print(table)


@cli.command()
@click.argument('url')
@click.option('--anchor', 'anchors', multiple=True, required=True,
              help='Anchor path such as 2,0,1 (repeat to give fallbacks)')
@click.option('--marker', default=None, help='Descend into the anchor child containing this text')
@click.option('--count', default=0, type=click.IntRange(min=0), help='Collect this many unique items across rounds')
@click.option('--tag', 'record_tag', default=None, help='Record tag literal')
@click.option('--id-pattern', default=None, help='Regex with one group for the item id')
@_browser_options
def extract(url, anchors, marker, count, as_json, verbose, **options):
    """
    Extract the rendered items under an anchor path.

    \b
    Examples:

        forkline extract "https://feed.example/u/someone" --anchor 2,0,0,1,3
        forkline extract "https://feed.example/u/someone" --anchor 2,0,0,1,3 --anchor 2,0,0,2,3 --count 40
    """
    _setup_logging(verbose)
    config = _build_config(**options)

    try:
        paths = [parse_path(a) for a in anchors]
    except ValueError as e:
        console.print(f"[red]Bad anchor: {e}[/red]")
        sys.exit(1)

    from forkline.layers.action.collector import AllAnchorsFailed

    try:
        with _open(url, config) as fl:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
                transient=True,
            ) as progress:
                progress.add_task("Waiting for items to render...", total=None)
                if count > 0:
                    records = fl.collect(paths, count, marker=marker)
                else:
                    records = None
                    for path in paths:
                        records = fl.extract(path, marker=marker)
                        if records is not None:
                            break
            _finish(fl, options.get("report_dir"))
    except AllAnchorsFailed as e:
        console.print(f"[yellow]{e}[/yellow]")
        sys.exit(2)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    if not records:
        console.print("[yellow]No items became ready (polling gave up)[/yellow]")
        sys.exit(2)

    if as_json:
        click.echo(json.dumps([r.to_dict() for r in records], ensure_ascii=False))
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim", width=4)
    table.add_column("Id", style="green")
    table.add_column("Text", style="white", max_width=80)
    for i, record in enumerate(records):
        text = record.text.replace("\n", " ")
        table.add_row(str(i + 1), record.identifier or record.unknown_id,
                      text[:80] + "..." if len(text) > 80 else text)
    console.print(table)


@cli.command()
def doctor():
    """
    Check that the browser stack is importable.
    """
    console.print(Panel.fit(
        "[bold cyan]Forkline Doctor[/bold cyan]\n"
        "[dim]Dependency Check[/dim]",
        border_style="cyan"
    ))
    console.print()

    dependencies = [
        ("selenium", "Sense - WebDriver access to the live tree"),
        ("click", "CLI"),
        ("rich", "CLI output"),
    ]

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Package", style="blue")
    table.add_column("Role", style="dim")
    table.add_column("Status", justify="center")

    all_good = True
    for package, role in dependencies:
        try:
            __import__(package)
            status = "[green]Installed[/green]"
        except ImportError:
            status = "[red]Missing[/red]"
            all_good = False
        table.add_row(package, role, status)

    console.print(table)
    console.print()

    if all_good:
        console.print("[bold green]All dependencies installed.[/bold green]")
    else:
        console.print("[yellow]Some dependencies are missing. Try: pip install forkline[/yellow]")


@cli.command()
def version():
    """Show version information."""
    from forkline import __version__
    console.print(f"Forkline v{__version__}")


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == '__main__':
    main()
