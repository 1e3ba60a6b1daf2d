"""Inspect CLI entry point for OneTool Inspect."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

import ot_inspect
from ot_inspect.errors import InspectError

app = typer.Typer(
    name="ot-inspect",
    help="Measure and annotate page elements in a real browser.",
    no_args_is_help=True,
    add_completion=False,
)

# Results go to stdout, diagnostics to stderr
console = Console()
_stderr_console = Console(stderr=True)


class _State:
    config_path: Path | None = None


def _version_callback(value: bool | None) -> None:
    if value:
        console.print(f"ot-inspect [dim]v{ot_inspect.__version__}[/dim]")
        raise typer.Exit()


@app.callback()
def main(
    _version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to ot-inspect.yaml configuration file.",
        exists=True,
        readable=True,
    ),
    log_level: str | None = typer.Option(
        None, "--log-level", help="Override the configured log level."
    ),
) -> None:
    """OneTool Inspect - box model measurement and annotated screenshots.

    Commands:
        inspect  - Measure elements and render an annotated screenshot
        click    - Click an element and capture the result
        scroll   - Scroll an element into view and capture it
        validate - Check the configuration file
    """
    from ot_inspect.config import get_config
    from ot_inspect.logging import configure_logging

    _State.config_path = config
    try:
        settings = get_config(config, reload=config is not None)
    except ValueError as e:
        _stderr_console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e
    configure_logging(log_level or settings.log_level)


def _fail(error: InspectError) -> typer.Exit:
    _stderr_console.print(f"[red]{error.kind.value}:[/red] {escape(str(error))}")
    return typer.Exit(1)


def _write_screenshot(data_uri: str, output: Path | None) -> None:
    if output is None:
        return
    from ot_inspect.page import from_data_uri

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(from_data_uri(data_uri))
    _stderr_console.print(f"[green]Screenshot written to[/green] {output}")


def _print_json(data: dict[str, Any], include_screenshot: bool) -> None:
    if not include_screenshot:
        data = {key: value for key, value in data.items() if key != "screenshot"}
    typer.echo(json.dumps(data, indent=2))


def _print_inspection(result: Any) -> None:
    table = Table(title="Elements")
    table.add_column("Selector", style="cyan")
    table.add_column("Border box")
    table.add_column("Margin box", style="dim")
    table.add_column("Background")
    for element in result.elements:
        border = element.box_model.border
        margin = element.box_model.margin
        background = "-"
        if element.sampled_background is not None:
            background = element.sampled_background.to_css()
        elif element.sample_failure:
            background = f"[dim]{element.sample_failure}[/dim]"
        table.add_row(
            escape(element.selector),
            f"{border.width:g}×{border.height:g} @ {border.x:g},{border.y:g}",
            f"{margin.width:g}×{margin.height:g}",
            background,
        )
    console.print(table)

    if result.relationships:
        rel_table = Table(title="Relationships")
        rel_table.add_column("From", style="cyan")
        rel_table.add_column("To", style="cyan")
        rel_table.add_column("H gap", justify="right")
        rel_table.add_column("V gap", justify="right")
        rel_table.add_column("Centers", justify="right")
        rel_table.add_column("Aligned")
        for rel in result.relationships:
            rel_table.add_row(
                escape(rel.from_selector),
                escape(rel.to_selector),
                str(rel.distance.horizontal),
                str(rel.distance.vertical),
                str(rel.distance.center_to_center),
                ", ".join(rel.alignment.names()) or "-",
            )
        console.print(rel_table)

    adjustments = result.viewport_adjustments
    console.print(
        f"[dim]zoom {adjustments.zoom_factor:g}, centered {adjustments.centered}, "
        f"{result.stats.filtered_properties}/{result.stats.total_properties} properties, "
        f"{result.stats.filtered_rules}/{result.stats.total_rules} rules[/dim]"
    )
    for item in result.unavailable:
        _stderr_console.print(f"[yellow]Skipped:[/yellow] {escape(item['message'])}")


@app.command()
def inspect(
    url: str = typer.Argument(..., help="Page URL including protocol."),
    selector: str = typer.Argument(..., help="CSS selector for the target elements."),
    limit: int | None = typer.Option(
        None, "--limit", "-n", min=1, max=20, help="Maximum elements (default from config)."
    ),
    edit: list[str] = typer.Option(
        [], "--edit", "-e", help="Inline CSS edit as prop=value (repeatable)."
    ),
    center: bool = typer.Option(True, "--center/--no-center", help="Center the elements."),
    auto_zoom: bool = typer.Option(True, "--auto-zoom/--no-zoom", help="Zoom to fit."),
    zoom: float | None = typer.Option(None, "--zoom", help="Manual zoom factor (0.5-3.0)."),
    sample: bool = typer.Option(False, "--sample-background", help="Sample background colors."),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the PNG here."),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON."),
) -> None:
    """Measure elements and render an annotated screenshot.

    Examples:
        ot-inspect inspect https://example.com "h1"
        ot-inspect inspect file:///tmp/page.html ".card" --zoom 2 -o cards.png
    """
    from pydantic import ValidationError

    from ot_inspect.browser import BrowserManager
    from ot_inspect.config import get_config
    from ot_inspect.inspector import Inspector
    from ot_inspect.models import InspectRequest

    css_edits: dict[str, str] = {}
    for item in edit:
        prop, sep, value = item.partition("=")
        if not sep or not prop.strip():
            raise typer.BadParameter(f"expected prop=value, got {item!r}", param_hint="--edit")
        css_edits[prop.strip()] = value.strip()

    config = get_config()
    if limit is None:
        limit = config.limits.default_elements

    try:
        request = InspectRequest(
            css_selector=selector,
            url=url,
            limit=limit,
            css_edits=css_edits or None,
            auto_center=center,
            auto_zoom=auto_zoom,
            zoom_factor=zoom,
            sample_background=sample,
        )
    except ValidationError as e:
        _stderr_console.print(f"[red]Invalid request:[/red] {e}")
        raise typer.Exit(1) from e

    with BrowserManager(config) as manager:
        try:
            result = Inspector(manager).inspect(request)
        except InspectError as e:
            raise _fail(e) from e

    _write_screenshot(result.screenshot, output)
    if as_json:
        _print_json(result.to_dict(), include_screenshot=output is None)
    else:
        _print_inspection(result)


@app.command()
def click(
    url: str = typer.Argument(..., help="Page URL including protocol."),
    selector: str = typer.Argument(..., help="CSS selector, optionally with [index]."),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the PNG here."),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON."),
) -> None:
    """Click an element and capture the page afterwards.

    Examples:
        ot-inspect click https://example.com "button[1]"
    """
    from ot_inspect.browser import BrowserManager
    from ot_inspect.config import get_config
    from ot_inspect.interactions import click_element

    with BrowserManager(get_config()) as manager:
        try:
            result = click_element(manager, url, selector)
        except InspectError as e:
            raise _fail(e) from e

    _write_screenshot(result.screenshot, output)
    if as_json:
        _print_json(result.to_dict(), include_screenshot=output is None)
    else:
        console.print(
            f"Clicked [cyan]{escape(f'{result.selector}[{result.index}]')}[/cyan] "
            f"at ({result.x:g}, {result.y:g}) [dim]({result.match_count} matches)[/dim]"
        )


@app.command()
def scroll(
    url: str = typer.Argument(..., help="Page URL including protocol."),
    selector: str = typer.Argument(..., help="CSS selector, optionally with [index]."),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the PNG here."),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON."),
) -> None:
    """Scroll an element to the viewport center and capture the page."""
    from ot_inspect.browser import BrowserManager
    from ot_inspect.config import get_config
    from ot_inspect.interactions import scroll_element

    with BrowserManager(get_config()) as manager:
        try:
            result = scroll_element(manager, url, selector)
        except InspectError as e:
            raise _fail(e) from e

    _write_screenshot(result.screenshot, output)
    if as_json:
        _print_json(result.to_dict(), include_screenshot=output is None)
    else:
        delta = result.scroll_delta
        console.print(
            f"Scrolled to [cyan]{escape(f'{result.selector}[{result.index}]')}[/cyan] "
            f"[dim](delta {delta.get('x', 0):g}, {delta.get('y', 0):g})[/dim]"
        )


@app.command()
def validate() -> None:
    """Validate the configuration file."""
    from ot_inspect.config import _resolve_config_path, load_config

    path = _State.config_path or _resolve_config_path()
    if path is None:
        console.print("No configuration file found, using defaults.")
        return
    try:
        load_config(path)
    except ValueError as e:
        _stderr_console.print(f"[red]Validation error:[/red] {e}")
        raise typer.Exit(1) from e
    console.print(f"[green]Valid configuration:[/green] {path}")


def cli() -> None:
    """Run the CLI application."""
    app()


if __name__ == "__main__":
    cli()
