"""
lazylog Command Line Interface.

This module provides the CLI entry point: benchmarks of logging-call
techniques, audits and guarded rendering of untrusted templates, and the
walk-through demo.
"""

import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from lazylog.bench import Technique
from lazylog.version import __version__

console = Console()

STYLE_CHOICES = ["percent", "brace", "dollar", "%", "{", "$"]


def _load_settings(config_path: str | None, verbose: bool):
    """Load configuration and set up logging for a command."""
    from lazylog.config import (
        LogLevel,
        create_default_config,
        load_config,
        load_config_from_env,
    )
    from lazylog.logsetup import configure_logging

    if config_path:
        cfg = load_config(config_path)
    else:
        try:
            cfg = load_config_from_env()
        except FileNotFoundError:
            cfg = create_default_config()

    if verbose and logging.getLevelName(cfg.logging.level.value) > logging.INFO:
        cfg.logging.level = LogLevel.INFO
    configure_logging(cfg.logging)
    return cfg


def _fail(error: Exception, verbose: bool) -> None:
    console.print(f"[red]Error:[/red] {escape(str(error))}")
    if verbose:
        console.print_exception()
    sys.exit(1)


def _parse_kwargs(pairs: tuple[str, ...]) -> dict[str, str]:
    kwargs = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"Expected key=value, got {pair!r}", param_hint="--kwarg")
        kwargs[key] = value
    return kwargs


@click.group()
@click.version_option(version=__version__, prog_name="lazylog")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """lazylog: eager vs deferred log formatting, measured and made safe.

    Benchmark logging-call techniques, audit untrusted templates, and run
    the examples from the talk.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


@main.command()
@click.option("--config", "-c", "config_path", type=click.Path(exists=True), help="Path to configuration file")
@click.option("--number", "-n", type=int, default=None, help="Calls per timing run")
@click.option("--repeat", "-r", type=int, default=None, help="Timing runs per scenario")
@click.option(
    "--technique",
    "-t",
    "techniques",
    multiple=True,
    type=click.Choice([t.value for t in Technique]),
    help="Technique to run (repeatable, default: all)",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format",
)
@click.option("--output", "-o", type=click.Path(), default=None, help="Write the JSON report to a file")
@click.pass_context
def bench(
    ctx: click.Context,
    config_path: str | None,
    number: int | None,
    repeat: int | None,
    techniques: tuple[str, ...],
    output_format: str,
    output: str | None,
) -> None:
    """Time one logging call per technique, above and below the threshold."""
    from lazylog.bench import run_benchmarks
    from lazylog.config import BenchmarkConfig, ConfigurationError

    verbose = ctx.obj.get("verbose", False)

    try:
        cfg = _load_settings(config_path, verbose)
        overrides = {k: v for k, v in (("number", number), ("repeat", repeat)) if v is not None}
        bench_config = BenchmarkConfig(**{**cfg.benchmark.model_dump(), **overrides})
    except (ConfigurationError, ValueError) as e:
        _fail(e, verbose)

    selected = list(techniques) or None
    total = (len(selected) if selected else len(Technique)) * 2

    if output_format == "json":
        report = run_benchmarks(bench_config, selected)
    else:
        console.print(
            Panel(
                f"[bold blue]lazylog v{__version__}[/bold blue]\n"
                f"{bench_config.number:,} calls x {bench_config.repeat} runs per scenario",
                title="Benchmark",
            )
        )
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            transient=True,
            console=console,
        ) as progress:
            task = progress.add_task("Benchmarking...", total=total)
            report = run_benchmarks(
                bench_config,
                selected,
                on_result=lambda result: progress.advance(task),
            )

    if output:
        Path(output).write_text(report.to_json())

    if output_format == "json":
        click.echo(report.to_json())
        return

    _display_bench_report(report)
    if output:
        console.print(f"[green]Report saved to:[/green] {escape(output)}")


def _display_bench_report(report) -> None:
    """Display benchmark results as a table."""
    table = Table(title="Cost per logging call", show_header=True)
    table.add_column("Technique", style="cyan")
    table.add_column("Enabled (ns)", justify="right", style="green")
    table.add_column("Suppressed (ns)", justify="right", style="green")
    table.add_column("Deferred", style="dim")

    seen = []
    for result in report.results:
        if result.technique not in seen:
            seen.append(result.technique)

    for technique in seen:
        cells = []
        for enabled in (True, False):
            try:
                cells.append(f"{report.result(technique, enabled).per_call_ns:,.1f}")
            except KeyError:
                cells.append("-")
        table.add_row(technique.value, *cells, "yes" if technique.deferred else "no")

    console.print(table)
    fastest = report.fastest(enabled=False)
    console.print(
        f"[dim]Fastest suppressed call: {fastest.technique.value} "
        f"({fastest.per_call_ns:,.1f} ns) on Python {report.python_version}[/dim]"
    )


@main.command()
@click.argument("template")
@click.option("--style", "-s", type=click.Choice(STYLE_CHOICES), default="brace", help="Template syntax")
@click.option("--max-width", type=int, default=None, help="Largest acceptable width")
@click.option("--json", "as_json", is_flag=True, help="Print findings as JSON")
@click.option("--config", "-c", "config_path", type=click.Path(exists=True), help="Path to configuration file")
@click.pass_context
def audit(
    ctx: click.Context,
    template: str,
    style: str,
    max_width: int | None,
    as_json: bool,
    config_path: str | None,
) -> None:
    """Check TEMPLATE for attribute traversal and oversized widths.

    Exits with status 1 when anything unsafe is found.
    """
    from lazylog.config import ConfigurationError
    from lazylog.safety import audit_template

    verbose = ctx.obj.get("verbose", False)
    try:
        cfg = _load_settings(config_path, verbose)
    except ConfigurationError as e:
        _fail(e, verbose)

    findings = audit_template(
        template,
        style=style,
        max_width=max_width if max_width is not None else cfg.safety.max_width,
        max_precision=cfg.safety.max_precision,
        allow_attribute_access=cfg.safety.allow_attribute_access,
        allow_index_access=cfg.safety.allow_index_access,
    )

    if as_json:
        click.echo(json.dumps([f.model_dump(mode="json") for f in findings], indent=2))
    elif findings:
        table = Table(title="Unsafe constructs", show_header=True)
        table.add_column("#", style="dim")
        table.add_column("Kind", style="red")
        table.add_column("Field", style="cyan")
        table.add_column("Detail")
        for finding in findings:
            table.add_row(
                str(finding.position),
                finding.kind.value,
                escape(finding.field),
                escape(finding.detail),
            )
        console.print(table)
    else:
        console.print("[green]No unsafe constructs found.[/green]")

    if findings:
        sys.exit(1)


@main.command()
@click.argument("template")
@click.option("--style", "-s", type=click.Choice(STYLE_CHOICES), default="brace", help="Template syntax")
@click.option("--arg", "-a", "args", multiple=True, help="Positional value (repeatable)")
@click.option("--kwarg", "-k", "kwarg_pairs", multiple=True, help="Named value as key=value (repeatable)")
@click.option("--safe", is_flag=True, help="Refuse traversal and oversized widths")
@click.option("--config", "-c", "config_path", type=click.Path(exists=True), help="Path to configuration file")
@click.pass_context
def render(
    ctx: click.Context,
    template: str,
    style: str,
    args: tuple[str, ...],
    kwarg_pairs: tuple[str, ...],
    safe: bool,
    config_path: str | None,
) -> None:
    """Interpolate TEMPLATE with the given values and print the result."""
    from lazylog.config import ConfigurationError
    from lazylog.safety import SafeFormatter, UnsafeTemplateError, audit_template
    from lazylog.styles import FormatStyle, StyleError, interpolate

    verbose = ctx.obj.get("verbose", False)
    kwargs = _parse_kwargs(kwarg_pairs)
    resolved = FormatStyle.parse(style)

    try:
        cfg = _load_settings(config_path, verbose)
        if safe and resolved is FormatStyle.BRACE:
            result = SafeFormatter.from_config(cfg.safety).format(template, *args, **kwargs)
        else:
            if safe:
                findings = audit_template(
                    template,
                    style=resolved,
                    max_width=cfg.safety.max_width,
                    max_precision=cfg.safety.max_precision,
                )
                if findings:
                    raise UnsafeTemplateError("Template refused", findings)
            result = interpolate(template, args, kwargs, style=resolved)
    except (ConfigurationError, UnsafeTemplateError, StyleError) as e:
        _fail(e, verbose)
    except (KeyError, IndexError, AttributeError, ValueError) as e:
        # Missing values for SafeFormatter fields
        _fail(e, verbose)

    click.echo(result)


@main.command()
@click.option("--name", default="World", help="Name used in the greeting")
@click.option(
    "--secret",
    default=None,
    help="Secret planted for the injection example (default: LAZYLOG_SECRET_KEY or a demo value)",
)
@click.option("--width", type=int, default=10**9, help="Width used in the padding example")
@click.pass_context
def demo(ctx: click.Context, name: str, secret: str | None, width: int) -> None:
    """Run the talk's examples: styles, thresholds, injection and padding."""
    from lazylog.config import ConfigurationError
    from lazylog.demo import greetings, injection_demo, padding_demo, threshold_demo

    verbose = ctx.obj.get("verbose", False)
    try:
        _load_settings(None, verbose)
    except ConfigurationError as e:
        _fail(e, verbose)

    console.print(Panel("[bold blue]1. One greeting, three syntaxes[/bold blue]"))
    greet_table = Table(show_header=True)
    greet_table.add_column("Style", style="cyan")
    greet_table.add_column("Result", style="green")
    for style, text in greetings(name).items():
        greet_table.add_row(escape(style.value), escape(text))
    console.print(greet_table)
    console.print()

    console.print(Panel("[bold blue]2. DEBUG call with the threshold at INFO[/bold blue]"))
    threshold_table = Table(show_header=True)
    threshold_table.add_column("Policy", style="cyan")
    threshold_table.add_column("Emitted")
    threshold_table.add_column("Renders", style="green")
    for row in threshold_demo():
        threshold_table.add_row(row.policy.value, "yes" if row.emitted else "no", str(row.renders))
    console.print(threshold_table)
    console.print()

    console.print(Panel("[bold blue]3. Attribute traversal in str.format[/bold blue]"))
    for outcome in injection_demo(secret):
        console.print(f"[cyan]Template:[/cyan] {escape(outcome.template)}")
        console.print(f"  [red]str.format leaked:[/red] {escape(outcome.leaked or '')}")
        status = "[green]refused[/green]" if outcome.refused else "[red]allowed[/red]"
        console.print(f"  SafeFormatter: {status} ({len(outcome.findings)} findings)")
    console.print()

    console.print(Panel("[bold blue]4. Attacker-controlled width[/bold blue]"))
    for outcome in padding_demo(width=width):
        status = "[green]refused[/green]" if outcome.refused else "[yellow]allowed[/yellow]"
        console.print(f"[cyan]{escape(outcome.style.value)}[/cyan] {escape(outcome.template)}: {status}")
        for finding in outcome.findings:
            console.print(f"  [dim]{escape(finding.detail)}[/dim]")


@main.command()
@click.option("--config", "-c", "config_path", type=click.Path(exists=True), help="Path to configuration file")
def config(config_path: str | None) -> None:
    """Display current configuration."""
    from lazylog.config import (
        ConfigurationError,
        create_default_config,
        load_config,
        load_config_from_env,
    )

    try:
        if config_path:
            cfg = load_config(config_path)
            source = config_path
        else:
            try:
                cfg = load_config_from_env()
                source = "discovered"
            except FileNotFoundError:
                cfg = create_default_config()
                source = "defaults"
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        sys.exit(1)

    console.print(Panel(f"[bold blue]lazylog Configuration[/bold blue] ({escape(source)})", title="Configuration"))

    console.print("[bold]Logging[/bold]")
    console.print(f"  Level: {cfg.logging.level.value}")
    console.print(f"  Style: {escape(cfg.logging.style.value)}")
    console.print(f"  Format: {escape(cfg.logging.effective_format)}")
    console.print(f"  JSON: {cfg.logging.json_output}")
    if cfg.logging.file:
        console.print(f"  File: {escape(cfg.logging.file)}")
    console.print()

    console.print("[bold]Interpolation[/bold]")
    console.print(f"  Policy: {cfg.policy.value}")
    console.print()

    console.print("[bold]Benchmark[/bold]")
    console.print(f"  Number: {cfg.benchmark.number}")
    console.print(f"  Repeat: {cfg.benchmark.repeat}")
    console.print(f"  Emit Level / Threshold: {cfg.benchmark.emit_level.value} / {cfg.benchmark.threshold.value}")
    console.print()

    console.print("[bold]Safety[/bold]")
    console.print(f"  Max Width: {cfg.safety.max_width}")
    console.print(f"  Max Precision: {cfg.safety.max_precision}")
    console.print(f"  Attribute Access: {cfg.safety.allow_attribute_access}")
    console.print(f"  Index Access: {cfg.safety.allow_index_access}")


if __name__ == "__main__":
    main()
