"""Command-line interface for hookchain manifests."""

from pathlib import Path

import structlog
import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .chain import BatchHookchain, ReactiveHookchain
from .chain.base import Hookchain
from .config import HookchainConfig, load_config
from .discovery.manifest import DiscoveryContext, build_chain, load_manifest, resolve_callback
from .observability import MetricsCollector, configure_logging
from .utils.exceptions import ChainExecutionError, CyclicDependencyError, HookchainError

app = typer.Typer(
    name="hookchain",
    help="hookchain - dependency-ordered callback scheduler",
    add_completion=False,
)

console = Console()
logger = structlog.get_logger(__name__)

ManifestArgument = typer.Argument(..., help="Hook manifest (YAML)", exists=True, dir_okay=False)
ConfigOption = typer.Option(None, "--config", "-c", help="Configuration file")
LogLevelOption = typer.Option(
    None,
    "--log-level",
    help="Log verbosity: TRACE, DEBUG, VERBOSE, INFO, WARNING, ERROR",
)


def _setup(config_file: Path | None, log_level: str | None) -> HookchainConfig:
    """Load configuration and configure logging for a command."""
    config = load_config(config_file)
    configure_logging(
        level=log_level or config.logging.level,
        json_logs=config.logging.format == "json",
        log_file=config.logging.file,
        log_filter=config.logging.filter,
    )
    return config


def _load_chain(
    manifest_file: Path,
    config: HookchainConfig,
    metrics: MetricsCollector | None = None,
) -> Hookchain:
    manifest = load_manifest(manifest_file)
    return build_chain(
        manifest,
        DiscoveryContext(resolver=resolve_callback),
        metrics=metrics,
        default_strategy=config.scheduler.strategy,
        default_arity=config.scheduler.arity,
    )


def _fail(message: str, error: Exception) -> None:
    console.print(f"\n[red]ERROR: {message}:[/red] {escape(str(error))}")
    raise typer.Exit(code=1) from error


@app.command()
def plan(
    manifest_file: Path = ManifestArgument,
    config_file: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
) -> None:
    """
    Show the execution waves of a manifest without running anything.

    Hooks in the same wave do not depend on each other. Barriers are listed
    in the wave where they become satisfied.

    Examples:
        hookchain plan startup.yaml
    """
    try:
        config = _setup(config_file, log_level)
        chain = _load_chain(manifest_file, config)
        waves = chain.graph.compile_waves()
    except CyclicDependencyError as e:
        console.print(f"\n[red]ERROR: Cyclic dependency:[/red] {escape(str(e))}")
        for cycle in e.cycles:
            console.print(f"  - {' -> '.join([*cycle, cycle[0]])}")
        raise typer.Exit(code=1) from e
    except (HookchainError, OSError, ValueError) as e:
        _fail("Plan failed", e)

    console.print(
        Panel.fit(
            f"[bold blue]Hookchain Plan[/bold blue]\n\n"
            f"Manifest: {manifest_file}\n"
            f"Strategy: [cyan]{chain.strategy.value}[/cyan]\n"
            f"Hooks: {len(chain)}",
            border_style="blue",
        )
    )

    table = Table(title="Execution Waves")
    table.add_column("Wave", justify="right", style="cyan")
    table.add_column("Hooks", style="green")

    for index, wave in enumerate(waves):
        names = [f"{node.name} (barrier)" if node.is_barrier else node.name for node in wave]
        table.add_row(str(index), ", ".join(names))

    console.print(table)


@app.command()
def graph(
    manifest_file: Path = ManifestArgument,
    output: Path | None = typer.Option(None, "--output", "-o", help="Write DOT to this file"),
    config_file: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
) -> None:
    """
    Export the hook graph in Graphviz DOT format.

    Examples:
        hookchain graph startup.yaml
        hookchain graph startup.yaml -o startup.dot
    """
    try:
        config = _setup(config_file, log_level)
        chain = _load_chain(manifest_file, config)
    except (HookchainError, OSError, ValueError) as e:
        _fail("Graph export failed", e)

    dot = chain.graph.to_dot()
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(dot + "\n", encoding="utf-8")
        console.print(f"[green]Wrote dependency graph to {output}[/green]")
    else:
        typer.echo(dot)


@app.command()
def run(
    manifest_file: Path = ManifestArgument,
    trigger: list[str] = typer.Option(
        [], "--trigger", "-t", help="Hook to signal after the initial run (reactive only)"
    ),
    arg: list[str] = typer.Option([], "--arg", "-a", help="Positional argument for callbacks"),
    config_file: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
) -> None:
    """
    Resolve the manifest's callbacks and run the chain.

    Batch manifests run every hook once. Reactive manifests cascade from the
    root, then signal each --trigger in order.

    Examples:
        hookchain run startup.yaml
        hookchain run loading.yaml -t config_loaded -t assets_loaded
    """
    args = tuple(arg)

    try:
        config = _setup(config_file, log_level)
        metrics = MetricsCollector() if config.scheduler.enable_metrics else None
        chain = _load_chain(manifest_file, config, metrics=metrics)

        if trigger and not isinstance(chain, ReactiveHookchain):
            raise ValueError("--trigger requires a reactive manifest")

        chain.run(*args)
        if isinstance(chain, ReactiveHookchain):
            for key in trigger:
                logger.info("Signalling hook", hook=key)
                chain.call(key, *args)
    except ChainExecutionError as e:
        console.print(f"\n[red]ERROR: Hook '{e.node}' failed:[/red] {escape(str(e.cause))}")
        raise typer.Exit(code=1) from e
    except (HookchainError, OSError, ValueError) as e:
        _fail("Run failed", e)

    if isinstance(chain, BatchHookchain):
        console.print(f"[green]PASS: Ran {len(chain.order())} hook(s)[/green]")
    elif isinstance(chain, ReactiveHookchain):
        console.print(f"[green]Completed:[/green] {', '.join(chain.completed()) or '-'}")
        pending = chain.pending()
        if pending:
            console.print(f"[yellow]Pending:[/yellow] {', '.join(pending)}")

    if metrics:
        metrics.log_summary()


@app.command()
def version() -> None:
    """Show version information."""
    from . import __version__

    console.print(f"hookchain version {__version__}")
