"""repointel CLI interface.

Commands:
- scan: Extract facts for every repository in a workspace and store a snapshot
- summarize: Generate handover documents from the current view
- graph: Render the organization service map
- diff: Compare two named snapshots
- init: Write a default configuration file

Global options:
- --config: Path to configuration file
- --verbose: Enable verbose output with timestamps
- --quiet: Suppress info messages
- --ci: JSON lines logging
- --version: Show version and exit
"""

import logging
from pathlib import Path
from typing import Annotated

import typer

from repointel import __version__
from repointel.config import RepoIntelConfig, create_default_config, load_config
from repointel.diff import DiffEngine
from repointel.pipeline import SnapshotPipeline, build_service_map, summarize_workspace
from repointel.store import RepoIntelError, SnapshotStore
from repointel.utils.logging import configure_from_cli, get_logger

CONFIG_FILE_NAME = "repo-intel.yaml"

app = typer.Typer(
    name="repo-intel",
    help="Repository intelligence snapshots for multi-repo workspaces",
    add_completion=False,
    no_args_is_help=True,
)

# Global state
_config: RepoIntelConfig | None = None
_logger = get_logger()

RootOption = Annotated[
    Path,
    typer.Option(
        "--root",
        "-r",
        help="Workspace root to operate on",
        exists=True,
        file_okay=False,
        resolve_path=True,
    ),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"repo-intel {__version__}")
        raise typer.Exit()


def _get_config() -> RepoIntelConfig:
    return _config or RepoIntelConfig()


def _fail(message: str) -> typer.Exit:
    _logger.error(message)
    return typer.Exit(1)


@app.callback()
def main(
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file",
            exists=True,
            dir_okay=False,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output with timestamps",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress info messages (warnings and errors only)",
        ),
    ] = False,
    ci: Annotated[
        bool,
        typer.Option(
            "--ci",
            help="Enable CI mode with JSON output",
        ),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
) -> None:
    """repo-intel - knowledge snapshots of many repositories.

    Scan a workspace, generate handover documents and a service map, and
    diff snapshots over time.
    """
    global _config

    configure_from_cli(verbose=verbose, quiet=quiet, ci=ci)

    try:
        _config = load_config(config_path=config)
        if _config.config_path:
            _logger.debug("Loaded config from: %s", _config.config_path)
    except FileNotFoundError as e:
        raise _fail(str(e))
    except (ValueError, OSError) as e:
        raise _fail(f"Failed to load config: {e}")


# =============================================================================
# scan command
# =============================================================================


@app.command()
def scan(
    root: RootOption = Path("."),
    snapshot_id: Annotated[
        str | None,
        typer.Option(
            "--snapshot-id",
            "-s",
            help="Snapshot identifier (default: <git sha>-<timestamp>)",
        ),
    ] = None,
) -> None:
    """Scan every repository under ROOT and store a snapshot."""
    try:
        result = SnapshotPipeline(_get_config()).run(root, snapshot_id=snapshot_id)
    except (RepoIntelError, ValueError, OSError) as e:
        raise _fail(str(e))

    _logger.structured(
        logging.DEBUG,
        "Scan complete",
        snapshot_id=result.snapshot_id,
        repos=len(result.repos),
        failures=len(result.failures),
    )
    typer.echo(f"Scanned {len(result.repos)} repo(s). Snapshot: {result.snapshot_id}")


# =============================================================================
# summarize command
# =============================================================================


@app.command()
def summarize(
    root: RootOption = Path("."),
    repo: Annotated[
        str | None,
        typer.Option(
            "--repo",
            help="Only summarize the repository with this name",
        ),
    ] = None,
) -> None:
    """Generate handover documents for scanned repositories."""
    try:
        handovers = summarize_workspace(root, _get_config(), repo=repo)
    except (RepoIntelError, ValueError, OSError) as e:
        raise _fail(str(e))

    for path in handovers:
        typer.echo(str(path))


# =============================================================================
# graph command
# =============================================================================


@app.command()
def graph(root: RootOption = Path(".")) -> None:
    """Render the Mermaid service map of the current scan."""
    try:
        output_path = build_service_map(root, _get_config())
    except (RepoIntelError, OSError) as e:
        raise _fail(str(e))

    typer.echo(str(output_path))


# =============================================================================
# diff command
# =============================================================================


@app.command()
def diff(
    base: Annotated[
        str,
        typer.Option("--base", help="Base snapshot identifier"),
    ],
    head: Annotated[
        str,
        typer.Option("--head", help="Head snapshot identifier"),
    ],
    root: RootOption = Path("."),
) -> None:
    """Compare two stored snapshots."""
    store = SnapshotStore(root, _get_config().state_dir)
    try:
        DiffEngine(store).run(base, head)
    except (RepoIntelError, OSError) as e:
        raise _fail(str(e))

    typer.echo(f"Diff generated between {base} and {head}.")


# =============================================================================
# init command
# =============================================================================


@app.command()
def init(
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            help="Overwrite existing config",
        ),
    ] = False,
) -> None:
    """Write a default repo-intel.yaml in the current directory."""
    config_file = Path(CONFIG_FILE_NAME)

    if config_file.exists() and not force:
        _logger.error("Config already exists: %s", config_file)
        _logger.info("Use --force to overwrite")
        raise typer.Exit(1)

    config_file.write_text(create_default_config(), encoding="utf-8")
    typer.echo(f"Created {config_file}")


if __name__ == "__main__":
    app()
