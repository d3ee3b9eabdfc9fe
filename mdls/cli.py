"""CLI entrypoint for mdls."""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .config import load_config


def _setup_logging(level: str, log_file: Path | None) -> None:
    """Send logs to a file or to stderr. stdout carries the LSP stdio stream."""
    if log_file is not None:
        handler: logging.Handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    else:
        handler = RichHandler(console=Console(stderr=True), show_path=False)
    logging.basicConfig(level=level.upper(), handlers=[handler], force=True)


@click.group()
@click.version_option(__version__, prog_name="mdls")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, file_okay=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to a TOML config file (defaults to .mdls.toml found upwards, then ~/.config/mdls/config.toml)",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None) -> None:
    """mdls - Markdown language server.

    Wiki-link completion and a live browser preview for markdown notes.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


@cli.command()
@click.option(
    "--transport",
    type=click.Choice(["stdio", "tcp"]),
    default="stdio",
    show_default=True,
    help="Transport method (stdio for editors, tcp for debugging)",
)
@click.option("--tcp-host", default="127.0.0.1", show_default=True, help="Address for --transport tcp")
@click.option("--tcp-port", default=2087, show_default=True, type=int, help="Port for --transport tcp")
@click.option("--theme", default=None, help="Code highlight theme for the preview (e.g. github, monokai)")
@click.option(
    "--renderer",
    default=None,
    metavar="COMMAND",
    help="External markdown renderer, reads stdin and writes HTML (e.g. 'md2html --flatex-math')",
)
@click.option("--preview-port", type=int, default=None, help="Port for the preview page (default: ephemeral)")
@click.option("--no-browser", is_flag=True, help="Serve the preview without opening a browser")
@click.option("--no-preview", is_flag=True, help="Disable the live preview entirely")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write logs to this file instead of stderr",
)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default="info",
    show_default=True,
)
@click.pass_context
def serve(
    ctx: click.Context,
    transport: str,
    tcp_host: str,
    tcp_port: int,
    theme: str | None,
    renderer: str | None,
    preview_port: int | None,
    no_browser: bool,
    no_preview: bool,
    log_file: Path | None,
    log_level: str,
) -> None:
    """Start the language server.

    \b
    - Full-document sync of open markdown files
    - Completion of [[wiki links]] from the note's directory tree
    - Live preview in the browser, updated on every change

    For editors, configure the client to run:

        mdls serve

    For debugging with a TCP connection:

        mdls serve --transport tcp

    Examples:

        mdls serve --theme monokai --renderer "md2html --flatex-math"

        mdls -c ~/notes/.mdls.toml serve --no-browser
    """
    from .lsp import start_server

    _setup_logging(log_level, log_file)

    try:
        config = load_config(
            ctx.obj.get("config_path"),
            overrides={
                "theme": theme,
                "renderer": renderer,
                "port": preview_port,
                "open_browser": False if no_browser else None,
            },
        )
    except (OSError, ValueError) as e:
        raise click.ClickException(str(e))

    logging.getLogger(__name__).debug(f"Preview config: {config}")
    start_server(config, transport, preview=not no_preview, host=tcp_host, port=tcp_port)


@cli.command()
@click.argument("note", type=click.Path(exists=False, path_type=Path))
@click.option("--json", "output_json", is_flag=True, help="Output results as JSON")
def links(note: Path, output_json: bool) -> None:
    """Show the [[wiki link]] targets offered while editing NOTE.

    Lists every markdown file under NOTE's directory, as completion would.
    """
    from .commands.links import run_links

    sys.exit(run_links(note, output_json=output_json))


def main() -> None:
    """Main entrypoint."""
    cli()


if __name__ == "__main__":
    main()
