from typing import Annotated, Optional

import structlog
import typer
from pydantic import ValidationError
from rich.console import Console

from md_preview.configuration import load_configuration
from md_preview.core.exceptions import ConfigurationError
from md_preview.logging import configure_logging
from md_preview.main import main
from md_preview.settings import Settings

logger = structlog.getLogger(__name__)

console = Console()

cli = typer.Typer(
    name="md-preview",
    help="Preview markdown file in the browser - with hot reloading",
    add_completion=False,
)


@cli.command()
def preview(
    markdown_file: Annotated[Optional[str], typer.Argument(help="Markdown file to preview", show_default=False)] = None,
    port: Annotated[
        Optional[str],
        typer.Option(metavar="PORT", help="Sets the port for the server to run on [default: 8080]"),
    ] = None,
    address: Annotated[
        Optional[str],
        typer.Option(help="Change the event emitter to listen on another address [default: localhost]"),
    ] = None,
) -> None:
    # Environment provides the defaults for options not given on the command line
    try:
        settings = Settings()
    except ValidationError as e:
        typer.echo(f"Environment settings are invalid: {e}", err=True)
        raise typer.Exit(code=1)

    configure_logging(is_console=not settings.log_json)

    try:
        config = load_configuration(
            markdown_file=markdown_file,
            port=port if port is not None else settings.port,
            address=address if address is not None else settings.address,
            refresh_delay=settings.refresh_delay,
        )
    except ConfigurationError as e:
        logger.error("Invalid arguments", error=str(e))
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)

    console.print(
        f"Preview Server running at [bold]http://{config.server.bind_host}:{config.server.port}[/bold]",
        highlight=False,
    )
    exit_code = main(config)
    if exit_code != 0:
        raise typer.Exit(code=exit_code)


if __name__ == "__main__":
    cli()
