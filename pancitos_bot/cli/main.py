"""Typer-based command line interface."""

import os

os.environ.setdefault("LOGFIRE_IGNORE_NO_CONFIG", "1")

from pathlib import Path
from typing import Annotated, Optional

import typer
import uvicorn

from pancitos_bot.config import ConfigurationError, get_settings
from pancitos_bot.services.signature import compute_signature

app = typer.Typer(help="Pancitos DevC Messenger webhook.")


@app.command()
def serve(
    host: Annotated[str, typer.Option(help="Interface to bind")] = "0.0.0.0",
    port: Annotated[
        Optional[int], typer.Option(help="Port to bind (defaults to PORT setting)")
    ] = None,
    reload: Annotated[bool, typer.Option(help="Auto-reload on code changes")] = False,
):
    """Validate configuration, then run the webhook server."""
    try:
        settings = get_settings()
    except ConfigurationError as e:
        typer.secho(f"Missing config values: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    uvicorn.run(
        "pancitos_bot.main:app",
        host=host,
        port=port or settings.port,
        reload=reload,
    )


@app.command()
def sign(
    payload_file: Annotated[
        Path, typer.Argument(exists=True, dir_okay=False, readable=True)
    ],
    secret: Annotated[
        Optional[str],
        typer.Option(help="App secret (defaults to MESSENGER_APP_SECRET setting)"),
    ] = None,
):
    """Print the X-Hub-Signature header value for a webhook payload file."""
    if secret is None:
        try:
            secret = get_settings().messenger_app_secret
        except ConfigurationError as e:
            typer.secho(str(e), fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1)

    typer.echo(compute_signature(payload_file.read_bytes(), secret))


if __name__ == "__main__":
    app()
