"""Typer CLI: match a photo, manage the stored API key, look up artwork, run the proxy."""

from pathlib import Path

import typer
from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from pokiface.ai.artwork import ArtworkResolver, slugify
from pokiface.ai.factory import ANALYZER_NAMES, get_match_analyzer
from pokiface.core.config import get_config
from pokiface.core.credentials import CredentialManager, mask_key
from pokiface.core.errors import CredentialError, UploadReadError
from pokiface.core.logging import get_flight_logger, setup_logging
from pokiface.core.uploads import UploadFile, UploadHandler
from pokiface.ui.console import ConsoleView
from pokiface.ui.controller import PresentationController, UIState

app = typer.Typer(no_args_is_help=True, help="PokiFace: find your Pokémon twin.")
key_app = typer.Typer(help="Save, show, or clear the stored Gemini API key.")
app.add_typer(key_app, name="key")

MAX_KEY_ATTEMPTS = 3


def _load_config(config: Path | None):
    return get_config(config) if config is not None else get_config()


@app.command()
def match(
    photo: Path = typer.Argument(..., help="JPG or PNG photo of a face"),
    analyzer: str | None = typer.Option(
        None, "--analyzer", "-a", help=f"Analyzer to use: {', '.join(ANALYZER_NAMES)} (default from config)"
    ),
    share: bool = typer.Option(False, "--share", help="Print share text after the result"),
    dump_log: bool = typer.Option(False, "--dump-log", help="Write the flight log to forensics_dir when analysis fails"),
    config: Path | None = typer.Option(None, "--config", help="Path to pokiface.yml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable DEBUG logging to stderr"),
) -> None:
    """Analyze PHOTO and show the matching Pokémon with its artwork."""
    cfg = _load_config(config)
    setup_logging(verbose=verbose)
    analyzer_name = (analyzer or cfg.analyzer).strip().lower()
    try:
        match_analyzer = get_match_analyzer(analyzer_name, cfg)
    except ValueError as e:
        typer.secho(str(e), fg=typer.colors.RED)
        raise typer.Exit(1)

    view = ConsoleView()
    controller = PresentationController(
        view,
        CredentialManager.from_settings(cfg),
        UploadHandler(max_bytes=cfg.max_upload_bytes),
        match_analyzer,
        ArtworkResolver.from_settings(cfg),
        toast_seconds=cfg.toast_seconds,
    )
    controller.start()
    attempts = 0
    while view.credential_prompt_open:
        attempts += 1
        if attempts > MAX_KEY_ATTEMPTS:
            typer.secho("No valid API key; giving up.", fg=typer.colors.RED)
            raise typer.Exit(1)
        key = Prompt.ask("Gemini API key", password=True, console=view.console)
        controller.save_api_key(key)

    try:
        upload = UploadFile.from_path(photo)
    except UploadReadError as e:
        typer.secho(e.message, fg=typer.colors.RED)
        raise typer.Exit(1)

    result = controller.handle_file(upload)
    if result is None or controller.state != UIState.result:
        if dump_log:
            fl = get_flight_logger()
            if fl is not None:
                path = fl.dump(f"match-{photo.stem}")
                typer.echo(f"Flight log written to {path}")
        raise typer.Exit(1)
    if share:
        controller.share()


@key_app.command("set")
def key_set(
    key: str | None = typer.Argument(None, help="Gemini API key (prompted when omitted)"),
    skip_validation: bool = typer.Option(False, "--skip-validation", help="Store without probing the provider"),
    config: Path | None = typer.Option(None, "--config", help="Path to pokiface.yml"),
) -> None:
    """Save the key and validate it with a probe request. An invalid key is not kept."""
    cfg = _load_config(config)
    manager = CredentialManager.from_settings(cfg)
    if key is None:
        key = Prompt.ask("Gemini API key", password=True)
    try:
        saved = manager.save(key)
        if not skip_validation:
            manager.validate(saved)
    except CredentialError as e:
        typer.secho(e.message, fg=typer.colors.RED)
        raise typer.Exit(1)
    typer.secho("API key saved successfully!", fg=typer.colors.GREEN)


@key_app.command("show")
def key_show(
    config: Path | None = typer.Option(None, "--config", help="Path to pokiface.yml"),
) -> None:
    """Show the stored key (masked)."""
    cfg = _load_config(config)
    stored = CredentialManager.from_settings(cfg).load()
    if stored is None:
        typer.echo("No API key stored.")
        raise typer.Exit(1)
    typer.echo(mask_key(stored))


@key_app.command("clear")
def key_clear(
    config: Path | None = typer.Option(None, "--config", help="Path to pokiface.yml"),
) -> None:
    """Remove the stored key."""
    cfg = _load_config(config)
    CredentialManager.from_settings(cfg).clear()
    typer.echo("API key cleared.")


@app.command()
def artwork(
    names: list[str] = typer.Argument(..., help="One or more Pokémon names"),
    config: Path | None = typer.Option(None, "--config", help="Path to pokiface.yml"),
) -> None:
    """Resolve artwork URLs (placeholder when the lookup fails)."""
    cfg = _load_config(config)
    resolver = ArtworkResolver.from_settings(cfg)
    table = Table(title=None)
    table.add_column("Name")
    table.add_column("Slug")
    table.add_column("Artwork")
    for name in names:
        table.add_row(name, slugify(name), resolver.resolve(name))
    Console().print(table)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(7071, "--port", help="Bind port"),
    config: Path | None = typer.Option(None, "--config", help="Path to pokiface.yml"),
) -> None:
    """Run the proxy service (POST /api/getPokemonTwin)."""
    import uvicorn

    cfg = _load_config(config)
    setup_logging()
    if not cfg.azure_api_key:
        typer.secho("Warning: AZURE_OPENAI_API_KEY is not set; requests will fail with 500.", fg=typer.colors.YELLOW)
    uvicorn.run("pokiface.api.main:app", host=host, port=port)


if __name__ == "__main__":
    app()
