"""CLI entry point for the metadata provider."""

import json

import click
from loguru import logger

from .config import ProviderConfig

log = logger.bind(stage="cli")


def _load_config(verbose: bool, **overrides) -> ProviderConfig:
    """Build config from .env/env, CLI flags win. Sets up logging."""
    config_kwargs = {k: v for k, v in overrides.items() if v is not None}
    if verbose:
        config_kwargs["log_level"] = "DEBUG"
    config = ProviderConfig(**config_kwargs)  # type: ignore[arg-type]
    config.setup_logging()
    return config


@click.group()
def main() -> None:
    """Resolve noisy book/audiobook names into Lubimy Czytać metadata."""


@main.command()
@click.option("--host", default=None, help="Interface to bind (default from HOST).")
@click.option("--port", type=int, default=None, help="Port to listen on (default from PORT).")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def serve(host: str | None, port: int | None, verbose: bool) -> None:
    """Run the HTTP search service."""
    from .server import create_app

    config = _load_config(verbose, host=host, port=port)
    app = create_app(config)
    log.info(f"LubimyCzytac provider listening on {config.host}:{config.port}")
    app.run(host=config.host, port=config.port)


@main.command()
@click.argument("query")
@click.option("-a", "--author", default="", help="Explicit author (skips splitting).")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def search(query: str, author: str, verbose: bool) -> None:
    """Search once and print the matches as JSON."""
    from .provider import LubimyCzytacProvider
    from .server import format_match

    config = _load_config(verbose)
    provider = LubimyCzytacProvider(config)
    try:
        results = provider.search_books(query, author)
    finally:
        provider.client.close()

    payload = {"matches": [format_match(book) for book in results.matches]}
    click.echo(json.dumps(payload, ensure_ascii=False, indent=2))
