"""Command-line interface for malratings."""

import asyncio
import json
import sys
from pathlib import Path

import click
from pydantic import ValidationError

from . import __version__
from .config.manager import ConfigManager
from .core.exceptions import ConfigurationError
from .core.logging import configure_log_directory
from .core.models import LocalTitleContext
from .core.ratings import LibraryItem
from .providers.manager import ProviderManager
from .providers.shoko import ShokoApiClient


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config-dir", type=click.Path(path_type=Path), help="Configuration directory path"
)
@click.pass_context
def cli(ctx: click.Context, config_dir: Path | None) -> None:
    """malratings - Personal MyAnimeList scores as media library ratings."""
    ctx.ensure_object(dict)

    config_manager = ConfigManager(config_dir)
    ctx.obj["config_manager"] = config_manager
    configure_log_directory(config_manager.get_log_dir())


@cli.command()
@click.pass_context
def test(ctx: click.Context) -> None:
    """Validate the MAL token and count rated entries."""
    config_manager = ctx.obj["config_manager"]
    config = config_manager.load_config()

    if not config.mal.has_token:
        click.echo("❌ MAL access token is not configured", err=True)
        click.echo("   malratings config set mal.access_token <token>", err=True)
        sys.exit(1)

    async def run() -> int | None:
        manager = ProviderManager(config_manager)
        try:
            valid = await manager.mal_client.validate_credentials(
                config.mal.access_token, config.mal.client_id
            )
            if not valid:
                return None
            entries = await manager.catalog_cache.get_entries(config, force_refresh=True)
            return len(entries) if entries is not None else 0
        finally:
            await manager.close_all()

    rated = asyncio.run(run())
    if rated is None:
        click.echo("❌ MAL token was rejected", err=True)
        sys.exit(1)
    click.echo(f"✓ Connected to MyAnimeList: {rated} rated anime")


@cli.command("test-shoko")
@click.option("--url", type=str, help="Server URL (defaults to the configured one)")
@click.option("--api-key", type=str, help="API key (defaults to the configured one)")
@click.pass_context
def test_shoko(ctx: click.Context, url: str | None, api_key: str | None) -> None:
    """Check that the Shoko server is reachable."""
    config = ctx.obj["config_manager"].load_config()
    server_url = url or config.shoko.server_url

    async def run() -> bool:
        client = ShokoApiClient(server_url, api_key=api_key or config.shoko.api_key)
        try:
            return await client.test_connection()
        finally:
            await client.close()

    if not asyncio.run(run()):
        click.echo(f"❌ Could not connect to Shoko at {server_url}", err=True)
        sys.exit(1)
    click.echo(f"✓ Connected to Shoko at {server_url}")


@cli.command()
@click.pass_context
def refresh(ctx: click.Context) -> None:
    """Force a refresh of the rated MAL catalog."""
    config_manager = ctx.obj["config_manager"]
    config = config_manager.load_config()

    async def run():
        manager = ProviderManager(config_manager)
        try:
            return await manager.catalog_cache.get_entries(config, force_refresh=True)
        finally:
            await manager.close_all()

    try:
        entries = asyncio.run(run())
    except ConfigurationError as e:
        click.echo(f"❌ {e.message}", err=True)
        sys.exit(1)

    if entries is None:
        click.echo("❌ Failed to fetch the MAL catalog", err=True)
        sys.exit(1)
    click.echo(f"✓ Refreshed catalog: {len(entries)} rated anime")


@cli.command()
@click.argument("title", type=str)
@click.option("--path", type=str, help="File path used for the Shoko lookup")
@click.option("--suggestions", type=int, default=5, help="Suggestions when unmatched")
@click.pass_context
def match(ctx: click.Context, title: str, path: str | None, suggestions: int) -> None:
    """Show how a local title would be matched."""
    config_manager = ctx.obj["config_manager"]
    config = config_manager.load_config()

    async def run():
        manager = ProviderManager(config_manager)
        try:
            entries = await manager.catalog_cache.get_entries(config)
            if not entries:
                return None, [], manager.matcher
            result = await manager.orchestrator.resolve(
                LocalTitleContext(name=title, path=path), entries, config
            )
            return result, entries, manager.matcher
        finally:
            await manager.close_all()

    try:
        result, entries, matcher = asyncio.run(run())
    except ConfigurationError as e:
        click.echo(f"❌ {e.message}", err=True)
        sys.exit(1)

    if result is None:
        click.echo("❌ MAL catalog unavailable", err=True)
        sys.exit(1)

    if result.match is not None:
        strategy = result.strategy.value if result.strategy else "unknown"
        click.echo(f"✓ {title} -> {result.match.title} (MAL {result.match.id})")
        click.echo(f"  Strategy: {strategy}")
        click.echo(f"  Score: {result.match.score}")
    else:
        click.echo(f"✗ No match for {title}")
        for suggestion in matcher.suggest(title, entries, limit=suggestions):
            click.echo(
                f"  ? {suggestion.title} (MAL {suggestion.entry.id}, "
                f"{suggestion.similarity:.0f}%)"
            )

    rating = result.rating
    click.echo(f"  Rating: {rating if rating is not None else 'unchanged'}")


@cli.command()
@click.argument("items_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Print decisions as JSON")
@click.pass_context
def rate(ctx: click.Context, items_file: Path, as_json: bool) -> None:
    """Decide ratings for library items listed in a JSON file.

    The file holds a list of objects with ``name`` and optionally ``kind``
    (series, season, episode), ``series_name``, ``path`` and
    ``community_rating``.
    """
    config_manager = ctx.obj["config_manager"]
    config = config_manager.load_config()

    try:
        raw_items = json.loads(items_file.read_text(encoding="utf-8"))
        items = [LibraryItem.model_validate(item) for item in raw_items]
    except (ValueError, TypeError, ValidationError) as e:
        click.echo(f"❌ Invalid items file: {e}", err=True)
        sys.exit(1)

    async def run():
        manager = ProviderManager(config_manager)
        try:
            return await manager.rating_service.rate_items(items, config)
        finally:
            await manager.close_all()

    try:
        updates = asyncio.run(run())
    except ConfigurationError as e:
        click.echo(f"❌ {e.message}", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps([update.summary() for update in updates], indent=2))
        return

    for update in updates:
        marker = "✓" if update.should_apply else "-"
        rating = "" if update.new_rating is None else f" -> {update.new_rating}"
        click.echo(f"{marker} {update.item.name}{rating} ({update.reason})")

    applied = sum(1 for update in updates if update.should_apply)
    click.echo(f"\n{applied} of {len(updates)} item(s) would be rated")


@cli.command()
@click.pass_context
def stats(ctx: click.Context) -> None:
    """Show integration status and cache statistics."""
    config_manager = ctx.obj["config_manager"]

    async def run():
        manager = ProviderManager(config_manager)
        try:
            return await manager.get_statistics()
        finally:
            await manager.close_all()

    statistics = asyncio.run(run())
    health = statistics.pop("health")
    for key, value in statistics.items():
        click.echo(f"{key}: {value}")
    for provider, provider_stats in health.items():
        click.echo(f"{provider}: {provider_stats}")


@cli.group()
def config() -> None:
    """Configuration management commands."""
    pass


@config.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show the current configuration."""
    config_data = ctx.obj["config_manager"].load_config()

    click.echo("Current configuration:")
    click.echo(f"Enabled for anime: {config_data.enabled_for_anime}")
    click.echo(f"Refresh interval: {config_data.refresh_interval_hours}h")
    click.echo(f"Overwrite existing ratings: {config_data.overwrite_existing_ratings}")
    click.echo(f"MAL user: {config_data.mal.username or '(not set)'}")
    click.echo(f"MAL token configured: {config_data.mal.has_token}")
    click.echo(f"Shoko enabled: {config_data.shoko.enabled}")
    click.echo(f"Shoko server: {config_data.shoko.server_url}")
    click.echo(f"Shoko as primary: {config_data.shoko.use_as_primary}")
    click.echo(
        "String matching fallback: "
        f"{config_data.matching.fallback_to_string_matching}"
    )
    click.echo(f"Zero unrated: {config_data.matching.set_unrated_rating_to_zero}")
    click.echo(f"Zero unmatched: {config_data.matching.set_unmatched_rating_to_zero}")


@config.command("reset")
@click.confirmation_option(prompt="Reset configuration to defaults?")
@click.pass_context
def config_reset(ctx: click.Context) -> None:
    """Reset configuration to defaults."""
    ctx.obj["config_manager"].reset_to_defaults()
    click.echo("Configuration reset to defaults")


@config.command("set")
@click.argument("key", type=str)
@click.argument("value", type=str)
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str) -> None:
    """Set a configuration value.

    Examples:
        malratings config set mal.access_token <token>
        malratings config set shoko.enabled true
        malratings config set refresh_interval_hours 12
    """
    try:
        ctx.obj["config_manager"].set_value(key, value)
    except ConfigurationError as e:
        click.echo(f"❌ Error: {e.message}", err=True)
        sys.exit(1)
    click.echo(f"✓ Set {key} = {value}")


@config.command("get")
@click.argument("key", type=str)
@click.pass_context
def config_get(ctx: click.Context, key: str) -> None:
    """Get a configuration value.

    Example:
        malratings config get shoko.server_url
    """
    try:
        value = ctx.obj["config_manager"].get_value(key)
    except ConfigurationError as e:
        click.echo(f"❌ Error: {e.message}", err=True)
        sys.exit(1)
    click.echo(f"{key} = {value}")


@config.command("where")
@click.pass_context
def config_where(ctx: click.Context) -> None:
    """Print the configuration file path."""
    click.echo(str(ctx.obj["config_manager"].config_file))


def main() -> None:
    """Main entry point for the CLI."""
    try:
        cli()
    except KeyboardInterrupt:
        click.echo("\nOperation cancelled by user")
        sys.exit(1)
    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
