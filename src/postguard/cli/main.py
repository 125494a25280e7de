"""postguard CLI -- run the content stages and publish from the command line.

Thin wrapper around the library using click; async work runs under
:func:`asyncio.run`.  Pass ``-`` as TEXT to read from stdin.
"""

from __future__ import annotations

import asyncio
import json
import os
import sys

import click

from postguard.config import Settings, configure_logging
from postguard.content.risk import assess
from postguard.content.sanitize import sanitize_field
from postguard.content.segment import split_content
from postguard.content.types import FieldKind, Platform
from postguard.content.validation import Invalid, validate
from postguard.errors import PostguardError
from postguard.pipeline import PublishRequest, build_pipeline
from postguard.publish.result import PublishResult, PublishSuccess

FIELD_CHOICES = click.Choice([kind.value for kind in FieldKind])
PLATFORM_CHOICES = click.Choice([platform.value for platform in Platform])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _error(msg: str) -> None:
    """Print an error message to stderr and exit 1."""
    click.echo(msg, err=True)
    raise SystemExit(1)


def _read_text(text: str) -> str:
    return sys.stdin.read() if text == "-" else text


def token_env_var(platform: Platform) -> str:
    return f"POSTGUARD_{platform.name}_TOKEN"


class EnvCredentialSupplier:
    """Reads ``POSTGUARD_<PLATFORM>_TOKEN`` from the environment."""

    async def get_token(self, user_id: str, platform: Platform) -> str | None:
        return os.environ.get(token_env_var(platform)) or None


async def _publish(
    settings: Settings, request: PublishRequest, save: bool
) -> PublishResult:
    store = None
    engine = None
    if save:
        from postguard.db import (
            SqlPublishStore,
            async_session_factory,
            create_async_engine_from_url,
            create_tables,
        )

        engine = create_async_engine_from_url(settings.database_url)
        await create_tables(engine)
        store = SqlPublishStore(async_session_factory(engine))

    pipeline = build_pipeline(settings, EnvCredentialSupplier(), store=store)
    try:
        return await pipeline.publish(request)
    finally:
        await pipeline.aclose()
        if engine is not None:
            await engine.dispose()


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="postguard")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """postguard -- outbound content defense and delivery."""
    ctx.ensure_object(dict)
    try:
        settings = Settings()
    except PostguardError as exc:
        _error(f"Error: {exc}")
    configure_logging(settings)
    ctx.obj["settings"] = settings


@cli.command()
@click.argument("text")
@click.option("--field", "-f", type=FIELD_CHOICES, default="general", help="Field preset.")
def sanitize(text: str, field: str) -> None:
    """Print TEXT after sanitization."""
    click.echo(sanitize_field(_read_text(text), field))


@cli.command(name="assess")
@click.argument("text")
def assess_cmd(text: str) -> None:
    """Report suspicious patterns found in TEXT (as JSON)."""
    click.echo(json.dumps(assess(_read_text(text)).to_dict(), indent=2))


@cli.command(name="validate")
@click.argument("text")
@click.option("--field", "-f", type=FIELD_CHOICES, default="post", help="Field rules.")
def validate_cmd(text: str, field: str) -> None:
    """Validate TEXT; exit 1 with the reason if it is invalid."""
    outcome = validate(_read_text(text), field)
    if isinstance(outcome, Invalid):
        _error(f"Invalid ({outcome.reason.value}): {outcome.message}")
    click.echo("Valid")


@cli.command()
@click.argument("text")
@click.option("--budget", "-b", default=280, show_default=True, help="Characters per segment.")
@click.option("--reserve", default=6, show_default=True, help="Characters reserved for numbering.")
@click.option("--max-segments", default=25, show_default=True)
def split(text: str, budget: int, reserve: int, max_segments: int) -> None:
    """Show how TEXT would be split into a thread."""
    try:
        segments = split_content(_read_text(text), budget, reserve, max_segments)
    except (PostguardError, ValueError) as exc:
        _error(f"Error: {exc}")
    for segment in segments:
        click.echo(f"[{segment.ordinal}/{segment.total}] ({len(segment.text)} chars)")
        click.echo(segment.text)
        click.echo()


@cli.command()
@click.argument("text")
@click.option("--platform", "-p", type=PLATFORM_CHOICES, required=True)
@click.option("--user", "-u", default="cli", show_default=True, help="User id for rate limiting.")
@click.option("--save/--no-save", default=False, help="Record the publish in the database.")
@click.pass_context
def publish(ctx: click.Context, text: str, platform: str, user: str, save: bool) -> None:
    """Sanitize, validate and publish TEXT.

    The access token is read from POSTGUARD_TWITTER_TOKEN or
    POSTGUARD_LINKEDIN_TOKEN.
    """
    settings: Settings = ctx.obj["settings"]
    request = PublishRequest(
        user_id=user,
        platform=Platform(platform),
        content=_read_text(text),
    )
    try:
        result = asyncio.run(_publish(settings, request, save))
    except PostguardError as exc:
        _error(f"Error: {exc}")

    click.echo(json.dumps(result.to_dict(), indent=2))
    if not isinstance(result, PublishSuccess):
        raise SystemExit(1)
