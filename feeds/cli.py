"""
Simple CLI to exercise the feeds manually.
"""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import click

from feeds.errors import FeedError, RecordNotFound
from feeds.hub import FeedHub, build_feeds
from feeds.models import PostKind
from feeds.session import StaticSession
from feeds.settings import load_settings
from feeds.status import build_status
from feeds.store import MemoryStore


def _dump(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False, default=str)


def _run(ctx: click.Context, action: Callable[[FeedHub], Awaitable[None]]) -> None:
    async def runner() -> None:
        settings = load_settings()
        fixture: Optional[Path] = ctx.obj["fixture"]
        user_id = ctx.obj["user_id"] or settings.user_id
        store = MemoryStore.from_file(fixture) if fixture else None
        hub = build_feeds(settings, store=store, session=StaticSession(user_id))
        try:
            await action(hub)
        finally:
            await hub.aclose()

    try:
        asyncio.run(runner())
    except RecordNotFound:
        raise click.ClickException("This post no longer exists") from None
    except (FeedError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc


@click.group()
@click.option("--fixture", type=click.Path(exists=True, dir_okay=False, path_type=Path), default=None,
              help="YAML/JSON tables to serve from memory instead of the backend.")
@click.option("--user-id", default=None, help="Acting user for like state and toggles.")
@click.option("-v", "--verbose", is_flag=True)
@click.pass_context
def cli(ctx: click.Context, fixture: Optional[Path], user_id: Optional[str], verbose: bool):
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)
    ctx.obj = {"fixture": fixture, "user_id": user_id}


KIND_CHOICE = click.Choice([kind.value for kind in PostKind])


@cli.command()
@click.argument("kind", type=KIND_CHOICE)
@click.pass_context
def fetch(ctx: click.Context, kind: str):
    """Print a feed, one JSON item per line."""

    async def action(hub: FeedHub) -> None:
        feed = hub.feed(kind)
        await feed.fetch()
        if feed.state.error:
            raise click.ClickException(feed.state.error)
        for item in feed.items:
            click.echo(_dump(asdict(item)))

    _run(ctx, action)


@cli.command()
@click.argument("kind", type=KIND_CHOICE)
@click.argument("post_id")
@click.pass_context
def show(ctx: click.Context, kind: str, post_id: str):
    """Print a single post."""

    async def action(hub: FeedHub) -> None:
        item = await hub.feed(kind).fetch_single(post_id)
        click.echo(_dump(asdict(item)))

    _run(ctx, action)


@cli.command()
@click.argument("kind", type=KIND_CHOICE)
@click.argument("post_id")
@click.option("--unlike", is_flag=True, help="Remove an existing like instead of adding one.")
@click.pass_context
def like(ctx: click.Context, kind: str, post_id: str, unlike: bool):
    """Like (or unlike) a post and print the resulting state."""

    async def action(hub: FeedHub) -> None:
        feed = hub.feed(kind)
        await feed.fetch()
        liked = await feed.toggle_like(post_id, currently_liked=unlike)
        state = hub.reactions.get(post_id)
        click.echo(_dump({"post_id": post_id, "is_liked": liked, "like_count": state.like_count if state else 0}))

    _run(ctx, action)


@cli.command()
@click.argument("post_id")
@click.pass_context
def comments(ctx: click.Context, post_id: str):
    """Print a forum post's comments."""

    async def action(hub: FeedHub) -> None:
        for comment in await hub.fetch_comments(post_id):
            click.echo(_dump(asdict(comment)))

    _run(ctx, action)


@cli.command()
@click.pass_context
def status(ctx: click.Context):
    """Refresh every feed concurrently and print a status summary."""

    async def action(hub: FeedHub) -> None:
        await asyncio.gather(*(service.fetch() for service in hub.all()))
        click.echo(json.dumps(build_status(hub), indent=2, ensure_ascii=False))

    _run(ctx, action)


if __name__ == "__main__":  # pragma: no cover
    cli()
