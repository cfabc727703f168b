import asyncio
from uuid import uuid4

import click
from rich.console import Console
from rich.table import Table

from notesearch.config import Config
from notesearch.constants import QUERY_MAX_LENGTH, QUERY_MIN_LENGTH, SNIPPET_TRUNCATE
from notesearch.embedding import EmbeddingClient
from notesearch.errors import NoteSearchError
from notesearch.logging import configure_logging
from notesearch.persistence import persist_pending
from notesearch.search import (
    SearchOptions,
    SearchResponse,
    SemanticSearch,
    analyze_embedding_status,
    format_similarity,
    similarity_level,
)
from notesearch.store import NoteStore
from notesearch.text import strip_markup
from notesearch.utils import truncate

console = Console()


def _require_config(ctx) -> Config:
    if "config_error" in ctx.obj:
        console.print(f"[red]Error:[/red] {ctx.obj['config_error']}")
        raise SystemExit(1)
    return ctx.obj["config"]


def validate_query(query: str) -> str:
    query = query.strip()
    if len(query) < QUERY_MIN_LENGTH:
        raise click.BadParameter(f"Search query must be at least {QUERY_MIN_LENGTH} characters")
    if len(query) > QUERY_MAX_LENGTH:
        raise click.BadParameter(f"Search query is too long (max {QUERY_MAX_LENGTH} characters)")
    return query


@click.group(invoke_without_command=True)
@click.pass_context
def main(ctx):
    """notesearch - semantic search over your notes"""
    ctx.ensure_object(dict)
    try:
        config = Config()
    except ValueError as e:
        ctx.obj["config_error"] = str(e)
    else:
        ctx.obj["config"] = config
        configure_logging(config.log_level, json_logs=config.log_json)

    if ctx.invoked_subcommand is None:
        console.print("[bold]notesearch[/bold] - semantic search over your notes\n")
        console.print("Run [cyan]notesearch add[/cyan] to store a note, [cyan]notesearch search[/cyan] to find one.")
        console.print("\nUse [cyan]notesearch --help[/cyan] for all commands.")


@main.command()
@click.argument("title")
@click.option("--body", default="", help="Note body (HTML allowed)")
@click.option("--tag", "tags", multiple=True, help="Tag name, repeatable")
@click.option("--folder", "folder_id", default=None, help="Folder id")
@click.option("--id", "note_id", default=None, help="Note id, to update an existing note")
@click.pass_context
def add(ctx, title: str, body: str, tags: tuple[str, ...], folder_id: str | None, note_id: str | None):
    """Create or update a note."""
    config = _require_config(ctx)
    note_id = note_id or uuid4().hex
    changed = asyncio.run(_add(config, note_id, title, body, list(tags), folder_id))
    state = "saved" if changed else "unchanged"
    console.print(f"Note [cyan]{note_id}[/cyan] {state}")


async def _add(config: Config, note_id: str, title: str, body: str, tags: list[str], folder_id: str | None) -> bool:
    store = NoteStore(config.db_path)
    await store.connect()
    try:
        return await store.upsert_note(note_id, title, body, tags, folder_id)
    finally:
        await store.close()


@main.command()
@click.argument("query")
@click.option("--min-similarity", type=click.FloatRange(0.0, 1.0), default=None, help="Similarity floor")
@click.option("--max-results", type=click.IntRange(1, 100), default=None, help="Result cap")
@click.option("--no-regenerate", is_flag=True, help="Skip notes whose embedding is stale")
@click.option("--folder", "folder_id", default=None, help="Only search this folder")
@click.option("--tag", "tags", multiple=True, help="Only notes with any of these tags")
@click.pass_context
def search(
    ctx,
    query: str,
    min_similarity: float | None,
    max_results: int | None,
    no_regenerate: bool,
    folder_id: str | None,
    tags: tuple[str, ...],
):
    """Search notes by meaning."""
    config = _require_config(ctx)
    if not config.openai_api_key:
        console.print("[red]Error:[/red] OPENAI_API_KEY is not set")
        raise SystemExit(1)

    query = validate_query(query)
    options = SearchOptions(
        min_similarity=config.min_similarity if min_similarity is None else min_similarity,
        max_results=config.max_results if max_results is None else max_results,
        regenerate_stale=not no_regenerate,
        folder_id=folder_id,
        tag_names=list(tags) or None,
    )

    try:
        response = asyncio.run(_search(config, query, options))
    except NoteSearchError as e:
        console.print(f"[red]Search failed, try again:[/red] {e}")
        raise SystemExit(1)

    _print_response(response)


async def _search(config: Config, query: str, options: SearchOptions) -> SearchResponse:
    store = NoteStore(config.db_path)
    await store.connect()
    client = EmbeddingClient.from_config(config)
    try:
        notes = await store.list_notes()
        engine = SemanticSearch(client, concurrency=config.batch_concurrency, max_length=config.embedding_max_length)
        response = await engine.search(query, notes, options)
        await persist_pending(store, response.pending_persistence)
        return response
    finally:
        await client.close()
        await store.close()


def _print_response(response: SearchResponse) -> None:
    if not response.results:
        console.print(f"No notes matched [cyan]{response.query}[/cyan]")
    else:
        table = Table(title=f"Results for {response.query!r}")
        table.add_column("Match", justify="right")
        table.add_column("Level")
        table.add_column("Title", style="bold")
        table.add_column("Snippet", style="dim")
        for result in response.results:
            snippet = strip_markup(result.note.body_markup).replace("\n", " ")
            table.add_row(
                format_similarity(result.similarity),
                similarity_level(result.similarity),
                result.note.title,
                truncate(snippet, SNIPPET_TRUNCATE),
            )
        console.print(table)

    stats = response.stats
    console.print(
        f"[dim]{stats.total_notes_considered} notes, {stats.reused_count} reused, "
        f"{stats.regenerated_count} regenerated, {stats.failed_count} failed, "
        f"{stats.embedding_api_call_count} API calls, {stats.tokens_consumed} tokens, "
        f"{stats.total_duration_ms}ms[/dim]"
    )


@main.command()
@click.pass_context
def status(ctx):
    """Show how many notes have up-to-date embeddings."""
    config = _require_config(ctx)
    notes = asyncio.run(_list_notes(config))
    report = analyze_embedding_status(notes, config.embedding_dimensions)

    console.print("[bold]notesearch status[/bold]")
    console.print()
    console.print(f"Database: [cyan]{config.db_path}[/cyan]")
    console.print(f"Embedding model: {config.embedding_model}")
    console.print(f"Notes: {report.total}")
    console.print(f"  fresh: [green]{report.fresh}[/green]")
    console.print(f"  needs regeneration: [yellow]{report.needs_regeneration}[/yellow]")
    console.print(f"    no embedding: {report.no_embedding}")
    console.print(f"    stale: {report.stale}")
    console.print(f"    corrupted: {report.corrupted}")


async def _list_notes(config: Config):
    store = NoteStore(config.db_path)
    await store.connect()
    try:
        return await store.list_notes()
    finally:
        await store.close()


@main.command()
@click.pass_context
def reindex(ctx):
    """Mark every note stale so the next search regenerates all embeddings."""
    config = _require_config(ctx)
    count = asyncio.run(_reindex(config))
    console.print(f"Marked [cyan]{count}[/cyan] notes stale. Embeddings will regenerate on the next search.")


async def _reindex(config: Config) -> int:
    store = NoteStore(config.db_path)
    await store.connect()
    try:
        return await store.mark_all_stale()
    finally:
        await store.close()


if __name__ == "__main__":
    main()
