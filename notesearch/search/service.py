from notesearch.constants import DEFAULT_CONCURRENCY, EMBEDDING_MAX_LENGTH, TITLE_TRUNCATE
from notesearch.embedding.client import EmbeddingClient
from notesearch.errors import InvalidQueryError
from notesearch.logging import get_logger
from notesearch.search.freshness import classify
from notesearch.search.ranking import Candidate, rank
from notesearch.search.types import (
    NoteSearchRecord,
    NoteSummary,
    PendingEmbedding,
    SearchOptions,
    SearchResponse,
    SearchResult,
    SearchStatistics,
)
from notesearch.text import prepare_for_embedding
from notesearch.utils import elapsed_ms, ms_now, truncate, utc_now

_logger = get_logger(__name__)


def _matches_filters(note: NoteSearchRecord, options: SearchOptions) -> bool:
    if options.folder_id is not None and note.folder_id != options.folder_id:
        return False
    if options.tag_names and not set(options.tag_names) & set(note.tag_names):
        return False
    return True


def empty_response(query: str) -> SearchResponse:
    return SearchResponse(
        results=[],
        stats=SearchStatistics(),
        query=query,
        executed_at=utc_now(),
        pending_persistence=[],
    )


class SemanticSearch:
    """Semantic search over notes with lazily refreshed embeddings.

    ``search`` borrows the ``notes`` list for the duration of the call: records
    whose embedding is regenerated get the new vector and timestamp assigned in
    place. Nothing is written to storage; regenerated vectors are reported in
    ``SearchResponse.pending_persistence`` for the caller to save.
    """

    def __init__(
        self,
        client: EmbeddingClient,
        concurrency: int = DEFAULT_CONCURRENCY,
        max_length: int = EMBEDDING_MAX_LENGTH,
    ):
        self.client = client
        self.concurrency = concurrency
        self.max_length = max_length

    @property
    def dimensions(self) -> int:
        return self.client.dimensions

    async def search(
        self,
        query: str,
        notes: list[NoteSearchRecord],
        options: SearchOptions | None = None,
    ) -> SearchResponse:
        start = ms_now()

        if not query or not query.strip():
            raise InvalidQueryError("Search query cannot be empty")

        options = options or SearchOptions()
        candidates = [note for note in notes if _matches_filters(note, options)]
        if not candidates:
            return empty_response(query)

        stats = SearchStatistics(total_notes_considered=len(candidates))
        reusable, to_regenerate = self._partition(candidates, options, stats)

        embedding_start = ms_now()
        regenerated = await self._regenerate(to_regenerate, stats)

        query_embedding = await self.client.embed_one(query)
        stats.embedding_api_call_count += 1
        stats.tokens_consumed += query_embedding.token_count or 0
        stats.embedding_phase_duration_ms = elapsed_ms(embedding_start)

        similarity_start = ms_now()
        pool = reusable + regenerated
        by_id = {note.id: note for note in pool}
        ranked = rank(
            query_embedding.vector,
            (Candidate(note.id, note.embedding) for note in pool),
            min_similarity=options.min_similarity,
            max_results=options.max_results,
        )
        results = [SearchResult(note=NoteSummary.from_record(by_id[r.id]), similarity=r.similarity) for r in ranked]
        stats.similarity_phase_duration_ms = elapsed_ms(similarity_start)

        pending = [
            PendingEmbedding(id=note.id, embedding=note.embedding, embedding_generated_at=note.embedding_generated_at)
            for note in regenerated
        ]
        stats.total_duration_ms = elapsed_ms(start)

        _logger.info(
            "Semantic search: %d/%d above %.2f, %d regenerated, %d reused, %d failed, %dms",
            len(results),
            len(pool),
            options.min_similarity,
            stats.regenerated_count,
            stats.reused_count,
            stats.failed_count,
            stats.total_duration_ms,
        )

        return SearchResponse(
            results=results,
            stats=stats,
            query=query,
            executed_at=utc_now(),
            pending_persistence=pending,
        )

    def _partition(
        self,
        notes: list[NoteSearchRecord],
        options: SearchOptions,
        stats: SearchStatistics,
    ) -> tuple[list[NoteSearchRecord], list[NoteSearchRecord]]:
        reusable: list[NoteSearchRecord] = []
        to_regenerate: list[NoteSearchRecord] = []

        for note in notes:
            check = classify(note, self.dimensions)
            _logger.debug(
                "Freshness check %r: %s",
                truncate(note.title, TITLE_TRUNCATE),
                check.reason or "fresh",
            )

            if not check.needs_regeneration:
                reusable.append(note)
                stats.reused_count += 1
            elif options.regenerate_stale:
                to_regenerate.append(note)
            # stale notes are left out entirely when regeneration is off

        return reusable, to_regenerate

    async def _regenerate(
        self,
        notes: list[NoteSearchRecord],
        stats: SearchStatistics,
    ) -> list[NoteSearchRecord]:
        if not notes:
            return []

        texts = [prepare_for_embedding(n.title, n.body_markup, n.tag_names, self.max_length) for n in notes]
        batch = await self.client.embed_batch(texts, self.concurrency)
        generated_at = utc_now()

        regenerated: list[NoteSearchRecord] = []
        for note, vector in zip(notes, batch.vectors, strict=True):
            if vector.size == 0:
                continue
            note.embedding = vector
            note.embedding_generated_at = generated_at
            regenerated.append(note)

        stats.regenerated_count = len(regenerated)
        stats.failed_count = batch.failure_count
        stats.embedding_api_call_count += batch.success_count
        stats.tokens_consumed += batch.total_tokens
        return regenerated
