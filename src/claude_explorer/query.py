"""Query service composing the loaded export with both search engines."""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Literal, NamedTuple

from .config import (
    DEFAULT_FUZZY_LIMIT,
    DEFAULT_LIST_LIMIT,
    DEFAULT_MAX_RESULTS,
    DEFAULT_OFFSET,
    SNIPPET_AFTER,
    SNIPPET_BEFORE,
)
from .context import extract_context, generate_summary
from .errors import IndexNotBuiltError
from .filters import (
    SortField,
    SortOrder,
    filter_conversations,
    filter_projects,
    group_by_date,
    group_by_month,
    sort_conversations,
)
from .fuzzy import FuzzySearchEngine
from .indexer import SearchIndexer, extract_snippets
from .loader import ExportSnapshot
from .models import (
    AdvancedSearchCriteria,
    Conversation,
    ConversationDetails,
    ConversationSummary,
    ExportStats,
    FieldMatch,
    FilterOptions,
    FuzzyHit,
    Project,
    ProjectFilterOptions,
    ProjectHit,
    ProjectSummary,
    SearchHit,
    SearchResponse,
)
from .text import display_text

logger = logging.getLogger(__name__)


def parse_date_filter(value: str | None) -> datetime | None:
    """Parse ISO 8601 date string to a UTC-aware datetime.

    Accepts: "2025-01-15" or "2025-01-15T10:30:00" or "2025-01-15T10:30:00Z"
    Naive values are taken as UTC to match stored timestamps.

    Raises:
        ValueError: If the date format is invalid
    """
    if value is None:
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise ValueError(
            f"Invalid date format: {value}. Use ISO 8601 (e.g., 2025-01-15 or 2025-01-15T10:30:00Z)"
        ) from e
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt


def _truncate_content(content: str, max_length: int = 200) -> str:
    """Truncate content to a maximum length."""
    if len(content) <= max_length:
        return content
    return content[: max_length - 3] + "..."


def _summarize_conversation(conv: Conversation) -> ConversationSummary:
    summary = conv.summary
    if not summary and conv.chat_messages:
        summary = _truncate_content(display_text(conv.chat_messages[0]))
    return ConversationSummary(
        uuid=conv.uuid,
        name=conv.name or "Untitled",
        created_at=conv.created_at,
        message_count=conv.message_count,
        summary=summary,
    )


def _summarize_project(project: Project) -> ProjectSummary:
    return ProjectSummary(
        uuid=project.uuid,
        name=project.name,
        description=_truncate_content(project.description),
        is_private=project.is_private,
        doc_count=len(project.docs),
    )


def _excerpt_match(match: FieldMatch) -> FieldMatch:
    """Cut a long matched value down to a window around its first span."""
    if not match.indices or len(match.value) <= SNIPPET_BEFORE + SNIPPET_AFTER:
        return match
    span_start, span_end = match.indices[0]
    start = max(0, span_start - SNIPPET_BEFORE)
    end = min(len(match.value), max(span_end, span_start + SNIPPET_AFTER))
    return FieldMatch(
        key=match.key,
        value=match.value[start:end],
        indices=[(s - start, e - start) for s, e in match.indices if s >= start and e <= end],
    )


def _generate_hint(
    total_matches: int,
    offset: int,
    results_count: int,
    max_results: int,
    has_more: bool,
) -> str:
    """Generate a helpful hint about pagination and search options."""
    if total_matches == 0:
        return "No matches found. Try different search terms or the fuzzy search."

    # Calculate the range being shown (1-indexed for human readability)
    start = offset + 1
    end = offset + results_count

    if has_more:
        next_offset = offset + max_results
        return (
            f"Showing {start}-{end} of {total_matches} matches. "
            f"To retrieve more, use offset: {next_offset}."
        )
    if total_matches == 1:
        return "Showing the only match."
    if start == 1:
        return f"Showing all {total_matches} matches."
    return f"Showing {start}-{end} of {total_matches} matches (final page)."


class _State(NamedTuple):
    snapshot: ExportSnapshot
    indexer: SearchIndexer
    fuzzy: FuzzySearchEngine


class ExplorerService:
    """
    Search and browse a loaded export.

    ``load`` builds a new inverted index and fuzzy engine, then replaces the
    active state in one assignment. Every query reads the state once, so
    queries running during a reload finish against the previous export.
    """

    def __init__(self, snapshot: ExportSnapshot | None = None, fuzzy_threshold: float | None = None):
        self._fuzzy_threshold = fuzzy_threshold
        self._state: _State | None = None
        if snapshot is not None:
            self.load(snapshot)

    @property
    def is_loaded(self) -> bool:
        """Whether an export has been loaded."""
        return self._state is not None

    def load(self, snapshot: ExportSnapshot) -> None:
        """Index an export and make it the active one."""
        conversations = snapshot.conversations_with_messages()
        indexer = SearchIndexer()
        fuzzy = FuzzySearchEngine(self._fuzzy_threshold)

        # The engines share read-only input and do not interact.
        with ThreadPoolExecutor(max_workers=2) as pool:
            index_future = pool.submit(indexer.build, conversations)
            fuzzy_future = pool.submit(fuzzy.build_indices, conversations, snapshot.projects)
            index_future.result()
            fuzzy_future.result()

        self._state = _State(snapshot, indexer, fuzzy)
        logger.info(f"Indexed {len(conversations)} conversations with messages")

    def _require_state(self) -> _State:
        state = self._state
        if state is None:
            raise IndexNotBuiltError("No export loaded. Call load() first.")
        return state

    @property
    def snapshot(self) -> ExportSnapshot:
        """The active export."""
        return self._require_state().snapshot

    def search(
        self,
        query: str,
        max_results: int = DEFAULT_MAX_RESULTS,
        offset: int = DEFAULT_OFFSET,
        filters: FilterOptions | None = None,
    ) -> SearchResponse:
        """
        Full-text search with optional structured filters and pagination.

        Args:
            query: Search terms
            max_results: Maximum number of results to return
            offset: Number of results to skip (for pagination)
            filters: Structured filters applied to ranked results

        Returns:
            SearchResponse with results, total matches and pagination info
        """
        state = self._require_state()
        ranked = state.indexer.rank(query)

        if filters is not None:
            allowed = {
                conv.uuid for conv in filter_conversations((conv for conv, _ in ranked), filters)
            }
            ranked = [(conv, score) for conv, score in ranked if conv.uuid in allowed]

        total = len(ranked)
        page = ranked[offset : offset + max_results]
        has_more = offset + len(page) < total

        # Snippets only for the returned page
        return SearchResponse(
            results=[
                SearchHit(
                    conversation=_summarize_conversation(conv),
                    score=round(score, 4),
                    matches=extract_snippets(conv, query),
                )
                for conv, score in page
            ],
            query=query,
            total_matches=total,
            offset=offset,
            has_more=has_more,
            hint=_generate_hint(
                total_matches=total,
                offset=offset,
                results_count=len(page),
                max_results=max_results,
                has_more=has_more,
            ),
        )

    def fuzzy_search(self, query: str, limit: int = DEFAULT_FUZZY_LIMIT) -> list[FuzzyHit]:
        """Typo-tolerant conversation search."""
        state = self._require_state()
        return [
            FuzzyHit(
                conversation=_summarize_conversation(hit.item),
                score=round(hit.score, 4),
                matches=[_excerpt_match(m) for m in hit.matches],
            )
            for hit in state.fuzzy.search_conversations(query, limit)
        ]

    def search_projects(self, query: str, limit: int = DEFAULT_FUZZY_LIMIT) -> list[ProjectHit]:
        """Typo-tolerant project search."""
        state = self._require_state()
        return [
            ProjectHit(
                project=_summarize_project(hit.item),
                score=round(hit.score, 4),
                matches=[_excerpt_match(m) for m in hit.matches],
            )
            for hit in state.fuzzy.search_projects(query, limit)
        ]

    def advanced_search(
        self,
        query: str | None = None,
        topics: list[str] | None = None,
        has_code: bool | None = None,
        min_messages: int | None = None,
        max_messages: int | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
        limit: int = DEFAULT_MAX_RESULTS,
    ) -> list[ConversationSummary]:
        """Conversations matching every given criterion, in export order."""
        state = self._require_state()
        criteria = AdvancedSearchCriteria(
            query=query,
            topics=topics,
            has_code=has_code,
            min_messages=min_messages,
            max_messages=max_messages,
            date_from=date_from,
            date_to=date_to,
            conversations=state.snapshot.conversations_with_messages(),
        )
        results = state.fuzzy.advanced_search(criteria)
        return [_summarize_conversation(conv) for conv in results[:limit]]

    def suggest(self, partial_query: str) -> list[str]:
        """Completions for a partial query from conversation names and summaries."""
        state = self._require_state()
        return state.fuzzy.get_suggestions(partial_query, state.snapshot.conversations)

    def conversation_details(self, uuid: str) -> ConversationDetails | None:
        """A conversation with its extracted context, or None if unknown."""
        conv = self._require_state().snapshot.get_conversation(uuid)
        if conv is None:
            return None
        context = extract_context(conv)
        return ConversationDetails(
            conversation=_summarize_conversation(conv),
            updated_at=conv.updated_at,
            topics=context.topics,
            code_snippets=context.code_snippets,
            key_decisions=context.key_decisions,
            action_items=context.action_items,
            overview=generate_summary(conv, context),
        )

    def list_conversations(
        self,
        sort: SortField = "date",
        order: SortOrder = "desc",
        limit: int = DEFAULT_LIST_LIMIT,
        filters: FilterOptions | None = None,
    ) -> list[ConversationSummary]:
        """Sorted, optionally filtered conversations."""
        conversations = list(self._require_state().snapshot.conversations)
        if filters is not None:
            conversations = filter_conversations(conversations, filters)
        ranked = sort_conversations(conversations, sort, order)
        return [_summarize_conversation(conv) for conv in ranked[:limit]]

    def list_projects(self, filters: ProjectFilterOptions | None = None) -> list[ProjectSummary]:
        """Projects, optionally filtered."""
        projects = list(self._require_state().snapshot.projects)
        if filters is not None:
            projects = filter_projects(projects, filters)
        return [_summarize_project(project) for project in projects]

    def timeline(self, granularity: Literal["day", "month"] = "month") -> dict[str, int]:
        """Conversation counts per creation day or month, oldest first."""
        conversations = self._require_state().snapshot.conversations
        if granularity == "day":
            groups = group_by_date(conversations)
        elif granularity == "month":
            groups = group_by_month(conversations)
        else:
            raise ValueError(f"Invalid granularity: {granularity}. Use 'day' or 'month'")
        return {key: len(groups[key]) for key in sorted(groups)}

    def stats(self) -> ExportStats:
        """Statistics about the active export."""
        return self._require_state().snapshot.stats()
