"""Approximate matching over conversations and projects."""

import logging
import re
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Generic, NamedTuple

from rapidfuzz import fuzz

from .config import (
    DEFAULT_FUZZY_LIMIT,
    FUZZY_CONVERSATION_WEIGHTS,
    FUZZY_MIN_MATCH_LENGTH,
    FUZZY_PROJECT_WEIGHTS,
    MAX_MATCHES_PER_FIELD,
    MAX_SUGGESTIONS,
    SUGGESTION_MIN_WORD_LENGTH,
    get_fuzzy_threshold,
)
from .errors import IndexNotBuiltError, InvalidInputError
from .filters import filter_conversations
from .models import (
    AdvancedSearchCriteria,
    Conversation,
    FieldMatch,
    FuzzyResult,
    ItemT,
    Project,
)
from .text import contains_code, message_text, tool_input_text

logger = logging.getLogger(__name__)

_WORD_SPLIT_RE = re.compile(r"\W+")


def _fold(value: str) -> str:
    """Lower-case value without changing its length, so spans map back onto it."""
    lowered = value.lower()
    if len(lowered) == len(value):
        return lowered
    return "".join(c if len(c.lower()) != 1 else c.lower() for c in value)


@dataclass(frozen=True)
class _FieldValue:
    key: str
    value: str
    lowered: str


def _conversation_fields(conv: Conversation) -> tuple[_FieldValue, ...]:
    pairs = [("name", conv.name), ("summary", conv.summary)]
    for msg in conv.chat_messages:
        pairs.append(("chat_messages.text", message_text(msg)))
        pairs.append(("chat_messages.content.input", tool_input_text(msg)))
    return tuple(_FieldValue(key, value, _fold(value)) for key, value in pairs if value)


def _project_fields(project: Project) -> tuple[_FieldValue, ...]:
    pairs = [("name", project.name), ("description", project.description)]
    for doc in project.docs:
        pairs.append(("docs.content", doc.content))
        pairs.append(("docs.filename", doc.filename))
    return tuple(_FieldValue(key, value, _fold(value)) for key, value in pairs if value)


class _Collection(Generic[ItemT]):
    """Pre-extracted field values of a fixed set of entities."""

    def __init__(self, items: Sequence[ItemT], fields, weights: dict[str, float]):
        self.items: tuple[ItemT, ...] = tuple(items)
        self.fields: tuple[tuple[_FieldValue, ...], ...] = tuple(fields(item) for item in items)
        self.weights = weights
        self.max_weight = max(weights.values())


class _Collections(NamedTuple):
    conversations: _Collection[Conversation]
    projects: _Collection[Project]


def _match_value(query: str, value: str, cutoff: float) -> tuple[float, tuple[int, int]] | None:
    """Similarity in [0, 1] of the query to its best alignment inside value."""
    cutoff_pct = cutoff * 100
    if len(value) >= len(query):
        alignment = fuzz.partial_ratio_alignment(query, value, score_cutoff=cutoff_pct)
        if alignment is None or alignment.score < cutoff_pct:
            return None
        score = alignment.score
        span = (alignment.dest_start, alignment.dest_end)
    else:
        score = fuzz.ratio(query, value, score_cutoff=cutoff_pct)
        if score < cutoff_pct or score == 0:
            return None
        span = (0, len(value))

    if span[1] - span[0] < FUZZY_MIN_MATCH_LENGTH:
        return None
    return score / 100, span


def _list_items(values: Iterable, kind: type, label: str) -> list:
    try:
        items = list(values)
    except TypeError as e:
        raise InvalidInputError(f"{label} must be iterable") from e
    for item in items:
        if not isinstance(item, kind):
            raise InvalidInputError(f"Expected {kind.__name__}, got {type(item).__name__}")
    return items


class FuzzySearchEngine:
    """Typo-tolerant search with weighted fields.

    A field value matches when its similarity to the query is at least
    ``1 - threshold``. An entity's score is its best normalized field
    relevance: 1.0 is a perfect match in any field, 0.0 is the threshold
    boundary. Hits are ordered by that relevance scaled by field weight.
    """

    def __init__(self, threshold: float | None = None):
        self.threshold = get_fuzzy_threshold() if threshold is None else threshold
        if not 0.0 < self.threshold <= 1.0:
            raise ValueError(f"threshold must be in (0, 1], got {self.threshold}")
        self._collections: _Collections | None = None

    @property
    def is_built(self) -> bool:
        """Whether build_indices() has completed at least once."""
        return self._collections is not None

    def build_indices(
        self, conversations: Iterable[Conversation], projects: Iterable[Project]
    ) -> None:
        """Build both fuzzy indices, replacing any previous ones."""
        collections = _Collections(
            conversations=_Collection(
                _list_items(conversations, Conversation, "conversations"),
                _conversation_fields,
                FUZZY_CONVERSATION_WEIGHTS,
            ),
            projects=_Collection(
                _list_items(projects, Project, "projects"),
                _project_fields,
                FUZZY_PROJECT_WEIGHTS,
            ),
        )
        self._collections = collections
        logger.info(
            f"Built fuzzy indices: {len(collections.conversations.items)} conversations, "
            f"{len(collections.projects.items)} projects"
        )

    def _require(self) -> _Collections:
        collections = self._collections
        if collections is None:
            raise IndexNotBuiltError("Fuzzy indices not built. Call build_indices() first.")
        return collections

    def _search(
        self, collection: _Collection[ItemT], query: str, limit: int | None
    ) -> list[FuzzyResult[ItemT]]:
        needle = query.strip().lower()
        if len(needle) < FUZZY_MIN_MATCH_LENGTH or (limit is not None and limit <= 0):
            return []

        cutoff = 1.0 - self.threshold
        ranked: list[tuple[float, FuzzyResult[ItemT]]] = []
        for item, fields in zip(collection.items, collection.fields):
            best = 0.0
            weighted = 0.0
            matches: list[FieldMatch] = []
            per_key: Counter[str] = Counter()
            for field in fields:
                matched = _match_value(needle, field.lowered, cutoff)
                if matched is None:
                    continue
                similarity, span = matched
                relevance = min((similarity - cutoff) / self.threshold, 1.0)
                best = max(best, relevance)
                weighted = max(
                    weighted, relevance * collection.weights[field.key] / collection.max_weight
                )
                if per_key[field.key] < MAX_MATCHES_PER_FIELD:
                    per_key[field.key] += 1
                    matches.append(FieldMatch(key=field.key, value=field.value, indices=[span]))
            if matches:
                ranked.append((weighted, FuzzyResult(item=item, score=best, matches=matches)))

        # Field weights order the hits; the reported score is the best field relevance.
        ranked.sort(key=lambda entry: entry[0], reverse=True)
        hits = [hit for _, hit in ranked]
        return hits if limit is None else hits[:limit]

    def search_conversations(
        self, query: str, limit: int = DEFAULT_FUZZY_LIMIT
    ) -> list[FuzzyResult[Conversation]]:
        """Fuzzy search over conversation names, summaries, messages and tool inputs."""
        return self._search(self._require().conversations, query, limit)

    def search_projects(
        self, query: str, limit: int = DEFAULT_FUZZY_LIMIT
    ) -> list[FuzzyResult[Project]]:
        """Fuzzy search over project names, descriptions and documents."""
        return self._search(self._require().projects, query, limit)

    def advanced_search(self, criteria: AdvancedSearchCriteria) -> list[Conversation]:
        """
        Filter criteria.conversations by every given criterion.

        The text query only decides inclusion; output keeps input order.
        Topics match against name and summary only, not message bodies.

        Raises:
            IndexNotBuiltError: If a text query is given before build_indices()
        """
        results = list(criteria.conversations)

        if criteria.query and criteria.query.strip():
            collections = self._require()
            matched = {
                hit.item.uuid
                for hit in self._search(collections.conversations, criteria.query, None)
            }
            results = [conv for conv in results if conv.uuid in matched]

        if criteria.topics:
            topics = [topic.lower() for topic in criteria.topics]
            results = [
                conv
                for conv in results
                if any(topic in f"{conv.name} {conv.summary}".lower() for topic in topics)
            ]

        if criteria.has_code is not None:
            results = [
                conv
                for conv in results
                if any(contains_code(msg) for msg in conv.chat_messages) == criteria.has_code
            ]

        return filter_conversations(results, criteria)

    def get_suggestions(
        self, partial_query: str, conversations: Iterable[Conversation]
    ) -> list[str]:
        """Words from conversation names and summaries starting with partial_query."""
        prefix = partial_query.lower()
        terms: dict[str, None] = {}
        for conv in conversations:
            for word in _WORD_SPLIT_RE.split(f"{conv.name} {conv.summary}".lower()):
                if len(word) >= SUGGESTION_MIN_WORD_LENGTH and word.startswith(prefix):
                    terms.setdefault(word)
                    if len(terms) >= MAX_SUGGESTIONS:
                        return list(terms)
        return list(terms)
