"""Field-weighted inverted index for conversation search."""

import logging
import math
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass

import numpy as np

from .config import (
    DEFAULT_SEARCH_LIMIT,
    ELLIPSIS,
    MAX_SNIPPETS,
    MESSAGES_WEIGHT,
    NAME_WEIGHT,
    SNIPPET_AFTER,
    SNIPPET_BEFORE,
    SNIPPET_MIN_WORD_LENGTH,
    SUMMARY_WEIGHT,
)
from .errors import IndexNotBuiltError, InvalidInputError
from .models import Conversation, SearchResult, SnippetMatch
from .text import conversation_text, searchable_text, tokenize

logger = logging.getLogger(__name__)

FIELD_WEIGHTS = {
    "name": NAME_WEIGHT,
    "summary": SUMMARY_WEIGHT,
    "messages": MESSAGES_WEIGHT,
}


@dataclass(frozen=True)
class Posting:
    """Occurrences of a term in one field of one conversation."""

    doc: int  # Position of the conversation in the snapshot
    field: str
    frequency: int


class IndexSnapshot:
    """Immutable term -> postings structure over a fixed set of conversations."""

    def __init__(self, conversations: Iterable[Conversation]):
        try:
            items = list(conversations)
        except TypeError as e:
            raise InvalidInputError("conversations must be an iterable of Conversation") from e

        seen: set[str] = set()
        for conv in items:
            if not isinstance(conv, Conversation):
                raise InvalidInputError(f"Expected Conversation, got {type(conv).__name__}")
            if conv.uuid in seen:
                raise InvalidInputError(f"Duplicate conversation id: {conv.uuid}")
            seen.add(conv.uuid)

        self.conversations: tuple[Conversation, ...] = tuple(items)
        self.postings: dict[str, tuple[Posting, ...]] = self._build_postings()

        # Per-term vectors for scoring: document positions and weighted term frequency
        self._term_docs: dict[str, np.ndarray] = {}
        self._term_weights: dict[str, np.ndarray] = {}
        self._idf: dict[str, float] = {}
        n_docs = len(self.conversations)
        for term, postings in self.postings.items():
            self._term_docs[term] = np.array([p.doc for p in postings], dtype=np.int64)
            self._term_weights[term] = np.array(
                [FIELD_WEIGHTS[p.field] * p.frequency for p in postings], dtype=np.float64
            )
            df = len({p.doc for p in postings})
            self._idf[term] = 1.0 + math.log(n_docs / df)

    def _build_postings(self) -> dict[str, tuple[Posting, ...]]:
        postings: dict[str, list[Posting]] = {}
        for doc, conv in enumerate(self.conversations):
            fields = {
                "name": conv.name,
                "summary": conv.summary,
                "messages": conversation_text(conv),
            }
            for field, text in fields.items():
                for term, freq in Counter(tokenize(text)).items():
                    postings.setdefault(term, []).append(Posting(doc, field, freq))
        return {term: tuple(entries) for term, entries in postings.items()}

    @property
    def term_count(self) -> int:
        """Number of distinct terms."""
        return len(self.postings)

    def score(self, terms: list[str]) -> np.ndarray:
        """Relevance of every conversation for the given query terms."""
        scores = np.zeros(len(self.conversations), dtype=np.float64)
        for term in dict.fromkeys(terms):
            docs = self._term_docs.get(term)
            if docs is None:
                continue
            np.add.at(scores, docs, self._term_weights[term] * self._idf[term])
        return scores

    def rank(self, terms: list[str], limit: int) -> list[tuple[int, float]]:
        """Positions and scores of matching conversations, best first.

        Conversations scoring zero are excluded. Ties keep snapshot order.
        """
        if limit <= 0 or not self.conversations:
            return []
        scores = self.score(terms)
        matched = np.flatnonzero(scores > 0)
        order = matched[np.argsort(-scores[matched], kind="stable")]
        return [(int(doc), float(scores[doc])) for doc in order[:limit]]


def extract_snippets(conversation: Conversation, query: str) -> list[SnippetMatch]:
    """
    Find excerpts around query words in a conversation's messages.

    Query words shorter than SNIPPET_MIN_WORD_LENGTH are ignored. Each excerpt
    is anchored at the first occurrence of the first query word present in
    the message and clipped to SNIPPET_BEFORE/SNIPPET_AFTER characters.

    Returns:
        At most MAX_SNIPPETS matches, in message order.
    """
    words = [w for w in query.lower().split() if len(w) >= SNIPPET_MIN_WORD_LENGTH]
    if not words:
        return []

    matches: list[SnippetMatch] = []
    for idx, msg in enumerate(conversation.chat_messages):
        text = searchable_text(msg)
        text_lower = text.lower()

        position = -1
        for word in words:
            position = text_lower.find(word)
            if position != -1:
                break
        if position == -1:
            continue

        start = max(0, position - SNIPPET_BEFORE)
        end = min(len(text), position + SNIPPET_AFTER)
        snippet = text[start:end]
        if start > 0:
            snippet = ELLIPSIS + snippet
        if end < len(text):
            snippet = snippet + ELLIPSIS

        matches.append(SnippetMatch(message_index=idx, snippet=snippet))
        if len(matches) >= MAX_SNIPPETS:
            break

    return matches


class SearchIndexer:
    """Full-text search over conversations.

    ``build`` constructs a complete IndexSnapshot and then swaps it in with a
    single assignment. ``search`` reads the reference once, so a query never
    sees a partially built index.
    """

    def __init__(self):
        self._snapshot: IndexSnapshot | None = None

    @property
    def is_built(self) -> bool:
        """Whether build() has completed at least once."""
        return self._snapshot is not None

    @property
    def document_count(self) -> int:
        """Number of indexed conversations."""
        snapshot = self._snapshot
        return len(snapshot.conversations) if snapshot else 0

    def build(self, conversations: Iterable[Conversation]) -> None:
        """Build the index, replacing any previous one.

        Raises:
            InvalidInputError: If conversations is not an iterable of
                Conversation or repeats an id.
        """
        snapshot = IndexSnapshot(conversations)
        self._snapshot = snapshot
        logger.info(
            f"Built search index: {len(snapshot.conversations)} conversations, "
            f"{snapshot.term_count} terms"
        )

    def rank(self, query: str, limit: int | None = None) -> list[tuple[Conversation, float]]:
        """Matching conversations and scores, best first, without snippets.

        Raises:
            IndexNotBuiltError: If build() has not been called
        """
        snapshot = self._snapshot
        if snapshot is None:
            raise IndexNotBuiltError("Index not built. Call build() first.")

        if limit is None:
            limit = len(snapshot.conversations)
        ranked = snapshot.rank(tokenize(query), limit)
        logger.debug(f"Query {query!r} matched {len(ranked)} conversations")
        return [(snapshot.conversations[doc], score) for doc, score in ranked]

    def search(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> list[SearchResult]:
        """Search conversations for the query.

        Args:
            query: Free text; tokenized like indexed fields
            limit: Maximum number of results

        Returns:
            Results ordered by descending score, each with up to
            MAX_SNIPPETS snippets

        Raises:
            IndexNotBuiltError: If build() has not been called
        """
        return [
            SearchResult(
                conversation=conversation,
                score=score,
                matches=extract_snippets(conversation, query),
            )
            for conversation, score in self.rank(query, limit)
        ]
