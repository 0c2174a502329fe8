"""Structured filtering, sorting and grouping of conversations and projects.

All functions are pure: inputs are never mutated and a new list (or dict) is
returned.
"""

import locale
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Literal

from .models import Conversation, FilterOptions, Project, ProjectFilterOptions

SortField = Literal["date", "messages", "name"]
SortOrder = Literal["asc", "desc"]

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def filter_conversations(
    conversations: Iterable[Conversation], options: FilterOptions
) -> list[Conversation]:
    """
    Keep conversations satisfying every set option.

    Date bounds are inclusive and apply to ``created_at``; conversations
    without a usable creation date are excluded once a date bound is set.
    """
    filtered = list(conversations)

    if options.has_messages is not None:
        filtered = [c for c in filtered if (c.message_count > 0) == options.has_messages]

    if options.date_from is not None:
        filtered = [
            c for c in filtered if c.created_at is not None and c.created_at >= options.date_from
        ]

    if options.date_to is not None:
        filtered = [
            c for c in filtered if c.created_at is not None and c.created_at <= options.date_to
        ]

    if options.min_messages is not None:
        filtered = [c for c in filtered if c.message_count >= options.min_messages]

    if options.max_messages is not None:
        filtered = [c for c in filtered if c.message_count <= options.max_messages]

    return filtered


def filter_projects(projects: Iterable[Project], options: ProjectFilterOptions) -> list[Project]:
    """Keep projects satisfying every set option."""
    filtered = list(projects)

    if options.has_docs_only:
        filtered = [p for p in filtered if p.docs]

    if options.name_contains:
        term = options.name_contains.lower()
        filtered = [p for p in filtered if term in p.name.lower()]

    if options.is_private is not None:
        filtered = [p for p in filtered if p.is_private == options.is_private]

    return filtered


def _date_key(conv: Conversation):
    return conv.created_at or _OLDEST


def _messages_key(conv: Conversation):
    return conv.message_count


def _name_key(conv: Conversation):
    # strxfrm rejects embedded NULs
    return locale.strxfrm(conv.name.casefold().replace("\x00", ""))


_SORT_KEYS = {
    "date": _date_key,
    "messages": _messages_key,
    "name": _name_key,
}


def sort_conversations(
    conversations: Iterable[Conversation],
    by: SortField,
    order: SortOrder = "desc",
) -> list[Conversation]:
    """Sort conversations by creation date, message count or name.

    The sort is stable in both directions: equal keys keep their input order.
    Conversations without a creation date sort as the oldest.

    Raises:
        ValueError: If ``by`` or ``order`` is not recognized
    """
    if by not in _SORT_KEYS:
        raise ValueError(f"Invalid sort field: {by}. Use one of: date, messages, name")
    if order not in ("asc", "desc"):
        raise ValueError(f"Invalid sort order: {order}. Use 'asc' or 'desc'")
    return sorted(conversations, key=_SORT_KEYS[by], reverse=order == "desc")


def group_by_date(conversations: Iterable[Conversation]) -> dict[str, list[Conversation]]:
    """Group conversations by UTC creation day (``YYYY-MM-DD``)."""
    groups: dict[str, list[Conversation]] = {}
    for conv in conversations:
        if conv.created_at is None:
            continue
        day = conv.created_at.astimezone(timezone.utc).date().isoformat()
        groups.setdefault(day, []).append(conv)
    return groups


def group_by_month(conversations: Iterable[Conversation]) -> dict[str, list[Conversation]]:
    """Group conversations by UTC creation month (``YYYY-MM``)."""
    groups: dict[str, list[Conversation]] = {}
    for conv in conversations:
        if conv.created_at is None:
            continue
        month = conv.created_at.astimezone(timezone.utc).strftime("%Y-%m")
        groups.setdefault(month, []).append(conv)
    return groups
