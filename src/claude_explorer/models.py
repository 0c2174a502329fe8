"""Pydantic data models for Claude Explorer."""

from datetime import datetime, timezone
from typing import Annotated, Any, Generic, Literal, TypeVar

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Discriminator,
    Field,
    JsonValue,
    Tag,
    field_validator,
)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a timestamp from the formats found in exports.

    Accepts ISO 8601 strings (with ``Z`` or an offset), Unix timestamps in
    milliseconds, and datetimes. Naive values are taken as UTC. Anything
    unparseable yields None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, int | float):
        try:
            dt = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt


def _none_to_empty(value: Any) -> Any:
    return "" if value is None else value


def _none_to_tuple(value: Any) -> Any:
    return () if value is None else value


def _tool_input(value: Any) -> Any:
    if value is None:
        return {}
    return value if isinstance(value, dict) else {"value": value}


# Export fields are frequently null; treat null as empty.
Text = Annotated[str, BeforeValidator(_none_to_empty)]
Timestamp = Annotated[datetime | None, BeforeValidator(parse_timestamp)]


class _Entity(BaseModel):
    """Immutable export entity."""

    model_config = ConfigDict(frozen=True)


class TextBlock(_Entity):
    """Plain text content block."""

    type: Literal["text"] = "text"
    text: Text = ""


class ToolUseBlock(_Entity):
    """Tool invocation content block with a structured input payload."""

    type: Literal["tool_use"] = "tool_use"
    name: Text = ""
    # Non-object payloads are kept under a "value" key
    input: Annotated[dict[str, JsonValue], BeforeValidator(_tool_input)] = Field(
        default_factory=dict
    )


class OtherBlock(_Entity):
    """Any other content block (tool results, thinking, untagged, ...)."""

    type: Text = ""
    text: Text = ""


def _block_kind(value: Any) -> str:
    kind = value.get("type") if isinstance(value, dict) else getattr(value, "type", None)
    return kind if kind in ("text", "tool_use") else "other"


ContentBlock = Annotated[
    Annotated[TextBlock, Tag("text")]
    | Annotated[ToolUseBlock, Tag("tool_use")]
    | Annotated[OtherBlock, Tag("other")],
    Discriminator(_block_kind),
]


class Message(_Entity):
    """A single chat message."""

    uuid: str
    sender: Text = ""
    text: Text = ""
    content: Annotated[tuple[ContentBlock, ...], BeforeValidator(_none_to_tuple)] = ()
    created_at: Timestamp = None
    updated_at: Timestamp = None


class Conversation(_Entity):
    """A conversation with its ordered messages."""

    uuid: str
    name: Text = ""
    summary: Text = ""
    created_at: Timestamp = None
    updated_at: Timestamp = None
    chat_messages: Annotated[tuple[Message, ...], BeforeValidator(_none_to_tuple)] = ()

    @property
    def message_count(self) -> int:
        """Number of messages in the conversation."""
        return len(self.chat_messages)


class ProjectDoc(_Entity):
    """A document attached to a project."""

    uuid: Text = ""
    filename: Text = ""
    content: Text = ""


class Project(_Entity):
    """A project and its knowledge documents."""

    uuid: str
    name: str = Field(min_length=1)
    description: Text = ""
    is_private: bool = False
    is_starter_project: bool = False
    prompt_template: Text = ""
    created_at: Timestamp = None
    updated_at: Timestamp = None
    docs: Annotated[tuple[ProjectDoc, ...], BeforeValidator(_none_to_tuple)] = ()


class User(_Entity):
    """An account holder from users.json."""

    uuid: str
    full_name: Text = ""
    email_address: Text = ""


class SnippetMatch(BaseModel):
    """A text excerpt around a query hit inside one message."""

    message_index: int
    snippet: str


class SearchResult(BaseModel):
    """A ranked inverted-index hit."""

    conversation: Conversation
    score: float
    matches: list[SnippetMatch] = Field(default_factory=list)


class FieldMatch(BaseModel):
    """A field value that contributed to a fuzzy hit.

    ``indices`` holds half-open ``(start, end)`` character spans into ``value``.
    """

    key: str
    value: str
    indices: list[tuple[int, int]] = Field(default_factory=list)


ItemT = TypeVar("ItemT", Conversation, Project)


class FuzzyResult(BaseModel, Generic[ItemT]):
    """A fuzzy hit with normalized relevance (1.0 is a perfect match)."""

    item: ItemT
    score: float
    matches: list[FieldMatch] = Field(default_factory=list)


class _DateBounds(BaseModel):
    date_from: datetime | None = None
    date_to: datetime | None = None

    @field_validator("date_from", "date_to", mode="before")
    @classmethod
    def _parse_bound(cls, value: Any) -> Any:
        if value is None:
            return None
        parsed = parse_timestamp(value)
        if parsed is None:
            raise ValueError(f"Invalid date bound: {value!r}")
        return parsed


class FilterOptions(_DateBounds):
    """Structured conversation filters. Unset options impose no constraint."""

    has_messages: bool | None = None
    min_messages: int | None = Field(default=None, ge=0)
    max_messages: int | None = Field(default=None, ge=0)


class ProjectFilterOptions(BaseModel):
    """Structured project filters."""

    has_docs_only: bool = False
    name_contains: str | None = None
    is_private: bool | None = None


class AdvancedSearchCriteria(FilterOptions):
    """Fuzzy text relevance combined with structured predicates."""

    query: str | None = None
    topics: list[str] | None = None
    has_code: bool | None = None
    conversations: list[Conversation] = Field(default_factory=list)


class CodeSnippet(BaseModel):
    """A code fragment found in a conversation."""

    language: str
    code: str


class ExtractedContext(BaseModel):
    """Lightweight summary of what a conversation is about."""

    topics: list[str] = Field(default_factory=list)
    code_snippets: list[CodeSnippet] = Field(default_factory=list)
    key_decisions: list[str] = Field(default_factory=list)
    action_items: list[str] = Field(default_factory=list)
    entities: dict[str, int] = Field(default_factory=dict)


class MessageStats(BaseModel):
    """Message count distribution over conversations with messages."""

    total: int = 0
    min: int = 0
    max: int = 0
    avg: float = 0.0


class DateRange(BaseModel):
    """Earliest and latest conversation creation time."""

    earliest: datetime
    latest: datetime


class ExportStats(BaseModel):
    """Statistics about a loaded export."""

    total_conversations: int
    conversations_with_messages: int
    total_projects: int
    projects_with_docs: int
    messages: MessageStats
    date_range: DateRange | None = None


class ConversationSummary(BaseModel):
    """Compact view of a conversation for listings and results."""

    uuid: str
    name: str
    created_at: datetime | None = None
    message_count: int = 0
    summary: str = ""


class ProjectSummary(BaseModel):
    """Compact view of a project for listings and results."""

    uuid: str
    name: str
    description: str = ""
    is_private: bool = False
    doc_count: int = 0


class SearchHit(BaseModel):
    """An inverted-index result with snippets."""

    conversation: ConversationSummary
    score: float
    matches: list[SnippetMatch] = Field(default_factory=list)


class FuzzyHit(BaseModel):
    """A fuzzy conversation result with excerpted field matches."""

    conversation: ConversationSummary
    score: float
    matches: list[FieldMatch] = Field(default_factory=list)


class ProjectHit(BaseModel):
    """A fuzzy project result with excerpted field matches."""

    project: ProjectSummary
    score: float
    matches: list[FieldMatch] = Field(default_factory=list)


class SearchResponse(BaseModel):
    """Paginated full-text search response."""

    results: list[SearchHit]
    query: str
    total_matches: int
    offset: int = 0
    has_more: bool = False
    hint: str = ""


class ConversationDetails(BaseModel):
    """A conversation with its extracted context."""

    conversation: ConversationSummary
    updated_at: datetime | None = None
    topics: list[str] = Field(default_factory=list)
    code_snippets: list[CodeSnippet] = Field(default_factory=list)
    key_decisions: list[str] = Field(default_factory=list)
    action_items: list[str] = Field(default_factory=list)
    overview: str = ""
