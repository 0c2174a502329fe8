"""Heuristic context extraction: code, decisions, action items and topics."""

import re
from collections import Counter

from .config import (
    MAX_TOPICS,
    MIN_ENTITY_LENGTH,
    MIN_TOPIC_FREQUENCY,
    TOOL_INPUT_SNIPPET_MIN_LENGTH,
)
from .models import CodeSnippet, Conversation, ExtractedContext, Message, ToolUseBlock
from .text import message_text, serialize_tool_input

DECISION = "decision"
ACTION_ITEM = "action_item"

# Each pattern captures the phrase in group 1.
PHRASE_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (
        re.compile(
            r"(?:decided|chosen|selected|opted for|going with|will use)\s+([^.!?]{10,80})",
            re.IGNORECASE,
        ),
        DECISION,
    ),
    (re.compile(r"(?:the decision is|we'll)\s+([^.!?]{10,80})", re.IGNORECASE), DECISION),
    (re.compile(r"(?:need to|should|must|will|let's)\s+([^.!?]{10,80})", re.IGNORECASE), ACTION_ITEM),
    (
        re.compile(r"(?:todo|action item|next step):\s*([^.!?]{10,80})", re.IGNORECASE),
        ACTION_ITEM,
    ),
)

CODE_BLOCK_RE = re.compile(r"```(\w+)?\n(.+?)```", re.DOTALL)
CAPITALIZED_RE = re.compile(r"\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*\b")
TECH_TERMS_RE = re.compile(
    r"\b(?:API|REST|GraphQL|SQL|JSON|XML|HTTP|HTTPS|TypeScript|JavaScript|Python|React"
    r"|Node\.js|database|server|client|authentication|authorization)\b",
    re.IGNORECASE,
)

COMMON_WORDS = frozenset(
    {
        "The", "This", "That", "These", "Those", "Here", "There", "When", "Where",
        "What", "Which", "Who", "How", "Why", "Can", "Could", "Would", "Should",
        "Will", "Let", "Please", "Thank", "Thanks",
    }
)


def _code_snippets(msg: Message, text: str) -> list[CodeSnippet]:
    snippets = [
        CodeSnippet(language=match.group(1) or "text", code=match.group(2).strip())
        for match in CODE_BLOCK_RE.finditer(text)
    ]
    for block in msg.content:
        if isinstance(block, ToolUseBlock) and block.input:
            serialized = serialize_tool_input(block, indent=2)
            if len(serialized) > TOOL_INPUT_SNIPPET_MIN_LENGTH:
                snippets.append(CodeSnippet(language="json", code=serialized))
    return snippets


def _count_entities(text: str, entities: Counter[str]) -> None:
    for word in CAPITALIZED_RE.findall(text):
        if len(word) >= MIN_ENTITY_LENGTH and word not in COMMON_WORDS:
            entities[word] += 1
    for term in TECH_TERMS_RE.findall(text):
        entities[term.lower()] += 1


def extract_context(conversation: Conversation) -> ExtractedContext:
    """
    Extract code snippets, key decisions, action items and topics.

    Topics are entities seen at least MIN_TOPIC_FREQUENCY times, most
    frequent first, capped at MAX_TOPICS.
    """
    context = ExtractedContext()
    entities: Counter[str] = Counter()

    for msg in conversation.chat_messages:
        text = message_text(msg)
        context.code_snippets.extend(_code_snippets(msg, text))
        for pattern, category in PHRASE_PATTERNS:
            phrases = [m.group(1).strip() for m in pattern.finditer(text) if m.group(1)]
            if category == DECISION:
                context.key_decisions.extend(phrases)
            else:
                context.action_items.extend(phrases)
        _count_entities(text, entities)

    # most_common keeps first-seen order among equal counts
    context.topics = [
        entity for entity, count in entities.most_common() if count >= MIN_TOPIC_FREQUENCY
    ][:MAX_TOPICS]
    context.entities = dict(entities)
    return context


def generate_summary(conversation: Conversation, context: ExtractedContext | None = None) -> str:
    """Short text overview of a conversation built from its extracted context."""
    if context is None:
        context = extract_context(conversation)
    count = conversation.message_count

    parts = [f"**{conversation.name or 'Untitled Conversation'}**\n"]
    created = (
        conversation.created_at.date().isoformat() if conversation.created_at else "an unknown date"
    )
    parts.append(f"A conversation with {count} message{'s' if count != 1 else ''} from {created}.")

    if context.topics:
        parts.append(f"\n**Topics**: {', '.join(context.topics[:5])}")

    if context.code_snippets:
        languages = list(dict.fromkeys(s.language for s in context.code_snippets))
        n = len(context.code_snippets)
        parts.append(f"\n**Code**: {n} snippet{'s' if n != 1 else ''} ({', '.join(languages)})")

    if context.key_decisions:
        parts.append("\n**Key Decisions**:")
        parts.extend(f"- {decision}" for decision in context.key_decisions[:3])

    if context.action_items:
        parts.append("\n**Action Items**:")
        parts.extend(f"- {item}" for item in context.action_items[:3])

    return "\n".join(parts)
