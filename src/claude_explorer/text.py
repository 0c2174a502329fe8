"""Searchable text extraction and tokenization."""

import json
import re

from .models import Conversation, Message, ToolUseBlock

_TOKEN_RE = re.compile(r"[^\W_]+")


def tokenize(text: str) -> list[str]:
    """Split text on non-alphanumeric boundaries and lower-case the tokens."""
    return _TOKEN_RE.findall(text.lower())


def serialize_tool_input(block: ToolUseBlock, indent: int | None = None) -> str:
    """Serialize a tool invocation payload to JSON."""
    return json.dumps(block.input, ensure_ascii=False, indent=indent)


def _block_texts(message: Message) -> list[str]:
    return [block.text for block in message.content if getattr(block, "text", "")]


def message_text(message: Message) -> str:
    """Primary text followed by every text-bearing content block, space-joined."""
    parts = [message.text] if message.text else []
    parts.extend(_block_texts(message))
    return " ".join(parts)


def searchable_text(message: Message) -> str:
    """Message text including serialized tool inputs, in block order."""
    parts = [message.text] if message.text else []
    for block in message.content:
        if isinstance(block, ToolUseBlock):
            if block.input:
                parts.append(serialize_tool_input(block))
        elif block.text:
            parts.append(block.text)
    return " ".join(parts)


def tool_input_text(message: Message) -> str:
    """Serialized tool inputs of a message, space-joined."""
    return " ".join(
        serialize_tool_input(block)
        for block in message.content
        if isinstance(block, ToolUseBlock) and block.input
    )


def display_text(message: Message) -> str:
    """Message text for display.

    Unlike message_text, a block whose text is identical to the primary text
    is skipped.
    """
    parts = [message.text] if message.text else []
    parts.extend(text for text in _block_texts(message) if text != message.text)
    return " ".join(parts)


def contains_code(message: Message) -> bool:
    """Whether a message holds a fenced code block or a tool invocation."""
    if "```" in message_text(message):
        return True
    return any(isinstance(block, ToolUseBlock) for block in message.content)


def conversation_text(conversation: Conversation) -> str:
    """Bulk text of a conversation: every message's text in order."""
    return " ".join(message_text(msg) for msg in conversation.chat_messages)
