"""Tests for text extraction and tokenization."""

from claude_explorer.models import Message
from claude_explorer.text import (
    contains_code,
    conversation_text,
    display_text,
    message_text,
    searchable_text,
    tokenize,
    tool_input_text,
)


def _msg(text="", content=()):
    return Message.model_validate({"uuid": "m1", "text": text, "content": list(content)})


class TestTokenize:
    """Tests for tokenization."""

    def test_splits_on_punctuation(self):
        """Test tokens split on non-alphanumeric characters."""
        assert tokenize("Refactor Auth-Flow, v2!") == ["refactor", "auth", "flow", "v2"]

    def test_underscore_is_boundary(self):
        """Test underscores separate tokens."""
        assert tokenize("validate_token") == ["validate", "token"]

    def test_unicode_letters(self):
        """Test non-ASCII letters stay inside tokens."""
        assert tokenize("Café déjà") == ["café", "déjà"]

    def test_empty(self):
        """Test empty and punctuation-only text yields no tokens."""
        assert tokenize("") == []
        assert tokenize(" -- ") == []


class TestMessageText:
    """Tests for message text extraction."""

    def test_text_then_blocks(self):
        """Test primary text comes first, then blocks in order."""
        msg = _msg("Hello", [{"type": "text", "text": "first"}, {"type": "text", "text": "second"}])
        assert message_text(msg) == "Hello first second"

    def test_duplicate_block_kept(self):
        """Test a block repeating the primary text is not deduplicated."""
        msg = _msg("Hello", [{"type": "text", "text": "Hello"}])
        assert message_text(msg) == "Hello Hello"

    def test_tool_input_excluded(self):
        """Test tool inputs are not part of message text."""
        msg = _msg("Run it", [{"type": "tool_use", "name": "bash", "input": {"cmd": "ls"}}])
        assert message_text(msg) == "Run it"

    def test_empty_message(self):
        """Test a message without text yields an empty string."""
        assert message_text(_msg()) == ""


class TestSearchableText:
    """Tests for searchable text extraction."""

    def test_includes_tool_input(self):
        """Test tool inputs are serialized in block order."""
        msg = _msg(
            "Run it",
            [
                {"type": "tool_use", "name": "bash", "input": {"cmd": "ls"}},
                {"type": "text", "text": "done"},
            ],
        )
        assert searchable_text(msg) == 'Run it {"cmd": "ls"} done'

    def test_tool_input_text_only(self):
        """Test tool_input_text contains only serialized inputs."""
        msg = _msg("Run it", [{"type": "tool_use", "name": "bash", "input": {"cmd": "ls"}}])
        assert tool_input_text(msg) == '{"cmd": "ls"}'


class TestDisplayText:
    """Tests for display text."""

    def test_skips_identical_block(self):
        """Test a block identical to the primary text is skipped."""
        msg = _msg("Hello", [{"type": "text", "text": "Hello"}, {"type": "text", "text": "more"}])
        assert display_text(msg) == "Hello more"


class TestContainsCode:
    """Tests for code detection."""

    def test_code_fence(self):
        """Test a fenced block counts as code."""
        assert contains_code(_msg("```\nx = 1\n```"))

    def test_tool_use(self):
        """Test a tool invocation counts as code."""
        assert contains_code(_msg("", [{"type": "tool_use", "name": "bash", "input": {}}]))

    def test_plain_text(self):
        """Test plain prose is not code."""
        assert not contains_code(_msg("just words"))


class TestConversationText:
    """Tests for conversation bulk text."""

    def test_joins_messages(self, make_conversation):
        """Test messages are joined in order."""
        conv = make_conversation("c1", texts=["one", "two"])
        assert conversation_text(conv) == "one two"

    def test_no_messages(self, make_conversation):
        """Test a conversation without messages yields an empty string."""
        assert conversation_text(make_conversation("c1")) == ""
