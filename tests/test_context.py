"""Tests for context extraction."""

from claude_explorer.context import extract_context, generate_summary
from claude_explorer.models import Conversation


def _tool_conversation(payload):
    return Conversation.model_validate(
        {
            "uuid": "c1",
            "chat_messages": [
                {
                    "uuid": "m1",
                    "content": [{"type": "tool_use", "name": "editor", "input": payload}],
                }
            ],
        }
    )


class TestCodeSnippets:
    """Tests for code snippet extraction."""

    def test_fenced_block_with_language(self, make_conversation):
        """Test a fenced block yields its language and stripped body."""
        conv = make_conversation("c1", texts=["Try this:\n```python\nprint(1)\n```"])
        (snippet,) = extract_context(conv).code_snippets
        assert snippet.language == "python"
        assert snippet.code == "print(1)"

    def test_fenced_block_without_language(self, make_conversation):
        """Test a block without a language tag is plain text."""
        conv = make_conversation("c1", texts=["```\nls -la\n```"])
        (snippet,) = extract_context(conv).code_snippets
        assert snippet.language == "text"
        assert snippet.code == "ls -la"

    def test_blocks_and_tool_input(self, conversations):
        """Test fenced code and long tool inputs are both collected."""
        snippets = extract_context(conversations[0]).code_snippets
        assert [s.language for s in snippets] == ["python", "json"]
        assert snippets[0].code == "def login():\n    pass"
        assert '"path": "auth/handler.py"' in snippets[1].code

    def test_short_tool_input_skipped(self):
        """Test small tool inputs are not treated as code."""
        assert extract_context(_tool_conversation({"a": 1})).code_snippets == []

    def test_long_tool_input_indented(self):
        """Test long tool inputs are pretty-printed JSON."""
        payload = {"command": "write", "path": "src/app/main.py", "content": "x" * 40}
        (snippet,) = extract_context(_tool_conversation(payload)).code_snippets
        assert snippet.language == "json"
        assert snippet.code.startswith('{\n  "command": "write"')


class TestPhrases:
    """Tests for decision and action item extraction."""

    def test_decision(self, make_conversation):
        """Test decision phrases are captured up to the sentence end."""
        conv = make_conversation("c1", texts=["We decided to keep the old tables for a week."])
        context = extract_context(conv)
        assert context.key_decisions == ["to keep the old tables for a week"]

    def test_action_item(self, make_conversation):
        """Test action phrases are captured."""
        conv = make_conversation("c1", texts=["We need to update the deployment scripts tomorrow."])
        assert extract_context(conv).action_items == ["update the deployment scripts tomorrow"]

    def test_todo(self, make_conversation):
        """Test TODO markers are action items."""
        conv = make_conversation("c1", texts=["TODO: write the migration guide."])
        assert extract_context(conv).action_items == ["write the migration guide"]

    def test_short_phrase_ignored(self, make_conversation):
        """Test phrases under ten characters are not captured."""
        conv = make_conversation("c1", texts=["We decided to wait."])
        assert extract_context(conv).key_decisions == []


class TestTopics:
    """Tests for entity and topic extraction."""

    def test_repeated_entities_become_topics(self, make_conversation):
        """Test entities seen at least twice become topics."""
        conv = make_conversation(
            "c1", texts=["Python is great. Python again", "We use Python and React"]
        )
        context = extract_context(conv)
        assert "python" in context.topics
        assert "Python" in context.topics
        assert "React" not in context.topics
        assert context.entities["React"] == 1

    def test_common_words_ignored(self, make_conversation):
        """Test common capitalized words are not entities."""
        conv = make_conversation("c1", texts=["Thanks. Thanks. Please help."])
        assert extract_context(conv).entities == {}

    def test_topics_capped(self, make_conversation):
        """Test at most ten topics are returned."""
        names = " and ".join(f"Name{chr(ord('a') + i)}" for i in range(15))
        conv = make_conversation("c1", texts=[names, names])
        assert len(extract_context(conv).topics) == 10

    def test_empty_conversation(self, make_conversation):
        """Test a conversation without messages yields an empty context."""
        context = extract_context(make_conversation("c1"))
        assert context.topics == []
        assert context.code_snippets == []
        assert context.key_decisions == []
        assert context.action_items == []
        assert context.entities == {}


class TestGenerateSummary:
    """Tests for overview text."""

    def test_summary_sections(self, conversations):
        """Test the overview names the conversation and lists decisions."""
        overview = generate_summary(conversations[1])
        assert overview.startswith("**Database Migration Plan**")
        assert "A conversation with 2 messages from 2024-02-03." in overview
        assert "**Key Decisions**:" in overview

    def test_code_section(self, conversations):
        """Test code snippets are summarized by language."""
        overview = generate_summary(conversations[0])
        assert "**Code**: 2 snippets (python, json)" in overview

    def test_untitled_and_undated(self, conversations):
        """Test missing name and date have fallbacks."""
        overview = generate_summary(conversations[4])
        assert overview.startswith("**Untitled Conversation**")
        assert "1 message from an unknown date." in overview
