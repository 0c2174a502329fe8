"""Pytest fixtures for Claude Explorer tests."""

import json
import zipfile

import pytest

from claude_explorer.loader import ExportSnapshot
from claude_explorer.models import Conversation, Project


def _message(uuid, sender, text, content=None, created_at="2024-01-15T10:00:00Z"):
    return {
        "uuid": uuid,
        "sender": sender,
        "text": text,
        "content": content if content is not None else [{"type": "text", "text": text}],
        "created_at": created_at,
        "updated_at": created_at,
    }


CONVERSATIONS = [
    {
        "uuid": "conv-001",
        "name": "Refactor Auth Flow",
        "summary": "Reworking the login pipeline",
        "created_at": "2024-01-15T10:00:00Z",
        "updated_at": "2024-01-15T11:00:00Z",
        "account": {"uuid": "user-001"},
        "chat_messages": [
            _message(
                "msg-001",
                "human",
                "We need to refactor the authentication module before the release.",
            ),
            _message(
                "msg-002",
                "assistant",
                "",
                content=[
                    {
                        "type": "text",
                        "text": "Here is the new handler:\n```python\ndef login():\n    pass\n```",
                    },
                    {
                        "type": "tool_use",
                        "name": "str_replace_editor",
                        "input": {"command": "create", "path": "auth/handler.py"},
                    },
                ],
            ),
        ],
    },
    {
        "uuid": "conv-002",
        "name": "Database Migration Plan",
        "summary": "",
        "created_at": "2024-02-03T09:30:00Z",
        "updated_at": "2024-02-03T09:45:00Z",
        "account": {"uuid": "user-001"},
        "chat_messages": [
            _message(
                "msg-003",
                "human",
                "We ran the database migration last night without issues",
                created_at="2024-02-03T09:30:00Z",
            ),
            _message(
                "msg-004",
                "assistant",
                "Great. We decided to keep the old tables for a week as a fallback.",
                created_at="2024-02-03T09:31:00Z",
            ),
        ],
    },
    {
        "uuid": "conv-003",
        "name": "Authentication Setup",
        "summary": "OAuth provider configuration",
        "created_at": "2024-02-20T14:00:00Z",
        "updated_at": "2024-02-20T15:00:00Z",
        "account": {"uuid": "user-001"},
        "chat_messages": [
            _message(f"msg-1{i:02d}", "human" if i % 2 == 0 else "assistant", f"Step {i} of the setup")
            for i in range(5)
        ],
    },
    {
        "uuid": "conv-004",
        "name": "Empty chat",
        "summary": "",
        "created_at": "2024-03-01T08:00:00Z",
        "updated_at": "2024-03-01T08:00:00Z",
        "account": {"uuid": "user-001"},
        "chat_messages": [],
    },
    {
        "uuid": "conv-005",
        "name": None,
        "summary": None,
        "created_at": "not-a-date",
        "updated_at": None,
        "account": {"uuid": "user-001"},
        "chat_messages": [_message("msg-005", "human", "hello there")],
    },
]

PROJECTS = [
    {
        "uuid": "proj-001",
        "name": "Payments Service",
        "description": "Billing and invoicing backend",
        "is_private": False,
        "is_starter_project": False,
        "prompt_template": "",
        "created_at": "2024-01-01T00:00:00Z",
        "updated_at": "2024-01-02T00:00:00Z",
        "creator": {"uuid": "user-001", "full_name": "Test User"},
        "docs": [
            {
                "uuid": "doc-001",
                "filename": "architecture.md",
                "content": "The payment gateway uses Stripe webhooks.",
            }
        ],
    },
    {
        "uuid": "proj-002",
        "name": "Personal Notes",
        "description": "",
        "is_private": True,
        "is_starter_project": False,
        "prompt_template": "",
        "created_at": "2024-01-05T00:00:00Z",
        "updated_at": "2024-01-05T00:00:00Z",
        "creator": {"uuid": "user-001", "full_name": "Test User"},
        "docs": [],
    },
]

USERS = [
    {
        "uuid": "user-001",
        "full_name": "Test User",
        "email_address": "test@example.com",
        "verified_phone_number": None,
    }
]


@pytest.fixture
def conversations():
    """Parsed sample conversations, in export order."""
    return [Conversation.model_validate(c) for c in CONVERSATIONS]


@pytest.fixture
def projects():
    """Parsed sample projects."""
    return [Project.model_validate(p) for p in PROJECTS]


@pytest.fixture
def snapshot(conversations, projects):
    """An in-memory export snapshot of the sample data."""
    return ExportSnapshot(conversations=conversations, projects=projects)


@pytest.fixture
def make_conversation():
    """Factory for conversations with the given message texts."""

    def _make(uuid, name="", summary="", texts=(), created_at="2024-01-01T00:00:00Z"):
        return Conversation(
            uuid=uuid,
            name=name,
            summary=summary,
            created_at=created_at,
            chat_messages=[
                {"uuid": f"{uuid}-m{i}", "sender": "human", "text": text}
                for i, text in enumerate(texts)
            ],
        )

    return _make


@pytest.fixture
def export_dir(tmp_path):
    """Create a temporary export directory."""
    data_dir = tmp_path / "export"
    data_dir.mkdir()
    (data_dir / "conversations.json").write_text(json.dumps(CONVERSATIONS))
    (data_dir / "projects.json").write_text(json.dumps(PROJECTS))
    (data_dir / "users.json").write_text(json.dumps(USERS))
    return data_dir


@pytest.fixture
def export_zip(tmp_path):
    """Create a temporary export archive with a top-level folder."""
    archive_path = tmp_path / "export.zip"
    with zipfile.ZipFile(archive_path, "w") as archive:
        archive.writestr("data-2024/conversations.json", json.dumps(CONVERSATIONS))
        archive.writestr("data-2024/projects.json", json.dumps(PROJECTS))
    return archive_path
