"""Load a Claude.ai data export from a directory or zip archive."""

import json
import logging
import os
import zipfile
from collections.abc import Iterable
from pathlib import Path, PurePosixPath
from typing import Any

from pydantic import BaseModel, ValidationError

from .config import (
    CONVERSATIONS_FILE,
    DATA_PATH_ENV,
    DEFAULT_DATA_PATH,
    PROJECTS_FILE,
    USERS_FILE,
)
from .errors import InvalidInputError
from .models import (
    Conversation,
    DateRange,
    ExportStats,
    MessageStats,
    Project,
    User,
)

logger = logging.getLogger(__name__)


def get_data_path() -> Path:
    """Get the export location from the environment, defaulting to ./data."""
    env = os.environ.get(DATA_PATH_ENV)
    if env:
        return Path(env)
    return DEFAULT_DATA_PATH


class ExportSnapshot:
    """An immutable, fully parsed export."""

    def __init__(
        self,
        conversations: Iterable[Conversation] = (),
        projects: Iterable[Project] = (),
        users: Iterable[User] = (),
    ):
        self.conversations: tuple[Conversation, ...] = tuple(conversations)
        self.projects: tuple[Project, ...] = tuple(projects)
        self.users: tuple[User, ...] = tuple(users)
        self._conversations_by_id = {c.uuid: c for c in self.conversations}
        self._projects_by_id = {p.uuid: p for p in self.projects}

    def conversations_with_messages(self) -> list[Conversation]:
        """Conversations holding at least one message."""
        return [c for c in self.conversations if c.chat_messages]

    def get_conversation(self, uuid: str) -> Conversation | None:
        """Look up a conversation by id."""
        return self._conversations_by_id.get(uuid)

    def get_project(self, uuid: str) -> Project | None:
        """Look up a project by id."""
        return self._projects_by_id.get(uuid)

    def stats(self) -> ExportStats:
        """Summarize conversation, message and project counts."""
        counts = [c.message_count for c in self.conversations_with_messages()]
        messages = MessageStats()
        if counts:
            messages = MessageStats(
                total=sum(counts),
                min=min(counts),
                max=max(counts),
                avg=sum(counts) / len(counts),
            )

        dates = [c.created_at for c in self.conversations if c.created_at is not None]
        date_range = DateRange(earliest=min(dates), latest=max(dates)) if dates else None

        return ExportStats(
            total_conversations=len(self.conversations),
            conversations_with_messages=len(counts),
            total_projects=len(self.projects),
            projects_with_docs=sum(1 for p in self.projects if p.docs),
            messages=messages,
            date_range=date_range,
        )


def _find_member(archive: zipfile.ZipFile, filename: str) -> str | None:
    """Find a file in an archive, allowing for a single top-level folder."""
    candidates = [
        name
        for name in archive.namelist()
        if PurePosixPath(name).name == filename and not name.startswith("__MACOSX/")
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda name: name.count("/"))


def _read_raw(source: Path, filename: str, required: bool) -> str | None:
    if source.is_dir():
        path = source / filename
        if not path.exists():
            if required:
                raise FileNotFoundError(f"{filename} not found in {source}")
            return None
        return path.read_text(encoding="utf-8")

    with zipfile.ZipFile(source) as archive:
        member = _find_member(archive, filename)
        if member is None:
            if required:
                raise FileNotFoundError(f"{filename} not found in {source}")
            return None
        return archive.read(member).decode("utf-8")


def _load_list(source: Path, filename: str, required: bool) -> list[Any]:
    raw = _read_raw(source, filename, required)
    if raw is None:
        return []
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise InvalidInputError(f"Invalid JSON in {filename}: {e}") from e
    if not isinstance(data, list):
        raise InvalidInputError(f"{filename} must contain a JSON list")
    return data


def _parse_entities(entries: list[Any], model: type[BaseModel], filename: str) -> list:
    """Validate entries, skipping (and logging) the ones that fail."""
    parsed = []
    seen: set[str] = set()
    for position, entry in enumerate(entries):
        try:
            item = model.model_validate(entry)
        except ValidationError as e:
            logger.warning(
                f"Skipping malformed entry {position} in {filename}: "
                f"{e.error_count()} validation error(s)"
            )
            continue
        if item.uuid in seen:
            logger.warning(f"Skipping duplicate id {item.uuid} in {filename}")
            continue
        seen.add(item.uuid)
        parsed.append(item)
    return parsed


def load_export(path: str | Path) -> ExportSnapshot:
    """
    Load an export directory or ``.zip`` archive.

    conversations.json is required; projects.json and users.json are optional.

    Raises:
        FileNotFoundError: If the path or conversations.json does not exist
        InvalidInputError: If a file is not a JSON list
    """
    source = Path(path)
    if not source.exists():
        raise FileNotFoundError(f"Export not found: {source}")
    if not source.is_dir() and not zipfile.is_zipfile(source):
        raise InvalidInputError(f"Export must be a directory or zip archive: {source}")

    snapshot = ExportSnapshot(
        conversations=_parse_entities(
            _load_list(source, CONVERSATIONS_FILE, required=True), Conversation, CONVERSATIONS_FILE
        ),
        projects=_parse_entities(
            _load_list(source, PROJECTS_FILE, required=False), Project, PROJECTS_FILE
        ),
        users=_parse_entities(_load_list(source, USERS_FILE, required=False), User, USERS_FILE),
    )
    logger.info(
        f"Loaded export from {source}: {len(snapshot.conversations)} conversations, "
        f"{len(snapshot.projects)} projects"
    )
    return snapshot
