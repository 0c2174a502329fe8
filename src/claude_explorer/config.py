"""Centralized configuration constants for Claude Explorer."""

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

# Environment
DATA_PATH_ENV = "CLAUDE_EXPLORER_DATA"
FUZZY_THRESHOLD_ENV = "CLAUDE_EXPLORER_FUZZY_THRESHOLD"
LOG_LEVEL_ENV = "CLAUDE_EXPLORER_LOG_LEVEL"
DEFAULT_DATA_PATH = Path("data")

# Export files
CONVERSATIONS_FILE = "conversations.json"
PROJECTS_FILE = "projects.json"
USERS_FILE = "users.json"

# Inverted index field weights
NAME_WEIGHT = 10.0
SUMMARY_WEIGHT = 5.0
MESSAGES_WEIGHT = 1.0

# Snippets
SNIPPET_BEFORE = 50
SNIPPET_AFTER = 150
SNIPPET_MIN_WORD_LENGTH = 3
MAX_SNIPPETS = 5
ELLIPSIS = "..."

# Fuzzy matching
FUZZY_THRESHOLD = 0.4
FUZZY_MIN_MATCH_LENGTH = 2
FUZZY_CONVERSATION_WEIGHTS = {
    "name": 2.0,
    "summary": 1.5,
    "chat_messages.text": 1.0,
    "chat_messages.content.input": 1.0,
}
FUZZY_PROJECT_WEIGHTS = {
    "name": 2.0,
    "description": 1.5,
    "docs.content": 1.0,
    "docs.filename": 1.2,
}
MAX_MATCHES_PER_FIELD = 10
MAX_SUGGESTIONS = 10
SUGGESTION_MIN_WORD_LENGTH = 4

# Context extraction
TOOL_INPUT_SNIPPET_MIN_LENGTH = 50
MIN_TOPIC_FREQUENCY = 2
MAX_TOPICS = 10
MIN_ENTITY_LENGTH = 4

# Query defaults
DEFAULT_SEARCH_LIMIT = 50
DEFAULT_FUZZY_LIMIT = 20
DEFAULT_MAX_RESULTS = 10
DEFAULT_LIST_LIMIT = 20
DEFAULT_OFFSET = 0


def get_fuzzy_threshold() -> float:
    """
    Get the fuzzy matching threshold.

    Reads the environment override if present, otherwise returns the default.
    Values outside (0, 1] are rejected with a warning.
    """
    override = os.environ.get(FUZZY_THRESHOLD_ENV)
    if override:
        try:
            value = float(override)
        except ValueError:
            logger.warning(f"Invalid {FUZZY_THRESHOLD_ENV} value: {override}, using default")
            return FUZZY_THRESHOLD
        if 0.0 < value <= 1.0:
            return value
        logger.warning(f"{FUZZY_THRESHOLD_ENV} must be in (0, 1], got {value}, using default")
    return FUZZY_THRESHOLD
