"""FastMCP server for Claude Explorer."""

import locale
import logging
import os
import sys

from mcp.server.fastmcp import FastMCP

from .config import (
    DEFAULT_FUZZY_LIMIT,
    DEFAULT_LIST_LIMIT,
    DEFAULT_MAX_RESULTS,
    DEFAULT_OFFSET,
    LOG_LEVEL_ENV,
)
from .loader import get_data_path, load_export
from .models import FilterOptions, ProjectFilterOptions
from .query import ExplorerService, parse_date_filter

logger = logging.getLogger(__name__)


def _get_log_level() -> int:
    """Log level from the environment, WARNING when unset or unknown."""
    name = os.environ.get(LOG_LEVEL_ENV, "WARNING").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.WARNING


def _use_system_collation() -> None:
    """Sort names by the user's locale, keeping the C locale when it is unavailable."""
    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as e:
        logger.warning(f"Could not set collation locale: {e}")


def _filters(
    date_from: str | None,
    date_to: str | None,
    min_messages: int | None,
    max_messages: int | None,
) -> FilterOptions | None:
    if date_from is None and date_to is None and min_messages is None and max_messages is None:
        return None
    return FilterOptions(
        date_from=parse_date_filter(date_from),
        date_to=parse_date_filter(date_to),
        min_messages=min_messages,
        max_messages=max_messages,
    )


def create_server(service: ExplorerService) -> FastMCP:
    """Create an MCP server exposing the service as tools."""
    mcp = FastMCP("claude-explorer")

    @mcp.tool()
    def search_conversations(
        query: str,
        max_results: int = DEFAULT_MAX_RESULTS,
        offset: int = DEFAULT_OFFSET,
        date_from: str | None = None,
        date_to: str | None = None,
        min_messages: int | None = None,
        max_messages: int | None = None,
    ) -> dict:
        """
        Keyword search over conversation names, summaries and messages.

        Matches in the name weigh most, then the summary, then message text.

        Args:
            query: Keywords to find
            max_results: Maximum number of results to return (default: 10)
            offset: Number of results to skip for pagination (default: 0)
            date_from: Only conversations created on/after this ISO 8601 date
            date_to: Only conversations created on/before this ISO 8601 date
            min_messages: Minimum number of messages
            max_messages: Maximum number of messages

        Returns:
            Ranked results with snippets and pagination info
        """
        response = service.search(
            query,
            max_results=max_results,
            offset=offset,
            filters=_filters(date_from, date_to, min_messages, max_messages),
        )
        return response.model_dump(mode="json")

    @mcp.tool()
    def fuzzy_search_conversations(query: str, limit: int = DEFAULT_FUZZY_LIMIT) -> dict:
        """
        Typo-tolerant search over conversations.

        Use when keyword search finds nothing or the spelling is uncertain.

        Args:
            query: Text to match approximately
            limit: Maximum number of results (default: 20)
        """
        hits = service.fuzzy_search(query, limit)
        return {"query": query, "results": [hit.model_dump(mode="json") for hit in hits]}

    @mcp.tool()
    def search_projects(query: str, limit: int = DEFAULT_FUZZY_LIMIT) -> dict:
        """
        Typo-tolerant search over project names, descriptions and documents.

        Args:
            query: Text to match approximately
            limit: Maximum number of results (default: 20)
        """
        hits = service.search_projects(query, limit)
        return {"query": query, "results": [hit.model_dump(mode="json") for hit in hits]}

    @mcp.tool()
    def advanced_search(
        query: str | None = None,
        topics: list[str] | None = None,
        has_code: bool | None = None,
        min_messages: int | None = None,
        max_messages: int | None = None,
        date_from: str | None = None,
        date_to: str | None = None,
        limit: int = DEFAULT_MAX_RESULTS,
    ) -> dict:
        """
        Find conversations matching every given criterion.

        Args:
            query: Approximate text that must match the conversation
            topics: Keep conversations whose name or summary mentions any topic
            has_code: Require (true) or exclude (false) code blocks and tool calls
            min_messages: Minimum number of messages
            max_messages: Maximum number of messages
            date_from: Created on/after this ISO 8601 date
            date_to: Created on/before this ISO 8601 date
            limit: Maximum number of results (default: 10)

        Returns:
            Matching conversations in export order
        """
        results = service.advanced_search(
            query=query,
            topics=topics,
            has_code=has_code,
            min_messages=min_messages,
            max_messages=max_messages,
            date_from=parse_date_filter(date_from),
            date_to=parse_date_filter(date_to),
            limit=limit,
        )
        return {"results": [conv.model_dump(mode="json") for conv in results]}

    @mcp.tool()
    def get_conversation_details(uuid: str) -> dict:
        """
        Get topics, code snippets, decisions and action items of a conversation.

        Args:
            uuid: Conversation id from a search result
        """
        details = service.conversation_details(uuid)
        if details is None:
            return {"error": f"Conversation not found: {uuid}"}
        return details.model_dump(mode="json")

    @mcp.tool()
    def list_conversations(
        sort: str = "date",
        order: str = "desc",
        limit: int = DEFAULT_LIST_LIMIT,
        min_messages: int | None = None,
    ) -> dict:
        """
        List conversations sorted by date, message count or name.

        Args:
            sort: "date", "messages" or "name" (default: "date")
            order: "asc" or "desc" (default: "desc")
            limit: Maximum number of conversations (default: 20)
            min_messages: Minimum number of messages
        """
        filters = FilterOptions(min_messages=min_messages) if min_messages is not None else None
        results = service.list_conversations(sort, order, limit, filters)
        return {"results": [conv.model_dump(mode="json") for conv in results]}

    @mcp.tool()
    def list_projects(has_docs_only: bool = False, name_contains: str | None = None) -> dict:
        """
        List projects.

        Args:
            has_docs_only: Only projects with knowledge documents
            name_contains: Case-insensitive substring of the project name
        """
        filters = ProjectFilterOptions(has_docs_only=has_docs_only, name_contains=name_contains)
        return {"results": [p.model_dump(mode="json") for p in service.list_projects(filters)]}

    @mcp.tool()
    def get_timeline(granularity: str = "month") -> dict:
        """
        Count conversations per creation month or day.

        Args:
            granularity: "month" or "day" (default: "month")
        """
        return {"granularity": granularity, "counts": service.timeline(granularity)}

    @mcp.tool()
    def suggest_terms(partial_query: str) -> dict:
        """
        Suggest search terms starting with a partial query.

        Args:
            partial_query: Beginning of a word
        """
        return {"suggestions": service.suggest(partial_query)}

    @mcp.tool()
    def get_stats() -> dict:
        """Get conversation, message and project statistics for the export."""
        return service.stats().model_dump(mode="json")

    return mcp


def main():
    """Load the export and run the MCP server."""
    # stdout carries the MCP protocol
    logging.basicConfig(level=_get_log_level(), stream=sys.stderr)
    _use_system_collation()
    service = ExplorerService(load_export(get_data_path()))
    create_server(service).run()


if __name__ == "__main__":
    main()
