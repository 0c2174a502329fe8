"""Claude Explorer - Search and browse Claude.ai data exports."""

from .context import extract_context, generate_summary
from .errors import ExplorerError, IndexNotBuiltError, InvalidInputError
from .filters import (
    filter_conversations,
    filter_projects,
    group_by_date,
    group_by_month,
    sort_conversations,
)
from .fuzzy import FuzzySearchEngine
from .indexer import SearchIndexer
from .loader import ExportSnapshot, load_export
from .models import (
    AdvancedSearchCriteria,
    Conversation,
    ExtractedContext,
    FilterOptions,
    FuzzyResult,
    Message,
    Project,
    SearchResult,
)
from .query import ExplorerService

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "AdvancedSearchCriteria",
    "Conversation",
    "ExplorerError",
    "ExplorerService",
    "ExportSnapshot",
    "ExtractedContext",
    "FilterOptions",
    "FuzzyResult",
    "FuzzySearchEngine",
    "IndexNotBuiltError",
    "InvalidInputError",
    "Message",
    "Project",
    "SearchIndexer",
    "SearchResult",
    "extract_context",
    "filter_conversations",
    "filter_projects",
    "generate_summary",
    "group_by_date",
    "group_by_month",
    "load_export",
    "sort_conversations",
]
