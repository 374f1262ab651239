"""Extended full-text search with AND semantics across linked entities.

Search terms may be spread out between a main entity and the entities linked
to it: an Order can match "red widget" when the order itself mentions "red"
and one of its line items mentions "widget".
"""

__version__ = "0.1.0"
__author__ = "ext-fts-search developers"

from .models import EntityGraph, EntityReference, SearchResult, SearchResultEntry
from .search import ExtendedSearchService, SearchTermsResolutionError
from .terms import QueryTerm, parse_query_terms

__all__ = [
    "EntityGraph",
    "EntityReference",
    "ExtendedSearchService",
    "QueryTerm",
    "SearchResult",
    "SearchResultEntry",
    "SearchTermsResolutionError",
    "parse_query_terms",
]
