"""
Extended Search Service

Executes full-text searches with AND semantics. Search terms may be spread
out between the main entity and its linked entities: a main entity may
contain the first search term while one of its linked entities contains the
second one.
"""

import logging
from typing import Any, Collection, Dict, Iterable, Iterator, List, Set

from .index import IndexAccessError, IndexGateway
from .indexed_text import parse_indexed_text
from .models import EntityGraph, EntityReference, SearchResult, SearchResultEntry
from .schema import EntitySchema
from .terms import QueryTerm, parse_query_terms

logger = logging.getLogger(__name__)


class SearchTermsResolutionError(Exception):
    """Raised when search terms cannot be resolved against an entity graph."""


class EntityGraphBuilder:
    """Collects one entity graph per main entity id during a single search."""

    def __init__(self):
        self._graphs: Dict[str, EntityGraph] = {}

    def get_or_create(self, entity: EntityReference) -> EntityGraph:
        graph = self._graphs.get(entity.id)
        if graph is None:
            graph = EntityGraph(entity)
            self._graphs[entity.id] = graph
        return graph

    def add_link(
        self, entity: EntityReference, linked_entity: EntityReference
    ) -> EntityGraph:
        # The graph may not exist yet when the main entity contains none of the
        # search terms and all of them are in linked entities.
        graph = self.get_or_create(entity)
        graph.add_linked_entity(linked_entity)
        return graph

    def graphs(self) -> Iterator[EntityGraph]:
        return iter(list(self._graphs.values()))

    def __len__(self) -> int:
        return len(self._graphs)


class GraphTermResolver:
    """Finds which search terms occur anywhere in an entity graph."""

    def __init__(self, index: IndexGateway):
        self.index = index

    def resolve(
        self, terms: Collection[QueryTerm], graph: EntityGraph, searcher: Any
    ) -> Set[QueryTerm]:
        found: Set[QueryTerm] = set()
        for entity in graph.all_entities():
            remaining = [term for term in terms if term not in found]
            if not remaining:
                break
            found.update(self.find_terms_in_entity(remaining, entity, searcher))
        return found

    def find_terms_in_entity(
        self, terms: Collection[QueryTerm], entity: EntityReference, searcher: Any
    ) -> Set[QueryTerm]:
        """Return the ``terms`` matched by a field value of the entity's text."""
        text = entity.raw_text
        if not text:
            text = self.index.load_indexed_text(entity, searcher)
        if not text:
            return set()

        found: Set[QueryTerm] = set()
        for _field_name, field_value in parse_indexed_text(text):
            for term in terms:
                if term not in found and term.matches(field_value):
                    found.add(term)
            if len(found) == len(terms):
                break
        return found


class ExtendedSearchService:
    """Full-text search with AND semantics across linked entities."""

    def __init__(self, index: IndexGateway, schema: EntitySchema):
        self.index = index
        self.schema = schema
        self.resolver = GraphTermResolver(index)

    def search(
        self, search_term: str, entity_type_names: Iterable[str]
    ) -> SearchResult:
        """Find entities that, together with their linked entities, contain all terms.

        Args:
            search_term: Whitespace-separated search terms, ``*`` is a wildcard
            entity_type_names: Entity types to return

        Returns:
            Search result with one indirect entry per matching main entity

        Raises:
            SearchTermsResolutionError: If the index fails while terms are resolved
        """
        entity_type_names = list(dict.fromkeys(entity_type_names))
        builder = EntityGraphBuilder()

        # Entities of the requested types containing at least one search term
        for entity in self.index.search_all_fields(search_term, entity_type_names):
            builder.get_or_create(entity)
        direct_count = len(builder)

        # Entities of the requested types linking to entities that contain at
        # least one search term
        linked_type_names = self.find_linked_entity_type_names(entity_type_names)
        if linked_type_names:
            linked_entities = self.index.search_all_fields(
                search_term, linked_type_names
            )
            for linked_entity in linked_entities:
                referencing = self.find_entities_linking_to(
                    linked_entity, entity_type_names
                )
                for entity in referencing:
                    builder.add_link(entity, linked_entity)

        logger.debug(
            f"Search '{search_term}' built {len(builder)} entity graphs "
            f"({direct_count} from direct hits)"
        )

        terms = parse_query_terms(search_term)
        if not terms:
            logger.warning(
                f"Search '{search_term}' has no terms, every found entity graph matches"
            )

        search_result = SearchResult(query=search_term)
        for graph in self.filter_graphs(terms, builder.graphs()):
            search_result.add_entry(
                SearchResultEntry.from_entity(graph.main_entity, indirect=True)
            )

        logger.info(f"Search '{search_term}' returned {len(search_result)} entities")
        logger.debug(f"Search '{search_term}' matched {search_result.entry_ids()}")
        return search_result

    def find_linked_entity_type_names(
        self, entity_type_names: Iterable[str]
    ) -> Set[str]:
        linked_type_names: Set[str] = set()
        for name in entity_type_names:
            linked_type_names.update(self.schema.linkable_entity_type_names(name))
        return linked_type_names

    def find_entities_linking_to(
        self, linked_entity: EntityReference, entity_type_names: Collection[str]
    ) -> List[EntityReference]:
        """Entities of the given types linking to ``linked_entity``, either encoding."""
        entities = dict.fromkeys(
            self.find_by_entity_key(linked_entity, entity_type_names)
        )
        for entity in self.find_by_legacy_id(linked_entity, entity_type_names):
            entities.setdefault(entity)
        return list(entities)

    def find_by_entity_key(
        self, linked_entity: EntityReference, entity_type_names: Collection[str]
    ) -> List[EntityReference]:
        return self.index.search_links_field(str(linked_entity), entity_type_names)

    def find_by_legacy_id(
        self, linked_entity: EntityReference, entity_type_names: Collection[str]
    ) -> List[EntityReference]:
        # Links indexed by older versions hold bare entity ids
        return self.index.search_links_field(linked_entity.id, entity_type_names)

    def filter_graphs(
        self, terms: Collection[QueryTerm], graphs: Iterable[EntityGraph]
    ) -> List[EntityGraph]:
        """Keep the graphs containing every term in at least one of their entities."""
        terms = set(terms)
        matched = []
        searcher = self.index.acquire_searcher()
        try:
            for graph in graphs:
                try:
                    found = self.resolver.resolve(terms, graph, searcher)
                except (IndexAccessError, OSError) as e:
                    raise SearchTermsResolutionError(
                        f"Error on finding search terms in entity graph of "
                        f"{graph.main_entity}"
                    ) from e
                if found >= terms:
                    matched.append(graph)
        finally:
            self.index.release_searcher(searcher)
        return matched
