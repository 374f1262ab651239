"""Shared fixtures for the extended search tests."""

import shutil
import tempfile
from pathlib import Path

import pytest

from ext_fts_search.index import IndexAccessError
from ext_fts_search.indexed_text import parse_indexed_text
from ext_fts_search.models import EntityReference
from ext_fts_search.terms import parse_query_terms


class FakeIndex:
    """In-memory index gateway with the same lookup semantics as the Tantivy one."""

    def __init__(self):
        self.texts = {}
        self.types = {}
        self.links = {}
        self.searchers_acquired = 0
        self.searchers_released = 0
        self.fail_on_load = False
        self.load_calls = []

    def add(self, entity_id, entity_type_name, text=None, links=()):
        self.types[entity_id] = entity_type_name
        self.texts[entity_id] = text
        self.links[entity_id] = list(links)
        return EntityReference(entity_id, entity_type_name)

    def search_all_fields(self, search_term, entity_type_names):
        terms = parse_query_terms(search_term)
        results = []
        for entity_id, entity_type_name in self.types.items():
            if entity_type_name not in entity_type_names:
                continue
            values = [v for _, v in parse_indexed_text(self.texts[entity_id])]
            if any(term.matches(value) for term in terms for value in values):
                results.append(EntityReference(entity_id, entity_type_name))
        return results

    def search_links_field(self, linked_entity_key, entity_type_names):
        return [
            EntityReference(entity_id, self.types[entity_id])
            for entity_id, links in self.links.items()
            if self.types[entity_id] in entity_type_names
            and str(linked_entity_key) in links
        ]

    def acquire_searcher(self):
        self.searchers_acquired += 1
        return object()

    def release_searcher(self, searcher):
        self.searchers_released += 1

    def load_indexed_text(self, entity, searcher):
        self.load_calls.append(entity.id)
        if self.fail_on_load:
            raise IndexAccessError(f"Index unreachable while loading {entity}")
        return self.texts.get(entity.id)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield Path(temp_dir)
    shutil.rmtree(temp_dir)


@pytest.fixture
def fake_index():
    return FakeIndex()
