"""Tests for entity references, graphs and search results."""

import pytest

from ext_fts_search.models import (
    EntityDocument,
    EntityGraph,
    EntityReference,
    SearchResult,
    SearchResultEntry,
)


class TestEntityReference:
    def test_equality_by_id(self):
        assert EntityReference("1", "Order") == EntityReference("1", "Customer", "^^x y")
        assert hash(EntityReference("1", "Order")) == hash(EntityReference("1", "Other"))
        assert EntityReference("1", "Order") != EntityReference("2", "Order")

    def test_link_key(self):
        assert str(EntityReference("42", "LineItem")) == "LineItem-42"


class TestEntityGraph:
    def test_requires_main_entity(self):
        with pytest.raises(ValueError):
            EntityGraph(None)

    def test_all_entities_deduplicated(self):
        main = EntityReference("1", "Order")
        item = EntityReference("2", "LineItem")
        graph = EntityGraph(main)
        graph.add_linked_entity(item)
        graph.add_linked_entity(EntityReference("2", "LineItem"))
        graph.add_linked_entity(main)

        assert len(graph.linked_entities) == 3
        assert graph.all_entities() == [main, item]

    def test_linked_entities_is_a_copy(self):
        graph = EntityGraph(EntityReference("1", "Order"))
        graph.linked_entities.append(EntityReference("2", "LineItem"))
        assert graph.linked_entities == []


class TestSearchResult:
    def test_entries(self):
        result = SearchResult(query="red widget")
        assert result.is_empty()

        result.add_entry(SearchResultEntry.from_entity(EntityReference("1", "Order"), indirect=True))
        result.add_entry(SearchResultEntry(entity_type_name="Customer", entity_id="7"))

        assert len(result) == 2
        assert result.entity_type_names() == {"Order", "Customer"}
        assert result.entry_ids() == ["1", "7"]
        assert result.entries_for("Order")[0].indirect
        assert not result.entries_for("Customer")[0].indirect

    def test_serialization(self):
        result = SearchResult(query="q")
        result.add_entry(SearchResultEntry(entity_type_name="Order", entity_id="1", indirect=True))
        assert result.model_dump() == {
            "query": "q",
            "entries": [{"entity_type_name": "Order", "entity_id": "1", "indirect": True}],
        }

    def test_results_do_not_share_entries(self):
        first = SearchResult(query="a")
        first.add_entry(SearchResultEntry(entity_type_name="Order", entity_id="1"))
        assert SearchResult(query="b").is_empty()


class TestEntityDocument:
    def test_link_keys(self):
        link = EntityReference("9", "LineItem")
        assert EntityDocument("1", "Order", links=[link]).link_keys() == ["LineItem-9"]
        assert EntityDocument("1", "Order", links=[link], legacy_links=True).link_keys() == ["9"]

    def test_from_dict(self):
        document = EntityDocument.from_dict(
            {
                "id": 1,
                "entity": "Order",
                "fields": {"number": 100, "description": "red chair"},
                "links": [{"id": "9", "entity": "LineItem"}],
            }
        )
        assert document.id == "1"
        assert document.fields == {"number": "100", "description": "red chair"}
        assert document.links == [EntityReference("9", "LineItem")]
        assert not document.legacy_links
        assert document.reference() == EntityReference("1", "Order")
