"""Tests for configuration and the entity schema."""

import json

import pytest

from ext_fts_search.config import ConfigManager, SearchServiceConfig, get_data_directory
from ext_fts_search.schema import EntitySchema


class TestConfigManager:
    def test_defaults_when_missing(self, temp_dir):
        manager = ConfigManager(temp_dir / "config.json")
        assert manager.config.max_search_results == 1000
        assert manager.config.entity_links == {}
        assert manager.config.get_index_path() == get_data_directory() / "index"

    def test_save_and_reload(self, temp_dir):
        config_path = temp_dir / "nested" / "config.json"
        manager = ConfigManager(config_path)
        assert manager.set_entity_links({"Order": ["LineItem"]})
        assert manager.set_index_path(str(temp_dir / "index"))

        reloaded = ConfigManager(config_path).config
        assert reloaded.entity_links == {"Order": ["LineItem"]}
        assert reloaded.get_index_path() == (temp_dir / "index").absolute()

    def test_invalid_json_falls_back_to_defaults(self, temp_dir):
        config_path = temp_dir / "config.json"
        config_path.write_text("{not json")
        assert ConfigManager(config_path).config == SearchServiceConfig()

    def test_unknown_keys_ignored(self, temp_dir):
        config_path = temp_dir / "config.json"
        config_path.write_text(json.dumps({"max_search_results": 5, "colour": "red"}))
        assert ConfigManager(config_path).config.max_search_results == 5


class TestEntitySchema:
    def test_linkable_entity_type_names(self):
        schema = EntitySchema({"Order": ["LineItem", "Customer"], "Customer": ["Address"]})
        assert schema.linkable_entity_type_names("Order") == {"LineItem", "Customer"}
        assert schema.linkable_entity_type_names("Address") == set()
        assert schema.entity_type_names() == {"Order", "LineItem", "Customer", "Address"}

    def test_returned_set_is_a_copy(self):
        schema = EntitySchema({"Order": ["LineItem"]})
        schema.linkable_entity_type_names("Order").add("Other")
        assert schema.linkable_entity_type_names("Order") == {"LineItem"}

    def test_add_link(self):
        schema = EntitySchema()
        schema.add_link("Order", "LineItem")
        assert schema.linkable_entity_type_names("Order") == {"LineItem"}

    def test_rejects_non_list_links(self):
        with pytest.raises(ValueError):
            EntitySchema({"Order": "LineItem"})

    def test_from_config(self):
        config = SearchServiceConfig(entity_links={"Order": ["LineItem"]})
        assert EntitySchema.from_config(config).linkable_entity_type_names("Order") == {
            "LineItem"
        }
