"""Main entry point for the extended full-text search CLI."""

import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

from .config import ConfigManager
from .index import IndexAccessError, TantivyEntityIndex
from .schema import EntitySchema
from .search import ExtendedSearchService, SearchTermsResolutionError


def setup_logging(level: str = "INFO"):
    """Set up logging configuration."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stderr),
        ],
    )


def load_config(args):
    config_path = Path(args.config) if getattr(args, "config", None) else None
    config = ConfigManager(config_path).config
    if getattr(args, "index_path", None):
        config.index_path = args.index_path
    return config


def handle_index_command(args) -> int:
    """Build a fresh index from an entities JSON file."""
    config = load_config(args)
    try:
        with TantivyEntityIndex.from_config(config, create_new=True) as index:
            count = index.load_entities_file(Path(args.entities_file))
        logging.info(f"Indexed {count} entities into {config.get_index_path()}")
        return 0
    except FileNotFoundError as e:
        logging.error(f"Entities file not found: {e}")
        return 1
    except (ValueError, KeyError, IndexAccessError) as e:
        logging.error(f"Indexing failed: {e}")
        return 1


def handle_search_command(args) -> int:
    """Run a cross-entity search and print the matching entities."""
    config = load_config(args)
    try:
        index = TantivyEntityIndex.from_config(config, read_only=True)
        service = ExtendedSearchService(index, EntitySchema.from_config(config))
        result = service.search(args.query, args.entity)
    except (ValueError, IndexAccessError, SearchTermsResolutionError) as e:
        logging.error(f"Search failed: {e}")
        return 1

    if args.json:
        print(json.dumps(result.model_dump(), indent=2))
        return 0

    print(f"{len(result)} result(s) for '{result.query}'")
    if result.is_empty():
        return 0
    for entity_type_name in sorted(result.entity_type_names()):
        for entry in result.entries_for(entity_type_name):
            kind = "indirect" if entry.indirect else "direct"
            print(f"  {entry.entity_type_name} {entry.entity_id} ({kind})")
    return 0


def handle_stats_command(args) -> int:
    """Print index statistics."""
    config = load_config(args)
    try:
        stats = TantivyEntityIndex.from_config(config, read_only=True).get_stats()
    except IndexAccessError as e:
        logging.error(f"Failed to read index: {e}")
        return 1
    print(json.dumps(stats, indent=2))
    return 0


def handle_config_command(args) -> int:
    """Update the configuration file, then print the resulting configuration."""
    config_path = Path(args.config) if args.config else None
    manager = ConfigManager(config_path)

    try:
        if args.set_index_path and not manager.set_index_path(args.set_index_path):
            return 1
        if args.link:
            schema = EntitySchema.from_config(manager.config)
            for declaration in args.link:
                name, _, linked_name = declaration.partition("=")
                if not name.strip() or not linked_name.strip():
                    raise ValueError(
                        f"Expected a link as <EntityType>=<LinkedType>, "
                        f"got '{declaration}'"
                    )
                schema.add_link(name.strip(), linked_name.strip())
            if not manager.set_entity_links(schema.to_config()):
                return 1
        schema = EntitySchema.from_config(manager.config)
    except ValueError as e:
        logging.error(f"Invalid configuration: {e}")
        return 1

    output = asdict(manager.config)
    output["entity_types"] = sorted(schema.entity_type_names())
    print(json.dumps(output, indent=2))
    return 0


def main_sync(argv=None):
    """Synchronous main entry point for console scripts."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Full-text search with AND semantics across linked entities"
    )

    base = argparse.ArgumentParser(add_help=False)
    base.add_argument("--config", help="Path to the JSON configuration file")
    base.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )

    common = argparse.ArgumentParser(add_help=False, parents=[base])
    common.add_argument("--index-path", help="Index directory (overrides config)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    index_parser = subparsers.add_parser(
        "index", parents=[common], help="Build a new index from an entities JSON file"
    )
    index_parser.add_argument("entities_file", help="Path to the entities JSON file")

    search_parser = subparsers.add_parser(
        "search", parents=[common], help="Search entities and their linked entities"
    )
    search_parser.add_argument("query", help="Search terms, '*' is a wildcard")
    search_parser.add_argument(
        "--entity",
        action="append",
        required=True,
        help="Entity type to search (repeatable)",
    )
    search_parser.add_argument(
        "--json", action="store_true", help="Output in JSON format"
    )

    subparsers.add_parser("stats", parents=[common], help="Show index statistics")

    config_parser = subparsers.add_parser(
        "config", parents=[base], help="Show or update the configuration file"
    )
    config_parser.add_argument(
        "--set-index-path", help="Store the index directory in the configuration"
    )
    config_parser.add_argument(
        "--link",
        action="append",
        help="Declare a link as <EntityType>=<LinkedType> (repeatable)",
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    setup_logging(args.log_level)
    if args.command == "index":
        return handle_index_command(args)
    elif args.command == "search":
        return handle_search_command(args)
    elif args.command == "config":
        return handle_config_command(args)
    else:
        return handle_stats_command(args)


if __name__ == "__main__":
    sys.exit(main_sync())
