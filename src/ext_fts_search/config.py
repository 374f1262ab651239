"""Configuration management for the extended full-text search service."""

import json
import logging
import os
import sys
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Dict, List, Optional


logger = logging.getLogger(__name__)

APP_NAME = "ext_fts_search"


def get_data_directory() -> Path:
    """Get the platform-appropriate data directory."""
    if sys.platform == "win32":
        # Windows: %APPDATA%/ext_fts_search
        base_path = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    elif sys.platform == "darwin":
        # macOS: ~/Library/Application Support/ext_fts_search
        base_path = Path.home() / "Library" / "Application Support"
    else:
        # Linux/Unix: ~/.local/share/ext_fts_search
        base_path = Path(
            os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share")
        )

    return base_path / APP_NAME


@dataclass
class SearchServiceConfig:
    """Configuration for the search service and its Tantivy index."""

    index_path: Optional[str] = None
    max_search_results: int = 1000
    writer_heap_size: int = 50_000_000
    writer_threads: int = 1
    # entity type name -> entity type names whose entities it links to
    entity_links: Dict[str, List[str]] = field(default_factory=dict)

    def get_index_path(self) -> Path:
        if self.index_path:
            return Path(self.index_path)
        return get_data_directory() / "index"


class ConfigManager:
    """Manages configuration for the search service."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize the configuration manager.

        Args:
            config_path: Path to the configuration file
        """
        if config_path is None:
            config_path = get_data_directory() / "config.json"

        self.config_path = Path(config_path)
        self._config = self._load_config()

    @property
    def config(self) -> SearchServiceConfig:
        return self._config

    def _load_config(self) -> SearchServiceConfig:
        """Load configuration from file."""
        if not self.config_path.exists():
            return SearchServiceConfig()

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            known = {f.name for f in fields(SearchServiceConfig)}
            unknown = set(data) - known
            if unknown:
                logger.warning(f"Ignoring unknown config keys: {sorted(unknown)}")
            return SearchServiceConfig(**{k: v for k, v in data.items() if k in known})
        except (json.JSONDecodeError, TypeError, AttributeError) as e:
            logger.warning(f"Failed to load config: {e}. Using defaults.")
            return SearchServiceConfig()

    def save_config(self) -> bool:
        """Save configuration to file.

        Returns:
            True if successful
        """
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, "w", encoding="utf-8") as f:
                json.dump(asdict(self._config), f, indent=2)
            return True
        except OSError as e:
            logger.error(f"Failed to save config: {e}")
            return False

    def set_index_path(self, path: str) -> bool:
        """Set the index directory."""
        self._config.index_path = str(Path(path).absolute())
        return self.save_config()

    def set_entity_links(self, entity_links: Dict[str, List[str]]) -> bool:
        """Replace the entity link declarations."""
        self._config.entity_links = {k: list(v) for k, v in entity_links.items()}
        return self.save_config()
