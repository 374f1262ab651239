"""Entity schema: which entity types may be linked from a given entity type."""

import logging
from typing import Dict, Iterable, List, Optional, Set

from .config import SearchServiceConfig

logger = logging.getLogger(__name__)


class EntitySchema:
    """Declares links between entity types.

    ``entity_links`` maps an entity type name to the names of the entity types
    its documents link to, e.g. ``{"Order": ["LineItem", "Customer"]}``.
    An Order then matches search terms found in its line items or customer.
    """

    def __init__(self, entity_links: Optional[Dict[str, Iterable[str]]] = None):
        self._links: Dict[str, Set[str]] = {}
        for entity_type_name, linked in (entity_links or {}).items():
            if not isinstance(linked, (list, tuple, set, frozenset)):
                raise ValueError(
                    f"Linked entity names for {entity_type_name} must be a list, "
                    f"got {linked!r}"
                )
            for linked_type_name in linked:
                self.add_link(entity_type_name, linked_type_name)

    @classmethod
    def from_config(cls, config: SearchServiceConfig) -> "EntitySchema":
        return cls(config.entity_links)

    def add_link(self, entity_type_name: str, linked_type_name: str) -> None:
        self._links.setdefault(entity_type_name, set()).add(linked_type_name)

    def linkable_entity_type_names(self, entity_type_name: str) -> Set[str]:
        """Entity type names whose entities can be linked from ``entity_type_name``."""
        linked = self._links.get(entity_type_name)
        if linked is None:
            logger.debug(f"No linked entity types declared for {entity_type_name}")
            return set()
        return set(linked)

    def entity_type_names(self) -> Set[str]:
        names = set(self._links)
        for linked in self._links.values():
            names.update(linked)
        return names

    def to_config(self) -> Dict[str, List[str]]:
        """Link declarations in the shape stored in the configuration file."""
        return {name: sorted(linked) for name, linked in sorted(self._links.items())}
