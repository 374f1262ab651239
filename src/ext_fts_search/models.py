"""Data types shared by the index gateway and the search service."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from pydantic import BaseModel


@dataclass(frozen=True)
class EntityReference:
    """Reference to one indexed entity.

    Equality and hashing use ``id`` only, the type name is informational.
    ``raw_text`` holds the indexed text when the index layer already loaded it.
    """

    id: str
    entity_type_name: str = field(compare=False)
    raw_text: Optional[str] = field(default=None, compare=False, repr=False)

    def __str__(self) -> str:
        # Key stored in the "links" field of documents that point at this entity
        return f"{self.entity_type_name}-{self.id}"


class EntityGraph:
    """A main entity together with the linked entities that matched a query.

    For example, if an 'Order' contains one of the search terms, the order is
    the ``main_entity``. Line items linked to that order which contain other
    search terms are collected in ``linked_entities``.
    """

    def __init__(self, main_entity: EntityReference):
        if main_entity is None:
            raise ValueError("EntityGraph requires a main entity")
        self._main_entity = main_entity
        self._linked_entities: List[EntityReference] = []

    @property
    def main_entity(self) -> EntityReference:
        return self._main_entity

    @property
    def linked_entities(self) -> List[EntityReference]:
        return list(self._linked_entities)

    def add_linked_entity(self, entity: EntityReference) -> None:
        self._linked_entities.append(entity)

    def all_entities(self) -> List[EntityReference]:
        """Main entity plus linked entities, de-duplicated by id."""
        return list(dict.fromkeys([self._main_entity, *self._linked_entities]))

    def __repr__(self) -> str:
        return (
            f"EntityGraph(main_entity={self._main_entity}, "
            f"linked_entities={[str(e) for e in self._linked_entities]})"
        )


class SearchResultEntry(BaseModel):
    """One matched main entity."""

    entity_type_name: str
    entity_id: str
    indirect: bool = False

    @classmethod
    def from_entity(
        cls, entity: EntityReference, indirect: bool = False
    ) -> "SearchResultEntry":
        return cls(
            entity_type_name=entity.entity_type_name,
            entity_id=entity.id,
            indirect=indirect,
        )


class SearchResult(BaseModel):
    """Search result model."""

    query: str
    entries: List[SearchResultEntry] = []

    def add_entry(self, entry: SearchResultEntry) -> None:
        self.entries.append(entry)

    def entity_type_names(self) -> Set[str]:
        return {entry.entity_type_name for entry in self.entries}

    def entries_for(self, entity_type_name: str) -> List[SearchResultEntry]:
        return [e for e in self.entries if e.entity_type_name == entity_type_name]

    def entry_ids(self) -> List[str]:
        return [entry.entity_id for entry in self.entries]

    def is_empty(self) -> bool:
        return not self.entries

    def __len__(self) -> int:
        return len(self.entries)


@dataclass
class EntityDocument:
    """An entity as written to the index by ``TantivyEntityIndex``."""

    id: str
    entity_type_name: str
    fields: Dict[str, str] = field(default_factory=dict)
    links: List[EntityReference] = field(default_factory=list)
    # Older indexes stored linked entities by bare id instead of by link key
    legacy_links: bool = False

    def reference(self) -> EntityReference:
        return EntityReference(self.id, self.entity_type_name)

    def link_keys(self) -> List[str]:
        if self.legacy_links:
            return [link.id for link in self.links]
        return [str(link) for link in self.links]

    @classmethod
    def from_dict(cls, data: Dict) -> "EntityDocument":
        links = [
            EntityReference(str(link["id"]), link["entity"])
            for link in data.get("links", [])
        ]
        return cls(
            id=str(data["id"]),
            entity_type_name=data["entity"],
            fields={k: str(v) for k, v in (data.get("fields") or {}).items()},
            links=links,
            legacy_links=bool(data.get("legacy_links", False)),
        )
