"""Tantivy-backed entity index used as the search service's query gateway."""

import json
import logging
import shutil
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import (
    Any,
    Collection,
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Protocol,
    Union,
)

import tantivy

from .indexed_text import format_indexed_text, parse_indexed_text
from .models import EntityDocument, EntityReference
from .terms import parse_query_terms

logger = logging.getLogger(__name__)

# Document fields
FLD_ID = "id"
FLD_ENTITY = "entity"
FLD_ALL = "all"
FLD_LINKS = "links"
# Lower-cased whitespace-separated words of the field values, for term lookups
FLD_WORDS = "words"


class IndexAccessError(Exception):
    """Raised when the index cannot be opened, read or written."""


class IndexGateway(Protocol):
    """Index operations the search service depends on."""

    def search_all_fields(
        self, search_term: str, entity_type_names: Collection[str]
    ) -> List[EntityReference]:
        ...

    def search_links_field(
        self, linked_entity_key: str, entity_type_names: Collection[str]
    ) -> List[EntityReference]:
        ...

    def acquire_searcher(self) -> Any:
        ...

    def release_searcher(self, searcher: Any) -> None:
        ...

    def load_indexed_text(
        self, entity: EntityReference, searcher: Any
    ) -> Optional[str]:
        ...


class TantivyEntityIndex:
    """Entity index stored in Tantivy.

    Each entity is one document: its id and type name as raw tokens, the
    indexed text in ``all``, its words in ``words`` and the link keys of the
    entities it links to in ``links``. Read-only indexes must already exist
    and refuse writes.
    """

    def __init__(
        self,
        index_path: Optional[Union[str, Path]] = None,
        create_new: bool = False,
        read_only: bool = False,
        max_search_results: int = 1000,
        writer_heap_size: int = 50_000_000,
        writer_threads: int = 1,
    ):
        """Initialize the entity index.

        Args:
            index_path: Directory of the index, or None for an in-memory index
            create_new: Whether to create a new index (overwriting existing)
            read_only: Open an existing index for searching only
            max_search_results: Cap on documents returned by a single lookup
            writer_heap_size: Memory budget of the index writer in bytes
            writer_threads: Number of indexing threads
        """
        if create_new and read_only:
            raise ValueError("A read-only index cannot be created")
        self.index_path = Path(index_path) if index_path is not None else None
        self.read_only = read_only
        self.max_search_results = max_search_results
        self._writer_heap_size = writer_heap_size
        self._writer_threads = writer_threads

        self._schema = self._create_schema()
        self._index = self._create_or_open_index(create_new)
        self._writer = None  # Created on demand

        self._searchers_lock = threading.Lock()
        self._open_searchers = 0

    @classmethod
    def from_config(
        cls, config, create_new: bool = False, read_only: bool = False
    ) -> "TantivyEntityIndex":
        return cls(
            config.get_index_path(),
            create_new=create_new,
            read_only=read_only,
            max_search_results=config.max_search_results,
            writer_heap_size=config.writer_heap_size,
            writer_threads=config.writer_threads,
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def _create_schema(self) -> tantivy.Schema:
        """Create the Tantivy schema for entity documents."""
        schema_builder = tantivy.SchemaBuilder()

        # Keys are matched exactly
        schema_builder.add_text_field(FLD_ID, stored=True, tokenizer_name="raw")
        schema_builder.add_text_field(FLD_ENTITY, stored=True, tokenizer_name="raw")

        # Stored indexed text, and the words of its values as whole tokens
        schema_builder.add_text_field(FLD_ALL, stored=True, index_option="position")
        schema_builder.add_text_field(
            FLD_WORDS, stored=False, tokenizer_name="whitespace"
        )

        # One value per linked entity
        schema_builder.add_text_field(FLD_LINKS, stored=True, tokenizer_name="raw")

        return schema_builder.build()

    def _create_or_open_index(self, create_new: bool) -> tantivy.Index:
        """Create or open a Tantivy index."""
        try:
            if self.index_path is None:
                return tantivy.Index(self._schema)
            if self.read_only:
                if not (self.index_path / "meta.json").exists():
                    raise IndexAccessError(
                        f"No entity index found at {self.index_path}"
                    )
                return tantivy.Index.open(str(self.index_path))
            if create_new and self.index_path.exists():
                shutil.rmtree(self.index_path)
            self.index_path.mkdir(parents=True, exist_ok=True)
            if not (self.index_path / "meta.json").exists():
                logger.info(f"Creating new entity index at {self.index_path}")
                return tantivy.Index(self._schema, path=str(self.index_path))
            logger.info(f"Opening existing entity index at {self.index_path}")
            return tantivy.Index.open(str(self.index_path))
        except (OSError, ValueError) as e:
            raise IndexAccessError(
                f"Failed to open index at {self.index_path}: {e}"
            ) from e

    def _get_writer(self):
        if self.read_only:
            raise IndexAccessError(f"Index at {self.index_path} is read-only")
        if self._writer is None:
            self._writer = self._index.writer(
                self._writer_heap_size, self._writer_threads
            )
        return self._writer

    # Writing

    def add_entity(self, document: EntityDocument) -> None:
        """Add one entity document to the index. Call ``commit`` to publish it."""
        doc = tantivy.Document()
        doc.add_text(FLD_ID, document.id)
        doc.add_text(FLD_ENTITY, document.entity_type_name)
        text = format_indexed_text(document.fields)
        doc.add_text(FLD_ALL, text)
        words = " ".join(value for _, value in parse_indexed_text(text))
        doc.add_text(FLD_WORDS, words.lower())
        for link_key in document.link_keys():
            doc.add_text(FLD_LINKS, link_key)

        try:
            self._get_writer().add_document(doc)
        except ValueError as e:
            raise IndexAccessError(
                f"Failed to add {document.reference()} to the index: {e}"
            ) from e

    def add_entities(self, documents: Iterable[EntityDocument]) -> int:
        count = 0
        for document in documents:
            self.add_entity(document)
            count += 1
        self.commit()
        logger.info(f"Indexed {count} entities")
        return count

    def load_entities_file(self, path: Union[str, Path]) -> int:
        """Index the entities listed in a JSON file.

        The file holds a list of objects with ``id``, ``entity``, ``fields``,
        ``links`` and optionally ``legacy_links``.
        """
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise ValueError(f"Expected a list of entities in {path}")
        return self.add_entities(EntityDocument.from_dict(item) for item in data)

    def commit(self) -> None:
        """Commit pending changes and make them visible to new searchers."""
        if self._writer is None:
            return
        try:
            self._writer.commit()
            self._index.reload()
            logger.debug("Committed changes to entity index")
        except ValueError as e:
            raise IndexAccessError(f"Failed to commit changes: {e}") from e

    def close(self) -> None:
        if self._writer is not None:
            self.commit()
            self._writer.wait_merging_threads()
            self._writer = None

    # Searching

    def acquire_searcher(self) -> tantivy.Searcher:
        searcher = self._index.searcher()
        with self._searchers_lock:
            self._open_searchers += 1
        return searcher

    def release_searcher(self, searcher: tantivy.Searcher) -> None:
        with self._searchers_lock:
            self._open_searchers -= 1

    @contextmanager
    def searcher_session(self) -> Iterator[tantivy.Searcher]:
        searcher = self.acquire_searcher()
        try:
            yield searcher
        finally:
            self.release_searcher(searcher)

    def _entity_type_query(self, entity_type_names: Collection[str]) -> tantivy.Query:
        return tantivy.Query.boolean_query(
            [
                (
                    tantivy.Occur.Should,
                    tantivy.Query.term_query(self._schema, FLD_ENTITY, name),
                )
                for name in sorted(entity_type_names)
            ]
        )

    def _search(self, query: tantivy.Query) -> List[EntityReference]:
        with self.searcher_session() as searcher:
            try:
                hits = searcher.search(query, self.max_search_results).hits
                results = []
                for _score, doc_address in hits:
                    doc = searcher.doc(doc_address)
                    results.append(
                        EntityReference(
                            doc.get_first(FLD_ID),
                            doc.get_first(FLD_ENTITY),
                            raw_text=doc.get_first(FLD_ALL),
                        )
                    )
                return results
            except (OSError, ValueError) as e:
                raise IndexAccessError(f"Index search failed: {e}") from e

    def search_all_fields(
        self, search_term: str, entity_type_names: Collection[str]
    ) -> List[EntityReference]:
        """Find entities of the given types containing any term of ``search_term``."""
        terms = parse_query_terms(search_term)
        if not terms or not entity_type_names:
            return []

        terms_query = tantivy.Query.boolean_query(
            [
                (
                    tantivy.Occur.Should,
                    tantivy.Query.regex_query(self._schema, FLD_WORDS, term.regex),
                )
                for term in terms
            ]
        )
        query = tantivy.Query.boolean_query(
            [
                (tantivy.Occur.Must, terms_query),
                (tantivy.Occur.Must, self._entity_type_query(entity_type_names)),
            ]
        )
        results = self._search(query)
        logger.debug(
            f"All fields search for '{search_term}' in {sorted(entity_type_names)} "
            f"returned {len(results)} entities"
        )
        return results

    def search_links_field(
        self, linked_entity_key: str, entity_type_names: Collection[str]
    ) -> List[EntityReference]:
        """Find entities of the given types linking to ``linked_entity_key``."""
        if not entity_type_names:
            return []
        query = tantivy.Query.boolean_query(
            [
                (
                    tantivy.Occur.Must,
                    tantivy.Query.term_query(
                        self._schema, FLD_LINKS, str(linked_entity_key)
                    ),
                ),
                (tantivy.Occur.Must, self._entity_type_query(entity_type_names)),
            ]
        )
        return self._search(query)

    def _entity_lookup_query(self, entity: EntityReference) -> tantivy.Query:
        """Query matching the document of one entity by id and type name."""
        return tantivy.Query.boolean_query(
            [
                (
                    tantivy.Occur.Must,
                    tantivy.Query.term_query(self._schema, FLD_ID, entity.id),
                ),
                (
                    tantivy.Occur.Must,
                    tantivy.Query.term_query(
                        self._schema, FLD_ENTITY, entity.entity_type_name
                    ),
                ),
            ]
        )

    def load_indexed_text(
        self, entity: EntityReference, searcher: tantivy.Searcher
    ) -> Optional[str]:
        """Load the text that was indexed for ``entity``."""
        try:
            hits = searcher.search(self._entity_lookup_query(entity), 1).hits
            if not hits:
                logger.warning(f"No result found for {entity}")
                return None
            doc = searcher.doc(hits[0][1])
            return doc.get_first(FLD_ALL)
        except (OSError, ValueError) as e:
            raise IndexAccessError(
                f"Failed to load indexed text for {entity}: {e}"
            ) from e

    def get_stats(self) -> Dict[str, Any]:
        """Get statistics about the entity index."""
        with self.searcher_session() as searcher:
            total_docs = searcher.num_docs
            entity_types: Dict[str, int] = {}
            if total_docs:
                hits = searcher.search(tantivy.Query.all_query(), total_docs).hits
                for _score, doc_address in hits:
                    name = searcher.doc(doc_address).get_first(FLD_ENTITY)
                    entity_types[name] = entity_types.get(name, 0) + 1

        with self._searchers_lock:
            open_searchers = self._open_searchers

        return {
            "total_documents": total_docs,
            "entity_types": entity_types,
            "index_path": str(self.index_path) if self.index_path else None,
            "open_searchers": open_searchers,
        }
