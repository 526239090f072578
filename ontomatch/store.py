"""
Knowledge store contract and an in-memory reference store.

QueryEngine only needs three operations from a store:

    all_records()            - every record, used as the search domain
    add_records(records)     - batched addition
    remove_records(records)  - batched removal

OntologyStore implements them over an insertion-ordered set of records,
which is enough for scripts and tests. Anything richer (persistence,
reasoning) belongs to a real ontology backend.
"""

from typing import Any, Dict, Iterable, Iterator, List, Optional, Protocol

from .logging import logger
from .model import ClassExpression, SubClassOf


class KnowledgeStore(Protocol):
    """Structural type of any store QueryEngine can work against."""

    def all_records(self) -> Iterable[Any]:
        ...

    def add_records(self, records: List[Any]) -> None:
        ...

    def remove_records(self, records: List[Any]) -> None:
        ...


class OntologyStore:
    """
    In-memory store of ontology records.

    Records are kept in insertion order without duplicates; adding a
    record that is already present, or removing one that is absent, is a
    no-op.

    Example:
        store = OntologyStore([
            SubClassOf(Class("kinase"), Class("enzyme")),
        ], iri="http://example.org/enzymes.owl")

        len(store)                                       # => 1
        SubClassOf(Class("kinase"), Class("enzyme")) in store  # => True
    """

    def __init__(self, records: Iterable[Any] = (), iri: Optional[str] = None,
                 version_iri: Optional[str] = None):
        self.iri = iri
        self.version_iri = version_iri
        self._records: Dict[Any, None] = dict.fromkeys(records)

    def all_records(self) -> List[Any]:
        """Return a snapshot list of every record."""
        return list(self._records)

    def add_records(self, records: Iterable[Any]) -> None:
        """Add records, ignoring any already present."""
        added = 0
        for record in records:
            if record not in self._records:
                self._records[record] = None
                added += 1
        logger.debug("Added %d records to %r", added, self)

    def remove_records(self, records: Iterable[Any]) -> None:
        """Remove records, ignoring any not present."""
        removed = 0
        for record in records:
            if record in self._records:
                del self._records[record]
                removed += 1
        logger.debug("Removed %d records from %r", removed, self)

    def metadata(self) -> Dict[str, str]:
        """Return the ontology IRI and, if set, its version IRI."""
        data = {"iri": self.iri}
        if self.version_iri is not None:
            data["version_iri"] = self.version_iri
        return data

    def super_classes(self, cls: ClassExpression) -> List[ClassExpression]:
        """Asserted direct super classes of ``cls``, in store order."""
        return [
            record.super_class
            for record in self._records
            if isinstance(record, SubClassOf) and record.sub_class == cls
        ]

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record: Any) -> bool:
        return record in self._records

    def __iter__(self) -> Iterator[Any]:
        """Iterate over a snapshot of the records."""
        return iter(list(self._records))

    def __repr__(self) -> str:
        if self.iri:
            return f"OntologyStore({self.iri}, {len(self._records)} records)"
        return f"OntologyStore({len(self._records)} records)"
