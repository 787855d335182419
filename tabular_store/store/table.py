"""
Tabular Store — in-memory keyed collection of records.

Behavioral Contract:
- Records are plain dicts keyed by their identifier field.
- Every record held by the store has a non-empty identifier equal to its key.
- Nothing returned by the store aliases internal state (deep copies both ways).
- "Not found" is a normal result (None / False), never an exception.
- Not internally synchronized. Callers sharing an instance across threads
  must hold one lock around each operation.
"""

import copy
import logging
import re
import time
from typing import Any, Dict, Iterator, List, Mapping, Optional, Union
from uuid import uuid4

from pydantic import ValidationError

from tabular_store.models.query import QueryOptions, SortOrder

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


class StoreError(Exception):
    """Base class for store errors."""
    pass


class DuplicateKeyError(StoreError):
    """Raised by a strict insert when the identifier is already stored."""

    def __init__(self, record_id: str):
        super().__init__(f"Record with id {record_id!r} already exists")
        self.record_id = record_id


class InvalidQueryError(StoreError):
    """Raised when query options are malformed or values cannot be sorted."""
    pass


def make_id(prefix: str = "") -> str:
    """Random token plus a millisecond timestamp, e.g. ``user_3f9a0c1b2d4e-18b2f6c1a2``."""
    return f"{prefix}{uuid4().hex[:12]}-{int(time.time() * 1000):x}"


class TabularStore:
    """
    In-memory table of records.

    Duplicate identifiers are rejected by ``insert``; ``upsert`` is the
    explicit overwrite variant.
    """

    def __init__(self, id_field: str = "id", id_prefix: str = ""):
        self.id_field = id_field
        self.id_prefix = id_prefix
        self._rows: Dict[str, Record] = {}

    def __len__(self) -> int:
        return len(self._rows)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._rows

    def __iter__(self) -> Iterator[Record]:
        return iter(self.query())

    def count(self) -> int:
        """Number of records currently stored."""
        return len(self._rows)

    # --- Writes ---

    def insert(self, record: Mapping[str, Any]) -> Record:
        """
        Store a copy of ``record``, generating an identifier if it has none.

        Raises DuplicateKeyError if the record's identifier is already taken.
        """
        row = self._prepare(record)
        record_id = row[self.id_field]
        if record_id in self._rows:
            raise DuplicateKeyError(record_id)
        self._rows[record_id] = row
        return copy.deepcopy(row)

    def upsert(self, record: Mapping[str, Any]) -> Record:
        """Store a copy of ``record``, replacing any existing record with its id."""
        row = self._prepare(record)
        record_id = row[self.id_field]
        if record_id in self._rows:
            logger.debug("Overwriting record %s", record_id)
        self._rows[record_id] = row
        return copy.deepcopy(row)

    def update(self, record_id: str, patch: Mapping[str, Any]) -> Optional[Record]:
        """
        Shallow-merge ``patch`` into the stored record.

        Returns the updated record, or None (with no mutation) if absent.
        The identifier field of the patch is ignored.
        """
        existing = self._rows.get(record_id)
        if existing is None:
            return None
        changes = {k: v for k, v in patch.items() if k != self.id_field}
        if len(changes) != len(patch):
            logger.debug("Ignoring identifier field in patch for %s", record_id)
        updated = {**existing, **copy.deepcopy(changes)}
        self._rows[record_id] = updated
        return copy.deepcopy(updated)

    def delete(self, record_id: str) -> bool:
        """Remove a record. Returns False if it was not present."""
        if record_id in self._rows:
            del self._rows[record_id]
            return True
        return False

    def clear(self) -> None:
        """Remove all records."""
        self._rows.clear()

    def _prepare(self, record: Mapping[str, Any]) -> Record:
        row = copy.deepcopy(dict(record))
        if row.get(self.id_field) in (None, ""):
            row[self.id_field] = make_id(self.id_prefix)
        return row

    # --- Reads ---

    def get(self, record_id: str) -> Optional[Record]:
        """Copy of the record for ``record_id``, or None."""
        row = self._rows.get(record_id)
        return copy.deepcopy(row) if row is not None else None

    def query(
        self, options: Union[QueryOptions, Mapping[str, Any], None] = None
    ) -> List[Record]:
        """
        Filter, sort and paginate a snapshot of the store.

        Steps: copy all records, keep those matching every filter field,
        stable-sort by ``sort_by``, then slice ``[offset:offset + limit]``.
        """
        opts = self._coerce_options(options)
        rows = [copy.deepcopy(r) for r in self._rows.values()]

        if opts.filter:
            rows = [r for r in rows if self._matches(r, opts.filter)]

        if opts.sort_by:
            rows = self._sorted(rows, opts.sort_by, opts.sort_order)

        start = opts.offset
        end = len(rows) if opts.limit is None else start + opts.limit
        return rows[start:end]

    @staticmethod
    def _coerce_options(
        options: Union[QueryOptions, Mapping[str, Any], None]
    ) -> QueryOptions:
        if options is None:
            return QueryOptions()
        if isinstance(options, QueryOptions):
            return options
        try:
            return QueryOptions.model_validate(dict(options))
        except ValidationError as e:
            raise InvalidQueryError(str(e)) from e

    @staticmethod
    def _matches(row: Record, criteria: Mapping[str, Any]) -> bool:
        for field, expected in criteria.items():
            actual = row.get(field)
            if isinstance(expected, re.Pattern):
                if not isinstance(actual, str) or not expected.search(actual):
                    return False
            elif callable(expected):
                try:
                    if not expected(actual):
                        return False
                except Exception as e:
                    # A failing predicate only excludes this row
                    logger.debug("Filter predicate on %r raised %r", field, e)
                    return False
            elif actual != expected:
                return False
        return True

    @staticmethod
    def _sorted(rows: List[Record], field: str, order: SortOrder) -> List[Record]:
        present = [r for r in rows if r.get(field) is not None]
        missing = [r for r in rows if r.get(field) is None]
        try:
            # sorted() keeps ties in their original order even with reverse=True
            present = sorted(
                present,
                key=lambda r: r[field],
                reverse=order == SortOrder.DESC,
            )
        except TypeError as e:
            raise InvalidQueryError(f"Cannot sort by {field!r}: {e}") from e
        return present + missing
