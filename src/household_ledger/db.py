"""SQLite-backed document store for Household Ledger.

Documents are JSON objects keyed by (collection, id). Each write commits on
its own; there is no multi-document transaction.
"""

import json
import logging
import re
import sqlite3
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Protocol

from .exceptions import BackendUnavailableError, DocumentNotFoundError

logger = logging.getLogger(__name__)

_FIELD_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Collection names
TRANSACTIONS = "transactions"
CATEGORIES = "categories"
HOUSEHOLDS = "households"

Document = dict[str, Any]


class DocumentStore(Protocol):
    """Persistence contract the ledger relies on."""

    def find(
        self,
        collection: str,
        contains: dict[str, Any] | None = None,
        **equals: Any,
    ) -> list[Document]: ...

    def get(self, collection: str, document_id: str) -> Document | None: ...

    def create(self, collection: str, fields: Document) -> str: ...

    def update(self, collection: str, document_id: str, fields: Document) -> None: ...

    def delete(self, collection: str, document_id: str) -> None: ...


def _json_path(field: str) -> str:
    if not _FIELD_RE.match(field):
        raise ValueError(f"Invalid field name: {field!r}")
    return f"$.{field}"


class Database:
    """SQLite document store."""

    def __init__(self, db_path: Path | str):
        """Initialize database connection."""
        self.db_path = db_path
        try:
            self.conn = sqlite3.connect(str(db_path))
        except sqlite3.Error as e:
            raise BackendUnavailableError(f"Cannot open database {db_path}: {e}") from e
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self):
        """Initialize database schema."""
        with self._guard("initialize schema"):
            cursor = self.conn.cursor()
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    collection TEXT NOT NULL,
                    id TEXT NOT NULL,
                    data TEXT NOT NULL,
                    PRIMARY KEY (collection, id)
                )
            """
            )

            # Portion lookups by main transaction are the engine's hot query
            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_documents_main_transaction
                ON documents (collection, json_extract(data, '$.main_transaction_id'))
            """
            )
            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_documents_user
                ON documents (collection, json_extract(data, '$.user_id'))
            """
            )
            self.conn.commit()

    def close(self):
        """Close database connection."""
        self.conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @contextmanager
    def _guard(self, action: str) -> Iterator[None]:
        """Translate storage failures into BackendUnavailableError."""
        try:
            yield
        except sqlite3.Error as e:
            logger.error(f"Database failure during {action}: {e}")
            raise BackendUnavailableError(f"Failed to {action}: {e}") from e

    @staticmethod
    def _row_to_document(row: sqlite3.Row) -> Document:
        document: Document = json.loads(row["data"])
        document["id"] = row["id"]
        return document

    # ========================================================================
    # Reads
    # ========================================================================

    def get(self, collection: str, document_id: str) -> Document | None:
        """Get a document by id, or None if absent."""
        with self._guard(f"read {collection}/{document_id}"):
            cursor = self.conn.cursor()
            cursor.execute(
                "SELECT id, data FROM documents WHERE collection = ? AND id = ?",
                (collection, document_id),
            )
            row = cursor.fetchone()
        return self._row_to_document(row) if row else None

    def find(
        self,
        collection: str,
        contains: dict[str, Any] | None = None,
        **equals: Any,
    ) -> list[Document]:
        """
        Find documents matching every predicate.

        Args:
            collection: Collection name
            contains: Mapping of list field -> value that must be a member
            **equals: Field -> value equality predicates (None matches absent)

        Returns:
            Matching documents in insertion order
        """
        clauses = ["collection = ?"]
        params: list[Any] = [collection]

        for field, value in equals.items():
            path = _json_path(field)
            if value is None:
                clauses.append(f"json_extract(data, '{path}') IS NULL")
            else:
                clauses.append(f"json_extract(data, '{path}') = ?")
                params.append(value)

        for field, value in (contains or {}).items():
            clauses.append(
                f"EXISTS (SELECT 1 FROM json_each(data, '{_json_path(field)}') "
                "WHERE json_each.value = ?)"
            )
            params.append(value)

        sql = (
            "SELECT id, data FROM documents WHERE "
            + " AND ".join(clauses)
            + " ORDER BY rowid"
        )
        with self._guard(f"query {collection}"):
            cursor = self.conn.cursor()
            cursor.execute(sql, params)
            rows = cursor.fetchall()
        return [self._row_to_document(row) for row in rows]

    # ========================================================================
    # Writes
    # ========================================================================

    def create(self, collection: str, fields: Document) -> str:
        """Store a new document and return its generated id."""
        document_id = uuid.uuid4().hex
        body = {k: v for k, v in fields.items() if k != "id" and v is not None}
        with self._guard(f"create in {collection}"):
            cursor = self.conn.cursor()
            cursor.execute(
                "INSERT INTO documents (collection, id, data) VALUES (?, ?, ?)",
                (collection, document_id, json.dumps(body)),
            )
            self.conn.commit()
        logger.debug(f"Created {collection}/{document_id}")
        return document_id

    def update(self, collection: str, document_id: str, fields: Document) -> None:
        """
        Merge fields into an existing document.

        Fields set to None are removed from the document.

        Raises:
            DocumentNotFoundError: If the document doesn't exist
        """
        current = self.get(collection, document_id)
        if current is None:
            raise DocumentNotFoundError(collection, document_id)

        current.pop("id")
        for key, value in fields.items():
            if key == "id":
                continue
            if value is None:
                current.pop(key, None)
            else:
                current[key] = value

        with self._guard(f"update {collection}/{document_id}"):
            cursor = self.conn.cursor()
            cursor.execute(
                "UPDATE documents SET data = ? WHERE collection = ? AND id = ?",
                (json.dumps(current), collection, document_id),
            )
            self.conn.commit()
        logger.debug(f"Updated {collection}/{document_id}")

    def delete(self, collection: str, document_id: str) -> None:
        """Delete a document. Deleting an absent document is a no-op."""
        with self._guard(f"delete {collection}/{document_id}"):
            cursor = self.conn.cursor()
            cursor.execute(
                "DELETE FROM documents WHERE collection = ? AND id = ?",
                (collection, document_id),
            )
            self.conn.commit()
        logger.debug(f"Deleted {collection}/{document_id}")
