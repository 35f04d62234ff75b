"""Pure Python in-memory database for unit testing."""

import asyncio
import copy
from datetime import UTC, datetime
from typing import Any

from src.core.db_client import DatabaseError, RecordNotFoundError


class InMemoryDBClient:
    """Pure Python in-memory database for unit testing.

    Provides a simple in-memory implementation of the db_client operations
    without requiring SQLite. Supports basic CRUD operations, filtered bulk
    updates and simple filtering/sorting.

    Failures can be injected per operation name through ``fail_on``, e.g.
    ``db.fail_on.add("update_records")``, or for one collection only through
    ``db.fail_on.add("create_record:credentials")``.
    """

    def __init__(self):
        """Initialize empty in-memory database."""
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._insert_order: dict[tuple[str, str], int] = {}
        self._id_counter = 1000
        self.fail_on: set[str] = set()
        self.calls: list[tuple[str, str]] = []

    def _track(self, operation: str, collection: str) -> None:
        self.calls.append((operation, collection))
        if operation in self.fail_on or f"{operation}:{collection}" in self.fail_on:
            raise DatabaseError(f"Injected failure: {operation} on {collection}")

    @staticmethod
    def _now() -> str:
        return datetime.now(UTC).isoformat().replace("+00:00", "Z")

    def writes(self) -> list[tuple[str, str]]:
        """Calls that would have mutated the store."""
        return [call for call in self.calls if call[0] in {"create_record", "update_records", "delete_record"}]

    async def create_record(self, collection: str, data: dict[str, Any]) -> dict[str, Any]:
        """Create a new record in the specified collection.

        Args:
            collection: Name of the collection
            data: Record data to store

        Returns:
            Created record with id, created, and updated timestamps

        Raises:
            DatabaseError: If collection access fails
        """
        if not isinstance(data, dict):
            raise DatabaseError(f"Data must be a dictionary, got {type(data)}")
        self._track("create_record", collection)

        records = self._collections.setdefault(collection, {})

        # Generate ID and timestamps
        record_id = str(self._id_counter)
        self._id_counter += 1
        now = self._now()

        record = {"id": record_id, "created": now, "updated": now, **data}
        records[record["id"]] = record
        self._insert_order[(collection, record["id"])] = self._id_counter

        return copy.deepcopy(record)

    async def get_record(self, collection: str, record_id: str) -> dict[str, Any]:
        """Get a record by ID from the specified collection.

        Raises:
            RecordNotFoundError: If record not found
            DatabaseError: For other failures
        """
        if not isinstance(record_id, str):
            raise DatabaseError(f"Record ID must be a string, got {type(record_id)}")
        self._track("get_record", collection)

        record = self._collections.get(collection, {}).get(record_id)
        if record is None:
            raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")
        return copy.deepcopy(record)

    async def update_records(
        self,
        collection: str,
        filter_query: str,
        data: dict[str, Any],
    ) -> list[dict[str, Any]]:
        """Update every record matching the filter.

        Returns:
            Updated records; empty when nothing matched

        Raises:
            DatabaseError: For an empty payload or filter
        """
        if not data:
            raise DatabaseError("Empty update payload")
        if not filter_query:
            raise DatabaseError("Refusing to update without a filter")
        self._track("update_records", collection)

        # Add small delay to ensure updated timestamp differs from created
        await asyncio.sleep(0.001)

        updated = []
        for record in self._collections.get(collection, {}).values():
            if self._parse_filter(filter_query, record):
                record.update(data)
                record["updated"] = self._now()
                updated.append(copy.deepcopy(record))
        return updated

    async def update_record(self, collection: str, record_id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Update an existing record.

        Raises:
            RecordNotFoundError: If record not found
            DatabaseError: For other failures
        """
        if not isinstance(record_id, str):
            raise DatabaseError(f"Record ID must be a string, got {type(record_id)}")
        records = await self.update_records(collection, f'id = "{record_id}"', data)
        if not records:
            raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")
        return records[0]

    async def delete_record(self, collection: str, record_id: str) -> None:
        """Delete a record from the collection.

        Raises:
            RecordNotFoundError: If record not found
        """
        if not isinstance(record_id, str):
            raise DatabaseError(f"Record ID must be a string, got {type(record_id)}")
        self._track("delete_record", collection)

        records = self._collections.get(collection, {})
        if record_id not in records:
            raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")
        del records[record_id]

    async def list_records(
        self,
        collection: str,
        page: int = 1,
        per_page: int = 50,
        filter_query: str = "",
        sort: str = "-created",
    ) -> list[dict[str, Any]]:
        """List records from the collection with optional filtering and sorting.

        Args:
            collection: Name of the collection
            page: Page number (1-indexed)
            per_page: Number of records per page
            filter_query: Filter expression (supports =, ~, !=)
            sort: Sort field (prefix with - for descending)

        Returns:
            List of matching records (paginated)
        """
        self._track("list_records", collection)

        records = list(self._collections.get(collection, {}).values())

        if filter_query:
            records = [r for r in records if self._parse_filter(filter_query, r)]

        if sort:
            records = self._apply_sort(collection, records, sort)

        start_idx = (page - 1) * per_page
        return [copy.deepcopy(r) for r in records[start_idx : start_idx + per_page]]

    async def get_first_record(self, collection: str, filter_query: str) -> dict[str, Any] | None:
        """Get the first matching record or None."""
        records = await self.list_records(collection, filter_query=filter_query)
        return records[0] if records else None

    def _parse_filter(self, filter_str: str, record: dict[str, Any]) -> bool:
        """Evaluate filter expression against a record.

        Supports:
        - field = "value" (exact match)
        - field ~ "substring" (case-insensitive contains)
        - field != "value" (not equal)
        - Multiple conditions with && (AND)

        Raises:
            DatabaseError: For invalid filter syntax
        """
        if not filter_str:
            return True

        if "&&" in filter_str:
            conditions = [c.strip() for c in filter_str.split("&&")]
            return all(self._parse_filter(cond, record) for cond in conditions)

        for operator in ("!=", "~", "="):
            if operator not in filter_str:
                continue
            field, value = (part.strip() for part in filter_str.split(operator, 1))
            value = value.strip("'\"")
            actual = record.get(field)

            if operator == "!=":
                return str(actual) != value
            if operator == "~":
                return value.lower() in str(actual or "").lower()
            if value.lower() in ("true", "false"):
                return actual == (value.lower() == "true")
            return actual is not None and str(actual) == value

        raise DatabaseError(f"Invalid filter syntax (no operator found): {filter_str}")

    def _apply_sort(self, collection: str, records: list[dict], sort: str) -> list[dict]:
        """Sort records by field, newest insert winning ties."""
        reverse = sort.startswith("-")
        field = sort.lstrip("-+")

        return sorted(
            records,
            key=lambda r: (str(r.get(field) or ""), self._insert_order.get((collection, r["id"]), 0)),
            reverse=reverse,
        )

    def seed(self, collection: str, record: dict[str, Any]) -> dict[str, Any]:
        """Insert a record as-is, bypassing id generation and failure injection."""
        now = self._now()
        stored = {"created": now, "updated": now, **record}
        self._collections.setdefault(collection, {})[stored["id"]] = stored
        self._id_counter += 1
        self._insert_order[(collection, stored["id"])] = self._id_counter
        return copy.deepcopy(stored)
