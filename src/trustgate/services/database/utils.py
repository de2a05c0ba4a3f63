"""Generic database utility functions for Supabase interactions."""

import logging
from typing import Any
from uuid import UUID

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from src.trustgate.services.database.connection import get_supabase_admin_client
from src.trustgate.services.database.exceptions import DuplicateRecordError, StoreUnavailableError

logger = logging.getLogger(__name__)

# PostgreSQL unique_violation
UNIQUE_VIOLATION = "23505"

COMPARISON_OPERATORS = frozenset({"gt", "gte", "lt", "lte", "neq"})

Comparison = tuple[str, str, Any]


class SupabaseQueryBuilder:
    """Helper class for building and executing Supabase queries."""

    def __init__(self, client: Client | None = None) -> None:
        """
        Initialize query builder.

        Args:
            client: Supabase client instance (uses the service-role client if None)
        """
        self.client = client or get_supabase_admin_client()

    def _execute(self, query: Any, action: str, table: str) -> Any:
        """
        Execute a PostgREST query, translating transport and API failures.

        Raises:
            DuplicateRecordError: If the statement violated a unique constraint
            StoreUnavailableError: For any other API or network failure
        """
        try:
            return query.execute()
        except APIError as e:
            if getattr(e, "code", None) == UNIQUE_VIOLATION:
                raise DuplicateRecordError(f"Duplicate record in {table}: {e}") from e
            logger.error(
                f"Failed to {action} in {table}: {e}",
                extra={"error_type": "store_api_error", "table": table},
            )
            raise StoreUnavailableError(f"Store rejected {action} on {table}") from e
        except httpx.HTTPError as e:
            logger.error(
                f"Store unreachable during {action} in {table}: {e}",
                extra={"error_type": "store_unreachable", "table": table},
            )
            raise StoreUnavailableError(f"Store unreachable during {action} on {table}") from e

    @staticmethod
    def _apply_filters(
        query: Any,
        filters: dict[str, Any] | None = None,
        comparisons: list[Comparison] | None = None,
    ) -> Any:
        if filters:
            for field, value in filters.items():
                query = query.eq(field, value)

        for field, operator, value in comparisons or []:
            if operator not in COMPARISON_OPERATORS:
                raise ValueError(f"Unsupported comparison operator: {operator}")
            query = getattr(query, operator)(field, value)

        return query

    def get_by_id(
        self, table: str, record_id: UUID | str, columns: str = "*"
    ) -> dict[str, Any] | None:
        """
        Fetch a single record by ID.

        Args:
            table: Table name
            record_id: Record UUID or ID
            columns: Columns to select (default: "*")

        Returns:
            Record dictionary or None if not found
        """
        query = self.client.table(table).select(columns).eq("id", str(record_id))
        response = self._execute(query, "select", table)
        return response.data[0] if response.data else None

    def get_by_field(
        self, table: str, field: str, value: Any, columns: str = "*"
    ) -> dict[str, Any] | None:
        """
        Fetch a single record by field value.

        Args:
            table: Table name
            field: Field name to filter by
            value: Field value
            columns: Columns to select (default: "*")

        Returns:
            First matching record or None

        Example:
            >>> builder = SupabaseQueryBuilder()
            >>> user = builder.get_by_field("users", "email", "user@example.com")
        """
        query = self.client.table(table).select(columns).eq(field, value)
        response = self._execute(query, "select", table)
        return response.data[0] if response.data else None

    def list_records(
        self,
        table: str,
        columns: str = "*",
        filters: dict[str, Any] | None = None,
        comparisons: list[Comparison] | None = None,
        order_by: str | None = None,
        order_desc: bool = True,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """
        List records with optional filtering, ordering, and pagination.

        Args:
            table: Table name
            columns: Columns to select (default: "*")
            filters: Dictionary of field:value pairs for equality filtering
            comparisons: (field, operator, value) triples, operator one of
                gt/gte/lt/lte/neq
            order_by: Column to order by
            order_desc: Order descending (default: True)
            limit: Maximum records to return
            offset: Number of records to skip

        Returns:
            List of record dictionaries

        Example:
            >>> builder = SupabaseQueryBuilder()
            >>> codes = builder.list_records(
            ...     "verification_codes",
            ...     filters={"email": "a@b.com", "used": False},
            ...     comparisons=[("expires_at", "gt", now)],
            ...     order_by="created_at",
            ...     limit=1,
            ... )
        """
        query = self._apply_filters(self.client.table(table).select(columns), filters, comparisons)

        if order_by:
            query = query.order(order_by, desc=order_desc)

        if limit is not None:
            query = query.range(offset, offset + limit - 1)

        response = self._execute(query, "list", table)
        return response.data

    def count_records(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        comparisons: list[Comparison] | None = None,
    ) -> int:
        """
        Count records with optional filtering.

        Args:
            table: Table name
            filters: Dictionary of field:value pairs for filtering
            comparisons: (field, operator, value) triples

        Returns:
            Total count of matching records
        """
        query = self._apply_filters(
            self.client.table(table).select("*", count="exact"), filters, comparisons
        )
        response = self._execute(query, "count", table)
        return response.count or 0

    def insert_record(self, table: str, data: dict[str, Any]) -> dict[str, Any] | None:
        """
        Insert a single record.

        Args:
            table: Table name
            data: Record data dictionary

        Returns:
            Inserted record dictionary or None if failed

        Raises:
            DuplicateRecordError: If a unique constraint is violated
            StoreUnavailableError: If the store cannot be reached
        """
        response = self._execute(self.client.table(table).insert(data), "insert", table)
        return response.data[0] if response.data else None

    def update_by_filter(
        self, table: str, filters: dict[str, Any], data: dict[str, Any]
    ) -> list[dict[str, Any]]:
        """
        Update records matching filters in a single statement.

        Because the filter and the write happen in one UPDATE, including the
        current value of a flag in ``filters`` gives compare-and-set semantics:
        only one concurrent caller will see the row come back.

        Args:
            table: Table name
            filters: Dictionary of field:value pairs for filtering
            data: Fields to update

        Returns:
            List of updated record dictionaries (empty if nothing matched)

        Example:
            >>> builder = SupabaseQueryBuilder()
            >>> won = builder.update_by_filter(
            ...     "verification_codes",
            ...     {"id": code_id, "used": False},
            ...     {"used": True},
            ... )
        """
        query = self._apply_filters(self.client.table(table).update(data), filters)
        response = self._execute(query, "update", table)
        return response.data


def get_db() -> SupabaseQueryBuilder:
    """FastAPI dependency returning a query builder bound to the service-role client."""
    return SupabaseQueryBuilder(get_supabase_admin_client())
