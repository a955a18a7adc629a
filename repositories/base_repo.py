"""
repositories/base_repo.py
-------------------------
Generic CRUD, filtering, and pagination over a single table.

Domain repositories do not inherit from this class; each one holds a
BaseRepository configured with its table, its read projection, and the
declared lists of columns it may insert and update. All WHERE and SET
clauses in the project are built here so parameter binding lives in one
place: every present value gets exactly one ``%s`` placeholder, appended
in the same order as the value.
"""

import math
import re
import uuid
from dataclasses import asdict, dataclass, is_dataclass
from typing import Any, Callable, Generic, Mapping, Optional, Sequence, TypeVar

from db.connection import execute_query, execute_write
from utils.errors import RepositoryError
from utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")


# ── PAGINATION ────────────────────────────────────────────

@dataclass
class Pagination:
    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        total_pages = math.ceil(total / limit) if limit > 0 else 0
        return cls(page=page, limit=limit, total=total, total_pages=total_pages)


@dataclass
class PaginatedResult(Generic[T]):
    """The `{data, pagination}` envelope returned by every paged listing."""
    data: list[T]
    pagination: Pagination

    def to_dict(self) -> dict:
        return {
            "data": [asdict(d) if is_dataclass(d) else d for d in self.data],
            "pagination": {
                "page": self.pagination.page,
                "limit": self.pagination.limit,
                "total": self.pagination.total,
                "totalPages": self.pagination.total_pages,
            },
        }


def page_offset(page: int, limit: int) -> int:
    """Row offset for a 1-based page number. Callers validate page >= 1."""
    return (page - 1) * limit


# ── CLAUSE BUILDERS ───────────────────────────────────────

def _check_identifier(name: str) -> str:
    if not _IDENTIFIER.match(name):
        raise ValueError(f"Invalid column name: {name!r}")
    return name


def build_where_clause(filters: Optional[Mapping[str, Any]]) -> tuple[str, list]:
    """
    Build an exact-match AND conjunction from a flat filter map.

    Keys are column names; None values are skipped (not turned into IS NULL).

    Returns:
        ("WHERE a = %s AND b = %s", [va, vb]) or ("", []) when nothing is present.
    """
    conditions: list[str] = []
    params: list = []
    for key, value in (filters or {}).items():
        if value is None:
            continue
        conditions.append(f"{_check_identifier(key)} = %s")
        params.append(value)
    clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""
    return clause, params


def build_set_clause(
    patch: Mapping[str, Any], allowed_fields: Sequence[str]
) -> tuple[str, list]:
    """
    Build a `col = %s, ...` list from the declared fields present in a patch.

    Returns:
        (set_clause, params); set_clause is "" when no declared field is present.
    """
    assignments: list[str] = []
    params: list = []
    for field in allowed_fields:
        value = patch.get(field)
        if value is None:
            continue
        assignments.append(f"{field} = %s")
        params.append(value)
    return ", ".join(assignments), params


def as_values(data: Any) -> dict:
    """Accept either a dataclass shape or a plain mapping."""
    if is_dataclass(data) and not isinstance(data, type):
        return asdict(data)
    return dict(data or {})


class BaseRepository(Generic[T]):
    """
    Table-level CRUD helper shared by every domain repository.

    Args:
        table: Table name.
        select_fields: Explicit read projection (no SELECT *).
        row_factory: Converts a row dict into the entity type.
        insert_fields: Columns a create may write, besides `id`.
        update_fields: Columns an update may write.
        touch_updated_at: Whether updates also set `updated_at = NOW()`.
    """

    def __init__(
        self,
        table: str,
        select_fields: Sequence[str],
        row_factory: Callable[[dict], T],
        insert_fields: Sequence[str],
        update_fields: Sequence[str] = (),
        touch_updated_at: bool = True,
    ):
        self.table = _check_identifier(table)
        self.select_fields = tuple(_check_identifier(f) for f in select_fields)
        self.row_factory = row_factory
        self.insert_fields = tuple(_check_identifier(f) for f in insert_fields)
        self.update_fields = tuple(_check_identifier(f) for f in update_fields)
        self.touch_updated_at = touch_updated_at

    @property
    def select_sql(self) -> str:
        return ", ".join(self.select_fields)

    @staticmethod
    def generate_id() -> str:
        return str(uuid.uuid4())

    # ── READ ──────────────────────────────────────────────

    def find_by_id(self, entity_id: str) -> Optional[T]:
        sql = f"SELECT {self.select_sql} FROM {self.table} WHERE id = %s;"
        rows = execute_query(sql, [entity_id])
        return self.row_factory(rows[0]) if rows else None

    def find_all(self, filters: Optional[Mapping[str, Any]] = None) -> list[T]:
        """All rows matching the filters, newest first."""
        clause, params = build_where_clause(filters)
        sql = f"SELECT {self.select_sql} FROM {self.table} {clause} ORDER BY created_at DESC;"
        return [self.row_factory(r) for r in execute_query(sql, params)]

    def find_with_pagination(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        page: int = 1,
        limit: int = 20,
    ) -> PaginatedResult[T]:
        """
        One page of rows matching the filters, newest first.

        The COUNT query and the data query share the same WHERE clause and
        parameters. No clamping is applied to page or limit.
        """
        clause, params = build_where_clause(filters)

        count_sql = f"SELECT COUNT(*) AS total FROM {self.table} {clause};"
        total = int(execute_query(count_sql, params)[0]["total"])

        data_sql = f"""
            SELECT {self.select_sql}
            FROM {self.table}
            {clause}
            ORDER BY created_at DESC
            LIMIT %s OFFSET %s;
        """
        rows = execute_query(data_sql, params + [limit, page_offset(page, limit)])
        return PaginatedResult(
            data=[self.row_factory(r) for r in rows],
            pagination=Pagination.build(page, limit, total),
        )

    def exists(self, entity_id: str) -> bool:
        sql = f"SELECT 1 FROM {self.table} WHERE id = %s LIMIT 1;"
        return len(execute_query(sql, [entity_id])) > 0

    def count(self, filters: Optional[Mapping[str, Any]] = None) -> int:
        clause, params = build_where_clause(filters)
        sql = f"SELECT COUNT(*) AS total FROM {self.table} {clause};"
        return int(execute_query(sql, params)[0]["total"])

    # ── CREATE ────────────────────────────────────────────

    def create(self, values: Mapping[str, Any]) -> T:
        """
        Insert a new row with a freshly generated id, then re-read it.

        Only declared insert fields are written; a key outside that list is
        a programming error and raises ValueError before any SQL runs.

        Raises:
            RepositoryError: If the row cannot be read back after the insert.
        """
        unknown = set(values) - set(self.insert_fields)
        if unknown:
            raise ValueError(f"Unexpected fields for {self.table}: {sorted(unknown)}")

        entity_id = self.generate_id()
        columns = ["id"]
        params: list = [entity_id]
        for field in self.insert_fields:
            value = values.get(field)
            if value is None:
                continue
            columns.append(field)
            params.append(value)

        placeholders = ", ".join(["%s"] * len(columns))
        sql = f"INSERT INTO {self.table} ({', '.join(columns)}) VALUES ({placeholders});"
        execute_write(sql, params)

        created = self.find_by_id(entity_id)
        if created is None:
            raise RepositoryError(f"Failed to read back new {self.table} row {entity_id}")
        logger.info(f"Created {self.table} #{entity_id}")
        return created

    # ── UPDATE ────────────────────────────────────────────

    def update(self, entity_id: str, patch: Mapping[str, Any]) -> Optional[T]:
        """
        Apply the present declared fields of a patch, then re-read the row.

        A patch with no present fields issues no UPDATE and returns the
        current entity (or None if it does not exist).
        """
        set_clause, params = build_set_clause(patch, self.update_fields)
        if not set_clause:
            return self.find_by_id(entity_id)

        if self.touch_updated_at:
            set_clause += ", updated_at = NOW()"
        sql = f"UPDATE {self.table} SET {set_clause} WHERE id = %s;"
        execute_write(sql, params + [entity_id])
        return self.find_by_id(entity_id)

    def soft_delete(self, entity_id: str) -> Optional[T]:
        """Clear the active flag; the row stays readable by id."""
        return self.update(entity_id, {"is_active": False})

    # ── DELETE ────────────────────────────────────────────

    def delete(self, entity_id: str) -> bool:
        sql = f"DELETE FROM {self.table} WHERE id = %s;"
        deleted = execute_write(sql, [entity_id]) > 0
        if deleted:
            logger.info(f"Deleted {self.table} #{entity_id}")
        return deleted


def to_float(value: Any) -> Optional[float]:
    """NUMERIC columns come back as Decimal; entities carry floats."""
    return float(value) if value is not None else None
