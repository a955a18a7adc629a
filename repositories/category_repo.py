"""
repositories/category_repo.py
-----------------------------
Data access layer for item categories.
"""

from dataclasses import asdict, fields
from typing import Optional

from db.connection import execute_query
from models.category import Category, CategoryCreate, CategoryUpdate
from repositories.base_repo import BaseRepository, as_values
from utils.logger import get_logger

logger = get_logger(__name__)

CATEGORY_FIELDS = (
    "id", "name", "description", "icon", "color", "is_active", "created_at", "updated_at",
)
CATEGORY_INSERT_FIELDS = tuple(f.name for f in fields(CategoryCreate))
CATEGORY_UPDATE_FIELDS = tuple(f.name for f in fields(CategoryUpdate))

_ITEM_COUNT_QUERY = """
    SELECT {category_columns}, COUNT(i.id) AS item_count
    FROM categories c
    LEFT JOIN items i ON i.category_id = c.id AND i.is_active = TRUE
    WHERE c.is_active = TRUE
    GROUP BY c.id
""".format(category_columns=", ".join(f"c.{f}" for f in CATEGORY_FIELDS))


class CategoryRepository:
    """Repository for CRUD operations on the categories table."""

    def __init__(self):
        self.base = BaseRepository(
            "categories",
            CATEGORY_FIELDS,
            self._row_to_category,
            insert_fields=CATEGORY_INSERT_FIELDS,
            update_fields=CATEGORY_UPDATE_FIELDS,
        )

    # ── CREATE ────────────────────────────────────────────

    def create(self, data: CategoryCreate) -> Category:
        return self.base.create(as_values(data))

    # ── READ ──────────────────────────────────────────────

    def find_by_id(self, category_id: str) -> Optional[Category]:
        return self.base.find_by_id(category_id)

    def find_by_name(self, name: str) -> Optional[Category]:
        sql = f"SELECT {self.base.select_sql} FROM categories WHERE name = %s;"
        rows = execute_query(sql, [name])
        return self._row_to_category(rows[0]) if rows else None

    def find_active(self) -> list[Category]:
        """Active categories in alphabetical order."""
        sql = f"SELECT {self.base.select_sql} FROM categories WHERE is_active = TRUE ORDER BY name ASC;"
        return [self._row_to_category(r) for r in execute_query(sql)]

    def find_with_item_count(self) -> list[dict]:
        """Active categories with the number of active items in each, by name."""
        rows = execute_query(_ITEM_COUNT_QUERY + " ORDER BY c.name ASC;")
        return [self._row_to_counted(r) for r in rows]

    def find_popular(self, limit: int = 10) -> list[dict]:
        """Categories that have at least one active item, most items first."""
        sql = _ITEM_COUNT_QUERY + """
            HAVING COUNT(i.id) > 0
            ORDER BY item_count DESC, c.name ASC
            LIMIT %s;
        """
        return [self._row_to_counted(r) for r in execute_query(sql, [limit])]

    def search_by_name(self, term: str) -> list[Category]:
        escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        sql = f"""
            SELECT {self.base.select_sql}
            FROM categories
            WHERE is_active = TRUE AND name ILIKE %s
            ORDER BY name ASC;
        """
        return [self._row_to_category(r) for r in execute_query(sql, [f"%{escaped}%"])]

    def is_in_use(self, category_id: str) -> bool:
        """True if any active item references the category."""
        sql = "SELECT 1 FROM items WHERE category_id = %s AND is_active = TRUE LIMIT 1;"
        return len(execute_query(sql, [category_id])) > 0

    def get_category_stats(self, category_id: str) -> dict:
        """
        Listing counters for one category, zero-filled.

        Returns:
            {'total_items', 'available_items', 'average_daily_rate'}
        """
        sql = """
            SELECT
                COUNT(*) AS total_items,
                COUNT(*) FILTER (WHERE is_available = TRUE) AS available_items,
                COALESCE(AVG(daily_rate), 0) AS average_daily_rate
            FROM items
            WHERE category_id = %s AND is_active = TRUE;
        """
        rows = execute_query(sql, [category_id])
        row = rows[0] if rows else {}
        return {
            "total_items": int(row.get("total_items") or 0),
            "available_items": int(row.get("available_items") or 0),
            "average_daily_rate": round(float(row.get("average_daily_rate") or 0), 2),
        }

    # ── UPDATE ────────────────────────────────────────────

    def update(self, category_id: str, data: CategoryUpdate) -> Optional[Category]:
        return self.base.update(category_id, as_values(data))

    # ── DELETE ────────────────────────────────────────────

    def delete(self, category_id: str) -> bool:
        """Hard delete. Items reference categories, so callers check `is_in_use` first."""
        return self.base.delete(category_id)

    def soft_delete(self, category_id: str) -> Optional[Category]:
        return self.base.soft_delete(category_id)

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _row_to_category(row: dict) -> Category:
        """Convert a database row to a Category domain object."""
        return Category(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            icon=row["icon"],
            color=row["color"],
            is_active=row["is_active"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @classmethod
    def _row_to_counted(cls, row: dict) -> dict:
        counted = asdict(cls._row_to_category(row))
        counted["item_count"] = int(row["item_count"] or 0)
        return counted
