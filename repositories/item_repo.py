"""
repositories/item_repo.py
-------------------------
Data access layer for items and their images.
All SQL queries related to the `items` and `item_images` tables live here,
including full-text and geo search.
"""

from dataclasses import asdict, fields
from typing import Optional

from config import TEXT_SEARCH_CONFIG
from db.connection import execute_query, execute_write
from models.item import Item, ItemCreate, ItemImage, ItemSearchFilters, ItemUpdate
from repositories.base_repo import (
    BaseRepository,
    PaginatedResult,
    Pagination,
    as_values,
    page_offset,
    to_float,
)
from utils.geo import haversine_params, haversine_sql
from utils.logger import get_logger

logger = get_logger(__name__)

ITEM_FIELDS = (
    "id", "owner_id", "category_id", "title", "description", "condition_rating",
    "estimated_value", "daily_rate", "location_lat", "location_lng", "location_address",
    "is_available", "is_active", "created_at", "updated_at",
)
ITEM_INSERT_FIELDS = ("owner_id",) + tuple(f.name for f in fields(ItemCreate))
ITEM_UPDATE_FIELDS = tuple(f.name for f in fields(ItemUpdate)) + ("is_active",)

IMAGE_FIELDS = "id, item_id, url, alt_text, is_primary, sort_order, created_at"

# Item columns plus owner, category, and the owner's rating aggregate.
_DETAIL_SELECT = ", ".join(f"i.{f}" for f in ITEM_FIELDS) + """,
        u.first_name AS owner_first_name, u.last_name AS owner_last_name,
        u.avatar_url AS owner_avatar_url,
        c.name AS category_name, c.icon AS category_icon, c.color AS category_color,
        COALESCE(AVG(r.rating), 0) AS owner_average_rating,
        COUNT(DISTINCT r.id) AS owner_reviews_count"""

_DETAIL_FROM = """
    FROM items i
    JOIN users u ON i.owner_id = u.id
    JOIN categories c ON i.category_id = c.id
    LEFT JOIN reviews r ON u.id = r.reviewed_id"""

_DETAIL_GROUP_BY = "GROUP BY i.id, u.id, c.id"

_DISTANCE = haversine_sql("i.location_lat", "i.location_lng")


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class ItemRepository:
    """Repository for items, item images, and item search."""

    def __init__(self):
        self.base = BaseRepository(
            "items",
            ITEM_FIELDS,
            self._row_to_item,
            insert_fields=ITEM_INSERT_FIELDS,
            update_fields=ITEM_UPDATE_FIELDS,
        )

    # ── CREATE ────────────────────────────────────────────

    def create(self, data: ItemCreate, owner_id: str) -> Item:
        """
        Insert a new item owned by `owner_id`.

        The owner is taken from the caller's identity, never from the payload,
        and is not part of ItemUpdate so it cannot change afterwards.
        """
        return self.base.create({**as_values(data), "owner_id": owner_id})

    # ── READ ──────────────────────────────────────────────

    def find_by_id(self, item_id: str) -> Optional[Item]:
        return self.base.find_by_id(item_id)

    def find_all(self, filters: Optional[dict] = None) -> list[Item]:
        return self.base.find_all(filters)

    def find_with_pagination(
        self, filters: Optional[dict] = None, page: int = 1, limit: int = 20
    ) -> PaginatedResult[Item]:
        return self.base.find_with_pagination(filters, page, limit)

    def find_by_owner(self, owner_id: str) -> list[Item]:
        return self.base.find_all({"owner_id": owner_id, "is_active": True})

    def find_by_category(self, category_id: str) -> list[Item]:
        return self.base.find_all(
            {"category_id": category_id, "is_active": True, "is_available": True}
        )

    def exists(self, item_id: str) -> bool:
        return self.base.exists(item_id)

    def count(self, filters: Optional[dict] = None) -> int:
        return self.base.count(filters)

    def find_with_details(self, item_id: str) -> Optional[dict]:
        """
        Fetch an active item with its owner, category, and images.

        The images query only runs once the item row is known to exist.

        Returns:
            Nested dict (item fields + 'owner', 'category', 'images') or None.
        """
        sql = f"""
            SELECT {_DETAIL_SELECT}
            {_DETAIL_FROM}
            WHERE i.id = %s AND i.is_active = TRUE
            {_DETAIL_GROUP_BY};
        """
        rows = execute_query(sql, [item_id])
        if not rows:
            return None
        return self._row_to_details(rows[0], self.get_item_images(item_id))

    def search_items(
        self,
        filters: ItemSearchFilters,
        page: int = 1,
        limit: int = 20,
        user_lat: Optional[float] = None,
        user_lng: Optional[float] = None,
    ) -> PaginatedResult[dict]:
        """
        Search active, available items.

        Ordering is relevance (when a search term is given), then distance
        (when a center is known), then newest first. A location in the filters
        defines both the distance center and the radius cut-off; otherwise the
        viewer's location, if given, only adds a distance for sorting.

        Args:
            filters: Search criteria.
            page: 1-based page number.
            limit: Page size.
            user_lat / user_lng: The viewer's location.

        Returns:
            PaginatedResult of item detail dicts carrying 'distance' and
            'relevance_score' when those apply.
        """
        conditions = ["i.is_active = TRUE", "i.is_available = TRUE"]
        where_params: list = []

        if filters.category_id:
            conditions.append("i.category_id = %s")
            where_params.append(filters.category_id)
        if filters.min_price is not None:
            conditions.append("i.daily_rate >= %s")
            where_params.append(filters.min_price)
        if filters.max_price is not None:
            conditions.append("i.daily_rate <= %s")
            where_params.append(filters.max_price)
        if filters.condition_rating:
            conditions.append("i.condition_rating >= %s")
            where_params.append(filters.condition_rating)

        # Distance: explicit filter location wins over the viewer's location.
        center: Optional[tuple[float, float]] = None
        radius: Optional[float] = None
        if filters.has_location():
            center = (filters.location_lat, filters.location_lng)
            radius = filters.radius
        elif user_lat is not None and user_lng is not None:
            center = (user_lat, user_lng)

        select_extra = ""
        select_params: list = []
        radius_condition = ""
        radius_params: list = []
        if center is not None:
            select_extra += f", {_DISTANCE} AS distance"
            select_params += haversine_params(*center)
        if radius is not None:
            conditions.append("i.location_lat IS NOT NULL AND i.location_lng IS NOT NULL")
            radius_condition = f"{_DISTANCE} <= %s"
            radius_params = haversine_params(*center) + [radius]

        if filters.search:
            document = "to_tsvector(%s::regconfig, i.title || ' ' || i.description)"
            query = "plainto_tsquery(%s::regconfig, %s)"
            select_extra += f", ts_rank({document}, {query}) AS relevance_score"
            select_params += [TEXT_SEARCH_CONFIG, TEXT_SEARCH_CONFIG, filters.search]
            conditions.append(
                f"({document} @@ {query} OR i.title ILIKE %s OR i.description ILIKE %s)"
            )
            pattern = _like_pattern(filters.search)
            where_params += [
                TEXT_SEARCH_CONFIG, TEXT_SEARCH_CONFIG, filters.search, pattern, pattern,
            ]

        where_clause = f"WHERE {' AND '.join(conditions)}"

        # The count has no GROUP BY, so the radius cut-off is a plain WHERE term.
        count_where = where_clause + (f" AND {radius_condition}" if radius_condition else "")
        count_sql = f"SELECT COUNT(*) AS total FROM items i {count_where};"
        total = int(execute_query(count_sql, where_params + radius_params)[0]["total"])

        having_clause = f"HAVING {radius_condition}" if radius_condition else ""
        order_terms = []
        if filters.search:
            order_terms.append("relevance_score DESC")
        if center is not None:
            order_terms.append("distance ASC")
        order_terms.append("i.created_at DESC")

        data_sql = f"""
            SELECT {_DETAIL_SELECT}{select_extra}
            {_DETAIL_FROM}
            {where_clause}
            {_DETAIL_GROUP_BY}
            {having_clause}
            ORDER BY {', '.join(order_terms)}
            LIMIT %s OFFSET %s;
        """
        params = select_params + where_params + radius_params + [limit, page_offset(page, limit)]
        rows = execute_query(data_sql, params)

        return PaginatedResult(
            data=self._rows_with_images(rows),
            pagination=Pagination.build(page, limit, total),
        )

    def find_nearby(
        self, lat: float, lng: float, radius_km: float = 10, limit: int = 20
    ) -> list[dict]:
        """
        Active, available items within `radius_km` of a point, closest first.

        Returns:
            Item detail dicts, each with a 'distance' in kilometers.
        """
        sql = f"""
            SELECT {_DETAIL_SELECT}, {_DISTANCE} AS distance
            {_DETAIL_FROM}
            WHERE i.is_active = TRUE
              AND i.is_available = TRUE
              AND i.location_lat IS NOT NULL
              AND i.location_lng IS NOT NULL
            {_DETAIL_GROUP_BY}
            HAVING {_DISTANCE} <= %s
            ORDER BY distance ASC
            LIMIT %s;
        """
        params = haversine_params(lat, lng) + haversine_params(lat, lng) + [radius_km, limit]
        return self._rows_with_images(execute_query(sql, params))

    def is_owner(self, item_id: str, user_id: str) -> bool:
        sql = "SELECT 1 FROM items WHERE id = %s AND owner_id = %s LIMIT 1;"
        return len(execute_query(sql, [item_id, user_id])) > 0

    # ── IMAGES ────────────────────────────────────────────

    def get_item_images(self, item_id: str) -> list[ItemImage]:
        """Images of one item, primary first, then by sort order."""
        sql = f"""
            SELECT {IMAGE_FIELDS}
            FROM item_images
            WHERE item_id = %s
            ORDER BY is_primary DESC, sort_order ASC;
        """
        return [self._row_to_image(r) for r in execute_query(sql, [item_id])]

    def get_images_for_items(self, item_ids: list[str]) -> dict[str, list[ItemImage]]:
        """Images for several items in one query, keyed by item id."""
        images: dict[str, list[ItemImage]] = {item_id: [] for item_id in item_ids}
        if not item_ids:
            return images
        sql = f"""
            SELECT {IMAGE_FIELDS}
            FROM item_images
            WHERE item_id = ANY(%s)
            ORDER BY item_id, is_primary DESC, sort_order ASC;
        """
        for row in execute_query(sql, [list(item_ids)]):
            images[row["item_id"]].append(self._row_to_image(row))
        return images

    def find_image(self, image_id: str) -> Optional[ItemImage]:
        rows = execute_query(f"SELECT {IMAGE_FIELDS} FROM item_images WHERE id = %s;", [image_id])
        return self._row_to_image(rows[0]) if rows else None

    def add_image(
        self,
        item_id: str,
        url: str,
        alt_text: Optional[str] = None,
        is_primary: bool = False,
    ) -> ItemImage:
        """
        Append an image to an item.

        A new primary image clears the primary flag on every other image of
        the item first, so at most one image is primary at a time.
        """
        image_id = BaseRepository.generate_id()
        if is_primary:
            execute_write("UPDATE item_images SET is_primary = FALSE WHERE item_id = %s;", [item_id])

        sql = """
            INSERT INTO item_images (id, item_id, url, alt_text, is_primary, sort_order)
            VALUES (%s, %s, %s, %s, %s,
                    (SELECT COALESCE(MAX(sort_order), 0) + 1 FROM item_images WHERE item_id = %s));
        """
        execute_write(sql, [image_id, item_id, url, alt_text, is_primary, item_id])
        logger.info(f"Added image #{image_id} to item #{item_id}")

        rows = execute_query(f"SELECT {IMAGE_FIELDS} FROM item_images WHERE id = %s;", [image_id])
        return self._row_to_image(rows[0])

    def set_primary_image(self, item_id: str, image_id: str) -> bool:
        """Make one existing image the primary one for its item."""
        execute_write("UPDATE item_images SET is_primary = FALSE WHERE item_id = %s;", [item_id])
        updated = execute_write(
            "UPDATE item_images SET is_primary = TRUE WHERE id = %s AND item_id = %s;",
            [image_id, item_id],
        )
        return updated > 0

    def remove_image(self, image_id: str) -> bool:
        return execute_write("DELETE FROM item_images WHERE id = %s;", [image_id]) > 0

    # ── UPDATE ────────────────────────────────────────────

    def update(self, item_id: str, data: ItemUpdate) -> Optional[Item]:
        return self.base.update(item_id, as_values(data))

    def set_availability(self, item_id: str, is_available: bool) -> bool:
        sql = "UPDATE items SET is_available = %s, updated_at = NOW() WHERE id = %s;"
        return execute_write(sql, [is_available, item_id]) > 0

    # ── DELETE ────────────────────────────────────────────

    def soft_delete(self, item_id: str) -> Optional[Item]:
        return self.base.soft_delete(item_id)

    def delete(self, item_id: str) -> bool:
        return self.base.delete(item_id)

    # ── HELPERS ───────────────────────────────────────────

    def _rows_with_images(self, rows: list[dict]) -> list[dict]:
        images = self.get_images_for_items([r["id"] for r in rows])
        return [self._row_to_details(r, images[r["id"]]) for r in rows]

    @staticmethod
    def _row_to_item(row: dict) -> Item:
        """Convert a database row to an Item domain object."""
        return Item(
            id=row["id"],
            owner_id=row["owner_id"],
            category_id=row["category_id"],
            title=row["title"],
            description=row["description"],
            condition_rating=row["condition_rating"],
            estimated_value=to_float(row["estimated_value"]),
            daily_rate=to_float(row["daily_rate"]),
            location_lat=to_float(row["location_lat"]),
            location_lng=to_float(row["location_lng"]),
            location_address=row["location_address"],
            is_available=row["is_available"],
            is_active=row["is_active"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _row_to_image(row: dict) -> ItemImage:
        return ItemImage(
            id=row["id"],
            item_id=row["item_id"],
            url=row["url"],
            alt_text=row["alt_text"],
            is_primary=row["is_primary"],
            sort_order=row["sort_order"],
            created_at=row["created_at"],
        )

    @classmethod
    def _row_to_details(cls, row: dict, images: list[ItemImage]) -> dict:
        """Reshape a joined row into item + owner + category + images."""
        details = asdict(cls._row_to_item(row))
        details["owner"] = {
            "id": row["owner_id"],
            "first_name": row["owner_first_name"],
            "last_name": row["owner_last_name"],
            "avatar_url": row["owner_avatar_url"],
            "average_rating": float(row["owner_average_rating"] or 0),
            "reviews_count": int(row["owner_reviews_count"] or 0),
        }
        details["category"] = {
            "id": row["category_id"],
            "name": row["category_name"],
            "icon": row["category_icon"],
            "color": row["category_color"],
        }
        details["images"] = [asdict(img) for img in images]
        if "distance" in row:
            details["distance"] = to_float(row["distance"])
        if "relevance_score" in row:
            details["relevance_score"] = to_float(row["relevance_score"])
        return details
