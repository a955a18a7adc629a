"""
services/item_service.py
------------------------
Business rules for listings: ownership, category checks, image management,
and search.
"""

from dataclasses import replace
from typing import Optional

from config import DEFAULT_SEARCH_RADIUS_KM
from models.item import Item, ItemCreate, ItemImage, ItemSearchFilters, ItemUpdate
from repositories.base_repo import PaginatedResult
from repositories.category_repo import CategoryRepository
from repositories.item_repo import ItemRepository
from utils.errors import AuthorizationError, ItemNotFound, NotFoundError, ValidationError
from utils.geo import distance_km
from utils.logger import get_logger

logger = get_logger(__name__)


class ItemService:
    """Handles all business logic related to items."""

    def __init__(
        self,
        item_repo: Optional[ItemRepository] = None,
        category_repo: Optional[CategoryRepository] = None,
    ):
        self.items = item_repo or ItemRepository()
        self.categories = category_repo or CategoryRepository()

    # ── CREATE ────────────────────────────────────────────

    def create_item(self, data: ItemCreate, owner_id: str) -> Item:
        """
        Raises:
            ValidationError: Bad condition rating, negative price, or an
                unknown/inactive category.
        """
        self._validate(data.category_id, data.condition_rating, data.daily_rate, data.estimated_value)
        item = self.items.create(data, owner_id)
        logger.info(f"User #{owner_id} listed item #{item.id}")
        return item

    # ── READ ──────────────────────────────────────────────

    def get_item(
        self, item_id: str, viewer_lat: Optional[float] = None, viewer_lng: Optional[float] = None
    ) -> dict:
        """
        Item details; with a viewer location, a 'distance' in km is added
        when the item has coordinates.

        Raises:
            ItemNotFound: Missing or soft-deleted item.
        """
        details = self.items.find_with_details(item_id)
        if details is None:
            raise ItemNotFound(item_id)
        if (
            viewer_lat is not None and viewer_lng is not None
            and details["location_lat"] is not None and details["location_lng"] is not None
        ):
            details["distance"] = round(
                distance_km(viewer_lat, viewer_lng, details["location_lat"], details["location_lng"]), 2
            )
        return details

    def search_items(
        self,
        filters: ItemSearchFilters,
        page: int = 1,
        limit: int = 20,
        user_lat: Optional[float] = None,
        user_lng: Optional[float] = None,
    ) -> PaginatedResult[dict]:
        """Search listings; a filter location without a radius uses the default radius."""
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive", {"page": page, "limit": limit})
        if (
            filters.location_lat is not None and filters.location_lng is not None
            and filters.radius is None
        ):
            filters = replace(filters, radius=DEFAULT_SEARCH_RADIUS_KM)
        return self.items.search_items(filters, page, limit, user_lat, user_lng)

    def get_nearby(
        self, lat: float, lng: float, radius_km: float = DEFAULT_SEARCH_RADIUS_KM, limit: int = 20
    ) -> list[dict]:
        return self.items.find_nearby(lat, lng, radius_km, limit)

    def get_user_items(self, owner_id: str) -> list[Item]:
        return self.items.find_by_owner(owner_id)

    # ── UPDATE ────────────────────────────────────────────

    def update_item(self, item_id: str, data: ItemUpdate, user_id: str) -> Item:
        self._require_owner(item_id, user_id)
        if data.category_id is not None or data.condition_rating is not None \
                or data.daily_rate is not None or data.estimated_value is not None:
            self._validate(data.category_id, data.condition_rating, data.daily_rate, data.estimated_value)
        return self.items.update(item_id, data)

    def add_image(
        self,
        item_id: str,
        user_id: str,
        url: str,
        alt_text: Optional[str] = None,
        is_primary: bool = False,
    ) -> ItemImage:
        self._require_owner(item_id, user_id)
        if not url:
            raise ValidationError("Image url is required")
        return self.items.add_image(item_id, url, alt_text, is_primary)

    def remove_image(self, image_id: str, user_id: str) -> bool:
        image = self.items.find_image(image_id)
        if image is None:
            raise NotFoundError("Image not found", {"image_id": image_id})
        self._require_owner(image.item_id, user_id)
        return self.items.remove_image(image_id)

    # ── DELETE ────────────────────────────────────────────

    def delete_item(self, item_id: str, user_id: str) -> None:
        """Soft delete: the item disappears from listings but stays readable by id."""
        self._require_owner(item_id, user_id)
        self.items.soft_delete(item_id)
        logger.info(f"Item #{item_id} removed by owner #{user_id}")

    # ── HELPERS ───────────────────────────────────────────

    def _require_owner(self, item_id: str, user_id: str) -> None:
        if not self.items.exists(item_id):
            raise ItemNotFound(item_id)
        if not self.items.is_owner(item_id, user_id):
            raise AuthorizationError("You do not own this item", {"item_id": item_id})

    def _validate(
        self,
        category_id: Optional[str],
        condition_rating: Optional[int],
        daily_rate: Optional[float],
        estimated_value: Optional[float],
    ) -> None:
        if condition_rating is not None and not 1 <= condition_rating <= 5:
            raise ValidationError(
                "Condition rating must be between 1 and 5", {"condition_rating": condition_rating}
            )
        if daily_rate is not None and daily_rate < 0:
            raise ValidationError("Daily rate cannot be negative", {"daily_rate": daily_rate})
        if estimated_value is not None and estimated_value < 0:
            raise ValidationError(
                "Estimated value cannot be negative", {"estimated_value": estimated_value}
            )
        if category_id is not None:
            category = self.categories.find_by_id(category_id)
            if category is None or not category.is_active:
                raise ValidationError("Invalid category", {"category_id": category_id})
