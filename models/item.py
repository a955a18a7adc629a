"""
models/item.py
--------------
Domain models for rentable items and their images.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class Item:
    """
    Represents an item listed for rent.

    Attributes:
        id: Opaque UUID string.
        owner_id: The user who listed it. Fixed at creation.
        category_id: Category reference.
        title / description: Listing text (searched by full-text + substring).
        condition_rating: 1 (worn) .. 5 (new).
        estimated_value: Replacement value, optional.
        daily_rate: Price per day; copied onto loans at creation.
        location_lat / location_lng / location_address: Pickup location.
        is_available: Owner toggle for accepting loans.
        is_active: False once soft-deleted.
    """
    id: str
    owner_id: str
    category_id: str
    title: str
    description: str
    condition_rating: int
    estimated_value: Optional[float] = None
    daily_rate: Optional[float] = None
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None
    location_address: Optional[str] = None
    is_available: bool = True
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class ItemImage:
    id: str
    item_id: str
    url: str
    alt_text: Optional[str] = None
    is_primary: bool = False
    sort_order: int = 0
    created_at: Optional[datetime] = None


@dataclass
class ItemCreate:
    category_id: str
    title: str
    description: str
    condition_rating: int
    estimated_value: Optional[float] = None
    daily_rate: Optional[float] = None
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None
    location_address: Optional[str] = None


@dataclass
class ItemUpdate:
    """Listing patch. owner_id is deliberately absent: ownership never changes."""
    category_id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    condition_rating: Optional[int] = None
    estimated_value: Optional[float] = None
    daily_rate: Optional[float] = None
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None
    location_address: Optional[str] = None
    is_available: Optional[bool] = None


@dataclass
class ItemSearchFilters:
    """
    Search criteria for ItemRepository.search_items.

    Price bounds apply to daily_rate; condition_rating is a minimum;
    radius is in kilometers and only applies with both coordinates.
    """
    category_id: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    condition_rating: Optional[int] = None
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None
    radius: Optional[float] = None
    search: Optional[str] = None

    def has_location(self) -> bool:
        return (
            self.location_lat is not None
            and self.location_lng is not None
            and self.radius is not None
        )
