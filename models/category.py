"""
models/category.py
------------------
Domain model for item categories (static reference data).
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class Category:
    id: str
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class CategoryCreate:
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None


@dataclass
class CategoryUpdate:
    name: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    is_active: Optional[bool] = None
