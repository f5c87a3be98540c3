"""Category models for the hierarchical category tree."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

CATEGORY_TYPES = ("income", "expense", "transfer")

# Parent type -> child types it may contain. Only same-type nesting is allowed.
TYPE_COMPATIBILITY = {
    "income": ("income",),
    "expense": ("expense",),
    "transfer": ("transfer",),
}

MAX_LEVEL = 2
DEFAULT_COLOR = "#6B7280"


def are_types_compatible(parent_type: str, child_type: str) -> bool:
    """Check whether a category of child_type may sit under parent_type."""
    return child_type in TYPE_COMPATIBILITY.get(parent_type, ())


@dataclass
class Category:
    """Represents a transaction category stored in a flat table.

    Attributes:
        id: Unique identifier (auto-generated).
        organization_id: Owning organization.
        name: Category name, unique among siblings of the same type.
        type: One of CATEGORY_TYPES.
        parent_id: Optional parent category ID.
        level: Depth in the tree (0 for roots), derived from the parent.
        icon: Optional icon name.
        color: Display color.
        is_default: True for categories created by seeding.
        is_active: False once soft-deleted.
        display_order: Sort key among siblings.
    """

    id: int
    organization_id: int
    name: str
    type: str
    parent_id: Optional[int] = None
    level: int = 0
    icon: Optional[str] = None
    color: Optional[str] = DEFAULT_COLOR
    is_default: bool = False
    is_active: bool = True
    display_order: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class CategoryFilter:
    """Predicate for CategoryService.find_all.

    parent_id=None matches any parent.
    """

    organization_id: int
    type: Optional[str] = None
    parent_id: Optional[int] = None
    is_active: Optional[bool] = None


@dataclass
class CategoryNode:
    """A category with its hierarchy relations and usage count populated."""

    category: Category
    parent: Optional[Category] = None
    children: List["CategoryNode"] = field(default_factory=list)
    transaction_count: int = 0
    path: List[str] = field(default_factory=list)

    @property
    def id(self) -> int:
        return self.category.id

    @property
    def name(self) -> str:
        return self.category.name

    @property
    def type(self) -> str:
        return self.category.type

    @property
    def level(self) -> int:
        return self.category.level

    @property
    def parent_id(self) -> Optional[int]:
        return self.category.parent_id

    def walk(self):
        """Yield this node and all of its descendants, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass
class DeleteResult:
    """Outcome of a category deletion."""

    deleted_permanently: bool


@dataclass
class CategoryStats:
    """Transaction statistics for a single category."""

    category_id: int
    category_name: str
    transaction_count: int
    total_amount: Decimal
    average_amount: Decimal


@dataclass
class SeedResult:
    """Counts from seeding default categories."""

    created: int
    skipped: int
