"""Category service for database operations."""

from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional
from errors import NotFoundError
from models.category import Category, CategoryFilter, CategoryStats

_CATEGORY_SELECT_FIELDS = """id, organization_id, name, type, parent_id, level, icon, color,
       is_default, is_active, display_order, created_at, updated_at"""

# Columns an update may touch. Anything else is rejected before building SQL.
_UPDATABLE_FIELDS = (
    "name",
    "type",
    "parent_id",
    "level",
    "icon",
    "color",
    "display_order",
    "is_active",
)


class CategoryService:
    """Service for storing and querying categories.

    This is the storage half of the category feature: it enforces nothing
    beyond what the schema does. Hierarchy rules live in
    CategoryHierarchyService.
    """

    def __init__(self, db_manager):
        """Initialize the category service.

        Args:
            db_manager: Database manager instance for database operations.
        """
        self.db_manager = db_manager

    def find(self, category_id: int, organization_id: int) -> Optional[Category]:
        """Get a single category by ID within an organization.

        Args:
            category_id: The category ID to find.
            organization_id: The organization the category must belong to.

        Returns:
            Category object if found, None otherwise.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"""
                SELECT {_CATEGORY_SELECT_FIELDS}
                FROM categories
                WHERE id = ? AND organization_id = ?
                """,
                (category_id, organization_id),
            )
            row = cursor.fetchone()

            if row:
                return self._row_to_category(row)
            return None

    def find_all(self, category_filter: CategoryFilter) -> List[Category]:
        """Get categories matching a filter.

        Args:
            category_filter: Predicate with organization and optional type,
                parent and active-state constraints.

        Returns:
            List of Category objects, ordered by display_order then name.
        """
        query = f"""
            SELECT {_CATEGORY_SELECT_FIELDS}
            FROM categories
            WHERE organization_id = ?
        """
        params = [category_filter.organization_id]

        if category_filter.type is not None:
            query += " AND type = ?"
            params.append(category_filter.type)

        if category_filter.parent_id is not None:
            query += " AND parent_id = ?"
            params.append(category_filter.parent_id)

        if category_filter.is_active is not None:
            query += " AND is_active = ?"
            params.append(1 if category_filter.is_active else 0)

        query += " ORDER BY display_order, name, id"

        with self.db_manager.connect() as conn:
            cursor = conn.execute(query, params)
            rows = cursor.fetchall()

            return [self._row_to_category(row) for row in rows]

    def find_duplicate(
        self,
        organization_id: int,
        name: str,
        parent_id: Optional[int],
        category_type: str,
        exclude_id: Optional[int] = None,
    ) -> Optional[Category]:
        """Find a category with the same name at the same level.

        Matching is exact and case-sensitive, and includes inactive categories.

        Args:
            organization_id: Organization to search in.
            name: Category name.
            parent_id: Parent category ID, or None for the root level.
            category_type: Category type.
            exclude_id: Optional category ID to ignore (the one being updated).

        Returns:
            The conflicting Category if one exists, None otherwise.
        """
        query = f"""
            SELECT {_CATEGORY_SELECT_FIELDS}
            FROM categories
            WHERE organization_id = ?
              AND name = ?
              AND parent_id IS ?
              AND type = ?
        """
        params = [organization_id, name, parent_id, category_type]

        if exclude_id is not None:
            query += " AND id != ?"
            params.append(exclude_id)

        with self.db_manager.connect() as conn:
            row = conn.execute(query, params).fetchone()
            if row:
                return self._row_to_category(row)
            return None

    def count_children(self, category_id: int, active_only: bool = False) -> int:
        """Count the direct children of a category.

        Args:
            category_id: The parent category ID.
            active_only: If True, ignore soft-deleted children.

        Returns:
            Number of child categories.
        """
        query = "SELECT COUNT(*) FROM categories WHERE parent_id = ?"
        if active_only:
            query += " AND is_active = 1"

        with self.db_manager.connect() as conn:
            return conn.execute(query, (category_id,)).fetchone()[0]

    def count_transaction_usages(self, category_id: int) -> int:
        """Count transactions that reference a category.

        Args:
            category_id: The category ID.

        Returns:
            Number of referencing transactions.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                "SELECT COUNT(*) FROM transactions WHERE category_id = ?",
                (category_id,),
            )
            return cursor.fetchone()[0]

    def transaction_counts(self, category_ids: Iterable[int]) -> Dict[int, int]:
        """Count referencing transactions for many categories at once.

        Args:
            category_ids: Category IDs to count usages for.

        Returns:
            Dictionary of category_id -> count. Unused categories are absent.
        """
        category_ids = list(category_ids)
        if not category_ids:
            return {}

        placeholders = ", ".join(["?"] * len(category_ids))
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"""
                SELECT category_id, COUNT(*)
                FROM transactions
                WHERE category_id IN ({placeholders})
                GROUP BY category_id
                """,
                category_ids,
            )
            return {row[0]: row[1] for row in cursor.fetchall()}

    def stats(
        self,
        organization_id: int,
        category_type: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[CategoryStats]:
        """Aggregate transaction counts and amounts per category.

        Args:
            organization_id: Organization to aggregate.
            category_type: Optional category type to restrict to.
            start_date: Optional inclusive lower bound on transaction_date.
            end_date: Optional inclusive upper bound on transaction_date.

        Returns:
            List of CategoryStats ordered by category name.
        """
        query = """
            SELECT c.id, c.name, COUNT(t.id), SUM(t.amount), AVG(t.amount)
            FROM transactions t
            JOIN categories c ON c.id = t.category_id
            WHERE t.organization_id = ?
        """
        params = [organization_id]

        if category_type is not None:
            query += " AND c.type = ?"
            params.append(category_type)

        if start_date is not None:
            query += " AND t.transaction_date >= ?"
            params.append(start_date.isoformat())

        if end_date is not None:
            query += " AND t.transaction_date <= ?"
            params.append(end_date.isoformat())

        query += " GROUP BY c.id, c.name ORDER BY c.name"

        with self.db_manager.connect() as conn:
            rows = conn.execute(query, params).fetchall()

            return [
                CategoryStats(
                    category_id=row[0],
                    category_name=row[1],
                    transaction_count=row[2],
                    total_amount=round(Decimal(str(row[3])), 2),
                    average_amount=round(Decimal(str(row[4])), 2),
                )
                for row in rows
            ]

    def create(self, category: Category) -> Category:
        """Create a new category.

        Args:
            category: Category to insert. Its id is ignored.

        Returns:
            The created Category object with id and timestamps populated.

        Raises:
            StorageError: If the insert violates a schema constraint.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO categories (organization_id, name, type, parent_id, level,
                    icon, color, is_default, is_active, display_order)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    category.organization_id,
                    category.name,
                    category.type,
                    category.parent_id,
                    category.level,
                    category.icon,
                    category.color,
                    1 if category.is_default else 0,
                    1 if category.is_active else 0,
                    category.display_order,
                ),
            )
            category_id = cursor.lastrowid

        return self.find(category_id, category.organization_id)

    def update(self, category_id: int, organization_id: int, fields: dict) -> Category:
        """Update selected fields of a category.

        Args:
            category_id: The category ID to update.
            organization_id: The organization the category belongs to.
            fields: Mapping of column name to new value. Only the columns
                listed here are written.

        Returns:
            The updated Category object.

        Raises:
            ValueError: If an unsupported field name is given.
            NotFoundError: If the category is not found.
        """
        unknown = set(fields) - set(_UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Unsupported category fields: {sorted(unknown)}")

        if fields:
            values = [
                (1 if value else 0) if name == "is_active" else value
                for name, value in fields.items()
            ]
            assignments = ", ".join(f"{name} = ?" for name in fields)

            with self.db_manager.connect() as conn:
                cursor = conn.execute(
                    f"""
                    UPDATE categories
                    SET {assignments}, updated_at = CURRENT_TIMESTAMP
                    WHERE id = ? AND organization_id = ?
                    """,
                    (*values, category_id, organization_id),
                )
                if cursor.rowcount == 0:
                    raise NotFoundError(f"Category with ID {category_id} not found")

        return self.find(category_id, organization_id)

    def update_levels(self, levels: Dict[int, int]) -> int:
        """Rewrite the stored level of several categories.

        Args:
            levels: Mapping of category_id -> new level.

        Returns:
            Number of rows updated.
        """
        if not levels:
            return 0

        with self.db_manager.connect() as conn:
            cursor = conn.executemany(
                "UPDATE categories SET level = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                [(level, category_id) for category_id, level in levels.items()],
            )
            return cursor.rowcount

    def delete(self, category_id: int) -> bool:
        """Delete a category by ID.

        Args:
            category_id: The category ID to delete.

        Returns:
            True if category was deleted, False if not found.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute("DELETE FROM categories WHERE id = ?", (category_id,))
            return cursor.rowcount > 0

    def _row_to_category(self, row: tuple) -> Category:
        """Convert a database row to a Category object."""
        return Category(
            id=row[0],
            organization_id=row[1],
            name=row[2],
            type=row[3],
            parent_id=row[4],
            level=row[5],
            icon=row[6],
            color=row[7],
            is_default=bool(row[8]),
            is_active=bool(row[9]),
            display_order=row[10],
            created_at=datetime.fromisoformat(row[11]) if row[11] else None,
            updated_at=datetime.fromisoformat(row[12]) if row[12] else None,
        )
