"""Category hierarchy rules: validation, tree building and seeding.

Categories are stored flat (a nullable parent_id plus a derived level).
Every mutation here validates against the stored state first and only then
writes, all inside one database transaction, so a rejected request never
leaves a partial change behind.
"""

from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import yaml

from config import get_seed_dir
from errors import ConflictError, NotFoundError, ValidationError
from logger import get_logger
from models.category import (
    CATEGORY_TYPES,
    MAX_LEVEL,
    Category,
    CategoryFilter,
    CategoryNode,
    CategoryStats,
    DeleteResult,
    SeedResult,
    are_types_compatible,
)
from models.inputs import CategoryCreate, CategoryUpdate, parse_input


class CategoryTreeCache:
    """Per-request cache of built category trees, keyed by organization."""

    def __init__(self):
        self._trees: Dict[tuple, List[CategoryNode]] = {}

    def get(self, key: tuple) -> Optional[List[CategoryNode]]:
        return self._trees.get(key)

    def put(self, key: tuple, roots: List[CategoryNode]) -> None:
        self._trees[key] = roots

    def invalidate(self, organization_id: int) -> None:
        """Drop every cached tree of an organization."""
        for key in [k for k in self._trees if k[0] == organization_id]:
            del self._trees[key]


def build_category_hierarchy(
    categories: List[Category], transaction_counts: Optional[Dict[int, int]] = None
) -> Tuple[List[CategoryNode], Dict[int, CategoryNode]]:
    """Build a forest from a flat list of categories.

    Nodes are indexed by id in one pass and then attached to their parent's
    children list. A category whose parent is not in the list becomes a root.

    Args:
        categories: Flat list of categories (any order).
        transaction_counts: Optional category_id -> usage count mapping.

    Returns:
        Tuple of (root nodes, dictionary of every node by category id).
        Siblings and roots are ordered by display_order, then name.
    """
    counts = transaction_counts or {}
    nodes = {
        category.id: CategoryNode(
            category=category, transaction_count=counts.get(category.id, 0)
        )
        for category in categories
    }

    roots = []
    for category in categories:
        node = nodes[category.id]
        parent = nodes.get(category.parent_id) if category.parent_id is not None else None
        if parent is None:
            roots.append(node)
        else:
            node.parent = parent.category
            parent.children.append(node)

    def sort_key(node: CategoryNode):
        return (node.category.display_order, node.category.name)

    roots.sort(key=sort_key)

    # Assign paths top-down; nodes only reachable through a corrupt cycle
    # are never visited and stay out of the forest.
    stack = [(root, []) for root in reversed(roots)]
    while stack:
        node, parent_path = stack.pop()
        node.path = parent_path + [node.name]
        node.children.sort(key=sort_key)
        stack.extend((child, node.path) for child in reversed(node.children))

    return roots, nodes


def load_default_categories(seed_file: Optional[Path] = None) -> dict:
    """Load the default category tree from YAML.

    Args:
        seed_file: Path to a YAML file. Defaults to db/seed/categories.yaml.

    Returns:
        Dictionary of category type -> list of category entries, each with
        name, optional icon, color, display_order and children.

    Raises:
        FileNotFoundError: If the seed file doesn't exist.
        yaml.YAMLError: If the YAML is invalid.
    """
    if seed_file is None:
        seed_file = get_seed_dir() / "categories.yaml"

    with open(seed_file, "r") as f:
        return yaml.safe_load(f) or {}


class CategoryHierarchyService:
    """Enforces the category tree invariants on top of CategoryService.

    - a root has level 0, a child has its parent's level + 1, at most MAX_LEVEL
    - a child has the same type as its parent
    - names are unique per (organization, parent, type)
    - the parent graph is acyclic
    - categories with children are never deleted, and those referenced by
      transactions are soft-deleted unless forced

    Args:
        db_manager: Database manager, used to scope each operation in a transaction.
        categories: CategoryService used as the category store.
        transactions: TransactionService used to detach deleted categories.
        tree_cache: Optional CategoryTreeCache shared with other services.
        logger: Optional logger; defaults to the "moneybook.categories" logger.
    """

    def __init__(self, db_manager, categories, transactions, tree_cache=None, logger=None):
        self.db_manager = db_manager
        self.categories = categories
        self.transactions = transactions
        self.tree_cache = tree_cache if tree_cache is not None else CategoryTreeCache()
        self.logger = logger or get_logger("categories")

    def create_category(self, data: Union[CategoryCreate, dict]) -> CategoryNode:
        """Create a category after validating it against the current tree.

        Args:
            data: CategoryCreate or dict with its fields.

        Returns:
            The created category as a CategoryNode, with parent, children,
            path and transaction count populated.

        Raises:
            ValidationError: Invalid input, parent not found, type incompatible,
                max depth exceeded or duplicate name at this level.
        """
        data = parse_input(CategoryCreate, data)

        with self.db_manager.transaction():
            category = self._create_validated(data)

        self.tree_cache.invalidate(data.organization_id)
        self.logger.info(
            f"Created category '{category.name}' (ID: {category.id}, "
            f"type: {category.type}, level: {category.level})"
        )
        return self.get_category(category.id, data.organization_id)

    def update_category(self, data: Union[CategoryUpdate, dict]) -> CategoryNode:
        """Update a category, re-validating every invariant the change touches.

        Only fields present in the input are changed. Moving a category moves
        its whole subtree, so descendant levels are rewritten as well.

        Args:
            data: CategoryUpdate or dict with id, organization_id and the
                fields to change.

        Returns:
            The updated category as a CategoryNode.

        Raises:
            NotFoundError: If the category is not in the organization.
            ValidationError: Type change blocked, parent not found, circular
                reference detected, max depth exceeded, type incompatible or
                duplicate name at this level.
            ConflictError: If deactivating a category that has active children.
        """
        data = parse_input(CategoryUpdate, data)
        organization_id = data.organization_id

        with self.db_manager.transaction():
            existing = self.categories.find(data.id, organization_id)
            if existing is None:
                raise NotFoundError(
                    f"Category with ID {data.id} not found in organization {organization_id}"
                )

            # Keep only real changes
            fields = {
                name: value
                for name, value in data.changes().items()
                if getattr(existing, name) != value
            }

            new_type = fields.get("type", existing.type)
            new_parent_id = fields.get("parent_id", existing.parent_id)
            type_changing = "type" in fields
            parent_changing = "parent_id" in fields
            new_levels: Dict[int, int] = {}

            if type_changing:
                self._check_type_change_allowed(existing, new_type)

            if parent_changing or type_changing:
                if new_parent_id is None:
                    new_level = 0
                else:
                    if new_parent_id == existing.id:
                        raise self._reject(
                            f"Circular reference detected: category {existing.id} "
                            f"cannot be its own parent"
                        )
                    parent = self._require_parent(
                        new_parent_id, organization_id, require_active=parent_changing
                    )
                    if parent_changing:
                        self.check_circular_reference(
                            new_parent_id, organization_id, exclude_id=existing.id
                        )
                    self._check_type_compatible(parent, new_type)
                    new_level = parent.level + 1

                if parent_changing:
                    new_levels = self._subtree_levels(existing, new_level)
                    deepest = max(new_levels.values())
                    if deepest > MAX_LEVEL:
                        raise self._reject(
                            f"Max depth exceeded: moving '{existing.name}' would place "
                            f"a category at level {deepest} (maximum is {MAX_LEVEL})"
                        )
                    fields["level"] = new_levels.pop(existing.id)

            if "name" in fields or parent_changing or type_changing:
                self._check_unique(
                    organization_id,
                    fields.get("name", existing.name),
                    new_parent_id,
                    new_type,
                    exclude_id=existing.id,
                )

            if fields.get("is_active") is False:
                if self.categories.count_children(existing.id, active_only=True) > 0:
                    raise ConflictError(
                        f"Cannot deactivate category '{existing.name}' while it has "
                        f"active child categories"
                    )

            # Reactivating a child must not bring back a type its parent no longer has
            if fields.get("is_active") is True and new_parent_id is not None:
                parent = self._require_parent(
                    new_parent_id, organization_id, require_active=False
                )
                self._check_type_compatible(parent, new_type)

            if fields:
                self.categories.update(existing.id, organization_id, fields)
                self.categories.update_levels(new_levels)

        if fields:
            self.tree_cache.invalidate(organization_id)
            self.logger.info(
                f"Updated category {existing.id}: {', '.join(sorted(fields))}"
            )
        return self.get_category(existing.id, organization_id)

    def delete_category(
        self, category_id: int, organization_id: int, force_delete: bool = False
    ) -> DeleteResult:
        """Delete a category.

        Categories with children are never deleted. Categories referenced by
        transactions are soft-deleted (is_active=False) unless force_delete
        is set, in which case the transactions are detached first and the
        category is removed. Unused categories are always removed.

        Args:
            category_id: The category ID to delete.
            organization_id: The organization the category belongs to.
            force_delete: Hard-delete even when transactions reference it.

        Returns:
            DeleteResult telling whether the row was removed.

        Raises:
            NotFoundError: If the category is not in the organization.
            ConflictError: If the category has child categories.
        """
        with self.db_manager.transaction():
            category = self.categories.find(category_id, organization_id)
            if category is None:
                raise NotFoundError(
                    f"Category with ID {category_id} not found in organization {organization_id}"
                )

            if self.categories.count_children(category.id) > 0:
                self.logger.warning(
                    f"Refused to delete category {category.id}: it has children"
                )
                raise ConflictError(
                    f"Cannot delete category with children: '{category.name}' still has "
                    f"child categories. Delete or move them first."
                )

            usages = self.categories.count_transaction_usages(category.id)

            if usages > 0 and not force_delete:
                self.categories.update(category.id, organization_id, {"is_active": False})
                result = DeleteResult(deleted_permanently=False)
            else:
                if usages > 0:
                    detached = self.transactions.detach_category(category.id)
                    self.logger.info(
                        f"Detached {detached} transaction(s) from category {category.id}"
                    )
                self.categories.delete(category.id)
                result = DeleteResult(deleted_permanently=True)

        self.tree_cache.invalidate(organization_id)
        self.logger.info(
            f"{'Deleted' if result.deleted_permanently else 'Deactivated'} "
            f"category '{category.name}' (ID: {category.id})"
        )
        return result

    def get_category(self, category_id: int, organization_id: int) -> CategoryNode:
        """Get a single category with its hierarchy relations populated.

        Raises:
            NotFoundError: If the category is not in the organization.
        """
        categories = self.categories.find_all(CategoryFilter(organization_id=organization_id))
        counts = self.categories.transaction_counts(c.id for c in categories)
        _, nodes = build_category_hierarchy(categories, counts)

        node = nodes.get(category_id)
        if node is None:
            raise NotFoundError(
                f"Category with ID {category_id} not found in organization {organization_id}"
            )
        return node

    def get_category_tree(
        self,
        organization_id: int,
        category_type: Optional[str] = None,
        include_inactive: bool = False,
    ) -> List[CategoryNode]:
        """Get the category forest of an organization.

        Args:
            organization_id: The organization.
            category_type: Optional type to restrict the tree to.
            include_inactive: Include soft-deleted categories.

        Returns:
            Root CategoryNodes; each carries its ordered children.
        """
        self._check_type_value(category_type)

        key = (organization_id, category_type, include_inactive)
        cached = self.tree_cache.get(key)
        if cached is not None:
            self.logger.debug(f"Category tree cache hit for organization {organization_id}")
            return cached

        roots, _ = self._build(organization_id, category_type, include_inactive)
        self.tree_cache.put(key, roots)
        return roots

    def get_categories_with_usage(
        self,
        organization_id: int,
        category_type: Optional[str] = None,
        include_inactive: bool = False,
    ) -> List[CategoryNode]:
        """Get every category as a flat list of nodes with usage counts.

        Returns:
            CategoryNodes ordered by display_order, then name.
        """
        self._check_type_value(category_type)
        _, nodes = self._build(organization_id, category_type, include_inactive)
        return list(nodes.values())

    def get_category_stats(
        self,
        organization_id: int,
        category_type: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[CategoryStats]:
        """Get transaction count, total and average amount per category."""
        self._check_type_value(category_type)
        return self.categories.stats(organization_id, category_type, start_date, end_date)

    def check_circular_reference(
        self, parent_id: int, organization_id: int, exclude_id: Optional[int] = None
    ) -> None:
        """Walk up from parent_id and reject any cycle.

        Args:
            parent_id: Where the walk starts (the proposed parent).
            organization_id: The organization to resolve parents in.
            exclude_id: The category being moved; meeting it means the move
                would put the category under its own descendant.

        Raises:
            ValidationError: If an id repeats or exclude_id is reached.
        """
        visited = set()
        current_id = parent_id

        while current_id is not None:
            if current_id in visited or current_id == exclude_id:
                raise self._reject(
                    f"Circular reference detected in category hierarchy "
                    f"(at category {current_id})"
                )
            visited.add(current_id)

            current = self.categories.find(current_id, organization_id)
            current_id = current.parent_id if current else None

    def seed_default_categories(
        self, organization_id: int, seed: Optional[dict] = None
    ) -> SeedResult:
        """Create the default category tree for an organization.

        Categories are created level by level inside one transaction, so
        either the whole tree is in place afterwards or nothing changed.
        Categories that already exist are left alone and counted as skipped.

        Args:
            organization_id: The organization to seed.
            seed: Category type -> entries mapping; defaults to
                load_default_categories().

        Returns:
            SeedResult with created and skipped counts.

        Raises:
            ValidationError: If the seed data is invalid or nests too deep.
        """
        if seed is None:
            seed = load_default_categories()

        created = 0
        skipped = 0

        with self.db_manager.transaction():
            pending = [
                (None, category_type, entry)
                for category_type, entries in seed.items()
                for entry in entries or []
            ]
            level = 0

            while pending:
                if level > MAX_LEVEL:
                    raise ValidationError(
                        f"Max depth exceeded: seed data nests deeper than {MAX_LEVEL + 1} levels"
                    )

                next_level = []
                for parent, category_type, entry in pending:
                    data = parse_input(
                        CategoryCreate,
                        {
                            "organization_id": organization_id,
                            "name": entry.get("name"),
                            "type": category_type,
                            "parent_id": parent.id if parent else None,
                            "icon": entry.get("icon"),
                            "display_order": entry.get("display_order", 0),
                            "is_default": True,
                        },
                    )

                    category = self.categories.find_duplicate(
                        organization_id, data.name, data.parent_id, data.type
                    )
                    if category is not None:
                        skipped += 1
                    else:
                        category = self._create_validated(data)
                        created += 1

                    next_level.extend(
                        (category, category_type, child)
                        for child in entry.get("children") or []
                    )

                pending = next_level
                level += 1

        self.tree_cache.invalidate(organization_id)
        self.logger.info(
            f"Seeded categories for organization {organization_id}: "
            f"{created} created, {skipped} skipped"
        )
        return SeedResult(created=created, skipped=skipped)

    def _create_validated(self, data: CategoryCreate) -> Category:
        """Validate and insert a category. Must run inside a transaction."""
        level = 0
        if data.parent_id is not None:
            parent = self._require_parent(data.parent_id, data.organization_id)
            self._check_type_compatible(parent, data.type)
            level = parent.level + 1
            if level > MAX_LEVEL:
                raise self._reject(
                    f"Max depth exceeded: '{data.name}' would be at level {level} "
                    f"(maximum is {MAX_LEVEL})"
                )
            # The parent chain itself must terminate
            self.check_circular_reference(parent.id, data.organization_id)

        self._check_unique(data.organization_id, data.name, data.parent_id, data.type)

        return self.categories.create(
            Category(
                id=None,
                organization_id=data.organization_id,
                name=data.name,
                type=data.type,
                parent_id=data.parent_id,
                level=level,
                icon=data.icon,
                color=data.color,
                is_default=data.is_default,
                display_order=data.display_order,
            )
        )

    def _build(self, organization_id, category_type, include_inactive):
        categories = self.categories.find_all(
            CategoryFilter(
                organization_id=organization_id,
                type=category_type,
                is_active=None if include_inactive else True,
            )
        )
        counts = self.categories.transaction_counts(c.id for c in categories)
        return build_category_hierarchy(categories, counts)

    def _require_parent(
        self, parent_id: int, organization_id: int, require_active: bool = True
    ) -> Category:
        parent = self.categories.find(parent_id, organization_id)
        if parent is None or (require_active and not parent.is_active):
            raise self._reject(
                f"Parent not found: category {parent_id} is not an active category "
                f"of organization {organization_id}"
            )
        return parent

    def _check_type_compatible(self, parent: Category, child_type: str) -> None:
        if not are_types_compatible(parent.type, child_type):
            raise self._reject(
                f"Type incompatible: category type '{child_type}' is not compatible "
                f"with parent type '{parent.type}'"
            )

    def _check_type_change_allowed(self, existing: Category, new_type: str) -> None:
        # Inactive children count too: they may be reactivated later
        children = self.categories.find_all(
            CategoryFilter(organization_id=existing.organization_id, parent_id=existing.id)
        )
        if any(not are_types_compatible(new_type, child.type) for child in children):
            raise self._reject(
                f"Cannot change type of '{existing.name}' to '{new_type}': "
                f"it has child categories of type '{existing.type}'"
            )

        if self.categories.count_transaction_usages(existing.id) > 0:
            raise self._reject(
                f"Cannot change type of '{existing.name}': transactions reference it"
            )

    def _check_unique(
        self,
        organization_id: int,
        name: str,
        parent_id: Optional[int],
        category_type: str,
        exclude_id: Optional[int] = None,
    ) -> None:
        duplicate = self.categories.find_duplicate(
            organization_id, name, parent_id, category_type, exclude_id=exclude_id
        )
        if duplicate is not None:
            raise self._reject(
                f"Duplicate name at this level: '{name}' already exists "
                f"(category {duplicate.id})"
            )

    def _check_type_value(self, category_type: Optional[str]) -> None:
        if category_type is not None and category_type not in CATEGORY_TYPES:
            raise ValidationError(
                f"Invalid category type '{category_type}'. "
                f"Must be one of: {', '.join(CATEGORY_TYPES)}"
            )

    def _subtree_levels(self, category: Category, new_level: int) -> Dict[int, int]:
        """Levels the category and its descendants would have at new_level."""
        categories = self.categories.find_all(
            CategoryFilter(organization_id=category.organization_id)
        )
        children_by_parent: Dict[int, List[int]] = {}
        for item in categories:
            if item.parent_id is not None:
                children_by_parent.setdefault(item.parent_id, []).append(item.id)

        levels = {category.id: new_level}
        queue = [category.id]
        while queue:
            current = queue.pop(0)
            for child_id in children_by_parent.get(current, []):
                if child_id in levels:
                    continue
                levels[child_id] = levels[current] + 1
                queue.append(child_id)
        return levels

    def _reject(self, message: str) -> ValidationError:
        self.logger.warning(message)
        return ValidationError(message)
