#!/usr/bin/env python3

import sys
from pathlib import Path
from logger import get_logger
from models.category import CATEGORY_TYPES
from services.category_hierarchy import load_default_categories

logger = get_logger()


def resolve_organization(args, services) -> int:
    """Pick the organization from --org or the configured default."""
    organization_id = args.org or services.config.default_organization_id
    if organization_id is None:
        logger.error(
            "No organization given. Pass --org or set [organization] default_id "
            "in ~/.config/moneybook.toml."
        )
        sys.exit(1)
    return organization_id


def format_node(node) -> str:
    """Render one tree line, indented by level."""
    marker = "" if node.level == 0 else "└─ "
    icon = f"[{node.category.icon}] " if node.category.icon else ""
    inactive = " (inactive)" if not node.category.is_active else ""
    return (
        f"{'  ' * node.level}{marker}{icon}{node.name} "
        f"(ID: {node.id}, {node.transaction_count} txn){inactive}"
    )


def cmd_tree(args, services):
    """Print the category tree of an organization."""
    organization_id = resolve_organization(args, services)
    roots = services.hierarchy.get_category_tree(
        organization_id, args.type, include_inactive=args.all
    )

    if not roots:
        logger.info("No categories found.")
        return

    current_type = None
    for root in sorted(roots, key=lambda node: CATEGORY_TYPES.index(node.type)):
        if root.type != current_type:
            current_type = root.type
            logger.info(f"\n{current_type.upper()}")
            logger.info("=" * 80)
        for node in root.walk():
            logger.info(format_node(node))


def cmd_create(args, services):
    """Create a new category."""
    organization_id = resolve_organization(args, services)

    data = {
        "organization_id": organization_id,
        "name": args.name,
        "type": args.type,
        "parent_id": args.parent,
        "display_order": args.order,
    }
    if args.icon:
        data["icon"] = args.icon
    if args.color:
        data["color"] = args.color

    node = services.hierarchy.create_category(data)

    logger.info(f"\n✓ Category created successfully with ID: {node.id}")
    logger.info(f"  Path: {' > '.join(node.path)}")
    logger.info(f"  Type: {node.type}")
    logger.info(f"  Level: {node.level}")


def cmd_update(args, services):
    """Update fields of an existing category."""
    organization_id = resolve_organization(args, services)

    data = {"id": args.category_id, "organization_id": organization_id}
    if args.name is not None:
        data["name"] = args.name
    if args.type is not None:
        data["type"] = args.type
    if args.root:
        data["parent_id"] = None
    elif args.parent is not None:
        data["parent_id"] = args.parent
    if args.order is not None:
        data["display_order"] = args.order

    if len(data) == 2:
        logger.info("Nothing to update.")
        return

    node = services.hierarchy.update_category(data)
    logger.info(f"✓ Category {node.id} updated: {' > '.join(node.path)} (level {node.level})")


def cmd_delete(args, services):
    """Delete a category by ID."""
    organization_id = resolve_organization(args, services)
    node = services.hierarchy.get_category(args.category_id, organization_id)

    logger.info("\nCategory to delete:")
    logger.info(f"  ID: {node.id}")
    logger.info(f"  Path: {' > '.join(node.path)}")
    logger.info(f"  Transactions: {node.transaction_count}")
    if node.transaction_count and args.force:
        logger.info("  Referencing transactions will be left uncategorized.")

    if not args.yes:
        confirm = (
            input("\nAre you sure you want to delete this category? (yes/no): ")
            .strip()
            .lower()
        )
        if confirm != "yes":
            logger.info("Deletion cancelled.")
            return

    result = services.hierarchy.delete_category(
        node.id, organization_id, force_delete=args.force
    )
    if result.deleted_permanently:
        logger.info(f"✓ Category '{node.name}' deleted successfully.")
    else:
        logger.info(
            f"✓ Category '{node.name}' is used by transactions and was deactivated. "
            f"Use --force to delete it permanently."
        )


def cmd_seed(args, services):
    """Seed the default categories from YAML."""
    organization_id = resolve_organization(args, services)
    seed_file = Path(args.file) if args.file else None

    try:
        seed = load_default_categories(seed_file)
    except FileNotFoundError as e:
        logger.error(f"Seed file not found: {e.filename}")
        sys.exit(1)

    logger.info(f"\nSeeding categories for organization {organization_id}")
    logger.info("=" * 80)

    result = services.hierarchy.seed_default_categories(organization_id, seed)

    logger.info("\nSeeding complete!")
    logger.info(f"Created: {result.created}")
    logger.info(f"Skipped: {result.skipped}")
    logger.info(f"Total: {result.created + result.skipped}")


def cmd_stats(args, services):
    """Show transaction statistics per category."""
    organization_id = resolve_organization(args, services)
    stats = services.hierarchy.get_category_stats(organization_id, args.type)

    if not stats:
        logger.info("No categorized transactions found.")
        return

    for item in stats:
        logger.info(
            f"{item.category_name:<30} {item.transaction_count:>6} txn  "
            f"total {item.total_amount:>12}  avg {item.average_amount:>10}"
        )


def setup_parser(subparsers):
    """Setup categories subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "categories",
        help="Manage categories",
        description="Create, update, delete and browse hierarchical categories",
    )
    parser.add_argument("--org", type=int, help="Organization ID")

    categories_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available category commands",
        dest="subcommand",
        required=True,
    )

    # categories tree
    tree_parser = categories_subparsers.add_parser("tree", help="Show the category tree")
    tree_parser.add_argument("--type", choices=CATEGORY_TYPES, help="Only this type")
    tree_parser.add_argument(
        "--all", action="store_true", help="Include deactivated categories"
    )
    tree_parser.set_defaults(func=cmd_tree)

    # categories create
    create_parser = categories_subparsers.add_parser("create", help="Create a category")
    create_parser.add_argument("name", help="Category name")
    create_parser.add_argument("--type", required=True, choices=CATEGORY_TYPES)
    create_parser.add_argument("--parent", type=int, help="Parent category ID")
    create_parser.add_argument("--icon", help="Icon name")
    create_parser.add_argument("--color", help="Display color")
    create_parser.add_argument("--order", type=int, default=0, help="Display order")
    create_parser.set_defaults(func=cmd_create)

    # categories update
    update_parser = categories_subparsers.add_parser("update", help="Update a category")
    update_parser.add_argument("category_id", type=int, help="ID of the category")
    update_parser.add_argument("--name", help="New name")
    update_parser.add_argument("--type", choices=CATEGORY_TYPES, help="New type")
    parent_group = update_parser.add_mutually_exclusive_group()
    parent_group.add_argument("--parent", type=int, help="New parent category ID")
    parent_group.add_argument("--root", action="store_true", help="Move to the top level")
    update_parser.add_argument("--order", type=int, help="New display order")
    update_parser.set_defaults(func=cmd_update)

    # categories delete
    delete_parser = categories_subparsers.add_parser(
        "delete", help="Delete a category by ID"
    )
    delete_parser.add_argument("category_id", type=int, help="ID of the category to delete")
    delete_parser.add_argument(
        "--force",
        action="store_true",
        help="Delete permanently even if transactions use it",
    )
    delete_parser.add_argument("--yes", action="store_true", help="Skip confirmation")
    delete_parser.set_defaults(func=cmd_delete)

    # categories seed
    seed_parser = categories_subparsers.add_parser(
        "seed", help="Seed the default categories"
    )
    seed_parser.add_argument("--file", help="YAML seed file (defaults to the bundled one)")
    seed_parser.set_defaults(func=cmd_seed)

    # categories stats
    stats_parser = categories_subparsers.add_parser(
        "stats", help="Transaction statistics per category"
    )
    stats_parser.add_argument("--type", choices=CATEGORY_TYPES, help="Only this type")
    stats_parser.set_defaults(func=cmd_stats)
