#!/usr/bin/env python3

from datetime import date
from decimal import Decimal, InvalidOperation
import argparse
from cli.categories import resolve_organization
from logger import get_logger
from models.goal import GOAL_CATEGORIES, GOAL_PRIORITIES, GOAL_STATUSES

logger = get_logger()


def _amount(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"Invalid amount: {value}")


def _date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date (expected YYYY-MM-DD): {value}")


def log_goal(goal, services):
    """Log a goal with its pace projection."""
    progress = services.goal_progress.get_goal_progress(goal)
    logger.info(f"ID: {goal.id}  {goal.name} [{goal.category}, {goal.priority}, {goal.status}]")
    logger.info(
        f"  {goal.current_amount} / {goal.target_amount} "
        f"({progress.achievement_rate:.1f}%) by {goal.target_date.isoformat()}"
    )
    logger.info(
        f"  {progress.days_remaining} day(s) left, need {progress.daily_target_to_reach:.2f}/day, "
        f"pace: {progress.status} ({progress.days_ahead_behind:+d} days)"
    )


def cmd_list(args, services):
    """List the goals of an organization."""
    organization_id = resolve_organization(args, services)
    goals = services.goal_progress.list_goals(organization_id)

    if not goals:
        logger.info("No goals found.")
        return

    logger.info("\nGoals:")
    logger.info("=" * 80)
    for goal in goals:
        log_goal(goal, services)
        logger.info("-" * 80)

    logger.info(f"\nTotal goals: {len(goals)}")


def cmd_create(args, services):
    """Create a goal."""
    organization_id = resolve_organization(args, services)
    goal = services.goal_progress.create_goal(
        {
            "organization_id": organization_id,
            "name": args.name,
            "category": args.category,
            "target_amount": args.target,
            "target_date": args.by,
            "priority": args.priority,
            "description": args.description,
        }
    )
    logger.info(f"\n✓ Goal created successfully with ID: {goal.id}")
    log_goal(goal, services)


def cmd_update(args, services):
    """Update a goal."""
    organization_id = resolve_organization(args, services)
    data = {"id": args.goal_id, "organization_id": organization_id}
    for field, value in (
        ("name", args.name),
        ("category", args.category),
        ("target_amount", args.target),
        ("target_date", args.by),
        ("priority", args.priority),
        ("status", args.status),
    ):
        if value is not None:
            data[field] = value

    goal = services.goal_progress.update_goal(data)
    logger.info(f"✓ Goal {goal.id} updated.")
    log_goal(goal, services)


def cmd_progress(args, services):
    """Show the pace projection of one goal."""
    organization_id = resolve_organization(args, services)
    goal = services.goal_progress.get_goal(args.goal_id, organization_id)
    progress = services.goal_progress.get_goal_progress(goal)

    log_goal(goal, services)
    logger.info(f"  Remaining: {progress.remaining_amount}")
    logger.info(f"  Current pace: {progress.daily_progress:.2f}/day")
    logger.info(f"  Projected days to target: {progress.projected_days}")


def cmd_refresh(args, services):
    """Recompute the current amount of one goal, or of all open goals."""
    organization_id = resolve_organization(args, services)

    if args.goal_id is None:
        goals = services.goal_progress.sync_goals(organization_id)
        logger.info(f"✓ Recomputed {len(goals)} goal(s).")
        for goal in goals:
            log_goal(goal, services)
        return

    goal = services.goal_progress.update_goal_progress(args.goal_id, organization_id)
    logger.info(f"✓ Goal {goal.id} recomputed.")
    log_goal(goal, services)


def cmd_delete(args, services):
    """Delete a goal."""
    organization_id = resolve_organization(args, services)
    services.goal_progress.delete_goal(args.goal_id, organization_id)
    logger.info(f"✓ Goal {args.goal_id} deleted.")


def cmd_stats(args, services):
    """Summarize goals."""
    organization_id = resolve_organization(args, services)
    stats = services.goal_progress.get_goal_stats(organization_id)
    logger.info(f"Total goals: {stats.total_goals}")
    logger.info(f"Active: {stats.active_goals}")
    logger.info(f"Completed: {stats.completed_goals}")
    logger.info(f"Average achievement: {stats.average_achievement}%")


def setup_parser(subparsers):
    """Setup goals subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "goals",
        help="Manage financial goals",
        description="Create financial goals and track their progress",
    )
    parser.add_argument("--org", type=int, help="Organization ID")

    goals_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available goal commands",
        dest="subcommand",
        required=True,
    )

    list_parser = goals_subparsers.add_parser("list", help="List goals with their pace")
    list_parser.set_defaults(func=cmd_list)

    create_parser = goals_subparsers.add_parser("create", help="Create a goal")
    create_parser.add_argument("name", help="Goal name")
    create_parser.add_argument("--target", type=_amount, required=True, help="Target amount")
    create_parser.add_argument("--by", type=_date, required=True, help="Target date (YYYY-MM-DD)")
    create_parser.add_argument("--category", choices=GOAL_CATEGORIES, default="asset_growth")
    create_parser.add_argument("--priority", choices=GOAL_PRIORITIES, default="medium")
    create_parser.add_argument("--description", help="Optional description")
    create_parser.set_defaults(func=cmd_create)

    update_parser = goals_subparsers.add_parser("update", help="Update a goal")
    update_parser.add_argument("goal_id", type=int, help="ID of the goal")
    update_parser.add_argument("--name")
    update_parser.add_argument("--target", type=_amount)
    update_parser.add_argument("--by", type=_date)
    update_parser.add_argument("--category", choices=GOAL_CATEGORIES)
    update_parser.add_argument("--priority", choices=GOAL_PRIORITIES)
    update_parser.add_argument("--status", choices=GOAL_STATUSES)
    update_parser.set_defaults(func=cmd_update)

    progress_parser = goals_subparsers.add_parser(
        "progress", help="Show the pace projection of a goal"
    )
    progress_parser.add_argument("goal_id", type=int, help="ID of the goal")
    progress_parser.set_defaults(func=cmd_progress)

    refresh_parser = goals_subparsers.add_parser(
        "refresh", help="Recompute current amounts from financial data"
    )
    refresh_parser.add_argument(
        "goal_id", type=int, nargs="?", help="Goal ID (all open goals if omitted)"
    )
    refresh_parser.set_defaults(func=cmd_refresh)

    delete_parser = goals_subparsers.add_parser("delete", help="Delete a goal")
    delete_parser.add_argument("goal_id", type=int, help="ID of the goal")
    delete_parser.set_defaults(func=cmd_delete)

    stats_parser = goals_subparsers.add_parser("stats", help="Summarize goals")
    stats_parser.set_defaults(func=cmd_stats)
