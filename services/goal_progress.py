"""Goal progress: current amounts, pace projection and completion status."""

import math
from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Union

from dateutil.relativedelta import relativedelta

from errors import NotFoundError, ValidationError
from logger import get_logger
from models.goal import (
    GOAL_CATEGORIES,
    INCREASING_GOAL_CATEGORIES,
    FinancialGoal,
    GoalProgress,
    GoalStats,
)
from models.inputs import GoalCreate, GoalUpdate, parse_input

# Goals further ahead of schedule than this count as "ahead" rather than "on-track".
AHEAD_THRESHOLD_DAYS = 7


def calculate_goal_progress(goal: FinancialGoal, now: Optional[datetime] = None) -> GoalProgress:
    """Project whether a goal is on pace. Pure; nothing is persisted.

    The daily accumulation rate is approximated as current_amount divided by
    the current day of the month, not by the days since the goal was created.

    Args:
        goal: The goal to project.
        now: Moment to project from. Defaults to datetime.now().

    Returns:
        GoalProgress snapshot.
    """
    if now is None:
        now = datetime.now()

    current = goal.current_amount
    target = goal.target_amount
    zero = Decimal("0")

    achievement_rate = current / target * 100 if target > 0 else zero
    remaining = max(zero, target - current)

    target_moment = datetime.combine(goal.target_date, time.min, tzinfo=now.tzinfo)
    days_remaining = math.ceil((target_moment - now).total_seconds() / 86400)

    daily_target = remaining / days_remaining if days_remaining > 0 else zero
    daily_progress = current / max(1, now.day) if current > 0 else zero

    if remaining > 0 and daily_progress > 0:
        projected_days = math.ceil(remaining / daily_progress)
    else:
        projected_days = days_remaining

    is_on_track = projected_days <= days_remaining
    days_ahead_behind = days_remaining - projected_days

    if not is_on_track:
        status = "behind"
    elif days_ahead_behind > AHEAD_THRESHOLD_DAYS:
        status = "ahead"
    else:
        status = "on-track"

    return GoalProgress(
        achievement_rate=achievement_rate,
        current_amount=current,
        remaining_amount=remaining,
        days_remaining=days_remaining,
        daily_target_to_reach=daily_target,
        daily_progress=daily_progress,
        projected_days=projected_days,
        is_on_track=is_on_track,
        days_ahead_behind=days_ahead_behind,
        status=status,
    )


def resolve_goal_status(
    category: str, current_amount: Decimal, target_amount: Decimal, status: str
) -> str:
    """Apply the completion rule to a goal's persisted status.

    Goals whose amount grows toward the target become "completed" once the
    achievement rate reaches 100%. Completed goals are never demoted.
    """
    if status == "completed" or category not in INCREASING_GOAL_CATEGORIES:
        return status
    if target_amount > 0 and current_amount / target_amount * 100 >= 100:
        return "completed"
    return status


class GoalProgressService:
    """Computes and persists goal progress from an organization's finances.

    Args:
        db_manager: Database manager, used to scope writes in a transaction.
        goals: GoalService used as the goal store.
        transactions: TransactionService for savings and expense goals.
        assets: AssetService for asset growth goals.
        liabilities: LiabilityService for debt reduction goals.
        logger: Optional logger; defaults to the "moneybook.goals" logger.
    """

    def __init__(self, db_manager, goals, transactions, assets, liabilities, logger=None):
        self.db_manager = db_manager
        self.goals = goals
        self.transactions = transactions
        self.assets = assets
        self.liabilities = liabilities
        self.logger = logger or get_logger("goals")

    def calculate_current_goal_amount(
        self, organization_id: int, category: str, today: Optional[date] = None
    ) -> Decimal:
        """Compute a goal's current amount from one financial data source.

        - asset_growth: total value of the organization's assets
        - savings: net of all transactions, never below zero
        - debt_reduction: negative total of outstanding liabilities
        - expense_reduction: negative total of this calendar month's expenses

        Args:
            organization_id: The organization.
            category: Goal category.
            today: Reference date for the current month. Defaults to date.today().

        Returns:
            The current amount as a Decimal.

        Raises:
            ValidationError: If the category is unknown.
        """
        zero = Decimal("0")

        if category == "asset_growth":
            return self.assets.sum_values(organization_id)

        if category == "savings":
            net = sum(
                (t.amount for t in self.transactions.list_transactions(organization_id)),
                zero,
            )
            return max(zero, net)

        if category == "debt_reduction":
            debt = self.liabilities.sum_amounts(organization_id)
            return -debt if debt > 0 else zero

        if category == "expense_reduction":
            today = today or date.today()
            month_start = today.replace(day=1)
            month_end = today + relativedelta(day=31)
            expenses = sum(
                (
                    abs(t.amount)
                    for t in self.transactions.list_transactions(
                        organization_id, month_start, month_end
                    )
                    if t.is_expense
                ),
                zero,
            )
            return -expenses if expenses > 0 else zero

        raise ValidationError(
            f"Invalid goal category '{category}'. Must be one of: {', '.join(GOAL_CATEGORIES)}"
        )

    def get_goal_progress(
        self, goal: FinancialGoal, now: Optional[datetime] = None
    ) -> GoalProgress:
        """Project a goal's pace. See calculate_goal_progress."""
        return calculate_goal_progress(goal, now)

    def list_goals(self, organization_id: int) -> List[FinancialGoal]:
        """Get all goals of an organization, newest first."""
        return self.goals.find_all(organization_id)

    def get_goal(self, goal_id: int, organization_id: int) -> FinancialGoal:
        """Get a goal.

        Raises:
            NotFoundError: If the goal is not in the organization.
        """
        goal = self.goals.find(goal_id, organization_id)
        if goal is None:
            raise NotFoundError(
                f"Goal with ID {goal_id} not found in organization {organization_id}"
            )
        return goal

    def create_goal(
        self, data: Union[GoalCreate, dict], today: Optional[date] = None
    ) -> FinancialGoal:
        """Create a goal with its current amount computed from existing data.

        Args:
            data: GoalCreate or dict with its fields.
            today: Reference date for month-scoped calculations.

        Returns:
            The created FinancialGoal.

        Raises:
            ValidationError: If the input is invalid.
        """
        data = parse_input(GoalCreate, data)

        with self.db_manager.transaction():
            current_amount = self.calculate_current_goal_amount(
                data.organization_id, data.category, today
            )
            goal = self.goals.create(
                FinancialGoal(
                    id=None,
                    organization_id=data.organization_id,
                    name=data.name,
                    category=data.category,
                    target_amount=data.target_amount,
                    current_amount=current_amount,
                    target_date=data.target_date,
                    priority=data.priority,
                    description=data.description,
                    status=resolve_goal_status(
                        data.category, current_amount, data.target_amount, "active"
                    ),
                )
            )

        self.logger.info(
            f"Created goal '{goal.name}' (ID: {goal.id}, category: {goal.category}, "
            f"status: {goal.status})"
        )
        return goal

    def update_goal(
        self, data: Union[GoalUpdate, dict], today: Optional[date] = None
    ) -> FinancialGoal:
        """Update a goal's fields.

        The current amount is recomputed when the category changes. Unless the
        status is set explicitly, the completion rule is applied afterwards.

        Args:
            data: GoalUpdate or dict with id, organization_id and fields to change.
            today: Reference date for month-scoped calculations.

        Returns:
            The updated FinancialGoal.

        Raises:
            NotFoundError: If the goal is not in the organization.
            ValidationError: If the input is invalid.
        """
        data = parse_input(GoalUpdate, data)
        fields = data.changes()

        with self.db_manager.transaction():
            existing = self.get_goal(data.id, data.organization_id)

            category = fields.get("category", existing.category)
            if category != existing.category:
                fields["current_amount"] = self.calculate_current_goal_amount(
                    existing.organization_id, category, today
                )

            if "status" not in fields:
                status = resolve_goal_status(
                    category,
                    fields.get("current_amount", existing.current_amount),
                    fields.get("target_amount", existing.target_amount),
                    existing.status,
                )
                if status != existing.status:
                    fields["status"] = status

            goal = self.goals.update(existing.id, existing.organization_id, fields)

        self.logger.info(f"Updated goal {goal.id}: {', '.join(sorted(fields)) or 'no changes'}")
        return goal

    def delete_goal(self, goal_id: int, organization_id: int) -> bool:
        """Delete a goal.

        Raises:
            NotFoundError: If the goal is not in the organization.
        """
        with self.db_manager.transaction():
            goal = self.get_goal(goal_id, organization_id)
            self.goals.delete(goal.id, organization_id)

        self.logger.info(f"Deleted goal '{goal.name}' (ID: {goal.id})")
        return True

    def update_goal_progress(
        self, goal_id: int, organization_id: int, today: Optional[date] = None
    ) -> FinancialGoal:
        """Recompute and persist a goal's current amount and status.

        Raises:
            NotFoundError: If the goal is not in the organization.
        """
        with self.db_manager.transaction():
            goal = self._recompute(self.get_goal(goal_id, organization_id), today)
        return goal

    def sync_goals(
        self, organization_id: int, today: Optional[date] = None
    ) -> List[FinancialGoal]:
        """Recompute every active or paused goal of an organization at once.

        Returns:
            The recomputed goals.
        """
        with self.db_manager.transaction():
            goals = self.goals.find_all(organization_id, statuses=["active", "paused"])
            synced = [self._recompute(goal, today) for goal in goals]

        self.logger.info(f"Synced {len(synced)} goal(s) for organization {organization_id}")
        return synced

    def get_goal_stats(self, organization_id: int) -> GoalStats:
        """Summarize an organization's goals.

        Negative achievement rates count as zero in the average, which is
        rounded to one decimal place.
        """
        goals = self.goals.find_all(organization_id)

        if goals:
            total_rate = sum(
                (max(Decimal("0"), goal.achievement_rate) for goal in goals), Decimal("0")
            )
            average = (total_rate / len(goals)).quantize(
                Decimal("0.1"), rounding=ROUND_HALF_UP
            )
        else:
            average = Decimal("0")

        return GoalStats(
            total_goals=len(goals),
            active_goals=sum(1 for goal in goals if goal.status == "active"),
            completed_goals=sum(1 for goal in goals if goal.status == "completed"),
            average_achievement=average,
        )

    def _recompute(self, goal: FinancialGoal, today: Optional[date]) -> FinancialGoal:
        current_amount = self.calculate_current_goal_amount(
            goal.organization_id, goal.category, today
        )
        status = resolve_goal_status(
            goal.category, current_amount, goal.target_amount, goal.status
        )

        updated = self.goals.update(
            goal.id,
            goal.organization_id,
            {"current_amount": current_amount, "status": status},
        )

        if status == "completed" and goal.status != "completed":
            self.logger.info(
                f"Goal '{goal.name}' reached its target of {goal.target_amount}"
            )
        return updated
