"""Financial goal model and its derived progress snapshot."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

GOAL_CATEGORIES = ("asset_growth", "savings", "debt_reduction", "expense_reduction")
GOAL_PRIORITIES = ("low", "medium", "high")
GOAL_STATUSES = ("active", "completed", "paused")

# Categories whose current amount grows toward the target. Only these
# complete automatically.
INCREASING_GOAL_CATEGORIES = ("asset_growth", "savings")


@dataclass
class FinancialGoal:
    """Represents an organization's financial goal.

    Attributes:
        id: Unique identifier (auto-generated).
        organization_id: Owning organization.
        name: Goal name.
        category: What the goal measures, one of GOAL_CATEGORIES.
        target_amount: Amount to reach, always positive.
        current_amount: Computed from the organization's financial data.
            Negative for debt and expense reduction goals.
        target_date: Date the goal should be reached by.
        priority: One of GOAL_PRIORITIES.
        description: Optional free text.
        status: One of GOAL_STATUSES.
    """

    id: int
    organization_id: int
    name: str
    category: str
    target_amount: Decimal
    current_amount: Decimal
    target_date: date
    priority: str = "medium"
    description: Optional[str] = None
    status: str = "active"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def achievement_rate(self) -> Decimal:
        """Percentage of the target reached (0 when the target is not positive)."""
        if self.target_amount > 0:
            return self.current_amount / self.target_amount * 100
        return Decimal("0")


@dataclass(frozen=True)
class GoalProgress:
    """Point-in-time pace projection for a goal. Never persisted."""

    achievement_rate: Decimal
    current_amount: Decimal
    remaining_amount: Decimal
    days_remaining: int
    daily_target_to_reach: Decimal
    daily_progress: Decimal
    projected_days: int
    is_on_track: bool
    days_ahead_behind: int
    status: str  # "ahead", "on-track" or "behind"


@dataclass(frozen=True)
class GoalStats:
    """Aggregate goal counts for an organization."""

    total_goals: int
    active_goals: int
    completed_goals: int
    average_achievement: Decimal
