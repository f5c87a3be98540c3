import pytest
from datetime import date, datetime
from decimal import Decimal

from errors import NotFoundError, ValidationError
from models.goal import FinancialGoal
from services.goal_progress import calculate_goal_progress, resolve_goal_status
from tests.helpers import ORG_ID, OTHER_ORG_ID, add_transaction

NOW = datetime(2026, 3, 10, 9, 0)
TODAY = date(2026, 3, 15)


def _goal(current, target, target_date, category="asset_growth", status="active"):
    return FinancialGoal(
        id=1,
        organization_id=ORG_ID,
        name="Goal",
        category=category,
        target_amount=Decimal(str(target)),
        current_amount=Decimal(str(current)),
        target_date=target_date,
        status=status,
    )


def _create_goal(services, target, category="asset_growth", organization_id=ORG_ID, **fields):
    data = {
        "organization_id": organization_id,
        "name": f"{category} goal",
        "category": category,
        "target_amount": Decimal(str(target)),
        "target_date": date(2026, 12, 31),
    }
    data.update(fields)
    return services.goal_progress.create_goal(data, today=TODAY)


class TestCalculateGoalProgress:
    """Tests for the pure pace projection."""

    def test_ahead_of_schedule(self):
        """Test 600k of 1M with 20 days left on the 10th of the month."""
        progress = calculate_goal_progress(_goal(600000, 1000000, date(2026, 3, 30)), NOW)

        assert progress.days_remaining == 20
        assert progress.daily_progress == Decimal("60000")
        assert progress.remaining_amount == Decimal("400000")
        assert progress.projected_days == 7
        assert progress.days_ahead_behind == 13
        assert progress.is_on_track is True
        assert progress.status == "ahead"
        assert progress.achievement_rate == Decimal("60")
        assert progress.daily_target_to_reach == Decimal("20000")

    def test_on_track_within_threshold(self):
        """Test that being up to a week ahead counts as on-track."""
        progress = calculate_goal_progress(_goal(600000, 1000000, date(2026, 3, 20)), NOW)

        assert progress.days_remaining == 10
        assert progress.days_ahead_behind == 3
        assert progress.status == "on-track"

    def test_behind_schedule(self):
        """Test that a slow pace is reported as behind."""
        progress = calculate_goal_progress(_goal(100, 1000, date(2026, 3, 30)), NOW)

        assert progress.daily_progress == Decimal("10")
        assert progress.projected_days == 90
        assert progress.is_on_track is False
        assert progress.days_ahead_behind == -70
        assert progress.status == "behind"

    def test_no_progress_projects_remaining_days(self):
        """Test that without progress the projection equals the days remaining."""
        progress = calculate_goal_progress(_goal(0, 1000, date(2026, 3, 30)), NOW)

        assert progress.daily_progress == 0
        assert progress.projected_days == progress.days_remaining
        assert progress.days_ahead_behind == 0
        assert progress.status == "on-track"

    def test_reached_goal(self):
        """Test that a reached goal has nothing remaining."""
        progress = calculate_goal_progress(_goal(1200, 1000, date(2026, 3, 30)), NOW)

        assert progress.remaining_amount == 0
        assert progress.daily_target_to_reach == 0
        assert progress.achievement_rate == Decimal("120")

    def test_past_target_date(self):
        """Test that an overdue goal has no daily target."""
        progress = calculate_goal_progress(_goal(100, 1000, date(2026, 3, 1)), NOW)

        assert progress.days_remaining < 0
        assert progress.daily_target_to_reach == 0
        assert progress.status == "behind"

    def test_negative_current_amount(self):
        """Test debt goals with a negative current amount."""
        progress = calculate_goal_progress(
            _goal(-5000, 1000, date(2026, 3, 30), category="debt_reduction"), NOW
        )

        assert progress.achievement_rate == Decimal("-500")
        assert progress.daily_progress == 0
        assert progress.remaining_amount == Decimal("6000")

    def test_first_of_month_divides_by_one(self):
        """Test that the day-of-month divisor is never zero."""
        progress = calculate_goal_progress(
            _goal(300, 1000, date(2026, 4, 30)), datetime(2026, 4, 1, 12, 0)
        )

        assert progress.daily_progress == Decimal("300")


class TestResolveGoalStatus:
    """Tests for the completion rule."""

    @pytest.mark.parametrize("category", ["asset_growth", "savings"])
    def test_increasing_goals_complete(self, category):
        """Test that growth goals complete at 100%."""
        assert resolve_goal_status(category, Decimal("1000"), Decimal("1000"), "active") == "completed"
        assert resolve_goal_status(category, Decimal("999"), Decimal("1000"), "active") == "active"

    def test_paused_goals_complete(self):
        """Test that paused goals also complete."""
        assert resolve_goal_status("savings", Decimal("2000"), Decimal("1000"), "paused") == "completed"

    @pytest.mark.parametrize("category", ["debt_reduction", "expense_reduction"])
    def test_reduction_goals_never_complete(self, category):
        """Test that reduction goals keep their status."""
        assert resolve_goal_status(category, Decimal("0"), Decimal("1000"), "active") == "active"

    def test_completed_is_never_demoted(self):
        """Test that a completed goal stays completed below target."""
        assert resolve_goal_status("savings", Decimal("10"), Decimal("1000"), "completed") == "completed"


class TestCalculateCurrentGoalAmount:
    """Tests for GoalProgressService.calculate_current_goal_amount."""

    def test_asset_growth_sums_assets(self, services):
        """Test that asset growth uses the total asset value."""
        services.assets.create(ORG_ID, "Brokerage", Decimal("1000"))
        services.assets.create(ORG_ID, "Savings account", Decimal("2500.5"))
        services.assets.create(OTHER_ORG_ID, "Not ours", Decimal("999"))

        amount = services.goal_progress.calculate_current_goal_amount(ORG_ID, "asset_growth")

        assert amount == Decimal("3500.5")

    def test_savings_is_net_of_transactions(self, services):
        """Test that savings is income minus expenses."""
        add_transaction(services, 5000)
        add_transaction(services, -1200)

        amount = services.goal_progress.calculate_current_goal_amount(ORG_ID, "savings")

        assert amount == Decimal("3800")

    def test_savings_never_negative(self, services):
        """Test that overspending floors savings at zero."""
        add_transaction(services, 100)
        add_transaction(services, -400)

        amount = services.goal_progress.calculate_current_goal_amount(ORG_ID, "savings")

        assert amount == 0

    def test_debt_reduction_is_negative_debt(self, services):
        """Test that outstanding debt is reported as a negative amount."""
        services.liabilities.create(ORG_ID, "Mortgage", Decimal("10000"))
        services.liabilities.create(ORG_ID, "Car loan", Decimal("5000"))

        amount = services.goal_progress.calculate_current_goal_amount(ORG_ID, "debt_reduction")

        assert amount == Decimal("-15000")

    def test_debt_reduction_without_debt(self, services):
        """Test that no debt gives zero."""
        amount = services.goal_progress.calculate_current_goal_amount(ORG_ID, "debt_reduction")

        assert amount == 0

    def test_expense_reduction_uses_current_month(self, services):
        """Test that only this month's expenses count."""
        add_transaction(services, -100, date(2026, 3, 1))
        add_transaction(services, -50, date(2026, 3, 31))
        add_transaction(services, 5000, date(2026, 3, 10))
        add_transaction(services, -999, date(2026, 2, 28))
        add_transaction(services, -999, date(2026, 4, 1))
        add_transaction(services, -999, date(2026, 3, 5), organization_id=OTHER_ORG_ID)

        amount = services.goal_progress.calculate_current_goal_amount(
            ORG_ID, "expense_reduction", today=TODAY
        )

        assert amount == Decimal("-150")

    def test_expense_reduction_without_expenses(self, services):
        """Test that a month without expenses gives zero."""
        amount = services.goal_progress.calculate_current_goal_amount(
            ORG_ID, "expense_reduction", today=TODAY
        )

        assert amount == 0

    def test_unknown_category(self, services):
        """Test that an unknown category is refused."""
        with pytest.raises(ValidationError, match="Invalid goal category"):
            services.goal_progress.calculate_current_goal_amount(ORG_ID, "lottery")


class TestGoalLifecycle:
    """Tests for creating, updating and deleting goals."""

    def test_create_goal_computes_current_amount(self, services):
        """Test that a new goal starts from existing data."""
        services.assets.create(ORG_ID, "Brokerage", Decimal("400"))

        goal = _create_goal(services, 1000)

        assert goal.id is not None
        assert goal.current_amount == Decimal("400")
        assert goal.status == "active"
        assert goal.priority == "medium"
        assert goal.achievement_rate == Decimal("40")

    def test_create_goal_already_reached(self, services):
        """Test that a goal reached at creation is completed immediately."""
        services.assets.create(ORG_ID, "Brokerage", Decimal("1500"))

        goal = _create_goal(services, 1000)

        assert goal.status == "completed"

    @pytest.mark.parametrize(
        "fields",
        [
            {"target_amount": Decimal("0")},
            {"target_amount": Decimal("-10")},
            {"category": "lottery"},
            {"priority": "urgent"},
            {"name": ""},
        ],
    )
    def test_create_goal_invalid_input(self, services, fields):
        """Test that invalid goal input is refused."""
        with pytest.raises(ValidationError):
            _create_goal(services, 1000, **fields)

        assert services.goal_progress.list_goals(ORG_ID) == []

    def test_update_goal_fields(self, services):
        """Test updating name, priority and target."""
        goal = _create_goal(services, 1000)

        updated = services.goal_progress.update_goal(
            {
                "id": goal.id,
                "organization_id": ORG_ID,
                "name": "House deposit",
                "priority": "high",
                "target_amount": Decimal("2000"),
            }
        )

        assert updated.name == "House deposit"
        assert updated.priority == "high"
        assert updated.target_amount == Decimal("2000")
        assert updated.category == "asset_growth"

    def test_update_category_recomputes_amount(self, services):
        """Test that switching category recomputes the current amount."""
        services.liabilities.create(ORG_ID, "Loan", Decimal("800"))
        goal = _create_goal(services, 1000)

        updated = services.goal_progress.update_goal(
            {"id": goal.id, "organization_id": ORG_ID, "category": "debt_reduction"},
            today=TODAY,
        )

        assert updated.current_amount == Decimal("-800")

    def test_lowering_target_completes_goal(self, services):
        """Test that the completion rule runs after an update."""
        services.assets.create(ORG_ID, "Brokerage", Decimal("600"))
        goal = _create_goal(services, 1000)

        updated = services.goal_progress.update_goal(
            {"id": goal.id, "organization_id": ORG_ID, "target_amount": Decimal("500")}
        )

        assert updated.status == "completed"

    def test_explicit_status_wins(self, services):
        """Test that an explicitly supplied status is kept as given."""
        services.assets.create(ORG_ID, "Brokerage", Decimal("1500"))
        goal = _create_goal(services, 1000)
        assert goal.status == "completed"

        updated = services.goal_progress.update_goal(
            {"id": goal.id, "organization_id": ORG_ID, "status": "active"}
        )

        assert updated.status == "active"

    def test_update_missing_goal(self, services):
        """Test that updating an unknown goal raises NotFoundError."""
        with pytest.raises(NotFoundError):
            services.goal_progress.update_goal(
                {"id": 9999, "organization_id": ORG_ID, "name": "Nope"}
            )

    def test_update_cannot_clear_target(self, services):
        """Test that required fields cannot be cleared."""
        goal = _create_goal(services, 1000)

        with pytest.raises(ValidationError, match="cannot be cleared"):
            services.goal_progress.update_goal(
                {"id": goal.id, "organization_id": ORG_ID, "target_amount": None}
            )

    def test_delete_goal(self, services):
        """Test deleting a goal."""
        goal = _create_goal(services, 1000)

        assert services.goal_progress.delete_goal(goal.id, ORG_ID) is True

        with pytest.raises(NotFoundError):
            services.goal_progress.get_goal(goal.id, ORG_ID)

    def test_delete_goal_of_other_organization(self, services):
        """Test that a goal cannot be deleted through another organization."""
        goal = _create_goal(services, 1000)

        with pytest.raises(NotFoundError):
            services.goal_progress.delete_goal(goal.id, OTHER_ORG_ID)

    def test_list_goals_newest_first(self, services):
        """Test that goals are listed newest first and scoped by organization."""
        first = _create_goal(services, 1000)
        second = _create_goal(services, 2000, category="savings")
        _create_goal(services, 3000, organization_id=OTHER_ORG_ID)

        goals = services.goal_progress.list_goals(ORG_ID)

        assert [goal.id for goal in goals] == [second.id, first.id]


class TestUpdateGoalProgress:
    """Tests for recomputing persisted progress."""

    def test_recompute_completes_and_never_demotes(self, services):
        """Test completion at 100% and no automatic demotion afterwards."""
        goal = _create_goal(services, 1000, category="savings")
        assert goal.status == "active"

        add_transaction(services, 1200)
        completed = services.goal_progress.update_goal_progress(goal.id, ORG_ID)

        assert completed.current_amount == Decimal("1200")
        assert completed.status == "completed"

        add_transaction(services, -1000)
        dropped = services.goal_progress.update_goal_progress(goal.id, ORG_ID)

        assert dropped.current_amount == Decimal("200")
        assert dropped.status == "completed"

    def test_debt_goal_stays_active(self, services):
        """Test that a debt goal is never completed automatically."""
        services.liabilities.create(ORG_ID, "Loan", Decimal("100"))
        goal = _create_goal(services, 1000, category="debt_reduction")

        recomputed = services.goal_progress.update_goal_progress(goal.id, ORG_ID)

        assert recomputed.current_amount == Decimal("-100")
        assert recomputed.status == "active"

    def test_recompute_missing_goal(self, services):
        """Test that recomputing an unknown goal raises NotFoundError."""
        with pytest.raises(NotFoundError):
            services.goal_progress.update_goal_progress(9999, ORG_ID)

    def test_sync_goals_skips_completed(self, services):
        """Test that sync recomputes active and paused goals only."""
        active = _create_goal(services, 1000)
        paused = _create_goal(services, 500)
        done = _create_goal(services, 300)
        services.goal_progress.update_goal(
            {"id": paused.id, "organization_id": ORG_ID, "status": "paused"}
        )
        services.goal_progress.update_goal(
            {"id": done.id, "organization_id": ORG_ID, "status": "completed"}
        )
        services.assets.create(ORG_ID, "Brokerage", Decimal("600"))

        synced = services.goal_progress.sync_goals(ORG_ID, today=TODAY)

        assert {goal.id for goal in synced} == {active.id, paused.id}
        assert services.goal_progress.get_goal(active.id, ORG_ID).status == "active"
        assert services.goal_progress.get_goal(paused.id, ORG_ID).status == "completed"
        untouched = services.goal_progress.get_goal(done.id, ORG_ID)
        assert untouched.current_amount == 0

    def test_get_goal_progress_for_stored_goal(self, services):
        """Test projecting a stored goal."""
        services.assets.create(ORG_ID, "Brokerage", Decimal("600000"))
        goal = _create_goal(services, 1000000, target_date=date(2026, 3, 30))

        progress = services.goal_progress.get_goal_progress(goal, now=NOW)

        assert progress.status == "ahead"
        assert progress.projected_days == 7


class TestGoalStats:
    """Tests for goal statistics."""

    def test_stats(self, services):
        """Test counts and the average achievement with negatives floored."""
        services.assets.create(ORG_ID, "Brokerage", Decimal("500"))
        services.liabilities.create(ORG_ID, "Loan", Decimal("100"))
        _create_goal(services, 1000)
        _create_goal(services, 500)
        _create_goal(services, 1000, category="debt_reduction")

        stats = services.goal_progress.get_goal_stats(ORG_ID)

        assert stats.total_goals == 3
        assert stats.active_goals == 2
        assert stats.completed_goals == 1
        assert stats.average_achievement == Decimal("50.0")

    def test_stats_rounds_to_one_decimal(self, services):
        """Test that the average is rounded half up to one decimal."""
        services.assets.create(ORG_ID, "Brokerage", Decimal("1"))
        _create_goal(services, 3)
        _create_goal(services, 3)

        stats = services.goal_progress.get_goal_stats(ORG_ID)

        assert stats.average_achievement == Decimal("33.3")

    def test_stats_without_goals(self, services):
        """Test that an organization without goals has zero stats."""
        stats = services.goal_progress.get_goal_stats(ORG_ID)

        assert stats.total_goals == 0
        assert stats.active_goals == 0
        assert stats.completed_goals == 0
        assert stats.average_achievement == 0
