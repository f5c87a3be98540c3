import argparse
import pytest

from cli import categories, goals
from models.category import CategoryFilter
from tests.helpers import ORG_ID, make_category


def _args(**values):
    values.setdefault("org", ORG_ID)
    return argparse.Namespace(**values)


class TestCategoryCommands:
    """Tests for the categories CLI handlers."""

    def test_seed_then_tree(self, services, caplog):
        """Test seeding and printing the tree."""
        caplog.set_level("INFO", logger="moneybook")

        categories.cmd_seed(_args(file=None), services)
        categories.cmd_tree(_args(type="expense", all=False), services)

        assert "Seeding complete!" in caplog.text
        assert "EXPENSE" in caplog.text
        assert "INCOME" not in caplog.text

    def test_create_uses_default_organization(self, services):
        """Test that --org falls back to the configured organization."""
        categories.cmd_create(
            _args(org=None, name="Food", type="expense", parent=None, icon=None, color=None, order=0),
            services,
        )

        stored = services.categories.find_all(CategoryFilter(organization_id=ORG_ID))
        assert [category.name for category in stored] == ["Food"]

    def test_missing_organization_exits(self, services):
        """Test that a command without any organization exits with status 1."""
        services.config.default_organization_id = None

        with pytest.raises(SystemExit) as exc_info:
            categories.cmd_tree(_args(org=None, type=None, all=False), services)

        assert exc_info.value.code == 1

    def test_update_move_to_root(self, services):
        """Test moving a category to the top level."""
        food = make_category(services, "Food")
        groceries = make_category(services, "Groceries", parent=food)

        categories.cmd_update(
            _args(category_id=groceries.id, name=None, type=None, parent=None, root=True, order=None),
            services,
        )

        assert services.categories.find(groceries.id, ORG_ID).parent_id is None

    def test_delete_without_confirmation(self, services):
        """Test deleting with --yes."""
        food = make_category(services, "Food")

        categories.cmd_delete(_args(category_id=food.id, force=False, yes=True), services)

        assert services.categories.find(food.id, ORG_ID) is None


class TestGoalCommands:
    """Tests for the goals CLI handlers."""

    def test_create_and_list(self, services, caplog):
        """Test creating a goal and listing it."""
        caplog.set_level("INFO", logger="moneybook")

        goals.cmd_create(
            _args(
                name="Emergency fund",
                category="savings",
                target=goals._amount("10000"),
                by=goals._date("2027-06-30"),
                priority="high",
                description=None,
            ),
            services,
        )
        goals.cmd_list(_args(), services)

        assert "Emergency fund" in caplog.text
        assert "Total goals: 1" in caplog.text

    def test_invalid_amount_argument(self):
        """Test that malformed amounts are rejected by the parser."""
        with pytest.raises(argparse.ArgumentTypeError):
            goals._amount("ten")

    def test_parser_registers_subcommands(self):
        """Test that the goals parser accepts a refresh without an ID."""
        parser = argparse.ArgumentParser()
        subparsers = parser.add_subparsers(dest="command")
        goals.setup_parser(subparsers)

        args = parser.parse_args(["goals", "--org", "4", "refresh"])

        assert args.org == 4
        assert args.goal_id is None
        assert args.func is goals.cmd_refresh
