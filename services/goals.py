"""Financial goal service for database operations."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from errors import NotFoundError
from models.goal import FinancialGoal

_GOAL_SELECT_FIELDS = """id, organization_id, name, category, target_amount, current_amount,
       target_date, priority, description, status, created_at, updated_at"""

_UPDATABLE_FIELDS = (
    "name",
    "category",
    "target_amount",
    "current_amount",
    "target_date",
    "priority",
    "description",
    "status",
)


class GoalService:
    """Service for storing financial goals, always scoped to an organization."""

    def __init__(self, db_manager):
        """Initialize the goal service.

        Args:
            db_manager: Database manager instance for database operations.
        """
        self.db_manager = db_manager

    def find(self, goal_id: int, organization_id: int) -> Optional[FinancialGoal]:
        """Get a single goal by ID.

        Args:
            goal_id: The goal ID to find.
            organization_id: The organization the goal must belong to.

        Returns:
            FinancialGoal object if found, None otherwise.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"""
                SELECT {_GOAL_SELECT_FIELDS}
                FROM financial_goals
                WHERE id = ? AND organization_id = ?
                """,
                (goal_id, organization_id),
            )
            row = cursor.fetchone()

            if row:
                return self._row_to_goal(row)
            return None

    def find_all(
        self, organization_id: int, statuses: Optional[List[str]] = None
    ) -> List[FinancialGoal]:
        """Get the goals of an organization.

        Args:
            organization_id: The organization.
            statuses: Optional list of statuses to restrict to.

        Returns:
            List of FinancialGoal objects, newest first.
        """
        query = f"""
            SELECT {_GOAL_SELECT_FIELDS}
            FROM financial_goals
            WHERE organization_id = ?
        """
        params = [organization_id]

        if statuses:
            placeholders = ", ".join(["?"] * len(statuses))
            query += f" AND status IN ({placeholders})"
            params.extend(statuses)

        query += " ORDER BY created_at DESC, id DESC"

        with self.db_manager.connect() as conn:
            cursor = conn.execute(query, params)
            return [self._row_to_goal(row) for row in cursor.fetchall()]

    def create(self, goal: FinancialGoal) -> FinancialGoal:
        """Create a new goal.

        Args:
            goal: Goal to insert. Its id is ignored.

        Returns:
            The created FinancialGoal with id and timestamps populated.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO financial_goals (organization_id, name, category, target_amount,
                    current_amount, target_date, priority, description, status)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    goal.organization_id,
                    goal.name,
                    goal.category,
                    float(goal.target_amount),
                    float(goal.current_amount),
                    goal.target_date.isoformat(),
                    goal.priority,
                    goal.description,
                    goal.status,
                ),
            )
            goal_id = cursor.lastrowid

        return self.find(goal_id, goal.organization_id)

    def update(self, goal_id: int, organization_id: int, fields: dict) -> FinancialGoal:
        """Update selected fields of a goal.

        Args:
            goal_id: The goal ID to update.
            organization_id: The organization the goal belongs to.
            fields: Mapping of column name to new value.

        Returns:
            The updated FinancialGoal.

        Raises:
            ValueError: If an unsupported field name is given.
            NotFoundError: If the goal is not found.
        """
        unknown = set(fields) - set(_UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Unsupported goal fields: {sorted(unknown)}")

        values = []
        for name, value in fields.items():
            if isinstance(value, Decimal):
                value = float(value)
            elif isinstance(value, date):
                value = value.isoformat()
            values.append(value)

        assignments = "".join(f"{name} = ?, " for name in fields)

        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"""
                UPDATE financial_goals
                SET {assignments}updated_at = CURRENT_TIMESTAMP
                WHERE id = ? AND organization_id = ?
                """,
                (*values, goal_id, organization_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"Goal with ID {goal_id} not found")

        return self.find(goal_id, organization_id)

    def delete(self, goal_id: int, organization_id: int) -> bool:
        """Delete a goal by ID.

        Returns:
            True if the goal was deleted, False if not found.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                "DELETE FROM financial_goals WHERE id = ? AND organization_id = ?",
                (goal_id, organization_id),
            )
            return cursor.rowcount > 0

    def _row_to_goal(self, row: tuple) -> FinancialGoal:
        """Convert a database row to a FinancialGoal object."""
        return FinancialGoal(
            id=row[0],
            organization_id=row[1],
            name=row[2],
            category=row[3],
            target_amount=Decimal(str(row[4])),
            current_amount=Decimal(str(row[5])),
            target_date=date.fromisoformat(row[6]),
            priority=row[7],
            description=row[8],
            status=row[9],
            created_at=datetime.fromisoformat(row[10]) if row[10] else None,
            updated_at=datetime.fromisoformat(row[11]) if row[11] else None,
        )
